"""Main Textual App class."""

from textual.app import App

from cirrus.auth import LoginService
from cirrus.config import AppConfig
from cirrus.crash import CrashHandler
from cirrus.rclone import RcloneClient
from cirrus.screens.remotes import RemotesScreen


class CirrusApp(App):
    TITLE = "Cirrus"
    CSS = """
    Screen {
        background: $surface;
    }
    """

    def __init__(
        self,
        config: AppConfig,
        client: RcloneClient,
        login_service: LoginService | None = None,
        crash_handler: CrashHandler | None = None,
    ) -> None:
        super().__init__()
        self.config = config
        self.client = client
        self.login_service = login_service or LoginService(client, config)
        self._crash_handler = crash_handler

    def on_mount(self) -> None:
        self.push_screen(RemotesScreen(self.client, self.login_service))

    def on_unmount(self) -> None:
        self.login_service.cancel()

    def _handle_exception(self, error: Exception) -> None:
        """Record the failure for the supervisor, then let Textual shut down.

        Overrides Textual's private _handle_exception, which exits the app
        with a non-zero return code.
        """
        if self._crash_handler is not None:
            self._crash_handler.handle(error)
        super()._handle_exception(error)

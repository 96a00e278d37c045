"""Crash report window shown by the supervisor after the UI process fails."""

import asyncio
import logging

from textual import on, work
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Label, Static, TextArea

from cirrus.config import AppConfig
from cirrus.crash import CrashPayload, CrashUploadError, upload_payload
from cirrus.errors import ErrorCode, app_error

logger = logging.getLogger(__name__)

CRASH_TITLE = "Unknown error"
RELEASE_MESSAGE = (
    "Cirrus ran into an unknown error and had to close. "
    "You can send the crash logs below so the problem can be looked into."
)
DEBUG_MESSAGE = (
    "Cirrus ran into an unknown error and had to close. "
    "The backtrace is included below."
)


class CrashReportApp(App):
    TITLE = "Cirrus"
    CSS = """
    Screen {
        align: center middle;
        background: $surface;
    }
    #crash-box {
        width: 90%;
        height: 90%;
        border: heavy $error;
        padding: 1 2;
    }
    #crash-title {
        text-style: bold;
    }
    #crash-message {
        margin: 1 0;
    }
    #crash-backtrace {
        height: 1fr;
    }
    #support-id {
        height: auto;
        color: $success;
    }
    #crash-buttons {
        height: auto;
        margin: 1 0 0 0;
    }
    #crash-buttons Button {
        margin: 0 1;
    }
    """

    def __init__(self, payload: CrashPayload, config: AppConfig) -> None:
        super().__init__()
        self.payload = payload
        self.config = config
        self.support_id: str | None = None

    def compose(self) -> ComposeResult:
        message = RELEASE_MESSAGE if self.config.release_mode else DEBUG_MESSAGE
        with Vertical(id="crash-box"):
            yield Static(CRASH_TITLE, id="crash-title", markup=False)
            yield Static(message, id="crash-message", markup=False)
            yield TextArea(self.payload.backtrace, read_only=True, id="crash-backtrace")
            yield Label("", id="support-id", markup=False)
            with Horizontal(id="crash-buttons"):
                yield Button("Copy", id="copy-btn")
                if self.config.release_mode:
                    yield Button("Upload Crash Logs", id="upload-btn", variant="warning")
                yield Button("Ok", id="ok-btn", variant="primary")

    @on(Button.Pressed, "#copy-btn")
    def copy_backtrace(self) -> None:
        self.copy_to_clipboard(self.payload.backtrace)
        self.notify("Backtrace copied to clipboard")

    @on(Button.Pressed, "#upload-btn")
    def upload(self) -> None:
        self.query_one("#upload-btn", Button).disabled = True
        self._upload()

    @work(exclusive=True, group="upload")
    async def _upload(self) -> None:
        try:
            support_id = await asyncio.to_thread(
                upload_payload, self.payload, self.config.crash_report_url
            )
        except CrashUploadError as exc:
            logger.error("Crash upload failed: %s", exc)
            app_error(self, ErrorCode.CRASH_UPLOAD, detail=str(exc))
            self.query_one("#upload-btn", Button).disabled = False
            return
        self.support_id = support_id
        logger.info("Crash logs uploaded, support id %s", support_id)
        self.query_one("#support-id", Label).update(
            f"Crash logs sent. Support ID: {support_id}"
        )

    @on(Button.Pressed, "#ok-btn")
    def close(self) -> None:
        self.exit()

"""Remotes screen: configured servers, folder browsing and removal."""

import asyncio
import logging

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen, Screen
from textual.widgets import Button, Footer, Input, Label, Static

from cirrus.auth import LoginService
from cirrus.errors import ErrorCode, app_error
from cirrus.rclone import ListFilter, RcloneClient, RcloneError, Remote
from cirrus.screens.login import LoginScreen
from cirrus.widgets.app_header import AppHeader
from cirrus.widgets.confirm_modal import ConfirmModal
from cirrus.widgets.remote_table import RemoteTable

logger = logging.getLogger(__name__)


def describe(remote: Remote) -> str:
    """One-line summary of where a remote points."""
    if remote.backend == "webdav":
        return f"{remote.user} @ {remote.url}" if remote.user else remote.url
    if remote.backend == "protondrive":
        return remote.username
    return ""


class NewFolderModal(ModalScreen[str | None]):
    """Simple modal to get a folder name from the user."""

    CSS = """
    NewFolderModal {
        align: center middle;
    }
    #newfolder-box {
        width: 50;
        height: auto;
        border: heavy $accent;
        padding: 1 2;
        background: $surface;
    }
    .form-buttons {
        height: auto;
        margin: 1 0 0 0;
    }
    .form-buttons Button {
        margin: 0 1;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical(id="newfolder-box"):
            yield Static("New Folder", markup=False)
            yield Label("Folder Name")
            yield Input(id="folder-name", placeholder="Enter folder name")
            with Horizontal(classes="form-buttons"):
                yield Button("Create", id="create-btn", variant="primary")
                yield Button("Cancel", id="cancel-btn")

    @on(Button.Pressed, "#create-btn")
    def create(self) -> None:
        name = self.query_one("#folder-name", Input).value.strip().strip("/")
        if name:
            self.dismiss(name)

    @on(Button.Pressed, "#cancel-btn")
    def cancel(self) -> None:
        self.dismiss(None)


class RemoteBrowserModal(ModalScreen[str | None]):
    """Browse the folders of a remote and select one."""

    CSS = """
    RemoteBrowserModal {
        align: center middle;
    }
    #browser-box {
        width: 70;
        height: 24;
        border: heavy $accent;
        padding: 1 2;
        background: $surface;
    }
    #path-label {
        margin: 0 0 1 0;
    }
    #folder-table {
        height: 1fr;
    }
    #browser-actions {
        height: auto;
        margin: 1 0 0 0;
    }
    #browser-actions Button {
        margin: 0 1;
    }
    """

    def __init__(self, client: RcloneClient, remote: str) -> None:
        super().__init__()
        self._client = client
        self._remote = remote
        self._current_path = ""

    def compose(self) -> ComposeResult:
        with Vertical(id="browser-box"):
            yield Static(f"Browse {self._remote}", markup=False)
            yield Label("/", id="path-label", markup=False)
            yield RemoteTable(id="folder-table")
            with Horizontal(id="browser-actions"):
                yield Button("Open", id="open-btn")
                yield Button("Up", id="up-btn")
                yield Button("New Folder", id="new-folder-btn")
                yield Button("Select", id="select-btn", variant="primary")
                yield Button("Cancel", id="cancel-btn")

    def on_mount(self) -> None:
        table = self.query_one("#folder-table", RemoteTable)
        table.add_columns("Name", "Modified")
        self._load_folder(path="")

    @work(exclusive=True)
    async def _load_folder(self, path: str) -> None:
        self._current_path = path
        display_path = f"/{path}"
        label = self.query_one("#path-label", Label)
        label.update(f"{display_path}  (loading...)")
        table = self.query_one("#folder-table", RemoteTable)
        table.clear()
        try:
            folders = await asyncio.to_thread(
                self._client.list_items, self._remote, path, filter=ListFilter.DIRS
            )
        except RcloneError as exc:
            label.update(f"{display_path}  (error: {exc.error})")
            return
        for item in sorted(folders, key=lambda i: i.name.lower()):
            modified = item.mod_time.strftime("%Y-%m-%d %H:%M") if item.mod_time else ""
            table.add_row(item.name, modified, key=item.path)
        label.update(display_path if folders else f"{display_path}  (empty)")

    @on(Button.Pressed, "#open-btn")
    def open_folder(self) -> None:
        key = self.query_one("#folder-table", RemoteTable).selected_key()
        if key is not None:
            self._load_folder(path=key)

    @on(Button.Pressed, "#up-btn")
    def go_up(self) -> None:
        if self._current_path:
            parent = "/".join(self._current_path.rstrip("/").split("/")[:-1])
            self._load_folder(path=parent)

    @on(Button.Pressed, "#new-folder-btn")
    def new_folder(self) -> None:
        def on_result(name: str | None) -> None:
            if name:
                new_path = f"{self._current_path}/{name}" if self._current_path else name
                self._create_and_refresh(new_path)
        self.app.push_screen(NewFolderModal(), on_result)

    @work(exclusive=True, group="create_folder")
    async def _create_and_refresh(self, new_path: str) -> None:
        try:
            await asyncio.to_thread(self._client.mkdir, self._remote, new_path)
        except RcloneError as exc:
            self.query_one("#path-label", Label).update(f"Error creating folder: {exc.error}")
            return
        self._load_folder(path=self._current_path)

    @on(Button.Pressed, "#select-btn")
    def select_folder(self) -> None:
        self.dismiss(f"/{self._current_path}")

    @on(Button.Pressed, "#cancel-btn")
    def cancel(self) -> None:
        self.dismiss(None)


class RemotesScreen(Screen):
    BINDINGS = [
        ("a", "add_remote", "Add"),
        ("b", "browse", "Browse"),
        ("d", "delete_remote", "Delete"),
        ("r", "refresh", "Refresh"),
        ("q", "quit", "Quit"),
    ]

    CSS = """
    RemotesScreen {
        layout: vertical;
    }
    #status-label {
        height: 1;
        padding: 0 2;
        color: $text-muted;
    }
    #remote-actions {
        height: auto;
        padding: 0 1;
    }
    #remote-actions Button {
        margin: 0 1;
    }
    """

    def __init__(self, client: RcloneClient, service: LoginService) -> None:
        super().__init__()
        self._client = client
        self._service = service

    def compose(self) -> ComposeResult:
        yield AppHeader(subtitle="Servers")
        yield RemoteTable(id="remote-table")
        yield Label("", id="status-label", markup=False)
        with Horizontal(id="remote-actions"):
            yield Button("Add Server", id="add-btn", variant="primary")
            yield Button("Browse", id="browse-btn")
            yield Button("Delete", id="delete-btn", variant="error")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#remote-table", RemoteTable)
        table.add_columns("Name", "Type", "Location")
        self._refresh_remotes(open_login_if_empty=True)

    @work(exclusive=True, group="remotes")
    async def _refresh_remotes(self, open_login_if_empty: bool = False) -> None:
        table = self.query_one("#remote-table", RemoteTable)
        table.clear()
        try:
            remotes = await asyncio.to_thread(self._client.list_remotes)
        except RcloneError as exc:
            # No HTTP status means the daemon itself is unreachable.
            code = ErrorCode.RC_CONNECT if exc.status is None else ErrorCode.RC_LOAD
            app_error(self, code, detail=exc.error)
            return
        for remote in remotes:
            table.add_row(remote.name, remote.vendor or remote.backend, describe(remote), key=remote.name)
        self._set_status(f"{len(remotes)} server(s)")
        if not remotes and open_login_if_empty:
            self.action_add_remote()

    def _set_status(self, msg: str) -> None:
        self.query_one("#status-label", Label).update(msg)

    def _selected_remote(self) -> str | None:
        return self.query_one("#remote-table", RemoteTable).selected_key()

    @on(Button.Pressed, "#add-btn")
    def action_add_remote(self) -> None:
        def on_login(name: str | None) -> None:
            if name:
                self.notify(f"Added server '{name}'")
                self._refresh_remotes()

        self.app.push_screen(LoginScreen(self._service, self._client), on_login)

    @on(Button.Pressed, "#browse-btn")
    def action_browse(self) -> None:
        remote = self._selected_remote()
        if remote is None:
            self._set_status("Select a server first")
            return

        def on_folder(path: str | None) -> None:
            if path is not None:
                self._set_status(f"{remote}:{path}")

        self.app.push_screen(RemoteBrowserModal(self._client, remote), on_folder)

    @on(Button.Pressed, "#delete-btn")
    def action_delete_remote(self) -> None:
        remote = self._selected_remote()
        if remote is None:
            self._set_status("Select a server first")
            return

        def on_confirm(confirmed: bool) -> None:
            if confirmed:
                self._delete_remote(remote)

        self.app.push_screen(
            ConfirmModal(f"Remove server '{remote}'? Files on the server are not touched."),
            on_confirm,
        )

    @work(exclusive=True, group="delete")
    async def _delete_remote(self, remote: str) -> None:
        try:
            await asyncio.to_thread(self._client.delete_config, remote)
        except RcloneError as exc:
            app_error(self, ErrorCode.RC_DELETE, detail=exc.error)
            return
        logger.info("Removed remote '%s'", remote)
        self._set_status(f"Removed '{remote}'")
        self._refresh_remotes()

    def action_refresh(self) -> None:
        self._refresh_remotes()

    def action_quit(self) -> None:
        self.app.exit()

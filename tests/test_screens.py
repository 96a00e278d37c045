"""Pilot tests for the login form, the server list and the app shell."""

import asyncio
from unittest.mock import MagicMock, patch

from textual.app import App, ComposeResult
from textual.widgets import Button, Input, Label, Select

from cirrus.app import CirrusApp
from cirrus.auth import AuthState, LoginService
from cirrus.providers import LoginField, Provider
from cirrus.screens.login import AuthWaitModal, LoginScreen
from cirrus.screens.remotes import RemotesScreen, describe
from cirrus.rclone import Remote
from cirrus.widgets.confirm_modal import ConfirmModal, MessageModal
from cirrus.widgets.remote_table import RemoteTable

from conftest import FakeRcloneClient


class HostApp(App):
    def __init__(self, client, config, popen=None):
        super().__init__()
        self.client = client
        extra = {} if popen is None else {"popen": popen}
        self.service = LoginService(client, config, opener=MagicMock(return_value=True), **extra)
        self.dismissed_value = "UNSET"

    def compose(self) -> ComposeResult:
        yield Label("host")

    async def open_login(self) -> LoginScreen:
        def on_dismiss(value) -> None:
            self.dismissed_value = value
        screen = LoginScreen(self.service, self.client)
        await self.push_screen(screen, on_dismiss)
        await self.workers.wait_for_complete()
        return screen


async def choose_provider(pilot, screen, provider):
    screen.query_one("#provider", Select).value = provider
    await pilot.pause()


async def fill(pilot, screen, **values):
    for input_id, value in values.items():
        screen.query_one(f"#{input_id}", Input).value = value
    await pilot.pause()


class TestLoginScreen:
    async def test_dropbox_only_asks_for_a_name(self, config):
        app = HostApp(FakeRcloneClient(), config)
        async with app.run_test() as pilot:
            screen = await app.open_login()
            assert screen.query_one("#name", Input).display
            for hidden in ("url", "username", "password", "totp"):
                assert not screen.query_one(f"#{hidden}", Input).display
            assert screen.query_one("#login-btn", Button).disabled

    async def test_provider_switch_shows_its_fields(self, config):
        app = HostApp(FakeRcloneClient(), config)
        async with app.run_test() as pilot:
            screen = await app.open_login()
            await choose_provider(pilot, screen, Provider.PROTON_DRIVE)
            for shown in ("name", "username", "password", "totp"):
                assert screen.query_one(f"#{shown}", Input).display
            assert not screen.query_one("#url", Input).display

    async def test_remote_php_flagged_while_typing(self, config):
        app = HostApp(FakeRcloneClient(), config)
        async with app.run_test(size=(100, 50)) as pilot:
            screen = await app.open_login()
            await choose_provider(pilot, screen, Provider.NEXTCLOUD)
            await fill(
                pilot, screen,
                name="cloud", url="https://cloud.example.com/remote.php/dav",
                username="me", password="pw",
            )
            error = screen._field_errors[LoginField.URL]
            assert "/remote.php/dav" in error.detail
            assert screen.query_one("#login-btn", Button).disabled

    async def test_existing_name_flagged(self, config):
        client = FakeRcloneClient(remotes={"work": {"type": "dropbox"}})
        app = HostApp(client, config)
        async with app.run_test() as pilot:
            screen = await app.open_login()
            await fill(pilot, screen, name="work")
            assert screen._field_errors[LoginField.NAME].title == "Name already exists"
            await fill(pilot, screen, name="home")
            assert LoginField.NAME not in screen._field_errors
            assert not screen.query_one("#login-btn", Button).disabled

    async def test_webdav_login_dismisses_with_name(self, config):
        client = FakeRcloneClient()
        app = HostApp(client, config)
        async with app.run_test(size=(100, 50)) as pilot:
            screen = await app.open_login()
            await choose_provider(pilot, screen, Provider.WEBDAV)
            await fill(
                pilot, screen,
                name="cloud", url="https://dav.example.com/me", username="me", password="pw",
            )
            screen.query_one("#login-btn", Button).press()
            await pilot.pause()
            await app.workers.wait_for_complete()
            await pilot.pause()
            assert app.dismissed_value == "cloud"
            assert client.remotes["cloud"]["parameters"]["url"] == "https://dav.example.com/me"

    async def test_probe_failure_shows_message(self, config):
        client = FakeRcloneClient(stat_error="dial tcp: lookup dav.example.com: no such host")
        app = HostApp(client, config)
        async with app.run_test(size=(100, 50)) as pilot:
            screen = await app.open_login()
            await choose_provider(pilot, screen, Provider.WEBDAV)
            await fill(
                pilot, screen,
                name="cloud", url="https://dav.example.com", username="me", password="pw",
            )
            screen.query_one("#login-btn", Button).press()
            await pilot.pause()
            await app.workers.wait_for_complete()
            await pilot.pause()
            assert isinstance(app.screen, MessageModal)
            assert app.dismissed_value == "UNSET"
            assert client.remotes == {}
            # The form is usable again.
            assert not screen.query_one("#name", Input).disabled

    async def test_cancel_dismisses_none(self, config):
        app = HostApp(FakeRcloneClient(), config)
        async with app.run_test() as pilot:
            screen = await app.open_login()
            screen.query_one("#cancel-btn", Button).press()
            await pilot.pause()
            assert app.dismissed_value is None

    async def test_cancel_mid_login_stops_sign_in(self, config, script_popen):
        popen = script_popen("import time\ntime.sleep(60)\n")
        client = FakeRcloneClient()
        app = HostApp(client, config, popen=popen)
        async with app.run_test(size=(100, 50)) as pilot:
            screen = await app.open_login()
            await fill(pilot, screen, name="dbx")
            screen.query_one("#login-btn", Button).press()
            await pilot.pause()
            session = screen._session
            for _ in range(500):
                if session.state is AuthState.AWAITING_URL:
                    break
                await asyncio.sleep(0.01)
            assert session.state is AuthState.AWAITING_URL

            screen.query_one("#cancel-btn", Button).press()
            await pilot.pause()
            await app.workers.wait_for_complete()
            await pilot.pause()

            assert session.state is AuthState.CANCELLED
            assert popen.processes[0].poll() is not None
            assert app.dismissed_value is None
            assert not isinstance(app.screen, (LoginScreen, AuthWaitModal, MessageModal))
            assert client.remotes == {}


REMOTES = {
    "dbx": {"type": "dropbox", "parameters": {}},
    "cloud": {"type": "webdav", "parameters": {"url": "https://c.example.com", "user": "me", "vendor": "nextcloud"}},
}


class TestRemotesScreen:
    def test_describe(self):
        assert describe(Remote(name="c", backend="webdav", url="https://c", user="me")) == "me @ https://c"
        assert describe(Remote(name="p", backend="protondrive", username="me@proton.me")) == "me@proton.me"
        assert describe(Remote(name="d", backend="dropbox")) == ""

    async def test_lists_remotes(self, config):
        client = FakeRcloneClient(remotes=REMOTES)
        app = HostApp(client, config)
        async with app.run_test() as pilot:
            await app.push_screen(RemotesScreen(client, app.service))
            await app.workers.wait_for_complete()
            await pilot.pause()
            assert app.screen.query_one("#remote-table", RemoteTable).row_count == 2

    async def test_no_remotes_opens_login(self, config):
        client = FakeRcloneClient()
        app = HostApp(client, config)
        async with app.run_test() as pilot:
            await app.push_screen(RemotesScreen(client, app.service))
            await app.workers.wait_for_complete()
            await pilot.pause()
            assert isinstance(app.screen, LoginScreen)

    async def test_delete_after_confirm(self, config):
        client = FakeRcloneClient(remotes=dict(REMOTES))
        app = HostApp(client, config)
        async with app.run_test() as pilot:
            screen = RemotesScreen(client, app.service)
            await app.push_screen(screen)
            await app.workers.wait_for_complete()
            await pilot.pause()
            screen.action_delete_remote()
            await pilot.pause()
            assert isinstance(app.screen, ConfirmModal)
            app.screen.query_one("#confirm-btn", Button).press()
            await pilot.pause()
            await app.workers.wait_for_complete()
            await pilot.pause()
            await app.workers.wait_for_complete()
            await pilot.pause()
            assert ("delete", "dbx") in client.calls
            assert screen.query_one("#remote-table", RemoteTable).row_count == 1


class TestCirrusApp:
    async def test_starts_on_remotes_screen(self, config):
        client = FakeRcloneClient(remotes=REMOTES)
        app = CirrusApp(config, client)
        async with app.run_test() as pilot:
            await pilot.pause()
            assert isinstance(app.screen, RemotesScreen)

    def test_unhandled_error_goes_to_crash_handler(self, config):
        handler = MagicMock()
        app = CirrusApp(config, FakeRcloneClient(), crash_handler=handler)
        error = RuntimeError("render failed")
        with patch("textual.app.App._handle_exception") as textual_handler:
            app._handle_exception(error)
        handler.handle.assert_called_once_with(error)
        textual_handler.assert_called_once_with(error)

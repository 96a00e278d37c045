"""Tests for the shared dialogs and the sign-in wait modal."""

from textual.app import App, ComposeResult
from textual.widgets import Button, Input, Label

from cirrus.providers import Provider
from cirrus.screens.login import AuthWaitModal
from cirrus.screens.remotes import NewFolderModal
from cirrus.widgets.confirm_modal import ConfirmModal, MessageModal


class SimpleModalTestApp(App):
    """Test app that records the value a modal dismisses with."""

    def __init__(self):
        super().__init__()
        self.dismissed_value = "UNSET"

    def compose(self) -> ComposeResult:
        yield Label("host")

    async def show(self, screen) -> None:
        def on_dismiss(value) -> None:
            self.dismissed_value = value
        await self.push_screen(screen, on_dismiss)


class TestConfirmModal:
    async def test_confirm_button_dismisses_true(self):
        app = SimpleModalTestApp()
        async with app.run_test() as pilot:
            await app.show(ConfirmModal("Remove server 'work'?"))
            await pilot.click("#confirm-btn")
            assert app.dismissed_value is True

    async def test_cancel_button_dismisses_false(self):
        app = SimpleModalTestApp()
        async with app.run_test() as pilot:
            await app.show(ConfirmModal("Remove server 'work'?"))
            await pilot.click("#cancel-btn")
            assert app.dismissed_value is False
            assert len(app.screen_stack) == 1

    async def test_message_and_variant(self):
        app = SimpleModalTestApp()
        async with app.run_test() as pilot:
            await app.show(ConfirmModal("Remove server 'work'?"))
            assert app.screen.message == "Remove server 'work'?"
            assert app.screen.query_one("#confirm-btn", Button).variant == "error"


class TestMessageModal:
    async def test_ok_dismisses(self):
        app = SimpleModalTestApp()
        async with app.run_test() as pilot:
            await app.show(MessageModal("Unable to obtain token", "More below.", "access_denied"))
            assert len(app.screen_stack) == 2
            app.screen.query_one("#ok-btn", Button).press()
            await pilot.pause()
            assert app.dismissed_value is None
            assert len(app.screen_stack) == 1

    async def test_detail_block_only_when_given(self):
        app = SimpleModalTestApp()
        async with app.run_test() as pilot:
            await app.show(MessageModal("Authentication error", "Wrong password."))
            assert not app.screen.query("#message-detail")
            app.screen.query_one("#ok-btn", Button).press()
            await pilot.pause()
            await app.show(MessageModal("Authentication error", "See below.", "401"))
            assert app.screen.query("#message-detail")


class TestAuthWaitModal:
    async def test_cancel_dismisses_true(self):
        app = SimpleModalTestApp()
        async with app.run_test() as pilot:
            await app.show(AuthWaitModal(Provider.DROPBOX, "http://127.0.0.1:53682/auth?state=x"))
            app.screen.query_one("#cancel-btn", Button).press()
            await pilot.pause()
            assert app.dismissed_value is True

    async def test_cancel_button_not_clipped(self):
        app = SimpleModalTestApp()
        async with app.run_test(size=(80, 24)) as pilot:
            await app.show(AuthWaitModal(Provider.GOOGLE_DRIVE, "http://127.0.0.1:53682/auth?state=x"))
            await pilot.pause()
            cancel = app.screen.query_one("#cancel-btn", Button)
            assert cancel.region.y + cancel.region.height <= 24


class TestNewFolderModal:
    async def test_create_with_name(self):
        app = SimpleModalTestApp()
        async with app.run_test() as pilot:
            await app.show(NewFolderModal())
            app.screen.query_one("#folder-name", Input).value = "/Photos/"
            app.screen.query_one("#create-btn", Button).press()
            await pilot.pause()
            assert app.dismissed_value == "Photos"

    async def test_create_empty_does_not_dismiss(self):
        app = SimpleModalTestApp()
        async with app.run_test() as pilot:
            await app.show(NewFolderModal())
            app.screen.query_one("#create-btn", Button).press()
            await pilot.pause()
            assert len(app.screen_stack) == 2
            assert app.dismissed_value == "UNSET"

    async def test_cancel_dismisses_none(self):
        app = SimpleModalTestApp()
        async with app.run_test() as pilot:
            await app.show(NewFolderModal())
            app.screen.query_one("#cancel-btn", Button).press()
            await pilot.pause()
            assert app.dismissed_value is None

"""Add-server form: provider choice, credentials, and the sign-in flow."""

import asyncio
import logging

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, LoadingIndicator, Select, Static

from cirrus.auth import AuthSession, InvalidCredentials, LoginService, RollbackError
from cirrus.auth.validation import FieldError, validate_name, validate_totp, validate_url
from cirrus.errors import ErrorCode, LoginError, app_error, login_error_message
from cirrus.providers import CredentialInput, LoginField, Provider, fields_for
from cirrus.rclone import RcloneClient, RcloneError
from cirrus.widgets.confirm_modal import MessageModal

logger = logging.getLogger(__name__)

_INPUT_IDS = {
    LoginField.NAME: "name",
    LoginField.URL: "url",
    LoginField.USERNAME: "username",
    LoginField.PASSWORD: "password",
    LoginField.TOTP: "totp",
}
_FIELDS_BY_ID = {input_id: field for field, input_id in _INPUT_IDS.items()}


class AuthWaitModal(ModalScreen[bool]):
    """Shown while the browser sign-in is in progress. Dismisses True on cancel."""

    CSS = """
    AuthWaitModal {
        align: center middle;
    }
    #auth-box {
        width: 64;
        height: auto;
        max-height: 100%;
        border: heavy $accent;
        padding: 0 2;
        background: $surface;
    }
    #auth-box Label {
        width: 100%;
        margin: 1 0 0 0;
    }
    #auth-url {
        color: $text-muted;
    }
    .form-buttons {
        height: auto;
        margin: 1 0 0 0;
    }
    """

    def __init__(self, provider: Provider, url: str) -> None:
        super().__init__()
        self._provider = provider
        self._url = url

    def compose(self) -> ComposeResult:
        with Vertical(id="auth-box"):
            yield Static(f"Logging into {self._provider.display_name}...", markup=False)
            yield Label(
                "Follow the link that opened in your browser, "
                "and come back once you've finished."
            )
            yield Label(self._url, id="auth-url", markup=False)
            with Horizontal(classes="form-buttons"):
                yield Button("Cancel", id="cancel-btn")

    @on(Button.Pressed, "#cancel-btn")
    def cancel(self) -> None:
        self.dismiss(True)


class LoginScreen(ModalScreen[str | None]):
    """Collect credentials for a new server. Dismisses with the remote name."""

    CSS = """
    LoginScreen {
        align: center middle;
    }
    #login-box {
        width: 70;
        height: auto;
        max-height: 100%;
        border: heavy $accent;
        padding: 1 2;
        background: $surface;
    }
    #login-box Label {
        margin: 1 0 0 0;
    }
    .field-error {
        color: $error;
        height: auto;
    }
    #login-spinner {
        height: 1;
    }
    .form-buttons {
        height: auto;
        margin: 1 0 0 0;
    }
    .form-buttons Button {
        margin: 0 1;
    }
    """

    def __init__(self, service: LoginService, client: RcloneClient) -> None:
        super().__init__()
        self._service = service
        self._client = client
        self._provider = Provider.DROPBOX
        self._existing_names: list[str] = []
        self._field_errors: dict[LoginField, FieldError] = {}
        self._session: AuthSession | None = None
        self._auth_modal: AuthWaitModal | None = None
        self._closing = False

    def compose(self) -> ComposeResult:
        with VerticalScroll(id="login-box"):
            yield Static("Add Server", markup=False)
            yield Label("Server Type")
            yield Select(
                [(p.display_name, p) for p in Provider],
                value=self._provider,
                allow_blank=False,
                id="provider",
            )
            for field, input_id in _INPUT_IDS.items():
                yield Label(self._field_label(field), id=f"{input_id}-label")
                yield Input(
                    id=input_id,
                    password=field is LoginField.PASSWORD,
                    placeholder="Optional" if field is LoginField.TOTP else "",
                )
                yield Label("", id=f"{input_id}-error", classes="field-error", markup=False)
            yield LoadingIndicator(id="login-spinner")
            with Horizontal(classes="form-buttons"):
                yield Button("Log in", id="login-btn", variant="primary", disabled=True)
                yield Button("Cancel", id="cancel-btn")

    def on_mount(self) -> None:
        self.query_one("#login-spinner").display = False
        self._apply_provider()
        self._load_existing_names()

    @staticmethod
    def _field_label(field: LoginField) -> str:
        return {
            LoginField.NAME: "Name",
            LoginField.URL: "Server URL",
            LoginField.USERNAME: "Username",
            LoginField.PASSWORD: "Password",
            LoginField.TOTP: "2FA Code",
        }[field]

    @work(exclusive=True, group="existing-names")
    async def _load_existing_names(self) -> None:
        try:
            self._existing_names = await asyncio.to_thread(self._client.list_remote_names)
        except RcloneError as exc:
            app_error(self, ErrorCode.RC_LOAD, detail=exc.error)
        self._check_inputs()

    # --- Form state ---

    def _apply_provider(self) -> None:
        """Show only the fields this provider uses and clear the form."""
        visible = set(fields_for(self._provider))
        for field, input_id in _INPUT_IDS.items():
            shown = field in visible
            for widget_id in (input_id, f"{input_id}-label", f"{input_id}-error"):
                self.query_one(f"#{widget_id}").display = shown
            self.query_one(f"#{input_id}", Input).value = ""
        self._field_errors.clear()
        self._check_inputs()

    def collect_inputs(self) -> CredentialInput:
        inputs: CredentialInput = {}
        for field in fields_for(self._provider):
            value = self.query_one(f"#{_INPUT_IDS[field]}", Input).value
            # Passwords are taken verbatim.
            inputs[field] = value if field is LoginField.PASSWORD else value.strip()
        return inputs

    def _validate_field(self, field: LoginField, value: str) -> FieldError | None:
        # Empty fields only disable the button; they aren't shown as errors.
        if not value:
            return None
        if field is LoginField.NAME:
            return validate_name(value, self._existing_names)
        if field is LoginField.URL:
            return validate_url(value, self._provider)
        if field is LoginField.TOTP:
            return validate_totp(value)
        return None

    def _show_field_error(self, field: LoginField, error: FieldError | None) -> None:
        label = self.query_one(f"#{_INPUT_IDS[field]}-error", Label)
        if error is None:
            self._field_errors.pop(field, None)
            label.update("")
        else:
            self._field_errors[field] = error
            label.update(f"{error.title}\n{error.detail}" if error.detail else error.title)

    def _check_inputs(self) -> None:
        inputs = self.collect_inputs()
        ready = not self._field_errors and all(
            inputs.get(field)
            for field in fields_for(self._provider)
            if field is not LoginField.TOTP
        )
        self.query_one("#login-btn", Button).disabled = not ready

    def _set_busy(self, busy: bool) -> None:
        self.query_one("#login-spinner").display = busy
        self.query_one("#login-btn", Button).disabled = busy
        for input_id in _INPUT_IDS.values():
            self.query_one(f"#{input_id}", Input).disabled = busy
        self.query_one("#provider", Select).disabled = busy
        if not busy:
            self._check_inputs()

    @on(Select.Changed, "#provider")
    def provider_changed(self, event: Select.Changed) -> None:
        if isinstance(event.value, Provider) and event.value is not self._provider:
            self._provider = event.value
            self._apply_provider()

    @on(Input.Changed)
    def input_changed(self, event: Input.Changed) -> None:
        field = _FIELDS_BY_ID.get(event.input.id or "")
        if field is None:
            return
        self._show_field_error(field, self._validate_field(field, event.value.strip()))
        self._check_inputs()

    # --- Sign-in ---

    @on(Button.Pressed, "#login-btn")
    def log_in(self) -> None:
        self._session = self._service.start(
            self._provider, self.collect_inputs(), on_url=self._url_ready
        )
        self._set_busy(True)
        self._run_login(self._session)

    def _url_ready(self, url: str) -> None:
        # Called from the login worker thread.
        session = self._session
        self.app.call_from_thread(self._show_auth_modal, session, url)

    def _show_auth_modal(self, session: AuthSession, url: str) -> None:
        def on_close(cancelled: bool | None) -> None:
            self._auth_modal = None
            if cancelled:
                self._service.cancel(session)

        if session is not self._session or session.cancel_requested:
            return
        self._auth_modal = AuthWaitModal(session.provider, url)
        self.app.push_screen(self._auth_modal, on_close)

    def _close_auth_modal(self) -> None:
        modal, self._auth_modal = self._auth_modal, None
        if modal is not None and modal.is_current:
            modal.dismiss(False)

    @work(exclusive=True, group="login")
    async def _run_login(self, session: AuthSession) -> None:
        try:
            name = await self._service.alogin(session)
        except (InvalidCredentials, LoginError, RollbackError, RcloneError) as exc:
            self._session = None
            self._close_auth_modal()
            if self._closing:
                self.dismiss(None)
                # Field errors have nowhere to go once the form is closed.
                if not isinstance(exc, InvalidCredentials):
                    self._report_failure(session, exc)
                return
            self._report_failure(session, exc)
            self._set_busy(False)
            return
        self._session = None
        self._close_auth_modal()
        # Even if Cancel was pressed, the remote now exists.
        self.dismiss(name)

    def _report_failure(self, session: AuthSession, exc: Exception) -> None:
        logger.info("Login to %s failed: %s", session.provider.display_name, exc)
        if isinstance(exc, InvalidCredentials):
            for field, error in exc.errors.items():
                self._show_field_error(field, error)
        elif isinstance(exc, LoginError):
            server_name = "the server" if session.provider.is_webdav else session.provider.display_name
            message = login_error_message(exc, server_name)
            if message is not None:
                title, body, detail = message
                self.app.push_screen(MessageModal(title, body, detail))
        elif isinstance(exc, RollbackError):
            app_error(self, ErrorCode.AUTH_ROLLBACK, detail=str(exc))
        else:
            app_error(self, ErrorCode.RC_SAVE, detail=exc.error)

    @on(Button.Pressed, "#cancel-btn")
    def cancel(self) -> None:
        if self._session is None:
            self.dismiss(None)
            return
        # The login worker dismisses once the attempt has wound down.
        self._closing = True
        self.query_one("#cancel-btn", Button).disabled = True
        self._service.cancel(self._session)

"""Centralised error codes, login failure taxonomy and user-facing messages."""
from enum import Enum

ERROR_TITLE = "Something went sideways"


class ErrorCode(str, Enum):
    RC_CONNECT     = "CI-RC01"
    RC_LOAD        = "CI-RC02"
    RC_SAVE        = "CI-RC03"
    RC_DELETE      = "CI-RC04"
    AUTH_ROLLBACK  = "CI-AUTH01"
    CRASH_UPLOAD   = "CI-CR01"


_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.RC_CONNECT:     "Could not reach the rclone daemon. Restart the app and try again.",
    ErrorCode.RC_LOAD:        "Your servers could not be loaded. The list may appear empty.",
    ErrorCode.RC_SAVE:        "The server could not be saved. Please try again.",
    ErrorCode.RC_DELETE:      "This item could not be deleted. Please try again.",
    ErrorCode.AUTH_ROLLBACK:  "A failed login could not be cleaned up. Check your server list.",
    ErrorCode.CRASH_UPLOAD:   "The crash logs could not be uploaded.",
}


def app_error(widget, code: ErrorCode, *, detail: str = "") -> None:
    """Show a user-friendly error Toast without crashing the application."""
    base = _MESSAGES.get(code, "An unexpected error occurred.")
    message = f"{base}{' ' + detail if detail else ''}\n\nReference: {code.value}"
    widget.notify(message, title=ERROR_TITLE, severity="error", timeout=12)


class LoginErrorKind(Enum):
    # The user backed out; not shown.
    CANCELLED = "cancelled"
    # ``rclone authorize`` died before printing an auth URL.
    AUTH_SERVER = "auth_server"
    # ``rclone authorize`` failed after the URL was shown.
    TOKEN = "token"
    NAME_RESOLUTION = "name_resolution"
    INVALID_PASSWORD = "invalid_password"
    MISSING_TOTP = "missing_totp"
    VALIDITY_UNKNOWN = "validity_unknown"


class LoginError(Exception):
    """A login attempt ended without a new remote.

    ``detail`` carries raw diagnostic text (helper stderr or the engine's
    error string) for the kinds that show it.
    """

    def __init__(self, kind: LoginErrorKind, detail: str = "") -> None:
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)
        self.kind = kind
        self.detail = detail

    @property
    def is_cancelled(self) -> bool:
        return self.kind is LoginErrorKind.CANCELLED


def login_error_message(error: LoginError, server_name: str) -> tuple[str, str, str] | None:
    """Return ``(title, body, detail)`` for a login failure, or ``None`` when nothing is shown.

    ``detail`` is the raw diagnostic text for kinds that carry it, meant to
    be rendered as a code block; it is empty for the classified kinds.
    """
    kind = error.kind
    if kind is LoginErrorKind.CANCELLED:
        return None
    if kind is LoginErrorKind.AUTH_SERVER:
        return ("Unable to start authentication server",
                "More information about the error is included below.", error.detail)
    if kind is LoginErrorKind.TOKEN:
        return ("Unable to obtain token",
                "More information about the error is included below.", error.detail)
    if kind is LoginErrorKind.NAME_RESOLUTION:
        return ("Authentication error",
                f"Cirrus was unable to connect to {server_name}. "
                "Check your internet connection and try again.", "")
    if kind is LoginErrorKind.INVALID_PASSWORD:
        return ("Authentication error",
                "An invalid password was entered for the given username. "
                "Check your login credentials and try again.", "")
    if kind is LoginErrorKind.MISSING_TOTP:
        return ("Authentication error",
                "A 2FA code is required to log in to this account. Provide one and try again.", "")
    return ("Authentication error",
            f"Cirrus was unable to authenticate to {server_name}. "
            "The information below may help with finding out why.", error.detail)

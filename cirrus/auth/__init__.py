"""Adding remotes: input checks, browser sign-in and commit with rollback."""

from .commit import DEFAULT_RULES, RollbackError, build_config_item, classify_probe_error, commit
from .service import LoginService
from .session import AuthSession, AuthState, extract_token, find_auth_url
from .validation import FieldError, InvalidCredentials, validate_inputs

__all__ = [
    "DEFAULT_RULES",
    "AuthSession",
    "AuthState",
    "FieldError",
    "InvalidCredentials",
    "LoginService",
    "RollbackError",
    "build_config_item",
    "classify_probe_error",
    "commit",
    "extract_token",
    "find_auth_url",
    "validate_inputs",
]

"""Pre-flight checks on login form input.

These run before anything is sent to rclone, so a rejected form never
creates (or has to roll back) a remote.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import urlsplit

from cirrus.providers import CredentialInput, LoginField, Provider, fields_for

NAME_RE = re.compile(r"^[0-9a-zA-Z_.][0-9a-zA-Z_. -]*[0-9a-zA-Z_.-]$")
REMOTE_PHP_RE = re.compile(r"/remote\.php/.*")

TOTP_LENGTH = 6


@dataclass(frozen=True)
class FieldError:
    title: str
    detail: str = ""


class InvalidCredentials(Exception):
    """One or more login fields failed validation."""

    def __init__(self, errors: dict[LoginField, FieldError]) -> None:
        fields = ", ".join(field.value for field in errors)
        super().__init__(f"Invalid login fields: {fields}")
        self.errors = errors


def validate_name(name: str, existing_names: Iterable[str]) -> FieldError | None:
    if not name:
        return FieldError("A server name is required")
    if name in set(existing_names):
        return FieldError("Name already exists")
    if not NAME_RE.match(name):
        return FieldError(
            "Invalid server name",
            "Server names must:\n"
            "- Only contain numbers, letters, underscores, hyphens, periods, and spaces\n"
            "- Not start with a hyphen/space\n"
            "- Not end with a space",
        )
    return None


def validate_url(url: str, provider: Provider) -> FieldError | None:
    if not url:
        return FieldError("A server URL is required")
    try:
        parts = urlsplit(url)
    except ValueError as exc:
        return FieldError("Invalid server URL", f"Error: {exc}.")
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return FieldError("Invalid server URL", "Error: expected an http:// or https:// URL.")
    if provider.is_webdav:
        match = REMOTE_PHP_RE.search(parts.path)
        if match:
            return FieldError(
                "Invalid server URL",
                f"Don't specify '{match.group(0)}' as part of the URL",
            )
    return None


def validate_totp(totp: str) -> FieldError | None:
    if not totp:
        return None
    if not (totp.isascii() and totp.isdigit()):
        return FieldError("Invalid 2FA code", "The 2FA code should only contain digits")
    if len(totp) != TOTP_LENGTH:
        return FieldError("Invalid 2FA code", f"The 2FA code should be {TOTP_LENGTH} digits long")
    return None


def validate_inputs(
    provider: Provider,
    inputs: CredentialInput,
    existing_names: Iterable[str],
) -> dict[LoginField, FieldError]:
    """Check every field *provider* uses; return the failing ones."""
    errors: dict[LoginField, FieldError] = {}
    for field in fields_for(provider):
        value = inputs.get(field, "")
        if field is LoginField.NAME:
            error = validate_name(value, existing_names)
        elif field is LoginField.URL:
            error = validate_url(value, provider)
        elif field is LoginField.TOTP:
            error = validate_totp(value)
        elif not value:
            error = FieldError(f"A {field.value} is required")
        else:
            error = None
        if error is not None:
            errors[field] = error
    return errors

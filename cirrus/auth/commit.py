"""Create a remote, prove it works, and remove it again if it doesn't.

From the caller's point of view :func:`commit` either leaves a working
remote behind or leaves nothing behind.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from cirrus.config import AppConfig
from cirrus.errors import LoginError, LoginErrorKind
from cirrus.providers import CredentialInput, LoginField, Provider
from cirrus.rclone import (
    OAuthConfigItem,
    ProtonDriveConfigItem,
    RcloneClient,
    RcloneError,
    RemoteConfigItem,
    WebDavConfigItem,
)

logger = logging.getLogger(__name__)

# Ordered (substring, kind) pairs, matched case-insensitively against the
# probe's error text. First match wins; no match means VALIDITY_UNKNOWN.
# The phrases track rclone's current wording and may need updating.
DEFAULT_RULES: tuple[tuple[str, LoginErrorKind], ...] = (
    ("name resolution", LoginErrorKind.NAME_RESOLUTION),
    ("no such host", LoginErrorKind.NAME_RESOLUTION),
    ("password is not correct", LoginErrorKind.INVALID_PASSWORD),
    ("incorrect login credentials", LoginErrorKind.INVALID_PASSWORD),
    ("password was incorrect", LoginErrorKind.INVALID_PASSWORD),
    ("requires a 2fa code", LoginErrorKind.MISSING_TOTP),
)

ClassificationRules = Sequence[tuple[str, LoginErrorKind]]


class RollbackError(RuntimeError):
    """A remote that failed its probe could not be deleted."""

    def __init__(self, name: str, probe_error: str, delete_error: RcloneError) -> None:
        super().__init__(
            f"Remote '{name}' failed validation ({probe_error}) "
            f"and could not be removed: {delete_error.error}"
        )
        self.name = name
        self.probe_error = probe_error


def classify_probe_error(error: str, rules: ClassificationRules = DEFAULT_RULES) -> LoginError:
    lowered = error.lower()
    for needle, kind in rules:
        if needle.lower() in lowered:
            return LoginError(kind, error)
    return LoginError(LoginErrorKind.VALIDITY_UNKNOWN, error)


def dav_url(url: str, username: str) -> str:
    """Nextcloud/Owncloud WebDAV endpoint for *username* under a server root."""
    return f"{url.rstrip('/')}/remote.php/dav/files/{username}"


def build_config_item(
    provider: Provider,
    credentials: str | CredentialInput,
    config: AppConfig,
) -> RemoteConfigItem:
    """Parameters for ``config/create``.

    *credentials* is the OAuth token for browser providers and the form
    input for everything else.
    """
    if provider.needs_browser_auth:
        if not isinstance(credentials, str):
            raise TypeError(f"{provider.display_name} needs a token, not form input")
        client = config.oauth_client(provider.backend_type)
        return OAuthConfigItem(
            backend=provider.backend_type,
            client_id=client.client_id,
            client_secret=client.client_secret,
            token=credentials,
        )

    if isinstance(credentials, str):
        raise TypeError(f"{provider.display_name} needs form input, not a token")
    username = credentials.get(LoginField.USERNAME, "")
    password = credentials.get(LoginField.PASSWORD, "")

    if provider is Provider.PROTON_DRIVE:
        return ProtonDriveConfigItem(
            username=username,
            password=password,
            totp=credentials.get(LoginField.TOTP, ""),
        )

    url = credentials.get(LoginField.URL, "")
    if provider.appends_dav_path:
        url = dav_url(url, username)
    return WebDavConfigItem(url=url, vendor=provider.vendor, user=username, pass_=password)


def commit(
    client: RcloneClient,
    name: str,
    provider: Provider,
    credentials: str | CredentialInput,
    config: AppConfig,
    rules: ClassificationRules = DEFAULT_RULES,
) -> str:
    """Create remote *name*, probe it, and return *name* if it works.

    Raises :class:`RcloneError` if creation fails, :class:`LoginError` if
    the probe fails (after the remote is deleted again), and
    :class:`RollbackError` if that delete fails.
    """
    item = build_config_item(provider, credentials, config)
    logger.info("Creating %s remote '%s'", provider.display_name, name)
    client.create_config(name, item)

    try:
        client.stat(name, "/")
    except RcloneError as exc:
        probe_error = exc.error
        logger.info("Remote '%s' failed validation: %s", name, probe_error)
        try:
            client.delete_config(name)
        except RcloneError as delete_exc:
            logger.error("Could not roll back remote '%s': %s", name, delete_exc.error)
            raise RollbackError(name, probe_error, delete_exc) from delete_exc
        raise classify_probe_error(probe_error, rules) from exc

    logger.info("Remote '%s' validated", name)
    return name

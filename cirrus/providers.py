"""Supported storage providers and the login fields they use."""

from enum import Enum


class LoginField(str, Enum):
    NAME = "name"
    URL = "url"
    USERNAME = "username"
    PASSWORD = "password"
    TOTP = "totp"


# (display name, rclone backend type, WebDAV vendor or None, needs browser auth)
_PROVIDER_INFO: dict[str, tuple[str, str, str | None, bool]] = {
    "dropbox":     ("Dropbox",      "dropbox",     None,        True),
    "googledrive": ("Google Drive", "drive",       None,        True),
    "nextcloud":   ("Nextcloud",    "webdav",      "nextcloud", False),
    "owncloud":    ("Owncloud",     "webdav",      "owncloud",  False),
    "pcloud":      ("pCloud",       "pcloud",      None,        True),
    "protondrive": ("Proton Drive", "protondrive", None,        False),
    "webdav":      ("WebDav",       "webdav",      "webdav",    False),
}


class Provider(str, Enum):
    DROPBOX = "dropbox"
    GOOGLE_DRIVE = "googledrive"
    NEXTCLOUD = "nextcloud"
    OWNCLOUD = "owncloud"
    PCLOUD = "pcloud"
    PROTON_DRIVE = "protondrive"
    WEBDAV = "webdav"

    @property
    def display_name(self) -> str:
        return _PROVIDER_INFO[self.value][0]

    @property
    def backend_type(self) -> str:
        """The name rclone uses for this provider's backend."""
        return _PROVIDER_INFO[self.value][1]

    @property
    def vendor(self) -> str | None:
        return _PROVIDER_INFO[self.value][2]

    @property
    def is_webdav(self) -> bool:
        return self.vendor is not None

    @property
    def needs_browser_auth(self) -> bool:
        return _PROVIDER_INFO[self.value][3]

    @property
    def appends_dav_path(self) -> bool:
        """Nextcloud/Owncloud take the server root; the DAV path is added for them."""
        return self in (Provider.NEXTCLOUD, Provider.OWNCLOUD)

    @classmethod
    def from_display_name(cls, name: str) -> "Provider":
        for provider in cls:
            if provider.display_name == name:
                return provider
        raise ValueError(f"Unknown provider: {name!r}")


def fields_for(provider: Provider) -> tuple[LoginField, ...]:
    """The login fields a provider reads, in form order."""
    if provider.is_webdav:
        return (LoginField.NAME, LoginField.URL, LoginField.USERNAME, LoginField.PASSWORD)
    if provider is Provider.PROTON_DRIVE:
        return (LoginField.NAME, LoginField.USERNAME, LoginField.PASSWORD, LoginField.TOTP)
    return (LoginField.NAME,)


# Raw values typed by the user, keyed by field.
CredentialInput = dict[LoginField, str]

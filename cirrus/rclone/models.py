"""Dataclasses for rclone RC requests and responses."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

_FRACTION_RE = re.compile(r"\.\d+")


def parse_rfc3339(value: str) -> datetime:
    """Parse rclone's RFC 3339 timestamps (nanosecond precision, ``Z`` suffix)."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat wants exactly six fractional digits on older Pythons.
    text = _FRACTION_RE.sub(lambda m: m.group(0)[:7].ljust(7, "0"), text, count=1)
    return datetime.fromisoformat(text)


@dataclass
class RemoteItem:
    path: str = ""
    name: str = ""
    is_dir: bool = False
    mod_time: datetime | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "RemoteItem":
        mod_time = data.get("ModTime")
        return cls(
            path=data.get("Path", ""),
            name=data.get("Name", ""),
            is_dir=bool(data.get("IsDir", False)),
            mod_time=parse_rfc3339(mod_time) if mod_time else None,
        )


class ListFilter(Enum):
    ALL = "all"
    DIRS = "dirs"
    FILES = "files"

    def options(self, recursive: bool) -> dict[str, bool]:
        if self is ListFilter.DIRS:
            return {"dirsOnly": True, "recurse": recursive}
        if self is ListFilter.FILES:
            return {"filesOnly": True, "recurse": recursive}
        return {"recurse": recursive}


@dataclass
class Remote:
    """A remote as stored in rclone's config (``config/get``)."""
    name: str = ""
    backend: str = ""
    client_id: str = ""
    username: str = ""
    url: str = ""
    user: str = ""
    vendor: str = ""
    parameters: dict[str, str] = field(default_factory=dict, repr=False)

    @classmethod
    def from_config(cls, name: str, config: dict[str, Any]) -> "Remote":
        return cls(
            name=name,
            backend=config.get("type", ""),
            client_id=config.get("client_id", ""),
            username=config.get("username", ""),
            url=config.get("url", ""),
            user=config.get("user", ""),
            vendor=config.get("vendor", ""),
            parameters={k: str(v) for k, v in config.items()},
        )


# --- config/create payloads ---

@dataclass
class RemoteConfigItem:
    backend: str = ""

    def parameters(self) -> dict[str, Any]:
        raise NotImplementedError

    def config_json(self, name: str) -> dict[str, Any]:
        """Build the ``config/create`` request for a remote called *name*."""
        return {
            "name": name,
            "type": self.backend,
            "parameters": self.parameters(),
            "opt": {"obscure": True},
        }


@dataclass
class OAuthConfigItem(RemoteConfigItem):
    client_id: str = ""
    client_secret: str = ""
    token: str = ""

    def parameters(self) -> dict[str, Any]:
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "token": self.token,
            "config_refresh_token": True,
        }


@dataclass
class ProtonDriveConfigItem(RemoteConfigItem):
    backend: str = "protondrive"
    username: str = ""
    password: str = ""
    totp: str = ""

    def parameters(self) -> dict[str, Any]:
        return {"username": self.username, "password": self.password, "2fa": self.totp}


@dataclass
class WebDavConfigItem(RemoteConfigItem):
    backend: str = "webdav"
    url: str = ""
    vendor: str = "webdav"
    user: str = ""
    pass_: str = ""

    def parameters(self) -> dict[str, Any]:
        return {"url": self.url, "vendor": self.vendor, "user": self.user, "pass": self.pass_}

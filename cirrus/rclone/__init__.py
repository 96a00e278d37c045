"""Talking to the rclone sync engine over its remote-control API."""

from .client import RcloneClient, RcloneError, remote_fs, strip_slashes
from .daemon import RcloneDaemon, RcloneDaemonError
from .models import (
    ListFilter,
    OAuthConfigItem,
    ProtonDriveConfigItem,
    Remote,
    RemoteConfigItem,
    RemoteItem,
    WebDavConfigItem,
)

__all__ = [
    "ListFilter",
    "OAuthConfigItem",
    "ProtonDriveConfigItem",
    "RcloneClient",
    "RcloneDaemon",
    "RcloneDaemonError",
    "RcloneError",
    "Remote",
    "RemoteConfigItem",
    "RemoteItem",
    "WebDavConfigItem",
    "remote_fs",
    "strip_slashes",
]

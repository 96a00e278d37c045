"""HTTP client for rclone's remote-control (RC) API.

Every RC method is a ``POST /<method>`` with a JSON object body. On
success rclone answers with a JSON object (possibly empty); on failure
it answers with a non-2xx status and ``{"error": "..."}``. This client
never retries and never interprets error text: it raises
:class:`RcloneError` carrying the engine's message verbatim.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from cirrus.config import AppConfig

from .models import ListFilter, Remote, RemoteConfigItem, RemoteItem

logger = logging.getLogger(__name__)

DEFAULT_RC_URL = "http://127.0.0.1:5572"

# Local side of ``operations/copyfile``.
LOCAL_FS = "/"


class RcloneError(Exception):
    """A failed RC call. ``error`` is rclone's message, unmodified."""

    def __init__(self, error: str, *, method: str = "", status: int | None = None) -> None:
        super().__init__(error)
        self.error = error
        self.method = method
        self.status = status


def strip_slashes(path: str) -> str:
    """Strip one leading and one trailing slash."""
    if path.startswith("/"):
        path = path[1:]
    if path.endswith("/"):
        path = path[:-1]
    return path


def remote_fs(remote: str) -> str:
    """Turn a remote name into the ``fs`` string rclone expects."""
    if remote.endswith(":"):
        raise ValueError(f"Remote '{remote}' is not allowed to end with a ':'. Please omit it.")
    return f"{remote}:"


class RcloneClient:
    def __init__(
        self,
        base_url: str = DEFAULT_RC_URL,
        *,
        user: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = base_url.rstrip("/")
        auth = httpx.BasicAuth(user, password or "") if user else None
        self._client = httpx.Client(
            base_url=self._url, auth=auth, timeout=timeout, transport=transport
        )

    @classmethod
    def from_config(cls, config: AppConfig, base_url: str | None = None, **kwargs) -> RcloneClient:
        return cls(
            base_url or config.rc_url or DEFAULT_RC_URL,
            user=config.rc_user,
            password=config.rc_pass,
            timeout=config.rc_timeout,
            **kwargs,
        )

    @property
    def base_url(self) -> str:
        return self._url

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> RcloneClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # --- Transport ---

    def call(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run one RC method and return its decoded JSON result.

        Blocks for as long as rclone takes; UI code should use :meth:`acall`.
        """
        logger.debug("rc call %s", method)
        try:
            r = self._client.post(f"/{method}", json=params or {})
        except httpx.HTTPError as exc:
            raise RcloneError(f"Failed to reach rclone: {exc}", method=method) from exc

        if r.is_success:
            if not r.content.strip():
                return {}
            try:
                data = r.json()
            except ValueError as exc:
                raise RcloneError(f"Invalid response from rclone: {exc}", method=method) from exc
            return data if isinstance(data, dict) else {"result": data}

        try:
            error = r.json()["error"]
        except (ValueError, KeyError, TypeError):
            error = r.text or f"HTTP {r.status_code}"
        logger.debug("rc call %s failed (%s): %s", method, r.status_code, error)
        raise RcloneError(str(error), method=method, status=r.status_code)

    async def acall(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return await asyncio.to_thread(self.call, method, params)

    # --- Config ---

    def noop(self) -> dict[str, Any]:
        return self.call("rc/noop")

    def get_remote(self, name: str) -> Remote | None:
        config = self.call("config/get", {"name": name})
        if not config:
            return None
        return Remote.from_config(name, config)

    def list_remote_names(self) -> list[str]:
        return list(self.call("config/listremotes").get("remotes") or [])

    def list_remotes(self) -> list[Remote]:
        remotes = []
        for name in self.list_remote_names():
            remote = self.get_remote(name)
            if remote is not None:
                remotes.append(remote)
        return remotes

    def create_config(self, name: str, item: RemoteConfigItem) -> None:
        self.call("config/create", item.config_json(name))

    def delete_config(self, name: str) -> None:
        self.call("config/delete", {"name": name})

    # --- Operations ---

    def stat(self, remote: str, path: str) -> RemoteItem | None:
        result = self.call(
            "operations/stat", {"fs": remote_fs(remote), "remote": strip_slashes(path)}
        )
        item = result.get("item")
        return RemoteItem.from_json(item) if item else None

    def list_items(
        self,
        remote: str,
        path: str,
        recursive: bool = False,
        filter: ListFilter = ListFilter.ALL,
    ) -> list[RemoteItem]:
        result = self.call(
            "operations/list",
            {
                "fs": remote_fs(remote),
                "remote": strip_slashes(path),
                "opt": filter.options(recursive),
            },
        )
        return [RemoteItem.from_json(entry) for entry in result.get("list") or []]

    def mkdir(self, remote: str, path: str) -> None:
        self._path_op("operations/mkdir", remote, path)

    def delete(self, remote: str, path: str) -> None:
        self._path_op("operations/delete", remote, path)

    def purge(self, remote: str, path: str) -> None:
        """Remove a directory and everything in it."""
        self._path_op("operations/purge", remote, path)

    def copy_to_remote(self, local_file: str, remote: str, remote_destination: str) -> None:
        self._copy(LOCAL_FS, local_file, remote_fs(remote), remote_destination)

    def copy_to_local(self, local_destination: str, remote: str, remote_file: str) -> None:
        self._copy(remote_fs(remote), remote_file, LOCAL_FS, local_destination)

    # --- Internal ---

    def _path_op(self, method: str, remote: str, path: str) -> None:
        self.call(method, {"fs": remote_fs(remote), "remote": strip_slashes(path)})

    def _copy(self, src_fs: str, src_remote: str, dst_fs: str, dst_remote: str) -> None:
        self.call(
            "operations/copyfile",
            {
                "srcFs": src_fs,
                "srcRemote": strip_slashes(src_remote),
                "dstFs": dst_fs,
                "dstRemote": strip_slashes(dst_remote),
            },
        )

"""Start and stop a private ``rclone rcd`` for the app."""

from __future__ import annotations

import logging
import secrets
import socket
import subprocess
import time

from cirrus.config import AppConfig
from cirrus.streams import StreamCapture
from cirrus.util import Backoff

from .client import RcloneClient, RcloneError

logger = logging.getLogger(__name__)

RC_HOST = "127.0.0.1"


class RcloneDaemonError(Exception):
    """The RC daemon could not be started."""


def _free_port(host: str = RC_HOST) -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


class RcloneDaemon:
    """Owns the ``rclone rcd`` process and the client connected to it.

    With ``config.rc_url`` set, nothing is spawned and the client attaches
    to the existing daemon.
    """

    def __init__(self, config: AppConfig, popen=subprocess.Popen) -> None:
        self._config = config
        self._popen = popen
        self._process: subprocess.Popen | None = None
        self._capture: StreamCapture | None = None
        self.client: RcloneClient | None = None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def command(self, port: int, user: str, password: str) -> list[str]:
        return [
            self._config.rclone_binary,
            "rcd",
            "--rc-addr", f"{RC_HOST}:{port}",
            "--rc-user", user,
            "--rc-pass", password,
            "--config", str(self._config.rclone_config_path),
        ]

    def start(self) -> RcloneClient:
        if self.client is not None:
            return self.client

        if self._config.rc_url:
            logger.info("Attaching to rclone RC at %s", self._config.rc_url)
            self.client = RcloneClient.from_config(self._config)
            return self.client

        self._config.config_dir.mkdir(parents=True, exist_ok=True)
        port = _free_port()
        user = self._config.rc_user or "cirrus"
        password = self._config.rc_pass or secrets.token_urlsafe(24)
        try:
            self._process = self._popen(
                self.command(port, user, password),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
            )
        except OSError as exc:
            raise RcloneDaemonError(
                f"Could not run '{self._config.rclone_binary}': {exc}"
            ) from exc
        self._capture = StreamCapture(self._process)

        client = RcloneClient(
            f"http://{RC_HOST}:{port}",
            user=user,
            password=password,
            timeout=self._config.rc_timeout,
        )
        try:
            self._wait_ready(client)
        except RcloneDaemonError:
            client.close()
            self.stop()
            raise
        logger.info("rclone rcd ready on port %d (pid %d)", port, self._process.pid)
        self.client = client
        return client

    def _wait_ready(self, client: RcloneClient) -> None:
        deadline = time.monotonic() + self._config.daemon_start_timeout
        backoff = Backoff(initial=0.05, maximum=0.5)
        last_error = ""
        while True:
            if self._process.poll() is not None:
                self._capture.join(timeout=1)
                raise RcloneDaemonError(
                    f"rclone rcd exited with status {self._process.returncode}:\n"
                    f"{self._capture.stderr.text()}"
                )
            try:
                client.noop()
                return
            except RcloneError as exc:
                last_error = exc.error
            if time.monotonic() >= deadline:
                raise RcloneDaemonError(f"rclone rcd did not become ready: {last_error}")
            backoff.wait()

    def stop(self, timeout: float = 5.0) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None
        process, self._process = self._process, None
        if process is None or process.poll() is not None:
            return
        logger.info("Stopping rclone rcd (pid %d)", process.pid)
        process.terminate()
        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("rclone rcd did not stop in %.1fs; killing it", timeout)
            process.kill()
            process.wait()

    def __enter__(self) -> RcloneClient:
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()

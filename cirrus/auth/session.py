"""Browser-based OAuth through ``rclone authorize``.

One :class:`AuthSession` drives one helper process through::

    IDLE -> LAUNCHING -> AWAITING_URL -> AWAITING_TOKEN -> SUCCEEDED
                                                        -> CANCELLED
                                                        -> FAILED

The helper prints a local callback URL, we open it in the user's
browser, and once the user approves the helper prints the token and
exits. A cancel is observed while waiting for the URL or the token, and
always wins over a helper that exits at the same moment.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import tempfile
import threading
import webbrowser
from collections.abc import Callable
from enum import Enum
from importlib import resources
from pathlib import Path

from cirrus.config import AppConfig
from cirrus.errors import LoginError, LoginErrorKind
from cirrus.providers import CredentialInput, Provider
from cirrus.streams import StreamCapture
from cirrus.util import Backoff

logger = logging.getLogger(__name__)

CALLBACK_MARKER = "http://127.0.0.1:53682/auth"
TEMPLATE_RESOURCE = "auth-template.html"

READER_JOIN_TIMEOUT = 2.0
TERMINATE_GRACE = 5.0


class AuthState(Enum):
    IDLE = "idle"
    LAUNCHING = "launching"
    AWAITING_URL = "awaiting_url"
    AWAITING_TOKEN = "awaiting_token"
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def resolved(self) -> bool:
        return self in (AuthState.SUCCEEDED, AuthState.CANCELLED, AuthState.FAILED)


def find_auth_url(output: str) -> str | None:
    """Return the last word of the first line mentioning the callback URL."""
    for line in output.splitlines():
        if CALLBACK_MARKER in line:
            return line.split()[-1]
    return None


def extract_token(stdout: str) -> str:
    """The helper prints the token, then a trailing blank line, then exits."""
    lines = stdout.splitlines()
    if len(lines) < 2:
        raise ValueError("rclone authorize exited without printing a token")
    return lines[-2]


def authorize_command(
    config: AppConfig, provider: Provider, template_path: Path
) -> list[str]:
    client = config.oauth_client(provider.backend_type)
    return [
        config.rclone_binary,
        "authorize",
        provider.backend_type,
        client.client_id,
        client.client_secret,
        "--auth-no-open-browser",
        "--template",
        str(template_path),
    ]


def _graceful_stop(process: subprocess.Popen) -> None:
    """Ask the helper to stop, then make sure it has been reaped."""
    if process.poll() is None:
        if os.name == "posix":
            process.send_signal(signal.SIGINT)
        else:
            process.terminate()
        try:
            process.wait(timeout=TERMINATE_GRACE)
        except subprocess.TimeoutExpired:
            logger.warning("rclone authorize ignored the stop request; killing it")
            process.kill()
            process.wait()


class AuthSession:
    """State of one login attempt.

    ``obtain_token`` blocks and must run off the UI thread; ``cancel`` may
    be called from any thread, once.
    """

    def __init__(
        self,
        provider: Provider,
        inputs: CredentialInput,
        config: AppConfig,
        *,
        opener: Callable[[str], object] = webbrowser.open,
        on_url: Callable[[str], None] | None = None,
        popen=subprocess.Popen,
    ) -> None:
        self.provider = provider
        self.inputs = dict(inputs)
        self.auth_url: str | None = None
        self._config = config
        self._opener = opener
        self._on_url = on_url
        self._popen = popen
        self._cancel = threading.Event()
        self._state = AuthState.IDLE
        self._state_lock = threading.Lock()
        self._process: subprocess.Popen | None = None
        self._capture: StreamCapture | None = None

    @property
    def state(self) -> AuthState:
        with self._state_lock:
            return self._state

    def resolve(self, state: AuthState) -> None:
        self._set_state(state)

    def _set_state(self, state: AuthState) -> None:
        with self._state_lock:
            logger.debug("auth session %s: %s -> %s", self.provider.value, self._state.value, state.value)
            self._state = state

    @property
    def stdout(self) -> str:
        return self._capture.stdout.text() if self._capture else ""

    @property
    def stderr(self) -> str:
        return self._capture.stderr.text() if self._capture else ""

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.is_set()

    # --- State machine ---

    def obtain_token(self) -> str:
        if not self.provider.needs_browser_auth:
            raise ValueError(f"{self.provider.display_name} does not use browser sign-in")

        self._set_state(AuthState.LAUNCHING)
        template = self._write_template()
        try:
            self._launch(template)
            url = self._await_url()
            self._present(url)
            token = self._await_token()
        except LoginError as exc:
            self._set_state(AuthState.CANCELLED if exc.is_cancelled else AuthState.FAILED)
            raise
        finally:
            template.unlink(missing_ok=True)
        self._set_state(AuthState.SUCCEEDED)
        return token

    def _write_template(self) -> Path:
        content = resources.files("cirrus.auth").joinpath(TEMPLATE_RESOURCE).read_text(encoding="utf-8")
        with tempfile.NamedTemporaryFile(
            "w", prefix="cirrus-auth-", suffix=".html", delete=False, encoding="utf-8"
        ) as f:
            f.write(content)
        return Path(f.name)

    def _launch(self, template: Path) -> None:
        command = authorize_command(self._config, self.provider, template)
        logger.info("Starting rclone authorize for %s", self.provider.display_name)
        try:
            self._process = self._popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise LoginError(LoginErrorKind.AUTH_SERVER, str(exc)) from exc
        self._capture = StreamCapture(self._process)
        self._set_state(AuthState.AWAITING_URL)

    def _stop_cancelled(self) -> None:
        logger.info("Login to %s cancelled", self.provider.display_name)
        _graceful_stop(self._process)
        self._capture.join(READER_JOIN_TIMEOUT)
        raise LoginError(LoginErrorKind.CANCELLED)

    def _await_url(self) -> str:
        backoff = Backoff(sleep=self._cancel.wait)
        while True:
            if self._cancel.is_set():
                self._stop_cancelled()
            url = find_auth_url(self._capture.combined())
            if url:
                return url
            if self._process.poll() is not None:
                self._capture.join(READER_JOIN_TIMEOUT)
                url = find_auth_url(self._capture.combined())
                if url:
                    return url
                logger.warning(
                    "rclone authorize exited (%s) before printing an auth URL",
                    self._process.returncode,
                )
                raise LoginError(LoginErrorKind.AUTH_SERVER, self._capture.stderr.text())
            backoff.wait()

    def _present(self, url: str) -> None:
        self.auth_url = url
        self._set_state(AuthState.AWAITING_TOKEN)
        logger.info("Opening auth URL for %s", self.provider.display_name)
        if not self._opener(url):
            logger.warning("No browser could be opened for %s", url)
        if self._on_url is not None:
            self._on_url(url)

    def _await_token(self) -> str:
        # Waiting on the cancel event doubles as the poll delay, so a cancel
        # wakes the loop straight away.
        backoff = Backoff(sleep=self._cancel.wait)
        while True:
            if self._cancel.is_set():
                self._stop_cancelled()

            status = self._process.poll()
            if status is not None:
                self._capture.join(READER_JOIN_TIMEOUT)
                # A cancel that raced the helper's exit still wins.
                if self._cancel.is_set():
                    self._stop_cancelled()
                stderr = self._capture.stderr.text()
                if status != 0:
                    raise LoginError(LoginErrorKind.TOKEN, stderr)
                try:
                    return extract_token(self._capture.stdout.text())
                except ValueError as exc:
                    raise LoginError(LoginErrorKind.TOKEN, stderr or str(exc)) from exc

            backoff.wait()

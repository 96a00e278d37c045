"""Run the UI in a child process and report its crashes from this one.

An unhandled failure can leave the UI process in a state where it cannot
reliably show anything, so the UI runs as a child and this parent stays
small and healthy. When the child fails, the parent reads the crash
payload the child left in the handoff file and shows it.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path

from cirrus.config import AppConfig
from cirrus.crash import PANIC_FILE_ENV, CrashPayload, CrashPayloadError, read_payload

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "Cirrus stopped unexpectedly (exit status {status}) and left no crash details.\n"
    "See {log} for more information."
)


def present_crash(payload: CrashPayload, config: AppConfig) -> None:
    """Show *payload* in a fresh crash-report window."""
    from cirrus.screens.crash_report import CrashReportApp

    CrashReportApp(payload, config).run()


class Supervisor:
    def __init__(
        self,
        config: AppConfig,
        argv: Sequence[str] = (),
        *,
        presenter: Callable[[CrashPayload, AppConfig], None] = present_crash,
        popen=subprocess.Popen,
        stderr=None,
    ) -> None:
        self._config = config
        self._argv = list(argv)
        self._presenter = presenter
        self._popen = popen
        self._stderr = stderr

    def child_command(self) -> list[str]:
        return [sys.executable, "-m", "cirrus", *self._argv]

    def child_env(self, panic_file: Path) -> dict[str, str]:
        env = os.environ.copy()
        env[PANIC_FILE_ENV] = str(panic_file)
        env.setdefault("PYTHONFAULTHANDLER", "1")
        return env

    def run(self) -> int:
        """Run the UI child to completion; return the exit status to use."""
        fd, name = tempfile.mkstemp(prefix="cirrus-crash-", suffix=".json")
        os.close(fd)
        panic_file = Path(name)
        try:
            command = self.child_command()
            logger.info("Starting UI process: %s", " ".join(command))
            process = self._popen(command, env=self.child_env(panic_file))
            status = process.wait()
            if status == 0:
                logger.info("UI process exited cleanly")
                return 0

            logger.error("UI process exited with status %s", status)
            try:
                payload = read_payload(panic_file)
            except CrashPayloadError as exc:
                self._escalate(status, exc)
                return status
            self._presenter(payload, self._config)
            return status
        finally:
            panic_file.unlink(missing_ok=True)

    def _escalate(self, status: int, exc: CrashPayloadError) -> None:
        logger.critical("UI process failed without crash details: %s", exc)
        stream = self._stderr or sys.stderr
        print(FALLBACK_MESSAGE.format(status=status, log=self._config.log_path), file=stream)

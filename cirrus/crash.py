"""Crash payloads: captured in the failing UI process, read by the supervisor.

The UI child gets a handoff file path through :data:`PANIC_FILE_ENV`.
Its :class:`CrashHandler` writes one :class:`CrashPayload` there as JSON
on the first unhandled failure; the supervisor reads it back after the
child exits and shows it from a healthy process.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import sys
import threading
import traceback
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import TracebackType
from typing import Any

import httpx

from cirrus import __version__
from cirrus.config import AppConfig

logger = logging.getLogger(__name__)

PANIC_FILE_ENV = "CIRRUS_PANIC_FILE"


class CrashPayloadError(Exception):
    """The handoff file is missing, empty or unreadable."""


class CrashUploadError(Exception):
    """Crash logs could not be sent."""


@dataclass
class CrashPayload:
    backtrace: str = ""
    event: dict[str, Any] = field(default_factory=dict)

    @property
    def event_id(self) -> str:
        return self.event.get("event_id", "")

    def to_json(self) -> str:
        return json.dumps({"backtrace": self.backtrace, "event": self.event})

    @classmethod
    def from_json(cls, text: str) -> CrashPayload:
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise CrashPayloadError(f"Crash payload is not valid JSON: {exc}") from exc
        if (
            not isinstance(data, dict)
            or not isinstance(data.get("backtrace"), str)
            or not isinstance(data.get("event"), dict)
        ):
            raise CrashPayloadError("Crash payload is missing 'backtrace' or 'event'")
        return cls(backtrace=data["backtrace"], event=data["event"])


def _frames(tb: TracebackType | None) -> list[dict[str, Any]]:
    return [
        {
            "filename": frame.filename,
            "function": frame.name,
            "lineno": frame.lineno,
            "context_line": frame.line or "",
        }
        for frame in traceback.extract_tb(tb)
    ]


def build_event(exc: BaseException, config: AppConfig | None = None) -> dict[str, Any]:
    """Describe *exc* as a structured failure event."""
    values = []
    current: BaseException | None = exc
    seen: set[int] = set()
    # Outermost last, innermost cause first.
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        values.insert(0, {
            "type": type(current).__name__,
            "value": str(current),
            "module": type(current).__module__,
            "stacktrace": {"frames": _frames(current.__traceback__)},
        })
        current = current.__cause__ or current.__context__
    return {
        "event_id": uuid.uuid4().hex,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "fatal",
        "platform": "python",
        "release": f"cirrus@{__version__}",
        "environment": config.environment if config else "production",
        "exception": {"values": values},
        "tags": {},
    }


def payload_from_exception(exc: BaseException, config: AppConfig | None = None) -> CrashPayload:
    backtrace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return CrashPayload(backtrace=backtrace, event=build_event(exc, config))


def write_payload(path: Path, payload: CrashPayload) -> None:
    Path(path).write_text(payload.to_json(), encoding="utf-8")


def read_payload(path: Path) -> CrashPayload:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise CrashPayloadError(f"Could not read crash file {path}: {exc}") from exc
    if not text.strip():
        raise CrashPayloadError(f"Crash file {path} is empty")
    return CrashPayload.from_json(text)


class CrashHandler:
    """Writes the first unhandled failure of this process to the handoff file."""

    def __init__(self, path: Path, config: AppConfig | None = None) -> None:
        self.path = Path(path)
        self._config = config
        self._lock = threading.Lock()
        self._written = False

    @property
    def written(self) -> bool:
        return self._written

    def handle(self, exc: BaseException) -> bool:
        """Record *exc*; returns False if a payload was already written."""
        with self._lock:
            if self._written:
                return False
            write_payload(self.path, payload_from_exception(exc, self._config))
            self._written = True
        logger.critical("Unhandled %s; crash details written to %s", type(exc).__name__, self.path)
        return True

    def install(self) -> None:
        previous_hook = sys.excepthook
        previous_thread_hook = threading.excepthook

        def excepthook(exc_type, exc, tb):
            if not issubclass(exc_type, KeyboardInterrupt):
                self.handle(exc.with_traceback(tb))
            previous_hook(exc_type, exc, tb)

        def thread_excepthook(args):
            if args.exc_value is not None and not issubclass(args.exc_type, SystemExit):
                self.handle(args.exc_value)
            previous_thread_hook(args)

        sys.excepthook = excepthook
        threading.excepthook = thread_excepthook

    @classmethod
    def from_env(cls, config: AppConfig | None = None) -> CrashHandler | None:
        path = os.environ.get(PANIC_FILE_ENV)
        return cls(Path(path), config) if path else None


def upload_payload(
    payload: CrashPayload,
    url: str,
    *,
    transport: httpx.BaseTransport | None = None,
    timeout: float = 15.0,
) -> str:
    """Send the crash event to *url* and return the support id."""
    event = dict(payload.event)
    event["tags"] = {
        **event.get("tags", {}),
        "arch": platform.machine(),
        "os": sys.platform,
        "python": platform.python_version(),
    }
    body = {"event": event, "backtrace": payload.backtrace}
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            r = client.post(url, json=body)
            r.raise_for_status()
    except httpx.HTTPError as exc:
        raise CrashUploadError(f"Upload failed: {exc}") from exc
    try:
        data = r.json()
    except ValueError:
        data = {}
    support_id = data.get("id") if isinstance(data, dict) else None
    return str(support_id or payload.event_id)

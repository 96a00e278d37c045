"""Application configuration and logging setup.

Everything that used to be process-global (config directory, rclone
location, crash-report endpoint) lives on :class:`AppConfig`, which is
built once at startup and handed to the objects that need it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping

logger = logging.getLogger(__name__)

APP_NAME = "cirrus"
ENV_PREFIX = "CIRRUS_"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"


def default_config_dir(environ: Mapping[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    base = env.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / APP_NAME


@dataclass(frozen=True)
class OAuthClient:
    """OAuth client credentials passed to ``rclone authorize``.

    Empty values make rclone fall back to its own built-in client.
    """

    client_id: str = ""
    client_secret: str = ""


@dataclass(frozen=True)
class AppConfig:
    config_dir: Path = field(default_factory=default_config_dir)
    rclone_binary: str = "rclone"
    # When set, attach to an already running ``rclone rcd`` instead of
    # spawning one.
    rc_url: str | None = None
    rc_user: str | None = None
    rc_pass: str | None = None
    rc_timeout: float = 30.0
    daemon_start_timeout: float = 15.0
    oauth_clients: Mapping[str, OAuthClient] = field(default_factory=dict)
    crash_report_url: str | None = None
    environment: str = "production"
    verbose: bool = False

    @property
    def rclone_config_path(self) -> Path:
        return self.config_dir / "rclone.conf"

    @property
    def log_path(self) -> Path:
        return self.config_dir / f"{APP_NAME}.log"

    @property
    def release_mode(self) -> bool:
        """Whether crash logs may be offered for upload."""
        return bool(self.crash_report_url)

    def oauth_client(self, backend: str) -> OAuthClient:
        return self.oauth_clients.get(backend, OAuthClient())

    def with_overrides(self, **changes) -> AppConfig:
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> AppConfig:
        """Build a config from ``CIRRUS_*`` environment variables.

        Keyword overrides (typically from the command line) win over the
        environment; ``None`` overrides are ignored.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        clients = {}
        for backend in ("dropbox", "drive", "pcloud"):
            client_id = get(f"{backend.upper()}_CLIENT_ID")
            client_secret = get(f"{backend.upper()}_CLIENT_SECRET")
            if client_id or client_secret:
                clients[backend] = OAuthClient(client_id or "", client_secret or "")

        values: dict = {
            "config_dir": Path(get("CONFIG_DIR")) if get("CONFIG_DIR") else default_config_dir(env),
            "rclone_binary": get("RCLONE") or "rclone",
            "rc_url": get("RC_URL"),
            "rc_user": get("RC_USER"),
            "rc_pass": get("RC_PASS"),
            "oauth_clients": clients,
            "crash_report_url": get("CRASH_REPORT_URL"),
            "environment": get("ENVIRONMENT") or "production",
            "verbose": (get("VERBOSE") or "").lower() in ("1", "true", "yes"),
        }
        timeout = get("RC_TIMEOUT")
        if timeout:
            try:
                values["rc_timeout"] = float(timeout)
            except ValueError:
                logger.warning("Ignoring %sRC_TIMEOUT=%r: not a number", ENV_PREFIX, timeout)
        return cls(**values).with_overrides(**overrides)


def setup_logging(config: AppConfig) -> None:
    """Send logs to a file under the config dir.

    The terminal is owned by Textual, so nothing is logged to stderr.
    """
    config.config_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(config.log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.INFO,
        handlers=[handler],
        force=True,
    )
    if not config.verbose:
        for name in ("httpx", "httpcore"):
            logging.getLogger(name).setLevel(logging.WARNING)

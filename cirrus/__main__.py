"""Command-line entry point.

Without ``CIRRUS_PANIC_FILE`` in the environment this process becomes the
supervisor and re-runs itself as the UI child; the child runs the Textual
app against a private rclone daemon.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from cirrus import __version__
from cirrus.config import AppConfig, setup_logging
from cirrus.crash import PANIC_FILE_ENV, CrashHandler
from cirrus.rclone import RcloneDaemon, RcloneDaemonError

logger = logging.getLogger("cirrus")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cirrus", description="Cirrus - manage cloud storage servers")
    parser.add_argument("--config-dir", type=Path, help="Directory for rclone.conf and cirrus.log")
    parser.add_argument("-v", "--verbose", action="store_true", default=None, help="Debug logging")
    parser.add_argument(
        "--no-supervisor",
        action="store_true",
        help="Run the UI in this process without crash reporting",
    )
    parser.add_argument("--version", action="version", version=f"cirrus {__version__}")
    return parser


def run_ui(config: AppConfig, crash_handler: CrashHandler | None) -> int:
    from cirrus.app import CirrusApp

    daemon = RcloneDaemon(config)
    try:
        client = daemon.start()
    except RcloneDaemonError as exc:
        logger.error("Could not start rclone: %s", exc)
        print(f"Could not start rclone: {exc}", file=sys.stderr)
        return 1
    try:
        app = CirrusApp(config, client, crash_handler=crash_handler)
        app.run()
    finally:
        daemon.stop()
    return app.return_code or 0


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    args = build_parser().parse_args(argv)
    config = AppConfig.from_env(config_dir=args.config_dir, verbose=args.verbose)
    setup_logging(config)

    if os.environ.get(PANIC_FILE_ENV) or args.no_supervisor:
        crash_handler = CrashHandler.from_env(config)
        if crash_handler is not None:
            crash_handler.install()
        return run_ui(config, crash_handler)

    from cirrus.supervisor import Supervisor

    status = Supervisor(config, argv).run()
    # Killed by a signal.
    return 1 if status < 0 else status


if __name__ == "__main__":
    sys.exit(main())

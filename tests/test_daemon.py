"""Tests for the rclone rcd lifecycle, using a small Python stand-in server."""

from unittest.mock import MagicMock

import pytest

from cirrus.config import AppConfig
from cirrus.rclone import RcloneDaemon, RcloneDaemonError

# Answers every RC POST with ``{}`` on the address given by --rc-addr.
FAKE_RCD = """
import sys
from http.server import BaseHTTPRequestHandler, HTTPServer

args = sys.argv[1:]
host, port = args[args.index("--rc-addr") + 1].rsplit(":", 1)


class Handler(BaseHTTPRequestHandler):
    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length") or 0))
        body = b"{}"
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, *args):
        pass


HTTPServer((host, int(port)), Handler).serve_forever()
"""

FAILING_RCD = "import sys; sys.stderr.write('unknown flag: --rc-addr\\n'); sys.exit(2)"


class TestCommand:
    def test_rcd_arguments(self, config):
        daemon = RcloneDaemon(config)
        assert daemon.command(5572, "u", "p") == [
            "rclone", "rcd",
            "--rc-addr", "127.0.0.1:5572",
            "--rc-user", "u",
            "--rc-pass", "p",
            "--config", str(config.rclone_config_path),
        ]


class TestAttach:
    def test_attach_does_not_spawn(self, tmp_path):
        popen = MagicMock()
        config = AppConfig(config_dir=tmp_path, rc_url="http://127.0.0.1:5572")
        daemon = RcloneDaemon(config, popen=popen)
        client = daemon.start()
        assert client.base_url == "http://127.0.0.1:5572"
        assert daemon.start() is client
        popen.assert_not_called()
        daemon.stop()
        assert daemon.client is None


class TestSpawn:
    def test_missing_binary(self, config):
        popen = MagicMock(side_effect=FileNotFoundError("rclone"))
        with pytest.raises(RcloneDaemonError, match="Could not run 'rclone'"):
            RcloneDaemon(config, popen=popen).start()

    def test_early_exit_reports_stderr(self, config, script_popen):
        daemon = RcloneDaemon(config, popen=script_popen(FAILING_RCD))
        with pytest.raises(RcloneDaemonError, match="unknown flag"):
            daemon.start()
        assert not daemon.running
        assert daemon.client is None

    def test_start_and_stop(self, config, script_popen):
        popen = script_popen(FAKE_RCD)
        with RcloneDaemon(config, popen=popen) as client:
            assert client.noop() == {}
            process = popen.processes[0]
            assert process.poll() is None
        assert process.poll() is not None
        assert config.config_dir.is_dir()

    def test_timeout(self, tmp_path, script_popen):
        config = AppConfig(config_dir=tmp_path, daemon_start_timeout=0.3)
        # Stays alive but never listens.
        daemon = RcloneDaemon(config, popen=script_popen("import time; time.sleep(30)"))
        with pytest.raises(RcloneDaemonError, match="did not become ready"):
            daemon.start()
        assert not daemon.running

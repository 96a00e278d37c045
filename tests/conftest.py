"""Shared fixtures: an in-memory rclone, fake helper processes, configs."""

import subprocess
import sys

import pytest

from cirrus.config import AppConfig
from cirrus.rclone import Remote, RcloneError


class FakeRcloneClient:
    """Stands in for RcloneClient, keeping remotes in a dict.

    ``stat_error``/``create_error``/``delete_error`` make the matching
    call fail with that rclone error text.
    """

    def __init__(self, remotes=None, stat_error=None, create_error=None, delete_error=None):
        self.remotes: dict[str, dict] = dict(remotes or {})
        self.stat_error = stat_error
        self.create_error = create_error
        self.delete_error = delete_error
        self.calls: list[tuple] = []

    def list_remote_names(self):
        self.calls.append(("listremotes",))
        return list(self.remotes)

    def list_remotes(self):
        return [
            Remote.from_config(name, config.get("parameters", {}) | {"type": config.get("type", "")})
            for name, config in self.remotes.items()
        ]

    def create_config(self, name, item):
        self.calls.append(("create", name))
        if self.create_error:
            raise RcloneError(self.create_error, method="config/create", status=500)
        self.remotes[name] = item.config_json(name)

    def stat(self, remote, path):
        self.calls.append(("stat", remote, path))
        if self.stat_error:
            raise RcloneError(self.stat_error, method="operations/stat", status=500)
        return None

    def delete_config(self, name):
        self.calls.append(("delete", name))
        if self.delete_error:
            raise RcloneError(self.delete_error, method="config/delete", status=500)
        self.remotes.pop(name, None)

    def list_items(self, remote, path, recursive=False, filter=None):
        return []

    def mkdir(self, remote, path):
        self.calls.append(("mkdir", remote, path))


class ScriptPopen:
    """Popen replacement that runs a Python script instead of the command.

    The real command line is appended after the script so the script can
    inspect it through ``sys.argv``.
    """

    def __init__(self, script: str) -> None:
        self.script = script
        self.commands: list[list[str]] = []
        self.processes: list[subprocess.Popen] = []

    def __call__(self, command, **kwargs):
        self.commands.append(list(command))
        process = subprocess.Popen([sys.executable, "-c", self.script, *command[1:]], **kwargs)
        self.processes.append(process)
        return process


@pytest.fixture
def config(tmp_path):
    return AppConfig(config_dir=tmp_path / "config")


@pytest.fixture
def fake_client():
    return FakeRcloneClient()


@pytest.fixture
def script_popen():
    """Factory for :class:`ScriptPopen`; kills whatever it started on teardown."""
    made: list[ScriptPopen] = []

    def factory(script: str) -> ScriptPopen:
        popen = ScriptPopen(script)
        made.append(popen)
        return popen

    yield factory
    for popen in made:
        for process in popen.processes:
            if process.poll() is None:
                process.kill()
                process.wait()

"""
Shared fixtures
"""
from typing import Dict, List, Optional

import pytest

from aem_remote.core.exceptions import CommandError
from aem_remote.core.interfaces import Connection
from aem_remote.domain.client import Client
from aem_remote.infrastructure.connections import LocalConnection


class RecordingConnection(Connection):
    """
    Connection recording command lines.

    ``outputs`` answers scripts containing the key; ``failing`` fails
    scripts equal to the key, attaching the value as output.
    """

    def __init__(self, outputs: Optional[Dict[str, str]] = None):
        self.commands: List[List[str]] = []
        self.copies: List[tuple] = []
        self.outputs = outputs or {}
        self.failing: Dict[str, str] = {}
        self.connected = False

    @property
    def is_connected(self) -> bool:
        return self.connected

    def connect(self) -> None:
        self.connected = True

    def disconnect(self) -> None:
        self.connected = False

    def command(self, cmd_line):
        self.commands.append(list(cmd_line))
        script = cmd_line[-1]
        if script in self.failing:
            raise CommandError(f"fake: command '{script}' failed", output=self.failing[script])
        for marker, output in self.outputs.items():
            if marker in script:
                return output
        return ""

    def copy_file(self, local_path, remote_path):
        with open(local_path, "r", encoding="utf-8") as f:
            self.copies.append((local_path, remote_path, f.read()))

    def info(self) -> str:
        return "recording"

    def user(self) -> str:
        return "tester"

    def scripts(self) -> List[str]:
        return [cmd[-1] for cmd in self.commands]


class FakeClock:
    """Stand-in for the ``time`` module in retry and poll loops"""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recording():
    return RecordingConnection()


@pytest.fixture
def recording_client(recording):
    recording.connect()
    client = Client(recording)
    client.work_dir = "/tmp/work"
    return client


@pytest.fixture
def local_client(tmp_path):
    connection = LocalConnection()
    connection.connect()
    client = Client(connection)
    client.work_dir = str(tmp_path / "work")
    yield client
    connection.disconnect()

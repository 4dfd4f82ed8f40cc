import asyncio

import pytest

from dockerdash.daemon import wait_for_daemon
from dockerdash.errors import SetupFatal


def test_already_running(fake_client) -> None:
    client = fake_client()
    msgs: list[str] = []
    version = asyncio.run(wait_for_daemon(client, ["launch"], interval=0, echo=msgs.append, launcher=lambda c: True))
    assert version == "27.0.1"
    assert msgs == ["Docker already running."]


def test_launches_once_and_waits(fake_client) -> None:
    client = fake_client()
    client.ping_failures = 3
    msgs: list[str] = []
    launched: list[list[str]] = []

    def launcher(cmd):
        launched.append(cmd)
        return True

    asyncio.run(wait_for_daemon(client, ["open", "-a", "Docker"], interval=0, echo=msgs.append, launcher=launcher))
    assert launched == [["open", "-a", "Docker"]]
    assert msgs[0] == "Docker daemon not running. Starting Docker..."
    assert msgs.count("Waiting for Docker daemon...") == 3
    assert msgs[-1] == "Docker is ready!"
    assert len(client.calls) == 4


def test_no_launch_command(fake_client) -> None:
    client = fake_client()
    client.ping_failures = 1
    msgs: list[str] = []
    asyncio.run(wait_for_daemon(client, None, interval=0, echo=msgs.append))
    assert msgs[0] == "Docker daemon not running."


def test_timeout_is_fatal(fake_client) -> None:
    client = fake_client()
    client.ping_failures = 100
    with pytest.raises(SetupFatal):
        asyncio.run(wait_for_daemon(client, None, interval=0, timeout=0, echo=lambda m: None))

import asyncio
from typing import Optional

import pytest

from dockerdash.util import DEFAULT_GROUP_LABEL


def raw_row(
    name: str,
    state: str = "running",
    group: Optional[str] = None,
    rid: Optional[str] = None,
    ports: str = "",
) -> dict:
    """One row shaped like `docker ps --format '{{json .}}'` output."""
    labels = f"{DEFAULT_GROUP_LABEL}={group},com.docker.compose.service={name}" if group else ""
    return {
        "ID": rid or f"{name}-0123456789abcdef",
        "Names": name,
        "Image": f"{name}:latest",
        "Ports": ports,
        "Status": "Up 5 minutes" if state == "running" else "Exited (0) 1 minute ago",
        "State": state,
        "Labels": labels,
    }


class FakeClient:
    """In-memory stand-in for DockerClient with optional gates to hold calls open."""

    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.logs: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.list_error: Optional[Exception] = None
        self.command_error: Optional[Exception] = None
        self.log_error: Optional[Exception] = None
        self.list_gate: Optional[asyncio.Event] = None
        self.log_gate: Optional[asyncio.Event] = None
        self.ping_failures = 0

    async def ping(self) -> str:
        self.calls.append(("ping",))
        if self.ping_failures > 0:
            from dockerdash.errors import RuntimeUnavailable

            self.ping_failures -= 1
            raise RuntimeUnavailable("Cannot connect to the Docker daemon")
        return "27.0.1"

    async def list_resources(self, include_stopped: bool = True):
        self.calls.append(("list", include_stopped))
        if self.list_gate is not None:
            await self.list_gate.wait()
        if self.list_error is not None:
            raise self.list_error
        return list(self.rows)

    async def start_resource(self, resource_id: str) -> None:
        self.calls.append(("start", resource_id))
        if self.command_error is not None:
            raise self.command_error

    async def stop_resource(self, resource_id: str) -> None:
        self.calls.append(("stop", resource_id))
        if self.command_error is not None:
            raise self.command_error

    async def fetch_logs(self, resource_id: str, window, include_timestamps: bool = True) -> str:
        self.calls.append(("logs", resource_id))
        if self.log_gate is not None:
            await self.log_gate.wait()
        if self.log_error is not None:
            raise self.log_error
        return self.logs.get(resource_id, "")


@pytest.fixture
def make_row():
    return raw_row


@pytest.fixture
def fake_client():
    return FakeClient

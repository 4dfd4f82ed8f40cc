import asyncio
import json
import logging
import os
import shutil
from asyncio.subprocess import PIPE, STDOUT
from typing import Any, Optional

from .errors import RuntimeCommandError, RuntimeUnavailable, SetupFatal
from .util import LogWindow


logger = logging.getLogger(__name__)

# stderr fragments the docker CLI prints when it cannot talk to the daemon
UNAVAILABLE_MARKERS = (
    "cannot connect to the docker daemon",
    "is the docker daemon running",
    "error during connect",
    "docker daemon is not running",
    "connection refused",
)


def ps_argv(include_stopped: bool = True) -> list[str]:
    args = ["ps", "--no-trunc", "--format", "{{json .}}"]
    if include_stopped:
        args.insert(1, "-a")
    return args


def start_argv(resource_id: str) -> list[str]:
    return ["start", resource_id]


def stop_argv(resource_id: str) -> list[str]:
    return ["stop", resource_id]


def logs_argv(resource_id: str, window: LogWindow, include_timestamps: bool = True) -> list[str]:
    args = ["logs", *window.argv()]
    if include_timestamps:
        args.append("--timestamps")
    args.append(resource_id)
    return args


def ping_argv() -> list[str]:
    return ["version", "--format", "{{.Server.Version}}"]


def looks_unavailable(stderr: str) -> bool:
    s = stderr.lower()
    return any(m in s for m in UNAVAILABLE_MARKERS)


async def run_docker(docker_bin: str, args: list[str], merge_stderr: bool = False) -> tuple[int, str, str]:
    """Run one docker CLI command to completion. Returns (rc, stdout, stderr)."""
    try:
        proc = await asyncio.create_subprocess_exec(
            docker_bin, *args, stdout=PIPE, stderr=STDOUT if merge_stderr else PIPE
        )
    except FileNotFoundError:
        raise RuntimeUnavailable(f"docker binary not found: {docker_bin}")
    except PermissionError as e:
        raise RuntimeUnavailable(f"cannot execute {docker_bin}: {e}")
    out, err = await proc.communicate()
    return (
        proc.returncode if proc.returncode is not None else -1,
        (out or b"").decode(errors="replace"),
        (err or b"").decode(errors="replace"),
    )


def _raise_for(rc: int, stderr: str, args: list[str], resource_id: Optional[str] = None) -> None:
    if rc == 0:
        return
    msg = stderr.strip().splitlines()[-1] if stderr.strip() else f"docker {args[0]} exited {rc}"
    if looks_unavailable(stderr):
        raise RuntimeUnavailable(msg)
    raise RuntimeCommandError(msg, resource_id=resource_id, op=args[0])


class DockerClient:
    """Runtime client over the docker CLI.

    Every call is a coroutine; failures surface as RuntimeUnavailable (daemon
    unreachable) or RuntimeCommandError (this call failed).
    """

    def __init__(self, docker_bin: str = "docker") -> None:
        self.docker_bin = docker_bin

    @classmethod
    def create(cls, docker_bin: str) -> "DockerClient":
        """Build a client, failing fast when the docker binary is missing."""
        ok = bool(shutil.which(docker_bin) or os.path.exists(docker_bin))
        if not ok:
            raise SetupFatal(f"docker not found ({docker_bin}). Install the Docker CLI or set DOCKERDASH_DOCKER_BIN.")
        return cls(docker_bin)

    async def ping(self) -> str:
        args = ping_argv()
        rc, out, err = await run_docker(self.docker_bin, args)
        if rc != 0:
            raise RuntimeUnavailable(err.strip().splitlines()[-1] if err.strip() else "docker daemon not reachable")
        return out.strip()

    async def list_resources(self, include_stopped: bool = True) -> list[dict[str, Any]]:
        args = ps_argv(include_stopped)
        rc, out, err = await run_docker(self.docker_bin, args)
        _raise_for(rc, err, args)
        rows: list[dict[str, Any]] = []
        for line in out.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("skipping unparsable ps line (%s): %.100s", e, line)
                continue
            if isinstance(row, dict):
                rows.append(row)
        return rows

    async def start_resource(self, resource_id: str) -> None:
        args = start_argv(resource_id)
        rc, _out, err = await run_docker(self.docker_bin, args)
        _raise_for(rc, err, args, resource_id)

    async def stop_resource(self, resource_id: str) -> None:
        args = stop_argv(resource_id)
        rc, _out, err = await run_docker(self.docker_bin, args)
        _raise_for(rc, err, args, resource_id)

    async def fetch_logs(self, resource_id: str, window: LogWindow, include_timestamps: bool = True) -> str:
        args = logs_argv(resource_id, window, include_timestamps)
        # container stdout and stderr interleaved, as the terminal would show them
        rc, out, _err = await run_docker(self.docker_bin, args, merge_stderr=True)
        _raise_for(rc, out, args, resource_id)
        return out

"""Startup probe: block until the Docker daemon answers, launching it if asked."""

from __future__ import annotations

import asyncio
import logging
import subprocess
import time
from typing import Callable, Optional

from .errors import RuntimeUnavailable, SetupFatal


logger = logging.getLogger(__name__)


def launch_daemon(cmd: list[str]) -> bool:
    """Fire the launch command without waiting for it. Returns False if it could not be spawned."""
    if not cmd:
        return False
    try:
        subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        return True
    except (FileNotFoundError, PermissionError) as e:
        logger.warning("could not launch docker daemon with %s: %s", cmd, e)
        return False


async def wait_for_daemon(
    client,
    launch_cmd: Optional[list[str]] = None,
    interval: float = 2.0,
    timeout: Optional[float] = None,
    echo: Callable[[str], None] = print,
    launcher: Callable[[list[str]], bool] = launch_daemon,
) -> str:
    """Poll client.ping() until it succeeds and return the server version.

    With a launch command, the daemon is started once after the first failed
    ping. Raises SetupFatal when `timeout` seconds pass without an answer.
    """
    try:
        version = await client.ping()
        echo("Docker already running.")
        return version
    except RuntimeUnavailable as e:
        logger.info("docker ping failed: %s", e)

    if launch_cmd:
        echo("Docker daemon not running. Starting Docker...")
        if not launcher(launch_cmd):
            echo(f"Could not run launch command: {' '.join(launch_cmd)}")
    else:
        echo("Docker daemon not running.")

    started = time.monotonic()
    while True:
        if timeout is not None and time.monotonic() - started >= timeout:
            raise SetupFatal(f"docker daemon not reachable after {timeout:g}s")
        echo("Waiting for Docker daemon...")
        await asyncio.sleep(interval)
        try:
            version = await client.ping()
        except RuntimeUnavailable as e:
            logger.debug("still waiting for docker: %s", e)
            continue
        echo("Docker is ready!")
        return version

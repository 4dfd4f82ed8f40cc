import json
import logging
import os
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


DEFAULT_GROUP_LABEL = "com.docker.compose.project"
DEFAULT_LAUNCH_CMD = "open -a Docker --args --unattended"
DEFAULT_LOG_SINCE = "24h"


def is_tty() -> bool:
    try:
        return sys.stdout.isatty()
    except Exception:
        return False


def json_line(obj: dict) -> str:
    return json.dumps(obj, separators=(",", ":"))


def resolve_docker_bin(prefer: Optional[str] = None) -> str:
    """Resolve docker binary path. Honors DOCKERDASH_DOCKER_BIN, falls back to PATH lookup."""
    prefer = (prefer or os.getenv("DOCKERDASH_DOCKER_BIN", "docker")).strip()
    if os.path.sep in prefer:
        return prefer
    import shutil

    which = shutil.which(prefer)
    return which or prefer


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class LogWindow:
    """How much history a log fetch asks for: a line tail or a time window."""

    tail_lines: Optional[int] = None
    since: Optional[str] = None

    def argv(self) -> list[str]:
        if self.tail_lines is not None:
            return ["--tail", str(self.tail_lines)]
        if self.since:
            return ["--since", self.since]
        return []


@dataclass
class DashSettings:
    docker_bin: str = "docker"
    refresh_interval: float = 1.0
    log_window: LogWindow = field(default_factory=lambda: LogWindow(since=DEFAULT_LOG_SINCE))
    timestamps: bool = True
    include_stopped: bool = True
    group_label: str = DEFAULT_GROUP_LABEL
    launch: bool = True
    launch_cmd: list[str] = field(default_factory=lambda: shlex.split(DEFAULT_LAUNCH_CMD))
    probe_interval: float = 2.0
    wait_timeout: Optional[float] = None
    log_file: Optional[Path] = None
    verbose: bool = False


def settings_from_env() -> DashSettings:
    """Defaults overlaid with DOCKERDASH_* environment overrides; CLI options apply on top."""
    s = DashSettings()
    s.docker_bin = resolve_docker_bin()
    s.refresh_interval = _env_float("DOCKERDASH_INTERVAL", s.refresh_interval)
    since = os.getenv("DOCKERDASH_LOG_SINCE", "").strip()
    if since:
        s.log_window = LogWindow(since=since)
    label = os.getenv("DOCKERDASH_GROUP_LABEL", "").strip()
    if label:
        s.group_label = label
    launch_cmd = os.getenv("DOCKERDASH_LAUNCH_CMD", "").strip()
    if launch_cmd:
        s.launch_cmd = shlex.split(launch_cmd)
    log_file = os.getenv("DOCKERDASH_LOG_FILE", "").strip()
    if log_file:
        s.log_file = Path(log_file)
    return s


def configure_logging(log_file: Optional[Path] = None, verbose: bool = False) -> None:
    """Route package logs away from the terminal the TUI owns.

    Records go to the Textual devtools console, plus a file when requested.
    """
    from textual.logging import TextualHandler

    root = logging.getLogger("dockerdash")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(TextualHandler())
    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(fh)

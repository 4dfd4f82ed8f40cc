import asyncio
import shutil
import os
import shlex
from pathlib import Path
from typing import Optional

import typer

from . import __version__
from .dash.aggregate import aggregate, format_ports, parse_ps_row
from .dash.models import ResourceGroup, ResourceRecord
from .docker_cli import DockerClient
from .errors import RuntimeCommandError, RuntimeUnavailable, SetupFatal
from .util import LogWindow, is_tty, json_line, settings_from_env


app = typer.Typer(
    name="dockerdash",
    add_completion=False,
    no_args_is_help=True,
    help=(
        "Live terminal dashboard for Docker containers and compose stacks.\n\n"
        "Usage:\n"
        "  dockerdash                      Open the dashboard\n"
        "  dockerdash ps [--json]          List containers grouped by stack\n"
        "  dockerdash logs <ident> [-n N]  Show container logs\n"
        "  dockerdash start|stop <ident>   Start / stop a container\n"
        "  dockerdash doctor               Check docker CLI and daemon\n\n"
        "Identifier (<ident>): container name or (prefix of) its id."
    ),
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def _root(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        is_eager=True,
    ),
):
    if version:
        typer.echo(__version__)
        raise typer.Exit()


def _client() -> DockerClient:
    try:
        return DockerClient.create(settings_from_env().docker_bin)
    except SetupFatal as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)


def _run(coro):
    """asyncio.run with runtime errors mapped to a message and exit code 1."""
    try:
        return asyncio.run(coro)
    except RuntimeUnavailable as e:
        typer.echo(f"Docker unavailable: {e}", err=True)
        raise typer.Exit(code=1)
    except RuntimeCommandError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)


async def _records(client, include_stopped: bool = True) -> list[ResourceRecord]:
    label = settings_from_env().group_label
    return [parse_ps_row(r, label) for r in await client.list_resources(include_stopped)]


async def _resolve_identifier(client, ident: str) -> ResourceRecord:
    records = await _records(client)

    # 1) Exact name
    by_name = [r for r in records if r.display_name == ident]
    if len(by_name) == 1:
        return by_name[0]

    # 2) Full id or unique id prefix
    by_id = [r for r in records if r.id == ident or (len(ident) >= 4 and r.id.startswith(ident))]
    if len(by_id) == 1:
        return by_id[0]

    matches = by_name or by_id
    if len(matches) > 1:
        opts = ", ".join(f"{r.display_name} ({r.id[:12]})" for r in matches)
        raise RuntimeError(f"Ambiguous identifier '{ident}'. Candidates: {opts}")
    raise RuntimeError(f"Not found: {ident}")


async def _resolve_or_exit(client, ident: str) -> ResourceRecord:
    try:
        return await _resolve_identifier(client, ident)
    except RuntimeError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def version():
    """Show CLI version (semver)."""
    typer.echo(__version__)


def _record_json(rec: ResourceRecord) -> dict:
    return {
        "id": rec.id,
        "name": rec.display_name,
        "image": rec.image_ref,
        "ports": format_ports(rec.port_bindings),
        "status": rec.status_text,
        "state": rec.lifecycle_state.value,
        "group": rec.group_key,
    }


@app.command("ps")
def ps(
    as_json: bool = typer.Option(False, "--json", help="One JSON object per container"),
    running_only: bool = typer.Option(False, "--running-only", help="Hide stopped containers"),
):
    """List containers grouped by stack. Prints: name\tid\tstate\tstatus"""
    client = _client()

    async def _ps():
        return aggregate(await _records(client, include_stopped=not running_only))

    snapshot = _run(_ps())
    for entry in snapshot:
        if isinstance(entry, ResourceGroup):
            if as_json:
                for m in entry.members:
                    typer.echo(json_line(_record_json(m)))
                continue
            running = sum(1 for m in entry.members if m.running)
            typer.echo(f"{entry.name}\t-\t{running}/{len(entry.members)} running\tstack")
            for m in entry.members:
                typer.echo(f"  {m.display_name}\t{m.id[:12]}\t{m.lifecycle_state.value}\t{m.status_text}")
        elif as_json:
            typer.echo(json_line(_record_json(entry)))
        else:
            typer.echo(f"{entry.display_name}\t{entry.id[:12]}\t{entry.lifecycle_state.value}\t{entry.status_text}")


@app.command()
def logs(
    name: str,
    n: Optional[int] = typer.Option(None, "-n", help="Number of lines from the end"),
    since: Optional[str] = typer.Option(None, "--since", help="Time window, e.g. 10m, 24h"),
    timestamps: bool = typer.Option(False, "-t", "--timestamps", help="Prefix lines with timestamps"),
):
    """Print container logs (default window: --since from settings, 24h)."""
    client = _client()
    if n is not None:
        window = LogWindow(tail_lines=n)
    elif since:
        window = LogWindow(since=since)
    else:
        window = settings_from_env().log_window

    async def _logs():
        rec = await _resolve_or_exit(client, name)
        return await client.fetch_logs(rec.id, window, timestamps)

    out = _run(_logs())
    typer.echo(out, nl=not out.endswith("\n"))


@app.command()
def start(name: str):
    """Start a container."""
    client = _client()

    async def _start():
        rec = await _resolve_or_exit(client, name)
        await client.start_resource(rec.id)
        return rec

    rec = _run(_start())
    typer.echo(f"started {rec.display_name}")


@app.command()
def stop(name: str):
    """Stop a container."""
    client = _client()

    async def _stop():
        rec = await _resolve_or_exit(client, name)
        await client.stop_resource(rec.id)
        return rec

    rec = _run(_stop())
    typer.echo(f"stopped {rec.display_name}")


@app.command()
def doctor():
    """Diagnose the docker CLI and daemon."""
    settings = settings_from_env()
    docker_bin = settings.docker_bin
    bin_ok = bool(shutil.which(docker_bin) or os.path.exists(docker_bin))

    server = ""
    daemon_ok = False
    if bin_ok:
        try:
            server = asyncio.run(DockerClient(docker_bin).ping())
            daemon_ok = True
        except RuntimeUnavailable as e:
            server = str(e)

    typer.echo(f"docker CLI: {'ok' if bin_ok else 'FAIL'} ({docker_bin})")
    typer.echo(f"docker daemon: {'ok' if daemon_ok else 'FAIL'}{(' (' + server + ')') if server else ''}")
    typer.echo(f"group label: {settings.group_label}")
    if not is_tty():
        print(json_line({"cli": bin_ok, "daemon": daemon_ok, "server": server}))
    if not (bin_ok and daemon_ok):
        raise typer.Exit(code=1)


@app.command()
def dash(
    interval: Optional[float] = typer.Option(None, "--interval", help="Refresh period in seconds [default: 1]"),
    since: Optional[str] = typer.Option(None, "--since", help="Log window, e.g. 24h [default: 24h]"),
    tail: Optional[int] = typer.Option(None, "--tail", help="Log window as a line count (overrides --since)"),
    timestamps: bool = typer.Option(True, "--timestamps/--no-timestamps", help="Show log timestamps"),
    running_only: bool = typer.Option(False, "--running-only", help="Hide stopped containers"),
    group_label: Optional[str] = typer.Option(None, "--group-label", help="Label that groups containers into stacks"),
    launch: bool = typer.Option(True, "--launch/--no-launch", help="Try to start Docker if it is not running"),
    launch_cmd: Optional[str] = typer.Option(None, "--launch-cmd", help="Command used to start Docker"),
    wait_timeout: Optional[float] = typer.Option(None, "--wait-timeout", help="Give up waiting for Docker after N seconds"),
    docker_bin: Optional[str] = typer.Option(None, "--docker-bin", help="docker executable"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Write debug log to this file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Open the dashboard (Textual UI) over Docker containers."""
    settings = settings_from_env()
    if interval is not None:
        if interval <= 0:
            typer.echo("--interval must be positive", err=True)
            raise typer.Exit(code=2)
        settings.refresh_interval = interval
    if tail is not None:
        settings.log_window = LogWindow(tail_lines=tail)
    elif since:
        settings.log_window = LogWindow(since=since)
    settings.timestamps = timestamps
    settings.include_stopped = not running_only
    if group_label:
        settings.group_label = group_label
    settings.launch = launch
    if launch_cmd:
        settings.launch_cmd = shlex.split(launch_cmd)
    settings.wait_timeout = wait_timeout
    if docker_bin:
        settings.docker_bin = docker_bin
    if log_file is not None:
        settings.log_file = log_file
    settings.verbose = verbose

    # Lazy import to avoid importing Textual at module import time
    try:
        from .dash.app import run_dash
    except Exception as e:
        typer.echo(f"Failed to load dashboard: {e}", err=True)
        raise typer.Exit(code=1)

    rc = run_dash(settings, echo=typer.echo)
    if rc:
        raise typer.Exit(code=rc)

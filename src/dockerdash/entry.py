import sys
from typing import List

from .cli import app


SUBCOMMANDS = {
    "ps",
    "logs",
    "start",
    "stop",
    "doctor",
    "dash",
    "version",
    "--version",
    "-V",
    "-h",
    "--help",
}

RESOURCE_ACTIONS = {"logs", "log", "start", "stop"}


def main(argv: List[str] | None = None):
    if argv is None:
        argv = sys.argv[1:]

    # Handle version early to avoid Click group error
    if argv and argv[0] in {"--version", "-V"}:
        from . import __version__
        print(__version__)
        return

    # No arguments (or only dashboard flags): open the dashboard
    if not argv or (argv[0].startswith("-") and argv[0] not in SUBCOMMANDS):
        return app(args=["dash", *argv], prog_name="dockerdash")

    # Shorthand: allow "dockerdash <name> <action>" (resource-first)
    # Examples:
    #   dockerdash web-1 logs -n 50
    #   dockerdash web-1 stop
    if argv[0] not in SUBCOMMANDS:
        ident = argv[0]
        action = argv[1] if len(argv) > 1 else "logs"
        rest = argv[2:]
        if action in RESOURCE_ACTIONS:
            if action == "log":
                action = "logs"
            return app(args=[action, ident, *rest], prog_name="dockerdash")
        # Unknown action after a resource name; fall through to app() which will print help

    return app(args=argv, prog_name="dockerdash")

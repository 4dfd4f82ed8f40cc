"""Error taxonomy shared by the Docker adapter, the dashboard and the CLI."""

from __future__ import annotations


class DockerDashError(Exception):
    pass


class RuntimeUnavailable(DockerDashError):
    """The Docker daemon (or the docker binary) cannot be reached.

    Recoverable: the dashboard keeps its last good snapshot, shows a banner
    and retries on the next tick.
    """


class RuntimeCommandError(DockerDashError):
    """A specific list/start/stop/logs call failed."""

    def __init__(self, message: str, resource_id: str | None = None, op: str | None = None) -> None:
        super().__init__(message)
        self.resource_id = resource_id
        self.op = op


class SetupFatal(DockerDashError):
    """Startup could not complete; the process exits with code 1."""

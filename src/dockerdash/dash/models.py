from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class LifecycleState(str, Enum):
    RUNNING = "running"
    EXITED = "exited"
    CREATED = "created"
    PAUSED = "paused"
    RESTARTING = "restarting"
    REMOVING = "removing"
    DEAD = "dead"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: object) -> "LifecycleState":
        try:
            return cls(str(raw or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True, slots=True)
class PortBinding:
    container_port: str
    protocol: str = "tcp"
    host_ip: str = ""
    host_port: str = ""


@dataclass(frozen=True, slots=True)
class ResourceRecord:
    id: str
    display_name: str
    image_ref: str = ""
    port_bindings: tuple[PortBinding, ...] = ()
    status_text: str = ""
    lifecycle_state: LifecycleState = LifecycleState.UNKNOWN
    group_key: Optional[str] = None

    @property
    def name(self) -> str:
        return self.display_name

    @property
    def running(self) -> bool:
        return self.lifecycle_state is LifecycleState.RUNNING

    @property
    def active(self) -> bool:
        return self.running


@dataclass(frozen=True, slots=True)
class ResourceGroup:
    group_id: str
    name: str
    members: tuple[ResourceRecord, ...]

    @property
    def active(self) -> bool:
        return any(m.running for m in self.members)


# A top-level snapshot entry is one of exactly two cases.
Entry = Union[ResourceRecord, ResourceGroup]
Snapshot = tuple[Entry, ...]


@dataclass(frozen=True, slots=True)
class Row:
    """One visible line of the resource table."""

    entry: Entry
    depth: int = 0
    group: Optional[str] = None  # parent group name for member rows
    top_index: int = 0
    child_index: Optional[int] = None

    @property
    def is_group(self) -> bool:
        return isinstance(self.entry, ResourceGroup)


class Screen(str, Enum):
    INDEX = "index"
    RESOURCES = "resources"
    LOGS = "logs"


MENU_ITEMS = ("Resources", "Quit")


@dataclass(slots=True)
class NavigationState:
    active_screen: Screen = Screen.INDEX
    selected_index: int = 0
    expanded_groups: set[str] = field(default_factory=set)
    # group-local navigation: (top_index, child_index); child is None outside a group
    top_index: int = 0
    child_index: Optional[int] = None
    menu_index: int = 0
    show_help: bool = False
    quit_requested: bool = False

    @property
    def cursor(self) -> tuple[int, Optional[int]]:
        return self.top_index, self.child_index


@dataclass(frozen=True, slots=True)
class LogBuffer:
    resource_id: str
    resource_name: str = ""
    content: str = ""
    scroll_fraction: float = 1.0
    follow_mode: bool = True
    width: int = 80
    height: int = 20
    lines: tuple[str, ...] = ()


@dataclass(slots=True)
class AppState:
    snapshot: Snapshot = ()
    nav: NavigationState = field(default_factory=NavigationState)
    log: Optional[LogBuffer] = None
    banner: Optional[str] = None
    row_errors: dict[str, str] = field(default_factory=dict)
    log_error: Optional[str] = None
    notice: Optional[str] = None
    last_refresh: Optional[float] = None

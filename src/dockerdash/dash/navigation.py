"""Screen transitions and selection bookkeeping for the dashboard.

Everything here is synchronous and only touches AppState. Anything that needs
the runtime (fetching, start/stop) is returned as an Effect for the controller
to carry out.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from .aggregate import flatten_rows
from .models import (
    MENU_ITEMS,
    AppState,
    LifecycleState,
    NavigationState,
    ResourceGroup,
    ResourceRecord,
    Row,
    Screen,
)


EffectKind = Literal["fetch_list", "fetch_logs", "start", "stop", "quit"]


@dataclass(frozen=True)
class Effect:
    kind: EffectKind
    resource_id: Optional[str] = None
    resource_name: str = ""


def rows(state: AppState) -> list[Row]:
    return flatten_rows(state.snapshot, state.nav.expanded_groups)


def selected_row(state: AppState) -> Optional[Row]:
    rs = rows(state)
    if not rs:
        return None
    idx = min(max(state.nav.selected_index, 0), len(rs) - 1)
    return rs[idx]


def selected_record(state: AppState) -> Optional[ResourceRecord]:
    row = selected_row(state)
    if row is None or row.is_group:
        return None
    return row.entry  # type: ignore[return-value]


def _row_index(rs: list[Row], top: int, child: Optional[int]) -> Optional[int]:
    for i, r in enumerate(rs):
        if r.top_index == top and r.child_index == child:
            return i
    return None


def clamp(state: AppState) -> None:
    """Bring the cursor back inside the current row list after it shrank.

    `selected_index` is only ever clamped here; the group-local cursor is
    re-derived from whichever row the index lands on.
    """
    nav = state.nav
    nav.menu_index = min(max(nav.menu_index, 0), len(MENU_ITEMS) - 1)
    rs = rows(state)
    if not rs:
        nav.selected_index = 0
        nav.top_index = 0
        nav.child_index = None
        return

    nav.selected_index = min(max(nav.selected_index, 0), len(rs) - 1)
    row = rs[nav.selected_index]
    nav.top_index = row.top_index
    if nav.child_index is not None:
        # still inside a group only if the index landed on a member row
        nav.child_index = row.child_index


def toggle_group(nav: NavigationState, name: str) -> None:
    if name in nav.expanded_groups:
        nav.expanded_groups.discard(name)
    else:
        nav.expanded_groups.add(name)


def move(state: AppState, delta: int) -> None:
    nav = state.nav
    if nav.active_screen is Screen.INDEX:
        nav.menu_index = min(max(nav.menu_index + delta, 0), len(MENU_ITEMS) - 1)
        return
    if nav.active_screen is not Screen.RESOURCES:
        return
    if nav.child_index is not None:
        entry = state.snapshot[nav.top_index] if nav.top_index < len(state.snapshot) else None
        if not isinstance(entry, ResourceGroup):
            nav.child_index = None
            clamp(state)
            return
        child = min(max(nav.child_index + delta, 0), len(entry.members) - 1)
        idx = _row_index(rows(state), nav.top_index, child)
        if idx is not None:
            nav.selected_index = idx
        clamp(state)
        return
    nav.selected_index += delta
    clamp(state)


def enter_group(state: AppState) -> None:
    """Start navigating inside the selected group (expanding it if needed)."""
    nav = state.nav
    if nav.active_screen is not Screen.RESOURCES or nav.child_index is not None:
        return
    row = selected_row(state)
    if row is None:
        return
    if row.is_group:
        nav.expanded_groups.add(row.entry.name)
        idx = _row_index(rows(state), row.top_index, 0)
        if idx is None:
            return
        nav.selected_index = idx
    elif row.child_index is None:
        return
    nav.child_index = 0
    clamp(state)


def leave_group(state: AppState) -> None:
    nav = state.nav
    if nav.active_screen is not Screen.RESOURCES:
        return
    row = selected_row(state)
    if row is None or row.child_index is None:
        return
    nav.child_index = None
    idx = _row_index(rows(state), row.top_index, None)
    nav.selected_index = idx if idx is not None else 0
    clamp(state)


def toggle_run_action(record: ResourceRecord) -> Optional[EffectKind]:
    """Running stops, Exited starts; every other state is left alone."""
    if record.lifecycle_state is LifecycleState.RUNNING:
        return "stop"
    if record.lifecycle_state is LifecycleState.EXITED:
        return "start"
    return None


def select(state: AppState) -> list[Effect]:
    """Enter key: drill into the menu item, toggle a group, or open logs."""
    nav = state.nav
    if nav.active_screen is Screen.INDEX:
        item = MENU_ITEMS[nav.menu_index]
        if item == "Resources":
            nav.active_screen = Screen.RESOURCES
            clamp(state)
            return [Effect("fetch_list")]
        return request_quit(state)

    if nav.active_screen is Screen.RESOURCES:
        row = selected_row(state)
        if row is None:
            return []
        if row.is_group:
            toggle_group(nav, row.entry.name)
            clamp(state)
            return []
        rec = row.entry
        nav.active_screen = Screen.LOGS
        return [Effect("fetch_logs", rec.id, rec.display_name)]
    return []


def back(state: AppState) -> list[Effect]:
    nav = state.nav
    if nav.active_screen is Screen.LOGS:
        nav.active_screen = Screen.RESOURCES
        clamp(state)
    elif nav.active_screen is Screen.RESOURCES:
        if nav.child_index is not None:
            leave_group(state)
        else:
            nav.active_screen = Screen.INDEX
    return []


def toggle_run(state: AppState) -> list[Effect]:
    if state.nav.active_screen is not Screen.RESOURCES:
        return []
    rec = selected_record(state)
    if rec is None:
        return []
    kind = toggle_run_action(rec)
    return [Effect(kind, rec.id, rec.display_name)] if kind else []


def start_selected(state: AppState) -> list[Effect]:
    if state.nav.active_screen is not Screen.RESOURCES:
        return []
    rec = selected_record(state)
    return [Effect("start", rec.id, rec.display_name)] if rec else []


def stop_selected(state: AppState) -> list[Effect]:
    if state.nav.active_screen is not Screen.RESOURCES:
        return []
    rec = selected_record(state)
    return [Effect("stop", rec.id, rec.display_name)] if rec else []


def toggle_help(state: AppState) -> None:
    state.nav.show_help = not state.nav.show_help


def request_quit(state: AppState) -> list[Effect]:
    state.nav.quit_requested = True
    return [Effect("quit")]

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import ContentSwitcher, DataTable, Footer, Label, Static

from . import navigation, viewport
from .aggregate import format_ports
from .controller import DashController
from .models import MENU_ITEMS, ResourceGroup, Row, Screen
from ..daemon import wait_for_daemon
from ..docker_cli import DockerClient
from ..errors import SetupFatal
from ..util import DashSettings, configure_logging


logger = logging.getLogger(__name__)

RUNNING_GLYPH = "⏺"

# header + banner + log title/footer + message + footer
LOG_CHROME_ROWS = 8

EXTENDED_HELP = (
    "↑/k ↓/j move   enter open/toggle group   →/l enter group   ←/h leave group\n"
    "s start   d stop   t start/stop   r refresh   esc back   q quit\n"
    "logs: pgup/pgdn page   g/home top   G/end bottom   f follow on/off"
)


class DockerDashApp(App):
    CSS_PATH = Path(__file__).with_name("app.tcss")
    TITLE = "Docker Dash"
    BINDINGS = [
        Binding("up,k", "move(-1)", "Up", show=False, priority=True),
        Binding("down,j", "move(1)", "Down", show=False, priority=True),
        Binding("enter", "select", "Open", priority=True),
        Binding("right,l", "group_in", "Into group", show=False, priority=True),
        Binding("left,h", "group_out", "Out of group", show=False, priority=True),
        Binding("s", "start", "Start"),
        Binding("d", "stop", "Stop"),
        Binding("t", "toggle_run", "Start/Stop"),
        Binding("r", "refresh", "Refresh"),
        Binding("pageup", "page(-1)", "Page up", show=False, priority=True),
        Binding("pagedown", "page(1)", "Page down", show=False, priority=True),
        Binding("home,g", "top", "Top", show=False, priority=True),
        Binding("end,G", "bottom", "Bottom", show=False, priority=True),
        Binding("f", "follow", "Follow"),
        Binding("escape", "back", "Back", priority=True),
        Binding("question_mark", "help", "Help"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, controller: DashController) -> None:
        super().__init__()
        self.controller = controller
        controller.on_change = self._render_state
        self.table: DataTable | None = None
        self._mounted = False

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal():
                yield Label("DOCKER DASH", id="title")
                yield Label("", id="status")
        yield Static("", id="banner")
        with ContentSwitcher(initial=Screen.INDEX.value, id="screens"):
            yield Static("", id=Screen.INDEX.value)
            with Container(id=Screen.RESOURCES.value):
                self.table = DataTable(zebra_stripes=True, cursor_type="row", id="table")
                self.table.add_columns(RUNNING_GLYPH, "Name", "Container ID", "Image", "Ports", "Status", "State", "Type")
                self.table.can_focus = False
                yield self.table
            with Container(id=Screen.LOGS.value):
                yield Label("", id="log-title")
                yield Static("", id="log-body")
                yield Label("", id="log-footer")
        yield Static("", id="message")
        yield Static("", id="help")
        yield Footer()

    async def on_mount(self) -> None:
        self._mounted = True
        self._resize_viewport(self.size.width, self.size.height)
        self.set_interval(self.controller.settings.refresh_interval, self._tick)
        self.controller.refresh()
        self._render_state()

    async def on_unmount(self) -> None:
        self.controller.scheduler.cancel()

    def on_resize(self, event: events.Resize) -> None:
        self._resize_viewport(event.size.width, event.size.height)

    def _resize_viewport(self, width: int, height: int) -> None:
        self.controller.set_viewport_size(width - 2, height - LOG_CHROME_ROWS)

    def _tick(self) -> None:
        self.controller.tick()

    # -- actions -----------------------------------------------------------

    def action_move(self, delta: int) -> None:
        self.controller.move(delta)

    def action_page(self, pages: int) -> None:
        self.controller.page(pages)

    def action_top(self) -> None:
        self.controller.top()

    def action_bottom(self) -> None:
        self.controller.bottom()

    def action_follow(self) -> None:
        self.controller.toggle_follow()

    def action_select(self) -> None:
        self.controller.select()
        if self.controller.state.nav.quit_requested:
            self.exit(0)

    def action_back(self) -> None:
        self.controller.back()

    def action_group_in(self) -> None:
        self.controller.group_in()

    def action_group_out(self) -> None:
        self.controller.group_out()

    def action_start(self) -> None:
        self.controller.start_selected()

    def action_stop(self) -> None:
        self.controller.stop_selected()

    def action_toggle_run(self) -> None:
        self.controller.toggle_run()

    def action_refresh(self) -> None:
        self.controller.refresh()

    def action_help(self) -> None:
        self.controller.toggle_help()

    async def action_quit(self) -> None:
        self.controller.quit()
        self.exit(0)

    # -- rendering ---------------------------------------------------------

    def _render_state(self) -> None:
        if not self._mounted:
            return
        st = self.controller.state
        nav = st.nav
        try:
            switcher = self.query_one("#screens", ContentSwitcher)
        except Exception:
            return
        switcher.current = nav.active_screen.value

        banner = self.query_one("#banner", Static)
        banner.update(Text(st.banner or "", style="bold white on red"))
        banner.display = bool(st.banner)

        stamp = time.strftime("%H:%M:%S", time.localtime(st.last_refresh)) if st.last_refresh else "-"
        self.query_one("#status", Label).update(f"updated {stamp}")

        if nav.active_screen is Screen.INDEX:
            self._render_index()
        elif nav.active_screen is Screen.RESOURCES:
            self._render_table()
        else:
            self._render_logs()

        self.query_one("#message", Static).update(st.notice or "")
        helpw = self.query_one("#help", Static)
        helpw.update(EXTENDED_HELP)
        helpw.display = nav.show_help

    def _render_index(self) -> None:
        nav = self.controller.state.nav
        lines = []
        for i, item in enumerate(MENU_ITEMS):
            cursor = ">" if i == nav.menu_index else " "
            lines.append(f"{cursor} {item}")
        self.query_one(f"#{Screen.INDEX.value}", Static).update("\n".join(lines))

    def _row_cells(self, row: Row) -> list:
        st = self.controller.state
        entry = row.entry
        indicator = Text(RUNNING_GLYPH, style="green") if entry.active else Text(" ")
        pad = "  " * row.depth
        if isinstance(entry, ResourceGroup):
            expanded = entry.name in st.nav.expanded_groups
            marker = "▾ " if expanded else "▸ "
            return [indicator, marker + entry.name, entry.group_id, "", "", f"{len(entry.members)} containers", "", "stack"]
        status: str | Text = entry.status_text
        err = st.row_errors.get(entry.id)
        if err:
            status = Text(err, style="red")
        return [
            indicator,
            pad + entry.display_name,
            pad + entry.id[:12],
            pad + entry.image_ref,
            pad + format_ports(entry.port_bindings),
            status,
            entry.lifecycle_state.value,
            "container",
        ]

    def _render_table(self) -> None:
        assert self.table
        st = self.controller.state
        self.table.clear(columns=False)
        for row in navigation.rows(st):
            self.table.add_row(*self._row_cells(row))
        if self.table.row_count:
            self.table.move_cursor(row=st.nav.selected_index, animate=False)

    def _render_logs(self) -> None:
        st = self.controller.state
        buf = st.log
        if buf is None:
            return
        self.query_one("#log-title", Label).update(Text(f" {buf.resource_name or buf.resource_id[:12]} ", style="bold"))
        body = "\n".join(viewport.visible_lines(buf)) if buf.lines else "(no output yet)"
        self.query_one("#log-body", Static).update(Text(body))
        info = f"{viewport.scroll_percent(buf) * 100:3.0f}%"
        if buf.follow_mode:
            info += "  follow"
        footer = Text(info)
        if st.log_error:
            footer.append(f"  {st.log_error}", style="red")
        self.query_one("#log-footer", Label).update(footer)


def run_dash(settings: DashSettings, echo=print) -> int:
    """Probe the daemon, then run the dashboard. Returns the process exit code."""
    configure_logging(settings.log_file, settings.verbose)
    try:
        client = DockerClient.create(settings.docker_bin)
        asyncio.run(
            wait_for_daemon(
                client,
                launch_cmd=settings.launch_cmd if settings.launch else None,
                interval=settings.probe_interval,
                timeout=settings.wait_timeout,
                echo=echo,
            )
        )
    except SetupFatal as e:
        echo(str(e))
        return 1
    except KeyboardInterrupt:
        echo("Aborted while waiting for Docker.")
        return 1

    app = DockerDashApp(DashController(client, settings))
    app.run()
    return app.return_code or 0

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from . import navigation, viewport
from .aggregate import aggregate_rows
from .models import AppState, Screen
from .navigation import Effect
from .scheduler import RefreshScheduler
from ..errors import RuntimeCommandError, RuntimeUnavailable
from ..util import DashSettings


logger = logging.getLogger(__name__)


class DashController:
    """Owns the single AppState and everything that mutates it.

    All methods run on the one event loop. Key handlers are synchronous; any
    runtime call they cause is started as a task whose completion handler
    updates the state and calls `on_change`.
    """

    def __init__(self, client, settings: Optional[DashSettings] = None, on_change: Optional[Callable[[], None]] = None) -> None:
        self.client = client
        self.settings = settings or DashSettings()
        self.on_change = on_change
        self.state = AppState()
        self.scheduler = RefreshScheduler(self.refresh_once)
        self.viewport_size: tuple[int, int] = (80, 20)
        self._commands: set[asyncio.Task] = set()

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

    # -- refresh -----------------------------------------------------------

    def tick(self) -> Optional[asyncio.Task]:
        return self.scheduler.tick()

    def refresh(self) -> asyncio.Task:
        return self.scheduler.request()

    async def refresh_once(self) -> None:
        st = self.state
        if st.nav.active_screen is Screen.LOGS and st.log is not None:
            await self._refresh_logs(st.log.resource_id)
        else:
            await self._refresh_list()

    async def _refresh_list(self) -> None:
        st = self.state
        try:
            raw = await self.client.list_resources(self.settings.include_stopped)
        except RuntimeUnavailable as e:
            logger.warning("docker unavailable: %s", e)
            st.banner = f"Docker unavailable: {e}"
            self._notify()
            return
        except RuntimeCommandError as e:
            logger.warning("listing containers failed: %s", e)
            st.notice = f"refresh failed: {e}"
            self._notify()
            return
        st.snapshot = aggregate_rows(raw, self.settings.group_label)
        st.banner = None
        st.notice = None
        st.row_errors.clear()
        st.last_refresh = time.time()
        navigation.clamp(st)
        self._notify()

    async def _refresh_logs(self, resource_id: str) -> None:
        st = self.state
        try:
            content = await self.client.fetch_logs(resource_id, self.settings.log_window, self.settings.timestamps)
        except RuntimeUnavailable as e:
            logger.warning("docker unavailable: %s", e)
            if self._log_target() == resource_id:
                st.banner = f"Docker unavailable: {e}"
                self._notify()
            return
        except RuntimeCommandError as e:
            if self._log_target() == resource_id:
                st.log_error = str(e)
                self._notify()
            return
        if self._log_target() != resource_id:
            logger.debug("discarding late logs for %s", resource_id)
            return
        assert st.log is not None
        st.log = viewport.apply(st.log, content)
        st.log_error = None
        st.banner = None
        st.last_refresh = time.time()
        self._notify()

    def _log_target(self) -> Optional[str]:
        st = self.state
        if st.nav.active_screen is Screen.LOGS and st.log is not None:
            return st.log.resource_id
        return None

    # -- effects -----------------------------------------------------------

    def _run(self, effects: list[Effect]) -> Optional[asyncio.Task]:
        last: Optional[asyncio.Task] = None
        for eff in effects:
            if eff.kind == "fetch_list":
                last = self.scheduler.request()
            elif eff.kind == "fetch_logs":
                w, h = self.viewport_size
                self.state.log = viewport.new_buffer(eff.resource_id or "", eff.resource_name, w, h)
                self.state.log_error = None
                last = self.scheduler.request()
            elif eff.kind in ("start", "stop"):
                last = asyncio.get_running_loop().create_task(self._command(eff))
                self._commands.add(last)
                last.add_done_callback(self._commands.discard)
        self._notify()
        return last

    async def _command(self, eff: Effect) -> None:
        rid = eff.resource_id or ""
        st = self.state
        try:
            if eff.kind == "start":
                await self.client.start_resource(rid)
            else:
                await self.client.stop_resource(rid)
        except RuntimeCommandError as e:
            logger.warning("%s %s failed: %s", eff.kind, rid[:12], e)
            st.row_errors[rid] = f"{eff.kind} failed: {e}"
        except RuntimeUnavailable as e:
            logger.warning("docker unavailable: %s", e)
            st.banner = f"Docker unavailable: {e}"
        else:
            logger.info("%s %s (%s)", eff.kind, eff.resource_name, rid[:12])
            st.notice = f"{eff.kind} {eff.resource_name}"
        self._notify()

    async def wait_commands(self) -> None:
        if self._commands:
            await asyncio.gather(*list(self._commands))

    # -- input -------------------------------------------------------------

    def move(self, delta: int) -> None:
        st = self.state
        if st.nav.active_screen is Screen.LOGS:
            if st.log is not None:
                st.log = viewport.scroll(st.log, delta)
        else:
            navigation.move(st, delta)
        self._notify()

    def page(self, pages: int) -> None:
        st = self.state
        if st.nav.active_screen is Screen.LOGS and st.log is not None:
            st.log = viewport.page(st.log, pages)
            self._notify()
        else:
            self.move(pages * max(1, self.viewport_size[1]))

    def top(self) -> None:
        st = self.state
        if st.nav.active_screen is Screen.LOGS and st.log is not None:
            st.log = viewport.goto_top(st.log)
            self._notify()

    def bottom(self) -> None:
        st = self.state
        if st.nav.active_screen is Screen.LOGS and st.log is not None:
            st.log = viewport.goto_bottom(st.log)
            self._notify()

    def toggle_follow(self) -> None:
        st = self.state
        if st.nav.active_screen is Screen.LOGS and st.log is not None:
            st.log = viewport.toggle_follow(st.log)
            self._notify()

    def select(self) -> Optional[asyncio.Task]:
        return self._run(navigation.select(self.state))

    def back(self) -> None:
        st = self.state
        if st.nav.active_screen is Screen.LOGS:
            st.log = None
            st.log_error = None
        navigation.back(st)
        self._notify()

    def group_in(self) -> None:
        navigation.enter_group(self.state)
        self._notify()

    def group_out(self) -> None:
        navigation.leave_group(self.state)
        self._notify()

    def toggle_run(self) -> Optional[asyncio.Task]:
        return self._run(navigation.toggle_run(self.state))

    def start_selected(self) -> Optional[asyncio.Task]:
        return self._run(navigation.start_selected(self.state))

    def stop_selected(self) -> Optional[asyncio.Task]:
        return self._run(navigation.stop_selected(self.state))

    def toggle_help(self) -> None:
        navigation.toggle_help(self.state)
        self._notify()

    def quit(self) -> None:
        navigation.request_quit(self.state)
        self.scheduler.cancel()

    def set_viewport_size(self, width: int, height: int) -> None:
        self.viewport_size = (max(1, width), max(1, height))
        if self.state.log is not None:
            self.state.log = viewport.resize(self.state.log, *self.viewport_size)
            self._notify()

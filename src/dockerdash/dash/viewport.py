"""Log viewport: a scroll position over wrapped log text that is replaced on every refresh.

The position is kept as a fraction of the scrollable range. A refresh pins the
view to the bottom when follow mode is on, or when the operator was already
near the bottom; otherwise the fraction is left alone so history being read is
not yanked away.
"""

from __future__ import annotations

import textwrap
from dataclasses import replace

from .models import LogBuffer


NEAR_BOTTOM = 0.90


def wrap_content(content: str, width: int) -> tuple[str, ...]:
    width = max(1, int(width))
    out: list[str] = []
    for line in content.splitlines():
        line = line.rstrip("\r").expandtabs()
        if not line.strip():
            out.append("")
            continue
        out.extend(
            textwrap.wrap(line, width=width, break_long_words=True, break_on_hyphens=False, drop_whitespace=False)
            or [""]
        )
    return tuple(out)


def new_buffer(resource_id: str, resource_name: str = "", width: int = 80, height: int = 20) -> LogBuffer:
    return LogBuffer(resource_id=resource_id, resource_name=resource_name, width=max(1, width), height=max(1, height))


def max_offset(buf: LogBuffer) -> int:
    return max(0, len(buf.lines) - buf.height)


def offset(buf: LogBuffer) -> int:
    return round(buf.scroll_fraction * max_offset(buf))


def visible_lines(buf: LogBuffer) -> tuple[str, ...]:
    off = offset(buf)
    return buf.lines[off : off + buf.height]


def scroll_percent(buf: LogBuffer) -> float:
    if max_offset(buf) == 0:
        return 1.0
    return offset(buf) / max_offset(buf)


def apply(buf: LogBuffer, new_content: str) -> LogBuffer:
    fraction = buf.scroll_fraction
    if buf.follow_mode or fraction >= NEAR_BOTTOM:
        fraction = 1.0
    return replace(buf, content=new_content, lines=wrap_content(new_content, buf.width), scroll_fraction=fraction)


def resize(buf: LogBuffer, width: int, height: int) -> LogBuffer:
    width, height = max(1, width), max(1, height)
    if width == buf.width and height == buf.height:
        return buf
    return replace(buf, width=width, height=height, lines=wrap_content(buf.content, width))


def scroll(buf: LogBuffer, delta: int) -> LogBuffer:
    mo = max_offset(buf)
    if mo == 0 or delta == 0:
        return buf
    off = min(max(offset(buf) + delta, 0), mo)
    follow = buf.follow_mode if delta > 0 else False
    return replace(buf, scroll_fraction=off / mo, follow_mode=follow)


def page(buf: LogBuffer, pages: int) -> LogBuffer:
    return scroll(buf, pages * buf.height)


def goto_top(buf: LogBuffer) -> LogBuffer:
    return replace(buf, scroll_fraction=0.0, follow_mode=False)


def goto_bottom(buf: LogBuffer) -> LogBuffer:
    return replace(buf, scroll_fraction=1.0, follow_mode=True)


def toggle_follow(buf: LogBuffer) -> LogBuffer:
    if buf.follow_mode:
        return replace(buf, follow_mode=False)
    return goto_bottom(buf)

from dataclasses import replace

import pytest

from dockerdash.dash import viewport
from dockerdash.dash.models import LogBuffer


def _content(n: int) -> str:
    return "\n".join(f"line{i}" for i in range(n))


def _buf(n: int = 30, height: int = 10, **kw) -> LogBuffer:
    buf = viewport.new_buffer("abc", "web", width=80, height=height)
    buf = viewport.apply(buf, _content(n))
    return replace(buf, **kw) if kw else buf


def test_new_buffer_starts_following() -> None:
    buf = viewport.new_buffer("abc", "web")
    assert buf.follow_mode is True
    assert buf.scroll_fraction == 1.0
    assert buf.lines == ()


def test_follow_mode_pins_to_bottom() -> None:
    buf = _buf(follow_mode=True, scroll_fraction=0.2)
    out = viewport.apply(buf, _content(40))
    assert out.scroll_fraction == 1.0
    assert out.content == _content(40)


def test_fraction_kept_when_reading_history() -> None:
    buf = _buf(follow_mode=False, scroll_fraction=0.3)
    out = viewport.apply(buf, _content(50))
    assert out.scroll_fraction == 0.3
    assert out.follow_mode is False


@pytest.mark.parametrize("fraction", [0.90, 0.95, 1.0])
def test_near_bottom_pins_even_without_follow(fraction: float) -> None:
    buf = _buf(follow_mode=False, scroll_fraction=fraction)
    assert viewport.apply(buf, _content(50)).scroll_fraction == 1.0


def test_wrap_splits_long_lines() -> None:
    assert viewport.wrap_content("abcdefghij\nxy", 5) == ("abcde", "fghij", "xy")
    assert viewport.wrap_content("a\n\nb", 5) == ("a", "", "b")


def test_resize_rewraps_content() -> None:
    buf = viewport.apply(viewport.new_buffer("abc", width=80, height=5), "abcdefghij")
    assert buf.lines == ("abcdefghij",)
    small = viewport.resize(buf, 5, 5)
    assert small.lines == ("abcde", "fghij")
    assert viewport.resize(small, 5, 5) is small


def test_scroll_up_leaves_follow_mode() -> None:
    buf = _buf(30, 10)
    out = viewport.scroll(buf, -5)
    assert out.scroll_fraction == 0.75
    assert out.follow_mode is False
    assert viewport.offset(out) == 15


def test_scroll_is_clamped() -> None:
    buf = _buf(30, 10)
    assert viewport.scroll(buf, -100).scroll_fraction == 0.0
    assert viewport.scroll(buf, 100).scroll_fraction == 1.0


def test_page_moves_by_height() -> None:
    buf = _buf(30, 10)
    assert viewport.offset(viewport.page(buf, -1)) == 10


def test_visible_lines_at_bottom() -> None:
    buf = _buf(30, 10)
    assert viewport.visible_lines(buf) == tuple(f"line{i}" for i in range(20, 30))


def test_short_content_fits_entirely() -> None:
    buf = _buf(3, 10, scroll_fraction=0.0, follow_mode=False)
    assert viewport.max_offset(buf) == 0
    assert viewport.scroll_percent(buf) == 1.0
    assert len(viewport.visible_lines(buf)) == 3
    assert viewport.scroll(buf, -1) is buf


def test_goto_top_and_bottom() -> None:
    top = viewport.goto_top(_buf())
    assert top.scroll_fraction == 0.0
    assert top.follow_mode is False
    assert viewport.visible_lines(top)[0] == "line0"

    bottom = viewport.goto_bottom(top)
    assert bottom.scroll_fraction == 1.0
    assert bottom.follow_mode is True


def test_toggle_follow() -> None:
    buf = _buf(scroll_fraction=0.2, follow_mode=False)
    on = viewport.toggle_follow(buf)
    assert on.follow_mode is True
    assert on.scroll_fraction == 1.0
    off = viewport.toggle_follow(on)
    assert off.follow_mode is False
    assert off.scroll_fraction == 1.0

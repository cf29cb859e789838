"""Shared renderables: bordered panes, windowed lists and scroll views."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console, ConsoleOptions, RenderableType, RenderResult
from rich.panel import Panel
from rich.segment import Segment
from rich.style import Style
from rich.text import Text

from lazypulumi.components import ScrollState
from lazypulumi.tui.theme import (
    ACCENT_LAVENDER,
    BORDER,
    BORDER_FOCUSED,
    DIM,
    SELECTED_BG,
)

SCROLLBAR_TRACK = Style(color=DIM)
SCROLLBAR_THUMB = Style(color=ACCENT_LAVENDER)
SELECTED = Style(bgcolor=SELECTED_BG, bold=True)


def pane(
    body: RenderableType,
    title: str | None = None,
    *,
    focused: bool = False,
    subtitle: str | None = None,
) -> Panel:
    return Panel(
        body,
        title=f" {title} " if title else None,
        title_align="left",
        subtitle=subtitle,
        subtitle_align="right",
        border_style=BORDER_FOCUSED if focused else BORDER,
        padding=(0, 1),
    )


def dim(text: str) -> Text:
    return Text(text, style=DIM)


def scrollbar_geometry(total: int, viewport: int, offset: int) -> tuple[int, int] | None:
    """Thumb length and position, or None when everything fits."""
    if viewport <= 0 or total <= viewport:
        return None
    max_scroll = total - viewport
    thumb = max(1, viewport * viewport // total)
    pos = min(offset, max_scroll) * (viewport - thumb) // max_scroll
    return thumb, pos


class Sized:
    """Render a child at a fixed height regardless of the caller's options."""

    def __init__(self, renderable: RenderableType, height: int) -> None:
        self.renderable = renderable
        self.height = height

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        lines = console.render_lines(
            self.renderable, options.update(height=self.height), pad=True,
        )
        for line in lines[: self.height]:
            yield from line
            yield Segment.line()


class ScrollView:
    """A vertically scrolled window over any renderable.

    The content is rendered at the available width to get the exact
    wrapped line count; the scroll state is resolved against it and a
    one-column scrollbar is drawn on the right.
    """

    def __init__(
        self,
        renderable: RenderableType,
        scroll: ScrollState,
        *,
        scrollbar: bool = True,
    ) -> None:
        self.renderable = renderable
        self.scroll = scroll
        self.scrollbar = scrollbar

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        height = options.height or console.height
        bar = 1 if self.scrollbar else 0
        width = max(1, options.max_width - bar)
        lines = console.render_lines(
            self.renderable, options.update(width=width, height=None), pad=True,
        )
        total = len(lines)
        offset = self.scroll.resolve(total - height, height)
        visible = lines[offset : offset + height]
        geometry = scrollbar_geometry(total, height, offset) if self.scrollbar else None
        blank = [Segment(" " * width)]
        for row in range(height):
            yield from visible[row] if row < len(visible) else blank
            if self.scrollbar:
                if geometry is None:
                    yield Segment(" ")
                else:
                    thumb, pos = geometry
                    in_thumb = pos <= row < pos + thumb
                    yield Segment("█" if in_thumb else "│", SCROLLBAR_THUMB if in_thumb else SCROLLBAR_TRACK)
            yield Segment.line()


class ListView:
    """Single-line rows with the selected one highlighted and kept in view."""

    def __init__(
        self,
        rows: Sequence[Text],
        selected: int | None,
        *,
        empty: str = "No items",
    ) -> None:
        self.rows = rows
        self.selected = selected
        self.empty = empty

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        height = options.height or len(self.rows) or 1
        width = options.max_width
        if not self.rows:
            yield dim(self.empty)
            return
        selected = self.selected if self.selected is not None else 0
        start = max(0, selected - height + 1)
        for index, row in enumerate(self.rows[start : start + height], start=start):
            line = row.copy()
            line.no_wrap = True
            line.overflow = "ellipsis"
            line.truncate(width, overflow="ellipsis", pad=True)
            if index == self.selected:
                line.stylize(SELECTED)
            yield line

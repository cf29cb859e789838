"""Header tab strip and contextual footer."""

from __future__ import annotations

from rich.console import RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from lazypulumi.state import TAB_ORDER, AppState
from lazypulumi.tui.theme import ACCENT_AMBER, ACCENT_LAVENDER, BORDER, DIM


def render_header(state: AppState) -> RenderableType:
    tabs = Text()
    for index, tab in enumerate(TAB_ORDER):
        if index:
            tabs.append(" │ ", style=DIM)
        if tab is state.tab:
            tabs.append(f" {tab.title} ", style=f"bold reverse {ACCENT_LAVENDER}")
        else:
            tabs.append(f" {tab.title} ")

    org = Text()
    org.append("org: ", style=DIM)
    org.append(state.org or "-", style=f"bold {ACCENT_AMBER}")
    if state.is_loading:
        org.append(f"  {state.spinner.frame}", style=ACCENT_LAVENDER)

    grid = Table.grid(expand=True)
    grid.add_column(ratio=1)
    grid.add_column(justify="right", no_wrap=True)
    grid.add_row(tabs, org)
    return Panel(grid, title=" lazypulumi ", title_align="left", border_style=BORDER, height=3)


def render_footer(state: AppState) -> RenderableType:
    return Text(f" {state.footer_hint()}", style=DIM, no_wrap=True, overflow="ellipsis")

"""Dashboard tab: counts, resource sparkline and recent updates."""

from __future__ import annotations

from rich.color import Color
from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.table import Table
from rich.text import Text
from textual.renderables.sparkline import Sparkline

from lazypulumi.api.types import ResourceSummaryPoint
from lazypulumi.state import AppState
from lazypulumi.tui.render.common import dim, pane
from lazypulumi.tui.theme import ACCENT_AMBER, ACCENT_CYAN, ACCENT_LAVENDER, DIM, TOOL_ERR, TOOL_OK

SYMBOL_STYLES = {"✓": TOOL_OK, "✗": TOOL_ERR, "⟳": ACCENT_AMBER}


def sparkline(values: list[int]) -> Sparkline:
    """One bar per day, shaded from the lowest to the highest count."""
    return Sparkline(
        values,
        width=len(values) or 1,
        min_color=Color.parse(ACCENT_CYAN),
        max_color=Color.parse(ACCENT_LAVENDER),
    )


def _count_card(label: str, value: int, color: str) -> RenderableType:
    text = Text(justify="center")
    text.append(f"{value}\n", style=f"bold {color}")
    text.append(label, style=DIM)
    return pane(text)


def _summary(points: list[ResourceSummaryPoint]) -> RenderableType:
    if not points:
        return dim("No resource history")
    values = [p.resources for p in points]
    text = Text()
    text.append(points[0].date_label(), style=DIM)
    text.append(f"  →  {points[-1].date_label()}", style=DIM)
    text.append(f"   now: {values[-1]}  peak: {max(values)}", style=DIM)
    return Group(sparkline(values), text)


def _recent(state: AppState) -> RenderableType:
    if not state.recent_updates:
        return dim("No recent updates")
    table = Table(expand=True, box=None, header_style=f"bold {DIM}")
    table.add_column("", width=1)
    table.add_column("Stack", ratio=2)
    table.add_column("Kind")
    table.add_column("Changes")
    table.add_column("By")
    for update in state.recent_updates:
        symbol = update.result_symbol
        table.add_row(
            Text(symbol, style=SYMBOL_STYLES.get(symbol, DIM)),
            update.stack_display,
            update.kind,
            update.changes_summary(),
            update.requested_by or "",
        )
    return table


def render_dashboard(state: AppState) -> RenderableType:
    cards = Layout()
    cards.split_row(
        Layout(_count_card("Stacks", len(state.stacks), ACCENT_CYAN)),
        Layout(_count_card("Environments", len(state.environments), ACCENT_LAVENDER)),
        Layout(_count_card("Neo tasks", len(state.tasks), ACCENT_AMBER)),
        Layout(_count_card("Resources", len(state.resources), TOOL_OK)),
    )
    root = Layout()
    root.split_column(
        Layout(cards, size=4),
        Layout(pane(_summary(state.resource_summary), "Resources (30 days)"), size=4),
        Layout(pane(_recent(state), "Recent updates")),
    )
    return root

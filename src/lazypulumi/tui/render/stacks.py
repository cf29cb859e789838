"""Stacks tab."""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.table import Table
from rich.text import Text

from lazypulumi.state import AppState
from lazypulumi.tui.render.common import ListView, dim, pane
from lazypulumi.tui.theme import ACCENT_CYAN, DIM, TOOL_ERR, TOOL_OK

RESULT_STYLES = {"succeeded": TOOL_OK, "failed": TOOL_ERR}


def _details(state: AppState) -> RenderableType:
    stack = state.selected_stack
    if stack is None:
        return dim("Select a stack")

    info = Table.grid(padding=(0, 2))
    info.add_column(style=DIM)
    info.add_column()
    info.add_row("Organization", stack.org_name)
    info.add_row("Project", stack.project_name)
    info.add_row("Stack", Text(stack.stack_name, style=f"bold {ACCENT_CYAN}"))
    info.add_row("Resources", str(stack.resource_count) if stack.resource_count is not None else "-")
    info.add_row("Last update", stack.last_update_formatted())
    if stack.url:
        info.add_row("URL", stack.url)

    if state.stack_updates_for != stack.full_name:
        return Group(info, Text(""), dim("Press Enter or 'u' to load update history"))
    if not state.stack_updates:
        return Group(info, Text(""), dim("No updates recorded"))

    updates = Table(expand=True, box=None, header_style=f"bold {DIM}")
    updates.add_column("Version", justify="right")
    updates.add_column("Result")
    updates.add_column("Started")
    for version, result, started in state.stack_updates:
        updates.add_row(version, Text(result, style=RESULT_STYLES.get(result, "")), started)
    return Group(info, Text(""), Text("Update history", style="bold"), updates)


def render_stacks(state: AppState) -> RenderableType:
    rows = []
    for stack in state.stacks:
        row = Text(f"{stack.project_name}/{stack.stack_name}")
        if stack.resource_count is not None:
            row.append(f"  ({stack.resource_count})", style=DIM)
        rows.append(row)
    root = Layout()
    root.split_row(
        Layout(
            pane(ListView(rows, state.stacks.selected_index, empty="No stacks"),
                 f"Stacks ({len(state.stacks)})", focused=True),
            ratio=2,
        ),
        Layout(pane(_details(state), "Details"), ratio=3),
    )
    return root

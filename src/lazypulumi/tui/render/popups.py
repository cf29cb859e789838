"""Popup renderables for the overlay layer.

``active_popup`` picks the popup to draw using the same precedence the
input router uses, so the visible dialog is always the one receiving keys.
"""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console, ConsoleOptions, Group, RenderableType, RenderResult
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from lazypulumi.api.types import AgentTask
from lazypulumi.components import TextBuffer
from lazypulumi.state import AppState, Tab
from lazypulumi.tui.render.common import ListView, ScrollView, dim
from lazypulumi.tui.theme import (
    ACCENT_AMBER,
    ACCENT_CYAN,
    ACCENT_LAVENDER,
    DIM,
    TEXT,
    TOOL_ERR,
)

HELP_SECTIONS: tuple[tuple[str, tuple[tuple[str, str], ...]], ...] = (
    ("Global", (
        ("Tab / Shift+Tab", "Switch between views"),
        ("o", "Select organization (O in ESC)"),
        ("l", "View application logs"),
        ("?", "Toggle help"),
        ("q / Ctrl+C", "Quit application"),
        ("r", "Refresh data"),
        ("Esc", "Close popup / Cancel"),
    )),
    ("Navigation", (
        ("j / ↓", "Move down"),
        ("k / ↑", "Move up"),
        ("g / Home", "Go to first item"),
        ("G / End", "Go to last item"),
        ("Enter", "Select / Confirm"),
    )),
    ("Stacks View", (
        ("Enter / u", "View update history"),
    )),
    ("Environment View", (
        ("Enter", "Load environment definition"),
        ("o", "Open & resolve environment values"),
        ("e", "Edit environment definition"),
        ("← / →", "Switch panes"),
    )),
    ("NEO View", (
        ("n", "Start new task"),
        ("i", "Focus input field"),
        ("/", "Insert a slash command"),
        ("Enter", "Send message"),
        ("d", "Task details"),
        ("Esc", "Unfocus input / show tasks"),
        ("Page Up/Down", "Scroll messages"),
    )),
    ("Platform View", (
        ("← / → / 1-3", "Switch between services, components, templates"),
        ("j / k", "Scroll description"),
    )),
)


@dataclass(frozen=True)
class Popup:
    title: str
    body: RenderableType
    width: int
    height: int
    border: str = ACCENT_LAVENDER

    def panel(self) -> Panel:
        return Panel(
            self.body,
            title=f" {self.title} ",
            border_style=self.border,
            padding=(0, 1),
            expand=True,
        )


def help_body() -> RenderableType:
    table = Table.grid(padding=(0, 2))
    table.add_column(style=f"bold {ACCENT_CYAN}", no_wrap=True, min_width=16)
    table.add_column(style=TEXT)
    for title, keys in HELP_SECTIONS:
        table.add_row(Text(title, style=f"bold {ACCENT_AMBER}"), "")
        for key, description in keys:
            table.add_row(f"  {key}", description)
        table.add_row("", "")
    return Group(table, dim(" Press ? or Esc to close "))


def task_details_body(task: AgentTask | None) -> RenderableType:
    if task is None:
        return dim("Loading task details...")
    facts = Table.grid(padding=(0, 2))
    facts.add_column(style=DIM, no_wrap=True)
    facts.add_column()
    facts.add_row("Name", Text(task.display_name, style=f"bold {ACCENT_CYAN}"))
    facts.add_row("ID", task.id)
    facts.add_row("Status", task.status or "unknown")
    facts.add_row("Created", task.created_at or "-")
    facts.add_row("Updated", task.updated_at or "-")
    if task.started_by is not None:
        facts.add_row("Started by", task.started_by.display)
    if task.is_shared is not None:
        facts.add_row("Shared", "yes" if task.is_shared else "no")
    if task.url:
        facts.add_row("URL", task.url)

    parts: list[RenderableType] = [facts]
    if task.linked_prs:
        parts.append(Text("\nLinked pull requests", style="bold"))
        for pr in task.linked_prs:
            line = Text(f"  #{pr.number} " if pr.number is not None else "  ")
            line.append(pr.title or "", style=TEXT)
            if pr.state:
                line.append(f" [{pr.state}]", style=DIM)
            if pr.repository:
                line.append(f" {pr.repository}", style=DIM)
            parts.append(line)
    if task.entities:
        parts.append(Text("\nEntities", style="bold"))
        parts.extend(Text(f"  {entity.describe()}") for entity in task.entities)
    if task.policies:
        parts.append(Text("\nPolicies", style="bold"))
        for policy in task.policies:
            line = Text(f"  {policy.name or 'policy'}")
            if policy.pack_name:
                line.append(f" ({policy.pack_name})", style=DIM)
            if policy.enforcement_level:
                line.append(f" {policy.enforcement_level}", style=ACCENT_AMBER)
            parts.append(line)
    return Group(*parts)


class EditorView:
    """Text buffer with line numbers; keeps the cursor row on screen."""

    def __init__(self, buffer: TextBuffer) -> None:
        self.buffer = buffer

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        height = options.height or console.height
        buf = self.buffer
        start = max(0, buf.row - height + 1)
        gutter = len(str(len(buf.lines))) + 1
        for index in range(start, min(len(buf.lines), start + height)):
            line = Text(f"{index + 1:>{gutter}} ", style=DIM, no_wrap=True, overflow="crop")
            content = buf.lines[index]
            if index == buf.row:
                line.append(content[: buf.col], style=TEXT)
                line.append(content[buf.col : buf.col + 1] or " ", style="reverse")
                line.append(content[buf.col + 1 :], style=TEXT)
            else:
                line.append(content, style=TEXT)
            yield line


def org_picker_body(state: AppState) -> RenderableType:
    picker = state.org_picker
    if picker is None:
        return dim("No organizations")
    rows = []
    for index, org in enumerate(picker):
        row = Text("→ " if index == picker.selected_index else "  ")
        row.append(org)
        if org == state.org:
            row.append(" ✓", style=ACCENT_CYAN)
        rows.append(row)
    return ListView(rows, picker.selected_index, empty="No organizations")


def logs_body(state: AppState) -> RenderableType:
    lines = state.log_buffer.lines() if state.log_buffer is not None else []
    if not lines:
        return dim("No log records yet")
    return ScrollView(Text("\n".join(lines), style=TEXT, no_wrap=True, overflow="ellipsis"),
                      state.log_scroll)


def active_popup(state: AppState) -> Popup | None:
    """The modal popup to draw, by the same precedence keys are routed."""
    if state.splash.visible:
        return None
    if state.error is not None:
        body = Group(Text(state.error, style=TEXT), Text(""), dim("Press Esc or Enter to dismiss"))
        return Popup("Error", body, 60, 20, border=TOOL_ERR)
    if state.show_help:
        return Popup("Help - Keyboard Shortcuts", help_body(), 60, 80)
    if state.show_task_details:
        return Popup("Task Details", task_details_body(state.task_details), 70, 70)
    if state.editor is not None:
        editor = state.editor
        title = f"Edit {editor.environment.full_name}"
        if editor.buffer.modified:
            title += " [modified]"
        return Popup(title, EditorView(editor.buffer), 80, 80)
    if state.show_logs:
        return Popup("Logs", logs_body(state), 90, 80)
    if state.org_picker is not None:
        return Popup("Select Organization", org_picker_body(state), 40, 50)
    if state.is_loading and state.tab is not Tab.NEO:
        text = Text(f"{state.spinner.frame} ", style=ACCENT_AMBER)
        text.append(state.spinner.message, style=TEXT)
        return Popup("Loading", text, 40, 10, border=DIM)
    return None

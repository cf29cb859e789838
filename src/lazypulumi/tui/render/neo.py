"""Neo tab: task list, transcript, slash-command picker and input box."""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.markdown import Markdown
from rich.padding import Padding
from rich.text import Text

from lazypulumi.agent import PollMode
from lazypulumi.api.types import AgentMessage, AgentTask, MessageKind
from lazypulumi.slash import SlashPicker
from lazypulumi.state import AppState
from lazypulumi.tui.render.common import ListView, ScrollView, dim, pane
from lazypulumi.tui.theme import (
    ACCENT_AMBER,
    ACCENT_CYAN,
    ASSISTANT_MSG,
    DIM,
    TEXT,
    TOOL_ERR,
    TOOL_OK,
    USER_MSG,
)

TOOL_ICON = "🔧"
RESULT_ICON = "📋"
APPROVAL_ICON = "❓"
INFO_ICON = "ℹ️"
THINKING_ICON = "🤔"

TASK_LIST_WIDTH = 36
INPUT_HEIGHT = 3
PICKER_ROWS = 8
RESULT_LINES = 5
RESULT_CHARS = 200


def task_icon(status: str | None, spinner_frame: str = "⠋") -> tuple[str, str]:
    if status == "completed":
        return "✓", TOOL_OK
    if status in ("running", "in_progress"):
        return spinner_frame, ACCENT_AMBER
    if status == "failed":
        return "✗", TOOL_ERR
    return "•", DIM


def _task_row(task: AgentTask, current: bool, frame: str) -> Text:
    icon, style = task_icon(task.status, frame)
    row = Text("→ " if current else "  ")
    row.append(f"{icon} ", style=style)
    row.append(task.display_name)
    return row


def welcome() -> RenderableType:
    text = Text()
    text.append("\n  Welcome to ", style=TEXT)
    text.append("Pulumi NEO", style=f"bold {ASSISTANT_MSG}")
    text.append("!\n\n", style=TEXT)
    text.append("  NEO is your AI infrastructure agent.\n", style=TEXT)
    text.append("  Ask questions about your infrastructure,\n", style=TEXT)
    text.append("  or request help with Pulumi operations.\n\n", style=TEXT)
    text.append("  Examples:\n", style=DIM)
    for example in (
        "List all my AWS S3 buckets",
        "Check for policy violations",
        "Help me optimize my infrastructure",
    ):
        text.append("    • ", style=DIM)
        text.append(f'"{example}"\n', style=TEXT)
    text.append("\n  Press ", style=DIM)
    text.append("n", style=f"bold {ACCENT_CYAN}")
    text.append(" to start a new task, or ", style=DIM)
    text.append("Enter", style=f"bold {ACCENT_CYAN}")
    text.append(" to send a message.", style=DIM)
    return text


def _indented(content: str, style: str, limit: int | None = None) -> Text:
    lines = content.splitlines() or [""]
    if limit is not None:
        lines = lines[:limit]
    return Text("\n".join(f"    {line}" for line in lines), style=style)


def render_message(message: AgentMessage) -> list[RenderableType]:
    kind = message.kind
    if kind is MessageKind.USER:
        return [
            Text("→ You:", style=f"bold {USER_MSG}"),
            _indented(message.content, TEXT),
            Text(""),
        ]
    if kind is MessageKind.ASSISTANT:
        parts: list[RenderableType] = [Text("★ NEO:", style=f"bold {ASSISTANT_MSG}")]
        if message.content:
            parts.append(Padding(Markdown(message.content), (0, 0, 0, 4)))
        for call in message.tool_calls:
            line = Text(f"    {TOOL_ICON} ", style=ACCENT_AMBER)
            line.append("Calling: ", style=DIM)
            line.append(call.name, style=ACCENT_CYAN)
            preview = call.args_preview()
            if preview:
                line.append(f" {preview}", style=DIM)
            parts.append(line)
        parts.append(Text(""))
        return parts
    if kind is MessageKind.TOOL_CALL:
        line = Text(f"  {TOOL_ICON} ", style=ACCENT_AMBER)
        line.append(message.content, style=DIM)
        return [line]
    if kind is MessageKind.TOOL_RESPONSE:
        head = Text(f"  {RESULT_ICON} ", style=TOOL_OK)
        head.append(message.tool_name or "Result", style=ACCENT_CYAN)
        head.append(":", style=DIM)
        content = message.content
        if len(content) > RESULT_CHARS:
            content = content[:RESULT_CHARS] + "..."
        return [head, _indented(content, DIM, RESULT_LINES)]
    if kind is MessageKind.TOOL_ERROR:
        head = Text("  ✗ ", style=TOOL_ERR)
        head.append(message.tool_name or "Tool", style=ACCENT_CYAN)
        head.append(" failed:", style=TOOL_ERR)
        return [head, _indented(message.content, TOOL_ERR)]
    if kind is MessageKind.APPROVAL_REQUEST:
        head = Text(f"  {APPROVAL_ICON} ", style=ACCENT_AMBER)
        head.append("Approval needed: ", style=f"bold {ACCENT_AMBER}")
        return [head, _indented(message.content, TEXT), Text("")]
    line = Text(f"  {INFO_ICON} ", style=DIM)
    line.append(message.content, style=f"italic {ACCENT_CYAN}")
    return [line]


def thinking_line(frame: str) -> Text:
    line = Text(f" {THINKING_ICON} ", style=ASSISTANT_MSG)
    line.append(f"{frame} ", style=ACCENT_AMBER)
    line.append("NEO is thinking", style=TEXT)
    line.append("...", style=DIM)
    return line


def render_transcript(state: AppState) -> RenderableType:
    agent = state.agent
    if not agent.messages and agent.mode is PollMode.IDLE and agent.error is None:
        return welcome()
    parts: list[RenderableType] = []
    for message in agent.messages:
        parts.extend(render_message(message))
    if agent.thinking or agent.mode is PollMode.SENDING:
        parts.append(thinking_line(state.spinner.frame))
    if agent.error:
        parts.append(Text(f" {agent.error}", style=f"bold {TOOL_ERR}"))
    return Group(*parts)


def render_picker(picker: SlashPicker) -> RenderableType:
    rows = []
    for cmd in picker.filtered:
        row = Text(cmd.canonical, style=f"bold {ACCENT_CYAN}")
        if cmd.description:
            row.append(f"  {cmd.description}", style=DIM)
        rows.append(row)
    return pane(ListView(rows, picker.index), "Commands", focused=True)


def render_input(state: AppState) -> RenderableType:
    text_input = state.input
    if text_input.focused:
        value = text_input.value
        cursor = text_input.cursor
        line = Text(value[:cursor], style=TEXT)
        line.append(value[cursor : cursor + 1] or " ", style="reverse")
        line.append(value[cursor + 1 :], style=TEXT)
        return pane(line, "Message (Enter to send, Esc to cancel)", focused=True)
    return pane(dim(text_input.value), "Press 'i' to type, 'n' for new task")


def render_neo(state: AppState) -> RenderableType:
    chat = Layout(name="chat")
    sections = [
        Layout(
            pane(ScrollView(render_transcript(state), state.transcript_scroll), "Chat"),
            name="transcript",
            ratio=1,
        ),
    ]
    if state.input.focused and state.slash.visible:
        rows = min(len(state.slash.filtered), PICKER_ROWS)
        sections.append(Layout(render_picker(state.slash), name="picker", size=rows + 2))
    sections.append(Layout(render_input(state), name="input", size=INPUT_HEIGHT))
    chat.split_column(*sections)

    if not state.show_task_list:
        return chat

    current = state.agent.task_id
    rows = [
        _task_row(task, task.id == current, state.spinner.frame) for task in state.tasks
    ]
    tasks = pane(
        ListView(rows, state.tasks.selected_index, empty="No tasks yet"),
        "NEO Tasks",
        focused=not state.input.focused,
    )
    root = Layout()
    root.split_row(Layout(tasks, name="tasks", size=TASK_LIST_WIDTH), chat)
    return root

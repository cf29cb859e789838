"""Tests for the Rich renderers."""

from __future__ import annotations

import io

import pytest
from rich.console import Console
from rich.text import Text

from lazypulumi.api.types import (
    AgentMessage,
    AgentTask,
    EnvironmentSummary,
    MessageKind,
    OrgStackUpdate,
    RegistryPackage,
    ResourceSummaryPoint,
    Service,
    Stack,
    ToolCall,
)
from lazypulumi.components import ScrollState
from lazypulumi.startup import CheckStatus
from lazypulumi.state import TAB_ORDER, AppState, PlatformView
from lazypulumi.tui.render import active_popup, render_content, render_footer, render_header
from lazypulumi.tui.render.common import ListView, ScrollView, Sized, scrollbar_geometry
from lazypulumi.tui.render.dashboard import sparkline
from lazypulumi.tui.render.neo import render_message, task_icon
from lazypulumi.tui.render.splash import check_marker, render_splash


def _console(width: int = 80, height: int = 24) -> Console:
    return Console(
        file=io.StringIO(), width=width, height=height,
        color_system=None, legacy_windows=False, force_terminal=False,
    )


def _lines(renderable, width: int = 40, height: int = 10) -> list[str]:
    console = _console(width, height)
    rendered = console.render_lines(renderable, console.options.update(height=height))
    return ["".join(segment.text for segment in line) for line in rendered]


def _text(renderables) -> str:
    console = _console(100)
    with console.capture() as capture:
        for r in renderables:
            console.print(r)
    return capture.get()


class TestScrollbarGeometry:
    def test_fits(self):
        assert scrollbar_geometry(10, 10, 0) is None
        assert scrollbar_geometry(5, 0, 0) is None

    def test_top_and_bottom(self):
        assert scrollbar_geometry(100, 10, 0) == (1, 0)
        assert scrollbar_geometry(100, 10, 90) == (1, 9)

    def test_thumb_scales(self):
        thumb, pos = scrollbar_geometry(20, 10, 5)
        assert thumb == 5
        assert pos == 2

    def test_offset_clamped(self):
        assert scrollbar_geometry(20, 10, 500) == (5, 5)


class TestScrollView:
    def test_pinned_shows_tail(self):
        body = Text("\n".join(f"line {n}" for n in range(30)))
        scroll = ScrollState(pinned=True)
        lines = _lines(ScrollView(body, scroll), height=5)
        assert len(lines) == 5
        assert lines[-1].startswith("line 29")
        assert scroll.offset == 25
        assert scroll.max_offset == 25

    def test_offset_window_and_scrollbar(self):
        body = Text("\n".join(f"line {n}" for n in range(30)))
        scroll = ScrollState(offset=3)
        lines = _lines(ScrollView(body, scroll), width=20, height=5)
        assert lines[0].startswith("line 3")
        assert all(len(line) == 20 for line in lines)
        assert lines[0][-1] in "█│"

    def test_short_content_has_blank_bar(self):
        scroll = ScrollState()
        lines = _lines(ScrollView(Text("only"), scroll), width=10, height=3)
        assert lines[0] == "only      "
        assert scroll.offset == 0


class TestListView:
    def test_selected_row_stays_visible(self):
        rows = [Text(f"row {n}") for n in range(20)]
        lines = _lines(ListView(rows, 15), width=12, height=4)
        assert [line.strip() for line in lines] == ["row 12", "row 13", "row 14", "row 15"]

    def test_empty(self):
        assert _lines(ListView([], None, empty="No stacks"), height=1)[0].startswith("No stacks")


class TestSized:
    def test_fixed_height(self):
        console = _console(20, 50)
        assert len(console.render_lines(Sized(Text("x"), 6), console.options)) == 6
        tall = Text("\n".join("y" * 9))
        assert len(console.render_lines(Sized(tall, 4), console.options)) == 4


class TestPrimitives:
    @pytest.mark.parametrize("values, bars", [
        ([0, 7], "▁█"),
        ([1, 1, 1], "▁▁▁"),
        ([5], "█"),
    ])
    def test_sparkline_one_bar_per_value(self, values, bars):
        assert _lines(sparkline(values), height=1)[0].rstrip() == bars

    @pytest.mark.parametrize("status, icon", [
        ("completed", "✓"), ("failed", "✗"), ("running", "⠙"), (None, "•"),
    ])
    def test_task_icon(self, status, icon):
        assert task_icon(status, "⠙")[0] == icon

    def test_check_marker(self):
        assert check_marker(CheckStatus.passed("ok"), "⠋").plain == "✓"
        assert check_marker(CheckStatus(), "⠋").plain == "◌"


class TestMessages:
    def test_user(self):
        out = _text(render_message(AgentMessage.user("deploy prod")))
        assert "→ You:" in out
        assert "    deploy prod" in out

    def test_assistant_with_tool_calls(self):
        message = AgentMessage(
            kind=MessageKind.ASSISTANT, content="Checking.",
            tool_calls=(ToolCall(id="1", name="list_stacks", args={"org": "acme"}),),
        )
        out = _text(render_message(message))
        assert "★ NEO:" in out
        assert "Calling: list_stacks" in out

    def test_tool_response_truncated_to_five_lines(self):
        message = AgentMessage(
            kind=MessageKind.TOOL_RESPONSE, content="\n".join(str(n) for n in range(10)),
            tool_name="read",
        )
        out = _text(render_message(message))
        assert "    4" in out
        assert "    5" not in out

    def test_tool_error_is_not_truncated(self):
        trace = "\n".join(f"trace line {n}" for n in range(12))
        out = _text(render_message(
            AgentMessage(kind=MessageKind.TOOL_ERROR, content=trace, tool_name="shell"),
        ))
        assert "shell failed:" in out
        assert "    trace line 11" in out

    def test_approval(self):
        out = _text(render_message(AgentMessage(kind=MessageKind.APPROVAL_REQUEST, content="ok?")))
        assert "Approval needed" in out


def _populated_state() -> AppState:
    state = AppState(org="acme", organizations=["acme"])
    state.splash.visible = False
    state.stacks.set_items([Stack("acme", "web", "dev", resource_count=4)])
    state.stack_updates = [("3", "succeeded", "2024-01-01 00:00")]
    state.stack_updates_for = "acme/web/dev"
    state.environments.set_items([EnvironmentSummary("acme", "proj", "dev")])
    state.env_definition = "values:\n  region: us-west-2\n"
    state.tasks.set_items([AgentTask(id="t1", name="Fix drift", status="running")])
    state.services.set_items([Service("acme", "billing", description="Payments")])
    state.packages.set_items([RegistryPackage(name="aws", readme_content="# AWS")])
    state.recent_updates = [OrgStackUpdate("web", "dev", kind="update", result="succeeded")]
    state.resource_summary = [ResourceSummaryPoint(2024, 1, d, d * 10) for d in range(1, 6)]
    return state


class TestScreens:
    @pytest.mark.parametrize("tab", TAB_ORDER)
    def test_every_tab_renders(self, tab):
        state = _populated_state()
        state.tab = tab
        lines = _lines(render_content(state), width=100, height=30)
        assert len(lines) == 30

    def test_components_view_renders(self):
        state = _populated_state()
        state.platform_view = PlatformView.COMPONENTS
        state.tab = TAB_ORDER[-1]
        assert any("AWS" in line for line in _lines(render_content(state), width=100, height=30))

    def test_header_shows_org(self):
        state = _populated_state()
        assert "acme" in "".join(_lines(render_header(state), width=100, height=3))

    def test_footer_hint(self):
        state = _populated_state()
        assert "q: quit" in "".join(_lines(render_footer(state), width=120, height=1))

    def test_splash(self):
        state = AppState()
        state.set_token_check(CheckStatus.failed("PULUMI_ACCESS_TOKEN not set"))
        lines = _lines(render_splash(state.splash, "⠋"), width=100, height=30)
        assert any("PULUMI_ACCESS_TOKEN not set" in line for line in lines)


class TestPopups:
    def test_none_while_splash(self):
        state = AppState(error="boom")
        assert active_popup(state) is None

    def test_error_wins(self):
        state = _populated_state()
        state.error = "boom"
        state.show_help = True
        popup = active_popup(state)
        assert popup.title == "Error"
        assert (popup.width, popup.height) == (60, 20)

    def test_loading_hidden_on_neo(self):
        state = _populated_state()
        state.begin_refresh(3)
        assert active_popup(state).title == "Loading"
        state.tab = TAB_ORDER[1]
        assert active_popup(state) is None

    def test_editor_title_marks_modified(self):
        state = _populated_state()
        state.open_editor()
        state.editor.buffer.handle_key("x", "x")
        assert active_popup(state).title == "Edit proj/dev [modified]"

    @pytest.mark.parametrize("flag, title", [
        ("show_help", "Help - Keyboard Shortcuts"),
        ("show_logs", "Logs"),
        ("show_task_details", "Task Details"),
    ])
    def test_popups_render(self, flag, title):
        state = _populated_state()
        setattr(state, flag, True)
        popup = active_popup(state)
        assert popup.title == title
        assert len(_lines(popup.panel(), width=80, height=20)) == 20

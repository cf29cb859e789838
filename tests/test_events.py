"""Tests for event-to-message translation and API record parsing."""

from __future__ import annotations

import pytest

from lazypulumi.api.events import (
    event_to_message,
    events_to_messages,
    normalize_content,
    tool_result_preview,
)
from lazypulumi.api.types import (
    AgentMessage,
    AgentTask,
    MessageKind,
    OrgStackUpdate,
    RegistryPackage,
    Stack,
    StackUpdate,
    ToolCall,
    format_timestamp,
)


def _event(body, event_id="e1"):
    return {"id": event_id, "eventBody": body}


class TestEventMapping:
    @pytest.mark.parametrize("body, kind, content", [
        ({"type": "user_message", "content": "hi"}, MessageKind.USER, "hi"),
        ({"type": "assistant_message", "content": "hello"}, MessageKind.ASSISTANT, "hello"),
        ({"type": "exec_tool_call", "name": "pulumi_preview"},
         MessageKind.TOOL_CALL, "Executing: pulumi_preview"),
        ({"type": "exec_tool_call"}, MessageKind.TOOL_CALL, "Executing: unknown"),
        ({"type": "tool_response", "content": "plain"}, MessageKind.TOOL_RESPONSE, "plain"),
        ({"type": "tool_response", "content": "bad", "is_error": True},
         MessageKind.TOOL_ERROR, "bad"),
        ({"type": "tool_response", "content": "bad", "isError": True},
         MessageKind.TOOL_ERROR, "bad"),
        ({"type": "user_approval_request", "message": "Deploy?"},
         MessageKind.APPROVAL_REQUEST, "Deploy?"),
        ({"type": "user_approval_request"}, MessageKind.APPROVAL_REQUEST, "Approval requested"),
        ({"type": "set_task_name", "name": "Fix bucket"},
         MessageKind.TASK_NAME_CHANGE, "Task: Fix bucket"),
    ])
    def test_kinds(self, body, kind, content):
        message = event_to_message(_event(body))
        assert message.kind is kind
        assert message.content == content
        assert message.event_id == "e1"

    def test_unknown_kind_is_skipped(self):
        assert event_to_message(_event({"type": "agent_thinking"})) is None

    def test_missing_body_is_skipped(self):
        assert event_to_message({"id": "x"}) is None

    def test_snake_case_body_key(self):
        message = event_to_message({"event_body": {"type": "user_message", "content": "x"}})
        assert message.kind is MessageKind.USER
        assert message.event_id is None

    def test_assistant_tool_calls(self):
        message = event_to_message(_event({
            "type": "assistant_message",
            "content": "",
            "tool_calls": [{"id": "c1", "name": "read_file", "args": {"path": "a.py"}}],
        }))
        assert message.tool_calls == (ToolCall(id="c1", name="read_file", args={"path": "a.py"}),)

    def test_non_string_content_is_serialized(self):
        message = event_to_message(_event({"type": "user_message", "content": {"a": 1}}))
        assert message.content == '{"a":1}'

    def test_events_to_messages_drops_non_dicts(self):
        events = [
            _event({"type": "user_message", "content": "a"}, "1"),
            "junk",
            _event({"type": "noise"}, "2"),
            _event({"type": "assistant_message", "content": "b"}, "3"),
        ]
        assert [m.content for m in events_to_messages(events)] == ["a", "b"]


class TestToolResultPreview:
    def test_result_field_is_extracted(self):
        assert tool_result_preview('{"result": "done", "extra": 1}') == "done"

    def test_truncates_long_text(self):
        preview = tool_result_preview("x" * 300)
        assert preview == "x" * 200 + "..."

    def test_json_without_result_is_raw(self):
        assert tool_result_preview('{"other": 1}') == '{"other": 1}'

    def test_normalize_none(self):
        assert normalize_content(None) == ""


class TestMessageKey:
    def test_event_id_distinguishes_identical_text(self):
        a = AgentMessage(kind=MessageKind.USER, content="ok", event_id="1")
        b = AgentMessage(kind=MessageKind.USER, content="ok", event_id="2")
        assert a.key != b.key

    def test_local_message_key_ignores_role(self):
        assert AgentMessage.user("hi").key == (MessageKind.USER, "hi")


class TestRecords:
    def test_stack_defaults(self):
        stack = Stack.from_api({"orgName": "acme", "projectName": "web", "stackName": "dev"})
        assert stack.full_name == "acme/web/dev"
        assert stack.last_update_formatted() == "Never"
        assert stack.resource_count is None

    def test_stack_update_nested_info(self):
        update = StackUpdate.from_api({
            "version": 3,
            "info": {"result": "succeeded", "startTime": 0,
                     "resourceChanges": {"create": 2, "delete": 1}},
        })
        assert update.row() == ("3", "succeeded", "1970-01-01 00:00")
        assert update.resource_changes.summary() == "+2 -1"

    def test_org_update_symbols(self):
        update = OrgStackUpdate.from_api({
            "projectName": "web", "stackName": "prod", "result": "failed",
            "requestedBy": {"githubLogin": "dev1"},
        })
        assert update.stack_display == "web/prod"
        assert update.result_symbol == "✗"
        assert update.requested_by == "dev1"
        assert update.changes_summary() == ""

    def test_task_display_name_falls_back_to_id(self):
        task = AgentTask.from_api({"id": "0123456789abcdef", "status": "running"})
        assert task.display_name == "01234567"
        assert task.is_running

    def test_task_started_by(self):
        task = AgentTask.from_api({"id": "t", "createdBy": {"login": "dev1"}})
        assert task.started_by.display == "dev1"

    def test_package_key(self):
        package = RegistryPackage.from_api({"name": "aws", "publisher": "pulumi", "source": "pulumi"})
        assert package.key() == "pulumi/pulumi/aws"
        assert package.display_name == "aws"

    def test_format_timestamp_unknown(self):
        assert format_timestamp(None) == "Unknown"

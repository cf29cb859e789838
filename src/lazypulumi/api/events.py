"""Translate Neo task events into transcript messages."""

from __future__ import annotations

import json
from typing import Any

from lazypulumi.api.types import AgentMessage, MessageKind, ToolCall

TOOL_RESULT_LIMIT = 200


def normalize_content(value: Any) -> str:
    """Event content may be a string, null, or any JSON value."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


def _truncate(text: str, limit: int = TOOL_RESULT_LIMIT) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def tool_result_preview(content: str) -> str:
    """Show the ``result`` field of a JSON tool response, else the raw text."""
    try:
        parsed = json.loads(content)
    except ValueError:
        return _truncate(content)
    if isinstance(parsed, dict) and "result" in parsed:
        return _truncate(normalize_content(parsed["result"]))
    return _truncate(content)


def _is_error(body: dict) -> bool:
    return bool(body.get("is_error", body.get("isError", False)))


def event_to_message(event: dict) -> AgentMessage | None:
    """Map one raw event to a message, or None for kinds the transcript skips."""
    body = event.get("eventBody") or event.get("event_body")
    if not isinstance(body, dict):
        return None

    kind = body.get("type", "")
    content = normalize_content(body.get("content"))
    timestamp = body.get("timestamp")
    name = body.get("name")
    event_id = event.get("id")
    event_id = str(event_id) if event_id not in (None, "") else None

    if kind == "user_message":
        return AgentMessage(
            kind=MessageKind.USER, content=content, role="user",
            timestamp=timestamp, event_id=event_id,
        )
    if kind == "assistant_message":
        calls = tuple(
            ToolCall.from_api(tc)
            for tc in body.get("tool_calls") or body.get("toolCalls") or []
            if isinstance(tc, dict)
        )
        return AgentMessage(
            kind=MessageKind.ASSISTANT, content=content, role="assistant",
            timestamp=timestamp, tool_calls=calls, event_id=event_id,
        )
    if kind == "exec_tool_call":
        return AgentMessage(
            kind=MessageKind.TOOL_CALL,
            content=f"Executing: {name or 'unknown'}",
            role="tool", timestamp=timestamp, tool_name=name, event_id=event_id,
        )
    if kind == "tool_response":
        if _is_error(body):
            return AgentMessage(
                kind=MessageKind.TOOL_ERROR, content=content, role="tool_result",
                timestamp=timestamp, tool_name=name, event_id=event_id,
            )
        return AgentMessage(
            kind=MessageKind.TOOL_RESPONSE, content=tool_result_preview(content),
            role="tool_result", timestamp=timestamp, tool_name=name, event_id=event_id,
        )
    if kind == "user_approval_request":
        return AgentMessage(
            kind=MessageKind.APPROVAL_REQUEST,
            content=normalize_content(body.get("message")) or "Approval requested",
            role="system", timestamp=timestamp, event_id=event_id,
        )
    if kind == "set_task_name":
        return AgentMessage(
            kind=MessageKind.TASK_NAME_CHANGE, content=f"Task: {name or ''}",
            role="system", timestamp=timestamp, event_id=event_id,
        )
    return None


def events_to_messages(events: list) -> list[AgentMessage]:
    messages = []
    for event in events:
        if not isinstance(event, dict):
            continue
        message = event_to_message(event)
        if message is not None:
            messages.append(message)
    return messages

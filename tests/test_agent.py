"""Tests for the Neo conversation engine."""

from __future__ import annotations

from lazypulumi.agent import (
    BACKGROUND_POLL_TICKS,
    FAST_POLL_TICKS,
    MAX_POLLS,
    STABLE_POLL_LIMIT,
    AgentConversation,
    PollMode,
)
from lazypulumi.api.types import AgentMessage, MessageKind


def _msg(kind: MessageKind, content: str, event_id: str | None = None) -> AgentMessage:
    return AgentMessage(kind=kind, content=content, event_id=event_id)


def _ticks_until_poll(agent: AgentConversation, limit: int = 100) -> int:
    for n in range(1, limit + 1):
        if agent.tick(True):
            return n
    raise AssertionError("no poll became due")


def _fast_polling(task_id: str = "t1") -> AgentConversation:
    agent = AgentConversation()
    agent.begin_send("hello")
    agent.on_task_created(task_id)
    return agent


class TestSend:
    def test_blank_text_is_rejected(self):
        agent = AgentConversation()
        assert agent.begin_send("   ") is None
        assert agent.mode is PollMode.IDLE
        assert agent.messages == []

    def test_begin_send_appends_locally(self):
        agent = AgentConversation()
        request = agent.begin_send("deploy prod")
        assert request.task_id is None
        assert request.content == "deploy prod"
        assert agent.mode is PollMode.SENDING
        assert agent.thinking
        assert agent.messages == [AgentMessage.user("deploy prod")]

    def test_send_rejected_while_sending(self):
        agent = AgentConversation()
        agent.begin_send("hello")
        assert agent.begin_send("again") is None
        assert agent.messages == [AgentMessage.user("hello")]
        agent.on_task_created("t1")
        assert agent.begin_send("again").task_id == "t1"

    def test_follow_up_carries_task_id(self):
        agent = AgentConversation(task_id="t1", mode=PollMode.STOPPED)
        assert agent.begin_send("again").task_id == "t1"

    def test_send_failure_stops_with_error(self):
        agent = AgentConversation()
        agent.begin_send("hi")
        agent.on_send_failed("500 - boom")
        assert agent.mode is PollMode.STOPPED
        assert agent.error == "Neo error: 500 - boom"
        assert not agent.thinking

    def test_task_created_outside_sending_is_ignored(self):
        agent = AgentConversation()
        agent.on_task_created("t1")
        assert agent.task_id is None
        assert agent.mode is PollMode.IDLE

    def test_accepted_for_other_task_is_ignored(self):
        agent = AgentConversation(task_id="t1")
        agent.begin_send("hi")
        agent.on_message_accepted("t2")
        assert agent.mode is PollMode.SENDING
        agent.on_message_accepted("t1")
        assert agent.mode is PollMode.FAST_POLLING


class TestCadence:
    def test_first_fast_poll_is_immediate(self):
        agent = _fast_polling()
        assert agent.tick(True)

    def test_fast_period(self):
        agent = _fast_polling()
        assert agent.tick(True)
        agent.apply_poll("t1", [], "running")
        assert _ticks_until_poll(agent) == FAST_POLL_TICKS

    def test_no_poll_while_in_flight(self):
        agent = _fast_polling()
        assert agent.tick(True)
        for _ in range(FAST_POLL_TICKS * 3):
            assert not agent.tick(True)

    def test_poll_failure_clears_in_flight(self):
        agent = _fast_polling()
        assert agent.tick(True)
        agent.on_poll_failed("t1")
        assert _ticks_until_poll(agent) == FAST_POLL_TICKS

    def test_hidden_tab_does_not_poll(self):
        agent = _fast_polling()
        for _ in range(FAST_POLL_TICKS * 3):
            assert not agent.tick(False)
        assert agent.mode is PollMode.FAST_POLLING

    def test_stopped_enters_background_when_visible(self):
        agent = AgentConversation(task_id="t1", mode=PollMode.STOPPED)
        assert not agent.tick(False)
        assert agent.mode is PollMode.STOPPED
        n = _ticks_until_poll(agent)
        assert agent.mode is PollMode.BACKGROUND_POLLING
        assert n == BACKGROUND_POLL_TICKS

    def test_no_task_never_polls(self):
        agent = AgentConversation(mode=PollMode.STOPPED)
        assert not any(agent.tick(True) for _ in range(100))


class TestTermination:
    def test_completed_with_reply_stops(self):
        agent = _fast_polling()
        agent.tick(True)
        changed = agent.apply_poll("t1", [
            _msg(MessageKind.USER, "hello", "e1"),
            _msg(MessageKind.ASSISTANT, "Hi there", "e2"),
        ], "completed")
        assert changed
        assert agent.mode is PollMode.STOPPED
        assert not agent.thinking
        assert [m.content for m in agent.messages] == ["hello", "Hi there"]

    def test_running_with_reply_keeps_polling(self):
        agent = _fast_polling()
        agent.tick(True)
        agent.apply_poll("t1", [_msg(MessageKind.ASSISTANT, "partial", "e2")], "running")
        assert agent.mode is PollMode.FAST_POLLING

    def test_max_polls_stops(self):
        agent = _fast_polling()
        for n in range(MAX_POLLS):
            agent.apply_poll("t1", [_msg(MessageKind.USER, f"m{n}", str(n))], "running")
        assert agent.mode is PollMode.STOPPED
        assert agent.thinking

    def test_stable_transcript_stops_when_not_running(self):
        agent = _fast_polling()
        snapshot = [_msg(MessageKind.USER, "hello", "e1")]
        agent.apply_poll("t1", snapshot, "completed")
        for _ in range(STABLE_POLL_LIMIT - 1):
            agent.apply_poll("t1", snapshot, "completed")
            assert agent.mode is PollMode.FAST_POLLING
        agent.apply_poll("t1", snapshot, "completed")
        assert agent.mode is PollMode.STOPPED

    def test_stable_transcript_keeps_polling_while_running(self):
        agent = _fast_polling()
        for _ in range(STABLE_POLL_LIMIT + 5):
            agent.apply_poll("t1", [], "running")
        assert agent.mode is PollMode.FAST_POLLING


class TestReconcile:
    def test_empty_poll_keeps_local_transcript(self):
        agent = _fast_polling()
        agent.apply_poll("t1", [], "running")
        assert agent.messages == [AgentMessage.user("hello")]

    def test_server_snapshot_replaces_local(self):
        agent = _fast_polling()
        server = [_msg(MessageKind.USER, "hello", "e1")]
        assert agent.apply_poll("t1", server, "running")
        assert agent.messages == server

    def test_identical_snapshot_is_unchanged(self):
        agent = _fast_polling()
        server = [_msg(MessageKind.USER, "hello", "e1")]
        agent.apply_poll("t1", server, "running")
        assert not agent.apply_poll("t1", list(server), "running")
        assert agent.stable_polls == 1

    def test_repeated_text_with_distinct_event_ids(self):
        agent = _fast_polling()
        first = [_msg(MessageKind.USER, "ok", "e1"), _msg(MessageKind.ASSISTANT, "done", "e2")]
        agent.apply_poll("t1", first, "running")
        second = first + [_msg(MessageKind.USER, "ok", "e3")]
        assert agent.apply_poll("t1", second, "running")
        assert len(agent.messages) == 3

    def test_stale_poll_for_other_task_is_ignored(self):
        agent = _fast_polling("t2")
        agent.tick(True)
        assert not agent.apply_poll("t1", [_msg(MessageKind.USER, "old", "x")], "completed")
        assert agent.poll_in_flight
        assert agent.messages == [AgentMessage.user("hello")]

    def test_status_none_keeps_last_status(self):
        agent = _fast_polling()
        agent.apply_poll("t1", [], None)
        assert agent.last_status == "running"


class TestBackground:
    def test_background_poll_updates_thinking_only(self):
        agent = AgentConversation(task_id="t1", mode=PollMode.BACKGROUND_POLLING)
        agent.apply_poll("t1", [_msg(MessageKind.USER, "x", "1")], "running")
        assert agent.mode is PollMode.BACKGROUND_POLLING
        assert agent.thinking
        agent.apply_poll("t1", [_msg(MessageKind.USER, "x", "1")], "completed")
        assert not agent.thinking
        assert agent.mode is PollMode.BACKGROUND_POLLING


class TestLoadAndReset:
    def test_load_task_polls_promptly(self):
        agent = AgentConversation()
        agent.load_task("t9", "running")
        assert agent.mode is PollMode.FAST_POLLING
        assert agent.thinking
        assert agent.tick(True)

    def test_start_new_clears_everything(self):
        agent = _fast_polling()
        agent.start_new()
        assert agent.task_id is None
        assert agent.messages == []
        assert agent.mode is PollMode.IDLE
        assert not agent.tick(True)

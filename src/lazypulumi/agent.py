"""Neo conversation engine: transcript, polling cadence and termination.

The engine is pure state. It never performs I/O; the app asks it
whether a poll is due on each tick and feeds it the results that the
coordinator delivers. Modes form a single tagged state so fast,
background and stopped polling can never be combined inconsistently.

    IDLE --send--> SENDING --accepted--> FAST_POLLING --done--> STOPPED
                      |                      ^                     |
                      +--failed--> STOPPED   |                     v
                                             +---send/reload-- BACKGROUND_POLLING
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from lazypulumi.api.types import RUNNING_STATUSES, AgentMessage, MessageKind

logger = logging.getLogger(__name__)

FAST_POLL_TICKS = 5
BACKGROUND_POLL_TICKS = 30
MAX_POLLS = 60
STABLE_POLL_LIMIT = 20


class PollMode(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    FAST_POLLING = "fast_polling"
    BACKGROUND_POLLING = "background_polling"
    STOPPED = "stopped"


def is_running_status(status: str | None) -> bool:
    return (status or "") in RUNNING_STATUSES


@dataclass(frozen=True)
class SendRequest:
    """What the coordinator needs to deliver a user message."""

    task_id: str | None
    content: str


@dataclass
class AgentConversation:
    mode: PollMode = PollMode.IDLE
    task_id: str | None = None
    messages: list[AgentMessage] = field(default_factory=list)
    last_status: str | None = None
    thinking: bool = False
    error: str | None = None

    poll_count: int = 0
    stable_polls: int = 0
    tick_counter: int = 0
    poll_in_flight: bool = False

    @property
    def is_polling(self) -> bool:
        return self.mode in (PollMode.FAST_POLLING, PollMode.BACKGROUND_POLLING)

    @property
    def has_assistant_reply(self) -> bool:
        return any(m.kind is MessageKind.ASSISTANT and m.content for m in self.messages)

    # --- User actions ---

    def begin_send(self, text: str) -> SendRequest | None:
        """Append the user message locally and enter SENDING.

        Returns None for blank text or while a previous send is unanswered.
        """
        if not text.strip() or self.mode is PollMode.SENDING:
            return None
        self.messages.append(AgentMessage.user(text))
        self.mode = PollMode.SENDING
        self.thinking = True
        self.error = None
        self._reset_counters()
        return SendRequest(task_id=self.task_id, content=text)

    def start_new(self) -> None:
        self.mode = PollMode.IDLE
        self.task_id = None
        self.messages = []
        self.last_status = None
        self.thinking = False
        self.error = None
        self._reset_counters()

    def load_task(self, task_id: str, status: str | None = None) -> None:
        """Switch to an existing task and fetch its transcript promptly."""
        self.task_id = task_id
        self.messages = []
        self.last_status = status
        self.thinking = is_running_status(status)
        self.error = None
        self._enter_fast_polling()

    # --- Coordinator results ---

    def on_task_created(self, task_id: str) -> None:
        if self.mode is not PollMode.SENDING:
            logger.debug("Ignoring task creation for %s in mode %s", task_id, self.mode)
            return
        self.task_id = task_id
        self.last_status = "running"
        self._enter_fast_polling()

    def on_message_accepted(self, task_id: str) -> None:
        if self.mode is not PollMode.SENDING or task_id != self.task_id:
            return
        self.last_status = "running"
        self._enter_fast_polling()

    def on_send_failed(self, error: str) -> None:
        self.mode = PollMode.STOPPED
        self.thinking = False
        self.error = f"Neo error: {error}"
        self._reset_counters()

    def on_poll_failed(self, task_id: str) -> None:
        if task_id == self.task_id:
            self.poll_in_flight = False

    def apply_poll(
        self, task_id: str, messages: list[AgentMessage], status: str | None,
    ) -> bool:
        """Absorb one poll result; returns True when the transcript changed."""
        if task_id != self.task_id:
            return False
        self.poll_in_flight = False
        if not self.is_polling:
            return False

        changed = self.reconcile(messages)
        if status is not None:
            self.last_status = status

        if self.mode is PollMode.FAST_POLLING:
            self.poll_count += 1
            if self.should_stop():
                self._stop()
        else:
            self.thinking = is_running_status(self.last_status)
        return changed

    def reconcile(self, messages: list[AgentMessage]) -> bool:
        if not messages:
            self.stable_polls += 1
            return False
        local_keys = {m.key for m in self.messages}
        differs = len(messages) != len(self.messages) or any(
            m.key not in local_keys for m in messages
        )
        if differs:
            self.messages = list(messages)
            self.stable_polls = 0
            return True
        self.stable_polls += 1
        return False

    def should_stop(self) -> bool:
        running = is_running_status(self.last_status)
        if not running and self.has_assistant_reply:
            return True
        if self.poll_count >= MAX_POLLS:
            return True
        return self.stable_polls >= STABLE_POLL_LIMIT and not running

    # --- Ticks ---

    def tick(self, visible: bool) -> bool:
        """Advance the cadence counters; returns True when a poll is due."""
        if self.task_id is None:
            return False
        if self.mode is PollMode.STOPPED and visible:
            self.mode = PollMode.BACKGROUND_POLLING
            self.tick_counter = 0
        if not self.is_polling or not visible or self.poll_in_flight:
            return False

        period = FAST_POLL_TICKS if self.mode is PollMode.FAST_POLLING else BACKGROUND_POLL_TICKS
        self.tick_counter += 1
        if self.tick_counter < period:
            return False
        self.tick_counter = 0
        self.poll_in_flight = True
        return True

    # --- Internals ---

    def _enter_fast_polling(self) -> None:
        self.mode = PollMode.FAST_POLLING
        self._reset_counters()
        # first poll goes out on the next tick
        self.tick_counter = FAST_POLL_TICKS - 1

    def _stop(self) -> None:
        self.mode = PollMode.STOPPED
        self.thinking = is_running_status(self.last_status)
        logger.info(
            "Stopped polling task %s after %d polls (status=%s)",
            self.task_id, self.poll_count, self.last_status,
        )
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.poll_count = 0
        self.stable_polls = 0
        self.tick_counter = 0
        self.poll_in_flight = False

"""Pulumi Cloud REST API client and typed records."""

from lazypulumi.api.client import PulumiClient
from lazypulumi.api.events import event_to_message, events_to_messages
from lazypulumi.api.types import AgentMessage, AgentTask, MessageKind, SlashCommand

__all__ = [
    "AgentMessage",
    "AgentTask",
    "MessageKind",
    "PulumiClient",
    "SlashCommand",
    "event_to_message",
    "events_to_messages",
]

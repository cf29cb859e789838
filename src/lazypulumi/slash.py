"""Slash-command picker for the Neo input box.

The input buffer is the single trigger: every change recomputes the
filter token, the matching commands, the selection and visibility
together through ``update``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from lazypulumi.api.types import SlashCommand


def filter_token(text: str) -> tuple[int, str] | None:
    """Start index and text of the ``/token`` being typed, if any.

    The token runs from the last ``/`` to the end of the buffer and must
    not contain whitespace.
    """
    start = text.rfind("/")
    if start < 0:
        return None
    token = text[start + 1 :]
    if any(ch.isspace() for ch in token):
        return None
    return start, token


def matching_commands(commands: list[SlashCommand], token: str) -> list[SlashCommand]:
    needle = token.lower()
    return [
        cmd for cmd in commands
        if needle in cmd.name.lower() or needle in cmd.description.lower()
    ]


@dataclass
class SlashPicker:
    commands: list[SlashCommand] = field(default_factory=list)
    filtered: list[SlashCommand] = field(default_factory=list)
    index: int = 0
    visible: bool = False
    pending: list[SlashCommand] = field(default_factory=list)

    def set_commands(self, commands: list[SlashCommand]) -> None:
        self.commands = list(commands)
        self.close()

    def update(self, text: str) -> None:
        found = filter_token(text)
        if found is None:
            self.close()
            return
        self.filtered = matching_commands(self.commands, found[1])
        self.visible = bool(self.filtered)
        if self.index >= len(self.filtered):
            self.index = 0

    def show_all(self) -> None:
        self.filtered = list(self.commands)
        self.index = 0
        self.visible = bool(self.filtered)

    def close(self) -> None:
        self.filtered = []
        self.index = 0
        self.visible = False

    def move(self, step: int) -> None:
        if self.filtered:
            self.index = (self.index + step) % len(self.filtered)

    @property
    def selected(self) -> SlashCommand | None:
        if not self.visible or not self.filtered:
            return None
        return self.filtered[self.index]

    def accept(self, text: str) -> str:
        """Replace the typed token with the selected command's canonical form."""
        cmd = self.selected
        found = filter_token(text)
        if cmd is None or found is None:
            return text
        start, _token = found
        if cmd not in self.pending:
            self.pending.append(cmd)
        self.close()
        return f"{text[:start]}{cmd.canonical} "

    def consume(self, text: str) -> tuple[str, list[SlashCommand]]:
        """Attach pending commands still present in *text* to an outgoing message."""
        attached: list[SlashCommand] = []
        content = text
        for cmd in self.pending:
            pattern = re.compile(re.escape(cmd.canonical) + r"(?=\s|$)")
            content, count = pattern.subn(lambda _m, c=cmd: c.reference(), content)
            if count:
                attached.append(cmd)
        self.pending = []
        self.close()
        return content, attached

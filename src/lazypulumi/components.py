"""Small stateful building blocks: selectable lists, text input, scroll cursor."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


class StatefulList(Generic[T]):
    """A list with an optional selected index that survives item replacement."""

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._items: list[T] = list(items)
        self._selected: int | None = 0 if self._items else None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    @property
    def items(self) -> list[T]:
        return self._items

    @property
    def selected_index(self) -> int | None:
        return self._selected

    @property
    def selected(self) -> T | None:
        if self._selected is None or not self._items:
            return None
        return self._items[self._selected]

    def set_items(self, items: Iterable[T]) -> None:
        self._items = list(items)
        if not self._items:
            self._selected = None
        elif self._selected is None:
            self._selected = 0
        else:
            self._selected = min(self._selected, len(self._items) - 1)

    def insert(self, index: int, item: T) -> None:
        self._items.insert(index, item)
        if self._selected is None:
            self._selected = 0

    def replace_where(self, predicate: Callable[[T], bool], item: T) -> bool:
        for i, existing in enumerate(self._items):
            if predicate(existing):
                self._items[i] = item
                return True
        return False

    def select(self, index: int | None) -> None:
        if index is None or not self._items:
            self._selected = None
            return
        self._selected = max(0, min(index, len(self._items) - 1))

    def next(self) -> None:
        if not self._items:
            return
        self._selected = 0 if self._selected is None else (self._selected + 1) % len(self._items)

    def previous(self) -> None:
        if not self._items:
            return
        if self._selected is None:
            self._selected = 0
        else:
            self._selected = (self._selected - 1) % len(self._items)

    def first(self) -> None:
        if self._items:
            self._selected = 0

    def last(self) -> None:
        if self._items:
            self._selected = len(self._items) - 1


@dataclass
class TextInput:
    """Single-line editable buffer with a cursor."""

    value: str = ""
    cursor: int = 0
    focused: bool = False

    def set_value(self, value: str) -> None:
        self.value = value
        self.cursor = len(value)

    def clear(self) -> None:
        self.value = ""
        self.cursor = 0

    def take(self) -> str:
        value = self.value
        self.clear()
        return value

    def insert(self, text: str) -> None:
        self.value = self.value[: self.cursor] + text + self.value[self.cursor :]
        self.cursor += len(text)

    def handle_key(self, key: str, char: str | None = None) -> bool:
        """Apply an editing key; returns True when the buffer or cursor changed."""
        if char is not None and char.isprintable() and len(char) == 1:
            self.insert(char)
            return True
        if key == "backspace":
            if self.cursor == 0:
                return False
            self.value = self.value[: self.cursor - 1] + self.value[self.cursor :]
            self.cursor -= 1
            return True
        if key == "delete":
            if self.cursor >= len(self.value):
                return False
            self.value = self.value[: self.cursor] + self.value[self.cursor + 1 :]
            return True
        if key == "left" and self.cursor > 0:
            self.cursor -= 1
            return True
        if key == "right" and self.cursor < len(self.value):
            self.cursor += 1
            return True
        if key == "home":
            self.cursor = 0
            return True
        if key == "end":
            self.cursor = len(self.value)
            return True
        if key == "ctrl+u":
            self.clear()
            return True
        if key == "ctrl+w":
            head = self.value[: self.cursor].rstrip(" ")
            cut = head.rfind(" ") + 1
            self.value = head[:cut] + self.value[self.cursor :]
            self.cursor = cut
            return True
        return False


@dataclass
class ScrollState:
    """Vertical scroll cursor for one surface.

    ``pinned`` keeps the view at the bottom; any upward scroll clears it.
    ``max_offset`` is written back by the renderer after measuring.
    """

    offset: int = 0
    pinned: bool = False
    max_offset: int = 0
    viewport: int = 10

    def resolve(self, max_offset: int, viewport: int | None = None) -> int:
        self.max_offset = max(0, max_offset)
        if viewport:
            self.viewport = viewport
        if self.pinned:
            self.offset = self.max_offset
        else:
            self.offset = max(0, min(self.offset, self.max_offset))
        return self.offset

    def scroll_up(self, lines: int = 3) -> None:
        if self.pinned:
            self.offset = self.max_offset
            self.pinned = False
        self.offset = max(0, self.offset - lines)

    def scroll_down(self, lines: int = 3) -> None:
        if self.pinned:
            return
        self.offset = min(self.max_offset, self.offset + lines)

    def page_up(self) -> None:
        self.scroll_up(max(1, self.viewport - 2))

    def page_down(self) -> None:
        self.scroll_down(max(1, self.viewport - 2))

    def to_top(self) -> None:
        self.pinned = False
        self.offset = 0

    def to_bottom(self) -> None:
        self.pinned = True
        self.offset = self.max_offset

    def reset(self, *, pinned: bool | None = None) -> None:
        self.offset = 0
        self.max_offset = 0
        if pinned is not None:
            self.pinned = pinned


@dataclass
class Spinner:
    frames: tuple[str, ...] = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")
    index: int = 0
    message: str = "Loading..."

    def tick(self) -> None:
        self.index = (self.index + 1) % len(self.frames)

    @property
    def frame(self) -> str:
        return self.frames[self.index]


@dataclass
class TextBuffer:
    """Multi-line editor buffer for the environment YAML editor."""

    lines: list[str] = field(default_factory=lambda: [""])
    row: int = 0
    col: int = 0
    modified: bool = False

    @classmethod
    def from_text(cls, text: str) -> TextBuffer:
        return cls(lines=text.split("\n") or [""])

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def _clamp(self) -> None:
        self.row = max(0, min(self.row, len(self.lines) - 1))
        self.col = max(0, min(self.col, len(self.lines[self.row])))

    def handle_key(self, key: str, char: str | None = None) -> bool:
        line = self.lines[self.row]
        if char is not None and char.isprintable() and len(char) == 1:
            self.lines[self.row] = line[: self.col] + char + line[self.col :]
            self.col += 1
            self.modified = True
            return True
        if key == "tab":
            self.lines[self.row] = line[: self.col] + "  " + line[self.col :]
            self.col += 2
            self.modified = True
            return True
        if key == "enter":
            indent = len(line) - len(line.lstrip(" "))
            self.lines[self.row] = line[: self.col]
            self.lines.insert(self.row + 1, " " * indent + line[self.col :])
            self.row += 1
            self.col = indent
            self.modified = True
            return True
        if key == "backspace":
            if self.col > 0:
                self.lines[self.row] = line[: self.col - 1] + line[self.col :]
                self.col -= 1
            elif self.row > 0:
                prev = self.lines[self.row - 1]
                self.lines[self.row - 1] = prev + line
                del self.lines[self.row]
                self.row -= 1
                self.col = len(prev)
            else:
                return False
            self.modified = True
            return True
        if key == "delete":
            if self.col < len(line):
                self.lines[self.row] = line[: self.col] + line[self.col + 1 :]
            elif self.row + 1 < len(self.lines):
                self.lines[self.row] = line + self.lines.pop(self.row + 1)
            else:
                return False
            self.modified = True
            return True
        moves = {
            "up": (-1, 0), "down": (1, 0), "left": (0, -1), "right": (0, 1),
        }
        if key in moves:
            dr, dc = moves[key]
            if dc and not 0 <= self.col + dc <= len(line):
                if dc < 0 and self.row > 0:
                    self.row -= 1
                    self.col = len(self.lines[self.row])
                elif dc > 0 and self.row + 1 < len(self.lines):
                    self.row += 1
                    self.col = 0
                return True
            self.row += dr
            self.col += dc
            self._clamp()
            return True
        if key == "home":
            self.col = 0
            return True
        if key == "end":
            self.col = len(line)
            return True
        if key == "pageup":
            self.row = max(0, self.row - 10)
            self._clamp()
            return True
        if key == "pagedown":
            self.row = min(len(self.lines) - 1, self.row + 10)
            self._clamp()
            return True
        return False

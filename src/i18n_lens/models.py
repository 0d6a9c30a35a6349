"""Core data models for the resource index."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath

_LINE_BREAK = re.compile(r"\r?\n")


def split_lines(text: str) -> list[str]:
    """Split text into lines on LF or CRLF only.

    ``str.splitlines`` also breaks on form feeds and unicode separators,
    which would shift line numbers away from what an editor shows.
    """
    return _LINE_BREAK.split(text)


def display_name(path: str) -> str:
    """Display name of a resource file: its filename without extension."""
    return PurePosixPath(path).stem


@dataclass(frozen=True)
class SourceLocation:
    """A span of one line in a workspace file where a key's text appears.

    Columns are 0-based and half-open: ``end - start == len(key)``.
    """

    path: str
    line: int
    start: int
    end: int

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "line": self.line,
            "start": self.start,
            "end": self.end,
        }


@dataclass
class ResourceFile:
    """A parsed translation resource: one language's key -> string map."""

    path: str
    values: dict[str, str] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return display_name(self.path)

    def has_translation(self, key: str) -> bool:
        return bool(self.values.get(key))


@dataclass
class KeyPresence:
    """Which resource files define a key and which lack it."""

    present: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


class FileKind(str, Enum):
    """The two classes of scanned files."""

    RESOURCE = "resource"
    CODE = "code"


class FileEventType(str, Enum):
    """Filesystem event kinds delivered by a watcher."""

    CREATED = "create"
    CHANGED = "change"
    DELETED = "delete"


@dataclass(frozen=True)
class FileEvent:
    """A single filesystem event for a workspace-relative path."""

    type: FileEventType
    path: str


@dataclass(frozen=True)
class TextEdit:
    """Replace the text between two (line, column) positions.

    An insertion is an edit whose start and end positions are equal.
    Positions past the end of a line or of the document are clamped.
    """

    start_line: int
    start_column: int
    end_line: int
    end_column: int
    new_text: str

    @classmethod
    def insert(cls, line: int, column: int, new_text: str) -> "TextEdit":
        return cls(line, column, line, column, new_text)

    @classmethod
    def replace_all(cls, text: str, new_text: str) -> "TextEdit":
        lines = split_lines(text)
        return cls(0, 0, len(lines) - 1, len(lines[-1]), new_text)

    def apply(self, text: str) -> str:
        """Return ``text`` with this edit applied."""
        start = _offset(text, self.start_line, self.start_column)
        end = _offset(text, self.end_line, self.end_column)
        if end < start:
            start, end = end, start
        return text[:start] + self.new_text + text[end:]


def _offset(text: str, line: int, column: int) -> int:
    """Convert a (line, column) position to a string offset."""
    for number, (line_start, line_end) in enumerate(_iter_line_spans(text)):
        if number == line:
            return min(line_start + column, line_end)
    return len(text)


def _iter_line_spans(text: str):
    """Yield (start, end) offsets of every line, excluding line breaks."""
    start = 0
    for match in _LINE_BREAK.finditer(text):
        yield start, match.start()
        start = match.end()
    yield start, len(text)

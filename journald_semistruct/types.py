from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Mapping, Union


class Priority(IntEnum):
    """Syslog severity scale used by journald. Lower values are more severe."""
    EMERG = 0
    ALERT = 1
    CRIT = 2
    ERR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7


@dataclass(frozen=True)
class Message:
    """One line captured from a monitored process.

    - line: raw line content without the trailing newline
    - source: stream the line came from, e.g. "stdout" or "stderr"
    """
    line: bytes | str
    source: str = "stdout"

    def text(self) -> str:
        """Return the line as text. Undecodable bytes survive as surrogates."""
        if isinstance(self.line, bytes):
            return self.line.decode("utf-8", errors="surrogateescape")
        return self.line


@dataclass(frozen=True)
class ParsedRecord:
    """Fields lifted out of a semi-structured line."""
    priority: int
    tags: tuple[str, ...] = ()
    attrs: Mapping[str, str] = field(default_factory=dict)
    # Free text following the closing '>' of the header
    message: str = ""


@dataclass(frozen=True)
class ParseFailure:
    """A line carried the sentinel but its header did not match the grammar."""
    reason: str
    position: int

    def __str__(self) -> str:
        return f"{self.reason} at column {self.position}"


@dataclass(frozen=True)
class Unstructured:
    """The line did not opt into semi-structured parsing."""


ParseOutcome = Union[ParsedRecord, ParseFailure, Unstructured]


@dataclass(frozen=True)
class ProjectedRecord:
    """Final record handed to a sink.

    The line is always the complete original text, parsed or not.
    """
    line: str
    priority: Priority
    fields: dict[str, str]
    structured: bool = False

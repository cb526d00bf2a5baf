from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType

from .detector import SENTINEL, has_sentinel
from .types import ParseFailure, ParseOutcome, ParsedRecord, Priority, Unstructured

"""Grammar for semi-structured log lines.

    line       = "!<" priority *( 1*WSP item ) *WSP ">" message
    priority   = 1*DIGIT
    item       = attribute / tag          ; tags come before attributes
    tag        = name
    attribute  = name "=" ( quoted / bare )
    name       = 1*( any char except WSP = > " \\ )
    bare       = *( any char except WSP > " )
    quoted     = DQUOTE *( "\\" ( DQUOTE / "\\" / "n" / "t" ) / other ) DQUOTE

Example: !<3 db slow QUERY_MS=812 USER="a b">query took too long
"""

_PRIORITY_RE = re.compile(r"[0-9]+")
_WSP_RE = re.compile(r"[ \t]+")
_ITEM_RE = re.compile(
    r'(?P<name>[^ \t=>"\\]+)'
    r'(?:=(?:"(?P<quoted>(?:[^"\\]|\\.)*)"|(?P<bare>[^ \t>"]*)))?'
)
_ESCAPE_RE = re.compile(r"\\(.)")
_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "t": "\t"}


class _InvalidEscape(Exception):
    def __init__(self, offset: int) -> None:
        super().__init__(offset)
        self.offset = offset


def _unescape(body: str) -> str:
    def replace(m: re.Match) -> str:
        try:
            return _ESCAPES[m.group(1)]
        except KeyError:
            raise _InvalidEscape(m.start()) from None

    return _ESCAPE_RE.sub(replace, body)


@dataclass(frozen=True)
class SemistructGrammar:
    """Parser for the semi-structured header. Holds no per-line state."""
    min_priority: int = int(Priority.EMERG)
    max_priority: int = int(Priority.DEBUG)

    def __post_init__(self) -> None:
        if not Priority.EMERG <= self.min_priority <= self.max_priority <= Priority.DEBUG:
            raise ValueError("priority bounds must satisfy 0 <= min_priority <= max_priority <= 7")

    def parse(self, line: str) -> ParsedRecord | ParseFailure:
        if not has_sentinel(line):
            return ParseFailure("expected '!<'", 0)
        pos = len(SENTINEL)

        m = _PRIORITY_RE.match(line, pos)
        if m is None:
            return ParseFailure("expected integer priority", pos)
        digits = m.group()
        if len(digits) > 3 or not self.min_priority <= int(digits) <= self.max_priority:
            return ParseFailure(
                f"priority {digits} outside {self.min_priority}..{self.max_priority}", pos
            )
        priority = int(digits)
        pos = m.end()

        tags: list[str] = []
        attrs: dict[str, str] = {}
        while True:
            gap = _WSP_RE.match(line, pos)
            if gap is not None:
                pos = gap.end()
            if line.startswith(">", pos):
                return ParsedRecord(
                    priority=priority,
                    tags=tuple(tags),
                    attrs=MappingProxyType(attrs),
                    message=line[pos + 1:],
                )
            if pos >= len(line):
                return ParseFailure("unterminated header, expected '>'", pos)
            if gap is None:
                return ParseFailure("expected whitespace or '>'", pos)

            item = _ITEM_RE.match(line, pos)
            if item is None:
                return ParseFailure("expected tag or attribute", pos)
            name = item.group("name")
            if item.group("quoted") is not None:
                try:
                    attrs[name] = _unescape(item.group("quoted"))
                except _InvalidEscape as e:
                    return ParseFailure("invalid escape sequence", item.start("quoted") + e.offset)
            elif item.group("bare") is not None:
                attrs[name] = item.group("bare")
            elif attrs:
                return ParseFailure(f"tag {name!r} follows an attribute", pos)
            else:
                tags.append(name)
            pos = item.end()


DEFAULT_GRAMMAR = SemistructGrammar()


def parse_line(line: str, grammar: SemistructGrammar = DEFAULT_GRAMMAR) -> ParseOutcome:
    """Classify a raw line: parsed record, failed parse, or plain text."""
    if not has_sentinel(line):
        return Unstructured()
    return grammar.parse(line)

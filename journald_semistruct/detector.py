from __future__ import annotations

SENTINEL = "!<"


def has_sentinel(line: str) -> bool:
    """Return True if the line opts into semi-structured parsing."""
    return line[:2] == SENTINEL

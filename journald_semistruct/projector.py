from __future__ import annotations

from typing import Mapping

from .types import ParseOutcome, ParsedRecord, Priority, ProjectedRecord

TAGS_FIELD = "TAGS"
TAG_SEPARATOR = ":"


def default_priority(source: str) -> Priority:
    """Priority for lines without a parsed record, chosen by originating stream."""
    if source == "stderr":
        return Priority.ERR
    return Priority.INFO


def project(
    line: str,
    baseline: Mapping[str, str],
    outcome: ParseOutcome,
    source: str,
) -> ProjectedRecord:
    """Merge the parse outcome for one line with the session baseline.

    The baseline is copied, never written to. Parsed attributes overwrite
    baseline fields of the same name.
    """
    fields = dict(baseline)
    if not isinstance(outcome, ParsedRecord):
        return ProjectedRecord(line=line, priority=default_priority(source), fields=fields)

    fields[TAGS_FIELD] = TAG_SEPARATOR.join(outcome.tags)
    fields.update(outcome.attrs)
    return ProjectedRecord(
        line=line,
        priority=Priority(outcome.priority),
        fields=fields,
        structured=True,
    )

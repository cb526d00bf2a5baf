from __future__ import annotations

import logging
from typing import Callable, Mapping

from .baseline import build_baseline
from .config import DRIVER_NAME, SessionContext, validate_log_opts
from .errors import SinkUnavailableError
from .grammar import DEFAULT_GRAMMAR, SemistructGrammar, parse_line
from .projector import project
from .registry import DriverRegistry
from .sink import JournalSink, Sink
from .types import Message, ParseFailure, ProjectedRecord

logger = logging.getLogger(__name__)


class JournaldSemistruct:
    """A logging session: parses, projects and forwards lines for one process.

    The baseline and grammar are read-only, so log() may be called from
    several threads at once.
    """

    def __init__(
        self,
        baseline: Mapping[str, str],
        sink: Sink,
        grammar: SemistructGrammar = DEFAULT_GRAMMAR,
    ) -> None:
        self.baseline = baseline
        self.sink = sink
        self.grammar = grammar

    @property
    def name(self) -> str:
        return DRIVER_NAME

    def log(self, message: Message) -> ProjectedRecord:
        """Forward one line. Raises ForwardingError if the sink rejects it."""
        line = message.text()
        outcome = parse_line(line, self.grammar)
        if isinstance(outcome, ParseFailure):
            logger.warning("Failed to parse semistructured log line: %s", outcome)

        record = project(line, self.baseline, outcome, message.source)
        # The whole line is always sent; parsed fields only add metadata to filter by
        self.sink.send(record.line, record.priority, record.fields)
        return record

    def close(self) -> None:
        self.sink.close()


def new(
    context: SessionContext,
    sink: Sink | None = None,
    grammar: SemistructGrammar | None = None,
) -> JournaldSemistruct:
    """Create a session for 'context', writing to journald unless another sink is given."""
    if sink is None:
        sink = JournalSink()
    if not sink.enabled():
        raise SinkUnavailableError("journald is not enabled on this host")

    options = validate_log_opts(context.log_opts)
    baseline = build_baseline(context, options)
    logger.debug("Session baseline for %s: %s", context.display_name() or "<unnamed>", dict(baseline))
    return JournaldSemistruct(baseline, sink, grammar or DEFAULT_GRAMMAR)


def register(registry: DriverRegistry, sink_factory: Callable[[], Sink] = JournalSink) -> None:
    """Register this driver and its option validator with 'registry'."""
    registry.register_driver(DRIVER_NAME, lambda context: new(context, sink_factory()))
    registry.register_opt_validator(DRIVER_NAME, validate_log_opts)

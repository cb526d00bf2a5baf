from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Mapping, TextIO

from .driver import JournaldSemistruct
from .errors import ForwardingError
from .types import Message

logger = logging.getLogger(__name__)


@dataclass
class ProcessStats:
    lines: int = 0
    structured: int = 0
    failed: int = 0

    def merge(self, other: ProcessStats) -> None:
        self.lines += other.lines
        self.structured += other.structured
        self.failed += other.failed


@dataclass
class Processor:
    driver: JournaldSemistruct

    def process_stream(self, src: TextIO, source: str = "stdout") -> ProcessStats:
        """Forward every line of 'src' as coming from 'source'.

        A line the sink rejects is logged and counted; the stream keeps going.
        """
        stats = ProcessStats()
        for line_number, raw_line in enumerate(src, start=1):
            line = raw_line[:-1] if raw_line.endswith("\n") else raw_line
            stats.lines += 1
            try:
                record = self.driver.log(Message(line=line, source=source))
            except ForwardingError as e:
                stats.failed += 1
                logger.error("%s line %d not forwarded: %s", source, line_number, e)
                continue
            if record.structured:
                stats.structured += 1
        return stats

    def process_streams(self, streams: Mapping[str, TextIO]) -> ProcessStats:
        """Forward several streams concurrently, one thread per stream."""
        results: dict[str, ProcessStats] = {}
        errors: list[Exception] = []

        def pump(source: str, src: TextIO) -> None:
            try:
                results[source] = self.process_stream(src, source)
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=pump, args=(source, src), name=f"pump-{source}", daemon=True)
            for source, src in streams.items()
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        if errors:
            raise errors[0]

        total = ProcessStats()
        for stats in results.values():
            total.merge(stats)
        return total

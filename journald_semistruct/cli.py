from __future__ import annotations

import argparse
import io
import logging
import subprocess
import sys
from typing import TextIO

from .config import DRIVER_NAME, SessionContext, load_session
from .driver import register
from .errors import ConfigurationError, DriverError
from .processor import ProcessStats, Processor
from .registry import DriverRegistry
from .sink import JOURNAL_SOCKET, JournalSink, JsonLinesSink, Sink

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="journald-semistruct",
        description="Forward log lines to journald, lifting fields out of '!<' semi-structured lines.",
    )
    parser.add_argument("input", type=str, nargs="?", default="-", help="Input file path or '-' for stdin")
    parser.add_argument("-s", "--session", type=str, default=None, help="YAML file describing the logged container")
    parser.add_argument(
        "--log-opt", action="append", default=[], metavar="KEY=VALUE",
        help="Log option (labels, env, tag); overrides the session file, may be repeated",
    )
    parser.add_argument("--sink", choices=["journal", "jsonl"], default="journal", help="Where records are sent")
    parser.add_argument("--socket", type=str, default=JOURNAL_SOCKET, help="journald socket path")
    parser.add_argument("-o", "--output", type=str, default="-", help="Output file for the jsonl sink or '-' for stdout")
    parser.add_argument("--source", type=str, default="stdout", help="Stream name recorded for input lines")
    parser.add_argument(
        "--run", nargs=argparse.REMAINDER, default=None, metavar="CMD",
        help="Run CMD and forward its stdout and stderr; exits with CMD's status",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def parse_log_opts(pairs: list[str]) -> dict[str, str]:
    opts: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ConfigurationError(f"log option {pair!r} is not in KEY=VALUE form")
        opts[key] = value
    return opts


def _text_stream(binary) -> io.TextIOWrapper:
    # newline="" keeps carriage returns so forwarded lines match the input bytes
    return io.TextIOWrapper(binary, encoding="utf-8", errors="surrogateescape", newline="")


def _process_stdin(processor: Processor, source: str) -> ProcessStats:
    src = _text_stream(sys.stdin.buffer)
    try:
        return processor.process_stream(src, source)
    finally:
        # Leave sys.stdin.buffer open for the interpreter
        src.detach()


def _run_command(processor: Processor, cmd: list[str]) -> tuple[ProcessStats, int]:
    proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    streams = {"stdout": _text_stream(proc.stdout), "stderr": _text_stream(proc.stderr)}
    try:
        stats = processor.process_streams(streams)
    except BaseException:
        proc.kill()
        raise
    finally:
        for stream in streams.values():
            stream.close()
        returncode = proc.wait()
    logger.info("%s exited with status %d", cmd[0], returncode)
    return stats, returncode


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )

    dst: TextIO | None = None
    try:
        context = load_session(args.session) if args.session else SessionContext()
        log_opts = {**context.log_opts, **parse_log_opts(args.log_opt)}
        context = context.model_copy(update={"log_opts": log_opts})

        if args.sink == "jsonl":
            dst = sys.stdout if args.output == "-" else open(args.output, "w", encoding="utf-8")
            sink: Sink = JsonLinesSink(dst)
        else:
            sink = JournalSink(args.socket)

        registry = DriverRegistry()
        register(registry, lambda: sink)
        registry.validate_opts(DRIVER_NAME, context.log_opts)
        session = registry.get_factory(DRIVER_NAME)(context)
    except (DriverError, OSError) as e:
        logger.error("%s", e)
        if dst is not None and dst is not sys.stdout:
            dst.close()
        return 2

    processor = Processor(driver=session)
    returncode = 0
    try:
        if args.run:
            stats, returncode = _run_command(processor, args.run)
        elif args.input == "-":
            stats = _process_stdin(processor, args.source)
        else:
            with open(args.input, "rb") as raw, _text_stream(raw) as src:
                stats = processor.process_stream(src, args.source)
    except OSError as e:
        logger.error("%s", e)
        return 2
    except Exception:
        logger.exception("Forwarding stopped")
        return 2
    finally:
        session.close()
        if dst is not None and dst is not sys.stdout:
            dst.close()

    logger.info(
        "Forwarded %d of %d lines (%d semi-structured)",
        stats.lines - stats.failed, stats.lines, stats.structured,
    )
    if stats.failed:
        return 1
    return returncode


if __name__ == "__main__":
    raise SystemExit(main())

import io

import pytest

from journald_semistruct.driver import new
from journald_semistruct.processor import ProcessStats, Processor
from journald_semistruct.types import Priority


@pytest.fixture
def processor(context, sink):
    return Processor(driver=new(context, sink))


def test_process_stream(processor, sink):
    src = io.StringIO("hello\n!<3 a k=v>x\n!<bad\nlast")
    stats = processor.process_stream(src, "stdout")
    assert stats == ProcessStats(lines=4, structured=1, failed=0)
    assert [r[0] for r in sink.records] == ["hello", "!<3 a k=v>x", "!<bad", "last"]
    assert [r[1] for r in sink.records] == [Priority.INFO, Priority.ERR, Priority.INFO, Priority.INFO]


def test_carriage_return_is_kept(processor, sink):
    processor.process_stream(io.StringIO("dos line\r\n", newline=""), "stdout")
    assert sink.records[0][0] == "dos line\r"


def test_empty_lines_are_forwarded(processor, sink):
    stats = processor.process_stream(io.StringIO("\n\n"), "stderr")
    assert stats.lines == 2
    assert [r[0] for r in sink.records] == ["", ""]


def test_rejected_lines_are_counted(context, recording_sink_cls, caplog):
    sink = recording_sink_cls(fail_on="bad")
    processor = Processor(driver=new(context, sink))
    stats = processor.process_stream(io.StringIO("ok\nbad one\nok again\n"), "stdout")
    assert stats == ProcessStats(lines=3, structured=0, failed=1)
    assert [r[0] for r in sink.records] == ["ok", "ok again"]
    assert "stdout line 2 not forwarded" in caplog.text


def test_process_streams_concurrently(processor, sink):
    stdout = io.StringIO("".join(f"out {i}\n" for i in range(50)))
    stderr = io.StringIO("".join(f"!<2 e{i}>err\n" for i in range(50)))
    stats = processor.process_streams({"stdout": stdout, "stderr": stderr})
    assert stats == ProcessStats(lines=100, structured=50, failed=0)

    by_line = {r[0]: r for r in sink.records}
    assert by_line["out 7"][1] == Priority.INFO
    assert by_line["!<2 e7>err"][1] == Priority.CRIT
    assert by_line["!<2 e7>err"][2]["TAGS"] == "e7"


class _Broken:
    def __iter__(self):
        raise RuntimeError("stream broke")


def test_process_streams_reraises_pump_errors(processor):
    with pytest.raises(RuntimeError, match="stream broke"):
        processor.process_streams({"stdout": io.StringIO("fine\n"), "stderr": _Broken()})

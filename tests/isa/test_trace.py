import io
import logging
import pytest
from pyv_cachesim.errors import TraceFormatError
from pyv_cachesim.isa.opcode import Opcode
from pyv_cachesim.isa.trace import TraceRecord, parse_line, read_trace


def test_parse_load_record():
    record = parse_line("L 4001a0 7fff0010\n")
    assert record == TraceRecord(Opcode.LOAD, 0x4001A0, 0x7FFF0010)


def test_parse_accepts_prefix_and_extra_whitespace():
    record = parse_line("  C\t0x400   5 ")
    assert record.opcode == Opcode.COMPUTE
    assert record.inst_addr == 0x400
    assert record.data == 5


def test_parse_masks_to_32_bits():
    record = parse_line("S 1ffffffff 0")
    assert record.inst_addr == 0xFFFF_FFFF


def test_opcode_str():
    assert str(Opcode.BRANCH) == "B"
    assert Opcode("S") is Opcode.STORE


@pytest.mark.parametrize("line", [
    "L 400",
    "L 400 10 extra",
    "X 400 10",
    "L zz 10",
    "S 400 0xg",
])
def test_parse_rejects_malformed_records(line):
    with pytest.raises(TraceFormatError):
        parse_line(line)


def test_trace_format_error_is_a_value_error():
    with pytest.raises(ValueError):
        parse_line("")


def test_read_trace_skips_blank_lines():
    stream = io.StringIO("L 400 1000\n\n   \nB 404 0\n")
    records = list(read_trace(stream))
    assert [r.opcode for r in records] == [Opcode.LOAD, Opcode.BRANCH]


def test_read_trace_stops_at_first_malformed_record(caplog):
    stream = io.StringIO("L 400 1000\nS 404 1004\nQ 408 0\nB 40c 0\n")
    with caplog.at_level(logging.WARNING):
        records = list(read_trace(stream))
    assert len(records) == 2
    assert "line 3" in caplog.text


def test_read_trace_empty_input():
    assert list(read_trace(io.StringIO(""))) == []

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Iterator

from ..errors import TraceFormatError
from ..runtime.address import ADDRESS_MASK
from ..utils.logging import get_logger
from .opcode import Opcode

logger = get_logger("pyv-cachesim.trace")


@dataclass
class TraceRecord:
    """One memory reference from the trace.

    data is the data byte address for loads and stores, unused for branches,
    and the extra compute cycles for compute records.
    """
    opcode: Opcode
    inst_addr: int
    data: int = 0


def _parse_hex(token: str, line: str) -> int:
    try:
        return int(token, 16) & ADDRESS_MASK
    except ValueError:
        raise TraceFormatError(f"Invalid hexadecimal field {token!r} in record {line!r}") from None


def parse_line(line: str) -> TraceRecord:
    """Parses a record of the form '<op> <hex inst addr> <hex field>'."""
    tokens = line.split()
    if len(tokens) != 3:
        raise TraceFormatError(f"Expected 3 fields, got {len(tokens)} in record {line.strip()!r}")
    op, inst, data = tokens
    try:
        opcode = Opcode(op)
    except ValueError:
        raise TraceFormatError(f"Unknown opcode {op!r} in record {line.strip()!r}") from None
    return TraceRecord(opcode, _parse_hex(inst, line.strip()), _parse_hex(data, line.strip()))


def read_trace(lines: Iterable[str]) -> Iterator[TraceRecord]:
    """Yields records until the input ends or a record fails to parse."""
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            record = parse_line(line)
        except TraceFormatError as e:
            logger.warning("Stopping trace at line %d: %s", lineno, e)
            return
        yield record

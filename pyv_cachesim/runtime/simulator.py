from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable

from ..config import SimConfig
from ..isa.opcode import Opcode
from ..isa.trace import TraceRecord
from ..utils.logging import get_logger
from .hierarchy import CycleCounter, Hierarchy, fetch, store

logger = get_logger("pyv-cachesim.sim")

BRANCH_CYCLES = 1


def _per_opcode() -> Dict[Opcode, int]:
    return {op: 0 for op in Opcode}


@dataclass
class SimResult:
    hierarchy: Hierarchy
    config: SimConfig
    instructions: Dict[Opcode, int] = field(default_factory=_per_opcode)
    cycles: Dict[Opcode, int] = field(default_factory=_per_opcode)

    @property
    def num_inst(self) -> int:
        return sum(self.instructions.values())

    @property
    def total_cycles(self) -> int:
        return sum(self.cycles.values())

    @property
    def inst_refs(self) -> int:
        return self.hierarchy.l1i.stats.requests

    @property
    def data_refs(self) -> int:
        return self.hierarchy.l1d.stats.requests

    @property
    def total_refs(self) -> int:
        return self.inst_refs + self.data_refs

    @property
    def perfect_cycles(self) -> int:
        """Cycles for the same trace on a processor with a perfect memory system."""
        return 2 * self.num_inst

    def cpi(self, opcode: Opcode) -> float:
        count = self.instructions[opcode]
        return self.cycles[opcode] / count if count else 0.0

    @property
    def overall_cpi(self) -> float:
        return self.total_cycles / self.num_inst if self.num_inst else 0.0


def execute(record: TraceRecord, hierarchy: Hierarchy) -> int:
    """Runs one trace record through the hierarchy and returns the cycles it took."""
    counter = CycleCounter()
    fetch(hierarchy.l1i, record.inst_addr, counter)

    if record.opcode == Opcode.LOAD:
        fetch(hierarchy.l1d, record.data, counter)
    elif record.opcode == Opcode.STORE:
        store(hierarchy.l1d, record.data, counter)
    elif record.opcode == Opcode.BRANCH:
        counter.charge(BRANCH_CYCLES)
    elif record.opcode == Opcode.COMPUTE:
        counter.charge(record.data)

    return counter.cycles


def run(records: Iterable[TraceRecord], config: SimConfig) -> SimResult:
    """
    Runs the simulation for a trace and configuration.

    The config is resolved first, so an invalid geometry is rejected before
    any set is allocated.
    """
    resolved = config.resolve()
    result = SimResult(hierarchy=Hierarchy.from_config(resolved), config=resolved)

    for n, record in enumerate(records):
        logger.debug("inst %d, type = %s", n, record.opcode)
        cycles = execute(record, result.hierarchy)
        result.instructions[record.opcode] += 1
        result.cycles[record.opcode] += cycles
        logger.debug("execution time: %d", result.total_cycles)

    return result

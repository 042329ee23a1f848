import io
import pytest
from pyv_cachesim.config import SimConfig
from pyv_cachesim.errors import ConfigError
from pyv_cachesim.isa.opcode import Opcode
from pyv_cachesim.isa.trace import TraceRecord, read_trace
from pyv_cachesim.runtime.simulator import run, execute
from pyv_cachesim.runtime.hierarchy import Hierarchy

COLD_MISS = 204  # L1 miss, L2 miss, memory -> L2 -> L1 with replays


def records(text):
    return list(read_trace(io.StringIO(text)))


def test_compute_record_adds_its_cost(config):
    base = run(records("C 400 0\n"), config)
    result = run(records("C 400 5\n"), config)
    assert base.cycles[Opcode.COMPUTE] == COLD_MISS
    assert result.cycles[Opcode.COMPUTE] == COLD_MISS + 5
    assert result.instructions[Opcode.COMPUTE] == 1


def test_branch_record_adds_one_cycle(config):
    result = run(records("B 400 0\n"), config)
    assert result.cycles[Opcode.BRANCH] == COLD_MISS + 1


def test_load_fetches_instruction_and_data(config):
    result = run(records("L 400 1000\n"), config)
    h = result.hierarchy
    assert result.cycles[Opcode.LOAD] == 2 * COLD_MISS
    assert result.inst_refs == 1
    assert result.data_refs == 1
    assert h.l2.stats.miss_count == 2
    assert h.memory.stats.requests == 2


def test_store_after_load_hits_and_dirties(config):
    result = run(records("L 400 1000\nS 404 1000\n"), config)
    assert result.cycles[Opcode.STORE] == 1 + 1
    assert result.hierarchy.l1d.block(0x1000).dirty


def test_cycles_are_kept_per_opcode(config):
    trace = "L 400 1000\nS 404 1004\nB 408 0\nC 40c 5\n"
    result = run(records(trace), config)
    assert result.num_inst == 4
    assert all(result.instructions[op] == 1 for op in Opcode)
    assert result.total_cycles == sum(result.cycles.values())
    # Only the load touches memory for instructions; the rest hit in L1i
    assert result.cycles[Opcode.BRANCH] == 1 + 1
    assert result.cycles[Opcode.COMPUTE] == 1 + 5
    assert result.perfect_cycles == 8
    assert result.overall_cpi == pytest.approx(result.total_cycles / 4)
    assert result.cpi(Opcode.COMPUTE) == 6.0


def test_empty_trace(config):
    result = run([], config)
    assert result.num_inst == 0
    assert result.total_cycles == 0
    assert result.overall_cpi == 0.0
    assert result.cpi(Opcode.LOAD) == 0.0


def test_run_resolves_config(config):
    config.l1.assoc = 0
    result = run([], config)
    assert result.config.l1.assoc == 256
    assert len(result.hierarchy.l1i.sets) == 1
    assert config.l1.assoc == 0


def test_run_rejects_invalid_config_before_simulating(config):
    config.l2.bus_width = 0
    with pytest.raises(ConfigError):
        run(records("L 400 1000\n"), config)


def test_execute_returns_record_cycles(config):
    hierarchy = Hierarchy.from_config(config.resolve())
    assert execute(TraceRecord(Opcode.COMPUTE, 0x400, 3), hierarchy) == COLD_MISS + 3
    assert execute(TraceRecord(Opcode.COMPUTE, 0x400, 3), hierarchy) == 1 + 3

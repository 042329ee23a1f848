from __future__ import annotations
import json
from pathlib import Path
from typing import Dict, Any
from ..config import SimConfig
from ..isa.opcode import Opcode
from ..runtime.address import log2
from ..runtime.cache import CacheLevel
from ..runtime.simulator import SimResult
from . import viz

OPCODE_LABELS = {
    Opcode.LOAD: "Loads",
    Opcode.STORE: "Stores",
    Opcode.BRANCH: "Branch",
    Opcode.COMPUTE: "Comp.",
}


def _percent(part: float, whole: float) -> float:
    return part / whole * 100 if whole else 0.0


def level_report(level: CacheLevel) -> Dict[str, Any]:
    """Statistics for one cache level."""
    stats = level.stats
    return {
        "hit_count": stats.hit_count,
        "miss_count": stats.miss_count,
        "total_requests": stats.requests,
        "hit_rate": _percent(stats.hit_count, stats.requests),
        "miss_rate": _percent(stats.miss_count, stats.requests),
        "kickouts": stats.kickouts,
        "dirty_kickouts": stats.dirty_kickouts,
        "transfers": stats.transfers,
    }


def calculate_costs(config: SimConfig) -> Dict[str, int]:
    """Hardware cost of the configured memory system, in dollars."""
    l1, l2, mm = config.l1, config.l2, config.main_mem
    l1_cost = (100 * l1.cache_size // 4096) * (log2(l1.assoc) + 1)
    l2_cost = (50 * l2.cache_size // 65536) + (50 * log2(l2.assoc))
    ready_factor = 100 // mm.ready if mm.ready else 0
    mm_cost = 50 + (200 * (ready_factor - 1)) + 25 + (100 * ((mm.chunksize // 16) - 1))
    return {
        "l1i": l1_cost,
        "l1d": l1_cost,
        "l1": 2 * l1_cost,
        "l2": l2_cost,
        "memory": mm_cost,
        "total": 2 * l1_cost + l2_cost + mm_cost,
    }


def generate_report_json(result: SimResult, config: SimConfig) -> Dict[str, Any]:
    """Generates a JSON-compatible dictionary from a finished run. config must be resolved."""
    num_inst = result.num_inst
    total_cycles = result.total_cycles
    hierarchy = result.hierarchy

    return {
        "memory_system": config.to_dict(),
        "execute_time": total_cycles,
        "total_refs": result.total_refs,
        "inst_refs": result.inst_refs,
        "data_refs": result.data_refs,
        "instructions": {
            op.value: {"count": result.instructions[op], "percent": _percent(result.instructions[op], num_inst)}
            for op in Opcode
        },
        "total_instructions": num_inst,
        "cycles": {
            op.value: {"count": result.cycles[op], "percent": _percent(result.cycles[op], total_cycles)}
            for op in Opcode
        },
        "total_cycles": total_cycles,
        "cpi": {op.value: result.cpi(op) for op in Opcode},
        "overall_cpi": result.overall_cpi,
        "perfect_cycles": result.perfect_cycles,
        "perf_ratio": total_cycles / result.perfect_cycles if result.perfect_cycles else 0.0,
        "levels": {level.name: level_report(level) for level in hierarchy.levels},
        "memory": {
            "requests": hierarchy.memory.stats.requests,
            "writebacks": hierarchy.memory.stats.writebacks,
        },
        "costs": calculate_costs(config),
    }


def _kind_lines(values: Dict[str, Dict[str, float]], total: int) -> str:
    def cell(op: Opcode) -> str:
        v = values[op.value]
        return f"{OPCODE_LABELS[op]:<6} ({op.value}) = {v['count']} [{v['percent']:.1f}%]"
    return (
        f"\t{cell(Opcode.LOAD)} : {cell(Opcode.STORE)}\n"
        f"\t{cell(Opcode.BRANCH)} : {cell(Opcode.COMPUTE)}\n"
        f"\tTotal  (T) = {total}\n"
    )


def format_report(report: Dict[str, Any]) -> str:
    """Renders the end-of-run report as text."""
    ms = report["memory_system"]
    l1, l2, mm = ms["L1_cache"], ms["L2_cache"], ms["Main_Mem"]
    cpi = report["cpi"]
    costs = report["costs"]

    out = "Memory System:\n"
    out += f"\tDcache size = {l1['cache_size']} : ways = {l1['assoc']} : block size = {l1['block_size']}\n"
    out += f"\tIcache size = {l1['cache_size']} : ways = {l1['assoc']} : block size = {l1['block_size']}\n"
    out += f"\tL2-cache size = {l2['cache_size']} : ways = {l2['assoc']} : block size = {l2['block_size']}\n"
    out += f"\tMemory ready time = {mm['ready']} : chunksize = {mm['chunksize']} : chunktime = {mm['chunktime']}\n\n"

    out += f"Execute time = {report['execute_time']} : Total refs = {report['total_refs']}\n"
    out += f"Inst refs = {report['inst_refs']} : Data refs = {report['data_refs']}\n\n"

    out += "Number of Instructions: [Percentage]\n"
    out += _kind_lines(report["instructions"], report["total_instructions"]) + "\n"
    out += "Cycles for Instructions: [Percentage]\n"
    out += _kind_lines(report["cycles"], report["total_cycles"]) + "\n"

    out += "Cycles per Instruction (CPI):\n"
    out += f"\tLoads  (L) = {cpi['L']:.1f} : Stores (S) = {cpi['S']:.1f}\n"
    out += f"\tBranch (B) = {cpi['B']:.1f} : Comp. (C) = {cpi['C']:.1f}\n"
    out += f"\tOverall (CPI) = {report['overall_cpi']:.1f}\n\n"

    out += f"Cycles for processor w/ perfect memory system = {report['perfect_cycles']}\n"
    out += f"Cycles for processor w/ simulated memory system = {report['total_cycles']}\n"
    out += f"Ratio of simulated to perfect performance = {report['perf_ratio']:.1f}\n\n"

    for name, s in report["levels"].items():
        out += f"Memory Level: {name}\n"
        out += f"\tHit Count = {s['hit_count']}\tMiss Count = {s['miss_count']}\tTotal Requests = {s['total_requests']}\n"
        out += f"\tHit Rate = {s['hit_rate']:.1f}%\tMiss Rate = {s['miss_rate']:.1f}%\n"
        out += f"\tKickouts : {s['kickouts']} Dirty Kickouts : {s['dirty_kickouts']} Transfers : {s['transfers']}\n\n"

    out += "Memory Level: Main Memory\n"
    out += f"\tBlock Requests = {report['memory']['requests']}\tWrite-backs = {report['memory']['writebacks']}\n\n"

    out += f"L1 cache cost (Icache ${costs['l1i']}) + (Dcache ${costs['l1d']}) = ${costs['l1']}\n"
    out += f"L2 cache cost = ${costs['l2']}\n"
    out += f"Memory Cost = ${costs['memory']}\n"
    out += f"Total Cost = ${costs['total']}\n"
    return out


def format_sets(level: CacheLevel) -> str:
    """Dumps every set of a level, least recently used block first."""
    out = f"{level.name}:\n"
    for index, cache_set in enumerate(level.sets):
        cells = []
        for block in cache_set.blocks:
            if block.valid:
                cells.append(f"{'D' if block.dirty else 'V'}:{block.tag:x}")
            else:
                cells.append("-")
        out += f"  set {index:>4}: " + " ".join(cells) + "\n"
    return out


def generate_report(result: SimResult, config: SimConfig):
    """Generates all report artifacts."""
    report_data = generate_report_json(result, config)
    output_dir = Path(config.report_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    with open(output_dir / "report.json", "w") as f:
        json.dump(report_data, f, indent=4)

    viz.export_hit_rates(report_data["levels"], str(output_dir / "report.html"))

    print(format_report(report_data))
    print(viz.export_cycles_ascii({op: v["count"] for op, v in report_data["cycles"].items()}))

    print(f"\nReports generated in {output_dir.absolute()}")
    return report_data

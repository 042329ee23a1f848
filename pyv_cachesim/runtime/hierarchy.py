from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence, Union

from ..config import SimConfig
from ..utils.logging import get_logger
from .address import reconstruct
from .cache import CacheGeometry, CacheLevel, MainMemoryLevel

logger = get_logger("pyv-cachesim.walker")

Level = Union[CacheLevel, MainMemoryLevel]


@dataclass
class CycleCounter:
    """Cycle accumulator for a single trace record, threaded through the walker."""
    cycles: int = 0

    def charge(self, n: int):
        self.cycles += n

    def refund(self, n: int):
        self.cycles -= n


def kickout(level: CacheLevel, next_level: Level, addr: int, counter: CycleCounter):
    """
    Handles the block about to be replaced in the set addr maps to.

    A valid victim counts as a kickout. A dirty victim is written back to
    next_level. When next_level is a cache, the write-back first probes it
    with hit(), which records a hit or miss and charges cycles like any other
    access; if that probe hits, the level's transfer count and the probe's
    hit_time are taken back.
    """
    index, victim = level.lru_block(addr)
    if not victim.valid:
        return
    level.stats.kickouts += 1
    if not victim.dirty:
        return

    level.stats.dirty_kickouts += 1
    victim_addr = reconstruct(victim.tag, index, level.geometry)
    logger.debug("\t%s dirty kickout of %#x -> %s", level.name, victim_addr, next_level.name)

    if next_level.is_terminal:
        next_level.stats.writebacks += 1
        return

    if next_level.hit(victim_addr, counter):
        level.stats.transfers -= 1
        counter.refund(next_level.hit_time)
        logger.debug("\t%s already holds %#x, refunded %d cycles", next_level.name, victim_addr, next_level.hit_time)
    next_level.write(victim_addr)


def transfer(level: CacheLevel, addr: int, counter: CycleCounter):
    """Moves the block for addr into level from the level below and replays the access."""
    supplier = level.next
    if supplier.is_terminal:
        cycles = supplier.transfer_cycles(level.block_size)
        supplier.stats.requests += 1
    else:
        cycles = supplier.transfer_time * level.block_size // supplier.bus_width
    counter.charge(cycles)
    level.stats.transfers += 1
    level.read(addr)
    counter.charge(level.hit_time)
    logger.debug("\t%s -> %s transfer (+%d), replay hit (+%d)", supplier.name, level.name, cycles, level.hit_time)


def fetch(level: CacheLevel, addr: int, counter: CycleCounter) -> bool:
    """
    Makes addr resident in level, walking down the chain on a miss.
    Returns True if level already held the block.
    """
    if level.hit(addr, counter):
        logger.debug("\t%s hit on %#x (+%d)", level.name, addr, level.hit_time)
        return True
    logger.debug("\t%s miss on %#x (+%d)", level.name, addr, level.miss_time)

    kickout(level, level.next, addr, counter)
    if not level.next.is_terminal:
        fetch(level.next, addr, counter)
    transfer(level, addr, counter)
    return False


def store(level: CacheLevel, addr: int, counter: CycleCounter) -> bool:
    """Fetches addr into level, then writes it, leaving the block dirty and most recently used."""
    hit = fetch(level, addr, counter)
    level.write(addr)
    return hit


def build_chain(geometries: Sequence[CacheGeometry], memory: MainMemoryLevel,
                names: Sequence[str] | None = None) -> List[CacheLevel]:
    """Links caches top (closest to the processor) to bottom, ending at memory."""
    if not geometries:
        raise ValueError("A hierarchy needs at least one cache level.")
    names = list(names) if names is not None else [f"L{i + 1}" for i in range(len(geometries))]
    if len(names) != len(geometries):
        raise ValueError("Expected one name per cache level.")

    levels: List[CacheLevel] = []
    next_level: Level = memory
    for geometry, name in reversed(list(zip(geometries, names))):
        next_level = CacheLevel(geometry, next_level, name=name)
        levels.append(next_level)
    levels.reverse()
    return levels


class Hierarchy:
    """Split L1 instruction and data caches sharing one L2, backed by main memory."""

    def __init__(self, l1i: CacheLevel, l1d: CacheLevel, l2: CacheLevel, memory: MainMemoryLevel):
        self.l1i = l1i
        self.l1d = l1d
        self.l2 = l2
        self.memory = memory

    @property
    def levels(self) -> List[CacheLevel]:
        return [self.l1i, self.l1d, self.l2]

    @classmethod
    def from_config(cls, config: SimConfig) -> Hierarchy:
        """Builds the hierarchy from a resolved SimConfig."""
        memory = MainMemoryLevel(config.main_mem)
        l2_geometry = CacheGeometry.from_config(config.l2)
        l1_geometry = CacheGeometry.from_config(config.l1)
        l1i, l2 = build_chain([l1_geometry, l2_geometry], memory, names=["L1i", "L2"])
        l1d = CacheLevel(l1_geometry, l2, name="L1d")
        return cls(l1i, l1d, l2, memory)

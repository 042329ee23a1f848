from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Union

from ..config import CacheConfig, MainMemConfig
from .address import decode, log2, ADDRESS_BITS


@dataclass(frozen=True)
class CacheGeometry:
    """Fixed shape and latencies of one cache level."""
    block_size: int
    cache_size: int
    associativity: int
    hit_time: int
    miss_time: int
    transfer_time: int = 0
    bus_width: int = 0

    @property
    def sets_in_cache(self) -> int:
        return self.cache_size // (self.associativity * self.block_size)

    @property
    def tag_bits(self) -> int:
        return ADDRESS_BITS - log2(self.sets_in_cache) - log2(self.block_size)

    @classmethod
    def from_config(cls, config: CacheConfig) -> CacheGeometry:
        """Builds a geometry from a resolved config section (assoc already expanded)."""
        return cls(
            block_size=config.block_size,
            cache_size=config.cache_size,
            associativity=config.assoc,
            hit_time=config.hit_time,
            miss_time=config.miss_time,
            transfer_time=config.transfer_time,
            bus_width=config.bus_width,
        )


@dataclass
class Block:
    """A single block slot in a cache set."""
    valid: bool = False
    dirty: bool = False
    tag: int = 0


class CacheSet:
    """
    The blocks of one set, ordered by recency.
    Position 0 is the least recently used block, the last position the most recently used.
    The ordering is the only replacement state.
    """
    def __init__(self, associativity: int):
        self.blocks: List[Block] = [Block() for _ in range(associativity)]

    def __len__(self) -> int:
        return len(self.blocks)

    def probe(self, tag: int) -> Optional[int]:
        """Returns the position of the valid block holding tag, or None."""
        for position, block in enumerate(self.blocks):
            if block.valid and block.tag == tag:
                return position
        return None

    def promote(self, position: int):
        """Moves the block at position to the front; the blocks before it shift back by one."""
        if position:
            self.blocks.insert(0, self.blocks.pop(position))

    def install_front(self, tag: int, dirty: bool):
        front = self.blocks[0]
        front.valid = True
        front.dirty = dirty
        front.tag = tag

    def rotate_to_back(self):
        """Moves the front block to the back, marking it most recently used."""
        self.blocks.append(self.blocks.pop(0))

    def update(self, tag: int, dirty: bool):
        """Records an access to tag: refreshes it if resident, else replaces the LRU block."""
        position = self.probe(tag)
        if position is not None:
            self.promote(position)
        self.install_front(tag, dirty)
        self.rotate_to_back()

    def lru(self) -> Block:
        return self.blocks[0]

    def mru(self) -> Block:
        return self.blocks[-1]


@dataclass
class CacheStats:
    hit_count: int = 0
    miss_count: int = 0
    kickouts: int = 0
    dirty_kickouts: int = 0
    transfers: int = 0

    @property
    def requests(self) -> int:
        return self.hit_count + self.miss_count


@dataclass
class MemoryStats:
    requests: int = 0     # blocks supplied to the last cache level
    writebacks: int = 0   # dirty blocks written back by the last cache level


class MainMemoryLevel:
    """Terminal timing source. Never probed for hits; always supplies the block."""
    is_terminal = True

    def __init__(self, config: MainMemConfig, name: str = "Memory"):
        self.name = name
        self.sendaddr = config.sendaddr
        self.ready = config.ready
        self.chunktime = config.chunktime
        self.chunksize = config.chunksize
        self.stats = MemoryStats()

    def transfer_cycles(self, block_size: int) -> int:
        """Cycles to send an address and stream one block back in chunks."""
        return self.sendaddr + self.ready + self.chunktime * block_size // self.chunksize


class CacheLevel:
    """
    One level of set-associative cache.
    This class holds the sets and statistics and answers hit tests; the
    walker in hierarchy.py drives misses, evictions and transfers.
    """
    is_terminal = False

    def __init__(self, geometry: CacheGeometry, next_level: Union[CacheLevel, MainMemoryLevel], name: str = "Cache"):
        self.name = name
        self.geometry = geometry
        self.next = next_level
        self.stats = CacheStats()
        self.sets = [CacheSet(geometry.associativity) for _ in range(geometry.sets_in_cache)]

    @property
    def block_size(self) -> int:
        return self.geometry.block_size

    @property
    def hit_time(self) -> int:
        return self.geometry.hit_time

    @property
    def miss_time(self) -> int:
        return self.geometry.miss_time

    @property
    def transfer_time(self) -> int:
        return self.geometry.transfer_time

    @property
    def bus_width(self) -> int:
        return self.geometry.bus_width

    def decode(self, addr: int) -> tuple[int, int]:
        return decode(addr, self.geometry)

    def hit(self, addr: int, counter) -> bool:
        """
        Tests whether addr is resident, recording a hit or miss and charging
        hit_time or miss_time to the counter. Every call counts, including
        probes issued while handling an eviction from the level above.
        """
        index, tag = self.decode(addr)
        if self.sets[index].probe(tag) is not None:
            self.stats.hit_count += 1
            counter.charge(self.hit_time)
            return True
        self.stats.miss_count += 1
        counter.charge(self.miss_time)
        return False

    def block(self, addr: int) -> Block | None:
        """Returns the resident block for addr without touching statistics or LRU order."""
        index, tag = self.decode(addr)
        cache_set = self.sets[index]
        position = cache_set.probe(tag)
        return None if position is None else cache_set.blocks[position]

    def lru_block(self, addr: int) -> tuple[int, Block]:
        """Returns (index, block) for the next victim of the set addr maps to."""
        index, _ = self.decode(addr)
        return index, self.sets[index].lru()

    def write(self, addr: int):
        index, tag = self.decode(addr)
        self.sets[index].update(tag, dirty=True)

    def read(self, addr: int):
        index, tag = self.decode(addr)
        self.sets[index].update(tag, dirty=False)

    def __repr__(self) -> str:
        return f"CacheLevel({self.name!r}, {self.geometry})"

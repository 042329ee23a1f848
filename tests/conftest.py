import pytest
from pyv_cachesim.config import SimConfig, MainMemConfig
from pyv_cachesim.runtime.cache import CacheGeometry, MainMemoryLevel
from pyv_cachesim.runtime.hierarchy import CycleCounter


@pytest.fixture
def config():
    """The reference memory system: direct-mapped 8KB L1s, direct-mapped 32KB L2."""
    return SimConfig()


@pytest.fixture
def memory():
    """Main memory taking 10 + 50 + 15 * block_size / 8 cycles per block."""
    return MainMemoryLevel(MainMemConfig(sendaddr=10, ready=50, chunktime=15, chunksize=8))


@pytest.fixture
def counter():
    return CycleCounter()


@pytest.fixture
def small_l1():
    """Direct-mapped, 8 sets of 32-byte blocks."""
    return CacheGeometry(block_size=32, cache_size=256, associativity=1, hit_time=1, miss_time=1)


@pytest.fixture
def small_l2():
    """2-way, 8 sets of 64-byte blocks."""
    return CacheGeometry(block_size=64, cache_size=1024, associativity=2, hit_time=5, miss_time=7,
                         transfer_time=5, bus_width=16)

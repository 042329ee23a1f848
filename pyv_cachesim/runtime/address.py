from __future__ import annotations
from typing import TYPE_CHECKING, Tuple

if TYPE_CHECKING:
    from .cache import CacheGeometry

ADDRESS_BITS = 32
ADDRESS_MASK = (1 << ADDRESS_BITS) - 1


def log2(x: int) -> int:
    """Floor of log2(x) for a positive integer."""
    return x.bit_length() - 1


def decode(addr: int, geometry: CacheGeometry) -> Tuple[int, int]:
    """Maps a 32-bit byte address to (set index, tag) for a cache geometry."""
    addr &= ADDRESS_MASK
    index = (addr // geometry.block_size) % geometry.sets_in_cache
    tag = addr >> (ADDRESS_BITS - geometry.tag_bits)
    return index, tag


def reconstruct(tag: int, index: int, geometry: CacheGeometry) -> int:
    """Rebuilds the block address that decodes to (index, tag)."""
    return (tag << (ADDRESS_BITS - geometry.tag_bits)) + index * geometry.block_size

import pytest
from pyv_cachesim.runtime.cache import CacheSet, Block


def tags(cache_set):
    return [b.tag if b.valid else None for b in cache_set.blocks]


def filled_set(*block_tags):
    cache_set = CacheSet(len(block_tags))
    cache_set.blocks = [Block(valid=True, tag=t) for t in block_tags]
    return cache_set


def test_new_set_is_empty():
    cache_set = CacheSet(4)
    assert len(cache_set) == 4
    assert tags(cache_set) == [None] * 4
    assert cache_set.probe(0) is None


def test_promote_moves_block_to_front():
    cache_set = filled_set(10, 11, 12, 13)
    cache_set.promote(2)
    assert tags(cache_set) == [12, 10, 11, 13]


def test_promote_front_is_noop():
    cache_set = filled_set(10, 11, 12)
    cache_set.promote(0)
    assert tags(cache_set) == [10, 11, 12]


def test_rotate_to_back():
    cache_set = filled_set(10, 11, 12, 13)
    cache_set.rotate_to_back()
    assert tags(cache_set) == [11, 12, 13, 10]


def test_install_front_overwrites_lru():
    cache_set = filled_set(10, 11)
    cache_set.install_front(99, dirty=True)
    assert cache_set.lru() == Block(valid=True, dirty=True, tag=99)


def test_probe_ignores_invalid_blocks():
    cache_set = filled_set(10, 11)
    cache_set.blocks[1].valid = False
    assert cache_set.probe(10) == 0
    assert cache_set.probe(11) is None


@pytest.mark.parametrize("ways", [1, 2, 4, 8])
def test_k_plus_one_updates_evict_first_tag_once(ways):
    cache_set = CacheSet(ways)
    for tag in range(ways):
        cache_set.update(tag, dirty=False)
    assert sorted(tags(cache_set)) == list(range(ways))

    cache_set.update(ways, dirty=False)
    assert cache_set.probe(0) is None
    assert tags(cache_set) == list(range(1, ways + 1))

    # The evicted tag only comes back through another update
    cache_set.update(ways + 1, dirty=False)
    assert cache_set.probe(0) is None


def test_repeated_update_stays_mru():
    cache_set = CacheSet(4)
    cache_set.update(1, dirty=False)
    cache_set.update(2, dirty=False)
    before = tags(cache_set)

    cache_set.update(2, dirty=False)
    assert tags(cache_set) == before
    assert cache_set.mru().tag == 2


def test_update_on_resident_tag_refreshes_recency():
    cache_set = CacheSet(4)
    for tag in (1, 2, 3, 4):
        cache_set.update(tag, dirty=False)
    assert tags(cache_set) == [1, 2, 3, 4]

    cache_set.update(1, dirty=False)
    assert tags(cache_set) == [2, 3, 4, 1]

    # 2 is now the LRU block and is the one replaced
    cache_set.update(5, dirty=False)
    assert tags(cache_set) == [3, 4, 1, 5]


def test_update_sets_dirty_flag_from_caller():
    cache_set = CacheSet(2)
    cache_set.update(7, dirty=True)
    assert cache_set.mru().dirty
    cache_set.update(7, dirty=False)
    assert not cache_set.mru().dirty

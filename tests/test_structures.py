import pytest

from engine import (
    FramePool, MemoryExhausted, Page, PageTable, SwapStore, TranslationCache,
)


# -----------------------------
# FramePool
# -----------------------------
def test_frame_pool_initial_state():
    pool = FramePool(4)
    assert pool.capacity == 4
    assert pool.frames == [None] * 4
    assert pool.free == {0, 1, 2, 3}
    assert pool.occupied_count == 0


def test_frame_pool_rejects_zero_capacity():
    with pytest.raises(ValueError):
        FramePool(0)


def test_allocate_until_full():
    pool = FramePool(2)
    assert pool.allocate() == 0
    assert pool.allocate() == 1
    assert pool.allocate() is None


def test_deallocate_returns_frame_and_clears_occupant():
    pool = FramePool(2)
    frame = pool.allocate()
    page = Page(1, 0)
    pool.bind(frame, page)
    pool.deallocate(frame)
    assert pool.occupant(frame) is None
    assert frame in pool.free
    assert pool.allocate() == frame


def test_deallocate_out_of_range():
    pool = FramePool(2)
    with pytest.raises(IndexError):
        pool.deallocate(5)


def test_bind_marks_page_resident():
    pool = FramePool(2)
    page = Page(3, 8192)
    pool.bind(1, page)
    assert pool.occupant(1) is page
    assert page.frame == 1
    assert page.resident


def test_lru_victim_is_oldest_page():
    pool = FramePool(3)
    for frame, ts in [(0, 5), (1, 2), (2, 9)]:
        pool.bind(frame, Page(1, frame * 4096, last_accessed=ts))
    assert pool.find_lru_victim() == 1


def test_lru_victim_tie_goes_to_lowest_frame():
    pool = FramePool(3)
    pool.bind(0, Page(1, 0, last_accessed=7))
    pool.bind(1, Page(1, 4096, last_accessed=3))
    pool.bind(2, Page(1, 8192, last_accessed=3))
    assert pool.find_lru_victim() == 1


def test_lru_victim_skips_empty_frames():
    pool = FramePool(3)
    pool.bind(2, Page(1, 0, last_accessed=4))
    assert pool.find_lru_victim() == 2


def test_lru_victim_on_empty_pool():
    with pytest.raises(MemoryExhausted):
        FramePool(2).find_lru_victim()


# -----------------------------
# PageTable
# -----------------------------
def test_entry_is_created_lazily_and_idempotently():
    table = PageTable(1)
    assert table.lookup(100) is None
    entry = table.entry(100)
    assert not entry.present
    assert entry.frame is None
    assert entry.protection == "RW"
    assert table.entry(100) is entry
    assert table.lookup(100) is entry
    assert len(table) == 1


def test_entries_lists_every_referenced_address():
    table = PageTable(2)
    for vaddr in (0, 4096, 0, 8192):
        table.entry(vaddr)
    assert sorted(e.vaddr for e in table.entries()) == [0, 4096, 8192]


# -----------------------------
# SwapStore
# -----------------------------
def test_store_snapshots_page_and_clears_residency():
    swap = SwapStore()
    page = Page(1, 4096, frame=2, resident=True)
    slot = swap.store(page, timestamp=10)
    assert slot == 0
    assert not page.resident
    assert page.frame is None

    record = swap.retrieve(1, 4096)
    assert record.slot == 0
    assert record.evicted_at == 10
    assert record.page is not page
    assert record.page.payload == "P1_Page_4096"


def test_slots_increase_and_are_not_reused():
    swap = SwapStore()
    a, b = Page(1, 0), Page(1, 4096)
    assert swap.store(a, 1) == 0
    assert swap.store(b, 2) == 1
    swap.remove(1, 0)
    assert swap.store(Page(1, 8192), 3) == 2


def test_remove_deletes_record():
    swap = SwapStore()
    swap.store(Page(1, 0), 1)
    swap.remove(1, 0)
    assert swap.retrieve(1, 0) is None
    assert len(swap) == 0


def test_swap_keyed_by_process_keeps_processes_apart():
    swap = SwapStore()
    swap.store(Page(1, 0), 1)
    swap.store(Page(2, 0), 2)
    assert len(swap) == 2
    assert swap.retrieve(1, 0).page.process_id == 1
    assert swap.retrieve(2, 0).page.process_id == 2


def test_swap_keyed_by_vaddr_only_collides():
    swap = SwapStore(keyed_by_process=False)
    swap.store(Page(1, 0), 1)
    swap.store(Page(2, 0), 2)
    assert len(swap) == 1
    # either process sees the last page stored at that address
    assert swap.retrieve(1, 0).page.process_id == 2


# -----------------------------
# TranslationCache
# -----------------------------
def test_cache_uses_tuple_keys():
    tlb = TranslationCache()
    tlb.install((1, 23), 4)
    tlb.install((12, 3), 5)
    assert tlb.get((1, 23)) == 4
    assert tlb.get((12, 3)) == 5
    assert (1, 23) in tlb
    assert (2, 23) not in tlb


def test_invalidate_frame_drops_only_matching_keys():
    tlb = TranslationCache()
    tlb.install((1, 0), 0)
    tlb.install((2, 0), 0)
    tlb.install((1, 4096), 1)
    dropped = tlb.invalidate_frame(0)
    assert sorted(dropped) == [(1, 0), (2, 0)]
    assert list(tlb.items()) == [((1, 4096), 1)]


def test_flush_empties_cache():
    tlb = TranslationCache()
    tlb.install((1, 0), 0)
    tlb.flush()
    assert len(tlb) == 0

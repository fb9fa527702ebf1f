# engine.py

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from config import DEFAULT_PROTECTION, PAGE_SIZE, SWAP_LABEL, MMUConfig
from oplog import OperationLog, OperationRecord

logger = logging.getLogger(__name__)

TLBKey = Tuple[int, int]  # (process_id, vaddr)


# -----------------------------
# Errors
# -----------------------------
class MMUError(Exception):
    """Base class for failures that abort a single MMU request."""


class UnregisteredProcess(MMUError):
    def __init__(self, process_id):
        super().__init__(f"Process {process_id} has no page table")
        self.process_id = process_id


class MemoryExhausted(MMUError):
    """No frame could be freed although the pool has capacity. A bug, never expected."""


class CorruptSwapRecord(MMUError):
    """A swapped or evicted page refers to a page table that no longer exists."""


class AccessKind(str, Enum):
    READ = "READ"
    WRITE = "WRITE"


# -----------------------------
# Data model
# -----------------------------
@dataclass
class Page:
    process_id: int
    vaddr: int
    frame: Optional[int] = None
    resident: bool = False
    dirty: bool = False
    last_accessed: int = 0
    size: int = PAGE_SIZE
    payload: str = ""

    def __post_init__(self):
        if not self.payload:
            self.payload = f"P{self.process_id}_Page_{self.vaddr}"


@dataclass
class PageTableEntry:
    vaddr: int
    present: bool = False
    frame: Optional[int] = None
    accessed: bool = False
    dirty: bool = False
    protection: str = DEFAULT_PROTECTION


class PageTable:
    """Virtual address -> PageTableEntry for one process."""

    def __init__(self, process_id: int):
        self.process_id = process_id
        self._entries: Dict[int, PageTableEntry] = {}

    def __len__(self):
        return len(self._entries)

    def entry(self, vaddr: int) -> PageTableEntry:
        """Return the entry for vaddr, creating an absent one on first use."""
        if vaddr not in self._entries:
            self._entries[vaddr] = PageTableEntry(vaddr)
        return self._entries[vaddr]

    def lookup(self, vaddr: int) -> Optional[PageTableEntry]:
        return self._entries.get(vaddr)

    def entries(self) -> List[PageTableEntry]:
        return list(self._entries.values())


class FramePool:
    """
    Physical memory as a fixed number of frames.

    Each frame holds at most one Page. A set of free indices tracks
    availability; allocation always hands out the lowest free index.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("Frame pool needs at least one frame")
        self.capacity = capacity
        self.frames: List[Optional[Page]] = [None] * capacity
        self.free = set(range(capacity))

    def allocate(self) -> Optional[int]:
        """Reserve a free frame. Returns None when memory is full."""
        if not self.free:
            return None
        frame = min(self.free)
        self.free.remove(frame)
        return frame

    def deallocate(self, frame: int):
        self._check(frame)
        self.frames[frame] = None
        self.free.add(frame)

    def bind(self, frame: int, page: Page):
        self._check(frame)
        self.frames[frame] = page
        page.frame = frame
        page.resident = True

    def occupant(self, frame: int) -> Optional[Page]:
        self._check(frame)
        return self.frames[frame]

    def find_lru_victim(self) -> int:
        """
        Return the occupied frame whose page was accessed least recently.

        Frames are scanned in index order and only a strictly older
        timestamp replaces the candidate, so ties go to the lowest index.

        Raises:
            MemoryExhausted: If no frame holds a page
        """
        victim = None
        oldest = None
        for i, page in enumerate(self.frames):
            if page is None:
                continue
            if oldest is None or page.last_accessed < oldest:
                oldest = page.last_accessed
                victim = i
        if victim is None:
            raise MemoryExhausted("No occupied frame to evict")
        return victim

    @property
    def occupied_count(self) -> int:
        return sum(1 for p in self.frames if p is not None)

    def _check(self, frame: int):
        if frame < 0 or frame >= self.capacity:
            raise IndexError(f"Frame {frame} out of range (0 .. {self.capacity - 1})")


@dataclass
class SwapRecord:
    page: Page
    slot: int
    evicted_at: int


class SwapStore:
    """
    Secondary storage for evicted pages.

    Records are keyed by (process_id, vaddr) unless keyed_by_process is
    False, in which case only vaddr is used and processes sharing an
    address collide.
    """

    def __init__(self, keyed_by_process: bool = True):
        self.keyed_by_process = keyed_by_process
        self.records: Dict[object, SwapRecord] = {}
        self.next_slot = 0

    def __len__(self):
        return len(self.records)

    def _key(self, process_id: int, vaddr: int):
        return (process_id, vaddr) if self.keyed_by_process else vaddr

    def store(self, page: Page, timestamp: int) -> int:
        """Snapshot page into a new slot and mark the live page non-resident."""
        slot = self.next_slot
        self.next_slot += 1
        page.resident = False
        page.frame = None
        self.records[self._key(page.process_id, page.vaddr)] = SwapRecord(
            copy.copy(page), slot, timestamp)
        return slot

    def retrieve(self, process_id: int, vaddr: int) -> Optional[SwapRecord]:
        return self.records.get(self._key(process_id, vaddr))

    def remove(self, process_id: int, vaddr: int):
        self.records.pop(self._key(process_id, vaddr), None)


class TranslationCache:
    """(process_id, vaddr) -> frame index. Unbounded, no replacement policy."""

    def __init__(self):
        self._map: Dict[TLBKey, int] = {}

    def __contains__(self, key: TLBKey):
        return key in self._map

    def __len__(self):
        return len(self._map)

    def get(self, key: TLBKey) -> Optional[int]:
        return self._map.get(key)

    def install(self, key: TLBKey, frame: int):
        self._map[key] = frame

    def invalidate_frame(self, frame: int) -> List[TLBKey]:
        """Drop every mapping that points at frame; return the dropped keys."""
        stale = [k for k, f in self._map.items() if f == frame]
        for k in stale:
            del self._map[k]
        return stale

    def flush(self):
        self._map.clear()

    def items(self) -> Iterator[Tuple[TLBKey, int]]:
        return iter(list(self._map.items()))


# -----------------------------
# Snapshot views
# -----------------------------
@dataclass(frozen=True)
class FrameView:
    frame: int
    process_id: Optional[int] = None
    vaddr: Optional[int] = None
    payload: Optional[str] = None
    last_accessed: Optional[int] = None

    @property
    def empty(self) -> bool:
        return self.process_id is None


@dataclass(frozen=True)
class SwapView:
    process_id: int
    vaddr: int
    payload: str
    slot: int
    evicted_at: int


@dataclass(frozen=True)
class EntryView:
    vaddr: int
    frame: Optional[int]
    present: bool
    accessed: bool
    dirty: bool
    protection: str


@dataclass(frozen=True)
class PageTableView:
    process_id: int
    entries: Tuple[EntryView, ...]


@dataclass(frozen=True)
class TLBView:
    process_id: int
    vaddr: int
    frame: int


@dataclass(frozen=True)
class Stats:
    tlb_hits: int
    tlb_misses: int
    page_faults: int
    evictions: int
    swap_ins: int
    hit_ratio: float


@dataclass(frozen=True)
class MemorySnapshot:
    """Read-only view of the whole MMU, the only surface front ends use."""
    frames: Tuple[FrameView, ...]
    swap: Tuple[SwapView, ...]
    page_tables: Tuple[PageTableView, ...]
    tlb: Tuple[TLBView, ...]
    stats: Stats


# -----------------------------
# MMU
# -----------------------------
class MMU:
    """
    Memory management unit tying the TLB, page tables, frame pool and
    swap store together.

    One instance is driven by one caller; nothing here is thread-safe.

    Attributes:
        config (MMUConfig): Sizes and compatibility switches
        frames (FramePool): Physical memory
        swap (SwapStore): Secondary storage
        page_tables (Dict[int, PageTable]): One table per registered process
        tlb (TranslationCache): Translation cache
        log (OperationLog): Browsable history of operations
        clock (int): Logical time, advanced on every page access
    """

    def __init__(self, config: Optional[MMUConfig] = None):
        self.config = config or MMUConfig()
        self.reset()

    def reset(self):
        self.frames = FramePool(self.config.frame_count)
        self.swap = SwapStore(keyed_by_process=self.config.swap_keyed_by_process)
        self.page_tables: Dict[int, PageTable] = {}
        self.tlb = TranslationCache()
        self.log = OperationLog()
        self.clock = 0

        self.tlb_hits = 0
        self.tlb_misses = 0
        self.page_faults = 0
        self.evictions = 0
        self.swap_ins = 0

    # -----------------------------
    # Processes
    # -----------------------------
    def register_process(self, process_id: int) -> PageTable:
        if isinstance(process_id, bool) or not isinstance(process_id, int) or process_id <= 0:
            raise ValueError(f"Process id must be a positive integer, got {process_id!r}")
        if process_id in self.page_tables:
            raise ValueError(f"Process {process_id} already registered")
        table = PageTable(process_id)
        self.page_tables[process_id] = table
        logger.debug("Registered process %d", process_id)
        return table

    # -----------------------------
    # Translation
    # -----------------------------
    def translate(self, process_id: int, vaddr: int,
                  operation: AccessKind = AccessKind.READ) -> int:
        """
        Translate (process_id, vaddr) into a frame index.

        Consults the TLB, then the process's page table, and on a page
        fault loads the page into a frame (evicting the LRU page if
        memory is full).

        Raises:
            ValueError: If vaddr is negative
            UnregisteredProcess: If the process has no page table
            CorruptSwapRecord: If a page involved refers to a missing page table
        """
        if vaddr < 0:
            raise ValueError(f"Virtual address must be non-negative, got {vaddr}")

        key = (process_id, vaddr)
        op = OperationRecord("ADDRESS_TRANSLATION", process_id, vaddr)

        # ----- TLB HIT -----
        cached = self.tlb.get(key)
        if cached is not None:
            self.tlb_hits += 1
            op.add("TLB_HIT", f"TLB hit for process {process_id}, "
                              f"virtual address {vaddr}: frame {cached}", frame=cached)
            op.frame = cached
            self.log.append(op)
            return cached

        op.add("TLB_LOOKUP", f"Checking TLB for process {process_id}, "
                             f"virtual address {vaddr}", hit=False)

        table = self.page_tables.get(process_id)
        if table is None:
            op.add("ERROR", "Page table not found for process")
            op.error = UnregisteredProcess.__name__
            self.log.append(op)
            logger.error("Translation for unregistered process %s", process_id)
            raise UnregisteredProcess(process_id)

        self.tlb_misses += 1
        op.add("TLB_MISS", "TLB miss, checking page table")

        entry = table.entry(vaddr)
        op.add("PAGE_TABLE_LOOKUP",
               f"Checking page table entry for virtual address {vaddr}",
               present=entry.present)

        if entry.present:
            # ----- PAGE HIT -----
            frame = entry.frame
            page = self.frames.occupant(frame)
            if page is not None:
                page.last_accessed = self._tick()
            entry.accessed = True
            op.add("PAGE_HIT", f"Page found in memory at frame {frame}", frame=frame)
        else:
            # ----- PAGE FAULT -----
            self.page_faults += 1
            op.add("PAGE_FAULT", "Page fault occurred, loading page")
            try:
                frame = self._handle_fault(process_id, vaddr, entry)
            except MMUError as e:
                op.add("ERROR", str(e))
                op.error = type(e).__name__
                self.log.append(op)
                raise
            self.tlb.install(key, frame)
            op.add("TLB_UPDATE", f"Updated TLB with mapping {vaddr} -> {frame}", frame=frame)
            page = self.frames.occupant(frame)

        if operation == AccessKind.WRITE:
            entry.dirty = True
            if page is not None:
                page.dirty = True

        op.frame = frame
        self.log.append(op)
        return frame

    def _handle_fault(self, process_id: int, vaddr: int, entry: PageTableEntry) -> int:
        op = OperationRecord("PAGE_FAULT_HANDLING", process_id, vaddr)

        frame = self.frames.allocate()
        if frame is None:
            frame = self._evict(op)

        # Swap in, or create a fresh page
        record = self.swap.retrieve(process_id, vaddr)
        if record is not None:
            if record.page.process_id not in self.page_tables:
                self.frames.deallocate(frame)
                msg = (f"Swap slot {record.slot} belongs to process "
                       f"{record.page.process_id}, which has no page table")
                op.add("ERROR", msg)
                op.error = CorruptSwapRecord.__name__
                self.log.append(op)
                logger.error(msg)
                raise CorruptSwapRecord(msg)
            page = record.page
            self.swap.remove(process_id, vaddr)
            self.swap_ins += 1
            op.add("SWAP_IN", f"Loaded page from swap slot {record.slot}", slot=record.slot)
        else:
            page = Page(process_id, vaddr, size=self.config.page_size)
            op.add("PAGE_CREATION", f"Created new page for virtual address {vaddr}")

        page.last_accessed = self._tick()
        self.frames.bind(frame, page)
        entry.present = True
        entry.frame = frame
        entry.accessed = True

        op.add("FRAME_ALLOCATION", f"Allocated frame {frame} for the page", frame=frame)
        op.frame = frame
        self.log.append(op)
        logger.debug("Fault P%d@%d -> frame %d", process_id, vaddr, frame)
        return frame

    def _evict(self, op: OperationRecord) -> int:
        """Swap out the LRU page and return the frame it leaves free."""
        victim_frame = self.frames.find_lru_victim()
        victim = self.frames.occupant(victim_frame)
        op.add("PAGE_EVICTION", f"Evicting page from frame {victim_frame} (LRU)",
               frame=victim_frame, victim=victim.payload)

        victim_table = self.page_tables.get(victim.process_id)
        if victim_table is None:
            msg = (f"Victim page {victim.payload} belongs to process "
                   f"{victim.process_id}, which has no page table")
            op.add("ERROR", msg)
            op.error = CorruptSwapRecord.__name__
            self.log.append(op)
            logger.error(msg)
            raise CorruptSwapRecord(msg)
        victim_entry = victim_table.entry(victim.vaddr)
        victim_entry.present = False
        victim_entry.frame = None

        slot = self.swap.store(victim, self.clock)
        self.evictions += 1
        op.add("SWAP_OUT", "Swapped out page to " + SWAP_LABEL.format(slot=slot), slot=slot)

        if self.config.invalidate_tlb_on_evict:
            dropped = self.tlb.invalidate_frame(victim_frame)
            if dropped:
                op.add("TLB_INVALIDATE", f"Dropped {len(dropped)} TLB entries for "
                                         f"frame {victim_frame}", keys=dropped)

        self.frames.deallocate(victim_frame)
        frame = self.frames.allocate()
        if frame is None:
            raise MemoryExhausted(f"Eviction of frame {victim_frame} freed nothing")
        logger.debug("Evicted %s from frame %d to slot %d", victim.payload, victim_frame, slot)
        return frame

    def flush_tlb(self):
        op = OperationRecord("TLB_FLUSH")
        op.add("TLB_FLUSH", f"Flushed {len(self.tlb)} TLB entries")
        self.tlb.flush()
        self.log.append(op)

    def _tick(self) -> int:
        self.clock += 1
        return self.clock

    # -----------------------------
    # Statistics / snapshot
    # -----------------------------
    @property
    def hit_ratio(self) -> float:
        total = self.tlb_hits + self.tlb_misses
        return (self.tlb_hits / total) if total > 0 else 0.0

    def get_stats(self) -> Stats:
        return Stats(
            tlb_hits=self.tlb_hits,
            tlb_misses=self.tlb_misses,
            page_faults=self.page_faults,
            evictions=self.evictions,
            swap_ins=self.swap_ins,
            hit_ratio=round(self.hit_ratio, 4),
        )

    def snapshot(self) -> MemorySnapshot:
        frames = []
        for i, page in enumerate(self.frames.frames):
            if page is None:
                frames.append(FrameView(i))
            else:
                frames.append(FrameView(i, page.process_id, page.vaddr,
                                        page.payload, page.last_accessed))

        swap = tuple(
            SwapView(r.page.process_id, r.page.vaddr, r.page.payload, r.slot, r.evicted_at)
            for r in sorted(self.swap.records.values(), key=lambda r: r.slot)
        )

        tables = tuple(
            PageTableView(pid, tuple(
                EntryView(e.vaddr, e.frame, e.present, e.accessed, e.dirty, e.protection)
                for e in table.entries()
            ))
            for pid, table in sorted(self.page_tables.items())
        )

        tlb = tuple(TLBView(pid, vaddr, frame) for (pid, vaddr), frame in self.tlb.items())

        return MemorySnapshot(tuple(frames), swap, tables, tlb, self.get_stats())

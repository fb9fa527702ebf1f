# config.py
# Simulation defaults

from dataclasses import dataclass

# === Physical memory ===
FRAME_COUNT = 8          # frames in the pool
PAGE_SIZE = 4096         # size units per page

# === Page table ===
DEFAULT_PROTECTION = "RW"

# === Swap ===
SWAP_LABEL = "SWAP_{slot}"

# === Workload generator ===
MIN_REQUESTS = 5         # requests per simulated process (inclusive)
MAX_REQUESTS = 10
ADDRESS_JITTER = 1000    # random offset added to each page-aligned address
READ_PROBABILITY = 0.7

# === Front ends ===
DEFAULT_PROCESS_COUNT = 3
LOG_TAIL = 20            # records shown by the renderers


@dataclass
class MMUConfig:
    """
    Runtime settings for one MMU instance.

    Attributes:
        frame_count (int): Number of physical frames
        page_size (int): Size given to newly created pages
        invalidate_tlb_on_evict (bool): Drop TLB entries pointing at an
            evicted frame. False keeps stale entries alive, so a later
            hit can return a frame now owned by another page.
        swap_keyed_by_process (bool): Key swap records by (pid, vaddr).
            False keys by vaddr alone, so two processes using the same
            address overwrite each other in swap.
    """
    frame_count: int = FRAME_COUNT
    page_size: int = PAGE_SIZE
    invalidate_tlb_on_evict: bool = True
    swap_keyed_by_process: bool = True

    def __post_init__(self):
        if self.frame_count <= 0:
            raise ValueError("frame_count must be positive")
        if self.page_size <= 0:
            raise ValueError("page_size must be positive")

    @classmethod
    def legacy(cls, frame_count: int = FRAME_COUNT) -> "MMUConfig":
        """Settings with stale TLB entries and vaddr-only swap keys."""
        return cls(frame_count=frame_count,
                   invalidate_tlb_on_evict=False,
                   swap_keyed_by_process=False)

# workload.py

import random
from dataclasses import dataclass
from typing import Iterator, List, Optional

from config import ADDRESS_JITTER, MAX_REQUESTS, MIN_REQUESTS, PAGE_SIZE, READ_PROBABILITY
from engine import AccessKind


@dataclass
class MemoryRequest:
    vaddr: int
    operation: AccessKind
    description: str
    process_id: int
    process_name: str


class SimulatedProcess:
    """
    A process that issues a short, randomized sequence of memory requests.

    Request i targets page i (i * PAGE_SIZE) plus a random offset below
    ADDRESS_JITTER, and is a READ with probability READ_PROBABILITY.

    Attributes:
        pid (int): Process id used for translation
        name (str): Display name
        requests (List[MemoryRequest]): Generated sequence
        position (int): Index of the next request
        completed (bool): True once every request has been handed out
    """

    def __init__(self, pid: int, name: str, rng: Optional[random.Random] = None,
                 requests: Optional[List[MemoryRequest]] = None):
        self.pid = pid
        self.name = name
        self.rng = rng or random.Random()
        self.position = 0
        self.completed = False
        self.requests: List[MemoryRequest] = requests if requests is not None else self._generate()

    def _generate(self) -> List[MemoryRequest]:
        count = self.rng.randint(MIN_REQUESTS, MAX_REQUESTS)
        out = []
        for i in range(count):
            vaddr = i * PAGE_SIZE + self.rng.randrange(ADDRESS_JITTER)
            op = AccessKind.READ if self.rng.random() < READ_PROBABILITY else AccessKind.WRITE
            kind = "Data access" if self.rng.random() < 0.5 else "Code execution"
            out.append(MemoryRequest(vaddr, op, f"{self.name} - {kind} #{i}", self.pid, self.name))
        return out

    def next_request(self) -> Optional[MemoryRequest]:
        if self.position >= len(self.requests):
            self.completed = True
            return None
        req = self.requests[self.position]
        self.position += 1
        return req


def make_processes(count: int, seed: Optional[int] = None) -> List[SimulatedProcess]:
    """Create processes 1..count sharing one seeded generator."""
    rng = random.Random(seed)
    return [SimulatedProcess(pid, f"Process-{pid}", rng) for pid in range(1, count + 1)]


def round_robin(processes: List[SimulatedProcess]) -> Iterator[MemoryRequest]:
    """Yield one request from each unfinished process in turn until all are done."""
    active = list(processes)
    while active:
        still_active = []
        for proc in active:
            req = proc.next_request()
            if req is None:
                continue
            yield req
            still_active.append(proc)
        active = still_active

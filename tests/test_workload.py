import random

from config import ADDRESS_JITTER, MAX_REQUESTS, MIN_REQUESTS, PAGE_SIZE, MMUConfig
from engine import MMU, AccessKind
from workload import MemoryRequest, SimulatedProcess, make_processes, round_robin


def literal(pid, vaddrs):
    reqs = [MemoryRequest(v, AccessKind.READ, f"req {i}", pid, f"P{pid}") for i, v in enumerate(vaddrs)]
    return SimulatedProcess(pid, f"P{pid}", requests=reqs)


def test_generated_requests_follow_layout():
    proc = SimulatedProcess(1, "Process-1", random.Random(7))
    assert MIN_REQUESTS <= len(proc.requests) <= MAX_REQUESTS
    for i, req in enumerate(proc.requests):
        assert i * PAGE_SIZE <= req.vaddr < i * PAGE_SIZE + ADDRESS_JITTER
        assert req.operation in (AccessKind.READ, AccessKind.WRITE)
        assert req.description.startswith("Process-1 - ")
        assert req.description.endswith(f"#{i}")
        assert req.process_id == 1


def test_same_seed_same_workload():
    a = [r.vaddr for p in make_processes(3, seed=11) for r in p.requests]
    b = [r.vaddr for p in make_processes(3, seed=11) for r in p.requests]
    assert a == b


def test_next_request_marks_completion():
    proc = literal(1, [0, 4096])
    assert proc.next_request().vaddr == 0
    assert proc.next_request().vaddr == 4096
    assert not proc.completed
    assert proc.next_request() is None
    assert proc.completed


def test_round_robin_interleaves():
    procs = [literal(1, [0, 1, 2]), literal(2, [10])]
    order = [(r.process_id, r.vaddr) for r in round_robin(procs)]
    assert order == [(1, 0), (2, 10), (1, 1), (1, 2)]


def test_workload_drives_mmu():
    mmu = MMU(MMUConfig(frame_count=2))
    procs = make_processes(2, seed=3)
    for p in procs:
        mmu.register_process(p.pid)
    total = 0
    for req in round_robin(procs):
        mmu.translate(req.process_id, req.vaddr, req.operation)
        total += 1
    stats = mmu.get_stats()
    assert stats.tlb_hits + stats.tlb_misses == total
    assert mmu.frames.occupied_count == 2

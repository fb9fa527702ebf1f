# cli.py
"""
Terminal front end for the MMU simulator.

    memviz menu --option 0      show the menu
    memviz menu --option 1      run the simulated workload and print each state
"""

import argparse
import logging
import sys
from typing import List, Optional

from config import DEFAULT_PROCESS_COUNT, FRAME_COUNT, LOG_TAIL, MMUConfig
from engine import MMU, MMUError, MemorySnapshot
from utils import frame_label, swap_label
from workload import make_processes, round_robin

logger = logging.getLogger(__name__)


# -----------------------------
# Rendering
# -----------------------------
def render_snapshot(snap: MemorySnapshot) -> str:
    lines = ["Physical Memory"]
    for f in snap.frames:
        suffix = "" if f.empty else f"  {f.payload}  t={f.last_accessed}"
        lines.append(f"  {frame_label(f)}{suffix}")

    lines.append("Secondary Storage")
    if not snap.swap:
        lines.append("  (empty)")
    for s in snap.swap:
        lines.append(f"  {swap_label(s.slot):<8} P{s.process_id}@{s.vaddr}  {s.payload}")

    lines.append("Page Tables")
    for table in snap.page_tables:
        lines.append(f"  Process {table.process_id}")
        lines.append(f"    {'vaddr':<8} {'frame':<6} {'present':<8} {'accessed':<9} dirty")
        for e in table.entries:
            frame = "-" if e.frame is None else e.frame
            lines.append(f"    {e.vaddr:<8} {frame!s:<6} {e.present!s:<8} "
                         f"{e.accessed!s:<9} {e.dirty}")

    lines.append("TLB")
    if not snap.tlb:
        lines.append("  (empty)")
    for t in snap.tlb:
        lines.append(f"  P{t.process_id}@{t.vaddr} -> F{t.frame}")

    st = snap.stats
    lines.append(f"TLB hits: {st.tlb_hits}  misses: {st.tlb_misses}  "
                 f"page faults: {st.page_faults}  evictions: {st.evictions}  "
                 f"hit ratio: {st.hit_ratio:.2%}")
    return "\n".join(lines)


def render_log(mmu: MMU, tail: int = LOG_TAIL) -> str:
    lines = []
    for rec in mmu.log.visible()[-tail:]:
        head = rec.kind
        if rec.process_id is not None:
            head += f" P{rec.process_id}@{rec.vaddr}"
        if rec.error:
            head += f" [{rec.error}]"
        lines.append(head)
        for step in rec.steps:
            lines.append(f"  {step.name:<18} {step.description}")
    return "\n".join(lines)


# -----------------------------
# Commands
# -----------------------------
def view_menu():
    print("0 - Show this menu")
    print("1 - Start visualiser")


def start_visualiser(config: MMUConfig, process_count: int, seed: Optional[int] = None,
                     out=sys.stdout) -> MMU:
    mmu = MMU(config)
    processes = make_processes(process_count, seed)
    for proc in processes:
        mmu.register_process(proc.pid)

    for req in round_robin(processes):
        print(f"\n>>> {req.description}: {req.operation.value} "
              f"P{req.process_id}@{req.vaddr}", file=out)
        try:
            frame = mmu.translate(req.process_id, req.vaddr, req.operation)
        except MMUError as e:
            logger.error("Request failed: %s", e)
            print(f"    failed: {e}", file=out)
            continue
        print(f"    -> frame {frame}", file=out)
        print(render_snapshot(mmu.snapshot()), file=out)

    print("\nOperation log", file=out)
    print(render_log(mmu), file=out)
    return mmu


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="memviz", description="Memory visualiser")
    sub = parser.add_subparsers(dest="command", required=True)

    menu = sub.add_parser("menu", help="Read the menu option")
    menu.add_argument("--option", type=int, required=True, help="Enter menu option")
    menu.add_argument("--frames", type=int, default=FRAME_COUNT, help="Physical frames")
    menu.add_argument("--processes", type=int, default=DEFAULT_PROCESS_COUNT,
                      help="Simulated processes")
    menu.add_argument("--seed", type=int, default=None, help="Workload random seed")
    menu.add_argument("--legacy-tlb", action="store_true",
                      help="Keep TLB entries for evicted frames")
    menu.add_argument("--legacy-swap", action="store_true",
                      help="Key swap by virtual address only")
    menu.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    print("Memory visualiser")
    if args.option == 0:
        view_menu()
    elif args.option == 1:
        try:
            config = MMUConfig(frame_count=args.frames,
                               invalidate_tlb_on_evict=not args.legacy_tlb,
                               swap_keyed_by_process=not args.legacy_swap)
        except ValueError as e:
            print(f"error: {e}", file=sys.stderr)
            return 2
        start_visualiser(config, args.processes, args.seed)
    else:
        print(f"error: unknown option {args.option}", file=sys.stderr)
        view_menu()
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Memory Management Visualizer — TLB, Paging, LRU Eviction & Swap

This application provides an interactive visualization of a simulated
memory management unit (MMU):
    - Translation cache (TLB) hits and misses
    - Per-process page tables and demand paging
    - LRU page eviction into swap storage and swap-in on re-reference
    - A replayable log of every step the MMU took

Built with Streamlit for the web interface and Plotly for visualizations.
All state shown here comes from MMU.snapshot() and MMU.log.

Run with:  streamlit run app.py
"""

# =============================================================================
# IMPORTS
# =============================================================================

import streamlit as st                       # Web application framework
import plotly.graph_objects as go            # Interactive plotting library
import time                                  # For pacing the simulation

from config import DEFAULT_PROCESS_COUNT, FRAME_COUNT, LOG_TAIL, MMUConfig
from engine import MMU, MMUError
from utils import frame_label, get_color, swap_label
from workload import make_processes, round_robin


# =============================================================================
# SESSION HELPERS
# =============================================================================

def new_session(config: MMUConfig, process_count: int, seed):
    """
    Build a fresh MMU and workload and store them in session state.

    Args:
        config (MMUConfig): MMU settings chosen in the sidebar
        process_count (int): Number of simulated processes to register
        seed: Workload seed, or None for a random run
    """
    mmu = MMU(config)
    processes = make_processes(process_count, seed)
    for proc in processes:
        mmu.register_process(proc.pid)

    st.session_state.mmu = mmu
    st.session_state.requests = round_robin(processes)
    st.session_state.settings = (config, process_count, seed)
    st.session_state.last_result = None


def step_once() -> bool:
    """Issue the next workload request. Returns False when the workload is done."""
    req = next(st.session_state.requests, None)
    if req is None:
        return False
    mmu: MMU = st.session_state.mmu
    try:
        frame = mmu.translate(req.process_id, req.vaddr, req.operation)
        st.session_state.last_result = (
            f"{req.description}: {req.operation.value} P{req.process_id}@{req.vaddr} -> frame {frame}")
    except MMUError as e:
        st.session_state.last_result = f"{req.description}: failed ({e})"
    return True


# =============================================================================
# STREAMLIT UI - Web Application Interface
# =============================================================================

st.set_page_config(page_title="Memory Management Visualizer", layout="wide")

# Page selector for switching between Simulator and Concepts views
page = st.sidebar.radio("Choose View", ["Simulator", "Concepts"])

st.title("Memory Management Visualizer — TLB, Paging & Swap")

# =============================================================================
# CONCEPTS PAGE - Educational Content
# =============================================================================

if page == "Concepts":
    st.header("Operating System Concepts Used in This Project")
    st.markdown(
        """
        ### **1. Address Translation**
        - Every request names a process and a virtual address.
        - The MMU answers with the physical frame holding that page.

        ### **2. TLB (Translation Lookaside Buffer)**
        - A cache from (process, virtual address) to frame.
        - A hit skips the page table entirely.

        ### **3. Page Table**
        - One per process; entries record the present bit, frame,
          accessed and dirty bits.

        ### **4. Page Fault**
        - The entry is not present: the MMU must find a frame and load the page.

        ### **5. LRU Eviction**
        - When every frame is full, the page with the oldest access time is
          moved to swap.

        ### **6. Swap**
        - Evicted pages get a swap slot; referencing them again swaps them back in.
        """
    )
    st.stop()

# -----------------------------------------------------------------------------
# SIDEBAR - Simulation Settings
# -----------------------------------------------------------------------------

st.sidebar.header("Simulation Settings")

frame_count = st.sidebar.number_input("Physical frames", min_value=1, max_value=64,
                                      value=FRAME_COUNT, step=1)
process_count = st.sidebar.number_input("Processes", min_value=1, max_value=10,
                                        value=DEFAULT_PROCESS_COUNT, step=1)
seed_text = st.sidebar.text_input("Workload seed (blank = random)", value="42")
legacy_tlb = st.sidebar.checkbox("Keep stale TLB entries after eviction", value=False)
legacy_swap = st.sidebar.checkbox("Key swap by virtual address only", value=False)

seed = int(seed_text) if seed_text.strip().lstrip("-").isdigit() else None
config = MMUConfig(frame_count=int(frame_count),
                   invalidate_tlb_on_evict=not legacy_tlb,
                   swap_keyed_by_process=not legacy_swap)

# -----------------------------------------------------------------------------
# SESSION STATE - MMU Persistence
# -----------------------------------------------------------------------------

# Recreate the MMU whenever the settings change
if "mmu" not in st.session_state or st.session_state.settings != (config, int(process_count), seed):
    new_session(config, int(process_count), seed)

mmu: MMU = st.session_state.mmu

run_speed = st.sidebar.slider("Playback speed (ops/sec)", min_value=0.5,
                              max_value=20.0, value=5.0)

if st.sidebar.button("Reset Simulation"):
    new_session(config, int(process_count), seed)
    mmu = st.session_state.mmu
    st.sidebar.success("Simulation reset")

# =============================================================================
# MAIN CONTENT AREA - Two Column Layout
# =============================================================================

col1, col2 = st.columns([1, 2])

# -----------------------------------------------------------------------------
# LEFT COLUMN - Controls and Operation Log
# -----------------------------------------------------------------------------

with col1:
    st.subheader("Controls")

    if st.button("Step Once"):
        if not step_once():
            st.warning("Workload finished")

    if st.button("Run Remaining"):
        while step_once():
            time.sleep(1.0 / run_speed)
        st.success("Workload finished")

    if st.button("Flush TLB"):
        mmu.flush_tlb()

    if st.session_state.last_result:
        st.info(st.session_state.last_result)

    # ----- Operation log browser -----
    st.subheader("Operation Log")
    back, fwd = st.columns(2)
    if back.button("◀ Back"):
        mmu.log.back()
    if fwd.button("Forward ▶"):
        mmu.log.forward()

    current = mmu.log.current()
    if current is None:
        st.write("No operations yet")
    else:
        st.caption(f"Record {mmu.log.cursor + 1} of {len(mmu.log)}")
        header = current.kind
        if current.process_id is not None:
            header += f" — P{current.process_id} @ {current.vaddr}"
        st.markdown(f"**{header}**")
        if current.error:
            st.error(current.error)
        for s in current.steps:
            st.write(f"`{s.name}` {s.description}")

    with st.expander("Recent history"):
        for rec in mmu.log.visible()[-LOG_TAIL:][::-1]:
            label = rec.kind if rec.process_id is None else f"{rec.kind} P{rec.process_id}@{rec.vaddr}"
            st.write(f"{label}: {', '.join(rec.step_names)}")

# -----------------------------------------------------------------------------
# RIGHT COLUMN - Visualizations
# -----------------------------------------------------------------------------

snap = mmu.snapshot()

with col2:
    # ----- Physical Frames Visualization -----
    st.subheader("Physical Frames")
    labels = [frame_label(f) for f in snap.frames]

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=[f.frame for f in snap.frames],
        y=[1] * len(snap.frames),
        text=labels,
        marker_color=[get_color(f.process_id) for f in snap.frames],
        hovertext=[f"{label} last access t={f.last_accessed}" for label, f in zip(labels, snap.frames)],
        hoverinfo="text",
    ))
    fig.update_layout(height=150, showlegend=False, yaxis=dict(showticklabels=False))
    st.plotly_chart(fig, use_container_width=True)

    # ----- Swap -----
    st.subheader("Secondary Storage (swap)")
    if not snap.swap:
        st.write("Swap empty")
    else:
        st.table([{
            "slot": swap_label(s.slot),
            "process": s.process_id,
            "vaddr": s.vaddr,
            "payload": s.payload,
            "evicted_at": s.evicted_at,
        } for s in snap.swap])

    # ----- Page Tables -----
    st.subheader("Page Tables")
    for table in snap.page_tables:
        with st.expander(f"Process {table.process_id} ({len(table.entries)} entries)"):
            if not table.entries:
                st.write("No addresses referenced yet")
            else:
                st.table([{
                    "vaddr": e.vaddr,
                    "present": e.present,
                    "frame": e.frame,
                    "accessed": e.accessed,
                    "dirty": e.dirty,
                    "protection": e.protection,
                } for e in table.entries])

    # ----- TLB -----
    st.subheader("TLB")
    if not snap.tlb:
        st.write("TLB empty")
    else:
        st.table([{"process": t.process_id, "vaddr": t.vaddr, "frame": t.frame} for t in snap.tlb])

    # ----- Statistics -----
    st.subheader("Statistics")
    stats = snap.stats
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("TLB Hits", stats.tlb_hits)
    m2.metric("TLB Misses", stats.tlb_misses)
    m3.metric("Page Faults", stats.page_faults)
    m4.metric("Hit Ratio", stats.hit_ratio)

    fig2 = go.Figure()
    fig2.add_trace(go.Bar(
        x=["TLB Hits", "TLB Misses", "Page Faults", "Evictions"],
        y=[stats.tlb_hits, stats.tlb_misses, stats.page_faults, stats.evictions],
    ))
    fig2.update_layout(height=300, title="Translation outcomes")
    st.plotly_chart(fig2, use_container_width=True)

# =============================================================================
# FOOTER - Usage Tips
# =============================================================================

st.markdown("---")
st.markdown(
    "**Usage tips**:\n"
    "- Click **Step Once** to issue the next request from the round-robin workload.\n"
    "- Use a small frame count (e.g. 2) to see LRU eviction and swap-in quickly.\n"
    "- Browse earlier operations with **Back** / **Forward**; stepping after going back "
    "discards the later history.\n"
    "- Tick the compatibility boxes to see stale TLB hits and swap collisions."
)

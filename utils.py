# utils.py

from config import SWAP_LABEL

FREE_COLOR = "#d3d3d3"


def get_color(process_id):
    """Return a stable pastel color for a process, grey for free frames."""
    if process_id is None:
        return FREE_COLOR
    # golden-angle spread keeps neighbouring pids apart
    return f"hsl({(process_id * 137) % 360}, 70%, 75%)"


def frame_label(view):
    if view.empty:
        return f"F{view.frame}: Free"
    return f"F{view.frame}: P{view.process_id}@{view.vaddr}"


def swap_label(slot):
    return SWAP_LABEL.format(slot=slot)

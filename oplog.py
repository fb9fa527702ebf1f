# oplog.py

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import time


@dataclass
class Step:
    """One stage of an operation, e.g. TLB_LOOKUP or SWAP_OUT."""
    name: str
    description: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OperationRecord:
    """
    A logged MMU operation.

    Attributes:
        kind (str): ADDRESS_TRANSLATION, PAGE_FAULT_HANDLING or TLB_FLUSH
        process_id (Optional[int]): Requesting process, if any
        vaddr (Optional[int]): Requested virtual address, if any
        steps (List[Step]): Stages in the order they happened
        frame (Optional[int]): Resulting frame index
        error (Optional[str]): Name of the error that aborted the request
        timestamp (float): Wall-clock creation time
    """
    kind: str
    process_id: Optional[int] = None
    vaddr: Optional[int] = None
    steps: List[Step] = field(default_factory=list)
    frame: Optional[int] = None
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def add(self, name: str, description: str, **data) -> Step:
        step = Step(name, description, data)
        self.steps.append(step)
        return step

    @property
    def step_names(self) -> List[str]:
        return [s.name for s in self.steps]


class OperationLog:
    """
    Linear history of operation records with a replay cursor.

    The cursor points at the current record (-1 when empty). Moving it
    back lets a viewer replay earlier operations; appending while the
    cursor is behind the end discards every record after it.
    """

    def __init__(self):
        self.records: List[OperationRecord] = []
        self.cursor = -1

    def __len__(self):
        return len(self.records)

    def append(self, record: OperationRecord):
        del self.records[self.cursor + 1:]
        self.records.append(record)
        self.cursor = len(self.records) - 1

    def current(self) -> Optional[OperationRecord]:
        if self.cursor < 0:
            return None
        return self.records[self.cursor]

    @property
    def at_end(self) -> bool:
        return self.cursor == len(self.records) - 1

    def back(self) -> bool:
        """Move the cursor one record back. Returns False at the start."""
        if self.cursor <= 0:
            return False
        self.cursor -= 1
        return True

    def forward(self) -> bool:
        """Move the cursor one record forward. Returns False at the end."""
        if self.at_end:
            return False
        self.cursor += 1
        return True

    def seek(self, index: int):
        if index < -1 or index >= len(self.records):
            raise IndexError(f"log index {index} out of range")
        self.cursor = index

    def visible(self) -> List[OperationRecord]:
        """Records up to and including the cursor."""
        return self.records[:self.cursor + 1]

    def clear(self):
        self.records = []
        self.cursor = -1

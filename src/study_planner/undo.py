"""Undo ledger: snapshots of the plan taken just before each committed change."""
from collections import deque
from typing import Optional

from study_planner.models import StudyPlan


class UndoLedger:
    """Holds up to `depth` previous plans; the default of 1 is a single slot.

    Recording replaces the oldest snapshot once the ledger is full. Restoring
    pops the newest snapshot, so with depth 1 undo cannot be repeated. Each
    snapshot may carry the rebalance that was queued when it was taken.
    """

    def __init__(self, depth: int = 1):
        if depth < 1:
            raise ValueError("depth must be at least 1")
        self._snapshots: deque[tuple[StudyPlan, object]] = deque(maxlen=depth)

    def record(self, plan: StudyPlan, pending_rebalance=None) -> None:
        self._snapshots.append((plan, pending_rebalance))

    def restore_entry(self) -> Optional[tuple[StudyPlan, object]]:
        """Pop the newest (plan, pending_rebalance) pair."""
        if not self._snapshots:
            return None
        return self._snapshots.pop()

    def restore(self) -> Optional[StudyPlan]:
        entry = self.restore_entry()
        return entry[0] if entry else None

    def clear(self) -> None:
        self._snapshots.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._snapshots)

    def __len__(self) -> int:
        return len(self._snapshots)

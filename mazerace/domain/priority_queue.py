"""Priority queue for A* with deterministic first-found tie-breaking."""

import heapq
import itertools
from typing import List, Any, Optional
from dataclasses import dataclass


@dataclass
class PriorityItem:
    """
    Item in the priority queue.

    Comparison order:
    1. f_cost (lower is better)
    2. sequence (earlier insertion wins, so equal costs resolve to the first found)
    """
    f_cost: float
    sequence: int
    g_cost: float
    item_id: Any
    removed: bool = False

    def __lt__(self, other: 'PriorityItem') -> bool:
        """Define comparison for heap ordering."""
        if self.f_cost != other.f_cost:
            return self.f_cost < other.f_cost
        return self.sequence < other.sequence


class PriorityQueue:
    """
    Binary-heap open list with lazy deletion.
    An item id is live at most once; re-inserting with a lower g cost
    supersedes the previous entry.
    """

    def __init__(self):
        self._heap: List[PriorityItem] = []
        self._entry_finder: dict = {}
        self._counter = itertools.count()

    def is_empty(self) -> bool:
        """Check if the queue is empty."""
        return len(self._entry_finder) == 0

    def size(self) -> int:
        """Get the number of items in the queue."""
        return len(self._entry_finder)

    def __len__(self) -> int:
        return self.size()

    def put(self, item_id: Any, f_cost: float, g_cost: float) -> bool:
        """
        Add an item or improve its cost.
        An existing entry with lower or equal g cost is kept; returns whether
        the queue changed.
        """
        existing = self._entry_finder.get(item_id)
        if existing is not None:
            if existing.g_cost <= g_cost:
                return False
            existing.removed = True

        entry = PriorityItem(f_cost, next(self._counter), g_cost, item_id)
        self._entry_finder[item_id] = entry
        heapq.heappush(self._heap, entry)
        return True

    def get(self) -> Optional[Any]:
        """
        Remove and return the item id with the lowest f cost.
        Returns None if queue is empty.
        """
        while self._heap:
            entry = heapq.heappop(self._heap)
            if not entry.removed:
                del self._entry_finder[entry.item_id]
                return entry.item_id
        return None

"""Bounded experience replay buffer."""

from collections import deque
from typing import List, Optional

from .types import Transition
from ..utils.rng import SeededRNG, default_rng


class ReplayBuffer:
    """
    FIFO ring buffer of transitions.
    Once full, each insertion evicts the oldest entry.
    """

    def __init__(self, capacity: int, rng: Optional[SeededRNG] = None):
        if capacity <= 0:
            raise ValueError(f"Replay capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._buffer: deque = deque(maxlen=capacity)
        self._rng = rng if rng is not None else default_rng

    def push(self, transition: Transition) -> None:
        """Append a transition, evicting the oldest if at capacity."""
        self._buffer.append(transition)

    def sample(self, batch_size: int) -> List[Transition]:
        """Uniform random sample with replacement."""
        if not self._buffer:
            raise ValueError("Cannot sample from an empty replay buffer")
        return self._rng.choices(self._buffer, k=batch_size)

    def __len__(self) -> int:
        return len(self._buffer)

    def __iter__(self):
        return iter(list(self._buffer))

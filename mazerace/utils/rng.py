"""Seeded random number generator for reproducible races."""

import random
from typing import Optional

import numpy as np
import torch


class SeededRNG:
    """Seeded random number generator for reproducible results."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)
        self._seed = seed

    @property
    def seed(self) -> Optional[int]:
        """Get the current seed."""
        return self._seed

    def set_seed(self, seed: Optional[int]):
        """Set a new seed."""
        self._seed = seed
        self._rng.seed(seed)

    def random(self) -> float:
        """Generate a random float in [0.0, 1.0)."""
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        """Generate a random integer N such that a <= N <= b."""
        return self._rng.randint(a, b)

    def randrange(self, n: int) -> int:
        """Generate a random integer N such that 0 <= N < n."""
        return self._rng.randrange(n)

    def choice(self, seq):
        """Choose a random element from a non-empty sequence."""
        return self._rng.choice(seq)

    def choices(self, population, k: int) -> list:
        """Choose k elements uniformly with replacement."""
        return self._rng.choices(population, k=k)

    def shuffle(self, seq) -> None:
        """Shuffle the sequence in place."""
        self._rng.shuffle(seq)

    def spawn(self) -> "SeededRNG":
        """Derive an independent child generator from this one."""
        return SeededRNG(self._rng.getrandbits(32))


# Global instance for convenience
default_rng = SeededRNG()


def set_global_seed(seed: Optional[int]):
    """Seed the global RNG instance together with numpy and torch."""
    default_rng.set_seed(seed)
    if seed is not None:
        random.seed(seed)
        np.random.seed(seed)
        torch.manual_seed(seed)


def get_global_seed() -> Optional[int]:
    """Get the seed of the global RNG instance."""
    return default_rng.seed

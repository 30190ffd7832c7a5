"""Heuristic functions for A* path planning."""

import math
from typing import Callable
from .types import Coord, HeuristicId


def squared_euclidean_distance(start: Coord, target: Coord) -> float:
    """
    Squared Euclidean distance heuristic.
    Not admissible for unit-cost 4-directional movement: it overestimates
    away from the target, which makes the search greedier and faster.
    """
    dx = start[0] - target[0]
    dy = start[1] - target[1]
    return float(dx * dx + dy * dy)


def euclidean_distance(start: Coord, target: Coord) -> float:
    """
    Euclidean (L2) distance heuristic.
    Admissible for any movement but may be too optimistic for grid-based movement.
    """
    dx = start[0] - target[0]
    dy = start[1] - target[1]
    return math.sqrt(dx * dx + dy * dy)


def manhattan_distance(start: Coord, target: Coord) -> float:
    """
    Manhattan (L1) distance heuristic.
    Admissible and consistent for 4-directional movement.
    """
    return float(abs(start[0] - target[0]) + abs(start[1] - target[1]))


# Mapping from heuristic IDs to functions
HEURISTICS: dict[HeuristicId, Callable[[Coord, Coord], float]] = {
    "squared_euclidean": squared_euclidean_distance,
    "euclidean": euclidean_distance,
    "manhattan": manhattan_distance,
}


def get_heuristic(heuristic_id: HeuristicId) -> Callable[[Coord, Coord], float]:
    """Get heuristic function by ID."""
    try:
        return HEURISTICS[heuristic_id]
    except KeyError:
        raise ValueError(f"Unknown heuristic: {heuristic_id}") from None


def is_admissible(heuristic_id: HeuristicId) -> bool:
    """
    Check if a heuristic is admissible for unit-cost 4-directional movement.
    An admissible heuristic never overestimates the true cost.
    """
    return heuristic_id in ["manhattan", "euclidean"]

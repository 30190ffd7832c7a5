"""A* path planning over a walkability predicate."""

from typing import Dict, List, Optional, Protocol, Sequence, Set

from .types import Coord, Direction, DELTA_TO_DIRECTION, HeuristicId
from .priority_queue import PriorityQueue
from .heuristics import get_heuristic

# Expansion order: up, down, left, right
EXPANSION_DELTAS = [(0, -1), (0, 1), (-1, 0), (1, 0)]


class WalkableGrid(Protocol):
    """Anything that can answer bounds-checked walkability queries."""

    def is_walkable(self, x: int, y: int) -> bool:
        ...


class PathPlanner:
    """
    Stateless A* planner for 4-connected grids with unit step cost.

    The default squared-Euclidean heuristic is greedy toward the goal and
    trades optimality for speed. Expanded nodes are never
    reopened, so an occasional longer-than-shortest path is expected.
    """

    def __init__(self, heuristic: HeuristicId = "squared_euclidean"):
        self.heuristic_id = heuristic
        self._heuristic = get_heuristic(heuristic)

    def find_path(self, grid: WalkableGrid, start: Coord, end: Coord) -> Optional[List[Coord]]:
        """
        Search from start to end.
        Returns the cell sequence including both endpoints, or None when no path exists.
        """
        start = (int(start[0]), int(start[1]))
        end = (int(end[0]), int(end[1]))
        if start == end:
            return [start]
        if not grid.is_walkable(*start) or not grid.is_walkable(*end):
            return None

        open_set = PriorityQueue()
        closed_set: Set[Coord] = set()
        parents: Dict[Coord, Optional[Coord]] = {start: None}
        g_costs: Dict[Coord, float] = {start: 0.0}

        open_set.put(start, self._heuristic(start, end), 0.0)

        while not open_set.is_empty():
            current = open_set.get()
            if current is None:
                break
            closed_set.add(current)

            if current == end:
                return self._reconstruct(parents, end)

            for dx, dy in EXPANSION_DELTAS:
                neighbor = (current[0] + dx, current[1] + dy)
                if neighbor in closed_set or not grid.is_walkable(*neighbor):
                    continue

                tentative_g = g_costs[current] + 1.0
                f_cost = tentative_g + self._heuristic(neighbor, end)
                if open_set.put(neighbor, f_cost, tentative_g):
                    g_costs[neighbor] = tentative_g
                    parents[neighbor] = current

        return None

    def plan(self, grid: WalkableGrid, start: Coord, end: Coord) -> List[Direction]:
        """Direction tokens from start to end; empty when no plan is available."""
        return to_directions(self.find_path(grid, start, end))

    @staticmethod
    def _reconstruct(parents: Dict[Coord, Optional[Coord]], end: Coord) -> List[Coord]:
        path = []
        current: Optional[Coord] = end
        while current is not None:
            path.append(current)
            current = parents[current]
        return list(reversed(path))


def to_directions(path: Optional[Sequence[Coord]]) -> List[Direction]:
    """
    Convert consecutive cell deltas into direction tokens.
    Paths of length <= 1 yield no directions.
    """
    if not path or len(path) < 2:
        return []

    directions = []
    for i in range(1, len(path)):
        delta = (path[i][0] - path[i - 1][0], path[i][1] - path[i - 1][1])
        direction = DELTA_TO_DIRECTION.get(delta)
        if direction is None:
            raise ValueError(f"Invalid movement from {path[i - 1]} to {path[i]}")
        directions.append(direction)
    return directions


def find_path(grid: WalkableGrid, start: Coord, end: Coord,
              heuristic: HeuristicId = "squared_euclidean") -> Optional[List[Coord]]:
    """
    Convenience function to run A* from start to end.

    Args:
        grid: Object exposing ``is_walkable(x, y)``
        start: Starting coordinate
        end: Target coordinate
        heuristic: Heuristic identifier

    Returns:
        List of cells from start to end, or None if unreachable
    """
    return PathPlanner(heuristic).find_path(grid, start, end)

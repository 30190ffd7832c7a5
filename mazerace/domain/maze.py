"""Dynamic grid maze with a start-to-goal reachability guarantee."""

import logging
from collections import deque
from typing import Dict, Iterable, List, Optional, Set

import numpy as np

from .types import CellState, Coord
from ..utils.rng import SeededRNG, default_rng

logger = logging.getLogger(__name__)

NEIGHBOR_DELTAS = [(0, 1), (1, 0), (0, -1), (-1, 0)]

# Carving moves by 2 so odd offsets stay as walls between rooms
CARVE_DIRECTIONS = [(0, 2), (2, 0), (0, -2), (-2, 0)]


class GridMaze:
    """
    Wall/path grid that can reshape itself while keeping the goal reachable.

    The grid is stored as ``grid[y, x]`` holding ``CellState`` values. Start is
    fixed at (1, 1) and the goal at (width - 2, height - 2). Other components
    query the maze only through ``is_walkable``.
    """

    def __init__(self, width: int, height: int, rng: Optional[SeededRNG] = None):
        if width < 5 or height < 5:
            raise ValueError(f"Maze dimensions must be at least 5x5, got {width}x{height}")

        self.width = width
        self.height = height
        self._rng = rng if rng is not None else default_rng
        self._grid = np.full((height, width), CellState.WALL, dtype=np.int8)
        self._walls: Set[Coord] = set()
        # Interior walls in sampling order, with each coord's slot for O(1) removal
        self._interior_walls: List[Coord] = []
        self._interior_index: Dict[Coord, int] = {}
        self._fill(CellState.WALL)

    @classmethod
    def from_walls(cls, width: int, height: int, walls: Iterable[Coord],
                   rng: Optional[SeededRNG] = None) -> "GridMaze":
        """
        Build a maze from an explicit wall list (everything else is path).
        Start and goal are always opened.
        """
        maze = cls(width, height, rng=rng)
        maze._fill(CellState.PATH)
        for x, y in walls:
            if maze.in_bounds(x, y):
                maze._set_cell((x, y), CellState.WALL)
        maze._set_cell(maze.start, CellState.PATH)
        maze._set_cell(maze.goal, CellState.PATH)
        return maze

    # Queries

    @property
    def start(self) -> Coord:
        """Start cell."""
        return (1, 1)

    @property
    def goal(self) -> Coord:
        """Goal cell."""
        return (self.width - 2, self.height - 2)

    def get_start_position(self) -> Coord:
        return self.start

    def get_end_position(self) -> Coord:
        return self.goal

    @property
    def walls(self) -> frozenset:
        """Snapshot of the current wall coordinates."""
        return frozenset(self._walls)

    @property
    def wall_count(self) -> int:
        return len(self._walls)

    @property
    def grid(self) -> np.ndarray:
        """Read-only copy of the cell array, indexed ``[y, x]``."""
        return self._grid.copy()

    def in_bounds(self, x: int, y: int) -> bool:
        """Check if coordinate is within grid bounds."""
        return 0 <= x < self.width and 0 <= y < self.height

    def is_interior(self, x: int, y: int) -> bool:
        """Check if coordinate lies inside the outer border."""
        return 0 < x < self.width - 1 and 0 < y < self.height - 1

    def is_walkable(self, x: int, y: int) -> bool:
        """Bounds-checked walkability predicate."""
        x, y = int(x), int(y)
        if not self.in_bounds(x, y):
            return False
        return self._grid[y, x] == CellState.PATH

    # Generation

    def generate(self) -> np.ndarray:
        """
        Carve a perfect maze from the start cell with randomized depth-first
        backtracking, then force the goal (and its exit notch) open.
        """
        self._fill(CellState.WALL)

        self._carve_passages(self.start)

        goal_x, goal_y = self.goal
        self._set_cell((goal_x, goal_y), CellState.PATH)
        self._set_cell((goal_x + 1, goal_y), CellState.PATH)

        if not self.has_path(self.start, self.goal):
            logger.debug("Generated maze %dx%d left goal isolated; carving corridor",
                         self.width, self.height)
            self.create_direct_path(self.start, self.goal)

        return self.grid

    def _carve_passages(self, origin: Coord) -> None:
        """Iterative backtracking over the step-2 room lattice."""
        self._set_cell(origin, CellState.PATH)
        visited = {origin}
        stack = [origin]

        while stack:
            x, y = stack[-1]
            neighbors = []
            for dx, dy in CARVE_DIRECTIONS:
                nx, ny = x + dx, y + dy
                if self.is_interior(nx, ny) and (nx, ny) not in visited:
                    neighbors.append(((nx, ny), (x + dx // 2, y + dy // 2)))

            if neighbors:
                next_cell, wall_between = self._rng.choice(neighbors)
                self._set_cell(next_cell, CellState.PATH)
                self._set_cell(wall_between, CellState.PATH)
                visited.add(next_cell)
                stack.append(next_cell)
            else:
                stack.pop()

    # Mutation

    def shift_maze(self, intensity: float = 0.5) -> np.ndarray:
        """
        Open up to ``intensity * wall_count * 0.1`` interior walls, then try to
        close roughly as many path cells. A closing is kept only if the goal is
        still reachable from the start afterwards.
        """
        if not (0.0 <= intensity <= 1.0):
            raise ValueError(f"Intensity must be between 0.0 and 1.0, got {intensity}")

        changes = int(len(self._walls) * 0.1 * intensity)

        # Removal pass
        removed = 0
        for _ in range(changes):
            if not self._interior_walls:
                break
            idx = self._rng.randrange(len(self._interior_walls))
            self._set_cell(self._interior_walls[idx], CellState.PATH)
            removed += 1

        # Addition pass
        added = 0
        attempts = 0
        while added < changes and attempts < changes * 3:
            attempts += 1
            x = self._rng.randint(1, self.width - 2)
            y = self._rng.randint(1, self.height - 2)
            coord = (x, y)

            if coord in (self.start, self.goal) or not self.is_walkable(x, y):
                continue
            if not self._can_add_wall(x, y):
                continue

            self._set_cell(coord, CellState.WALL)
            if self.has_path(self.start, self.goal):
                added += 1
            else:
                self._set_cell(coord, CellState.PATH)

        logger.debug("Maze shift (intensity %.2f): %d walls removed, %d added in %d attempts",
                     intensity, removed, added, attempts)

        # Mazes loaded from external layouts may arrive disconnected
        self.ensure_reachable()
        return self.grid

    def _can_add_wall(self, x: int, y: int) -> bool:
        """Only close cells that keep at least two open interior neighbours."""
        adjacent_paths = 0
        for dx, dy in NEIGHBOR_DELTAS:
            nx, ny = x + dx, y + dy
            if self.is_interior(nx, ny) and self._grid[ny, nx] == CellState.PATH:
                adjacent_paths += 1
        return adjacent_paths >= 2

    def create_direct_path(self, start: Coord, end: Coord) -> None:
        """Carve an L-shaped corridor: horizontally first, then vertically."""
        x, y = start
        while x != end[0]:
            self._set_cell((x, y), CellState.PATH)
            x += 1 if x < end[0] else -1
        while y != end[1]:
            self._set_cell((x, y), CellState.PATH)
            y += 1 if y < end[1] else -1
        self._set_cell(end, CellState.PATH)

    def ensure_reachable(self) -> bool:
        """
        Verify start-to-goal reachability, repairing with a direct corridor.
        Returns True if the maze was already connected.
        """
        if self.has_path(self.start, self.goal):
            return True
        logger.warning("Goal unreachable from start in %dx%d maze; carving repair corridor",
                       self.width, self.height)
        self.create_direct_path(self.start, self.goal)
        return False

    def _set_cell(self, coord: Coord, state: CellState) -> None:
        x, y = coord
        if not self.in_bounds(x, y):
            return
        self._grid[y, x] = state
        if state == CellState.WALL:
            self._track_wall(coord)
        else:
            self._untrack_wall(coord)

    def _fill(self, state: CellState) -> None:
        self._grid.fill(state)
        self._walls = set()
        self._interior_walls = []
        self._interior_index = {}
        if state == CellState.WALL:
            for y in range(self.height):
                for x in range(self.width):
                    self._track_wall((x, y))

    def _track_wall(self, coord: Coord) -> None:
        self._walls.add(coord)
        if self.is_interior(*coord) and coord not in self._interior_index:
            self._interior_index[coord] = len(self._interior_walls)
            self._interior_walls.append(coord)

    def _untrack_wall(self, coord: Coord) -> None:
        self._walls.discard(coord)
        idx = self._interior_index.pop(coord, None)
        if idx is None:
            return
        # Swap-pop keeps removal O(1); the last wall takes the freed slot
        last = self._interior_walls.pop()
        if idx < len(self._interior_walls):
            self._interior_walls[idx] = last
            self._interior_index[last] = idx

    # Search

    def has_path(self, start: Coord, end: Coord) -> bool:
        """Breadth-first reachability over 4-neighbourhoods of path cells."""
        if not self.is_walkable(*start) or not self.is_walkable(*end):
            return False
        if start == end:
            return True

        visited = {start}
        queue = deque([start])
        while queue:
            x, y = queue.popleft()
            for dx, dy in NEIGHBOR_DELTAS:
                neighbor = (x + dx, y + dy)
                if neighbor == end:
                    return True
                if neighbor not in visited and self.is_walkable(*neighbor):
                    visited.add(neighbor)
                    queue.append(neighbor)
        return False

    def find_nearest_walkable(self, x: int, y: int, max_search: int = 5) -> Optional[Coord]:
        """Nearest walkable cell within ``max_search`` steps, walls included in the search."""
        origin = (int(x), int(y))
        visited = {origin}
        queue = deque([(origin, 0)])
        while queue:
            (cx, cy), dist = queue.popleft()
            if self.is_walkable(cx, cy):
                return (cx, cy)
            if dist >= max_search:
                continue
            for dx, dy in NEIGHBOR_DELTAS:
                neighbor = (cx + dx, cy + dy)
                if neighbor not in visited and self.in_bounds(*neighbor):
                    visited.add(neighbor)
                    queue.append((neighbor, dist + 1))
        return None

    def find_spawn_positions(self, origin: Coord, count: int, max_radius: int = 3) -> List[Coord]:
        """Origin first, then walkable cells in growing square rings around it."""
        positions = [origin]
        checked = {origin}
        for radius in range(1, max_radius + 1):
            if len(positions) >= count:
                break
            for dx in range(-radius, radius + 1):
                for dy in range(-radius, radius + 1):
                    if len(positions) >= count:
                        break
                    coord = (origin[0] + dx, origin[1] + dy)
                    if coord not in checked and self.is_walkable(*coord):
                        positions.append(coord)
                        checked.add(coord)
        return positions

"""Tests for mazerace.domain.maze."""

import numpy as np
import pytest

from mazerace.domain.maze import GridMaze
from mazerace.domain.types import CellState
from mazerace.utils.rng import SeededRNG


def _generated(width: int, height: int, seed: int) -> GridMaze:
    maze = GridMaze(width, height, rng=SeededRNG(seed))
    maze.generate()
    return maze


def _walls_match_grid(maze: GridMaze) -> bool:
    grid = maze.grid
    for y in range(maze.height):
        for x in range(maze.width):
            if (grid[y, x] == CellState.WALL) != ((x, y) in maze.walls):
                return False
    return True


class TestGenerate:
    @pytest.mark.parametrize("width,height", [(5, 5), (6, 7), (10, 10), (21, 15), (40, 30)])
    def test_goal_reachable_after_generate(self, width: int, height: int) -> None:
        for seed in range(5):
            maze = _generated(width, height, seed)
            assert maze.has_path(maze.start, maze.goal)

    def test_start_and_goal_are_paths(self) -> None:
        maze = _generated(15, 11, 3)
        assert maze.is_walkable(*maze.start)
        assert maze.is_walkable(*maze.goal)
        assert maze.start == (1, 1)
        assert maze.goal == (13, 9)

    def test_wall_set_tracks_grid(self) -> None:
        maze = _generated(21, 15, 1)
        assert _walls_match_grid(maze)
        assert maze.wall_count == int(np.sum(maze.grid == CellState.WALL))

    def test_same_seed_same_layout(self) -> None:
        assert _generated(21, 21, 42).walls == _generated(21, 21, 42).walls

    def test_too_small_rejected(self) -> None:
        with pytest.raises(ValueError):
            GridMaze(4, 10)


class TestShift:
    def test_reachable_after_every_shift(self) -> None:
        maze = _generated(21, 15, 5)
        for intensity in [0.0, 0.2, 0.5, 1.0] * 10:
            maze.shift_maze(intensity)
            assert maze.has_path(maze.start, maze.goal)
            assert maze.is_walkable(*maze.start)
            assert maze.is_walkable(*maze.goal)

    def test_wall_set_tracks_grid_after_shifts(self) -> None:
        maze = _generated(15, 15, 2)
        for _ in range(5):
            maze.shift_maze(1.0)
        assert _walls_match_grid(maze)

    def test_interior_sampling_list_tracks_walls(self) -> None:
        maze = _generated(15, 15, 4)
        for intensity in [1.0, 0.5, 1.0, 0.3]:
            maze.shift_maze(intensity)
            interior = {c for c in maze.walls if maze.is_interior(*c)}
            assert len(maze._interior_walls) == len(interior)
            assert set(maze._interior_walls) == interior
            for idx, coord in enumerate(maze._interior_walls):
                assert maze._interior_index[coord] == idx

    def test_from_walls_tracks_only_listed_interior_walls(self) -> None:
        maze = GridMaze.from_walls(8, 8, [(0, 3), (3, 3), (4, 4)])
        assert sorted(maze._interior_walls) == [(3, 3), (4, 4)]
        maze._set_cell((3, 3), CellState.PATH)
        assert maze._interior_walls == [(4, 4)]
        assert maze._interior_index == {(4, 4): 0}

    def test_zero_intensity_changes_nothing(self) -> None:
        maze = _generated(15, 15, 9)
        before = maze.walls
        maze.shift_maze(0.0)
        assert maze.walls == before

    def test_intensity_out_of_range(self) -> None:
        maze = _generated(9, 9, 0)
        with pytest.raises(ValueError):
            maze.shift_maze(1.5)
        with pytest.raises(ValueError):
            maze.shift_maze(-0.1)

    def test_full_intensity_on_single_corridor_keeps_goal(self) -> None:
        # One snake corridor: any blocking wall would cut the goal off
        walls = [(x, y) for y in range(7) for x in range(7)
                 if x in (0, 6) or y in (0, 6)]
        walls += [(x, 2) for x in range(1, 5)] + [(x, 4) for x in range(2, 6)]
        maze = GridMaze.from_walls(7, 7, walls, rng=SeededRNG(11))
        assert maze.has_path(maze.start, maze.goal)

        for _ in range(20):
            maze.shift_maze(1.0)
            assert maze.has_path(maze.start, maze.goal)

    def test_border_walls_never_removed(self) -> None:
        maze = _generated(11, 11, 4)
        for _ in range(10):
            maze.shift_maze(1.0)
        for x in range(maze.width):
            assert (x, 0) in maze.walls
        for y in range(maze.height):
            assert (0, y) in maze.walls


class TestRepair:
    def test_ensure_reachable_carves_corridor(self) -> None:
        maze = GridMaze.from_walls(7, 7, [(4, 5), (5, 4), (6, 5), (5, 6)])
        assert not maze.has_path(maze.start, maze.goal)

        assert maze.ensure_reachable() is False
        assert maze.has_path(maze.start, maze.goal)
        assert maze.ensure_reachable() is True

    def test_create_direct_path_goes_horizontal_then_vertical(self) -> None:
        maze = GridMaze(7, 7)
        maze.create_direct_path((1, 1), (5, 5))
        for x in range(1, 6):
            assert maze.is_walkable(x, 1)
        for y in range(1, 6):
            assert maze.is_walkable(5, y)
        assert not maze.is_walkable(1, 5)


class TestQueries:
    def test_from_walls_opens_start_and_goal(self) -> None:
        maze = GridMaze.from_walls(8, 8, [(1, 1), (6, 6), (3, 3)])
        assert maze.is_walkable(1, 1)
        assert maze.is_walkable(6, 6)
        assert not maze.is_walkable(3, 3)

    def test_out_of_bounds_is_not_walkable(self, open_maze: GridMaze) -> None:
        assert not open_maze.is_walkable(-1, 0)
        assert not open_maze.is_walkable(0, -1)
        assert not open_maze.is_walkable(10, 5)
        assert not open_maze.is_walkable(5, 10)
        assert open_maze.is_walkable(0, 0)

    def test_has_path_rejects_wall_endpoints(self) -> None:
        maze = GridMaze.from_walls(8, 8, [(3, 3)])
        assert not maze.has_path((3, 3), maze.goal)
        assert not maze.has_path(maze.start, (3, 3))
        assert maze.has_path(maze.start, maze.start)

    def test_find_nearest_walkable(self) -> None:
        maze = GridMaze.from_walls(8, 8, [(3, 3), (3, 4), (4, 3)])
        assert maze.find_nearest_walkable(2, 2) == (2, 2)
        nearest = maze.find_nearest_walkable(3, 3)
        assert nearest is not None
        assert maze.is_walkable(*nearest)
        assert abs(nearest[0] - 3) + abs(nearest[1] - 3) == 1

    def test_find_nearest_walkable_gives_up(self) -> None:
        maze = GridMaze(15, 15)  # never carved: all walls
        assert maze.find_nearest_walkable(7, 7) is None

    def test_find_spawn_positions(self, open_maze: GridMaze) -> None:
        positions = open_maze.find_spawn_positions((1, 1), 4)
        assert positions[0] == (1, 1)
        assert len(positions) == 4
        assert len(set(positions)) == 4
        for x, y in positions:
            assert open_maze.is_walkable(x, y)
            assert max(abs(x - 1), abs(y - 1)) <= 3

    def test_find_spawn_positions_single(self, open_maze: GridMaze) -> None:
        assert open_maze.find_spawn_positions((4, 4), 1) == [(4, 4)]

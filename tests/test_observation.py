"""Tests for mazerace.domain.observation."""

import numpy as np
import pytest

from conftest import make_config
from mazerace.domain.maze import GridMaze
from mazerace.domain.observation import build_observation


def test_default_length_and_dtype(open_maze: GridMaze) -> None:
    config = make_config()
    obs = build_observation(open_maze, (4, 4), open_maze.goal, [], config)
    assert obs.shape == (32,)
    assert obs.shape[0] == config.observation_size()
    assert obs.dtype == np.float32


def test_layout(open_maze: GridMaze) -> None:
    obs = build_observation(open_maze, (4, 4), (8, 8), [(5, 4)], make_config())
    assert np.all(obs[:25] == 1.0)
    assert obs[25] == pytest.approx(4 / 20)
    assert obs[26] == pytest.approx(4 / 20)
    assert obs[27] == pytest.approx(np.hypot(4, 4) / 50)
    assert obs[28] == pytest.approx(1 / 20)
    assert obs[29] == pytest.approx(0.0)
    assert np.all(obs[30:] == 0.0)


def test_window_marks_walls_and_bounds() -> None:
    maze = GridMaze.from_walls(10, 10, [(4, 3)])
    obs = build_observation(maze, (4, 4), maze.goal, [], make_config())
    # Row above the actor, centre column
    assert obs[1 * 5 + 2] == 0.0
    assert obs[2 * 5 + 2] == 1.0

    corner = build_observation(maze, (0, 0), maze.goal, [], make_config())
    assert corner[0] == 0.0  # (-2, -2) is out of bounds
    assert corner[12] == 1.0


def test_extra_actors_are_ignored(open_maze: GridMaze) -> None:
    others = [(1, 1), (2, 2), (3, 3), (5, 5)]
    obs = build_observation(open_maze, (4, 4), open_maze.goal, others, make_config())
    assert obs.shape == (32,)
    assert obs[28] == pytest.approx(-3 / 20)
    assert obs[31] == pytest.approx(-2 / 20)


def test_custom_window_and_slots(open_maze: GridMaze) -> None:
    config = make_config(view_radius=1, tracked_actors=0)
    obs = build_observation(open_maze, (4, 4), open_maze.goal, [(1, 1)], config)
    assert obs.shape == (12,)
    assert config.observation_size() == 12

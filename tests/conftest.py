"""Shared fixtures for the mazerace test suite."""

import pytest

from mazerace.domain.maze import GridMaze
from mazerace.domain.types import GameConfig
from mazerace.utils.rng import SeededRNG


def make_config(**overrides) -> GameConfig:
    """Small, fast, deterministic configuration."""
    values = dict(
        hidden_layers=(16, 16),
        batch_size=4,
        replay_capacity=64,
        background_training=False,
        maze_width=11,
        maze_height=11,
        seed=7,
    )
    values.update(overrides)
    return GameConfig(**values)


@pytest.fixture
def config() -> GameConfig:
    return make_config()


@pytest.fixture
def open_maze() -> GridMaze:
    """10x10 maze with no walls at all."""
    return GridMaze.from_walls(10, 10, [], rng=SeededRNG(0))

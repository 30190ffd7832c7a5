"""Observation encoding for the learning agent."""

from typing import Sequence

import numpy as np

from .types import Coord, GameConfig
from .astar import WalkableGrid


def build_observation(grid: WalkableGrid, position: Coord, goal: Coord,
                      others: Sequence[Coord], config: GameConfig) -> np.ndarray:
    """
    Encode an actor's surroundings as a fixed-length float vector.

    Layout:
        - local walkability window of side ``2 * view_radius + 1`` (row-major, 1 = walkable)
        - goal dx, dy (scaled by ``position_scale``) and distance (scaled by ``distance_scale``)
        - relative dx, dy of up to ``tracked_actors`` other actors, zero-padded
    """
    x, y = position
    radius = config.view_radius
    values = []

    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            values.append(1.0 if grid.is_walkable(x + dx, y + dy) else 0.0)

    goal_dx = goal[0] - x
    goal_dy = goal[1] - y
    goal_distance = float(np.hypot(goal_dx, goal_dy))
    values.append(goal_dx / config.position_scale)
    values.append(goal_dy / config.position_scale)
    values.append(goal_distance / config.distance_scale)

    for i in range(config.tracked_actors):
        if i < len(others):
            other_x, other_y = others[i]
            values.append((other_x - x) / config.position_scale)
            values.append((other_y - y) / config.position_scale)
        else:
            values.append(0.0)
            values.append(0.0)

    return np.asarray(values, dtype=np.float32)

"""Core type definitions shared by the maze, planner and learning agent."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple, Literal, Dict
import numpy as np

# Coordinate type for grid positions (x, y)
Coord = Tuple[int, int]

# Movement tokens consumed by the rendering layer
Direction = Literal["up", "down", "left", "right"]

# Exploration decay profiles
ExplorationProfile = Literal["cautious", "balanced", "aggressive"]

# Heuristic function identifiers for the planner
HeuristicId = Literal["squared_euclidean", "euclidean", "manhattan"]


class CellState(IntEnum):
    """State of a single maze cell. Values match the stored grid array."""
    PATH = 0
    WALL = 1


# Action mappings (index order is part of the learned model's output layout)
ACTIONS: Tuple[Direction, ...] = ("up", "down", "left", "right")

ACTION_TO_INT: Dict[Direction, int] = {
    "up": 0,
    "down": 1,
    "left": 2,
    "right": 3
}

DIRECTION_DELTAS: Dict[Direction, Coord] = {
    "up": (0, -1),
    "down": (0, 1),
    "left": (-1, 0),
    "right": (1, 0)
}

DELTA_TO_DIRECTION: Dict[Coord, Direction] = {
    delta: direction for direction, delta in DIRECTION_DELTAS.items()
}

EPSILON_DECAY_RATES: Dict[ExplorationProfile, float] = {
    "cautious": 0.999,
    "balanced": 0.995,
    "aggressive": 0.99,
}


def step(coord: Coord, direction: Direction) -> Coord:
    """Return the neighbouring coordinate in the given direction."""
    dx, dy = DIRECTION_DELTAS[direction]
    return (coord[0] + dx, coord[1] + dy)


def euclidean(a: Coord, b: Coord) -> float:
    """Euclidean distance in grid-cell units."""
    return float(np.hypot(a[0] - b[0], a[1] - b[1]))


@dataclass(frozen=True)
class Transition:
    """A single experience record stored in the replay buffer."""
    state: np.ndarray
    action: int
    reward: float
    next_state: np.ndarray
    terminal: bool


@dataclass
class GameConfig:
    """Configuration consumed by the maze, the controllers and the learning agents."""
    # Learning
    learning_rate: float = 1e-3  # Adam step size
    discount_factor: float = 0.95
    epsilon_start: float = 1.0
    epsilon_end: float = 0.01
    exploration_profile: ExplorationProfile = "balanced"
    replay_capacity: int = 10000
    batch_size: int = 32
    target_sync_interval: int = 10  # episodes between hard target copies
    reward_history_size: int = 100
    hidden_layers: Tuple[int, ...] = (128, 128, 64)
    background_training: bool = True
    exploring: bool = True

    # Observation encoding
    view_radius: int = 2  # 5x5 local window
    tracked_actors: int = 2
    position_scale: float = 20.0
    distance_scale: float = 50.0

    # Control
    decision_interval: float = 150.0  # milliseconds
    planning_enabled: bool = True
    planner_heuristic: HeuristicId = "squared_euclidean"

    # Maze
    maze_width: int = 40
    maze_height: int = 30
    maze_complexity: float = 0.5  # shift intensity in [0, 1]
    maze_shift_interval: float = 10.0  # seconds

    # Race
    bot_count: int = 2
    collision_enabled: bool = False
    collision_stun_duration: float = 1000.0  # milliseconds
    goal_radius: float = 1.0
    seed: Optional[int] = None

    def __post_init__(self):
        """Validate ranges once, at construction time."""
        if not (0.0 <= self.maze_complexity <= 1.0):
            raise ValueError(f"maze_complexity must be in [0, 1], got {self.maze_complexity}")
        if not (0.0 <= self.epsilon_end <= self.epsilon_start <= 1.0):
            raise ValueError(
                f"Expected 0 <= epsilon_end <= epsilon_start <= 1, "
                f"got {self.epsilon_end} and {self.epsilon_start}"
            )
        if not (0.0 <= self.discount_factor <= 1.0):
            raise ValueError(f"discount_factor must be in [0, 1], got {self.discount_factor}")
        if self.exploration_profile not in EPSILON_DECAY_RATES:
            raise ValueError(f"Unknown exploration profile: {self.exploration_profile}")
        if self.batch_size <= 0 or self.replay_capacity < self.batch_size:
            raise ValueError(
                f"replay_capacity ({self.replay_capacity}) must be >= batch_size ({self.batch_size}) > 0"
            )
        if self.target_sync_interval <= 0:
            raise ValueError("target_sync_interval must be positive")
        if self.view_radius < 0 or self.tracked_actors < 0:
            raise ValueError("view_radius and tracked_actors must be non-negative")
        if self.maze_width < 5 or self.maze_height < 5:
            raise ValueError(
                f"Maze dimensions must be at least 5x5, got {self.maze_width}x{self.maze_height}"
            )
        if self.bot_count < 0:
            raise ValueError(f"bot_count must be non-negative, got {self.bot_count}")
        self.hidden_layers = tuple(self.hidden_layers)

    def epsilon_decay_rate(self) -> float:
        """Multiplicative exploration decay for the configured profile."""
        return EPSILON_DECAY_RATES[self.exploration_profile]

    def observation_size(self) -> int:
        """Length of the observation vector built for the learning agent."""
        window = 2 * self.view_radius + 1
        return window * window + 3 + 2 * self.tracked_actors

    @property
    def action_count(self) -> int:
        """Number of discrete actions (one per cardinal direction)."""
        return len(ACTIONS)

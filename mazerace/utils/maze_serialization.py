"""
Maze serialization utilities for saving and loading mazes.
Snapshots store the wall list plus start/goal and some metadata as JSON.
"""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..domain.maze import GridMaze
from .rng import SeededRNG

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"


class MazeData:
    """Container for maze data with metadata."""

    def __init__(self, width: int, height: int, walls: List[Tuple[int, int]],
                 start: Tuple[int, int], target: Tuple[int, int],
                 name: str = "", description: str = "", shift_count: int = 0):
        self.width = width
        self.height = height
        self.walls = walls
        self.start = start
        self.target = target
        self.name = name
        self.description = description
        self.shift_count = shift_count
        self.created_at = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert maze data to dictionary for serialization."""
        return {
            'width': self.width,
            'height': self.height,
            'walls': [list(w) for w in self.walls],
            'start': list(self.start),
            'target': list(self.target),
            'name': self.name,
            'description': self.description,
            'shift_count': self.shift_count,
            'created_at': self.created_at,
            'version': FORMAT_VERSION,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MazeData':
        """Create maze data from dictionary."""
        maze = cls(
            width=data['width'],
            height=data['height'],
            walls=[tuple(w) for w in data['walls']],
            start=tuple(data['start']),
            target=tuple(data['target']),
            name=data.get('name', ''),
            description=data.get('description', ''),
            shift_count=data.get('shift_count', 0),
        )
        maze.created_at = data.get('created_at', datetime.now().isoformat())
        return maze


def extract_maze_data(maze: GridMaze, name: str = "", description: str = "",
                      shift_count: int = 0) -> MazeData:
    """Snapshot a GridMaze."""
    return MazeData(
        width=maze.width,
        height=maze.height,
        walls=sorted(maze.walls),
        start=maze.start,
        target=maze.goal,
        name=name,
        description=description,
        shift_count=shift_count,
    )


def maze_from_data(maze_data: MazeData, rng: Optional[SeededRNG] = None) -> GridMaze:
    """Rebuild a GridMaze from a snapshot, repairing it if the goal is cut off."""
    maze = GridMaze.from_walls(maze_data.width, maze_data.height, maze_data.walls, rng=rng)
    if maze_data.start != maze.start or maze_data.target != maze.goal:
        logger.warning("Snapshot start/target %s -> %s ignored; using %s -> %s",
                       maze_data.start, maze_data.target, maze.start, maze.goal)
    maze.ensure_reachable()
    return maze


def save_maze(maze_data: MazeData, filepath: str) -> bool:
    """Save maze data to a JSON file."""
    try:
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(filepath, 'w') as f:
            json.dump(maze_data.to_dict(), f, indent=2)
        return True
    except OSError as e:
        logger.warning("Error saving maze to %s: %s", filepath, e)
        return False


def load_maze(filepath: str) -> Optional[MazeData]:
    """Load maze data from a JSON file."""
    try:
        with open(filepath, 'r') as f:
            data = json.load(f)
        return MazeData.from_dict(data)
    except (OSError, json.JSONDecodeError, KeyError, TypeError) as e:
        logger.warning("Error loading maze from %s: %s", filepath, e)
        return None


def list_saved_mazes(mazes_dir: str) -> List[Tuple[str, MazeData]]:
    """List all saved mazes in a directory, newest first."""
    mazes = []
    for filepath in Path(mazes_dir).glob("*.json"):
        maze_data = load_maze(str(filepath))
        if maze_data:
            mazes.append((str(filepath), maze_data))
    return sorted(mazes, key=lambda x: x[1].created_at, reverse=True)


def generate_maze_filename(maze_data: MazeData, mazes_dir: str) -> str:
    """Generate a filename for a maze based on its metadata."""
    safe_name = "".join(c for c in maze_data.name if c.isalnum() or c in (' ', '-', '_')).strip()
    if not safe_name:
        safe_name = f"maze_{maze_data.width}x{maze_data.height}"

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return os.path.join(mazes_dir, f"{safe_name}_{timestamp}.json")

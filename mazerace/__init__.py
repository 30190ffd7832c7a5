"""
Dynamic Maze Race

Decision and control core for a race through a self-reshaping maze: the maze
and its reachability-guarded shifting, an A* planner and a DQN fallback
policy driven by per-bot controllers.
"""

__version__ = "1.0.0"

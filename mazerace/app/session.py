"""Headless race driver: steps every actor once per tick and owns the maze schedule."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..domain.astar import PathPlanner
from ..domain.dqn import DecisionAgent
from ..domain.maze import GridMaze
from ..domain.types import Coord, Direction, GameConfig, euclidean, step
from ..utils.model_store import ModelStore
from ..utils.rng import SeededRNG
from .controller import Actor, AgentController

logger = logging.getLogger(__name__)

MAX_BOTS = 4
COLLISION_COOLDOWN = 500.0  # milliseconds between stuns for the same pair
PLAYER_ID = "player"


@dataclass
class RaceResult:
    """Outcome of a finished race."""
    winner: Optional[str]
    elapsed: float
    shifts: int
    leaderboard: List[Dict]


class RaceSession:
    """
    Reference game loop for one race.

    Times are in milliseconds. Every move a controller requests is
    acknowledged within the same tick, standing in for the animation layer.
    """

    def __init__(self, config: GameConfig, maze: Optional[GridMaze] = None,
                 model_store: Optional[ModelStore] = None, include_player: bool = True,
                 rng: Optional[SeededRNG] = None):
        self.config = config
        self.rng = rng if rng is not None else SeededRNG(config.seed)
        self.model_store = model_store

        if maze is None:
            maze = GridMaze(config.maze_width, config.maze_height, rng=self.rng.spawn())
            maze.generate()
        self.maze = maze
        self.planner = PathPlanner(config.planner_heuristic)

        self.actors: Dict[str, Actor] = {}
        self.controllers: Dict[str, AgentController] = {}
        self._spawn(include_player)

        self.time = 0.0
        self.shift_count = 0
        self.game_over = False
        self.winner: Optional[str] = None
        self._shift_timer = 0.0
        self._last_collisions: Dict[Tuple[str, str], float] = {}

    def _spawn(self, include_player: bool) -> None:
        bot_count = min(self.config.bot_count, MAX_BOTS)
        actor_ids = ([PLAYER_ID] if include_player else []) + [f"bot-{i}" for i in range(bot_count)]
        positions = self.maze.find_spawn_positions(self.maze.start, len(actor_ids))

        for i, actor_id in enumerate(actor_ids):
            position = positions[i] if i < len(positions) else self.maze.start
            actor = Actor(actor_id, position, is_player=(actor_id == PLAYER_ID))
            self.actors[actor_id] = actor
            if actor.is_player:
                continue

            agent = DecisionAgent(self.config, model_id=f"dqn-{actor_id}",
                                  model_store=self.model_store, rng=self.rng.spawn())
            agent.load_model()
            self.controllers[actor_id] = AgentController(actor, self.maze, self.config, agent, self.planner)

        logger.debug("Spawned %d actors around %s", len(self.actors), self.maze.start)

    # Queries

    @property
    def player(self) -> Optional[Actor]:
        return self.actors.get(PLAYER_ID)

    def others(self, actor_id: str) -> List[Coord]:
        """Positions of every actor except the given one."""
        return [a.position for a in self.actors.values() if a.actor_id != actor_id]

    def leaderboard(self) -> List[Dict]:
        """Finished actors by completion time, then everyone else by distance to goal."""
        rows = []
        for actor in self.actors.values():
            controller = self.controllers.get(actor.actor_id)
            rows.append({
                "actor_id": actor.actor_id,
                "is_player": actor.is_player,
                "position": actor.position,
                "completion_time": actor.completion_time,
                "distance_to_goal": euclidean(actor.position, self.maze.goal),
                "confidence": controller.get_confidence() if controller else None,
                "mode": controller.state.name if controller else None,
            })
        rows.sort(key=lambda r: (r["completion_time"] is None,
                                 r["completion_time"] or 0.0,
                                 r["distance_to_goal"]))
        return rows

    # Player input

    def move_player(self, direction: Direction) -> bool:
        """Apply one player move immediately. Returns False if it was blocked."""
        player = self.player
        if player is None or self.game_over or player.stunned:
            return False
        destination = step(player.position, direction)
        if not self.maze.is_walkable(*destination):
            return False
        player.position = destination
        player.distance_to_goal = euclidean(destination, self.maze.goal)
        return True

    # Tick

    def update(self, time: float, delta: float) -> None:
        """Advance the race by one tick."""
        if self.game_over:
            return
        self.time = time

        self._shift_timer += delta
        if self._shift_timer >= self.config.maze_shift_interval * 1000.0:
            self._shift_timer = 0.0
            self.shift_maze()

        for actor_id, controller in self.controllers.items():
            request = controller.update(time, delta, self.others(actor_id))
            if request is not None:
                controller.acknowledge_move()

        if self.player is not None:
            self.player.refresh_stun(time)
            self.player.distance_to_goal = euclidean(self.player.position, self.maze.goal)

        if self.config.collision_enabled:
            self._handle_collisions(time)

        self._check_goal(time)

    def shift_maze(self) -> None:
        """Reshape the maze, rescue stranded actors and let every controller replan."""
        self.maze.shift_maze(self.config.maze_complexity)
        self.shift_count += 1

        for actor in self.actors.values():
            if self.maze.is_walkable(*actor.position):
                continue
            rescue = self.maze.find_nearest_walkable(*actor.position) or self.maze.start
            logger.debug("Relocating %s from %s to %s", actor.actor_id, actor.position, rescue)
            actor.position = rescue

        for controller in self.controllers.values():
            controller.on_maze_shift()

    def _handle_collisions(self, time: float) -> None:
        actors = list(self.actors.values())
        for i, first in enumerate(actors):
            for second in actors[i + 1:]:
                if first.position != second.position:
                    continue
                key = (first.actor_id, second.actor_id)
                last = self._last_collisions.get(key)
                if last is not None and time - last < COLLISION_COOLDOWN:
                    continue
                self._last_collisions[key] = time
                until = time + self.config.collision_stun_duration
                first.stun(until)
                second.stun(until)
                logger.debug("%s collided with %s at %s", first.actor_id, second.actor_id, first.position)

    def _check_goal(self, time: float) -> None:
        for actor in self.actors.values():
            if euclidean(actor.position, self.maze.goal) <= self.config.goal_radius:
                actor.reach_goal(time)
                self.end_game(actor.actor_id)
                return

    def end_game(self, winner: Optional[str]) -> None:
        """Stop the race, close every bot's learned episode and persist its model."""
        if self.game_over:
            return
        self.game_over = True
        self.winner = winner
        logger.info("Race over at %.0f ms, winner: %s", self.time, winner)

        for actor_id, controller in self.controllers.items():
            controller.finish(self.others(actor_id), goal_reached=(actor_id == winner))
            controller.agent.wait_for_training()
            controller.save_model()

    def run(self, max_time: float, tick: Optional[float] = None) -> RaceResult:
        """Drive the race with a fixed tick until someone wins or time runs out."""
        tick = tick or self.config.decision_interval
        time = self.time
        while not self.game_over and time < max_time:
            time += tick
            self.update(time, tick)
        if not self.game_over:
            self.end_game(None)
        return RaceResult(self.winner, self.time, self.shift_count, self.leaderboard())

    def shutdown(self) -> None:
        """Stop every agent's background trainer."""
        for controller in self.controllers.values():
            controller.agent.shutdown()

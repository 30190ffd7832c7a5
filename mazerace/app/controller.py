"""Per-actor control: plan following, learned fallback and move acknowledgment."""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..domain.astar import PathPlanner
from ..domain.dqn import DecisionAgent
from ..domain.maze import GridMaze
from ..domain.observation import build_observation
from ..domain.types import Coord, Direction, GameConfig, euclidean, step
from .fsm import ControlState, ControlStateMachine
from .strategies import LearnedStrategy, PlannedStrategy

logger = logging.getLogger(__name__)


@dataclass
class Actor:
    """A racer on the grid: the human player or a bot."""
    actor_id: str
    position: Coord
    is_player: bool = False
    start_time: float = 0.0
    completion_time: Optional[float] = None
    stunned: bool = False
    stun_end_time: float = 0.0
    distance_to_goal: float = 0.0

    def stun(self, until: float) -> None:
        """Stun the actor until the given time."""
        self.stunned = True
        self.stun_end_time = until

    def refresh_stun(self, time: float) -> None:
        if self.stunned and time >= self.stun_end_time:
            self.stunned = False

    def reach_goal(self, time: float) -> bool:
        """Record the finishing time. Only the first arrival counts."""
        if self.completion_time is not None:
            return False
        self.completion_time = time - self.start_time
        return True

    @property
    def finished(self) -> bool:
        return self.completion_time is not None


@dataclass
class MoveRequest:
    """A one-cell move handed to the rendering layer, pending until acknowledged."""
    actor_id: str
    direction: Direction
    origin: Coord
    destination: Coord

    @property
    def blocked(self) -> bool:
        return self.origin == self.destination


class AgentController:
    """
    Controller that drives one bot.

    Follows an A* plan while one exists and falls back to the learned policy
    when it runs out. Every maze shift discards the learned context and
    replans from the current cell.
    """

    def __init__(self, actor: Actor, maze: GridMaze, config: GameConfig,
                 agent: DecisionAgent, planner: Optional[PathPlanner] = None):
        self.actor = actor
        self.maze = maze
        self.config = config
        self.agent = agent
        self.planner = planner or PathPlanner(config.planner_heuristic)

        self._state_machine = ControlStateMachine()
        self._strategies = {
            ControlState.PLANNED: PlannedStrategy(),
            ControlState.LEARNED: LearnedStrategy(agent),
        }
        self._pending_move: Optional[MoveRequest] = None
        self._decision_timer = 0.0
        self._finished = False
        self._state_machine.on_state_enter(ControlState.PLANNED, self._on_plan_loaded)
        self._state_machine.on_state_enter(ControlState.LEARNED, self._on_policy_takeover)

        self.actor.distance_to_goal = self.distance_to_goal()
        self.replan()

    # Properties

    @property
    def state(self) -> ControlState:
        """Get the current control state."""
        return self._state_machine.current_state

    @property
    def planned(self) -> PlannedStrategy:
        return self._strategies[ControlState.PLANNED]

    @property
    def learned(self) -> LearnedStrategy:
        return self._strategies[ControlState.LEARNED]

    @property
    def pending_move(self) -> Optional[MoveRequest]:
        return self._pending_move

    @property
    def planned_path(self) -> list:
        """Remaining planned directions."""
        return list(self.planned.path)

    # Queries

    def distance_to_goal(self) -> float:
        return euclidean(self.actor.position, self.maze.goal)

    def has_reached_goal(self) -> bool:
        return tuple(self.actor.position) == self.maze.goal

    def observe(self, others: Sequence[Coord]) -> np.ndarray:
        return build_observation(self.maze, self.actor.position, self.maze.goal, others, self.config)

    def get_confidence(self) -> float:
        return self.agent.get_confidence()

    # Planning

    def replan(self) -> bool:
        """Compute a fresh plan from the current cell. Returns True if one was found."""
        directions = []
        if self.config.planning_enabled:
            directions = self.planner.plan(self.maze, self.actor.position, self.maze.goal)

        self.planned.load(directions)
        if directions:
            self._state_machine.follow_plan({"steps": len(directions)})
            return True

        if self._state_machine.is_planned():
            self._state_machine.fall_back_to_policy({"reason": "no route"})
        else:
            logger.debug("%s has no plan from %s; staying on learned policy",
                         self.actor.actor_id, self.actor.position)
        return False

    def _on_plan_loaded(self, context: Optional[dict]) -> None:
        logger.debug("%s following a %d-step plan", self.actor.actor_id, context["steps"])

    def _on_policy_takeover(self, context: Optional[dict]) -> None:
        reason = context.get("reason") if context else None
        logger.debug("%s handing control to the learned policy (%s)", self.actor.actor_id, reason)

    def on_maze_shift(self) -> None:
        """Drop learned context and replan after the maze topology changed."""
        self.learned.reset_context()
        self.replan()

    # Tick

    def update(self, time: float, delta: float, others: Sequence[Coord] = ()) -> Optional[MoveRequest]:
        """
        Advance one tick. Returns a new move request when a decision is due and
        the previous move has been acknowledged, otherwise None.
        """
        self.actor.refresh_stun(time)
        self.actor.distance_to_goal = self.distance_to_goal()

        if self.has_reached_goal() and self.actor.reach_goal(time):
            logger.info("%s reached the goal after %.1f", self.actor.actor_id, self.actor.completion_time)

        if self.actor.finished or self._finished:
            self.finish(others)
            return None

        self._decision_timer += delta
        if self._pending_move is not None or self._decision_timer < self.config.decision_interval:
            return None

        self._decision_timer = 0.0
        return self.make_decision(others)

    def make_decision(self, others: Sequence[Coord] = ()) -> Optional[MoveRequest]:
        """Pick the next direction from the active strategy and issue a move."""
        if self._state_machine.is_planned():
            direction = self.planned.decide(self, others)
            if self.planned.exhausted:
                self._state_machine.fall_back_to_policy({"reason": "plan exhausted"})
            if direction is not None:
                return self.request_move(direction)

        return self.request_move(self.learned.decide(self, others))

    def finish(self, others: Sequence[Coord] = (), goal_reached: Optional[bool] = None) -> None:
        """
        Stop racing and close the open learned segment with a terminal
        transition. Later calls are no-ops.
        """
        if self._finished:
            return
        self._finished = True
        self._pending_move = None
        self.learned.finish(self, others, goal_reached=goal_reached)

    # Movement

    def request_move(self, direction: Direction) -> MoveRequest:
        """Issue a one-cell move. Moves into walls or while stunned stay in place."""
        origin = tuple(self.actor.position)
        destination = step(origin, direction)
        if self.actor.stunned or not self.maze.is_walkable(*destination):
            destination = origin

        self._pending_move = MoveRequest(self.actor.actor_id, direction, origin, destination)
        return self._pending_move

    def acknowledge_move(self) -> Coord:
        """
        Complete the pending move. The destination is re-checked because the
        maze may have shifted while the move was in flight.
        """
        request = self._pending_move
        if request is not None:
            if self.maze.is_walkable(*request.destination):
                self.actor.position = request.destination
            self._pending_move = None
        self.actor.distance_to_goal = self.distance_to_goal()
        return self.actor.position

    # Persistence

    def save_model(self) -> bool:
        return self.agent.save_model()

    def load_model(self) -> bool:
        return self.agent.load_model()

"""Decision strategies an AgentController switches between at runtime."""

from collections import deque
from typing import TYPE_CHECKING, Deque, Iterable, Optional, Sequence

import numpy as np

from ..domain.dqn import DecisionAgent
from ..domain.types import ACTIONS, Coord, Direction

if TYPE_CHECKING:
    from .controller import AgentController

# Reward shaping constants
PROGRESS_WEIGHT = 10.0
GOAL_REWARD = 100.0
STUN_PENALTY = 20.0
STEP_PENALTY = 0.1


def shaped_reward(previous_distance: float, current_distance: float,
                  goal_reached: bool, stunned: bool) -> float:
    """
    Reward for one learned step:
    10 x progress toward the goal, +100 on arrival, -20 while stunned, -0.1 per step.
    """
    reward = PROGRESS_WEIGHT * (previous_distance - current_distance)
    if goal_reached:
        reward += GOAL_REWARD
    if stunned:
        reward -= STUN_PENALTY
    reward -= STEP_PENALTY
    return reward


class PlannedStrategy:
    """Pops one direction per decision from a precomputed plan. Never learns."""

    def __init__(self):
        self.path: Deque[Direction] = deque()

    def load(self, directions: Iterable[Direction]) -> None:
        """Replace the current plan."""
        self.path = deque(directions)

    @property
    def exhausted(self) -> bool:
        return not self.path

    def decide(self, controller: "AgentController", others: Sequence[Coord]) -> Optional[Direction]:
        if not self.path:
            return None
        return self.path.popleft()


class LearnedStrategy:
    """
    Drives the actor with a DecisionAgent and feeds it shaped transitions.

    Holds the bookkeeping of the learned segment in progress: the last
    observation, the action taken from it, the goal distance at that time and
    the reward accumulated since the segment started.
    """

    def __init__(self, agent: DecisionAgent):
        self.agent = agent
        self.last_state: Optional[np.ndarray] = None
        self.last_action: Optional[int] = None
        self.last_distance = 0.0
        self.episode_reward = 0.0
        self.last_reward = 0.0

    def reset_context(self) -> None:
        """Forget the in-flight segment so nothing carries across a maze change."""
        self.last_state = None
        self.last_action = None
        self.episode_reward = 0.0
        self.last_reward = 0.0

    def _record(self, controller: "AgentController", state: np.ndarray,
                goal_reached: Optional[bool] = None, terminal: bool = False) -> bool:
        """
        Store the transition that led to ``state``. Returns True if it was terminal.

        ``goal_reached`` defaults to the controller's own goal check. A
        ``terminal`` transition ends the episode even when the goal was missed,
        as when another actor wins the race.
        """
        if self.last_state is None:
            return False

        if goal_reached is None:
            goal_reached = controller.has_reached_goal()
        done = goal_reached or terminal
        distance = controller.distance_to_goal()
        reward = shaped_reward(self.last_distance, distance, goal_reached, controller.actor.stunned)
        self.last_reward = reward
        self.episode_reward += reward

        self.agent.remember(self.last_state, self.last_action, reward, state, done)
        self.agent.replay()

        if done:
            self.agent.end_episode(self.episode_reward)
            self.episode_reward = 0.0
        return done

    def decide(self, controller: "AgentController", others: Sequence[Coord]) -> Direction:
        state = controller.observe(others)
        self._record(controller, state)

        action = self.agent.act(state, exploring=controller.config.exploring)
        self.last_state = state
        self.last_action = action
        self.last_distance = controller.distance_to_goal()
        return ACTIONS[action]

    def finish(self, controller: "AgentController", others: Sequence[Coord],
               goal_reached: Optional[bool] = None) -> None:
        """Close the learned segment with a terminal transition once racing is over."""
        if self.last_state is not None:
            self._record(controller, controller.observe(others),
                         goal_reached=goal_reached, terminal=True)
        self.reset_context()

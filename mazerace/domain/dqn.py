"""Deep Q-learning decision agent with experience replay and a target network."""

import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Sequence

import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F
import torch.optim as optim

from .types import GameConfig, Transition
from .replay import ReplayBuffer
from ..utils.model_store import ModelStore
from ..utils.rng import SeededRNG, default_rng

logger = logging.getLogger(__name__)


class QNetwork(nn.Module):
    """Fully connected ReLU network mapping an observation to one value per action."""

    def __init__(self, state_size: int, action_size: int, hidden_layers: Sequence[int] = (128, 128, 64)):
        super().__init__()
        layers = []
        in_features = state_size
        for units in hidden_layers:
            layers.append(nn.Linear(in_features, units))
            in_features = units
        self.hidden = nn.ModuleList(layers)
        self.out = nn.Linear(in_features, action_size)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        for layer in self.hidden:
            x = F.relu(layer(x))
        return self.out(x)


class DecisionAgent:
    """
    Epsilon-greedy DQN policy owned by a single actor.

    Owns its replay buffer, an online network trained every replay step and a
    target network refreshed by hard copy every ``target_sync_interval``
    episodes. Training and persistence failures are logged and swallowed so
    the game loop never stops because of them.
    """

    def __init__(self, config: GameConfig, model_id: str = "dqn-model",
                 model_store: Optional[ModelStore] = None,
                 rng: Optional[SeededRNG] = None):
        self.config = config
        self.model_id = model_id
        self.model_store = model_store
        self.state_size = config.observation_size()
        self.action_size = config.action_count
        self._rng = rng if rng is not None else default_rng

        # Hyperparameters
        self.gamma = config.discount_factor
        self.epsilon = config.epsilon_start
        self.epsilon_min = config.epsilon_end
        self.epsilon_decay = config.epsilon_decay_rate()
        self.batch_size = config.batch_size

        # Experience replay
        self.memory = ReplayBuffer(config.replay_capacity, rng=self._rng.spawn())

        # Networks
        self._lock = threading.Lock()
        self.model = self._build_model()
        self.target_model = self._build_model()
        self.optimizer = optim.Adam(self.model.parameters(), lr=config.learning_rate)
        self.update_target_network()

        # Background training
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None

        # Training stats
        self.episode_rewards: deque = deque(maxlen=config.reward_history_size)
        self.episode_count = 0
        self.total_reward = 0.0
        self.training_steps = 0
        self.failed_training_steps = 0

    def _build_model(self) -> QNetwork:
        return QNetwork(self.state_size, self.action_size, self.config.hidden_layers)

    # Acting

    def q_values(self, state: np.ndarray) -> np.ndarray:
        """Online network predictions for a single observation."""
        state_t = torch.as_tensor(np.asarray(state, dtype=np.float32)).unsqueeze(0)
        with self._lock, torch.no_grad():
            return self.model(state_t).squeeze(0).numpy()

    def act(self, state: np.ndarray, exploring: bool = True) -> int:
        """
        Epsilon-greedy action selection.
        Greedy ties resolve to the lowest action index.
        """
        if exploring and self._rng.random() < self.epsilon:
            return self._rng.randrange(self.action_size)
        return int(np.argmax(self.q_values(state)))

    def remember(self, state: np.ndarray, action: int, reward: float,
                 next_state: np.ndarray, terminal: bool) -> None:
        """Store a transition, evicting the oldest when the buffer is full."""
        self.memory.push(Transition(
            state=np.array(state, dtype=np.float32),
            action=int(action),
            reward=float(reward),
            next_state=np.array(next_state, dtype=np.float32),
            terminal=bool(terminal),
        ))

    # Training

    def replay(self) -> Optional[Future]:
        """
        Run one training step on a uniformly sampled batch.

        The batch is drawn on the caller's thread; the gradient step runs in
        the background when ``background_training`` is set. Returns the
        pending future in that case, otherwise None. Skips when the buffer is
        smaller than the batch or a previous step is still running.
        """
        if len(self.memory) < self.batch_size:
            return None
        if self._pending is not None and not self._pending.done():
            return None

        batch = self.memory.sample(self.batch_size)

        if not self.config.background_training:
            self._train_step(batch)
            return None

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"replay-{self.model_id}")
        self._pending = self._executor.submit(self._train_step, batch)
        return self._pending

    def _train_step(self, batch: List[Transition]) -> bool:
        """Masked Q-target regression on one batch. Never raises."""
        try:
            states = torch.as_tensor(np.stack([t.state for t in batch]))
            next_states = torch.as_tensor(np.stack([t.next_state for t in batch]))
            actions = torch.as_tensor([t.action for t in batch], dtype=torch.long)
            rewards = torch.as_tensor([t.reward for t in batch], dtype=torch.float32)
            terminals = torch.as_tensor([t.terminal for t in batch], dtype=torch.bool)

            with self._lock:
                with torch.no_grad():
                    next_q = self.target_model(next_states).max(dim=1).values
                    targets = self.model(states).clone()
                    bootstrapped = torch.where(terminals, rewards, rewards + self.gamma * next_q)
                    targets[torch.arange(len(batch)), actions] = bootstrapped

                if not torch.isfinite(targets).all():
                    raise FloatingPointError("Non-finite Q-value targets")

                predictions = self.model(states)
                loss = F.mse_loss(predictions, targets)
                self.optimizer.zero_grad()
                loss.backward()
                self.optimizer.step()

                self.training_steps += 1
                if self.epsilon > self.epsilon_min:
                    self.epsilon = max(self.epsilon_min, self.epsilon * self.epsilon_decay)
            return True
        except Exception:
            self.failed_training_steps += 1
            logger.warning("Training step failed for %s; policy left unchanged",
                           self.model_id, exc_info=True)
            return False

    def wait_for_training(self, timeout: Optional[float] = None) -> None:
        """Block until the in-flight background step (if any) finishes."""
        pending = self._pending
        if pending is not None:
            pending.result(timeout=timeout)

    @property
    def is_training(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def update_target_network(self) -> None:
        """Hard copy of online parameters into the target network."""
        with self._lock:
            self.target_model.load_state_dict(self.model.state_dict())

    def end_episode(self, total_reward: float) -> None:
        """Record an episode result; refresh the target network every N episodes."""
        self.episode_count += 1
        self.total_reward += total_reward
        self.episode_rewards.append(total_reward)

        if self.episode_count % self.config.target_sync_interval == 0:
            self.update_target_network()
            logger.debug("%s synced target network at episode %d", self.model_id, self.episode_count)

    def average_reward(self) -> float:
        """Mean reward over the retained episode history."""
        if not self.episode_rewards:
            return 0.0
        return float(np.mean(self.episode_rewards))

    def get_confidence(self) -> float:
        """Exploration rate rescaled to [0, 1] and inverted."""
        span = 1.0 - self.epsilon_min
        if span <= 0:
            return 1.0
        confidence = 1.0 - (self.epsilon - self.epsilon_min) / span
        return float(min(1.0, max(0.0, confidence)))

    # Persistence

    def get_agent_state(self) -> dict:
        """Bookkeeping stored alongside the weights."""
        return {
            "epsilon": self.epsilon,
            "episode_count": self.episode_count,
            "total_reward": self.total_reward,
            "average_reward": self.average_reward(),
            "episode_rewards": list(self.episode_rewards),
            "state_size": self.state_size,
            "action_size": self.action_size,
        }

    def load_agent_state(self, state: dict) -> None:
        """Restore bookkeeping saved by ``get_agent_state``."""
        self.epsilon = float(min(self.config.epsilon_start,
                                 max(self.epsilon_min, state.get("epsilon", self.epsilon))))
        self.episode_count = int(state.get("episode_count", self.episode_count))
        self.total_reward = float(state.get("total_reward", self.total_reward))
        self.episode_rewards.clear()
        self.episode_rewards.extend(state.get("episode_rewards", []))

    def save_model(self) -> bool:
        """Persist weights and bookkeeping. Failures are logged, never raised."""
        if self.model_store is None:
            return False
        try:
            with self._lock:
                weights = {k: v.detach().clone() for k, v in self.model.state_dict().items()}
            path = self.model_store.save(self.model_id, weights, self.get_agent_state())
            logger.info("Saved model %s to %s", self.model_id, path)
            return True
        except Exception:
            logger.warning("Failed to save model %s", self.model_id, exc_info=True)
            return False

    def load_model(self) -> bool:
        """
        Restore a stored model. Missing or unreadable models leave the
        in-memory policy untouched and return False.
        """
        if self.model_store is None:
            return False
        try:
            loaded = self.model_store.load(self.model_id)
            if loaded is None:
                logger.debug("No saved model found for %s", self.model_id)
                return False
            weights, agent_state = loaded

            model = self._build_model()
            model.load_state_dict(weights)
            with self._lock:
                self.model = model
                self.optimizer = optim.Adam(self.model.parameters(), lr=self.config.learning_rate)
                self.target_model = self._build_model()
                self.target_model.load_state_dict(self.model.state_dict())
            self.load_agent_state(agent_state)
            logger.info("Loaded model %s (epsilon %.3f, %d episodes)",
                        self.model_id, self.epsilon, self.episode_count)
            return True
        except Exception:
            logger.warning("Could not load model %s; keeping current policy",
                           self.model_id, exc_info=True)
            return False

    def shutdown(self, wait: bool = True) -> None:
        """Stop the background training worker."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
        self._pending = None

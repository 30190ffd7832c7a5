"""Tests for mazerace.domain.dqn."""

import logging

import numpy as np
import pytest
import torch

from conftest import make_config
from mazerace.domain.dqn import DecisionAgent, QNetwork
from mazerace.utils.model_store import ModelStore
from mazerace.utils.rng import SeededRNG


def _agent(**overrides) -> DecisionAgent:
    store = overrides.pop("model_store", None)
    return DecisionAgent(make_config(**overrides), model_id="test-bot",
                         model_store=store, rng=SeededRNG(0))


def _state(agent: DecisionAgent, value: float = 0.5) -> np.ndarray:
    return np.full(agent.state_size, value, dtype=np.float32)


def _fill(agent: DecisionAgent, count: int, reward: float = 1.0, terminal: bool = False) -> None:
    for i in range(count):
        agent.remember(_state(agent, i / 10), i % 4, reward, _state(agent, (i + 1) / 10), terminal)


def _params(model: torch.nn.Module) -> dict:
    return {k: v.detach().clone() for k, v in model.state_dict().items()}


def _same(a: dict, b: dict) -> bool:
    return all(torch.equal(a[k], b[k]) for k in a)


def test_network_shape() -> None:
    net = QNetwork(32, 4, (128, 128, 64))
    assert net(torch.zeros(5, 32)).shape == (5, 4)
    assert len(net.hidden) == 3


def test_greedy_act_is_deterministic() -> None:
    agent = _agent()
    state = _state(agent, 0.3)
    actions = {agent.act(state, exploring=False) for _ in range(20)}
    assert len(actions) == 1


def test_greedy_ties_pick_lowest_index() -> None:
    agent = _agent()
    with torch.no_grad():
        for p in agent.model.parameters():
            p.zero_()
    assert agent.act(_state(agent), exploring=False) == 0


def test_exploring_act_stays_in_range() -> None:
    agent = _agent()
    assert agent.epsilon == 1.0
    actions = {agent.act(_state(agent), exploring=True) for _ in range(200)}
    assert actions <= {0, 1, 2, 3}
    assert len(actions) > 1


def test_replay_noop_below_batch_size() -> None:
    agent = _agent(batch_size=8)
    _fill(agent, 7)
    before = _params(agent.model)
    assert agent.replay() is None
    assert agent.training_steps == 0
    assert agent.epsilon == 1.0
    assert _same(before, _params(agent.model))


def test_replay_updates_online_network_only() -> None:
    agent = _agent()
    _fill(agent, 10)
    online_before = _params(agent.model)
    target_before = _params(agent.target_model)

    agent.replay()

    assert agent.training_steps == 1
    assert not _same(online_before, _params(agent.model))
    assert _same(target_before, _params(agent.target_model))


def test_epsilon_non_increasing_and_floored() -> None:
    agent = _agent(epsilon_end=0.5, exploration_profile="aggressive")
    _fill(agent, 10)
    history = [agent.epsilon]
    for _ in range(100):
        agent.replay()
        history.append(agent.epsilon)

    assert all(b <= a for a, b in zip(history, history[1:]))
    assert min(history) >= 0.5
    assert history[-1] == pytest.approx(0.5)
    assert agent.training_steps == 100


def test_training_failure_is_contained(caplog: pytest.LogCaptureFixture) -> None:
    agent = _agent()
    _fill(agent, 6, reward=float("nan"))
    before = _params(agent.model)

    with caplog.at_level(logging.WARNING, logger="mazerace.domain.dqn"):
        assert agent.replay() is None

    assert agent.failed_training_steps == 1
    assert agent.training_steps == 0
    assert agent.epsilon == 1.0
    assert len(agent.memory) == 6
    assert _same(before, _params(agent.model))
    assert "Training step failed" in caplog.text


def test_terminal_transitions_train() -> None:
    agent = _agent()
    _fill(agent, 6, reward=100.0, terminal=True)
    agent.replay()
    assert agent.training_steps == 1


def test_background_training_returns_future() -> None:
    agent = _agent(background_training=True)
    _fill(agent, 10)
    try:
        future = agent.replay()
        assert future is not None
        agent.wait_for_training(timeout=30)
        assert future.result() is True
        assert agent.training_steps == 1
        assert not agent.is_training
    finally:
        agent.shutdown()


def test_target_sync_every_interval() -> None:
    agent = _agent(target_sync_interval=3)
    _fill(agent, 10)
    agent.replay()

    agent.end_episode(1.0)
    agent.end_episode(2.0)
    assert not _same(_params(agent.model), _params(agent.target_model))

    agent.end_episode(3.0)
    assert _same(_params(agent.model), _params(agent.target_model))
    assert agent.episode_count == 3


def test_reward_history_is_bounded() -> None:
    agent = _agent(reward_history_size=3)
    for reward in [1.0, 2.0, 3.0, 4.0, 5.0]:
        agent.end_episode(reward)
    assert list(agent.episode_rewards) == [3.0, 4.0, 5.0]
    assert agent.average_reward() == pytest.approx(4.0)
    assert agent.total_reward == pytest.approx(15.0)


def test_confidence_tracks_exploration() -> None:
    agent = _agent(epsilon_end=0.2)
    assert agent.get_confidence() == pytest.approx(0.0)
    agent.epsilon = 0.6
    assert agent.get_confidence() == pytest.approx(0.5)
    agent.epsilon = 0.2
    assert agent.get_confidence() == pytest.approx(1.0)


def test_confidence_without_exploration_span() -> None:
    agent = _agent(epsilon_start=1.0, epsilon_end=1.0)
    assert agent.get_confidence() == 1.0


def test_save_and_load_round_trip(tmp_path) -> None:
    store = ModelStore(str(tmp_path))
    agent = _agent(model_store=store)
    _fill(agent, 10)
    for _ in range(5):
        agent.replay()
    agent.end_episode(12.5)
    assert agent.save_model()

    restored = _agent(model_store=store)
    assert restored.load_model()
    state = _state(agent, 0.7)
    np.testing.assert_allclose(restored.q_values(state), agent.q_values(state), rtol=1e-6)
    assert _same(_params(restored.model), _params(restored.target_model))
    assert restored.epsilon == pytest.approx(agent.epsilon)
    assert restored.episode_count == 1
    assert list(restored.episode_rewards) == [12.5]


def test_load_without_saved_model_keeps_policy(tmp_path) -> None:
    agent = _agent(model_store=ModelStore(str(tmp_path)))
    before = _params(agent.model)
    assert agent.load_model() is False
    assert _same(before, _params(agent.model))


def test_load_corrupt_model_keeps_policy(tmp_path, caplog: pytest.LogCaptureFixture) -> None:
    store = ModelStore(str(tmp_path))
    store.weights_path("test-bot").write_bytes(b"not a model")
    agent = _agent(model_store=store)
    before = _params(agent.model)

    with caplog.at_level(logging.WARNING, logger="mazerace.domain.dqn"):
        assert agent.load_model() is False

    assert _same(before, _params(agent.model))
    assert "Could not load model" in caplog.text


def test_persistence_without_store() -> None:
    agent = _agent()
    assert agent.save_model() is False
    assert agent.load_model() is False

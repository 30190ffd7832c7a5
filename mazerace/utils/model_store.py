"""Model store for persisting learned bot policies between races."""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import torch

logger = logging.getLogger(__name__)


@dataclass
class ModelMetadata:
    """Summary of a stored model, kept next to the weights as JSON."""
    model_id: str
    timestamp: str
    epsilon: float
    episode_count: int
    average_reward: float
    file_path: str
    file_size: int


class ModelStore:
    """
    Stores opaque weight blobs keyed by a stable model id.

    Each model is written as ``<id>.pt`` (a torch state dict) plus
    ``<id>.json`` carrying the agent's bookkeeping state.
    """

    def __init__(self, models_dir: str = "saved_models"):
        self.models_dir = Path(models_dir)
        self.models_dir.mkdir(parents=True, exist_ok=True)

    def _safe_id(self, model_id: str) -> str:
        safe = "".join(c for c in model_id if c.isalnum() or c in ('-', '_', '.')).strip('.')
        if not safe:
            raise ValueError(f"Invalid model id: {model_id!r}")
        return safe

    def weights_path(self, model_id: str) -> Path:
        return self.models_dir / f"{self._safe_id(model_id)}.pt"

    def state_path(self, model_id: str) -> Path:
        return self.models_dir / f"{self._safe_id(model_id)}.json"

    def exists(self, model_id: str) -> bool:
        """Whether weights are stored under this id."""
        return self.weights_path(model_id).exists()

    def save(self, model_id: str, weights: Dict[str, torch.Tensor],
             agent_state: Dict[str, Any]) -> str:
        """Write weights and agent state; returns the weights file path."""
        weights_file = self.weights_path(model_id)
        state_file = self.state_path(model_id)

        # Write to temporary files first so a failed save never clobbers a good model
        tmp_weights = weights_file.with_suffix(".pt.tmp")
        tmp_state = state_file.with_suffix(".json.tmp")
        torch.save(weights, tmp_weights)
        with open(tmp_state, 'w') as f:
            json.dump({
                "model_id": model_id,
                "timestamp": datetime.now().isoformat(),
                "agent_state": agent_state,
            }, f, indent=2)
        tmp_weights.replace(weights_file)
        tmp_state.replace(state_file)

        return str(weights_file)

    def load(self, model_id: str) -> Optional[Tuple[Dict[str, torch.Tensor], Dict[str, Any]]]:
        """
        Load ``(weights, agent_state)``.
        Returns None if nothing is stored; raises if stored files are unreadable.
        """
        weights_file = self.weights_path(model_id)
        if not weights_file.exists():
            return None

        weights = torch.load(weights_file, map_location="cpu", weights_only=True)

        agent_state: Dict[str, Any] = {}
        state_file = self.state_path(model_id)
        if state_file.exists():
            with open(state_file, 'r') as f:
                agent_state = json.load(f).get("agent_state", {})

        return weights, agent_state

    def delete(self, model_id: str) -> bool:
        """Remove a stored model. Returns True if anything was deleted."""
        deleted = False
        for path in (self.weights_path(model_id), self.state_path(model_id)):
            try:
                path.unlink()
                deleted = True
            except FileNotFoundError:
                continue
        return deleted

    def list_models(self) -> List[ModelMetadata]:
        """List stored models, most recent first."""
        models = []
        for state_file in self.models_dir.glob("*.json"):
            weights_file = state_file.with_suffix(".pt")
            if not weights_file.exists():
                continue
            try:
                with open(state_file, 'r') as f:
                    data = json.load(f)
                agent_state = data.get("agent_state", {})
                models.append(ModelMetadata(
                    model_id=data["model_id"],
                    timestamp=data["timestamp"],
                    epsilon=agent_state.get("epsilon", 1.0),
                    episode_count=agent_state.get("episode_count", 0),
                    average_reward=agent_state.get("average_reward", 0.0),
                    file_path=str(weights_file),
                    file_size=weights_file.stat().st_size,
                ))
            except (json.JSONDecodeError, KeyError) as e:
                logger.warning("Skipping unreadable model metadata %s: %s", state_file, e)
                continue

        models.sort(key=lambda m: m.timestamp, reverse=True)
        return models

    def describe(self, model_id: str) -> Optional[Dict[str, Any]]:
        """Metadata of one stored model as a plain dict, or None."""
        for metadata in self.list_models():
            if metadata.model_id == model_id:
                return asdict(metadata)
        return None

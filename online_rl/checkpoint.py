"""Checkpoint management for learned weight arrays."""

from __future__ import annotations

import logging
import pickle
import re
from pathlib import Path
from typing import Any, Mapping

import numpy as np
import torch

from .approx import Parameterised

logger = logging.getLogger(__name__)


class CheckpointManager:
    """Saves the weights of named `Parameterised` objects, one file per episode.

    Weights are stored as float64 tensors, so a save/restore round trip is
    exact.
    """

    FILE_PATTERN = re.compile(r"weights_ep(\d+)\.pt$")

    def __init__(self, checkpoint_dir: str | Path = "checkpoints"):
        self.dir = Path(checkpoint_dir)
        self.dir.mkdir(parents=True, exist_ok=True)

    def _path_for_episode(self, episode: int) -> Path:
        return self.dir / f"weights_ep{episode:07d}.pt"

    def save(
        self,
        objects: Mapping[str, Parameterised],
        episode: int,
        metadata: dict[str, Any] | None = None,
    ) -> Path:
        if not objects:
            raise ValueError("nothing to save: objects is empty")
        path = self._path_for_episode(episode)
        payload: dict[str, Any] = {
            "episode": int(episode),
            "weights": {
                name: torch.from_numpy(np.asarray(obj.weights(), dtype=np.float64))
                for name, obj in objects.items()
            },
            "metadata": metadata or {},
        }
        torch.save(payload, path)
        logger.info("checkpoint_saved episode=%d path=%s", episode, path)
        return path

    def _candidates(self) -> list[tuple[int, Path]]:
        found = []
        for p in self.dir.glob("weights_ep*.pt"):
            m = self.FILE_PATTERN.search(p.name)
            if not m:
                continue
            found.append((int(m.group(1)), p))
        found.sort(key=lambda item: item[0], reverse=True)
        return found

    def latest_path(self) -> Path | None:
        candidates = self._candidates()
        if not candidates:
            return None
        return candidates[0][1]

    def load(self, path: str | Path) -> tuple[dict[str, np.ndarray], int]:
        path = Path(path)
        data = torch.load(path, map_location="cpu")
        if not isinstance(data, dict) or not isinstance(data.get("weights"), dict):
            raise ValueError(f"Checkpoint {path} is not a valid weights checkpoint")

        weights: dict[str, np.ndarray] = {}
        for name, tensor in data["weights"].items():
            if not isinstance(tensor, torch.Tensor):
                raise ValueError(f"Checkpoint {path} entry {name!r} is not a tensor")
            weights[str(name)] = tensor.detach().cpu().to(torch.float64).numpy().copy()
        episode = int(data.get("episode", 0))
        return weights, episode

    def load_latest(self) -> tuple[dict[str, np.ndarray] | None, int]:
        """Newest readable checkpoint; unreadable files are skipped."""
        for _, path in self._candidates():
            try:
                return self.load(path)
            except (ValueError, RuntimeError, OSError, EOFError, pickle.UnpicklingError) as exc:
                logger.warning("checkpoint_skipped path=%s reason=%s", path, exc)
        return None, 0

    def restore(self, objects: Mapping[str, Parameterised], path: str | Path | None = None) -> int:
        """Copy saved weights into `objects` in place; returns the saved episode.

        With no `path` the newest checkpoint is used; with none on disk nothing
        changes and 0 is returned.
        """
        if path is None:
            weights, episode = self.load_latest()
            if weights is None:
                return 0
        else:
            weights, episode = self.load(path)

        missing = [name for name in objects if name not in weights]
        if missing:
            raise ValueError(f"checkpoint has no weights for: {', '.join(missing)}")
        for name, obj in objects.items():
            expected = tuple(obj.weights_dim())
            if weights[name].shape != expected:
                raise ValueError(f"weights {name!r} must have shape {expected}, got {weights[name].shape}")

        for name, obj in objects.items():
            target = obj.weights_view_mut()
            target[...] = weights[name]
        logger.info("checkpoint_restored episode=%d objects=%s", episode, ",".join(objects))
        return episode

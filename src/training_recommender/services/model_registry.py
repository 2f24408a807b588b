"""
Per-user registry of fitted models.

The current-model pointer for a user changes in a single assignment under
a lock, so a concurrent predict sees either the previous or the new
FittedModel. When ``model_dir`` is set every installed version is dumped
with joblib and a ``current`` pointer file is replaced atomically.

Artifact loads and dumps block, so async callers go through
``load_current`` and ``install_async``, which run them on a dedicated
single-thread executor.
"""

import asyncio
import hashlib
import logging
import os
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import joblib

from ..ml.evaluation import ModelMetrics
from ..ml.models import FittedModel

logger = logging.getLogger(__name__)

CURRENT_POINTER = "current"


@dataclass(frozen=True)
class ModelVersionInfo:
    """One installed model version and its held-out metrics."""

    version: str
    kind: str
    metrics: ModelMetrics
    installed_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "kind": self.kind,
            "metrics": self.metrics.to_dict(),
            "installed_at": self.installed_at.isoformat(),
        }


class ModelRegistry:
    """Current model and version history per user."""

    def __init__(self, model_dir: Optional[Path] = None) -> None:
        self.model_dir = Path(model_dir) if model_dir else None
        self._current: Dict[str, FittedModel] = {}
        self._history: Dict[str, List[ModelVersionInfo]] = {}
        self._lock = threading.Lock()
        # Serializes persist + swap so disk pointer and memory agree
        self._user_locks: Dict[str, threading.Lock] = {}
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="model-registry")

    @staticmethod
    def _user_key(user_id: str) -> str:
        # User ids may be emails; keep them out of paths
        return hashlib.sha256(user_id.encode()).hexdigest()[:16]

    def _user_dir(self, user_id: str) -> Path:
        assert self.model_dir is not None
        return self.model_dir / self._user_key(user_id)

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._lock:
            return self._user_locks.setdefault(user_id, threading.Lock())

    def _persist(self, user_id: str, model: FittedModel) -> None:
        user_dir = self._user_dir(user_id)
        user_dir.mkdir(parents=True, exist_ok=True)
        joblib.dump(model, user_dir / f"{model.version}.joblib")

        fd, tmp_path = tempfile.mkstemp(dir=user_dir, prefix=".current-")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(model.version)
            os.replace(tmp_path, user_dir / CURRENT_POINTER)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _load_persisted(self, user_id: str) -> Optional[FittedModel]:
        if self.model_dir is None:
            return None
        pointer = self._user_dir(user_id) / CURRENT_POINTER
        if not pointer.exists():
            return None
        version = pointer.read_text().strip()
        artifact = self._user_dir(user_id) / f"{version}.joblib"
        if not artifact.exists():
            logger.warning(f"Model pointer references missing artifact {version}")
            return None
        return joblib.load(artifact)

    def _loaded(self, user_id: str) -> Optional[FittedModel]:
        with self._lock:
            return self._current.get(user_id)

    def get_current(self, user_id: str) -> Optional[FittedModel]:
        """
        The user's current model, loading a persisted one on first access.

        Blocks on disk I/O for the first access; async code should use
        ``load_current`` instead.
        """
        model = self._loaded(user_id)
        if model is not None or self.model_dir is None:
            return model

        with self._user_lock(user_id):
            model = self._loaded(user_id)
            if model is not None:
                return model
            loaded = self._load_persisted(user_id)
            if loaded is None:
                return None
            with self._lock:
                return self._current.setdefault(user_id, loaded)

    async def load_current(self, user_id: str) -> Optional[FittedModel]:
        """``get_current`` with any artifact load moved off the event loop."""
        model = self._loaded(user_id)
        if model is not None or self.model_dir is None:
            return model
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.get_current, user_id)

    def install(self, user_id: str, model: FittedModel, metrics: ModelMetrics) -> None:
        """Make ``model`` current. Persistence failures leave the previous model in place."""
        info = ModelVersionInfo(version=model.version, kind=model.kind.value, metrics=metrics)
        with self._user_lock(user_id):
            if self.model_dir is not None:
                self._persist(user_id, model)
            with self._lock:
                self._current[user_id] = model
                self._history.setdefault(user_id, []).append(info)
        logger.info(f"Installed model {model.version} for {user_id}")

    async def install_async(self, user_id: str, model: FittedModel, metrics: ModelMetrics) -> None:
        if self.model_dir is None:
            self.install(user_id, model, metrics)
            return
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, self.install, user_id, model, metrics)

    def history(self, user_id: str) -> List[ModelVersionInfo]:
        """Installed versions for a user, oldest first."""
        with self._lock:
            return list(self._history.get(user_id, []))

    def user_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._current)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

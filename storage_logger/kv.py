"""JSON file backed key-value store."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List
import json

from loguru import logger


@dataclass
class KeyValueStore:
    """Small persistent mapping stored as a single JSON object on disk."""

    storage_path: Path
    _lock: RLock = field(default_factory=RLock, init=False)

    def __post_init__(self) -> None:
        self.storage_path = Path(self.storage_path).expanduser()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            state = self._load_state_locked()
            return state.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            state = self._load_state_locked()
            state[key] = value
            self._write_state_unlocked(state)

    def delete(self, key: str) -> None:
        with self._lock:
            state = self._load_state_locked()
            if key not in state:
                return
            del state[key]
            self._write_state_unlocked(state)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._load_state_locked().keys())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _load_state_locked(self) -> Dict[str, Any]:
        if not self.storage_path.exists():
            return {}
        try:
            raw = self.storage_path.read_text(encoding="utf-8") or "{}"
        except OSError as exc:
            logger.warning(f"Key-value store unreadable at {self.storage_path}: {exc}")
            return {}
        try:
            state = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning(f"Key-value store corrupt at {self.storage_path}: {exc}")
            return {}
        if not isinstance(state, dict):
            logger.warning(f"Key-value store at {self.storage_path} is not an object, ignoring")
            return {}
        return state

    def _write_state_unlocked(self, state: Dict[str, Any]) -> None:
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.storage_path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(state, indent=2, ensure_ascii=False), encoding="utf-8")
        temp_path.replace(self.storage_path)

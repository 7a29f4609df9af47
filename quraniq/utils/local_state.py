"""
Client-local state persistence.

Holds what a browser client would keep in local storage: the player
identity, display name, cached group list, play statistics, explored
verses and the pending-migration marker. Backed by a JSON file written
atomically, or kept in memory only when no path is given.
"""

import copy
import json
import logging
import os
import tempfile
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class LocalStateStore:
    """Key/value store for client-local state."""
    
    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._data: Dict[str, Any] = {}
        self._load()
    
    def _load(self) -> None:
        if not self.path or not os.path.isfile(self.path) or os.path.getsize(self.path) == 0:
            self._data = {}
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError:
            logger.warning(f"Local state at {self.path} is corrupt, starting fresh")
            data = {}
        self._data = data if isinstance(data, dict) else {}
    
    def _save(self) -> None:
        """Persist state to the JSON file (atomic write)."""
        if not self.path:
            return
        dir_path = os.path.dirname(self.path) or "."
        os.makedirs(dir_path, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=dir_path, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
    
    def get(self, key: str, default: Any = None) -> Any:
        """Return a deep copy so callers cannot mutate stored state in place."""
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])
    
    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        self._save()
    
    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._save()
    
    def __contains__(self, key: str) -> bool:
        return key in self._data

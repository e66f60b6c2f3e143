import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class ClientStorage(ABC):
    """
    Abstract interface for the watchdog's key/value client storage.
    Implementations may raise on any call (quota, locked database, disabled
    storage); callers treat every failure as a no-op.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored string, or None if the key is absent."""
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store a string under key, replacing any previous value."""
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get_item(key)
        if raw is None:
            return default
        return json.loads(raw)

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, default=str))


class MemoryStorage(ClientStorage):
    """Process-local storage; lives as long as the watchdog's host."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_item(self, key):
        with self._lock:
            return self._items.get(key)

    def set_item(self, key, value):
        with self._lock:
            self._items[key] = value

    def remove_item(self, key):
        with self._lock:
            self._items.pop(key, None)

import threading
from dataclasses import replace
from typing import Any, Optional, Tuple

from baseline.models import Baseline


class BaselineHolder:
    """
    The watchdog's single mutable shared state: the current Baseline.
    Either replaced wholesale (set) or field by field after an event
    (compare_and_set); both under one lock so a delta is accepted once.
    """

    def __init__(self, baseline: Optional[Baseline] = None):
        self._baseline = baseline
        self._lock = threading.RLock()

    def get(self) -> Optional[Baseline]:
        with self._lock:
            return self._baseline

    def set(self, baseline: Baseline) -> None:
        with self._lock:
            self._baseline = baseline

    def compare_and_set(self, field_name: str, value: Any) -> Tuple[bool, Any]:
        """
        Accept value for field_name if it differs from the baseline.
        Returns (changed, previous value).
        """
        with self._lock:
            if self._baseline is None:
                return False, None
            previous = getattr(self._baseline, field_name)
            if previous == value:
                return False, previous
            self._baseline = replace(self._baseline, **{field_name: value})
            return True, previous

    def update(self, **fields) -> Optional[Baseline]:
        with self._lock:
            if self._baseline is None:
                return None
            self._baseline = replace(self._baseline, **fields)
            return self._baseline

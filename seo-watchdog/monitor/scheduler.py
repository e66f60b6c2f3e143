import threading

from monitor.logger import get_logger

logger = get_logger("scheduler")


class ThreadScheduler:
    """Delayed one-shot calls on threading.Timer, cancellable as a group."""

    def __init__(self):
        self._timers = set()
        self._lock = threading.Lock()

    def call_later(self, delay, fn, *args):
        timer = None

        def _run():
            with self._lock:
                self._timers.discard(timer)
            try:
                fn(*args)
            except Exception as e:
                logger.error(f"[SCHEDULER] Delayed call {getattr(fn, '__name__', fn)} failed: {e}")

        timer = threading.Timer(delay, _run)
        timer.daemon = True
        with self._lock:
            self._timers.add(timer)
        timer.start()
        return timer

    def cancel_all(self):
        with self._lock:
            timers, self._timers = self._timers, set()
        for timer in timers:
            timer.cancel()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._timers)

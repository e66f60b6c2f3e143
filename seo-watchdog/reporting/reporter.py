import threading
from collections import deque
from typing import Callable, List

from detection.models import MonitoringEvent
from monitor.logger import get_logger

logger = get_logger("reporter")


def spawn(fn, *args):
    """Fire-and-forget: run fn on a daemon thread and return immediately."""
    thread = threading.Thread(target=fn, args=args, daemon=True, name="SEOReporter")
    thread.start()
    return thread


class EventReporter:
    """
    Writes each MonitoringEvent out twice, independently:
    1. one POST to the ingestion endpoint via submit (no retry, no backoff)
    2. append to the ring of recent events, in memory and in client storage
    report() never raises; failures only reach the log.
    """

    def __init__(self, client, storage, events_key: str, buffer_size: int = 50, submit: Callable = spawn):
        self.client = client
        self.storage = storage
        self.events_key = events_key
        self.buffer_size = buffer_size
        self.submit = submit
        self._recent = deque(maxlen=buffer_size)
        self._lock = threading.Lock()

    @property
    def events(self) -> List[MonitoringEvent]:
        """Most recent events in emission order (in memory)."""
        with self._lock:
            return list(self._recent)

    def stored_events(self) -> List[dict]:
        """Events persisted in client storage, [] if storage is unavailable."""
        try:
            stored = self.storage.get_json(self.events_key, [])
        except Exception as e:
            logger.warning(f"[STORAGE] Could not read events: {e}")
            return []
        return stored if isinstance(stored, list) else []

    def report(self, event: MonitoringEvent) -> None:
        if event.is_critical:
            logger.warning(f"[REPORTER] CRITICAL SEO ALERT: {event.title} on {event.page_url} "
                           f"({event.old_value!r} -> {event.new_value!r})")

        try:
            self._send(event)
        except Exception as e:
            logger.error(f"[REPORTER] Could not dispatch {event.event_type.value}: {e}")

        try:
            self._store(event)
        except Exception as e:
            logger.error(f"[REPORTER] Could not buffer {event.event_type.value}: {e}")

    def _send(self, event: MonitoringEvent):
        missing = event.missing_fields()
        if missing:
            logger.warning(f"[REPORTER] Not sending {event.event_type.value}: missing {', '.join(missing)}")
            return
        self.submit(self._post, event.to_payload())

    def _post(self, payload: dict):
        try:
            self.client.send_event(payload)
            logger.debug(f"[REPORTER] Sent {payload['event_type']} for {payload['page_url']}")
        except Exception as e:
            logger.warning(f"[REPORTER] Failed to send {payload['event_type']}: {e}")

    def _store(self, event: MonitoringEvent):
        payload = event.to_payload()
        with self._lock:
            self._recent.append(event)
            try:
                try:
                    stored = self.storage.get_json(self.events_key, [])
                except ValueError:
                    logger.warning(f"[STORAGE] Discarding unreadable event ring under {self.events_key}")
                    stored = []
                if not isinstance(stored, list):
                    stored = []
                stored.append(payload)
                # Oldest entries are dropped first
                self.storage.set_json(self.events_key, stored[-self.buffer_size:])
            except Exception as e:
                logger.warning(f"[STORAGE] Could not persist event {event.event_type.value}: {e}")

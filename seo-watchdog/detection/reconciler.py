import threading
from typing import Callable, List

from baseline.models import signal_values
from detection.diff import diff_baselines
from detection.models import EventContext, MonitoringEvent
from monitor.logger import get_logger

logger = get_logger("reconciler")

SIGNAL_NAMES = ("title", "h1", "meta_robots")


class Reconciler:
    """
    Coarse fallback for changes the mutation observer never saw (e.g. the
    whole document being replaced).

    mode "resync": re-read title/H1/meta robots; on any difference take a new
    full baseline WITHOUT reporting the delta.
    mode "report": diff a full fresh snapshot against the baseline, report
    every changed field, then accept the snapshot.
    """

    def __init__(
        self,
        document,
        holder,
        extractor,
        accept_baseline: Callable,
        reporter,
        context: EventContext,
        on_changes: Callable[[], None],
        interval: float = 30,
        mode: str = "resync",
    ):
        self.document = document
        self.holder = holder
        self.extractor = extractor
        self.accept_baseline = accept_baseline
        self.reporter = reporter
        self.context = context
        self.on_changes = on_changes
        self.interval = interval
        self.mode = mode
        self.resync_count = 0
        self._stop = threading.Event()
        self._thread = None

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="SEOReconciler")
        self._thread.start()
        logger.info(f"[RECONCILER] started (every {self.interval}s, mode={self.mode})")

    def stop(self, timeout=5):
        self._stop.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self):
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception as e:
                # The timer must survive a bad tick
                logger.error(f"[RECONCILER] tick failed: {e}")

    def tick(self) -> List[MonitoringEvent]:
        baseline = self.holder.get()
        if baseline is None:
            return []
        if self.mode == "report":
            return self._report_tick(baseline)
        self._resync_tick(baseline)
        return []

    def _resync_tick(self, baseline):
        fresh = self.extractor.quick_signals(self.document)
        current = signal_values(baseline)
        if fresh == current:
            return

        drifted = [name for name, a, b in zip(SIGNAL_NAMES, current, fresh) if a != b]
        logger.warning(f"[RECONCILER] Missed change in {', '.join(drifted)}; re-establishing baseline silently")
        self.resync_count += 1
        self.accept_baseline(self.extractor.generate(self.document))

    def _report_tick(self, baseline):
        snapshot = self.extractor.generate(self.document)
        changes = diff_baselines(baseline, snapshot)
        if not changes:
            return []

        events = []
        for change in changes:
            event = self.context.build(
                self.document.url,
                change.event_type,
                change.severity,
                description=f"{change.field_name} changed from {change.old_value!r} to {change.new_value!r}",
                old_value=change.old_value,
                new_value=change.new_value,
                selector=change.selector,
                detected_by="reconciler",
            )
            events.append(event)
            self.reporter.report(event)

        self.resync_count += 1
        self.accept_baseline(snapshot)
        self.on_changes()
        return events

"""
SEO watchdog: one instance per watched page.

FLOW: start() -> snapshot baseline -> subscribe to document mutations ->
indexability check -> reconciler timer. Mutation batches and reconciler ticks
both compare fresh DOM reads against the baseline; detected deltas go to the
EventReporter and move the baseline forward so they are reported once.
"""

import threading
from typing import List, Optional

from baseline.extractor import BaselineExtractor
from baseline.models import Baseline
from baseline.state import BaselineHolder
from detection.diff import diff_baselines
from detection.engine import MutationWatcher
from detection.indexability import IndexabilityChecker
from detection.models import EventContext, MonitoringEvent
from detection.reconciler import Reconciler
from monitor.config import WatchdogConfig
from monitor.logger import get_logger
from monitor.scheduler import ThreadScheduler
from page.observer import MutationObserver
from reporting.client import WatchdogAPIClient
from reporting.reporter import EventReporter, spawn
from storage.local import MemoryStorage

logger = get_logger("watchdog")


class SEOWatchdog:

    def __init__(
        self,
        document,
        config: WatchdogConfig,
        storage=None,
        client=None,
        scheduler=None,
        submit=None,
        extractor=None,
    ):
        self.document = document
        self.config = config
        self.storage = storage if storage is not None else MemoryStorage()
        self._owns_client = client is None
        self.client = client or WatchdogAPIClient(
            config.api_base_url,
            config.site_token,
            timeout=config.request_timeout,
            user_agent=config.user_agent,
        )
        self.scheduler = scheduler or ThreadScheduler()
        self.submit = submit or spawn
        self.extractor = extractor or BaselineExtractor()

        self.holder = BaselineHolder()
        self.context = EventContext(site_token=config.site_token, user_agent=config.user_agent)
        self.reporter = EventReporter(
            self.client,
            self.storage,
            config.events_key,
            buffer_size=config.event_buffer_size,
            submit=self.submit,
        )
        self.watcher = MutationWatcher(document, self.holder, self.reporter, self.context, self._schedule_recheck)
        self.checker = IndexabilityChecker(
            document, self.holder, self.reporter, self.context, self.client, self.submit
        )
        self.reconciler = Reconciler(
            document,
            self.holder,
            self.extractor,
            self._accept_baseline,
            self.reporter,
            self.context,
            self._schedule_recheck,
            interval=config.reconcile_interval,
            mode=config.reconciler_mode,
        )

        self._observer: Optional[MutationObserver] = None
        self._active = False
        self._lifecycle_lock = threading.Lock()

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------
    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> Baseline:
        with self._lifecycle_lock:
            if self._active:
                logger.info("[WATCHDOG] Already running")
                return self.holder.get()
            self._active = True

        logger.info(f"[WATCHDOG] Starting for {self.document.url}", extra={"context": self.config.site_token})

        baseline = self.extractor.generate(self.document)
        if self.config.compare_persisted_baseline:
            self._compare_with_persisted(baseline)
        self._accept_baseline(baseline)
        self.checker.prime(baseline.meta_robots)

        self._observer = MutationObserver(self.watcher.on_mutation_batch)
        self._observer.observe(
            self.document,
            child_list=True,
            attributes=True,
            attribute_old_value=True,
            character_data=True,
            character_data_old_value=True,
            subtree=True,
        )

        self._run_indexability_check()
        self.reconciler.start()
        return baseline

    def stop(self):
        with self._lifecycle_lock:
            if not self._active:
                return
            self._active = False

        if self._observer is not None:
            self._observer.disconnect()
            self._observer = None
        self.reconciler.stop()
        self.scheduler.cancel_all()
        if self._owns_client:
            self.client.close()
        logger.info(f"[WATCHDOG] Stopped for {self.document.url}", extra={"context": self.config.site_token})

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    # ------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------
    @property
    def baseline(self) -> Optional[Baseline]:
        return self.holder.get()

    @property
    def events(self) -> List[MonitoringEvent]:
        return self.reporter.events

    def establish_baseline(self) -> Baseline:
        """Full snapshot of the document; replaces the current baseline outright."""
        baseline = self.extractor.generate(self.document)
        self._accept_baseline(baseline)
        return baseline

    def check_indexability(self) -> List[MonitoringEvent]:
        return self.checker.check()

    def reconcile(self) -> List[MonitoringEvent]:
        """One reconciler tick, on demand (hosts that replace the document call this)."""
        return self.reconciler.tick()

    def report(self, event: MonitoringEvent):
        self.reporter.report(event)

    # ------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------
    def _accept_baseline(self, baseline: Baseline):
        self.holder.set(baseline)
        try:
            self.storage.set_json(self.config.baseline_key, baseline.to_dict())
        except Exception as e:
            # The in-memory copy stays authoritative
            logger.warning(f"[STORAGE] Could not persist baseline: {e}")

    def _compare_with_persisted(self, baseline: Baseline):
        try:
            data = self.storage.get_json(self.config.baseline_key)
        except Exception as e:
            logger.warning(f"[STORAGE] Could not read persisted baseline: {e}")
            return
        if not data:
            return
        if not isinstance(data, dict):
            logger.warning(f"[STORAGE] Ignoring persisted baseline of type {type(data).__name__}")
            return

        try:
            previous = Baseline.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[STORAGE] Ignoring unreadable persisted baseline: {e}")
            return
        if previous.page_url != baseline.page_url:
            return

        for change in diff_baselines(previous, baseline):
            self.reporter.report(self.context.build(
                self.document.url,
                change.event_type,
                change.severity,
                description=f"{change.field_name} changed since the last visit",
                old_value=change.old_value,
                new_value=change.new_value,
                selector=change.selector,
                detected_by="persisted_baseline",
                previous_capture=previous.captured_at.isoformat(),
            ))

    def _schedule_recheck(self):
        if not self._active:
            return
        self.scheduler.call_later(self.config.recheck_delay, self._run_indexability_check)

    def _run_indexability_check(self):
        try:
            self.checker.check()
        except Exception as e:
            logger.error(f"[WATCHDOG] Indexability check failed: {e}")

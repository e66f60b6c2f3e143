import threading
from typing import Callable, List

from baseline.extractor import read_canonical, read_meta_robots
from detection.diff import has_noindex
from detection.models import EventContext, EventType, MonitoringEvent, Severity
from monitor.logger import get_logger
from page.url_utils import origin_and_path, page_origin, same_site

logger = get_logger("indexability")


class IndexabilityChecker:
    """
    Independent indexability checks, run at start and after qualifying
    mutations:
    1. noindex newly present        -> noindex_detected   (CRITICAL)
    2. canonical points elsewhere   -> canonical_mismatch (WARNING)
    3. robots-status endpoint issues -> robots_txt_issue  (WARNING)
    Each step is isolated; a failure in one never skips the others.

    noindex_detected is not deduplicated against the watcher's
    meta_robots_change. "Newly" is judged against the meta robots value seen
    by the previous check, since the watcher has already moved the baseline.
    """

    def __init__(self, document, holder, reporter, context: EventContext, client, submit: Callable):
        self.document = document
        self.holder = holder
        self.reporter = reporter
        self.context = context
        self.client = client
        self.submit = submit
        self._last_robots = None
        self._lock = threading.Lock()

    def prime(self, meta_robots: str):
        """Reference value for the first noindex comparison."""
        with self._lock:
            self._last_robots = meta_robots

    def check(self) -> List[MonitoringEvent]:
        events = []
        for name, step in (("noindex", self._check_noindex), ("canonical", self._check_canonical)):
            try:
                event = step()
            except Exception as e:
                logger.warning(f"[INDEXABILITY] {name} check failed: {e}")
                continue
            if event is not None:
                events.append(event)
                self.reporter.report(event)

        try:
            self.submit(self._check_robots_status)
        except Exception as e:
            logger.warning(f"[INDEXABILITY] Could not schedule robots status check: {e}")
        return events

    def _check_noindex(self):
        current = read_meta_robots(self.document)
        with self._lock:
            previous = self._last_robots
            if previous is None:
                baseline = self.holder.get()
                previous = baseline.meta_robots if baseline else ""
            self._last_robots = current

        if not (has_noindex(current) and not has_noindex(previous)):
            return None

        logger.warning(f"[INDEXABILITY] noindex detected on {self.document.url}")
        return self.context.build(
            self.document.url,
            EventType.NOINDEX_DETECTED,
            Severity.CRITICAL,
            description="Page now carries a noindex directive and will drop out of search results",
            old_value=previous,
            new_value=current,
            selector='meta[name="robots"]',
        )

    def _check_canonical(self):
        canonical = read_canonical(self.document)
        page_url = self.document.url
        if not canonical or origin_and_path(canonical) == origin_and_path(page_url):
            return None

        return self.context.build(
            page_url,
            EventType.CANONICAL_MISMATCH,
            Severity.WARNING,
            description=f"Canonical URL {canonical} does not match page URL {page_url}",
            old_value=page_url,
            new_value=canonical,
            selector='link[rel="canonical"]',
            cross_domain=not same_site(canonical, page_url),
        )

    def _check_robots_status(self):
        """Runs through submit; the network call never reaches the caller."""
        site_url = page_origin(self.document.url)
        try:
            issues = self.client.robots_issues(site_url)
        except Exception as e:
            logger.warning(f"[INDEXABILITY] Robots status unavailable for {site_url}: {e}")
            return None

        if not issues:
            return None

        event = self.context.build(
            self.document.url,
            EventType.ROBOTS_TXT_ISSUE,
            Severity.WARNING,
            description=", ".join(issues),
            selector=None,
            issue_count=len(issues),
        )
        self.reporter.report(event)
        return event

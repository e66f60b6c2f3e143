"""
SEOWatchdog lifecycle and persisted-baseline comparison.
"""

import json
import unittest
from unittest.mock import MagicMock, patch

from conftest import (
    MINIMAL_HTML,
    PAGE_HTML,
    PAGE_URL,
    FailingStorage,
    FakeClient,
    ManualScheduler,
    event_types,
    inline_submit,
    make_config,
    make_watchdog,
)
from baseline.extractor import BaselineExtractor
from monitor.core import SEOWatchdog
from page.document import PageDocument
from storage.local import MemoryStorage

BASELINE_KEY = "seoagent_baseline_tok_123"


def persisted(html, url=PAGE_URL):
    baseline = BaselineExtractor().generate(PageDocument(html, url))
    return MemoryStorage({BASELINE_KEY: json.dumps(baseline.to_dict())})


class TestLifecycle(unittest.TestCase):
    def test_start_snapshots_and_persists_baseline(self):
        storage = MemoryStorage()
        document, watchdog, _ = make_watchdog(PAGE_HTML, storage=storage)

        baseline = watchdog.start()
        try:
            self.assertTrue(watchdog.active)
            self.assertEqual(baseline.title, "Home")
            self.assertIs(watchdog.baseline, baseline)
            self.assertEqual(storage.get_json(BASELINE_KEY)["title"], "Home")
            self.assertEqual(watchdog.client.robots_calls, ["https://shop.example.com"])
        finally:
            watchdog.stop()

    def test_start_and_stop_are_idempotent(self):
        _, watchdog, scheduler = make_watchdog(PAGE_HTML)

        first = watchdog.start()
        second = watchdog.start()
        self.assertIs(first, second)
        self.assertEqual(len(watchdog.client.robots_calls), 1)

        watchdog.stop()
        watchdog.stop()
        self.assertFalse(watchdog.active)
        self.assertFalse(watchdog.reconciler.running)

    def test_stop_cancels_pending_rechecks(self):
        document, watchdog, scheduler = make_watchdog(PAGE_HTML)
        watchdog.start()
        document.set_text(document.find("title"), "Sale")
        self.assertEqual(scheduler.pending, 1)

        watchdog.stop()

        self.assertEqual(scheduler.pending, 0)

    def test_context_manager(self):
        document, watchdog, _ = make_watchdog(PAGE_HTML)
        with watchdog as running:
            self.assertTrue(running.active)
            document.set_text(document.find("h1"), "Changed")
        self.assertFalse(watchdog.active)
        self.assertEqual(event_types(watchdog.events), ["h1_change"])

    def test_establish_baseline_replaces_outright(self):
        document, watchdog, _ = make_watchdog(PAGE_HTML)
        watchdog.start()
        try:
            document.replace_content(MINIMAL_HTML)
            baseline = watchdog.establish_baseline()
            self.assertEqual(baseline.h1, "Hello")
            self.assertEqual(baseline.schema_count, 0)
            self.assertEqual(watchdog.events, [])
        finally:
            watchdog.stop()

    def test_storage_failures_do_not_break_monitoring(self):
        """Scenario: storage throws on every call; detection and POSTs continue."""
        storage = FailingStorage()
        client = FakeClient()
        document, watchdog, _ = make_watchdog(PAGE_HTML, storage=storage, client=client)

        with self.assertLogs("seo_watchdog", "WARNING"):
            watchdog.start()
        try:
            document.set_text(document.find("title"), "Sale")
            self.assertEqual(event_types(watchdog.events), ["title_change"])
            self.assertEqual(client.sent[0]["event_type"], "title_change")
            self.assertGreater(storage.attempts, 0)
        finally:
            watchdog.stop()

    def test_failing_indexability_check_does_not_abort_start(self):
        _, watchdog, _ = make_watchdog(PAGE_HTML)
        watchdog.checker.check = MagicMock(side_effect=RuntimeError("boom"))

        watchdog.start()
        try:
            self.assertTrue(watchdog.active)
            self.assertTrue(watchdog.reconciler.running)
        finally:
            watchdog.stop()

    @patch("monitor.core.WatchdogAPIClient")
    def test_stop_closes_a_client_it_created(self, client_cls):
        client_cls.return_value.robots_issues.return_value = []
        watchdog = SEOWatchdog(
            PageDocument(PAGE_HTML, PAGE_URL), make_config(), scheduler=ManualScheduler(), submit=inline_submit
        )

        watchdog.start()
        watchdog.stop()

        client_cls.return_value.close.assert_called_once_with()

    def test_stop_leaves_an_injected_client_open(self):
        client = MagicMock()
        client.robots_issues.return_value = []
        _, watchdog, _ = make_watchdog(PAGE_HTML, client=client)

        watchdog.start()
        watchdog.stop()

        client.close.assert_not_called()


class TestPersistedBaseline(unittest.TestCase):
    def test_changes_since_last_visit_are_reported(self):
        storage = persisted(PAGE_HTML.replace("<title>Home</title>", "<title>Old Home</title>"))
        _, watchdog, _ = make_watchdog(PAGE_HTML, storage=storage)

        watchdog.start()
        watchdog.stop()

        events = watchdog.events
        self.assertEqual(event_types(events), ["title_change"])
        self.assertEqual(events[0].old_value, "Old Home")
        self.assertEqual(events[0].new_value, "Home")
        self.assertEqual(events[0].metadata["detected_by"], "persisted_baseline")
        self.assertEqual(storage.get_json(BASELINE_KEY)["title"], "Home")

    def test_other_page_is_not_compared(self):
        storage = persisted(MINIMAL_HTML, url="https://shop.example.com/other")
        _, watchdog, _ = make_watchdog(PAGE_HTML, storage=storage)

        watchdog.start()
        watchdog.stop()

        self.assertEqual(watchdog.events, [])

    def test_comparison_can_be_disabled(self):
        storage = persisted(MINIMAL_HTML)
        _, watchdog, _ = make_watchdog(PAGE_HTML, storage=storage, compare_persisted_baseline=False)

        watchdog.start()
        watchdog.stop()

        self.assertEqual(watchdog.events, [])

    def test_unreadable_persisted_baseline_is_ignored(self):
        storage = MemoryStorage({BASELINE_KEY: "{broken"})
        _, watchdog, _ = make_watchdog(PAGE_HTML, storage=storage)

        with self.assertLogs("seo_watchdog.watchdog", "WARNING"):
            watchdog.start()
        watchdog.stop()

        self.assertEqual(watchdog.events, [])
        self.assertEqual(storage.get_json(BASELINE_KEY)["title"], "Home")

    def test_wrongly_shaped_persisted_baseline_is_ignored(self):
        storage = MemoryStorage({BASELINE_KEY: json.dumps(["x"])})
        _, watchdog, _ = make_watchdog(PAGE_HTML, storage=storage)

        with self.assertLogs("seo_watchdog.watchdog", "WARNING"):
            watchdog.start()
        watchdog.stop()

        self.assertEqual(watchdog.events, [])
        self.assertEqual(storage.get_json(BASELINE_KEY)["title"], "Home")

    def test_persisted_open_graph_of_wrong_type_is_treated_as_empty(self):
        storage = MemoryStorage({BASELINE_KEY: json.dumps({"page_url": PAGE_URL, "open_graph": "x"})})
        _, watchdog, _ = make_watchdog(PAGE_HTML, storage=storage)

        watchdog.start()
        watchdog.stop()

        og_changes = [e for e in watchdog.events if e.event_type.value == "og_change"]
        self.assertEqual(len(og_changes), 1)
        self.assertEqual(og_changes[0].old_value, "")
        self.assertEqual(storage.get_json(BASELINE_KEY)["title"], "Home")


if __name__ == "__main__":
    unittest.main()

"""
Command-line host: WatchSession refreshes and the `events` command.
"""

import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest.mock import patch

from conftest import PAGE_HTML, PAGE_URL, FakeClient, event_types, make_config
from page.fetcher import FetchedPage, FetchFailure, PageFetchError
from storage.local import MemoryStorage
from storage.sqlite_storage import SQLiteStorage

import main


def fetched(html, url=PAGE_URL):
    return FetchedPage(html=html, final_url=url, status_code=200, fetch_time_ms=12)


class TestWatchSession(unittest.TestCase):
    def setUp(self):
        self.client = FakeClient()
        self.session = main.WatchSession(
            PAGE_URL, make_config(reconciler_mode="report"), MemoryStorage(), refresh_interval=0, client=self.client
        )

    def tearDown(self):
        if self.session.watchdog is not None:
            self.session.watchdog.stop()

    @patch("main.fetch_page")
    def test_refresh_reports_changed_fields(self, fetch):
        fetch.side_effect = [
            fetched(PAGE_HTML),
            fetched(PAGE_HTML.replace("<h1>Welcome to <span>Acme</span></h1>", "<h1>Closing down</h1>")),
        ]

        self.session.start()
        events = self.session.refresh()

        self.assertEqual(event_types(events), ["h1_change"])
        self.assertEqual(events[0].old_value, "Welcome to Acme")

    @patch("main.fetch_page")
    def test_failed_refresh_keeps_previous_document(self, fetch):
        fetch.side_effect = [
            fetched(PAGE_HTML),
            PageFetchError(PAGE_URL, FetchFailure.TIMEOUT),
        ]

        self.session.start()
        document = self.session.document

        self.assertEqual(self.session.refresh(), [])
        self.assertEqual(document.find("title").get_text(), "Home")

    @patch("main.fetch_page")
    def test_run_stops_watchdog(self, fetch):
        fetch.return_value = fetched(PAGE_HTML)

        self.session.run(iterations=2)

        self.assertEqual(fetch.call_count, 3)
        self.assertFalse(self.session.watchdog.active)

    @patch("page.js_renderer.shutdown")
    @patch("main.fetch_page")
    def test_rendered_session_stops_the_render_thread(self, fetch, shutdown):
        fetch.return_value = fetched(PAGE_HTML)
        self.session.render_js = True

        self.session.run(iterations=0)

        shutdown.assert_called_once_with()
        self.assertFalse(self.session.watchdog.active)

    @patch("page.js_renderer.shutdown")
    @patch("main.fetch_page", side_effect=PageFetchError(PAGE_URL, FetchFailure.RENDER_FAILED))
    def test_render_thread_stopped_when_first_fetch_fails(self, _, shutdown):
        self.session.render_js = True

        with self.assertRaises(PageFetchError):
            self.session.run(iterations=1)

        shutdown.assert_called_once_with()
        self.assertIsNone(self.session.watchdog)


class TestCommandLine(unittest.TestCase):
    def test_events_command_prints_stored_events(self):
        with tempfile.TemporaryDirectory() as tmp:
            db = os.path.join(tmp, "watchdog.db")
            SQLiteStorage(db).set_json("seoagent_events_tok_123", [{
                "detected_at": "2026-01-06T05:32:41+00:00",
                "severity": "critical",
                "event_type": "noindex_detected",
                "page_url": PAGE_URL,
                "title": "Page set to noindex",
            }])

            out = io.StringIO()
            with redirect_stdout(out):
                code = main.main(["events", "--token", "tok_123", "--db", db])

        self.assertEqual(code, 0)
        self.assertIn("noindex_detected", out.getvalue())
        self.assertIn(PAGE_URL, out.getvalue())

    @patch.dict(os.environ, {"SEO_WATCHDOG_SITE_TOKEN": ""})
    def test_watch_without_token_is_a_config_error(self):
        self.assertEqual(main.main(["watch", PAGE_URL, "--no-db"]), 2)

    @patch.dict(os.environ, {"SEO_WATCHDOG_SITE_TOKEN": ""})
    def test_events_without_token_is_a_config_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            code = main.main(["events", "--db", os.path.join(tmp, "watchdog.db")])
        self.assertEqual(code, 2)

    @patch("main.WatchSession.run", side_effect=PageFetchError(PAGE_URL, FetchFailure.CONNECTION_ERROR))
    def test_unreachable_page_exit_code(self, _):
        self.assertEqual(main.main(["watch", PAGE_URL, "--token", "tok_123", "--no-db"]), 1)


if __name__ == "__main__":
    unittest.main()

import sys
import os
import time
import argparse
import logging

# Inject the seo-watchdog directory into sys.path so the packages
# (page, baseline, storage, detection, reporting, monitor) resolve when
# running from a checkout.
sys.path.append(os.path.join(os.path.dirname(__file__), "seo-watchdog"))

from monitor.config import DATA_DIR, WatchdogConfig
from monitor.core import SEOWatchdog
from monitor.logger import setup_logger
from page.document import PageDocument
from page.fetcher import PageFetchError, fetch_page
from storage.local import MemoryStorage
from storage.sqlite_storage import SQLiteStorage

DEFAULT_REFRESH_INTERVAL = 300


class WatchSession:
    """
    Hosts one watchdog outside a browser.
    The page is re-fetched every refresh interval and swapped in wholesale;
    the reconciler (report mode) turns each swap into field-level events.
    """

    def __init__(self, url, config: WatchdogConfig, storage, refresh_interval=DEFAULT_REFRESH_INTERVAL, render_js=False,
                 client=None):
        self.url = url
        self.config = config
        self.storage = storage
        self.refresh_interval = refresh_interval
        self.render_js = render_js
        self.client = client
        self.logger = logging.getLogger("seo_watchdog.session")
        self.document = None
        self.watchdog = None

    def _fetch(self):
        return fetch_page(
            self.url,
            timeout=self.config.request_timeout,
            user_agent=self.config.user_agent,
            render_js=self.render_js,
        )

    def start(self):
        page = self._fetch()
        self.document = PageDocument(page.html, page.final_url)
        self.watchdog = SEOWatchdog(self.document, self.config, storage=self.storage, client=self.client)
        baseline = self.watchdog.start()
        self.logger.info(
            f"[SESSION] Baseline for {baseline.page_url}: title={baseline.title!r} h1={baseline.h1!r} "
            f"robots={baseline.meta_robots!r} canonical={baseline.canonical!r} schema={baseline.schema_count}"
        )

    def refresh(self):
        try:
            page = self._fetch()
        except PageFetchError as e:
            # Keep the previous document; the next refresh tries again
            self.logger.warning(f"[SESSION] Refresh failed: {e}")
            return []
        self.document.replace_content(page.html, page.final_url)
        events = self.watchdog.reconcile()
        self.logger.info(f"[SESSION] Refreshed {page.final_url} in {page.fetch_time_ms}ms, {len(events)} change(s)")
        return events

    def run(self, iterations=None):
        count = 0
        try:
            self.start()
            while iterations is None or count < iterations:
                time.sleep(self.refresh_interval)
                self.refresh()
                count += 1
        except KeyboardInterrupt:
            self.logger.info("[SESSION] Interrupted")
        finally:
            if self.watchdog is not None:
                self.watchdog.stop()
            if self.render_js:
                # Playwright is only loaded for rendered sessions
                from page.js_renderer import shutdown
                shutdown()


def build_parser():
    parser = argparse.ArgumentParser(description="Watch a page for SEO regressions.")
    sub = parser.add_subparsers(dest="command", required=True)

    watch = sub.add_parser("watch", help="Monitor a URL until interrupted")
    watch.add_argument("url")
    watch.add_argument("--token", help="Site token (default: SEO_WATCHDOG_SITE_TOKEN)")
    watch.add_argument("--api-base", help="Backend base URL (default: SEO_WATCHDOG_API_BASE)")
    watch.add_argument("--interval", type=float, default=DEFAULT_REFRESH_INTERVAL, help="Seconds between page refreshes")
    watch.add_argument("--iterations", type=int, default=None, help="Stop after this many refreshes")
    watch.add_argument("--render-js", action="store_true", help="Render the page with Playwright")
    watch.add_argument("--db", default=str(DATA_DIR / "watchdog.db"), help="SQLite file for client storage")
    watch.add_argument("--no-db", action="store_true", help="Keep client storage in memory only")
    watch.add_argument("--log-file", default=None)
    watch.add_argument("--verbose", action="store_true")

    events = sub.add_parser("events", help="Print events buffered in client storage")
    events.add_argument("--token", help="Site token (default: SEO_WATCHDOG_SITE_TOKEN)")
    events.add_argument("--db", default=str(DATA_DIR / "watchdog.db"))
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    setup_logger(log_file=getattr(args, "log_file", None), level=level)
    logger = logging.getLogger("seo_watchdog")

    try:
        if args.command == "events":
            config = WatchdogConfig.from_env(site_token=args.token)
        else:
            # Every refresh replaces the document, so the reconciler reports field diffs
            config = WatchdogConfig.from_env(site_token=args.token, api_base_url=args.api_base, reconciler_mode="report")
    except ValueError as e:
        logger.error(f"CONFIG_ERROR: {e}")
        return 2

    if args.command == "events":
        for item in SQLiteStorage(args.db).get_json(config.events_key, []):
            print(f"{item['detected_at']}  {item['severity']:<8} {item['event_type']:<24} {item['page_url']}  {item['title']}")
        return 0

    storage = MemoryStorage() if args.no_db else SQLiteStorage(args.db)
    session = WatchSession(args.url, config, storage, refresh_interval=args.interval, render_js=args.render_js)
    try:
        session.run(iterations=args.iterations)
    except PageFetchError as e:
        logger.error(f"FETCH_ERROR: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

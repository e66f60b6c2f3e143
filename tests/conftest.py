"""
Shared test doubles for the watchdog tests.
"""

import sys
from pathlib import Path

# Make the seo-watchdog packages importable without installation
WATCHDOG_DIR = Path(__file__).resolve().parents[1] / "seo-watchdog"
if str(WATCHDOG_DIR) not in sys.path:
    sys.path.insert(0, str(WATCHDOG_DIR))

from monitor.config import WatchdogConfig  # noqa: E402
from storage.local import ClientStorage, MemoryStorage  # noqa: E402

PAGE_URL = "https://shop.example.com/"

PAGE_HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
    <title>Home</title>
    <meta name="description" content="Acme widgets for every workshop.">
    <meta name="robots" content="index, follow">
    <link rel="canonical" href="https://shop.example.com/">
    <link rel="alternate" hreflang="en" href="https://shop.example.com/">
    <link rel="alternate" hreflang="de" href="/de/">
    <meta property="og:title" content="Acme Widgets">
    <meta property="og:image" content="https://shop.example.com/og.png">
    <script type="application/ld+json">{"@context": "https://schema.org", "@type": "Organization", "name": "Acme"}</script>
    <script type="application/ld+json">{"@graph": [{"@type": "WebSite"}, {"@type": "BreadcrumbList"}]}</script>
</head>
<body>
    <h1>Welcome to <span>Acme</span></h1>
    <h2>Widgets</h2>
    <h2>Gadgets</h2>
    <p id="intro">Quality tools since 1952.</p>
</body>
</html>
"""

# Baseline with title "Home" and no meta robots at all
MINIMAL_HTML = """
<html>
<head><title>Home</title></head>
<body><h1>Hello</h1><p>Body copy</p></body>
</html>
"""


def inline_submit(fn, *args):
    """Runs 'background' work immediately so tests stay deterministic."""
    return fn(*args)


class ManualScheduler:
    """Collects delayed calls; tests run them explicitly."""

    def __init__(self):
        self.calls = []

    def call_later(self, delay, fn, *args):
        self.calls.append((delay, fn, args))

    def run_pending(self):
        calls, self.calls = self.calls, []
        for _, fn, args in calls:
            fn(*args)
        return len(calls)

    def cancel_all(self):
        self.calls.clear()

    @property
    def pending(self):
        return len(self.calls)


class FailingStorage(ClientStorage):
    """Storage that throws on every call (quota exceeded, private mode)."""

    def __init__(self):
        self.attempts = 0

    def get_item(self, key):
        self.attempts += 1
        raise OSError("storage disabled")

    def set_item(self, key, value):
        self.attempts += 1
        raise OSError("quota exceeded")

    def remove_item(self, key):
        self.attempts += 1
        raise OSError("storage disabled")


class FakeClient:
    """Stands in for WatchdogAPIClient; records every POSTed payload."""

    def __init__(self, issues=None, fail_send=False, fail_robots=False):
        self.issues = issues or []
        self.fail_send = fail_send
        self.fail_robots = fail_robots
        self.sent = []
        self.robots_calls = []

    def send_event(self, payload):
        if self.fail_send:
            raise ConnectionError("ingestion endpoint unreachable")
        self.sent.append(payload)

    def robots_issues(self, site_url):
        self.robots_calls.append(site_url)
        if self.fail_robots:
            raise ConnectionError("robots status endpoint unreachable")
        return list(self.issues)


def make_config(**overrides):
    values = {
        "site_token": "tok_123",
        "api_base_url": "https://app.example.io",
        "reconcile_interval": 3600,
        "recheck_delay": 1.0,
        "event_buffer_size": 50,
        "reconciler_mode": "resync",
        "compare_persisted_baseline": True,
    }
    values.update(overrides)
    return WatchdogConfig(**values)


def make_watchdog(html=PAGE_HTML, url=PAGE_URL, storage=None, client=None, **config_overrides):
    """Unstarted watchdog wired to deterministic doubles."""
    from monitor.core import SEOWatchdog
    from page.document import PageDocument

    document = PageDocument(html, url)
    scheduler = ManualScheduler()
    watchdog = SEOWatchdog(
        document,
        make_config(**config_overrides),
        storage=storage if storage is not None else MemoryStorage(),
        client=client or FakeClient(),
        scheduler=scheduler,
        submit=inline_submit,
    )
    return document, watchdog, scheduler


def event_types(events):
    return [event.event_type.value for event in events]

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Configuration for the SEO watchdog.
# The core components never read the environment; the host builds a
# WatchdogConfig (usually via from_env) and passes it in.

load_dotenv()

# Backend base URL and per-site token supplied by the embedding host
API_BASE_URL = os.getenv("SEO_WATCHDOG_API_BASE", "http://localhost:3000")
SITE_TOKEN = os.getenv("SEO_WATCHDOG_SITE_TOKEN", "")

# Backend routes
INGEST_PATH = "/api/tools/seo-alert"
ROBOTS_STATUS_PATH = "/api/gsc/robots-status"

# Timers (seconds)
RECONCILE_INTERVAL = float(os.getenv("RECONCILE_INTERVAL", 30))
RECHECK_DELAY = float(os.getenv("RECHECK_DELAY", 1.0))

# Local ring buffer of recent events
EVENT_BUFFER_SIZE = int(os.getenv("EVENT_BUFFER_SIZE", 50))

# Network timeout for HTTP requests (seconds)
REQUEST_TIMEOUT = 10

# User-Agent string for watchdog requests and event metadata
USER_AGENT = os.getenv("USER_AGENT", "SEOWatchdog/1.0")

# "resync" silently re-snapshots on drift, "report" emits field diffs first
RECONCILER_MODE = os.getenv("RECONCILER_MODE", "resync").lower()

COMPARE_PERSISTED_BASELINE = os.getenv("COMPARE_PERSISTED_BASELINE", "true").lower() in ("1", "true", "yes")

# Playwright / JS rendering waiting periods (seconds)
JS_GOTO_TIMEOUT = 25
JS_WAIT_TIMEOUT = 5
JS_STABILITY_TIME = 2

DATA_DIR = Path(os.getenv("DATA_DIR", Path(__file__).resolve().parents[1] / "data"))

RECONCILER_MODES = ("resync", "report")


@dataclass(frozen=True)
class WatchdogConfig:
    """Everything one watchdog instance needs from its host."""
    site_token: str
    api_base_url: str = API_BASE_URL
    reconcile_interval: float = RECONCILE_INTERVAL
    recheck_delay: float = RECHECK_DELAY
    event_buffer_size: int = EVENT_BUFFER_SIZE
    request_timeout: float = REQUEST_TIMEOUT
    user_agent: str = USER_AGENT
    reconciler_mode: str = RECONCILER_MODE
    compare_persisted_baseline: bool = COMPARE_PERSISTED_BASELINE

    def __post_init__(self):
        if not self.site_token:
            raise ValueError("site_token is required")
        if self.reconciler_mode not in RECONCILER_MODES:
            raise ValueError(f"Unknown reconciler mode: {self.reconciler_mode}")
        if self.event_buffer_size < 1:
            raise ValueError("event_buffer_size must be positive")

    @property
    def baseline_key(self) -> str:
        return f"seoagent_baseline_{self.site_token}"

    @property
    def events_key(self) -> str:
        return f"seoagent_events_{self.site_token}"

    @classmethod
    def from_env(cls, **overrides) -> "WatchdogConfig":
        """Build a config from the environment (.env honoured), overrides win."""
        values = {
            "site_token": os.getenv("SEO_WATCHDOG_SITE_TOKEN", SITE_TOKEN),
            "api_base_url": os.getenv("SEO_WATCHDOG_API_BASE", API_BASE_URL),
            "reconcile_interval": float(os.getenv("RECONCILE_INTERVAL", RECONCILE_INTERVAL)),
            "recheck_delay": float(os.getenv("RECHECK_DELAY", RECHECK_DELAY)),
            "event_buffer_size": int(os.getenv("EVENT_BUFFER_SIZE", EVENT_BUFFER_SIZE)),
            "user_agent": os.getenv("USER_AGENT", USER_AGENT),
            "reconciler_mode": os.getenv("RECONCILER_MODE", RECONCILER_MODE).lower(),
            "compare_persisted_baseline": os.getenv(
                "COMPARE_PERSISTED_BASELINE", str(COMPARE_PERSISTED_BASELINE)
            ).lower() in ("1", "true", "yes"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

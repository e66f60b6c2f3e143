from monitor.config import WatchdogConfig
from monitor.core import SEOWatchdog

__all__ = ["SEOWatchdog", "WatchdogConfig"]

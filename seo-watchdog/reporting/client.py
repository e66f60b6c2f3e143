"""
HTTP client for the watchdog's two backend endpoints:
- POST /api/tools/seo-alert      (event ingestion)
- GET  /api/gsc/robots-status    (robots.txt issues for a site)
"""

from typing import Any, Dict, List

import requests

from monitor.config import INGEST_PATH, REQUEST_TIMEOUT, ROBOTS_STATUS_PATH, USER_AGENT
from monitor.logger import get_logger

logger = get_logger("client")


class WatchdogAPIClient:

    def __init__(self, base_url, site_token, timeout=REQUEST_TIMEOUT, user_agent=USER_AGENT, session=None):
        self.base_url = base_url.rstrip("/")
        self.site_token = site_token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    @property
    def ingest_url(self) -> str:
        return f"{self.base_url}{INGEST_PATH}"

    @property
    def robots_status_url(self) -> str:
        return f"{self.base_url}{ROBOTS_STATUS_PATH}"

    def send_event(self, payload: Dict[str, Any]) -> requests.Response:
        """
        Single POST of one event. Any non-2xx status raises HTTPError;
        the response body is not used.
        """
        response = self.session.post(self.ingest_url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        return response

    def robots_issues(self, site_url: str) -> List[str]:
        """
        robots_txt_issues reported for site_url.
        A non-OK status or an unexpected body yields []; network errors raise.
        """
        response = self.session.get(
            self.robots_status_url,
            params={"userToken": self.site_token, "siteUrl": site_url},
            timeout=self.timeout,
        )
        if not response.ok:
            logger.debug(f"[CLIENT] robots-status returned HTTP {response.status_code} for {site_url}")
            return []

        try:
            data = response.json()
        except ValueError:
            logger.debug(f"[CLIENT] robots-status returned a non-JSON body for {site_url}")
            return []

        issues = data.get("robots_txt_issues") if isinstance(data, dict) else None
        if not isinstance(issues, list):
            return []
        return [str(issue) for issue in issues if issue]

    def close(self):
        self.session.close()

"""
HTTP fetching for the command-line host.
Loads a live page so it can be wrapped in a PageDocument.
Only HTML content is accepted.
"""

import time
from dataclasses import dataclass
from enum import Enum

import requests

from monitor.config import USER_AGENT, REQUEST_TIMEOUT
from monitor.logger import get_logger

logger = get_logger("fetcher")


class FetchFailure(Enum):
    TIMEOUT = "TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    NOT_HTML = "NOT_HTML"
    REQUEST_ERROR = "REQUEST_ERROR"
    RENDER_FAILED = "RENDER_FAILED"


class PageFetchError(Exception):
    def __init__(self, url, reason: FetchFailure, detail=""):
        self.url = url
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason.value} fetching {url}" + (f": {detail}" if detail else ""))


@dataclass(frozen=True)
class FetchedPage:
    html: str
    final_url: str
    status_code: int
    fetch_time_ms: int


def fetch_page(url, timeout=REQUEST_TIMEOUT, user_agent=USER_AGENT, render_js=False, session=None) -> FetchedPage:
    """
    Fetch a URL and classify the outcome.
    Returns FetchedPage on a 2xx HTML response, raises PageFetchError otherwise.
    """
    if render_js:
        return _render(url)

    http = session or requests
    start_time = time.time()

    try:
        r = http.get(
            url,
            timeout=timeout,
            headers={"User-Agent": user_agent},
            allow_redirects=True,
        )
    except requests.exceptions.Timeout:
        raise PageFetchError(url, FetchFailure.TIMEOUT)
    except requests.exceptions.ConnectionError as e:
        raise PageFetchError(url, FetchFailure.CONNECTION_ERROR, str(e)[:100])
    except requests.exceptions.RequestException as e:
        raise PageFetchError(url, FetchFailure.REQUEST_ERROR, str(e)[:100])

    fetch_time_ms = int((time.time() - start_time) * 1000)

    if not (200 <= r.status_code < 300):
        raise PageFetchError(url, FetchFailure.HTTP_ERROR, f"HTTP {r.status_code}")

    ct = r.headers.get("Content-Type", "").lower()
    if ct and "text/html" not in ct and "application/xhtml" not in ct:
        raise PageFetchError(url, FetchFailure.NOT_HTML, ct)

    logger.debug(f"[FETCH] {url} -> {r.status_code} in {fetch_time_ms}ms")
    return FetchedPage(html=r.text, final_url=r.url or url, status_code=r.status_code, fetch_time_ms=fetch_time_ms)


def _render(url) -> FetchedPage:
    # Playwright is only needed for JS-rendered pages
    from page.js_renderer import render_js_sync

    start_time = time.time()
    try:
        content, final_url = render_js_sync(url)
    except Exception as e:
        raise PageFetchError(url, FetchFailure.RENDER_FAILED, str(e)[:100])
    fetch_time_ms = int((time.time() - start_time) * 1000)
    return FetchedPage(html=content, final_url=final_url or url, status_code=200, fetch_time_ms=fetch_time_ms)

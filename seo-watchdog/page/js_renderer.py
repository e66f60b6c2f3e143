"""
Synchronous JS renderer using Playwright.
All Playwright calls run on one dedicated thread, so the watchdog's timer and
reconciler threads can request renders without greenlet/thread-switch errors.
"""

import queue
import threading

from playwright.sync_api import sync_playwright

from monitor.config import (
    JS_GOTO_TIMEOUT,
    JS_WAIT_TIMEOUT,
    JS_STABILITY_TIME,
    USER_AGENT,
)
from monitor.logger import get_logger

logger = get_logger("renderer")

_request_queue = queue.Queue()
_init_lock = threading.Lock()
_worker_thread = None


class RenderRequest:
    def __init__(self, url):
        self.url = url
        self.result_queue = queue.Queue()


class RenderResult:
    def __init__(self, content=None, final_url=None, error=None):
        self.content = content
        self.final_url = final_url
        self.error = error


def _render_loop():
    """Runs in the dedicated thread and owns the Playwright instance."""
    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(
                headless=True,
                args=[
                    "--disable-gpu",
                    "--no-sandbox",
                    "--disable-dev-shm-usage",
                ],
            )
            context = browser.new_context(user_agent=USER_AGENT)

            logger.info("[JS-RENDER] Dedicated render thread started.")

            while True:
                req = _request_queue.get()
                if req is None:
                    break

                page = context.new_page()
                try:
                    page.goto(req.url, wait_until="domcontentloaded", timeout=JS_GOTO_TIMEOUT * 1000)

                    # Wait for hydration; pages that never render a body still get returned
                    try:
                        page.wait_for_function(
                            "() => document.body && document.body.children.length > 0",
                            timeout=JS_WAIT_TIMEOUT * 1000,
                        )
                    except Exception:
                        logger.debug(f"[JS-RENDER] Hydration wait timed out for {req.url}")

                    if JS_STABILITY_TIME > 0:
                        page.wait_for_timeout(JS_STABILITY_TIME * 1000)

                    req.result_queue.put(RenderResult(page.content(), page.url))
                except Exception as e:
                    req.result_queue.put(RenderResult(error=e))
                finally:
                    page.close()

            browser.close()

    except Exception as e:
        logger.critical(f"[JS-RENDER] Fatal thread error: {e}")
        # Unblock anyone still waiting
        while not _request_queue.empty():
            pending = _request_queue.get_nowait()
            if pending is not None:
                pending.result_queue.put(RenderResult(error=e))


def _ensure_worker_running():
    global _worker_thread
    if _worker_thread and _worker_thread.is_alive():
        return

    with _init_lock:
        if _worker_thread and _worker_thread.is_alive():
            return

        _worker_thread = threading.Thread(target=_render_loop, daemon=True, name="RenderWorker")
        _worker_thread.start()


def render_js_sync(url: str) -> tuple:
    """Render url in the dedicated thread; blocks until done. Returns (html, final_url)."""
    _ensure_worker_running()

    req = RenderRequest(url)
    _request_queue.put(req)

    result = req.result_queue.get()

    if result.error:
        raise result.error

    return result.content, result.final_url


def shutdown():
    """Stop the render thread if it was started."""
    if _worker_thread and _worker_thread.is_alive():
        _request_queue.put(None)

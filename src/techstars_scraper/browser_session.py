"""
Browser session - the small surface the pipeline drives a browser through
PlaywrightSession owns one chromium page for exactly one scrape run
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Protocol

from playwright.sync_api import Browser, BrowserContext, Page, Playwright, sync_playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from .dom import Node, PlaywrightNode
from .errors import BrowserSessionError

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
]


class BrowserSession(Protocol):
    def goto(self, url: str) -> bool: ...

    def current_url(self) -> str: ...

    def document(self) -> Optional[Node]: ...

    def query_all(self, selector: str) -> List[Node]: ...

    def scroll_to_bottom(self) -> None: ...

    def click(self, node: Node) -> bool: ...

    def wait(self, seconds: float) -> None: ...

    def close(self) -> None: ...


class PlaywrightSession:
    """Chromium via the Playwright sync API; use as a context manager"""

    def __init__(self, config):
        self.config = config
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    def __enter__(self) -> "PlaywrightSession":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _apply_stealth(self, page: Page) -> None:
        if not self.config.use_stealth():
            return
        try:
            from playwright_stealth.stealth import Stealth
            Stealth().apply_stealth_sync(page)
            logger.debug("Playwright-stealth applied to page")
        except Exception as exc:
            logger.warning("Failed to apply playwright-stealth: %s", exc)

    def start(self) -> None:
        """Launch chromium and open one page"""
        width, height = self.config.get_window_size()
        try:
            self.playwright = sync_playwright().start()
            self.browser = self.playwright.chromium.launch(
                headless=self.config.is_headless(),
                args=BROWSER_ARGS,
            )
            self.context = self.browser.new_context(
                viewport={"width": width, "height": height},
                user_agent=self.config.get_browser_user_agent(),
                locale="en-US",
            )
            self.page = self.context.new_page()
        except Exception as exc:
            logger.error("Browser start failed: %s", exc)
            self.close()
            raise BrowserSessionError(f"Failed to start browser: {exc}") from exc

        self.page.set_default_timeout(self.config.get_page_timeout())
        self.page.set_default_navigation_timeout(self.config.get_navigation_timeout())
        self._apply_stealth(self.page)
        logger.info("Browser started (headless=%s, stealth=%s)", self.config.is_headless(), self.config.use_stealth())

    def goto(self, url: str) -> bool:
        """Navigate; a load timeout after commit still counts as navigated"""
        try:
            self.page.goto(url, wait_until="domcontentloaded")
        except PlaywrightTimeoutError:
            if self.page.url and self.page.url != "about:blank":
                logger.warning("Page not fully loaded within timeout, continuing: %s", url)
            else:
                logger.warning("Navigation timed out: %s", url)
                return False
        except Exception as exc:
            logger.warning("Navigation failed for %s: %s", url, exc)
            return False

        try:
            self.page.wait_for_load_state("networkidle", timeout=self.config.get_page_timeout())
        except PlaywrightTimeoutError:
            logger.debug("Network did not go idle, continuing with current state")
        self.wait(self.config.get_page_load_delay())
        return True

    def current_url(self) -> str:
        return self.page.url if self.page else ""

    def document(self) -> Optional[Node]:
        handle = self.page.query_selector("html")
        if handle is None:
            return None
        return PlaywrightNode(handle, self.current_url())

    def query_all(self, selector: str) -> List[Node]:
        base_url = self.current_url()
        return [PlaywrightNode(el, base_url) for el in self.page.query_selector_all(selector)]

    def scroll_to_bottom(self) -> None:
        self.page.evaluate("window.scrollTo(0, document.body.scrollHeight)")

    def click(self, node: Node) -> bool:
        handle = getattr(node, "handle", None)
        if handle is None:
            return False
        try:
            handle.scroll_into_view_if_needed()
            handle.click()
            return True
        except Exception as exc:
            logger.debug("Native click failed, trying script click: %s", exc)
        try:
            handle.evaluate("el => el.click()")
            return True
        except Exception as exc:
            logger.warning("Click failed: %s", exc)
            return False

    def wait(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def close(self) -> None:
        """Release page, context, browser and driver; safe to call twice"""
        try:
            if self.page:
                self.page.close()
        except Exception:
            logger.debug("Page close failed", exc_info=True)
        try:
            if self.context:
                self.context.close()
        except Exception:
            logger.debug("Browser context close failed", exc_info=True)
        try:
            if self.browser:
                self.browser.close()
        except Exception:
            logger.debug("Browser close failed", exc_info=True)
        try:
            if self.playwright:
                self.playwright.stop()
        except Exception:
            logger.debug("Playwright stop failed", exc_info=True)
        if self.playwright:
            logger.info("Browser closed")
        self.page = self.context = self.browser = self.playwright = None

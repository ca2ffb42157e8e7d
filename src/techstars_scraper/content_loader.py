"""
Content loader - gets more cards onto the page and knows when to stop
Paged mode walks ?page=N over static HTML; scroll mode drives a browser
session through one load-more click and a bounded scroll loop
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .dom import Node
from .filter_url import with_page
from .selector_tables import SelectorTables

logger = logging.getLogger(__name__)

STABLE_PAGES_LIMIT = 2


def _cancelled(event: Optional[threading.Event]) -> bool:
    return event is not None and event.is_set()


@dataclass
class LoadStats:
    """What a loader run did and why it stopped"""

    attempts: int = 0
    final_count: int = 0
    clicked_load_more: bool = False
    stopped_by: str = ""


class PagedLoader:
    """
    Static pagination over `url&page=N`.

    `harvest(html, page_url)` parses one page and returns how many new unique
    results it contributed. Two consecutive pages with nothing new, or a failed
    fetch, end the walk; the un-paginated URL is then fetched once more.
    """

    def __init__(
        self,
        fetch: Callable[[str], Optional[str]],
        delay: float = 0.5,
        max_pages: int = 0,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.fetch = fetch
        self.delay = delay
        self.max_pages = max_pages
        self.sleep = sleep
        self.cancel_event = cancel_event

    def run(self, url: str, harvest: Callable[[str, str], int]) -> LoadStats:
        stats = LoadStats()
        stable_rounds = 0
        page = 1

        while True:
            if _cancelled(self.cancel_event):
                stats.stopped_by = "cancelled"
                break
            if self.max_pages > 0 and page > self.max_pages:
                stats.stopped_by = "max-pages"
                break
            if page > 1:
                self.sleep(self.delay)

            page_url = with_page(url, page)
            stats.attempts += 1
            html = self.fetch(page_url)
            if html is None:
                logger.warning("Stopping pagination: fetch failed for page %d", page)
                stats.stopped_by = "fetch-failed"
                break

            added = harvest(html, page_url)
            stats.final_count += added
            if added > 0:
                stable_rounds = 0
            else:
                stable_rounds += 1
            logger.info("📄 Page %d: %d new result(s), stable rounds=%d", page, added, stable_rounds)

            if stable_rounds >= STABLE_PAGES_LIMIT:
                stats.stopped_by = "stable"
                break
            page += 1

        if not _cancelled(self.cancel_event):
            self.sleep(self.delay)
            stats.attempts += 1
            html = self.fetch(url)
            if html is None:
                logger.warning("Base listing fetch failed: %s", url)
            else:
                added = harvest(html, url)
                stats.final_count += added
                logger.info("📄 Base page: %d new result(s)", added)

        return stats


class ScrollLoader:
    """Load-more click plus bounded infinite scroll on a browser session"""

    def __init__(
        self,
        selectors: SelectorTables = None,
        max_attempts: int = 8,
        max_no_growth: int = 2,
        delay: float = 1.0,
        load_more_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.selectors = selectors or SelectorTables()
        self.max_attempts = max_attempts
        self.max_no_growth = max_no_growth
        self.delay = delay
        self.load_more_delay = load_more_delay
        self.sleep = sleep
        self.cancel_event = cancel_event

    def _usable(self, node: Node) -> bool:
        try:
            return node.is_visible() and node.is_enabled()
        except Exception:
            return False

    def _suggests_more(self, node: Node) -> bool:
        terms = [t.lower() for t in self.selectors.load_more_texts]
        haystack = " ".join(
            value
            for value in (node.text(), node.attr("aria-label"), node.attr("data-testid"), node.attr("class"))
            if value
        ).lower()
        return any(term in haystack for term in terms)

    def find_load_more(self, session) -> Optional[Node]:
        for selector in self.selectors.load_more:
            try:
                candidates = session.query_all(selector)
            except Exception as exc:
                logger.debug("Load more selector failed '%s': %s", selector, exc)
                continue
            for node in candidates:
                if self._usable(node):
                    logger.info("✅ Load More control found with selector: %s", selector)
                    return node

        try:
            clickables = session.query_all(self.selectors.clickable)
        except Exception as exc:
            logger.debug("Clickable scan failed: %s", exc)
            return None
        for node in clickables:
            try:
                if self._usable(node) and self._suggests_more(node):
                    logger.info("✅ Load More control found by text")
                    return node
            except Exception:
                continue
        return None

    def click_load_more(self, session) -> bool:
        """One load-more interaction; a missing control is not an error"""
        try:
            control = self.find_load_more(session)
            if control is None:
                logger.info("ℹ️ Load More control not found, skipping")
                return False
            if not session.click(control):
                return False
        except Exception as exc:
            logger.warning("⚠️ Error clicking Load More: %s", exc)
            return False
        self.sleep(self.load_more_delay)
        return True

    def scroll(self, session, count_cards: Callable[[], int], stats: LoadStats) -> LoadStats:
        try:
            previous = count_cards()
        except Exception as exc:
            logger.warning("⚠️ Initial card count failed: %s", exc)
            previous = 0
        no_growth = 0

        while True:
            if stats.attempts >= self.max_attempts:
                stats.stopped_by = "max-attempts"
                break
            if no_growth >= self.max_no_growth:
                stats.stopped_by = "no-growth"
                break
            if _cancelled(self.cancel_event):
                stats.stopped_by = "cancelled"
                break

            stats.attempts += 1
            try:
                session.scroll_to_bottom()
                self.sleep(self.delay)
                current = count_cards()
            except Exception as exc:
                logger.warning("⚠️ Error during scroll attempt %d: %s", stats.attempts, exc)
                no_growth += 1
                continue

            if current > previous:
                logger.info("🔄 Jobs loaded: %d -> %d (attempt %d)", previous, current, stats.attempts)
                previous = current
                no_growth = 0
            else:
                no_growth += 1

        stats.final_count = previous
        logger.info("✅ Scroll completed. Attempts: %d, final count: %d (%s)", stats.attempts, previous, stats.stopped_by)
        return stats

    def load(self, session, count_cards: Callable[[], int]) -> LoadStats:
        """Hybrid load: one load-more click, then the scroll loop"""
        stats = LoadStats()
        if not _cancelled(self.cancel_event):
            stats.clicked_load_more = self.click_load_more(session)
        return self.scroll(session, count_cards, stats)

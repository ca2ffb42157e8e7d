"""
Card locator - multi-strategy discovery of job cards on a page
Strategies run from most specific to most generic; first valid set wins
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from .card_validator import CardValidator
from .dom import Node, Queryable
from .selector_tables import SelectorTables

logger = logging.getLogger(__name__)


class CardLocator:
    """Finds validated card handles on a listing or company page"""

    def __init__(self, selectors: SelectorTables = None, validator: CardValidator = None):
        self.selectors = selectors or SelectorTables()
        self.validator = validator or CardValidator()

    def _strategies(self) -> List[Tuple[str, Sequence[str]]]:
        tables = self.selectors
        return [
            ("primary", [tables.card_primary]),
            ("secondary", tables.card_secondary),
            ("data-attribute", tables.card_data_attribute),
            ("class-name", tables.card_class_name),
        ]

    def _try_selector(self, page: Queryable, selector: str) -> List[Node]:
        try:
            raw = page.query_all(selector)
        except Exception as exc:
            logger.debug("Selector failed '%s': %s", selector, exc)
            return []
        if not raw:
            return []
        valid = self.validator.filter_valid(raw)
        if not valid:
            logger.debug("Selector '%s' matched %d element(s), none valid", selector, len(raw))
        return valid

    def _run(self, page: Queryable, strategies: List[Tuple[str, Sequence[str]]]) -> List[Node]:
        for name, selectors in strategies:
            for selector in selectors:
                cards = self._try_selector(page, selector)
                if cards:
                    logger.debug("Found %d card(s) via %s selector: %s", len(cards), name, selector)
                    return cards
        return []

    def locate(self, page: Queryable) -> List[Node]:
        """Validated cards on a main listing page; empty when nothing qualifies"""
        cards = self._run(page, self._strategies())
        if not cards:
            logger.info("No job cards found on this page")
        return cards

    def locate_on_detail_listing(self, page: Queryable) -> List[Node]:
        """Company page variant; falls back to the main listing strategies"""
        cards = self._run(page, [("company", self.selectors.company_cards)])
        if cards:
            return cards
        logger.debug("No company job cards found, trying listing strategies")
        return self.locate(page)

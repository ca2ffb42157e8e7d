"""
Card validator - tells genuine job cards apart from navigation chrome
Precision over recall: a posting without any job-signal term is dropped
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Sequence

from .dom import Node

logger = logging.getLogger(__name__)

DEFAULT_DENYLIST = [
    "search",
    "explore",
    "job alerts",
    "more filters",
    "powered by",
    "talent network",
    "sign in",
    "log in",
    "privacy policy",
]

DEFAULT_ALLOWLIST = [
    "engineer",
    "engineering",
    "developer",
    "designer",
    "design",
    "manager",
    "analyst",
    "director",
    "lead",
    "head of",
    "senior",
    "junior",
    "intern",
    "principal",
    "staff",
    "specialist",
    "coordinator",
    "associate",
    "architect",
    "scientist",
    "consultant",
    "representative",
    "full-time",
    "full time",
    "part-time",
    "contract",
    "internship",
]

DEFAULT_LINK_SELECTORS = ["a[href*='/jobs/']", "a[href*='/companies/']"]
DEFAULT_MIN_TEXT_LENGTH = 50


def _term_pattern(terms: Iterable[str]) -> Optional[re.Pattern]:
    cleaned = [t.strip().lower() for t in terms if t and t.strip()]
    if not cleaned:
        return None
    alternation = "|".join(re.escape(t) for t in sorted(cleaned, key=len, reverse=True))
    # Whole words only, so "research" or "explorer" do not count as "search" or "explore"
    return re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)


class CardValidator:
    """Single allowlist/denylist classifier for candidate card elements"""

    def __init__(
        self,
        denylist: Optional[Sequence[str]] = None,
        allowlist: Optional[Sequence[str]] = None,
        min_text_length: int = DEFAULT_MIN_TEXT_LENGTH,
        link_selectors: Optional[Sequence[str]] = None,
    ):
        self.denylist = list(DEFAULT_DENYLIST if denylist is None else denylist)
        self.allowlist = list(DEFAULT_ALLOWLIST if allowlist is None else allowlist)
        self.min_text_length = int(min_text_length)
        self.link_selectors = list(link_selectors or DEFAULT_LINK_SELECTORS)
        self._deny = _term_pattern(self.denylist)
        self._allow = _term_pattern(self.allowlist)

    def _has_job_link(self, element: Node) -> bool:
        for selector in self.link_selectors:
            for link in element.query_all(selector):
                if (link.attr("href") or "").strip():
                    return True
        return False

    def rejection_reason(self, element: Node) -> Optional[str]:
        """Return why `element` is not a card, or None when it is one"""
        text = element.text() or ""
        if self._deny and self._deny.search(text):
            return "navigation"
        if not self._has_job_link(element):
            return "no-job-link"
        if not self._allow or not self._allow.search(text):
            return "no-job-signal"
        if len(text.strip()) < self.min_text_length:
            return "too-short"
        return None

    def is_valid_card(self, element: Node) -> bool:
        try:
            reason = self.rejection_reason(element)
        except Exception as exc:
            logger.debug("Card validation failed, treating as invalid: %s", exc)
            return False
        if reason:
            logger.debug("Rejected candidate card (%s)", reason)
            return False
        return True

    def filter_valid(self, elements: Iterable[Node]) -> List[Node]:
        return [element for element in elements if self.is_valid_card(element)]

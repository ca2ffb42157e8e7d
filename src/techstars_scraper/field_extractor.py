"""
Field extractor - per-field fallback chains over a card or detail page
Every strategy is a plain function `(node) -> value or None`; `first_present`
runs a chain and the first non-empty value wins. Failures never escape.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from .dom import Node
from .selector_tables import SelectorTables

logger = logging.getLogger(__name__)

UNKNOWN_POSITION = "Unknown Position"
DESCRIPTION_MAX_LENGTH = 500
DETAIL_DESCRIPTION_MAX_LENGTH = 1000
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

Strategy = Callable[[Node], Optional[object]]


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = " ".join(str(value).split())
    return value or None


def _is_present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple)):
        return bool(value)
    return True


def first_present(source: Node, strategies: Sequence[Strategy], field_name: str = "field"):
    """Run strategies in order; a raising strategy counts as a miss"""
    for strategy in strategies:
        try:
            value = strategy(source)
        except Exception as exc:
            logger.debug("%s strategy %s failed: %s", field_name, getattr(strategy, "__name__", strategy), exc)
            continue
        if _is_present(value):
            return value
    logger.debug("No %s found", field_name)
    return None


def _safe_query(source: Node, selector: str) -> Optional[Node]:
    try:
        return source.query(selector)
    except Exception as exc:
        logger.debug("Query failed '%s': %s", selector, exc)
        return None


def _safe_query_all(source: Node, selector: str) -> List[Node]:
    try:
        return source.query_all(selector)
    except Exception as exc:
        logger.debug("Query failed '%s': %s", selector, exc)
        return []


def _content_then_text(element: Optional[Node]) -> Optional[str]:
    """Prefer an explicit content attribute over rendered text"""
    if element is None:
        return None
    return _clean(element.attr("content")) or _clean(element.text())


def parse_posted_date(raw: Optional[str]) -> Optional[int]:
    """Strict YYYY-MM-DD to UTC epoch seconds; anything else is None"""
    value = (raw or "").strip()
    if not value:
        return None
    if not DATE_PATTERN.match(value):
        logger.warning("Unparseable posted date (expected YYYY-MM-DD): %r", value)
        return None
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        logger.warning("Invalid posted date: %r", value)
        return None
    return int(parsed.timestamp())


@dataclass
class ExtractedFields:
    """Raw field set for one card or detail page"""

    title: str = UNKNOWN_POSITION
    company: Optional[str] = None
    location: Optional[str] = None
    posted_at: Optional[int] = None
    logo_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    description: Optional[str] = None
    apply_url: Optional[str] = None
    organization_url: Optional[str] = None
    text: str = ""


class FieldExtractor:
    """One extract_* operation per field, each returning None instead of raising"""

    def __init__(self, selectors: SelectorTables = None, source_domain: str = "jobs.techstars.com"):
        self.selectors = selectors or SelectorTables()
        self.source_domain = source_domain

    # === Title ===

    def _title_semantic(self, source: Node) -> Optional[str]:
        return self._semantic(source, self.selectors.title_semantic)

    def _title_testid(self, source: Node) -> Optional[str]:
        for selector in self.selectors.title_testid:
            element = _safe_query(source, selector)
            if element is not None and _clean(element.text()):
                return _clean(element.text())
        return None

    def _title_heading(self, source: Node) -> Optional[str]:
        for selector in self.selectors.headings:
            for heading in _safe_query_all(source, selector):
                text = _clean(heading.text())
                if text and len(text) > 3:
                    return text
        return None

    def extract_title(self, source: Node) -> str:
        title = first_present(
            source,
            [self._title_semantic, self._title_testid, self._title_heading],
            "title",
        )
        return title or UNKNOWN_POSITION

    # === Company / location ===

    def _semantic(self, source: Node, selectors: Sequence[str]) -> Optional[str]:
        """First non-blank match across every element of every selector"""
        for selector in selectors:
            for element in _safe_query_all(source, selector):
                value = _content_then_text(element)
                if value:
                    return value
        return None

    def extract_company(self, source: Node) -> Optional[str]:
        return first_present(source, [lambda s: self._semantic(s, self.selectors.company)], "company")

    def extract_location(self, source: Node) -> Optional[str]:
        return first_present(source, [lambda s: self._semantic(s, self.selectors.location)], "location")

    # === Posted date ===

    def _raw_posted_date(self, source: Node) -> Optional[str]:
        for selector in self.selectors.posted_date:
            element = _safe_query(source, selector)
            if element is None:
                continue
            raw = _clean(element.attr("content")) or _clean(element.attr("datetime"))
            if raw:
                return raw
        return None

    def extract_posted_at(self, source: Node) -> Optional[int]:
        raw = first_present(source, [self._raw_posted_date], "posted date")
        return parse_posted_date(raw)

    # === Logo ===

    def _logo_by_alt(self, source: Node) -> Optional[str]:
        terms = [t.lower() for t in self.selectors.logo_alt_terms]
        for image in _safe_query_all(source, self.selectors.logo_images):
            alt = (image.attr("alt") or "").lower()
            if any(term in alt for term in terms):
                src = _clean(image.attr("src"))
                if src:
                    return src
        return None

    def _logo_by_testid(self, source: Node) -> Optional[str]:
        for selector in self.selectors.logo_fallback:
            element = _safe_query(source, selector)
            if element is not None and _clean(element.attr("src")):
                return _clean(element.attr("src"))
        return None

    def extract_logo_url(self, source: Node) -> Optional[str]:
        return first_present(source, [self._logo_by_alt, self._logo_by_testid], "logo")

    # === Tags ===

    def extract_tags(self, source: Node) -> List[str]:
        tags: List[str] = []
        for selector in self.selectors.tags:
            for element in _safe_query_all(source, selector):
                try:
                    text = _clean(element.text())
                except Exception as exc:
                    logger.debug("Tag text failed: %s", exc)
                    continue
                if text and text not in tags:
                    tags.append(text)
        return tags

    # === Description ===

    @staticmethod
    def _looks_like_description(value: Optional[str], max_length: int) -> bool:
        if not value:
            return False
        if len(value) >= max_length:
            return False
        return " at " not in value and " - " not in value

    def _description_from_containers(self, source: Node, max_length: int) -> Optional[str]:
        for selector in self.selectors.description:
            for element in _safe_query_all(source, selector):
                for value in (_clean(element.text()), _clean(element.attr("content"))):
                    if self._looks_like_description(value, max_length):
                        return value
        return None

    def _description_from_meta(self, source: Node) -> Optional[str]:
        for selector in self.selectors.description_meta:
            element = _safe_query(source, selector)
            if element is not None and _clean(element.attr("content")):
                return _clean(element.attr("content"))
        return None

    def _career_page(self, source: Node) -> Optional[str]:
        for selector in self.selectors.career_page:
            element = _safe_query(source, selector)
            if element is not None and _clean(element.text()):
                return _clean(element.text())
        return None

    def extract_description(self, source: Node, detail: bool = False) -> Optional[str]:
        if detail:
            strategies = [
                self._career_page,
                lambda s: self._description_from_containers(s, DETAIL_DESCRIPTION_MAX_LENGTH),
                self._description_from_meta,
            ]
        else:
            strategies = [
                lambda s: self._description_from_containers(s, DESCRIPTION_MAX_LENGTH),
                self._description_from_meta,
            ]
        return first_present(source, strategies, "description")

    # === Apply / detail URL ===

    def _apply_by_testid(self, card: Node) -> Optional[str]:
        for selector in self.selectors.apply_link:
            element = _safe_query(card, selector)
            if element is not None and _clean(element.attr("href")):
                return _clean(element.attr("href"))
        return None

    def _apply_by_parent(self, card: Node) -> Optional[str]:
        parent = card.parent()
        if parent is not None and parent.tag_name() == "a":
            return _clean(parent.attr("href"))
        return None

    def _apply_by_domain(self, card: Node) -> Optional[str]:
        for link in _safe_query_all(card, "a[href]"):
            href = _clean(link.attr("href"))
            if href and self.source_domain in href:
                return href
        return None

    def _apply_by_class(self, card: Node) -> Optional[str]:
        for term in self.selectors.link_class_terms:
            element = _safe_query(card, f"a[class*='{term}'][href]")
            if element is not None and _clean(element.attr("href")):
                return _clean(element.attr("href"))
        return None

    def extract_apply_url(self, card: Node) -> Optional[str]:
        return first_present(
            card,
            [self._apply_by_testid, self._apply_by_parent, self._apply_by_domain, self._apply_by_class],
            "apply URL",
        )

    def extract_organization_url(self, source: Node) -> Optional[str]:
        def by_org_link(node: Node) -> Optional[str]:
            for selector in self.selectors.org_link:
                element = _safe_query(node, selector)
                if element is not None and _clean(element.attr("href")):
                    return _clean(element.attr("href"))
            return None

        return first_present(source, [by_org_link], "organization URL")

    # === Whole card ===

    def extract_fields(self, source: Node, detail: bool = False) -> ExtractedFields:
        """Run every chain; the result always exists, fields may be absent"""
        try:
            text = source.text() or ""
        except Exception as exc:
            logger.debug("Card text failed: %s", exc)
            text = ""

        fields = ExtractedFields(
            title=self.extract_title(source),
            company=self.extract_company(source),
            location=self.extract_location(source),
            posted_at=self.extract_posted_at(source),
            logo_url=self.extract_logo_url(source),
            tags=self.extract_tags(source),
            description=self.extract_description(source, detail=detail),
            apply_url=None if detail else self.extract_apply_url(source),
            organization_url=self.extract_organization_url(source),
            text=text,
        )
        if fields.description and fields.description == fields.title:
            fields.description = None
        return fields

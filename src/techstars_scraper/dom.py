"""
DOM adapters - one read-only element interface over BeautifulSoup and Playwright
Cards, pages and detail documents are all handled through `Node`
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

URL_ATTRIBUTES = ("href", "src")


class Node(Protocol):
    """Read-only handle to one DOM element"""

    def text(self) -> str: ...

    def attr(self, name: str) -> Optional[str]: ...

    def tag_name(self) -> str: ...

    def parent(self) -> Optional["Node"]: ...

    def query(self, selector: str) -> Optional["Node"]: ...

    def query_all(self, selector: str) -> List["Node"]: ...

    def is_visible(self) -> bool: ...

    def is_enabled(self) -> bool: ...


class Queryable(Protocol):
    def query_all(self, selector: str) -> List[Node]: ...


def _resolve(name: str, value: Optional[str], base_url: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if name in URL_ATTRIBUTES and value and base_url:
        return urljoin(base_url, value)
    return value


class SoupNode:
    """Node backed by a BeautifulSoup tag (static HTML)"""

    def __init__(self, tag: Tag, base_url: Optional[str] = None):
        self.tag = tag
        self.base_url = base_url

    def _wrap(self, tag: Optional[Tag]) -> Optional["SoupNode"]:
        if tag is None:
            return None
        return SoupNode(tag, self.base_url)

    def text(self) -> str:
        return " ".join(self.tag.get_text(" ", strip=True).split())

    def attr(self, name: str) -> Optional[str]:
        value = self.tag.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        return _resolve(name, value, self.base_url)

    def tag_name(self) -> str:
        return (self.tag.name or "").lower()

    def parent(self) -> Optional["SoupNode"]:
        parent = self.tag.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return None
        return self._wrap(parent)

    def query(self, selector: str) -> Optional["SoupNode"]:
        return self._wrap(self.tag.select_one(selector))

    def query_all(self, selector: str) -> List["SoupNode"]:
        return [SoupNode(tag, self.base_url) for tag in self.tag.select(selector)]

    def is_visible(self) -> bool:
        style = (self.attr("style") or "").replace(" ", "").lower()
        if "display:none" in style or "visibility:hidden" in style:
            return False
        if self.tag.has_attr("hidden"):
            return False
        return (self.attr("aria-hidden") or "").lower() != "true"

    def is_enabled(self) -> bool:
        if self.tag.has_attr("disabled"):
            return False
        return (self.attr("aria-disabled") or "").lower() not in ("true", "disabled")

    def __repr__(self) -> str:
        return f"<SoupNode {self.tag_name()}>"


def parse_html(html: str, base_url: Optional[str] = None) -> SoupNode:
    """Parse a full HTML document into a queryable root node"""
    return SoupNode(BeautifulSoup(html or "", "html.parser"), base_url)


class PlaywrightNode:
    """Node backed by a Playwright ElementHandle (live browser page)"""

    def __init__(self, handle, base_url: Optional[str] = None):
        self.handle = handle
        self.base_url = base_url

    def text(self) -> str:
        try:
            text = (self.handle.inner_text() or "").strip()
        except Exception:
            text = ""
        if not text:
            try:
                text = (self.handle.text_content() or "").strip()
            except Exception:
                text = ""
        return text

    def attr(self, name: str) -> Optional[str]:
        return _resolve(name, self.handle.get_attribute(name), self.base_url)

    def tag_name(self) -> str:
        return (self.handle.evaluate("el => el.tagName") or "").lower()

    def parent(self) -> Optional["PlaywrightNode"]:
        element = self.handle.evaluate_handle("el => el.parentElement").as_element()
        if element is None:
            return None
        return PlaywrightNode(element, self.base_url)

    def query(self, selector: str) -> Optional["PlaywrightNode"]:
        element = self.handle.query_selector(selector)
        if element is None:
            return None
        return PlaywrightNode(element, self.base_url)

    def query_all(self, selector: str) -> List["PlaywrightNode"]:
        return [PlaywrightNode(el, self.base_url) for el in self.handle.query_selector_all(selector)]

    def is_visible(self) -> bool:
        return bool(self.handle.is_visible())

    def is_enabled(self) -> bool:
        return bool(self.handle.is_enabled())

    def __repr__(self) -> str:
        return "<PlaywrightNode>"

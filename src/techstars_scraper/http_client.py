"""
HTTP client - plain page fetches for the static acquisition mode
No retry adapter: a failed fetch ends the page walk instead
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)


class HttpClient:
    """Shared requests session with a fixed User-Agent and timeout"""

    def __init__(self, timeout: float = 30.0, user_agent: str = DEFAULT_USER_AGENT):
        self.timeout = float(timeout)
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        })

    @classmethod
    def from_config(cls, config) -> "HttpClient":
        return cls(timeout=config.get_http_timeout(), user_agent=config.get_http_user_agent())

    def fetch_html(self, url: str) -> Optional[str]:
        """GET `url`; None on network error, non-2xx status or unreadable body"""
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Request failed for %s: %s", url, exc)
            return None

        if not resp.ok:
            logger.warning("HTTP %s for %s", resp.status_code, url)
            return None

        if not resp.encoding and resp.apparent_encoding:
            resp.encoding = resp.apparent_encoding
        try:
            text = resp.text
        except (UnicodeDecodeError, LookupError) as exc:
            logger.warning("Unreadable body from %s: %s", url, exc)
            return None
        if not text:
            logger.warning("Empty body from %s", url)
            return None
        return text

    def close(self) -> None:
        try:
            self.session.close()
        except Exception:
            logger.debug("HttpClient.close() failed", exc_info=True)

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

"""
Filter URL builder - encodes job-function filters into listing URLs
The board reads `filter=<base64url(json)>` and `page=<n>` query parameters
"""

from __future__ import annotations

import base64
import json
from typing import Iterable, List
from urllib.parse import parse_qs, urlparse

from .errors import FilterEncodingError


def _join_param(url: str, param: str) -> str:
    return url + ("&" if "?" in url else "?") + param


def encode_filter(job_functions: Iterable[str]) -> str:
    """Canonical JSON of {job_functions: [...]}, URL-safe base64 without padding"""
    names: List[str] = [str(getattr(f, "value", f)) for f in job_functions]
    try:
        payload = json.dumps({"job_functions": names}, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise FilterEncodingError(f"Couldn't build filter payload for {names!r}") from exc
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def decode_filter(encoded: str) -> dict:
    padding = "=" * (-len(encoded) % 4)
    return json.loads(base64.urlsafe_b64decode(encoded + padding).decode("utf-8"))


def build_filter_url(base_url: str, job_functions: Iterable[str]) -> str:
    """Append the encoded filter to base_url; unchanged when no functions given"""
    functions = list(job_functions or [])
    if not functions:
        return base_url
    return _join_param(base_url, f"filter={encode_filter(functions)}")


def with_page(url: str, page: int) -> str:
    return _join_param(url, f"page={int(page)}")


def filter_from_url(url: str) -> dict:
    """Decode the filter parameter of a listing URL (empty dict when absent)"""
    values = parse_qs(urlparse(url).query).get("filter")
    if not values:
        return {}
    return decode_filter(values[0])

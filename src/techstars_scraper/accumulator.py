"""
Result accumulator - URL dedupe, job-function/tag filters and run counters
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .models import JobPosting
from .run_metrics import RunMetrics

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_PREFIX = "https://jobs.techstars.com/companies/"


def normalize_url(url: Optional[str]) -> str:
    """Dedupe key: trimmed, without fragment or trailing slash"""
    value = (url or "").strip()
    value = value.split("#", 1)[0]
    return value.rstrip("/")


def _function_variants(name: str) -> List[str]:
    lowered = name.strip().lower()
    variants = [lowered, lowered.replace(" ", ""), lowered.replace(" ", "-")]
    return list(dict.fromkeys(v for v in variants if v))


class ResultAccumulator:
    """
    Collects postings and apply URLs for one run.

    Insertion order is preserved and the first occurrence of a URL wins.
    A URL under `required_prefix` skips tag filtering; job-function matching
    applies to every card.
    """

    def __init__(
        self,
        job_functions: Iterable[str] = (),
        required_tags: Iterable[str] = (),
        required_prefix: str = DEFAULT_REQUIRED_PREFIX,
        metrics: Optional[RunMetrics] = None,
    ):
        self.job_functions = [str(f) for f in job_functions if str(f).strip()]
        self.required_tags = {t.strip().casefold() for t in required_tags if t and t.strip()}
        self.required_prefix = required_prefix
        self.metrics = metrics or RunMetrics()
        self._variants = [_function_variants(f) for f in self.job_functions]
        self._postings: Dict[str, JobPosting] = {}
        self._urls: Dict[str, str] = {}
        # Counts for this run only; RunMetrics totals span the whole pipeline
        self.counts: Dict[str, int] = {}

    def _count(self, key: str) -> None:
        self.counts[key] = self.counts.get(key, 0) + 1
        self.metrics.inc(key)

    # === Filters ===

    def matches_job_function(self, text: Optional[str]) -> bool:
        """Case-insensitive substring match of any requested function"""
        if not self.job_functions:
            return True
        haystack = (text or "").lower()
        return any(variant in haystack for variants in self._variants for variant in variants)

    def has_prefix(self, url: Optional[str]) -> bool:
        return bool(url) and url.strip().startswith(self.required_prefix)

    def has_required_tags(self, tags: Iterable[str]) -> bool:
        if not self.required_tags:
            return True
        present = {t.strip().casefold() for t in tags if t and t.strip()}
        return self.required_tags.issubset(present)

    def accept_card(self, text: Optional[str]) -> bool:
        """Count a card and apply the job-function filter to its text"""
        self._count("cards_seen")
        if not self.matches_job_function(text):
            return False
        self._count("passed_function_filter")
        return True

    def admit(self, url: Optional[str], tags: Iterable[str]) -> bool:
        """Apply the URL/tag policy to a card that passed the function filter"""
        if not url or not url.strip():
            return False
        self._count("urls_found")
        if self.has_prefix(url):
            return True
        if not self.has_required_tags(tags):
            self._count("rejected_tags")
            logger.debug("Card rejected, missing required tags: %s", url)
            return False
        return True

    # === Accumulation ===

    def add(self, posting: JobPosting) -> bool:
        """Keep a valid posting unless its URL was already seen"""
        if not posting.is_valid():
            self._count("invalid_postings")
            logger.debug("Dropping invalid posting: %s", posting.job_page_url)
            return False
        key = normalize_url(posting.job_page_url)
        if key in self._postings:
            self._count("duplicates")
            logger.debug("Duplicate posting ignored: %s", posting.job_page_url)
            return False
        self._postings[key] = posting
        if self.has_prefix(posting.job_page_url):
            self._count("saved_with_prefix")
        else:
            self._count("saved_without_prefix")
        return True

    def add_url(self, url: Optional[str]) -> bool:
        key = normalize_url(url)
        if not key:
            return False
        if key in self._urls:
            self._count("duplicates")
            return False
        self._urls[key] = url.strip()
        return True

    def postings(self) -> List[JobPosting]:
        return list(self._postings.values())

    def urls(self, only_prefixed: bool = False) -> List[str]:
        urls = list(self._urls.values())
        if only_prefixed:
            return [u for u in urls if self.has_prefix(u)]
        return urls

    def __len__(self) -> int:
        return len(self._postings)

    # === Reporting ===

    def report(self) -> Dict[str, int]:
        """Log the final counters and return them"""
        counters = {
            "cards_seen": self.counts.get("cards_seen", 0),
            "passed_function_filter": self.counts.get("passed_function_filter", 0),
            "urls_found": self.counts.get("urls_found", 0),
            "postings": len(self._postings),
            "saved_with_prefix": self.counts.get("saved_with_prefix", 0),
            "saved_without_prefix": self.counts.get("saved_without_prefix", 0),
            "duplicates": self.counts.get("duplicates", 0),
            "rejected_tags": self.counts.get("rejected_tags", 0),
            "invalid_postings": self.counts.get("invalid_postings", 0),
        }
        logger.info("📊 FINAL REPORT")
        logger.info("   Job functions: %s", ", ".join(self.job_functions) or "any")
        for key, value in counters.items():
            logger.info("   %s: %d", key, value)

        if counters["passed_function_filter"] > 0 and counters["urls_found"] == 0:
            logger.error("❌ CRITICAL: %d card(s) passed the function filter but no URL was found",
                         counters["passed_function_filter"])
        if counters["urls_found"] > 0 and counters["postings"] == 0 and not self._urls:
            logger.error("❌ CRITICAL: %d URL(s) found but no posting was kept", counters["urls_found"])

        self.metrics.set_gauge("postings", counters["postings"])
        return counters

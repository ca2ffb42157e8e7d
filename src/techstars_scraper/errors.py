"""
Scraper errors - exception types shared across the pipeline
"""


class ScraperError(Exception):
    """Base exception for scraper failures."""


class FilterEncodingError(ScraperError):
    """Raised when the job-function filter cannot be encoded into a listing URL."""


class BrowserSessionError(ScraperError):
    """Raised when the browser session cannot be started."""


class DuplicateJobError(ScraperError):
    """Raised by a job store when a posting URL is already stored."""

"""
Techstars Job Scraper
Extracts job postings from the Techstars job board
"""

from .errors import BrowserSessionError, DuplicateJobError, FilterEncodingError, ScraperError
from .models import ApplyUrlsResult, FilterCriteria, JobFunction, JobPosting, ScrapeReport

__version__ = "0.1.0"

__all__ = [
    "ApplyUrlsResult",
    "BrowserSessionError",
    "DuplicateJobError",
    "FilterCriteria",
    "FilterEncodingError",
    "JobFunction",
    "JobPosting",
    "ScrapeReport",
    "ScraperError",
]

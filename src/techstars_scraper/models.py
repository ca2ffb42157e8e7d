"""
Data models for the Techstars scraper
Defines structure for job postings, filter criteria, and run results
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def _not_blank(value: Optional[str]) -> bool:
    return value is not None and bool(value.strip())


def _unique_trimmed(values: List[str]) -> List[str]:
    seen: List[str] = []
    for value in values or []:
        if not _not_blank(value):
            continue
        value = value.strip()
        if value not in seen:
            seen.append(value)
    return seen


class JobFunction(str, Enum):
    """Job function categories offered by the board's filter"""

    DESIGN = "Design"
    IT = "IT"
    LEGAL = "Legal"
    MARKETING_COMMUNICATIONS = "Marketing & Communications"
    OPERATIONS = "Operations"
    OTHER_ENGINEERING = "Other Engineering"
    PEOPLE_HR = "People & HR"
    PRODUCT = "Product"
    QUALITY_ASSURANCE = "Quality Assurance"
    SALES_BUSINESS_DEVELOPMENT = "Sales & Business Development"
    SOFTWARE_ENGINEERING = "Software Engineering"

    @property
    def display_name(self) -> str:
        return self.value

    @classmethod
    def from_display_name(cls, name: Optional[str]) -> Optional["JobFunction"]:
        """Case-insensitive lookup by display name; None when unknown"""
        if not _not_blank(name):
            return None
        wanted = name.strip().lower()
        for function in cls:
            if function.value.lower() == wanted:
                return function
        return None

    def __str__(self) -> str:
        return self.value


class JobPosting(BaseModel):
    """Represents a single job posting extracted from the board"""

    position_name: str
    job_page_url: str
    organization_url: str = ""
    organization_title: str = ""
    logo_url: Optional[str] = None
    labor_function: str = ""
    locations: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    posted_at: Optional[int] = None  # epoch seconds, UTC
    description: Optional[str] = None

    @field_validator("locations", "tags")
    @classmethod
    def _dedupe(cls, values: List[str]) -> List[str]:
        return _unique_trimmed(values)

    def add_tag(self, tag: Optional[str]) -> None:
        if _not_blank(tag) and tag.strip() not in self.tags:
            self.tags.append(tag.strip())

    def add_location(self, location: Optional[str]) -> None:
        if _not_blank(location) and location.strip() not in self.locations:
            self.locations.append(location.strip())

    def is_valid(self) -> bool:
        """Required fields present and a positive posting timestamp"""
        return (
            _not_blank(self.position_name)
            and _not_blank(self.job_page_url)
            and _not_blank(self.organization_title)
            and _not_blank(self.labor_function)
            and self.posted_at is not None
            and self.posted_at > 0
        )

    @property
    def posted_datetime(self) -> Optional[datetime]:
        if self.posted_at is None:
            return None
        return datetime.fromtimestamp(self.posted_at, tz=timezone.utc)

    def __str__(self) -> str:
        return f"{self.position_name} at {self.organization_title} ({self.job_page_url})"


class FilterCriteria(BaseModel):
    """Input to a scrape run"""

    job_functions: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    @field_validator("job_functions", "tags", mode="before")
    @classmethod
    def _normalize(cls, values) -> List[str]:
        if values is None:
            return []
        return _unique_trimmed([str(getattr(v, "value", v)) for v in values])

    def validate_for_run(self) -> None:
        """Boundary check: a run needs at least one job function"""
        if not self.job_functions:
            raise ValueError("At least one job function is required")

    def __str__(self) -> str:
        functions = ", ".join(self.job_functions) or "any function"
        if self.tags:
            return f"{functions} [tags: {', '.join(self.tags)}]"
        return functions


class ApplyUrlsResult(BaseModel):
    """Result of an apply-URL discovery pass"""

    success: bool = True
    fetched_at_epoch_ms: int = 0
    job_functions: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    count: int = 0
    urls: List[str] = Field(default_factory=list)

    @classmethod
    def of(cls, urls: List[str], job_functions: List[str], tags: List[str]) -> "ApplyUrlsResult":
        return cls(
            success=True,
            fetched_at_epoch_ms=int(datetime.now(timezone.utc).timestamp() * 1000),
            job_functions=list(job_functions),
            tags=list(tags),
            count=len(urls),
            urls=list(urls),
        )


class ScrapeReport(BaseModel):
    """Outcome of a scrape-and-save run"""

    success: bool
    message: str
    total_jobs_found: int = 0
    jobs_saved: int = 0
    job_urls: List[str] = Field(default_factory=list)

    @classmethod
    def empty(cls, message: str = "No jobs found") -> "ScrapeReport":
        return cls(success=True, message=message)

    @classmethod
    def completed(cls, job_urls: List[str], saved: int) -> "ScrapeReport":
        return cls(
            success=True,
            message="Scraping and saving completed successfully",
            total_jobs_found=len(job_urls),
            jobs_saved=saved,
            job_urls=list(job_urls),
        )

    @classmethod
    def failed(cls, error: str) -> "ScrapeReport":
        return cls(success=False, message=f"Error during scraping: {error}")

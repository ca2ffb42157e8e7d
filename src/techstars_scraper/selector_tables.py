"""
Selector tables - CSS selectors for every pipeline stage, kept as data
Defaults match the live board; any table can be overridden from YAML
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

import yaml

logger = logging.getLogger(__name__)


def _table(*selectors: str):
    return field(default_factory=lambda: list(selectors))


@dataclass
class SelectorTables:
    """Ordered selector lists; earlier entries are tried first"""

    # Card discovery
    card_primary: str = "[class*='job-card']"
    card_secondary: List[str] = _table(
        "div[data-testid=job-card]",
        "div[data-testid=job-item]",
        "div[data-testid=job]",
        "div[data-testid=position]",
        "div[data-testid=vacancy]",
        "div[data-testid=opportunity]",
        "div[class*='sc-']:has([data-testid=job-title])",
        "div[class*='sc-']:has([data-testid=organization-name])",
        "[class*='job-item']",
        "[class*='position-card']",
        "[class*='vacancy-card']",
        "div[class*='JobCard']",
        "div[class*='JobItem']",
        "div[role=article]",
        "div[role=listitem]",
    )
    card_data_attribute: List[str] = _table(
        "[data-testid='job-card']",
        "[data-testid='job-item']",
        "[data-testid='position-card']",
        "[data-testid='vacancy-card']",
    )
    card_class_name: List[str] = _table(
        ".job-card",
        ".job-item",
        ".position-card",
        ".vacancy-card",
        ".career-card",
        ".job-listing",
        ".position-item",
        ".job-posting",
    )
    company_cards: List[str] = _table(
        "[data-testid='company-job-card']",
        "div[data-testid=job-listing]",
        "div[data-testid=job-item]",
        "div[data-testid=position-item]",
        "div[data-testid=vacancy-item]",
    )
    card_links: List[str] = _table(
        "a[href*='/jobs/']",
        "a[href*='/companies/']",
    )

    # Load more
    load_more: List[str] = _table(
        "button[data-testid='load-more']",
        "button[data-testid='show-more']",
        "a[data-testid='load-more']",
        "a[data-testid='show-more']",
        "[data-testid*='load-more']",
        "[data-testid*='show-more']",
        ".load-more",
        ".show-more",
        ".load-more-button",
        ".show-more-button",
        "button[class*='load']",
        "button[class*='more']",
        "a[class*='load']",
        "a[class*='more']",
    )
    clickable: str = "button, a, [role=button]"
    load_more_texts: List[str] = _table("load more", "show more", "load", "more", "show")

    # Fields
    title_semantic: List[str] = _table("[itemprop='title']", "meta[itemprop='title']")
    title_testid: List[str] = _table("[data-testid=job-title]", "[data-testid=position-title]", ".job-title")
    # One selector so matches come back in document order
    headings: List[str] = _table("h1, h2, h3")
    company: List[str] = _table("[itemprop='name']", "meta[itemprop='name']")
    location: List[str] = _table("[itemprop='address']", "meta[itemprop='address']")
    posted_date: List[str] = _table("meta[itemprop='datePosted']", "[itemprop='datePosted']")
    logo_images: str = "img"
    logo_alt_terms: List[str] = _table("logo", "company")
    logo_fallback: List[str] = _table(
        "[data-testid=profile-picture] img",
        "img[data-testid=image]",
        "img[data-testid=profile-picture]",
    )
    tags: List[str] = _table("[data-testid=tag]")
    description: List[str] = _table(
        "[data-testid=job-description]",
        "[data-testid=position-description]",
        "[data-testid=description]",
        "[data-testid=about]",
        "[data-testid=summary]",
        "[itemprop='description']",
        ".job-description",
        ".description",
        "article [class*='description']",
    )
    description_meta: List[str] = _table("meta[property='og:description']", "meta[name=description]")
    career_page: List[str] = _table("[data-testid=careerPage]")
    apply_link: List[str] = _table(
        "a[data-testid='job-card-link']",
        "a[data-testid=read-more]",
        "a[data-testid=apply]",
        "a[data-testid=apply-now]",
    )
    link_class_terms: List[str] = _table("job", "card", "link")
    org_link: List[str] = _table("a[data-testid=organization-link]", "a.organization-link")

    @classmethod
    def table_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]


def load_selector_tables(path: Optional[Path] = None) -> SelectorTables:
    """Build selector tables, replacing defaults with any tables found in `path`"""
    tables = SelectorTables()
    if not path:
        return tables

    path = Path(path)
    if not path.exists():
        logger.warning("Selectors file not found: %s (using defaults)", path)
        return tables

    with open(path, "r", encoding="utf-8") as f:
        overrides = yaml.safe_load(f) or {}

    known = set(SelectorTables.table_names())
    for name, value in overrides.items():
        if name not in known:
            logger.warning("Ignoring unknown selector table: %s", name)
            continue
        current = getattr(tables, name)
        if isinstance(current, str):
            setattr(tables, name, str(value))
        else:
            setattr(tables, name, [str(v) for v in (value or [])])
        logger.debug("Selector table overridden: %s", name)

    logger.info("✓ Selector tables loaded from %s", path)
    return tables

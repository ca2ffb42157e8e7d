# tests/conftest.py
import os
from typing import Dict, List, Optional

import pytest

from techstars_scraper.config_loader import ConfigLoader
from techstars_scraper.dom import parse_html

BASE_URL = "https://jobs.techstars.com/jobs"


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (real job board, network required).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("SCRAPER_HEADLESS", "SCRAPER_BASE_URL", "SCRAPER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield


# ---------------------------------------------------------------------
# HTML fixtures
# ---------------------------------------------------------------------
def job_card(
    title: str,
    company: str,
    slug: str,
    location: str = "New York, NY, USA",
    posted: str = "2024-05-01",
    tags: tuple = ("Remote", "Full-time"),
    description: str = "Work with a small team shipping software to customers every week.",
    logo: str = "",
    css_class: str = "job-card",
) -> str:
    tag_html = "".join(f'<div data-testid="tag">{t}</div>' for t in tags)
    logo_html = f'<img alt="{company} logo" src="{logo}">' if logo else ""
    return f"""
    <div class="{css_class}">
      {logo_html}
      <a data-testid="job-card-link" href="/companies/{slug}/jobs/{slug}-1">
        <div itemprop="title">{title}</div>
      </a>
      <div itemprop="hiringOrganization">
        <meta itemprop="name" content="{company}">
        <a data-testid="organization-link" href="/companies/{slug}">{company}</a>
      </div>
      <div itemprop="jobLocation"><meta itemprop="address" content="{location}"></div>
      <meta itemprop="datePosted" content="{posted}">
      {tag_html}
      <div data-testid="description">{description}</div>
    </div>
    """


SEARCH_CHROME = """
    <div class="job-card-search">
      Search jobs. Explore 120 companies hiring a senior engineer right now.
      <a href="/jobs/">All jobs</a>
    </div>
"""

FOOTER_CHROME = """
    <div class="job-cards-footer">
      Powered by Getro. Join our talent network and get job alerts for engineer roles.
      <a href="/companies/">Companies</a>
    </div>
"""

DESIGN_CARD = job_card(
    "Product Designer",
    "Acme Robotics",
    "acme",
    description="Shape the product experience for our robotics platform.",
)
BACKEND_CARD = job_card("Backend Engineer", "Beta Labs", "beta", location="Remote")
SALES_CARD = job_card(
    "Sales Manager",
    "Gamma Health",
    "gamma",
    tags=("Hybrid",),
    description="Grow our customer base across healthcare providers.",
)


def page(*cards: str, extra: str = "") -> str:
    return f"<html><head><title>Jobs</title></head><body><main>{''.join(cards)}{extra}</main></body></html>"


LISTING_HTML = page(SEARCH_CHROME, DESIGN_CARD, BACKEND_CARD, SALES_CARD, FOOTER_CHROME)

DETAIL_HTML = """
<html>
  <head>
    <meta property="og:description" content="Join Acme Robotics as a designer.">
  </head>
  <body>
    <h1 itemprop="title">Senior Product Designer</h1>
    <div itemprop="hiringOrganization"><meta itemprop="name" content="Acme Robotics"></div>
    <meta itemprop="address" content="Boston, MA, USA">
    <meta itemprop="datePosted" content="2024-06-15">
    <div data-testid="tag">Remote</div>
    <img data-testid="image" src="https://cdn.example.com/acme.png">
    <div data-testid="careerPage">We are looking for a designer to own our product experience.</div>
  </body>
</html>
"""


@pytest.fixture
def listing_page():
    return parse_html(LISTING_HTML, BASE_URL)


@pytest.fixture
def config() -> ConfigLoader:
    return ConfigLoader.from_dict({
        "scraping": {"request_delay": 0},
        "scroll": {"delay": 0, "load_more_delay": 0},
        "browser": {"page_load_delay": 0},
    })


# ---------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------
class FakeSession:
    """BrowserSession over scripted HTML snapshots; each scroll shows the next one"""

    def __init__(self, snapshots: List[str], current_url: Optional[str] = None, goto_ok: bool = True):
        self.snapshots = list(snapshots)
        self.index = 0
        self.url = current_url
        self.goto_ok = goto_ok
        self.visited: List[str] = []
        self.clicks: List[object] = []
        self.scrolls = 0
        self.closed = False

    def _root(self):
        return parse_html(self.snapshots[self.index], self.current_url())

    def goto(self, url: str) -> bool:
        self.visited.append(url)
        if self.url is None:
            self.url = url
        return self.goto_ok

    def current_url(self) -> str:
        return self.url or ""

    def document(self):
        return self._root()

    def query_all(self, selector: str):
        return self._root().query_all(selector)

    def scroll_to_bottom(self) -> None:
        self.scrolls += 1
        self.index = min(self.index + 1, len(self.snapshots) - 1)

    def click(self, node) -> bool:
        self.clicks.append(node)
        return True

    def wait(self, seconds: float) -> None:
        pass

    def close(self) -> None:
        self.closed = True


class FakeHttp:
    """HttpClient stand-in; `routes` maps URL substrings to HTML (first match wins)"""

    def __init__(self, routes: Dict[str, Optional[str]], default: Optional[str] = None):
        self.routes = routes
        self.default = default
        self.requested: List[str] = []
        self.closed = False

    def fetch_html(self, url: str) -> Optional[str]:
        self.requested.append(url)
        for fragment, html in self.routes.items():
            if fragment in url:
                return html
        return self.default

    def close(self) -> None:
        self.closed = True


class SleepRecorder:
    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def no_sleep():
    return SleepRecorder()

# tests/test_pipeline.py
from datetime import datetime, timezone

import pytest

from techstars_scraper.errors import BrowserSessionError
from techstars_scraper.models import FilterCriteria
from techstars_scraper.pipeline import ScrapePipeline, page_type_of
from techstars_scraper.store import JsonlJobStore

from conftest import DETAIL_HTML, LISTING_HTML, FakeHttp, FakeSession, job_card, page

DESIGN = FilterCriteria(job_functions=["Design"])
DETAIL_URL = "https://jobs.techstars.com/companies/acme/jobs/acme-1"


def make_pipeline(config, no_sleep, session=None, http=None):
    return ScrapePipeline(
        config,
        session_factory=(lambda: session) if session else None,
        http_client=http,
        sleep=no_sleep,
    )


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://jobs.techstars.com/companies/acme/jobs/1-designer", "detail"),
        ("https://jobs.techstars.com/companies/acme", "company"),
        ("https://jobs.techstars.com/jobs?filter=abc", "main"),
    ],
)
def test_page_type_dispatch(url, expected):
    assert page_type_of(url) == expected


# ----------------------------------------------------------------------
# Browser mode, end to end
# ----------------------------------------------------------------------
def test_listing_with_chrome_yields_single_design_posting(config, no_sleep):
    session = FakeSession([LISTING_HTML])
    postings = make_pipeline(config, no_sleep, session=session).scrape_jobs(DESIGN)

    assert len(postings) == 1
    job = postings[0]
    assert job.position_name == "Product Designer"
    assert job.job_page_url == DETAIL_URL
    assert job.organization_title == "Acme Robotics"
    assert job.organization_url == "https://jobs.techstars.com/companies/acme"
    assert job.labor_function == "Design"
    assert job.locations == ["New York, NY, USA"]
    assert job.tags == ["Remote", "Full-time"]
    assert job.posted_at == int(datetime(2024, 5, 1, tzinfo=timezone.utc).timestamp())
    assert job.description == "Shape the product experience for our robotics platform."
    assert job.logo_url is None
    assert job.is_valid()

    assert session.closed
    assert session.visited[0].startswith("https://jobs.techstars.com/jobs?filter=")


def test_scroll_loop_runs_before_extraction(config, no_sleep):
    first = page(job_card("Product Designer", "Acme Robotics", "acme"))
    second = page(
        job_card("Product Designer", "Acme Robotics", "acme"),
        job_card("Brand Designer", "Delta", "delta"),
    )
    session = FakeSession([first, second, second, second])
    postings = make_pipeline(config, no_sleep, session=session).scrape_jobs(DESIGN)

    assert [p.position_name for p in postings] == ["Product Designer", "Brand Designer"]
    assert session.scrolls == 3


def test_company_page_uses_company_cards(config, no_sleep):
    card = job_card("UX Designer", "Acme Robotics", "acme", css_class="row")
    html = page(f'<div data-testid="company-job-card">{card}</div>')
    session = FakeSession([html], current_url="https://jobs.techstars.com/companies/acme")

    postings = make_pipeline(config, no_sleep, session=session).scrape_jobs(DESIGN)

    assert [p.position_name for p in postings] == ["UX Designer"]
    assert session.scrolls == 0


def test_detail_page_extracts_single_posting(config, no_sleep):
    session = FakeSession([DETAIL_HTML], current_url=DETAIL_URL)
    postings = make_pipeline(config, no_sleep, session=session).scrape_jobs(DESIGN)

    assert len(postings) == 1
    job = postings[0]
    assert job.position_name == "Senior Product Designer"
    assert job.job_page_url == DETAIL_URL
    assert job.locations == ["Boston, MA, USA"]
    assert job.logo_url == "https://cdn.example.com/acme.png"
    assert job.description.startswith("We are looking for a designer")


def test_detail_page_title_must_match_function(config, no_sleep):
    session = FakeSession([DETAIL_HTML], current_url=DETAIL_URL)
    criteria = FilterCriteria(job_functions=["Legal"])
    assert make_pipeline(config, no_sleep, session=session).scrape_jobs(criteria) == []


def test_session_closed_when_scrape_raises(config, no_sleep):
    class Exploding(FakeSession):
        def current_url(self):
            raise RuntimeError("browser crashed")

    session = Exploding([LISTING_HTML])
    with pytest.raises(RuntimeError):
        make_pipeline(config, no_sleep, session=session).scrape_jobs(DESIGN)
    assert session.closed


def test_failed_navigation_is_empty_result(config, no_sleep):
    session = FakeSession([LISTING_HTML], goto_ok=False)
    assert make_pipeline(config, no_sleep, session=session).scrape_jobs(DESIGN) == []
    assert session.closed


def test_empty_job_functions_rejected_at_boundary(config, no_sleep):
    with pytest.raises(ValueError):
        make_pipeline(config, no_sleep, session=FakeSession([LISTING_HTML])).scrape_jobs(FilterCriteria())


# ----------------------------------------------------------------------
# Static mode
# ----------------------------------------------------------------------
def test_fetch_apply_urls_walks_pages(config, no_sleep):
    http = FakeHttp({}, default=LISTING_HTML)
    result = make_pipeline(config, no_sleep, http=http).fetch_apply_urls(DESIGN)

    assert result.success
    assert result.urls == [DETAIL_URL]
    assert result.count == 1
    assert result.job_functions == ["Design"]
    assert result.fetched_at_epoch_ms > 0
    assert [u.rsplit("&", 1)[-1] for u in http.requested[:3]] == ["page=1", "page=2", "page=3"]
    assert "page=" not in http.requested[-1]


def test_fetch_apply_urls_drops_unprefixed_urls(config, no_sleep):
    card = job_card("Brand Designer", "Delta", "delta").replace(
        'href="/companies/delta/jobs/delta-1"', 'href="https://jobs.techstars.com/jobs/external-9"'
    )
    http = FakeHttp({}, default=page(card))
    pipeline = make_pipeline(config, no_sleep, http=http)

    assert pipeline.fetch_apply_urls(DESIGN).urls == []
    assert pipeline.fetch_apply_urls(DESIGN, only_prefixed=False).urls == [
        "https://jobs.techstars.com/jobs/external-9"
    ]


def test_repeated_runs_report_their_own_counts(config, no_sleep):
    pipeline = make_pipeline(config, no_sleep, http=FakeHttp({}, default=LISTING_HTML))

    pipeline.fetch_apply_urls(DESIGN)
    first = dict(pipeline.last_report)
    pipeline.fetch_apply_urls(DESIGN)
    second = pipeline.last_report

    assert first["cards_seen"] > 0
    assert second == first
    assert pipeline.metrics.get("cards_seen") == 2 * first["cards_seen"]


def test_static_detail_pass_is_reported_separately(config, no_sleep):
    http = FakeHttp({"/companies/acme/jobs/": DETAIL_HTML}, default=LISTING_HTML)
    pipeline = make_pipeline(config, no_sleep, http=http)

    postings = pipeline.scrape_static(DESIGN)

    assert len(postings) == 1
    assert pipeline.last_report["postings"] == 1
    assert pipeline.last_report["saved_with_prefix"] == 1
    assert pipeline.last_report["cards_seen"] == 0


def test_static_mode_parses_detail_pages(config, no_sleep, tmp_path):
    http = FakeHttp({"/companies/acme/jobs/": DETAIL_HTML}, default=LISTING_HTML)
    store = JsonlJobStore(tmp_path / "jobs.jsonl")

    report = make_pipeline(config, no_sleep, http=http).scrape_and_save(DESIGN, store, mode="static")

    assert report.success
    assert report.total_jobs_found == 1
    assert report.jobs_saved == 1
    assert store.exists(DETAIL_URL)


# ----------------------------------------------------------------------
# Ingest
# ----------------------------------------------------------------------
def test_scrape_and_save_skips_already_stored(config, no_sleep, tmp_path):
    store = JsonlJobStore(tmp_path / "jobs.jsonl")

    first = make_pipeline(config, no_sleep, session=FakeSession([LISTING_HTML])).scrape_and_save(DESIGN, store)
    second = make_pipeline(config, no_sleep, session=FakeSession([LISTING_HTML])).scrape_and_save(DESIGN, store)

    assert (first.jobs_saved, second.jobs_saved) == (1, 0)
    assert second.total_jobs_found == 1
    assert second.job_urls == [DETAIL_URL]


def test_scrape_and_save_empty_run(config, no_sleep, tmp_path):
    session = FakeSession([page("<p>No openings</p>")])
    report = make_pipeline(config, no_sleep, session=session).scrape_and_save(DESIGN, JsonlJobStore(tmp_path / "j.jsonl"))
    assert report.success
    assert report.message == "No jobs found"
    assert report.total_jobs_found == 0


def test_scrape_and_save_reports_fatal_errors(config, no_sleep, tmp_path):
    def failing_factory():
        raise BrowserSessionError("chromium missing")

    pipeline = ScrapePipeline(config, session_factory=failing_factory, sleep=no_sleep)
    report = pipeline.scrape_and_save(DESIGN, JsonlJobStore(tmp_path / "j.jsonl"))
    assert not report.success
    assert "chromium missing" in report.message


def test_store_errors_are_skipped(config, no_sleep):
    class FlakyStore:
        def exists(self, url):
            return False

        def save(self, posting):
            raise OSError("disk full")

    report = make_pipeline(config, no_sleep, session=FakeSession([LISTING_HTML])).scrape_and_save(DESIGN, FlakyStore())
    assert report.success
    assert report.jobs_saved == 0
    assert report.total_jobs_found == 1


@pytest.mark.live
def test_live_apply_urls(config):
    pipeline = ScrapePipeline(config)
    try:
        result = pipeline.fetch_apply_urls(FilterCriteria(job_functions=["Software Engineering"]))
    finally:
        pipeline.close()
    assert result.success
    assert all(u.startswith("https://jobs.techstars.com/companies/") for u in result.urls)

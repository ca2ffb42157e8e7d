# tests/test_field_extractor.py
from datetime import datetime, timezone

import pytest

from techstars_scraper.dom import parse_html
from techstars_scraper.field_extractor import (
    UNKNOWN_POSITION,
    FieldExtractor,
    first_present,
    parse_posted_date,
)

from conftest import DESIGN_CARD, DETAIL_HTML, job_card

BASE = "https://jobs.techstars.com/jobs"


def card(html: str):
    return parse_html(html, BASE).query("div")


@pytest.fixture
def extractor():
    return FieldExtractor()


# ----------------------------------------------------------------------
# Full card
# ----------------------------------------------------------------------
def test_extracts_every_field_from_listing_card(extractor):
    fields = extractor.extract_fields(card(DESIGN_CARD))
    assert fields.title == "Product Designer"
    assert fields.company == "Acme Robotics"
    assert fields.location == "New York, NY, USA"
    assert fields.posted_at == int(datetime(2024, 5, 1, tzinfo=timezone.utc).timestamp())
    assert fields.tags == ["Remote", "Full-time"]
    assert fields.description == "Shape the product experience for our robotics platform."
    assert fields.apply_url == "https://jobs.techstars.com/companies/acme/jobs/acme-1"
    assert fields.organization_url == "https://jobs.techstars.com/companies/acme"
    assert fields.logo_url is None


def test_detail_page_prefers_career_page_text(extractor):
    fields = extractor.extract_fields(parse_html(DETAIL_HTML, BASE), detail=True)
    assert fields.title == "Senior Product Designer"
    assert fields.description == "We are looking for a designer to own our product experience."
    assert fields.logo_url == "https://cdn.example.com/acme.png"
    assert fields.apply_url is None


# ----------------------------------------------------------------------
# Every field degrades to absent (title to the sentinel)
# ----------------------------------------------------------------------
def test_empty_card_degrades_to_absent(extractor):
    fields = extractor.extract_fields(card('<div class="job-card"><span>nothing</span></div>'))
    assert fields.title == UNKNOWN_POSITION
    assert fields.company is None
    assert fields.location is None
    assert fields.posted_at is None
    assert fields.logo_url is None
    assert fields.tags == []
    assert fields.description is None
    assert fields.apply_url is None
    assert fields.organization_url is None


def test_raising_node_never_escapes(extractor):
    class Broken:
        def __getattr__(self, name):
            def fail(*args, **kwargs):
                raise RuntimeError("stale element")
            return fail

    fields = extractor.extract_fields(Broken())
    assert fields.title == UNKNOWN_POSITION
    assert fields.company is None
    assert fields.tags == []
    assert fields.apply_url is None


def test_first_present_skips_raising_and_blank_strategies():
    def raises(_):
        raise ValueError("boom")

    result = first_present(object(), [raises, lambda _: "  ", lambda _: None, lambda _: "ok"], "x")
    assert result == "ok"
    assert first_present(object(), [raises], "x") is None


# ----------------------------------------------------------------------
# Title
# ----------------------------------------------------------------------
def test_title_prefers_content_attribute(extractor):
    node = card('<div><div itemprop="title" content="Staff Engineer">Rendered title</div></div>')
    assert extractor.extract_title(node) == "Staff Engineer"


def test_title_falls_back_to_testid(extractor):
    node = card('<div><span data-testid="job-title">Data Scientist</span><h2>Other heading</h2></div>')
    assert extractor.extract_title(node) == "Data Scientist"


def test_title_skips_short_headings(extractor):
    node = card("<div><h1>Hi</h1><h2>  </h2><h3>Platform Engineer</h3></div>")
    assert extractor.extract_title(node) == "Platform Engineer"


def test_title_heading_follows_document_order(extractor):
    node = card("<div><h3>Backend Engineer</h3><p>x</p><h2>Featured</h2></div>")
    assert extractor.extract_title(node) == "Backend Engineer"


def test_title_skips_blank_semantic_match(extractor):
    node = card('<div><div itemprop="title"> </div><div itemprop="title">QA Lead</div><h2>Featured</h2></div>')
    assert extractor.extract_title(node) == "QA Lead"


def test_company_skips_blank_semantic_match(extractor):
    node = card('<div><meta itemprop="name" content=""><span itemprop="name">Acme Robotics</span></div>')
    assert extractor.extract_company(node) == "Acme Robotics"


# ----------------------------------------------------------------------
# Dates
# ----------------------------------------------------------------------
def test_parse_posted_date_strict_format():
    assert parse_posted_date("2024-05-01") == 1714521600
    assert parse_posted_date(" 2024-05-01 ") == 1714521600


@pytest.mark.parametrize("raw", ["3 days ago", "May 1, 2024", "2024-5-1", "2024-13-45", "", None])
def test_other_date_formats_are_absent(raw):
    assert parse_posted_date(raw) is None


def test_date_without_meta_content_is_absent(extractor):
    node = card('<div><span itemprop="datePosted">Posted today</span></div>')
    assert extractor.extract_posted_at(node) is None


# ----------------------------------------------------------------------
# Logo, tags, location
# ----------------------------------------------------------------------
def test_logo_by_alt_text(extractor):
    html = job_card("Designer", "Acme", "acme", logo="/img/acme.png")
    assert extractor.extract_logo_url(card(html)) == "https://jobs.techstars.com/img/acme.png"


def test_logo_by_profile_picture_testid(extractor):
    node = card('<div><img alt="photo" src="/a.png"><div data-testid="profile-picture"><img src="/b.png"></div></div>')
    assert extractor.extract_logo_url(node) == "https://jobs.techstars.com/b.png"


def test_tags_are_trimmed_and_blank_dropped(extractor):
    node = card('<div><div data-testid="tag"> Remote </div><div data-testid="tag"> </div><div data-testid="tag">Seed</div></div>')
    assert extractor.extract_tags(node) == ["Remote", "Seed"]


def test_location_from_element_text(extractor):
    node = card('<div><span itemprop="address">Berlin, Germany</span></div>')
    assert extractor.extract_location(node) == "Berlin, Germany"


# ----------------------------------------------------------------------
# Description
# ----------------------------------------------------------------------
def test_description_skips_title_like_and_long_text(extractor):
    long_text = "word " * 120
    node = card(
        "<div>"
        '<div data-testid="description">Designer at Acme</div>'
        '<div data-testid="description">Acme - Boston</div>'
        f'<div data-testid="description">{long_text}</div>'
        '<div data-testid="description">Own the design system.</div>'
        "</div>"
    )
    assert extractor.extract_description(node) == "Own the design system."


def test_description_falls_back_to_meta(extractor):
    doc = parse_html('<html><head><meta name="description" content="Great role."></head><body></body></html>', BASE)
    assert extractor.extract_description(doc) == "Great role."


def test_description_equal_to_title_is_dropped(extractor):
    node = card('<div><div itemprop="title">Office Manager</div><div data-testid="description">Office Manager</div></div>')
    assert extractor.extract_fields(node).description is None


# ----------------------------------------------------------------------
# Apply URL priority
# ----------------------------------------------------------------------
def test_apply_url_prefers_testid_link(extractor):
    node = card(
        '<div><a href="https://jobs.techstars.com/other">x</a>'
        '<a data-testid="job-card-link" href="/companies/a/jobs/1">y</a></div>'
    )
    assert extractor.extract_apply_url(node) == "https://jobs.techstars.com/companies/a/jobs/1"


def test_apply_url_from_parent_link(extractor):
    root = parse_html('<a href="/companies/b/jobs/2"><div class="job-card">Card</div></a>', BASE)
    node = root.query("div.job-card")
    assert extractor.extract_apply_url(node) == "https://jobs.techstars.com/companies/b/jobs/2"


def test_apply_url_by_source_domain(extractor):
    node = card('<div><a class="card" href="https://elsewhere.com/x">a</a><a href="https://jobs.techstars.com/companies/c/jobs/3">b</a></div>')
    assert extractor.extract_apply_url(node) == "https://jobs.techstars.com/companies/c/jobs/3"


def test_apply_url_by_link_class():
    extractor = FieldExtractor(source_domain="jobs.example.org")
    node = parse_html('<div><a href="https://ats.example.com/9">a</a><a class="job-link" href="https://ats.example.com/10">b</a></div>').query("div")
    assert extractor.extract_apply_url(node) == "https://ats.example.com/10"

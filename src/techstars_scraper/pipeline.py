"""
Scrape pipeline - loader -> locator -> extractor -> accumulator -> store
Two acquisition modes share the extraction stages: static HTML pages for
apply-URL discovery and a browser session for full field extraction
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from .accumulator import ResultAccumulator
from .browser_session import BrowserSession, PlaywrightSession
from .card_locator import CardLocator
from .card_validator import CardValidator
from .config_loader import ConfigLoader
from .content_loader import PagedLoader, ScrollLoader
from .dom import Node, parse_html
from .errors import ScraperError
from .field_extractor import ExtractedFields, FieldExtractor
from .filter_url import build_filter_url
from .http_client import HttpClient
from .models import ApplyUrlsResult, FilterCriteria, JobPosting, ScrapeReport
from .run_metrics import RunMetrics
from .selector_tables import SelectorTables, load_selector_tables
from .store import JobStore

logger = logging.getLogger(__name__)

PAGE_DETAIL = "detail"
PAGE_COMPANY = "company"
PAGE_MAIN = "main"


def page_type_of(url: str) -> str:
    """Classify a board URL as a job detail, company or main listing page"""
    url = url or ""
    if "/companies/" in url and "/jobs/" in url:
        return PAGE_DETAIL
    if "/companies/" in url:
        return PAGE_COMPANY
    return PAGE_MAIN


class ScrapePipeline:
    """One scrape run at a time; owns its HTTP client, borrows a browser session per run"""

    def __init__(
        self,
        config: ConfigLoader,
        selectors: Optional[SelectorTables] = None,
        http_client: Optional[HttpClient] = None,
        session_factory: Optional[Callable[[], BrowserSession]] = None,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: Optional[threading.Event] = None,
        metrics: Optional[RunMetrics] = None,
    ):
        self.config = config
        self.selectors = selectors or load_selector_tables(config.get_selectors_file())
        self.validator = CardValidator(
            denylist=config.get_validator_denylist(),
            allowlist=config.get_validator_allowlist(),
            min_text_length=config.get_min_text_length(),
            link_selectors=self.selectors.card_links,
        )
        self.locator = CardLocator(self.selectors, self.validator)
        self.extractor = FieldExtractor(self.selectors, config.get_source_domain())
        self.http_client = http_client
        self.session_factory = session_factory or self._start_browser
        self.sleep = sleep
        self.cancel_event = cancel_event or threading.Event()
        self.metrics = metrics or RunMetrics()
        self.last_report: Dict[str, int] = {}

    @classmethod
    def from_config(cls, config_path: str = "config/settings.yaml", **kwargs) -> "ScrapePipeline":
        return cls(ConfigLoader(config_path), **kwargs)

    def _start_browser(self) -> BrowserSession:
        session = PlaywrightSession(self.config)
        session.start()
        return session

    def _http(self) -> HttpClient:
        if self.http_client is None:
            self.http_client = HttpClient.from_config(self.config)
        return self.http_client

    def close(self) -> None:
        if self.http_client is not None:
            self.http_client.close()

    def _accumulator(self, criteria: FilterCriteria) -> ResultAccumulator:
        return ResultAccumulator(
            job_functions=criteria.job_functions,
            required_tags=criteria.tags,
            required_prefix=self.config.get_required_prefix(),
            metrics=self.metrics,
        )

    def _labor_function(self, criteria: FilterCriteria) -> str:
        if criteria.job_functions:
            return criteria.job_functions[0]
        return self.config.get_default_job_function()

    def _filtered_url(self, criteria: FilterCriteria) -> str:
        url = build_filter_url(self.config.get_base_url(), criteria.job_functions)
        logger.info("🔗 Filtered listing URL: %s", url)
        return url

    # === Assembly ===

    def _build_posting(self, fields: ExtractedFields, url: str, labor_function: str) -> JobPosting:
        posting = JobPosting(
            position_name=fields.title,
            job_page_url=url,
            organization_url=fields.organization_url or url,
            organization_title=fields.company or "",
            logo_url=fields.logo_url,
            labor_function=labor_function,
            posted_at=fields.posted_at,
            description=fields.description,
        )
        posting.add_location(fields.location)
        for tag in fields.tags:
            posting.add_tag(tag)
        return posting

    def _process_cards(self, cards: List[Node], accumulator: ResultAccumulator, labor_function: str) -> None:
        logger.info("📋 Found %d job card(s) to process", len(cards))
        for index, card in enumerate(cards, start=1):
            try:
                if not accumulator.accept_card(card.text()):
                    continue
                fields = self.extractor.extract_fields(card)
                if not accumulator.admit(fields.apply_url, fields.tags):
                    if not fields.apply_url:
                        logger.debug("Card %d: no URL found", index)
                    continue
                posting = self._build_posting(fields, fields.apply_url, labor_function)
                if accumulator.add(posting):
                    logger.info("Card %d: %s", index, posting)
            except Exception as exc:
                logger.warning("⚠️ Error processing job card %d: %s", index, exc)

    def _process_detail(
        self,
        document: Optional[Node],
        url: str,
        criteria: FilterCriteria,
        accumulator: ResultAccumulator,
    ) -> None:
        if document is None:
            logger.warning("Detail page has no document: %s", url)
            return
        self.metrics.inc("detail_pages")
        fields = self.extractor.extract_fields(document, detail=True)
        title = fields.title.lower()
        if criteria.job_functions and not any(f.lower() in title for f in criteria.job_functions):
            logger.info("Detail page title '%s' matches no requested job function, skipping", fields.title)
            return
        accumulator.add(self._build_posting(fields, url, self._labor_function(criteria)))

    def _count_matching_cards(self, session: BrowserSession, accumulator: ResultAccumulator) -> int:
        cards = self.locator.locate(session)
        return sum(1 for card in cards if accumulator.matches_job_function(card.text()))

    # === Apply-URL discovery (static) ===

    def fetch_apply_urls(self, criteria: FilterCriteria, only_prefixed: bool = True) -> ApplyUrlsResult:
        """Walk the paginated listing over plain HTTP and collect apply URLs"""
        criteria.validate_for_run()
        self.metrics.mode = "static"
        url = self._filtered_url(criteria)
        accumulator = self._accumulator(criteria)

        def harvest(html: str, page_url: str) -> int:
            added = 0
            for card in self.locator.locate(parse_html(html, page_url)):
                try:
                    if not accumulator.accept_card(card.text()):
                        continue
                    apply_url = self.extractor.extract_apply_url(card)
                    if accumulator.admit(apply_url, self.extractor.extract_tags(card)) and accumulator.add_url(apply_url):
                        added += 1
                except Exception as exc:
                    logger.warning("⚠️ Error reading card on %s: %s", page_url, exc)
            return added

        loader = PagedLoader(
            self._http().fetch_html,
            delay=self.config.get_request_delay(),
            max_pages=self.config.get_max_pages(),
            sleep=self.sleep,
            cancel_event=self.cancel_event,
        )
        stats = loader.run(url, harvest)
        self.metrics.set_gauge("pages_fetched", stats.attempts)
        self.last_report = accumulator.report()

        urls = accumulator.urls(only_prefixed=only_prefixed)
        logger.info("✓ %d apply URL(s) collected (stopped by %s)", len(urls), stats.stopped_by)
        return ApplyUrlsResult.of(urls, criteria.job_functions, criteria.tags)

    # === Full extraction ===

    def scrape_jobs(self, criteria: FilterCriteria) -> List[JobPosting]:
        """Browser-driven extraction; the session is closed on every exit path"""
        criteria.validate_for_run()
        self.metrics.mode = "browser"
        url = self._filtered_url(criteria)
        accumulator = self._accumulator(criteria)
        labor_function = self._labor_function(criteria)

        session = self.session_factory()
        try:
            if not session.goto(url):
                logger.error("❌ Could not open listing: %s", url)
                return []

            current_url = session.current_url() or url
            page_type = page_type_of(current_url)
            logger.info("🔍 Page type: %s (%s)", page_type, current_url)

            if page_type == PAGE_DETAIL:
                self._process_detail(session.document(), current_url, criteria, accumulator)
            elif page_type == PAGE_COMPANY:
                self._process_cards(self.locator.locate_on_detail_listing(session), accumulator, labor_function)
            else:
                loader = ScrollLoader(
                    self.selectors,
                    max_attempts=self.config.get_max_scroll_attempts(),
                    max_no_growth=self.config.get_max_no_growth(),
                    delay=self.config.get_scroll_delay(),
                    load_more_delay=self.config.get_load_more_delay(),
                    sleep=self.sleep,
                    cancel_event=self.cancel_event,
                )
                stats = loader.load(session, lambda: self._count_matching_cards(session, accumulator))
                self.metrics.set_gauge("scroll_attempts", stats.attempts)
                self.metrics.record_event("scroll", stopped_by=stats.stopped_by, final_count=stats.final_count)
                self._process_cards(self.locator.locate(session), accumulator, labor_function)
        finally:
            session.close()

        self.last_report = accumulator.report()
        return accumulator.postings()

    def scrape_static(self, criteria: FilterCriteria) -> List[JobPosting]:
        """Apply-URL discovery, then fetch and parse every detail page"""
        result = self.fetch_apply_urls(criteria)
        accumulator = self._accumulator(criteria)
        for index, url in enumerate(result.urls):
            if self.cancel_event.is_set():
                logger.info("Cancelled, stopping detail fetches")
                break
            if index:
                self.sleep(self.config.get_request_delay())
            html = self._http().fetch_html(url)
            if html is None:
                continue
            try:
                self._process_detail(parse_html(html, url), url, criteria, accumulator)
            except Exception as exc:
                logger.warning("⚠️ Error processing detail page %s: %s", url, exc)
        self.last_report = accumulator.report()
        return accumulator.postings()

    # === Ingest ===

    def scrape_and_save(self, criteria: FilterCriteria, store: JobStore, mode: str = "browser") -> ScrapeReport:
        """Scrape, then hand every valid new posting to `store`"""
        try:
            if mode == "static":
                postings = self.scrape_static(criteria)
            else:
                postings = self.scrape_jobs(criteria)
        except (ScraperError, ValueError) as exc:
            logger.error("❌ Scrape failed: %s", exc)
            return ScrapeReport.failed(str(exc))

        if not postings:
            logger.info("No jobs found")
            return ScrapeReport.empty()

        saved = 0
        for posting in postings:
            if not posting.is_valid():
                continue
            if store.exists(posting.job_page_url):
                logger.info("Already stored, skipping: %s", posting.job_page_url)
                self.metrics.inc("already_stored")
                continue
            try:
                job_id = store.save(posting)
            except Exception as exc:
                logger.warning("⚠️ Failed to save %s: %s", posting.job_page_url, exc)
                continue
            saved += 1
            logger.debug("Saved job %s: %s", job_id, posting.job_page_url)

        self.metrics.inc("saved", saved)
        logger.info("✅ Saved %d of %d job(s)", saved, len(postings))
        return ScrapeReport.completed([p.job_page_url for p in postings], saved)

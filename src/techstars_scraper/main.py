#!/usr/bin/env python3

"""
Techstars Job Scraper - Main Entry Point
apply-urls: list apply URLs; ingest: scrape postings into the JSONL store
"""

import argparse
import json
import logging
import signal
import sys
import threading
from typing import List, Optional

from .config_loader import load_config
from .errors import ScraperError
from .models import FilterCriteria, JobFunction
from .pipeline import ScrapePipeline
from .store import JsonlJobStore


def setup_logging(config) -> None:
    """Configure logging for the application"""
    log_file = config.get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    log_level = getattr(logging, config.get_log_level(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def display_config(config, criteria: FilterCriteria, mode: str) -> None:
    """Print the run parameters"""
    print("\n" + "="*60)
    print("🤖 TECHSTARS JOB SCRAPER")
    print("="*60)

    print(f"\n📋 JOB FUNCTIONS: {', '.join(criteria.job_functions)}")
    if criteria.tags:
        print(f"🏷️  Required tags: {', '.join(criteria.tags)}")
    print(f"🔗 Listing: {config.get_base_url()}")
    print(f"⚙️  Mode: {mode}")

    if mode == "browser":
        print(f"  Headless mode: {config.is_headless()}")
        print(f"  Scroll: max {config.get_max_scroll_attempts()} attempts, "
              f"stop after {config.get_max_no_growth()} stable rounds")
    else:
        print(f"  Request delay: {config.get_request_delay()}s")

    print(f"\n💾 Store: {config.get_store_path()}")
    print("\n" + "="*60 + "\n")


def resolve_job_functions(names: List[str]) -> List[str]:
    """Canonical display names; unknown names are dropped with a warning"""
    logger = logging.getLogger(__name__)
    resolved = []
    for name in names or []:
        function = JobFunction.from_display_name(name)
        if function is None:
            logger.warning("Unknown job function ignored: %s", name)
            print(f"⚠️  Unknown job function ignored: {name}")
            continue
        if function.display_name not in resolved:
            resolved.append(function.display_name)
    return resolved


def install_cancel_handler(event: threading.Event) -> None:
    """First Ctrl-C stops at the next loop boundary; a second one aborts"""

    def handler(signum, frame):
        if event.is_set():
            raise KeyboardInterrupt
        print("\n⚠️  Cancel requested; finishing current step and saving partial results...")
        event.set()

    signal.signal(signal.SIGINT, handler)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Techstars Job Scraper")
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to config YAML",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("apply-urls", "Collect apply URLs from the paginated listing"),
        ("ingest", "Scrape postings and save them to the job store"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--job-function",
            dest="job_functions",
            nargs="+",
            required=True,
            metavar="NAME",
            help='Job function display name, e.g. "Software Engineering"',
        )
        sub.add_argument("--tag", dest="tags", nargs="+", default=[], metavar="TAG",
                         help="Tags every posting must carry")
        if name == "ingest":
            sub.add_argument("--mode", choices=("browser", "static"), default="browser",
                             help="Acquisition mode (default: browser)")
        else:
            sub.add_argument("--all", dest="only_prefixed", action="store_false",
                             help="Include URLs outside the company job-page prefix")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function"""
    args = parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"❌ Error: {e}")
        print("Make sure config/settings.yaml exists!")
        return 1
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        return 1

    setup_logging(config)
    logger = logging.getLogger(__name__)

    job_functions = resolve_job_functions(args.job_functions)
    if not job_functions:
        print("❌ No valid job functions given. Choose from:")
        for function in JobFunction:
            print(f"  - {function.display_name}")
        return 2
    criteria = FilterCriteria(job_functions=job_functions, tags=args.tags)

    cancel_event = threading.Event()
    install_cancel_handler(cancel_event)
    pipeline = ScrapePipeline(config, cancel_event=cancel_event)

    try:
        if args.command == "apply-urls":
            print("\n🚀 Collecting apply URLs...")
            try:
                result = pipeline.fetch_apply_urls(criteria, only_prefixed=args.only_prefixed)
            except ScraperError as e:
                print(f"❌ Error: {e}")
                logger.error("Apply URL discovery failed: %s", e)
                return 1
            print(json.dumps(result.model_dump(), indent=2))
            logger.info("Apply URL discovery complete: %d URLs", result.count)
            return 0

        display_config(config, criteria, args.mode)
        print("🚀 Starting ingest...")
        store = JsonlJobStore(config.get_store_path())
        report = pipeline.scrape_and_save(criteria, store, mode=args.mode)
    finally:
        pipeline.close()
        pipeline.metrics.finish()
        metrics_path = pipeline.metrics.write_json(config.get_metrics_template())
        logger.info("Run metrics written to %s", metrics_path)

    print("\n" + "="*60)
    print("✅ INGEST COMPLETE" if report.success else "❌ INGEST FAILED")
    print("="*60)
    print(f"\n{report.message}")
    print(f"📊 Jobs found: {report.total_jobs_found}")
    print(f"💾 Jobs saved: {report.jobs_saved}")
    print(f"📁 Store: {config.get_store_path()}")
    print("\n" + "="*60 + "\n")

    logger.info("Ingest complete: %d found, %d saved", report.total_jobs_found, report.jobs_saved)
    return 0 if report.success else 1


if __name__ == "__main__":
    sys.exit(main())

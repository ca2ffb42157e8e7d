"""

Configuration loader for the Techstars scraper
Reads and validates settings.yaml, with .env / SCRAPER_* overrides
"""

import yaml
import os
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple
from datetime import datetime
import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "SCRAPER_HEADLESS": "browser.headless",
    "SCRAPER_BASE_URL": "scraping.base_url",
    "SCRAPER_LOG_LEVEL": "logging.level",
}


class ConfigValidationError(ValueError):
    """Raised when configuration fails invariant validation."""
    pass


def _validate_non_negative(value: Any, field: str) -> None:
    """Validate that a numeric value is non-negative."""
    if value is not None and float(value) < 0:
        raise ConfigValidationError(
            f"Invalid config: '{field}' must be non-negative, got {value}"
        )


def _validate_positive(value: Any, field: str) -> None:
    """Validate that a numeric value is positive (> 0)."""
    if value is not None and float(value) <= 0:
        raise ConfigValidationError(
            f"Invalid config: '{field}' must be positive (> 0), got {value}"
        )


def _coerce_env(value: str) -> Any:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    return value.strip()


class ConfigLoader:
    """Loads and validates configuration from YAML file"""

    def __init__(self, config_path: Optional[str] = "config/settings.yaml", env_file: Optional[str] = ".env"):
        self.config_path = Path(config_path) if config_path else None
        self.config: Dict[str, Any] = {}
        if env_file:
            load_dotenv(dotenv_path=Path(env_file), override=False)
        self._load()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigLoader":
        """Build a loader from an in-memory mapping (no file, no .env)"""
        loader = cls.__new__(cls)
        loader.config_path = None
        loader.config = dict(data or {})
        loader._apply_env_overrides()
        loader._validate_invariants()
        return loader

    def _load(self) -> None:
        """Load config from YAML file"""
        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Config file not found: {self.config_path}")

            try:
                with open(self.config_path, 'r') as f:
                    self.config = yaml.safe_load(f) or {}
                logger.info(f"✓ Config loaded from {self.config_path}")
            except yaml.YAMLError as e:
                logger.error(f"Error parsing config file: {e}")
                raise

        self._apply_env_overrides()
        self._validate_invariants()

    def _apply_env_overrides(self) -> None:
        for env_name, key in ENV_OVERRIDES.items():
            raw = os.environ.get(env_name)
            if raw is None or not raw.strip():
                continue
            self._set(key, _coerce_env(raw))
            logger.debug("Config override from %s: %s", env_name, key)

    def _set(self, key: str, value: Any) -> None:
        node = self.config
        parts = key.split('.')
        for part in parts[:-1]:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value

    def _validate_invariants(self) -> None:
        """Validate configuration invariants. Raises ConfigValidationError on failure."""
        # Delays
        _validate_non_negative(self.get('scraping.request_delay'), 'scraping.request_delay')
        _validate_non_negative(self.get('scroll.delay'), 'scroll.delay')
        _validate_non_negative(self.get('scroll.load_more_delay'), 'scroll.load_more_delay')
        _validate_non_negative(self.get('browser.page_load_delay'), 'browser.page_load_delay')

        # Timeouts
        _validate_positive(self.get('browser.page_timeout'), 'browser.page_timeout')
        _validate_positive(self.get('browser.navigation_timeout'), 'browser.navigation_timeout')
        _validate_positive(self.get('http.timeout'), 'http.timeout')

        # Loop bounds
        _validate_positive(self.get('scroll.max_attempts'), 'scroll.max_attempts')
        _validate_positive(self.get('scroll.max_no_growth'), 'scroll.max_no_growth')
        _validate_non_negative(self.get('scraping.max_pages'), 'scraping.max_pages')

        _validate_non_negative(self.get('validator.min_text_length'), 'validator.min_text_length')

        logger.debug("✓ Config invariants validated")

    def get(self, key: str, default: Any = None) -> Any:
        """Get config value by dot notation (e.g., 'scroll.max_attempts')"""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k, default)
            else:
                return default

        return value

    # === Scraping Config ===

    def get_base_url(self) -> str:
        """Get the main listing URL"""
        return self.get('scraping.base_url', 'https://jobs.techstars.com/jobs')

    def get_required_prefix(self) -> str:
        """Get URL prefix that marks a genuine job detail page"""
        return self.get('scraping.required_prefix', 'https://jobs.techstars.com/companies/')

    def get_source_domain(self) -> str:
        return self.get('scraping.source_domain', 'jobs.techstars.com')

    def get_default_job_function(self) -> str:
        """Get labor function used when no job function was requested"""
        return self.get('scraping.default_job_function', 'Software Engineering')

    def get_request_delay(self) -> float:
        """Get delay between page fetches in seconds"""
        return float(self.get('scraping.request_delay', 0.5))

    def get_max_pages(self) -> int:
        """Get max pages to walk in paged mode (0 = until stable)"""
        return int(self.get('scraping.max_pages', 0))

    # === Scroll Config ===

    def get_scroll_delay(self) -> float:
        return float(self.get('scroll.delay', 1.0))

    def get_max_scroll_attempts(self) -> int:
        return int(self.get('scroll.max_attempts', 8))

    def get_max_no_growth(self) -> int:
        """Get consecutive non-growing scroll rounds before stopping"""
        return int(self.get('scroll.max_no_growth', 2))

    def get_load_more_delay(self) -> float:
        return float(self.get('scroll.load_more_delay', 2.0))

    # === Browser Config ===

    def is_headless(self) -> bool:
        """Check if browser should run in headless mode"""
        return bool(self.get('browser.headless', True))

    def get_page_timeout(self) -> int:
        """Get page load timeout in milliseconds"""
        return int(float(self.get('browser.page_timeout', 30)) * 1000)

    def get_navigation_timeout(self) -> int:
        """Get navigation timeout in milliseconds"""
        return int(float(self.get('browser.navigation_timeout', 45)) * 1000)

    def get_page_load_delay(self) -> float:
        """Get settle delay after navigation in seconds"""
        return float(self.get('browser.page_load_delay', 3.0))

    def get_window_size(self) -> Tuple[int, int]:
        return (
            int(self.get('browser.window_width', 1920)),
            int(self.get('browser.window_height', 1080)),
        )

    def get_browser_user_agent(self) -> str:
        return self.get(
            'browser.user_agent',
            'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
            '(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36',
        )

    def use_stealth(self) -> bool:
        """Check if Playwright stealth should be enabled"""
        return bool(self.get('browser.use_stealth', False))

    # === HTTP Config ===

    def get_http_timeout(self) -> float:
        return float(self.get('http.timeout', 30))

    def get_http_user_agent(self) -> str:
        return self.get('http.user_agent', self.get_browser_user_agent())

    # === Validator Config ===

    def get_min_text_length(self) -> int:
        return int(self.get('validator.min_text_length', 50))

    def get_validator_denylist(self) -> Optional[List[str]]:
        """Get navigation terms (None = built-in list)"""
        return self.get('validator.denylist')

    def get_validator_allowlist(self) -> Optional[List[str]]:
        """Get job-signal terms (None = built-in list)"""
        return self.get('validator.allowlist')

    def get_selectors_file(self) -> Optional[Path]:
        path = self.get('selectors_file', '')
        return Path(path) if path else None

    # === Output Config ===

    def get_store_path(self) -> Path:
        return Path(self.get('output.store_file', 'output/jobs.jsonl'))

    def get_metrics_template(self) -> str:
        return self.get('output.metrics_file', 'output/run_metrics_{timestamp}.json')

    # === Logging Config ===

    def get_log_level(self) -> str:
        """Get logging level"""
        return str(self.get('logging.level', 'INFO')).upper()

    def get_log_file(self) -> Path:
        """Get log file path with timestamp"""
        template = self.get('logging.log_file', 'logs/scraper_{timestamp}.log')
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = template.replace('{timestamp}', timestamp)
        return Path(filename)

    def __repr__(self) -> str:
        return f"<Config: base_url={self.get_base_url()}, headless={self.is_headless()}>"


# Convenience function
def load_config(config_path: str = "config/settings.yaml") -> ConfigLoader:
    """Load configuration from file"""
    return ConfigLoader(config_path)

"""
Job store - append-only JSON-lines persistence keyed by job page URL
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Protocol

from .accumulator import normalize_url
from .errors import DuplicateJobError
from .models import JobPosting

logger = logging.getLogger(__name__)


class JobStore(Protocol):
    def exists(self, url: str) -> bool: ...

    def save(self, posting: JobPosting) -> int: ...


class JsonlJobStore:
    """Persists postings as one JSON object per line; IDs are sequential"""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.ids: Dict[str, int] = {}
        self._last_id = 0
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        payload = json.loads(line)
                    except json.JSONDecodeError:
                        logger.warning("Skipping invalid store line")
                        continue
                    url = payload.get("job_page_url")
                    job_id = int(payload.get("id") or 0)
                    if url:
                        self.ids[normalize_url(url)] = job_id
                    self._last_id = max(self._last_id, job_id)
        except OSError as exc:
            logger.warning("Failed to read job store: %s", exc)

        logger.info("Loaded %d stored job(s) from %s", len(self.ids), self.path)

    def exists(self, url: str) -> bool:
        return normalize_url(url) in self.ids

    def save(self, posting: JobPosting) -> int:
        key = normalize_url(posting.job_page_url)
        if key in self.ids:
            raise DuplicateJobError(f"Job already stored: {posting.job_page_url}")

        job_id = self._last_id + 1
        payload = {"id": job_id, "saved_at": datetime.now(timezone.utc).isoformat()}
        payload.update(posting.model_dump())

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False) + "\n")

        self._last_id = job_id
        self.ids[key] = job_id
        return job_id

    def __len__(self) -> int:
        return len(self.ids)

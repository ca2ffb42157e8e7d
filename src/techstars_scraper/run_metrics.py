"""
Run metrics - per-run counters for the scrape funnel
cards seen -> function match -> URL admitted -> posting accepted -> saved
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_METRICS_TEMPLATE = "output/run_metrics_{timestamp}.json"


def _stamp() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def _iso_utc() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class RunMetrics:
    """Funnel counters plus a few loader gauges for one scrape run"""

    source: str = "techstars"
    mode: str = "browser"
    run_id: str = field(default_factory=_stamp)
    started_at: str = field(default_factory=_iso_utc)
    ended_at: Optional[str] = None
    counters: Dict[str, int] = field(default_factory=dict)
    gauges: Dict[str, Any] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)
    _clock_start: float = field(default_factory=time.monotonic, repr=False)
    _elapsed: Optional[float] = field(default=None, repr=False)

    def inc(self, key: str, amount: int = 1) -> None:
        self.counters[key] = self.counters.get(key, 0) + amount

    def get(self, key: str) -> int:
        return self.counters.get(key, 0)

    def set_gauge(self, key: str, value: Any) -> None:
        self.gauges[key] = value

    def record_event(self, kind: str, **data: Any) -> None:
        """Append a timestamped event; None values are left out"""
        event = {"at": _iso_utc(), "kind": kind}
        for key, value in data.items():
            if value is not None:
                event[key] = value
        self.events.append(event)

    def elapsed(self) -> float:
        if self._elapsed is not None:
            return self._elapsed
        return time.monotonic() - self._clock_start

    def finish(self) -> None:
        # Idempotent: the CLI calls this from a finally block
        if self.ended_at is not None:
            return
        self._elapsed = time.monotonic() - self._clock_start
        self.ended_at = _iso_utc()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "mode": self.mode,
            "run_id": self.run_id,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "elapsed_seconds": round(self.elapsed(), 3),
            "counters": dict(sorted(self.counters.items())),
            "gauges": dict(self.gauges),
            "events": list(self.events),
        }

    def write_json(self, template: Optional[str] = None) -> Path:
        """Write the metrics next to the run's other output; `{timestamp}` is the run id"""
        path = Path((template or DEFAULT_METRICS_TEMPLATE).replace("{timestamp}", self.run_id))
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.debug("Metrics written: %s", path)
        return path

"""Per-run counters, passed explicitly through a sync run."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


@dataclass(slots=True)
class RunCounters:
    fetched: int = 0
    relevant: int = 0
    processed: int = 0
    extraction_failures: int = 0
    synced: int = 0
    created: int = 0
    updated: int = 0
    duplicates: int = 0
    errors: int = 0
    error_details: list[dict[str, str]] = field(default_factory=list)
    started_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None

    def record_error(self, kind: str, message: str, message_id: str = "") -> None:
        self.errors += 1
        self.error_details.append(
            {
                "type": kind,
                "message": message,
                "message_id": message_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    def finalize(self) -> "RunCounters":
        self.finished_at = time.monotonic()
        return self

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return max(0.0, end - self.started_at)

    def stats(self) -> dict[str, int]:
        return {
            "fetched": self.fetched,
            "processed": self.processed,
            "synced": self.synced,
            "duplicates": self.duplicates,
            "errors": self.errors,
        }

    def summary(self) -> dict[str, Any]:
        duration = self.duration_seconds
        success_rate = round(self.synced / self.processed * 100.0, 1) if self.processed else 0.0
        avg_ms = int(duration * 1000 / self.processed) if self.processed else 0
        return {
            "emails_fetched": self.fetched,
            "emails_relevant": self.relevant,
            "emails_processed": self.processed,
            "extraction_failures": self.extraction_failures,
            "records_synced": self.synced,
            "records_created": self.created,
            "records_updated": self.updated,
            "duplicates_skipped": self.duplicates,
            "errors": self.errors,
            "success_rate_pct": success_rate,
            "duration_s": round(duration, 2),
            "avg_ms_per_email": avg_ms,
        }

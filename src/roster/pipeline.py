# ABOUTME: Runs one ingestion batch end to end: parse, normalize, score, and merge.
# ABOUTME: Reports which identities were added or updated so callers can notify users.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .merge import merge_records
from .normalizer import IngestionWarning, normalize_rows_with_warnings
from .schemas import PerformanceRecord, WeightConfiguration


@dataclass
class BatchOutcome:
    records_parsed: int
    added: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    warnings: List[IngestionWarning] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.records_parsed == 0


def ingest_batch(
    roster: List[PerformanceRecord],
    file_text: str,
    weights: WeightConfiguration,
    now: Optional[datetime] = None,
) -> BatchOutcome:
    """
    Merge one extract into ``roster``. An empty outcome means nothing usable was found
    and the roster is left untouched.
    """

    now = now or datetime.now(timezone.utc)
    result = normalize_rows_with_warnings(file_text, now=now)
    outcome = BatchOutcome(records_parsed=len(result.records), warnings=result.warnings)
    if outcome.is_empty:
        return outcome

    existing = {record.identity for record in roster}
    seen = set()
    for record in result.records:
        if record.identity in seen:
            continue
        seen.add(record.identity)
        if record.identity in existing:
            outcome.updated.append(record.identity)
        else:
            outcome.added.append(record.identity)

    merge_records(roster, result.records, weights, now=now)
    return outcome


def ingest_file(
    roster: List[PerformanceRecord],
    path: Path,
    weights: WeightConfiguration,
    now: Optional[datetime] = None,
) -> BatchOutcome:
    text = Path(path).read_text(encoding="utf-8-sig")
    return ingest_batch(roster, text, weights, now=now)

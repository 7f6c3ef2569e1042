# ABOUTME: Reconciles freshly normalized records against an existing roster by identity.
# ABOUTME: Updates matches in place, extends bounded score history, and appends new identities.

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from .schemas import HISTORY_WINDOW, PerformanceRecord, ScorePoint, WeightConfiguration
from .scoring import compute_academic_points, compute_risk_score, rescore_roster, score_record

__all__ = ["merge_records", "rescore_roster"]


def merge_records(
    roster: List[PerformanceRecord],
    incoming: Iterable[PerformanceRecord],
    weights: WeightConfiguration,
    now: Optional[datetime] = None,
) -> List[PerformanceRecord]:
    """
    Upsert ``incoming`` into ``roster`` and return the same (mutated) list.

    The roster has a single owner; callers must not merge into it concurrently.
    Duplicate identities inside one batch resolve last-write-wins in batch order.
    """

    now = now or datetime.now(timezone.utc)
    index: Dict[str, int] = {record.identity: pos for pos, record in enumerate(roster)}
    incoming = list(incoming)

    # History must stay time-ordered; reject the batch before touching any record.
    for record in incoming:
        position = index.get(record.identity)
        if position is None:
            continue
        trail = roster[position].historical_scores
        if trail and now < trail[-1].timestamp:
            raise ValueError(
                f"Merge time {now.isoformat()} is earlier than the last history entry "
                f"{trail[-1].timestamp.isoformat()} for '{record.identity}'."
            )

    for record in incoming:
        position = index.get(record.identity)
        if position is None:
            score_record(record, weights)
            record.historical_scores = list(record.historical_scores)[-HISTORY_WINDOW:]
            index[record.identity] = len(roster)
            roster.append(record)
            continue

        existing = roster[position]
        existing.replace_from(record)
        existing.risk_score = compute_risk_score(existing, weights)
        existing.academic_points = compute_academic_points(existing)
        existing.append_history(ScorePoint(timestamp=now, score=existing.risk_score))

    return roster

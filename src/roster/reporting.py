# ABOUTME: Derives report-ready views of the roster: risk bands, top-at-risk lists, cohort summaries.
# ABOUTME: Read-only with respect to records; exports tabular frames for CSV or parquet output.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .schemas import Cohort, PerformanceRecord, ServiceStatus
from .scoring import RiskThresholds, round_half_up


class RiskBandThresholds:
    MODERATE = 20
    AT_RISK = 40
    CRITICAL = 70


class RiskBand(str, Enum):
    LOW = "Low Risk"
    MODERATE = "Moderate"
    AT_RISK = "At Risk"
    CRITICAL = "Critical"


@dataclass
class CohortSummary:
    cohort: Optional[Cohort]
    record_count: int
    mean_risk: int
    mean_academic_points: float
    critical_count: int


def risk_band(score: int) -> RiskBand:
    if score > RiskBandThresholds.CRITICAL:
        return RiskBand.CRITICAL
    if score > RiskBandThresholds.AT_RISK:
        return RiskBand.AT_RISK
    if score > RiskBandThresholds.MODERATE:
        return RiskBand.MODERATE
    return RiskBand.LOW


def failing_flags(record: PerformanceRecord) -> int:
    """Subjects below a passing mark, plus one when the service component is behind."""
    flags = sum(1 for s in record.subject_entries if s.current_mark < RiskThresholds.PASSING_MARK)
    if record.core_progress.service_status is ServiceStatus.BEHIND:
        flags += 1
    return flags


def _in_cohort(roster: Sequence[PerformanceRecord], cohort: Optional[Cohort]) -> List[PerformanceRecord]:
    return [r for r in roster if cohort is None or r.cohort is cohort]


def top_at_risk(
    roster: Sequence[PerformanceRecord], count: int = 10, cohort: Optional[Cohort] = None
) -> List[PerformanceRecord]:
    ranked = sorted(_in_cohort(roster, cohort), key=lambda r: r.risk_score, reverse=True)
    return ranked[:count]


def filter_roster(
    roster: Sequence[PerformanceRecord], query: str = "", cohort: Optional[Cohort] = None
) -> List[PerformanceRecord]:
    """Match the query against names (case-insensitive) or identities; highest risk first."""
    needle = (query or "").lower()
    matches = [
        r for r in _in_cohort(roster, cohort) if needle in r.display_name.lower() or (query or "") in r.identity
    ]
    return sorted(matches, key=lambda r: r.risk_score, reverse=True)


def cohort_summary(roster: Sequence[PerformanceRecord], cohort: Optional[Cohort] = None) -> CohortSummary:
    members = _in_cohort(roster, cohort)
    if not members:
        return CohortSummary(cohort, 0, 0, 0.0, 0)
    mean_risk = sum(r.risk_score for r in members) / len(members)
    mean_points = sum(r.academic_points for r in members) / len(members)
    return CohortSummary(
        cohort=cohort,
        record_count=len(members),
        mean_risk=round_half_up(mean_risk),
        mean_academic_points=round(mean_points, 1),
        critical_count=sum(1 for r in members if risk_band(r.risk_score) is RiskBand.CRITICAL),
    )


def roster_to_frame(roster: Sequence[PerformanceRecord]) -> pd.DataFrame:
    rows: List[Dict] = []
    for r in roster:
        rows.append(
            {
                "identity": r.identity,
                "display_name": r.display_name,
                "cohort": r.cohort.value,
                "attendance_rate": r.attendance_rate,
                "missed_sessions": r.missed_sessions,
                "subject_count": len(r.subject_entries),
                "risk_score": r.risk_score,
                "risk_band": risk_band(r.risk_score).value,
                "academic_points": r.academic_points,
                "failing_flags": failing_flags(r),
                "last_updated": r.last_updated,
                "history_length": len(r.historical_scores),
            }
        )
    columns = [
        "identity",
        "display_name",
        "cohort",
        "attendance_rate",
        "missed_sessions",
        "subject_count",
        "risk_score",
        "risk_band",
        "academic_points",
        "failing_flags",
        "last_updated",
        "history_length",
    ]
    return pd.DataFrame(rows, columns=columns)

# ABOUTME: Computes the weighted risk score and the academic-points aggregate per record.
# ABOUTME: Both indicators are pure; only the risk score reads the weight configuration.

from __future__ import annotations

import math
from typing import Iterable

from .schemas import (
    ComponentStatus,
    PerformanceRecord,
    ServiceStatus,
    TaskCategory,
    TaskStatus,
    Trend,
    WeightConfiguration,
)


class RiskThresholds:
    ATTENDANCE_TARGET = 95.0
    ATTENDANCE_FACTOR = 5
    PASSING_MARK = 4
    LOW_GRADE_FACTOR = 15
    DOWN_TREND_PENALTY = 10
    IA_RATIO_FLOOR = 0.4
    IA_PENALTY = 20
    MISSING_WORK_PENALTY = 12
    ESSAY_AT_RISK_PENALTY = 35
    THEORY_AT_RISK_PENALTY = 30
    SERVICE_BEHIND_PENALTY = 25
    MAX_RISK = 100


MIN_MARK = 1
MAX_MARK = 7
MAX_ACADEMIC_POINTS = 45


def compute_risk_score(record: PerformanceRecord, weights: WeightConfiguration) -> int:
    """
    Weighted, additive risk estimate clamped to 0-100 and rounded half-up.

    Contributions:
    - attendance deficit below the 95% target
    - per subject: marks below 4 and a downward trend
    - per task: weak internal assessments and missing work
    - core components at risk or behind
    """

    score = max(0.0, RiskThresholds.ATTENDANCE_TARGET - record.attendance_rate)
    score *= RiskThresholds.ATTENDANCE_FACTOR * weights.attendance

    missing_count = 0
    for subject in record.subject_entries:
        mark = subject.current_mark
        if 0 < mark < RiskThresholds.PASSING_MARK:
            score += (RiskThresholds.PASSING_MARK - mark) * RiskThresholds.LOW_GRADE_FACTOR * weights.low_grade
        if subject.trend is Trend.DOWN:
            score += RiskThresholds.DOWN_TREND_PENALTY * weights.trend
        for task in subject.task_entries:
            if task.status is TaskStatus.MISSING:
                missing_count += 1
            if (
                task.category is TaskCategory.INTERNAL_ASSESSMENT
                and task.max_score > 0
                and task.score / task.max_score < RiskThresholds.IA_RATIO_FLOOR
            ):
                score += RiskThresholds.IA_PENALTY * weights.formative_assessment_risk

    score += missing_count * RiskThresholds.MISSING_WORK_PENALTY * weights.missing_work

    core = record.core_progress
    if core.extended_essay_status is ComponentStatus.AT_RISK:
        score += RiskThresholds.ESSAY_AT_RISK_PENALTY * weights.core_risk
    if core.theory_status is ComponentStatus.AT_RISK:
        score += RiskThresholds.THEORY_AT_RISK_PENALTY * weights.core_risk
    if core.service_status is ServiceStatus.BEHIND:
        score += RiskThresholds.SERVICE_BEHIND_PENALTY * weights.core_risk

    return round_half_up(min(float(RiskThresholds.MAX_RISK), max(0.0, score)))


def compute_academic_points(record: PerformanceRecord) -> int:
    """Sum of 1-7 subject marks plus core points, capped at 45. Ignores risk weights."""
    total = sum(
        subject.current_mark
        for subject in record.subject_entries
        if MIN_MARK <= subject.current_mark <= MAX_MARK
    )
    total += record.core_progress.core_points
    return round_half_up(min(float(MAX_ACADEMIC_POINTS), total))


def score_record(record: PerformanceRecord, weights: WeightConfiguration) -> PerformanceRecord:
    record.risk_score = compute_risk_score(record, weights)
    record.academic_points = compute_academic_points(record)
    return record


def rescore_roster(roster: Iterable[PerformanceRecord], weights: WeightConfiguration) -> None:
    """Recompute derived indicators in place after a weight change; history is left alone."""
    for record in roster:
        score_record(record, weights)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

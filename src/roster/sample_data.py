# ABOUTME: Provides a seeded baseline roster and a downloadable extract template.
# ABOUTME: Records are rebuilt on every call so callers can mutate them freely.

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import List, Optional

from .schemas import (
    DEFAULT_WEIGHTS,
    Cohort,
    ComponentStatus,
    CoreProgress,
    Level,
    PerformanceRecord,
    ScorePoint,
    ServiceStatus,
    SubjectEntry,
    TaskCategory,
    TaskEntry,
    TaskStatus,
    Trend,
    WeightConfiguration,
)
from .scoring import rescore_roster

TEMPLATE_HEADER = "id,name,yearGroup,attendance,lessonsMissed,grades,core"


def _day(month: int) -> datetime:
    return datetime(2024, month, 1, tzinfo=timezone.utc)


def _history(*points) -> List[ScorePoint]:
    return [ScorePoint(timestamp=_day(month), score=score) for month, score in points]


def sample_roster(weights: Optional[WeightConfiguration] = None) -> List[PerformanceRecord]:
    roster = [
        PerformanceRecord(
            identity="2024001",
            display_name="Alex Johnson",
            cohort=Cohort.DP2,
            attendance_rate=88.0,
            missed_sessions=24,
            subject_entries=[
                SubjectEntry(
                    "Math AA",
                    Level.HL,
                    3,
                    4,
                    Trend.DOWN,
                    [
                        TaskEntry("Calculus Exploration IA", 8, 20, TaskCategory.INTERNAL_ASSESSMENT, TaskStatus.SUBMITTED),
                        TaskEntry("Statistics Quiz", 0, 20, TaskCategory.SUMMATIVE, TaskStatus.MISSING),
                    ],
                ),
                SubjectEntry(
                    "Physics",
                    Level.HL,
                    4,
                    4,
                    Trend.STABLE,
                    [TaskEntry("Internal Assessment Draft", 12, 24, TaskCategory.INTERNAL_ASSESSMENT, TaskStatus.SUBMITTED)],
                ),
            ],
            core_progress=CoreProgress(ComponentStatus.AT_RISK, ComponentStatus.IN_PROGRESS, ServiceStatus.BEHIND, 1),
            last_updated=_day(5),
            historical_scores=_history((3, 45), (4, 60), (5, 72)),
        ),
        PerformanceRecord(
            identity="2024002",
            display_name="Sarah Chen",
            cohort=Cohort.DP2,
            attendance_rate=98.0,
            missed_sessions=4,
            subject_entries=[
                SubjectEntry("English L&L", Level.HL, 7, 7, Trend.STABLE),
                SubjectEntry("Economics", Level.HL, 6, 7, Trend.UP),
            ],
            core_progress=CoreProgress(ComponentStatus.SUBMITTED, ComponentStatus.SUBMITTED, ServiceStatus.COMPLETE, 3),
            last_updated=_day(5),
            historical_scores=_history((3, 5), (4, 4), (5, 5)),
        ),
        PerformanceRecord(
            identity="2025003",
            display_name="Marcus Aurelius",
            cohort=Cohort.DP1,
            attendance_rate=75.0,
            missed_sessions=52,
            subject_entries=[
                SubjectEntry(
                    "Chemistry",
                    Level.HL,
                    2,
                    3,
                    Trend.DOWN,
                    [TaskEntry("Lab Report 1", 0, 20, TaskCategory.SUMMATIVE, TaskStatus.MISSING)],
                ),
                SubjectEntry("Biology", Level.SL, 3, 4, Trend.STABLE),
            ],
            core_progress=CoreProgress(ComponentStatus.NOT_STARTED, ComponentStatus.AT_RISK, ServiceStatus.BEHIND, 0),
            last_updated=_day(5),
            historical_scores=_history((3, 80), (4, 88), (5, 92)),
        ),
        PerformanceRecord(
            identity="2025005",
            display_name="Toby Wright",
            cohort=Cohort.DP1,
            attendance_rate=84.0,
            missed_sessions=32,
            subject_entries=[
                SubjectEntry(
                    "Math AI",
                    Level.SL,
                    3,
                    4,
                    Trend.DOWN,
                    [TaskEntry("Unit Test 1", 40, 100, TaskCategory.SUMMATIVE, TaskStatus.SUBMITTED)],
                ),
            ],
            core_progress=CoreProgress(ComponentStatus.NOT_STARTED, ComponentStatus.IN_PROGRESS, ServiceStatus.ON_TRACK, 1),
            last_updated=_day(5),
            historical_scores=_history((5, 55)),
        ),
        PerformanceRecord(
            identity="2025007",
            display_name="Liam O'Connor",
            cohort=Cohort.DP1,
            attendance_rate=89.0,
            missed_sessions=22,
            subject_entries=[
                SubjectEntry("Geography", Level.HL, 4, 5, Trend.STABLE),
                SubjectEntry(
                    "Business",
                    Level.HL,
                    4,
                    4,
                    Trend.DOWN,
                    [TaskEntry("Marketing IA", 5, 25, TaskCategory.INTERNAL_ASSESSMENT, TaskStatus.SUBMITTED)],
                ),
            ],
            core_progress=CoreProgress(ComponentStatus.IN_PROGRESS, ComponentStatus.IN_PROGRESS, ServiceStatus.BEHIND, 1),
            last_updated=_day(5),
            historical_scores=_history((5, 42)),
        ),
    ]
    rescore_roster(roster, weights or DEFAULT_WEIGHTS)
    return roster


def template_csv() -> str:
    """Header plus one sample row whose JSON columns are CSV-quoted with doubled quotes."""
    grades = [
        {
            "subject": "Math AA",
            "level": "HL",
            "currentMark": 3,
            "trend": "down",
            "assignments": [{"name": "IA Draft", "score": 5, "maxScore": 20, "type": "IA", "status": "Missing"}],
        }
    ]
    core = {"ee": "At Risk", "tok": "In Progress", "cas": "Behind", "points": 1}
    row = "2025101,Sample Student,DP1,92,24,{},{}".format(_csv_quote(grades), _csv_quote(core))
    return TEMPLATE_HEADER + "\n" + row


def _csv_quote(value) -> str:
    return '"' + json.dumps(value, separators=(",", ":")).replace('"', '""') + '"'

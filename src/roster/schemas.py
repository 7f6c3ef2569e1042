# ABOUTME: Defines canonical roster structures produced by the normalizer.
# ABOUTME: Centralizes categorical enums, sub-record value objects, and weight settings.

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import List

HISTORY_WINDOW = 10
UNKNOWN_STUDENT = "Unknown Student"


class _LabelledEnum(str, Enum):
    """String enum that resolves free text case-insensitively, falling back to UNKNOWN."""

    @classmethod
    def parse(cls, raw):
        if isinstance(raw, cls):
            return raw
        text = " ".join(str(raw or "").split()).lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.UNKNOWN


class Cohort(str, Enum):
    DP1 = "DP1 (Y11)"
    DP2 = "DP2 (Y12)"


class Level(_LabelledEnum):
    HL = "HL"
    SL = "SL"
    UNKNOWN = "unknown"


class Trend(_LabelledEnum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"
    UNKNOWN = "unknown"


class TaskCategory(_LabelledEnum):
    INTERNAL_ASSESSMENT = "IA"
    SUMMATIVE = "Summative"
    CORE = "Core"
    UNKNOWN = "unknown"


class TaskStatus(_LabelledEnum):
    SUBMITTED = "Submitted"
    MISSING = "Missing"
    LATE = "Late"
    PENDING = "Pending"
    UNKNOWN = "unknown"


class ComponentStatus(_LabelledEnum):
    """Progress of the extended essay and theory of knowledge components."""

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    SUBMITTED = "Submitted"
    AT_RISK = "At Risk"
    UNKNOWN = "unknown"


class ServiceStatus(_LabelledEnum):
    BEHIND = "Behind"
    ON_TRACK = "On Track"
    COMPLETE = "Complete"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TaskEntry:
    label: str
    score: float
    max_score: float
    category: TaskCategory
    status: TaskStatus


@dataclass(frozen=True)
class SubjectEntry:
    label: str
    level: Level
    current_mark: float  # nominally 1-7
    predicted_mark: float
    trend: Trend
    task_entries: List[TaskEntry] = field(default_factory=list)


@dataclass(frozen=True)
class CoreProgress:
    extended_essay_status: ComponentStatus
    theory_status: ComponentStatus
    service_status: ServiceStatus
    core_points: int  # 0-3

    @classmethod
    def baseline(cls) -> "CoreProgress":
        return cls(
            extended_essay_status=ComponentStatus.NOT_STARTED,
            theory_status=ComponentStatus.NOT_STARTED,
            service_status=ServiceStatus.ON_TRACK,
            core_points=0,
        )


@dataclass(frozen=True)
class ScorePoint:
    timestamp: datetime
    score: int


@dataclass
class PerformanceRecord:
    """Canonical roster entry. Derived fields are recomputed, never authoritative."""

    identity: str
    display_name: str
    cohort: Cohort
    attendance_rate: float
    missed_sessions: int
    subject_entries: List[SubjectEntry]
    core_progress: CoreProgress
    last_updated: datetime
    risk_score: int = 0
    academic_points: int = 0
    historical_scores: List[ScorePoint] = field(default_factory=list)

    def replace_from(self, other: "PerformanceRecord") -> None:
        """Overwrite every field with ``other``'s except the score history."""
        for f in fields(self):
            if f.name == "historical_scores":
                continue
            setattr(self, f.name, getattr(other, f.name))

    def append_history(self, point: ScorePoint, window: int = HISTORY_WINDOW) -> None:
        if self.historical_scores and point.timestamp < self.historical_scores[-1].timestamp:
            raise ValueError(f"History entry at {point.timestamp.isoformat()} would precede the latest entry.")
        self.historical_scores = (list(self.historical_scores) + [point])[-window:]


@dataclass(frozen=True)
class WeightConfiguration:
    """Multipliers applied to each risk contribution. Values are not range-checked."""

    attendance: float = 0.25
    low_grade: float = 0.35
    core_risk: float = 0.15
    trend: float = 0.1
    formative_assessment_risk: float = 0.1
    missing_work: float = 0.05


DEFAULT_WEIGHTS = WeightConfiguration()

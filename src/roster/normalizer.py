# ABOUTME: Builds canonical performance records from raw delimited extract text.
# ABOUTME: Coerces numbers, maps categorical text, and decodes embedded JSON columns safely.

from __future__ import annotations

import json
import logging
import math
import random
import re
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple

from .row_parser import parse_row
from .schemas import (
    UNKNOWN_STUDENT,
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
)
from .scoring import compute_academic_points

logger = logging.getLogger(__name__)

DEFAULT_ATTENDANCE = 100.0
DEFAULT_MISSED_SESSIONS = 0
MIN_COLUMNS = 2
LATER_COHORT_TOKENS = ("dp2", "y12", "12")
IDENTITY_PREFIX = "S-"
IDENTITY_ALPHABET = string.ascii_lowercase + string.digits
SUBJECTS_COLUMN = "subject_entries"
CORE_COLUMN = "core_progress"

_NON_NUMERIC = re.compile(r"[^0-9.]")
_DECIMAL_PREFIX = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_INTEGER_PREFIX = re.compile(r"\d+")
_ROW_SPLIT = re.compile(r"\r?\n")


@dataclass(frozen=True)
class IngestionWarning:
    row_index: int
    display_name: str
    column: str
    message: str


@dataclass
class NormalizationResult:
    records: List[PerformanceRecord] = field(default_factory=list)
    warnings: List[IngestionWarning] = field(default_factory=list)


def normalize_rows(
    file_text: str,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> List[PerformanceRecord]:
    """
    Parse an extract into unscored records, preserving row order.

    The first non-blank row is a header. Rows with too few fields are skipped;
    a malformed embedded column degrades to its default instead of dropping the row.
    """

    return normalize_rows_with_warnings(file_text, now=now, rng=rng).records


def normalize_rows_with_warnings(
    file_text: str,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> NormalizationResult:
    now = now or datetime.now(timezone.utc)
    rng = rng or random.Random()
    result = NormalizationResult()

    rows = [row for row in _ROW_SPLIT.split(file_text or "") if row.strip()]
    if len(rows) < 2:
        return result

    for row_index in range(1, len(rows)):
        cols = parse_row(rows[row_index])
        if len(cols) < MIN_COLUMNS:
            continue
        cols = cols + [""] * (7 - len(cols))
        identity, name, cohort_raw, attendance_raw, missed_raw, subjects_raw, core_raw = cols[:7]
        display_name = name or UNKNOWN_STUDENT

        subject_entries: List[SubjectEntry] = []
        decoded, error = _decode_embedded(subjects_raw)
        if error is not None:
            _record_decode_failure(result, row_index, display_name, SUBJECTS_COLUMN, error)
        elif decoded is not None:
            subject_entries = _to_subject_entries(decoded)

        core_progress = CoreProgress.baseline()
        decoded, error = _decode_embedded(core_raw)
        if error is not None:
            _record_decode_failure(result, row_index, display_name, CORE_COLUMN, error)
        elif decoded is not None:
            core_progress = _to_core_progress(decoded)

        record = PerformanceRecord(
            identity=identity or _synthesize_identity(rng),
            display_name=display_name,
            cohort=normalize_cohort(cohort_raw),
            attendance_rate=coerce_attendance(attendance_raw),
            missed_sessions=coerce_missed_sessions(missed_raw),
            subject_entries=subject_entries,
            core_progress=core_progress,
            last_updated=now,
            risk_score=0,
            historical_scores=[ScorePoint(timestamp=now, score=0)],
        )
        record.academic_points = compute_academic_points(record)
        result.records.append(record)

    return result


def normalize_cohort(raw: Optional[str]) -> Cohort:
    lower = str(raw or "").lower()
    if any(token in lower for token in LATER_COHORT_TOKENS):
        return Cohort.DP2
    return Cohort.DP1


def coerce_attendance(raw: Optional[str]) -> float:
    cleaned = _NON_NUMERIC.sub("", str(raw or ""))
    match = _DECIMAL_PREFIX.match(cleaned)
    if not match:
        return DEFAULT_ATTENDANCE
    return float(match.group(0))


def coerce_missed_sessions(raw: Optional[str]) -> int:
    cleaned = _NON_NUMERIC.sub("", str(raw or ""))
    match = _INTEGER_PREFIX.match(cleaned)
    if not match:
        return DEFAULT_MISSED_SESSIONS
    return int(match.group(0))


def unwrap_embedded(raw: str) -> Sequence[str]:
    """
    Candidate JSON texts for an embedded column, most likely first.

    A column may arrive already unquoted, or wrapped in one more layer of quotes
    with its internal quotes doubled.
    """

    undoubled = raw.replace('""', '"')
    if len(raw) >= 2 and raw.startswith('"') and raw.endswith('"'):
        return [raw[1:-1].replace('""', '"'), raw]
    if undoubled != raw:
        return [raw, undoubled]
    return [raw]


def _decode_embedded(raw: Optional[str]) -> Tuple[Any, Optional[str]]:
    text = (raw or "").strip()
    if not text or text == '""':
        return None, None
    error = None
    for candidate in unwrap_embedded(text):
        try:
            return json.loads(candidate), None
        except (ValueError, RecursionError) as exc:
            error = error or str(exc)
    return None, error


def _record_decode_failure(
    result: NormalizationResult, row_index: int, display_name: str, column: str, message: str
) -> None:
    logger.warning("JSON error in row %d (%s), column %s: %s", row_index, display_name, column, message)
    result.warnings.append(
        IngestionWarning(row_index=row_index, display_name=display_name, column=column, message=message)
    )


def _to_subject_entries(value: Any) -> List[SubjectEntry]:
    if not isinstance(value, list):
        return []
    entries = []
    for item in value:
        if not isinstance(item, dict):
            logger.debug("Skipping non-object subject entry: %r", item)
            continue
        assignments = item.get("assignments")
        tasks = [_to_task_entry(a) for a in assignments if isinstance(a, dict)] if isinstance(assignments, list) else []
        entries.append(
            SubjectEntry(
                label=_to_text(item.get("subject")),
                level=Level.parse(item.get("level")),
                current_mark=_to_number(item.get("currentMark")),
                predicted_mark=_to_number(item.get("predictedGrade")),
                trend=Trend.parse(item.get("trend")),
                task_entries=tasks,
            )
        )
    return entries


def _to_task_entry(value: dict) -> TaskEntry:
    return TaskEntry(
        label=_to_text(value.get("name")),
        score=_to_number(value.get("score")),
        max_score=_to_number(value.get("maxScore")),
        category=TaskCategory.parse(value.get("type")),
        status=TaskStatus.parse(value.get("status")),
    )


def _to_core_progress(value: Any) -> CoreProgress:
    if not isinstance(value, dict):
        return CoreProgress.baseline()
    baseline = CoreProgress.baseline()
    points = int(round(_to_number(value.get("points"))))
    return CoreProgress(
        extended_essay_status=ComponentStatus.parse(value["ee"]) if "ee" in value else baseline.extended_essay_status,
        theory_status=ComponentStatus.parse(value["tok"]) if "tok" in value else baseline.theory_status,
        service_status=ServiceStatus.parse(value["cas"]) if "cas" in value else baseline.service_status,
        core_points=min(3, max(0, points)),
    )


def _to_number(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, (dict, list)):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return number if math.isfinite(number) else default


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _synthesize_identity(rng: random.Random) -> str:
    return IDENTITY_PREFIX + "".join(rng.choices(IDENTITY_ALPHABET, k=5))

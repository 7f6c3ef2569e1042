# ABOUTME: Validates normalization of raw extracts into canonical performance records.
# ABOUTME: Ensures defaults, categorical mapping, and graceful embedded-JSON degradation.

import logging
import random
import unittest
from datetime import datetime, timezone

from src.roster.normalizer import (
    coerce_attendance,
    coerce_missed_sessions,
    normalize_cohort,
    normalize_rows,
    normalize_rows_with_warnings,
    unwrap_embedded,
)
from src.roster.schemas import (
    Cohort,
    ComponentStatus,
    CoreProgress,
    Level,
    ServiceStatus,
    TaskCategory,
    TaskStatus,
    Trend,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
HEADER = "id,name,yearGroup,attendance,lessonsMissed,grades,core"
JANE_ROW = (
    'S1,Jane Doe,DP2 (Y12),88,24,'
    '"[{""subject"":""Math"",""currentMark"":3,""trend"":""down"",""assignments"":[]}]",'
    '"{""ee"":""At Risk"",""tok"":""In Progress"",""cas"":""Behind"",""points"":1}"'
)


class NormalizeRowsTest(unittest.TestCase):
    def test_reference_row(self) -> None:
        records = normalize_rows(f"{HEADER}\n{JANE_ROW}\n", now=NOW)
        self.assertEqual(1, len(records))
        record = records[0]
        self.assertEqual("S1", record.identity)
        self.assertEqual("Jane Doe", record.display_name)
        self.assertEqual(Cohort.DP2, record.cohort)
        self.assertEqual(88.0, record.attendance_rate)
        self.assertEqual(24, record.missed_sessions)
        self.assertEqual(1, len(record.subject_entries))
        subject = record.subject_entries[0]
        self.assertEqual("Math", subject.label)
        self.assertEqual(3, subject.current_mark)
        self.assertEqual(Trend.DOWN, subject.trend)
        self.assertEqual([], subject.task_entries)
        self.assertEqual(ComponentStatus.AT_RISK, record.core_progress.extended_essay_status)
        self.assertEqual(ComponentStatus.IN_PROGRESS, record.core_progress.theory_status)
        self.assertEqual(ServiceStatus.BEHIND, record.core_progress.service_status)
        self.assertEqual(1, record.core_progress.core_points)
        self.assertEqual(4, record.academic_points)
        self.assertEqual(0, record.risk_score)
        self.assertEqual(NOW, record.last_updated)
        self.assertEqual(1, len(record.historical_scores))
        self.assertEqual(NOW, record.historical_scores[0].timestamp)
        self.assertEqual(0, record.historical_scores[0].score)

    def test_header_only_file_yields_nothing(self) -> None:
        self.assertEqual([], normalize_rows(HEADER + "\n", now=NOW))
        self.assertEqual([], normalize_rows("", now=NOW))

    def test_blank_and_short_rows_are_skipped(self) -> None:
        text = "\r\n".join([HEADER, "   ", "only-one-field", "S9,Kim Lee", ""])
        records = normalize_rows(text, now=NOW)
        self.assertEqual(["S9"], [r.identity for r in records])
        record = records[0]
        self.assertEqual(Cohort.DP1, record.cohort)
        self.assertEqual(100.0, record.attendance_rate)
        self.assertEqual(0, record.missed_sessions)
        self.assertEqual([], record.subject_entries)
        self.assertEqual(CoreProgress.baseline(), record.core_progress)

    def test_row_order_is_preserved(self) -> None:
        text = "\n".join([HEADER, "B,Second", "A,First", "C,Third"])
        self.assertEqual(["B", "A", "C"], [r.identity for r in normalize_rows(text, now=NOW)])

    def test_missing_identity_and_name_are_synthesized(self) -> None:
        records = normalize_rows(f"{HEADER}\n,,DP1,90,2", now=NOW, rng=random.Random(3))
        self.assertEqual(1, len(records))
        self.assertRegex(records[0].identity, r"^S-[a-z0-9]{5}$")
        self.assertEqual("Unknown Student", records[0].display_name)

    def test_malformed_subject_json_keeps_row(self) -> None:
        row = 'S2,Broken Row,DP1,95,0,"[{""subject"": oops}]","{""ee"":""Submitted"",""points"":2}"'
        with self.assertLogs("src.roster.normalizer", level=logging.WARNING) as captured:
            result = normalize_rows_with_warnings(f"{HEADER}\n{row}", now=NOW)
        self.assertEqual(1, len(result.records))
        record = result.records[0]
        self.assertEqual([], record.subject_entries)
        self.assertEqual(ComponentStatus.SUBMITTED, record.core_progress.extended_essay_status)
        self.assertEqual(2, record.core_progress.core_points)
        self.assertEqual(1, len(result.warnings))
        warning = result.warnings[0]
        self.assertEqual(1, warning.row_index)
        self.assertEqual("Broken Row", warning.display_name)
        self.assertEqual("subject_entries", warning.column)
        self.assertIn("Broken Row", captured.output[0])

    def test_malformed_core_json_falls_back_to_baseline(self) -> None:
        row = 'S3,Core Issue,DP2,90,1,"[{""subject"":""Bio"",""currentMark"":5}]","{not json"'
        result = normalize_rows_with_warnings(f"{HEADER}\n{row}", now=NOW)
        record = result.records[0]
        self.assertEqual(CoreProgress.baseline(), record.core_progress)
        self.assertEqual(1, len(record.subject_entries))
        self.assertEqual(5, record.academic_points)
        self.assertEqual(["core_progress"], [w.column for w in result.warnings])

    def test_non_list_subjects_become_empty(self) -> None:
        row = 'S4,Odd Shape,DP1,90,1,"{""subject"":""Bio""}",""'
        record = normalize_rows(f"{HEADER}\n{row}", now=NOW)[0]
        self.assertEqual([], record.subject_entries)
        self.assertEqual(CoreProgress.baseline(), record.core_progress)

    def test_double_wrapped_json_column_is_unwrapped(self) -> None:
        # The column survives CSV unquoting still wrapped in quotes with doubled internals.
        row = 'S5,Wrapped,DP1,90,1,"""[{""""subject"""":""""Art"""",""""currentMark"""":6}]"""'
        record = normalize_rows(f"{HEADER}\n{row}", now=NOW)[0]
        self.assertEqual(["Art"], [s.label for s in record.subject_entries])
        self.assertEqual(6, record.academic_points)

    def test_task_entries_map_categorical_values(self) -> None:
        grades = (
            '"[{""subject"":""Math"",""level"":""sl"",""currentMark"":""4"",""trend"":""sideways"",'
            '""assignments"":[{""name"":""IA"",""score"":5,""maxScore"":20,""type"":""IA"",""status"":""missing""},'
            '{""name"":""Quiz"",""score"":""n/a"",""maxScore"":10,""type"":""Oral"",""status"":""Excused""}]}]"'
        )
        record = normalize_rows(f"{HEADER}\nS6,Tasks,DP1,90,1,{grades},", now=NOW)[0]
        subject = record.subject_entries[0]
        self.assertEqual(Level.SL, subject.level)
        self.assertEqual(4.0, subject.current_mark)
        self.assertEqual(Trend.UNKNOWN, subject.trend)
        first, second = subject.task_entries
        self.assertEqual(TaskCategory.INTERNAL_ASSESSMENT, first.category)
        self.assertEqual(TaskStatus.MISSING, first.status)
        self.assertEqual(0.0, second.score)
        self.assertEqual(TaskCategory.UNKNOWN, second.category)
        self.assertEqual(TaskStatus.UNKNOWN, second.status)

    def test_core_points_are_clamped(self) -> None:
        row = 'S7,Points,DP1,90,1,,"{""points"":9}"'
        record = normalize_rows(f"{HEADER}\n{row}", now=NOW)[0]
        self.assertEqual(3, record.core_progress.core_points)

    def test_oversized_integer_mark_defaults_without_losing_rows(self) -> None:
        huge = "1" + "0" * 400
        row = f'S1,Big,DP1,90,0,"[{{""subject"":""M"",""currentMark"":{huge}}}]",'
        records = normalize_rows(f"{HEADER}\n{row}\nS2,Ok,DP1,90,0,,", now=NOW)
        self.assertEqual(["S1", "S2"], [r.identity for r in records])
        self.assertEqual(0.0, records[0].subject_entries[0].current_mark)
        self.assertEqual(0, records[0].academic_points)

    def test_oversized_integer_points_default_to_zero(self) -> None:
        huge = "9" * 400
        row = f'S1,Big,DP1,90,0,,"{{""ee"":""At Risk"",""points"":{huge}}}"'
        records = normalize_rows(f"{HEADER}\n{row}\nS2,Ok,DP1,90,0,,", now=NOW)
        self.assertEqual(["S1", "S2"], [r.identity for r in records])
        self.assertEqual(0, records[0].core_progress.core_points)
        self.assertEqual(ComponentStatus.AT_RISK, records[0].core_progress.extended_essay_status)

    def test_deeply_nested_column_is_a_decode_failure(self) -> None:
        nested = "[" * 100000 + "]" * 100000
        text = f"{HEADER}\nS1,Deep,DP1,90,0,{nested},\nS2,Ok,DP1,90,0,,"
        with self.assertLogs("src.roster.normalizer", level=logging.WARNING):
            result = normalize_rows_with_warnings(text, now=NOW)
        self.assertEqual(["S1", "S2"], [r.identity for r in result.records])
        self.assertEqual([], result.records[0].subject_entries)
        self.assertEqual([(1, "subject_entries")], [(w.row_index, w.column) for w in result.warnings])


class CoercionTest(unittest.TestCase):
    def test_attendance_strips_non_numeric_characters(self) -> None:
        self.assertEqual(88.5, coerce_attendance("88.5%"))
        self.assertEqual(91.0, coerce_attendance(" 91 pct"))
        self.assertEqual(100.0, coerce_attendance("n/a"))
        self.assertEqual(100.0, coerce_attendance(""))
        self.assertEqual(100.0, coerce_attendance(None))

    def test_missed_sessions_defaults_to_zero(self) -> None:
        self.assertEqual(24, coerce_missed_sessions("24 lessons"))
        self.assertEqual(3, coerce_missed_sessions("3.5"))
        self.assertEqual(0, coerce_missed_sessions("none"))
        self.assertEqual(0, coerce_missed_sessions(None))

    def test_cohort_detection(self) -> None:
        self.assertEqual(Cohort.DP2, normalize_cohort("DP2"))
        self.assertEqual(Cohort.DP2, normalize_cohort("Year 12"))
        self.assertEqual(Cohort.DP2, normalize_cohort("y12"))
        self.assertEqual(Cohort.DP1, normalize_cohort("DP1 (Y11)"))
        self.assertEqual(Cohort.DP1, normalize_cohort("grade eleven"))
        self.assertEqual(Cohort.DP1, normalize_cohort(None))

    def test_unwrap_embedded_candidates(self) -> None:
        self.assertEqual(['{"a":1}', '"{""a"":1}"'], list(unwrap_embedded('"{""a"":1}"')))
        self.assertEqual(['{"a":""}', '{"a":"}'], list(unwrap_embedded('{"a":""}')))
        self.assertEqual(["[]"], list(unwrap_embedded("[]")))


if __name__ == "__main__":
    unittest.main()

# ABOUTME: Makes the roster risk pipeline importable as one package.
# ABOUTME: Re-exports the record model, the scoring functions, and the merge entry points.

from .schemas import DEFAULT_WEIGHTS, Cohort, PerformanceRecord, WeightConfiguration
from .row_parser import parse_row
from .normalizer import normalize_rows, normalize_rows_with_warnings
from .scoring import compute_academic_points, compute_risk_score, rescore_roster
from .merge import merge_records
from .pipeline import ingest_batch

__all__ = [
    "Cohort",
    "DEFAULT_WEIGHTS",
    "PerformanceRecord",
    "WeightConfiguration",
    "compute_academic_points",
    "compute_risk_score",
    "ingest_batch",
    "merge_records",
    "normalize_rows",
    "normalize_rows_with_warnings",
    "parse_row",
    "rescore_roster",
]

# ABOUTME: Loads risk weight configuration from YAML files.
# ABOUTME: Accepts snake_case keys or the camelCase names used by dashboard weight exports.

from __future__ import annotations

from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .schemas import DEFAULT_WEIGHTS, WeightConfiguration

_CAMEL_ALIASES = {
    "attendanceWeight": "attendance",
    "lowGradeWeight": "low_grade",
    "coreRiskWeight": "core_risk",
    "trendWeight": "trend",
    "iaRiskWeight": "formative_assessment_risk",
    "missingAssignmentWeight": "missing_work",
}


def weights_from_mapping(raw: Mapping[str, Any]) -> WeightConfiguration:
    """
    Build weights from a mapping, keeping defaults for absent keys.

    Raises ValueError for unknown keys or values that are not numbers.
    """

    known = {f.name for f in fields(WeightConfiguration)}
    overrides: Dict[str, float] = {}
    for key, value in raw.items():
        name = _CAMEL_ALIASES.get(key, key)
        if name not in known:
            raise ValueError(f"Unknown risk weight '{key}'. Expected one of: {', '.join(sorted(known))}.")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Risk weight '{key}' must be numeric, got {value!r}.")
        overrides[name] = float(value)
    return replace(DEFAULT_WEIGHTS, **overrides)


def load_weights(path: Optional[Path] = None) -> WeightConfiguration:
    if path is None:
        return DEFAULT_WEIGHTS
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ValueError(f"Could not read weights from {path}: {exc}") from exc

    if cfg is None:
        return DEFAULT_WEIGHTS
    if not isinstance(cfg, dict):
        raise ValueError(f"Weights file {path} must contain a mapping.")
    if "weights" in cfg:
        cfg = cfg["weights"] or {}
        if not isinstance(cfg, dict):
            raise ValueError(f"'weights' in {path} must be a mapping.")
    return weights_from_mapping(cfg)


def weights_to_dict(weights: WeightConfiguration) -> Dict[str, float]:
    return {f.name: getattr(weights, f.name) for f in fields(weights)}

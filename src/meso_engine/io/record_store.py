"""
Read-only loader for a JSON records bundle.

The bundle is a single JSON object; every section is optional:

    {
      "profile": {"sex": "male", "experience": "intermediate",
                  "goal": "bulk", "days_per_week": 4},
      "body_composition": [{"total_weight_kg": 80, "height_cm": 180,
                            "body_fat_percentage": 15,
                            "measured_on": "2026-01-01"}],
      "strength_tests": [{"lift_id": "bench_press", "weight_kg": 100, "reps": 5}],
      "set_logs": [...],
      "performance_logs": [...],
      "landmark_overrides": {"chest": [8, 16, 22]},
      "readiness": {"sleep_hours": 7.5, "sleep_quality": 4},
      "mesocycle": {"split_type": "Upper/Lower", "total_weeks": 6,
                    "days_per_week": 4, "current_week": 3}
    }

Nothing is ever written back; persistence belongs to the caller.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from ..core.errors import InsufficientDataError
from ..core.models import (
    BodyComposition,
    Mesocycle,
    PerformanceLog,
    ReadinessFactors,
    SetLog,
    StrengthTest,
    TrainingPreferences,
    VolumeLandmarks,
)
from .serializers import (
    ValidationError,
    dict_to_body_composition,
    dict_to_landmarks,
    dict_to_mesocycle,
    dict_to_performance_log,
    dict_to_preferences,
    dict_to_readiness,
    dict_to_set_log,
    dict_to_sex,
    dict_to_strength_test,
)


@dataclass(frozen=True)
class RecordBundle:
    """Validated contents of a records file."""

    sex: str | None = None
    preferences: TrainingPreferences | None = None
    body_composition: tuple[BodyComposition, ...] = ()
    strength_tests: tuple[StrengthTest, ...] = ()
    set_logs: tuple[SetLog, ...] = ()
    performance_logs: tuple[PerformanceLog, ...] = ()
    landmark_overrides: dict[str, VolumeLandmarks] = field(default_factory=dict)
    readiness: ReadinessFactors | None = None
    mesocycle: Mesocycle | None = None

    @property
    def latest_body_composition(self) -> BodyComposition:
        """
        Most recent snapshot (dated entries sort by date, undated keep file order).

        Raises:
            InsufficientDataError: If no snapshot was recorded
        """
        if not self.body_composition:
            raise InsufficientDataError("No body composition recorded")
        dated = [b for b in self.body_composition if b.measured_on]
        if dated:
            return max(dated, key=lambda b: b.measured_on)  # type: ignore[arg-type,return-value]
        return self.body_composition[-1]

    def require_profile(self) -> tuple[str, TrainingPreferences]:
        """Return (sex, preferences) or raise InsufficientDataError."""
        if self.sex is None or self.preferences is None:
            raise InsufficientDataError("The records file has no profile section")
        return self.sex, self.preferences


def _rows(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    rows = data.get(key, [])
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise ValidationError(f"'{key}' must be a list of objects")
    return rows


def _section(data: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = data.get(key)
    if value is not None and not isinstance(value, dict):
        raise ValidationError(f"'{key}' must be an object")
    return value


def parse_bundle(data: dict[str, Any]) -> RecordBundle:
    """
    Validate a decoded records object.

    Raises:
        ValidationError: Malformed values
        InsufficientDataError: Required fields missing from a row
    """
    if not isinstance(data, dict):
        raise ValidationError("The records file must hold a JSON object")

    profile = _section(data, "profile")
    readiness = _section(data, "readiness")
    mesocycle = _section(data, "mesocycle")
    overrides = _section(data, "landmark_overrides") or {}

    bundle = RecordBundle(
        sex=dict_to_sex(profile) if profile else None,
        preferences=dict_to_preferences(profile) if profile else None,
        body_composition=tuple(dict_to_body_composition(r) for r in _rows(data, "body_composition")),
        strength_tests=tuple(dict_to_strength_test(r) for r in _rows(data, "strength_tests")),
        set_logs=tuple(dict_to_set_log(r) for r in _rows(data, "set_logs")),
        performance_logs=tuple(dict_to_performance_log(r) for r in _rows(data, "performance_logs")),
        landmark_overrides={m: dict_to_landmarks(v) for m, v in overrides.items()},
        readiness=dict_to_readiness(readiness) if readiness else None,
        mesocycle=dict_to_mesocycle(mesocycle) if mesocycle else None,
    )
    logger.debug(
        "records: {} body comp, {} tests, {} sets, {} performance logs",
        len(bundle.body_composition), len(bundle.strength_tests),
        len(bundle.set_logs), len(bundle.performance_logs),
    )
    return bundle


class RecordStore:
    """
    Reads a JSON records bundle from disk.

    The file is re-read on every load() call so edits are picked up
    between CLI invocations.
    """

    def __init__(self, path: str | Path):
        """
        Initialize the store.

        Args:
            path: Path to the JSON records file
        """
        self.path = Path(path)

    def exists(self) -> bool:
        """Check if the records file exists."""
        return self.path.exists()

    def load(self) -> RecordBundle:
        """
        Load and validate the bundle.

        Raises:
            InsufficientDataError: If the file does not exist
            ValidationError: If the file is not valid JSON or holds bad values
        """
        if not self.path.exists():
            raise InsufficientDataError(f"No records file at {self.path}")
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in {self.path}: {e}") from e
        return parse_bundle(data)

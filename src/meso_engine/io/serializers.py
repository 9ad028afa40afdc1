"""
JSON serialization for engine records.

Turns loosely-typed rows (dicts decoded from JSON) into validated records
and engine results back into JSON-compatible dicts.
"""

import json
import math
import re
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any

from ..core.errors import InsufficientDataError, InvalidInputError
from ..core.models import (
    BodyComposition,
    Mesocycle,
    PerformanceLog,
    ReadinessFactors,
    SetLog,
    StrengthTest,
    TrainingPreferences,
    VolumeLandmarks,
    check_sex,
)


class ValidationError(InvalidInputError):
    """Raised when a row holds a malformed value."""

    pass


def validate_date(date_str: str) -> str:
    """
    Validate a date string.

    Args:
        date_str: YYYY-MM-DD, optionally followed by a time part

    Returns:
        The string unchanged

    Raises:
        ValidationError: If the date part is missing or invalid
    """
    if not isinstance(date_str, str) or not re.match(r"^\d{4}-\d{2}-\d{2}", date_str):
        raise ValidationError(f"Invalid date format: {date_str!r}. Expected YYYY-MM-DD")

    try:
        datetime.strptime(date_str[:10], "%Y-%m-%d")
    except ValueError as e:
        raise ValidationError(f"Invalid date: {date_str}") from e

    return date_str


def _require(data: dict[str, Any], record: str, *keys: str) -> None:
    missing = [k for k in keys if data.get(k) is None]
    if missing:
        raise InsufficientDataError(f"{record} is missing {', '.join(missing)}")


def _float(data: dict[str, Any], key: str, default: float | None = None) -> float | None:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{key} must be a number, got {value!r}") from e
    if not math.isfinite(number):
        raise ValidationError(f"{key} must be a finite number, got {value!r}")
    return number


def _int(data: dict[str, Any], key: str, default: int | None = None) -> int | None:
    value = _float(data, key)
    if value is None:
        return default
    if value != int(value):
        raise ValidationError(f"{key} must be a whole number, got {value}")
    return int(value)


def _bool(data: dict[str, Any], key: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be true or false, got {value!r}")
    return value


def _date(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return validate_date(value) if value is not None else None


def _str_tuple(data: dict[str, Any], key: str) -> tuple[str, ...] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{key} must be a list of strings")
    return tuple(value)


def dict_to_body_composition(data: dict[str, Any]) -> BodyComposition:
    """Convert a measurement row; weight, height and body fat are required."""
    _require(data, "body composition", "total_weight_kg", "height_cm", "body_fat_percentage")
    return BodyComposition(
        total_weight_kg=_float(data, "total_weight_kg"),
        height_cm=_float(data, "height_cm"),
        body_fat_percentage=_float(data, "body_fat_percentage"),
        measured_on=_date(data, "measured_on"),
    )


def dict_to_strength_test(data: dict[str, Any]) -> StrengthTest:
    """Convert a benchmark test row; lift_id and reps are required."""
    _require(data, "strength test", "lift_id", "reps")
    return StrengthTest(
        lift_id=str(data["lift_id"]),
        weight_kg=_float(data, "weight_kg", 0.0),
        reps=_int(data, "reps"),
        rpe=_float(data, "rpe"),
        tested_on=_date(data, "tested_on"),
    )


def dict_to_set_log(data: dict[str, Any]) -> SetLog:
    """Convert a logged set row."""
    _require(data, "set log", "exercise_id", "weight_kg", "reps")
    return SetLog(
        exercise_id=str(data["exercise_id"]),
        weight_kg=_float(data, "weight_kg"),
        reps=_int(data, "reps"),
        rpe=_float(data, "rpe"),
        target_reps=_int(data, "target_reps"),
        is_warmup=_bool(data, "is_warmup"),
        performed_on=_date(data, "performed_on"),
    )


def dict_to_performance_log(data: dict[str, Any]) -> PerformanceLog:
    """Convert a recovery/performance row; only week_number is required."""
    _require(data, "performance log", "week_number")
    exercise_id = data.get("exercise_id")
    return PerformanceLog(
        week_number=_int(data, "week_number"),
        performed_on=_date(data, "performed_on"),
        exercise_id=str(exercise_id) if exercise_id is not None else None,
        load_kg=_float(data, "load_kg"),
        reps=_int(data, "reps"),
        average_rpe=_float(data, "average_rpe"),
        missed_target_reps=_bool(data, "missed_target_reps"),
        perceived_fatigue=_int(data, "perceived_fatigue"),
        sleep_quality=_int(data, "sleep_quality"),
        joint_pain=_bool(data, "joint_pain"),
        strength_decline=_bool(data, "strength_decline"),
    )


def dict_to_readiness(data: dict[str, Any]) -> ReadinessFactors:
    """Convert pre-session readiness answers; every field is optional."""
    return ReadinessFactors(
        sleep_hours=_float(data, "sleep_hours"),
        sleep_quality=_int(data, "sleep_quality"),
        stress_level=_int(data, "stress_level"),
        nutrition_rating=_int(data, "nutrition_rating"),
        previous_session_rpe=_float(data, "previous_session_rpe"),
        days_since_last_session=_int(data, "days_since_last_session"),
    )


def dict_to_landmarks(data: dict[str, Any] | list[float]) -> VolumeLandmarks:
    """
    Convert user landmarks, given as {"mev", "mav", "mrv"} or [mev, mav, mrv].
    """
    if isinstance(data, list):
        if len(data) != 3:
            raise ValidationError(f"landmarks list must be [mev, mav, mrv], got {data}")
        data = dict(zip(("mev", "mav", "mrv"), data))
    _require(data, "landmarks", "mev", "mav", "mrv")
    return VolumeLandmarks(
        mev=_float(data, "mev"),
        mav=_float(data, "mav"),
        mrv=_float(data, "mrv"),
    )


def dict_to_preferences(data: dict[str, Any]) -> TrainingPreferences:
    """Convert the profile row into TrainingPreferences."""
    _require(data, "profile", "experience", "goal", "days_per_week")
    return TrainingPreferences(
        experience=data["experience"],
        goal=data["goal"],
        days_per_week=_int(data, "days_per_week"),
        equipment=_str_tuple(data, "equipment"),
        injuries=_str_tuple(data, "injuries") or (),
        units=data.get("units", "kg"),
    )


def dict_to_sex(data: dict[str, Any]) -> str:
    """Read and validate the profile's sex."""
    _require(data, "profile", "sex")
    try:
        return check_sex(data["sex"])
    except InvalidInputError as e:
        raise ValidationError(str(e)) from e


def dict_to_mesocycle(data: dict[str, Any]) -> Mesocycle:
    """Convert a stored mesocycle state."""
    _require(data, "mesocycle", "split_type", "total_weeks", "days_per_week")
    total = _int(data, "total_weeks")
    status = data.get("status", "planned")
    if status not in ("planned", "active", "completed"):
        raise ValidationError(f"Invalid mesocycle status: {status}")
    return Mesocycle(
        split_type=str(data["split_type"]),
        total_weeks=total,
        days_per_week=_int(data, "days_per_week"),
        deload_week=_int(data, "deload_week", total),
        current_week=_int(data, "current_week", 1),
        fatigue_score=_float(data, "fatigue_score", 0.0),
        status=status,
    )


def to_dict(record: Any) -> Any:
    """
    Convert an engine result (dataclass, or list/tuple of them) to plain
    JSON-compatible values.
    """
    if is_dataclass(record) and not isinstance(record, type):
        return asdict(record)
    if isinstance(record, (list, tuple)):
        return [to_dict(r) for r in record]
    if isinstance(record, dict):
        return {k: to_dict(v) for k, v in record.items()}
    return record


def to_json(record: Any) -> str:
    """Serialize an engine result as indented JSON."""
    return json.dumps(to_dict(record), indent=2, ensure_ascii=False)

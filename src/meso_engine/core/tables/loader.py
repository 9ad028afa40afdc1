"""
YAML → table loader.

Loads the constant tables from the bundled ``src/meso_engine/tables/``
directory: benchmarks.yaml, exercises.yaml and volume.yaml.

User overrides: a file of the same name in ``~/.meso-engine/tables/`` is
deep-merged over the bundled one, so only changed keys need to be listed.
New keys (e.g. an extra exercise) are added to the table.

Usage (internal, called by registry.py):
    from .loader import load_exercises
    exercises = load_exercises()   # dict, possibly empty
"""

from __future__ import annotations

import warnings
from pathlib import Path

from ..engine.config_loader import deep_merge, load_yaml_file, user_config_dir
from ..models import VolumeLandmarks
from .base import BenchmarkLift, Breakpoints, ExerciseSpec, VolumeTable

_REQUIRED_BENCHMARK_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "exercise_id",
        "pattern",
        "equipment",
        "score",
        "trained_offset",
        "weight",
        "estimation_accuracy",
        "start_ratio",
        "test_order",
        "male",
        "female",
    }
)

_REQUIRED_EXERCISE_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "mechanic",
        "pattern",
        "equipment",
        "primary",
        "fatigue_base",
        "stimulus",
        "increment_kg",
        "rep_range",
    }
)


def _breakpoints(raw: dict) -> Breakpoints:
    return tuple(sorted((float(p), float(v)) for p, v in raw.items()))


def benchmark_from_dict(lift_id: str, d: dict) -> BenchmarkLift:
    """Convert a raw dict (from YAML) to a BenchmarkLift.

    Raises ValueError if any required field is absent or malformed.
    """
    missing = _REQUIRED_BENCHMARK_FIELDS - set(d)
    if missing:
        raise ValueError(f"BenchmarkLift missing fields: {sorted(missing)}")
    score = str(d["score"])
    if score not in ("bodyweight_ratio", "reps"):
        raise ValueError(f"unknown score type '{score}'")
    if not 0 <= float(d["trained_offset"]) < 100:
        raise ValueError("trained_offset must be in [0, 100)")
    return BenchmarkLift(
        lift_id=lift_id,
        name=str(d["name"]),
        exercise_id=str(d["exercise_id"]),
        pattern=str(d["pattern"]),
        equipment=str(d["equipment"]),
        score=score,  # type: ignore[arg-type]
        trained_offset=float(d["trained_offset"]),
        weight=float(d["weight"]),
        estimation_accuracy=float(d["estimation_accuracy"]),
        start_ratio=float(d["start_ratio"]),
        test_order=int(d["test_order"]),
        male=_breakpoints(d["male"]),
        female=_breakpoints(d["female"]),
    )


def exercise_from_dict(exercise_id: str, d: dict) -> ExerciseSpec:
    """Convert a raw dict (from YAML) to an ExerciseSpec.

    Raises ValueError if any required field is absent or malformed.
    """
    missing = _REQUIRED_EXERCISE_FIELDS - set(d)
    if missing:
        raise ValueError(f"ExerciseSpec missing fields: {sorted(missing)}")
    lo, hi = d["rep_range"]
    start = d.get("start_multiplier")
    return ExerciseSpec(
        exercise_id=exercise_id,
        name=str(d["name"]),
        mechanic=str(d["mechanic"]),  # type: ignore[arg-type]
        pattern=str(d["pattern"]),
        equipment=str(d["equipment"]),
        primary=str(d["primary"]),
        secondary=tuple(str(m) for m in d.get("secondary", ())),
        fatigue_base=float(d["fatigue_base"]),
        stimulus=float(d["stimulus"]),
        increment_kg=float(d["increment_kg"]),
        rep_range=(int(lo), int(hi)),
        default_rir=int(d.get("default_rir", 2)),
        start_multiplier=tuple(float(x) for x in start) if start else None,  # type: ignore[arg-type]
        contraindications=tuple(str(c) for c in d.get("contraindications", ())),
    )


def _landmarks(raw: list) -> VolumeLandmarks:
    mev, mav, mrv = raw
    return VolumeLandmarks(mev=float(mev), mav=float(mav), mrv=float(mrv))


def volume_table_from_dict(d: dict) -> VolumeTable:
    """Convert the raw volume.yaml mapping to a VolumeTable."""
    landmarks = {
        experience: {muscle: _landmarks(v) for muscle, v in muscles.items()}
        for experience, muscles in d["landmarks"].items()
    }
    base_volume = {
        muscle: (int(n), int(i), int(a)) for muscle, (n, i, a) in d["base_volume"].items()
    }
    return VolumeTable(
        landmarks=landmarks,
        generic_landmarks=_landmarks(d["generic_landmarks"]),
        base_volume=base_volume,
        generic_base_volume=int(d["generic_base_volume"]),
    )


def get_bundled_tables_dir() -> Path:
    # loader.py lives at src/meso_engine/core/tables/loader.py
    return Path(__file__).parent.parent.parent / "tables"


def load_table(filename: str, bundled_dir: Path | None = None) -> dict:
    """Return the bundled YAML table merged with the user's override, if any."""
    bundled_dir = bundled_dir or get_bundled_tables_dir()
    raw: dict = {}
    bundled = bundled_dir / filename
    if bundled.exists():
        raw = load_yaml_file(bundled)
    user = user_config_dir() / "tables" / filename
    if user.exists():
        raw = deep_merge(raw, load_yaml_file(user))
    return raw


def load_benchmarks(bundled_dir: Path | None = None) -> dict[str, BenchmarkLift]:
    """Return {lift_id: BenchmarkLift}; invalid entries are skipped with a warning."""
    result: dict[str, BenchmarkLift] = {}
    for lift_id, d in load_table("benchmarks.yaml", bundled_dir).items():
        try:
            result[lift_id] = benchmark_from_dict(lift_id, d)
        except (TypeError, ValueError) as exc:
            warnings.warn(f"meso-engine: skipping benchmark '{lift_id}': {exc}", stacklevel=2)
    return result


def load_exercises(bundled_dir: Path | None = None) -> dict[str, ExerciseSpec]:
    """Return {exercise_id: ExerciseSpec}; invalid entries are skipped with a warning."""
    result: dict[str, ExerciseSpec] = {}
    for exercise_id, d in load_table("exercises.yaml", bundled_dir).items():
        try:
            result[exercise_id] = exercise_from_dict(exercise_id, d)
        except (TypeError, ValueError) as exc:
            warnings.warn(f"meso-engine: skipping exercise '{exercise_id}': {exc}", stacklevel=2)
    return result


def load_volume_table(bundled_dir: Path | None = None) -> VolumeTable | None:
    """Return the VolumeTable, or None if volume.yaml is missing or malformed."""
    raw = load_table("volume.yaml", bundled_dir)
    try:
        return volume_table_from_dict(raw)
    except (KeyError, TypeError, ValueError) as exc:
        warnings.warn(f"meso-engine: invalid volume table: {exc}", stacklevel=2)
        return None

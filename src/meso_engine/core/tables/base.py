"""
Base types for the constant tables.

BenchmarkLift describes one calibration lift and its percentile tables.
ExerciseSpec is one row of the exercise catalog the planner chooses from.
VolumeTable holds the landmark and base-volume tables keyed by experience.
"""

from dataclasses import dataclass
from typing import Literal

from ..config import COMPOUND_FATIGUE_RANGE, ISOLATION_FATIGUE_RANGE, experience_index
from ..models import VolumeLandmarks

# (percentile, normalized strength) pairs sorted by percentile
Breakpoints = tuple[tuple[float, float], ...]


@dataclass(frozen=True)
class BenchmarkLift:
    """A benchmark lift with per-sex percentile tables."""

    lift_id: str              # e.g. "bench_press"
    name: str                 # e.g. "Bench Press"
    exercise_id: str          # catalog exercise tested by this benchmark
    pattern: str
    equipment: str
    score: Literal["bodyweight_ratio", "reps"]
    trained_offset: float     # percentile points vs people who already train
    weight: float             # contribution to the overall strength score
    estimation_accuracy: float
    start_ratio: float        # suggested first test load, x bodyweight
    test_order: int           # lower = test earlier (less fatiguing)
    male: Breakpoints
    female: Breakpoints

    def __post_init__(self) -> None:
        for sex, table in (("male", self.male), ("female", self.female)):
            if not table:
                raise ValueError(f"{self.lift_id}: empty {sex} table")
            values = [v for _, v in table]
            if values != sorted(values):
                raise ValueError(f"{self.lift_id}: {sex} table must be non-decreasing")

    @property
    def rep_scored(self) -> bool:
        return self.score == "reps"

    def table(self, sex: str) -> Breakpoints:
        return self.female if sex == "female" else self.male


@dataclass(frozen=True)
class ExerciseSpec:
    """One exercise the planner and progression engine know about."""

    exercise_id: str
    name: str
    mechanic: Literal["compound", "isolation"]
    pattern: str
    equipment: str
    primary: str
    secondary: tuple[str, ...]
    fatigue_base: float       # systemic cost of a 3-set block at 3 RIR
    stimulus: float           # growth stimulus of the same block
    increment_kg: float
    rep_range: tuple[int, int]
    default_rir: int = 2
    start_multiplier: tuple[float, float, float] | None = None
    contraindications: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.mechanic not in ("compound", "isolation"):
            raise ValueError(f"{self.exercise_id}: unknown mechanic '{self.mechanic}'")
        lo, hi = (
            COMPOUND_FATIGUE_RANGE if self.mechanic == "compound" else ISOLATION_FATIGUE_RANGE
        )
        if not lo <= self.fatigue_base <= hi:
            raise ValueError(
                f"{self.exercise_id}: fatigue_base {self.fatigue_base} outside {lo}-{hi} "
                f"for {self.mechanic}"
            )
        if self.stimulus <= 0:
            raise ValueError(f"{self.exercise_id}: stimulus must be positive")
        if self.increment_kg <= 0:
            raise ValueError(f"{self.exercise_id}: increment_kg must be positive")
        if not 0 < self.rep_range[0] <= self.rep_range[1]:
            raise ValueError(f"{self.exercise_id}: invalid rep_range {self.rep_range}")

    @property
    def muscles(self) -> tuple[str, ...]:
        return (self.primary,) + self.secondary

    def start_multiplier_for(self, experience: str) -> float | None:
        if self.start_multiplier is None:
            return None
        return self.start_multiplier[experience_index(experience)]


@dataclass(frozen=True)
class VolumeTable:
    """Landmarks per experience and muscle, plus base weekly volumes."""

    landmarks: dict[str, dict[str, VolumeLandmarks]]
    generic_landmarks: VolumeLandmarks
    base_volume: dict[str, tuple[int, int, int]]
    generic_base_volume: int

"""
Data models for meso-engine.

Immutable records consumed and produced by the engine.  Derived records
are always rebuilt from their sources; nothing here is mutated in place.
Input records validate themselves in __post_init__ and raise
InvalidInputError so bad data is rejected where it enters.
"""

from dataclasses import dataclass, field
from typing import Literal

from .config import (
    EXPERIENCE_LEVELS,
    FFMI_HEIGHT_REF_M,
    FFMI_HEIGHT_SLOPE,
    GOALS,
    RPE_MAX,
    RPE_MIN,
)
from .errors import InvalidInputError

Sex = Literal["male", "female"]
Experience = Literal["novice", "intermediate", "advanced"]
Goal = Literal["cut", "maintenance", "bulk"]
Mechanic = Literal["compound", "isolation"]
Confidence = Literal["high", "medium", "low"]
FFMIClass = Literal[
    "below_average", "average", "above_average", "excellent", "superior", "suspicious"
]
TrendType = Literal[
    "gaining_muscle", "losing_muscle", "gaining_fat", "losing_fat", "recomping", "stable"
]
StrengthLevel = Literal["untrained", "beginner", "novice", "intermediate", "advanced", "elite"]
VolumeStatus = Literal["below_mev", "effective", "optimal", "approaching_mrv", "exceeding_mrv"]
VolumeAction = Literal["increase", "maintain", "decrease"]
Efficiency = Literal["optimal", "acceptable", "suboptimal"]
ProgressionType = Literal["new_exercise", "load", "reps", "plateau", "hold", "deload"]
SetQuality = Literal["junk", "effective", "stimulative", "excessive"]
DeloadType = Literal["volume", "intensity", "full"]
DeloadState = Literal["normal", "caution", "deload_due"]
MesocycleStatus = Literal["planned", "active", "completed"]
Severity = Literal["minor", "moderate", "significant"]


def check_experience(experience: str) -> str:
    """Return experience unchanged or raise InvalidInputError."""
    if experience not in EXPERIENCE_LEVELS:
        raise InvalidInputError(
            f"Unknown experience '{experience}'. Valid: {', '.join(EXPERIENCE_LEVELS)}"
        )
    return experience


def check_goal(goal: str) -> str:
    """Return goal unchanged or raise InvalidInputError."""
    if goal not in GOALS:
        raise InvalidInputError(f"Unknown goal '{goal}'. Valid: {', '.join(GOALS)}")
    return goal


def check_sex(sex: str) -> str:
    """Return sex unchanged or raise InvalidInputError."""
    if sex not in ("male", "female"):
        raise InvalidInputError(f"Unknown sex '{sex}'. Valid: male, female")
    return sex


def check_rpe(rpe: float | None, minimum: float = RPE_MIN) -> float | None:
    """Return rpe unchanged if it is None or within minimum..RPE_MAX."""
    if rpe is not None and not minimum <= rpe <= RPE_MAX:
        raise InvalidInputError(f"RPE must be between {minimum:g} and {RPE_MAX:g}, got {rpe}")
    return rpe


def _check_rating(name: str, value: float | None) -> None:
    if value is not None and not 1 <= value <= 5:
        raise InvalidInputError(f"{name} must be between 1 and 5, got {value}")


# ---------------------------------------------------------------------------
# Body composition
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BodyComposition:
    """
    One body-composition snapshot (scan or manual entry).

    Lean mass and FFMI are derived so they can never disagree with the
    measured weight and body-fat percentage.
    """

    total_weight_kg: float
    height_cm: float
    body_fat_percentage: float
    measured_on: str | None = None  # ISO date, required for trends

    def __post_init__(self) -> None:
        """Validate measurements."""
        if self.total_weight_kg <= 0:
            raise InvalidInputError("total_weight_kg must be positive")
        if self.height_cm <= 0:
            raise InvalidInputError("height_cm must be positive")
        if not 0 < self.body_fat_percentage < 100:
            raise InvalidInputError("body_fat_percentage must be between 0 and 100")

    @property
    def height_m(self) -> float:
        return self.height_cm / 100.0

    @property
    def lean_mass_kg(self) -> float:
        return self.total_weight_kg * (1 - self.body_fat_percentage / 100.0)

    @property
    def fat_mass_kg(self) -> float:
        return self.total_weight_kg - self.lean_mass_kg

    @property
    def ffmi(self) -> float:
        return self.lean_mass_kg / (self.height_m ** 2)

    @property
    def normalized_ffmi(self) -> float:
        return self.ffmi + FFMI_HEIGHT_SLOPE * (FFMI_HEIGHT_REF_M - self.height_m)


@dataclass(frozen=True)
class FFMIResult:
    """FFMI analysis of a single snapshot."""

    ffmi: float
    normalized_ffmi: float
    classification: FFMIClass
    natural_limit: float
    percent_of_limit: float


@dataclass(frozen=True)
class BodyCompTrend:
    """Monthly rates of change between the oldest and newest samples."""

    lean_mass_per_month: float
    fat_mass_per_month: float
    body_fat_per_month: float
    ffmi_per_month: float
    trend: TrendType
    months: float
    data_points: int


@dataclass(frozen=True)
class BodyCompRecommendation:
    """A coaching note derived from body-composition data."""

    category: str
    message: str
    priority: int  # higher first


@dataclass(frozen=True)
class BodyCompTargets:
    """Goal-specific body-composition targets."""

    goal: Goal
    target_body_fat: float
    target_ffmi: float
    estimated_weeks: int
    calorie_adjustment: int
    direction: str


# ---------------------------------------------------------------------------
# Strength calibration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PercentileScore:
    """Percentile of one lift against three comparison cohorts."""

    vs_general: float
    vs_trained: float
    vs_body_comp: float


@dataclass(frozen=True)
class StrengthTest:
    """A raw benchmark test as logged; calibrate_lift turns it into a result."""

    lift_id: str
    weight_kg: float
    reps: int
    rpe: float | None = None
    tested_on: str | None = None


@dataclass(frozen=True)
class CalibrationResult:
    """Outcome of one benchmark test; read-only once created."""

    lift_id: str
    lift_name: str
    tested_weight_kg: float
    tested_reps: int
    tested_rpe: float | None
    estimated_1rm: float
    percentiles: PercentileScore
    strength_level: StrengthLevel
    confidence: Confidence = "high"
    score_unit: Literal["kg", "reps"] = "kg"
    tested_on: str | None = None


@dataclass(frozen=True)
class Imbalance:
    """A strength ratio outside its tolerance band."""

    type: str
    severity: Severity
    description: str
    recommendation: str
    ratio: float
    ideal_ratio: float


@dataclass(frozen=True)
class StrengthProfile:
    """Aggregate strength picture; rebuilt whenever calibrations change."""

    body_composition: BodyComposition
    calibrations: tuple[CalibrationResult, ...]
    overall_score: float
    strength_level: StrengthLevel
    balance_score: int
    imbalances: tuple[Imbalance, ...]
    recommendations: tuple[str, ...]


# ---------------------------------------------------------------------------
# Volume
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VolumeLandmarks:
    """Weekly set landmarks for one muscle group."""

    mev: float
    mav: float
    mrv: float

    def __post_init__(self) -> None:
        """Validate ordering mev <= mav <= mrv."""
        if self.mev < 0:
            raise InvalidInputError("mev must be non-negative")
        if not self.mev <= self.mav <= self.mrv:
            raise InvalidInputError(
                f"landmarks must satisfy mev <= mav <= mrv, got {self.mev}/{self.mav}/{self.mrv}"
            )


@dataclass(frozen=True)
class WeeklyMuscleVolume:
    """Measured weekly volume for one muscle group against its landmarks."""

    muscle_group: str
    total_sets: float
    status: VolumeStatus
    landmarks: VolumeLandmarks
    recommended_sets: int
    percent_of_mrv: float
    action: VolumeAction


# ---------------------------------------------------------------------------
# Fatigue
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FatigueProfile:
    """Fatigue cost of one planned or performed exercise block."""

    exercise_id: str
    sets: int
    target_rir: int
    systemic_cost: float
    local_cost: dict[str, float]
    sfr: float
    efficiency: Efficiency
    recovery_days: int


@dataclass(frozen=True)
class FatigueBudget:
    """How much fatigue a session may accumulate."""

    systemic_limit: float
    local_limit_per_muscle: float
    min_sfr: float


@dataclass(frozen=True)
class FatigueSummary:
    """Fatigue aggregated over a session or a week."""

    total_systemic: float
    local_by_muscle: dict[str, float]
    average_sfr: float
    capacity_used: float  # percent of budget
    warnings: tuple[str, ...]
    recommendation: str


# ---------------------------------------------------------------------------
# Periodization
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrainingPreferences:
    """User preferences the planner consumes."""

    experience: Experience
    goal: Goal
    days_per_week: int
    equipment: tuple[str, ...] | None = None  # None means a full gym
    injuries: tuple[str, ...] = ()
    units: Literal["kg", "lb"] = "kg"

    def __post_init__(self) -> None:
        """Validate choices."""
        check_experience(self.experience)
        check_goal(self.goal)
        if not 1 <= self.days_per_week <= 7:
            raise InvalidInputError("days_per_week must be between 1 and 7")
        if self.units not in ("kg", "lb"):
            raise InvalidInputError("units must be 'kg' or 'lb'")


@dataclass(frozen=True)
class PlannedExercise:
    """One exercise slot inside a planned session."""

    exercise_id: str
    name: str
    mechanic: Mechanic
    muscle_group: str
    sets: int
    rep_range: tuple[int, int]
    target_rir: int
    rest_seconds: int
    fatigue: FatigueProfile
    start_weight_kg: float | None = None


@dataclass(frozen=True)
class DetailedSession:
    """A planned training day."""

    name: str
    day: str
    muscle_groups: tuple[str, ...]
    exercises: tuple[PlannedExercise, ...]
    fatigue: FatigueSummary


@dataclass(frozen=True)
class MesocycleWeek:
    """One week of a mesocycle with its modifiers and sessions."""

    week_number: int
    target_rir: int
    volume_modifier: float
    intensity_modifier: float
    is_deload: bool
    focus: str
    sessions: tuple[DetailedSession, ...] = ()
    fatigue: FatigueSummary | None = None


@dataclass(frozen=True)
class Mesocycle:
    """
    Mesocycle state.

    planned -> active on the first session, active -> completed after the
    final week.  fatigue_score only grows until a deload resets it.
    """

    split_type: str
    total_weeks: int
    days_per_week: int
    deload_week: int
    current_week: int = 1
    fatigue_score: float = 0.0
    status: MesocycleStatus = "planned"

    def __post_init__(self) -> None:
        """Validate week bounds."""
        if self.total_weeks < 1:
            raise InvalidInputError("total_weeks must be at least 1")
        if not 1 <= self.deload_week <= self.total_weeks:
            raise InvalidInputError("deload_week must fall inside the mesocycle")
        if not 1 <= self.current_week <= self.total_weeks:
            raise InvalidInputError("current_week must fall inside the mesocycle")
        if self.fatigue_score < 0:
            raise InvalidInputError("fatigue_score must be non-negative")

    @property
    def in_deload_week(self) -> bool:
        return self.current_week == self.deload_week


@dataclass(frozen=True)
class FullProgramRecommendation:
    """Complete program: split, schedule, periodization and sessions."""

    split: str
    split_reason: str
    duration_reason: str
    schedule: tuple[str, ...]
    mesocycle: Mesocycle
    weeks: tuple[MesocycleWeek, ...]
    volume_per_muscle: dict[str, int]
    warnings: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Progression
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SetLog:
    """A logged set as supplied by storage."""

    exercise_id: str
    weight_kg: float
    reps: int
    rpe: float | None = None
    target_reps: int | None = None
    is_warmup: bool = False
    performed_on: str | None = None  # ISO date or datetime

    def __post_init__(self) -> None:
        """Validate set data."""
        if self.weight_kg < 0:
            raise InvalidInputError("weight_kg must be non-negative")
        if self.reps < 0:
            raise InvalidInputError("reps must be non-negative")
        if self.target_reps is not None and self.target_reps < 0:
            raise InvalidInputError("target_reps must be non-negative")
        check_rpe(self.rpe)


@dataclass(frozen=True)
class LastSessionPerformance:
    """Summary of one exercise in the previous session."""

    exercise_id: str
    weight_kg: float
    reps: int
    sets_completed: int
    all_sets_completed: bool
    rpe: float | None = None
    average_rpe: float | None = None
    performed_on: str | None = None

    def __post_init__(self) -> None:
        """Validate performance data."""
        if self.weight_kg < 0:
            raise InvalidInputError("weight_kg must be non-negative")
        if self.reps < 0:
            raise InvalidInputError("reps must be non-negative")
        if self.sets_completed < 0:
            raise InvalidInputError("sets_completed must be non-negative")
        check_rpe(self.rpe)
        check_rpe(self.average_rpe)

    @property
    def effective_rpe(self) -> float | None:
        """Average RPE if known, otherwise the top-set RPE."""
        return self.average_rpe if self.average_rpe is not None else self.rpe


@dataclass(frozen=True)
class ReadinessFactors:
    """Pre-session readiness inputs; any may be missing."""

    sleep_hours: float | None = None
    sleep_quality: int | None = None  # 1-5
    stress_level: int | None = None  # 1-5, 5 = most stressed
    nutrition_rating: int | None = None  # 1-5
    previous_session_rpe: float | None = None
    days_since_last_session: int | None = None

    def __post_init__(self) -> None:
        """Validate ranges."""
        if self.sleep_hours is not None and not 0 <= self.sleep_hours <= 24:
            raise InvalidInputError("sleep_hours must be between 0 and 24")
        _check_rating("sleep_quality", self.sleep_quality)
        _check_rating("stress_level", self.stress_level)
        _check_rating("nutrition_rating", self.nutrition_rating)
        if self.days_since_last_session is not None and self.days_since_last_session < 0:
            raise InvalidInputError("days_since_last_session must be non-negative")
        check_rpe(self.previous_session_rpe)


@dataclass(frozen=True)
class ProgressionTargets:
    """Next-session targets for one exercise.  reason is shown to the user."""

    exercise_id: str
    weight_kg: float
    rep_range: tuple[int, int]
    target_reps: int
    target_rir: int
    sets: int
    rest_seconds: int
    progression_type: ProgressionType
    reason: str
    confidence: Confidence = "high"

    def __post_init__(self) -> None:
        if not self.reason.strip():
            raise ValueError("ProgressionTargets.reason must be non-empty")


@dataclass(frozen=True)
class PlateauResult:
    """Plateau assessment over recent sessions."""

    is_plateau: bool
    sessions_stagnant: int
    current_e1rm: float
    best_e1rm: float
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class SetQualityResult:
    quality: SetQuality
    reason: str


@dataclass(frozen=True)
class RegressionResult:
    """Comparison of a session with the one before it."""

    is_regression: bool
    reason: str = ""


@dataclass(frozen=True)
class WarmupSet:
    weight_kg: float
    reps: int
    rest_seconds: int


@dataclass(frozen=True)
class WorkingWeightPlan:
    """Ramp used to discover a working weight when history is thin."""

    exercise_id: str
    start_weight_kg: float
    increment_kg: float
    target_reps: int
    target_rpe: float
    max_attempts: int
    attempts: tuple[float, ...]
    confidence: Confidence
    instructions: str


# ---------------------------------------------------------------------------
# Deload detection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PerformanceLog:
    """One session's recovery and performance signals."""

    week_number: int
    performed_on: str | None = None
    exercise_id: str | None = None
    load_kg: float | None = None
    reps: int | None = None
    average_rpe: float | None = None
    missed_target_reps: bool = False
    perceived_fatigue: int | None = None  # 1-5
    sleep_quality: int | None = None  # 1-5
    joint_pain: bool = False
    strength_decline: bool = False

    def __post_init__(self) -> None:
        """Validate ranges."""
        if self.week_number < 1:
            raise InvalidInputError("week_number must be at least 1")
        _check_rating("perceived_fatigue", self.perceived_fatigue)
        _check_rating("sleep_quality", self.sleep_quality)
        check_rpe(self.average_rpe)


@dataclass(frozen=True)
class DeloadTrigger:
    """Deload decision for the current window; ephemeral."""

    should_deload: bool
    state: DeloadState
    suggested_type: DeloadType | None
    reasons: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    scheduled: bool = False
    pulled_forward: bool = False
    caution_signals: tuple[str, ...] = field(default_factory=tuple)

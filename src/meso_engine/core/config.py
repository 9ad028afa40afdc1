"""
Configuration constants for the adaptive training engine.

Fixed lookup values live here.  Thresholds that the product tunes are
mirrored in the bundled model.yaml and loaded into EngineSettings by
core/engine/config_loader.py; the values below are their defaults.
"""

from dataclasses import dataclass
from typing import Final

# =============================================================================
# BODY COMPOSITION
# =============================================================================

FFMI_HEIGHT_REF_M: Final[float] = 1.8  # Reference height for normalized FFMI
FFMI_HEIGHT_SLOPE: Final[float] = 6.1  # Normalization slope per metre

# Upper bounds (exclusive) on normalized FFMI; above the last bound -> suspicious.
FFMI_CLASSES: Final[list[tuple[float, str]]] = [
    (18.0, "below_average"),
    (20.0, "average"),
    (22.0, "above_average"),
    (23.0, "excellent"),
]
FFMI_SUPERIOR_MAX: Final[float] = 25.0  # Inclusive upper bound of "superior"

NATURAL_FFMI_LIMIT: Final[dict[str, float]] = {
    "novice": 22.0,
    "intermediate": 24.0,
    "advanced": 25.0,
}
NATURAL_FFMI_LIMIT_DEFAULT: Final[float] = 25.0

DAYS_PER_MONTH: Final[float] = 30.44

TREND_LEAN_THRESHOLD_KG: Final[float] = 0.1
TREND_FAT_THRESHOLD_KG: Final[float] = 0.1
TREND_MIN_MONTHS: Final[float] = 0.5

# Goal-based body-composition targets
BULK_BF_GAIN: Final[float] = 3.0
BULK_BF_CEILING: Final[float] = 18.0
BULK_FFMI_GAIN: Final[float] = 1.0
BULK_FFMI_PER_MONTH: Final[float] = 0.25
CUT_BF_LOSS: Final[float] = 5.0
CUT_BF_FLOOR: Final[float] = 10.0
CUT_BF_PER_WEEK: Final[float] = 0.5
BULK_CALORIES: Final[int] = 300
CUT_CALORIES: Final[int] = -500

# =============================================================================
# STRENGTH CALIBRATION
# =============================================================================

BRZYCKI_MAX_REPS: Final[int] = 12  # Above this, Epley is used
MAX_TEST_REPS: Final[int] = 30
RPE_MIN: Final[float] = 1.0  # Logged sets use the full scale
RPE_MAX: Final[float] = 10.0
TEST_RPE_MIN: Final[float] = 6.0  # Below this a test says little about the max

# Lower bounds (inclusive) on the vs-trained percentile.
STRENGTH_LEVELS: Final[list[tuple[float, str]]] = [
    (95.0, "elite"),
    (75.0, "advanced"),
    (50.0, "intermediate"),
    (25.0, "novice"),
    (5.0, "beginner"),
]

# Body-composition cohort: normalized-FFMI brackets (upper bound, midpoint).
# The general percentile table is rescaled by midpoint / reference so a
# lifter is ranked against people carrying similar muscle mass.
FFMI_COHORT_BRACKETS: Final[list[tuple[float, float]]] = [
    (18.0, 17.0),
    (20.0, 19.0),
    (22.0, 21.0),
    (23.0, 22.5),
    (25.0, 24.0),
]
FFMI_COHORT_TOP_MIDPOINT: Final[float] = 26.0
FFMI_COHORT_REFERENCE: Final[float] = 20.0
FEMALE_FFMI_OFFSET: Final[float] = 3.0  # Female FFMI norms sit ~3 points lower

WORKING_WEIGHT_SAFETY: Final[float] = 0.95
START_WEIGHT_ROUNDING_KG: Final[float] = 2.5

# Strength balance (ratio of e1RMs) and tolerance around each ideal.
IDEAL_RATIOS: Final[dict[str, tuple[str, str, float]]] = {
    "upper_lower": ("bench_press", "squat", 0.75),
    "push_pull": ("barbell_row", "bench_press", 0.75),
    "anterior_posterior": ("squat", "deadlift", 0.80),
    "vertical_horizontal_push": ("overhead_press", "bench_press", 0.60),
}
RATIO_TOLERANCE: Final[float] = 0.15
IMBALANCE_PENALTY: Final[dict[str, float]] = {
    "minor": 0.10,
    "moderate": 0.20,
    "significant": 0.35,
}

# =============================================================================
# VOLUME
# =============================================================================

GOAL_VOLUME_MULTIPLIER: Final[dict[str, float]] = {
    "cut": 0.7,
    "maintenance": 1.0,
    "bulk": 1.1,
}
SECONDARY_SET_CREDIT: Final[float] = 0.5

EXPERIENCE_LEVELS: Final[tuple[str, ...]] = ("novice", "intermediate", "advanced")
GOALS: Final[tuple[str, ...]] = ("cut", "maintenance", "bulk")

# =============================================================================
# FATIGUE
# =============================================================================

A_RIR: Final[float] = 0.15  # Cost multiplier per RIR below 3
RIR_FACTOR_FLOOR: Final[float] = 0.5
REFERENCE_SETS: Final[int] = 3  # fatigue_base is tabulated for a 3-set block
COMPOUND_FATIGUE_RANGE: Final[tuple[float, float]] = (8.0, 12.0)
ISOLATION_FATIGUE_RANGE: Final[tuple[float, float]] = (3.0, 5.0)

SFR_HIGH: Final[float] = 1.0
SFR_LOW: Final[float] = 0.6
HIGH_FATIGUE_FRACTION: Final[float] = 0.6

# Per-session systemic budget by experience
SESSION_SYSTEMIC_BUDGET: Final[dict[str, float]] = {
    "novice": 60.0,
    "intermediate": 80.0,
    "advanced": 100.0,
}
LOCAL_BUDGET_PER_MUSCLE: Final[float] = 12.0
CUT_BUDGET_FACTOR: Final[float] = 0.85

COMPOUND_RECOVERY_DAYS: Final[int] = 3
ISOLATION_RECOVERY_DAYS: Final[int] = 2

# =============================================================================
# PERIODIZATION
# =============================================================================

MESOCYCLE_WEEKS: Final[dict[str, int]] = {
    "novice": 4,
    "intermediate": 6,
    "advanced": 8,
}
CUT_MESOCYCLE_WEEKS: Final[int] = 6

START_RIR: Final[int] = 3
FINAL_WEEK_RIR: Final[dict[str, int]] = {
    "novice": 1,
    "intermediate": 1,
    "advanced": 0,
}
DELOAD_RIR: Final[int] = 4

DELOAD_VOLUME_FRACTION: Final[float] = 0.5
DELOAD_INTENSITY_FRACTION: Final[float] = 0.6

SCHEDULE_DAYS: Final[dict[int, list[str]]] = {
    1: ["Mon"],
    2: ["Mon", "Thu"],
    3: ["Mon", "Wed", "Fri"],
    4: ["Mon", "Tue", "Thu", "Fri"],
    5: ["Mon", "Tue", "Wed", "Fri", "Sat"],
    6: ["Mon", "Tue", "Wed", "Fri", "Sat", "Sun"],
    7: ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"],
}

# Order muscles are trained within a session (big and systemic first)
MUSCLE_ORDER: Final[list[str]] = [
    "quads", "hamstrings", "glutes", "back", "chest",
    "shoulders", "biceps", "triceps", "calves", "abs",
]

SPLIT_TEMPLATES: Final[dict[str, list[tuple[str, list[str]]]]] = {
    "Full Body": [
        ("Full Body A", ["quads", "chest", "shoulders", "triceps", "abs"]),
        ("Full Body B", ["hamstrings", "back", "biceps", "glutes", "calves"]),
        ("Full Body C", ["quads", "back", "shoulders", "biceps", "triceps"]),
    ],
    "Upper/Lower": [
        ("Upper A", ["chest", "back", "shoulders", "biceps", "triceps"]),
        ("Lower A", ["quads", "hamstrings", "glutes", "calves", "abs"]),
        ("Upper B", ["back", "chest", "shoulders", "triceps", "biceps"]),
        ("Lower B", ["hamstrings", "quads", "glutes", "calves", "abs"]),
    ],
    "Push/Pull/Legs": [
        ("Push", ["chest", "shoulders", "triceps"]),
        ("Pull", ["back", "biceps", "shoulders"]),
        ("Legs", ["quads", "hamstrings", "glutes", "calves", "abs"]),
    ],
}

MAX_SETS_PER_EXERCISE: Final[int] = 4
MAX_SETS_PER_MUSCLE_SESSION: Final[int] = 8  # Sets beyond this in one session are junk volume
COMPOUND_REST_SECONDS: Final[int] = 180
ISOLATION_REST_SECONDS: Final[int] = 120

# =============================================================================
# PROGRESSION & READINESS
# =============================================================================

READINESS_LOW: Final[float] = 60.0
READINESS_MODERATE: Final[float] = 75.0
READINESS_WEIGHTS: Final[dict[str, float]] = {
    "sleep": 0.35,
    "stress": 0.25,
    "nutrition": 0.20,
    "recovery": 0.20,
}
NEUTRAL_SLEEP_QUALITY: Final[int] = 4  # Quality that neither raises nor lowers the sleep score
LOW_READINESS_REST_BONUS: Final[int] = 30

DEFAULT_INCREMENT_KG: Final[float] = 2.5
DEFAULT_START_MULTIPLIER: Final[float] = 0.3  # Unknown exercises and catalog compounds without a multiplier
ISOLATION_START_MULTIPLIER: Final[float] = 0.1
MAX_SETS_COMPOUND: Final[int] = 5
MAX_SETS_ISOLATION: Final[int] = 4
MIN_SETS: Final[int] = 2

PLATEAU_SESSIONS: Final[int] = 3
PLATEAU_MIN_GAIN: Final[float] = 0.01

# Set quality by RPE: junk (far from failure) < effective < stimulative; failure
# before the last set is excessive
JUNK_RPE_MAX: Final[float] = 5.0
STIMULATIVE_RPE_MIN: Final[float] = 7.5
STIMULATIVE_RPE_MAX: Final[float] = 9.5
EXCESSIVE_RPE: Final[float] = 10.0

# Regression between consecutive sessions
REGRESSION_REP_DROP: Final[int] = 1  # Reps lost at the same load beyond this
REGRESSION_RPE_RISE: Final[float] = 1.0  # RPE gained for identical work beyond this

WORKING_WEIGHT_MAX_ATTEMPTS: Final[int] = 5

# Warm-up ramps as fractions of working weight, keyed by minimum working weight
WARMUP_RAMPS: Final[list[tuple[float, list[tuple[float, int]]]]] = [
    (100.0, [(0.3, 8), (0.5, 5), (0.7, 3), (0.85, 1)]),
    (50.0, [(0.4, 8), (0.6, 5), (0.8, 2)]),
    (20.0, [(0.5, 8), (0.75, 4)]),
]

# =============================================================================
# DELOAD DETECTION
# =============================================================================

FATIGUE_HIGH: Final[int] = 4
SLEEP_POOR: Final[int] = 2
RPE_CREEP_MIN: Final[float] = 1.0
RPE_CREEP_SESSIONS: Final[int] = 3
MISSED_REPS_SESSIONS: Final[int] = 2
HIGH_FATIGUE_WEEKS: Final[int] = 2
POOR_SLEEP_ENTRIES: Final[int] = 2
FULL_DELOAD_CATEGORIES: Final[int] = 3

# Trigger categories that call for dropping load rather than sets
INTENSITY_CATEGORIES: Final[frozenset[str]] = frozenset({"joint_pain", "strength_decline"})


@dataclass(frozen=True)
class DeloadModifiers:
    """Multipliers applied to a normal week for one deload style."""

    volume: float
    intensity: float


DELOAD_MODIFIERS: Final[dict[str, DeloadModifiers]] = {
    "volume": DeloadModifiers(volume=0.5, intensity=1.0),
    "intensity": DeloadModifiers(volume=0.7, intensity=0.85),
    "full": DeloadModifiers(volume=0.5, intensity=0.6),
}


def goal_volume_multiplier(goal: str) -> float:
    """Return the recommended-volume multiplier for a goal (1.0 if unknown)."""
    return GOAL_VOLUME_MULTIPLIER.get(goal, 1.0)


def experience_index(experience: str) -> int:
    """Column index for [novice, intermediate, advanced] table rows."""
    return EXPERIENCE_LEVELS.index(experience)

"""
Strength calibration: estimated 1RM, population percentiles and strength
level for benchmark lifts.

Percentile tables are piecewise-linear maps from bodyweight-normalized
strength (e1RM / bodyweight, or reps for pull-ups) to a population
percentile.  Three cohorts are scored:

- general:   the tabulated population
- trained:   general minus the lift's trained offset
- body comp: the general table rescaled to the lifter's FFMI bracket, so a
             lifter is ranked against people carrying similar muscle mass
"""

from __future__ import annotations

import math

from loguru import logger

from .config import (
    BRZYCKI_MAX_REPS,
    FEMALE_FFMI_OFFSET,
    FFMI_COHORT_BRACKETS,
    FFMI_COHORT_REFERENCE,
    FFMI_COHORT_TOP_MIDPOINT,
    MAX_TEST_REPS,
    START_WEIGHT_ROUNDING_KG,
    STRENGTH_LEVELS,
    TEST_RPE_MIN,
    WORKING_WEIGHT_SAFETY,
)
from .errors import InvalidInputError, LookupMiss
from .models import (
    BodyComposition,
    CalibrationResult,
    Confidence,
    PercentileScore,
    StrengthLevel,
    check_rpe,
    check_sex,
)
from .tables.base import BenchmarkLift, Breakpoints
from .tables.registry import GENERIC_BENCHMARK_ID, get_benchmark


def _check_reps(reps: int) -> None:
    if reps < 1 or reps > MAX_TEST_REPS:
        raise InvalidInputError(f"reps must be between 1 and {MAX_TEST_REPS}, got {reps}")


def estimate_1rm(weight_kg: float, reps: int) -> float:
    """
    Estimate a one-rep max from a sub-maximal set.

    1 rep is taken as-is.  2-12 reps use Brzycki, w × 36 / (37 − reps).
    Above 12 reps Brzycki degrades, so Epley is used: w × (1 + reps/30).

    Raises:
        InvalidInputError: Non-positive weight, reps outside 1-30
    """
    if weight_kg <= 0:
        raise InvalidInputError(f"weight must be positive, got {weight_kg}")
    _check_reps(reps)
    if reps == 1:
        return float(weight_kg)
    if reps > BRZYCKI_MAX_REPS:
        return weight_kg * (1 + reps / 30)
    return weight_kg * 36 / (37 - reps)


def percentile_from_table(value: float, table: Breakpoints) -> float:
    """
    Interpolate a percentile from (percentile, strength) breakpoints.

    Below the first breakpoint the line runs from the origin; above the
    last breakpoint the top percentile is returned.  The result is
    non-decreasing in value and lies in [0, 100].
    """
    if value < 0:
        return 0.0
    prev_p, prev_v = 0.0, 0.0
    for i, (p, v) in enumerate(table):
        if value < v:
            if i == 0:
                pct = p * value / v
            else:
                pct = prev_p + (value - prev_v) / (v - prev_v) * (p - prev_p)
            return max(0.0, min(100.0, pct))
        prev_p, prev_v = p, v
    return min(100.0, table[-1][0])


def trained_percentile(vs_general: float, offset: float) -> float:
    """
    Rank against people who already train.

    The bottom offset points of the general population are assumed not to
    train at all; the remaining range is stretched back onto 0-100.
    """
    return max(0.0, min(100.0, (vs_general - offset) / (100 - offset) * 100))


def scale_table(table: Breakpoints, factor: float) -> Breakpoints:
    """Multiply every strength breakpoint by factor (percentiles unchanged)."""
    return tuple((p, v * factor) for p, v in table)


def ffmi_cohort_factor(body_comp: BodyComposition, sex: str) -> float:
    """
    Scale factor for the body-composition-matched cohort.

    Normalized FFMI (plus 3 for women, whose norms sit lower) is binned
    into the FFMI class brackets; the bracket midpoint over the reference
    FFMI of 20 rescales the population table.
    """
    adjusted = body_comp.normalized_ffmi + (FEMALE_FFMI_OFFSET if sex == "female" else 0.0)
    for upper, midpoint in FFMI_COHORT_BRACKETS:
        if adjusted < upper:
            return midpoint / FFMI_COHORT_REFERENCE
    return FFMI_COHORT_TOP_MIDPOINT / FFMI_COHORT_REFERENCE


def strength_level(vs_trained: float) -> StrengthLevel:
    """untrained <5, beginner <25, novice <50, intermediate <75, advanced <95, elite."""
    for lower, label in STRENGTH_LEVELS:
        if vs_trained >= lower:
            return label  # type: ignore[return-value]
    return "untrained"


def _resolve_benchmark(
    lift_id: str,
    benchmarks: dict[str, BenchmarkLift] | None,
) -> tuple[BenchmarkLift, bool]:
    """Return (benchmark, missed); unknown lifts use the generic table."""
    try:
        return get_benchmark(lift_id, benchmarks), False
    except LookupMiss:
        logger.warning("no benchmark table for '{}'; using generic percentiles", lift_id)
        return get_benchmark(GENERIC_BENCHMARK_ID, benchmarks), True


def calibrate_lift(
    lift_id: str,
    weight_kg: float,
    reps: int,
    sex: str,
    body_comp: BodyComposition,
    rpe: float | None = None,
    tested_on: str | None = None,
    benchmarks: dict[str, BenchmarkLift] | None = None,
) -> CalibrationResult:
    """
    Score one benchmark test.

    Args:
        lift_id: Benchmark id, e.g. "bench_press" or "pullup"
        weight_kg: Tested load; for rep-scored lifts the added load (may be 0)
        reps: Reps performed, 1-30
        sex: "male" or "female"; selects the percentile table
        body_comp: Snapshot supplying bodyweight and FFMI
        rpe: Optional RPE of the set, 6-10
        tested_on: Optional ISO date of the test
        benchmarks: Optional fixture table

    Returns:
        CalibrationResult.  Confidence is "low" when the lift has no table
        of its own and "medium" when reps exceed the Brzycki range.

    Raises:
        InvalidInputError: Non-positive weight/reps, RPE outside 6-10,
            unknown sex
    """
    check_sex(sex)
    check_rpe(rpe, TEST_RPE_MIN)
    benchmark, missed = _resolve_benchmark(lift_id, benchmarks)

    if benchmark.rep_scored:
        if weight_kg < 0:
            raise InvalidInputError(f"added weight must be non-negative, got {weight_kg}")
        _check_reps(reps)
        e1rm = float(reps)
        normalized = float(reps)
    else:
        e1rm = estimate_1rm(weight_kg, reps)
        normalized = e1rm / body_comp.total_weight_kg

    table = benchmark.table(sex)
    vs_general = percentile_from_table(normalized, table)
    vs_trained = trained_percentile(vs_general, benchmark.trained_offset)
    cohort_table = scale_table(table, ffmi_cohort_factor(body_comp, sex))
    vs_body_comp = percentile_from_table(normalized, cohort_table)

    confidence: Confidence = "high"
    if missed:
        confidence = "low"
    elif reps > BRZYCKI_MAX_REPS:
        confidence = "medium"

    level = strength_level(vs_trained)
    logger.debug(
        "{}: e1RM {:.1f}, percentiles {:.0f}/{:.0f}/{:.0f}, level {}",
        lift_id, e1rm, vs_general, vs_trained, vs_body_comp, level,
    )
    return CalibrationResult(
        lift_id=lift_id,
        lift_name=benchmark.name if not missed else lift_id.replace("_", " ").title(),
        tested_weight_kg=weight_kg,
        tested_reps=reps,
        tested_rpe=rpe,
        estimated_1rm=round(e1rm, 1),
        percentiles=PercentileScore(
            vs_general=round(vs_general, 1),
            vs_trained=round(vs_trained, 1),
            vs_body_comp=round(vs_body_comp, 1),
        ),
        strength_level=level,
        confidence=confidence,
        score_unit="reps" if benchmark.rep_scored else "kg",
        tested_on=tested_on,
    )


def rep_max_fraction(effective_reps: int) -> float:
    """Fraction of 1RM that allows effective_reps reps (inverse of estimate_1rm)."""
    effective_reps = max(1, min(effective_reps, MAX_TEST_REPS))
    if effective_reps == 1:
        return 1.0
    if effective_reps > BRZYCKI_MAX_REPS:
        return 1 / (1 + effective_reps / 30)
    return (37 - effective_reps) / 36


def working_weight(
    e1rm: float,
    target_reps: int,
    target_rir: int,
    increment_kg: float = 2.5,
) -> float:
    """
    Working load for target_reps leaving target_rir in reserve.

    The load is 95 % of the rep-max load for reps + RIR, rounded down to
    the equipment increment.
    """
    if e1rm <= 0:
        raise InvalidInputError(f"e1rm must be positive, got {e1rm}")
    if target_reps < 1:
        raise InvalidInputError("target_reps must be at least 1")
    if target_rir < 0:
        raise InvalidInputError("target_rir must be non-negative")
    raw = e1rm * rep_max_fraction(target_reps + target_rir) * WORKING_WEIGHT_SAFETY
    return math.floor(raw / increment_kg) * increment_kg


def suggested_start_weight(
    lift_id: str,
    bodyweight_kg: float,
    benchmarks: dict[str, BenchmarkLift] | None = None,
) -> float:
    """Conservative first test load: bodyweight × start ratio, to 2.5 kg."""
    if bodyweight_kg <= 0:
        raise InvalidInputError("bodyweight must be positive")
    benchmark, _ = _resolve_benchmark(lift_id, benchmarks)
    raw = bodyweight_kg * benchmark.start_ratio
    return round(raw / START_WEIGHT_ROUNDING_KG) * START_WEIGHT_ROUNDING_KG


def testing_order(
    lift_ids: list[str],
    benchmarks: dict[str, BenchmarkLift] | None = None,
) -> list[str]:
    """Order benchmark tests from least to most fatiguing; unknown lifts last."""
    def key(lift_id: str) -> int:
        try:
            return get_benchmark(lift_id, benchmarks).test_order
        except LookupMiss:
            return 99

    return sorted(lift_ids, key=key)

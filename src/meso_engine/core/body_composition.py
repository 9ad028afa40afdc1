"""
Body-composition analysis: FFMI, natural-limit context, trends and
goal targets.

FFMI = lean mass / height²; the normalized form adds
6.1 × (1.8 − height_m) so tall and short lifters compare on one scale.
"""

from __future__ import annotations

import math
from datetime import date

from loguru import logger

from .config import (
    BULK_BF_CEILING,
    BULK_BF_GAIN,
    BULK_CALORIES,
    BULK_FFMI_GAIN,
    BULK_FFMI_PER_MONTH,
    CUT_BF_FLOOR,
    CUT_BF_LOSS,
    CUT_BF_PER_WEEK,
    CUT_CALORIES,
    DAYS_PER_MONTH,
    FFMI_CLASSES,
    FFMI_SUPERIOR_MAX,
    NATURAL_FFMI_LIMIT,
    NATURAL_FFMI_LIMIT_DEFAULT,
)
from .engine.config_loader import DEFAULT_SETTINGS, EngineSettings
from .errors import InsufficientDataError, InvalidInputError
from .models import (
    BodyComposition,
    BodyCompRecommendation,
    BodyCompTargets,
    BodyCompTrend,
    FFMIClass,
    FFMIResult,
    TrendType,
    check_goal,
)


def classify_ffmi(normalized_ffmi: float) -> FFMIClass:
    """
    Classify a normalized FFMI.

    <18 below_average, <20 average, <22 above_average, <23 excellent,
    ≤25 superior, above that suspicious.  "suspicious" flags values that
    are rarely reached naturally; it is not an error.
    """
    for upper, label in FFMI_CLASSES:
        if normalized_ffmi < upper:
            return label  # type: ignore[return-value]
    if normalized_ffmi <= FFMI_SUPERIOR_MAX:
        return "superior"
    return "suspicious"


def natural_limit(experience: str | None = None) -> float:
    """Approximate natural normalized-FFMI ceiling for a training age."""
    if experience is None:
        return NATURAL_FFMI_LIMIT_DEFAULT
    return NATURAL_FFMI_LIMIT.get(experience, NATURAL_FFMI_LIMIT_DEFAULT)


def analyze_ffmi(body_comp: BodyComposition, experience: str | None = None) -> FFMIResult:
    """
    Analyze one body-composition snapshot.

    Args:
        body_comp: Validated snapshot
        experience: Training age; selects the natural limit

    Returns:
        FFMIResult with FFMI values rounded to 0.1 and percent of the
        natural limit (capped at 100) rounded to a whole number
    """
    normalized = body_comp.normalized_ffmi
    limit = natural_limit(experience)
    return FFMIResult(
        ffmi=round(body_comp.ffmi, 1),
        normalized_ffmi=round(normalized, 1),
        classification=classify_ffmi(normalized),
        natural_limit=limit,
        percent_of_limit=float(round(min(normalized / limit * 100, 100.0))),
    )


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value[:10])
    except ValueError as e:
        raise InvalidInputError(f"Invalid measurement date: {value!r}") from e


def classify_trend(
    lean_per_month: float,
    fat_per_month: float,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> TrendType:
    """Categorize monthly lean/fat rates; changes under the thresholds are noise."""
    lean_t = settings.trend_lean_threshold_kg
    fat_t = settings.trend_fat_threshold_kg
    if lean_per_month > lean_t and fat_per_month < -fat_t:
        return "recomping"
    if lean_per_month > lean_t:
        return "gaining_muscle"
    if lean_per_month < -lean_t:
        return "losing_muscle"
    if fat_per_month > fat_t:
        return "gaining_fat"
    if fat_per_month < -fat_t:
        return "losing_fat"
    return "stable"


def analyze_trend(
    samples: list[BodyComposition],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> BodyCompTrend:
    """
    Monthly rate of change between the oldest and newest samples.

    Args:
        samples: Snapshots with measured_on set, in any order
        settings: Tunable trend thresholds

    Returns:
        BodyCompTrend with rates rounded to 0.01 per month

    Raises:
        InsufficientDataError: Fewer than 2 samples, undated samples, or
            a span shorter than the minimum trend window
    """
    if len(samples) < 2:
        raise InsufficientDataError(
            f"Body-composition trend needs at least 2 samples, got {len(samples)}"
        )
    if any(s.measured_on is None for s in samples):
        raise InsufficientDataError("Body-composition trend needs dated samples")

    ordered = sorted(samples, key=lambda s: _parse_day(s.measured_on))  # type: ignore[arg-type]
    oldest, newest = ordered[0], ordered[-1]
    days = (_parse_day(newest.measured_on) - _parse_day(oldest.measured_on)).days  # type: ignore[arg-type]
    months = days / DAYS_PER_MONTH
    if months < settings.trend_min_months:
        raise InsufficientDataError(
            f"Samples span {days} days; a trend needs at least "
            f"{settings.trend_min_months:g} months"
        )

    lean_rate = (newest.lean_mass_kg - oldest.lean_mass_kg) / months
    fat_rate = (newest.fat_mass_kg - oldest.fat_mass_kg) / months
    bf_rate = (newest.body_fat_percentage - oldest.body_fat_percentage) / months
    ffmi_rate = (newest.normalized_ffmi - oldest.normalized_ffmi) / months

    trend = classify_trend(lean_rate, fat_rate, settings)
    logger.debug(
        "body-comp trend {} over {:.1f} months (lean {:+.2f}, fat {:+.2f} kg/month)",
        trend, months, lean_rate, fat_rate,
    )
    return BodyCompTrend(
        lean_mass_per_month=round(lean_rate, 2),
        fat_mass_per_month=round(fat_rate, 2),
        body_fat_per_month=round(bf_rate, 2),
        ffmi_per_month=round(ffmi_rate, 2),
        trend=trend,
        months=round(months, 2),
        data_points=len(samples),
    )


def body_comp_recommendations(
    samples: list[BodyComposition],
    goal: str,
    experience: str | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[BodyCompRecommendation]:
    """
    Coaching notes for the current phase, highest priority first.

    Uses the newest sample for snapshot checks and the trend (when enough
    data exists) for rate checks.
    """
    check_goal(goal)
    if not samples:
        return []

    dated = [s for s in samples if s.measured_on is not None]
    latest = max(dated, key=lambda s: s.measured_on) if dated else samples[-1]  # type: ignore[arg-type, return-value]
    ffmi = analyze_ffmi(latest, experience)
    notes: list[BodyCompRecommendation] = []

    if ffmi.percent_of_limit >= 95:
        notes.append(BodyCompRecommendation(
            "potential",
            f"Normalized FFMI {ffmi.normalized_ffmi} is close to the natural limit of "
            f"{ffmi.natural_limit:g}; expect slow muscle gain from here.",
            priority=3,
        ))
    if goal == "bulk" and latest.body_fat_percentage > 20:
        notes.append(BodyCompRecommendation(
            "phase",
            f"Body fat is {latest.body_fat_percentage:g}%; consider a mini-cut before "
            "continuing the bulk.",
            priority=5,
        ))
    if goal == "cut" and latest.body_fat_percentage < 10:
        notes.append(BodyCompRecommendation(
            "phase",
            f"Body fat is {latest.body_fat_percentage:g}%; cutting further risks muscle "
            "loss. Consider maintenance.",
            priority=5,
        ))

    try:
        trend = analyze_trend(samples, settings)
    except InsufficientDataError:
        trend = None

    if trend is not None:
        if goal == "bulk" and trend.fat_mass_per_month > 0.5:
            notes.append(BodyCompRecommendation(
                "rate",
                f"Fat mass is rising {trend.fat_mass_per_month} kg/month; reduce the "
                "calorie surplus.",
                priority=4,
            ))
        if goal == "bulk" and trend.lean_mass_per_month < 0.2 and experience != "advanced":
            notes.append(BodyCompRecommendation(
                "rate",
                f"Lean mass is rising only {trend.lean_mass_per_month} kg/month; check "
                "training volume and protein intake.",
                priority=3,
            ))
        if goal == "cut" and trend.lean_mass_per_month < -0.2:
            notes.append(BodyCompRecommendation(
                "rate",
                f"Lean mass is falling {abs(trend.lean_mass_per_month)} kg/month; slow the "
                "deficit and keep training intensity high.",
                priority=4,
            ))
        if trend.trend == "recomping":
            notes.append(BodyCompRecommendation(
                "progress",
                "Gaining lean mass while losing fat. Keep the current approach.",
                priority=1,
            ))

    return sorted(notes, key=lambda n: n.priority, reverse=True)


def body_comp_targets(
    current: BodyComposition,
    goal: str,
    experience: str | None = None,
) -> BodyCompTargets:
    """
    Realistic end-of-phase targets for a goal.

    bulk: body fat +3 (max 18 %), normalized FFMI +1 capped at the natural
    limit, about 0.25 FFMI per month.  cut: body fat −5 (min 10 %) at
    0.5 % per week.  maintenance keeps both.
    """
    check_goal(goal)
    ffmi = current.normalized_ffmi
    bf = current.body_fat_percentage

    if goal == "bulk":
        target_bf = min(bf + BULK_BF_GAIN, max(bf, BULK_BF_CEILING))
        target_ffmi = min(ffmi + BULK_FFMI_GAIN, max(ffmi, natural_limit(experience)))
        months = (target_ffmi - ffmi) / BULK_FFMI_PER_MONTH
        weeks = math.ceil(months * 4)
        return BodyCompTargets(
            goal="bulk",
            target_body_fat=round(target_bf, 1),
            target_ffmi=round(target_ffmi, 1),
            estimated_weeks=weeks,
            calorie_adjustment=BULK_CALORIES,
            direction="Gain lean mass with a modest surplus",
        )
    if goal == "cut":
        target_bf = max(bf - CUT_BF_LOSS, min(bf, CUT_BF_FLOOR))
        weeks = math.ceil((bf - target_bf) / CUT_BF_PER_WEEK)
        return BodyCompTargets(
            goal="cut",
            target_body_fat=round(target_bf, 1),
            target_ffmi=round(ffmi, 1),
            estimated_weeks=weeks,
            calorie_adjustment=CUT_CALORIES,
            direction="Lose fat while holding lean mass",
        )
    return BodyCompTargets(
        goal="maintenance",
        target_body_fat=round(bf, 1),
        target_ffmi=round(ffmi, 1),
        estimated_weeks=0,
        calorie_adjustment=0,
        direction="Hold body composition and build performance",
    )

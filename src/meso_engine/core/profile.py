"""
Strength profile aggregation.

Combines the latest calibration of each lift into an overall score, a
strength level, a balance score and a list of imbalances between lift
pairs that should stand in roughly fixed ratios.
"""

from __future__ import annotations

from loguru import logger

from .config import IDEAL_RATIOS, IMBALANCE_PENALTY, RATIO_TOLERANCE
from .errors import InsufficientDataError, LookupMiss
from .models import (
    BodyComposition,
    CalibrationResult,
    Imbalance,
    Severity,
    StrengthProfile,
)
from .strength import strength_level
from .tables.base import BenchmarkLift
from .tables.registry import get_benchmark

_RATIO_ADVICE = {
    "upper_lower": ("upper body", "lower body"),
    "push_pull": ("pulling", "pressing"),
    "anterior_posterior": ("squat", "hinge"),
    "vertical_horizontal_push": ("overhead pressing", "horizontal pressing"),
}


def latest_calibrations(calibrations: list[CalibrationResult]) -> list[CalibrationResult]:
    """Keep the most recent calibration per lift (later entries win ties)."""
    latest: dict[str, CalibrationResult] = {}
    for cal in calibrations:
        current = latest.get(cal.lift_id)
        if current is None or (cal.tested_on or "") >= (current.tested_on or ""):
            latest[cal.lift_id] = cal
    return list(latest.values())


def _severity(deviation: float) -> Severity:
    if deviation > 0.30:
        return "significant"
    if deviation > 0.20:
        return "moderate"
    return "minor"


def detect_imbalances(by_lift: dict[str, CalibrationResult]) -> list[Imbalance]:
    """
    Compare e1RM ratios against their ideal values.

    A ratio counts as an imbalance when it deviates from the ideal by more
    than 15 %.  Pairs with a missing lift are skipped.
    """
    found: list[Imbalance] = []
    for kind, (top_id, bottom_id, ideal) in IDEAL_RATIOS.items():
        top, bottom = by_lift.get(top_id), by_lift.get(bottom_id)
        if top is None or bottom is None or bottom.estimated_1rm <= 0:
            continue
        ratio = top.estimated_1rm / bottom.estimated_1rm
        deviation = ratio / ideal - 1
        if abs(deviation) <= RATIO_TOLERANCE:
            continue

        severity = _severity(abs(deviation))
        top_label, bottom_label = _RATIO_ADVICE.get(kind, (top.lift_name, bottom.lift_name))
        weak = top_label if deviation < 0 else bottom_label
        found.append(
            Imbalance(
                type=kind,
                severity=severity,
                description=(
                    f"{top.lift_name}/{bottom.lift_name} ratio {ratio:.2f} "
                    f"vs ideal {ideal:.2f} ({deviation:+.0%})"
                ),
                recommendation=f"Add volume for {weak} work until the ratio recovers.",
                ratio=round(ratio, 2),
                ideal_ratio=ideal,
            )
        )
    return found


def _lift_weight(lift_id: str, benchmarks: dict[str, BenchmarkLift] | None) -> float:
    try:
        return get_benchmark(lift_id, benchmarks).weight
    except LookupMiss:
        return 1.0


def _recommendations(
    overall: float,
    balance: int,
    imbalances: list[Imbalance],
    body_comp: BodyComposition,
) -> list[str]:
    recs: list[str] = []
    if overall < 25:
        recs.append("Focus on technique and consistent linear progression on the main lifts.")
    elif overall < 50:
        recs.append("Keep adding load steadily; most lifts still have easy progress left.")
    elif overall < 75:
        recs.append("Progress with weekly undulation and planned deloads.")
    else:
        recs.append("Strength is well above average; prioritize specific weak points.")

    if balance < 70:
        recs.append("Strength balance is low; bring up lagging movement patterns first.")
    for imb in imbalances:
        if imb.severity != "minor":
            recs.append(imb.recommendation)
    if body_comp.normalized_ffmi < 19 and overall > 40:
        recs.append("Strength outpaces muscle mass; a hypertrophy block would pay off.")
    return recs


def build_strength_profile(
    body_comp: BodyComposition,
    calibrations: list[CalibrationResult],
    benchmarks: dict[str, BenchmarkLift] | None = None,
) -> StrengthProfile:
    """
    Aggregate calibrations into a StrengthProfile.

    Args:
        body_comp: Current body-composition snapshot
        calibrations: Any number of calibrations; the latest per lift is used
        benchmarks: Optional fixture table supplying lift weights

    Returns:
        StrengthProfile with the weighted overall score (vs trained
        cohort), balance score 0-100 and imbalances

    Raises:
        InsufficientDataError: If there are no calibrations
    """
    current = latest_calibrations(calibrations)
    if not current:
        raise InsufficientDataError("at least one calibration is needed for a strength profile")

    weights = {c.lift_id: _lift_weight(c.lift_id, benchmarks) for c in current}
    total_weight = sum(weights.values())
    overall = sum(c.percentiles.vs_trained * weights[c.lift_id] for c in current) / total_weight

    by_lift = {c.lift_id: c for c in current}
    imbalances = detect_imbalances(by_lift)
    penalty = sum(IMBALANCE_PENALTY[i.severity] for i in imbalances)
    balance = max(0, round((1 - penalty / len(IDEAL_RATIOS)) * 100))

    logger.debug(
        "profile: {} lifts, overall {:.1f}, balance {}, {} imbalances",
        len(current), overall, balance, len(imbalances),
    )
    return StrengthProfile(
        body_composition=body_comp,
        calibrations=tuple(current),
        overall_score=round(overall, 1),
        strength_level=strength_level(overall),
        balance_score=balance,
        imbalances=tuple(imbalances),
        recommendations=tuple(_recommendations(overall, balance, imbalances, body_comp)),
    )

"""
Weekly volume against MEV / MAV / MRV landmarks.

Measured status never depends on the goal; the goal only scales the
recommended weekly sets (cut ×0.7, maintenance ×1.0, bulk ×1.1).
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta

from loguru import logger

from .config import (
    EXCESSIVE_RPE,
    SECONDARY_SET_CREDIT,
    STIMULATIVE_RPE_MAX,
    experience_index,
    goal_volume_multiplier,
)
from .engine.config_loader import DEFAULT_SETTINGS, EngineSettings
from .errors import InvalidInputError, LookupMiss
from .models import (
    SetLog,
    SetQualityResult,
    VolumeAction,
    VolumeLandmarks,
    VolumeStatus,
    WeeklyMuscleVolume,
    check_experience,
    check_goal,
    check_rpe,
)
from .tables.base import ExerciseSpec, VolumeTable
from .tables.registry import VOLUME_TABLE, get_exercise


def classify_volume(sets: float, landmarks: VolumeLandmarks) -> VolumeStatus:
    """
    Status of a weekly set count.

    below_mev < mev ≤ effective < mav ≤ optimal ≤ (mav+mrv)/2 <
    approaching_mrv ≤ mrv < exceeding_mrv.  Every non-negative count maps
    to exactly one status.

    Raises:
        InvalidInputError: If sets is negative
    """
    if sets < 0:
        raise InvalidInputError(f"weekly sets must be non-negative, got {sets}")
    if sets < landmarks.mev:
        return "below_mev"
    if sets < landmarks.mav:
        return "effective"
    if sets <= (landmarks.mav + landmarks.mrv) / 2:
        return "optimal"
    if sets <= landmarks.mrv:
        return "approaching_mrv"
    return "exceeding_mrv"


def resolve_landmarks(
    muscle: str,
    experience: str,
    overrides: dict[str, VolumeLandmarks] | None = None,
    table: VolumeTable = VOLUME_TABLE,
) -> VolumeLandmarks:
    """User override if present, else the experience default, else generic landmarks."""
    check_experience(experience)
    if overrides and muscle in overrides:
        return overrides[muscle]
    defaults = table.landmarks.get(experience, {})
    if muscle in defaults:
        return defaults[muscle]
    logger.warning("no volume landmarks for '{}'; using generic landmarks", muscle)
    return table.generic_landmarks


def recommend_volume(
    experience: str,
    goal: str,
    muscle: str,
    table: VolumeTable = VOLUME_TABLE,
) -> int:
    """
    Recommended weekly sets for a muscle.

    Example: intermediate chest base 14, bulk → round(14 × 1.1) = 15.
    """
    check_experience(experience)
    check_goal(goal)
    row = table.base_volume.get(muscle)
    base = row[experience_index(experience)] if row else table.generic_base_volume
    return round(base * goal_volume_multiplier(goal))


def _action(status: VolumeStatus, total_sets: float, recommended: int) -> VolumeAction:
    if status == "below_mev" or (status == "effective" and total_sets < recommended):
        return "increase"
    if status == "exceeding_mrv":
        return "decrease"
    return "maintain"


def track_weekly_volume(
    weekly_sets: dict[str, float],
    experience: str,
    goal: str = "maintenance",
    overrides: dict[str, VolumeLandmarks] | None = None,
    table: VolumeTable = VOLUME_TABLE,
) -> list[WeeklyMuscleVolume]:
    """
    Classify one week of sets per muscle.

    Args:
        weekly_sets: {muscle: working sets this week}
        experience: Selects default landmarks and base volume
        goal: Scales recommended sets only
        overrides: Per-muscle user landmarks

    Returns:
        One WeeklyMuscleVolume per muscle, in input order
    """
    result: list[WeeklyMuscleVolume] = []
    for muscle, total in weekly_sets.items():
        landmarks = resolve_landmarks(muscle, experience, overrides, table)
        status = classify_volume(total, landmarks)
        recommended = recommend_volume(experience, goal, muscle, table)
        pct = round(total / landmarks.mrv * 100, 1) if landmarks.mrv > 0 else 0.0
        result.append(
            WeeklyMuscleVolume(
                muscle_group=muscle,
                total_sets=total,
                status=status,
                landmarks=landmarks,
                recommended_sets=recommended,
                percent_of_mrv=pct,
                action=_action(status, total, recommended),
            )
        )
    return result


def set_quality(
    rpe: float,
    reps: int,
    rep_range: tuple[int, int],
    is_last_set: bool = True,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> SetQualityResult:
    """
    Grade one logged set by effort and rep-range compliance.

    junk: RPE at or below the junk threshold, too far from failure to count.
    excessive: failure reached before the last set.
    stimulative: RPE inside the stimulative band with reps in range.
    effective: everything else.
    """
    check_rpe(rpe)
    lo, hi = rep_range
    if rpe <= settings.junk_rpe_max:
        return SetQualityResult(
            "junk", f"RPE {rpe:g} ({10 - rpe:g} RIR) is too far from failure to stimulate growth"
        )
    if rpe >= EXCESSIVE_RPE and not is_last_set:
        return SetQualityResult("excessive", "Failure on a non-final set cuts into the remaining sets")
    if reps < lo:
        return SetQualityResult(
            "effective", f"{reps} reps is below the {lo}-{hi} range; consider less weight"
        )
    if settings.stimulative_rpe_min <= rpe <= STIMULATIVE_RPE_MAX:
        return SetQualityResult("stimulative", f"RPE {rpe:g} with {reps} reps is a strong stimulus")
    return SetQualityResult("effective", f"RPE {rpe:g} counts toward volume but could be pushed harder")


def is_junk_set(s: SetLog, settings: EngineSettings = DEFAULT_SETTINGS) -> bool:
    """A working set logged at or below the junk RPE.  Sets without RPE are not junk."""
    return not s.is_warmup and s.rpe is not None and s.rpe <= settings.junk_rpe_max


def detect_junk_volume(
    set_logs: list[SetLog],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[SetLog]:
    return [s for s in set_logs if is_junk_set(s, settings)]


def week_start(day: str | date) -> date:
    """Monday of the ISO week containing day (an ISO date or datetime string)."""
    d = date.fromisoformat(day[:10]) if isinstance(day, str) else day
    return d - timedelta(days=d.weekday())


def group_sets_by_week(set_logs: list[SetLog]) -> dict[date, list[SetLog]]:
    """Dated sets keyed by the Monday of their ISO week, oldest week first."""
    weeks: dict[date, list[SetLog]] = defaultdict(list)
    for s in set_logs:
        if s.performed_on:
            weeks[week_start(s.performed_on)].append(s)
    return dict(sorted(weeks.items()))


def select_week(
    set_logs: list[SetLog],
    week_of: str | date | None = None,
) -> tuple[date | None, list[SetLog]]:
    """
    Pick one training week of sets.

    Args:
        set_logs: Logged sets, any order
        week_of: Any day inside the wanted week; default is the latest
            week with logged sets

    Returns:
        (Monday of the week, its sets).  When no set carries a date the
        whole log is treated as a single week and the Monday is None.
    """
    weeks = group_sets_by_week(set_logs)
    if not weeks:
        return None, list(set_logs)
    undated = sum(1 for s in set_logs if not s.performed_on)
    if undated:
        logger.debug("{} undated sets left out of the weekly count", undated)
    monday = week_start(week_of) if week_of is not None else max(weeks)
    return monday, weeks.get(monday, [])


def count_weekly_sets(
    set_logs: list[SetLog],
    catalog: dict[str, ExerciseSpec] | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> dict[str, float]:
    """
    Working sets per muscle from one week of logged sets.

    Primary muscles get a full set, secondary muscles half a set.  Warm-ups
    and junk sets are ignored; exercises missing from the catalog are
    skipped.  Pass a single week (see select_week); the totals are compared
    with weekly landmarks.
    """
    totals: dict[str, float] = defaultdict(float)
    skipped: set[str] = set()
    junk = 0
    for s in set_logs:
        if s.is_warmup:
            continue
        if is_junk_set(s, settings):
            junk += 1
            continue
        try:
            spec = get_exercise(s.exercise_id, catalog)
        except LookupMiss:
            skipped.add(s.exercise_id)
            continue
        totals[spec.primary] += 1.0
        for muscle in spec.secondary:
            totals[muscle] += SECONDARY_SET_CREDIT
    if skipped:
        logger.warning("volume count skipped unknown exercises: {}", ", ".join(sorted(skipped)))
    if junk:
        logger.debug("volume count left out {} junk sets", junk)
    return dict(totals)

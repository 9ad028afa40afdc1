"""
Reactive deload detection.

Runs over a rolling window of PerformanceLog entries, independently of
the planned deload week.  Any one trigger moves the state to deload_due;
weaker versions of the same signals give caution.  A reactive trigger can
pull a deload forward but never cancels a scheduled one.

Trigger categories:
    missed_reps       missed target reps in 2 consecutive sessions
    fatigue           weekly perceived fatigue ≥ 4/5 for 2 weeks
    sleep             sleep quality < 2/5 in 2 consecutive entries
    joint_pain        joint pain reported in the latest week
    rpe_creep         RPE rising ≥ 1 over 3 sessions at the same load and reps
    strength_decline  strength decline flagged in the latest entry
"""

from __future__ import annotations

from collections import defaultdict

from loguru import logger

from .config import (
    DELOAD_MODIFIERS,
    FULL_DELOAD_CATEGORIES,
    HIGH_FATIGUE_WEEKS,
    INTENSITY_CATEGORIES,
    MISSED_REPS_SESSIONS,
    POOR_SLEEP_ENTRIES,
    RPE_CREEP_SESSIONS,
    DeloadModifiers,
)
from .engine.config_loader import DEFAULT_SETTINGS, EngineSettings
from .errors import InvalidInputError
from .models import DeloadTrigger, DeloadType, Mesocycle, PerformanceLog


def _window(logs: list[PerformanceLog], window_weeks: int | None) -> list[PerformanceLog]:
    ordered = sorted(logs, key=lambda e: (e.week_number, e.performed_on or ""))
    if window_weeks is None or not ordered:
        return ordered
    if window_weeks < 1:
        raise InvalidInputError("window_weeks must be at least 1")
    first_week = ordered[-1].week_number - window_weeks + 1
    return [e for e in ordered if e.week_number >= first_week]


def _missed_reps(logs: list[PerformanceLog]) -> tuple[str | None, str | None]:
    recent = logs[-MISSED_REPS_SESSIONS:]
    if len(recent) == MISSED_REPS_SESSIONS and all(e.missed_target_reps for e in recent):
        return f"Missed target reps in {MISSED_REPS_SESSIONS} consecutive sessions", None
    if logs and logs[-1].missed_target_reps:
        return None, "Missed target reps last session"
    return None, None


def _weekly_fatigue(logs: list[PerformanceLog]) -> list[tuple[int, float]]:
    by_week: dict[int, list[int]] = defaultdict(list)
    for e in logs:
        if e.perceived_fatigue is not None:
            by_week[e.week_number].append(e.perceived_fatigue)
    return [(w, sum(v) / len(v)) for w, v in sorted(by_week.items())]


def _fatigue(logs: list[PerformanceLog], settings: EngineSettings) -> tuple[str | None, str | None]:
    weekly = _weekly_fatigue(logs)
    recent = weekly[-HIGH_FATIGUE_WEEKS:]
    if len(recent) == HIGH_FATIGUE_WEEKS and all(v >= settings.fatigue_high for _, v in recent):
        return f"Perceived fatigue ≥ {settings.fatigue_high:g}/5 for {HIGH_FATIGUE_WEEKS} weeks", None
    if weekly and weekly[-1][1] >= settings.fatigue_high:
        return None, f"High perceived fatigue in week {weekly[-1][0]}"
    return None, None


def _sleep(logs: list[PerformanceLog], settings: EngineSettings) -> tuple[str | None, str | None]:
    reported = [e.sleep_quality for e in logs if e.sleep_quality is not None]
    recent = reported[-POOR_SLEEP_ENTRIES:]
    if len(recent) == POOR_SLEEP_ENTRIES and all(q < settings.sleep_poor for q in recent):
        return "Sleep quality has stayed poor", None
    if reported and reported[-1] < settings.sleep_poor:
        return None, "Poor sleep reported"
    return None, None


def _rpe_creep(logs: list[PerformanceLog], settings: EngineSettings) -> tuple[str | None, str | None]:
    by_exercise: dict[str | None, list[PerformanceLog]] = defaultdict(list)
    for e in logs:
        if e.average_rpe is not None and e.load_kg is not None and e.reps is not None:
            by_exercise[e.exercise_id].append(e)

    caution = None
    for exercise_id, entries in by_exercise.items():
        recent = entries[-RPE_CREEP_SESSIONS:]
        same_work = len({(e.load_kg, e.reps) for e in recent}) == 1
        rpes = [e.average_rpe for e in recent]
        rising = all(b >= a for a, b in zip(rpes, rpes[1:]))  # type: ignore[operator]
        label = exercise_id or "the same work"
        if (
            len(recent) == RPE_CREEP_SESSIONS
            and same_work
            and rising
            and rpes[-1] - rpes[0] >= settings.rpe_creep_min  # type: ignore[operator]
        ):
            return (
                f"RPE rose from {rpes[0]:g} to {rpes[-1]:g} on {label} "
                f"at the same load and reps",
                None,
            )
        last_two = recent[-2:]
        if (
            len(last_two) == 2
            and last_two[0].load_kg == last_two[1].load_kg
            and last_two[0].reps == last_two[1].reps
            and last_two[1].average_rpe > last_two[0].average_rpe  # type: ignore[operator]
        ):
            caution = f"RPE rising on {label}"
    return None, caution


def check_deload(
    logs: list[PerformanceLog],
    mesocycle: Mesocycle | None = None,
    window_weeks: int | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> DeloadTrigger:
    """
    Evaluate deload triggers.

    Args:
        logs: Performance logs, typically the current mesocycle's
        mesocycle: Current mesocycle; its scheduled deload week always
            yields should_deload=True
        window_weeks: Only consider the most recent N weeks
        settings: Tunable thresholds

    Returns:
        DeloadTrigger.  suggested_type is "full" with 3+ categories,
        "intensity" if joint pain or strength decline fired, else "volume".
    """
    window = _window(logs, window_weeks)
    categories: dict[str, str] = {}
    cautions: list[str] = []

    checks = {
        "missed_reps": _missed_reps(window),
        "fatigue": _fatigue(window, settings),
        "sleep": _sleep(window, settings),
        "rpe_creep": _rpe_creep(window, settings),
    }
    for name, (trigger, caution) in checks.items():
        if trigger:
            categories[name] = trigger
        elif caution:
            cautions.append(caution)

    if window:
        latest_week = window[-1].week_number
        if any(e.joint_pain for e in window if e.week_number == latest_week):
            categories["joint_pain"] = "Joint pain reported this week"
        if window[-1].strength_decline:
            categories["strength_decline"] = "Strength declined versus recent sessions"

    suggested: DeloadType | None = None
    if len(categories) >= FULL_DELOAD_CATEGORIES:
        suggested = "full"
    elif set(categories) & INTENSITY_CATEGORIES:
        suggested = "intensity"
    elif categories:
        suggested = "volume"

    reasons = list(categories.values())
    scheduled = mesocycle is not None and mesocycle.in_deload_week
    if scheduled:
        reasons.insert(0, f"Scheduled deload week {mesocycle.deload_week}")  # type: ignore[union-attr]
        suggested = suggested or "full"
    pulled_forward = bool(categories) and mesocycle is not None and not scheduled

    should_deload = scheduled or bool(categories)
    if should_deload:
        state = "deload_due"
    elif cautions:
        state = "caution"
    else:
        state = "normal"

    if should_deload:
        logger.info("deload due ({}): {}", suggested, "; ".join(reasons))
    return DeloadTrigger(
        should_deload=should_deload,
        state=state,  # type: ignore[arg-type]
        suggested_type=suggested,
        reasons=tuple(reasons),
        categories=tuple(categories),
        scheduled=scheduled,
        pulled_forward=pulled_forward,
        caution_signals=tuple(cautions),
    )


def deload_prescription(trigger: DeloadTrigger) -> DeloadModifiers | None:
    """Volume and load multipliers for the suggested deload, if one is due."""
    if not trigger.should_deload or trigger.suggested_type is None:
        return None
    return DELOAD_MODIFIERS[trigger.suggested_type]

"""
Periodization planner: split, mesocycle length, weekly RIR/volume ramp
and per-session exercise selection.

Also holds the mesocycle lifecycle as pure transitions on the immutable
Mesocycle record:

    planned --start--> active --advance past final week--> completed

fatigue_score only grows (record_session_fatigue) until a deload resets
it (apply_deload, or leaving the scheduled deload week).
"""

from __future__ import annotations

import math
from dataclasses import replace

from loguru import logger

from .config import (
    COMPOUND_REST_SECONDS,
    CUT_MESOCYCLE_WEEKS,
    DELOAD_RIR,
    FINAL_WEEK_RIR,
    ISOLATION_REST_SECONDS,
    MAX_SETS_PER_EXERCISE,
    MAX_SETS_PER_MUSCLE_SESSION,
    MESOCYCLE_WEEKS,
    MUSCLE_ORDER,
    SCHEDULE_DAYS,
    SPLIT_TEMPLATES,
    START_RIR,
)
from .engine.config_loader import DEFAULT_SETTINGS, EngineSettings
from .errors import InvalidInputError
from .fatigue import (
    exercise_fatigue,
    fatigue_budget,
    prefer_high_sfr,
    scale_budget,
    sequence_exercises,
    summarize_fatigue,
)
from .models import (
    BodyComposition,
    DetailedSession,
    FullProgramRecommendation,
    Mesocycle,
    MesocycleWeek,
    PlannedExercise,
    TrainingPreferences,
    check_experience,
    check_goal,
)
from .progression import estimate_starting_weight
from .tables.base import ExerciseSpec
from .tables.registry import EXERCISES
from .volume import recommend_volume


# =============================================================================
# Split and duration
# =============================================================================


def select_split(days_per_week: int, experience: str) -> tuple[str, str]:
    """
    Choose a split from training days and experience.

    Novices and anyone training 3 days or fewer get Full Body; 4 days
    gets Upper/Lower; 5 or more gets Push/Pull/Legs.

    Returns:
        (split name, human-readable reason)
    """
    check_experience(experience)
    if not 1 <= days_per_week <= 7:
        raise InvalidInputError(f"days_per_week must be between 1 and 7, got {days_per_week}")
    if experience == "novice":
        return "Full Body", "Full Body builds skill with high practice frequency for novices."
    if days_per_week <= 3:
        return "Full Body", f"Full Body hits every muscle with only {days_per_week} days available."
    if days_per_week == 4:
        return "Upper/Lower", "Upper/Lower trains each muscle twice a week across 4 days."
    return (
        "Push/Pull/Legs",
        f"Push/Pull/Legs spreads volume across {days_per_week} days for enough recovery.",
    )


def mesocycle_duration(experience: str, goal: str) -> tuple[int, str]:
    """Total weeks including the deload, with the reason for the length."""
    check_experience(experience)
    check_goal(goal)
    if goal == "cut":
        return CUT_MESOCYCLE_WEEKS, "Cutting blocks are kept at 6 weeks to limit accumulated fatigue."
    weeks = MESOCYCLE_WEEKS[experience]
    reasons = {
        "novice": "Novices progress quickly; short 4-week blocks keep deloads frequent.",
        "intermediate": "6-week blocks give intermediates time to accumulate volume.",
        "advanced": "Advanced lifters need 8 weeks to drive adaptation before a deload.",
    }
    return weeks, reasons[experience]


def weekly_progression(
    total_weeks: int,
    experience: str,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[MesocycleWeek]:
    """
    Per-week RIR, volume and intensity modifiers.

    Training weeks ramp RIR from 3 down to the final-week RIR (1, or 0 for
    advanced lifters) by the penultimate week with volume flat at 1.0.  The
    last week is the deload, where volume and intensity both drop by the
    deload fractions.
    """
    check_experience(experience)
    if total_weeks < 2:
        raise InvalidInputError("a mesocycle needs at least one training week and a deload")

    training_weeks = total_weeks - 1
    final_rir = FINAL_WEEK_RIR[experience]
    weeks: list[MesocycleWeek] = []
    for w in range(1, training_weeks + 1):
        if training_weeks == 1:
            rir = START_RIR
        else:
            rir = round(START_RIR - (START_RIR - final_rir) * (w - 1) / (training_weeks - 1))
        if w == 1:
            focus = "Accumulation: establish working weights"
        elif w == training_weeks:
            focus = "Overreach: hardest week of the block"
        else:
            focus = "Progressive overload"
        weeks.append(MesocycleWeek(
            week_number=w,
            target_rir=rir,
            volume_modifier=1.0,
            intensity_modifier=1.0,
            is_deload=False,
            focus=focus,
        ))
    weeks.append(MesocycleWeek(
        week_number=total_weeks,
        target_rir=DELOAD_RIR,
        volume_modifier=settings.deload_volume_fraction,
        intensity_modifier=settings.deload_intensity_fraction,
        is_deload=True,
        focus="Deload: dissipate fatigue and consolidate",
    ))
    return weeks


# =============================================================================
# Exercise selection
# =============================================================================


def get_recommended_exercises(
    muscle: str,
    mechanic: str | None = None,
    catalog: dict[str, ExerciseSpec] | None = None,
    equipment: tuple[str, ...] | None = None,
    injuries: tuple[str, ...] = (),
) -> list[ExerciseSpec]:
    """
    Catalog exercises whose primary muscle is muscle.

    Args:
        muscle: Muscle group, e.g. "chest"
        mechanic: "compound", "isolation" or None for both
        catalog: Optional fixture catalog
        equipment: Available equipment; None means everything.  Bodyweight
            exercises are always available.
        injuries: Exercises contraindicated for any of these are excluded
    """
    catalog = EXERCISES if catalog is None else catalog
    result = []
    for spec in catalog.values():
        if spec.primary != muscle:
            continue
        if mechanic is not None and spec.mechanic != mechanic:
            continue
        if equipment is not None and spec.equipment not in equipment and spec.equipment != "bodyweight":
            continue
        if set(spec.contraindications) & set(injuries):
            continue
        result.append(spec)
    return result


def session_templates(split: str, days_per_week: int) -> list[tuple[str, list[str]]]:
    """Session name and muscles for each training day of the week."""
    if days_per_week == 1:
        return [("Full Body", list(MUSCLE_ORDER))]
    templates = SPLIT_TEMPLATES[split]
    return [templates[i % len(templates)] for i in range(days_per_week)]


def _split_sets(total: int) -> list[int]:
    """Divide a muscle's session sets across as few exercises as the cap allows."""
    n = max(1, math.ceil(total / MAX_SETS_PER_EXERCISE))
    base, extra = divmod(total, n)
    return [base + (1 if i < extra else 0) for i in range(n)]


def _plan_muscle(
    muscle: str,
    sets: int,
    target_rir: int,
    session_index: int,
    high_fatigue: bool,
    preferences: TrainingPreferences,
    catalog: dict[str, ExerciseSpec] | None,
    settings: EngineSettings,
    warnings: list[str],
) -> list[tuple[ExerciseSpec, int]]:
    compounds = get_recommended_exercises(
        muscle, "compound", catalog, preferences.equipment, preferences.injuries
    )
    isolations = get_recommended_exercises(
        muscle, "isolation", catalog, preferences.equipment, preferences.injuries
    )
    if not compounds and not isolations:
        compounds = get_recommended_exercises(muscle, "compound", catalog)
        isolations = get_recommended_exercises(muscle, "isolation", catalog)
        if not compounds and not isolations:
            warnings.append(f"No exercises available for {muscle}; muscle left out.")
            return []
        warnings.append(
            f"No {muscle} exercise fits the available equipment and injuries; "
            "using unrestricted options."
        )

    # First slot compound when one exists, later slots alternate to isolation
    pools = [compounds or isolations, isolations or compounds]
    chosen: list[tuple[ExerciseSpec, int]] = []
    for slot, slot_sets in enumerate(_split_sets(sets)):
        pool = [ex for ex in pools[min(slot, 1)] if ex not in [c for c, _ in chosen]]
        if not pool:
            pool = [ex for ex in compounds + isolations if ex not in [c for c, _ in chosen]]
        if not pool:
            # Fewer distinct exercises than slots: add the sets to the last one
            last, last_sets = chosen[-1]
            chosen[-1] = (last, last_sets + slot_sets)
            continue
        if high_fatigue:
            pick = prefer_high_sfr(pool, slot_sets, target_rir, settings)
        else:
            pick = pool[session_index % len(pool)]
        chosen.append((pick, slot_sets))
    return chosen


def _planned_exercise(
    spec: ExerciseSpec,
    muscle: str,
    sets: int,
    target_rir: int,
    start_weight: float | None,
    settings: EngineSettings,
) -> PlannedExercise:
    return PlannedExercise(
        exercise_id=spec.exercise_id,
        name=spec.name,
        mechanic=spec.mechanic,
        muscle_group=muscle,
        sets=sets,
        rep_range=spec.rep_range,
        target_rir=target_rir,
        rest_seconds=COMPOUND_REST_SECONDS if spec.mechanic == "compound" else ISOLATION_REST_SECONDS,
        fatigue=exercise_fatigue(spec, sets, target_rir, settings),
        start_weight_kg=start_weight,
    )


def _body_comp_warnings(goal: str, body_comp: BodyComposition | None) -> list[str]:
    if body_comp is None:
        return []
    bf = body_comp.body_fat_percentage
    if goal == "bulk" and bf > 20:
        return [f"Body fat is {bf:g}%; a short cut before bulking would improve partitioning."]
    if goal == "cut" and bf < 10:
        return [f"Body fat is {bf:g}%; further cutting risks muscle loss."]
    return []


def generate_program(
    preferences: TrainingPreferences,
    body_comp: BodyComposition | None = None,
    catalog: dict[str, ExerciseSpec] | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> FullProgramRecommendation:
    """
    Build a complete mesocycle from preferences.

    Weekly sets per muscle come from recommend_volume() scaled by the
    week's volume modifier and spread over the sessions that train the
    muscle.  Once the projected fatigue of the block passes the
    high-fatigue fraction of its budget, exercise choice favours the
    highest-SFR option per muscle.

    Args:
        preferences: Experience, goal, days, equipment, injuries
        body_comp: Optional snapshot; enables starting weights and
            body-fat warnings
        catalog: Optional fixture exercise catalog
        settings: Tunable thresholds

    Returns:
        FullProgramRecommendation with one MesocycleWeek per week
    """
    exp, goal, days = preferences.experience, preferences.goal, preferences.days_per_week
    split, split_reason = select_split(days, exp)
    total_weeks, duration_reason = mesocycle_duration(exp, goal)
    schedule = SCHEDULE_DAYS[days]
    templates = session_templates(split, days)

    trained = {m for _, muscles in templates for m in muscles}
    muscles_ordered = [m for m in MUSCLE_ORDER if m in trained]
    volume = {m: recommend_volume(exp, goal, m) for m in muscles_ordered}
    frequency = {m: sum(1 for _, ms in templates if m in ms) for m in muscles_ordered}

    session_budget = fatigue_budget(exp, goal, settings=settings)
    week_budget = scale_budget(session_budget, days)
    block_budget = week_budget.systemic_limit * (total_weeks - 1)

    warnings: list[str] = _body_comp_warnings(goal, body_comp)
    for m in muscles_ordered:
        per_session = math.ceil(volume[m] / frequency[m])
        if per_session > MAX_SETS_PER_MUSCLE_SESSION:
            warnings.append(
                f"{m}: {volume[m]} weekly sets over {frequency[m]} session(s) exceeds "
                f"{MAX_SETS_PER_MUSCLE_SESSION} per session; capped."
            )

    cumulative = 0.0
    weeks: list[MesocycleWeek] = []
    for week in weekly_progression(total_weeks, exp, settings):
        high_fatigue = not week.is_deload and cumulative >= settings.high_fatigue_fraction * block_budget
        sessions: list[DetailedSession] = []
        week_profiles = []
        for idx, (name, session_muscles) in enumerate(templates):
            planned: list[PlannedExercise] = []
            for m in [m for m in MUSCLE_ORDER if m in session_muscles]:
                weekly = volume[m] * week.volume_modifier
                sets = min(max(1, math.ceil(weekly / frequency[m])), MAX_SETS_PER_MUSCLE_SESSION)
                for spec, ex_sets in _plan_muscle(
                    m, sets, week.target_rir, idx, high_fatigue, preferences, catalog, settings, warnings
                ):
                    start = None
                    if body_comp is not None and week.week_number == 1:
                        start, _ = estimate_starting_weight(
                            spec.exercise_id, body_comp.lean_mass_kg, exp, catalog
                        )
                    planned.append(_planned_exercise(spec, m, ex_sets, week.target_rir, start, settings))
            planned = sequence_exercises(planned)
            profiles = [e.fatigue for e in planned]
            week_profiles.extend(profiles)
            sessions.append(DetailedSession(
                name=name,
                day=schedule[idx],
                muscle_groups=tuple(session_muscles),
                exercises=tuple(planned),
                fatigue=summarize_fatigue(profiles, session_budget),
            ))
        week_fatigue = summarize_fatigue(week_profiles, week_budget)
        if not week.is_deload:
            cumulative += week_fatigue.total_systemic
        logger.debug(
            "week {}: RIR {}, systemic {:.1f}, high-fatigue selection {}",
            week.week_number, week.target_rir, week_fatigue.total_systemic, high_fatigue,
        )
        weeks.append(replace(week, sessions=tuple(sessions), fatigue=week_fatigue))

    final_rir = FINAL_WEEK_RIR[exp]
    notes = (
        f"RIR ramps from {START_RIR} in week 1 to {final_rir} in week {total_weeks - 1}.",
        f"Week {total_weeks} is a deload; a reactive deload may come earlier, never later.",
    )
    return FullProgramRecommendation(
        split=split,
        split_reason=split_reason,
        duration_reason=duration_reason,
        schedule=tuple(schedule),
        mesocycle=plan_mesocycle(split, total_weeks, days),
        weeks=tuple(weeks),
        volume_per_muscle=volume,
        warnings=tuple(dict.fromkeys(warnings)),
        notes=notes,
    )


# =============================================================================
# Mesocycle lifecycle
# =============================================================================


def plan_mesocycle(split_type: str, total_weeks: int, days_per_week: int) -> Mesocycle:
    """A new planned mesocycle with the deload in its final week."""
    return Mesocycle(
        split_type=split_type,
        total_weeks=total_weeks,
        days_per_week=days_per_week,
        deload_week=total_weeks,
    )


def _require_status(mesocycle: Mesocycle, status: str, action: str) -> None:
    if mesocycle.status != status:
        raise InvalidInputError(f"cannot {action} a {mesocycle.status} mesocycle")


def start_mesocycle(mesocycle: Mesocycle) -> Mesocycle:
    """planned → active, on the first session."""
    _require_status(mesocycle, "planned", "start")
    return replace(mesocycle, status="active")


def record_session_fatigue(mesocycle: Mesocycle, systemic_cost: float) -> Mesocycle:
    """Add a session's systemic cost; the score never decreases here."""
    _require_status(mesocycle, "active", "record fatigue on")
    if systemic_cost < 0:
        raise InvalidInputError("systemic_cost must be non-negative")
    return replace(mesocycle, fatigue_score=round(mesocycle.fatigue_score + systemic_cost, 2))


def apply_deload(mesocycle: Mesocycle) -> Mesocycle:
    """Reset accumulated fatigue after a (scheduled or reactive) deload."""
    _require_status(mesocycle, "active", "deload")
    return replace(mesocycle, fatigue_score=0.0)


def advance_week(mesocycle: Mesocycle) -> Mesocycle:
    """
    Move to the next week.

    Leaving the deload week clears fatigue; leaving the final week
    completes the mesocycle.
    """
    _require_status(mesocycle, "active", "advance")
    fatigue = 0.0 if mesocycle.in_deload_week else mesocycle.fatigue_score
    if mesocycle.current_week == mesocycle.total_weeks:
        return replace(mesocycle, status="completed", fatigue_score=fatigue)
    return replace(mesocycle, current_week=mesocycle.current_week + 1, fatigue_score=fatigue)

"""
Session-to-session progression.

Decision order for an exercise with history:

    (a) all sets done and average RPE ≤ target − 1  → add the smallest increment
    (b) reps below the top of the range, RPE on target → add a rep
    (c) no e1RM progress over the last 3 sessions   → flag a plateau
    (d) otherwise                                     → hold the load

A hold also names any regression against the previous session.

Readiness only ever scales a session down.  Below the low threshold the
load is capped regardless of what the periodization week asks for.
"""

from __future__ import annotations

import math

from loguru import logger

from .config import (
    COMPOUND_REST_SECONDS,
    DEFAULT_INCREMENT_KG,
    DEFAULT_START_MULTIPLIER,
    DELOAD_RIR,
    ISOLATION_REST_SECONDS,
    ISOLATION_START_MULTIPLIER,
    LOW_READINESS_REST_BONUS,
    MAX_SETS_COMPOUND,
    MAX_SETS_ISOLATION,
    MIN_SETS,
    NEUTRAL_SLEEP_QUALITY,
    PLATEAU_SESSIONS,
    READINESS_WEIGHTS,
    REGRESSION_REP_DROP,
    REGRESSION_RPE_RISE,
    WARMUP_RAMPS,
    WORKING_WEIGHT_MAX_ATTEMPTS,
)
from .engine.config_loader import DEFAULT_SETTINGS, EngineSettings
from .errors import InsufficientDataError, InvalidInputError, LookupMiss
from .models import (
    Confidence,
    LastSessionPerformance,
    PlateauResult,
    ProgressionTargets,
    ProgressionType,
    ReadinessFactors,
    RegressionResult,
    SetLog,
    WarmupSet,
    WorkingWeightPlan,
    check_experience,
)
from .strength import estimate_1rm, working_weight
from .tables.base import ExerciseSpec
from .tables.registry import get_exercise

_DEFAULT_REP_RANGE: tuple[int, int] = (8, 12)


def floor_to_increment(weight_kg: float, increment_kg: float) -> float:
    """Round a load down to the nearest increment."""
    return math.floor(weight_kg / increment_kg + 1e-9) * increment_kg


# =============================================================================
# Readiness
# =============================================================================


def _sleep_score(hours: float | None, quality: int | None) -> float:
    if hours is None or 7 <= hours <= 9:
        base = 100.0
    elif 6 <= hours < 7:
        base = 70.0
    elif 9 < hours <= 10:
        base = 85.0
    elif 5 <= hours < 6:
        base = 50.0
    else:
        base = 30.0
    q = NEUTRAL_SLEEP_QUALITY if quality is None else quality
    return min(100.0, base * (1.0 + (q - NEUTRAL_SLEEP_QUALITY) * 0.1))


def _recovery_score(previous_rpe: float | None, days_since: int | None) -> float:
    score = 70.0
    if previous_rpe is not None:
        if previous_rpe >= 9:
            score -= 15
        elif previous_rpe <= 6:
            score += 10
    if days_since is not None:
        if days_since >= 2:
            score += 15
        elif days_since == 0:
            score -= 20
    return max(0.0, min(100.0, score))


def readiness_score(factors: ReadinessFactors | None) -> float | None:
    """
    Combine readiness factors into a 0-100 score.

    Weights: sleep 35 %, stress 25 %, nutrition 20 %, recovery 20 %.
    Factors that were not reported are left out and the remaining weights
    renormalized.  Returns None when nothing was reported.
    """
    if factors is None:
        return None
    components: dict[str, float] = {}
    if factors.sleep_hours is not None or factors.sleep_quality is not None:
        components["sleep"] = _sleep_score(factors.sleep_hours, factors.sleep_quality)
    if factors.stress_level is not None:
        components["stress"] = (6 - factors.stress_level) * 20.0
    if factors.nutrition_rating is not None:
        components["nutrition"] = factors.nutrition_rating * 20.0
    if factors.previous_session_rpe is not None or factors.days_since_last_session is not None:
        components["recovery"] = _recovery_score(
            factors.previous_session_rpe, factors.days_since_last_session
        )
    if not components:
        return None
    total_weight = sum(READINESS_WEIGHTS[k] for k in components)
    score = sum(READINESS_WEIGHTS[k] * v for k, v in components.items()) / total_weight
    return round(max(0.0, min(100.0, score)), 1)


# =============================================================================
# History helpers
# =============================================================================


def extract_performance(set_logs: list[SetLog]) -> LastSessionPerformance:
    """
    Summarize one exercise's sets from a single session.

    The top set (heaviest, then most reps) supplies weight, reps and RPE.
    Sets with a target count as completed when reps ≥ target; without
    targets any set with reps counts.

    Raises:
        InsufficientDataError: No working sets
        InvalidInputError: Sets from more than one exercise
    """
    working = [s for s in set_logs if not s.is_warmup]
    if not working:
        raise InsufficientDataError("no working sets logged")
    exercise_ids = {s.exercise_id for s in working}
    if len(exercise_ids) > 1:
        raise InvalidInputError(f"sets span several exercises: {sorted(exercise_ids)}")

    top = max(working, key=lambda s: (s.weight_kg, s.reps))
    rpes = [s.rpe for s in working if s.rpe is not None]
    completed = [
        s for s in working
        if s.reps > 0 and (s.target_reps is None or s.reps >= s.target_reps)
    ]
    return LastSessionPerformance(
        exercise_id=top.exercise_id,
        weight_kg=top.weight_kg,
        reps=top.reps,
        sets_completed=len(completed),
        all_sets_completed=len(completed) == len(working),
        rpe=top.rpe,
        average_rpe=round(sum(rpes) / len(rpes), 2) if rpes else None,
        performed_on=next((s.performed_on for s in working if s.performed_on), None),
    )


def session_history(set_logs: list[SetLog]) -> dict[str, list[LastSessionPerformance]]:
    """
    Group logged sets into per-exercise session summaries, oldest first.

    A session is one exercise on one calendar day.  Undated sets of an
    exercise form a single session that sorts before dated ones.
    """
    grouped: dict[tuple[str, str], list[SetLog]] = {}
    for s in set_logs:
        if s.is_warmup:
            continue
        day = (s.performed_on or "")[:10]
        grouped.setdefault((s.exercise_id, day), []).append(s)

    history: dict[str, list[LastSessionPerformance]] = {}
    for exercise_id, day in sorted(grouped):
        history.setdefault(exercise_id, []).append(
            extract_performance(grouped[(exercise_id, day)])
        )
    return history


def session_e1rm(performance: LastSessionPerformance) -> float:
    """Strength score of a session: e1RM, or reps for unloaded bodyweight work."""
    if performance.reps < 1:
        return 0.0
    if performance.weight_kg <= 0:
        return float(performance.reps)
    return estimate_1rm(performance.weight_kg, min(performance.reps, 30))


def _plateau_suggestions(history: list[LastSessionPerformance]) -> tuple[str, ...]:
    suggestions: list[str] = []
    recent_rpe = [p.effective_rpe for p in history[-PLATEAU_SESSIONS:] if p.effective_rpe]
    if recent_rpe and sum(recent_rpe) / len(recent_rpe) >= 9:
        suggestions.append("Effort is already near maximal; a deload week may unlock progress.")
    suggestions += [
        "Swap to a close variation for one mesocycle.",
        "Change the rep range (e.g. heavier sets of 4-6 or lighter sets of 12-15).",
        "Add a back-off set at 85 % of the top-set load.",
        "Check sleep, protein intake and calorie balance.",
        "Add one weekly set for the target muscle if below MAV.",
    ]
    return tuple(suggestions[:5])


def detect_plateau(
    history: list[LastSessionPerformance],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> PlateauResult:
    """
    Detect stalled progress on one exercise.

    A session counts as progress when its e1RM beats the running best by
    more than the minimum relative gain.  Three or more sessions in a row
    without progress is a plateau.

    Args:
        history: Performances of one exercise, oldest first

    Raises:
        InsufficientDataError: Fewer than 4 sessions (a reference plus 3)
    """
    needed = PLATEAU_SESSIONS + 1
    if len(history) < needed:
        raise InsufficientDataError(
            f"plateau detection needs {needed} sessions, got {len(history)}"
        )
    scores = [session_e1rm(p) for p in history]
    best = scores[0]
    stagnant = 0
    for score in scores[1:]:
        if score > best * (1 + settings.plateau_min_gain):
            best = score
            stagnant = 0
        else:
            best = max(best, score)
            stagnant += 1
    is_plateau = stagnant >= PLATEAU_SESSIONS
    return PlateauResult(
        is_plateau=is_plateau,
        sessions_stagnant=stagnant,
        current_e1rm=round(scores[-1], 1),
        best_e1rm=round(best, 1),
        suggestions=_plateau_suggestions(history) if is_plateau else (),
    )


def detect_regression(
    current: LastSessionPerformance,
    previous: LastSessionPerformance | None,
) -> RegressionResult:
    """
    Compare a session with the one before it.

    Regression is less weight, more than one rep lost at the same weight, or
    the same weight and reps at more than one RPE point harder.
    """
    if previous is None:
        return RegressionResult(False, "No previous session to compare")
    if current.weight_kg < previous.weight_kg:
        return RegressionResult(
            True, f"Weight dropped from {previous.weight_kg:g} kg to {current.weight_kg:g} kg"
        )
    if current.weight_kg == previous.weight_kg:
        if current.reps < previous.reps - REGRESSION_REP_DROP:
            return RegressionResult(
                True, f"Reps dropped from {previous.reps} to {current.reps} at the same weight"
            )
        now, before = current.effective_rpe, previous.effective_rpe
        if (
            current.reps == previous.reps
            and now is not None
            and before is not None
            and now > before + REGRESSION_RPE_RISE
        ):
            return RegressionResult(True, f"Same work took RPE {now:g} instead of {before:g}")
    return RegressionResult(False)


# =============================================================================
# Starting weights
# =============================================================================


def estimate_starting_weight(
    exercise_id: str,
    lean_mass_kg: float,
    experience: str,
    catalog: dict[str, ExerciseSpec] | None = None,
) -> tuple[float, Confidence]:
    """
    First working weight from lean mass.

    Uses the exercise's tabulated multiplier for the experience level.
    Catalog exercises without one use a mechanic default ("medium"
    confidence); exercises missing from the catalog use 0.3 × lean mass
    ("low" confidence).  Bodyweight exercises start with no added load.

    Returns:
        (weight in kg rounded to the exercise increment, confidence)
    """
    check_experience(experience)
    if lean_mass_kg <= 0:
        raise InvalidInputError("lean_mass_kg must be positive")
    try:
        spec = get_exercise(exercise_id, catalog)
    except LookupMiss:
        logger.warning("'{}' not in catalog; using generic start multiplier", exercise_id)
        raw = lean_mass_kg * DEFAULT_START_MULTIPLIER
        return round(raw / DEFAULT_INCREMENT_KG) * DEFAULT_INCREMENT_KG, "low"

    if spec.equipment == "bodyweight":
        return 0.0, "high"
    multiplier = spec.start_multiplier_for(experience)
    confidence: Confidence = "high"
    if multiplier is None:
        confidence = "medium"
        multiplier = (
            DEFAULT_START_MULTIPLIER if spec.mechanic == "compound" else ISOLATION_START_MULTIPLIER
        )
    raw = lean_mass_kg * multiplier
    return round(raw / spec.increment_kg) * spec.increment_kg, confidence


def find_working_weight(
    exercise_id: str,
    target_reps: int,
    target_rir: int = 2,
    e1rm: float | None = None,
    lean_mass_kg: float | None = None,
    experience: str = "intermediate",
    max_attempts: int | None = None,
    catalog: dict[str, ExerciseSpec] | None = None,
) -> WorkingWeightPlan:
    """
    Ramp for finding a working weight in-session.

    With an e1RM the ramp starts at the calculated working weight (4
    attempts); with only lean mass it starts at 80 % of the estimate (5
    attempts).  Each attempt adds one step until the set lands on the
    target RPE.  The ramp is bounded by max_attempts.

    Raises:
        InsufficientDataError: Neither e1rm nor lean_mass_kg given
    """
    if target_reps < 1:
        raise InvalidInputError("target_reps must be at least 1")
    try:
        spec: ExerciseSpec | None = get_exercise(exercise_id, catalog)
    except LookupMiss:
        spec = None
    increment = spec.increment_kg if spec else DEFAULT_INCREMENT_KG
    step = increment * 2 if spec is None or spec.mechanic == "compound" else increment

    if e1rm is not None:
        start = working_weight(e1rm, target_reps, target_rir, increment)
        confidence: Confidence = "high" if spec else "low"
        attempts = max_attempts or WORKING_WEIGHT_MAX_ATTEMPTS - 1
    elif lean_mass_kg is not None:
        estimate, confidence = estimate_starting_weight(exercise_id, lean_mass_kg, experience, catalog)
        start = floor_to_increment(estimate * 0.8, increment)
        if confidence == "high":
            confidence = "medium"
        attempts = max_attempts or WORKING_WEIGHT_MAX_ATTEMPTS
    else:
        raise InsufficientDataError("a working-weight ramp needs an e1RM or lean mass")
    if attempts < 1:
        raise InvalidInputError("max_attempts must be at least 1")

    target_rpe = 10.0 - target_rir
    ramp = tuple(round(start + i * step, 2) for i in range(attempts))
    return WorkingWeightPlan(
        exercise_id=exercise_id,
        start_weight_kg=start,
        increment_kg=increment,
        target_reps=target_reps,
        target_rpe=target_rpe,
        max_attempts=attempts,
        attempts=ramp,
        confidence=confidence,
        instructions=(
            f"Start at {start:g} kg for {target_reps} reps. If RPE is below {target_rpe - 1:g}, "
            f"rest 2-3 minutes and add {step:g} kg. Stop at RPE {target_rpe:g} or after "
            f"{attempts} attempts; the last load is your working weight."
        ),
    )


def generate_warmup(
    working_weight_kg: float,
    increment_kg: float = DEFAULT_INCREMENT_KG,
    is_first_exercise: bool = True,
) -> list[WarmupSet]:
    """Warm-up sets before a working weight; later exercises get one feeder set."""
    if working_weight_kg <= 0:
        return []
    if not is_first_exercise:
        if working_weight_kg < 20:
            return []
        return [WarmupSet(floor_to_increment(working_weight_kg * 0.6, increment_kg), 5, 60)]
    for minimum, ramp in WARMUP_RAMPS:
        if working_weight_kg >= minimum:
            sets = []
            for i, (fraction, reps) in enumerate(ramp):
                rest = 120 if i == len(ramp) - 1 else 60
                weight = max(increment_kg, floor_to_increment(working_weight_kg * fraction, increment_kg))
                sets.append(WarmupSet(weight, reps, rest))
            return sets
    return [WarmupSet(floor_to_increment(working_weight_kg * 0.5, increment_kg), 10, 60)]


# =============================================================================
# Next-session targets
# =============================================================================


def _max_sets(spec: ExerciseSpec | None) -> int:
    return MAX_SETS_ISOLATION if spec is not None and spec.mechanic == "isolation" else MAX_SETS_COMPOUND


def calculate_next_targets(
    exercise_id: str,
    last: LastSessionPerformance | None,
    week_rir: int,
    is_deload_week: bool = False,
    readiness: ReadinessFactors | None = None,
    history: list[LastSessionPerformance] | None = None,
    experience: str = "intermediate",
    lean_mass_kg: float | None = None,
    catalog: dict[str, ExerciseSpec] | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> ProgressionTargets:
    """
    Compute the next session's targets for one exercise.

    Args:
        exercise_id: Catalog id
        last: Previous session's performance, or None for a new exercise
        week_rir: The periodization week's RIR target (target RPE = 10 − RIR)
        is_deload_week: Planned or reactive deload in effect
        readiness: Today's readiness factors, if reported
        history: Earlier performances (oldest first) for plateau detection
        experience: Training age, for starting-weight estimates
        lean_mass_kg: Enables a starting weight for new exercises

    Returns:
        ProgressionTargets with a user-facing reason
    """
    if week_rir < 0:
        raise InvalidInputError("week_rir must be non-negative")
    try:
        spec: ExerciseSpec | None = get_exercise(exercise_id, catalog)
    except LookupMiss:
        logger.warning("'{}' not in catalog; using default increment", exercise_id)
        spec = None

    confidence: Confidence = "high" if spec else "low"
    increment = spec.increment_kg if spec else DEFAULT_INCREMENT_KG
    lo, hi = spec.rep_range if spec else _DEFAULT_REP_RANGE
    rest = ISOLATION_REST_SECONDS if spec and spec.mechanic == "isolation" else COMPOUND_REST_SECONDS
    target_rpe = 10.0 - week_rir
    rir = week_rir

    if last is None:
        weight = 0.0
        confidence = "low"
        reason = "No history for this exercise; use the working-weight ramp to find a load."
        if lean_mass_kg is not None:
            weight, est_confidence = estimate_starting_weight(exercise_id, lean_mass_kg, experience, catalog)
            reason = f"No history; starting at {weight:g} kg estimated from lean mass."
            confidence = "low" if est_confidence == "low" else "medium"
        return ProgressionTargets(
            exercise_id=exercise_id,
            weight_kg=weight,
            rep_range=(lo, hi),
            target_reps=lo,
            target_rir=rir,
            sets=3,
            rest_seconds=rest,
            progression_type="new_exercise",
            reason=reason,
            confidence=confidence,
        )

    sets = max(MIN_SETS, min(last.sets_completed or MIN_SETS, _max_sets(spec)))
    rpe = last.effective_rpe
    target_reps = max(lo, min(last.reps, hi))
    weight = last.weight_kg
    ptype: ProgressionType

    if is_deload_week:
        ptype = "deload"
        weight = floor_to_increment(last.weight_kg * settings.deload_intensity_fraction, increment)
        sets = max(MIN_SETS, math.floor(sets * settings.deload_volume_fraction))
        rir = DELOAD_RIR
        target_reps = lo
        reason = (
            f"Deload week: {weight:g} kg for {sets} sets at RIR {rir} to shed fatigue."
        )
    elif last.all_sets_completed and rpe is not None and rpe <= target_rpe - 1:
        ptype = "load"
        weight = last.weight_kg + increment
        reason = (
            f"All sets completed at RPE {rpe:g} (target {target_rpe:g}); "
            f"adding {increment:g} kg."
        )
    elif last.reps < hi and (rpe is None or rpe <= target_rpe):
        ptype = "reps"
        target_reps = max(lo, min(last.reps + 1, hi))
        reason = f"Same load, aim for {target_reps} reps before adding weight."
        if rpe is None:
            confidence = "medium" if confidence == "high" else confidence
    else:
        plateau = None
        if history:
            try:
                plateau = detect_plateau(list(history), settings)
            except InsufficientDataError:
                plateau = None
        if plateau is not None and plateau.is_plateau:
            ptype = "plateau"
            reason = (
                f"No e1RM progress for {plateau.sessions_stagnant} sessions; holding "
                f"{weight:g} kg. {plateau.suggestions[0]}"
            )
        else:
            ptype = "hold"
            if rpe is not None and rpe > target_rpe:
                detail = f"RPE {rpe:g} is above target {target_rpe:g}"
            else:
                detail = "not every set hit its target"
            reason = f"Holding {weight:g} kg ({detail}); RIR target {rir} this week."
            earlier = [h for h in history or [] if h != last]
            if earlier:
                regression = detect_regression(last, earlier[-1])
                if regression.is_regression:
                    reason += f" Regression: {regression.reason}."

    score = None if is_deload_week else readiness_score(readiness)
    if score is not None and score < settings.readiness_moderate:
        sets = max(MIN_SETS, sets - 1)
        if score < settings.readiness_low:
            cap = floor_to_increment(last.weight_kg * (0.7 + 0.3 * score / 100), increment)
            rir += 1
            rest += LOW_READINESS_REST_BONUS
            if cap < weight:
                weight = cap
                if ptype == "load":
                    ptype = "hold"
                    reason = f"All sets completed at RPE {rpe:g}, but the load increase waits."
                elif ptype == "reps":
                    reason = f"Aim for {target_reps} reps at a reduced load."
                elif ptype == "hold":
                    reason = f"No progression this session; RIR target {rir} this week."
                elif ptype == "plateau":
                    reason = f"No e1RM progress for {plateau.sessions_stagnant} sessions. {plateau.suggestions[0]}"
                reason += f" Readiness {score:g}/100 is low: load capped at {weight:g} kg, one set fewer."
            else:
                reason += f" Readiness {score:g}/100 is low: one set fewer, RIR {rir}."
        else:
            reason += f" Readiness {score:g}/100 is moderate: one set fewer."

    logger.debug("{}: {} -> {:g} kg x {} ({})", exercise_id, ptype, weight, target_reps, reason)
    return ProgressionTargets(
        exercise_id=exercise_id,
        weight_kg=round(weight, 2),
        rep_range=(lo, hi),
        target_reps=target_reps,
        target_rir=rir,
        sets=sets,
        rest_seconds=rest,
        progression_type=ptype,
        reason=reason,
        confidence=confidence,
    )

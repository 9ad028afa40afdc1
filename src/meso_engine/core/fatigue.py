"""
Fatigue budget model.

Every exercise block carries a systemic cost (whole-body, recovery
limiting) and a local cost per muscle.  The stimulus-to-fatigue ratio
(SFR) tells the planner which exercises buy the most growth per unit of
fatigue.

    E_rir    = max(0.5, 1 + 0.15 × (3 − RIR))
    systemic = fatigue_base × (sets / 3) × E_rir
    local    = sets × E_rir on the primary muscle, half on secondaries
    sfr      = stimulus / systemic
"""

from __future__ import annotations

from collections import defaultdict

from .config import (
    A_RIR,
    COMPOUND_RECOVERY_DAYS,
    CUT_BUDGET_FACTOR,
    ISOLATION_RECOVERY_DAYS,
    LOCAL_BUDGET_PER_MUSCLE,
    REFERENCE_SETS,
    RIR_FACTOR_FLOOR,
    SECONDARY_SET_CREDIT,
    SESSION_SYSTEMIC_BUDGET,
)
from .engine.config_loader import DEFAULT_SETTINGS, EngineSettings
from .errors import InvalidInputError
from .models import (
    Efficiency,
    FatigueBudget,
    FatigueProfile,
    FatigueSummary,
    PlannedExercise,
    check_experience,
    check_goal,
)
from .tables.base import ExerciseSpec


def rir_cost_factor(rir: int) -> float:
    """
    Cost multiplier for proximity to failure.

    RIR = 3 → 1.0 (neutral); each rep closer to failure adds 0.15;
    easier work bottoms out at 0.5.
    """
    return max(RIR_FACTOR_FLOOR, 1.0 + A_RIR * (3 - rir))


def classify_efficiency(sfr: float, settings: EngineSettings = DEFAULT_SETTINGS) -> Efficiency:
    if sfr >= settings.sfr_high:
        return "optimal"
    if sfr < settings.sfr_low:
        return "suboptimal"
    return "acceptable"


def exercise_fatigue(
    exercise: ExerciseSpec,
    sets: int,
    target_rir: int,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> FatigueProfile:
    """
    Fatigue profile of one exercise block.

    Args:
        exercise: Catalog entry (mechanic, muscles, fatigue base, stimulus)
        sets: Working sets, at least 1
        target_rir: Planned reps in reserve, at least 0

    Raises:
        InvalidInputError: Non-positive sets or negative RIR
    """
    if sets < 1:
        raise InvalidInputError(f"sets must be at least 1, got {sets}")
    if target_rir < 0:
        raise InvalidInputError(f"target_rir must be non-negative, got {target_rir}")

    e_rir = rir_cost_factor(target_rir)
    systemic = exercise.fatigue_base * (sets / REFERENCE_SETS) * e_rir

    local: dict[str, float] = {exercise.primary: round(sets * e_rir, 2)}
    for muscle in exercise.secondary:
        local[muscle] = round(local.get(muscle, 0.0) + sets * e_rir * SECONDARY_SET_CREDIT, 2)

    sfr = exercise.stimulus / systemic
    recovery = COMPOUND_RECOVERY_DAYS if exercise.mechanic == "compound" else ISOLATION_RECOVERY_DAYS
    if target_rir <= 1:
        recovery += 1

    return FatigueProfile(
        exercise_id=exercise.exercise_id,
        sets=sets,
        target_rir=target_rir,
        systemic_cost=round(systemic, 2),
        local_cost=local,
        sfr=round(sfr, 2),
        efficiency=classify_efficiency(sfr, settings),
        recovery_days=recovery,
    )


def fatigue_budget(
    experience: str,
    goal: str = "maintenance",
    sleep_quality: int | None = None,
    stress_level: int | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> FatigueBudget:
    """Per-session budget; shrinks on a cut, with poor sleep or high stress."""
    check_experience(experience)
    check_goal(goal)
    factor = 1.0
    if goal == "cut":
        factor *= CUT_BUDGET_FACTOR
    if sleep_quality is not None and sleep_quality <= 2:
        factor *= 0.9
    if stress_level is not None and stress_level >= 4:
        factor *= 0.9
    return FatigueBudget(
        systemic_limit=round(SESSION_SYSTEMIC_BUDGET[experience] * factor, 1),
        local_limit_per_muscle=round(LOCAL_BUDGET_PER_MUSCLE * factor, 1),
        min_sfr=settings.sfr_low,
    )


def scale_budget(budget: FatigueBudget, sessions: int) -> FatigueBudget:
    """Budget for several sessions together (e.g. a training week)."""
    return FatigueBudget(
        systemic_limit=budget.systemic_limit * sessions,
        local_limit_per_muscle=budget.local_limit_per_muscle * sessions,
        min_sfr=budget.min_sfr,
    )


def _capacity_recommendation(capacity: float) -> str:
    if capacity < 60:
        return "Fatigue well under budget; there is room for more work."
    if capacity < 80:
        return "Fatigue is well balanced for recovery."
    if capacity < 95:
        return "Near fatigue capacity; keep effort honest and prioritize recovery."
    return "Over fatigue budget; remove sets or swap low-SFR exercises."


def summarize_fatigue(profiles: list[FatigueProfile], budget: FatigueBudget) -> FatigueSummary:
    """Aggregate fatigue profiles against a budget."""
    total = sum(p.systemic_cost for p in profiles)
    local: dict[str, float] = defaultdict(float)
    for p in profiles:
        for muscle, cost in p.local_cost.items():
            local[muscle] += cost
    avg_sfr = sum(p.sfr for p in profiles) / len(profiles) if profiles else 0.0
    capacity = total / budget.systemic_limit * 100 if budget.systemic_limit > 0 else 0.0

    warnings: list[str] = []
    for muscle, cost in sorted(local.items()):
        if cost > budget.local_limit_per_muscle:
            warnings.append(
                f"{muscle} local fatigue {cost:.1f} exceeds {budget.local_limit_per_muscle:g}"
            )
    for p in profiles:
        if p.sfr < budget.min_sfr:
            warnings.append(f"{p.exercise_id} has a low stimulus-to-fatigue ratio ({p.sfr:.2f})")

    return FatigueSummary(
        total_systemic=round(total, 2),
        local_by_muscle={m: round(c, 2) for m, c in local.items()},
        average_sfr=round(avg_sfr, 2),
        capacity_used=round(capacity, 1),
        warnings=tuple(warnings),
        recommendation=_capacity_recommendation(capacity),
    )


def sequence_exercises(exercises: list[PlannedExercise]) -> list[PlannedExercise]:
    """
    Order a session's exercises.

    Compounds come first, lowest SFR first while the lifter is fresh;
    isolation work follows with the highest-SFR isolations last.
    """
    return sorted(exercises, key=lambda e: (e.mechanic == "isolation", e.fatigue.sfr))


def prefer_high_sfr(
    options: list[ExerciseSpec],
    sets: int,
    target_rir: int,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> ExerciseSpec:
    """Pick the option with the best SFR for the given block (first wins ties)."""
    if not options:
        raise InvalidInputError("no exercise options to choose from")
    return max(options, key=lambda ex: exercise_fatigue(ex, sets, target_rir, settings).sfr)

"""Body and strength commands: ffmi, calibrate, profile."""

from typing import Annotated, Optional

import typer

from ...core.body_composition import (
    analyze_ffmi,
    analyze_trend,
    body_comp_recommendations,
    body_comp_targets,
)
from ...core.errors import EngineError, InsufficientDataError
from ...core.models import CalibrationResult, StrengthTest
from ...core.profile import build_strength_profile
from ...core.strength import calibrate_lift, suggested_start_weight, testing_order
from ...core.tables.registry import BENCHMARKS, GENERIC_BENCHMARK_ID
from ...io.record_store import RecordBundle
from ...io.serializers import to_dict, to_json
from .. import views
from ..app import JsonOption, RecordsOption, UnitsOption, app, check_units, load_records


def _calibrate_tests(bundle: RecordBundle, tests: list[StrengthTest]) -> list[CalibrationResult]:
    sex, _ = bundle.require_profile()
    body_comp = bundle.latest_body_composition
    return [
        calibrate_lift(t.lift_id, t.weight_kg, t.reps, sex, body_comp, rpe=t.rpe, tested_on=t.tested_on)
        for t in tests
    ]


@app.command()
def ffmi(
    records_path: RecordsOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Analyze FFMI, body-composition trend and goal targets.
    """
    bundle = load_records(records_path)
    experience = bundle.preferences.experience if bundle.preferences else None

    try:
        latest = bundle.latest_body_composition
        result = analyze_ffmi(latest, experience)
        try:
            trend = analyze_trend(list(bundle.body_composition))
        except InsufficientDataError:
            trend = None
        notes, targets = [], None
        if bundle.preferences is not None:
            goal = bundle.preferences.goal
            notes = body_comp_recommendations(list(bundle.body_composition), goal, experience)
            targets = body_comp_targets(latest, goal, experience)
    except EngineError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(to_json({
            "ffmi": to_dict(result),
            "trend": to_dict(trend),
            "recommendations": to_dict(notes),
            "targets": to_dict(targets),
        }))
        return

    views.console.print()
    views.print_ffmi(result, trend, notes, targets)
    views.console.print()


@app.command()
def calibrate(
    records_path: RecordsOption = None,
    lift: Annotated[
        Optional[str],
        typer.Option("--lift", "-l", help="Score a single test instead of the logged ones"),
    ] = None,
    weight: Annotated[
        float,
        typer.Option("--weight", "-w", help="Tested load in kg (added load for pull-ups)"),
    ] = 0.0,
    reps: Annotated[
        int,
        typer.Option("--reps", "-n", help="Reps performed"),
    ] = 0,
    rpe: Annotated[
        Optional[float],
        typer.Option("--rpe", help="RPE of the set (6-10)"),
    ] = None,
    json_out: JsonOption = False,
    units: UnitsOption = "kg",
) -> None:
    """
    Score strength tests against population percentiles.

    Without logged tests, prints a suggested test order and first attempts.
    """
    check_units(units)
    bundle = load_records(records_path)

    tests = list(bundle.strength_tests)
    if lift is not None:
        tests = [StrengthTest(lift_id=lift, weight_kg=weight, reps=reps, rpe=rpe)]

    try:
        if not tests:
            bodyweight = bundle.latest_body_composition.total_weight_kg
            lifts = testing_order([k for k in BENCHMARKS if k != GENERIC_BENCHMARK_ID])
            plan = [
                (lift_id, BENCHMARKS[lift_id].name, suggested_start_weight(lift_id, bodyweight))
                for lift_id in lifts
            ]
            if json_out:
                print(to_json([{"lift_id": i, "name": n, "start_weight_kg": w} for i, n, w in plan]))
            else:
                views.print_info("No strength tests logged yet.")
                views.print_test_plan(plan, units)
            return
        results = _calibrate_tests(bundle, tests)
    except EngineError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(to_json(results))
        return

    views.console.print()
    views.print_calibrations(results, units)
    views.console.print()


@app.command()
def profile(
    records_path: RecordsOption = None,
    json_out: JsonOption = False,
    units: UnitsOption = "kg",
) -> None:
    """
    Build the overall strength profile from logged tests.
    """
    check_units(units)
    bundle = load_records(records_path)

    try:
        results = _calibrate_tests(bundle, list(bundle.strength_tests))
        strength_profile = build_strength_profile(bundle.latest_body_composition, results)
    except EngineError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(to_json(strength_profile))
        return

    views.console.print()
    views.print_profile(strength_profile, units)
    views.console.print()

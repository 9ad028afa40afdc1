"""Training commands: volume, program, next-targets, deload-check."""

from typing import Annotated, Optional

import typer

from ...core.deload import check_deload, deload_prescription
from ...core.errors import EngineError
from ...core.periodization import generate_program, weekly_progression
from ...core.progression import calculate_next_targets, session_history
from ...core.volume import count_weekly_sets, detect_junk_volume, select_week, track_weekly_volume
from ...io.serializers import to_dict, to_json, validate_date
from .. import views
from ..app import JsonOption, RecordsOption, UnitsOption, app, check_units, load_records


@app.command()
def volume(
    records_path: RecordsOption = None,
    week: Annotated[
        Optional[str],
        typer.Option(
            "--week", "-w",
            help="Any day (YYYY-MM-DD) of the week to report; default is the latest logged week",
        ),
    ] = None,
    json_out: JsonOption = False,
) -> None:
    """
    Compare one week of sets per muscle with MEV / MAV / MRV.

    Sets are grouped by ISO week (Monday to Sunday).  Warm-ups and junk
    sets (too far from failure) do not count.
    """
    bundle = load_records(records_path)

    try:
        _, prefs = bundle.require_profile()
        if week is not None:
            validate_date(week)
        monday, logs = select_week(list(bundle.set_logs), week)
        junk = len(detect_junk_volume(logs))
        weekly = count_weekly_sets(logs)
        rows = track_weekly_volume(weekly, prefs.experience, prefs.goal, bundle.landmark_overrides)
    except EngineError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(to_json({
            "week_start": monday.isoformat() if monday else None,
            "junk_sets": junk,
            "muscles": rows,
        }))
        return

    views.console.print()
    views.print_volume(rows, monday, junk)
    views.console.print()


@app.command()
def program(
    records_path: RecordsOption = None,
    week: Annotated[
        Optional[int],
        typer.Option("--week", "-w", help="Week to show sessions for (default: 1)"),
    ] = None,
    json_out: JsonOption = False,
    units: UnitsOption = "kg",
) -> None:
    """
    Generate a periodized mesocycle from the profile.
    """
    check_units(units)
    bundle = load_records(records_path)

    try:
        _, prefs = bundle.require_profile()
        body_comp = bundle.latest_body_composition if bundle.body_composition else None
        plan = generate_program(prefs, body_comp)
    except EngineError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if week is not None and not 1 <= week <= len(plan.weeks):
        views.print_error(f"Week must be between 1 and {len(plan.weeks)}")
        raise typer.Exit(1)

    if json_out:
        print(to_json(plan))
        return

    views.console.print()
    views.print_program(plan, units, week)
    views.console.print()


@app.command("next-targets")
def next_targets(
    records_path: RecordsOption = None,
    exercise: Annotated[
        Optional[list[str]],
        typer.Option("--exercise", "-e", help="Exercise id (repeatable; default: all logged)"),
    ] = None,
    rir: Annotated[
        int,
        typer.Option("--rir", help="Week RIR target when no mesocycle is recorded"),
    ] = 2,
    json_out: JsonOption = False,
    units: UnitsOption = "kg",
) -> None:
    """
    Compute next-session load, reps and sets per exercise.
    """
    check_units(units)
    bundle = load_records(records_path)
    experience = bundle.preferences.experience if bundle.preferences else "intermediate"

    try:
        history = session_history(list(bundle.set_logs))
        week_rir, is_deload = rir, False
        meso = bundle.mesocycle
        if meso is not None:
            weeks = weekly_progression(meso.total_weeks, experience)
            week_rir = weeks[meso.current_week - 1].target_rir
            is_deload = meso.in_deload_week
        if bundle.performance_logs:
            is_deload = is_deload or check_deload(list(bundle.performance_logs), meso).should_deload
        lean_mass = (
            bundle.latest_body_composition.lean_mass_kg if bundle.body_composition else None
        )

        targets = []
        for exercise_id in exercise or list(history):
            sessions = history.get(exercise_id, [])
            targets.append(
                calculate_next_targets(
                    exercise_id,
                    sessions[-1] if sessions else None,
                    week_rir,
                    is_deload_week=is_deload,
                    readiness=bundle.readiness,
                    history=sessions,
                    experience=experience,
                    lean_mass_kg=lean_mass,
                )
            )
    except EngineError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if not targets:
        views.print_error("No set logs in records; pass --exercise for a new exercise.")
        raise typer.Exit(1)

    if json_out:
        print(to_json(targets))
        return

    views.console.print()
    views.print_targets(targets, units)
    views.console.print()


@app.command("deload-check")
def deload_check(
    records_path: RecordsOption = None,
    window: Annotated[
        Optional[int],
        typer.Option("--window", help="Only consider the last N weeks of logs"),
    ] = None,
    json_out: JsonOption = False,
) -> None:
    """
    Check recent performance logs for reactive deload triggers.
    """
    bundle = load_records(records_path)

    try:
        trigger = check_deload(list(bundle.performance_logs), bundle.mesocycle, window)
    except EngineError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    modifiers = deload_prescription(trigger)

    if json_out:
        print(to_json({"trigger": to_dict(trigger), "prescription": to_dict(modifiers)}))
        return

    views.console.print()
    views.print_deload(trigger, modifiers)
    views.console.print()

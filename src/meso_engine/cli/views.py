"""
CLI view formatters using Rich for pretty console output.

All results arrive in kilograms; conversion to pounds happens here and
nowhere else.
"""

from datetime import date

from rich.console import Console
from rich.table import Table

from ..core.config import DeloadModifiers
from ..core.models import (
    BodyCompRecommendation,
    BodyCompTargets,
    BodyCompTrend,
    CalibrationResult,
    DeloadTrigger,
    FFMIResult,
    FullProgramRecommendation,
    MesocycleWeek,
    ProgressionTargets,
    StrengthProfile,
    WeeklyMuscleVolume,
)

KG_TO_LB = 2.20462

console = Console()

_STATUS_STYLE = {
    "below_mev": "red",
    "effective": "yellow",
    "optimal": "green",
    "approaching_mrv": "yellow",
    "exceeding_mrv": "red",
}

_STATE_STYLE = {"normal": "green", "caution": "yellow", "deload_due": "red"}


def fmt_weight(weight_kg: float | None, units: str = "kg") -> str:
    """Format a load in the display unit."""
    if weight_kg is None:
        return "-"
    if units == "lb":
        return f"{weight_kg * KG_TO_LB:.1f} lb"
    return f"{weight_kg:g} kg"


def print_ffmi(
    result: FFMIResult,
    trend: BodyCompTrend | None,
    notes: list[BodyCompRecommendation],
    targets: BodyCompTargets | None,
) -> None:
    """
    Print FFMI analysis with optional trend, coaching notes and targets.

    Args:
        result: FFMI of the latest snapshot
        trend: Trend over all dated snapshots, if computable
        notes: Body-composition recommendations, highest priority first
        targets: Goal targets, if a profile is present
    """
    lines = [
        "[bold]Fat-free mass index[/bold]",
        f"- FFMI:            {result.ffmi:.1f}",
        f"- Normalized FFMI: {result.normalized_ffmi:.1f}  ({result.classification.replace('_', ' ')})",
        f"- Natural limit:   {result.natural_limit:.1f}  ({result.percent_of_limit:.0f}% reached)",
    ]
    if trend is not None:
        lines += [
            "",
            f"[bold]Trend[/bold] over {trend.months:.1f} months ({trend.data_points} scans): "
            f"{trend.trend.replace('_', ' ')}",
            f"- Lean mass: {trend.lean_mass_per_month:+.2f} kg/month",
            f"- Fat mass:  {trend.fat_mass_per_month:+.2f} kg/month",
            f"- Body fat:  {trend.body_fat_per_month:+.2f} %/month",
        ]
    if targets is not None:
        lines += [
            "",
            f"[bold]Targets[/bold] for {targets.goal}: {targets.target_body_fat:.1f}% body fat, "
            f"FFMI {targets.target_ffmi:.1f}, ~{targets.estimated_weeks} weeks "
            f"({targets.calorie_adjustment:+d} kcal/day)",
        ]
    console.print("\n".join(lines))
    for note in notes:
        console.print(f"  [cyan]•[/cyan] {note.message}")


def print_calibrations(results: list[CalibrationResult], units: str = "kg") -> None:
    """Print one row per calibrated lift."""
    table = Table(title="Strength calibration", header_style="bold")
    table.add_column("Lift", style="cyan")
    table.add_column("Tested", justify="right")
    table.add_column("e1RM", justify="right", style="bold")
    table.add_column("General", justify="right")
    table.add_column("Trained", justify="right")
    table.add_column("Body comp", justify="right")
    table.add_column("Level", style="magenta")
    table.add_column("Conf.", style="dim")

    for r in results:
        if r.score_unit == "reps":
            tested = f"{r.tested_reps} reps"
            if r.tested_weight_kg:
                tested += f" +{fmt_weight(r.tested_weight_kg, units)}"
            e1rm = f"{r.estimated_1rm:g} reps"
        else:
            tested = f"{fmt_weight(r.tested_weight_kg, units)} × {r.tested_reps}"
            e1rm = fmt_weight(r.estimated_1rm, units)
        table.add_row(
            r.lift_name,
            tested,
            e1rm,
            f"{r.percentiles.vs_general:.0f}",
            f"{r.percentiles.vs_trained:.0f}",
            f"{r.percentiles.vs_body_comp:.0f}",
            r.strength_level,
            r.confidence,
        )
    console.print(table)


def print_test_plan(rows: list[tuple[str, str, float]], units: str = "kg") -> None:
    """Print suggested benchmark tests as (lift id, name, start load)."""
    table = Table(title="Suggested benchmark tests", header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Lift", style="cyan")
    table.add_column("First attempt", justify="right")
    for i, (_, name, start) in enumerate(rows, 1):
        table.add_row(str(i), name, fmt_weight(start, units) if start > 0 else "bodyweight")
    console.print(table)


def print_profile(profile: StrengthProfile, units: str = "kg") -> None:
    """Print a strength profile with its imbalances."""
    print_calibrations(list(profile.calibrations), units)
    console.print()
    console.print(
        f"Overall score: [bold]{profile.overall_score:.0f}[/bold] ({profile.strength_level})   "
        f"Balance: [bold]{profile.balance_score}[/bold]/100"
    )
    for imb in profile.imbalances:
        style = "red" if imb.severity == "significant" else "yellow"
        console.print(f"  [{style}]{imb.severity}[/{style}] {imb.description}")
    for rec in profile.recommendations:
        console.print(f"  [cyan]•[/cyan] {rec}")


def print_volume(
    rows: list[WeeklyMuscleVolume],
    week_start: date | None = None,
    junk_sets: int = 0,
) -> None:
    """Print one week of volume per muscle against its landmarks."""
    title = f"Weekly volume, week of {week_start.isoformat()}" if week_start else "Weekly volume"
    if not rows:
        console.print(f"[yellow]No working sets for {title.lower()}.[/yellow]")
        return
    table = Table(title=title, header_style="bold")
    table.add_column("Muscle", style="cyan")
    table.add_column("Sets", justify="right", style="bold")
    table.add_column("MEV/MAV/MRV", justify="right", style="dim")
    table.add_column("Target", justify="right")
    table.add_column("% MRV", justify="right")
    table.add_column("Status")
    table.add_column("Action")
    for v in rows:
        style = _STATUS_STYLE[v.status]
        lm = v.landmarks
        table.add_row(
            v.muscle_group,
            f"{v.total_sets:g}",
            f"{lm.mev:g}/{lm.mav:g}/{lm.mrv:g}",
            str(v.recommended_sets),
            f"{v.percent_of_mrv:.0f}",
            f"[{style}]{v.status.replace('_', ' ')}[/{style}]",
            v.action,
        )
    console.print(table)
    if junk_sets:
        console.print(f"[dim]{junk_sets} set(s) too far from failure left out as junk volume.[/dim]")


def _print_week(week: MesocycleWeek, units: str) -> None:
    label = "deload" if week.is_deload else f"RIR {week.target_rir}"
    console.print(f"[bold]Week {week.week_number}[/bold] ({label}) - {week.focus}")
    for session in week.sessions:
        table = Table(
            title=f"{session.day}: {session.name}",
            title_justify="left",
            header_style="dim",
        )
        table.add_column("Exercise", style="cyan")
        table.add_column("Sets", justify="right")
        table.add_column("Reps", justify="right")
        table.add_column("RIR", justify="right")
        table.add_column("Rest", justify="right")
        table.add_column("Start", justify="right")
        table.add_column("SFR", justify="right", style="dim")
        for ex in session.exercises:
            lo, hi = ex.rep_range
            table.add_row(
                ex.name,
                str(ex.sets),
                f"{lo}-{hi}",
                str(ex.target_rir),
                f"{ex.rest_seconds}s",
                fmt_weight(ex.start_weight_kg, units),
                f"{ex.fatigue.sfr:.2f}",
            )
        console.print(table)
        console.print(
            f"  [dim]fatigue {session.fatigue.total_systemic:.0f} "
            f"({session.fatigue.capacity_used:.0f}% of budget)[/dim]"
        )


def print_program(
    program: FullProgramRecommendation,
    units: str = "kg",
    week_number: int | None = None,
) -> None:
    """
    Print a program overview, then the sessions of one week.

    Args:
        program: Generated program
        units: Display unit
        week_number: Week to detail (default: week 1)
    """
    console.print(f"[bold]{program.split}[/bold] on {', '.join(program.schedule)}")
    console.print(f"  {program.split_reason}")
    console.print(f"  {program.duration_reason}")
    console.print()

    table = Table(title="Mesocycle", header_style="bold")
    table.add_column("Week", justify="right")
    table.add_column("RIR", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("Load", justify="right")
    table.add_column("Focus")
    for w in program.weeks:
        table.add_row(
            str(w.week_number),
            str(w.target_rir),
            f"{w.volume_modifier:.0%}",
            f"{w.intensity_modifier:.0%}",
            ("[yellow]deload[/yellow] " if w.is_deload else "") + w.focus,
        )
    console.print(table)
    console.print(
        "Weekly sets: "
        + ", ".join(f"{m} {n}" for m, n in program.volume_per_muscle.items())
    )
    console.print()

    wanted = week_number or 1
    for week in program.weeks:
        if week.week_number == wanted:
            _print_week(week, units)

    for w in program.warnings:
        print_warning(w)
    for n in program.notes:
        console.print(f"  [dim]{n}[/dim]")


def print_targets(targets: list[ProgressionTargets], units: str = "kg") -> None:
    """Print next-session targets, one row per exercise."""
    table = Table(title="Next session", header_style="bold")
    table.add_column("Exercise", style="cyan")
    table.add_column("Load", justify="right", style="bold")
    table.add_column("Sets × reps", justify="right")
    table.add_column("RIR", justify="right")
    table.add_column("Rest", justify="right")
    table.add_column("Type", style="magenta")
    for t in targets:
        table.add_row(
            t.exercise_id,
            fmt_weight(t.weight_kg, units),
            f"{t.sets} × {t.target_reps}",
            str(t.target_rir),
            f"{t.rest_seconds}s",
            t.progression_type,
        )
    console.print(table)
    for t in targets:
        conf = "" if t.confidence == "high" else f" [dim]({t.confidence} confidence)[/dim]"
        console.print(f"  [cyan]{t.exercise_id}[/cyan]: {t.reason}{conf}")


def print_deload(trigger: DeloadTrigger, modifiers: DeloadModifiers | None) -> None:
    """Print a deload decision."""
    style = _STATE_STYLE[trigger.state]
    console.print(f"Deload state: [{style}]{trigger.state.replace('_', ' ')}[/{style}]")
    if trigger.should_deload:
        kind = trigger.suggested_type or "full"
        extra = " (pulled forward)" if trigger.pulled_forward else ""
        console.print(f"Suggested: [bold]{kind}[/bold] deload{extra}")
        if modifiers is not None:
            console.print(
                f"  keep {modifiers.volume:.0%} of sets and {modifiers.intensity:.0%} of load"
            )
    for reason in trigger.reasons:
        console.print(f"  [red]•[/red] {reason}")
    for signal in trigger.caution_signals:
        console.print(f"  [yellow]•[/yellow] {signal}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")

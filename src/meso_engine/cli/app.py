"""Shared Typer app object, shared option types, and records utility."""

import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from loguru import logger

from ..core.engine.config_loader import user_config_dir
from ..core.errors import EngineError
from ..io.record_store import RecordBundle, RecordStore
from . import views

RecordsOption = Annotated[
    Optional[Path],
    typer.Option("--records", "-r", help="Path to the JSON records file"),
]

JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]

UnitsOption = Annotated[
    str,
    typer.Option("--units", "-u", help="Display units: kg or lb"),
]

app = typer.Typer(
    name="meso-engine",
    help="Adaptive training program engine: calibrate, plan and progress a mesocycle.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool) -> None:
    """Route engine logs to stderr; only warnings unless verbose."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>",
        level="DEBUG" if verbose else "WARNING",
    )
    logger.enable("meso_engine")


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show engine decisions on stderr"),
    ] = False,
) -> None:
    """
    Adaptive training program engine.
    """
    setup_logging(verbose)


def get_default_records_path() -> Path:
    """Default records file: ~/.meso-engine/records.json."""
    return user_config_dir() / "records.json"


def check_units(units: str) -> str:
    """Validate --units or exit."""
    if units not in ("kg", "lb"):
        views.print_error("Units must be 'kg' or 'lb'")
        raise typer.Exit(1)
    return units


def load_records(records_path: Path | None) -> RecordBundle:
    """Load the records bundle, exiting with an error line on failure."""
    store = RecordStore(records_path or get_default_records_path())
    if not store.exists():
        views.print_error(f"Records file not found: {store.path}")
        views.print_info("Pass --records or create ~/.meso-engine/records.json.")
        raise typer.Exit(1)
    try:
        return store.load()
    except EngineError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

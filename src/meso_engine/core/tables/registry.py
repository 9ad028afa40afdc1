"""
Table registry.

The benchmark, exercise and volume tables are loaded from YAML once at
import time and never modified afterwards.  If a table cannot be loaded a
RuntimeError is raised; the engine cannot run without them.

Lookups raise LookupMiss; callers decide on the fallback.
"""

from ..errors import LookupMiss
from .base import BenchmarkLift, ExerciseSpec, VolumeTable
from .loader import load_benchmarks, load_exercises, load_volume_table

GENERIC_BENCHMARK_ID = "generic"


def _build_benchmarks() -> dict[str, BenchmarkLift]:
    loaded = load_benchmarks()
    if GENERIC_BENCHMARK_ID not in loaded:
        raise RuntimeError(
            "meso-engine: benchmark table is missing or has no 'generic' entry. "
            "Check src/meso_engine/tables/benchmarks.yaml."
        )
    return loaded


def _build_exercises() -> dict[str, ExerciseSpec]:
    loaded = load_exercises()
    if not loaded:
        raise RuntimeError(
            "meso-engine: no exercises could be loaded. "
            "Check src/meso_engine/tables/exercises.yaml."
        )
    return loaded


def _build_volume_table() -> VolumeTable:
    loaded = load_volume_table()
    if loaded is None:
        raise RuntimeError(
            "meso-engine: volume table could not be loaded. "
            "Check src/meso_engine/tables/volume.yaml."
        )
    return loaded


BENCHMARKS: dict[str, BenchmarkLift] = _build_benchmarks()
EXERCISES: dict[str, ExerciseSpec] = _build_exercises()
VOLUME_TABLE: VolumeTable = _build_volume_table()


def get_benchmark(lift_id: str, table: dict[str, BenchmarkLift] | None = None) -> BenchmarkLift:
    """
    Return the BenchmarkLift for lift_id.

    Args:
        lift_id: e.g. "bench_press", "squat", "pullup"
        table: Optional fixture table; defaults to the bundled benchmarks

    Raises:
        LookupMiss: If lift_id is not in the table
    """
    table = BENCHMARKS if table is None else table
    if lift_id not in table:
        raise LookupMiss("benchmarks", lift_id)
    return table[lift_id]


def get_exercise(exercise_id: str, catalog: dict[str, ExerciseSpec] | None = None) -> ExerciseSpec:
    """
    Return the ExerciseSpec for exercise_id.

    Raises:
        LookupMiss: If exercise_id is not in the catalog
    """
    catalog = EXERCISES if catalog is None else catalog
    if exercise_id not in catalog:
        raise LookupMiss("exercises", exercise_id)
    return catalog[exercise_id]

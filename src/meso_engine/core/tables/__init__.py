"""
Constant tables for meso-engine.

Benchmarks, the exercise catalog and volume landmarks are data, loaded
from YAML and keyed by identifier so tests can pass fixtures instead.
"""

from .base import BenchmarkLift, ExerciseSpec, VolumeTable
from .registry import BENCHMARKS, EXERCISES, VOLUME_TABLE, get_benchmark, get_exercise

__all__ = [
    "BenchmarkLift",
    "ExerciseSpec",
    "VolumeTable",
    "BENCHMARKS",
    "EXERCISES",
    "VOLUME_TABLE",
    "get_benchmark",
    "get_exercise",
]

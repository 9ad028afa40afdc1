"""
meso-engine: adaptive training program engine.

Turns body-composition and strength-test records into a periodized
training plan and re-targets load, reps, sets and deload timing from
logged sessions.
"""

from loguru import logger

__version__ = "0.1.0"

# Library code logs through loguru; applications opt in with
# logger.enable("meso_engine").
logger.disable("meso_engine")

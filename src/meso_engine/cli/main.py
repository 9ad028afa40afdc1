"""
CLI entry point using Typer.

Provides commands over a JSON records file:
- ffmi: FFMI, body-composition trend and goal targets
- calibrate: Score strength tests against population percentiles
- profile: Overall strength profile and imbalances
- volume: Weekly sets per muscle against MEV / MAV / MRV
- program: Periodized mesocycle with sessions
- next-targets: Next-session load, reps and sets
- deload-check: Reactive deload triggers
"""

from .app import app
from .commands import body, training  # noqa: F401  (registers commands)

if __name__ == "__main__":
    app()

"""Error taxonomy for the training engine.

InvalidInputError is always surfaced to the caller.  InsufficientDataError
means "not yet available" and is safe to treat as a soft miss.  LookupMiss
is raised by the table registries; engine functions catch it, fall back to
a documented default and lower the confidence of their result.
"""


class EngineError(Exception):
    """Base exception for all engine errors."""

    pass


class InvalidInputError(EngineError, ValueError):
    """Raised for non-positive weight/reps/height, out-of-range RPE and similar."""

    pass


class InsufficientDataError(EngineError):
    """Raised when a trend or plateau function gets too few samples."""

    pass


class LookupMiss(EngineError, KeyError):
    """Raised when a benchmark, exercise or landmark key is not in its table."""

    def __init__(self, table: str, key: str) -> None:
        super().__init__(f"{table}: no entry for '{key}'")
        self.table = table
        self.key = key

    def __str__(self) -> str:
        return str(self.args[0])

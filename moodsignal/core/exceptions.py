"""
Error kinds raised by the pipeline.

Every stage is fail-fast: these propagate to the caller (CLI or API),
nothing is retried.
"""


class MoodSignalError(Exception):
    """Base class for pipeline errors."""


class EmptyDesignMatrix(MoodSignalError):
    """The solver was given zero rows."""

    def __init__(self, message: str = "Empty design matrix"):
        super().__init__(message)


class InsufficientTrainingData(MoodSignalError):
    """Fewer than two complete training rows."""

    def __init__(self, complete_rows: int, required: int = 2):
        super().__init__(
            f"Not enough complete rows to train: {complete_rows} (need at least {required})"
        )
        self.complete_rows = complete_rows
        self.required = required


class RepositoryError(MoodSignalError):
    """Opaque failure from an external store (query error, timeout, conflict)."""

"""
Custom exceptions for the gesture classification pipeline.

Every error here is recoverable at the call site: callers skip the frame,
prompt retraining, or fall back to "no model".
"""


class SignSpeakError(Exception):
    """Base exception for all gesture pipeline errors."""
    pass


class InvalidInputError(SignSpeakError, ValueError):
    """Raised for malformed landmarks, features, or training data."""
    pass


class NotTrainedError(SignSpeakError, RuntimeError):
    """Raised when predict is called before fit or import."""
    pass


class InvalidModelRecordError(SignSpeakError, ValueError):
    """Raised when a persisted model record is structurally invalid."""
    pass


class IncompatibleModelError(SignSpeakError):
    """Raised when a model's feature dimension differs from the one in use."""

    def __init__(self, expected: int, actual: int, message: str = ""):
        self.expected = expected
        self.actual = actual
        super().__init__(
            message
            or f"Model incompatible: requires {expected} features "
               f"but was trained with {actual}. Please retrain the model."
        )


class ImportTypeMismatchError(SignSpeakError):
    """Raised when a record's type tag does not match the importing classifier."""

    def __init__(self, expected: str, actual):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Invalid classifier type: expected {expected}, got {actual}"
        )

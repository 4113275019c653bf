"""Custom exceptions for floorsched."""


class FloorschedError(Exception):
    """Base exception for all floorsched errors."""

    pass


class ValidationError(FloorschedError):
    """Raised when validation fails."""

    pass


class MissingReferenceError(ValidationError):
    """Raised when a referenced ID does not exist."""

    pass


class ParseError(FloorschedError):
    """Raised when YAML parsing fails."""

    pass


class SimulationCleanupError(FloorschedError):
    """Raised when a what-if simulation cannot restore the persisted schedule.

    This is a critical failure: the persisted schedule may no longer match the
    real backlog and needs manual intervention.
    """

    pass

"""Typed failures raised by the scheduling core."""


class SchedulingError(Exception):
    """Base class for every rejection the scheduling core reports."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Malformed or past-dated request."""


class SlotUnavailableError(SchedulingError):
    """The requested slot is not free (stale view or lost race)."""


class DuplicateBookingError(SchedulingError):
    """The patient already holds a live appointment on that date."""

    def __init__(self, message: str, conflicting):
        super().__init__(message)
        self.conflicting = conflicting


class InvalidTransitionError(SchedulingError):
    """The requested status change is not allowed from the current status."""


class NotFoundError(SchedulingError):
    pass


class StoreError(SchedulingError):
    """The database failed; details are logged, never surfaced."""


class ConflictError(Exception):
    """A live-status uniqueness constraint rejected an insert.

    Raised by the ledger and handled inside the booking commit path.
    """


class DuplicateScheduleError(SchedulingError):
    """The doctor already has a schedule entry for that weekday."""

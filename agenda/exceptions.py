# agenda/exceptions.py


class AgendaError(Exception):
    """Base class for all domain-level errors."""


class ScheduleError(AgendaError):
    """Raised when a weekly schedule or time string is malformed."""


class InvalidTransition(AgendaError):
    """Raised when an appointment status change is not allowed."""

    def __init__(self, current: str, new: str):
        self.current = current
        self.new = new
        super().__init__(f"Cannot change status from '{current}' to '{new}'")


class DuplicateCustomer(AgendaError):
    """Raised when a customer with the same phone or email already exists."""


class SlotUnavailable(AgendaError):
    """Raised when a requested time slot cannot be booked."""


class BookingConflict(SlotUnavailable):
    """Raised when a slot overlaps another appointment of the same employee."""

    def __init__(self, message: str, conflicts=None):
        self.conflicts = list(conflicts or [])
        super().__init__(message)

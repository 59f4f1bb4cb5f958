"""Outcomes the scheduling engine reports back to its callers.

Every error here is terminal: the inputs are deterministic reads, so the
engine never retries, and no write happens once one of these is raised.
"""


class SchedulingError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DoctorUnavailable(SchedulingError):
    """No active template for the weekday, or the time is outside working hours."""


class ScheduleConflict(SchedulingError):
    """The requested window overlaps an active appointment."""

    def __init__(self, message: str, start_time=None, end_time=None):
        super().__init__(message)
        self.start_time = start_time
        self.end_time = end_time


class InvalidInput(SchedulingError):
    pass


class NotFound(SchedulingError):
    pass


class PermissionDenied(SchedulingError):
    pass

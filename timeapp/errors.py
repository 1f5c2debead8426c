"""Exceptions raised by the domain modules and translated by the routers."""


class TimeAppError(Exception):
    """Base class for TIME App errors."""


class TimerStateError(TimeAppError):
    """Raised when a timer transition is not allowed in the current state."""


class InvalidSessionError(TimeAppError):
    """Raised when session timestamps or duration are inconsistent."""


class SessionNotFoundError(TimeAppError):
    """Raised when a session does not exist for the requesting user."""


class InvalidExportError(TimeAppError):
    """Raised when an export request names an unknown format or field."""

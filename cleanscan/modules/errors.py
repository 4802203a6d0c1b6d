"""
Error Types Module - Room Cleaning Tracker

Every failure a view can run into is raised as one of these exceptions and
translated into a redirect or a JSON error response at the route that
started the action.
"""


class CleanScanError(Exception):
    """Base class for all application errors."""

    error_type = 'error'

    def __init__(self, message: str = None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__


class Unauthenticated(CleanScanError):
    """No valid session."""

    error_type = 'unauthenticated'


class Unauthorized(CleanScanError):
    """Role not permitted for the requested action."""

    error_type = 'unauthorized'


class ValidationError(CleanScanError):
    """A required field is missing or empty."""

    error_type = 'validation_error'


class NotFound(CleanScanError):
    """Referenced record does not exist."""

    error_type = 'not_found'


class ReadError(CleanScanError):
    """Data store read failed."""

    error_type = 'read_error'


class WriteError(CleanScanError):
    """Data store write failed."""

    error_type = 'write_error'

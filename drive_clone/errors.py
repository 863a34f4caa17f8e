"""Exception hierarchy for the clone job.

Deadline expiry is not in here: running out of time is a normal,
resumable outcome and is reported through return values.
"""

from typing import Optional


class CloneError(Exception):
    """Base class for every fatal clone error"""
    pass


class ConfigError(CloneError):
    """Invalid or incomplete configuration"""
    pass


class PreconditionError(CloneError):
    """
    Drive state does not match what the job expects.

    Never retried and never rescheduled: an operator has to look at it.
    """
    pass


class DestinationExistsError(PreconditionError):
    """Destination folder exists but no progress record does"""
    pass


class DestinationMissingError(PreconditionError):
    """A progress record exists but its destination folder is gone"""
    pass


class ProgressStoreError(CloneError):
    """Progress record could not be read, parsed or written"""
    pass


class BackoffExhaustedError(CloneError):
    """A remote operation kept failing after every retry"""

    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error

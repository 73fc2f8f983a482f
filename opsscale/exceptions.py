"""
Exception hierarchy for the contact intake service
"""


class IntakeError(Exception):
    """Base class for intake service errors"""

    pass


class InvalidSubmissionError(IntakeError, ValueError):
    """A submission failed validation (missing name/message or malformed email)"""

    pass


class StorageWriteError(IntakeError):
    """Storage is configured but refused or failed to write the submission"""

    pass


class NotificationError(IntakeError):
    """The mail transport failed to deliver a notification"""

    pass


class ConfigurationError(IntakeError):
    """Settings could not be loaded or validated"""

    pass

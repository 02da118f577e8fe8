"""Error taxonomy for the symptom tracker."""


class SymptomTrackerError(Exception):
    """Base class for application errors."""


class InvalidUserId(SymptomTrackerError):
    """Raised when a user identifier is missing or malformed."""


class InvalidRecordData(SymptomTrackerError):
    """Raised when record input is structurally malformed."""


class FieldValidationFailed(InvalidRecordData):
    """Raised when a field definition or entry value fails validation."""


class UnknownFieldType(FieldValidationFailed):
    """Raised when a field definition uses an unsupported type."""


class NotFound(SymptomTrackerError):
    """Raised when a record does not exist remotely."""


class PermissionDenied(SymptomTrackerError):
    """Raised when a record belongs to a different user."""


class InvalidTimestampFormat(SymptomTrackerError):
    """Raised when a raw timestamp cannot be interpreted."""


class RemoteOperationFailed(SymptomTrackerError):
    """Raised when the remote document store rejects an operation."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause

"""Exception hierarchy for trajectwatch."""


class TrajectWatchError(Exception):
    """Base class for all trajectwatch errors."""


class ValidationError(TrajectWatchError, ValueError):
    """A traject registration was rejected.

    Rejected registrations are never persisted and never scheduled.
    """


class DuplicateIdError(ValidationError):
    """A traject with the requested id already exists."""

    def __init__(self, traject_id: str) -> None:
        super().__init__(f"traject id already exists: {traject_id}")
        self.traject_id = traject_id


class ProviderError(TrajectWatchError):
    """A route provider call failed (transport, HTTP status or payload)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StorageError(TrajectWatchError, OSError):
    """Reading or writing durable state failed."""


class TrajectNotFoundError(TrajectWatchError, LookupError):
    """No traject matches the requested id."""

    def __init__(self, traject_id: str | None) -> None:
        if traject_id is None:
            message = "no trajects registered"
        else:
            message = f"unknown traject: {traject_id}"
        super().__init__(message)
        self.traject_id = traject_id

"""Error types raised by the store, the lock layer, and the log service."""


class LogServiceError(Exception):
    """Base class for failures reported by the log service."""


class ValidationError(LogServiceError):
    """The submitted entry is not an object with a timestamp."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid log entry")


class ConcurrencyError(LogServiceError):
    """The store lock could not be obtained within the retry budget."""


class StoreError(LogServiceError):
    """Reading or writing the log file failed."""


class LogNotFoundError(StoreError):
    """The log file does not exist."""


class ParseError(LogServiceError):
    """The log file content is not a JSON array. Never reaches callers."""


class LockTimeout(TimeoutError):
    """All attempts to acquire a resource lock failed."""

    def __init__(self, resource_key: str, attempts: int):
        self.resource_key = resource_key
        self.attempts = attempts
        super().__init__(f"Could not lock {resource_key} after {attempts} attempt(s)")

"""
Custom exceptions for book notes storage.

All stores and repositories should raise these exceptions
for consistent error handling across backends.
"""


class BookStorageError(Exception):
    """Base exception for all book notes storage errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class EntityNotFoundError(BookStorageError):
    """Raised when an entity is required but does not exist."""

    def __init__(self, collection: str, entity_id: str):
        super().__init__(
            f"{collection} entity not found: {entity_id}",
            {"collection": collection, "entity_id": entity_id},
        )
        self.collection = collection
        self.entity_id = entity_id


class EntityValidationError(BookStorageError):
    """Raised when an entity cannot be used for the requested operation."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Validation failed for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class StorageIOError(BookStorageError):
    """Raised when a local store I/O operation fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class RemoteRepositoryError(BookStorageError):
    """Raised when the remote repository rejects or fails an operation."""

    def __init__(
        self,
        operation: str,
        status: int | None = None,
        cause: Exception | None = None,
    ):
        details: dict = {"operation": operation}
        if status is not None:
            details["status"] = status
        if cause:
            details["cause"] = str(cause)
        message = f"Remote repository error during {operation}"
        if status is not None:
            message += f" (HTTP {status})"
        super().__init__(message, details)
        self.operation = operation
        self.status = status
        self.cause = cause


class StorageConnectionError(BookStorageError):
    """Raised when connection to the remote repository fails.

    Note: Named StorageConnectionError to avoid shadowing the builtin ConnectionError.
    """

    def __init__(self, endpoint: str, cause: Exception | None = None):
        details = {"endpoint": endpoint}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Connection failed to {endpoint}", details)
        self.endpoint = endpoint
        self.cause = cause


class AuthenticationError(BookStorageError):
    """Raised when authentication to the remote repository fails."""

    def __init__(self, endpoint: str, reason: str | None = None):
        details = {"endpoint": endpoint}
        if reason:
            details["reason"] = reason
        super().__init__(f"Authentication failed for {endpoint}", details)
        self.endpoint = endpoint
        self.reason = reason


class ConfigurationError(BookStorageError):
    """Raised when storage configuration is incomplete or inconsistent."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid configuration for {field}: {reason}",
            {"field": field, "reason": reason},
        )
        self.field = field
        self.reason = reason

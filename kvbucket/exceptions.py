"""Custom exception hierarchy for kvbucket."""

from __future__ import annotations


class KvbucketError(Exception):
    """Base exception for all kvbucket-specific errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(KvbucketError):
    """Raised when storage configuration is rejected at construction time."""
    pass


class InvalidConfigurationError(ConfigurationError):
    """Raised when backend settings are invalid or incomplete."""
    pass


class MissingBackendConfigError(InvalidConfigurationError):
    """Raised when a backend needs its own settings and none were given."""
    pass


class UnsafeConfigurationError(ConfigurationError):
    """Raised when a configuration would operate on a dangerous location."""
    pass


class UnsafePrefixError(UnsafeConfigurationError):
    """Raised when the filesystem root has fewer than two path segments."""
    pass


class UnsupportedBackendError(ConfigurationError):
    """Raised when the backend kind is unset or unknown."""
    pass


class StorageError(KvbucketError):
    """Raised when storage operations fail."""
    pass


class NotFoundError(StorageError):
    """Raised when a key is absent from the storage."""
    pass


class InvalidKeyError(StorageError):
    """Raised when a key is empty or resolves outside the storage root."""
    pass


class UnsupportedOperationError(StorageError):
    """Raised when a backend does not implement an operation."""
    pass


class CancelledError(KvbucketError):
    """Raised when the execution context was cancelled."""
    pass


class DeadlineExceededError(CancelledError):
    """Raised when the execution context deadline has passed."""
    pass


__all__ = [
    "KvbucketError",
    "ConfigurationError",
    "InvalidConfigurationError",
    "MissingBackendConfigError",
    "UnsafeConfigurationError",
    "UnsafePrefixError",
    "UnsupportedBackendError",
    "StorageError",
    "NotFoundError",
    "InvalidKeyError",
    "UnsupportedOperationError",
    "CancelledError",
    "DeadlineExceededError",
]

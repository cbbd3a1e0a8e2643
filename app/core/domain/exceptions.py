"""
Domain Exceptions

These exceptions represent the failure classes the orchestrator reacts to:
transient external failures (Registry / Messenger), workflow violations on
stale cache handles, and local persistence failures.
"""

from typing import Any


class DomainException(Exception):
    """
    Base exception for all domain-related errors.

    Provides a standardized way to communicate business rule violations.
    """

    def __init__(self, message: str, code: str | None = None, details: dict[str, Any] | None = None):
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "STALE_HANDLE")
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# ============================================================================
# Transient external failures
# ============================================================================


class RegistryError(DomainException):
    """Raised when the Registry (spreadsheet) rejects a read or a write."""

    def __init__(self, message: str, status_code: int | None = None, details: dict[str, Any] | None = None):
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, "REGISTRY_ERROR", details)
        self.status_code = status_code


class RegistryUnavailableError(RegistryError):
    """Raised when the Registry cannot be reached at all (network, 5xx after retries)."""


class MessengerError(DomainException):
    """Raised when the messaging transport fails to deliver a message."""

    def __init__(self, message: str, status_code: int | None = None, details: dict[str, Any] | None = None):
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, "MESSENGER_ERROR", details)
        self.status_code = status_code


class MessengerAuthError(MessengerError):
    """Raised when the transport rejects our credentials (401/403)."""


# ============================================================================
# Workflow violations
# ============================================================================


class StaleHandleError(DomainException):
    """
    Raised when a write-back uses a handle minted before the last cache refresh,
    or when the row it points to no longer belongs to the same patient.
    """

    def __init__(self, key: str, handle_generation: int, current_generation: int, message: str | None = None):
        self.key = key
        self.handle_generation = handle_generation
        self.current_generation = current_generation
        msg = message or (
            f"Handle for {key} is stale (generation {handle_generation}, cache at {current_generation})"
        )
        super().__init__(
            msg,
            "STALE_HANDLE",
            {"key": key, "handle_generation": handle_generation, "current_generation": current_generation},
        )


class PatientNotFoundError(DomainException):
    """Raised when a phone cannot be resolved to a Registry row."""

    def __init__(self, phone: str, operation: str | None = None):
        self.phone = phone
        self.operation = operation
        msg = f"Patient {phone} not found in registry"
        if operation:
            msg = f"{msg} ({operation})"
        super().__init__(msg, "PATIENT_NOT_FOUND", {"phone": phone, "operation": operation})


# ============================================================================
# Local persistence
# ============================================================================


class StateStoreError(DomainException):
    """Raised when the state snapshot cannot be written."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"State store failure at {path}: {message}", "STATE_STORE_ERROR", {"path": path})

"""
Domain Layer - Core error types

This module exposes the domain-specific error hierarchy used by every
component of the orchestrator.
"""

from app.core.domain.exceptions import (
    DomainException,
    MessengerAuthError,
    MessengerError,
    PatientNotFoundError,
    RegistryError,
    RegistryUnavailableError,
    StaleHandleError,
    StateStoreError,
)

__all__ = [
    "DomainException",
    "MessengerAuthError",
    "MessengerError",
    "PatientNotFoundError",
    "RegistryError",
    "RegistryUnavailableError",
    "StaleHandleError",
    "StateStoreError",
]

"""
Service layer custom exceptions.

Configuration errors are fatal to a single schedule run and are never retried
within a tick. Provider errors live in ``prnudge.core.providers.errors``.
"""

from typing import Any, Dict, Optional


class ServiceException(Exception):
    """Base exception for all service layer errors."""

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.service = service
        self.operation = operation
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        if self.service and self.operation:
            return f"[{self.service}.{self.operation}] {self.message}"
        return self.message


class ConfigurationError(ServiceException):
    """A schedule or connection is misconfigured; retrying will not help."""

    pass


class ProviderNotFoundError(ConfigurationError):
    """A schedule references a provider connection that does not exist."""

    def __init__(self, kind: str, provider_id: Any, schedule_name: str):
        super().__init__(
            message=f"{kind.capitalize()} provider not found for schedule {schedule_name}",
            service="JobExecutor",
            operation="resolve_providers",
            context={"kind": kind, "provider_id": str(provider_id)},
        )
        self.kind = kind
        self.provider_id = provider_id


class UnsupportedProviderError(ConfigurationError):
    """The provider type has no implementation for the requested capability."""

    def __init__(self, provider: str, capability: str):
        super().__init__(
            message=f"Unsupported provider for {capability}: {provider}",
            operation=capability,
            context={"provider": provider},
        )
        self.provider = provider
        self.capability = capability


class DatabaseError(ServiceException):
    """Exception raised for database-related errors in services."""

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=f"Database error: {message}",
            service=service,
            operation=operation,
            context=context,
            original_error=original_error,
        )

"""Core infrastructure module.

This module exports core utilities used across features.
Never imports from features - only from external libraries.
"""

from .config import Settings, get_settings, get_global_settings
from .database import DatabaseManager, db_manager
from .exceptions import (
    ServiceException,
    ConfigurationError,
    ProviderNotFoundError,
    UnsupportedProviderError,
    DatabaseError,
)
from .enums import GitProviderType, MessagingProviderType, ExecutionStatus
from .models import Base

__all__ = [
    "Settings",
    "get_settings",
    "get_global_settings",
    "DatabaseManager",
    "db_manager",
    "ServiceException",
    "ConfigurationError",
    "ProviderNotFoundError",
    "UnsupportedProviderError",
    "DatabaseError",
    "GitProviderType",
    "MessagingProviderType",
    "ExecutionStatus",
    "Base",
]

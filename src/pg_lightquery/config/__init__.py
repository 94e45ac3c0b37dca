"""Configuration management for pg-lightquery.

This module provides centralized configuration loaded from environment variables
with validation using Pydantic BaseSettings.

Usage:
    >>> from pg_lightquery.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.audit_column)
"""

from pg_lightquery.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]

"""
Shared utilities for MoneyMap services.

This package contains code shared across the ledger API and the dashboard:
- settings: Environment-driven configuration for the ledger API
- observability: Telemetry, logging, and privacy utilities
"""

from .settings import (
    DEFAULT_CORS_ORIGINS,
    RateLimitSettings,
    ServiceSettings,
    SettingsError,
    load_service_settings,
)

__all__ = [
    "DEFAULT_CORS_ORIGINS",
    "RateLimitSettings",
    "ServiceSettings",
    "SettingsError",
    "load_service_settings",
]

"""
Environment-driven settings shared by the MoneyMap services.

The ledger API reads its database location, CORS allow-list, and rate limiting
knobs from environment variables. Parsing and validating them in one place keeps
the service wiring free of ad-hoc `os.getenv` calls and turns malformed values
into a single, descriptive startup error.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple

DB_URL_ENV_VAR = "MONEYMAP_DB_URL"
DEFAULT_DB_FILENAME = "moneymap.db"
DEFAULT_DB_PATH = Path(__file__).resolve().parents[1] / "ledger-api" / "data" / DEFAULT_DB_FILENAME

CORS_ENV_KEYS = ("MONEYMAP_CORS_ORIGINS", "CORS_ALLOWED_ORIGINS")
DEFAULT_CORS_ORIGINS: Tuple[str, ...] = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8501",
    "http://127.0.0.1:8501",
)

RATE_LIMIT_MAX_ENV_VAR = "MONEYMAP_RATE_LIMIT_MAX"
RATE_LIMIT_WINDOW_ENV_VAR = "MONEYMAP_RATE_LIMIT_WINDOW_SECONDS"
RATE_LIMIT_BURST_ENV_VAR = "MONEYMAP_RATE_LIMIT_BURST"
DEFAULT_RATE_LIMIT_MAX = 1000
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 15 * 60
DEFAULT_RATE_LIMIT_BURST = 0


class SettingsError(RuntimeError):
    """Raised when service configuration cannot be constructed."""


@dataclass(frozen=True, slots=True)
class RateLimitSettings:
    max_requests: int
    window_seconds: int
    burst: int


@dataclass(frozen=True, slots=True)
class ServiceSettings:
    database_url: str
    cors_origins: Tuple[str, ...]
    rate_limit: RateLimitSettings


def load_service_settings() -> ServiceSettings:
    """
    Construct ServiceSettings from the current environment.

    Unset or empty variables fall back to local-development defaults (a SQLite
    file next to the ledger API, localhost origins, 1000 requests per 15 minutes).

    Raises:
        SettingsError: when a numeric variable cannot be parsed or is negative.
    """

    return ServiceSettings(
        database_url=get_database_url(),
        cors_origins=resolve_cors_origins(),
        rate_limit=load_rate_limit_settings(),
    )


def get_database_url() -> str:
    """Return the configured database URL (defaults to a SQLite file)."""
    env_url = os.getenv(DB_URL_ENV_VAR)
    if env_url and env_url.strip():
        return env_url.strip()
    return f"sqlite:///{DEFAULT_DB_PATH}"


def resolve_cors_origins(env_keys: Sequence[str] = CORS_ENV_KEYS) -> Tuple[str, ...]:
    """
    Determine which origins are allowed to call the API.

    The first env var in `env_keys` holding a non-empty comma-separated list wins.
    """

    for key in env_keys:
        raw_value = os.getenv(key)
        if not raw_value:
            continue
        origins = [origin.strip() for origin in raw_value.split(",") if origin.strip()]
        if origins:
            # Starlette expects ["*"] instead of mixing '*' with explicit origins.
            if "*" in origins:
                return ("*",)
            return tuple(origins)
    return DEFAULT_CORS_ORIGINS


def load_rate_limit_settings() -> RateLimitSettings:
    return RateLimitSettings(
        max_requests=_parse_int(os.getenv(RATE_LIMIT_MAX_ENV_VAR), DEFAULT_RATE_LIMIT_MAX, RATE_LIMIT_MAX_ENV_VAR),
        window_seconds=_parse_int(
            os.getenv(RATE_LIMIT_WINDOW_ENV_VAR),
            DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
            RATE_LIMIT_WINDOW_ENV_VAR,
        ),
        burst=_parse_int(os.getenv(RATE_LIMIT_BURST_ENV_VAR), DEFAULT_RATE_LIMIT_BURST, RATE_LIMIT_BURST_ENV_VAR),
    )


def _parse_int(raw_value: Optional[str], default: int, env_key: str) -> int:
    if raw_value is None or raw_value.strip() == "":
        return default

    try:
        value = int(raw_value)
    except ValueError as exc:
        raise SettingsError(f"{env_key} must be an integer (received '{raw_value}')") from exc

    if value < 0:
        raise SettingsError(f"{env_key} must not be negative (received '{raw_value}')")
    return value

#!/usr/bin/env python3
"""
Diagnostic script for the MoneyMap environment variables.

Prints every variable the ledger API and the Streamlit UI read, redacting
database credentials, then loads the ledger settings the same way the API does
at startup so malformed values are reported before deployment.
"""

import os
import sys
from pathlib import Path
from typing import Any

SERVICES_ROOT = Path(__file__).resolve().parents[1] / "services"
if str(SERVICES_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICES_ROOT))

from shared.settings import SettingsError, load_service_settings  # noqa: E402
from sqlalchemy.engine import make_url  # noqa: E402
from sqlalchemy.exc import ArgumentError  # noqa: E402

API_VARS = {
    "MONEYMAP_DB_URL": "sqlite:///services/ledger-api/data/moneymap.db",
    "MONEYMAP_CORS_ORIGINS": "localhost:3000 and localhost:8501",
    "CORS_ALLOWED_ORIGINS": "(fallback for MONEYMAP_CORS_ORIGINS)",
    "MONEYMAP_RATE_LIMIT_MAX": "1000",
    "MONEYMAP_RATE_LIMIT_WINDOW_SECONDS": "900",
    "MONEYMAP_RATE_LIMIT_BURST": "0",
    "ENABLE_TELEMETRY": "false",
    "OTEL_EXPORTER_OTLP_ENDPOINT": "http://localhost:4318/v1/traces",
    "OTEL_SERVICE_NAME": "ledger-api",
    "OTEL_CONSOLE_EXPORT": "false",
    "REQUEST_ID_PREFIX": "(none)",
    "LOG_LEVEL": "INFO",
}

UI_VARS = {
    "MONEYMAP_API_BASE_URL": "http://localhost:8000",
    "API_BASE_URL": "(fallback for MONEYMAP_API_BASE_URL)",
    "MONEYMAP_API_BASE_CANDIDATES": "(built-in localhost/docker candidates)",
}


def check_env_var(key: str) -> dict[str, Any]:
    """Report whether an environment variable is set, redacting credentials."""
    value = os.getenv(key)
    is_set = value is not None and value.strip() != ""
    result = {"key": key, "is_set": is_set, "value": value if is_set else None}

    if is_set and key == "MONEYMAP_DB_URL":
        try:
            result["value"] = make_url(value.strip()).render_as_string(hide_password=True)
        except ArgumentError:
            result["value"] = "***UNPARSEABLE URL***"
    return result


def _print_section(title: str, variables: dict[str, str]) -> None:
    print(title)
    print("-" * 70)
    for key, default in variables.items():
        result = check_env_var(key)
        if result["is_set"]:
            print(f"✓ {key:40} = {result['value']}")
        else:
            print(f"○ {key:40} = NOT SET (default: {default})")
    print()


def main() -> int:
    print("=" * 70)
    print("MoneyMap Environment Diagnostic")
    print("=" * 70)
    print()

    _print_section("LEDGER API:", API_VARS)
    _print_section("STREAMLIT UI:", UI_VARS)

    try:
        settings = load_service_settings()
    except SettingsError as exc:
        print(f"❌ INVALID CONFIGURATION: {exc}")
        return 1

    try:
        make_url(settings.database_url)
    except ArgumentError as exc:
        print(f"❌ INVALID CONFIGURATION: MONEYMAP_DB_URL is not a database URL ({exc})")
        return 1

    limits = settings.rate_limit
    print("=" * 70)
    print("✓ Ledger settings load cleanly.")
    print(f"  CORS origins : {', '.join(settings.cors_origins)}")
    print(
        f"  Rate limit   : {limits.max_requests} requests (+{limits.burst} burst) "
        f"per {limits.window_seconds} s per client"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

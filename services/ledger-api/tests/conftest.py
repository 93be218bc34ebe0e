"""Pytest configuration for ledger-api tests.

Ensures the service's own src directory takes precedence in sys.path
to avoid module name collisions with other services.
"""

import sys
from pathlib import Path

import pytest

# Ensure this service's src is first in sys.path
SERVICE_SRC = Path(__file__).resolve().parents[1] / "src"
if str(SERVICE_SRC) not in sys.path:
    sys.path.insert(0, str(SERVICE_SRC))

SERVICES_ROOT = Path(__file__).resolve().parents[2]
if str(SERVICES_ROOT) not in sys.path:
    sys.path.insert(1, str(SERVICES_ROOT))


@pytest.fixture
def database_url(tmp_path: Path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'moneymap-test.db'}"
    monkeypatch.setenv("MONEYMAP_DB_URL", url)
    return url


@pytest.fixture
def client(database_url: str):
    from fastapi.testclient import TestClient
    from main import app
    from middleware.rate_limit import SimpleRateLimiter

    original_limiter = app.state.rate_limiter
    app.state.rate_limiter = SimpleRateLimiter(max_requests=10_000, window_seconds=60)
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.state.rate_limiter = original_limiter

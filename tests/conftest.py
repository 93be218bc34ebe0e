"""Pytest configuration for root-level integration tests.

Adds the ledger API src directory and the services root to sys.path so the
analytics, persistence, and shared packages import as they do at runtime.
"""

import sys
from pathlib import Path

SERVICES_ROOT = Path(__file__).resolve().parents[1] / "services"

SERVICE_PATHS = [
    SERVICES_ROOT,
    SERVICES_ROOT / "ledger-api" / "src",
]

for path in SERVICE_PATHS:
    path_str = str(path)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

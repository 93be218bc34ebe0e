import sys
from pathlib import Path

import pytest

SCRIPTS_DIR = Path(__file__).resolve().parents[1] / "scripts"
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))

import check_env  # noqa: E402


@pytest.fixture
def clean_env(monkeypatch, tmp_path: Path):
    for key in [*check_env.API_VARS, *check_env.UI_VARS]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("MONEYMAP_DB_URL", f"sqlite:///{tmp_path / 'check.db'}")


def test_every_observability_variable_is_reported(clean_env, monkeypatch, capsys) -> None:
    monkeypatch.setenv("OTEL_SERVICE_NAME", "ledger-staging")

    assert check_env.main() == 0

    output = capsys.readouterr().out
    assert "OTEL_SERVICE_NAME" in output
    assert "ledger-staging" in output
    assert "REQUEST_ID_PREFIX" in output
    assert "NOT SET (default: (none))" in output


def test_database_password_is_redacted(monkeypatch) -> None:
    monkeypatch.setenv("MONEYMAP_DB_URL", "postgresql://ledger:s3cret@db:5432/moneymap")

    result = check_env.check_env_var("MONEYMAP_DB_URL")

    assert result["is_set"] is True
    assert "s3cret" not in result["value"]


def test_invalid_settings_fail_the_check(clean_env, monkeypatch, capsys) -> None:
    monkeypatch.setenv("MONEYMAP_RATE_LIMIT_MAX", "lots")

    assert check_env.main() == 1
    assert "INVALID CONFIGURATION" in capsys.readouterr().out

"""Unit tests for ledger configuration loading."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.services.config import LedgerConfig, get_ledger_config, reset_ledger_config


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run without a .env file and without ledger variables set."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "VARIANCE_TOLERANCE",
        "DUE_SOON_DAYS",
        "HIGH_PRIORITY_DAYS",
        "MAX_WRITE_RETRIES",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLedgerConfig:
    """Tests for LedgerConfig."""

    def test_defaults(self, clean_env):
        config = LedgerConfig()

        assert config.variance_tolerance == Decimal("0.5")
        assert config.due_soon_days == 3
        assert config.high_priority_days == 2
        assert config.max_write_retries == 2

    def test_reads_environment(self, clean_env):
        clean_env.setenv("VARIANCE_TOLERANCE", "0.01")
        clean_env.setenv("DUE_SOON_DAYS", "7")
        clean_env.setenv("HIGH_PRIORITY_DAYS", "1")
        clean_env.setenv("MAX_WRITE_RETRIES", "5")

        config = LedgerConfig()

        assert config.variance_tolerance == Decimal("0.01")
        assert config.due_soon_days == 7
        assert config.high_priority_days == 1
        assert config.max_write_retries == 5

    def test_reads_env_file(self, clean_env, tmp_path):
        (tmp_path / ".env").write_text("DUE_SOON_DAYS=10\n")

        assert LedgerConfig().due_soon_days == 10

    def test_high_priority_window_cannot_exceed_due_window(self, clean_env):
        clean_env.setenv("DUE_SOON_DAYS", "2")
        clean_env.setenv("HIGH_PRIORITY_DAYS", "3")

        with pytest.raises(ValidationError, match="cannot exceed"):
            LedgerConfig()

    def test_negative_tolerance_rejected(self, clean_env):
        clean_env.setenv("VARIANCE_TOLERANCE", "-1")

        with pytest.raises(ValidationError):
            LedgerConfig()


class TestGetLedgerConfig:
    """Lazy process-wide config."""

    def test_cached_until_reset(self, clean_env):
        first = get_ledger_config()
        assert get_ledger_config() is first

        clean_env.setenv("MAX_WRITE_RETRIES", "9")
        assert get_ledger_config().max_write_retries == first.max_write_retries

        reset_ledger_config()
        assert get_ledger_config().max_write_retries == 9

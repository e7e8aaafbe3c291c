"""Installment ledger configuration from environment variables and .env file."""

import logging
from decimal import Decimal
from typing import Optional

from pydantic import ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class LedgerConfig(BaseSettings):
    """Ledger configuration loaded from environment variables.

    Pydantic automatically loads values from:
    1. OS environment variables (at instantiation time)
    2. .env file in the working directory

    Field names map to upper-case variables: DATABASE_URL, LOG_FILE,
    VARIANCE_TOLERANCE, DUE_SOON_DAYS, HIGH_PRIORITY_DAYS, MAX_WRITE_RETRIES.
    """

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = "sqlite:///./installments.db"
    log_file: str = "logs/ledger.log"

    # Currency minor-unit tolerance below which a payment counts as exact
    variance_tolerance: Decimal = Field(Decimal("0.5"), ge=0)

    # Alert windows for the due-date scanner, in days
    due_soon_days: int = Field(3, ge=0)
    high_priority_days: int = Field(2, ge=0)

    # Retries of the whole payment unit after an optimistic-lock conflict
    max_write_retries: int = Field(2, ge=0)

    @model_validator(mode="after")
    def _check_windows(self) -> "LedgerConfig":
        if self.high_priority_days > self.due_soon_days:
            raise ValueError(
                f"HIGH_PRIORITY_DAYS ({self.high_priority_days}) cannot exceed "
                f"DUE_SOON_DAYS ({self.due_soon_days})"
            )
        return self


# Lazy loader so tests can set environment variables before first access
_ledger_config_instance: Optional[LedgerConfig] = None


def get_ledger_config() -> LedgerConfig:
    """Get or create the ledger config instance."""
    global _ledger_config_instance
    if _ledger_config_instance is None:
        _ledger_config_instance = LedgerConfig()
        logger.debug("Loaded ledger configuration: %s", _ledger_config_instance)
    return _ledger_config_instance


def reset_ledger_config() -> None:
    """Drop the cached config so the next access re-reads the environment."""
    global _ledger_config_instance
    _ledger_config_instance = None


__all__ = ["LedgerConfig", "get_ledger_config", "reset_ledger_config"]

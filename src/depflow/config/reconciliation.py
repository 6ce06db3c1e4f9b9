"""Tunables for the pull request reconciliation loop."""

from __future__ import annotations

from datetime import timedelta
from typing import Final

from depflow.domain.reconciliation.contracts import ReconciliationSettings

from .env import optional_float_env
from .errors import ConfigurationError

DEFAULT_REMINDER_MINUTES: Final[float] = 5.0
REMINDER_MINUTES_ENV: Final[str] = "DEPFLOW_REMINDER_MINUTES"


def get_reconciliation_settings() -> ReconciliationSettings:
    minutes = optional_float_env(REMINDER_MINUTES_ENV, DEFAULT_REMINDER_MINUTES)
    if minutes <= 0:
        raise ConfigurationError(
            f"{REMINDER_MINUTES_ENV} must be positive", variables=[REMINDER_MINUTES_ENV]
        )
    return ReconciliationSettings(reminder_interval=timedelta(minutes=minutes))

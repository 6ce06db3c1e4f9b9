"""Process runtime: per-unit serialized host and the reminder loop."""

from __future__ import annotations

from .host import ReconcilerFactory, ReconciliationHost
from .worker import ReminderWorker

__all__ = ["ReconcilerFactory", "ReconciliationHost", "ReminderWorker"]

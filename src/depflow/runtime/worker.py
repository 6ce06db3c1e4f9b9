"""Reminder delivery loop."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from depflow.domain.errors import SubscriptionNotFoundError

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable

    from depflow.domain.ports.actors import DueReminder, ReminderTable

    from .host import ReconciliationHost

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReminderWorker:
    """Fires due reminders into the host, waking every ``poll_interval`` seconds.

    A failed delivery is logged and the reminder still advances by its period, so
    the next period retries it.
    """

    def __init__(
        self,
        *,
        host: ReconciliationHost,
        reminders: ReminderTable,
        poll_interval: float = 30.0,
        max_workers: int = 4,
        batch_size: int = 100,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._host = host
        self._reminders = reminders
        self.poll_interval = poll_interval
        self._max_workers = max_workers
        self._batch_size = batch_size
        self._clock = clock

    def run_once(self) -> int:
        """Deliver every currently due reminder and return how many succeeded."""

        due = self._reminders.due(self._clock(), limit=self._batch_size)
        if not due:
            return 0
        log.info("Delivering %d due reminders", len(due))
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            delivered = list(pool.map(self._deliver, due))
        return sum(delivered)

    def run_forever(self, stop: threading.Event) -> None:
        while not stop.is_set():
            try:
                self.run_once()
            except Exception:
                log.exception("Reminder cycle failed")
            stop.wait(timeout=self.poll_interval)
        log.info("Reminder worker stopped")

    def _deliver(self, reminder: DueReminder) -> bool:
        success = False
        try:
            self._host.receive_reminder(reminder.actor_id, reminder.name)
            success = True
        except SubscriptionNotFoundError as exc:
            log.warning("Reminder %s of %s: %s", reminder.name, reminder.actor_id, exc)
        except Exception:
            log.exception("Reminder %s of %s failed", reminder.name, reminder.actor_id)
        self._reminders.reschedule(reminder, self._clock())
        return success

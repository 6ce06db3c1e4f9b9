from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import timedelta

from depflow.domain.errors import SubscriptionNotFoundError
from depflow.domain.ports.actors import DueReminder
from depflow.runtime import ReminderWorker
from tests.helpers.remote import FakeReminderTable, utc

NOW = utc(2024, 1, 1, 12)
PERIOD = timedelta(minutes=5)


@dataclass
class FakeHost:
    failures: dict[str, Exception] = field(default_factory=dict)
    received: list[tuple[str, str]] = field(default_factory=list)

    def receive_reminder(self, unit_id: str, name: str) -> None:
        self.received.append((unit_id, name))
        failure = self.failures.get(unit_id)
        if failure is not None:
            raise failure


def _reminder(actor_id: str, due_at: object = NOW, name: str = "pullRequestCheck") -> DueReminder:
    return DueReminder(actor_id=actor_id, name=name, due_at=due_at, period=PERIOD)  # type: ignore[arg-type]


def _worker(host: FakeHost, table: FakeReminderTable, **kwargs: object) -> ReminderWorker:
    return ReminderWorker(host=host, reminders=table, clock=lambda: NOW, **kwargs)  # type: ignore[arg-type]


def test_run_once_delivers_due_reminders_and_reschedules() -> None:
    host = FakeHost()
    due = _reminder("batched|sdk|main")
    later = _reminder("batched|sdk|release", due_at=NOW + timedelta(minutes=1))
    table = FakeReminderTable(reminders=[due, later])

    delivered = _worker(host, table).run_once()

    assert delivered == 1
    assert host.received == [("batched|sdk|main", "pullRequestCheck")]
    assert table.rescheduled == [(due, NOW)]
    assert table.reminders[0].due_at == NOW + PERIOD


def test_failed_deliveries_are_still_rescheduled() -> None:
    missing = f"nonbatched|{uuid.uuid4()}"
    host = FakeHost(
        failures={
            missing: SubscriptionNotFoundError(uuid.uuid4()),
            "batched|sdk|main": RuntimeError("boom"),
        }
    )
    table = FakeReminderTable(
        reminders=[
            _reminder(missing),
            _reminder("batched|sdk|main"),
            _reminder("batched|sdk|release", name="pullRequestUpdate"),
        ]
    )

    delivered = _worker(host, table, max_workers=1).run_once()

    assert delivered == 1
    assert len(host.received) == 3
    assert len(table.rescheduled) == 3
    assert table.due(NOW) == []


def test_run_once_without_due_reminders() -> None:
    host = FakeHost()
    table = FakeReminderTable()

    assert _worker(host, table).run_once() == 0
    assert host.received == []


def test_batch_size_limits_one_cycle() -> None:
    host = FakeHost()
    table = FakeReminderTable(reminders=[_reminder(f"batched|sdk|b{index}") for index in range(3)])

    assert _worker(host, table, batch_size=2, max_workers=1).run_once() == 2
    assert len(table.due(NOW)) == 1


def test_run_forever_stops_when_event_is_set() -> None:
    host = FakeHost()
    stop = threading.Event()

    class StoppingTable(FakeReminderTable):
        def reschedule(self, reminder: DueReminder, now: object) -> None:
            super().reschedule(reminder, now)  # type: ignore[arg-type]
            stop.set()

    stopping = StoppingTable(reminders=[_reminder("batched|sdk|main")])
    worker = _worker(host, stopping, poll_interval=0.01)

    thread = threading.Thread(target=worker.run_forever, args=(stop,))
    thread.start()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert host.received == [("batched|sdk|main", "pullRequestCheck")]

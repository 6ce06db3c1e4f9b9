"""Durable actor runtime ports: keyed state and reminders."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime, timedelta


@runtime_checkable
class ActorStateStore(Protocol):
    """Per-unit key/value state.

    ``set_state`` and ``remove_state`` are staged; ``save_state`` makes them durable.
    """

    def try_get_state[T](self, key: str, value_type: type[T]) -> T | None: ...

    def set_state(self, key: str, value: object) -> None: ...

    def remove_state(self, key: str) -> None: ...

    def save_state(self) -> None: ...


@runtime_checkable
class ReminderScheduler(Protocol):
    """Per-unit recurring wake-ups that survive process restarts."""

    def try_register_reminder(self, name: str, due_time: timedelta, period: timedelta) -> None: ...

    def try_unregister_reminder(self, name: str) -> None: ...


@dataclass(frozen=True, slots=True)
class DueReminder:
    actor_id: str
    name: str
    due_at: datetime
    period: timedelta


@runtime_checkable
class ReminderTable(Protocol):
    """All registered reminders across actors, as seen by the process firing them."""

    def due(self, now: datetime, *, limit: int = 100) -> list[DueReminder]: ...

    def reschedule(self, reminder: DueReminder, now: datetime) -> None:
        """Advance ``reminder`` by its period unless it changed since it was read."""
        ...

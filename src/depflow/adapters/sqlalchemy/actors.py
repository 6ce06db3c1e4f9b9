"""Durable actor state and reminders stored in the metadata database.

Each reconciliation unit is an actor identified by its unit id. State values are
JSON documents validated back into the requested type on read.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from pydantic import TypeAdapter
from sqlalchemy import delete, insert, select, update

from depflow.adapters.sqlalchemy.mappings import actor_reminder_table, actor_state_table
from depflow.adapters.sqlalchemy.unit_of_work import session_factory
from depflow.domain.ports.actors import DueReminder

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

log = getLogger(__name__)

_ANY_ADAPTER: Final[TypeAdapter[Any]] = TypeAdapter(Any)
_REMOVED: Final = object()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyActorStateStore:
    """Keyed state of one actor; writes are staged until ``save_state``."""

    def __init__(
        self,
        actor_id: str,
        *,
        sessions: sessionmaker[Session] | None = None,
    ) -> None:
        self.actor_id = actor_id
        self._sessions = sessions or session_factory()
        self._staged: dict[str, object] = {}

    def try_get_state[T](self, key: str, value_type: type[T]) -> T | None:
        adapter: TypeAdapter[T] = TypeAdapter(value_type)
        if key in self._staged:
            staged = self._staged[key]
            if staged is _REMOVED:
                return None
            return adapter.validate_json(_ANY_ADAPTER.dump_json(staged))

        with self._sessions() as session:
            raw = session.execute(
                select(actor_state_table.c.value)
                .where(actor_state_table.c.actor_id == self.actor_id)
                .where(actor_state_table.c.key == key)
            ).scalar_one_or_none()
        if raw is None:
            return None
        return adapter.validate_json(raw)

    def set_state(self, key: str, value: object) -> None:
        self._staged[key] = value

    def remove_state(self, key: str) -> None:
        self._staged[key] = _REMOVED

    def save_state(self) -> None:
        if not self._staged:
            return
        now = _utcnow()
        with self._sessions() as session, session.begin():
            for key, value in self._staged.items():
                session.execute(
                    delete(actor_state_table)
                    .where(actor_state_table.c.actor_id == self.actor_id)
                    .where(actor_state_table.c.key == key)
                )
                if value is _REMOVED:
                    continue
                session.execute(
                    insert(actor_state_table).values(
                        actor_id=self.actor_id,
                        key=key,
                        value=_ANY_ADAPTER.dump_json(value).decode("utf-8"),
                        updated_at=now,
                    )
                )
        log.debug("Saved %d state changes of %s", len(self._staged), self.actor_id)
        self._staged.clear()


class SqlAlchemyReminderScheduler:
    """Recurring reminders of one actor. Registering an existing name replaces it."""

    def __init__(
        self,
        actor_id: str,
        *,
        sessions: sessionmaker[Session] | None = None,
    ) -> None:
        self.actor_id = actor_id
        self._sessions = sessions or session_factory()

    def try_register_reminder(self, name: str, due_time: timedelta, period: timedelta) -> None:
        with self._sessions() as session, session.begin():
            session.execute(
                delete(actor_reminder_table)
                .where(actor_reminder_table.c.actor_id == self.actor_id)
                .where(actor_reminder_table.c.name == name)
            )
            session.execute(
                insert(actor_reminder_table).values(
                    actor_id=self.actor_id,
                    name=name,
                    due_at=_utcnow() + due_time,
                    period_seconds=period.total_seconds(),
                )
            )
        log.debug("Registered reminder %s of %s", name, self.actor_id)

    def try_unregister_reminder(self, name: str) -> None:
        with self._sessions() as session, session.begin():
            session.execute(
                delete(actor_reminder_table)
                .where(actor_reminder_table.c.actor_id == self.actor_id)
                .where(actor_reminder_table.c.name == name)
            )
        log.debug("Unregistered reminder %s of %s", name, self.actor_id)


class SqlAlchemyReminderTable:
    """Process-wide view of all reminders, polled by the reminder worker."""

    def __init__(self, *, sessions: sessionmaker[Session] | None = None) -> None:
        self._sessions = sessions or session_factory()

    def due(self, now: datetime, *, limit: int = 100) -> list[DueReminder]:
        with self._sessions() as session:
            rows = session.execute(
                select(actor_reminder_table)
                .where(actor_reminder_table.c.due_at <= now)
                .order_by(actor_reminder_table.c.due_at)
                .limit(limit)
            ).all()
        return [
            DueReminder(
                actor_id=row.actor_id,
                name=row.name,
                due_at=row.due_at,
                period=timedelta(seconds=row.period_seconds),
            )
            for row in rows
        ]

    def reschedule(self, reminder: DueReminder, now: datetime) -> None:
        """Advance ``reminder`` by one period unless it was re-registered or removed meanwhile."""

        with self._sessions() as session, session.begin():
            session.execute(
                update(actor_reminder_table)
                .where(actor_reminder_table.c.actor_id == reminder.actor_id)
                .where(actor_reminder_table.c.name == reminder.name)
                .where(actor_reminder_table.c.due_at == reminder.due_at)
                .values(due_at=now + reminder.period)
            )

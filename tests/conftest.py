from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from depflow.adapters.sqlalchemy import start_mappers
from depflow.adapters.sqlalchemy.migrations import upgrade_head
from depflow.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup
from depflow.domain.coherency import ManifestUpdateCalculator
from depflow.domain.merge_policies import MergePolicyEvaluator, default_merge_policies
from depflow.domain.reconciliation import (
    NonBatchedUnit,
    PullRequestReconciler,
    ReconciliationSettings,
    ReconciliationUnit,
)
from tests.helpers.registry import FakeUnitOfWork, InMemoryRegistry
from tests.helpers.remote import FakeReminders, FakeRemote, InMemoryStateStore

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from depflow.domain.model import Subscription

AUTOMATION_LOGIN = "dotnet-maestro[bot]"


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def registry() -> InMemoryRegistry:
    return InMemoryRegistry()


@pytest.fixture
def unit_of_work_factory(registry: InMemoryRegistry) -> Callable[[], FakeUnitOfWork]:
    def factory() -> FakeUnitOfWork:
        return FakeUnitOfWork(registry)

    return factory


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def state() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def reminders() -> FakeReminders:
    return FakeReminders()


@pytest.fixture
def make_reconciler(
    remote: FakeRemote,
    state: InMemoryStateStore,
    reminders: FakeReminders,
    unit_of_work_factory: Callable[[], FakeUnitOfWork],
) -> Callable[..., PullRequestReconciler]:
    def factory(
        unit: ReconciliationUnit | None = None,
        *,
        subscription: Subscription | None = None,
        **overrides: object,
    ) -> PullRequestReconciler:
        if unit is None:
            assert subscription is not None
            unit = NonBatchedUnit(subscription_id=subscription.id)
        arguments: dict[str, object] = {
            "unit": unit,
            "state": state,
            "reminders": reminders,
            "remote_factory": remote,
            "unit_of_work_factory": unit_of_work_factory,
            "evaluator": MergePolicyEvaluator(default_merge_policies(AUTOMATION_LOGIN)),
            "calculator": ManifestUpdateCalculator(remote),
            "settings": ReconciliationSettings(),
        }
        arguments.update(overrides)
        return PullRequestReconciler(**arguments)  # type: ignore[arg-type]

    return factory

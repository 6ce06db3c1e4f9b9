"""SQLAlchemy adapter package for depflow."""

from __future__ import annotations

from .actors import (
    SqlAlchemyActorStateStore,
    SqlAlchemyReminderScheduler,
    SqlAlchemyReminderTable,
)
from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyBuildRepository,
    SqlAlchemyChannelRepository,
    SqlAlchemyRepositoryBranchRepository,
    SqlAlchemyRepositoryBranchUpdateRepository,
    SqlAlchemySubscriptionRepository,
)
from .unit_of_work import SqlAlchemyUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyActorStateStore",
    "SqlAlchemyBuildRepository",
    "SqlAlchemyChannelRepository",
    "SqlAlchemyRepositoryBranchRepository",
    "SqlAlchemyReminderScheduler",
    "SqlAlchemyReminderTable",
    "SqlAlchemyRepositoryBranchUpdateRepository",
    "SqlAlchemySubscriptionRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]

"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from depflow.adapters.sqlalchemy.mappings import (
    channel_table,
    default_channel_table,
    subscription_table,
)
from depflow.domain.model import (
    Build,
    Channel,
    DefaultChannel,
    RepositoryBranch,
    RepositoryBranchUpdate,
    Subscription,
)

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence

    from sqlalchemy.orm import Session


class SqlAlchemySubscriptionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Subscription) -> None:
        self.session.add(entity)

    def get(self, subscription_id: uuid.UUID) -> Subscription | None:
        return self.session.get(Subscription, subscription_id)

    def query(self, *, enabled_only: bool = False) -> Sequence[Subscription]:
        stmt = select(Subscription).order_by(
            subscription_table.c.target_repository,
            subscription_table.c.target_branch,
        )
        if enabled_only:
            stmt = stmt.where(subscription_table.c.enabled.is_(True))
        return self.session.execute(stmt).unique().scalars().all()


class SqlAlchemyBuildRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Build) -> None:
        self.session.add(entity)

    def get(self, build_id: int) -> Build | None:
        return self.session.get(Build, build_id)


class SqlAlchemyChannelRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Channel) -> None:
        self.session.add(entity)

    def get_by_name(self, name: str) -> Channel | None:
        stmt = select(Channel).where(func.lower(channel_table.c.name) == name.lower())
        return self.session.execute(stmt).scalar_one_or_none()

    def list_default_channels(self) -> Sequence[DefaultChannel]:
        stmt = select(DefaultChannel).order_by(
            default_channel_table.c.repository,
            default_channel_table.c.branch,
        )
        return self.session.execute(stmt).unique().scalars().all()

    def add_default_channel(self, default_channel: DefaultChannel) -> None:
        self.session.add(default_channel)


class SqlAlchemyRepositoryBranchRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: RepositoryBranch) -> None:
        self.session.add(entity)

    def get(self, repository: str, branch: str) -> RepositoryBranch | None:
        return self.session.get(RepositoryBranch, (repository, branch))


class SqlAlchemyRepositoryBranchUpdateRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: RepositoryBranchUpdate) -> None:
        self.session.add(entity)

    def get(self, repository: str, branch: str) -> RepositoryBranchUpdate | None:
        return self.session.get(RepositoryBranchUpdate, (repository, branch))

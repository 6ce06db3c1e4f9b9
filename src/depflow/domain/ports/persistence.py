"""Ports for the build-asset registry metadata store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from depflow.domain.model import (
    Build,
    Channel,
    DefaultChannel,
    RepositoryBranch,
    RepositoryBranchUpdate,
    Subscription,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class SubscriptionRepository(Repository[Subscription], Protocol):
    def get(self, subscription_id: UUID) -> Subscription | None: ...

    def query(self, *, enabled_only: bool = False) -> Sequence[Subscription]: ...


@runtime_checkable
class BuildRepository(Repository[Build], Protocol):
    def get(self, build_id: int) -> Build | None: ...


@runtime_checkable
class ChannelRepository(Repository[Channel], Protocol):
    def get_by_name(self, name: str) -> Channel | None: ...

    def list_default_channels(self) -> Sequence[DefaultChannel]: ...

    def add_default_channel(self, default_channel: DefaultChannel) -> None: ...


@runtime_checkable
class RepositoryBranchRepository(Repository[RepositoryBranch], Protocol):
    def get(self, repository: str, branch: str) -> RepositoryBranch | None: ...


@runtime_checkable
class RepositoryBranchUpdateRepository(Repository[RepositoryBranchUpdate], Protocol):
    def get(self, repository: str, branch: str) -> RepositoryBranchUpdate | None: ...

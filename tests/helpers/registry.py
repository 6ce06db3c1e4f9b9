"""In-memory build-asset registry and builders for reconciliation tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from depflow.domain.model import (
    Asset,
    Build,
    Channel,
    DefaultChannel,
    MergePolicyDefinition,
    RepositoryBranch,
    RepositoryBranchUpdate,
    Subscription,
    SubscriptionPolicy,
    UpdateFrequency,
)
from depflow.domain.ports.unit_of_work import MetadataRepositories

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence
    from types import TracebackType

RUNTIME = "https://github.com/dotnet/runtime"
ARCADE = "https://github.com/dotnet/arcade"
SDK = "https://github.com/dotnet/sdk"


@dataclass
class InMemoryRegistry:
    subscriptions: dict[uuid.UUID, Subscription] = field(default_factory=dict)
    builds: dict[int, Build] = field(default_factory=dict)
    channels: list[Channel] = field(default_factory=list)
    default_channels: list[DefaultChannel] = field(default_factory=list)
    repository_branches: dict[tuple[str, str], RepositoryBranch] = field(default_factory=dict)
    updates: dict[tuple[str, str], RepositoryBranchUpdate] = field(default_factory=dict)
    commits: int = 0


class FakeSubscriptionRepository:
    def __init__(self, registry: InMemoryRegistry) -> None:
        self._registry = registry

    def add(self, entity: Subscription) -> None:
        self._registry.subscriptions[entity.id] = entity

    def get(self, subscription_id: uuid.UUID) -> Subscription | None:
        return self._registry.subscriptions.get(subscription_id)

    def query(self, *, enabled_only: bool = False) -> Sequence[Subscription]:
        return [
            subscription
            for subscription in self._registry.subscriptions.values()
            if subscription.enabled or not enabled_only
        ]


class FakeBuildRepository:
    def __init__(self, registry: InMemoryRegistry) -> None:
        self._registry = registry

    def add(self, entity: Build) -> None:
        if entity.id is None:
            entity.id = len(self._registry.builds) + 1
        self._registry.builds[entity.id] = entity

    def get(self, build_id: int) -> Build | None:
        return self._registry.builds.get(build_id)


class FakeChannelRepository:
    def __init__(self, registry: InMemoryRegistry) -> None:
        self._registry = registry

    def add(self, entity: Channel) -> None:
        self._registry.channels.append(entity)

    def get_by_name(self, name: str) -> Channel | None:
        for channel in self._registry.channels:
            if channel.name.casefold() == name.casefold():
                return channel
        return None

    def list_default_channels(self) -> Sequence[DefaultChannel]:
        return list(self._registry.default_channels)

    def add_default_channel(self, default_channel: DefaultChannel) -> None:
        self._registry.default_channels.append(default_channel)


class FakeRepositoryBranchRepository:
    def __init__(self, registry: InMemoryRegistry) -> None:
        self._registry = registry

    def add(self, entity: RepositoryBranch) -> None:
        self._registry.repository_branches[(entity.repository, entity.branch)] = entity

    def get(self, repository: str, branch: str) -> RepositoryBranch | None:
        return self._registry.repository_branches.get((repository, branch))


class FakeRepositoryBranchUpdateRepository:
    def __init__(self, registry: InMemoryRegistry) -> None:
        self._registry = registry

    def add(self, entity: RepositoryBranchUpdate) -> None:
        self._registry.updates[(entity.repository, entity.branch)] = entity

    def get(self, repository: str, branch: str) -> RepositoryBranchUpdate | None:
        return self._registry.updates.get((repository, branch))


class FakeUnitOfWork:
    def __init__(self, registry: InMemoryRegistry) -> None:
        self._registry = registry
        self._repositories = MetadataRepositories(
            subscriptions=FakeSubscriptionRepository(registry),
            builds=FakeBuildRepository(registry),
            channels=FakeChannelRepository(registry),
            repository_branches=FakeRepositoryBranchRepository(registry),
            repository_branch_updates=FakeRepositoryBranchUpdateRepository(registry),
        )

    @property
    def repositories(self) -> MetadataRepositories:
        return self._repositories

    def __enter__(self) -> FakeUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        return False

    def commit(self) -> None:
        self._registry.commits += 1

    def rollback(self) -> None:
        return None


def make_subscription(
    *,
    source_repository: str = RUNTIME,
    target_repository: str = SDK,
    target_branch: str = "main",
    channel: str = ".NET 9",
    batchable: bool = False,
    merge_policies: Sequence[MergePolicyDefinition] = (),
    update_frequency: UpdateFrequency = UpdateFrequency.EVERY_BUILD,
    enabled: bool = True,
) -> Subscription:
    return Subscription(
        channel=Channel(name=channel),
        source_repository=source_repository,
        target_repository=target_repository,
        target_branch=target_branch,
        policy=SubscriptionPolicy(
            batchable=batchable,
            update_frequency=update_frequency,
            merge_policies=tuple(merge_policies),
        ),
        enabled=enabled,
    )


def make_build(
    build_id: int,
    *,
    repository: str = RUNTIME,
    commit: str = "abc123",
    build_number: str = "20240101.1",
    assets: Sequence[Asset] = (),
) -> Build:
    return Build(
        id=build_id,
        repository=repository,
        branch="main",
        commit=commit,
        build_number=build_number,
        assets=tuple(assets),
    )

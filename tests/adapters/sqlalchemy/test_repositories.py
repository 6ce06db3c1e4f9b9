from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from depflow.domain.model import (
    Asset,
    Channel,
    DefaultChannel,
    MergePolicyDefinition,
    RepositoryBranch,
    RepositoryBranchUpdate,
    UpdateFrequency,
)
from tests.helpers.registry import SDK, make_build, make_subscription

if TYPE_CHECKING:
    from collections.abc import Callable

    from depflow.adapters.sqlalchemy import SqlAlchemyUnitOfWork


def test_subscription_round_trip_keeps_policy(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    subscription = make_subscription(
        batchable=True,
        update_frequency=UpdateFrequency.EVERY_WEEK,
        merge_policies=[
            MergePolicyDefinition(
                name="AllChecksSuccessful", properties={"ignoreChecks": ["license/cla"]}
            )
        ],
    )

    with sqlite_unit_of_work() as uow:
        uow.repositories.subscriptions.add(subscription)
        uow.commit()

    with sqlite_unit_of_work() as uow:
        loaded = uow.repositories.subscriptions.get(subscription.id)
        assert loaded is not None
        assert loaded.channel.name == ".NET 9"
        assert loaded.policy.batchable
        assert loaded.policy.update_frequency is UpdateFrequency.EVERY_WEEK
        (policy,) = loaded.policy.merge_policies
        assert policy.name == "AllChecksSuccessful"
        assert policy.properties == {"ignoreChecks": ["license/cla"]}


def test_subscription_query_filters_disabled(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    channel = Channel(name=".NET 9")
    enabled = make_subscription()
    disabled = make_subscription(enabled=False, target_branch="release/9.0")
    enabled.channel = channel
    disabled.channel = channel

    with sqlite_unit_of_work() as uow:
        uow.repositories.subscriptions.add(enabled)
        uow.repositories.subscriptions.add(disabled)
        uow.commit()

    with sqlite_unit_of_work() as uow:
        everything = uow.repositories.subscriptions.query()
        only_enabled = uow.repositories.subscriptions.query(enabled_only=True)

    assert {subscription.id for subscription in everything} == {enabled.id, disabled.id}
    assert [subscription.id for subscription in only_enabled] == [enabled.id]


def test_build_round_trip_keeps_assets(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    build = make_build(42, assets=[Asset("A", "1.0.0"), Asset("B", "2.0.0")])

    with sqlite_unit_of_work() as uow:
        uow.repositories.builds.add(build)
        uow.commit()

    with sqlite_unit_of_work() as uow:
        loaded = uow.repositories.builds.get(42)
        assert uow.repositories.builds.get(43) is None

    assert loaded is not None
    assert loaded.assets == (Asset("A", "1.0.0"), Asset("B", "2.0.0"))
    assert loaded.commit == "abc123"
    assert loaded.date_produced.tzinfo is not None


def test_channels_are_found_case_insensitively(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    channel = Channel(name=".NET 9", classification="release")

    with sqlite_unit_of_work() as uow:
        uow.repositories.channels.add(channel)
        uow.repositories.channels.add_default_channel(
            DefaultChannel(repository=SDK, branch="main", channel=channel)
        )
        uow.commit()

    with sqlite_unit_of_work() as uow:
        found = uow.repositories.channels.get_by_name(".net 9")
        defaults = uow.repositories.channels.list_default_channels()

    assert found is not None
    assert found.classification == "release"
    (default,) = defaults
    assert (default.repository, default.branch, default.channel.name) == (SDK, "main", ".NET 9")


def test_repository_branch_and_update_records(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    timestamp = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    with sqlite_unit_of_work() as uow:
        uow.repositories.repository_branches.add(
            RepositoryBranch(
                repository=SDK,
                branch="main",
                merge_policies=(MergePolicyDefinition(name="Standard"),),
            )
        )
        uow.repositories.repository_branch_updates.add(
            RepositoryBranchUpdate(
                repository=SDK,
                branch="main",
                action="Creating new pull request",
                method="synchronize_in_progress_pull_request",
                arguments="[]",
                success=False,
                error_message="boom",
                timestamp=timestamp,
            )
        )
        uow.commit()

    with sqlite_unit_of_work() as uow:
        branch = uow.repositories.repository_branches.get(SDK, "main")
        update = uow.repositories.repository_branch_updates.get(SDK, "main")
        assert uow.repositories.repository_branches.get(SDK, "release/9.0") is None

    assert branch is not None
    assert [policy.name for policy in branch.merge_policies] == ["Standard"]
    assert update is not None
    assert not update.success
    assert update.error_message == "boom"
    assert update.timestamp == timestamp

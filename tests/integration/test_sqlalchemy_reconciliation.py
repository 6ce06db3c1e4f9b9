from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from depflow.adapters.sqlalchemy import SqlAlchemyActorStateStore, SqlAlchemyReminderTable
from depflow.app import build_host, build_reconciler_factory, process_reminders, update_assets
from depflow.domain.merge_policies import STANDARD
from depflow.domain.model import (
    Asset,
    CheckState,
    DependencyDetail,
    InProgressPullRequest,
    MergePolicyDefinition,
    PullRequestCheck,
)
from depflow.domain.reconciliation import (
    PULL_REQUEST_STATE_KEY,
    ReconcileOutcome,
    ReconciliationSettings,
)
from tests.helpers.registry import RUNTIME, SDK, make_build, make_subscription

if TYPE_CHECKING:
    from collections.abc import Callable

    from depflow.adapters.sqlalchemy import SqlAlchemyUnitOfWork
    from tests.helpers.remote import FakeRemote

PACKAGE = "Microsoft.NETCore.App.Ref"
FAR_FUTURE = datetime(2100, 1, 1, tzinfo=UTC)


@pytest.mark.integration
def test_pull_request_is_created_then_merged_by_reminder(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    remote: FakeRemote,
) -> None:
    subscription = make_subscription(merge_policies=[MergePolicyDefinition(name=STANDARD)])
    with sqlite_unit_of_work() as uow:
        uow.repositories.subscriptions.add(subscription)
        uow.repositories.builds.add(
            make_build(1, commit="sha1", assets=[Asset(PACKAGE, "9.0.1")])
        )
        uow.commit()
    remote.set_manifest(
        SDK, "main", [DependencyDetail(name=PACKAGE, version="9.0.0", repo_uri=RUNTIME)]
    )

    host = build_host(
        unit_of_work_factory=sqlite_unit_of_work,
        reconciler_factory=build_reconciler_factory(
            remote_factory=remote,
            unit_of_work_factory=sqlite_unit_of_work,
            automation_login="dotnet-maestro[bot]",
            # Reminders fire on the next poll.
            settings=ReconciliationSettings(reminder_interval=timedelta(0)),
        ),
    )

    created = update_assets(
        subscription_id=subscription.id,
        build_id=1,
        host=host,
        unit_of_work_factory=sqlite_unit_of_work,
    )

    assert created.outcome is ReconcileOutcome.CREATED
    url = created.pull_request_url
    assert url is not None
    unit_id = host.unit_for(subscription.id).unit_id
    tracked = SqlAlchemyActorStateStore(unit_id).try_get_state(
        PULL_REQUEST_STATE_KEY, InProgressPullRequest
    )
    assert tracked is not None
    assert tracked.url == url
    assert [entry.build_id for entry in tracked.contained_subscriptions] == [1]

    reminders = SqlAlchemyReminderTable()
    assert [reminder.actor_id for reminder in reminders.due(FAR_FUTURE)] == [unit_id]

    remote.checks[url] = [PullRequestCheck("build", CheckState.SUCCESS)]
    delivered = process_reminders(once=True, host=host, reminders=reminders)

    assert delivered == 1
    assert remote.merged == [url]
    assert SqlAlchemyActorStateStore(unit_id).try_get_state(
        PULL_REQUEST_STATE_KEY, InProgressPullRequest
    ) is None
    assert reminders.due(FAR_FUTURE) == []
    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.subscriptions.get(subscription.id)
        update = uow.repositories.repository_branch_updates.get(SDK, "main")
        assert stored is not None
        assert stored.last_applied_build_id == 1
        assert update is not None
        assert update.success

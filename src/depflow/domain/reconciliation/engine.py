"""Pull request reconciliation state machine.

One ``PullRequestReconciler`` drives one reconciliation unit. It owns the unit's
single in-progress pull request, decides whether incoming updates create a pull
request, fold into the open one, or wait in the durable queue, and reacts to the
recurring reminders that poll the pull request and drain the queue.

Callers must not run two operations on the same unit concurrently; the runtime
host serializes them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from depflow.domain.errors import SubscriptionNotFoundError, UnknownReminderError
from depflow.domain.merge_policies import describe_merge_policy_results
from depflow.domain.model import (
    DependencySnapshot,
    InProgressPullRequest,
    MergeOutcome,
    PullRequest,
    PullRequestStatus,
    SubscriptionPullRequestUpdate,
    UpdateAssetsParameters,
)

from .contracts import (
    PENDING_UPDATES_STATE_KEY,
    PULL_REQUEST_CHECK_REMINDER,
    PULL_REQUEST_STATE_KEY,
    PULL_REQUEST_UPDATE_REMINDER,
    AutoMergeStatus,
    ReconcileOutcome,
    ReconcileResult,
    ReconciliationSettings,
    Synchronization,
)
from .describe import (
    DESCRIPTION_HEADER,
    coherency_commit_message,
    coherency_description,
    commit_message,
    compute_title,
    update_description,
)
from .resolve import RequiredUpdate, RequiredUpdates, resolve_required_updates
from .target import merge_policy_definitions, resolve_target

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from depflow.domain.merge_policies import MergePolicyEvaluator
    from depflow.domain.model import Asset, MergePolicyDefinition, Subscription
    from depflow.domain.ports.actors import ActorStateStore, ReminderScheduler
    from depflow.domain.ports.source_control import RemoteFactory, SourceControlRemote
    from depflow.domain.ports.unit_of_work import MetadataRepositories, MetadataUnitOfWork
    from depflow.domain.ports.updates import UpdateCalculator

    from .contracts import ReconciliationUnit, TargetBranch
    from .tracking import ActionTracker

log = getLogger(__name__)


@dataclass(slots=True)
class _UpdateSources:
    """Subscriptions and build numbers behind a batch of work items."""

    items: list[UpdateAssetsParameters]
    subscriptions: dict[uuid.UUID, Subscription]
    build_numbers: dict[int, str]

    def source_repository_of(self, item: UpdateAssetsParameters) -> str:
        if item.subscription_id is None:
            return ""
        return self.subscriptions[item.subscription_id].source_repository


@dataclass(slots=True, kw_only=True)
class PullRequestReconciler:
    unit: ReconciliationUnit
    state: ActorStateStore
    reminders: ReminderScheduler
    remote_factory: RemoteFactory
    unit_of_work_factory: Callable[[], MetadataUnitOfWork]
    evaluator: MergePolicyEvaluator
    calculator: UpdateCalculator
    settings: ReconciliationSettings = field(default_factory=ReconciliationSettings)
    tracker: ActionTracker | None = None

    # Exposed operations ---------------------------------------------------------

    def synchronize_in_progress_pull_request(self) -> Synchronization:
        """Bring the persisted pull request in line with the provider's view of it."""

        target = self._resolve_target()
        return self._tracked(
            target,
            action="Synchronizing pull request",
            method="synchronize_in_progress_pull_request",
            arguments={},
            operation=lambda: self._synchronize(target),
        )

    def update_assets(
        self,
        subscription_id: uuid.UUID,
        build_id: int,
        source_sha: str,
        assets: Sequence[Asset],
    ) -> ReconcileResult:
        """Apply the assets of a finished build to the unit's target branch."""

        target = self._resolve_target()
        item = UpdateAssetsParameters(
            subscription_id=subscription_id,
            build_id=build_id,
            source_sha=source_sha,
            assets=list(assets),
        )
        return self._tracked(
            target,
            action=f"Updating assets for subscription {subscription_id}, build {build_id}",
            method="update_assets",
            arguments={
                "subscription_id": subscription_id,
                "build_id": build_id,
                "source_sha": source_sha,
                "assets": [f"{asset.name}@{asset.version}" for asset in assets],
            },
            operation=lambda: self._update_assets(target, item),
        )

    def process_pending_updates(self) -> ReconcileResult:
        """Apply the queued work items once the pull request accepts changes again."""

        target = self._resolve_target()
        return self._tracked(
            target,
            action="Processing pending updates",
            method="process_pending_updates",
            arguments={},
            operation=lambda: self._process_pending_updates(target),
        )

    def receive_reminder(self, name: str) -> None:
        if name == PULL_REQUEST_CHECK_REMINDER:
            self.synchronize_in_progress_pull_request()
        elif name == PULL_REQUEST_UPDATE_REMINDER:
            self.process_pending_updates()
        else:
            raise UnknownReminderError(f"Reminder '{name}' is not handled by {self.unit.unit_id}")

    # State machine --------------------------------------------------------------

    def _synchronize(self, target: TargetBranch) -> Synchronization:
        pull_request = self.state.try_get_state(PULL_REQUEST_STATE_KEY, InProgressPullRequest)
        if pull_request is not None:
            if not pull_request.url:
                log.warning("Dropping pull request state without url for %s", self.unit.unit_id)
                self.state.remove_state(PULL_REQUEST_STATE_KEY)
                self.state.save_state()
            else:
                can_update = self._synchronize_pull_request(target, pull_request)
                if can_update is not None:
                    return Synchronization(pull_request=pull_request, can_update=can_update)

        self.reminders.try_unregister_reminder(PULL_REQUEST_CHECK_REMINDER)
        return Synchronization(pull_request=None, can_update=False)

    def _synchronize_pull_request(
        self,
        target: TargetBranch,
        pull_request: InProgressPullRequest,
    ) -> bool | None:
        """Return whether the open pull request may be updated, ``None`` once it is gone."""

        remote = self.remote_factory(target.repository)
        status = remote.get_pull_request_status(pull_request.url)
        log.info("Pull request %s is %s", pull_request.url, status)

        if status is PullRequestStatus.OPEN:
            merge_status = self._check_merge_policies(pull_request, remote)
            if merge_status is AutoMergeStatus.WAITING:
                return False
            if merge_status is AutoMergeStatus.NOT_MERGED:
                return True
            status = PullRequestStatus.MERGED

        if status is PullRequestStatus.MERGED:
            self._mark_caught_up(pull_request.contained_subscriptions)

        self.state.remove_state(PULL_REQUEST_STATE_KEY)
        self.state.save_state()
        return None

    def _check_merge_policies(
        self,
        pull_request: InProgressPullRequest,
        remote: SourceControlRemote,
    ) -> AutoMergeStatus:
        definitions = self._merge_policy_definitions()
        result = self.evaluator.evaluate(pull_request.url, remote, definitions)

        if not result.results:
            log.debug("No merge policies configured for %s", self.unit.unit_id)
            return AutoMergeStatus.NOT_MERGED

        if result.succeeded:
            outcome = remote.merge_pull_request(pull_request.url)
            merged = outcome is MergeOutcome.MERGED
            if not merged:
                log.info("Pull request %s was not merged: %s", pull_request.url, outcome)
            remote.create_or_update_status_comment(
                pull_request.url,
                describe_merge_policy_results(result, merged=merged),
            )
            return AutoMergeStatus.MERGED if merged else AutoMergeStatus.NOT_MERGED

        remote.create_or_update_status_comment(
            pull_request.url,
            describe_merge_policy_results(result, merged=False),
        )
        return AutoMergeStatus.WAITING if result.pending else AutoMergeStatus.NOT_MERGED

    def _update_assets(self, target: TargetBranch, item: UpdateAssetsParameters) -> ReconcileResult:
        synchronization = self._synchronize(target)
        pull_request = synchronization.pull_request

        if pull_request is not None and not synchronization.can_update:
            queued = self._pending_updates()
            queued.append(item)
            self.state.set_state(PENDING_UPDATES_STATE_KEY, queued)
            self.state.save_state()
            self._register(PULL_REQUEST_UPDATE_REMINDER)
            return ReconcileResult(
                ReconcileOutcome.QUEUED,
                f"Current pull request '{pull_request.url}' cannot be updated, update queued.",
                pull_request.url,
            )

        return self._apply([item], target, pull_request)

    def _process_pending_updates(self, target: TargetBranch) -> ReconcileResult:
        queued = self._pending_updates()
        if not queued:
            self.reminders.try_unregister_reminder(PULL_REQUEST_UPDATE_REMINDER)
            return ReconcileResult(ReconcileOutcome.NOTHING_TO_DO, "No pending updates.")

        synchronization = self._synchronize(target)
        pull_request = synchronization.pull_request
        if pull_request is not None and not synchronization.can_update:
            return ReconcileResult(
                ReconcileOutcome.BLOCKED,
                f"Pull request '{pull_request.url}' cannot be updated yet, "
                f"{len(queued)} pending updates remain queued.",
                pull_request.url,
            )

        result = self._apply(queued, target, pull_request)
        self.state.remove_state(PENDING_UPDATES_STATE_KEY)
        self.state.save_state()
        self.reminders.try_unregister_reminder(PULL_REQUEST_UPDATE_REMINDER)
        return ReconcileResult(
            result.outcome,
            f"Pending updates applied. {result.message}",
            result.pull_request_url,
        )

    def _apply(
        self,
        items: list[UpdateAssetsParameters],
        target: TargetBranch,
        pull_request: InProgressPullRequest | None,
    ) -> ReconcileResult:
        if pull_request is not None:
            if self._update_pull_request(target, pull_request, items):
                return ReconcileResult(
                    ReconcileOutcome.UPDATED,
                    f"Pull request '{pull_request.url}' updated.",
                    pull_request.url,
                )
            return ReconcileResult(
                ReconcileOutcome.NO_CHANGES,
                f"Pull request '{pull_request.url}' already contains the required updates.",
                pull_request.url,
            )

        url = self._create_pull_request(target, items)
        if url is None:
            return ReconcileResult(
                ReconcileOutcome.NO_CHANGES,
                "Updates require no changes, no pull request created.",
            )
        return ReconcileResult(ReconcileOutcome.CREATED, f"Pull request '{url}' created.", url)

    # Pull request materialization -------------------------------------------------

    def _create_pull_request(
        self,
        target: TargetBranch,
        items: list[UpdateAssetsParameters],
    ) -> str | None:
        remote = self.remote_factory(target.repository)
        sources = self._load_sources(items)
        required = self._required_updates(remote, target, sources)
        if not required:
            log.info("No updates required for %s@%s", target.repository, target.branch)
            return None

        head_branch = f"{self.settings.branch_prefix}-{target.branch}-{uuid.uuid4()}"
        remote.create_new_branch(target.repository, target.branch, head_branch)
        url: str | None = None
        try:
            description = DESCRIPTION_HEADER + self._commit_updates(
                remote, target, head_branch, required.updates, sources
            )
            contained = _contained_subscriptions(required.updates)
            url = remote.create_pull_request(
                target.repository,
                PullRequest(
                    title=self._title(target, contained),
                    description=description,
                    base_branch=target.branch,
                    head_branch=head_branch,
                ),
            )
            if url:
                self.state.set_state(
                    PULL_REQUEST_STATE_KEY,
                    InProgressPullRequest(url=url, contained_subscriptions=contained),
                )
                self.state.save_state()
        except Exception:
            self._delete_branch(remote, target.repository, head_branch)
            raise

        if not url:
            log.warning("Provider returned no pull request for %s", head_branch)
            self._delete_branch(remote, target.repository, head_branch)
            return None

        self._register(PULL_REQUEST_CHECK_REMINDER)
        log.info("Created pull request %s for %s", url, self.unit.unit_id)
        return url

    def _update_pull_request(
        self,
        target: TargetBranch,
        pull_request: InProgressPullRequest,
        items: list[UpdateAssetsParameters],
    ) -> bool:
        remote = self.remote_factory(target.repository)
        sources = self._load_sources(items)
        required = self._required_updates(remote, target, sources)
        if not required:
            log.info("Pull request %s needs no further updates", pull_request.url)
            return False

        remote_pull_request = remote.get_pull_request(pull_request.url)
        description = self._commit_updates(
            remote, target, remote_pull_request.head_branch, required.updates, sources
        )

        incoming = _contained_subscriptions(required.updates)
        incoming_ids = {entry.subscription_id for entry in incoming}
        pull_request.contained_subscriptions = [
            entry
            for entry in pull_request.contained_subscriptions
            if entry.subscription_id not in incoming_ids
        ] + incoming

        remote_pull_request.description += description
        remote_pull_request.title = self._title(target, pull_request.contained_subscriptions)
        remote.update_pull_request(pull_request.url, remote_pull_request)

        self.state.set_state(PULL_REQUEST_STATE_KEY, pull_request)
        self.state.save_state()
        self._register(PULL_REQUEST_CHECK_REMINDER)
        log.info("Updated pull request %s for %s", pull_request.url, self.unit.unit_id)
        return True

    def _required_updates(
        self,
        remote: SourceControlRemote,
        target: TargetBranch,
        sources: _UpdateSources,
    ) -> RequiredUpdates:
        existing = DependencySnapshot.of(remote.get_dependencies(target.repository, target.branch))
        required = resolve_required_updates(
            existing,
            sources.items,
            self.calculator,
            sources.source_repository_of,
        )
        self._mark_caught_up(
            SubscriptionPullRequestUpdate(subscription_id=item.subscription_id, build_id=item.build_id)
            for item in required.caught_up
            if item.subscription_id is not None and item.build_id is not None
        )
        return required

    def _commit_updates(
        self,
        remote: SourceControlRemote,
        target: TargetBranch,
        head_branch: str,
        updates: Sequence[RequiredUpdate],
        sources: _UpdateSources,
    ) -> str:
        """Commit each required update onto ``head_branch`` and return the description text."""

        description = ""
        for required in updates:
            dependencies = list(required.dependencies)
            item = required.item
            if item.is_coherency_update:
                message = coherency_commit_message(dependencies)
                description += coherency_description(dependencies)
            else:
                source_repository = sources.source_repository_of(item)
                build_number = sources.build_numbers.get(item.build_id or 0, str(item.build_id))
                message = commit_message(source_repository, build_number, dependencies)
                description += update_description(source_repository, dependencies)
            remote.commit_updates(target.repository, head_branch, dependencies, message)
        return description

    def _delete_branch(self, remote: SourceControlRemote, repository: str, branch: str) -> None:
        try:
            remote.delete_branch(repository, branch)
        except Exception:
            log.exception("Failed to delete branch %s of %s", branch, repository)

    # Metadata access --------------------------------------------------------------

    def _resolve_target(self) -> TargetBranch:
        return self._read_unit_metadata(resolve_target)

    def _merge_policy_definitions(self) -> tuple[MergePolicyDefinition, ...]:
        return self._read_unit_metadata(merge_policy_definitions)

    def _read_unit_metadata[T](
        self,
        read: Callable[[ReconciliationUnit, MetadataRepositories], T],
    ) -> T:
        """Run a registry lookup for this unit, clearing its tracking once the subscription is gone."""

        try:
            with self.unit_of_work_factory() as uow:
                return read(self.unit, uow.repositories)
        except SubscriptionNotFoundError:
            self._forget()
            raise

    def _load_sources(self, items: Iterable[UpdateAssetsParameters]) -> _UpdateSources:
        subscriptions: dict[uuid.UUID, Subscription] = {}
        build_numbers: dict[int, str] = {}
        kept: list[UpdateAssetsParameters] = []
        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            for item in items:
                if item.subscription_id is None:
                    continue
                subscription = repositories.subscriptions.get(item.subscription_id)
                if subscription is None:
                    log.warning(
                        "Dropping update for deleted subscription %s", item.subscription_id
                    )
                    continue
                subscriptions[subscription.id] = subscription
                if item.build_id is not None:
                    build = repositories.builds.get(item.build_id)
                    if build is not None:
                        build_numbers[item.build_id] = build.build_number
                kept.append(item)
        return _UpdateSources(items=kept, subscriptions=subscriptions, build_numbers=build_numbers)

    def _title(self, target: TargetBranch, contained: Sequence[SubscriptionPullRequestUpdate]) -> str:
        repositories: list[str] = []
        seen: set[uuid.UUID] = set()
        with self.unit_of_work_factory() as uow:
            for entry in contained:
                if entry.subscription_id in seen:
                    continue
                seen.add(entry.subscription_id)
                subscription = uow.repositories.subscriptions.get(entry.subscription_id)
                if subscription is not None:
                    repositories.append(subscription.source_repository)
        return compute_title(target.branch, repositories, budget=self.settings.title_budget)

    def _mark_caught_up(self, entries: Iterable[SubscriptionPullRequestUpdate]) -> None:
        pending = list(entries)
        if not pending:
            return
        with self.unit_of_work_factory() as uow:
            for entry in pending:
                subscription = uow.repositories.subscriptions.get(entry.subscription_id)
                if subscription is None:
                    log.warning("Cannot record build %s for deleted subscription %s",
                                entry.build_id, entry.subscription_id)
                    continue
                subscription.last_applied_build_id = entry.build_id
            uow.commit()

    # Durable state and reminders --------------------------------------------------

    def _pending_updates(self) -> list[UpdateAssetsParameters]:
        queued = self.state.try_get_state(
            PENDING_UPDATES_STATE_KEY,
            list[UpdateAssetsParameters],  # pyright: ignore[reportArgumentType]
        )
        return list(queued or [])

    def _register(self, reminder: str) -> None:
        interval = self.settings.reminder_interval
        self.reminders.try_register_reminder(reminder, interval, interval)

    def _forget(self) -> None:
        log.warning("Clearing pull request tracking of %s", self.unit.unit_id)
        self.state.remove_state(PULL_REQUEST_STATE_KEY)
        self.state.remove_state(PENDING_UPDATES_STATE_KEY)
        self.state.save_state()
        self.reminders.try_unregister_reminder(PULL_REQUEST_CHECK_REMINDER)
        self.reminders.try_unregister_reminder(PULL_REQUEST_UPDATE_REMINDER)

    def _tracked[T](
        self,
        target: TargetBranch,
        *,
        action: str,
        method: str,
        arguments: Mapping[str, object],
        operation: Callable[[], T],
    ) -> T:
        tracker = self.tracker
        if tracker is None:
            return operation()
        try:
            result = operation()
        except Exception as exc:
            self._record_action(
                target,
                lambda: tracker.track_failure(
                    target, action=action, method=method, arguments=arguments, error=str(exc)
                ),
            )
            raise
        self._record_action(
            target,
            lambda: tracker.track_success(
                target, action=action, method=method, arguments=arguments
            ),
        )
        return result

    def _record_action(self, target: TargetBranch, record: Callable[[], None]) -> None:
        try:
            record()
        except Exception:
            log.exception(
                "Failed to record action on %s@%s of %s",
                target.repository,
                target.branch,
                self.unit.unit_id,
            )


def _contained_subscriptions(updates: Iterable[RequiredUpdate]) -> list[SubscriptionPullRequestUpdate]:
    return [
        SubscriptionPullRequestUpdate(
            subscription_id=required.item.subscription_id,
            build_id=required.item.build_id,
        )
        for required in updates
        if not required.item.is_coherency_update
        and required.item.subscription_id is not None
        and required.item.build_id is not None
    ]

"""Target and merge-policy resolution per reconciliation unit kind."""

from __future__ import annotations

from typing import TYPE_CHECKING

from depflow.domain.errors import SubscriptionNotFoundError

from .contracts import BatchedUnit, NonBatchedUnit, ReconciliationUnit, TargetBranch

if TYPE_CHECKING:
    from depflow.domain.model import MergePolicyDefinition, Subscription
    from depflow.domain.ports.unit_of_work import MetadataRepositories


def _require_subscription(unit: NonBatchedUnit, repositories: MetadataRepositories) -> Subscription:
    subscription = repositories.subscriptions.get(unit.subscription_id)
    if subscription is None:
        raise SubscriptionNotFoundError(unit.subscription_id)
    return subscription


def resolve_target(unit: ReconciliationUnit, repositories: MetadataRepositories) -> TargetBranch:
    """Return the repository and branch the unit's pull requests target."""

    match unit:
        case NonBatchedUnit():
            subscription = _require_subscription(unit, repositories)
            return TargetBranch(subscription.target_repository, subscription.target_branch)
        case BatchedUnit(repository=repository, branch=branch):
            return TargetBranch(repository, branch)


def merge_policy_definitions(
    unit: ReconciliationUnit,
    repositories: MetadataRepositories,
) -> tuple[MergePolicyDefinition, ...]:
    """Non-batched units use the subscription's policies, batched units the branch's."""

    match unit:
        case NonBatchedUnit():
            return _require_subscription(unit, repositories).policy.merge_policies
        case BatchedUnit(repository=repository, branch=branch):
            repository_branch = repositories.repository_branches.get(repository, branch)
            if repository_branch is None:
                return ()
            return repository_branch.merge_policies

"""Shared contracts of the pull request reconciliation state machine.

Holds the reconciliation unit variant, durable state keys and reminder names,
and the result types returned to callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Final, Literal
from uuid import UUID

if TYPE_CHECKING:
    from depflow.domain.model import InProgressPullRequest, Subscription

PULL_REQUEST_STATE_KEY: Final[str] = "pullRequest"
PENDING_UPDATES_STATE_KEY: Final[str] = "pullRequestUpdate"

PULL_REQUEST_CHECK_REMINDER: Final[str] = "pullRequestCheck"
PULL_REQUEST_UPDATE_REMINDER: Final[str] = "pullRequestUpdate"

_UNIT_ID_SEPARATOR: Final[str] = "|"


class UnitKind(StrEnum):
    NON_BATCHED = "nonbatched"
    BATCHED = "batched"


@dataclass(frozen=True, slots=True, kw_only=True)
class NonBatchedUnit:
    """One reconciliation unit per subscription."""

    subscription_id: UUID
    kind: Literal[UnitKind.NON_BATCHED] = UnitKind.NON_BATCHED

    @property
    def unit_id(self) -> str:
        return f"{self.kind}{_UNIT_ID_SEPARATOR}{self.subscription_id}"


@dataclass(frozen=True, slots=True, kw_only=True)
class BatchedUnit:
    """One reconciliation unit shared by all batchable subscriptions of a target branch."""

    repository: str
    branch: str
    kind: Literal[UnitKind.BATCHED] = UnitKind.BATCHED

    @property
    def unit_id(self) -> str:
        return _UNIT_ID_SEPARATOR.join((self.kind, self.repository, self.branch))


type ReconciliationUnit = NonBatchedUnit | BatchedUnit


def unit_for_subscription(subscription: Subscription) -> ReconciliationUnit:
    if subscription.policy.batchable:
        return BatchedUnit(
            repository=subscription.target_repository,
            branch=subscription.target_branch,
        )
    return NonBatchedUnit(subscription_id=subscription.id)


def parse_unit_id(unit_id: str) -> ReconciliationUnit:
    kind, _, rest = unit_id.partition(_UNIT_ID_SEPARATOR)
    if kind == UnitKind.NON_BATCHED:
        return NonBatchedUnit(subscription_id=UUID(rest))
    if kind == UnitKind.BATCHED:
        repository, separator, branch = rest.partition(_UNIT_ID_SEPARATOR)
        if separator and repository and branch:
            return BatchedUnit(repository=repository, branch=branch)
    raise ValueError(f"Invalid reconciliation unit id: {unit_id!r}")


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconciliationSettings:
    reminder_interval: timedelta = timedelta(minutes=5)
    title_budget: int = 80
    branch_prefix: str = "darc"


@dataclass(frozen=True, slots=True)
class TargetBranch:
    repository: str
    branch: str


class ReconcileOutcome(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    QUEUED = "queued"
    NO_CHANGES = "no_changes"
    BLOCKED = "blocked"
    NOTHING_TO_DO = "nothing_to_do"


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    outcome: ReconcileOutcome
    message: str
    pull_request_url: str | None = None


@dataclass(frozen=True, slots=True)
class Synchronization:
    """Live view of the unit's pull request after synchronizing with the provider."""

    pull_request: InProgressPullRequest | None
    can_update: bool


class AutoMergeStatus(StrEnum):
    MERGED = "merged"
    WAITING = "waiting"
    NOT_MERGED = "not_merged"

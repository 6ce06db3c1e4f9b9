"""Pull request state tracked by reconciliation units."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from depflow.domain.model.dependencies import Asset
from depflow.domain.model.enums import CheckState, ReviewState


@dataclass(kw_only=True)
class SubscriptionPullRequestUpdate:
    subscription_id: uuid.UUID
    build_id: int


@dataclass(kw_only=True)
class InProgressPullRequest:
    """Durable record of the single pull request a reconciliation unit has open."""

    url: str
    contained_subscriptions: list[SubscriptionPullRequestUpdate] = field(default_factory=list)


@dataclass(kw_only=True)
class UpdateAssetsParameters:
    """Work item produced by a build completing for a subscription.

    Coherency work items are synthetic and carry no subscription or build.
    """

    subscription_id: uuid.UUID | None = None
    build_id: int | None = None
    source_sha: str = ""
    assets: list[Asset] = field(default_factory=list)
    is_coherency_update: bool = False


@dataclass(kw_only=True)
class PullRequest:
    title: str
    description: str
    base_branch: str
    head_branch: str


@dataclass(frozen=True, slots=True)
class PullRequestCheck:
    name: str
    state: CheckState


@dataclass(frozen=True, slots=True)
class PullRequestReview:
    author: str
    state: ReviewState


@dataclass(frozen=True, slots=True)
class PullRequestCommit:
    sha: str
    author: str

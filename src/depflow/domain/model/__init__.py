"""Public domain model surface."""

from __future__ import annotations

from depflow.domain.model.dependencies import (
    COMBINED_COHERENCY_MESSAGE,
    Asset,
    DependencyDetail,
    DependencySnapshot,
    DependencyUpdate,
)
from depflow.domain.model.enums import (
    CheckState,
    DependencyType,
    MergeOutcome,
    PullRequestStatus,
    ReviewState,
    UpdateFrequency,
)
from depflow.domain.model.pull_requests import (
    InProgressPullRequest,
    PullRequest,
    PullRequestCheck,
    PullRequestCommit,
    PullRequestReview,
    SubscriptionPullRequestUpdate,
    UpdateAssetsParameters,
)
from depflow.domain.model.subscriptions import (
    Build,
    Channel,
    DefaultChannel,
    MergePolicyDefinition,
    RepositoryBranch,
    RepositoryBranchUpdate,
    Subscription,
    SubscriptionPolicy,
)

__all__ = [  # noqa: RUF022
    # dependencies
    "COMBINED_COHERENCY_MESSAGE",
    "Asset",
    "DependencyDetail",
    "DependencySnapshot",
    "DependencyUpdate",
    # enums
    "CheckState",
    "DependencyType",
    "MergeOutcome",
    "PullRequestStatus",
    "ReviewState",
    "UpdateFrequency",
    # pull requests
    "InProgressPullRequest",
    "PullRequest",
    "PullRequestCheck",
    "PullRequestCommit",
    "PullRequestReview",
    "SubscriptionPullRequestUpdate",
    "UpdateAssetsParameters",
    # registry
    "Build",
    "Channel",
    "DefaultChannel",
    "MergePolicyDefinition",
    "RepositoryBranch",
    "RepositoryBranchUpdate",
    "Subscription",
    "SubscriptionPolicy",
]

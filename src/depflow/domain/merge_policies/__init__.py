"""Pluggable auto-merge policies for dependency update pull requests."""

from __future__ import annotations

from .definitions import (
    ALL_CHECKS_SUCCESSFUL,
    IGNORE_CHECKS,
    KNOWN_MERGE_POLICIES,
    NO_EXTRA_COMMITS,
    NO_REQUESTED_CHANGES,
    STANDARD,
    merge_policies_equal,
    merge_policy_lists_equal,
    validate_merge_policies,
)
from .evaluator import (
    AllChecksSuccessfulPolicy,
    MergePolicy,
    MergePolicyEvaluationResult,
    MergePolicyEvaluator,
    MergePolicyResult,
    NoExtraCommitsPolicy,
    NoRequestedChangesPolicy,
    PolicyDecision,
    PullRequestState,
    StandardPolicy,
    default_merge_policies,
)
from .status import describe_merge_policy_results, describe_policy_result

__all__ = [
    "ALL_CHECKS_SUCCESSFUL",
    "IGNORE_CHECKS",
    "KNOWN_MERGE_POLICIES",
    "NO_EXTRA_COMMITS",
    "NO_REQUESTED_CHANGES",
    "STANDARD",
    "AllChecksSuccessfulPolicy",
    "MergePolicy",
    "MergePolicyEvaluationResult",
    "MergePolicyEvaluator",
    "MergePolicyResult",
    "NoExtraCommitsPolicy",
    "NoRequestedChangesPolicy",
    "PolicyDecision",
    "PullRequestState",
    "StandardPolicy",
    "default_merge_policies",
    "describe_merge_policy_results",
    "describe_policy_result",
    "merge_policies_equal",
    "merge_policy_lists_equal",
    "validate_merge_policies",
]

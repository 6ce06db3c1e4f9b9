"""Rendering of merge policy results into the pull request status comment."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from .evaluator import MergePolicyEvaluationResult, MergePolicyResult

STATUS_HEADER: Final[str] = "## Auto-Merge Status"


def describe_policy_result(result: MergePolicyResult) -> str:
    if result.policy is None:
        return f"- ❌ **{result.message}**"
    if result.success is None:
        return f"- ❓ **{result.message}**"
    if result.success:
        line = f"- ✔️ **{result.policy.display_name}** Succeeded"
        if result.message:
            line += f" - {result.message}"
        return line
    return f"- ❌ **{result.policy.display_name}** {result.message}"


def describe_merge_policy_results(result: MergePolicyEvaluationResult, *, merged: bool) -> str:
    """Build the markdown status comment for one evaluation."""

    lines = "\n".join(
        describe_policy_result(item)
        for item in sorted(result.results, key=lambda item: item.policy_name)
    )
    if result.succeeded:
        verb = "has been merged" if merged else "will be merged"
        return (
            f"{STATUS_HEADER}\nThis pull request {verb} because the following merge "
            f"policies have succeeded.\n\n{lines}"
        )
    return (
        f"{STATUS_HEADER}\nThis pull request has not been merged because depflow is "
        f"waiting on the following merge policies.\n\n{lines}"
    )

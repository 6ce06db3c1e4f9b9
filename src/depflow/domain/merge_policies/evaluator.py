"""Evaluation of merge policies against the live state of a pull request."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from depflow.domain.model import CheckState, ReviewState

from .definitions import (
    ALL_CHECKS_SUCCESSFUL,
    IGNORE_CHECKS,
    NO_EXTRA_COMMITS,
    NO_REQUESTED_CHANGES,
    STANDARD,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from depflow.domain.model import (
        MergePolicyDefinition,
        PullRequestCheck,
        PullRequestCommit,
        PullRequestReview,
    )
    from depflow.domain.ports.source_control import SourceControlRemote

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PolicyDecision:
    """``success`` is ``None`` while the policy cannot decide yet."""

    success: bool | None
    message: str = ""

    @classmethod
    def succeed(cls, message: str = "") -> PolicyDecision:
        return cls(success=True, message=message)

    @classmethod
    def fail(cls, message: str) -> PolicyDecision:
        return cls(success=False, message=message)

    @classmethod
    def pending(cls, message: str) -> PolicyDecision:
        return cls(success=None, message=message)


@dataclass(slots=True)
class PullRequestState:
    """Lazily fetched view of a pull request shared by all policies in one evaluation."""

    url: str
    remote: SourceControlRemote
    _checks: Sequence[PullRequestCheck] | None = field(default=None, init=False)
    _reviews: Sequence[PullRequestReview] | None = field(default=None, init=False)
    _commits: Sequence[PullRequestCommit] | None = field(default=None, init=False)

    def checks(self) -> Sequence[PullRequestCheck]:
        if self._checks is None:
            self._checks = self.remote.get_pull_request_checks(self.url)
        return self._checks

    def reviews(self) -> Sequence[PullRequestReview]:
        if self._reviews is None:
            self._reviews = self.remote.get_pull_request_reviews(self.url)
        return self._reviews

    def commits(self) -> Sequence[PullRequestCommit]:
        if self._commits is None:
            self._commits = self.remote.get_pull_request_commits(self.url)
        return self._commits


@runtime_checkable
class MergePolicy(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def display_name(self) -> str: ...

    def evaluate(self, state: PullRequestState, properties: Mapping[str, Any]) -> PolicyDecision: ...


def _evaluate_checks(checks: Sequence[PullRequestCheck], ignored: set[str]) -> PolicyDecision:
    relevant = [check for check in checks if check.name.casefold() not in ignored]
    if not relevant:
        return PolicyDecision.pending("Waiting for checks.")

    failed = sorted(
        check.name for check in relevant if check.state in {CheckState.FAILURE, CheckState.ERROR}
    )
    if failed:
        return PolicyDecision.fail(f"Unsuccessful checks: {', '.join(failed)}")

    waiting = sorted(check.name for check in relevant if check.state is CheckState.PENDING)
    if waiting:
        return PolicyDecision.pending(f"Waiting on checks: {', '.join(waiting)}")

    return PolicyDecision.succeed()


def _evaluate_reviews(reviews: Sequence[PullRequestReview]) -> PolicyDecision:
    latest: dict[str, ReviewState] = {}
    for review in reviews:
        if review.state in {
            ReviewState.APPROVED,
            ReviewState.CHANGES_REQUESTED,
            ReviewState.DISMISSED,
        }:
            latest[review.author.casefold()] = review.state
    if ReviewState.CHANGES_REQUESTED in latest.values():
        return PolicyDecision.fail("There are reviews that have requested changes.")
    return PolicyDecision.succeed()


class AllChecksSuccessfulPolicy:
    name = ALL_CHECKS_SUCCESSFUL
    display_name = "All Checks Successful"

    def evaluate(self, state: PullRequestState, properties: Mapping[str, Any]) -> PolicyDecision:
        ignored = {str(check).casefold() for check in properties.get(IGNORE_CHECKS) or ()}
        return _evaluate_checks(state.checks(), ignored)


class NoRequestedChangesPolicy:
    name = NO_REQUESTED_CHANGES
    display_name = "No Requested Changes"

    def evaluate(self, state: PullRequestState, properties: Mapping[str, Any]) -> PolicyDecision:
        del properties
        return _evaluate_reviews(state.reviews())


class NoExtraCommitsPolicy:
    name = NO_EXTRA_COMMITS
    display_name = "No Extra Commits"

    def __init__(self, automation_login: str) -> None:
        self._automation_login = automation_login.casefold()

    def evaluate(self, state: PullRequestState, properties: Mapping[str, Any]) -> PolicyDecision:
        del properties
        authors = sorted(
            {
                commit.author
                for commit in state.commits()
                if commit.author.casefold() != self._automation_login
            }
        )
        if authors:
            return PolicyDecision.fail(f"Unexpected commits by: {', '.join(authors)}")
        return PolicyDecision.succeed()


class StandardPolicy:
    """All checks green and no outstanding change requests."""

    name = STANDARD
    display_name = "Standard"

    def evaluate(self, state: PullRequestState, properties: Mapping[str, Any]) -> PolicyDecision:
        del properties
        decisions = (_evaluate_checks(state.checks(), set()), _evaluate_reviews(state.reviews()))
        failures = [decision.message for decision in decisions if decision.success is False]
        if failures:
            return PolicyDecision.fail(" ".join(failures))
        waiting = [decision.message for decision in decisions if decision.success is None]
        if waiting:
            return PolicyDecision.pending(" ".join(waiting))
        return PolicyDecision.succeed()


def default_merge_policies(automation_login: str) -> tuple[MergePolicy, ...]:
    return (
        AllChecksSuccessfulPolicy(),
        StandardPolicy(),
        NoExtraCommitsPolicy(automation_login),
        NoRequestedChangesPolicy(),
    )


@dataclass(frozen=True, slots=True)
class MergePolicyResult:
    policy: MergePolicy | None
    success: bool | None
    message: str

    @property
    def policy_name(self) -> str:
        return self.policy.name if self.policy is not None else ""


@dataclass(frozen=True, slots=True)
class MergePolicyEvaluationResult:
    results: tuple[MergePolicyResult, ...] = ()

    @property
    def succeeded(self) -> bool:
        return bool(self.results) and all(result.success is True for result in self.results)

    @property
    def failed(self) -> bool:
        return any(result.success is False for result in self.results)

    @property
    def pending(self) -> bool:
        return not self.failed and any(result.success is None for result in self.results)


class MergePolicyEvaluator:
    """Runs configured policy definitions through the registered policy implementations."""

    def __init__(self, policies: Iterable[MergePolicy]) -> None:
        self._policies = {policy.name.casefold(): policy for policy in policies}

    def evaluate(
        self,
        pr_url: str,
        remote: SourceControlRemote,
        definitions: Sequence[MergePolicyDefinition],
    ) -> MergePolicyEvaluationResult:
        state = PullRequestState(url=pr_url, remote=remote)
        results: list[MergePolicyResult] = []
        for definition in definitions:
            policy = self._policies.get(definition.name.casefold())
            if policy is None:
                log.warning("Unknown merge policy %s configured for %s", definition.name, pr_url)
                results.append(
                    MergePolicyResult(
                        policy=None,
                        success=False,
                        message=f"Unknown merge policy '{definition.name}'",
                    )
                )
                continue
            decision = policy.evaluate(state, definition.properties)
            results.append(
                MergePolicyResult(policy=policy, success=decision.success, message=decision.message)
            )
        return MergePolicyEvaluationResult(tuple(results))

"""Source-control provider port."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from depflow.domain.model import (
        DependencyDetail,
        MergeOutcome,
        PullRequest,
        PullRequestCheck,
        PullRequestCommit,
        PullRequestReview,
        PullRequestStatus,
    )


@runtime_checkable
class SourceControlRemote(Protocol):
    """Operations the reconciliation engine performs against a hosted repository."""

    def get_pull_request_status(self, url: str) -> PullRequestStatus: ...

    def get_pull_request(self, url: str) -> PullRequest: ...

    def create_new_branch(self, repository: str, base_branch: str, new_branch: str) -> None: ...

    def delete_branch(self, repository: str, branch: str) -> None: ...

    def create_pull_request(self, repository: str, pull_request: PullRequest) -> str | None:
        """Open a pull request and return its URL."""
        ...

    def update_pull_request(self, url: str, pull_request: PullRequest) -> None: ...

    def merge_pull_request(self, url: str) -> MergeOutcome: ...

    def create_or_update_status_comment(self, url: str, message: str) -> None: ...

    def get_pull_request_checks(self, url: str) -> Sequence[PullRequestCheck]: ...

    def get_pull_request_reviews(self, url: str) -> Sequence[PullRequestReview]: ...

    def get_pull_request_commits(self, url: str) -> Sequence[PullRequestCommit]: ...

    def get_dependencies(self, repository: str, ref: str) -> list[DependencyDetail]:
        """Read the dependency manifest of ``repository`` at a branch or commit."""
        ...

    def commit_updates(
        self,
        repository: str,
        branch: str,
        dependencies: Sequence[DependencyDetail],
        message: str,
    ) -> None: ...


@runtime_checkable
class RemoteFactory(Protocol):
    def __call__(self, repository: str) -> SourceControlRemote: ...

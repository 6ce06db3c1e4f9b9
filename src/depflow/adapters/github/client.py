"""GitHub REST API implementation of the source-control remote."""

from __future__ import annotations

import asyncio
import base64
import re
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from depflow.adapters.http_resilience import ResilientClient
from depflow.domain.merge_policies.status import STATUS_HEADER
from depflow.domain.model import (
    CheckState,
    MergeOutcome,
    PullRequest,
    PullRequestCheck,
    PullRequestCommit,
    PullRequestReview,
    PullRequestStatus,
    ReviewState,
)

from .manifest import apply_updates, parse_manifest
from .schema import (
    GitHubCheckRun,
    GitHubCheckRuns,
    GitHubCombinedStatus,
    GitHubCommit,
    GitHubContent,
    GitHubIssueComment,
    GitHubPullRequest,
    GitHubRef,
    GitHubReview,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    import httpx

    from depflow.config.github import GitHubConfig
    from depflow.config.http_resilience import ResilienceConfig
    from depflow.domain.model import DependencyDetail

log = getLogger(__name__)

PAGE_SIZE: Final[int] = 100
MERGE_METHOD: Final[str] = "squash"

_REPOSITORY_PATTERN = re.compile(r"^https?://[^/]+/(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")
_PULL_REQUEST_PATTERNS = (
    re.compile(r"^https?://[^/]+/(?P<owner>[^/]+)/(?P<repo>[^/]+)/pull/(?P<number>\d+)/?$"),
    re.compile(r"^https?://[^/]+/repos/(?P<owner>[^/]+)/(?P<repo>[^/]+)/pulls/(?P<number>\d+)/?$"),
)
_COMMIT_SHA_PATTERN = re.compile(r"^[0-9a-fA-F]{40}$")

_SUCCESSFUL_CONCLUSIONS: Final[frozenset[str]] = frozenset({"success", "neutral", "skipped"})
_FAILED_CONCLUSIONS: Final[frozenset[str]] = frozenset(
    {"failure", "timed_out", "cancelled", "action_required", "startup_failure"}
)
_STATUS_STATES: Final[dict[str, CheckState]] = {
    "success": CheckState.SUCCESS,
    "pending": CheckState.PENDING,
    "failure": CheckState.FAILURE,
    "error": CheckState.ERROR,
}
_REVIEW_STATES: Final[dict[str, ReviewState]] = {
    "APPROVED": ReviewState.APPROVED,
    "CHANGES_REQUESTED": ReviewState.CHANGES_REQUESTED,
    "COMMENTED": ReviewState.COMMENTED,
    "DISMISSED": ReviewState.DISMISSED,
    "PENDING": ReviewState.PENDING,
}
_CONFLICT_STATUSES: Final[frozenset[int]] = frozenset({405, 409})


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub API returns an unexpected response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def repository_slug(repository: str) -> tuple[str, str]:
    """``https://github.com/dotnet/runtime`` becomes ``("dotnet", "runtime")``."""

    match = _REPOSITORY_PATTERN.match(repository)
    if match is None:
        raise GitHubAPIError(f"Not a GitHub repository url: {repository}")
    return match["owner"], match["repo"]


def pull_request_coordinates(url: str) -> tuple[str, str, int]:
    for pattern in _PULL_REQUEST_PATTERNS:
        match = pattern.match(url)
        if match is not None:
            return match["owner"], match["repo"], int(match["number"])
    raise GitHubAPIError(f"Not a GitHub pull request url: {url}")


def _check_run_state(run: GitHubCheckRun) -> CheckState:
    if run.status != "completed":
        return CheckState.PENDING
    if run.conclusion in _SUCCESSFUL_CONCLUSIONS:
        return CheckState.SUCCESS
    if run.conclusion in _FAILED_CONCLUSIONS:
        return CheckState.FAILURE
    return CheckState.ERROR


def _raise_for_status(response: httpx.Response, action: str) -> None:
    if response.is_error:
        raise GitHubAPIError(
            f"{action} failed with HTTP {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
        )


def _json_list(response: httpx.Response, action: str) -> list[Any]:
    payload = response.json()
    if not isinstance(payload, list):
        raise GitHubAPIError(f"Unexpected GitHub payload for {action}")
    return payload


class GitHubClient:
    """Source-control remote backed by the GitHub REST API.

    Every public method is synchronous and drives its own event loop, so the
    reconciliation engine can stay free of async code.
    """

    def __init__(
        self,
        *,
        config: GitHubConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or ResilientClient
        base_url = config.resilience.base_url
        if base_url is None:
            raise GitHubAPIError("Missing GitHub base_url in resilience configuration")
        self._base_url = base_url.rstrip("/")

    # Pull requests ----------------------------------------------------------------

    def get_pull_request_status(self, url: str) -> PullRequestStatus:
        payload = asyncio.run(self._get_pull_request_async(url))
        if payload.state == "open":
            return PullRequestStatus.OPEN
        if payload.merged:
            return PullRequestStatus.MERGED
        return PullRequestStatus.CLOSED

    def get_pull_request(self, url: str) -> PullRequest:
        payload = asyncio.run(self._get_pull_request_async(url))
        return PullRequest(
            title=payload.title,
            description=payload.body or "",
            base_branch=payload.base.ref,
            head_branch=payload.head.ref,
        )

    def create_pull_request(self, repository: str, pull_request: PullRequest) -> str | None:
        return asyncio.run(self._create_pull_request_async(repository, pull_request))

    def update_pull_request(self, url: str, pull_request: PullRequest) -> None:
        asyncio.run(self._update_pull_request_async(url, pull_request))

    def merge_pull_request(self, url: str) -> MergeOutcome:
        return asyncio.run(self._merge_pull_request_async(url))

    def create_or_update_status_comment(self, url: str, message: str) -> None:
        asyncio.run(self._status_comment_async(url, message))

    def get_pull_request_checks(self, url: str) -> Sequence[PullRequestCheck]:
        return asyncio.run(self._checks_async(url))

    def get_pull_request_reviews(self, url: str) -> Sequence[PullRequestReview]:
        return asyncio.run(self._reviews_async(url))

    def get_pull_request_commits(self, url: str) -> Sequence[PullRequestCommit]:
        return asyncio.run(self._commits_async(url))

    # Branches and manifests ---------------------------------------------------------

    def create_new_branch(self, repository: str, base_branch: str, new_branch: str) -> None:
        asyncio.run(self._create_branch_async(repository, base_branch, new_branch))

    def delete_branch(self, repository: str, branch: str) -> None:
        asyncio.run(self._delete_branch_async(repository, branch))

    def get_dependencies(self, repository: str, ref: str) -> list[DependencyDetail]:
        return asyncio.run(self._get_dependencies_async(repository, ref))

    def commit_updates(
        self,
        repository: str,
        branch: str,
        dependencies: Sequence[DependencyDetail],
        message: str,
    ) -> None:
        asyncio.run(self._commit_updates_async(repository, branch, dependencies, message))

    # Internals ------------------------------------------------------------------------

    def _repo_url(self, owner: str, repo: str, path: str) -> str:
        return f"{self._base_url}/repos/{owner}/{repo}/{path}"

    def _pull_url(self, url: str, suffix: str = "") -> tuple[str, int]:
        owner, repo, number = pull_request_coordinates(url)
        path = f"pulls/{number}{suffix}"
        return self._repo_url(owner, repo, path), number

    async def _fetch_pull_request(self, client: ResilientClient, url: str) -> GitHubPullRequest:
        api_url, _ = self._pull_url(url)
        response = await client.get(api_url)
        _raise_for_status(response, f"Reading pull request {url}")
        return GitHubPullRequest.model_validate(response.json())

    async def _get_pull_request_async(self, url: str) -> GitHubPullRequest:
        async with self._client_factory(self._config.resilience) as client:
            return await self._fetch_pull_request(client, url)

    async def _create_pull_request_async(
        self,
        repository: str,
        pull_request: PullRequest,
    ) -> str | None:
        owner, repo = repository_slug(repository)
        async with self._client_factory(self._config.resilience) as client:
            response = await client.post(
                self._repo_url(owner, repo, "pulls"),
                json={
                    "title": pull_request.title,
                    "body": pull_request.description,
                    "head": pull_request.head_branch,
                    "base": pull_request.base_branch,
                },
            )
            _raise_for_status(response, f"Creating pull request in {repository}")
            payload = GitHubPullRequest.model_validate(response.json())
        log.info("Opened pull request #%s in %s/%s", payload.number, owner, repo)
        return payload.html_url or None

    async def _update_pull_request_async(self, url: str, pull_request: PullRequest) -> None:
        api_url, _ = self._pull_url(url)
        async with self._client_factory(self._config.resilience) as client:
            response = await client.patch(
                api_url,
                json={"title": pull_request.title, "body": pull_request.description},
            )
            _raise_for_status(response, f"Updating pull request {url}")

    async def _merge_pull_request_async(self, url: str) -> MergeOutcome:
        api_url, _ = self._pull_url(url, "/merge")
        async with self._client_factory(self._config.resilience) as client:
            response = await client.put(api_url, json={"merge_method": MERGE_METHOD})
        if response.status_code in _CONFLICT_STATUSES:
            log.info("Pull request %s cannot be merged: %s", url, response.text[:200])
            return MergeOutcome.CONFLICT
        if response.is_error:
            log.warning(
                "Merging pull request %s failed with HTTP %s", url, response.status_code
            )
            return MergeOutcome.ERROR
        return MergeOutcome.MERGED

    async def _status_comment_async(self, url: str, message: str) -> None:
        owner, repo, number = pull_request_coordinates(url)
        automation_login = self._config.automation_login.casefold()
        async with self._client_factory(self._config.resilience) as client:
            response = await client.get(
                self._repo_url(owner, repo, f"issues/{number}/comments"),
                params={"per_page": PAGE_SIZE},
            )
            _raise_for_status(response, f"Listing comments of {url}")
            comments = [
                GitHubIssueComment.model_validate(item)
                for item in _json_list(response, "issue comments")
            ]
            existing = next(
                (
                    comment
                    for comment in comments
                    if comment.user is not None
                    and comment.user.login.casefold() == automation_login
                    and comment.body.startswith(STATUS_HEADER)
                ),
                None,
            )
            if existing is None:
                response = await client.post(
                    self._repo_url(owner, repo, f"issues/{number}/comments"),
                    json={"body": message},
                )
            else:
                response = await client.patch(
                    self._repo_url(owner, repo, f"issues/comments/{existing.id}"),
                    json={"body": message},
                )
            _raise_for_status(response, f"Writing status comment on {url}")

    async def _checks_async(self, url: str) -> list[PullRequestCheck]:
        owner, repo, _ = pull_request_coordinates(url)
        async with self._client_factory(self._config.resilience) as client:
            pull_request = await self._fetch_pull_request(client, url)
            sha = pull_request.head.sha

            response = await client.get(
                self._repo_url(owner, repo, f"commits/{sha}/check-runs"),
                params={"per_page": PAGE_SIZE},
            )
            _raise_for_status(response, f"Listing check runs of {url}")
            runs = GitHubCheckRuns.model_validate(response.json())

            response = await client.get(self._repo_url(owner, repo, f"commits/{sha}/status"))
            _raise_for_status(response, f"Reading combined status of {url}")
            combined = GitHubCombinedStatus.model_validate(response.json())

        checks = [PullRequestCheck(name=run.name, state=_check_run_state(run)) for run in runs.check_runs]
        checks.extend(
            PullRequestCheck(name=status.context, state=_STATUS_STATES.get(status.state, CheckState.ERROR))
            for status in combined.statuses
        )
        return checks

    async def _reviews_async(self, url: str) -> list[PullRequestReview]:
        api_url, _ = self._pull_url(url, "/reviews")
        async with self._client_factory(self._config.resilience) as client:
            response = await client.get(api_url, params={"per_page": PAGE_SIZE})
            _raise_for_status(response, f"Listing reviews of {url}")
            reviews = [GitHubReview.model_validate(item) for item in _json_list(response, "reviews")]
        return [
            PullRequestReview(
                author=review.user.login if review.user is not None else "",
                state=_REVIEW_STATES.get(review.state.upper(), ReviewState.COMMENTED),
            )
            for review in reviews
        ]

    async def _commits_async(self, url: str) -> list[PullRequestCommit]:
        api_url, _ = self._pull_url(url, "/commits")
        async with self._client_factory(self._config.resilience) as client:
            response = await client.get(api_url, params={"per_page": PAGE_SIZE})
            _raise_for_status(response, f"Listing commits of {url}")
            commits = [GitHubCommit.model_validate(item) for item in _json_list(response, "commits")]
        return [PullRequestCommit(sha=commit.sha, author=commit.author_login) for commit in commits]

    async def _create_branch_async(self, repository: str, base_branch: str, new_branch: str) -> None:
        owner, repo = repository_slug(repository)
        async with self._client_factory(self._config.resilience) as client:
            response = await client.get(self._repo_url(owner, repo, f"git/ref/heads/{base_branch}"))
            _raise_for_status(response, f"Reading {base_branch} of {repository}")
            base = GitHubRef.model_validate(response.json())

            response = await client.post(
                self._repo_url(owner, repo, "git/refs"),
                json={"ref": f"refs/heads/{new_branch}", "sha": base.object.sha},
            )
            _raise_for_status(response, f"Creating branch {new_branch} in {repository}")
        log.debug("Created branch %s from %s in %s", new_branch, base_branch, repository)

    async def _delete_branch_async(self, repository: str, branch: str) -> None:
        owner, repo = repository_slug(repository)
        async with self._client_factory(self._config.resilience) as client:
            response = await client.delete(self._repo_url(owner, repo, f"git/refs/heads/{branch}"))
        if response.status_code in {404, 422}:
            log.debug("Branch %s of %s is already gone", branch, repository)
            return
        _raise_for_status(response, f"Deleting branch {branch} in {repository}")

    async def _fetch_manifest(
        self,
        client: ResilientClient,
        repository: str,
        ref: str,
    ) -> GitHubContent | None:
        owner, repo = repository_slug(repository)
        response = await client.get(
            self._repo_url(owner, repo, f"contents/{self._config.manifest_path}"),
            params={"ref": ref},
        )
        if response.status_code == 404:
            return None
        _raise_for_status(response, f"Reading manifest of {repository}@{ref}")
        return GitHubContent.model_validate(response.json())

    async def _get_dependencies_async(self, repository: str, ref: str) -> list[DependencyDetail]:
        # Content at a commit sha is immutable, branch heads are not.
        resilience = (
            self._config.snapshot_resilience
            if _COMMIT_SHA_PATTERN.match(ref)
            else self._config.resilience
        )
        async with self._client_factory(resilience) as client:
            content = await self._fetch_manifest(client, repository, ref)
        if content is None:
            log.debug("%s@%s has no dependency manifest", repository, ref)
            return []
        return parse_manifest(_decode(content))

    async def _commit_updates_async(
        self,
        repository: str,
        branch: str,
        dependencies: Sequence[DependencyDetail],
        message: str,
    ) -> None:
        owner, repo = repository_slug(repository)
        async with self._client_factory(self._config.resilience) as client:
            content = await self._fetch_manifest(client, repository, branch)
            if content is None:
                raise GitHubAPIError(
                    f"{repository}@{branch} has no {self._config.manifest_path} to update"
                )
            updated = apply_updates(_decode(content), dependencies)
            response = await client.put(
                self._repo_url(owner, repo, f"contents/{self._config.manifest_path}"),
                json={
                    "message": message,
                    "content": base64.b64encode(updated.encode("utf-8")).decode("ascii"),
                    "sha": content.sha,
                    "branch": branch,
                },
            )
            _raise_for_status(response, f"Committing updates to {repository}@{branch}")
        log.info("Committed %d dependency updates to %s@%s", len(dependencies), repository, branch)


def _decode(content: GitHubContent) -> str:
    if content.encoding != "base64":
        raise GitHubAPIError(f"Unsupported content encoding: {content.encoding}")
    return base64.b64decode(content.content).decode("utf-8-sig")


def github_remote_factory(
    config: GitHubConfig,
    client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
) -> Callable[[str], GitHubClient]:
    """One shared client for every repository; the repository travels with each call."""

    client = GitHubClient(config=config, client_factory=client_factory)

    def factory(repository: str) -> GitHubClient:
        del repository
        return client

    return factory

"""Minimal Pydantic models for the GitHub REST API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GitHubBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GitHubUser(GitHubBaseModel):
    login: str


class GitHubBranchRef(GitHubBaseModel):
    ref: str
    sha: str = ""


class GitHubPullRequest(GitHubBaseModel):
    number: int
    state: str
    merged: bool = False
    title: str = ""
    body: str | None = None
    html_url: str
    head: GitHubBranchRef
    base: GitHubBranchRef


class GitHubCheckRun(GitHubBaseModel):
    name: str
    status: str
    conclusion: str | None = None


class GitHubCheckRuns(GitHubBaseModel):
    total_count: int = 0
    check_runs: list[GitHubCheckRun] = Field(default_factory=list["GitHubCheckRun"])


class GitHubCommitStatus(GitHubBaseModel):
    context: str
    state: str


class GitHubCombinedStatus(GitHubBaseModel):
    state: str = "pending"
    statuses: list[GitHubCommitStatus] = Field(default_factory=list["GitHubCommitStatus"])


class GitHubReview(GitHubBaseModel):
    user: GitHubUser | None = None
    state: str


class GitHubGitActor(GitHubBaseModel):
    name: str = ""


class GitHubCommitDetail(GitHubBaseModel):
    author: GitHubGitActor | None = None


class GitHubCommit(GitHubBaseModel):
    sha: str
    author: GitHubUser | None = None
    commit: GitHubCommitDetail = Field(default_factory=GitHubCommitDetail)

    @property
    def author_login(self) -> str:
        if self.author is not None:
            return self.author.login
        if self.commit.author is not None:
            return self.commit.author.name
        return ""


class GitHubGitObject(GitHubBaseModel):
    sha: str


class GitHubRef(GitHubBaseModel):
    ref: str
    object: GitHubGitObject


class GitHubContent(GitHubBaseModel):
    path: str
    sha: str
    content: str = ""
    encoding: str = "base64"


class GitHubIssueComment(GitHubBaseModel):
    id: int
    body: str = ""
    user: GitHubUser | None = None

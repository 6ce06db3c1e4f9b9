"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class DependencyType(StrEnum):
    PRODUCT = "product"
    TOOLSET = "toolset"


class UpdateFrequency(StrEnum):
    NONE = "none"
    EVERY_DAY = "everyDay"
    EVERY_BUILD = "everyBuild"
    TWICE_DAILY = "twiceDaily"
    EVERY_WEEK = "everyWeek"


class PullRequestStatus(StrEnum):
    OPEN = "open"
    MERGED = "merged"
    CLOSED = "closed"


class MergeOutcome(StrEnum):
    """Result of asking the source-control provider to merge a pull request."""

    MERGED = "merged"
    CONFLICT = "conflict"
    ERROR = "error"


class CheckState(StrEnum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


class ReviewState(StrEnum):
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    COMMENTED = "commented"
    DISMISSED = "dismissed"
    PENDING = "pending"

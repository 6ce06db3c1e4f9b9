"""GitHub source-control adapter."""

from __future__ import annotations

from .client import (
    GitHubAPIError,
    GitHubClient,
    github_remote_factory,
    pull_request_coordinates,
    repository_slug,
)
from .manifest import ManifestFormatError, apply_updates, parse_manifest

__all__ = [
    "GitHubAPIError",
    "GitHubClient",
    "ManifestFormatError",
    "apply_updates",
    "github_remote_factory",
    "parse_manifest",
    "pull_request_coordinates",
    "repository_slug",
]

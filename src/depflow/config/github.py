"""GitHub source-control configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .storage import get_storage_config

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_AUTOMATION_LOGIN = "dotnet-maestro[bot]"
GITHUB_API_VERSION = "2022-11-28"
DEFAULT_MANIFEST_PATH = "eng/Version.Details.xml"


@dataclass(frozen=True, slots=True)
class GitHubConfig:
    token: str
    automation_login: str
    resilience: ResilienceConfig
    snapshot_resilience: ResilienceConfig
    manifest_path: str = DEFAULT_MANIFEST_PATH


def get_github_config() -> GitHubConfig:
    values = require_env_vars(("GITHUB_TOKEN",))
    token = values["GITHUB_TOKEN"]
    api_url = os.getenv("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL
    automation_login = os.getenv("DEPFLOW_AUTOMATION_LOGIN") or DEFAULT_AUTOMATION_LOGIN
    manifest_path = os.getenv("DEPFLOW_MANIFEST_PATH") or DEFAULT_MANIFEST_PATH

    headers = {
        "Accept": "application/vnd.github+json",
        "Authorization": f"Bearer {token}",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }
    # Primary GitHub limit is 5000 requests/hour for an authenticated token.
    ratelimit = RateLimit(max_calls=80, per_seconds=60.0)
    resilience = ResilienceConfig(
        name="github",
        base_url=api_url,
        ratelimit=ratelimit,
        retry=RetryPolicy(total=3),
        default_headers=headers,
    )
    # Manifests read at a commit sha never change, so those reads may be served from cache.
    cache_path = get_storage_config().http_cache_path()
    snapshot_resilience = ResilienceConfig(
        name="github-snapshots",
        base_url=api_url,
        ratelimit=ratelimit,
        retry=RetryPolicy(total=3),
        cache=CacheConfig(enabled=True, backend="sqlite", sqlite_path=str(cache_path)),
        default_headers=headers,
    )

    return GitHubConfig(
        token=token,
        automation_login=automation_login,
        resilience=resilience,
        snapshot_resilience=snapshot_resilience,
        manifest_path=manifest_path,
    )

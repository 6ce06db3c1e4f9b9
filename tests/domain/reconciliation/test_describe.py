from __future__ import annotations

import pytest

from depflow.domain.model import DependencyDetail
from depflow.domain.reconciliation import compute_title, simple_repository_name
from depflow.domain.reconciliation.describe import (
    coherency_commit_message,
    coherency_description,
    commit_message,
    update_description,
)
from tests.helpers.registry import ARCADE, RUNTIME


@pytest.mark.parametrize(
    ("repository", "expected"),
    [
        ("https://github.com/dotnet/runtime", "dotnet/runtime"),
        ("https://dev.azure.com/dnceng/internal/_git/dotnet-runtime", "dnceng/internal/dotnet-runtime"),
        ("dotnet/sdk", "dotnet/sdk"),
    ],
)
def test_simple_repository_name(repository: str, expected: str) -> None:
    assert simple_repository_name(repository) == expected


def test_title_lists_source_repositories() -> None:
    assert compute_title("main", [RUNTIME, ARCADE]) == (
        "[main] Update dependencies from dotnet/runtime, dotnet/arcade"
    )


def test_title_falls_back_to_count_when_too_long() -> None:
    repositories = [f"https://github.com/dotnet/repository-{index}" for index in range(5)]

    assert compute_title("main", repositories) == "[main] Update dependencies from 5 repositories"


def test_title_for_coherency_only_pull_request() -> None:
    assert compute_title("release/9.0", []) == (
        "[release/9.0] Update dependencies to ensure coherency"
    )


def test_commit_message_and_description() -> None:
    dependencies = [
        DependencyDetail(name="A", version="1.0.0"),
        DependencyDetail(name="B", version="2.0.0"),
    ]

    assert commit_message(RUNTIME, "20240101.1", dependencies) == (
        f"Update dependencies from {RUNTIME} build 20240101.1\n\n"
        "This change updates the following dependencies\n"
        "- A - 1.0.0\n"
        "- B - 2.0.0\n"
    )
    assert update_description(RUNTIME, dependencies) == (
        f"Updates from {RUNTIME}\n\n- A - 1.0.0\n- B - 2.0.0\n\n"
    )


def test_coherency_description_groups_by_dependency_repository() -> None:
    dependencies = [
        DependencyDetail(name="A", version="1.0.0", repo_uri=RUNTIME),
        DependencyDetail(name="B", version="2.0.0", repo_uri=ARCADE),
        DependencyDetail(name="C", version="3.0.0", repo_uri=RUNTIME),
    ]

    assert coherency_commit_message(dependencies).startswith("Coherency updates\n\n- A - 1.0.0")
    assert coherency_description(dependencies) == (
        "Coherency updates\n\n"
        f"Updates from {RUNTIME}\n\n- A - 1.0.0\n- C - 3.0.0\n\n"
        f"Updates from {ARCADE}\n\n- B - 2.0.0\n\n"
    )

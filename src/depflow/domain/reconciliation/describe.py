"""Pull request titles, descriptions and commit messages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Sequence

    from depflow.domain.model import DependencyDetail

KNOWN_HOST_PREFIXES: Final[tuple[str, ...]] = ("https://github.com/", "https://dev.azure.com/")
DESCRIPTION_HEADER: Final[str] = "This pull request updates the following dependencies\n\n"
COHERENCY_COMMIT_HEADER: Final[str] = "Coherency updates\n\n"


def simple_repository_name(repository: str) -> str:
    """``https://github.com/dotnet/runtime`` becomes ``dotnet/runtime``."""

    name = repository
    for prefix in KNOWN_HOST_PREFIXES:
        name = name.removeprefix(prefix)
    return name.replace("_git/", "")


def compute_title(
    target_branch: str,
    source_repositories: Sequence[str],
    *,
    budget: int = 80,
) -> str:
    """Title listing every source repository, or their count when that is too long.

    ``source_repositories`` holds one entry per contained subscription; an empty
    sequence means the pull request only carries coherency updates.
    """

    if not source_repositories:
        return f"[{target_branch}] Update dependencies to ensure coherency"

    base = f"[{target_branch}] Update dependencies from"
    names = ", ".join(simple_repository_name(repository) for repository in source_repositories)
    title = f"{base} {names}"
    if len(title) > budget:
        return f"{base} {len(source_repositories)} repositories"
    return title


def _dependency_lines(dependencies: Sequence[DependencyDetail]) -> str:
    return "".join(f"- {dependency.name} - {dependency.version}\n" for dependency in dependencies)


def commit_message(
    source_repository: str,
    build_number: str,
    dependencies: Sequence[DependencyDetail],
) -> str:
    return (
        f"Update dependencies from {source_repository} build {build_number}\n\n"
        f"This change updates the following dependencies\n{_dependency_lines(dependencies)}"
    )


def update_description(source_repository: str, dependencies: Sequence[DependencyDetail]) -> str:
    return f"Updates from {source_repository}\n\n{_dependency_lines(dependencies)}\n"


def coherency_commit_message(dependencies: Sequence[DependencyDetail]) -> str:
    return COHERENCY_COMMIT_HEADER + _dependency_lines(dependencies)


def coherency_description(dependencies: Sequence[DependencyDetail]) -> str:
    """Coherency section grouped by each dependency's own repository."""

    grouped: dict[str, list[DependencyDetail]] = {}
    for dependency in dependencies:
        grouped.setdefault(dependency.repo_uri, []).append(dependency)
    sections = "".join(
        f"Updates from {repository}\n\n{_dependency_lines(members)}\n"
        for repository, members in grouped.items()
    )
    return COHERENCY_COMMIT_HEADER + sections

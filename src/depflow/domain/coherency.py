"""Computation of required dependency updates.

Two passes feed the resolver:

* non-coherency updates move dependencies to the versions a source build produced;
* coherency updates then move dependencies that follow a coherent parent to the
  version that parent's own manifest declares, and align shared common children.

Both passes read and return immutable snapshots.
"""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from depflow.domain.errors import CoherencyError
from depflow.domain.model import DependencySnapshot, DependencyUpdate

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from depflow.domain.model import Asset, DependencyDetail
    from depflow.domain.ports.source_control import RemoteFactory

log = getLogger(__name__)


def required_non_coherency_updates(
    source_repository: str,
    source_sha: str,
    assets: Sequence[Asset],
    dependencies: DependencySnapshot,
) -> list[DependencyUpdate]:
    """Return updates moving matching dependencies to the produced asset versions.

    Pinned dependencies and dependencies governed by a coherent parent are left to
    the coherency pass.
    """

    assets_by_name = {asset.name.casefold(): asset for asset in assets}
    updates: list[DependencyUpdate] = []
    for dependency in dependencies:
        asset = assets_by_name.get(dependency.key)
        if asset is None:
            continue
        if dependency.pinned or dependency.coherent_parent_dependency_name:
            log.debug("Skipping %s: pinned or coherency-managed", dependency.name)
            continue
        if dependency.version == asset.version:
            continue
        target = replace(
            dependency,
            version=asset.version,
            commit=source_sha,
            repo_uri=source_repository,
        )
        updates.append(DependencyUpdate(from_=dependency, to=target))
    return updates


class ManifestUpdateCalculator:
    """Update calculator that reads parent manifests through the source-control remote."""

    def __init__(self, remote_factory: RemoteFactory) -> None:
        self._remote_factory = remote_factory

    def required_non_coherency_updates(
        self,
        source_repository: str,
        source_sha: str,
        assets: Sequence[Asset],
        dependencies: DependencySnapshot,
    ) -> list[DependencyUpdate]:
        return required_non_coherency_updates(source_repository, source_sha, assets, dependencies)

    def required_coherency_updates(
        self,
        dependencies: DependencySnapshot,
    ) -> list[DependencyUpdate]:
        manifests: dict[tuple[str, str], DependencySnapshot] = {}

        def manifest_of(dependency: DependencyDetail) -> DependencySnapshot:
            key = (dependency.repo_uri, dependency.commit)
            if key not in manifests:
                remote = self._remote_factory(dependency.repo_uri)
                manifests[key] = DependencySnapshot.of(
                    remote.get_dependencies(dependency.repo_uri, dependency.commit)
                )
            return manifests[key]

        updates: list[DependencyUpdate] = []
        current = dependencies

        for name in _parents_first(dependencies):
            dependency = current.get(name)
            if dependency is None or dependency.pinned:
                continue
            parent_name = dependency.coherent_parent_dependency_name or ""
            parent = current.get(parent_name)
            if parent is None:
                raise CoherencyError(
                    f"Coherent parent '{parent_name}' of '{dependency.name}' "
                    "is not a dependency of the target"
                )
            declared = manifest_of(parent).get(dependency.name)
            if declared is None:
                raise CoherencyError(
                    f"'{parent.name}' {parent.version} does not declare a version of "
                    f"'{dependency.name}'"
                )
            update = _align(dependency, declared)
            if update is not None:
                updates.append(update)
                current = current.apply([update])

        updates.extend(_common_child_updates(current, manifest_of))

        return updates


def _align(dependency: DependencyDetail, declared: DependencyDetail) -> DependencyUpdate | None:
    if dependency.version == declared.version and dependency.commit == declared.commit:
        return None
    target = replace(
        dependency,
        version=declared.version,
        commit=declared.commit,
        repo_uri=declared.repo_uri or dependency.repo_uri,
    )
    return DependencyUpdate(from_=dependency, to=target)


def _parents_first(dependencies: DependencySnapshot) -> list[str]:
    """Names of coherency-managed dependencies, ordered so parents precede children."""

    depths: dict[str, int] = {}
    for dependency in dependencies:
        if not dependency.coherent_parent_dependency_name:
            continue
        depth = 0
        seen = {dependency.key}
        parent_name = dependency.coherent_parent_dependency_name
        while parent_name:
            parent = dependencies.get(parent_name)
            if parent is None:
                break
            if parent.key in seen:
                raise CoherencyError(
                    f"Coherent parent chain of '{dependency.name}' forms a cycle"
                )
            seen.add(parent.key)
            depth += 1
            parent_name = parent.coherent_parent_dependency_name
        depths[dependency.name] = depth
    return sorted(depths, key=lambda name: depths[name])


def _common_child_updates(
    dependencies: DependencySnapshot,
    manifest_of: Callable[[DependencyDetail], DependencySnapshot],
) -> list[DependencyUpdate]:
    groups: dict[str, list[DependencyDetail]] = {}
    for dependency in dependencies:
        child_name = dependency.common_child_dependency_name
        if child_name:
            groups.setdefault(child_name.casefold(), []).append(dependency)

    updates: list[DependencyUpdate] = []
    for members in groups.values():
        child_name = members[0].common_child_dependency_name or ""
        child = dependencies.get(child_name)
        if child is None or child.pinned:
            continue

        declared: list[DependencyDetail] = []
        for member in members:
            entry = manifest_of(member).get(child_name)
            if entry is not None:
                declared.append(entry)
        if not declared:
            continue

        versions = {entry.version for entry in declared}
        if len(versions) > 1:
            log.warning(
                "Dependencies %s disagree on common child %s (%s); leaving it unchanged",
                ", ".join(member.name for member in members),
                child_name,
                ", ".join(sorted(versions)),
            )
            continue

        update = _align(child, declared[0])
        if update is not None:
            updates.append(update)
    return updates

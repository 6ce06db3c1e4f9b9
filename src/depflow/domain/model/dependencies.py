"""Dependency records as read from a repository's dependency manifest."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Final

from depflow.domain.errors import DependencyConfigurationError
from depflow.domain.model.enums import DependencyType

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

COMBINED_COHERENCY_MESSAGE: Final[str] = (
    "Common child and coherent parent restrictions cannot be combined."
)

_COHERENCY_COUNTERPART: Final[dict[str, str]] = {
    "coherent_parent_dependency_name": "common_child_dependency_name",
    "common_child_dependency_name": "coherent_parent_dependency_name",
}


@dataclass(kw_only=True)
class DependencyDetail:
    """One entry of a repository's dependency manifest.

    A dependency may either follow a coherent parent (its version is dictated by
    what the parent's build declares) or share a common child with its siblings,
    never both. The restriction is enforced on construction and on assignment.
    """

    name: str
    version: str
    repo_uri: str = ""
    commit: str = ""
    pinned: bool = False
    type: DependencyType = DependencyType.PRODUCT
    coherent_parent_dependency_name: str | None = None
    common_child_dependency_name: str | None = None

    def __setattr__(self, name: str, value: object) -> None:
        counterpart = _COHERENCY_COUNTERPART.get(name)
        if counterpart is not None and value and getattr(self, counterpart, None):
            raise DependencyConfigurationError(COMBINED_COHERENCY_MESSAGE)
        super().__setattr__(name, value)

    @property
    def key(self) -> str:
        return self.name.casefold()

    def copy(self) -> DependencyDetail:
        return replace(self)


@dataclass(frozen=True, slots=True)
class DependencyUpdate:
    """A single directed version change of one dependency."""

    from_: DependencyDetail
    to: DependencyDetail


@dataclass(frozen=True, slots=True)
class Asset:
    name: str
    version: str


@dataclass(frozen=True, slots=True)
class DependencySnapshot:
    """Immutable view of a target's dependency set.

    Entries are private copies; transformations return a new snapshot.
    """

    dependencies: tuple[DependencyDetail, ...] = ()

    @classmethod
    def of(cls, dependencies: Iterable[DependencyDetail]) -> DependencySnapshot:
        return cls(tuple(dependency.copy() for dependency in dependencies))

    def __iter__(self) -> Iterator[DependencyDetail]:
        return iter(self.dependencies)

    def __len__(self) -> int:
        return len(self.dependencies)

    def get(self, name: str) -> DependencyDetail | None:
        key = name.casefold()
        for dependency in self.dependencies:
            if dependency.key == key:
                return dependency
        return None

    def apply(self, updates: Iterable[DependencyUpdate]) -> DependencySnapshot:
        """Return a snapshot where every ``update.from_`` is replaced by ``update.to``."""

        replacements: dict[str, DependencyDetail] = {}
        for update in updates:
            replacements[update.from_.key] = update.to.copy()

        result: list[DependencyDetail] = []
        for dependency in self.dependencies:
            replacement = replacements.pop(dependency.key, None)
            result.append(replacement if replacement is not None else dependency)
        result.extend(replacements.values())
        return DependencySnapshot(tuple(result))

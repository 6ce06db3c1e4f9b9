"""Port for computing required dependency updates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from depflow.domain.model import Asset, DependencySnapshot, DependencyUpdate


@runtime_checkable
class UpdateCalculator(Protocol):
    """The two resolver passes, supplied by the dependency tooling."""

    def required_non_coherency_updates(
        self,
        source_repository: str,
        source_sha: str,
        assets: Sequence[Asset],
        dependencies: DependencySnapshot,
    ) -> list[DependencyUpdate]: ...

    def required_coherency_updates(
        self,
        dependencies: DependencySnapshot,
    ) -> list[DependencyUpdate]: ...

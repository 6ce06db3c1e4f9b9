"""Two-pass resolution of the dependency updates a reconciliation cycle needs."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from depflow.domain.model import UpdateAssetsParameters

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from depflow.domain.model import DependencyDetail, DependencySnapshot
    from depflow.domain.ports.updates import UpdateCalculator

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RequiredUpdate:
    """A work item paired with the dependency versions it moves the target to."""

    item: UpdateAssetsParameters
    dependencies: tuple[DependencyDetail, ...]


@dataclass(frozen=True, slots=True)
class RequiredUpdates:
    updates: tuple[RequiredUpdate, ...]
    caught_up: tuple[UpdateAssetsParameters, ...]
    dependencies: DependencySnapshot

    def __bool__(self) -> bool:
        return bool(self.updates)


def resolve_required_updates(
    existing: DependencySnapshot,
    pending: Sequence[UpdateAssetsParameters],
    calculator: UpdateCalculator,
    source_repository_of: Callable[[UpdateAssetsParameters], str],
) -> RequiredUpdates:
    """Compute required updates for ``pending`` against ``existing``.

    Non-coherency updates are resolved per item in input order, each against the
    snapshot produced by the items before it. Items needing nothing are reported as
    caught up. A single coherency item over the final snapshot closes the list.
    """

    current = existing
    updates: list[RequiredUpdate] = []
    caught_up: list[UpdateAssetsParameters] = []

    for item in pending:
        item_updates = calculator.required_non_coherency_updates(
            source_repository_of(item),
            item.source_sha,
            item.assets,
            current,
        )
        if not item_updates:
            log.info(
                "Subscription %s is caught up with build %s",
                item.subscription_id,
                item.build_id,
            )
            caught_up.append(item)
            continue
        current = current.apply(item_updates)
        updates.append(
            RequiredUpdate(item=item, dependencies=tuple(update.to for update in item_updates))
        )

    coherency_updates = calculator.required_coherency_updates(current)
    if coherency_updates:
        log.info("Coherency check requires %d additional updates", len(coherency_updates))
        current = current.apply(coherency_updates)
        updates.append(
            RequiredUpdate(
                item=UpdateAssetsParameters(is_coherency_update=True),
                dependencies=tuple(update.to for update in coherency_updates),
            )
        )

    return RequiredUpdates(
        updates=tuple(updates),
        caught_up=tuple(caught_up),
        dependencies=current,
    )

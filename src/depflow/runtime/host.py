"""Per-unit serialized execution of reconciliation operations."""

from __future__ import annotations

import threading
from logging import getLogger
from typing import TYPE_CHECKING

from depflow.domain.errors import SubscriptionNotFoundError
from depflow.domain.reconciliation import parse_unit_id, unit_for_subscription

if TYPE_CHECKING:
    import uuid
    from collections.abc import Callable, Sequence

    from depflow.domain.model import Asset
    from depflow.domain.ports.unit_of_work import MetadataUnitOfWork
    from depflow.domain.reconciliation import (
        PullRequestReconciler,
        ReconcileResult,
        ReconciliationUnit,
        Synchronization,
    )

log = getLogger(__name__)

type ReconcilerFactory = Callable[[ReconciliationUnit], PullRequestReconciler]


class ReconciliationHost:
    """Routes requests to reconciliation units and runs at most one operation per unit.

    Operations on different units run concurrently on the caller's threads.
    """

    def __init__(
        self,
        *,
        reconciler_factory: ReconcilerFactory,
        unit_of_work_factory: Callable[[], MetadataUnitOfWork],
    ) -> None:
        self._reconciler_factory = reconciler_factory
        self._unit_of_work_factory = unit_of_work_factory
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, unit: ReconciliationUnit) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(unit.unit_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[unit.unit_id] = lock
            return lock

    def run[T](self, unit: ReconciliationUnit, operation: Callable[[PullRequestReconciler], T]) -> T:
        with self._lock_for(unit):
            return operation(self._reconciler_factory(unit))

    def unit_for(self, subscription_id: uuid.UUID) -> ReconciliationUnit:
        with self._unit_of_work_factory() as uow:
            subscription = uow.repositories.subscriptions.get(subscription_id)
            if subscription is None:
                raise SubscriptionNotFoundError(subscription_id)
            return unit_for_subscription(subscription)

    def update_assets(
        self,
        subscription_id: uuid.UUID,
        build_id: int,
        source_sha: str,
        assets: Sequence[Asset],
    ) -> ReconcileResult:
        unit = self.unit_for(subscription_id)
        log.info("Routing build %s of subscription %s to %s", build_id, subscription_id, unit.unit_id)
        return self.run(
            unit,
            lambda reconciler: reconciler.update_assets(subscription_id, build_id, source_sha, assets),
        )

    def synchronize(self, unit: ReconciliationUnit) -> Synchronization:
        return self.run(unit, lambda reconciler: reconciler.synchronize_in_progress_pull_request())

    def process_pending_updates(self, unit: ReconciliationUnit) -> ReconcileResult:
        return self.run(unit, lambda reconciler: reconciler.process_pending_updates())

    def receive_reminder(self, unit_id: str, name: str) -> None:
        unit = parse_unit_id(unit_id)
        self.run(unit, lambda reconciler: reconciler.receive_reminder(name))

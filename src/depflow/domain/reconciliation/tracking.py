"""Audit trail of reconciliation actions per repository branch."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from depflow.domain.errors import ConcurrentUpdateError
from depflow.domain.model import RepositoryBranch, RepositoryBranchUpdate

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from depflow.domain.ports.unit_of_work import MetadataUnitOfWork

    from .contracts import TargetBranch

log = getLogger(__name__)


class ActionTracker:
    """Records the latest action against a repository branch, successful or not."""

    def __init__(
        self,
        unit_of_work_factory: Callable[[], MetadataUnitOfWork],
        *,
        max_attempts: int = 3,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._max_attempts = max_attempts

    def track_success(
        self,
        target: TargetBranch,
        *,
        action: str,
        method: str,
        arguments: Mapping[str, object],
    ) -> None:
        self._record(target, action=action, method=method, arguments=arguments, error=None)

    def track_failure(
        self,
        target: TargetBranch,
        *,
        action: str,
        method: str,
        arguments: Mapping[str, object],
        error: str,
    ) -> None:
        log.warning("Action %r on %s@%s failed: %s", action, target.repository, target.branch, error)
        self._record(target, action=action, method=method, arguments=arguments, error=error)

    def _record(
        self,
        target: TargetBranch,
        *,
        action: str,
        method: str,
        arguments: Mapping[str, object],
        error: str | None,
    ) -> None:
        serialized = json.dumps(dict(arguments), default=str, sort_keys=True)
        for attempt in range(1, self._max_attempts + 1):
            try:
                self._write(target, action=action, method=method, arguments=serialized, error=error)
            except ConcurrentUpdateError:
                if attempt == self._max_attempts:
                    raise
                log.info(
                    "Concurrent update of %s@%s, retrying (attempt %d of %d)",
                    target.repository,
                    target.branch,
                    attempt + 1,
                    self._max_attempts,
                )
            else:
                return

    def _write(
        self,
        target: TargetBranch,
        *,
        action: str,
        method: str,
        arguments: str,
        error: str | None,
    ) -> None:
        # Reads come before any add so a lost insert race only surfaces at commit.
        with self._unit_of_work_factory() as uow:
            repositories = uow.repositories
            branch = repositories.repository_branches.get(target.repository, target.branch)
            update = repositories.repository_branch_updates.get(target.repository, target.branch)
            if branch is None:
                repositories.repository_branches.add(
                    RepositoryBranch(repository=target.repository, branch=target.branch)
                )
            if update is None:
                repositories.repository_branch_updates.add(
                    RepositoryBranchUpdate(
                        repository=target.repository,
                        branch=target.branch,
                        action=action,
                        method=method,
                        arguments=arguments,
                        success=error is None,
                        error_message=error,
                    )
                )
            else:
                update.action = action
                update.method = method
                update.arguments = arguments
                update.success = error is None
                update.error_message = error
                update.timestamp = datetime.now(UTC)
            uow.commit()

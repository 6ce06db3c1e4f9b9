"""Per-unit pull request reconciliation."""

from __future__ import annotations

from .contracts import (
    PENDING_UPDATES_STATE_KEY,
    PULL_REQUEST_CHECK_REMINDER,
    PULL_REQUEST_STATE_KEY,
    PULL_REQUEST_UPDATE_REMINDER,
    AutoMergeStatus,
    BatchedUnit,
    NonBatchedUnit,
    ReconcileOutcome,
    ReconcileResult,
    ReconciliationSettings,
    ReconciliationUnit,
    Synchronization,
    TargetBranch,
    UnitKind,
    parse_unit_id,
    unit_for_subscription,
)
from .describe import compute_title, simple_repository_name
from .engine import PullRequestReconciler
from .resolve import RequiredUpdate, RequiredUpdates, resolve_required_updates
from .target import merge_policy_definitions, resolve_target
from .tracking import ActionTracker

__all__ = [
    "PENDING_UPDATES_STATE_KEY",
    "PULL_REQUEST_CHECK_REMINDER",
    "PULL_REQUEST_STATE_KEY",
    "PULL_REQUEST_UPDATE_REMINDER",
    "ActionTracker",
    "AutoMergeStatus",
    "BatchedUnit",
    "NonBatchedUnit",
    "PullRequestReconciler",
    "ReconcileOutcome",
    "ReconcileResult",
    "ReconciliationSettings",
    "ReconciliationUnit",
    "RequiredUpdate",
    "RequiredUpdates",
    "Synchronization",
    "TargetBranch",
    "UnitKind",
    "compute_title",
    "merge_policy_definitions",
    "parse_unit_id",
    "resolve_required_updates",
    "resolve_target",
    "simple_repository_name",
    "unit_for_subscription",
]

"""Application orchestration entry points."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

from depflow.adapters.github import github_remote_factory
from depflow.adapters.sqlalchemy import (
    SqlAlchemyActorStateStore,
    SqlAlchemyReminderScheduler,
    SqlAlchemyReminderTable,
    SqlAlchemyUnitOfWork,
)
from depflow.adapters.sqlalchemy.unit_of_work import is_started, startup
from depflow.config import get_github_config, get_reconciliation_settings
from depflow.domain.coherency import ManifestUpdateCalculator
from depflow.domain.errors import BuildNotFoundError, MergePolicyConfigurationError
from depflow.domain.flow_graph import DependencyFlowGraph
from depflow.domain.merge_policies import (
    MergePolicyEvaluator,
    default_merge_policies,
    validate_merge_policies,
)
from depflow.domain.model import MergePolicyDefinition
from depflow.domain.ports.unit_of_work import MetadataUnitOfWork
from depflow.domain.reconciliation import ActionTracker, PullRequestReconciler
from depflow.runtime import ReconciliationHost, ReminderWorker

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence
    from pathlib import Path

    from depflow.domain.model import DefaultChannel
    from depflow.domain.ports.actors import ActorStateStore, ReminderScheduler, ReminderTable
    from depflow.domain.ports.source_control import RemoteFactory
    from depflow.domain.reconciliation import (
        ReconcileResult,
        ReconciliationSettings,
        ReconciliationUnit,
    )
    from depflow.runtime import ReconcilerFactory

UnitOfWorkFactory = Callable[[], MetadataUnitOfWork]

log = getLogger(__name__)


def _default_unit_of_work_factory() -> UnitOfWorkFactory:
    if not is_started():
        startup()
    return SqlAlchemyUnitOfWork


def build_reconciler_factory(
    *,
    remote_factory: RemoteFactory,
    unit_of_work_factory: UnitOfWorkFactory,
    automation_login: str,
    settings: ReconciliationSettings,
    state_factory: Callable[[str], ActorStateStore] = SqlAlchemyActorStateStore,
    reminder_factory: Callable[[str], ReminderScheduler] = SqlAlchemyReminderScheduler,
) -> ReconcilerFactory:
    """Return a factory wiring one reconciler per unit around shared collaborators."""

    evaluator = MergePolicyEvaluator(default_merge_policies(automation_login))
    calculator = ManifestUpdateCalculator(remote_factory)
    tracker = ActionTracker(unit_of_work_factory)

    def factory(unit: ReconciliationUnit) -> PullRequestReconciler:
        return PullRequestReconciler(
            unit=unit,
            state=state_factory(unit.unit_id),
            reminders=reminder_factory(unit.unit_id),
            remote_factory=remote_factory,
            unit_of_work_factory=unit_of_work_factory,
            evaluator=evaluator,
            calculator=calculator,
            settings=settings,
            tracker=tracker,
        )

    return factory


def build_host(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    reconciler_factory: ReconcilerFactory | None = None,
) -> ReconciliationHost:
    """Wire the host against GitHub and the SQL metadata store unless overridden."""

    effective_uow = unit_of_work_factory or _default_unit_of_work_factory()
    if reconciler_factory is None:
        github = get_github_config()
        reconciler_factory = build_reconciler_factory(
            remote_factory=github_remote_factory(github),
            unit_of_work_factory=effective_uow,
            automation_login=github.automation_login,
            settings=get_reconciliation_settings(),
        )
    return ReconciliationHost(
        reconciler_factory=reconciler_factory,
        unit_of_work_factory=effective_uow,
    )


def update_assets(
    *,
    subscription_id: uuid.UUID,
    build_id: int,
    host: ReconciliationHost | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ReconcileResult:
    """Flow the assets of a registered build through one subscription."""

    effective_uow = unit_of_work_factory or _default_unit_of_work_factory()
    effective_host = host or build_host(unit_of_work_factory=effective_uow)

    with effective_uow() as uow:
        build = uow.repositories.builds.get(build_id)
        if build is None:
            raise BuildNotFoundError(f"Build {build_id} is not registered")
        source_sha = build.commit
        assets = list(build.assets)

    log.info(
        "Updating assets for subscription %s from build %s (%d assets)",
        subscription_id,
        build_id,
        len(assets),
    )
    result = effective_host.update_assets(subscription_id, build_id, source_sha, assets)
    log.info("Update finished: %s - %s", result.outcome, result.message)
    return result


def process_reminders(
    *,
    once: bool = False,
    poll_interval: float = 30.0,
    host: ReconciliationHost | None = None,
    reminders: ReminderTable | None = None,
    stop: threading.Event | None = None,
) -> int:
    """Deliver due reminders once, or keep delivering them until ``stop`` is set."""

    effective_host = host or build_host()
    if reminders is None:
        _default_unit_of_work_factory()
        reminders = SqlAlchemyReminderTable()
    worker = ReminderWorker(host=effective_host, reminders=reminders, poll_interval=poll_interval)
    if once:
        return worker.run_once()
    worker.run_forever(stop or threading.Event())
    return 0


def get_overall_flow_graph(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    additional_seed_channels: Sequence[DefaultChannel] = (),
) -> DependencyFlowGraph:
    """Build the flow graph of every default channel and subscription in the registry.

    ``additional_seed_channels`` are extra default-channel declarations that are not
    registered, for repositories that publish outside the registry.
    """

    effective_uow = unit_of_work_factory or _default_unit_of_work_factory()
    with effective_uow() as uow:
        defaults = list(uow.repositories.channels.list_default_channels())
        subscriptions = list(uow.repositories.subscriptions.query())
        graph = DependencyFlowGraph.build(
            [default for default in defaults if default.enabled],
            subscriptions,
            additional_seed_channels,
        )
    log.info("Flow graph has %d nodes and %d edges", len(graph.nodes), len(graph.edges))
    return graph


def load_merge_policies(path: Path) -> tuple[MergePolicyDefinition, ...]:
    """Read and validate a JSON list of ``{"name": ..., "properties": {...}}`` objects."""

    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise MergePolicyConfigurationError("Merge policies must be a JSON list")

    definitions: list[MergePolicyDefinition] = []
    for item in cast(list[Any], payload):
        if not isinstance(item, dict) or not isinstance(item.get("name"), str):
            raise MergePolicyConfigurationError(
                "Every merge policy needs a 'name' string and optional 'properties' object"
            )
        properties = item.get("properties")
        if properties is None:
            properties = {}
        elif not isinstance(properties, dict):
            raise MergePolicyConfigurationError(
                f"Properties of merge policy '{item['name']}' must be an object"
            )
        definitions.append(MergePolicyDefinition(name=item["name"], properties=properties))

    validate_merge_policies(definitions)
    return tuple(definitions)

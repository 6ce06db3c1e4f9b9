"""Build-asset registry entities: channels, subscriptions, builds, repository branches."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from depflow.domain.model.enums import UpdateFrequency

if TYPE_CHECKING:
    from collections.abc import Mapping

    from depflow.domain.model.dependencies import Asset


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, kw_only=True)
class MergePolicyDefinition:
    """A named merge policy plus its raw properties, as configured by users."""

    name: str
    properties: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, kw_only=True)
class SubscriptionPolicy:
    batchable: bool = False
    update_frequency: UpdateFrequency = UpdateFrequency.EVERY_DAY
    merge_policies: tuple[MergePolicyDefinition, ...] = ()


@dataclass(eq=False, kw_only=True)
class Channel:
    name: str
    classification: str = ""
    id: int | None = None


@dataclass(eq=False, kw_only=True)
class DefaultChannel:
    """Declares that ``repository@branch`` publishes to ``channel`` by default."""

    repository: str
    branch: str
    channel: Channel
    enabled: bool = True
    id: int | None = None


@dataclass(eq=False, kw_only=True)
class Subscription:
    channel: Channel
    source_repository: str
    target_repository: str
    target_branch: str
    policy: SubscriptionPolicy = field(default_factory=SubscriptionPolicy)
    enabled: bool = True
    last_applied_build_id: int | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass(eq=False, kw_only=True)
class Build:
    repository: str
    branch: str
    commit: str
    build_number: str
    assets: tuple[Asset, ...] = ()
    date_produced: datetime = field(default_factory=_utcnow)
    id: int | None = None


@dataclass(eq=False, kw_only=True)
class RepositoryBranch:
    """Repository-level configuration shared by batched subscriptions."""

    repository: str
    branch: str
    merge_policies: tuple[MergePolicyDefinition, ...] = ()


@dataclass(eq=False, kw_only=True)
class RepositoryBranchUpdate:
    """Audit record of the last action performed against a repository branch."""

    repository: str
    branch: str
    action: str
    method: str
    arguments: str
    success: bool
    error_message: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)

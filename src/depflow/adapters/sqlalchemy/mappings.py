"""SQLAlchemy mapping metadata for the build-asset registry and the actor runtime."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    orm,
)
from sqlalchemy.orm import relationship

from depflow.domain.model import (
    Asset,
    Build,
    Channel,
    DefaultChannel,
    MergePolicyDefinition,
    RepositoryBranch,
    RepositoryBranchUpdate,
    Subscription,
    SubscriptionPolicy,
    UpdateFrequency,
)

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _dump_policies(policies: tuple[MergePolicyDefinition, ...]) -> list[dict[str, Any]]:
    return [{"name": policy.name, "properties": dict(policy.properties)} for policy in policies]


def _load_policies(payload: object) -> tuple[MergePolicyDefinition, ...]:
    if not isinstance(payload, list):
        return ()
    definitions: list[MergePolicyDefinition] = []
    for item in cast(list[Any], payload):
        if isinstance(item, dict) and isinstance(item.get("name"), str):
            definitions.append(
                MergePolicyDefinition(name=item["name"], properties=item.get("properties") or {})
            )
    return tuple(definitions)


class MergePolicyListType(TypeDecorator[tuple[MergePolicyDefinition, ...]]):
    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: tuple[MergePolicyDefinition, ...] | None, dialect: Dialect
    ) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(_dump_policies(value), sort_keys=True)

    def process_result_value(
        self, value: str | None, dialect: Dialect
    ) -> tuple[MergePolicyDefinition, ...]:
        _ = dialect
        if value is None:
            return ()
        return _load_policies(json.loads(value))


class SubscriptionPolicyType(TypeDecorator[SubscriptionPolicy]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: SubscriptionPolicy | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        payload = {
            "batchable": value.batchable,
            "update_frequency": value.update_frequency.value,
            "merge_policies": _dump_policies(value.merge_policies),
        }
        return json.dumps(payload, sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> SubscriptionPolicy:
        _ = dialect
        if value is None:
            return SubscriptionPolicy()
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return SubscriptionPolicy()
        payload = cast(dict[str, Any], loaded)
        return SubscriptionPolicy(
            batchable=bool(payload.get("batchable", False)),
            update_frequency=UpdateFrequency(
                payload.get("update_frequency", UpdateFrequency.EVERY_DAY)
            ),
            merge_policies=_load_policies(payload.get("merge_policies")),
        )


class AssetListType(TypeDecorator[tuple[Asset, ...]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: tuple[Asset, ...] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps([{"name": asset.name, "version": asset.version} for asset in value])

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[Asset, ...]:
        _ = dialect
        if value is None:
            return ()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return ()
        return tuple(
            Asset(name=str(item["name"]), version=str(item["version"]))
            for item in cast(list[Any], loaded)
            if isinstance(item, dict)
        )


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Registry tables -------------------------------------------------------------

channel_table = Table(
    "channel",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("classification", String(255), nullable=False, default=""),
)

default_channel_table = Table(
    "default_channel",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("repository", String(512), nullable=False),
    Column("branch", String(255), nullable=False),
    Column("channel_id", Integer, ForeignKey("channel.id"), nullable=False),
    Column("enabled", Boolean, nullable=False, default=True),
)

subscription_table = Table(
    "subscription",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("channel_id", Integer, ForeignKey("channel.id"), nullable=False),
    Column("source_repository", String(512), nullable=False),
    Column("target_repository", String(512), nullable=False),
    Column("target_branch", String(255), nullable=False),
    Column("policy", SubscriptionPolicyType(), nullable=False),
    Column("enabled", Boolean, nullable=False, default=True),
    Column("last_applied_build_id", Integer, nullable=True),
)

build_table = Table(
    "build",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("repository", String(512), nullable=False),
    Column("branch", String(255), nullable=False),
    Column("commit", String(64), nullable=False),
    Column("build_number", String(255), nullable=False),
    Column("assets", AssetListType(), nullable=False),
    Column("date_produced", UTCDateTime(), nullable=False),
)

repository_branch_table = Table(
    "repository_branch",
    mapper_registry.metadata,
    Column("repository", String(512), primary_key=True),
    Column("branch", String(255), primary_key=True),
    Column("merge_policies", MergePolicyListType(), nullable=False),
)

repository_branch_update_table = Table(
    "repository_branch_update",
    mapper_registry.metadata,
    Column("repository", String(512), primary_key=True),
    Column("branch", String(255), primary_key=True),
    Column("action", Text, nullable=False),
    Column("method", String(255), nullable=False),
    Column("arguments", Text, nullable=False),
    Column("success", Boolean, nullable=False),
    Column("error_message", Text, nullable=True),
    Column("timestamp", UTCDateTime(), nullable=False),
)

# Actor runtime tables --------------------------------------------------------

actor_state_table = Table(
    "actor_state",
    mapper_registry.metadata,
    Column("actor_id", String(1024), primary_key=True),
    Column("key", String(255), primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

actor_reminder_table = Table(
    "actor_reminder",
    mapper_registry.metadata,
    Column("actor_id", String(1024), primary_key=True),
    Column("name", String(255), primary_key=True),
    Column("due_at", UTCDateTime(), nullable=False, index=True),
    Column("period_seconds", Float, nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the registry entities."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Channel, channel_table)

    mapper_registry.map_imperatively(
        DefaultChannel,
        default_channel_table,
        properties={"channel": relationship(Channel, lazy="joined")},
    )

    mapper_registry.map_imperatively(
        Subscription,
        subscription_table,
        properties={"channel": relationship(Channel, lazy="joined")},
    )

    mapper_registry.map_imperatively(Build, build_table)
    mapper_registry.map_imperatively(RepositoryBranch, repository_branch_table)
    mapper_registry.map_imperatively(RepositoryBranchUpdate, repository_branch_update_table)

    return mapper_registry

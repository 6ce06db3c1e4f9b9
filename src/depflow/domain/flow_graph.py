"""Repository/branch flow topology derived from default channels and subscriptions.

Nodes are ``repository@branch`` pairs, keyed case-insensitively with any
``refs/heads/`` prefix removed from the branch. An edge ``source -> target``
exists for every subscription whose source repository publishes to the
subscription's channel by default.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from depflow.domain.model import UpdateFrequency

if TYPE_CHECKING:
    from collections.abc import Iterable

    from depflow.domain.model import DefaultChannel, Subscription

log = getLogger(__name__)

REFS_HEADS_PREFIX: Final[str] = "refs/heads/"


def normalize_branch(branch: str) -> str:
    return branch.removeprefix(REFS_HEADS_PREFIX)


def node_key(repository: str, branch: str) -> str:
    return f"{repository}@{normalize_branch(branch)}".casefold()


@dataclass(eq=False, kw_only=True)
class DependencyFlowNode:
    repository: str
    branch: str
    output_channels: set[str] = field(default_factory=set)
    input_channels: set[str] = field(default_factory=set)
    incoming_edges: list[DependencyFlowEdge] = field(default_factory=list)
    outgoing_edges: list[DependencyFlowEdge] = field(default_factory=list)

    @property
    def key(self) -> str:
        return node_key(self.repository, self.branch)

    def __str__(self) -> str:
        return f"{self.repository}@{self.branch}"


@dataclass(eq=False, kw_only=True)
class DependencyFlowEdge:
    from_node: DependencyFlowNode
    to_node: DependencyFlowNode
    subscription: Subscription

    @property
    def is_active(self) -> bool:
        """Whether updates actually flow along this edge."""

        return (
            self.subscription.enabled
            and self.subscription.policy.update_frequency is not UpdateFrequency.NONE
        )


@dataclass(eq=False)
class DependencyFlowGraph:
    nodes: list[DependencyFlowNode] = field(default_factory=list)
    edges: list[DependencyFlowEdge] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        default_channels: Iterable[DefaultChannel],
        subscriptions: Iterable[Subscription],
        additional_defaults: Iterable[DefaultChannel] | None = None,
    ) -> DependencyFlowGraph:
        defaults = list(default_channels)
        if additional_defaults is not None:
            defaults.extend(additional_defaults)

        graph = cls()
        nodes: dict[str, DependencyFlowNode] = {}

        def get_or_create(repository: str, branch: str) -> DependencyFlowNode:
            key = node_key(repository, branch)
            node = nodes.get(key)
            if node is None:
                node = DependencyFlowNode(repository=repository, branch=normalize_branch(branch))
                nodes[key] = node
                graph.nodes.append(node)
            return node

        for default in defaults:
            node = get_or_create(default.repository, default.branch)
            node.output_channels.add(default.channel.name)

        for subscription in subscriptions:
            target = get_or_create(subscription.target_repository, subscription.target_branch)
            target.input_channels.add(subscription.channel.name)

            source_repository = subscription.source_repository.casefold()
            matched = False
            for default in defaults:
                if default.channel.name != subscription.channel.name:
                    continue
                if default.repository.casefold() != source_repository:
                    continue
                source = get_or_create(default.repository, default.branch)
                graph._connect(source, target, subscription)
                matched = True
            if not matched:
                log.debug(
                    "Subscription %s has no default channel publishing %s from %s",
                    subscription.id,
                    subscription.channel.name,
                    subscription.source_repository,
                )

        return graph

    def get_node(self, repository: str, branch: str) -> DependencyFlowNode | None:
        key = node_key(repository, branch)
        for node in self.nodes:
            if node.key == key:
                return node
        return None

    def filtered(
        self,
        channel: str | None = None,
        *,
        include_disabled_edges: bool = False,
    ) -> DependencyFlowGraph:
        """Return the subgraph feeding the nodes that publish to ``channel``.

        Nodes whose output channels contain ``channel`` (case-insensitive substring)
        are the seeds; everything reachable from them by walking incoming edges is
        kept. Without a channel every node is kept. Edges that do not flow
        (disabled, or update frequency ``none``) are dropped unless
        ``include_disabled_edges`` is set.
        """

        edges = [edge for edge in self.edges if include_disabled_edges or edge.is_active]

        if channel is None:
            reached = {node.key for node in self.nodes}
            kept_edges = edges
        else:
            needle = channel.casefold()
            incoming: dict[str, list[DependencyFlowEdge]] = {}
            for edge in edges:
                incoming.setdefault(edge.to_node.key, []).append(edge)

            queue = deque(
                node
                for node in self.nodes
                if any(needle in name.casefold() for name in node.output_channels)
            )
            reached = {node.key for node in queue}
            kept_ids: set[int] = set()
            while queue:
                node = queue.popleft()
                for edge in incoming.get(node.key, ()):
                    kept_ids.add(id(edge))
                    if edge.from_node.key not in reached:
                        reached.add(edge.from_node.key)
                        queue.append(edge.from_node)
            kept_edges = [edge for edge in edges if id(edge) in kept_ids]

        subgraph = DependencyFlowGraph()
        copies: dict[str, DependencyFlowNode] = {}
        for node in self.nodes:
            if node.key not in reached:
                continue
            clone = DependencyFlowNode(
                repository=node.repository,
                branch=node.branch,
                output_channels=set(node.output_channels),
                input_channels=set(node.input_channels),
            )
            copies[node.key] = clone
            subgraph.nodes.append(clone)
        for edge in kept_edges:
            subgraph._connect(
                copies[edge.from_node.key],
                copies[edge.to_node.key],
                edge.subscription,
            )
        return subgraph

    def _connect(
        self,
        source: DependencyFlowNode,
        target: DependencyFlowNode,
        subscription: Subscription,
    ) -> DependencyFlowEdge:
        edge = DependencyFlowEdge(from_node=source, to_node=target, subscription=subscription)
        source.outgoing_edges.append(edge)
        target.incoming_edges.append(edge)
        self.edges.append(edge)
        return edge

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from depflow.app import get_overall_flow_graph, load_merge_policies, process_reminders, update_assets
from depflow.config import ConfigurationError, configure_logging
from depflow.domain.model import Channel, DefaultChannel

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from depflow.domain.flow_graph import DependencyFlowGraph

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Flow dependency updates between repositories")
    subparsers = parser.add_subparsers(dest="command", required=True)

    update = subparsers.add_parser(
        "update-assets",
        help="Flow the assets of a registered build through a subscription",
    )
    update.add_argument("--subscription-id", type=str, required=True, help="Subscription id")
    update.add_argument("--build-id", type=int, required=True, help="Registered build id")

    reminders = subparsers.add_parser(
        "process-reminders",
        help="Deliver due pull request check and update reminders",
    )
    reminders.add_argument(
        "--once",
        action="store_true",
        help="Deliver the currently due reminders and exit",
    )
    reminders.add_argument(
        "--poll-interval",
        type=float,
        default=30.0,
        help="Seconds between polls when running continuously (default: %(default)s)",
    )

    graph = subparsers.add_parser("flow-graph", help="Print the dependency flow graph")
    graph.add_argument(
        "--channel",
        type=str,
        help="Only keep the subgraph feeding nodes that publish to this channel",
    )
    graph.add_argument(
        "--include-disabled",
        action="store_true",
        help="Keep disabled subscriptions and subscriptions that never update",
    )
    graph.add_argument(
        "--seed-channel",
        action="append",
        default=[],
        metavar="REPO@BRANCH=CHANNEL",
        help="Extra default channel declaration (repeatable)",
    )

    policies = subparsers.add_parser(
        "validate-policies",
        help="Validate a JSON file of merge policy definitions",
    )
    policies.add_argument("file", type=Path, help="JSON list of merge policies")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _parse_seed_channel(value: str) -> DefaultChannel:
    location, separator, channel = value.rpartition("=")
    repository, at, branch = location.rpartition("@")
    if not separator or not at or not repository or not branch or not channel:
        raise ValueError(f"Invalid seed channel (expected REPO@BRANCH=CHANNEL): {value}")
    return DefaultChannel(repository=repository, branch=branch, channel=Channel(name=channel))


def _render_graph(graph: DependencyFlowGraph) -> str:
    lines = [f"{len(graph.nodes)} nodes, {len(graph.edges)} edges"]
    for node in sorted(graph.nodes, key=str):
        outputs = ", ".join(sorted(node.output_channels)) or "-"
        lines.append(f"{node} publishes: {outputs}")
    for edge in graph.edges:
        subscription = edge.subscription
        lines.append(
            f"{edge.from_node} -> {edge.to_node} "
            f"[{subscription.channel.name} ({subscription.policy.update_frequency})]"
        )
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    try:
        configure_logging()
    except ConfigurationError as exc:
        sys.stderr.write(f"{exc}\n")
        sys.exit(2)
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        subscription_id: UUID | None = None
        seeds: list[DefaultChannel] = []
        if parsed_args.command == "update-assets":
            subscription_id = _parse_uuid(parsed_args.subscription_id)
        elif parsed_args.command == "process-reminders":
            if parsed_args.poll_interval <= 0:
                raise ValueError("Poll interval must be positive")  # noqa: TRY301
        elif parsed_args.command == "flow-graph":
            seeds = [_parse_seed_channel(value) for value in parsed_args.seed_channel]
        elif parsed_args.command == "validate-policies":
            load_merge_policies(parsed_args.file)
    except (ValueError, OSError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "update-assets":
            assert subscription_id is not None
            update_assets(subscription_id=subscription_id, build_id=parsed_args.build_id)
        elif parsed_args.command == "process-reminders":
            delivered = process_reminders(
                once=parsed_args.once,
                poll_interval=parsed_args.poll_interval,
            )
            log.info("Delivered %d reminders", delivered)
        elif parsed_args.command == "flow-graph":
            graph = get_overall_flow_graph(additional_seed_channels=seeds).filtered(
                parsed_args.channel,
                include_disabled_edges=parsed_args.include_disabled,
            )
            sys.stdout.write(_render_graph(graph) + "\n")
        elif parsed_args.command == "validate-policies":
            log.info("Merge policies in %s are valid", parsed_args.file)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

from __future__ import annotations

import json
import uuid
from typing import TYPE_CHECKING

import pytest

from depflow.domain.flow_graph import DependencyFlowGraph
from depflow.domain.model import DefaultChannel
from depflow.ui import cli
from tests.helpers.registry import RUNTIME, SDK, make_subscription

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


def test_update_assets_command(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}
    subscription_id = uuid.uuid4()

    def fake_update(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr(cli, "update_assets", fake_update)

    cli.main(["update-assets", "--subscription-id", str(subscription_id), "--build-id", "12"])

    assert captured == {"subscription_id": subscription_id, "build_id": 12}


def test_update_assets_rejects_malformed_subscription_id(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "update_assets", lambda **_: None)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["update-assets", "--subscription-id", "nope", "--build-id", "12"])

    assert excinfo.value.code == 2


def test_fatal_errors_exit_with_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_update(**_: object) -> None:
        raise RuntimeError("GitHub is down")

    monkeypatch.setattr(cli, "update_assets", failing_update)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["update-assets", "--subscription-id", str(uuid.uuid4()), "--build-id", "1"])

    assert excinfo.value.code == 1


def test_process_reminders_command(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_process(**kwargs: object) -> int:
        captured.update(kwargs)
        return 3

    monkeypatch.setattr(cli, "process_reminders", fake_process)

    cli.main(["process-reminders", "--once", "--poll-interval", "5"])

    assert captured == {"once": True, "poll_interval": 5.0}


def test_process_reminders_rejects_non_positive_interval(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "process_reminders", lambda **_: 0)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["process-reminders", "--poll-interval", "0"])

    assert excinfo.value.code == 2


def test_flow_graph_command_prints_graph(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    seeds_seen: list[Sequence[DefaultChannel]] = []

    def fake_graph(*, additional_seed_channels: Sequence[DefaultChannel] = ()) -> DependencyFlowGraph:
        seeds_seen.append(additional_seed_channels)
        return DependencyFlowGraph.build(
            additional_seed_channels,
            [make_subscription(source_repository=RUNTIME, target_repository=SDK)],
        )

    monkeypatch.setattr(cli, "get_overall_flow_graph", fake_graph)

    cli.main(["flow-graph", "--seed-channel", f"{RUNTIME}@main=.NET 9"])

    ((seed,),) = seeds_seen
    assert (seed.repository, seed.branch, seed.channel.name) == (RUNTIME, "main", ".NET 9")
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "2 nodes, 1 edges"
    assert f"{RUNTIME}@main publishes: .NET 9" in lines
    assert f"{SDK}@main publishes: -" in lines
    assert lines[-1] == f"{RUNTIME}@main -> {SDK}@main [.NET 9 (everyBuild)]"


@pytest.mark.parametrize("value", ["no-separators", "repo@=channel", "repo@main=", "@main=ch"])
def test_flow_graph_rejects_malformed_seed_channels(
    monkeypatch: pytest.MonkeyPatch,
    value: str,
) -> None:
    monkeypatch.setattr(cli, "get_overall_flow_graph", lambda **_: DependencyFlowGraph())

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["flow-graph", "--seed-channel", value])

    assert excinfo.value.code == 2


def test_validate_policies_command(tmp_path: Path) -> None:
    path = tmp_path / "policies.json"
    path.write_text(json.dumps([{"name": "Standard"}]), encoding="utf-8")

    cli.main(["validate-policies", str(path)])


@pytest.mark.parametrize("content", ['[{"name": "Unknown"}]', "not json"])
def test_validate_policies_rejects_invalid_files(tmp_path: Path, content: str) -> None:
    path = tmp_path / "policies.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["validate-policies", str(path)])

    assert excinfo.value.code == 2


def test_validate_policies_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["validate-policies", str(tmp_path / "missing.json")])

    assert excinfo.value.code == 2


def test_parse_seed_channel_keeps_branch_slashes() -> None:
    seed = cli._parse_seed_channel(f"{RUNTIME}@release/9.0=.NET 9")  # noqa: SLF001  # type: ignore[reportPrivateUsage]

    assert (seed.repository, seed.branch, seed.channel.name) == (RUNTIME, "release/9.0", ".NET 9")


def test_unknown_log_level_exits_with_two(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("DEPFLOW_LOG_LEVEL", "chatty")
    monkeypatch.setattr(cli, "update_assets", lambda **_: None)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["update-assets", "--subscription-id", str(uuid.uuid4()), "--build-id", "1"])

    assert excinfo.value.code == 2
    assert "DEPFLOW_LOG_LEVEL" in capsys.readouterr().err

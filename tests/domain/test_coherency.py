from __future__ import annotations

import pytest

from depflow.domain.coherency import ManifestUpdateCalculator, required_non_coherency_updates
from depflow.domain.errors import CoherencyError
from depflow.domain.model import Asset, DependencyDetail, DependencySnapshot
from tests.helpers.registry import ARCADE, RUNTIME
from tests.helpers.remote import FakeRemote

EMSDK = "https://github.com/dotnet/emsdk"


def test_non_coherency_updates_follow_produced_assets() -> None:
    snapshot = DependencySnapshot.of(
        [
            DependencyDetail(name="Microsoft.NETCore.App.Ref", version="9.0.0", commit="old"),
            DependencyDetail(name="Pinned.Package", version="1.0.0", pinned=True),
            DependencyDetail(
                name="Follower", version="1.0.0", coherent_parent_dependency_name="Parent"
            ),
            DependencyDetail(name="Current", version="2.0.0"),
        ]
    )
    assets = [
        Asset("microsoft.netcore.app.ref", "9.0.1"),
        Asset("Pinned.Package", "1.1.0"),
        Asset("Follower", "1.1.0"),
        Asset("Current", "2.0.0"),
        Asset("Unrelated", "5.0.0"),
    ]

    updates = required_non_coherency_updates(RUNTIME, "sha1", assets, snapshot)

    assert len(updates) == 1
    (update,) = updates
    assert update.from_.version == "9.0.0"
    assert (update.to.name, update.to.version, update.to.commit, update.to.repo_uri) == (
        "Microsoft.NETCore.App.Ref",
        "9.0.1",
        "sha1",
        RUNTIME,
    )


def test_coherent_parent_chain_is_resolved_parents_first() -> None:
    remote = FakeRemote()
    remote.set_manifest(
        RUNTIME,
        "r1",
        [DependencyDetail(name="Middle", version="2.0.0", repo_uri=EMSDK, commit="e2")],
    )
    remote.set_manifest(
        EMSDK,
        "e2",
        [DependencyDetail(name="Leaf", version="3.0.0", repo_uri=ARCADE, commit="a3")],
    )
    snapshot = DependencySnapshot.of(
        [
            DependencyDetail(
                name="Leaf",
                version="1.0.0",
                repo_uri=ARCADE,
                commit="a1",
                coherent_parent_dependency_name="Middle",
            ),
            DependencyDetail(
                name="Middle",
                version="1.0.0",
                repo_uri=EMSDK,
                commit="e1",
                coherent_parent_dependency_name="Root",
            ),
            DependencyDetail(name="Root", version="9.0.1", repo_uri=RUNTIME, commit="r1"),
        ]
    )

    updates = ManifestUpdateCalculator(remote).required_coherency_updates(snapshot)

    assert [(update.to.name, update.to.version, update.to.commit) for update in updates] == [
        ("Middle", "2.0.0", "e2"),
        ("Leaf", "3.0.0", "a3"),
    ]


def test_missing_coherent_parent_raises() -> None:
    snapshot = DependencySnapshot.of(
        [DependencyDetail(name="Leaf", version="1.0.0", coherent_parent_dependency_name="Gone")]
    )

    with pytest.raises(CoherencyError, match="Gone"):
        ManifestUpdateCalculator(FakeRemote()).required_coherency_updates(snapshot)


def test_parent_manifest_without_dependency_raises() -> None:
    snapshot = DependencySnapshot.of(
        [
            DependencyDetail(name="Leaf", version="1.0.0", coherent_parent_dependency_name="Root"),
            DependencyDetail(name="Root", version="9.0.1", repo_uri=RUNTIME, commit="r1"),
        ]
    )

    with pytest.raises(CoherencyError, match="does not declare"):
        ManifestUpdateCalculator(FakeRemote()).required_coherency_updates(snapshot)


def test_coherent_parent_cycle_raises() -> None:
    snapshot = DependencySnapshot.of(
        [
            DependencyDetail(name="A", version="1.0.0", coherent_parent_dependency_name="B"),
            DependencyDetail(name="B", version="1.0.0", coherent_parent_dependency_name="A"),
        ]
    )

    with pytest.raises(CoherencyError, match="cycle"):
        ManifestUpdateCalculator(FakeRemote()).required_coherency_updates(snapshot)


def test_pinned_follower_is_left_alone() -> None:
    snapshot = DependencySnapshot.of(
        [
            DependencyDetail(
                name="Leaf",
                version="1.0.0",
                pinned=True,
                coherent_parent_dependency_name="Root",
            ),
            DependencyDetail(name="Root", version="9.0.1", repo_uri=RUNTIME, commit="r1"),
        ]
    )

    assert ManifestUpdateCalculator(FakeRemote()).required_coherency_updates(snapshot) == []


def _common_child_snapshot() -> DependencySnapshot:
    return DependencySnapshot.of(
        [
            DependencyDetail(
                name="First",
                version="1.0.0",
                repo_uri=RUNTIME,
                commit="f1",
                common_child_dependency_name="Shared",
            ),
            DependencyDetail(
                name="Second",
                version="1.0.0",
                repo_uri=EMSDK,
                commit="s1",
                common_child_dependency_name="Shared",
            ),
            DependencyDetail(name="Shared", version="1.0.0", repo_uri=ARCADE, commit="c1"),
        ]
    )


def test_common_child_is_aligned_when_members_agree() -> None:
    remote = FakeRemote()
    declared = DependencyDetail(name="Shared", version="2.0.0", repo_uri=ARCADE, commit="c2")
    remote.set_manifest(RUNTIME, "f1", [declared])
    remote.set_manifest(EMSDK, "s1", [declared])

    updates = ManifestUpdateCalculator(remote).required_coherency_updates(_common_child_snapshot())

    assert [(update.to.name, update.to.version, update.to.commit) for update in updates] == [
        ("Shared", "2.0.0", "c2")
    ]


def test_common_child_disagreement_produces_no_update() -> None:
    remote = FakeRemote()
    remote.set_manifest(
        RUNTIME, "f1", [DependencyDetail(name="Shared", version="2.0.0", commit="c2")]
    )
    remote.set_manifest(EMSDK, "s1", [DependencyDetail(name="Shared", version="3.0.0", commit="c3")])

    updates = ManifestUpdateCalculator(remote).required_coherency_updates(_common_child_snapshot())

    assert updates == []

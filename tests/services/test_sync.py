"""Tests for SyncService against a bare remote and two clones."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from revctl.domain.approvals import parse_approvals
from revctl.domain.marks import ReviewStatus, parse_mark
from revctl.infrastructure.git import GitTimeoutError
from revctl.infrastructure.repository import ReviewRepository
from revctl.services.ranges import RangeService
from revctl.services.review import ReviewService
from revctl.services.status import StatusService
from revctl.services.sync import STAGING_PREFIX, SyncService
from tests.conftest import approve_ok, git, rev_repo


def _sync_ok(repo: ReviewRepository, **kwargs: Any) -> dict[str, Any]:
    result = SyncService(repo).sync(**kwargs)
    assert result.ok, result.error
    return result.data


def _proto_reviewers(repo: ReviewRepository) -> set[str]:
    rng = RangeService(repo).resolve_range()
    blob = next(c.content_id for c in rng.changes if c.path == "src/schema.proto")
    return {a.reviewer for a in parse_approvals(blob, repo.approvals.get(blob))}


@pytest.fixture
def clones(remote_pair: tuple[Path, Path, Path]) -> tuple[Path, ReviewRepository, ReviewRepository]:
    remote, first, second = remote_pair
    return remote, rev_repo(first, "alice"), rev_repo(second, "bob")


class TestSync:
    def test_nothing_to_do(self, clones: tuple[Path, ReviewRepository, ReviewRepository]) -> None:
        _, alice, _ = clones
        data = _sync_ok(alice)
        assert data["changed"] is False
        assert {s["action"] for s in data["namespaces"].values()} == {"up-to-date"}

    def test_push_publishes_local_notes(self, clones: tuple[Path, ReviewRepository, ReviewRepository]) -> None:
        remote, alice, _ = clones
        approve_ok(alice, "src/*")
        data = _sync_ok(alice)
        assert data["namespaces"]["approvals"]["action"] == "ahead"
        assert data["namespaces"]["approvals"]["pushed"] is True
        ref = alice.settings.notes.approvals_ref
        assert git(remote, "rev-parse", ref) == alice.git.rev_parse(ref)

    def test_no_push(self, clones: tuple[Path, ReviewRepository, ReviewRepository]) -> None:
        remote, alice, _ = clones
        approve_ok(alice, "src/*")
        _sync_ok(alice, push=False)
        assert git(remote, "for-each-ref", "refs/notes") == ""

    def test_union_of_both_clones(self, clones: tuple[Path, ReviewRepository, ReviewRepository]) -> None:
        _, alice, bob = clones
        approve_ok(alice, "src/schema.proto", scrutiny=2)
        approve_ok(bob, "*.proto", scrutiny=2)

        _sync_ok(alice)
        bob_data = _sync_ok(bob)
        assert bob_data["namespaces"]["approvals"]["action"] == "merged"
        alice_data = _sync_ok(alice)
        assert alice_data["namespaces"]["approvals"]["action"] == "fast-forward"

        assert _proto_reviewers(alice) == _proto_reviewers(bob) == {"alice", "bob"}
        ref = alice.settings.notes.approvals_ref
        assert alice.git.rev_parse(ref) == bob.git.rev_parse(ref)

    def test_idempotent(self, clones: tuple[Path, ReviewRepository, ReviewRepository]) -> None:
        _, alice, bob = clones
        approve_ok(alice, "src/*")
        approve_ok(bob, "src/*")
        _sync_ok(alice)
        _sync_ok(bob)
        _sync_ok(alice)

        ref = alice.settings.notes.approvals_ref
        tip = alice.git.rev_parse(ref)
        for repo in (alice, bob, alice):
            data = _sync_ok(repo)
            assert data["changed"] is False
        assert alice.git.rev_parse(ref) == tip

    def test_marks_join_across_clones(self, clones: tuple[Path, ReviewRepository, ReviewRepository]) -> None:
        _, alice, bob = clones
        head = alice.git.resolve_commit("HEAD")
        ReviewService(alice).mark([head], status=ReviewStatus.TESTED)
        ReviewService(bob).mark([head], status=ReviewStatus.REVIEWED)

        _sync_ok(alice)
        _sync_ok(bob)
        _sync_ok(alice)
        for repo in (alice, bob):
            mark = parse_mark(head, repo.reviews.get(head))
            assert mark is not None
            assert mark.status is ReviewStatus.TESTED
            assert mark.reviewer == "alice"

    def test_synced_approvals_satisfy_policy(
        self, clones: tuple[Path, ReviewRepository, ReviewRepository]
    ) -> None:
        _, alice, bob = clones
        approve_ok(alice, "src/*")
        approve_ok(alice, "*.proto", scrutiny=2)
        _sync_ok(alice)
        assert StatusService(bob).status().data["satisfied"] is False
        _sync_ok(bob)
        assert StatusService(bob).status().data["satisfied"] is True

    def test_staging_ref_is_removed(self, clones: tuple[Path, ReviewRepository, ReviewRepository]) -> None:
        _, alice, bob = clones
        approve_ok(alice, "src/*")
        _sync_ok(alice)
        _sync_ok(bob)
        assert git(bob.root, "for-each-ref", STAGING_PREFIX) == ""


class TestSyncRaces:
    def test_local_write_during_merge_is_kept(
        self, clones: tuple[Path, ReviewRepository, ReviewRepository], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _, alice, bob = clones
        approve_ok(alice, "src/*")
        approve_ok(bob, "*.proto", scrutiny=2)
        _sync_ok(alice)

        original = bob.git.is_ancestor
        calls = {"n": 0}

        def racing_is_ancestor(a: str, b: str) -> bool:
            calls["n"] += 1
            if calls["n"] == 1:
                bob.approvals.update(lambda snap: {"f" * 40: "bob ! 2024-01-01T00:00:00Z\n"}, message="race")
            return original(a, b)

        monkeypatch.setattr(bob.git, "is_ancestor", racing_is_ancestor)
        data = _sync_ok(bob)
        assert data["namespaces"]["approvals"]["attempts"] == 2
        assert bob.approvals.get("f" * 40) is not None
        assert _proto_reviewers(bob) == {"alice", "bob"}

    def test_rejected_push_exhausts_to_conflict(
        self, clones: tuple[Path, ReviewRepository, ReviewRepository], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _, alice, _ = clones
        approve_ok(alice, "src/*")
        tip = alice.git.rev_parse(alice.settings.notes.approvals_ref)
        monkeypatch.setattr(alice.git, "push_ref", lambda *args, **kwargs: False)

        result = SyncService(alice).sync()
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "CONFLICT"
        assert result.error.detail["attempts"] == alice.settings.sync.max_retries
        assert alice.git.rev_parse(alice.settings.notes.approvals_ref) == tip

    def test_timeout(
        self, clones: tuple[Path, ReviewRepository, ReviewRepository], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _, alice, _ = clones

        def slow(*args: Any, **kwargs: Any) -> bool:
            raise GitTimeoutError(("fetch",), kwargs.get("timeout") or 0)

        monkeypatch.setattr(alice.git, "fetch_ref", slow)
        result = SyncService(alice).sync(timeout=1)
        assert result.error is not None
        assert result.error.code == "TIMEOUT"

    def test_cancelled(
        self, clones: tuple[Path, ReviewRepository, ReviewRepository], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _, alice, _ = clones

        def interrupted(*args: Any, **kwargs: Any) -> bool:
            raise KeyboardInterrupt

        monkeypatch.setattr(alice.git, "fetch_ref", interrupted)
        result = SyncService(alice).sync()
        assert result.error is not None
        assert result.error.code == "CANCELLED"

    def test_unknown_remote(self, clones: tuple[Path, ReviewRepository, ReviewRepository]) -> None:
        _, alice, _ = clones
        result = SyncService(alice).sync("nowhere", timeout=30)
        assert result.error is not None
        assert result.error.code == "GIT_ERROR"

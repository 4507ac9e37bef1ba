"""Tests for the operation-specific Rich renderers."""

from __future__ import annotations

from typing import Any

from revctl.output.renderers import render_quiet, render_result
from revctl.services.result import ServiceResult


def _outcome(pattern: str, *, have: int, required: int = 1, approvers: list[str] | None = None) -> dict[str, Any]:
    return {
        "pattern": pattern,
        "scrutiny": 2,
        "required": required,
        "have": have,
        "satisfied": have >= required,
        "missing": max(required - have, 0),
        "approvers": approvers or [],
        "candidates": ["alice", "charlie"],
    }


def _status(*, satisfied: bool) -> ServiceResult:
    proto = _outcome("*.proto", have=1 if satisfied else 0, approvers=["alice"] if satisfied else None)
    return ServiceResult(
        ok=True,
        op="status",
        data={
            "base": "1111111111aaaa",
            "head": "2222222222bbbb",
            "satisfied": satisfied,
            "count": 2,
            "unsatisfied_count": 0 if satisfied else 1,
            "paths": [
                {
                    "path": "src/main.rs",
                    "content_id": "c1",
                    "satisfied": True,
                    "rules": [_outcome("src/*", have=1, approvers=["bob"])],
                },
                {"path": "src/schema.proto", "content_id": "c2", "satisfied": satisfied, "rules": [proto]},
            ],
        },
    )


class TestStatus:
    def test_unsatisfied_table(self) -> None:
        out = render_result(_status(satisfied=False))
        assert "1111111111..2222222222" in out
        assert "src/schema.proto" in out
        assert "alice, charlie" in out
        assert "0/1" in out
        assert "src/main.rs" not in out
        assert "1 of 2 path(s) need approval" in out

    def test_verbose_shows_satisfied_rows(self) -> None:
        out = render_result(_status(satisfied=False), verbose=True)
        assert "src/main.rs" in out
        assert "bob" in out

    def test_all_satisfied(self) -> None:
        out = render_result(_status(satisfied=True))
        assert "all 2 path(s) satisfied" in out

    def test_quiet_lists_unsatisfied_paths(self) -> None:
        assert render_quiet(_status(satisfied=False)) == "src/schema.proto"
        assert render_quiet(_status(satisfied=True)) == ""


class TestOtherOps:
    def test_sync(self) -> None:
        result = ServiceResult(
            ok=True,
            op="sync",
            data={
                "remote": "origin",
                "namespaces": {
                    "approvals": {"action": "merged", "pushed": True},
                    "reviews": {"action": "up-to-date", "pushed": False},
                },
            },
        )
        out = render_result(result)
        assert "approvals: merged, pushed" in out
        assert "reviews: up-to-date" in out

    def test_unreviewed(self) -> None:
        result = ServiceResult(
            ok=True,
            op="unreviewed",
            data={
                "count": 1,
                "skipped": 2,
                "items": [{"commit": "deadbeef00112233", "author": "bob", "summary": "fix", "kind": "merge"}],
            },
        )
        out = render_result(result)
        assert "deadbeef00" in out
        assert "1 unreviewed commit(s) (2 skipped)" in out
        assert render_quiet(result) == "deadbeef00112233"

    def test_rules_marks_unsatisfiable(self) -> None:
        result = ServiceResult(
            ok=True,
            op="load_rules",
            data={
                "rules": [
                    {"pattern": "docs/*", "scrutiny": 1, "required": 3, "reviewers": ["ann"], "satisfiable": False}
                ]
            },
        )
        out = render_result(result)
        assert "3 (unsatisfiable)" in out
        assert "1 rule(s)" in out

    def test_generic_fallback(self) -> None:
        out = render_result(ServiceResult(ok=True, op="custom", data={"answer": 42}))
        assert out.splitlines()[0] == "OK  custom"
        assert "  answer: 42" in out

    def test_mark_flags_checkpoint(self) -> None:
        item = {"commit": "c" * 40, "status": "reviewed", "reviewer": "alice", "comment": None, "checkpoint": True}
        out = render_result(ServiceResult(ok=True, op="mark", data={"items": [item]}))
        assert "cccccccccc  reviewed by alice  (checkpoint)" in out

    def test_quiet_without_items(self) -> None:
        assert render_quiet(ServiceResult(ok=True, op="sync", data={})) == "OK: sync"


class TestErrors:
    def test_error_line(self) -> None:
        result = ServiceResult.failure("approve", "NOT_FOUND", "Nothing matches docs/*", detail={"target": "docs/*"})
        out = render_result(result)
        assert "ERROR" in out
        assert out.splitlines()[0] == "ERROR  approve [NOT_FOUND] - Nothing matches docs/*"
        assert "target" not in out

    def test_verbose_shows_detail(self) -> None:
        result = ServiceResult.failure("approve", "NOT_FOUND", "no match", detail={"target": "docs/*"})
        assert "target: docs/*" in render_result(result, verbose=True)

    def test_quiet_error(self) -> None:
        result = ServiceResult.failure("sync", "TIMEOUT", "took too long")
        assert render_quiet(result) == "ERROR: sync - took too long"

    def test_telemetry_tree(self) -> None:
        result = ServiceResult(
            ok=True,
            op="approve",
            data={"reviewer": "alice", "items": []},
            meta={"telemetry": {"name": "ApprovalService.approve", "duration_ms": 3.5, "children": [
                {"name": "changed_paths", "duration_ms": 1.25, "annotations": {"paths": 2}},
            ]}},
        )
        out = render_result(result, verbose=True)
        assert "ApprovalService.approve" in out
        assert "changed_paths  (paths=2)" in out

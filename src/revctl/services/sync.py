"""SyncService: exchange both annotation namespaces with a remote.

Per namespace, one round is:

1. fetch the remote ref into a private staging ref;
2. merge it into the local ref: fast-forward when the local tip is an
   ancestor of the remote tip, otherwise a merge commit whose tree is the
   per-key merge (set union for approvals, lattice join for marks) and
   whose second parent is the remote tip;
3. move the local ref with compare-and-swap against its prior tip;
4. optionally push, leased on the remote tip seen in step 1.

Losing either race (local CAS or remote lease) restarts the round, up to
``[sync] max_retries`` rounds. Every network call gets what remains of
the overall timeout. A second sync with no intervening writes is a no-op.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from revctl.domain.approvals import merge_approval_notes
from revctl.domain.marks import merge_mark_notes
from revctl.infrastructure.git import GitError, GitTimeoutError
from revctl.infrastructure.notes import NotesConflictError, NotesNamespace, NotesSnapshot
from revctl.services.base import BaseService
from revctl.services.result import ServiceResult
from revctl.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)

STAGING_PREFIX = "refs/revctl/staging"

# (object, ours, theirs) -> merged note text
NoteMerger = Callable[[str, str, str], str]


def merge_approvals(obj: str, ours: str, theirs: str) -> str:
    return merge_approval_notes(ours, theirs)


def merge_marks(obj: str, ours: str, theirs: str) -> str:
    return merge_mark_notes(obj, ours, theirs)


def merge_snapshots(ours: NotesSnapshot, theirs: NotesSnapshot, merger: NoteMerger) -> dict[str, str]:
    """Changes that bring *ours* up to the merge of both snapshots.

    Keys on one side only are taken as they are; keys on both sides with
    different text go through *merger*.
    """
    changes: dict[str, str] = {}
    for obj, text in theirs.texts().items():
        mine = ours.get(obj)
        if mine is None:
            changes[obj] = text
        elif mine != text:
            changes[obj] = merger(obj, mine, text)
    return changes


class _Deadline:
    def __init__(self, seconds: float | None) -> None:
        self.seconds = seconds
        self._end = None if seconds is None else time.monotonic() + seconds

    def remaining(self, what: str) -> float | None:
        if self._end is None:
            return None
        left = self._end - time.monotonic()
        if left <= 0:
            raise GitTimeoutError((what,), self.seconds or 0)
        return left


class SyncService(BaseService):
    """Replicates approvals and review marks with a git remote."""

    def _namespaces(self) -> list[tuple[str, NotesNamespace, NoteMerger]]:
        return [
            ("approvals", self._repo.approvals, merge_approvals),
            ("reviews", self._repo.reviews, merge_marks),
        ]

    def sync_namespace(
        self,
        name: str,
        ns: NotesNamespace,
        merger: NoteMerger,
        *,
        remote: str,
        push: bool,
        deadline: _Deadline,
    ) -> dict[str, Any]:
        """Run fetch/merge/push rounds for one namespace.

        Raises:
            NotesConflictError: when every round lost a race.
            GitTimeoutError: when the deadline passes.
            GitError: on any other git failure.
        """
        git = self._repo.git
        staging = f"{STAGING_PREFIX}/{name}"
        try:
            for attempt in range(1, ns.max_retries + 1):
                stats = self._round(ns, merger, staging, remote=remote, push=push, deadline=deadline)
                if stats is not None:
                    stats["attempts"] = attempt
                    return stats
                logger.info("Sync of %s lost a race (attempt %d); retrying", ns.ref, attempt)
            raise NotesConflictError(ns.ref, ns.max_retries)
        finally:
            git.delete_ref(staging)

    def _round(
        self,
        ns: NotesNamespace,
        merger: NoteMerger,
        staging: str,
        *,
        remote: str,
        push: bool,
        deadline: _Deadline,
    ) -> dict[str, Any] | None:
        git = self._repo.git
        with trace_span(f"fetch {ns.ref}"):
            found = git.fetch_ref(remote, ns.ref, staging, timeout=deadline.remaining("fetch"))
        remote_tip = git.rev_parse(staging) if found else None
        local = ns.snapshot()

        action = "up-to-date"
        tip = local.tip
        if remote_tip is None and local.tip is not None:
            action = "ahead"
        elif remote_tip is not None and remote_tip != local.tip:
            if local.tip is None or git.is_ancestor(local.tip, remote_tip):
                try:
                    git.update_ref(ns.ref, remote_tip, local.tip)
                except GitError:
                    return None
                action, tip = "fast-forward", remote_tip
            elif git.is_ancestor(remote_tip, local.tip):
                action = "ahead"
            else:
                with trace_span(f"merge {ns.ref}"):
                    theirs = ns.snapshot(remote_tip)
                    changes = merge_snapshots(local, theirs, merger)
                    merged = ns.write(
                        local,
                        changes,
                        message=f"revctl: merge {ns.ref} from {remote}",
                        extra_parents=[remote_tip],
                        force=True,
                    )
                if merged is None:
                    return None
                action, tip = "merged", merged.tip
                logger.info("Merged %d note(s) from %s into %s", len(changes), remote, ns.ref)

        pushed = False
        if push and tip is not None and tip != remote_tip:
            with trace_span(f"push {ns.ref}"):
                ok = git.push_ref(
                    remote,
                    ns.ref,
                    ns.ref,
                    expect=remote_tip,
                    timeout=deadline.remaining("push"),
                )
            if not ok:
                return None
            pushed = True

        return {
            "ref": ns.ref,
            "action": action,
            "pushed": pushed,
            "local_before": local.tip,
            "remote_before": remote_tip,
            "tip": tip,
        }

    @traced
    def sync(
        self,
        remote: str | None = None,
        *,
        push: bool | None = None,
        timeout: float | None = None,
        dispatch: bool = True,
    ) -> ServiceResult:
        """Synchronise both namespaces with *remote* (default ``[sync] remote``)."""
        op = "sync"
        cfg = self.settings.sync
        remote = remote or cfg.remote
        push = cfg.push if push is None else push
        timeout = cfg.timeout if timeout is None else timeout
        deadline = _Deadline(timeout if timeout and timeout > 0 else None)
        warnings: list[str] = []

        namespaces: dict[str, dict[str, Any]] = {}
        try:
            for name, ns, merger in self._namespaces():
                namespaces[name] = self.sync_namespace(
                    name, ns, merger, remote=remote, push=push, deadline=deadline
                )
        except GitTimeoutError as exc:
            return ServiceResult.failure(
                op, "TIMEOUT", f"Sync with {remote} timed out: {exc}", detail={"remote": remote}
            )
        except NotesConflictError as exc:
            return ServiceResult.failure(
                op,
                "CONFLICT",
                f"{exc}; local annotations are kept, run sync again later",
                detail={"remote": remote, "ref": exc.ref, "attempts": exc.attempts},
            )
        except KeyboardInterrupt:
            return ServiceResult.failure(op, "CANCELLED", f"Sync with {remote} cancelled")
        except GitError as exc:
            return ServiceResult.failure(op, "GIT_ERROR", str(exc), detail={"remote": remote})

        stats = {
            "remote": remote,
            "push": push,
            "changed": any(s["action"] in ("fast-forward", "merged") or s["pushed"] for s in namespaces.values()),
            "namespaces": namespaces,
        }
        if dispatch:
            self._dispatch_event("post_sync", {"remote": remote, "stats": stats}, warnings)
        return ServiceResult(ok=True, op=op, data=stats, warnings=warnings)

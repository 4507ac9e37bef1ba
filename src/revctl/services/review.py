"""ReviewService: commit review marks and the unreviewed-commit listing.

Marks live in their own namespace keyed by commit id. Writing a mark
always joins with what is already there, so a commit marked ``tested``
stays ``tested`` whatever is marked later.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from revctl.domain.marks import CommitReviewMark, ReviewStatus, format_mark, join_marks, parse_mark
from revctl.infrastructure.git import CommitInfo, GitError
from revctl.infrastructure.notes import NotesConflictError, NotesSnapshot
from revctl.services.base import BaseService
from revctl.services.ranges import RangeResolutionError, RangeService
from revctl.services.result import ServiceResult
from revctl.services.telemetry import get_current_span, traced

logger = logging.getLogger(__name__)


class CommitKind(StrEnum):
    OURS = "ours"
    MERGE = "merge"
    NEW = "new"


def commit_kind(info: CommitInfo, identity: str | None) -> CommitKind:
    if identity and info.author == identity:
        return CommitKind.OURS
    if info.is_merge:
        return CommitKind.MERGE
    return CommitKind.NEW


class ReviewService(BaseService):
    """Marks commits as seen and lists the ones nobody has looked at."""

    @traced
    def mark(
        self,
        commits: list[str],
        *,
        status: ReviewStatus = ReviewStatus.REVIEWED,
        comment: str | None = None,
        reviewer: str | None = None,
        checkpoint: bool = False,
    ) -> ServiceResult:
        """Join *status* into the mark of each commit in one write.

        With *checkpoint*, the commits also become review horizons: nothing
        they reach is listed as unreviewed any more.
        """
        op = "mark"
        warnings: list[str] = []

        reviewer = reviewer or self._repo.identity() or ""
        failure = self._reviewer_failure(op, reviewer)
        if failure is not None:
            return failure

        oids: list[str] = []
        for rev in commits:
            try:
                oids.append(self._repo.git.resolve_commit(rev))
            except GitError:
                return ServiceResult.failure(
                    op, "NOT_FOUND", f"Unknown commit: {rev}", detail={"commit": rev}
                )
        oids = list(dict.fromkeys(oids))

        results: dict[str, CommitReviewMark] = {}

        def mutate(snapshot: NotesSnapshot) -> dict[str, str]:
            results.clear()
            changes: dict[str, str] = {}
            for oid in oids:
                new = CommitReviewMark(
                    commit=oid, status=status, reviewer=reviewer, comment=comment, checkpoint=checkpoint
                )
                existing = parse_mark(oid, snapshot.get(oid))
                joined = join_marks(existing, new) if existing else new
                results[oid] = joined
                changes[oid] = format_mark(joined)
            return changes

        try:
            self._repo.reviews.update(mutate, message=f"revctl: mark {len(oids)} commit(s) {status}")
        except NotesConflictError as exc:
            return ServiceResult.failure(op, "CONFLICT", str(exc))
        except GitError as exc:
            return ServiceResult.failure(op, "GIT_ERROR", str(exc))

        for oid, joined in results.items():
            if joined.status != status or joined.reviewer != reviewer:
                warnings.append(f"{oid[:10]} keeps existing mark {joined.status} by {joined.reviewer}")

        self._dispatch_event(
            "post_mark",
            {"reviewer": reviewer, "status": str(status), "commits": oids},
            warnings,
        )

        items = [
            {
                "commit": oid,
                "status": str(results[oid].status),
                "reviewer": results[oid].reviewer,
                "comment": results[oid].comment,
                "checkpoint": results[oid].checkpoint,
            }
            for oid in oids
        ]
        return ServiceResult(
            ok=True, op=op, data={"count": len(items), "items": items}, warnings=warnings
        )

    def unreviewed_commits(
        self,
        base: str,
        head: str,
        *,
        snapshot: NotesSnapshot | None = None,
    ) -> list[CommitInfo]:
        """Commits in ``base..head`` without any mark, oldest first.

        A checkpoint mark cuts the listing off: the checkpoint commit and
        everything it reaches are left out.
        """
        snapshot = snapshot if snapshot is not None else self._repo.reviews.snapshot()
        git = self._repo.git
        commits = git.commits(base, head)
        marks = {info.oid: parse_mark(info.oid, snapshot.get(info.oid)) for info in commits}
        horizons = [oid for oid, mark in marks.items() if mark is not None and mark.checkpoint]
        if horizons:
            logger.debug("Stopping unreviewed walk at %d checkpoint(s)", len(horizons))
            commits = git.commits(base, head, exclude=horizons)
        return [info for info in commits if marks[info.oid] is None]

    @traced
    def list_unreviewed(
        self,
        range_arg: str | None = None,
        *,
        skip_own: bool = False,
        skip_merges: bool = False,
    ) -> ServiceResult:
        """Unmarked commits of the range in chronological order."""
        op = "unreviewed"
        try:
            rng = RangeService(self._repo).resolve_range(range_arg)
            commits = self.unreviewed_commits(rng.base, rng.head)
        except RangeResolutionError as exc:
            return ServiceResult.failure(op, "RANGE_RESOLUTION_FAILED", str(exc))
        except GitError as exc:
            return ServiceResult.failure(op, "GIT_ERROR", str(exc))

        identity = self._repo.identity()
        items = []
        skipped = 0
        for info in commits:
            kind = commit_kind(info, identity)
            if (skip_own and kind is CommitKind.OURS) or (skip_merges and kind is CommitKind.MERGE):
                skipped += 1
                continue
            items.append(
                {
                    "commit": info.oid,
                    "author": info.author,
                    "summary": info.summary,
                    "kind": str(kind),
                }
            )

        span = get_current_span()
        if span:
            span.annotate("commits", len(commits))

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "base": rng.base,
                "head": rng.head,
                "count": len(items),
                "skipped": skipped,
                "items": items,
            },
        )

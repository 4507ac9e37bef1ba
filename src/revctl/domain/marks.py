"""Commit review marks: a two-element lattice with an explicit join.

``TESTED`` strictly dominates ``REVIEWED``. Re-marking and synchronisation
both go through :func:`join_marks`, so a completed review is never
downgraded by a later or racing write.

Marks are stored as git-style trailers so ``git log --notes`` and
``git interpret-trailers`` recognise them::

    Tested-by: alice
    Review-Comment: ran the integration suite

A bare ``checkpoint`` line flags the commit as a review horizon: listings
of unreviewed commits stop there and ignore everything it reaches.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel

COMMENT_TRAILER = "Review-Comment"
CHECKPOINT_LINE = "checkpoint"
UNKNOWN_REVIEWER = "unknown"


class ReviewStatus(StrEnum):
    """Commit review status, ordered by :attr:`rank`."""

    REVIEWED = "reviewed"
    TESTED = "tested"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @property
    def trailer(self) -> str:
        return _TRAILERS[self]


_RANKS: dict[ReviewStatus, int] = {
    ReviewStatus.REVIEWED: 1,
    ReviewStatus.TESTED: 2,
}

_TRAILERS: dict[ReviewStatus, str] = {
    ReviewStatus.REVIEWED: "Reviewed-by",
    ReviewStatus.TESTED: "Tested-by",
}

_BY_TRAILER: dict[str, ReviewStatus] = {v.lower(): k for k, v in _TRAILERS.items()}


class CommitReviewMark(BaseModel):
    """The single current review mark of a commit."""

    model_config = {"frozen": True}

    commit: str
    status: ReviewStatus
    reviewer: str
    comment: str | None = None
    checkpoint: bool = False


def join_marks(a: CommitReviewMark, b: CommitReviewMark) -> CommitReviewMark:
    """Lattice join: the higher status wins.

    Equal ranks are broken by the smaller ``(reviewer, comment)`` so the
    join stays commutative, associative, and idempotent. A checkpoint flag
    on either side survives the join.
    """
    if a.status.rank != b.status.rank:
        winner = a if a.status.rank > b.status.rank else b
    else:
        winner = min(a, b, key=lambda m: (m.reviewer, m.comment or ""))
    if (a.checkpoint or b.checkpoint) and not winner.checkpoint:
        winner = winner.model_copy(update={"checkpoint": True})
    return winner


def format_mark(mark: CommitReviewMark) -> str:
    """Render a mark as a trailer block."""
    lines = [f"{mark.status.trailer}: {mark.reviewer}"]
    if mark.comment:
        lines.append(f"{COMMENT_TRAILER}: {' '.join(mark.comment.split())}")
    if mark.checkpoint:
        lines.append(CHECKPOINT_LINE)
    return "".join(f"{line}\n" for line in lines)


def parse_mark(commit: str, text: str | None) -> CommitReviewMark | None:
    """Parse a commit note into its mark.

    Several status trailers (e.g. from a hand-merged note) fold together
    via :func:`join_marks`. A non-empty note with no recognised trailer
    counts as ``REVIEWED`` by an unknown reviewer.
    """
    if not text or not text.strip():
        return None

    comment: str | None = None
    checkpoint = False
    found: list[tuple[ReviewStatus, str]] = []
    for raw in text.splitlines():
        if raw.strip() == CHECKPOINT_LINE:
            checkpoint = True
            continue
        key, sep, value = raw.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()
        if key == COMMENT_TRAILER.lower():
            comment = value or None
        elif key in _BY_TRAILER and value:
            found.append((_BY_TRAILER[key], value))

    if not found:
        return CommitReviewMark(
            commit=commit,
            status=ReviewStatus.REVIEWED,
            reviewer=UNKNOWN_REVIEWER,
            checkpoint=checkpoint,
        )

    marks = [
        CommitReviewMark(commit=commit, status=status, reviewer=reviewer, comment=comment, checkpoint=checkpoint)
        for status, reviewer in found
    ]
    result = marks[0]
    for mark in marks[1:]:
        result = join_marks(result, mark)
    return result


def merge_mark_notes(commit: str, ours: str | None, theirs: str | None) -> str:
    """Join two mark notes for the same commit and render the result."""
    a = parse_mark(commit, ours)
    b = parse_mark(commit, theirs)
    if a is None and b is None:
        return ""
    if a is None or b is None:
        return format_mark(a or b)  # type: ignore[arg-type]
    return format_mark(join_marks(a, b))

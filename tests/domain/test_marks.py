"""Tests for commit review marks and their lattice join."""

from __future__ import annotations

from revctl.domain.marks import (
    UNKNOWN_REVIEWER,
    CommitReviewMark,
    ReviewStatus,
    format_mark,
    join_marks,
    merge_mark_notes,
    parse_mark,
)

C = "c" * 40


def _mark(status: ReviewStatus, reviewer: str = "alice", comment: str | None = None) -> CommitReviewMark:
    return CommitReviewMark(commit=C, status=status, reviewer=reviewer, comment=comment)


class TestJoin:
    def test_tested_dominates(self) -> None:
        tested = _mark(ReviewStatus.TESTED, "bob")
        reviewed = _mark(ReviewStatus.REVIEWED, "alice")
        assert join_marks(tested, reviewed) == tested
        assert join_marks(reviewed, tested) == tested

    def test_equal_rank_is_commutative(self) -> None:
        a = _mark(ReviewStatus.REVIEWED, "alice", "one")
        b = _mark(ReviewStatus.REVIEWED, "bob", "two")
        assert join_marks(a, b) == join_marks(b, a) == a

    def test_idempotent(self) -> None:
        a = _mark(ReviewStatus.TESTED)
        assert join_marks(a, a) == a


class TestTrailers:
    def test_format(self) -> None:
        text = format_mark(_mark(ReviewStatus.TESTED, comment="ran the suite"))
        assert text == "Tested-by: alice\nReview-Comment: ran the suite\n"

    def test_parse_round_trip(self) -> None:
        mark = _mark(ReviewStatus.REVIEWED, "bob", "fine")
        assert parse_mark(C, format_mark(mark)) == mark

    def test_parse_folds_multiple_trailers(self) -> None:
        mark = parse_mark(C, "Reviewed-by: alice\nTested-by: bob\n")
        assert mark is not None
        assert mark.status is ReviewStatus.TESTED
        assert mark.reviewer == "bob"

    def test_unrecognised_note_counts_as_reviewed(self) -> None:
        mark = parse_mark(C, "seen it\n")
        assert mark is not None
        assert mark.status is ReviewStatus.REVIEWED
        assert mark.reviewer == UNKNOWN_REVIEWER

    def test_empty_note_is_no_mark(self) -> None:
        assert parse_mark(C, "") is None
        assert parse_mark(C, None) is None

    def test_merge_notes_never_downgrades(self) -> None:
        tested = format_mark(_mark(ReviewStatus.TESTED, "bob"))
        reviewed = format_mark(_mark(ReviewStatus.REVIEWED, "alice"))
        assert merge_mark_notes(C, reviewed, tested) == tested
        assert merge_mark_notes(C, tested, reviewed) == tested
        assert merge_mark_notes(C, None, reviewed) == reviewed


class TestCheckpoint:
    def test_format_and_parse(self) -> None:
        mark = CommitReviewMark(commit=C, status=ReviewStatus.REVIEWED, reviewer="alice", checkpoint=True)
        text = format_mark(mark)
        assert text == "Reviewed-by: alice\ncheckpoint\n"
        assert parse_mark(C, text) == mark

    def test_bare_checkpoint_note(self) -> None:
        mark = parse_mark(C, "checkpoint\n")
        assert mark is not None
        assert mark.checkpoint is True
        assert mark.reviewer == UNKNOWN_REVIEWER

    def test_join_keeps_checkpoint_from_either_side(self) -> None:
        horizon = CommitReviewMark(commit=C, status=ReviewStatus.REVIEWED, reviewer="bob", checkpoint=True)
        tested = _mark(ReviewStatus.TESTED, "alice")
        joined = join_marks(tested, horizon)
        assert joined == join_marks(horizon, tested)
        assert joined.status is ReviewStatus.TESTED
        assert joined.reviewer == "alice"
        assert joined.checkpoint is True

    def test_merge_notes_keeps_checkpoint(self) -> None:
        merged = merge_mark_notes(C, "Reviewed-by: bob\ncheckpoint\n", "Tested-by: alice\n")
        assert merged == "Tested-by: alice\ncheckpoint\n"

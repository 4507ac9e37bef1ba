"""Tests for the on-disk merge-request cache."""

from __future__ import annotations

from pathlib import Path

from revctl.domain.merge_requests import MergeRequest, number_versions
from revctl.infrastructure.mr_cache import MergeRequestCache


def _mr(iid: int) -> MergeRequest:
    return MergeRequest(
        id=1000 + iid,
        iid=iid,
        title=f"MR {iid}",
        author="bob",
        versions=tuple(number_versions([], [("b", "h")])),
    )


class TestMergeRequestCache:
    def test_round_trip(self, tmp_path: Path) -> None:
        cache = MergeRequestCache(tmp_path / "mrs")
        cache.save(_mr(3))
        assert cache.load(3) == _mr(3)

    def test_missing(self, tmp_path: Path) -> None:
        cache = MergeRequestCache(tmp_path / "mrs")
        assert cache.load(1) is None
        assert cache.iids() == []

    def test_listing_is_sorted_by_iid(self, tmp_path: Path) -> None:
        cache = MergeRequestCache(tmp_path)
        for iid in (10, 2, 7):
            cache.save(_mr(iid))
        (tmp_path / "notes.txt").write_text("ignored")
        assert cache.iids() == [2, 7, 10]
        assert [mr.iid for mr in cache.all()] == [2, 7, 10]

    def test_delete(self, tmp_path: Path) -> None:
        cache = MergeRequestCache(tmp_path)
        cache.save(_mr(1))
        cache.delete(1)
        cache.delete(1)
        assert cache.load(1) is None

    def test_corrupt_entry_is_ignored(self, tmp_path: Path) -> None:
        cache = MergeRequestCache(tmp_path)
        (tmp_path / "5.json").write_text("{not json")
        assert cache.load(5) is None
        assert cache.all() == []

"""Tests for the git subprocess wrapper (real repositories)."""

from __future__ import annotations

from pathlib import Path

import pytest

from revctl.infrastructure.git import GitError, GitRepo, GitTimeoutError
from tests.conftest import commit_files, git


class TestGitRepo:
    def test_discover_from_subdirectory(self, topic_repo: Path) -> None:
        repo = GitRepo.discover(topic_repo / "src")
        assert repo.root.resolve() == topic_repo.resolve()

    def test_discover_outside_repository(self, tmp_path: Path) -> None:
        outside = tmp_path / "plain"
        outside.mkdir()
        with pytest.raises(GitError):
            GitRepo.discover(outside)

    def test_rev_parse_missing(self, topic_repo: Path) -> None:
        repo = GitRepo(topic_repo)
        assert repo.rev_parse("refs/heads/nope") is None
        with pytest.raises(GitError):
            repo.resolve_commit("nope")

    def test_commits_oldest_first(self, git_repo: Path) -> None:
        first = commit_files(git_repo, {"a.txt": "1\n"}, "first")
        second = commit_files(git_repo, {"b.txt": "2\n"}, "second")
        repo = GitRepo(git_repo)
        infos = repo.commits("main", "HEAD")
        assert [c.oid for c in infos] == [first, second]
        assert infos[0].author == "alice"
        assert infos[1].summary == "second"
        assert not infos[0].is_merge

    def test_changed_paths_excludes_deletions(self, topic_repo: Path) -> None:
        git(topic_repo, "rm", "-q", "README")
        git(topic_repo, "commit", "-q", "-m", "drop readme")
        repo = GitRepo(topic_repo)
        assert sorted(repo.changed_paths("main", "HEAD")) == ["src/main.rs", "src/schema.proto"]

    def test_blob_ids_match_hash_object(self, topic_repo: Path) -> None:
        repo = GitRepo(topic_repo)
        blobs = repo.blob_ids("HEAD", ["src/main.rs", "missing"])
        assert blobs == {"src/main.rs": git(topic_repo, "hash-object", "src/main.rs")}

    def test_show_file(self, topic_repo: Path) -> None:
        repo = GitRepo(topic_repo)
        assert repo.show_file("HEAD", "src/main.rs") == "fn main() {}\n"
        assert repo.show_file("HEAD", "nope") is None

    def test_update_ref_compare_and_swap(self, topic_repo: Path) -> None:
        repo = GitRepo(topic_repo)
        head = repo.resolve_commit("HEAD")
        base = repo.resolve_commit("main")
        repo.update_ref("refs/test/cas", base, None)
        with pytest.raises(GitError):
            repo.update_ref("refs/test/cas", head, None)
        with pytest.raises(GitError):
            repo.update_ref("refs/test/cas", head, head)
        repo.update_ref("refs/test/cas", head, base)
        assert repo.rev_parse("refs/test/cas") == head

    def test_cat_blobs(self, topic_repo: Path) -> None:
        repo = GitRepo(topic_repo)
        one = repo.hash_object("one\n")
        two = repo.hash_object("two\nlines\n")
        assert repo.cat_blobs([one, two, one]) == {one: "one\n", two: "two\nlines\n"}

    def test_timeout_is_distinct(self, topic_repo: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import subprocess

        def boom(*args: object, **kwargs: object) -> None:
            raise subprocess.TimeoutExpired(cmd="git", timeout=0.1)

        monkeypatch.setattr(subprocess, "run", boom)
        with pytest.raises(GitTimeoutError):
            GitRepo(topic_repo).run("fetch", "origin", timeout=0.1)


class TestRemotes:
    def test_fetch_missing_ref_returns_false(self, remote_pair: tuple[Path, Path, Path]) -> None:
        _, first, _ = remote_pair
        repo = GitRepo(first)
        assert repo.fetch_ref("origin", "refs/notes/none", "refs/test/staging", timeout=30) is False

    def test_push_lease(self, remote_pair: tuple[Path, Path, Path]) -> None:
        remote, first, _ = remote_pair
        repo = GitRepo(first)
        head = repo.resolve_commit("HEAD")
        base = repo.resolve_commit("HEAD~1")
        assert repo.push_ref("origin", head, "refs/test/x", expect=None, timeout=30)
        # The remote no longer matches the expectation "absent".
        assert not repo.push_ref("origin", base, "refs/test/x", expect=None, timeout=30)
        assert repo.push_ref("origin", base, "refs/test/x", expect=head, timeout=30)
        assert git(remote, "rev-parse", "refs/test/x") == base

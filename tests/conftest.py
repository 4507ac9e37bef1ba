"""Shared pytest fixtures and helpers for revctl tests.

Every fixture builds real throwaway git repositories with subprocess;
nothing talks to the network.
"""

from __future__ import annotations

import subprocess
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from revctl.config.settings import RevSettings
from revctl.infrastructure.repository import ReviewRepository

RULES = """\
# path      scrutiny  required  reviewers
src/*       !         1         alice,bob,charlie,daisuke
*.proto     !!        1         alice,charlie
"""


def git(cwd: Path, *args: str) -> str:
    """Run git in *cwd* and return stripped stdout."""
    proc = subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, check=True)
    return proc.stdout.strip()


def configure_identity(path: Path, name: str = "alice") -> None:
    git(path, "config", "user.name", name)
    git(path, "config", "user.email", f"{name}@example.com")
    git(path, "config", "commit.gpgsign", "false")


def init_repo(path: Path, name: str = "alice") -> Path:
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-q", "-b", "main")
    configure_identity(path, name)
    return path


def commit_files(repo: Path, files: dict[str, str], message: str = "change") -> str:
    """Write *files* (relative path -> text), commit them, return the commit id."""
    for rel, text in files.items():
        target = repo / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        git(repo, "add", rel)
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD")


def make_settings(root: Path, **overrides: Any) -> RevSettings:
    """Settings rooted at *root* with ``main`` as the default base."""
    overrides.setdefault("range", {"default_base": "main"})
    return RevSettings.from_cli(repo_root=root, **overrides)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's git and revctl configuration out of tests."""
    for var in ("REVCTL_CONFIG", "GIT_DIR", "GIT_WORK_TREE"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig-global"))


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Repository whose ``main`` holds the rule file, checked out on ``topic``."""
    root = init_repo(tmp_path / "work")
    commit_files(root, {"MAINTAINERS": RULES, "README": "hello\n"}, "initial")
    git(root, "checkout", "-q", "-b", "topic")
    return root


@pytest.fixture
def topic_repo(git_repo: Path) -> Path:
    """``git_repo`` with one topic commit touching a source and a proto file."""
    commit_files(
        git_repo,
        {"src/main.rs": "fn main() {}\n", "src/schema.proto": "message A {}\n"},
        "add sources",
    )
    return git_repo


@pytest.fixture
def repo(topic_repo: Path) -> Generator[ReviewRepository]:
    yield ReviewRepository(make_settings(topic_repo))


@pytest.fixture
def _isolated_repo(topic_repo: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run the CLI inside ``topic_repo`` with ``main`` as default base."""
    (topic_repo / "revctl.toml").write_text('[range]\ndefault_base = "main"\n', encoding="utf-8")
    monkeypatch.chdir(topic_repo)


# ---------------------------------------------------------------------------
# Remotes
# ---------------------------------------------------------------------------


def clone(remote: Path, dest: Path, name: str) -> Path:
    subprocess.run(["git", "clone", "-q", str(remote), str(dest)], capture_output=True, check=True)
    configure_identity(dest, name)
    return dest


@pytest.fixture
def remote_pair(tmp_path: Path) -> tuple[Path, Path, Path]:
    """A bare remote plus two clones (``alice`` and ``bob``) sharing one topic commit."""
    remote = tmp_path / "remote.git"
    remote.mkdir()
    git(remote, "init", "-q", "--bare", "-b", "main")

    first = init_repo(tmp_path / "alice")
    commit_files(first, {"MAINTAINERS": RULES}, "initial")
    commit_files(first, {"src/main.rs": "fn main() {}\n", "src/schema.proto": "message A {}\n"}, "topic")
    git(first, "remote", "add", "origin", str(remote))
    git(first, "push", "-q", "origin", "main")

    second = clone(remote, tmp_path / "bob", "bob")
    return remote, first, second


def rev_repo(root: Path, identity: str, **overrides: Any) -> ReviewRepository:
    """ReviewRepository for a clone, evaluating ``HEAD~1..HEAD`` by default."""
    overrides.setdefault("review", {"identity": identity})
    overrides.setdefault("range", {"default_base": "HEAD~1"})
    return ReviewRepository(RevSettings.from_cli(repo_root=root, **overrides))


def approve_ok(repo: ReviewRepository, target: str, **kwargs: Any) -> dict[str, Any]:
    """Approve via ApprovalService, asserting success."""
    from revctl.services.approve import ApprovalService

    result = ApprovalService(repo).approve(target, **kwargs)
    assert result.ok, result.error
    return result.data

"""Thin subprocess wrapper over the git plumbing revctl needs.

Every call runs ``git`` in the repository root with captured output.
Network operations (fetch/push) take a timeout and never prompt for
credentials; exceeding the timeout raises :class:`GitTimeoutError`.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class GitError(RuntimeError):
    """A git command failed."""

    def __init__(self, args: Iterable[str], returncode: int | None, stderr: str) -> None:
        self.command = ["git", *args]
        self.returncode = returncode
        self.stderr = stderr.strip()
        super().__init__(f"{' '.join(self.command)} failed ({returncode}): {self.stderr}")


class GitTimeoutError(GitError):
    """A git command exceeded its deadline and was killed."""

    def __init__(self, args: Iterable[str], timeout: float) -> None:
        super().__init__(args, None, f"timed out after {timeout:g}s")
        self.timeout = timeout


@dataclass(frozen=True)
class CommitInfo:
    """Minimal commit metadata for listing."""

    oid: str
    author: str
    parents: tuple[str, ...]
    summary: str

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1


@dataclass(frozen=True)
class TreeEntry:
    mode: str
    type: str
    oid: str
    path: str


class GitRepo:
    """A git working repository addressed by its top-level directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    @classmethod
    def discover(cls, start: Path | None = None) -> GitRepo:
        """Find the enclosing repository of *start* (default: cwd).

        Raises:
            GitError: if *start* is not inside a git work tree.
        """
        cwd = start or Path.cwd()
        args = ("rev-parse", "--show-toplevel")
        try:
            proc = subprocess.run(
                ["git", *args],
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise GitError(args, None, str(exc)) from exc
        if proc.returncode != 0:
            raise GitError(args, proc.returncode, proc.stderr)
        return cls(Path(proc.stdout.strip()))

    # ------------------------------------------------------------------
    # Process helpers
    # ------------------------------------------------------------------

    def run(
        self,
        *args: str,
        input: str | None = None,
        timeout: float | None = None,
        check: bool = True,
        env: Mapping[str, str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run a git command in the repository root.

        Raises:
            GitError: on a non-zero exit when *check* is set, or if git
                cannot be executed.
            GitTimeoutError: if *timeout* elapses.
        """
        full_env = None
        if env:
            full_env = {**os.environ, **env}
        logger.debug("git %s", " ".join(args))
        try:
            proc = subprocess.run(
                ["git", *args],
                cwd=self.root,
                input=input,
                capture_output=True,
                text=True,
                encoding="utf-8",
                timeout=timeout,
                env=full_env,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise GitTimeoutError(args, timeout or 0.0) from exc
        except OSError as exc:
            raise GitError(args, None, str(exc)) from exc
        if check and proc.returncode != 0:
            raise GitError(args, proc.returncode, proc.stderr)
        return proc

    def _out(self, *args: str, input: str | None = None) -> str:
        return self.run(*args, input=input).stdout.strip()

    @property
    def git_dir(self) -> Path:
        return Path(self._out("rev-parse", "--absolute-git-dir"))

    # ------------------------------------------------------------------
    # Revisions
    # ------------------------------------------------------------------

    def rev_parse(self, rev: str) -> str | None:
        """Resolve *rev* to an object id, or None if it does not exist."""
        proc = self.run("rev-parse", "--verify", "--quiet", "--end-of-options", rev, check=False)
        if proc.returncode != 0:
            return None
        return proc.stdout.strip() or None

    def resolve_commit(self, rev: str) -> str:
        """Resolve *rev* to a commit id.

        Raises:
            GitError: if *rev* does not name a commit.
        """
        return self._out("rev-parse", "--verify", "--end-of-options", f"{rev}^{{commit}}")

    def merge_base(self, a: str, b: str) -> str:
        return self._out("merge-base", a, b)

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        proc = self.run("merge-base", "--is-ancestor", ancestor, descendant, check=False)
        return proc.returncode == 0

    def commits(self, base: str, head: str, *, exclude: Iterable[str] = ()) -> list[CommitInfo]:
        """Commits reachable from *head* but not *base*, oldest first.

        Commits reachable from any of *exclude* are left out as well.
        """
        out = self._out(
            "log",
            "--reverse",
            "--topo-order",
            "--format=%H%x00%an%x00%P%x00%s",
            f"{base}..{head}",
            *(f"^{oid}" for oid in exclude),
            "--",
        )
        infos: list[CommitInfo] = []
        for line in out.splitlines():
            if not line:
                continue
            oid, author, parents, summary = line.split("\x00", 3)
            infos.append(CommitInfo(oid, author, tuple(parents.split()), summary))
        return infos

    def changed_paths(self, base: str, head: str) -> list[str]:
        """Paths added or modified between *base* and *head* (deletions excluded)."""
        out = self.run(
            "diff",
            "--name-only",
            "-z",
            "--no-renames",
            "--diff-filter=d",
            base,
            head,
        ).stdout
        return [path for path in out.split("\x00") if path]

    def blob_ids(self, rev: str, paths: Iterable[str]) -> dict[str, str]:
        """Blob id at *rev* for each of *paths* that is a regular blob."""
        wanted = set(paths)
        if not wanted:
            return {}
        found: dict[str, str] = {}
        for entry in self.ls_tree(rev):
            if entry.type == "blob" and entry.path in wanted:
                found[entry.path] = entry.oid
        return found

    def ls_tree(self, tree_ish: str) -> list[TreeEntry]:
        out = self.run("ls-tree", "-r", "-z", "--full-tree", tree_ish).stdout
        entries: list[TreeEntry] = []
        for record in out.split("\x00"):
            if not record:
                continue
            meta, path = record.split("\t", 1)
            mode, kind, oid = meta.split()
            entries.append(TreeEntry(mode, kind, oid, path))
        return entries

    def show_file(self, rev: str, path: str) -> str | None:
        """Text of *path* at *rev*, or None if absent."""
        proc = self.run("show", f"{rev}:{path}", check=False)
        if proc.returncode != 0:
            return None
        return proc.stdout

    def object_exists(self, oid: str) -> bool:
        return self.run("cat-file", "-e", oid, check=False).returncode == 0

    def config_get(self, key: str) -> str | None:
        proc = self.run("config", "--get", key, check=False)
        if proc.returncode != 0:
            return None
        return proc.stdout.strip() or None

    # ------------------------------------------------------------------
    # Object and ref plumbing
    # ------------------------------------------------------------------

    def hash_object(self, text: str) -> str:
        return self._out("hash-object", "-w", "--stdin", input=text)

    def mktree(self, entries: Mapping[str, str]) -> str:
        """Write a flat tree of blobs (``name -> blob id``)."""
        payload = "".join(f"100644 blob {oid}\t{name}\x00" for name, oid in sorted(entries.items()))
        return self._out("mktree", "-z", input=payload)

    def commit_tree(self, tree: str, parents: Iterable[str], message: str) -> str:
        args = ["commit-tree", tree]
        for parent in parents:
            args.extend(["-p", parent])
        args.extend(["-m", message])
        return self._out(*args)

    def update_ref(self, ref: str, new: str, old: str | None) -> None:
        """Atomically move *ref* to *new* only if it currently equals *old*.

        ``old=None`` requires that *ref* does not exist yet.

        Raises:
            GitError: if the ref moved concurrently (or cannot be locked).
        """
        expected = old if old is not None else "0" * len(new)
        self.run("update-ref", "-m", "revctl", ref, new, expected)

    def delete_ref(self, ref: str) -> None:
        self.run("update-ref", "-d", ref, check=False)

    def cat_blobs(self, oids: Iterable[str]) -> dict[str, str]:
        """Read many blobs in one ``cat-file --batch`` round-trip."""
        wanted = list(dict.fromkeys(oids))
        if not wanted:
            return {}
        args = ("cat-file", "--batch")
        try:
            proc = subprocess.run(
                ["git", *args],
                cwd=self.root,
                input="".join(f"{oid}\n" for oid in wanted).encode(),
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise GitError(args, None, str(exc)) from exc
        if proc.returncode != 0:
            raise GitError(args, proc.returncode, proc.stderr.decode(errors="replace"))

        data = proc.stdout
        blobs: dict[str, str] = {}
        pos = 0
        for oid in wanted:
            eol = data.index(b"\n", pos)
            header = data[pos:eol].decode().split()
            pos = eol + 1
            if len(header) < 3 or header[1] == "missing":
                continue
            size = int(header[2])
            blobs[oid] = data[pos : pos + size].decode("utf-8", errors="replace")
            pos += size + 1
        return blobs

    # ------------------------------------------------------------------
    # Remotes
    # ------------------------------------------------------------------

    _NETWORK_ENV = {"GIT_TERMINAL_PROMPT": "0"}

    def fetch_ref(self, remote: str, ref: str, dest: str, *, timeout: float | None) -> bool:
        """Fetch *ref* from *remote* into local *dest* (forced).

        Returns False if the remote does not have *ref*.
        """
        proc = self.run(
            "fetch",
            "--no-tags",
            "--quiet",
            remote,
            f"+{ref}:{dest}",
            timeout=timeout,
            check=False,
            env=self._NETWORK_ENV,
        )
        if proc.returncode == 0:
            return True
        if "couldn't find remote ref" in proc.stderr.lower():
            return False
        raise GitError(("fetch", remote, ref), proc.returncode, proc.stderr)

    def push_ref(
        self,
        remote: str,
        local: str,
        ref: str,
        *,
        expect: str | None,
        timeout: float | None,
    ) -> bool:
        """Push *local* to *ref* on *remote* only if the remote is still at *expect*.

        ``expect=None`` requires the remote ref to be absent. Returns False
        when the lease is rejected (the remote moved concurrently).
        """
        lease = f"--force-with-lease={ref}:{expect or ''}"
        proc = self.run(
            "push",
            "--quiet",
            "--porcelain",
            lease,
            remote,
            f"{local}:{ref}",
            timeout=timeout,
            check=False,
            env=self._NETWORK_ENV,
        )
        if proc.returncode == 0:
            return True
        text = f"{proc.stdout}\n{proc.stderr}".lower()
        if "stale info" in text or "rejected" in text or "fetch first" in text:
            return False
        raise GitError(("push", remote, ref), proc.returncode, proc.stderr)

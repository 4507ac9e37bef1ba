"""Annotation namespaces: git notes refs with compare-and-swap writes.

A namespace is a notes ref whose tree maps annotated object ids to note
blobs. Reads take a snapshot (tip commit + entries). Writes build a new
notes commit on top of the snapshot's tip and move the ref with
``git update-ref <ref> <new> <old>``; if another writer moved the ref in
between, the update is refused and the whole read-modify-write is retried
a bounded number of times before :class:`NotesConflictError` is raised.

INVARIANT: a write never discards entries it did not explicitly change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from revctl.infrastructure.git import GitError, GitRepo

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5


class NotesConflictError(RuntimeError):
    """The namespace kept moving underneath us; retries exhausted."""

    def __init__(self, ref: str, attempts: int) -> None:
        super().__init__(f"{ref}: concurrent update conflict after {attempts} attempt(s)")
        self.ref = ref
        self.attempts = attempts


@dataclass(frozen=True)
class NoteEntry:
    blob: str
    text: str


@dataclass(frozen=True)
class NotesSnapshot:
    """Point-in-time view of one namespace."""

    ref: str
    tip: str | None
    entries: Mapping[str, NoteEntry] = field(default_factory=dict)

    def get(self, obj: str) -> str | None:
        entry = self.entries.get(obj)
        return entry.text if entry else None

    def texts(self) -> dict[str, str]:
        return {obj: entry.text for obj, entry in self.entries.items()}

    def __len__(self) -> int:
        return len(self.entries)


# A mutator inspects the current snapshot and returns ``{object: new_text}``.
# An empty text removes the note. Returning nothing means "no change".
Mutator = Callable[[NotesSnapshot], Mapping[str, str]]


class NotesNamespace:
    """One replicated annotation namespace (a notes ref)."""

    def __init__(self, git: GitRepo, ref: str, *, max_retries: int = DEFAULT_MAX_RETRIES) -> None:
        self._git = git
        self.ref = ref
        self.max_retries = max(1, max_retries)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self, commit: str | None = None) -> NotesSnapshot:
        """Snapshot the namespace at its current tip (or at *commit*)."""
        tip = commit if commit is not None else self._git.rev_parse(self.ref)
        if tip is None:
            return NotesSnapshot(ref=self.ref, tip=None)
        return NotesSnapshot(ref=self.ref, tip=tip, entries=self._read_entries(tip))

    def _read_entries(self, tip: str) -> dict[str, NoteEntry]:
        # Fan-out directories ("ab/cdef...") written by `git notes` collapse
        # back to the annotated object id.
        blobs: dict[str, str] = {}
        for entry in self._git.ls_tree(tip):
            if entry.type != "blob":
                continue
            blobs[entry.path.replace("/", "")] = entry.oid
        texts = self._git.cat_blobs(blobs.values())
        return {obj: NoteEntry(blob, texts.get(blob, "")) for obj, blob in blobs.items()}

    def get(self, obj: str) -> str | None:
        return self.snapshot().get(obj)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def write(
        self,
        base: NotesSnapshot,
        changes: Mapping[str, str],
        *,
        message: str,
        extra_parents: Iterable[str] = (),
        force: bool = False,
    ) -> NotesSnapshot | None:
        """Attempt one CAS write of *changes* on top of *base*.

        Returns the new snapshot, *base* itself when nothing changes (unless
        *force* asks for a commit anyway, e.g. to record a merge parent), or
        None if the ref moved since *base* was taken.
        """
        effective = {
            obj: text for obj, text in changes.items() if base.get(obj) != (text or None)
        }
        if not effective and not force:
            return base
        parents = list(dict.fromkeys(p for p in (base.tip, *extra_parents) if p))

        entries = dict(base.entries)
        for obj, text in effective.items():
            if text:
                entries[obj] = NoteEntry(self._git.hash_object(text), text)
            else:
                entries.pop(obj, None)

        tree = self._git.mktree({obj: entry.blob for obj, entry in entries.items()})
        commit = self._git.commit_tree(tree, parents, message)
        try:
            self._git.update_ref(self.ref, commit, base.tip)
        except GitError as exc:
            logger.debug("CAS on %s refused: %s", self.ref, exc.stderr)
            return None
        return NotesSnapshot(ref=self.ref, tip=commit, entries=entries)

    def update(self, mutate: Mutator, *, message: str) -> NotesSnapshot:
        """Read-modify-write with bounded retry.

        *mutate* is re-run against a fresh snapshot on every attempt, so
        it must be a pure function of the snapshot.

        Raises:
            NotesConflictError: when every attempt lost the race.
        """
        for attempt in range(1, self.max_retries + 1):
            base = self.snapshot()
            changes = mutate(base)
            result = self.write(base, changes, message=message)
            if result is not None:
                return result
            logger.info("Retrying update of %s (attempt %d lost a race)", self.ref, attempt)
        raise NotesConflictError(self.ref, self.max_retries)

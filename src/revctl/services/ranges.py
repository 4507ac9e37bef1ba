"""RangeService: resolving a range argument to base/head and its changes.

Accepted forms:

- *empty*: ``merge-base(HEAD, default_base)..HEAD``
- ``REV``: ``merge-base(REV, default_base)..REV`` (a branch under review)
- ``BASE..HEAD``: resolved as given (either side defaults to ``HEAD``)
- ``A...B``: ``merge-base(A, B)..B``
"""

from __future__ import annotations

from revctl.domain.ranges import ChangedPath, Range
from revctl.infrastructure.git import GitError
from revctl.services.base import BaseService
from revctl.services.result import ServiceResult
from revctl.services.telemetry import trace_span, traced


class RangeResolutionError(ValueError):
    """The range argument does not name resolvable commits."""


class RangeService(BaseService):
    """Turns user range expressions into :class:`Range` snapshots."""

    def resolve_range(self, arg: str | None = None) -> Range:
        """Resolve *arg* and collect the changed paths with their content ids.

        Raises:
            RangeResolutionError: if any revision cannot be resolved.
        """
        git = self._repo.git
        arg = (arg or "").strip()
        try:
            if "..." in arg:
                left, right = arg.split("...", 1)
                head = git.resolve_commit(right or "HEAD")
                base = git.merge_base(git.resolve_commit(left or "HEAD"), head)
            elif ".." in arg:
                left, right = arg.split("..", 1)
                base = git.resolve_commit(left or "HEAD")
                head = git.resolve_commit(right or "HEAD")
            else:
                head = git.resolve_commit(arg or "HEAD")
                default_base = self.settings.range.default_base
                base = git.merge_base(head, git.resolve_commit(default_base))
        except GitError as exc:
            msg = f"Cannot resolve range {arg or '(default)'!r}: {exc.stderr or exc}"
            raise RangeResolutionError(msg) from exc
        return self.range_for(base, head)

    def range_for(self, base: str, head: str) -> Range:
        """Build the Range snapshot for an already-resolved pair.

        Raises:
            RangeResolutionError: if either commit is unknown locally.
        """
        git = self._repo.git
        try:
            base = git.resolve_commit(base)
            head = git.resolve_commit(head)
            # Diff from the fork point so paths changed only on the base side
            # stay out of the range.
            fork = base if git.is_ancestor(base, head) else git.merge_base(base, head)
            with trace_span("changed_paths"):
                paths = git.changed_paths(fork, head)
                blobs = git.blob_ids(head, paths)
        except GitError as exc:
            msg = f"Cannot resolve range {base}..{head}: {exc.stderr or exc}"
            raise RangeResolutionError(msg) from exc
        changes = tuple(ChangedPath(path=p, content_id=blobs[p]) for p in paths if p in blobs)
        return Range(base=base, head=head, changes=changes)

    @traced
    def resolve(self, arg: str | None = None) -> ServiceResult:
        op = "resolve_range"
        try:
            rng = self.resolve_range(arg)
        except RangeResolutionError as exc:
            return ServiceResult.failure(op, "RANGE_RESOLUTION_FAILED", str(exc))
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "base": rng.base,
                "head": rng.head,
                "count": len(rng.changes),
                "items": [c.model_dump() for c in rng.changes],
            },
        )

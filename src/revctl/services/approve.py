"""ApprovalService: record approvals on the content of changed paths.

An approval is attached to the blob a path has at the range head, not to
a commit. All approvals from one invocation land in a single
compare-and-swap write of the approvals namespace: either every matched
path is approved or, on failure, none is.
"""

from __future__ import annotations

import logging

from revctl.domain.approvals import Approval, append_approval
from revctl.domain.policy import default_scrutiny, evaluate
from revctl.domain.ranges import ChangedPath
from revctl.domain.rules import RuleParseError, pattern_matches
from revctl.infrastructure.git import GitError
from revctl.infrastructure.notes import NotesConflictError, NotesSnapshot
from revctl.services._helpers import now_iso, short_oid
from revctl.services.base import BaseService
from revctl.services.ranges import RangeResolutionError, RangeService
from revctl.services.result import ServiceResult
from revctl.services.rules import RuleService, parse_failure
from revctl.services.status import approvals_for
from revctl.services.telemetry import get_current_span, traced

logger = logging.getLogger(__name__)


def select_targets(changes: tuple[ChangedPath, ...], target: str) -> list[ChangedPath]:
    """Changed paths named by *target*: the literal path or a glob over paths."""
    target = target.strip().removeprefix("./")
    return [c for c in changes if c.path == target or pattern_matches(target, c.path)]


class ApprovalService(BaseService):
    """Writes approvals into the content-addressed namespace."""

    @traced
    def approve(
        self,
        target: str,
        *,
        range_arg: str | None = None,
        scrutiny: int | None = None,
        comment: str | None = None,
        reviewer: str | None = None,
    ) -> ServiceResult:
        """Approve every changed path in the range that *target* names.

        Without *scrutiny*, each path gets the level of its lowest
        unsatisfied matching rule (see :func:`default_scrutiny`).
        """
        op = "approve"
        warnings: list[str] = []

        if scrutiny is not None and scrutiny < 1:
            return ServiceResult.failure(op, "INVALID_SCRUTINY", f"Scrutiny must be >= 1, got {scrutiny}")

        reviewer = reviewer or self._repo.identity() or ""
        failure = self._reviewer_failure(op, reviewer)
        if failure is not None:
            return failure

        try:
            ruleset = RuleService(self._repo).read_rules(warnings=warnings)
            rng = RangeService(self._repo).resolve_range(range_arg)
        except RuleParseError as exc:
            return parse_failure(op, exc)
        except RangeResolutionError as exc:
            return ServiceResult.failure(op, "RANGE_RESOLUTION_FAILED", str(exc))
        except GitError as exc:
            return ServiceResult.failure(op, "GIT_ERROR", str(exc))

        selected = select_targets(rng.changes, target)
        if not selected:
            return ServiceResult.failure(
                op,
                "NOT_FOUND",
                f"No changed path in {short_oid(rng.base)}..{short_oid(rng.head)} matches {target!r}",
                detail={"target": target, "base": rng.base, "head": rng.head},
                warnings=warnings,
            )

        timestamp = now_iso()
        levels: dict[str, int] = {}

        def mutate(snapshot: NotesSnapshot) -> dict[str, str]:
            levels.clear()
            report = evaluate(selected, ruleset, approvals_for(rng, snapshot))
            changes: dict[str, str] = {}
            for path_report in report.paths:
                level = scrutiny if scrutiny is not None else default_scrutiny(path_report)
                levels[path_report.path] = level
                approval = Approval(
                    subject=path_report.content_id,
                    scrutiny=level,
                    reviewer=reviewer,
                    timestamp=timestamp,
                    comment=comment,
                )
                current = changes.get(path_report.content_id, snapshot.get(path_report.content_id))
                changes[path_report.content_id] = append_approval(current, approval)
            return changes

        message = f"revctl: approve {len(selected)} path(s) by {reviewer}"
        try:
            self._repo.approvals.update(mutate, message=message)
        except NotesConflictError as exc:
            return ServiceResult.failure(op, "CONFLICT", str(exc), warnings=warnings)
        except GitError as exc:
            return ServiceResult.failure(op, "GIT_ERROR", str(exc), warnings=warnings)

        content_ids = {c.path: c.content_id for c in selected}
        logger.info("Approved %d path(s) as %s", len(selected), reviewer)

        span = get_current_span()
        if span:
            span.annotate("paths", len(selected))

        self._dispatch_event(
            "post_approve",
            {"reviewer": reviewer, "scrutiny_levels": dict(levels), "content_ids": content_ids},
            warnings,
        )

        items = [
            {"path": c.path, "content_id": c.content_id, "scrutiny": levels[c.path]}
            for c in sorted(selected, key=lambda c: c.path)
        ]
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "reviewer": reviewer,
                "base": rng.base,
                "head": rng.head,
                "count": len(items),
                "items": items,
            },
            warnings=warnings,
        )

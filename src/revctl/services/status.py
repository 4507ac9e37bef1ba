"""StatusService: evaluate review requirements over a range.

A status evaluation is a pure function of one snapshot: the rule file,
the range's changed paths, and the approvals namespace read once at the
start. Nothing is locked and nothing is written.
"""

from __future__ import annotations

from collections.abc import Mapping

from revctl.domain.approvals import Approval, parse_approvals
from revctl.domain.policy import RequirementReport, evaluate
from revctl.domain.ranges import Range
from revctl.domain.rules import RuleParseError, RuleSet
from revctl.infrastructure.git import GitError
from revctl.infrastructure.notes import NotesSnapshot
from revctl.services.base import BaseService
from revctl.services.ranges import RangeResolutionError, RangeService
from revctl.services.result import ServiceResult
from revctl.services.rules import RuleService, parse_failure
from revctl.services.telemetry import get_current_span, trace_span, traced


def approvals_for(rng: Range, snapshot: NotesSnapshot) -> dict[str, list[Approval]]:
    """Approvals recorded on each content id the range touches."""
    return {
        change.content_id: parse_approvals(change.content_id, snapshot.get(change.content_id))
        for change in rng.changes
    }


def report_data(rng: Range, report: RequirementReport) -> dict[str, object]:
    """Serialisable payload shared by every status-like operation."""
    unsatisfied = report.unsatisfied()
    return {
        "base": rng.base,
        "head": rng.head,
        "satisfied": report.satisfied,
        "paths": [path.to_dict() for path in report.paths],
        "count": len(report.paths),
        "unsatisfied_count": len(unsatisfied),
    }


class StatusService(BaseService):
    """Requirement reports for ranges and resolved (base, head) pairs."""

    def evaluate_range(
        self,
        rng: Range,
        ruleset: RuleSet,
        approvals: Mapping[str, list[Approval]] | None = None,
    ) -> RequirementReport:
        if approvals is None:
            approvals = approvals_for(rng, self._repo.approvals.snapshot())
        with trace_span("evaluate"):
            return evaluate(rng.changes, ruleset, approvals)

    @traced
    def status(self, range_arg: str | None = None) -> ServiceResult:
        """Evaluate the rule file against the range *range_arg* resolves to."""
        op = "status"
        warnings: list[str] = []
        try:
            ruleset = RuleService(self._repo).read_rules(warnings=warnings)
            rng = RangeService(self._repo).resolve_range(range_arg)
        except RuleParseError as exc:
            return parse_failure(op, exc)
        except RangeResolutionError as exc:
            return ServiceResult.failure(op, "RANGE_RESOLUTION_FAILED", str(exc))
        except GitError as exc:
            return ServiceResult.failure(op, "GIT_ERROR", str(exc))
        return self._report(op, rng, ruleset, warnings)

    @traced
    def status_for(self, base: str, head: str) -> ServiceResult:
        """Evaluate an explicit ``(base, head)`` pair (e.g. an MR version)."""
        op = "status"
        warnings: list[str] = []
        try:
            ruleset = RuleService(self._repo).read_rules(warnings=warnings)
            rng = RangeService(self._repo).range_for(base, head)
        except RuleParseError as exc:
            return parse_failure(op, exc)
        except RangeResolutionError as exc:
            return ServiceResult.failure(op, "RANGE_RESOLUTION_FAILED", str(exc))
        except GitError as exc:
            return ServiceResult.failure(op, "GIT_ERROR", str(exc))
        return self._report(op, rng, ruleset, warnings)

    def _report(self, op: str, rng: Range, ruleset: RuleSet, warnings: list[str]) -> ServiceResult:
        try:
            report = self.evaluate_range(rng, ruleset)
        except GitError as exc:
            return ServiceResult.failure(op, "GIT_ERROR", str(exc))

        span = get_current_span()
        if span:
            span.annotate("paths", len(report.paths))
        return ServiceResult(ok=True, op=op, data=report_data(rng, report), warnings=warnings)

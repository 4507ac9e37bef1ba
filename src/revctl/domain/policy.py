"""Policy evaluation: scrutiny/quorum satisfaction over a changed-path set.

For each changed path, every matching rule is checked independently:
it is satisfied when at least ``required`` *distinct* reviewers from the
rule's set approved the path's content at sufficient scrutiny. Approvals
from reviewers outside the set never count, whatever their level.

Evaluation is pure: the same inputs always yield the same report.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from revctl.domain.approvals import Approval
from revctl.domain.ranges import ChangedPath
from revctl.domain.rules import Rule, RuleSet
from revctl.domain.scrutiny import satisfies


class RuleOutcome(BaseModel):
    """A rule's standing against one path's approvals."""

    model_config = {"frozen": True}

    rule: Rule
    approvers: tuple[str, ...]
    candidates: tuple[str, ...]

    @property
    def have(self) -> int:
        return len(self.approvers)

    @property
    def satisfied(self) -> bool:
        return self.have >= self.rule.required

    @property
    def missing(self) -> int:
        return max(0, self.rule.required - self.have)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.rule.pattern,
            "scrutiny": self.rule.scrutiny,
            "required": self.rule.required,
            "have": self.have,
            "satisfied": self.satisfied,
            "missing": self.missing,
            "approvers": list(self.approvers),
            "candidates": list(self.candidates),
        }


class PathReport(BaseModel):
    """All matching rules for one changed path."""

    model_config = {"frozen": True}

    path: str
    content_id: str
    outcomes: tuple[RuleOutcome, ...]

    @property
    def satisfied(self) -> bool:
        return all(outcome.satisfied for outcome in self.outcomes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "content_id": self.content_id,
            "satisfied": self.satisfied,
            "rules": [outcome.to_dict() for outcome in self.outcomes],
        }


class RequirementReport(BaseModel):
    """Derived, never persisted."""

    model_config = {"frozen": True}

    paths: tuple[PathReport, ...]

    @property
    def satisfied(self) -> bool:
        return all(report.satisfied for report in self.paths)

    def unsatisfied(self) -> list[PathReport]:
        return [report for report in self.paths if not report.satisfied]


def evaluate_rule(rule: Rule, approvals: Iterable[Approval]) -> RuleOutcome:
    """Count distinct qualifying reviewers for *rule*."""
    qualified = {
        approval.reviewer
        for approval in approvals
        if approval.reviewer in rule.reviewers and satisfies(approval.scrutiny, rule.scrutiny)
    }
    return RuleOutcome(
        rule=rule,
        approvers=tuple(sorted(qualified)),
        candidates=tuple(sorted(rule.reviewers - qualified)),
    )


def evaluate_path(
    change: ChangedPath,
    ruleset: RuleSet,
    approvals: Iterable[Approval],
) -> PathReport:
    approvals = list(approvals)
    outcomes = tuple(evaluate_rule(rule, approvals) for rule in ruleset.match(change.path))
    return PathReport(path=change.path, content_id=change.content_id, outcomes=outcomes)


def evaluate(
    changes: Iterable[ChangedPath],
    ruleset: RuleSet,
    approvals: Mapping[str, Iterable[Approval]],
) -> RequirementReport:
    """Evaluate every changed path; *approvals* is keyed by content id."""
    reports = tuple(
        evaluate_path(change, ruleset, approvals.get(change.content_id, ()))
        for change in sorted(changes, key=lambda c: c.path)
    )
    return RequirementReport(paths=reports)


def default_scrutiny(report: PathReport) -> int:
    """Scrutiny to record when an approval gives no explicit level.

    The lowest level among the path's unsatisfied rules; if all are
    already satisfied, the highest level any matching rule asks for;
    with no matching rules, 1.
    """
    unsatisfied = [o.rule.scrutiny for o in report.outcomes if not o.satisfied]
    if unsatisfied:
        return min(unsatisfied)
    if report.outcomes:
        return max(o.rule.scrutiny for o in report.outcomes)
    return 1

"""RuleService: loading the rule file and matching paths against it.

The RuleSet is re-read on every call; it is never cached across
commands. A missing rule file is an empty policy, not an error.
"""

from __future__ import annotations

import logging
from pathlib import Path

from revctl.domain.rules import RuleParseError, RuleSet, parse_rules
from revctl.infrastructure.git import GitError
from revctl.services.base import BaseService
from revctl.services.result import ServiceResult
from revctl.services.telemetry import traced

logger = logging.getLogger(__name__)


class RuleService(BaseService):
    """Loads and inspects the review rule file."""

    def read_rules(
        self,
        path: str | None = None,
        rev: str | None = None,
        *,
        warnings: list[str] | None = None,
    ) -> RuleSet:
        """Load the RuleSet from *path* at *rev* (default: working tree).

        Raises:
            RuleParseError: on the first malformed line.
            GitError: if *rev* cannot be read.
        """
        cfg = self.settings.rules
        path = path or cfg.path
        rev = rev if rev is not None else cfg.rev

        if rev is None:
            file_path = Path(path)
            if not file_path.is_absolute():
                file_path = self._repo.root / file_path
            text = file_path.read_text(encoding="utf-8") if file_path.is_file() else None
        else:
            self._repo.git.resolve_commit(rev)
            text = self._repo.git.show_file(rev, path)

        if text is None:
            where = f"{rev}:{path}" if rev else path
            logger.info("No rule file at %s; treating policy as empty", where)
            if warnings is not None:
                warnings.append(f"No rule file at {where}; no review requirements apply")
            return RuleSet()
        return parse_rules(text)

    @traced
    def load(self, path: str | None = None, rev: str | None = None) -> ServiceResult:
        """Load and list every rule in declaration order."""
        op = "load_rules"
        warnings: list[str] = []
        try:
            ruleset = self.read_rules(path, rev, warnings=warnings)
        except RuleParseError as exc:
            return parse_failure(op, exc)
        except GitError as exc:
            return ServiceResult.failure(op, "GIT_ERROR", str(exc))

        rules = [_rule_dict(rule) for rule in ruleset.rules]
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "path": path or self.settings.rules.path,
                "rev": rev or self.settings.rules.rev,
                "count": len(rules),
                "rules": rules,
            },
            warnings=warnings,
        )

    @traced
    def match(self, paths: list[str], *, rev: str | None = None) -> ServiceResult:
        """List the rules that apply to each of *paths*."""
        op = "match_rules"
        warnings: list[str] = []
        try:
            ruleset = self.read_rules(rev=rev, warnings=warnings)
        except RuleParseError as exc:
            return parse_failure(op, exc)
        except GitError as exc:
            return ServiceResult.failure(op, "GIT_ERROR", str(exc))

        items = [
            {"path": p, "rules": [_rule_dict(rule) for rule in ruleset.match(p)]} for p in paths
        ]
        return ServiceResult(ok=True, op=op, data={"count": len(items), "items": items}, warnings=warnings)


def parse_failure(op: str, exc: RuleParseError) -> ServiceResult:
    """Translate a rule-file parse error into a result."""
    return ServiceResult.failure(
        op,
        "PARSE_ERROR",
        f"Invalid rule file: {exc}",
        detail={"line": exc.line, "reason": exc.reason},
    )


def _rule_dict(rule) -> dict[str, object]:  # type: ignore[no-untyped-def]
    return {
        "pattern": rule.pattern,
        "scrutiny": rule.scrutiny,
        "required": rule.required,
        "reviewers": sorted(rule.reviewers),
        "satisfiable": rule.satisfiable,
    }

"""Review rules: parsing the rule file and matching paths against it.

Rule file grammar, one rule per line::

    <pattern> <scrutiny:!+> <required:int> <reviewers:comma-list>

Blank lines and ``#`` comments are ignored. A malformed line fails the
whole load; no partial RuleSet is ever produced.

INVARIANT: Every matching rule applies. Declaration order only affects
display, never evaluation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import BaseModel, Field, field_validator

from revctl.domain.scrutiny import format_marker, parse_marker

logger = logging.getLogger(__name__)

WILDCARD = "*"


class RuleParseError(ValueError):
    """A rule file line could not be parsed."""

    def __init__(self, line: int, reason: str) -> None:
        super().__init__(f"line {line}: {reason}")
        self.line = line
        self.reason = reason


class Rule(BaseModel):
    """A rule is satisfied when *required* distinct members of *reviewers*
    approve the file's content at *scrutiny* or higher."""

    model_config = {"frozen": True}

    pattern: str
    scrutiny: int = Field(ge=1)
    required: int = Field(ge=1)
    reviewers: frozenset[str]

    @field_validator("reviewers")
    @classmethod
    def _non_empty(cls, value: frozenset[str]) -> frozenset[str]:
        if not value:
            msg = "reviewers must not be empty"
            raise ValueError(msg)
        return value

    @property
    def satisfiable(self) -> bool:
        return self.required <= len(self.reviewers)

    def matches(self, path: str) -> bool:
        return pattern_matches(self.pattern, path)

    def render(self) -> str:
        """Render back to rule-file form (reviewers sorted)."""
        names = ",".join(sorted(self.reviewers))
        return f"{self.pattern}\t{format_marker(self.scrutiny)}\t{self.required}\t{names}"


class RuleSet(BaseModel):
    """Ordered rules loaded from one rule file."""

    model_config = {"frozen": True}

    rules: tuple[Rule, ...] = ()

    def match(self, path: str) -> list[Rule]:
        """All rules whose pattern matches *path*, in declaration order."""
        return [rule for rule in self.rules if rule.matches(path)]

    def render(self) -> str:
        return "".join(f"{rule.render()}\n" for rule in self.rules)


def pattern_matches(pattern: str, path: str) -> bool:
    """Restricted glob match where ``*`` spans any substring, ``/`` included.

    The pattern is split on ``*`` into literal fragments that must occur in
    *path* in order. A pattern not starting with ``*`` anchors its first
    fragment at the start of the path; one not ending with ``*`` anchors
    its last fragment at the end.

    Examples:
        >>> pattern_matches("*.proto", "src/schema.proto")
        True
        >>> pattern_matches("Cargo.toml", "src/Cargo.toml")
        False
    """
    fragments = pattern.split(WILDCARD)
    if len(fragments) == 1:
        return pattern == path

    first, *middle, last = fragments
    if not path.startswith(first):
        return False
    pos = len(first)
    for fragment in middle:
        found = path.find(fragment, pos)
        if found < 0:
            return False
        pos = found + len(fragment)
    # The last fragment must fit after everything already consumed.
    return len(path) - len(last) >= pos and path.endswith(last)


def _strip_comment(line: str) -> str:
    stripped = line.strip()
    if stripped.startswith("#"):
        return ""
    for i, char in enumerate(stripped):
        if char == "#" and stripped[i - 1].isspace():
            return stripped[:i].rstrip()
    return stripped


def parse_rule(line: str, lineno: int = 1) -> Rule:
    """Parse a single non-comment rule line."""
    fields = line.split()
    if len(fields) != 4:
        raise RuleParseError(lineno, f"expected 4 fields, found {len(fields)}")
    pattern, marker, required_raw, reviewers_raw = fields

    try:
        scrutiny = parse_marker(marker)
    except ValueError as exc:
        raise RuleParseError(lineno, str(exc)) from exc

    # int() alone would also take "+1" and "1_0".
    if not (required_raw.isascii() and required_raw.isdigit()):
        raise RuleParseError(lineno, f"required count must be an integer, got {required_raw!r}")
    required = int(required_raw)
    if required < 1:
        raise RuleParseError(lineno, f"required count must be at least 1, got {required}")

    names = reviewers_raw.split(",")
    if any(not name for name in names):
        raise RuleParseError(lineno, f"empty reviewer name in {reviewers_raw!r}")

    rule = Rule(pattern=pattern, scrutiny=scrutiny, required=required, reviewers=frozenset(names))
    if not rule.satisfiable:
        logger.warning("Unsatisfiable rule on line %d: %s", lineno, line)
    return rule


def parse_rules(text: str | Iterable[str]) -> RuleSet:
    """Parse rule-file text into a RuleSet.

    Raises:
        RuleParseError: on the first malformed line.
    """
    lines = text.splitlines() if isinstance(text, str) else text
    rules: list[Rule] = []
    for lineno, raw in enumerate(lines, start=1):
        line = _strip_comment(raw)
        if not line:
            continue
        rules.append(parse_rule(line, lineno))
    return RuleSet(rules=tuple(rules))

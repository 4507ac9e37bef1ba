"""Tests for rule-file parsing and the path matcher."""

from __future__ import annotations

import logging

import pytest

from revctl.domain.rules import Rule, RuleParseError, RuleSet, parse_rule, parse_rules, pattern_matches


class TestPatternMatches:
    @pytest.mark.parametrize(
        ("pattern", "path"),
        [
            ("src/*", "src/main.rs"),
            ("src/*", "src/deep/nested/file.c"),
            ("*.proto", "src/schema.proto"),
            ("*", "anything/at/all"),
            ("docs/*.md", "docs/guide/intro.md"),
            ("*test*", "src/tests/unit.py"),
            ("Cargo.toml", "Cargo.toml"),
        ],
    )
    def test_matches(self, pattern: str, path: str) -> None:
        assert pattern_matches(pattern, path)

    @pytest.mark.parametrize(
        ("pattern", "path"),
        [
            ("src/*", "lib/src/main.rs"),
            ("*.proto", "schema.proto.bak"),
            ("Cargo.toml", "sub/Cargo.toml"),
            ("a*a", "a"),
            ("docs/*.md", "docs/guide.rst"),
        ],
    )
    def test_does_not_match(self, pattern: str, path: str) -> None:
        assert not pattern_matches(pattern, path)

    def test_fragments_do_not_overlap(self) -> None:
        assert pattern_matches("ab*ba", "abba")
        assert not pattern_matches("ab*ba", "aba")


class TestParseRule:
    def test_fields(self) -> None:
        rule = parse_rule("src/*  !!  2  alice,bob,carol")
        assert rule.pattern == "src/*"
        assert rule.scrutiny == 2
        assert rule.required == 2
        assert rule.reviewers == frozenset({"alice", "bob", "carol"})

    def test_render_round_trips_to_line_form(self) -> None:
        rule = parse_rule("*.proto ! 1 charlie,alice")
        assert rule.render() == "*.proto\t!\t1\talice,charlie"
        assert parse_rule(rule.render()) == rule

    @pytest.mark.parametrize(
        ("line", "reason"),
        [
            ("src/* ! 1", "expected 4 fields"),
            ("src/* ! 1 alice extra", "expected 4 fields"),
            ("src/* !? 1 alice", "scrutiny marker"),
            ("src/* ! one alice", "integer"),
            ("src/* ! +1 alice", "integer"),
            ("src/* ! 1_0 alice", "integer"),
            ("src/* ! -1 alice", "integer"),
            ("src/* ! 0 alice", "at least 1"),
            ("src/* ! 1 alice,,bob", "empty reviewer"),
        ],
    )
    def test_malformed(self, line: str, reason: str) -> None:
        with pytest.raises(RuleParseError) as exc_info:
            parse_rule(line, 7)
        assert exc_info.value.line == 7
        assert reason in exc_info.value.reason

    def test_unsatisfiable_rule_loads_with_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="revctl"):
            rule = parse_rule("src/* ! 3 alice,bob", 4)
        assert not rule.satisfiable
        assert "Unsatisfiable rule on line 4" in caplog.text


class TestParseRules:
    def test_comments_and_blank_lines(self) -> None:
        ruleset = parse_rules(
            "# owners\n\nsrc/* ! 1 alice   # core team\n  \n*.proto !! 1 alice,charlie\n"
        )
        assert [r.pattern for r in ruleset.rules] == ["src/*", "*.proto"]
        assert ruleset.rules[0].reviewers == frozenset({"alice"})

    def test_hash_inside_token_is_not_a_comment(self) -> None:
        ruleset = parse_rules("src/c#/* ! 1 alice\n")
        assert ruleset.rules[0].pattern == "src/c#/*"

    def test_error_reports_line_number_and_produces_nothing(self) -> None:
        with pytest.raises(RuleParseError) as exc_info:
            parse_rules("src/* ! 1 alice\n\nbad line\n")
        assert exc_info.value.line == 3

    def test_accepts_line_iterable(self) -> None:
        ruleset = parse_rules(["src/* ! 1 alice", "docs/* ! 1 bob"])
        assert len(ruleset.rules) == 2

    def test_empty_text(self) -> None:
        assert parse_rules("") == RuleSet()


class TestRuleSetMatch:
    def test_all_matching_rules_apply_in_declaration_order(self) -> None:
        ruleset = parse_rules("src/* ! 1 alice,bob\n*.proto !! 1 alice,charlie\ndocs/* ! 1 bob\n")
        matched = ruleset.match("src/schema.proto")
        assert [r.pattern for r in matched] == ["src/*", "*.proto"]
        assert ruleset.match("README") == []

    def test_rule_requires_reviewers(self) -> None:
        with pytest.raises(ValueError):
            Rule(pattern="*", scrutiny=1, required=1, reviewers=frozenset())

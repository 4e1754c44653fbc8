"""Tests for the budget compiler."""

import pytest
from conftest import make_rule

from ctxbridge.chars import TRUNCATION_NOTICE
from ctxbridge.compiler import (
    RESUME_DIRECTIVE,
    SESSION_HEADING,
    TITLE,
    build_resume_prompt,
    compile_context,
    render_header,
    render_session,
)


@pytest.fixture
def long_and_short():
    return [make_rule("big", "B" * 500, 1), make_rule("small", "s" * 60, 2)]


class TestScenarios:

    def test_small_rules_fit_large_budget(self, sample_rules):
        out = compile_context(None, sample_rules, 100_000)
        assert out.rules_included == 2
        assert out.rules_truncated == 0
        assert not out.budget_overflow
        for rule in sample_rules:
            assert rule.content in out.content

    def test_tight_budget_without_session(self, long_and_short):
        out = compile_context(None, long_and_short, 200)
        assert out.total_characters <= 200
        assert out.total_characters == len(out.content)

    def test_session_survives_tight_budget(self, jwt_session, sample_rules):
        out = compile_context(jwt_session, sample_rules, 300)
        assert "Implementing JWT auth middleware" in out.content
        assert "RS256 over HS256 for key rotation" in out.content
        assert out.budget_overflow
        assert out.rules_included == 0


class TestBudgetProperties:

    @pytest.mark.parametrize("budget", list(range(0, 700, 13)) + [1_000, 5_000])
    def test_never_exceeds_budget_without_session(self, long_and_short, sample_rules, budget):
        out = compile_context(None, long_and_short + sample_rules, budget)
        assert out.total_characters <= budget

    @pytest.mark.parametrize("budget", [0, 10, 100, 250, 1_000])
    def test_session_always_complete(self, jwt_session, long_and_short, budget):
        out = compile_context(jwt_session, long_and_short, budget)
        assert render_session(jwt_session) in out.content

    def test_rules_included_monotonic(self, long_and_short, sample_rules, jwt_session):
        rules = long_and_short + sample_rules
        for session in (None, jwt_session):
            previous = 0
            for budget in range(0, 2_500, 11):
                included = compile_context(session, rules, budget).rules_included
                assert included >= previous, f"budget {budget}"
                previous = included

    def test_overflow_flag_only_with_oversized_session(self, jwt_session):
        fixed = len(render_header()) + len(render_session(jwt_session))
        assert compile_context(jwt_session, [], fixed).budget_overflow is False
        assert compile_context(jwt_session, [], fixed - 1).budget_overflow is True

    def test_header_dropped_when_nothing_fits(self, sample_rules):
        out = compile_context(None, sample_rules, 5)
        assert out.content == ""
        assert out.rules_included == 0


class TestTruncation:

    def test_first_overflowing_rule_is_truncated(self):
        rules = [make_rule("big", "x" * 500, 1), make_rule("after", "y" * 50, 2)]
        budget = len(render_header()) + 200
        out = compile_context(None, rules, budget)

        assert out.rules_included == 1
        assert out.rules_truncated == 1
        assert TRUNCATION_NOTICE in out.content
        assert "y" not in out.content.replace(render_header(), "")
        assert out.total_characters == budget

    def test_truncated_with_little_room_left(self):
        rules = [make_rule("big", "b" * 500, 1)]
        budget = len(render_header()) + len(TRUNCATION_NOTICE) + 20
        out = compile_context(None, rules, budget)

        assert out.rules_included == 1
        assert out.rules_truncated == 1
        assert out.content.endswith(TRUNCATION_NOTICE)
        assert "b" * 20 in out.content
        assert out.total_characters == budget

    def test_dropped_when_notice_does_not_fit(self):
        rules = [make_rule("a", "a" * 30, 1), make_rule("b", "b" * 500, 2)]
        budget = len(render_header()) + 32 + len(TRUNCATION_NOTICE)
        out = compile_context(None, rules, budget)

        assert out.rules_included == 1
        assert out.rules_truncated == 0
        assert TRUNCATION_NOTICE not in out.content

    def test_later_rules_dropped_after_truncation(self):
        rules = [make_rule(f"r{i}", str(i) * 300, i) for i in range(1, 5)]
        out = compile_context(None, rules, len(render_header()) + 450)
        assert out.rules_included == 2
        assert out.rules_truncated == 1
        assert "3" * 10 not in out.content


class TestOrderingAndDeterminism:

    def test_rules_sorted_by_priority_then_name(self):
        rules = [
            make_rule("zeta", "ZETA RULE", 2),
            make_rule("alpha", "ALPHA RULE", 2),
            make_rule("first", "FIRST RULE", 1),
        ]
        content = compile_context(None, rules, 10_000).content
        assert content.index("FIRST RULE") < content.index("ALPHA RULE") < content.index("ZETA RULE")

    def test_identical_arguments_identical_output(self, jwt_session, sample_rules):
        first = compile_context(jwt_session, sample_rules, 1_000, compress=True, tool_name="windsurf")
        second = compile_context(jwt_session, sample_rules, 1_000, compress=True, tool_name="windsurf")
        assert first == second

    def test_session_block_comes_last(self, jwt_session, sample_rules):
        content = compile_context(jwt_session, sample_rules, 100_000).content
        assert content.startswith(TITLE)
        assert content.index(SESSION_HEADING) > content.index("Code Style")

    def test_empty_rules_skipped(self):
        rules = [make_rule("empty", "   \n\n", 1), make_rule("real", "Real rule", 2)]
        out = compile_context(None, rules, 10_000)
        assert out.rules_included == 1

    def test_compress_applies_to_rules(self):
        rules = [make_rule("style", "## Style\n\n\n\n- tabs\n- no semicolons", 1)]
        plain = compile_context(None, rules, 10_000)
        compressed = compile_context(None, rules, 10_000, compress=True)
        assert "*Style*" in compressed.content
        assert "• tabs" in compressed.content
        assert compressed.total_characters < plain.total_characters

    def test_tool_name_in_header(self):
        assert "for cursor" in render_header("cursor")
        assert "for" not in render_header("")


class TestResumePrompt:

    def test_empty_without_session(self, sample_rules):
        assert compile_context(None, sample_rules, 1_000).resume_prompt == ""

    def test_contains_task_decisions_next_steps(self, jwt_session):
        prompt = compile_context(jwt_session, [], 10).resume_prompt
        assert prompt.startswith(RESUME_DIRECTIVE)
        assert jwt_session.task in prompt
        for item in jwt_session.decisions + jwt_session.next_steps:
            assert item in prompt

    def test_prompt_not_budgeted(self, jwt_session):
        assert compile_context(jwt_session, [], 1).resume_prompt == build_resume_prompt(jwt_session)

    def test_branch_defaults_to_main(self, jwt_session):
        prompt = build_resume_prompt(jwt_session.with_changes(branch=None), "cursor")
        assert "## Branch\nmain" in prompt
        assert "in cursor" in prompt

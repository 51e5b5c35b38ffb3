# Unit tests for rule weights, the rule contract and the result shape using pytest.
import asyncio
import logging

import pytest

from aeo_engine import evidence as ev
from aeo_engine.models import Category, EvaluationStatus, PageContent, PageType, Severity
from aeo_engine.rules.base import BaseRule
from aeo_engine.scoring import ScoreBreakdown, weight_for_impact


class FixedRule(BaseRule):
    def __init__(self, score=75, **kwargs):
        kwargs.setdefault("impact_score", 2)
        super().__init__("fixed", "Fixed", Category.CONTENT, **kwargs)
        self.score = score

    async def evaluate(self, url, content):
        breakdown = ScoreBreakdown()
        breakdown.add("Fixed", self.score)
        final = breakdown.finalize()
        return self.create_result(final, [breakdown.calculation(final)])


@pytest.mark.parametrize(
    "impact, expected",
    [(1, 0.5), (2, 1.0), (3, 1.5), (0, 1.0), (4, 1.0), (-1, 1.0), (True, 1.0), ("3", 1.0), (None, 1.0)],
)
def test_weight_for_impact(impact, expected):
    assert weight_for_impact(impact) == expected


def test_rule_weight_follows_impact():
    assert FixedRule(impact_score=3).weight == 1.5
    assert FixedRule(impact_score=9).get_weight() == 1.0


def test_empty_page_types_apply_everywhere():
    """A rule with no page types applies to every page type."""
    rule = FixedRule()
    assert rule.is_applicable_to_page_type(PageType.HOMEPAGE)
    assert rule.is_applicable_to_page_type("never_seen_before")
    assert rule.is_applicable_to_page_type(None)


def test_page_types_membership():
    rule = FixedRule(page_types=[PageType.BLOG_POST_ARTICLE, PageType.HOW_TO_GUIDE_TUTORIAL])
    assert rule.is_applicable_to_page_type(PageType.BLOG_POST_ARTICLE)
    assert rule.is_applicable_to_page_type("how_to_guide_tutorial")
    assert not rule.is_applicable_to_page_type(PageType.HOMEPAGE)
    assert not rule.is_applicable_to_page_type("never_seen_before")
    assert not rule.is_applicable_to_page_type(None)


def test_domain_level_rules_apply_to_any_page_type():
    rule = FixedRule(page_types=[PageType.HOMEPAGE], is_domain_level=True)
    assert rule.is_applicable_to_page_type(PageType.LEGAL_PAGES)
    assert rule.is_applicable_to_page_type("never_seen_before")
    assert rule.application_level.value == "Domain"


@pytest.mark.parametrize("score, passed", [(59, False), (60, True), (0, False), (100, True)])
def test_pass_threshold(score, passed):
    result = asyncio.run(FixedRule(score=score).evaluate("https://a.com", PageContent(url="https://a.com")))
    assert result.passed is passed


def test_contribution_is_score_times_weight():
    """Weighted contribution is score / 100 times the rule weight."""
    result = asyncio.run(
        FixedRule(score=80, impact_score=3).evaluate("https://a.com", PageContent(url="https://a.com"))
    )
    assert result.weight == 1.5
    assert result.contribution == pytest.approx(1.2)
    assert result.max_score == 100
    assert result.status.value == "succeeded"


def test_create_issue_and_result_shape():
    """Issues and results built through the rule helpers carry the rule identity."""
    rule = FixedRule()
    issue = rule.create_issue("X", Severity.HIGH, "desc", "fix it")
    assert rule.create_issue("Y", "critical", "desc", "fix it").severity is Severity.CRITICAL
    result = rule.create_result(40, [ev.info("t", "c")], issues=[issue], recommendations=["r"])
    assert result.rule_id == "fixed"
    assert result.category is Category.CONTENT
    assert result.issues == [issue]
    assert result.recommendations == ["r"]
    assert result.details == {}
    assert result.ai_usage is None


def test_rule_logger_prefixes_rule_and_url(caplog):
    rule = FixedRule()
    with caplog.at_level(logging.INFO, logger="aeo_engine.rules.base"):
        rule.logger("https://a.com").info("hello")
    record = caplog.records[-1]
    assert record.getMessage() == "[fixed] https://a.com: hello"
    assert record.rule_id == "fixed"
    assert record.url == "https://a.com"


def test_evaluation_status_values_are_terminal():
    assert [s.value for s in EvaluationStatus] == ["succeeded", "failed", "timed_out"]

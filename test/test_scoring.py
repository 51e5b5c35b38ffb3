# Unit tests for the scoring functions and report aggregation using pytest.
from aeo_engine import evidence as ev
from aeo_engine.models import (
    Category,
    EvidenceType,
    RuleFailure,
    RuleIssue,
    RuleResult,
    Severity,
)
from aeo_engine.scoring import ScoreBreakdown, aggregate_results, round_half_up


def make_result(rule_id, category, score, weight, *, issues=(), recommendations=()):
    return RuleResult(
        rule_id=rule_id,
        rule_name=rule_id.title(),
        category=category,
        score=score,
        max_score=100,
        weight=weight,
        contribution=score / 100 * weight,
        passed=score >= 60,
        issues=list(issues),
        recommendations=list(recommendations),
    )


def make_failure(rule_id, category, weight=1.5):
    return RuleFailure(
        rule_id=rule_id,
        rule_name=rule_id.title(),
        category=category,
        weight=weight,
        error="All LLM providers failed",
        error_type="ProviderExhaustedError",
    )


def test_round_half_up():
    """Halves round up, not to even."""
    assert round_half_up(62.5) == 63
    assert round_half_up(0.5) == 1
    assert round_half_up(70.49) == 70


def test_breakdown_adds_cap_line_so_points_sum_to_final():
    b = ScoreBreakdown()
    b.add("A", 70)
    b.add("B", 50)
    final = b.finalize()
    assert final == 100
    assert b.items[-1] == ("Capped at 100", -20)
    assert b.total == final


def test_breakdown_adds_floor_line():
    b = ScoreBreakdown(floor=20)
    b.add("Base", 20)
    b.add("Penalty", -30)
    final = b.finalize()
    assert final == 20
    assert b.items[-1] == ("Minimum score 20", 30)
    assert b.total == 20


def test_breakdown_with_ceiling():
    b = ScoreBreakdown()
    b.ceiling = 40
    b.add("Length", 30)
    b.add("Structure", 15)
    assert b.finalize() == 40
    assert b.items[-1] == ("Capped at 40", -5)


def test_breakdown_without_clamp_adds_nothing():
    b = ScoreBreakdown()
    b.add("A", 40)
    assert b.finalize() == 40
    assert b.items == [("A", 40)]


def test_score_calculation_item():
    item = ev.score_calculation([("Base", 60), ("HSTS", 20), ("Mixed content", -10)], 70)
    assert item.type is EvidenceType.SCORE
    assert item.topic == "Score Calculation"
    assert item.content == "60 (Base) + 20 (HSTS) - 10 (Mixed content) = 70/100"
    assert [b["points"] for b in item.metadata["breakdown"]] == [60, 20, -10]


def test_format_calculation_empty():
    assert ev.format_calculation([], 0) == "0 (no components) = 0/100"


def test_overall_is_weighted_mean():
    """Overall score is the weight-averaged rule score."""
    report = aggregate_results(
        "https://a.com",
        [
            make_result("a", Category.STRUCTURE, 80, 1.5),
            make_result("b", Category.STRUCTURE, 40, 0.5),
        ],
    )
    # (1.2 + 0.2) / 2.0 * 100
    assert report.overall_score == 70
    assert report.categories["STRUCTURE"].score == 70
    assert report.categories["STRUCTURE"].applied_rules == 2
    assert report.categories["STRUCTURE"].passed_rules == 1


def test_failures_are_excluded_not_zeroed():
    """Failed rules drop out of the mean and are listed as unavailable."""
    outcomes = [
        make_result("a", Category.STRUCTURE, 80, 1.5),
        make_result("b", Category.STRUCTURE, 40, 0.5),
        make_failure("c", Category.QUALITY),
    ]
    report = aggregate_results("https://a.com", outcomes)
    assert report.overall_score == 70
    assert [f.rule_id for f in report.unavailable_rules] == ["c"]
    assert report.categories["QUALITY"].unavailable_rules == 1
    assert report.categories["QUALITY"].applied_rules == 0
    assert len(report.results) == 2


def test_aggregation_is_order_independent():
    outcomes = [
        make_result("a", Category.TECHNICAL, 90, 1.5),
        make_result("b", Category.CONTENT, 35, 1.0),
        make_result("c", Category.STRUCTURE, 62, 0.5),
        make_failure("d", Category.QUALITY),
    ]
    forward = aggregate_results("https://a.com", outcomes)
    backward = aggregate_results("https://a.com", list(reversed(outcomes)))
    assert forward.overall_score == backward.overall_score
    assert forward.category_weighted_score == backward.category_weighted_score
    assert {k: v.score for k, v in forward.categories.items()} == {
        k: v.score for k, v in backward.categories.items()
    }


def test_no_results_scores_zero():
    report = aggregate_results("https://a.com", [make_failure("x", Category.QUALITY)])
    assert report.overall_score == 0
    assert report.category_weighted_score == 0


def test_category_weighted_score():
    report = aggregate_results(
        "https://a.com",
        [
            make_result("a", Category.TECHNICAL, 80, 1.5),
            make_result("b", Category.CONTENT, 40, 1.0),
        ],
        category_weights={"TECHNICAL": 1.5, "CONTENT": 2.0},
    )
    # (80 * 1.5 + 40 * 2.0) / 3.5 = 57.14
    assert report.category_weighted_score == 57


def test_issues_sorted_by_severity():
    low = RuleIssue("L", Severity.LOW, "low", "")
    crit = RuleIssue("C", Severity.CRITICAL, "crit", "")
    high = RuleIssue("H", Severity.HIGH, "high", "")
    report = aggregate_results(
        "https://a.com",
        [
            make_result("a", Category.CONTENT, 50, 1.0, issues=[low, high]),
            make_result("b", Category.TECHNICAL, 0, 1.5, issues=[crit]),
        ],
    )
    assert [i.id for i in report.issues] == ["C", "H", "L"]
    assert report.total_issues == 3
    assert report.critical_issues == 1


def test_recommendations_deduplicated_and_ordered_by_category():
    issue = RuleIssue("NO_H1", Severity.HIGH, "Missing H1", "Add one H1")
    report = aggregate_results(
        "https://a.com",
        [
            make_result("h1", Category.STRUCTURE, 0, 1.5, issues=[issue], recommendations=["Add one H1"]),
            make_result("img", Category.CONTENT, 40, 1.0, recommendations=["Write alt text"]),
            make_result("tls", Category.TECHNICAL, 0, 1.5, recommendations=["Serve over HTTPS"]),
        ],
    )
    assert [(r.rule_id, r.content) for r in report.recommendations] == [
        ("tls", "Serve over HTTPS"),
        ("img", "Write alt text"),
        ("h1", "Add one H1"),
    ]

# Per-rule score breakdown, the impact weight table, and the weighted report aggregator.

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Iterable, Mapping

from aeo_engine import evidence as ev
from aeo_engine.models import (
    AggregatedReport,
    Category,
    CategorySubtotal,
    EvidenceItem,
    Recommendation,
    RuleFailure,
    RuleIssue,
    RuleOutcome,
    RuleResult,
)

log = logging.getLogger(__name__)

PASS_THRESHOLD = 60
MAX_SCORE = 100

IMPACT_WEIGHTS: dict[int, float] = {1: 0.5, 2: 1.0, 3: 1.5}
DEFAULT_WEIGHT = 1.0

# Lower sorts first when flattening recommendations.
CATEGORY_PRIORITY: dict[Category, int] = {
    Category.TECHNICAL: 1,
    Category.CONTENT: 2,
    Category.STRUCTURE: 3,
    Category.QUALITY: 4,
    Category.AUTHORITY: 5,
    Category.MONITORING_KPI: 6,
}


def weight_for_impact(impact_score: object) -> float:
    """Out-of-range or non-integer impact scores fall back to 1.0 instead of raising."""
    if isinstance(impact_score, bool) or not isinstance(impact_score, int):
        return DEFAULT_WEIGHT
    return IMPACT_WEIGHTS.get(impact_score, DEFAULT_WEIGHT)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ScoreBreakdown:
    """
    Accumulates `(component, points)` pairs during one evaluation.

    `finalize()` clamps the running sum into [floor, ceiling]. If clamping
    changes the value, a visible adjustment line is appended so the listed
    points still add up to the final score.
    """

    def __init__(self, *, floor: int = 0, ceiling: int = MAX_SCORE):
        self.floor = floor
        self.ceiling = ceiling
        self.items: list[tuple[str, int]] = []

    def add(self, component: str, points: int) -> int:
        self.items.append((component, int(points)))
        return int(points)

    @property
    def total(self) -> int:
        return sum(p for _, p in self.items)

    def finalize(self) -> int:
        raw = self.total
        final = max(self.floor, min(self.ceiling, raw))
        if final != raw:
            label = f"Capped at {self.ceiling}" if raw > self.ceiling else f"Minimum score {self.floor}"
            self.items.append((label, final - raw))
        return final

    def as_details(self) -> list[dict[str, object]]:
        return [{"component": c, "points": p} for c, p in self.items]

    def calculation(self, final: int) -> EvidenceItem:
        return ev.score_calculation(list(self.items), final)


def _subtotal_score(results: list[RuleResult]) -> int:
    weight = sum(r.weight for r in results)
    if weight <= 0:
        return 0
    return round_half_up(sum(r.contribution for r in results) / weight * 100)


def _flatten_recommendations(results: Iterable[RuleResult]) -> list[Recommendation]:
    seen: set[tuple[str, str]] = set()
    flat: list[Recommendation] = []
    for result in results:
        texts = list(result.recommendations) + [i.recommendation for i in result.issues]
        for text in texts:
            if not text:
                continue
            key = (result.rule_id, text)
            if key in seen:
                continue
            seen.add(key)
            flat.append(Recommendation(content=text, rule_id=result.rule_id, category=result.category))
    # sorted() is stable, so first-seen order survives within a category.
    return sorted(flat, key=lambda r: CATEGORY_PRIORITY.get(r.category, 99))


def aggregate_results(
    url: str,
    outcomes: Iterable[RuleOutcome],
    *,
    category_weights: Mapping[str, float] | None = None,
    page_type: str | None = None,
) -> AggregatedReport:
    """
    Combine rule outcomes for one page or domain.

    overall = sum(contribution) / sum(weight) * 100 over successful results.
    RuleFailure entries are excluded from both sums and listed separately,
    so an unavailable rule never drags the score down as if it scored 0.
    The result is independent of outcome order.
    """
    results: list[RuleResult] = []
    failures: list[RuleFailure] = []
    for outcome in outcomes:
        if isinstance(outcome, RuleFailure):
            failures.append(outcome)
        else:
            results.append(outcome)

    total_weight = sum(r.weight for r in results)
    overall = (
        round_half_up(sum(r.contribution for r in results) / total_weight * 100)
        if total_weight > 0
        else 0
    )

    weights = dict(category_weights or {})
    categories: dict[str, CategorySubtotal] = {}
    for category in Category:
        in_cat = [r for r in results if r.category == category]
        failed = [f for f in failures if f.category == category]
        if not in_cat and not failed:
            continue
        categories[category.value] = CategorySubtotal(
            category=category,
            score=_subtotal_score(in_cat),
            weight=float(weights.get(category.value, 1.0)),
            applied_rules=len(in_cat),
            passed_rules=sum(1 for r in in_cat if r.passed),
            unavailable_rules=len(failed),
        )

    applied = [c for c in categories.values() if c.applied_rules > 0]
    cat_weight = sum(c.weight for c in applied)
    category_weighted = (
        round_half_up(sum(c.score * c.weight for c in applied) / cat_weight) if cat_weight > 0 else 0
    )

    issues: list[RuleIssue] = [issue for r in results for issue in r.issues]
    issues.sort(key=lambda i: i.severity.rank)

    report = AggregatedReport(
        url=url,
        overall_score=overall,
        category_weighted_score=category_weighted,
        page_type=page_type,
        categories=categories,
        issues=issues,
        recommendations=_flatten_recommendations(results),
        results=results,
        unavailable_rules=failures,
        total_issues=len(issues),
        critical_issues=sum(1 for i in issues if i.severity.value == "critical"),
        generated_at=datetime.now(timezone.utc).isoformat(),
    )
    log.info(
        "Aggregated %d results (%d unavailable) for %s: overall=%d category_weighted=%d",
        len(results),
        len(failures),
        url,
        overall,
        category_weighted,
    )
    return report

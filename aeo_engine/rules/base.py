# aeo_engine/rules/base.py
"""
The rule contract.

Every concrete rule subclasses BaseRule, implements `evaluate`, and builds its
return value with `create_result`. Nothing else constructs a RuleResult, which
is what lets the registry and aggregator treat heuristic, lookup and
LLM-backed rules the same way.

Rule instances are shared between concurrent evaluations: configure them in
`__init__` and keep per-call state in locals.
"""
from __future__ import annotations

import abc
import logging
from typing import Any, Iterable, MutableMapping

from aeo_engine.models import (
    AIUsage,
    ApplicationLevel,
    Category,
    EvidenceItem,
    PageContent,
    PageTypeLike,
    RuleIssue,
    RuleResult,
    Severity,
)
from aeo_engine.scoring import MAX_SCORE, PASS_THRESHOLD, weight_for_impact

log = logging.getLogger(__name__)


class RuleLogger(logging.LoggerAdapter):
    """Carries rule_id and url as `extra` fields and as a message prefix."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        kwargs["extra"] = {**extra, **kwargs.get("extra", {})}
        return f"[{extra.get('rule_id')}] {extra.get('url')}: {msg}", kwargs


def _page_type_key(page_type: PageTypeLike) -> str | None:
    if page_type is None:
        return None
    return getattr(page_type, "value", page_type)


class BaseRule(abc.ABC):
    def __init__(
        self,
        rule_id: str,
        name: str,
        category: Category,
        *,
        impact_score: int = 2,
        page_types: Iterable[PageTypeLike] | None = None,
        is_domain_level: bool = False,
        description: str = "",
    ):
        self.id = rule_id
        self.name = name
        self.category = category
        self.impact_score = impact_score
        self.page_types = frozenset(
            k for k in (_page_type_key(p) for p in (page_types or ())) if k is not None
        )
        self.is_domain_level = is_domain_level
        self.description = description

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r} category={self.category.value}>"

    @property
    def application_level(self) -> ApplicationLevel:
        return ApplicationLevel.DOMAIN if self.is_domain_level else ApplicationLevel.PAGE

    @property
    def weight(self) -> float:
        return self.get_weight()

    def get_weight(self) -> float:
        return weight_for_impact(self.impact_score)

    def is_applicable_to_page_type(self, page_type: PageTypeLike) -> bool:
        if self.is_domain_level or not self.page_types:
            return True
        return _page_type_key(page_type) in self.page_types

    def logger(self, url: str) -> RuleLogger:
        return RuleLogger(log, {"rule_id": self.id, "url": url})

    @abc.abstractmethod
    async def evaluate(self, url: str, content: PageContent) -> RuleResult:
        """Score one page (or domain). Must not mutate `content`."""

    def create_result(
        self,
        score: int,
        evidence: list[EvidenceItem],
        issues: list[RuleIssue] | None = None,
        details: dict[str, Any] | None = None,
        recommendations: list[str] | None = None,
        ai_usage: AIUsage | None = None,
    ) -> RuleResult:
        """
        Does not clamp; callers hand in a score already inside [0, 100].
        """
        weight = self.get_weight()
        return RuleResult(
            rule_id=self.id,
            rule_name=self.name,
            category=self.category,
            score=score,
            max_score=MAX_SCORE,
            weight=weight,
            contribution=(score / MAX_SCORE) * weight,
            passed=score >= PASS_THRESHOLD,
            evidence=list(evidence),
            issues=list(issues or []),
            recommendations=list(recommendations or []),
            details=dict(details or {}),
            ai_usage=ai_usage,
        )

    @staticmethod
    def create_issue(
        issue_id: str,
        severity: Severity,
        description: str,
        recommendation: str,
        affected_elements: list[str] | None = None,
    ) -> RuleIssue:
        return RuleIssue(
            id=issue_id,
            severity=Severity(severity),
            description=description,
            recommendation=recommendation,
            affected_elements=affected_elements,
        )

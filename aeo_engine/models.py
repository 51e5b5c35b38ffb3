# Defines the data structures shared by rules, the registry and the aggregator.

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class Category(str, Enum):
    """Closed set of rule categories. Branch on these, never on raw strings."""

    TECHNICAL = "TECHNICAL"
    CONTENT = "CONTENT"
    QUALITY = "QUALITY"
    STRUCTURE = "STRUCTURE"
    AUTHORITY = "AUTHORITY"
    MONITORING_KPI = "MONITORING_KPI"


class PageType(str, Enum):
    """Page classification produced upstream by the crawler's categorizer."""

    HOMEPAGE = "homepage"
    PRODUCT_CATEGORY_PAGE = "product_category_page"
    PRODUCT_DETAIL_PAGE = "product_detail_page"
    SERVICES_FEATURES_PAGE = "services_features_page"
    PRICING_PAGE = "pricing_page"
    COMPARISON_PAGE = "comparison_page"
    BLOG_POST_ARTICLE = "blog_post_article"
    BLOG_CATEGORY_TAG_PAGE = "blog_category_tag_page"
    PILLAR_PAGE_TOPIC_HUB = "pillar_page_topic_hub"
    PRODUCT_ROUNDUP_REVIEW_ARTICLE = "product_roundup_review_article"
    HOW_TO_GUIDE_TUTORIAL = "how_to_guide_tutorial"
    CASE_STUDY_SUCCESS_STORY = "case_study_success_story"
    WHAT_IS_X_DEFINITIONAL_PAGE = "what_is_x_definitional_page"
    IN_DEPTH_GUIDE_WHITE_PAPER = "in_depth_guide_white_paper"
    FAQ_GLOSSARY_PAGES = "faq_glossary_pages"
    PUBLIC_FORUM_UGC_PAGES = "public_forum_ugc_pages"
    CORPORATE_CONTACT_PAGES = "corporate_contact_pages"
    LEGAL_PAGES = "legal_pages"
    DOCUMENTATION_HELP = "documentation_help"
    LOGIN_ACCOUNT = "login_account"
    SEARCH_RESULTS = "search_results"
    ERROR_404 = "error_404"
    UNKNOWN = "unknown"


class EvidenceType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    SCORE = "score"
    HEADING = "heading"
    BASE = "base"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Sort key: critical first."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


class ApplicationLevel(str, Enum):
    PAGE = "Page"
    DOMAIN = "Domain"


class EvaluationStatus(str, Enum):
    """Terminal state of one rule evaluation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


# Page type may be one we have never seen; rules only compare for membership.
PageTypeLike = Union[PageType, str, None]


@dataclass(frozen=True)
class PageContent:
    """
    Input for one evaluation, produced by the external crawler.
    Frozen: rules must never mutate it.
    """

    url: str
    html: str = ""
    clean_content: str = ""
    page_type: PageTypeLike = None
    page_category: str | None = None
    security_info: dict[str, Any] | None = None
    performance_metrics: dict[str, Any] | None = None


@dataclass(frozen=True)
class EvidenceItem:
    """One observation made by a rule. Ordered lists of these are the audit trail."""

    type: EvidenceType
    topic: str = ""
    content: str = ""
    score: int | None = None
    max_score: int | None = None
    target: str | None = None
    code: str | None = None
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class RuleIssue:
    id: str
    severity: Severity
    description: str
    recommendation: str
    affected_elements: list[str] | None = None


@dataclass(frozen=True)
class AIUsage:
    """Which provider/model answered, and truncated prompt/response for audit."""

    model_name: str
    prompt: str
    response: str


@dataclass(frozen=True)
class RuleResult:
    """
    Outcome of one rule on one page. Only BaseRule.create_result builds these,
    so every rule yields the same shape regardless of how it scored.
    """

    rule_id: str
    rule_name: str
    category: Category
    score: int
    max_score: int
    weight: float
    contribution: float
    passed: bool
    evidence: list[EvidenceItem] = field(default_factory=list)
    issues: list[RuleIssue] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)
    ai_usage: AIUsage | None = None
    status: EvaluationStatus = EvaluationStatus.SUCCEEDED


@dataclass(frozen=True)
class RuleFailure:
    """
    Marker for a rule that could not be analyzed. Kept distinct from a RuleResult
    with score 0: "analysis unavailable" must stay distinguishable from "scored zero".
    """

    rule_id: str
    rule_name: str
    category: Category
    weight: float
    error: str
    error_type: str = ""
    status: EvaluationStatus = EvaluationStatus.FAILED


RuleOutcome = Union[RuleResult, RuleFailure]


@dataclass
class CategorySubtotal:
    category: Category
    score: int
    weight: float
    applied_rules: int = 0
    passed_rules: int = 0
    unavailable_rules: int = 0


@dataclass
class Recommendation:
    content: str
    rule_id: str
    category: Category


@dataclass
class AggregatedReport:
    """Weighted report for one page or domain. Built fresh per evaluation, never persisted here."""

    url: str
    overall_score: int
    category_weighted_score: int
    page_type: str | None = None
    categories: dict[str, CategorySubtotal] = field(default_factory=dict)
    issues: list[RuleIssue] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    results: list[RuleResult] = field(default_factory=list)
    unavailable_rules: list[RuleFailure] = field(default_factory=list)
    total_issues: int = 0
    critical_issues: int = 0
    generated_at: str = ""

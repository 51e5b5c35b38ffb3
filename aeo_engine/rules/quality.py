# aeo_engine/rules/quality.py
"""LLM-backed QUALITY rule that judges whether a page is an in-depth guide."""

from __future__ import annotations

import re

from aeo_engine import evidence as ev
from aeo_engine import html_logic
from aeo_engine.models import Category, EvidenceItem, PageContent, PageType, RuleIssue, RuleResult, Severity
from aeo_engine.providers import LLMClient, ProviderCandidate
from aeo_engine.rules.llm import LLMBackedRule, truncate
from aeo_engine.rules.schemas import InDepthGuideAnalysis
from aeo_engine.scoring import ScoreBreakdown

GUIDE_URL = re.compile(r"(?:guide|tutorial|complete|ultimate|comprehensive|definitive|pillar)", re.I)


class InDepthGuidesRule(LLMBackedRule):
    """
    Long-form guide quality.

    Word count, heading structure, media and URL signals are computed from the
    page first. Pages under 1500 words score 20 without an LLM call. Longer
    pages are sent to the LLM for topic depth, guide type and supporting
    features; a page the LLM judges not to be a guide is capped at 40.
    """

    SCORE_NOT_PRESENT = 20
    NOT_GUIDE_CAP = 40
    MIN_WORDS = 1500

    CONTENT_BUDGET = 30000
    LLM_PROVIDERS = (
        ProviderCandidate("openai", "gpt-4o-mini", temperature=0.3, max_tokens=3000),
        ProviderCandidate("openai", "gpt-4o", temperature=0.3, max_tokens=3000),
        ProviderCandidate("anthropic", "claude-3-haiku-20240307", temperature=0.3, max_tokens=3000),
    )

    def __init__(self, llm_client: LLMClient | None = None, llm_timeout: float | None = None) -> None:
        super().__init__(
            "in_depth_guides",
            "In-Depth Guides",
            Category.QUALITY,
            impact_score=3,
            page_types=[
                PageType.IN_DEPTH_GUIDE_WHITE_PAPER,
                PageType.HOW_TO_GUIDE_TUTORIAL,
                PageType.BLOG_POST_ARTICLE,
                PageType.PILLAR_PAGE_TOPIC_HUB,
            ],
            llm_client=llm_client,
            llm_timeout=llm_timeout,
        )

    def build_prompt(self, url: str, text: str, word_count: int) -> str:
        return (
            "Assess whether this page is an in-depth guide and how thoroughly it covers its topic.\n"
            "List the major topics with their depth (surface, moderate, comprehensive), a short excerpt, "
            "and the percentage of expected entities covered. Classify the guide type and overall "
            "comprehensiveness, and note table of contents, examples, internal links, external "
            "references, industry focus and last-updated date.\n\n"
            f"URL: {url}\nWord count: {word_count}\n\nContent:\n{truncate(text, self.CONTENT_BUDGET)}"
        )

    async def evaluate(self, url: str, content: PageContent) -> RuleResult:
        evidence: list[EvidenceItem] = []
        issues: list[RuleIssue] = []
        recommendations: list[str] = []
        breakdown = ScoreBreakdown()

        soup = html_logic.parse_html(content.html)
        text = html_logic.page_text(content.html, content.clean_content)
        words = html_logic.word_count(text)

        if words < self.MIN_WORDS:
            evidence.append(
                ev.warning(
                    "Guide Analysis",
                    f"Only {words} words; too short for an in-depth guide",
                    score=self.SCORE_NOT_PRESENT,
                    max_score=100,
                    target=">=1,500 words",
                )
            )
            breakdown.add("Content too short for a guide", self.SCORE_NOT_PRESENT)
            issues.append(
                self.create_issue(
                    "INSUFFICIENT_LENGTH",
                    Severity.MEDIUM,
                    f"{words} words is below the 1,500 word minimum for a guide",
                    "Expand the content into a comprehensive guide",
                )
            )
            final = breakdown.finalize()
            evidence.append(breakdown.calculation(final))
            return self.create_result(final, evidence, issues, {"scoreBreakdown": breakdown.as_details(), "wordCount": words})

        if words >= 3000:
            breakdown.add("Comprehensive length (>=3000 words)", 30)
            evidence.append(ev.success("Guide Analysis", f"Comprehensive length ({words:,} words)", score=30, max_score=30))
        elif words >= 2000:
            breakdown.add("Substantial length (>=2000 words)", 20)
            evidence.append(ev.success("Guide Analysis", f"Substantial length ({words:,} words)", score=20, max_score=30))
        else:
            breakdown.add("Moderate length (>=1500 words)", 10)
            evidence.append(ev.warning("Guide Analysis", f"Moderate length ({words:,} words)", score=10, max_score=30))

        hs = html_logic.headings(soup)
        h2_count = sum(1 for h in hs if h.level == 2)
        if len(hs) >= 10 and h2_count >= 3:
            points = 15
        elif len(hs) >= 5:
            points = 10
        else:
            points = 5
        breakdown.add("Heading structure", points)
        evidence.append(ev.info("Structure", f"{len(hs)} headings ({h2_count} H2)", score=points, max_score=15))

        media = html_logic.media_count(soup)
        if media >= 10:
            breakdown.add("Rich media", 10)
            evidence.append(ev.success("Media", f"{media} media elements", score=10, max_score=10))
        elif media >= 5:
            breakdown.add("Some media", 5)
            evidence.append(ev.info("Media", f"{media} media elements", score=5, max_score=10))
        else:
            evidence.append(ev.warning("Media", f"{media} media elements", score=0, max_score=10))

        if GUIDE_URL.search(url):
            breakdown.add("Guide keywords in URL", 5)
            evidence.append(ev.success("URL", "URL signals guide content", score=5, max_score=5))

        analysis, usage = await self.analyze(url, self.build_prompt(url, text, words), InDepthGuideAnalysis)
        evidence.append(
            ev.info(
                "LLM Analysis",
                f"Guide type: {analysis.guide_type}; comprehensiveness: {analysis.comprehensiveness}",
                metadata={"model": usage.model_name},
            )
        )

        if analysis.has_table_of_contents:
            breakdown.add("Table of contents", 10)
            evidence.append(ev.success("Navigation", "Has a table of contents", score=10, max_score=10))
        else:
            recommendations.append("Add a table of contents linking to each section")

        if analysis.guide_type in ("ultimate_guide", "complete_guide"):
            breakdown.add("Ultimate/complete guide", 10)
        elif analysis.guide_type == "pillar_page":
            breakdown.add("Pillar page", 7)

        if analysis.has_examples:
            breakdown.add("Practical examples", 5)
        else:
            recommendations.append("Include worked examples or case studies")

        if analysis.has_internal_links and analysis.has_external_references:
            breakdown.add("Internal and external references", 5)
        elif analysis.has_internal_links:
            breakdown.add("Internal links only", 3)

        if analysis.industry_focus:
            breakdown.add("Industry focus", 5)

        if analysis.topics:
            coverage = sum(t.entity_coverage for t in analysis.topics) / len(analysis.topics)
            evidence.append(ev.info("Topics", f"{len(analysis.topics)} topics, average entity coverage {coverage:.0f}%"))
            if coverage >= 75:
                breakdown.add("High entity coverage", 5)
            elif coverage < 25:
                breakdown.add("Low entity coverage", -10)
                issues.append(
                    self.create_issue("LOW_ENTITY_COVERAGE", Severity.MEDIUM, "Topics miss most expected entities", "Cover the key concepts of each topic")
                )

        if analysis.comprehensiveness not in ("exhaustive", "thorough") and words >= 2000:
            breakdown.add("Long but not comprehensive", -10)
            evidence.append(ev.warning("Guide Analysis", "Long content but lacks comprehensive coverage", score=-10))

        if analysis.guide_type == "not_guide":
            breakdown.ceiling = self.NOT_GUIDE_CAP
            issues.append(
                self.create_issue("NOT_A_GUIDE", Severity.LOW, "Content is not structured as a guide", "Restructure as a step-by-step or reference guide")
            )

        final = breakdown.finalize()
        evidence.append(breakdown.calculation(final))
        return self.create_result(
            final,
            evidence,
            issues,
            {
                "scoreBreakdown": breakdown.as_details(),
                "wordCount": words,
                "guideType": analysis.guide_type,
                "comprehensiveness": analysis.comprehensiveness,
            },
            recommendations,
            usage,
        )

# aeo_engine/rules/content.py
"""Image alt text coverage (heuristic) and definitional content (LLM-backed)."""
from __future__ import annotations

import re

from aeo_engine import evidence as ev
from aeo_engine import html_logic
from aeo_engine.models import Category, EvidenceItem, PageContent, PageType, RuleIssue, RuleResult, Severity
from aeo_engine.providers import LLMClient, ProviderCandidate
from aeo_engine.rules.base import BaseRule
from aeo_engine.rules.llm import LLMBackedRule, truncate
from aeo_engine.rules.schemas import DefinitionalAnalysis
from aeo_engine.scoring import ScoreBreakdown, round_half_up

GENERIC_ALT = re.compile(r"^(image|photo|picture|img|icon|logo|banner)\d*$", re.I)


def _short_name(src: str) -> str:
    name = src.rstrip("/").split("/")[-1] or src
    return name if len(name) <= 50 else name[:47] + "..."


class ImageAltRule(BaseRule):
    """
    Score is the tier of images with descriptive alt text (4+ words, not generic):
    >=95% -> 100, >=75% -> 80, >=50% -> 60, >=25% -> 40, else 20.
    A page with no images scores 100 and skips the breakdown entirely.
    """

    TIERS = (
        (95, 100, "Excellent: >=95% images have descriptive alt text"),
        (75, 80, "Good: 75-94% images have descriptive alt text"),
        (50, 60, "Moderate: 50-74% images have descriptive alt text"),
        (25, 40, "Poor: 25-49% images have descriptive alt text"),
        (0, 20, "Very poor: <25% images have descriptive alt text"),
    )

    def __init__(self) -> None:
        super().__init__("image_alt", "Image Alt Attributes", Category.CONTENT, impact_score=2)

    async def evaluate(self, url: str, content: PageContent) -> RuleResult:
        imgs = html_logic.images(html_logic.parse_html(content.html))
        if not imgs:
            return self.create_result(100, [ev.info("Image Analysis", "No images found on page")])

        evidence: list[EvidenceItem] = []
        issues: list[RuleIssue] = []
        recommendations: list[str] = []
        breakdown = ScoreBreakdown()

        total = len(imgs)
        with_alt = [i for i in imgs if i.alt is not None]
        empty_alt = [i for i in with_alt if not i.alt.strip()]
        generic = [i for i in with_alt if GENERIC_ALT.match(i.alt.strip())]
        descriptive = [
            i for i in with_alt if html_logic.word_count(i.alt) >= 4 and not GENERIC_ALT.match(i.alt.strip())
        ]
        alt_pct = len(with_alt) / total * 100
        desc_pct = len(descriptive) / total * 100

        evidence.append(
            ev.info(
                "Image Analysis",
                f"Total images: {total}, with alt attribute: {len(with_alt)} ({alt_pct:.1f}%), "
                f"descriptive: {len(descriptive)} ({desc_pct:.1f}%)",
            )
        )

        for threshold, points, label in self.TIERS:
            if desc_pct >= threshold:
                make = ev.success if points >= 80 else ev.warning if points >= 40 else ev.error
                evidence.append(make("Alt Quality", label, score=points, max_score=100))
                breakdown.add(label, points)
                break

        if empty_alt:
            evidence.append(
                ev.warning(
                    "Alt Coverage",
                    f"{len(empty_alt)} images have empty alt attributes",
                    code="\n".join(f"{n}. {_short_name(i.src)}" for n, i in enumerate(empty_alt, 1)),
                )
            )
            recommendations.append("Add descriptive alt text to images with empty alt attributes")
        if generic:
            evidence.append(ev.warning("Alt Quality", f"Found {len(generic)} generic alt texts"))
            recommendations.append("Replace generic alt texts with descriptive alternatives")

        missing = total - len(with_alt)
        if missing:
            missing_pct = round_half_up(missing / total * 100)
            issues.append(
                self.create_issue(
                    "MISSING_ALT",
                    Severity.CRITICAL if missing_pct > 50 else Severity.HIGH,
                    f"{missing} images ({missing_pct}%) missing alt attributes",
                    "Add alt attributes to all images for accessibility compliance",
                    [_short_name(i.src) for i in imgs if i.alt is None][:10],
                )
            )

        final = breakdown.finalize()
        evidence.append(breakdown.calculation(final))
        return self.create_result(
            final,
            evidence,
            issues,
            {"scoreBreakdown": breakdown.as_details(), "totalImages": total, "descriptivePercentage": desc_pct},
            recommendations,
        )


class DefinitionalContentRule(LLMBackedRule):
    """
    Dedicated definition/glossary page with >=5 clear definitions -> 100,
    with >=2 -> 80; any page with >=1 definition -> 60; none -> 20.
    """

    SCORE_EXCELLENT = 100
    SCORE_GOOD = 80
    SCORE_MODERATE = 60
    SCORE_NOT_PRESENT = 20
    MIN_DEFINITIONS_EXCELLENT = 5
    MIN_DEFINITIONS_GOOD = 2

    CONTENT_BUDGET = 20000
    LLM_PROVIDERS = (
        ProviderCandidate("openai", "gpt-4o-mini", temperature=0.2, max_tokens=2500),
        ProviderCandidate("openai", "gpt-4o", temperature=0.2, max_tokens=2500),
        ProviderCandidate("anthropic", "claude-3-haiku-20240307", temperature=0.2, max_tokens=2500),
    )

    def __init__(self, llm_client: LLMClient | None = None, llm_timeout: float | None = None) -> None:
        super().__init__(
            "definitional_content",
            "Definitional Content",
            Category.QUALITY,
            impact_score=3,
            page_types=[
                PageType.WHAT_IS_X_DEFINITIONAL_PAGE,
                PageType.FAQ_GLOSSARY_PAGES,
                PageType.BLOG_POST_ARTICLE,
            ],
            llm_client=llm_client,
            llm_timeout=llm_timeout,
        )

    def build_prompt(self, url: str, text: str) -> str:
        return (
            "Analyze the provided website content to identify and evaluate definitional content.\n\n"
            'A direct definition is a clear statement like "X is...", "X refers to..." or "X means...". '
            "General descriptions, feature lists, or mentions without definitions do not count.\n"
            "Rate each definition's clarity (clear, moderate, vague) and completeness "
            "(comprehensive, adequate, basic), and classify the page as dedicated_definition, "
            "glossary, mixed_content or non_definitional.\n\n"
            f"URL: {url}\n\nContent:\n{truncate(text, self.CONTENT_BUDGET)}"
        )

    async def evaluate(self, url: str, content: PageContent) -> RuleResult:
        evidence: list[EvidenceItem] = []
        issues: list[RuleIssue] = []
        recommendations: list[str] = []
        breakdown = ScoreBreakdown()

        text = html_logic.page_text(content.html, content.clean_content)
        analysis, usage = await self.analyze(url, self.build_prompt(url, text), DefinitionalAnalysis)

        count = len(analysis.definitions)
        clear = sum(1 for d in analysis.definitions if d.is_direct_definition and d.definition_clarity == "clear")
        dedicated = analysis.page_type in ("dedicated_definition", "glossary")

        evidence.append(
            ev.info("Definition Analysis", f"{count} definition(s), {clear} clear; page type {analysis.page_type}")
        )
        if dedicated and clear >= self.MIN_DEFINITIONS_EXCELLENT:
            evidence.append(ev.success("Definition Analysis", f"Comprehensive definitional page with {clear} clear definitions", score=self.SCORE_EXCELLENT, max_score=100))
            breakdown.add("Comprehensive definitional content", self.SCORE_EXCELLENT)
        elif dedicated and clear >= self.MIN_DEFINITIONS_GOOD:
            evidence.append(ev.success("Definition Analysis", f"Good definitional content with {clear} clear definitions", score=self.SCORE_GOOD, max_score=100))
            breakdown.add("Good definitional content", self.SCORE_GOOD)
        elif count >= 1:
            evidence.append(ev.warning("Definition Analysis", f"Basic definitional content with {count} definitions", score=self.SCORE_MODERATE, max_score=100))
            breakdown.add("Basic definitional content", self.SCORE_MODERATE)
            recommendations.append("Open key sections with a one-sentence 'X is...' definition")
        else:
            evidence.append(ev.error("No Definitions", "No definitional content found", score=self.SCORE_NOT_PRESENT, max_score=100))
            breakdown.add("No definitional content", self.SCORE_NOT_PRESENT)
            issues.append(
                self.create_issue(
                    "NO_DEFINITIONS",
                    Severity.MEDIUM,
                    "Page defines none of its key terms",
                    "Add clear 'What is X' definitions for core concepts",
                )
            )

        for d in analysis.definitions[:5]:
            evidence.append(ev.info("Definition", f"{d.term}: {d.definition_clarity}", code=d.excerpt or None))
        if not analysis.has_schema_markup and count:
            recommendations.append("Mark up definitions with schema.org DefinedTerm")

        final = breakdown.finalize()
        evidence.append(breakdown.calculation(final))
        return self.create_result(
            final,
            evidence,
            issues,
            {
                "scoreBreakdown": breakdown.as_details(),
                "definitionCount": count,
                "clearDefinitions": clear,
                "pageType": analysis.page_type,
            },
            recommendations,
            usage,
        )

# aeo_engine/rules/structure.py
"""
Heuristic STRUCTURE rules: the H1, subheading density, and the meta description.

Bands are strict, pre-declared thresholds; there is no interpolation between
them apart from the partial question-heading bonus.
"""
from __future__ import annotations

import re
from collections import Counter
from typing import Sequence

from aeo_engine import evidence as ev
from aeo_engine import html_logic
from aeo_engine.errors import ProviderExhaustedError
from aeo_engine.models import AIUsage, Category, EvidenceItem, PageContent, RuleIssue, RuleResult, Severity
from aeo_engine.providers import LLMClient, ProviderCandidate, resolve_with_fallback
from aeo_engine.rules.base import BaseRule
from aeo_engine.rules.schemas import CompellingLanguageAnalysis
from aeo_engine.scoring import ScoreBreakdown, round_half_up

GENERIC_H1 = [
    re.compile(r"^(home|welcome|untitled|page \d+|hello world)$", re.I),
    re.compile(r"^(click here|read more|learn more)$", re.I),
]

GENERIC_SUBHEADINGS = {"introduction", "overview", "more info", "details", "conclusion", "summary"}

QUESTION_START = re.compile(
    r"^(what|why|how|when|where|who|which|can|should|is|are|does|do|will)\b", re.I
)

_STOPWORDS = {"the", "and", "for", "with", "your", "from", "that", "this", "are", "you"}


def _significant_words(text: str) -> set[str]:
    return {w for w in re.findall(r"[a-z0-9]+", text.lower()) if len(w) > 2 and w not in _STOPWORDS}


class MainHeadingRule(BaseRule):
    def __init__(self) -> None:
        super().__init__("main_heading", "Main Heading (H1)", Category.STRUCTURE, impact_score=3)

    async def evaluate(self, url: str, content: PageContent) -> RuleResult:
        evidence: list[EvidenceItem] = []
        issues: list[RuleIssue] = []
        recommendations: list[str] = []
        breakdown = ScoreBreakdown()

        soup = html_logic.parse_html(content.html)
        h1s = [h.text for h in html_logic.headings(soup) if h.level == 1]
        title = html_logic.title_text(soup)

        if not h1s:
            evidence.append(ev.error("H1 Presence", "No H1 heading found", score=0, max_score=40))
            breakdown.add("No H1", 0)
            issues.append(
                self.create_issue(
                    "NO_H1",
                    Severity.HIGH,
                    "Page has no H1 heading",
                    "Add one H1 that states the page topic",
                )
            )
            recommendations.append("Add a single descriptive H1 heading")
            final = breakdown.finalize()
            evidence.append(breakdown.calculation(final))
            return self.create_result(final, evidence, issues, {"scoreBreakdown": breakdown.as_details()}, recommendations)

        primary = h1s[0]
        if len(h1s) == 1:
            evidence.append(ev.success("H1 Presence", f'Single H1: "{primary}"', score=40, max_score=40))
            breakdown.add("Single H1", 40)
            words = html_logic.word_count(primary)
            if 3 <= words <= 10:
                evidence.append(ev.success("H1 Length", f"H1 has {words} words", score=20, max_score=20))
                breakdown.add("H1 length 3-10 words", 20)
            else:
                evidence.append(
                    ev.warning("H1 Length", f"H1 has {words} words", score=10, max_score=20, target="3-10 words")
                )
                breakdown.add("H1 length outside 3-10 words", 10)
        else:
            evidence.append(
                ev.warning("H1 Presence", f"{len(h1s)} H1 headings found", score=10, max_score=60, code="\n".join(h1s))
            )
            breakdown.add("Multiple H1s", 10)
            issues.append(
                self.create_issue(
                    "MULTIPLE_H1",
                    Severity.MEDIUM,
                    f"Page has {len(h1s)} H1 headings",
                    "Keep one H1 and demote the others to H2",
                    h1s,
                )
            )

        if len(primary) > 20:
            evidence.append(ev.success("Descriptiveness", "H1 is descriptive", score=20, max_score=20))
            breakdown.add("Descriptive H1", 20)
        else:
            evidence.append(ev.warning("Descriptiveness", "H1 may lack descriptiveness", score=10, max_score=20))
            breakdown.add("H1 may lack descriptiveness", 10)

        if any(p.match(primary.strip()) for p in GENERIC_H1):
            evidence.append(ev.error("Generic Check", "H1 uses generic text", score=0, max_score=10))
            breakdown.add("H1 uses generic text", 0)
            issues.append(
                self.create_issue("GENERIC_H1", Severity.MEDIUM, "H1 text is generic", "Describe the page topic in the H1")
            )
        else:
            evidence.append(ev.success("Generic Check", "H1 is not generic", score=10, max_score=10))
            breakdown.add("H1 is not generic", 10)

        shared = _significant_words(primary) & _significant_words(title)
        if title and shared and primary.strip().lower() != title.strip().lower():
            evidence.append(ev.success("Title Alignment", "H1 relates to the title without duplicating it", score=10, max_score=10))
            breakdown.add("H1 aligned with title", 10)
        elif title and primary.strip().lower() == title.strip().lower():
            evidence.append(ev.info("Title Alignment", "H1 duplicates the title", score=0, max_score=10))
            breakdown.add("H1 duplicates title", 0)
        else:
            evidence.append(ev.info("Title Alignment", "H1 and title share no key terms", score=0, max_score=10))
            breakdown.add("H1 unrelated to title", 0)

        final = breakdown.finalize()
        evidence.append(breakdown.calculation(final))
        return self.create_result(
            final, evidence, issues, {"scoreBreakdown": breakdown.as_details(), "h1": h1s}, recommendations
        )


class SubheadingsRule(BaseRule):
    """
    Words per subheading (H2-H6) decides the band:
    <=100 -> 90, <=199 -> 80, <=300 -> 60, else 40.
    Question-style H2s add up to 10, generic headings cost 5 each, a skipped
    heading level costs 10. Pages with some structure never drop below 20.
    """

    MIN_WORDS = 50
    FLOOR = 20

    def __init__(self) -> None:
        super().__init__("subheadings", "Subheading Structure", Category.STRUCTURE, impact_score=3)

    @staticmethod
    def density_band(words_per_heading: int) -> tuple[int, str]:
        if words_per_heading <= 100:
            return 90, "Excellent density (<=100 words per subheading)"
        if words_per_heading <= 199:
            return 80, "Good density (101-199 words per subheading)"
        if words_per_heading <= 300:
            return 60, "Fair density (200-300 words per subheading)"
        return 40, "Poor density (>300 words per subheading)"

    async def evaluate(self, url: str, content: PageContent) -> RuleResult:
        evidence: list[EvidenceItem] = []
        issues: list[RuleIssue] = []
        recommendations: list[str] = []

        soup = html_logic.parse_html(content.html)
        text = html_logic.page_text(content.html, content.clean_content)
        words = html_logic.word_count(text)
        all_headings = html_logic.headings(soup)
        subs = [h for h in all_headings if h.level >= 2]
        h2s = [h for h in subs if h.level == 2]

        if words < self.MIN_WORDS:
            breakdown = ScoreBreakdown()
            breakdown.add("Insufficient content", 0)
            evidence.append(
                ev.warning("Content Length", f"Only {words} words; too short to assess structure", score=0, max_score=100)
            )
            evidence.append(breakdown.calculation(0))
            return self.create_result(0, evidence, issues, {"scoreBreakdown": breakdown.as_details(), "wordCount": words})

        breakdown = ScoreBreakdown(floor=self.FLOOR)
        evidence.append(ev.info("Structure", f"{words} words, {len(subs)} subheadings ({len(h2s)} H2)"))

        if not subs:
            evidence.append(ev.error("Structure", "No subheadings found", score=20, max_score=90))
            breakdown.add("No subheadings", 20)
            issues.append(
                self.create_issue(
                    "NO_SUBHEADINGS",
                    Severity.HIGH,
                    "Content has no subheadings",
                    "Break the content into sections with H2/H3 headings",
                )
            )
            recommendations.append("Add H2 subheadings every 100-200 words")
        else:
            wph = round_half_up(words / len(subs))
            points, label = self.density_band(wph)
            item = ev.success if points >= 80 else ev.warning
            evidence.append(item("Density", f"{wph} words per subheading", score=points, max_score=90))
            breakdown.add(label, points)
            if points == 40:
                issues.append(
                    self.create_issue(
                        "POOR_DENSITY",
                        Severity.MEDIUM,
                        f"{wph} words per subheading",
                        "Add subheadings so sections stay under 300 words",
                    )
                )

            if h2s:
                questions = [h for h in h2s if h.text.endswith("?") or QUESTION_START.match(h.text)]
                pct = len(questions) / len(h2s) * 100
                if pct >= 30:
                    evidence.append(ev.success("Questions", f"{pct:.0f}% of H2s are questions", score=10, max_score=10))
                    breakdown.add("Question-style H2s", 10)
                elif pct > 0:
                    bonus = round_half_up(pct * 10 / 30)
                    evidence.append(ev.info("Questions", f"{pct:.0f}% of H2s are questions", score=bonus, max_score=10))
                    breakdown.add("Some question-style H2s", bonus)
                elif len(subs) > 3:
                    issues.append(
                        self.create_issue(
                            "NO_QUESTIONS",
                            Severity.LOW,
                            "No subheadings are phrased as questions",
                            "Phrase some H2s as the questions readers ask",
                        )
                    )

            generic = [h.text for h in subs if h.text.strip().lower().rstrip(":") in GENERIC_SUBHEADINGS]
            if generic:
                penalty = -5 * len(generic)
                evidence.append(
                    ev.warning("Generic Headings", f"{len(generic)} generic subheading(s)", score=penalty, code="\n".join(generic))
                )
                breakdown.add("Generic subheadings", penalty)

        skipped = [
            f"H{prev.level} -> H{cur.level}"
            for prev, cur in zip(all_headings, all_headings[1:])
            if cur.level > prev.level + 1
        ]
        if skipped:
            evidence.append(ev.warning("Hierarchy", "Heading levels are skipped", score=-10, code="\n".join(skipped)))
            breakdown.add("Broken hierarchy", -10)
            issues.append(
                self.create_issue(
                    "BROKEN_HIERARCHY",
                    Severity.MEDIUM,
                    "Heading levels are skipped",
                    "Nest headings in order (H2, then H3, then H4)",
                    skipped,
                )
            )
        if any(h.level == 4 for h in subs) and not any(h.level == 3 for h in subs):
            issues.append(
                self.create_issue("H4_WITHOUT_H3", Severity.LOW, "H4 used without any H3", "Use H3 before H4")
            )
        if subs and not h2s:
            issues.append(self.create_issue("NO_H2", Severity.MEDIUM, "No H2 headings", "Use H2 for main sections"))
        if 0 < len(subs) < 3 and words > 300:
            issues.append(
                self.create_issue(
                    "TOO_FEW_SUBHEADINGS",
                    Severity.MEDIUM,
                    f"Only {len(subs)} subheadings for {words} words",
                    "Add more subheadings",
                )
            )

        final = breakdown.finalize()
        evidence.append(breakdown.calculation(final))
        return self.create_result(
            final,
            evidence,
            issues,
            {"scoreBreakdown": breakdown.as_details(), "wordCount": words, "subheadingCount": len(subs)},
            recommendations,
        )


CTA_PATTERNS = [
    re.compile(r"\b(learn|discover|find out|explore|get|start|try|see|read)\b", re.I),
    re.compile(r"\b(best|top|guide|how to|tips|free|new|exclusive)\b", re.I),
]
SPECIAL_CHARS = re.compile(r"[→•✓★†‡§¶]")


class MetaDescriptionRule(BaseRule):
    """
    Heuristic rule with an optional LLM check for compelling language.

    Unlike the LLM-only rules this one has a reliable non-AI signal, so when
    no client is configured or every provider fails it uses the call-to-action
    patterns instead of failing.
    """

    LLM_PROVIDERS: Sequence[ProviderCandidate] = (
        ProviderCandidate("openai", "gpt-4o-mini", temperature=0.3, max_tokens=1000),
        ProviderCandidate("anthropic", "claude-3-5-sonnet-20241022", temperature=0.3, max_tokens=1000),
        ProviderCandidate("google", "gemini-2.0-flash", temperature=0.3, max_tokens=1000),
    )

    def __init__(self, llm_client: LLMClient | None = None, llm_timeout: float | None = None) -> None:
        super().__init__("meta_description", "Meta Description", Category.STRUCTURE, impact_score=3)
        self.llm_client = llm_client
        self.llm_timeout = llm_timeout

    @staticmethod
    def length_band(length: int) -> tuple[int, str]:
        if 120 <= length <= 160:
            return 35, "Optimal length (120-160 chars)"
        if 50 <= length < 120:
            return 18, "Acceptable length (50-119 chars)"
        if 160 < length <= 200:
            return 18, "Slightly long (161-200 chars)"
        if length > 200:
            return 8, "Too long (>200 chars)"
        return 8, "Too short (<50 chars)"

    @staticmethod
    def stuffed_words(description: str) -> list[str]:
        counts = Counter(w for w in re.findall(r"[^\W_]+", description.lower()) if len(w) > 3)
        return sorted(w for w, n in counts.items() if n > 2)

    async def _compelling(
        self, description: str, url: str
    ) -> tuple[bool, str, AIUsage | None]:
        if self.llm_client is not None:
            prompt = (
                "Analyze this meta description for compelling, action-oriented language "
                "that would encourage clicks in search results.\n\n"
                f'Meta Description: "{description}"\n\n'
                "Consider call-to-action words, compelling adjectives and persuasive verbs in any language."
            )
            try:
                outcome = await resolve_with_fallback(
                    self.llm_client,
                    self.LLM_PROVIDERS,
                    prompt,
                    CompellingLanguageAnalysis,
                    logger=self.logger(url),
                    timeout=self.llm_timeout,
                )
            except ProviderExhaustedError as e:
                self.logger(url).warning("Falling back to pattern check: %s", e)
            else:
                usage = AIUsage(
                    model_name=outcome.candidate.label,
                    prompt=prompt[:500],
                    response=outcome.value.model_dump_json()[:500],
                )
                return outcome.value.has_compelling_language, "llm", usage
        return any(p.search(description) for p in CTA_PATTERNS), "patterns", None

    async def evaluate(self, url: str, content: PageContent) -> RuleResult:
        evidence: list[EvidenceItem] = []
        issues: list[RuleIssue] = []
        recommendations: list[str] = []
        breakdown = ScoreBreakdown()

        soup = html_logic.parse_html(content.html)
        description = html_logic.meta_description(soup)

        if description is None:
            evidence.append(ev.error("Meta Description", "No meta description tag", score=0, max_score=100))
            breakdown.add("Missing meta description", 0)
            issues.append(
                self.create_issue(
                    "MISSING_META_DESCRIPTION",
                    Severity.HIGH,
                    "Page has no meta description",
                    "Add a 120-160 character meta description",
                )
            )
            recommendations.append("Add a meta description of 120-160 characters summarizing the page")
            final = breakdown.finalize()
            evidence.append(breakdown.calculation(final))
            return self.create_result(final, evidence, issues, {"scoreBreakdown": breakdown.as_details()}, recommendations)

        evidence.append(ev.success("Meta Description", "Meta description present", score=20, max_score=20, code=description))
        breakdown.add("Meta description present", 20)

        length = len(description)
        points, label = self.length_band(length)
        item = ev.success if points == 35 else ev.warning
        evidence.append(item("Length", f"{length} characters", score=points, max_score=35, target="120-160 characters"))
        breakdown.add(label, points)
        if length < 50:
            issues.append(self.create_issue("TOO_SHORT", Severity.MEDIUM, f"Meta description is {length} characters", "Expand it to 120-160 characters"))
        elif length > 170:
            issues.append(self.create_issue("TOO_LONG", Severity.LOW, f"Meta description is {length} characters", "Trim it to 160 characters"))

        stuffed = self.stuffed_words(description)
        if stuffed:
            evidence.append(ev.warning("Keywords", "Keyword stuffing detected", score=-10, code=", ".join(stuffed)))
            breakdown.add("Keyword stuffing", -10)
            issues.append(
                self.create_issue("KEYWORD_STUFFING", Severity.MEDIUM, "Words repeated more than twice", "Write naturally", stuffed)
            )
        else:
            evidence.append(ev.success("Keywords", "No keyword stuffing", score=10, max_score=10))
            breakdown.add("Natural keyword usage", 10)

        compelling, method, ai_usage = await self._compelling(description, url)
        if compelling:
            evidence.append(ev.success("Compelling Language", f"Compelling language found ({method})", score=15, max_score=15))
            breakdown.add("Compelling language", 15)
        else:
            evidence.append(ev.warning("Compelling Language", f"No compelling language ({method})", score=0, max_score=15))
            breakdown.add("No compelling language", 0)
            issues.append(
                self.create_issue("LACKS_COMPELLING", Severity.LOW, "Meta description lacks a call to action", "Add an action verb such as learn or discover")
            )

        if SPECIAL_CHARS.search(description):
            evidence.append(ev.success("Formatting", "Uses eye-catching characters", score=5, max_score=5))
            breakdown.add("Special characters", 5)

        title = html_logic.title_text(soup).strip().lower()
        h1 = next((h.text.strip().lower() for h in html_logic.headings(soup) if h.level == 1), "")
        normalized = description.strip().lower()
        if normalized and normalized in (title, h1):
            which = "TITLE" if normalized == title else "H1"
            evidence.append(ev.warning("Uniqueness", f"Meta description duplicates the {which.lower()}", score=-15))
            breakdown.add(f"Duplicates {which.lower()}", -15)
            issues.append(
                self.create_issue(f"DUPLICATES_{which}", Severity.MEDIUM, f"Meta description repeats the {which.lower()}", "Write a distinct summary")
            )
        else:
            evidence.append(ev.success("Uniqueness", "Distinct from title and H1", score=15, max_score=15))
            breakdown.add("Unique description", 15)

        final = breakdown.finalize()
        evidence.append(breakdown.calculation(final))
        return self.create_result(
            final,
            evidence,
            issues,
            {"scoreBreakdown": breakdown.as_details(), "length": length, "compellingCheck": method},
            recommendations,
            ai_usage,
        )

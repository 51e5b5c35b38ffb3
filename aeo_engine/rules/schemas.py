# aeo_engine/rules/schemas.py
# Structured-output schemas handed to the LLM client by the LLM-backed rules.

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class CompellingLanguageAnalysis(BaseModel):
    has_compelling_language: bool = Field(
        description="Whether the meta description contains call-to-action or persuasive language"
    )
    compelling_words: List[str] = Field(default_factory=list)
    language: str = "unknown"
    analysis: str = ""
    suggestions: List[str] = Field(default_factory=list)


class GuideTopic(BaseModel):
    topic: str
    depth: Literal["surface", "moderate", "comprehensive"]
    excerpt: str = Field("", description="Direct quote (50-150 chars) showing how the topic is addressed")
    entity_coverage: float = Field(0, ge=0, le=100)


class InDepthGuideAnalysis(BaseModel):
    topics: List[GuideTopic] = Field(default_factory=list)
    guide_type: Literal[
        "ultimate_guide",
        "complete_guide",
        "pillar_page",
        "standard_guide",
        "basic_article",
        "not_guide",
    ]
    has_table_of_contents: bool = False
    has_examples: bool = False
    has_internal_links: bool = False
    has_external_references: bool = False
    last_updated: Optional[str] = None
    comprehensiveness: Literal["exhaustive", "thorough", "adequate", "basic", "insufficient"]
    target_audience: Literal["beginner", "intermediate", "advanced", "all_levels"] = "all_levels"
    industry_focus: Optional[str] = None
    analysis: str = ""


class Definition(BaseModel):
    term: str
    definition: str
    excerpt: str = ""
    is_direct_definition: bool = False
    has_examples: bool = False
    has_related_terms: bool = False
    has_etymology: bool = False
    definition_clarity: Literal["clear", "moderate", "vague"] = "moderate"
    definition_completeness: Literal["comprehensive", "adequate", "basic"] = "basic"


class DefinitionalAnalysis(BaseModel):
    definitions: List[Definition] = Field(default_factory=list)
    page_type: Literal["dedicated_definition", "glossary", "mixed_content", "non_definitional"]
    has_structured_markup: bool = False
    has_schema_markup: bool = False
    definition_density: Literal["high", "medium", "low", "none"] = "none"
    target_audience: Literal["beginner", "intermediate", "expert", "mixed"] = "mixed"
    analysis: str = ""

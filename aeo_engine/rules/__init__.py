# The default rule battery.
#
# Adding a rule: subclass BaseRule (or LLMBackedRule for LLM extraction),
# build the score with ScoreBreakdown, finish with `breakdown.calculation(final)`
# as the last evidence item, return `self.create_result(...)`, and list the
# class below.

from __future__ import annotations

from typing import Any, Mapping

from aeo_engine.lookup import LookupClient
from aeo_engine.providers import LLMClient
from aeo_engine.rules.authority import WikidataPresenceRule, WikipediaPresenceRule
from aeo_engine.rules.base import BaseRule
from aeo_engine.rules.content import DefinitionalContentRule, ImageAltRule
from aeo_engine.rules.llm import LLMBackedRule
from aeo_engine.rules.quality import InDepthGuidesRule
from aeo_engine.rules.structure import MainHeadingRule, MetaDescriptionRule, SubheadingsRule
from aeo_engine.rules.technical import HttpsSecurityRule, StructuredDataRule


def build_default_rules(
    llm_client: LLMClient | None = None,
    lookup: LookupClient | None = None,
    config: Mapping[str, Any] | None = None,
) -> list[BaseRule]:
    llm_timeout = (config or {}).get("llm_timeout")
    return [
        HttpsSecurityRule(),
        StructuredDataRule(),
        ImageAltRule(),
        MainHeadingRule(),
        SubheadingsRule(),
        MetaDescriptionRule(llm_client, llm_timeout),
        WikipediaPresenceRule(lookup, config),
        WikidataPresenceRule(lookup, config),
        InDepthGuidesRule(llm_client, llm_timeout),
        DefinitionalContentRule(llm_client, llm_timeout),
    ]


__all__ = [
    "BaseRule",
    "LLMBackedRule",
    "HttpsSecurityRule",
    "StructuredDataRule",
    "ImageAltRule",
    "MainHeadingRule",
    "SubheadingsRule",
    "MetaDescriptionRule",
    "WikipediaPresenceRule",
    "WikidataPresenceRule",
    "InDepthGuidesRule",
    "DefinitionalContentRule",
    "build_default_rules",
]

# Entrypoint for the aeo_engine package.
# This file makes the public API available to programmers.

from __future__ import annotations

from aeo_engine.__about__ import __version__
from aeo_engine.api import build_registry, evaluate_page
from aeo_engine.models import (
    AggregatedReport,
    Category,
    EvidenceItem,
    PageContent,
    PageType,
    RuleFailure,
    RuleResult,
)
from aeo_engine.registry import RuleRegistry
from aeo_engine.rules import BaseRule, build_default_rules
from aeo_engine.scoring import aggregate_results

__all__ = [
    "evaluate_page",
    "build_registry",
    "build_default_rules",
    "aggregate_results",
    "RuleRegistry",
    "BaseRule",
    "AggregatedReport",
    "Category",
    "EvidenceItem",
    "PageContent",
    "PageType",
    "RuleFailure",
    "RuleResult",
    "__version__",
]

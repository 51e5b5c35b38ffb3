# aeo_engine/api.py
# The primary, programmer-facing API for the library.

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

import httpx

from aeo_engine.config import load_config
from aeo_engine.lookup import LookupClient
from aeo_engine.models import AggregatedReport, ApplicationLevel, PageContent
from aeo_engine.providers import LLMClient
from aeo_engine.registry import RuleRegistry
from aeo_engine.rules import build_default_rules
from aeo_engine.scoring import aggregate_results

log = logging.getLogger(__name__)


def build_registry(
    config: Mapping[str, Any],
    *,
    llm_client: LLMClient | None = None,
    lookup: LookupClient | None = None,
) -> RuleRegistry:
    """Construct the default rule battery with its collaborators injected."""
    return RuleRegistry(
        build_default_rules(llm_client, lookup, config),
        max_concurrency=int(config.get("max_concurrency", 4)),
        deadline=config.get("evaluation_deadline"),
        disabled=config.get("disabled_rules") or (),
    )


async def evaluate_page(
    content: PageContent,
    *,
    llm_client: LLMClient | None = None,
    config: dict[str, Any] | None = None,
    pyproject_path: Path | None = None,
    level: ApplicationLevel | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AggregatedReport:
    """
    Evaluate one page (and the domain-level rules for its site) and aggregate.

    Args:
        content: Page produced by the crawler. Never modified.
        llm_client: Provider client for LLM-backed rules. Without one those
            rules are reported as unavailable.
        config: Full configuration dict. Loaded from pyproject.toml when omitted.
        pyproject_path: Where to look for `[tool.aeo_engine]` if config is omitted.
        level: Restrict to page-level or domain-level rules.
        transport: httpx transport for the lookup client (used by tests).

    Returns:
        The aggregated report.
    """
    if config is None:
        config = load_config(pyproject_path)
    log.info("Starting evaluation for: %s", content.url)

    async with LookupClient(config, transport=transport) as lookup:
        registry = build_registry(config, llm_client=llm_client, lookup=lookup)
        outcomes = await registry.evaluate_all(content.url, content, level=level)

    page_type = getattr(content.page_type, "value", content.page_type)
    return aggregate_results(
        content.url,
        outcomes,
        category_weights=config.get("category_weights"),
        page_type=str(page_type) if page_type else None,
    )

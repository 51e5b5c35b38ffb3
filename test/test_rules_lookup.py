# Tests for the Wikipedia and Wikidata presence rules against a mocked HTTP transport.
import asyncio
from datetime import datetime, timezone

import httpx

from aeo_engine.config import DEFAULT_CONFIG
from aeo_engine.lookup import LookupClient
from aeo_engine.models import PageContent, RuleResult, Severity
from aeo_engine.registry import RuleRegistry
from aeo_engine.rules.authority import WikidataPresenceRule, WikipediaPresenceRule

URL = "https://www.acme.com/about"
CONFIG = {**DEFAULT_CONFIG, "cache": {"enabled": False}}
NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def fixed_now():
    return NOW


def evaluate(rule_cls, handler):
    async def go():
        async with LookupClient(CONFIG, transport=httpx.MockTransport(handler)) as lookup:
            rule = rule_cls(lookup, CONFIG, now=fixed_now)
            return await rule.evaluate(URL, PageContent(url=URL))

    return asyncio.run(go())


def wikipedia_handler(search_results, page=None):
    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if params.get("list") == "search":
            assert params["srsearch"] == "Acme"
            return httpx.Response(200, json={"query": {"search": search_results}})
        assert page is not None
        return httpx.Response(200, json={"query": {"pages": {params["pageids"]: page}}})

    return handler


ACME_ARTICLE = {
    "pageid": 42,
    "title": "Acme",
    "extract": "Acme is a company. " + "It makes anvils. " * 80,
    "categories": [{"title": f"Category:C{i}"} for i in range(4)],
    "extlinks": [{"*": "https://acme.com"}, {"*": "https://b.org"}, {"*": "https://c.org"}],
    "touched": "2026-03-01T10:00:00Z",
    "fullurl": "https://en.wikipedia.org/wiki/Acme",
}


def test_wikipedia_full_presence(recompute):
    """Relevant, long, categorised, recently edited article with references scores full marks."""
    handler = wikipedia_handler([{"pageid": 42, "title": "Acme", "snippet": "Acme is a company"}], ACME_ARTICLE)
    result = evaluate(WikipediaPresenceRule, handler)
    assert result.score == 100
    assert result.issues == []
    assert result.details["brandName"] == "acme"
    assert recompute(result) == 100


def test_wikipedia_unrelated_article_earns_nothing():
    """A hit that merely mentions the brand is not counted."""
    handler = wikipedia_handler(
        [{"pageid": 7, "title": "Road Runner", "snippet": "a cartoon bird who outruns acme gadgets"}]
    )
    result = evaluate(WikipediaPresenceRule, handler)
    assert result.score == 0
    assert result.details["relevantResults"] == []
    assert result.issues[0].severity is Severity.HIGH
    assert result.issues[0].id == "NO_WIKIPEDIA_PRESENCE"


def test_wikipedia_lookup_failure_is_error_evidence():
    result = evaluate(WikipediaPresenceRule, lambda request: httpx.Response(503))
    assert result.score == 0
    assert result.issues == []
    assert result.evidence[0].type.value == "error"
    assert "HTTP 503" in result.evidence[0].content
    assert result.evidence[-1].topic == "Score Calculation"


def test_wikipedia_network_failure_is_error_evidence():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    result = evaluate(WikipediaPresenceRule, handler)
    assert result.score == 0
    assert "network error" in result.details["lookupError"]


def test_wikipedia_relevance_filter():
    is_about = WikipediaPresenceRule.is_about_brand
    assert is_about({"title": "Acme Corporation"}, "acme")
    assert is_about({"title": "Anvils", "extract": "Acme was a maker of anvils. It closed."}, "acme")
    assert is_about({"title": "Anvils", "snippet": "acme is the best known maker"}, "acme")
    assert not is_about({"title": "Anvils", "snippet": "used by acme sometimes"}, "acme")


ACME_ENTITY = {
    "id": "Q1",
    "descriptions": {"en": {"value": "American manufacturing company"}},
    "labels": {"en": {"value": "Acme"}, "de": {"value": "Acme"}},
    "claims": {f"P{i}": [] for i in range(12)},
    "sitelinks": {f"wiki{i}": {} for i in range(5)},
    "aliases": {"en": [{"value": "Acme Corp"}]},
}


def wikidata_handler(search_results):
    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if params["action"] == "wbsearchentities":
            assert params["search"] == "acme"
            return httpx.Response(200, json={"search": search_results})
        assert params["ids"] == "Q1"
        return httpx.Response(200, json={"entities": {"Q1": ACME_ENTITY}})

    return handler


def test_wikidata_full_presence_is_capped():
    """Raw points above 100 are clamped and the clamp is shown in the breakdown."""
    handler = wikidata_handler([{"id": "Q1", "label": "Acme", "description": "company"}])
    result = evaluate(WikidataPresenceRule, handler)
    assert result.score == 100
    breakdown = result.evidence[-1].metadata["breakdown"]
    assert breakdown[-1] == {"component": "Capped at 100", "points": -10}
    assert sum(b["points"] for b in breakdown) == 100
    assert result.details["entityId"] == "Q1"


def test_wikidata_label_without_business_description_is_not_relevant():
    handler = wikidata_handler([{"id": "Q9", "label": "Acme Peak", "description": "mountain in Alaska"}])
    result = evaluate(WikidataPresenceRule, handler)
    assert result.score == 0
    assert result.issues[0].id == "NO_WIKIDATA_PRESENCE"


def test_lookup_rules_without_client_become_unavailable():
    registry = RuleRegistry([WikipediaPresenceRule(None, CONFIG), WikidataPresenceRule(None, CONFIG)])
    content = PageContent(url=URL)
    outcomes = asyncio.run(registry.evaluate_all(URL, content))
    assert [o.error_type for o in outcomes] == ["MissingCollaboratorError", "MissingCollaboratorError"]


def test_wikipedia_naive_touched_timestamp_is_utc(recompute):
    """A touched timestamp without an offset still counts as a recent edit."""
    page = {**ACME_ARTICLE, "touched": "2026-03-01T10:00:00"}
    handler = wikipedia_handler([{"pageid": 42, "title": "Acme", "snippet": "Acme is a company"}], page)
    result = evaluate(WikipediaPresenceRule, handler)
    assert result.score == 100
    assert recompute(result) == 100


def test_wikipedia_search_hits_without_pageid_are_skipped():
    handler = wikipedia_handler([{"title": "Acme", "snippet": "Acme is a company"}])
    result = evaluate(WikipediaPresenceRule, handler)
    assert result.score == 0
    assert result.issues[0].id == "NO_WIKIPEDIA_PRESENCE"


def test_wikidata_search_hits_without_id_are_skipped():
    """Hits missing an entity id are dropped rather than crashing the rule."""
    handler = wikidata_handler([{"label": "Acme", "description": "company"}])
    result = evaluate(WikidataPresenceRule, handler)
    assert result.score == 0
    assert result.issues[0].id == "NO_WIKIDATA_PRESENCE"


def test_non_object_json_body_is_error_evidence():
    """A JSON body of the wrong shape is reported like any other lookup failure."""
    for rule_cls in (WikipediaPresenceRule, WikidataPresenceRule):
        result = evaluate(rule_cls, lambda request: httpx.Response(200, json=["unexpected"]))
        assert result.score == 0
        assert result.issues == []
        assert result.evidence[0].type.value == "error"
        assert "unexpected payload" in result.evidence[0].content


def test_malformed_payload_stays_a_result_in_the_registry():
    def handler(request):
        return httpx.Response(200, json={"query": {"search": "oops"}})

    async def go():
        async with LookupClient(CONFIG, transport=httpx.MockTransport(handler)) as lookup:
            registry = RuleRegistry([WikipediaPresenceRule(lookup, CONFIG, now=fixed_now)])
            return await registry.evaluate_all(URL, PageContent(url=URL))

    [outcome] = asyncio.run(go())
    assert isinstance(outcome, RuleResult)
    assert outcome.score == 0
    assert "unexpected payload" in outcome.details["lookupError"]


def test_wikipedia_read_timeout_is_error_evidence():
    """A slow upstream becomes error evidence, not an exception or an issue."""

    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    result = evaluate(WikipediaPresenceRule, handler)
    assert result.score == 0
    assert result.issues == []
    assert result.evidence[0].type.value == "error"
    assert "timeout" in result.evidence[0].content

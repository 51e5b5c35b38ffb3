# aeo_engine/rules/authority.py
"""
Domain-level AUTHORITY rules backed by Wikipedia and Wikidata.

Scores come only from results that pass a brand-relevance filter, never from
the raw hit count, so an unrelated article that shares the brand's name earns
nothing. Any lookup failure, including a payload of the wrong shape, is
recorded as error evidence and the rule scores 0 instead of raising.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from aeo_engine import evidence as ev
from aeo_engine import html_logic
from aeo_engine.config import DEFAULT_CONFIG
from aeo_engine.errors import ExternalLookupError, MissingCollaboratorError
from aeo_engine.lookup import LookupClient
from aeo_engine.models import Category, EvidenceItem, PageContent, RuleIssue, RuleResult, Severity
from aeo_engine.rules.base import BaseRule
from aeo_engine.scoring import ScoreBreakdown

BUSINESS_CATEGORY_TERMS = ("companies", "corporations", "businesses", "software", "brands")
BUSINESS_DESCRIPTION_TERMS = (
    "company",
    "corporation",
    "business",
    "brand",
    "manufacturer",
    "retailer",
    "organization",
    "software",
    "service",
    "website",
    "platform",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _json_object(payload: Any, url: str, *path: str) -> dict[str, Any]:
    """Walk `path` through nested JSON objects; any other shape is an unexpected payload."""
    node = payload or {}
    if not isinstance(node, dict):
        raise ExternalLookupError(url, "unexpected payload")
    for key in path:
        node = node.get(key) or {}
        if not isinstance(node, dict):
            raise ExternalLookupError(url, f"unexpected payload at {key!r}")
    return node


def _json_hits(node: dict[str, Any], key: str, url: str, id_field: str) -> list[dict[str, Any]]:
    """Search hits under `key`; hits without `id_field` are dropped."""
    hits = node.get(key) or []
    if not isinstance(hits, list):
        raise ExternalLookupError(url, f"unexpected payload at {key!r}")
    return [h for h in hits if isinstance(h, dict) and id_field in h]


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


class _LookupRule(BaseRule):
    def __init__(
        self,
        rule_id: str,
        name: str,
        *,
        lookup: LookupClient | None,
        config: Mapping[str, Any] | None,
        now: Callable[[], datetime] | None = None,
    ):
        super().__init__(rule_id, name, Category.AUTHORITY, impact_score=3, is_domain_level=True)
        self.lookup = lookup
        self.config = config or DEFAULT_CONFIG
        self._now = now or _utcnow

    def _require_lookup(self) -> LookupClient:
        if self.lookup is None:
            raise MissingCollaboratorError(f"{self.id} requires a LookupClient")
        return self.lookup

    def _presence_issue(self, score: int, source: str) -> RuleIssue | None:
        if score < 20:
            return self.create_issue(
                f"NO_{source.upper()}_PRESENCE",
                Severity.HIGH,
                f"Brand has no meaningful {source} presence",
                f"Establish a notable, well-sourced {source} entry for the brand",
            )
        if score < 50:
            return self.create_issue(
                f"WEAK_{source.upper()}_PRESENCE",
                Severity.MEDIUM,
                f"Brand's {source} presence is limited",
                f"Expand the {source} entry with references and details",
            )
        if score < 80:
            return self.create_issue(
                f"PARTIAL_{source.upper()}_PRESENCE",
                Severity.LOW,
                f"Brand's {source} presence could be stronger",
                f"Keep the {source} entry current and well referenced",
            )
        return None

    def _failed(self, url: str, brand: str, error: ExternalLookupError, source: str) -> RuleResult:
        self.logger(url).warning("%s lookup failed: %s", source, error.reason)
        breakdown = ScoreBreakdown()
        breakdown.add(f"{source} lookup failed", 0)
        evidence = [
            ev.error(f"{source} Lookup", f"Could not query {source} for \"{brand}\": {error.reason}", score=0),
            breakdown.calculation(0),
        ]
        return self.create_result(
            0, evidence, details={"brandName": brand, "lookupError": str(error), "scoreBreakdown": breakdown.as_details()}
        )


class WikipediaPresenceRule(_LookupRule):
    def __init__(
        self,
        lookup: LookupClient | None = None,
        config: Mapping[str, Any] | None = None,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        super().__init__("wikipedia_presence", "Wikipedia Presence", lookup=lookup, config=config, now=now)

    @staticmethod
    def is_about_brand(result: Mapping[str, Any], brand: str) -> bool:
        brand = brand.lower()
        title = str(result.get("title", "")).lower()
        if brand in title:
            return True
        extract = str(result.get("extract") or "").lower()
        if extract:
            first = extract.split(". ")[0]
            if brand in first and (" is " in first or " was " in first):
                return True
        snippet = str(result.get("snippet") or "").lower()
        if snippet.startswith(brand) or f"{brand} is" in snippet:
            return True
        categories = [str(c.get("title", "")).lower() for c in _list(result.get("categories")) if isinstance(c, dict)]
        if any(t in c for c in categories for t in BUSINESS_CATEGORY_TERMS) and brand in (extract or title):
            return True
        return False

    async def _search(self, lookup: LookupClient, brand: str) -> list[dict[str, Any]]:
        api = self.config["wikipedia_api"]
        data = await lookup.get_json(
            api,
            {"action": "query", "list": "search", "srsearch": brand, "srlimit": 5, "format": "json"},
        )
        return _json_hits(_json_object(data, api, "query"), "search", api, "pageid")

    async def _page_info(self, lookup: LookupClient, page_id: int) -> dict[str, Any] | None:
        data = await lookup.get_json(
            self.config["wikipedia_api"],
            {
                "action": "query",
                "pageids": page_id,
                "prop": "info|extracts|categories|extlinks|revisions",
                "inprop": "url",
                "exintro": 1,
                "explaintext": 1,
                "cllimit": 10,
                "ellimit": 10,
                "rvlimit": 1,
                "format": "json",
            },
        )
        pages = _json_object(data, self.config["wikipedia_api"], "query", "pages")
        page = pages.get(str(page_id))
        return page if isinstance(page, dict) else None

    def _recently_touched(self, touched: Any) -> bool:
        if not touched or not isinstance(touched, str):
            return False
        try:
            when = datetime.fromisoformat(touched.replace("Z", "+00:00"))
        except ValueError:
            return False
        # MediaWiki timestamps are UTC even when the offset is omitted.
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return (self._now() - when).days < 365

    async def evaluate(self, url: str, content: PageContent) -> RuleResult:
        lookup = self._require_lookup()
        brand = html_logic.brand_name_from_url(url)
        evidence: list[EvidenceItem] = []
        issues: list[RuleIssue] = []
        breakdown = ScoreBreakdown()

        try:
            results = await self._search(lookup, brand.title())
            relevant = [r for r in results if self.is_about_brand(r, brand)]
            primary = next(
                (r for r in relevant if str(r.get("title", "")).lower() in (brand, f"{brand} (company)")),
                relevant[0] if relevant else None,
            )
            page = await self._page_info(lookup, primary["pageid"]) if primary else None
        except ExternalLookupError as e:
            return self._failed(url, brand, e, "Wikipedia")

        evidence.append(ev.info("Wikipedia Search", f'Found {len(results)} results for "{brand}", {len(relevant)} relevant'))

        if relevant:
            breakdown.add("Relevant Wikipedia article", 20)
            evidence.append(ev.success("Wikipedia Presence", "Relevant article found", score=20, max_score=20))
            title = str(primary.get("title", "")).lower() if primary else ""
            if title in (brand, f"{brand} (company)"):
                breakdown.add("Exact title match", 30)
                evidence.append(ev.success("Wikipedia Presence", f'Exact title match: "{primary["title"]}"', score=30, max_score=30))
        else:
            breakdown.add("No relevant article", 0)
            evidence.append(ev.warning("Wikipedia Presence", "No article about the brand", score=0, max_score=50))

        if page:
            extract = str(page.get("extract") or "")
            categories = _list(page.get("categories"))
            if len(extract) > 500:
                breakdown.add("Substantial extract", 15)
            if len(extract) > 1000:
                breakdown.add("Detailed extract", 10)
            if len(categories) > 3:
                breakdown.add("Well categorized", 10)
            if len(_list(page.get("extlinks"))) > 2:
                breakdown.add("External references", 10)
            if self._recently_touched(page.get("touched")):
                breakdown.add("Updated within 12 months", 5)
            evidence.append(
                ev.info(
                    "Wikipedia Article",
                    f"{len(extract)} char extract, {len(categories)} categories",
                    target=page.get("fullurl"),
                )
            )

        final = breakdown.finalize()
        issue = self._presence_issue(final, "Wikipedia")
        if issue:
            issues.append(issue)
        evidence.append(breakdown.calculation(final))
        return self.create_result(
            final,
            evidence,
            issues,
            {
                "brandName": brand,
                "searchResultsCount": len(results),
                "relevantResults": [r.get("title") for r in relevant],
                "scoreBreakdown": breakdown.as_details(),
            },
        )


class WikidataPresenceRule(_LookupRule):
    def __init__(
        self,
        lookup: LookupClient | None = None,
        config: Mapping[str, Any] | None = None,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        super().__init__("wikidata_presence", "Wikidata Presence", lookup=lookup, config=config, now=now)

    @staticmethod
    def is_about_brand(entity: Mapping[str, Any], brand: str) -> bool:
        brand = brand.lower()
        label = str(entity.get("label", "")).lower()
        description = str(entity.get("description", "")).lower()
        aliases = [str(a).lower() for a in _list(entity.get("aliases"))]
        if label == brand or brand in aliases:
            return True
        return brand in label and any(t in description for t in BUSINESS_DESCRIPTION_TERMS)

    async def evaluate(self, url: str, content: PageContent) -> RuleResult:
        lookup = self._require_lookup()
        brand = html_logic.brand_name_from_url(url)
        evidence: list[EvidenceItem] = []
        issues: list[RuleIssue] = []
        breakdown = ScoreBreakdown()
        api = self.config["wikidata_api"]

        try:
            data = await lookup.get_json(
                api,
                {"action": "wbsearchentities", "search": brand, "language": "en", "limit": 10, "format": "json"},
            )
            results = _json_hits(_json_object(data, api), "search", api, "id")
            relevant = [r for r in results if self.is_about_brand(r, brand)]
            entity = None
            if relevant:
                entity_id = str(relevant[0]["id"])
                payload = await lookup.get_json(api, {"action": "wbgetentities", "ids": entity_id, "format": "json"})
                entity = _mapping(_json_object(payload, api, "entities").get(entity_id)) or None
        except ExternalLookupError as e:
            return self._failed(url, brand, e, "Wikidata")

        evidence.append(ev.info("Wikidata Search", f'Found {len(results)} entities for "{brand}", {len(relevant)} relevant'))
        if not relevant:
            breakdown.add("No relevant entity", 0)
            evidence.append(ev.warning("Wikidata Presence", "No Wikidata entity for the brand", score=0, max_score=50))
        else:
            breakdown.add("Relevant Wikidata entity", 50)
            evidence.append(ev.success("Wikidata Presence", f"Entity {relevant[0]['id']} found", score=50, max_score=50))

        if entity:
            if _mapping(entity.get("descriptions")).get("en"):
                breakdown.add("Has description", 10)
            if len(_mapping(entity.get("labels"))) > 1:
                breakdown.add("Multilingual labels", 10)
            claims = len(_mapping(entity.get("claims")))
            if claims > 10:
                breakdown.add("Rich claims (>10)", 20)
            elif claims > 5:
                breakdown.add("Several claims (>5)", 10)
            elif claims > 0:
                breakdown.add("Some claims", 5)
            sitelinks = len(_mapping(entity.get("sitelinks")))
            if sitelinks > 3:
                breakdown.add("Many sitelinks (>3)", 15)
            elif sitelinks > 0:
                breakdown.add("Has sitelinks", 10)
            if _mapping(entity.get("aliases")).get("en"):
                breakdown.add("English aliases", 5)
            evidence.append(ev.info("Wikidata Entity", f"{claims} claims, {sitelinks} sitelinks"))

        final = breakdown.finalize()
        issue = self._presence_issue(final, "Wikidata")
        if issue:
            issues.append(issue)
        evidence.append(breakdown.calculation(final))
        return self.create_result(
            final,
            evidence,
            issues,
            {"brandName": brand, "entityId": relevant[0]["id"] if relevant else None, "scoreBreakdown": breakdown.as_details()},
        )

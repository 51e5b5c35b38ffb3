# aeo_engine/rules/technical.py
"""Heuristic TECHNICAL rules: transport security and structured data markup."""
from __future__ import annotations

from typing import Any

from aeo_engine import evidence as ev
from aeo_engine import html_logic
from aeo_engine.models import Category, EvidenceItem, PageContent, PageType, RuleIssue, RuleResult, Severity
from aeo_engine.rules.base import BaseRule
from aeo_engine.scoring import ScoreBreakdown


def _security_flag(info: dict[str, Any], *names: str) -> bool | None:
    for name in names:
        if name in info and info[name] is not None:
            return bool(info[name])
    return None


class HttpsSecurityRule(BaseRule):
    """
    Plain http:// pages score 0 no matter what else is true of them.
    For https pages: 60 for HTTPS, +20 HSTS, +10 valid certificate, +10 no mixed content.
    """

    def __init__(self) -> None:
        super().__init__(
            "https_security",
            "HTTPS & Transport Security",
            Category.TECHNICAL,
            impact_score=3,
        )

    async def evaluate(self, url: str, content: PageContent) -> RuleResult:
        evidence: list[EvidenceItem] = []
        issues: list[RuleIssue] = []
        recommendations: list[str] = []
        breakdown = ScoreBreakdown()

        if html_logic.url_scheme(url) != "https":
            evidence.append(
                ev.error(
                    "HTTPS",
                    "Page is not served over HTTPS",
                    score=0,
                    max_score=100,
                    target="Serve every page over HTTPS and redirect http:// to https://",
                    metadata={"severity": Severity.CRITICAL.value},
                )
            )
            breakdown.add("Not served over HTTPS", 0)
            issues.append(
                self.create_issue(
                    "NO_HTTPS",
                    Severity.CRITICAL,
                    "Page is served over insecure HTTP",
                    "Install a TLS certificate and redirect all HTTP traffic to HTTPS",
                    [url],
                )
            )
            recommendations.append("Migrate the site to HTTPS")
            final = breakdown.finalize()
            evidence.append(breakdown.calculation(final))
            return self.create_result(
                final, evidence, issues, {"scoreBreakdown": breakdown.as_details()}, recommendations
            )

        info = dict(content.security_info or {})
        headers = {str(k).lower(): v for k, v in (info.get("headers") or {}).items()}

        evidence.append(ev.success("HTTPS", "Page is served over HTTPS", score=60, max_score=60))
        breakdown.add("HTTPS enabled", 60)

        hsts = _security_flag(info, "hsts", "has_hsts")
        if hsts is None:
            hsts = "strict-transport-security" in headers
        if hsts:
            evidence.append(ev.success("HSTS", "Strict-Transport-Security header present", score=20, max_score=20))
            breakdown.add("HSTS header", 20)
        else:
            evidence.append(
                ev.warning(
                    "HSTS",
                    "No Strict-Transport-Security header",
                    score=0,
                    max_score=20,
                    target="Send Strict-Transport-Security with a long max-age",
                )
            )
            breakdown.add("HSTS header", 0)
            issues.append(
                self.create_issue(
                    "NO_HSTS",
                    Severity.MEDIUM,
                    "HSTS is not enabled",
                    "Add a Strict-Transport-Security header",
                )
            )

        cert_valid = _security_flag(info, "certificate_valid", "valid_certificate")
        if cert_valid:
            evidence.append(ev.success("Certificate", "TLS certificate is valid", score=10, max_score=10))
            breakdown.add("Valid certificate", 10)
        elif cert_valid is None:
            evidence.append(ev.info("Certificate", "Certificate status not reported by crawler", score=0, max_score=10))
            breakdown.add("Certificate status unknown", 0)
        else:
            evidence.append(ev.error("Certificate", "TLS certificate is invalid or expired", score=0, max_score=10))
            breakdown.add("Invalid certificate", 0)
            issues.append(
                self.create_issue(
                    "INVALID_CERTIFICATE",
                    Severity.HIGH,
                    "TLS certificate is invalid or expired",
                    "Renew the certificate and check the full chain",
                )
            )

        insecure = html_logic.insecure_resource_urls(html_logic.parse_html(content.html))
        if not insecure:
            evidence.append(ev.success("Mixed Content", "No insecure subresources", score=10, max_score=10))
            breakdown.add("No mixed content", 10)
        else:
            evidence.append(
                ev.warning(
                    "Mixed Content",
                    f"{len(insecure)} subresource(s) loaded over http://",
                    score=0,
                    max_score=10,
                    code="\n".join(insecure[:5]),
                )
            )
            breakdown.add("Mixed content", 0)
            issues.append(
                self.create_issue(
                    "MIXED_CONTENT",
                    Severity.HIGH,
                    f"{len(insecure)} resources are loaded insecurely",
                    "Load scripts, images and frames over https://",
                    insecure[:10],
                )
            )
            recommendations.append("Replace http:// subresource URLs with https://")

        final = breakdown.finalize()
        evidence.append(breakdown.calculation(final))
        return self.create_result(
            final, evidence, issues, {"scoreBreakdown": breakdown.as_details()}, recommendations
        )


RECOMMENDED_SCHEMAS: dict[str, list[str]] = {
    PageType.HOMEPAGE.value: ["Organization", "WebSite"],
    PageType.PRODUCT_DETAIL_PAGE.value: ["Product", "Offer", "AggregateRating", "Review"],
    PageType.PRODUCT_CATEGORY_PAGE.value: ["ItemList", "BreadcrumbList"],
    PageType.BLOG_POST_ARTICLE.value: ["Article", "BlogPosting", "NewsArticle"],
    PageType.HOW_TO_GUIDE_TUTORIAL.value: ["HowTo", "Article"],
    PageType.FAQ_GLOSSARY_PAGES.value: ["FAQPage", "DefinedTermSet"],
    PageType.WHAT_IS_X_DEFINITIONAL_PAGE.value: ["DefinedTerm", "Article"],
    PageType.CORPORATE_CONTACT_PAGES.value: ["Organization", "ContactPoint", "LocalBusiness"],
    PageType.PRICING_PAGE.value: ["Offer", "Product"],
    PageType.CASE_STUDY_SUCCESS_STORY.value: ["Article", "Review"],
    PageType.IN_DEPTH_GUIDE_WHITE_PAPER.value: ["Article", "TechArticle"],
}


class StructuredDataRule(BaseRule):
    """
    20 base, +40 JSON-LD (or +20 for microdata/RDFa only), +20 recommended
    types for the page type, +20 when every JSON-LD item has @context and @type.
    Unparseable JSON-LD blocks become error evidence worth 0; they never fail
    the rule.
    """

    BASE_SCORE = 20

    def __init__(self) -> None:
        super().__init__(
            "structured_data",
            "Structured Data Implementation",
            Category.TECHNICAL,
            impact_score=3,
        )

    async def evaluate(self, url: str, content: PageContent) -> RuleResult:
        log = self.logger(url)
        evidence: list[EvidenceItem] = [ev.base("Base score", self.BASE_SCORE)]
        issues: list[RuleIssue] = []
        recommendations: list[str] = []
        breakdown = ScoreBreakdown()
        breakdown.add("Base score", self.BASE_SCORE)

        soup = html_logic.parse_html(content.html)
        blocks = html_logic.json_ld_blocks(soup)
        json_ld = [item for b in blocks for item in b.items]
        broken = [b for b in blocks if b.error]
        microdata = html_logic.microdata_types(soup)
        rdfa = html_logic.rdfa_types(soup)

        for b in broken:
            log.debug("Malformed JSON-LD: %s", b.error)
            evidence.append(
                ev.error(
                    "Schema Analysis",
                    f"JSON-LD parse error: {b.error}",
                    score=0,
                    code=b.raw[:200],
                )
            )

        types = [t for item in json_ld for t in html_logic.schema_type_names(item)] + microdata + rdfa
        evidence.append(ev.info("Schema Analysis", f"Found {len(json_ld) + len(microdata) + len(rdfa)} structured data item(s)"))

        if json_ld:
            evidence.append(
                ev.success("Schema Analysis", f"JSON-LD detected ({len(json_ld)} item(s))", score=40, max_score=40)
            )
            breakdown.add("JSON-LD format detected", 40)
        elif microdata or rdfa:
            evidence.append(
                ev.warning(
                    "Schema Analysis",
                    "Only microdata/RDFa found",
                    score=20,
                    max_score=40,
                    target="Migrate to JSON-LD",
                )
            )
            breakdown.add("Microdata/RDFa only", 20)
            issues.append(
                self.create_issue(
                    "NO_JSON_LD",
                    Severity.LOW,
                    "Structured data does not use JSON-LD",
                    "Publish the same schema.org data as JSON-LD",
                )
            )
        else:
            evidence.append(ev.error("No Structured Data", "No structured data found", score=0, max_score=40))
            issues.append(
                self.create_issue(
                    "NO_STRUCTURED_DATA",
                    Severity.HIGH,
                    "No schema.org structured data on page",
                    "Add schema.org markup in JSON-LD",
                )
            )
            recommendations.append("Add schema.org markup to help AI understand your content")

        page_type = getattr(content.page_type, "value", content.page_type)
        wanted = RECOMMENDED_SCHEMAS.get(str(page_type), []) if page_type else []
        if wanted and any(w in t for t in types for w in wanted):
            evidence.append(ev.success("Schema", "Implements recommended schema types for this page type", score=20, max_score=20))
            breakdown.add("Recommended schema types", 20)
        elif wanted:
            evidence.append(
                ev.warning(
                    "Schema",
                    "Missing recommended schemas",
                    score=0,
                    max_score=20,
                    code=f"Recommended for this page type: {', '.join(wanted)}",
                )
            )
            recommendations.append(f"Consider adding: {', '.join(wanted)} schemas")
            if types:
                issues.append(
                    self.create_issue(
                        "MISSING_RECOMMENDED_TYPE",
                        Severity.MEDIUM,
                        f"Missing recommended structured data for {page_type} page",
                        f"Add {', '.join(wanted)} markup",
                        wanted,
                    )
                )

        invalid = [
            item for item in json_ld if "@context" not in item or not html_logic.schema_type_names(item)
        ]
        if json_ld and not invalid and not broken:
            evidence.append(ev.success("Schema", "All JSON-LD items declare @context and @type", score=20, max_score=20))
            breakdown.add("Valid JSON-LD items", 20)
        elif json_ld or broken:
            evidence.append(
                ev.warning(
                    "Schema",
                    f"{len(invalid) + len(broken)} JSON-LD item(s) failed validation",
                    score=0,
                    max_score=20,
                )
            )
            issues.append(
                self.create_issue(
                    "VALIDATION_ERRORS",
                    Severity.MEDIUM,
                    f"Structured data validation errors in {len(invalid) + len(broken)} item(s)",
                    "Fix JSON syntax and include @context and @type on every item",
                )
            )

        final = breakdown.finalize()
        evidence.append(breakdown.calculation(final))
        return self.create_result(
            final,
            evidence,
            issues,
            {"scoreBreakdown": breakdown.as_details(), "schemaTypes": types},
            recommendations,
        )

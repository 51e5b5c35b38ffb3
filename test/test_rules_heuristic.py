# Unit tests for the heuristic TECHNICAL and STRUCTURE rules using pytest.
import asyncio

import pytest

from aeo_engine.models import EvidenceType, PageContent, PageType, Severity
from aeo_engine.rules.content import ImageAltRule
from aeo_engine.rules.structure import MainHeadingRule, MetaDescriptionRule, SubheadingsRule
from aeo_engine.rules.technical import HttpsSecurityRule, StructuredDataRule


URL = "https://acme.com/blog/choosing-software"

META_140 = (
    "Discover how small teams compare pricing tiers, onboarding steps, support options, "
    "integrations and security features before choosing projec"
)


def run(rule, content, url=URL):
    return asyncio.run(rule.evaluate(url, content))


def page(html, **kwargs):
    kwargs.setdefault("url", URL)
    return PageContent(html=html, **kwargs)


# --- image_alt ---


def test_image_alt_without_images_is_full_score():
    """A page with no images has nothing to fix."""
    result = run(ImageAltRule(), page("<html><body><p>No pictures here.</p></body></html>"))
    assert result.score == 100
    assert result.passed
    assert len(result.evidence) == 1
    assert result.evidence[0].type is EvidenceType.INFO
    assert result.evidence[0].content == "No images found on page"


def test_image_alt_tiers_and_missing_issue(recompute):
    html = (
        '<img src="/a.png" alt="Team reviewing a quarterly roadmap">'
        '<img src="/b.png" alt="image">'
        '<img src="/c.png" alt="">'
        '<img src="/d.png">'
    )
    result = run(ImageAltRule(), page(html))
    # 1 of 4 descriptive = 25%
    assert result.score == 40
    assert [i.id for i in result.issues] == ["MISSING_ALT"]
    assert result.issues[0].severity is Severity.HIGH
    assert recompute(result) == result.score


def test_image_alt_mostly_missing_is_critical():
    html = '<img src="/a.png"><img src="/b.png"><img src="/c.png" alt="Chart of monthly active users">'
    result = run(ImageAltRule(), page(html))
    assert result.issues[0].severity is Severity.CRITICAL


# --- meta_description ---


def test_meta_description_optimal():
    assert len(META_140) == 140
    html = (
        "<html><head><title>Project Management Software Buying Guide</title>"
        f'<meta name="description" content="{META_140}"></head>'
        "<body><h1>How to Choose Project Management Software</h1></body></html>"
    )
    result = run(MetaDescriptionRule(), page(html))
    breakdown = result.evidence[-1].metadata["breakdown"]
    assert {"component": "Optimal length (120-160 chars)", "points": 35} in breakdown
    assert result.score == 95
    assert result.details["compellingCheck"] == "patterns"
    assert result.issues == []


def test_meta_description_missing():
    result = run(MetaDescriptionRule(), page("<html><head><title>t</title></head></html>"))
    assert result.score == 0
    assert [i.id for i in result.issues] == ["MISSING_META_DESCRIPTION"]


def test_meta_description_short_and_duplicate_of_title(recompute):
    html = '<html><head><title>Acme pricing</title><meta name="description" content="Acme pricing"></head></html>'
    result = run(MetaDescriptionRule(), page(html))
    ids = {i.id for i in result.issues}
    assert {"TOO_SHORT", "DUPLICATES_TITLE", "LACKS_COMPELLING"} <= ids
    # 20 + 8 + 10 + 0 - 15
    assert result.score == 23
    assert recompute(result) == 23


def test_meta_description_uses_llm_when_available(fake_llm):
    client = fake_llm({"openai/gpt-4o-mini": {"has_compelling_language": False}})
    html = f'<html><head><meta name="description" content="{META_140}"></head></html>'
    result = run(MetaDescriptionRule(client), page(html))
    assert result.details["compellingCheck"] == "llm"
    assert result.ai_usage.model_name == "openai/gpt-4o-mini"
    assert "LACKS_COMPELLING" in {i.id for i in result.issues}
    assert result.score == 80


def test_meta_description_falls_back_to_patterns_when_providers_fail(fake_llm):
    """Provider exhaustion drops to the phrase-pattern check instead of failing."""
    client = fake_llm({})
    html = f'<html><head><meta name="description" content="{META_140}"></head></html>'
    result = run(MetaDescriptionRule(client), page(html))
    assert result.details["compellingCheck"] == "patterns"
    assert result.ai_usage is None
    assert result.score == 95
    assert len(client.calls) == 3


# --- https_security ---


def test_plain_http_scores_zero_even_with_hsts():
    """HSTS on a plain HTTP page earns nothing."""
    content = page("<html></html>", url="http://acme.com/", security_info={"hsts": True, "certificate_valid": True})
    result = run(HttpsSecurityRule(), content, url="http://acme.com/")
    assert result.score == 0
    assert not result.passed
    critical = [e for e in result.evidence if (e.metadata or {}).get("severity") == "critical"]
    assert critical and critical[0].type is EvidenceType.ERROR
    assert result.issues[0].severity is Severity.CRITICAL


def test_https_with_everything():
    content = page(
        '<img src="https://cdn.acme.com/a.png">',
        security_info={"headers": {"Strict-Transport-Security": "max-age=31536000"}, "certificate_valid": True},
    )
    result = run(HttpsSecurityRule(), content)
    assert result.score == 100
    assert result.issues == []


def test_https_mixed_content_and_unknown_certificate():
    content = page('<script src="http://cdn.acme.com/x.js"></script>', security_info={})
    result = run(HttpsSecurityRule(), content)
    assert result.score == 60
    assert {i.id for i in result.issues} == {"NO_HSTS", "MIXED_CONTENT"}
    assert result.issues[-1].affected_elements == ["http://cdn.acme.com/x.js"]


# --- main_heading ---


def test_main_heading_full_score(recompute):
    html = (
        "<html><head><title>Project Management Software Guide | Acme</title></head>"
        "<body><h1>Choosing Project Management Software for Remote Teams</h1></body></html>"
    )
    result = run(MainHeadingRule(), page(html))
    assert result.score == 100
    assert recompute(result) == 100


def test_main_heading_missing_and_multiple():
    assert run(MainHeadingRule(), page("<p>text</p>")).score == 0
    result = run(MainHeadingRule(), page("<h1>Home</h1><h1>Welcome</h1>"))
    ids = {i.id for i in result.issues}
    assert {"MULTIPLE_H1", "GENERIC_H1"} <= ids
    # 10 (multiple) + 10 (short) + 0 (generic) + 0 (no title)
    assert result.score == 20


# --- subheadings ---


def _sections(n, question=False):
    text = "What is it?" if question else "Section"
    return "".join(f"<h2>{text} {i}</h2>" for i in range(n))


def test_subheadings_excellent_density():
    words = " ".join(["word"] * 1000)
    result = run(SubheadingsRule(), page(_sections(10), clean_content=words))
    assert result.score == 90
    assert result.evidence[-1].metadata["breakdown"][0] == {
        "component": "Excellent density (<=100 words per subheading)",
        "points": 90,
    }
    assert [i.id for i in result.issues] == ["NO_QUESTIONS"]


def test_subheadings_question_bonus():
    words = " ".join(["word"] * 1000)
    html = _sections(7) + "".join(f"<h2>How does step {i} work?</h2>" for i in range(3))
    result = run(SubheadingsRule(), page(html, clean_content=words))
    assert result.score == 100


@pytest.mark.parametrize(
    "wph, points",
    [(100, 90), (101, 80), (199, 80), (200, 60), (300, 60), (301, 40)],
)
def test_density_band_edges(wph, points):
    assert SubheadingsRule.density_band(wph)[0] == points


def test_subheadings_short_page_scores_zero(recompute):
    result = run(SubheadingsRule(), page("<h2>A</h2>", clean_content="just a few words"))
    assert result.score == 0
    assert recompute(result) == 0


def test_subheadings_floor_and_hierarchy(recompute):
    words = " ".join(["word"] * 2000)
    html = "<h1>Title</h1><h3>Overview</h3><h3>Summary</h3>"
    result = run(SubheadingsRule(), page(html, clean_content=words))
    # 40 (poor density) - 10 (generic) - 10 (skipped level) = 20, at the floor
    assert result.score == 20
    ids = {i.id for i in result.issues}
    assert {"POOR_DENSITY", "BROKEN_HIERARCHY", "NO_H2", "TOO_FEW_SUBHEADINGS"} <= ids
    assert recompute(result) == 20


# --- structured_data ---


def test_malformed_json_ld_never_raises():
    """Unparseable JSON-LD blocks are skipped."""
    html = '<script type="application/ld+json">{"@context": "https://schema.org", "@type": </script>'
    result = run(StructuredDataRule(), page(html, page_type=PageType.HOMEPAGE))
    assert result.score == 20
    errors = [e for e in result.evidence if e.content.startswith("JSON-LD parse error")]
    assert len(errors) == 1
    assert errors[0].score == 0
    assert {"NO_STRUCTURED_DATA", "VALIDATION_ERRORS"} <= {i.id for i in result.issues}


def test_organization_on_homepage_scores_full():
    html = '<script type="application/ld+json">{"@context": "https://schema.org", "@type": "Organization", "name": "Acme"}</script>'
    result = run(StructuredDataRule(), page(html, page_type=PageType.HOMEPAGE))
    assert result.score == 100
    assert result.details["schemaTypes"] == ["Organization"]


def test_microdata_only():
    html = '<div itemscope itemtype="https://schema.org/Product"></div>'
    result = run(StructuredDataRule(), page(html, page_type=PageType.PRODUCT_DETAIL_PAGE))
    # 20 base + 20 microdata + 20 recommended type
    assert result.score == 60
    assert [i.id for i in result.issues] == ["NO_JSON_LD"]


# --- shared properties ---

SAMPLE_HTML = (
    "<html><head><title>Acme Guide</title>"
    '<meta name="description" content="Learn how Acme helps teams plan work.">'
    '<script type="application/ld+json">{"@context": "https://schema.org", "@type": "Article"}</script>'
    "</head><body><h1>The Acme Planning Guide for Teams</h1>"
    "<h2>What is planning?</h2><p>" + " ".join(["text"] * 300) + "</p>"
    "<h2>Getting started</h2><h4>Detail</h4>"
    '<img src="/x.png" alt="Planning board with sticky notes"></body></html>'
)

HEURISTIC_RULES = [
    HttpsSecurityRule,
    StructuredDataRule,
    ImageAltRule,
    MainHeadingRule,
    SubheadingsRule,
    MetaDescriptionRule,
]


@pytest.mark.parametrize("rule_cls", HEURISTIC_RULES)
def test_heuristic_rules_are_idempotent(rule_cls):
    content = page(SAMPLE_HTML, page_type=PageType.BLOG_POST_ARTICLE)
    first = run(rule_cls(), content)
    second = run(rule_cls(), content)
    assert first == second


@pytest.mark.parametrize("rule_cls", HEURISTIC_RULES)
def test_breakdown_reconstructs_score(rule_cls, recompute):
    """Breakdown points always sum to the reported score."""
    content = page(SAMPLE_HTML, page_type=PageType.BLOG_POST_ARTICLE)
    result = run(rule_cls(), content)
    assert 0 <= result.score <= 100
    assert result.evidence[-1].topic == "Score Calculation"
    assert recompute(result) == result.score

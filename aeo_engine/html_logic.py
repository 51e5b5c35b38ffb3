# aeo_engine/html_logic.py
"""
Side-effect-free HTML and text helpers shared by the heuristic rules.

All parsing goes through BeautifulSoup's builtin "html.parser" so results do
not depend on which optional parser happens to be installed.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

import tldextract
from bs4 import BeautifulSoup, Tag

log = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\S+")
_HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

# Offline extractor: never fetches the public suffix list at runtime.
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def word_count(text: str) -> int:
    return len(_WORD_RE.findall(text or ""))


def visible_text(soup: BeautifulSoup) -> str:
    """Body text without script/style/noscript content."""
    body = soup.body or soup
    parts: list[str] = []
    for node in body.find_all(string=True):
        parent = node.parent
        if parent is not None and parent.name in ("script", "style", "noscript", "template"):
            continue
        s = str(node).strip()
        if s:
            parts.append(s)
    return " ".join(parts)


def page_text(html: str, clean_content: str) -> str:
    """Prefer the crawler's extracted text; fall back to parsing the markup."""
    if clean_content and clean_content.strip():
        return clean_content
    return visible_text(parse_html(html))


@dataclass(frozen=True)
class Heading:
    level: int
    text: str


def headings(soup: BeautifulSoup) -> list[Heading]:
    """All h1-h6 elements in document order."""
    return [
        Heading(level=int(tag.name[1]), text=tag.get_text(" ", strip=True))
        for tag in soup.find_all(_HEADING_TAGS)
    ]


def title_text(soup: BeautifulSoup) -> str:
    if soup.title is None:
        return ""
    return soup.title.get_text(" ", strip=True)


def meta_description(soup: BeautifulSoup) -> str | None:
    """Content of <meta name="description">, or None if the tag is missing."""
    for tag in soup.find_all("meta"):
        name = str(tag.get("name", "")).strip().lower()
        if name == "description":
            content = tag.get("content")
            return str(content).strip() if content is not None else ""
    return None


@dataclass(frozen=True)
class ImageInfo:
    src: str
    alt: str | None


def images(soup: BeautifulSoup) -> list[ImageInfo]:
    out: list[ImageInfo] = []
    for tag in soup.find_all("img"):
        alt = tag.get("alt")
        out.append(ImageInfo(src=str(tag.get("src", "")), alt=None if alt is None else str(alt)))
    return out


def media_count(soup: BeautifulSoup) -> int:
    return len(soup.find_all(["img", "video", "iframe", "figure", "picture", "svg"]))


@dataclass
class JsonLdBlock:
    """One <script type="application/ld+json"> block; `error` is set when it failed to parse."""

    raw: str
    items: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None


def json_ld_blocks(soup: BeautifulSoup) -> list[JsonLdBlock]:
    blocks: list[JsonLdBlock] = []
    for tag in soup.find_all("script"):
        kind = str(tag.get("type", "")).strip().lower()
        if kind != "application/ld+json":
            continue
        raw = (tag.string or tag.get_text() or "").strip()
        try:
            data = json.loads(raw)
        except ValueError as e:
            log.debug("Unparseable JSON-LD block: %s", e)
            blocks.append(JsonLdBlock(raw=raw, error=str(e)))
            continue
        if isinstance(data, list):
            items = [d for d in data if isinstance(d, dict)]
        elif isinstance(data, dict) and isinstance(data.get("@graph"), list):
            items = [d for d in data["@graph"] if isinstance(d, dict)]
            if "@context" in data:
                items = [{"@context": data["@context"], **d} for d in items]
        elif isinstance(data, dict):
            items = [data]
        else:
            items = []
        blocks.append(JsonLdBlock(raw=raw, items=items))
    return blocks


def schema_type_names(item: dict[str, Any]) -> list[str]:
    value = item.get("@type")
    if isinstance(value, list):
        return [str(v) for v in value]
    if value:
        return [str(value)]
    return []


def microdata_types(soup: BeautifulSoup) -> list[str]:
    out = []
    for tag in soup.find_all(attrs={"itemscope": True}):
        itemtype = tag.get("itemtype")
        if itemtype:
            out.append(str(itemtype).rstrip("/").split("/")[-1])
    return out


def rdfa_types(soup: BeautifulSoup) -> list[str]:
    return [str(tag.get("typeof")) for tag in soup.find_all(attrs={"typeof": True})]


def insecure_resource_urls(soup: BeautifulSoup) -> list[str]:
    """Subresources (scripts, images, frames, stylesheets) loaded over plain http."""
    found: list[str] = []
    for tag in soup.find_all(["script", "img", "iframe", "link", "source", "video", "audio"]):
        if not isinstance(tag, Tag):
            continue
        attr = "href" if tag.name == "link" else "src"
        value = str(tag.get(attr, "") or "")
        if value.lower().startswith("http://"):
            found.append(value)
    return found


def url_scheme(url: str) -> str:
    try:
        return (urlparse(url).scheme or "").lower()
    except ValueError:
        return ""


def brand_name_from_url(url: str) -> str:
    """
    Registrable-domain label used as the brand name for authority lookups,
    e.g. https://www.acme-tools.co.uk/about -> "acme tools".
    """
    host = urlparse(url if "//" in url else f"//{url}").hostname or ""
    ext = _EXTRACT(host)
    label = ext.domain or host.split(".")[0]
    return re.sub(r"[-_]+", " ", label).strip().lower()

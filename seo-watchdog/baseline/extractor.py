import json
import re
from datetime import datetime, timezone
from typing import List, Tuple
from urllib.parse import urljoin

from bs4 import Tag

from baseline.models import Baseline, OpenGraph

LD_JSON_TYPE = "application/ld+json"
INVALID_SCHEMA = "Invalid"
UNKNOWN_SCHEMA = "Unknown"

_ROBOTS_NAME = re.compile(r"^robots$", re.IGNORECASE)


# ------------------------------------------------------------
# Signal readers
# All readers take a PageDocument, read synchronously and return "" when the
# element is missing.
# ------------------------------------------------------------

def element_text(element) -> str:
    if element is None:
        return ""
    return element.get_text().strip()


def rel_values(tag: Tag) -> List[str]:
    rel = tag.get("rel")
    if rel is None:
        return []
    if isinstance(rel, str):
        rel = rel.split()
    return [value.lower() for value in rel]


def is_meta_robots(node) -> bool:
    return isinstance(node, Tag) and node.name == "meta" and bool(_ROBOTS_NAME.match(node.get("name") or ""))


def is_canonical_link(node) -> bool:
    return isinstance(node, Tag) and node.name == "link" and "canonical" in rel_values(node)


def is_ld_json(node) -> bool:
    return isinstance(node, Tag) and node.name == "script" and (node.get("type") or "").strip().lower() == LD_JSON_TYPE


def read_title(document) -> str:
    """document.title semantics: first <title>, whitespace collapsed."""
    title = document.find("title")
    if title is None:
        return ""
    return " ".join(title.get_text().split())


def read_h1(document) -> str:
    return element_text(document.find("h1"))


def read_h2s(document) -> Tuple[str, ...]:
    return tuple(element_text(h2) for h2 in document.find_all("h2"))


def read_meta_content(document, name: str) -> str:
    meta = document.find("meta", attrs={"name": re.compile(f"^{re.escape(name)}$", re.IGNORECASE)})
    if meta is None:
        return ""
    return (meta.get("content") or "").strip()


def read_meta_robots(document) -> str:
    return read_meta_content(document, "robots")


def read_meta_property(document, prop: str) -> str:
    meta = document.find("meta", attrs={"property": prop})
    if meta is None:
        return ""
    return (meta.get("content") or "").strip()


def read_canonical(document) -> str:
    """Resolved href of the first canonical link (link.href semantics)."""
    for link in document.find_all("link"):
        if is_canonical_link(link):
            href = (link.get("href") or "").strip()
            return urljoin(document.url, href) if href else ""
    return ""


def read_hreflang(document) -> Tuple[Tuple[str, str], ...]:
    pairs = []
    for link in document.find_all("link"):
        if "alternate" in rel_values(link) and link.get("hreflang"):
            href = (link.get("href") or "").strip()
            pairs.append((link["hreflang"].strip(), urljoin(document.url, href) if href else ""))
    return tuple(pairs)


def schema_types_of(payload) -> List[str]:
    """Type names declared by one parsed JSON-LD payload."""
    if isinstance(payload, list):
        types = []
        for item in payload:
            types.extend(schema_types_of(item))
        return types or [UNKNOWN_SCHEMA]
    if not isinstance(payload, dict):
        return [UNKNOWN_SCHEMA]
    if "@graph" in payload and "@type" not in payload:
        return schema_types_of(payload["@graph"])
    declared = payload.get("@type")
    if isinstance(declared, list):
        return [str(t) for t in declared] or [UNKNOWN_SCHEMA]
    return [str(declared)] if declared else [UNKNOWN_SCHEMA]


def block_schema_types(block) -> List[str]:
    """Type names of one JSON-LD script; ["Invalid"] when it does not parse."""
    try:
        return schema_types_of(json.loads(block.string or ""))
    except ValueError:
        return [INVALID_SCHEMA]


def read_structured_data(document) -> Tuple[int, Tuple[str, ...]]:
    """Count of JSON-LD blocks and their type names."""
    blocks = [node for node in document.find_all("script") if is_ld_json(node)]
    types = []
    for block in blocks:
        types.extend(block_schema_types(block))
    return len(blocks), tuple(types)


def read_open_graph(document) -> OpenGraph:
    return OpenGraph(
        title=read_meta_property(document, "og:title"),
        description=read_meta_property(document, "og:description"),
        image=read_meta_property(document, "og:image"),
        url=read_meta_property(document, "og:url"),
    )


class BaselineExtractor:
    """
    Builds a Baseline from the current state of a PageDocument.
    Invariants:
    - Total: never raises for missing or malformed elements.
    - Full snapshot: every field is read fresh, nothing is merged.
    """

    def generate(self, document) -> Baseline:
        with document.lock:
            schema_count, schema_types = read_structured_data(document)
            return Baseline(
                page_url=document.url,
                title=read_title(document),
                h1=read_h1(document),
                h2s=read_h2s(document),
                meta_description=read_meta_content(document, "description"),
                meta_robots=read_meta_robots(document),
                canonical=read_canonical(document),
                hreflang=read_hreflang(document),
                schema_count=schema_count,
                schema_types=schema_types,
                open_graph=read_open_graph(document),
                captured_at=datetime.now(timezone.utc),
            )

    def quick_signals(self, document) -> List[str]:
        """Title, H1 and meta robots only, for the reconciler's cheap check."""
        with document.lock:
            return [read_title(document), read_h1(document), read_meta_robots(document)]

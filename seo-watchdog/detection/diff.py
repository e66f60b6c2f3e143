"""
Field-by-field comparison of two baselines.
Used where no mutation records exist: the start-up comparison against the
persisted baseline and the reconciler's report mode.
"""

from dataclasses import dataclass
from typing import List

from baseline.models import Baseline
from detection.models import EventType, Severity

NOINDEX = "noindex"


def has_noindex(robots: str) -> bool:
    return NOINDEX in (robots or "").lower()


def meta_robots_severity(old: str, new: str) -> Severity:
    """Critical only when noindex appears where it was absent."""
    if has_noindex(new) and not has_noindex(old):
        return Severity.CRITICAL
    return Severity.WARNING


@dataclass(frozen=True)
class FieldChange:
    event_type: EventType
    severity: Severity
    field_name: str
    old_value: str
    new_value: str
    selector: str


def _hreflang_text(pairs) -> str:
    return ", ".join(f"{lang}={url}" for lang, url in pairs)


def _og_text(og) -> str:
    return " | ".join(f"{k}={v}" for k, v in (("title", og.title), ("description", og.description),
                                             ("image", og.image), ("url", og.url)) if v)


def diff_baselines(old: Baseline, new: Baseline) -> List[FieldChange]:
    changes = []

    if old.title != new.title:
        changes.append(FieldChange(EventType.TITLE_CHANGE, Severity.WARNING, "title", old.title, new.title, "title"))

    if old.h1 != new.h1:
        changes.append(FieldChange(EventType.H1_CHANGE, Severity.WARNING, "h1", old.h1, new.h1, "h1"))

    if old.meta_robots != new.meta_robots:
        changes.append(FieldChange(
            EventType.META_ROBOTS_CHANGE,
            meta_robots_severity(old.meta_robots, new.meta_robots),
            "meta_robots", old.meta_robots, new.meta_robots, 'meta[name="robots"]',
        ))

    if old.canonical != new.canonical:
        changes.append(FieldChange(
            EventType.CANONICAL_CHANGE, Severity.WARNING,
            "canonical", old.canonical, new.canonical, 'link[rel="canonical"]',
        ))

    if new.schema_count < old.schema_count:
        changes.append(FieldChange(
            EventType.SCHEMA_REMOVED, Severity.WARNING,
            "schema_types", old.schema_summary, new.schema_summary, 'script[type="application/ld+json"]',
        ))
    elif old.schema_types != new.schema_types:
        changes.append(FieldChange(
            EventType.SCHEMA_CHANGE, Severity.INFO,
            "schema_types", old.schema_summary, new.schema_summary, 'script[type="application/ld+json"]',
        ))

    if old.meta_description != new.meta_description:
        changes.append(FieldChange(
            EventType.META_DESCRIPTION_CHANGE, Severity.INFO,
            "meta_description", old.meta_description, new.meta_description, 'meta[name="description"]',
        ))

    if old.h2s != new.h2s:
        changes.append(FieldChange(
            EventType.H2_CHANGE, Severity.INFO, "h2s", " | ".join(old.h2s), " | ".join(new.h2s), "h2",
        ))

    if old.hreflang != new.hreflang:
        changes.append(FieldChange(
            EventType.HREFLANG_CHANGE, Severity.WARNING,
            "hreflang", _hreflang_text(old.hreflang), _hreflang_text(new.hreflang), 'link[rel="alternate"][hreflang]',
        ))

    if old.open_graph != new.open_graph:
        changes.append(FieldChange(
            EventType.OG_CHANGE, Severity.INFO,
            "open_graph", _og_text(old.open_graph), _og_text(new.open_graph), 'meta[property^="og:"]',
        ))

    return changes

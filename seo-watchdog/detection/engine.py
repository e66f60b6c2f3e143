"""
Mutation-driven SEO change detection.

Dispatch rules (evaluated at most once per row per batch):
- title       -> target is/inside <title>, or childList on <head>      (WARNING)
- h1          -> target is/inside <h1>, or childList touching an <h1>   (WARNING)
- meta robots -> attribute change on <meta name=robots>, node added    (CRITICAL on new noindex)
- schema      -> a removed node is a JSON-LD script                     (WARNING)
- canonical   -> attribute change on <link rel=canonical>, node added  (WARNING)

Mutations matching no row are ignored; the reconciler covers that gap.
"""

from enum import Enum
from typing import Callable, Iterable, List, Optional, Set

from bs4 import Tag

from baseline.extractor import (
    block_schema_types,
    is_canonical_link,
    is_ld_json,
    is_meta_robots,
    read_canonical,
    read_h1,
    read_meta_robots,
    read_structured_data,
    read_title,
)
from detection.diff import meta_robots_severity
from detection.models import EventContext, EventType, MonitoringEvent, Severity
from monitor.logger import get_logger
from page.models import MutationRecord, MutationType

logger = get_logger("watcher")


class Signal(Enum):
    TITLE = "title"
    H1 = "h1"
    META_ROBOTS = "meta_robots"
    SCHEMA = "schema"
    CANONICAL = "canonical"


# Row order is the order events are emitted within one batch
DISPATCH_ORDER = (Signal.TITLE, Signal.H1, Signal.META_ROBOTS, Signal.SCHEMA, Signal.CANONICAL)


def _element_of(node) -> Optional[Tag]:
    if isinstance(node, Tag):
        return node
    return getattr(node, "parent", None)


def _contains(nodes: Iterable, predicate) -> bool:
    for node in nodes:
        if not isinstance(node, Tag):
            continue
        if predicate(node) or node.find(predicate) is not None:
            return True
    return False


def _is_h1(node) -> bool:
    return isinstance(node, Tag) and node.name == "h1"


def _is_title(node) -> bool:
    return isinstance(node, Tag) and node.name == "title"


def classify(record: MutationRecord) -> Set[Signal]:
    """Signals a single mutation record may have changed."""
    signals = set()
    element = _element_of(record.target)
    if element is None:
        return signals

    child_list = record.type is MutationType.CHILD_LIST
    attributes = record.type is MutationType.ATTRIBUTES
    touched = list(record.added_nodes) + list(record.removed_nodes)

    # Title
    if _is_title(element) or element.find_parent("title") is not None:
        signals.add(Signal.TITLE)
    elif child_list and element.name == "head":
        signals.add(Signal.TITLE)
    elif child_list and _contains(touched, _is_title):
        signals.add(Signal.TITLE)

    # H1
    if _is_h1(element) or element.find_parent("h1") is not None:
        signals.add(Signal.H1)
    elif child_list and (element.find("h1") is not None or _contains(touched, _is_h1)):
        signals.add(Signal.H1)

    # Meta robots
    if attributes and element.name == "meta":
        was_robots = record.attribute_name == "name" and (record.old_value or "").strip().lower() == "robots"
        if is_meta_robots(element) or was_robots:
            signals.add(Signal.META_ROBOTS)
    elif child_list and _contains(touched, is_meta_robots):
        signals.add(Signal.META_ROBOTS)

    # Structured data: removal only
    if child_list and _contains(record.removed_nodes, is_ld_json):
        signals.add(Signal.SCHEMA)

    # Canonical
    if attributes and element.name == "link":
        was_canonical = record.attribute_name == "rel" and "canonical" in (record.old_value or "").lower().split()
        if is_canonical_link(element) or was_canonical:
            signals.add(Signal.CANONICAL)
    elif child_list and _contains(touched, is_canonical_link):
        signals.add(Signal.CANONICAL)

    return signals


class MutationWatcher:
    """
    Receives batched MutationRecords, re-derives the affected signals and
    reports every signal that moved away from the baseline. The baseline
    field is updated right after, so a delta is reported once.
    """

    def __init__(self, document, holder, reporter, context: EventContext, on_changes: Callable[[], None]):
        self.document = document
        self.holder = holder
        self.reporter = reporter
        self.context = context
        self.on_changes = on_changes

    def on_mutation_batch(self, records: List[MutationRecord], observer=None) -> List[MonitoringEvent]:
        if self.holder.get() is None:
            return []

        triggered = set()
        removed_schema = []
        # The tree walk must not race mutations from other threads
        with self.document.lock:
            for record in records:
                signals = classify(record)
                triggered |= signals
                if Signal.SCHEMA in signals:
                    removed_schema.extend(n for n in record.removed_nodes if isinstance(n, Tag))

        events = []
        for signal in DISPATCH_ORDER:
            if signal not in triggered:
                continue
            try:
                event = self._evaluate(signal, removed_schema)
            except Exception as e:
                # One bad row must not hide the others
                logger.warning(f"[WATCHER] Failed to evaluate {signal.value}: {e}")
                continue
            if event is not None:
                events.append(event)

        for event in events:
            logger.info(f"[WATCHER] {event.event_type.value} ({event.severity.value}): "
                        f"{event.old_value!r} -> {event.new_value!r}")
            self.reporter.report(event)

        if events:
            self.on_changes()
        return events

    # ------------------------------------------------------------
    # Row evaluation
    # ------------------------------------------------------------
    def _evaluate(self, signal: Signal, removed_schema) -> Optional[MonitoringEvent]:
        if signal is Signal.TITLE:
            return self._field_event("title", read_title(self.document), EventType.TITLE_CHANGE, "title")
        if signal is Signal.H1:
            return self._field_event("h1", read_h1(self.document), EventType.H1_CHANGE, "h1")
        if signal is Signal.META_ROBOTS:
            return self._meta_robots_event()
        if signal is Signal.SCHEMA:
            return self._schema_removed_event(removed_schema)
        if signal is Signal.CANONICAL:
            return self._field_event(
                "canonical", read_canonical(self.document), EventType.CANONICAL_CHANGE, 'link[rel="canonical"]'
            )
        return None

    def _field_event(self, field_name, fresh, event_type, selector, severity=Severity.WARNING):
        changed, previous = self.holder.compare_and_set(field_name, fresh)
        if not changed:
            return None
        return self.context.build(
            self.document.url,
            event_type,
            severity,
            description=f"{field_name} changed from {previous!r} to {fresh!r}",
            old_value=previous,
            new_value=fresh,
            selector=selector,
        )

    def _meta_robots_event(self):
        fresh = read_meta_robots(self.document)
        changed, previous = self.holder.compare_and_set("meta_robots", fresh)
        if not changed:
            return None
        severity = meta_robots_severity(previous, fresh)
        return self.context.build(
            self.document.url,
            EventType.META_ROBOTS_CHANGE,
            severity,
            description=f"Meta robots changed from {previous!r} to {fresh!r}",
            old_value=previous,
            new_value=fresh,
            selector='meta[name="robots"]',
        )

    def _schema_removed_event(self, removed_nodes):
        before = self.holder.get()
        count, types = read_structured_data(self.document)
        self.holder.update(schema_count=count, schema_types=types)

        removed_types = []
        for node in removed_nodes:
            blocks = [node] if is_ld_json(node) else node.find_all(is_ld_json)
            for block in blocks:
                removed_types.extend(block_schema_types(block))

        return self.context.build(
            self.document.url,
            EventType.SCHEMA_REMOVED,
            Severity.WARNING,
            description=f"Structured data removed ({before.schema_count} -> {count} blocks)",
            old_value=before.schema_summary,
            new_value=", ".join(types),
            selector='script[type="application/ld+json"]',
            removed_types=removed_types,
        )


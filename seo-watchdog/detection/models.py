import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from page.url_utils import page_origin


class EventType(Enum):
    TITLE_CHANGE = "title_change"
    H1_CHANGE = "h1_change"
    META_ROBOTS_CHANGE = "meta_robots_change"
    NOINDEX_DETECTED = "noindex_detected"
    SCHEMA_REMOVED = "schema_removed"
    CANONICAL_CHANGE = "canonical_change"
    CANONICAL_MISMATCH = "canonical_mismatch"
    ROBOTS_TXT_ISSUE = "robots_txt_issue"
    # Field diffs: persisted-baseline comparison and report-mode reconciler
    META_DESCRIPTION_CHANGE = "meta_description_change"
    H2_CHANGE = "h2_change"
    HREFLANG_CHANGE = "hreflang_change"
    SCHEMA_CHANGE = "schema_change"
    OG_CHANGE = "og_change"


class Severity(Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class Category(Enum):
    CONTENT = "content"
    INDEXABILITY = "indexability"
    TECHNICAL = "technical"


EVENT_CATEGORIES = {
    EventType.TITLE_CHANGE: Category.CONTENT,
    EventType.H1_CHANGE: Category.CONTENT,
    EventType.META_ROBOTS_CHANGE: Category.INDEXABILITY,
    EventType.NOINDEX_DETECTED: Category.INDEXABILITY,
    EventType.SCHEMA_REMOVED: Category.TECHNICAL,
    EventType.CANONICAL_CHANGE: Category.INDEXABILITY,
    EventType.CANONICAL_MISMATCH: Category.INDEXABILITY,
    EventType.ROBOTS_TXT_ISSUE: Category.INDEXABILITY,
    EventType.META_DESCRIPTION_CHANGE: Category.CONTENT,
    EventType.H2_CHANGE: Category.CONTENT,
    EventType.HREFLANG_CHANGE: Category.INDEXABILITY,
    EventType.SCHEMA_CHANGE: Category.TECHNICAL,
    EventType.OG_CHANGE: Category.CONTENT,
}

EVENT_TITLES = {
    EventType.TITLE_CHANGE: "Page title changed",
    EventType.H1_CHANGE: "H1 heading changed",
    EventType.META_ROBOTS_CHANGE: "Meta robots directive changed",
    EventType.NOINDEX_DETECTED: "Page set to noindex",
    EventType.SCHEMA_REMOVED: "Structured data removed",
    EventType.CANONICAL_CHANGE: "Canonical URL changed",
    EventType.CANONICAL_MISMATCH: "Canonical URL points to a different page",
    EventType.ROBOTS_TXT_ISSUE: "Robots.txt issues detected",
    EventType.META_DESCRIPTION_CHANGE: "Meta description changed",
    EventType.H2_CHANGE: "H2 headings changed",
    EventType.HREFLANG_CHANGE: "Hreflang annotations changed",
    EventType.SCHEMA_CHANGE: "Structured data types changed",
    EventType.OG_CHANGE: "Open Graph tags changed",
}

# Fields the ingestion endpoint rejects events without
REQUIRED_FIELDS = ("user_token", "site_url", "page_url", "event_type", "severity", "category", "title")

SOURCE = "watchdog"


@dataclass(frozen=True)
class MonitoringEvent:
    """
    One detected change or anomaly. Never mutated after creation.
    """
    site_token: str
    site_url: str
    page_url: str
    event_type: EventType
    severity: Severity
    category: Category
    title: str
    description: str = ""
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    source: str = SOURCE
    metadata: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_critical(self) -> bool:
        return self.severity is Severity.CRITICAL

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the ingestion endpoint."""
        return {
            "event_id": self.event_id,
            "user_token": self.site_token,
            "site_url": self.site_url,
            "page_url": self.page_url,
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "category": self.category.value,
            "title": self.title,
            "description": self.description,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "source": self.source,
            "metadata": dict(self.metadata),
            "detected_at": self.detected_at.isoformat(),
        }

    def missing_fields(self) -> List[str]:
        payload = self.to_payload()
        return [name for name in REQUIRED_FIELDS if not payload.get(name)]


@dataclass(frozen=True)
class EventContext:
    """Per-watchdog values stamped onto every event."""
    site_token: str
    user_agent: str

    def build(
        self,
        page_url: str,
        event_type: EventType,
        severity: Severity,
        description: str = "",
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        selector: Optional[str] = None,
        **metadata,
    ) -> MonitoringEvent:
        captured_at = datetime.now(timezone.utc)
        meta = {
            "selector": selector,
            "user_agent": self.user_agent,
            "captured_at": captured_at.isoformat(),
        }
        meta.update(metadata)
        return MonitoringEvent(
            site_token=self.site_token,
            site_url=page_origin(page_url),
            page_url=page_url,
            event_type=event_type,
            severity=severity,
            category=EVENT_CATEGORIES[event_type],
            title=EVENT_TITLES[event_type],
            description=description,
            old_value=old_value,
            new_value=new_value,
            metadata=meta,
            detected_at=captured_at,
        )

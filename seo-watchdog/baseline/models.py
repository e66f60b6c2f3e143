from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class OpenGraph:
    title: str = ""
    description: str = ""
    image: str = ""
    url: str = ""


@dataclass(frozen=True)
class Baseline:
    """
    Last accepted snapshot of the SEO signals of one page.
    Missing elements are stored as "" so comparisons are always string to string.
    Updated by replacing the whole object (dataclasses.replace), never in place.
    """
    page_url: str
    title: str = ""
    h1: str = ""
    h2s: Tuple[str, ...] = ()
    meta_description: str = ""
    meta_robots: str = ""
    canonical: str = ""
    hreflang: Tuple[Tuple[str, str], ...] = ()
    schema_count: int = 0
    schema_types: Tuple[str, ...] = ()
    open_graph: OpenGraph = field(default_factory=OpenGraph)
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["h2s"] = list(self.h2s)
        data["hreflang"] = [{"lang": lang, "url": url} for lang, url in self.hreflang]
        data["schema_types"] = list(self.schema_types)
        data["captured_at"] = self.captured_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Baseline":
        og = data.get("open_graph") or {}
        if not isinstance(og, dict):
            og = {}
        captured = data.get("captured_at")
        return cls(
            page_url=data.get("page_url", ""),
            title=data.get("title") or "",
            h1=data.get("h1") or "",
            h2s=tuple(data.get("h2s") or ()),
            meta_description=data.get("meta_description") or "",
            meta_robots=data.get("meta_robots") or "",
            canonical=data.get("canonical") or "",
            hreflang=tuple((item["lang"], item["url"]) for item in data.get("hreflang") or ()),
            schema_count=int(data.get("schema_count") or 0),
            schema_types=tuple(data.get("schema_types") or ()),
            open_graph=OpenGraph(
                title=og.get("title") or "",
                description=og.get("description") or "",
                image=og.get("image") or "",
                url=og.get("url") or "",
            ),
            captured_at=datetime.fromisoformat(captured) if captured else datetime.now(timezone.utc),
        )

    @property
    def schema_summary(self) -> str:
        return ", ".join(self.schema_types)


def signal_values(baseline: Baseline) -> List[str]:
    """Title, H1 and meta robots: the signals the reconciler re-reads each tick."""
    return [baseline.title, baseline.h1, baseline.meta_robots]

"""Data models for tour catalog synchronization."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ScheduleRange:
    """One concrete start/end date pair (ISO 8601 dates)."""
    start_date: str
    end_date: str


@dataclass
class CatalogItem:
    """Tour extracted from a catalog page."""
    slug: str
    url: str
    name: str
    price: int
    currency: str
    tour_type: str
    duration: int
    cities: List[str]
    dates: List[ScheduleRange] = field(default_factory=list)
    description: Optional[str] = None


@dataclass
class StoredEvent:
    """Event persisted in the event store."""
    id: str
    external_id: Optional[str]
    name: str
    start_date: str
    end_date: str
    is_archived: bool = False
    country: str = ''
    cities: List[str] = field(default_factory=list)
    price: int = 0
    price_currency: str = ''
    tour_type: str = ''
    participant_limit: int = 0
    description: Optional[str] = None
    website_url: Optional[str] = None


@dataclass
class ItemSummary:
    """Per-tour line of a sync result."""
    name: str
    schedule_count: int


@dataclass
class SyncResult:
    """Result of sync operation."""
    created: int = 0
    updated: int = 0
    archived: int = 0
    errors: List[str] = field(default_factory=list)
    items: List[ItemSummary] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the caller-facing summary shape."""
        return {
            'created': self.created,
            'updated': self.updated,
            'archived': self.archived,
            'errors': list(self.errors),
            'items': [
                {'name': item.name, 'scheduleCount': item.schedule_count}
                for item in self.items
            ]
        }

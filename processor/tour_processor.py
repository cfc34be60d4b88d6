"""Tour processor for turning catalog items into event store records."""
from typing import Any, Dict

from processor.models import CatalogItem, ScheduleRange

EXTERNAL_ID_PREFIX = 'wp'


def generate_external_id(slug: str, start_date: str) -> str:
    """
    Generate the reconciliation key for a tour departure.

    Args:
        slug: Tour slug from the catalog URL
        start_date: Departure date (ISO 8601 format)

    Returns:
        Key of the form "wp_<slug>_<start_date>"
    """
    return f"{EXTERNAL_ID_PREFIX}_{slug}_{start_date}"


def is_synced_external_id(external_id: Any) -> bool:
    """True if the key was produced by catalog synchronization."""
    return isinstance(external_id, str) and external_id.startswith(f"{EXTERNAL_ID_PREFIX}_")


class TourProcessor:
    """Builds the event fields written to the store for each tour date."""

    MAX_NAME_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000
    COUNTRY = 'Китай'
    PARTICIPANT_LIMIT = 20

    def build_event_fields(self, item: CatalogItem, schedule: ScheduleRange) -> Dict[str, Any]:
        """
        Build store fields for one tour departure.

        Args:
            item: Extracted catalog item
            schedule: One of the item's schedule ranges

        Returns:
            Field dict suitable for create_event / update_event
        """
        description = item.description
        if description:
            description = description[:self.MAX_DESCRIPTION_LENGTH]

        return {
            'name': item.name[:self.MAX_NAME_LENGTH],
            'country': self.COUNTRY,
            'cities': list(item.cities),
            'start_date': schedule.start_date,
            'end_date': schedule.end_date,
            'price': item.price,
            'price_currency': item.currency,
            'tour_type': item.tour_type,
            'participant_limit': self.PARTICIPANT_LIMIT,
            'description': description or None,
            'external_id': generate_external_id(item.slug, schedule.start_date),
            'website_url': item.url,
            'is_archived': False
        }

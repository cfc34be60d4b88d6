"""Catalog synchronizer reconciling scraped tours with the event store."""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Set

import requests

from processor.models import CatalogItem, ItemSummary, StoredEvent, SyncResult
from processor.tour_processor import (
    TourProcessor,
    generate_external_id,
    is_synced_external_id,
)
from scraper.tour_catalog import TourCatalogScraper

logger = logging.getLogger(__name__)


class EventStore(Protocol):
    """Persistence operations the synchronizer relies on."""

    def get_all_events(self) -> List[StoredEvent]:
        ...

    def create_event(self, fields: Dict[str, Any]) -> StoredEvent:
        ...

    def update_event(self, event_id: str, fields: Dict[str, Any]) -> None:
        ...

    def archive_event(self, event_id: str) -> None:
        ...


@dataclass
class SyncRun:
    """State accumulated during a single synchronize() call."""
    tour_urls: List[str] = field(default_factory=list)
    items: List[CatalogItem] = field(default_factory=list)
    processed_ids: Set[str] = field(default_factory=set)
    created_ids: Set[str] = field(default_factory=set)
    result: SyncResult = field(default_factory=SyncResult)


class CatalogSynchronizer:
    """Crawls the tour catalog and reconciles it with the event store."""

    REQUEST_DELAY_SECONDS = 0.2

    def __init__(self, scraper: TourCatalogScraper, store: EventStore,
                 processor: Optional[TourProcessor] = None,
                 request_delay: float = REQUEST_DELAY_SECONDS):
        """
        Initialize the synchronizer.

        Args:
            scraper: Catalog scraper used to crawl and parse tour pages
            store: Event store to reconcile against
            processor: Builds store fields per tour date (default: TourProcessor())
            request_delay: Pause between tour page fetches in seconds
        """
        self.scraper = scraper
        self.store = store
        self.processor = processor or TourProcessor()
        self.request_delay = request_delay

    def synchronize(self) -> SyncResult:
        """
        Run one full synchronization.

        Crawls the catalog, extracts every tour, then creates events for
        unseen tour dates, updates known ones and archives the ones that
        disappeared from the site. Per-item failures are collected in the
        result instead of aborting the run.

        Returns:
            SyncResult with counts, errors and per-tour date counts
        """
        run = SyncRun()

        logger.info("Starting catalog crawl")
        self._extract_items(run)
        logger.info(
            f"Extracted {len(run.items)} tours from {len(run.tour_urls)} URLs"
        )

        self._reconcile(run)

        result = run.result
        logger.info(
            f"Sync complete: {result.created} created, {result.updated} updated, "
            f"{result.archived} archived, {len(result.errors)} errors"
        )
        return result

    def _extract_items(self, run: SyncRun) -> None:
        """
        Crawl the catalog and parse every tour page.

        A tour whose page fails to load or has no title is recorded in
        the run errors and skipped.

        Args:
            run: State of the current run
        """
        for url in self.scraper.iter_tour_urls(run.tour_urls):
            try:
                item = self.scraper.parse_tour_page(url)
            except requests.RequestException as e:
                logger.warning(f"Failed to fetch tour page {url}: {e}")
                run.result.errors.append(str(e))
                continue
            except Exception as e:
                logger.warning(f"Failed to parse tour page {url}: {e}", exc_info=True)
                run.result.errors.append(f"Parse error for {url}: {e}")
                continue
            finally:
                # Be polite to the catalog site
                time.sleep(self.request_delay)

            if item is None:
                run.result.errors.append(f"No title found for: {url}")
                continue

            run.items.append(item)
            logger.info(f"Parsed: {item.name} ({len(item.dates)} dates)")

    def _reconcile(self, run: SyncRun) -> None:
        """
        Diff extracted tours against stored events.

        Only events whose external_id carries the sync prefix are read or
        modified.

        Args:
            run: State of the current run
        """
        existing = {
            event.external_id: event
            for event in self.store.get_all_events()
            if is_synced_external_id(event.external_id)
        }
        logger.info(f"Loaded {len(existing)} synced events from store")

        for item in run.items:
            for schedule in item.dates:
                external_id = generate_external_id(item.slug, schedule.start_date)

                # Duplicate date entries on one tour page
                if external_id in run.processed_ids:
                    continue
                run.processed_ids.add(external_id)

                fields = self.processor.build_event_fields(item, schedule)
                try:
                    existing_event = existing.get(external_id)
                    if existing_event is not None:
                        self.store.update_event(existing_event.id, fields)
                        run.result.updated += 1
                    else:
                        self.store.create_event(fields)
                        run.created_ids.add(external_id)
                        run.result.created += 1
                except Exception as e:
                    logger.error(f"Failed to save {external_id}: {e}")
                    run.result.errors.append(f"{item.name} ({schedule.start_date}): {e}")

            run.result.items.append(
                ItemSummary(name=item.name, schedule_count=len(item.dates))
            )

        self._archive_vanished(run, existing)

    def _archive_vanished(self, run: SyncRun, existing: Dict[str, StoredEvent]) -> None:
        """
        Archive stored events whose key did not occur in this run.

        Args:
            run: State of the current run
            existing: Synced events from the store, keyed by external_id
        """
        for external_id, event in existing.items():
            if external_id in run.processed_ids or event.is_archived:
                continue
            try:
                self.store.archive_event(event.id)
                run.result.archived += 1
                logger.info(f"Archived {external_id}")
            except Exception as e:
                logger.error(f"Failed to archive {external_id}: {e}")
                run.result.errors.append(f"Archive {event.name}: {e}")

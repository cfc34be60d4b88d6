"""AWS Lambda handler for Tour Catalog Sync."""
import json
import logging
import os
import time
from typing import Dict, Any

from scraper.tour_catalog import PageFetcher, TourCatalogScraper
from processor.catalog_sync import CatalogSynchronizer
from processor.tour_processor import TourProcessor
from storage.dynamodb_event_store import DynamoDBEventStore


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for Tour Catalog Sync.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and the sync summary
    """
    # Read configuration from environment variables
    table_name = os.environ.get('TABLE_NAME', 'tour-events')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    max_pages = int(os.environ.get('MAX_PAGES', str(TourCatalogScraper.MAX_PAGES)))
    request_delay = float(os.environ.get(
        'REQUEST_DELAY_SECONDS', str(CatalogSynchronizer.REQUEST_DELAY_SECONDS)
    ))

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(
        "Lambda execution started",
        extra={
            'table_name': table_name,
            'max_pages': max_pages,
            'timeout_seconds': timeout_seconds
        }
    )

    try:
        scraper = TourCatalogScraper(
            fetcher=PageFetcher(timeout=timeout_seconds),
            max_pages=max_pages
        )
        store = DynamoDBEventStore(table_name=table_name)
        synchronizer = CatalogSynchronizer(
            scraper=scraper,
            store=store,
            processor=TourProcessor(),
            request_delay=request_delay
        )

        sync_result = synchronizer.synchronize()
        duration = time.time() - start_time

        logger.info(
            "Lambda execution completed",
            extra={
                'duration_seconds': round(duration, 2),
                'events_created': sync_result.created,
                'events_updated': sync_result.updated,
                'events_archived': sync_result.archived,
                'errors': sync_result.errors
            }
        )

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Sync completed successfully',
                'result': sync_result.to_dict(),
                'duration_seconds': round(duration, 2)
            }, ensure_ascii=False)
        }

    except Exception as e:
        duration = time.time() - start_time

        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )

        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Sync failed',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }

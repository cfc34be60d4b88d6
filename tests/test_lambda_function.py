"""Integration tests for Lambda handler."""
import json
import logging
import os
from unittest.mock import Mock, patch

import pytest

from lambda_function import JsonFormatter, lambda_handler, setup_logging
from processor.models import ItemSummary, SyncResult


@pytest.fixture
def mock_env():
    """Set up environment variables for testing."""
    env_vars = {
        'TABLE_NAME': 'test-tour-events',
        'LOG_LEVEL': 'INFO',
        'TIMEOUT_SECONDS': '15',
        'MAX_PAGES': '3',
        'REQUEST_DELAY_SECONDS': '0'
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars


@pytest.fixture
def mock_context():
    """Create a mock Lambda context."""
    context = Mock()
    context.function_name = 'test-function'
    context.aws_request_id = 'test-request-id'
    return context


@pytest.fixture
def sample_sync_result():
    """Create a sample sync result."""
    return SyncResult(
        created=2,
        updated=5,
        archived=1,
        errors=['Гуйлинь (2026-05-05): database unavailable'],
        items=[
            ItemSummary(name='Пекин, 5 дней', schedule_count=4),
            ItemSummary(name='Гуйлинь', schedule_count=3)
        ]
    )


class TestLambdaHandler:
    """Test cases for Lambda handler."""

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.CatalogSynchronizer')
    @patch('lambda_function.TourCatalogScraper')
    @patch('lambda_function.PageFetcher')
    def test_successful_sync(
        self,
        mock_fetcher_class,
        mock_scraper_class,
        mock_synchronizer_class,
        mock_store_class,
        mock_env,
        mock_context,
        sample_sync_result
    ):
        """Test successful end-to-end sync process."""
        mock_synchronizer = Mock()
        mock_synchronizer.synchronize.return_value = sample_sync_result
        mock_synchronizer_class.return_value = mock_synchronizer

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['message'] == 'Sync completed successfully'
        assert body['result'] == {
            'created': 2,
            'updated': 5,
            'archived': 1,
            'errors': ['Гуйлинь (2026-05-05): database unavailable'],
            'items': [
                {'name': 'Пекин, 5 дней', 'scheduleCount': 4},
                {'name': 'Гуйлинь', 'scheduleCount': 3}
            ]
        }
        assert 'duration_seconds' in body

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.CatalogSynchronizer')
    @patch('lambda_function.TourCatalogScraper')
    @patch('lambda_function.PageFetcher')
    def test_configuration_from_environment(
        self,
        mock_fetcher_class,
        mock_scraper_class,
        mock_synchronizer_class,
        mock_store_class,
        mock_env,
        mock_context,
        sample_sync_result
    ):
        """Test components are built from environment variables."""
        mock_synchronizer_class.return_value.synchronize.return_value = sample_sync_result

        lambda_handler({}, mock_context)

        mock_fetcher_class.assert_called_once_with(timeout=15)
        mock_scraper_class.assert_called_once_with(
            fetcher=mock_fetcher_class.return_value,
            max_pages=3
        )
        mock_store_class.assert_called_once_with(table_name='test-tour-events')
        kwargs = mock_synchronizer_class.call_args.kwargs
        assert kwargs['scraper'] is mock_scraper_class.return_value
        assert kwargs['store'] is mock_store_class.return_value
        assert kwargs['request_delay'] == 0.0

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.CatalogSynchronizer')
    @patch('lambda_function.TourCatalogScraper')
    @patch('lambda_function.PageFetcher')
    def test_defaults_without_environment(
        self,
        mock_fetcher_class,
        mock_scraper_class,
        mock_synchronizer_class,
        mock_store_class,
        mock_context,
        sample_sync_result
    ):
        """Test default configuration values."""
        mock_synchronizer_class.return_value.synchronize.return_value = sample_sync_result

        with patch.dict(os.environ, {}, clear=True):
            lambda_handler({}, mock_context)

        mock_fetcher_class.assert_called_once_with(timeout=30)
        assert mock_scraper_class.call_args.kwargs['max_pages'] == 10
        mock_store_class.assert_called_once_with(table_name='tour-events')
        assert mock_synchronizer_class.call_args.kwargs['request_delay'] == 0.2

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.CatalogSynchronizer')
    @patch('lambda_function.TourCatalogScraper')
    @patch('lambda_function.PageFetcher')
    def test_unexpected_error_returns_500(
        self,
        mock_fetcher_class,
        mock_scraper_class,
        mock_synchronizer_class,
        mock_store_class,
        mock_env,
        mock_context
    ):
        """Test failures before or outside per-item handling return 500."""
        mock_synchronizer_class.return_value.synchronize.side_effect = RuntimeError('scan failed')

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'Sync failed'
        assert body['error'] == 'scan failed'
        assert body['error_type'] == 'RuntimeError'


class TestLogging:
    """Test cases for logging setup."""

    def test_setup_logging_installs_json_handler(self):
        """Test a single JSON handler is installed at the requested level."""
        setup_logging('DEBUG')

        root_logger = logging.getLogger()
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, JsonFormatter)
        assert root_logger.level == logging.DEBUG

    def test_setup_logging_invalid_level_defaults_to_info(self):
        """Test unknown levels fall back to INFO."""
        setup_logging('LOUD')

        assert logging.getLogger().level == logging.INFO

    def test_json_formatter_output(self):
        """Test log records are rendered as JSON."""
        record = logging.LogRecord(
            name='scraper.tour_catalog',
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg='No title found for: %s',
            args=('https://chinaunique.ru/tours/x/',),
            exc_info=None
        )

        data = json.loads(JsonFormatter().format(record))

        assert data['level'] == 'WARNING'
        assert data['logger'] == 'scraper.tour_catalog'
        assert data['message'] == 'No title found for: https://chinaunique.ru/tours/x/'
        assert 'timestamp' in data

"""Unit tests for TourProcessor and external id helpers."""
from processor.models import CatalogItem, ScheduleRange
from processor.tour_processor import (
    TourProcessor,
    generate_external_id,
    is_synced_external_id,
)


def make_item(**overrides):
    fields = dict(
        slug="beijing-shanghai",
        url="https://chinaunique.ru/tours/beijing-shanghai/",
        name="Пекин и Шанхай, 8 дней",
        price=12500,
        currency="CNY",
        tour_type="group",
        duration=8,
        cities=["Пекин", "Шанхай"],
        dates=[ScheduleRange(start_date="2026-03-16", end_date="2026-03-22")],
        description="Классический маршрут"
    )
    fields.update(overrides)
    return CatalogItem(**fields)


class TestExternalId:
    """Test cases for external id generation."""

    def test_generate_external_id_format(self):
        """Test key layout."""
        assert generate_external_id("beijing", "2026-03-16") == "wp_beijing_2026-03-16"

    def test_generate_external_id_consistency(self):
        """Test same inputs always give the same key."""
        first = generate_external_id("beijing", "2026-03-16")
        second = generate_external_id("beijing", "2026-03-16")

        assert first == second

    def test_generate_external_id_uniqueness(self):
        """Test different slug or date gives a different key."""
        keys = {
            generate_external_id("beijing", "2026-03-16"),
            generate_external_id("shanghai", "2026-03-16"),
            generate_external_id("beijing", "2026-03-17"),
        }

        assert len(keys) == 3

    def test_is_synced_external_id(self):
        """Test only prefixed string keys count as synced."""
        assert is_synced_external_id("wp_beijing_2026-03-16")
        assert not is_synced_external_id("manual-123")
        assert not is_synced_external_id("wpbeijing")
        assert not is_synced_external_id(None)


class TestTourProcessor:
    """Test cases for TourProcessor."""

    def test_build_event_fields(self):
        """Test store fields for one departure."""
        item = make_item()

        fields = TourProcessor().build_event_fields(item, item.dates[0])

        assert fields == {
            'name': "Пекин и Шанхай, 8 дней",
            'country': "Китай",
            'cities': ["Пекин", "Шанхай"],
            'start_date': "2026-03-16",
            'end_date': "2026-03-22",
            'price': 12500,
            'price_currency': "CNY",
            'tour_type': "group",
            'participant_limit': 20,
            'description': "Классический маршрут",
            'external_id': "wp_beijing-shanghai_2026-03-16",
            'website_url': "https://chinaunique.ru/tours/beijing-shanghai/",
            'is_archived': False
        }

    def test_build_event_fields_truncates_long_text(self):
        """Test name and description are truncated to their maximum length."""
        item = make_item(name="Т" * 300, description="о" * 3000)

        fields = TourProcessor().build_event_fields(item, item.dates[0])

        assert len(fields['name']) == TourProcessor.MAX_NAME_LENGTH
        assert len(fields['description']) == TourProcessor.MAX_DESCRIPTION_LENGTH

    def test_build_event_fields_without_description(self):
        """Test missing description is stored as None."""
        item = make_item(description=None)

        fields = TourProcessor().build_event_fields(item, item.dates[0])

        assert fields['description'] is None

    def test_build_event_fields_copies_cities(self):
        """Test the cities list is not shared with the item."""
        item = make_item()

        fields = TourProcessor().build_event_fields(item, item.dates[0])
        fields['cities'].append("Сиань")

        assert item.cities == ["Пекин", "Шанхай"]

"""Scraper for the chinaunique.ru tour catalog."""
import logging
import re
from typing import Iterator, List, Optional

import requests
from bs4 import BeautifulSoup, NavigableString, Tag

from processor.models import CatalogItem, ScheduleRange
from scraper.date_parser import parse_date_range

logger = logging.getLogger(__name__)


class FetchError(requests.RequestException):
    """Raised when a page cannot be fetched."""

    def __init__(self, url: str, status_code: int):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {status_code}")


class PageFetcher:
    """Blocking HTML fetcher identifying itself as the CRM sync bot."""

    USER_AGENT = 'CRM-Sync-Bot/1.0'

    def __init__(self, timeout: int = 30):
        """
        Initialize the page fetcher.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.timeout = timeout

    def fetch(self, url: str) -> str:
        """
        Fetch a page and return its body as text.

        Args:
            url: Absolute URL to fetch

        Returns:
            Response body

        Raises:
            FetchError: If the server answers with a non-success status
            requests.RequestException: On connection errors and timeouts
        """
        response = requests.get(
            url,
            headers={'User-Agent': self.USER_AGENT},
            timeout=self.timeout
        )
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise FetchError(url, response.status_code) from e
        return response.text


class TourCatalogScraper:
    """Crawler and page parser for the chinaunique.ru tour catalog."""

    SITE_BASE_URL = "https://chinaunique.ru"
    TOURS_PAGE_URL = f"{SITE_BASE_URL}/tours/"
    MAX_PAGES = 10

    CURRENCY = 'CNY'
    DEFAULT_TOUR_TYPE = 'group'
    DEFAULT_DURATION_DAYS = 7
    FALLBACK_CITY = 'Китай'

    TOUR_TYPES = {
        'Групповые туры': 'group',
        'Индивидуальные туры': 'individual',
        'Экскурсии в Китае': 'excursion',
        'Экскурсии': 'excursion'
    }

    # Matched against the meta description when the page has no
    # accommodation markers
    KNOWN_CITIES = [
        'Пекин', 'Шанхай', 'Чжанцзяцзе', 'Сиань', 'Лоян', 'Гуанчжоу',
        'Гуйлинь', 'Яншо', 'Куньмин', 'Лицзян', 'Шангрила'
    ]

    ACCOMMODATION_MARKER = 'Проживание:'
    DATES_HEADING = 'Даты ближайших туров'

    TOUR_URL_RE = re.compile(r'^https://chinaunique\.ru/tours/[^"]+/$')
    SLUG_RE = re.compile(r'/tours/([^/]+)/?$')
    DURATION_RE = re.compile(r'(\d+)\s*(дней|дня|день)', re.IGNORECASE)
    PRICE_RE = re.compile(r'^\d+$')
    CITY_TEXT_RE = re.compile(r'[\s:]*([^\n]*)')
    CITY_JUNK_RE = re.compile(r'[^\w\s-]')

    def __init__(self, fetcher: Optional[PageFetcher] = None,
                 max_pages: int = MAX_PAGES):
        """
        Initialize the catalog scraper.

        Args:
            fetcher: Page fetcher to use (default: PageFetcher())
            max_pages: Hard ceiling on listing pages to crawl (default: 10)
        """
        self.fetcher = fetcher or PageFetcher()
        self.max_pages = max_pages

    def listing_page_url(self, page_num: int) -> str:
        """
        Build the URL of a listing page.

        Args:
            page_num: 1-based page number

        Returns:
            Absolute listing page URL
        """
        if page_num == 1:
            return self.TOURS_PAGE_URL
        return f"{self.TOURS_PAGE_URL}page/{page_num}/"

    def iter_tour_urls(self, collected: Optional[List[str]] = None) -> Iterator[str]:
        """
        Walk the paginated catalog and yield each tour URL once.

        Pagination stops when a page has no link to the next one, when a
        listing page fails to load, or after max_pages pages.

        Args:
            collected: List the found URLs are appended to; URLs already
                in it are not yielded again

        Yields:
            Absolute tour page URLs
        """
        if collected is None:
            collected = []

        page_num = 1
        while page_num <= self.max_pages:
            page_url = self.listing_page_url(page_num)
            try:
                html = self.fetcher.fetch(page_url)
            except requests.RequestException as e:
                logger.error(f"Error fetching listing page {page_num}: {e}")
                return

            found_on_page = 0
            for url in self._parse_listing(html):
                if url not in collected:
                    collected.append(url)
                    found_on_page += 1
                    yield url

            logger.info(f"Listing page {page_num}: {found_on_page} new tour URLs")

            if f"/tours/page/{page_num + 1}/" not in html:
                return
            page_num += 1

        logger.warning(f"Stopped pagination at page limit ({self.max_pages})")

    def _parse_listing(self, html: str) -> List[str]:
        """
        Extract tour URLs from tour-block links on a listing page.

        Args:
            html: Listing page HTML

        Returns:
            Tour URLs in page order, possibly repeated
        """
        soup = BeautifulSoup(html, 'html.parser')
        urls = []
        for link in soup.find_all('a', class_='tour-block', href=True):
            href = link['href']
            if self.TOUR_URL_RE.match(href):
                urls.append(href)
        return urls

    def parse_tour_page(self, url: str) -> Optional[CatalogItem]:
        """
        Fetch one tour page and extract its data.

        Args:
            url: Tour page URL

        Returns:
            CatalogItem, or None if the page has no tour title

        Raises:
            requests.RequestException: If the page cannot be fetched
        """
        html = self.fetcher.fetch(url)
        return self.parse_tour_html(url, html)

    def parse_tour_html(self, url: str, html: str) -> Optional[CatalogItem]:
        """
        Extract tour data from a tour page.

        Every field except the title falls back to a default when the
        markup does not contain it.

        Args:
            url: Tour page URL the HTML was loaded from
            html: Page HTML

        Returns:
            CatalogItem, or None if the page has no tour title
        """
        soup = BeautifulSoup(html, 'html.parser')

        title_elem = soup.find('h1', class_='h1-alt')
        name = title_elem.get_text(strip=True) if title_elem else ''
        if not name:
            logger.warning(f"No title found for: {url}")
            return None

        slug_match = self.SLUG_RE.search(url)
        cities = self._extract_cities(soup)

        return CatalogItem(
            slug=slug_match.group(1) if slug_match else '',
            url=url,
            name=name,
            price=self._extract_price(soup),
            currency=self.CURRENCY,
            tour_type=self._extract_tour_type(soup),
            duration=self._extract_duration(name),
            cities=cities or [self.FALLBACK_CITY],
            dates=self._extract_dates(soup),
            description=self._extract_description(soup)
        )

    def _extract_price(self, soup: BeautifulSoup) -> int:
        """
        Extract the base price from the data-base-price attribute.

        Args:
            soup: Parsed tour page

        Returns:
            Price in CNY, 0 if the page has none
        """
        price_elem = soup.find(attrs={'data-base-price': self.PRICE_RE})
        if price_elem is None:
            return 0
        return int(price_elem['data-base-price'])

    def _extract_tour_type(self, soup: BeautifulSoup) -> str:
        """
        Map the tour tag to a tour type.

        Args:
            soup: Parsed tour page

        Returns:
            'group', 'individual' or 'excursion'; 'group' for unknown tags
        """
        tag_elem = soup.find('div', class_='tour-tag')
        if tag_elem is None:
            return self.DEFAULT_TOUR_TYPE
        return self.TOUR_TYPES.get(tag_elem.get_text(strip=True), self.DEFAULT_TOUR_TYPE)

    def _extract_duration(self, name: str) -> int:
        """Duration in days from a title like "Пекин и Шанхай, 7 дней"."""
        match = self.DURATION_RE.search(name)
        return int(match.group(1)) if match else self.DEFAULT_DURATION_DAYS

    def _extract_cities(self, soup: BeautifulSoup) -> List[str]:
        """
        Extract the tour route from accommodation markers.

        Tries "<strong>Проживание:</strong> City" first, then
        "<span>Проживание:</span> City", then known city names in the
        meta description.

        Args:
            soup: Parsed tour page

        Returns:
            City names in page order, possibly empty
        """
        for tag_name in ('strong', 'span'):
            cities = self._cities_after_marker(soup, tag_name)
            if cities:
                return cities
        return self._cities_from_meta(soup)

    def _cities_after_marker(self, soup: BeautifulSoup, tag_name: str) -> List[str]:
        """
        Collect the text following each accommodation marker tag.

        The marker may carry a prefix such as "📍 ".

        Args:
            soup: Parsed tour page
            tag_name: Tag wrapping the marker ('strong' or 'span')

        Returns:
            Unique city names in page order
        """
        cities: List[str] = []
        for marker in soup.find_all(tag_name):
            if not marker.get_text(strip=True).endswith(self.ACCOMMODATION_MARKER):
                continue
            sibling = marker.next_sibling
            if not isinstance(sibling, NavigableString):
                continue
            city = self._clean_city(str(sibling))
            if city and city != 'нет' and city not in cities:
                cities.append(city)
        return cities

    def _clean_city(self, text: str) -> str:
        """First line of the marker text with punctuation stripped."""
        first_line = self.CITY_TEXT_RE.match(text).group(1)
        return self.CITY_JUNK_RE.sub('', first_line).strip()

    def _cities_from_meta(self, soup: BeautifulSoup) -> List[str]:
        """
        Find known city names in the meta description.

        Args:
            soup: Parsed tour page

        Returns:
            Known cities mentioned in the description, in KNOWN_CITIES order
        """
        meta = soup.find('meta', attrs={'name': 'description'})
        if meta is None or not meta.get('content'):
            return []
        description = meta['content']
        return [city for city in self.KNOWN_CITIES if city in description]

    def _extract_dates(self, soup: BeautifulSoup) -> List[ScheduleRange]:
        """
        Parse the list under the "Даты ближайших туров" heading.

        Entries in an unrecognized format are skipped.

        Args:
            soup: Parsed tour page

        Returns:
            Schedule ranges in page order
        """
        heading = soup.find(
            lambda tag: tag.name == 'div'
            and tag.get_text(strip=True).endswith(self.DATES_HEADING)
        )
        if heading is None:
            return []

        date_list = heading.find_next('ul')
        if not isinstance(date_list, Tag):
            return []

        dates = []
        for item in date_list.find_all('li'):
            parsed = parse_date_range(item.get_text())
            if parsed:
                dates.append(parsed)
        return dates

    def _extract_description(self, soup: BeautifulSoup) -> Optional[str]:
        """
        Extract the first paragraph of the tour description.

        Args:
            soup: Parsed tour page

        Returns:
            Description text or None
        """
        container = soup.find('div', class_='paragraph-prop')
        paragraph = container.find('p') if container else None
        if paragraph is None:
            return None
        return paragraph.get_text(strip=True) or None

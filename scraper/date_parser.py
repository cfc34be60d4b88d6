"""Parser for Russian free-text tour date ranges."""
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Optional, Tuple

from processor.models import ScheduleRange

logger = logging.getLogger(__name__)

# Genitive month names as they appear after a day number
MONTHS: Dict[str, int] = {
    'января': 1, 'февраля': 2, 'марта': 3, 'апреля': 4,
    'мая': 5, 'июня': 6, 'июля': 7, 'августа': 8,
    'сентября': 9, 'октября': 10, 'ноября': 11, 'декабря': 12
}

# en-dash, em-dash, horizontal bar, figure dash
DASHES_RE = re.compile('[–—―‒]')
YEAR_SUFFIX_RE = re.compile(r'\s*г\.?$', re.IGNORECASE)
WHITESPACE_RE = re.compile(r'\s+')

Resolved = Tuple[date, date]


@dataclass(frozen=True)
class DatePattern:
    """A single date format: its regex and how to turn a match into dates."""
    name: str
    regex: 're.Pattern[str]'
    resolve: Callable[['re.Match[str]'], Optional[Resolved]]


def _month(token: str) -> Optional[int]:
    """Month number for a genitive month name, or None."""
    return MONTHS.get(token.lower())


def _make_date(year: int, month: int, day: int) -> Optional[date]:
    """Calendar date, or None for impossible days such as 30 February."""
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _span(year: int, start_day: str, start_month: str,
          end_day: str, end_month: str) -> Optional[Resolved]:
    """
    Build a start/end pair from day and month tokens sharing one year.

    The year is written once after the end date, so a range running over
    New Year ("28 декабря - 5 января 2027") starts in the previous year.
    """
    start_month_num = _month(start_month)
    end_month_num = _month(end_month)
    if start_month_num is None or end_month_num is None:
        return None

    start = _make_date(year, start_month_num, int(start_day))
    end = _make_date(year, end_month_num, int(end_day))
    if start is None or end is None:
        return None

    if end < start and start_month_num > end_month_num:
        start = _make_date(year - 1, start_month_num, int(start_day))
        if start is None:
            return None
    if end < start:
        return None

    return start, end


def _resolve_same_month(match: 're.Match[str]') -> Optional[Resolved]:
    """Resolve a match whose groups are start day, end day, month, year."""
    start_day, end_day, month, year = match.groups()
    return _span(int(year), start_day, month, end_day, month)


def _resolve_two_months(match: 're.Match[str]') -> Optional[Resolved]:
    """Resolve a match carrying a month on both sides of the range."""
    start_day, start_month, end_day, end_month, year = match.groups()
    return _span(int(year), start_day, start_month, end_day, end_month)


def _resolve_single_day(match: 're.Match[str]') -> Optional[Resolved]:
    """Resolve a single-day match to a range starting and ending that day."""
    day, month, year = match.groups()
    month_num = _month(month)
    if month_num is None:
        return None
    single = _make_date(int(year), month_num, int(day))
    if single is None:
        return None
    return single, single


# Order matters: looser patterns further down would shadow the earlier ones
PATTERNS = (
    DatePattern(
        name='from_to',
        regex=re.compile(r'с\s*(\d{1,2})\s*по\s*(\d{1,2})\s+(\S+)\s+(\d{4})', re.IGNORECASE),
        resolve=_resolve_same_month
    ),
    DatePattern(
        name='spaced_two_months',
        regex=re.compile(r'(\d{1,2})\s+(\S+?)\s+-\s+(\d{1,2})\s+(\S+)\s+(\d{4})'),
        resolve=_resolve_two_months
    ),
    DatePattern(
        name='compact_two_months',
        regex=re.compile(r'(\d{1,2})\s+(\S+?)-(\d{1,2})\s+(\S+)\s+(\d{4})'),
        resolve=_resolve_two_months
    ),
    DatePattern(
        name='same_month',
        regex=re.compile(r'(\d{1,2})\s*-\s*(\d{1,2})\s+(\S+)\s+(\d{4})'),
        resolve=_resolve_same_month
    ),
    DatePattern(
        name='single_day',
        regex=re.compile(r'^(\d{1,2})\s+(\S+)\s+(\d{4})$'),
        resolve=_resolve_single_day
    ),
)


def normalize_date_text(text: str) -> str:
    """
    Normalize a date fragment before pattern matching.

    Collapses whitespace, drops the trailing year abbreviation ("г", "г.")
    and maps every dash variant to a plain hyphen.

    Args:
        text: Raw date fragment from the page

    Returns:
        Normalized fragment
    """
    text = WHITESPACE_RE.sub(' ', text.strip())
    text = YEAR_SUFFIX_RE.sub('', text)
    return DASHES_RE.sub('-', text)


def parse_date_range(text: str) -> Optional[ScheduleRange]:
    """
    Parse a Russian date expression into a schedule range.

    Supported formats, tried in order:
    - "с 5 по 12 мая 2026"
    - "16 марта - 22 марта 2026"
    - "26 мая-1 июня 2026"
    - "16-22 марта 2026"
    - "5 апреля 2026" (start and end are the same day)

    Args:
        text: Raw date fragment, e.g. "16–22 марта 2026 г."

    Returns:
        ScheduleRange with ISO dates, or None if no format matched
    """
    normalized = normalize_date_text(text)

    for pattern in PATTERNS:
        match = pattern.regex.search(normalized)
        if not match:
            continue
        resolved = pattern.resolve(match)
        if resolved is None:
            continue
        logger.debug(f"Date {text!r} matched {pattern.name}")
        start, end = resolved
        return ScheduleRange(
            start_date=start.isoformat(),
            end_date=end.isoformat()
        )

    logger.warning(f"Unrecognized date format: {text!r}")
    return None

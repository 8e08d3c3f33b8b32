"""
Table row history extractor

Contest history usually sits in a table, but which table, and in which column
order, varies between accounts and page revisions. The extractor walks a
ranked list of row selectors and parses each row with per-cell sniffers:

    name          first alphanumeric-led text that is not a number, delta or date
    rating        standalone 3-4 digit number in [600, 4000]
    rating change standalone signed integer (+12, -8)
    rank          whole-cell unsigned integer in (0, 100000)
    date          one of several date shapes

Sniffers run in that priority for every cell and never overwrite a field the
row already has. A cell whose whole text was taken by a sniffer is not offered
to the lower-priority ones, which keeps a bare rating cell from also being read
as the rank. The first selector that yields any valid entry wins.

Example:
    >>> document = parse_document(html)
    >>> context = ExtractionContext("alice")
    >>> TableHistoryExtractor().extract(document, context)
    1
    >>> context.entries[0].rank
    1293
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from bs4 import Tag

from .context import ExtractionContext
from .document import ProfileDocument, normalize_whitespace
from .models import ContestHistoryEntry
from . import selectors as rules

logger = logging.getLogger(__name__)

_MONTH = r'(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?'

DATE_PATTERN = re.compile(
    r'(?<!\d)(?:'
    r'\d{4}-\d{2}-\d{2}'
    r'|\d{4}/\d{2}/\d{2}'
    r'|\d{1,2}[-/]\d{1,2}[-/]\d{2,4}'
    r'|\d{1,2}-' + _MONTH + r'-\d{4}'
    r'|\d{1,2} ' + _MONTH + r' \d{4}'
    r'|' + _MONTH + r' \d{1,2},? \d{4}'
    r')(?!\d)',
    re.IGNORECASE
)

_NAME_LEAD = re.compile(r'^[A-Za-z0-9\s\-_.]+')
_BARE_NUMBER = re.compile(r'^\d+$')
_SIGNED_DELTA = re.compile(r'^[+-]\d+$')
_RATING_TOKEN = re.compile(r'(?<![\w+\-])(\d{3,4})(?!\w)')
_DELTA_TOKEN = re.compile(r'(?<![\w+\-])([+-]\d+)(?!\w)')
_RANK_CELL = re.compile(r'^\d{1,6}$')
_STANDALONE_3_4_DIGITS = re.compile(r'(?<!\d)\d{3,4}(?!\d)')
_RANK_WORD = re.compile(r'\brank\b')
_SEGMENT_SPLIT = re.compile(r'\s{2,}|\t|,')

MIN_ROW_TEXT_LENGTH = 5
HEADER_MAX_CELLS = 4
FALLBACK_NAME_LENGTH = 50
SEGMENT_MIN_LENGTH = 4


@dataclass
class _RowFields:
    name: str = ''
    rating: Optional[int] = None
    rating_change: Optional[int] = None
    rank: Optional[int] = None
    date: Optional[str] = None


def _is_date_only(text: str) -> bool:
    match = DATE_PATTERN.fullmatch(text.strip())
    return match is not None


def _is_value_token(text: str) -> bool:
    """Bare numbers, signed deltas and dates never name a contest."""
    return bool(_BARE_NUMBER.match(text) or _SIGNED_DELTA.match(text) or _is_date_only(text))


def sniff_name(text: str) -> Optional[str]:
    if len(text) <= 2 or len(text) > rules.CELL_NAME_MAX_LENGTH:
        return None
    if not _NAME_LEAD.match(text) or _is_value_token(text):
        return None
    return text


def sniff_rating(text: str) -> Tuple[Optional[int], bool]:
    """First standalone 3-4 digit number within the rating bounds."""
    for match in _RATING_TOKEN.finditer(text):
        value = int(match.group(1))
        if rules.RATING_MIN <= value <= rules.RATING_MAX:
            return value, match.group(0) == text
    return None, False


def sniff_rating_change(text: str) -> Tuple[Optional[int], bool]:
    match = _DELTA_TOKEN.search(text)
    if not match:
        return None, False
    return int(match.group(1)), match.group(0) == text


def sniff_rank(text: str) -> Optional[int]:
    if not _RANK_CELL.match(text):
        return None
    value = int(text)
    return value if 0 < value < rules.RANK_MAX else None


def sniff_date(text: str) -> Optional[str]:
    match = DATE_PATTERN.search(text)
    return match.group(0) if match else None


def is_header_row(row_text: str, cell_count: int) -> bool:
    """
    Header rows name the columns, come with few cells and carry no rating-sized
    number.
    """
    lower = row_text.lower()
    has_header_words = (
        'contest name' in lower
        or 'rating change' in lower
        or _RANK_WORD.search(lower) is not None
        or ('contest' in lower and 'rating' in lower)
    )
    return (has_header_words
            and cell_count <= HEADER_MAX_CELLS
            and not _STANDALONE_3_4_DIGITS.search(row_text))


def is_qualifying_name(name: str) -> bool:
    if not rules.CONTEST_NAME_MIN_LENGTH <= len(name) <= rules.CONTEST_NAME_MAX_LENGTH:
        return False
    lower = name.lower()
    return not any(word in lower for word in rules.REJECTED_NAME_WORDS)


def fallback_name(row_text: str) -> str:
    """Name taken from the flattened row when no cell looked like one."""
    for part in _SEGMENT_SPLIT.split(row_text):
        segment = part.strip()
        if SEGMENT_MIN_LENGTH <= len(segment) <= rules.CELL_NAME_MAX_LENGTH and not _is_value_token(segment):
            return segment

    first_part = normalize_whitespace(row_text[:FALLBACK_NAME_LENGTH])
    return first_part if len(first_part) >= SEGMENT_MIN_LENGTH else ''


class TableHistoryExtractor:
    """Parse contest history out of the first table that yields valid rows."""

    def __init__(self, row_selectors: Optional[Sequence[str]] = None):
        self.row_selectors = list(row_selectors or rules.HISTORY_ROW_SELECTORS)

    def extract(self, document: ProfileDocument, context: ExtractionContext) -> int:
        """
        Add history entries from the first productive row selector.

        Args:
            document: Parsed profile page
            context: Running entry list and dedup keys for this call

        Returns:
            int: Number of entries added
        """
        logger.debug(f"Found {document.count('table')} tables on the page")

        for selector in self.row_selectors:
            rows = document.select(selector)
            logger.debug(f"Selector '{selector}' found {len(rows)} rows")
            if not rows:
                continue

            added = 0
            for row in rows:
                try:
                    entry = self.parse_row(document, row)
                except Exception as e:
                    logger.warning(f"Error parsing rating history row: {e}")
                    continue

                if entry is not None and context.admit(entry):
                    added += 1
                    logger.debug(f"Valid contest {added}: {entry.contest_name}, Rating: {entry.rating}, "
                                 f"Change: {entry.rating_change}, Rank: {entry.rank}")

            if added:
                logger.debug(f"Found {added} contests using selector: {selector}")
                return added

        return 0

    def parse_row(self, document: ProfileDocument, row: Tag) -> Optional[ContestHistoryEntry]:
        """
        Turn one table row into a history entry.

        Returns:
            Optional[ContestHistoryEntry]: The entry, or None for header rows,
                short rows and rows without a usable name plus data
        """
        cells = row.find_all(['td', 'th'])
        row_text = row.get_text('\t', strip=True)

        if len(row_text) < MIN_ROW_TEXT_LENGTH:
            return None
        if is_header_row(row_text, len(cells)):
            logger.debug(f"Skipping header row: {normalize_whitespace(row_text)!r}")
            return None

        fields = _RowFields()
        single_cell = len(cells) == 1
        for cell in cells:
            self._sniff_cell(document.clean_text(cell), fields, single_cell)

        if not fields.name:
            fields.name = fallback_name(row_text)

        entry = ContestHistoryEntry(
            contest_name=fields.name,
            rating=fields.rating,
            rating_change=fields.rating_change,
            rank=fields.rank,
            date=fields.date,
        )
        if not is_qualifying_name(entry.contest_name) or not entry.has_data():
            return None
        return entry

    @staticmethod
    def _sniff_cell(text: str, fields: _RowFields, single_cell: bool) -> None:
        if not text:
            return

        if not fields.name:
            name = sniff_name(text)
            if name:
                fields.name = name
                # The name cell of a multi-cell row holds nothing else
                if not single_cell:
                    return

        date = sniff_date(text)
        residual = normalize_whitespace(DATE_PATTERN.sub(' ', text))

        if fields.rating is None:
            rating, whole = sniff_rating(residual)
            if rating is not None:
                fields.rating = rating
                if whole:
                    return

        if fields.rating_change is None:
            change, whole = sniff_rating_change(residual)
            if change is not None:
                fields.rating_change = change
                if whole:
                    return

        if fields.rank is None:
            rank = sniff_rank(residual)
            if rank is not None:
                fields.rank = rank
                return

        if fields.date is None and date:
            fields.date = date

"""
Data model for extracted profiles

ContestHistoryEntry and ProfileRecord are plain dataclasses created fresh for
each extraction call. ``to_dict`` renders the camelCase JSON shape handed to
callers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

DEFAULT_RANK = "Unrated"

# Dates recognised for ordering contest history
_DATE_FORMATS = (
    '%Y-%m-%d',
    '%Y-%m-%d %H:%M:%S',
    '%Y/%m/%d',
    '%d/%m/%Y',
    '%d-%m-%Y',
    '%d/%m/%y',
    '%d-%m-%y',
    '%d-%b-%Y',
    '%d %b %Y',
    '%d %B %Y',
    '%b %d, %Y',
    '%B %d, %Y',
    '%b %d %Y',
    '%B %d %Y',
)


def parse_contest_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a scraped date string.

    Returns None for anything that is not one of the known date shapes; such
    entries are simply not reordered by the assembler.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    # ISO timestamps with a time part, e.g. "2025-07-02T22:00:00Z"
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).replace(tzinfo=None)
    except ValueError:
        return None


@dataclass
class ContestHistoryEntry:
    """One contest a user took part in."""
    contest_name: str
    rating: Optional[int] = None
    rating_change: Optional[int] = None
    rank: Optional[int] = None
    date: Optional[str] = None

    def has_data(self) -> bool:
        """True when the entry carries anything besides its name."""
        return any(value is not None for value in
                   (self.rating, self.rating_change, self.rank, self.date))

    def identity_key(self) -> str:
        """Contest name followed by whichever of rating, date and rank are known."""
        key = self.contest_name
        if self.rating:
            key += f"_{self.rating}"
        if self.date:
            key += f"_{self.date}"
        if self.rank:
            key += f"_{self.rank}"
        return key

    def parsed_date(self) -> Optional[datetime]:
        return parse_contest_date(self.date)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'contestName': self.contest_name,
            'rating': self.rating,
            'ratingChange': self.rating_change,
            'rank': self.rank,
            'date': self.date,
        }


@dataclass
class ProfileRecord:
    """
    Normalized profile assembled from one page.

    ``total_contests`` is derived from ``history`` and can never disagree with
    it.
    """
    username: str
    name: Optional[str] = None
    rating: int = 0
    stars: int = 0
    rank: str = DEFAULT_RANK
    country: Optional[str] = None
    institution: Optional[str] = None
    problems_solved: int = 0
    history: List[ContestHistoryEntry] = field(default_factory=list)

    @property
    def total_contests(self) -> int:
        return len(self.history)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'rating': self.rating,
            'stars': self.stars,
            'rank': self.rank,
            'country': self.country,
            'institution': self.institution,
            'problemsSolved': self.problems_solved,
            'history': [entry.to_dict() for entry in self.history],
            'totalContests': self.total_contests,
        }

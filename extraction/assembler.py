"""
Plausibility filter and result assembly for extracted profiles
"""

import logging
from typing import List, Optional

from .models import DEFAULT_RANK, ContestHistoryEntry, ProfileRecord
from . import selectors as rules

logger = logging.getLogger(__name__)


def is_plausible_entry(entry: ContestHistoryEntry) -> bool:
    """An entry needs a name of sane length and at least one data field."""
    name = entry.contest_name or ''
    if not rules.CONTEST_NAME_MIN_LENGTH <= len(name) <= rules.CONTEST_NAME_MAX_LENGTH:
        return False
    return entry.has_data()


def filter_history(entries: List[ContestHistoryEntry]) -> List[ContestHistoryEntry]:
    kept = [entry for entry in entries if is_plausible_entry(entry)]
    dropped = len(entries) - len(kept)
    if dropped:
        logger.debug(f"Dropped {dropped} implausible history entries")
    return kept


def sort_history(entries: List[ContestHistoryEntry]) -> List[ContestHistoryEntry]:
    """
    Order history newest first without moving undated entries.

    Entries whose date does not parse stay at their exact index. The dated
    entries are sorted by date, descending, and written back into the slots
    dated entries held before; ties keep their original order.

    Args:
        entries: History in extraction order

    Returns:
        List[ContestHistoryEntry]: A new, reordered list of the same entries
    """
    dated_slots = []
    dated_entries = []
    for index, entry in enumerate(entries):
        parsed = entry.parsed_date()
        if parsed is not None:
            dated_slots.append(index)
            dated_entries.append((parsed, entry))

    ordered = list(entries)
    dated_entries.sort(key=lambda pair: pair[0], reverse=True)
    for slot, (_, entry) in zip(dated_slots, dated_entries):
        ordered[slot] = entry
    return ordered


def assemble_profile(username: str,
                     name: Optional[str] = None,
                     rating: Optional[int] = None,
                     stars: Optional[int] = None,
                     rank: Optional[str] = None,
                     country: Optional[str] = None,
                     institution: Optional[str] = None,
                     problems_solved: Optional[int] = None,
                     history: Optional[List[ContestHistoryEntry]] = None) -> ProfileRecord:
    """
    Build the final record, applying defaults for anything unresolved.

    History is filtered and sorted here; it is never truncated.
    """
    entries = sort_history(filter_history(list(history or [])))
    return ProfileRecord(
        username=username,
        name=name or None,
        rating=rating if rating is not None else 0,
        stars=stars if stars is not None else 0,
        rank=rank or DEFAULT_RANK,
        country=country or None,
        institution=institution or None,
        problems_solved=max(problems_solved or 0, 0),
        history=entries,
    )

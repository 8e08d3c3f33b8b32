"""
Heuristic HTML extraction for competitive programming profile pages
"""

from .document import ProfileDocument, parse_document, as_document
from .models import ContestHistoryEntry, ProfileRecord, DEFAULT_RANK
from .context import ExtractionContext
from .engine import ProfileExtractor, extract_profile
from .contest_listing import UpcomingContest, extract_upcoming_contests
from .page_inspector import inspect_page_structure

__all__ = [
    'ProfileDocument',
    'parse_document',
    'as_document',
    'ContestHistoryEntry',
    'ProfileRecord',
    'DEFAULT_RANK',
    'ExtractionContext',
    'ProfileExtractor',
    'extract_profile',
    'UpcomingContest',
    'extract_upcoming_contests',
    'inspect_page_structure',
]

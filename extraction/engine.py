"""
Heuristic profile extraction engine

Runs the extraction stages over one parsed page, leaves first:

    field cascade      name, rating, stars, rank, country, institution
    pattern matcher    problems solved
    table extractor    contest history from table rows
    script miner       contest history from inline scripts, only when the
                       table stage found fewer than five contests
    assembler          plausibility filter, date ordering, defaults

Every call builds its own ExtractionContext, so a single ProfileExtractor can
be shared between threads.

Example:
    >>> record = ProfileExtractor().extract(html, "alice")
    >>> record.total_contests == len(record.history)
    True
"""

import logging
from typing import Union

from bs4 import BeautifulSoup

from .assembler import assemble_profile
from .context import ExtractionContext
from .document import ProfileDocument, as_document
from .field_cascade import (extract_country, extract_institution, extract_name,
                            extract_rank, extract_rating, extract_stars)
from .models import ProfileRecord
from .pattern_matcher import extract_problems_solved
from .script_history import ScriptHistoryMiner
from .table_history import TableHistoryExtractor
from . import selectors as rules

logger = logging.getLogger(__name__)

Source = Union[ProfileDocument, BeautifulSoup, str, bytes]


class ProfileExtractor:
    """Turn a profile page into a ProfileRecord."""

    def __init__(self, site: str = rules.SITE_NAME):
        self.site = site
        self.table_extractor = TableHistoryExtractor()
        self.script_miner = ScriptHistoryMiner()

    def extract(self, source: Source, username: str) -> ProfileRecord:
        """
        Extract a normalized profile from a page.

        Args:
            source: ProfileDocument, BeautifulSoup tree or raw HTML
            username: Account the page belongs to

        Returns:
            ProfileRecord: The assembled record; unresolved fields carry their
                defaults

        Raises:
            DocumentParseError: If the source is missing, empty or has no
                element tree
        """
        document = as_document(source)
        context = ExtractionContext(username)

        name = extract_name(document, username, self.site)
        rating = extract_rating(document)
        stars = extract_stars(document)
        rank = extract_rank(document)
        country = extract_country(document)
        institution = extract_institution(document)
        problems_solved = extract_problems_solved(document)

        table_count = self.table_extractor.extract(document, context)
        script_count = 0
        if len(context) < rules.SCRIPT_MINING_THRESHOLD:
            script_count = self.script_miner.extract(document, context)

        record = assemble_profile(
            username,
            name=name,
            rating=rating,
            stars=stars,
            rank=rank,
            country=country,
            institution=institution,
            problems_solved=problems_solved,
            history=context.entries,
        )

        logger.info(f"Extracted profile for {username}: rating {record.rating}, "
                    f"{record.stars} stars, {record.problems_solved} solved, "
                    f"{record.total_contests} contests "
                    f"({table_count} from tables, {script_count} from scripts)")
        return record


def extract_profile(source: Source, username: str) -> ProfileRecord:
    """Shorthand for ``ProfileExtractor().extract(source, username)``."""
    return ProfileExtractor().extract(source, username)

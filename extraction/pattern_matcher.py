"""
Pattern fallback matcher for the problems-solved count

The count has no stable anchor in the markup, so it is located by text
patterns, from the most specific phrasing to the loosest:

    1. "Total Problems Solved: N" in any element's text
    2. looser phrasings in any element's text, bounded to 0 < N < 2000
    3. "Total Problems Solved: N" in the whole page text, joined with spaces
    4. 0

Elements are scanned innermost first: an ancestor's text runs the text of
neighbouring children together, so a digit from the next element could
otherwise be read as part of the count.
"""

import logging
from typing import List, Optional

from bs4 import Tag

from .document import ProfileDocument
from . import selectors as rules

logger = logging.getLogger(__name__)


def _innermost_first(document: ProfileDocument) -> List[Tag]:
    # Reverse document order visits every descendant before its ancestors
    return list(document.iter_elements())[::-1]


def _match_exact_in_elements(document: ProfileDocument) -> Optional[int]:
    for element in _innermost_first(document):
        match = rules.TOTAL_SOLVED_PATTERN.search(document.text(element))
        if match:
            logger.debug(f"Exact solved phrase found in <{element.name}>")
            return int(match.group(1))
    return None


def _match_loose_in_elements(document: ProfileDocument) -> Optional[int]:
    for element in _innermost_first(document):
        text = document.text(element)
        for pattern in rules.LOOSE_SOLVED_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            count = int(match.group(1))
            if 0 < count < rules.LOOSE_SOLVED_MAX:
                logger.debug(f"Solved count via pattern {pattern.pattern!r} in <{element.name}>")
                return count
    return None


def _match_exact_in_page(document: ProfileDocument) -> Optional[int]:
    match = rules.TOTAL_SOLVED_PATTERN.search(document.page_text(' '))
    if match:
        logger.debug("Exact solved phrase found in page text")
        return int(match.group(1))
    return None


def extract_problems_solved(document: ProfileDocument) -> int:
    """
    Locate the problems-solved count.

    Args:
        document: Parsed profile page

    Returns:
        int: The count, or 0 when no recognizable phrasing exists
    """
    for strategy in (_match_exact_in_elements, _match_loose_in_elements, _match_exact_in_page):
        count = strategy(document)
        if count is not None:
            return count

    logger.debug("Could not find problems solved count, defaulting to 0")
    return 0

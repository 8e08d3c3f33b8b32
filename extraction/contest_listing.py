"""
Upcoming contest listing parser

Reads the contests page with the same first-selector-wins approach as the
profile stages. When none of the container selectors match, contest links are
used as a last resort.
"""

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from bs4 import Tag

from .document import ProfileDocument
from . import selectors as rules

logger = logging.getLogger(__name__)

SITE_URL = "https://www.codechef.com"
CONTESTS_URL = f"{SITE_URL}/contests"
PLATFORM = "codechef"

_CODE_IN_HREF = re.compile(r'/([A-Z0-9_]+)$')
_LINK_MIN_TEXT_LENGTH = 5


@dataclass
class UpcomingContest:
    name: str
    code: str
    startTime: str
    endTime: str
    url: str
    platform: str = PLATFORM

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _first_text(document: ProfileDocument, container: Tag, selectors: Sequence[str]) -> str:
    # The first selector with a match decides, even if its text is empty
    for selector in selectors:
        found = document.select(selector, root=container)
        if found:
            return document.text(found[0])
    return ''


def _contest_code(document: ProfileDocument, container: Tag) -> str:
    for selector in rules.CONTEST_CODE_SELECTORS:
        found = document.select(selector, root=container)
        if not found:
            continue
        element = found[0]
        href = document.attr(element, 'href')
        if href:
            match = _CODE_IN_HREF.search(href)
            if match:
                return match.group(1)
        return document.attr(element, 'data-contest-code') or document.text(element)
    return ''


def parse_contest_container(document: ProfileDocument, container: Tag, index: int) -> Optional[UpcomingContest]:
    """Build a contest from one container, or None when it has no name."""
    name = _first_text(document, container, rules.CONTEST_NAME_SELECTORS)
    if not name:
        return None

    code = _contest_code(document, container)
    return UpcomingContest(
        name=name,
        code=code or f"contest_{index + 1}",
        startTime=_first_text(document, container, rules.CONTEST_START_SELECTORS) or 'TBD',
        endTime=_first_text(document, container, rules.CONTEST_END_SELECTORS) or 'TBD',
        url=f"{SITE_URL}/{code}" if code else CONTESTS_URL,
    )


def _contests_from_links(document: ProfileDocument) -> List[UpcomingContest]:
    contests = []
    for index, link in enumerate(document.select(rules.CONTEST_LINK_SELECTOR)):
        text = document.text(link)
        if len(text) <= _LINK_MIN_TEXT_LENGTH or 'past' in text.lower():
            continue
        href = document.attr(link, 'href')
        contests.append(UpcomingContest(
            name=text,
            code=href.rstrip('/').split('/')[-1] if href else f"contest_{index + 1}",
            startTime='Check website',
            endTime='Check website',
            url=f"{SITE_URL}{href}" if href else CONTESTS_URL,
        ))
    return contests


def extract_upcoming_contests(document: ProfileDocument) -> Dict[str, Any]:
    """
    Parse the contests page into a listing.

    Args:
        document: Parsed contests page

    Returns:
        Dict[str, Any]: ``contests`` (at most ten), ``totalFound`` (all
            contests recognised) and a ``note``
    """
    contests: List[UpcomingContest] = []
    matched_selector = None

    for selector in rules.CONTEST_CONTAINER_SELECTORS:
        containers = document.select(selector)
        if not containers:
            continue
        matched_selector = selector
        logger.debug(f"Contest selector '{selector}' matched {len(containers)} containers")
        for index, container in enumerate(containers):
            try:
                contest = parse_contest_container(document, container, index)
            except Exception as e:
                logger.warning(f"Error parsing contest element: {e}")
                continue
            if contest is not None:
                contests.append(contest)
        break

    if matched_selector is None:
        logger.debug("No contest containers found, falling back to contest links")
        contests = _contests_from_links(document)

    note = ('Contest data scraped successfully' if contests
            else 'No upcoming contests found or page structure changed')
    return {
        'platform': PLATFORM,
        'contests': [contest.to_dict() for contest in contests[:rules.MAX_LISTED_CONTESTS]],
        'totalFound': len(contests),
        'websiteUrl': CONTESTS_URL,
        'note': note,
    }

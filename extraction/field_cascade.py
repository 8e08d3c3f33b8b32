"""
Field selector cascade

Single-valued profile fields are resolved by running an ordered list of
strategies against the document and keeping the first plausible value. Each
strategy is a small object with an ``extract(document)`` method returning a
value or None; "not found" is an ordinary result, never an exception.

Strategy variants:
    SelectorStrategy   first matching element whose text parses
    LabelStrategy      "Label: value" items in a details list
    CountStrategy      number of matching elements
    GlyphStrategy      number of star glyphs inside matching elements
    TitleStrategy      "<name> - <site>" in the document title
    TextNodeStrategy   first acceptable text node inside containers
"""

import logging
import re
from typing import Any, Callable, List, Optional, Sequence

from .document import ProfileDocument, normalize_whitespace
from .models import DEFAULT_RANK
from . import selectors as rules

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r'\s*(\d+)')
_DIGITS_ONLY = re.compile(r'^\d+$')
_STAR_LABEL = re.compile(r'(\d+)\s*' + rules.STAR_GLYPH)

TextParser = Callable[[str], Any]


def _non_empty(text: str) -> Optional[str]:
    return text or None


def leading_int(text: str) -> Optional[int]:
    """Integer at the start of the text, like a lenient parseInt."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


class SelectorStrategy:
    """Try selectors in order; within one selector, elements in document order."""

    def __init__(self, selectors: Sequence[str], parse: TextParser = _non_empty, name: str = 'selector'):
        self.selectors = list(selectors)
        self.parse = parse
        self.name = name

    def extract(self, document: ProfileDocument) -> Any:
        for selector in self.selectors:
            for element in document.select(selector):
                value = self.parse(document.clean_text(element))
                if value is not None:
                    logger.debug(f"{self.name}: matched '{selector}'")
                    return value
        return None


class LabelStrategy:
    """Read the value of a "Label: value" list item."""

    def __init__(self, item_selectors: Sequence[str], label: str, name: str = 'label'):
        self.item_selectors = list(item_selectors)
        self.pattern = re.compile(rf'^{re.escape(label)}\s*:\s*(.+)$', re.IGNORECASE)
        self.name = name

    def extract(self, document: ProfileDocument) -> Optional[str]:
        for selector in self.item_selectors:
            for element in document.select(selector):
                match = self.pattern.match(document.clean_text(element))
                if match:
                    logger.debug(f"{self.name}: matched label in '{selector}'")
                    return match.group(1).strip()
        return None


class CountStrategy:
    """Number of elements matching a selector, if any match."""

    def __init__(self, selector: str, name: str = 'count'):
        self.selector = selector
        self.name = name

    def extract(self, document: ProfileDocument) -> Optional[int]:
        count = document.count(self.selector)
        return count or None


class GlyphStrategy:
    """Number of glyph characters inside the matching elements."""

    def __init__(self, selectors: Sequence[str], glyph: str, name: str = 'glyph'):
        self.selectors = list(selectors)
        self.glyph = glyph
        self.name = name

    def extract(self, document: ProfileDocument) -> Optional[int]:
        for selector in self.selectors:
            elements = document.select(selector)
            count = sum(document.text(element).count(self.glyph) for element in elements)
            if count:
                return count
        return None


class TitleStrategy:
    """Display name from a "<name> - <site>" document title."""

    def __init__(self, site: str, username: str):
        self.pattern = re.compile(rf'^(.+?)\s*-\s*{re.escape(site)}', re.IGNORECASE)
        self.username = username
        self.name = 'title'

    def extract(self, document: ProfileDocument) -> Optional[str]:
        match = self.pattern.match(document.title_text())
        if not match:
            return None
        candidate = match.group(1).strip()
        if not candidate or candidate.lower() == self.username.lower():
            return None
        return candidate


class TextNodeStrategy:
    """First text node inside the containers accepted by ``accept``."""

    def __init__(self, containers: Sequence[str], accept: Callable[[str], bool]):
        self.containers = list(containers)
        self.accept = accept
        self.name = 'text-node'

    def extract(self, document: ProfileDocument) -> Optional[str]:
        for text in document.text_nodes_within(self.containers):
            if self.accept(text):
                return text
        return None


def run_cascade(document: ProfileDocument, strategies: Sequence[Any], field: str) -> Any:
    """
    Evaluate strategies left to right and return the first non-None value.

    Args:
        document: Parsed page
        strategies: Ordered strategy objects
        field: Field name, for logging

    Returns:
        The first value produced, or None when every strategy comes up empty
    """
    for strategy in strategies:
        value = strategy.extract(document)
        if value is not None:
            logger.debug(f"Resolved {field} via {strategy.name}: {value!r}")
            return value
    logger.debug(f"Could not resolve {field}")
    return None


def is_plausible_name(text: str, username: str) -> bool:
    """
    Check whether a text can be a display name.

    Rejects the username itself (case-insensitive), anything with a
    parenthesis or a star glyph, bare numbers and texts outside the
    length bounds.
    """
    if not text:
        return False
    if text.lower() == username.lower():
        return False
    if '(' in text or rules.STAR_GLYPH in text:
        return False
    if _DIGITS_ONLY.match(text):
        return False
    return rules.NAME_MIN_LENGTH <= len(text) <= rules.NAME_MAX_LENGTH


def name_strategies(username: str, site: str = rules.SITE_NAME) -> List[Any]:
    def parse_name(text: str) -> Optional[str]:
        return text if is_plausible_name(text, username) else None

    def accept_text_node(text: str) -> bool:
        if any(word in text for word in rules.PROFILE_LABEL_WORDS):
            return False
        return is_plausible_name(normalize_whitespace(text), username)

    return [
        SelectorStrategy(rules.NAME_SELECTORS, parse_name, name='name-selector'),
        TitleStrategy(site, username),
        TextNodeStrategy(rules.PROFILE_CONTAINERS, accept_text_node),
    ]


def extract_name(document: ProfileDocument, username: str, site: str = rules.SITE_NAME) -> Optional[str]:
    """Display name, or None when nothing plausible is on the page."""
    name = run_cascade(document, name_strategies(username, site), 'name')
    return normalize_whitespace(name) if name else None


RATING_STRATEGIES = [
    SelectorStrategy(rules.RATING_SELECTORS, leading_int, name='rating-selector'),
]


def extract_rating(document: ProfileDocument) -> int:
    rating = run_cascade(document, RATING_STRATEGIES, 'rating')
    return rating if rating is not None else 0


def _parse_star_label(text: str) -> Optional[int]:
    match = _STAR_LABEL.search(text)
    return int(match.group(1)) if match else None


STAR_STRATEGIES = [
    GlyphStrategy(rules.STAR_SELECTORS, rules.STAR_GLYPH, name='star-glyphs'),
    CountStrategy(rules.STAR_SELECTORS[0], name='star-elements'),
    SelectorStrategy(rules.STAR_LABEL_SELECTORS, _parse_star_label, name='star-label'),
]


def extract_stars(document: ProfileDocument) -> int:
    stars = run_cascade(document, STAR_STRATEGIES, 'stars')
    return stars if stars is not None else 0


RANK_STRATEGIES = [
    SelectorStrategy(rules.RANK_SELECTORS, name='rank-selector'),
]


def extract_rank(document: ProfileDocument) -> str:
    rank = run_cascade(document, RANK_STRATEGIES, 'rank')
    return rank if rank is not None else DEFAULT_RANK


COUNTRY_STRATEGIES = [
    SelectorStrategy(rules.COUNTRY_SELECTORS, name='country-selector'),
    LabelStrategy(rules.DETAIL_ITEM_SELECTORS, 'Country', name='country-label'),
]


def extract_country(document: ProfileDocument) -> Optional[str]:
    return run_cascade(document, COUNTRY_STRATEGIES, 'country')


INSTITUTION_STRATEGIES = [
    SelectorStrategy(rules.INSTITUTION_SELECTORS, name='institution-selector'),
    LabelStrategy(rules.DETAIL_ITEM_SELECTORS, 'Institution', name='institution-label'),
]


def extract_institution(document: ProfileDocument) -> Optional[str]:
    return run_cascade(document, INSTITUTION_STRATEGIES, 'institution')

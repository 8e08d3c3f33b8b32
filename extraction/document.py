"""
Document model adapter for the extraction engine

Wraps a BeautifulSoup tree (lxml parser) and exposes the handful of queries the
extraction stages need: selector lookups, normalized text, attribute access,
text-node iteration inside containers, inline script bodies and page text.

Example:
    >>> document = parse_document("<html><title>Jane - CodeChef</title></html>")
    >>> document.title_text()
    'Jane - CodeChef'
"""

import logging
import re
from typing import Iterator, List, Optional, Union

from bs4 import BeautifulSoup, Tag
from bs4.element import Comment, NavigableString, Script, Stylesheet, TemplateString

from utils.error_handler import DocumentParseError

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r'\s+')

# Strings that never hold visible text
_NON_TEXT_STRINGS = (Comment, Script, Stylesheet, TemplateString)


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs into single spaces and trim the result."""
    return _WHITESPACE.sub(' ', text).strip()


class ProfileDocument:
    """
    Read-only view over a parsed HTML page.

    Every extraction stage receives the same ProfileDocument; none of them
    mutate the underlying tree.
    """

    def __init__(self, soup: BeautifulSoup, url: Optional[str] = None):
        self.soup = soup
        self.url = url

    def select(self, selector: str, root: Optional[Tag] = None) -> List[Tag]:
        """Return elements matching a CSS selector, in document order."""
        scope = root if root is not None else self.soup
        return scope.select(selector)

    def select_one(self, selector: str, root: Optional[Tag] = None) -> Optional[Tag]:
        scope = root if root is not None else self.soup
        return scope.select_one(selector)

    def count(self, selector: str) -> int:
        return len(self.select(selector))

    @staticmethod
    def text(element: Tag, separator: str = '') -> str:
        """Text content of an element, trimmed."""
        return element.get_text(separator).strip()

    @staticmethod
    def clean_text(element: Tag) -> str:
        """Text content with whitespace runs collapsed to single spaces."""
        return normalize_whitespace(element.get_text(' '))

    @staticmethod
    def attr(element: Tag, name: str) -> Optional[str]:
        value = element.get(name)
        if isinstance(value, list):
            return ' '.join(value)
        return value

    def title_text(self) -> str:
        title = self.soup.find('title')
        return title.get_text().strip() if title else ''

    def iter_elements(self) -> Iterator[Tag]:
        """Every element of the page in document order, starting at the root."""
        return self.soup.find_all(True)

    def page_text(self, separator: str = ' ') -> str:
        """The whole page text as a single string."""
        return self.soup.get_text(separator)

    def text_nodes_within(self, container_selectors: List[str]) -> Iterator[str]:
        """
        Yield trimmed text nodes found below the given containers.

        Only text nodes whose parent is a descendant of a container are
        visited (text sitting directly in the container is ignored). Each node
        is yielded once even when containers nest.
        """
        seen = set()
        containers = self.select(', '.join(container_selectors))
        for container in containers:
            for element in container.find_all(True):
                for child in element.children:
                    if not isinstance(child, NavigableString) or isinstance(child, _NON_TEXT_STRINGS):
                        continue
                    if id(child) in seen:
                        continue
                    seen.add(id(child))
                    text = child.strip()
                    if text:
                        yield text

    def scripts(self) -> List[str]:
        """Raw bodies of the inline script tags."""
        bodies = []
        for script in self.soup.find_all('script'):
            if script.get('src'):
                continue
            body = script.string if script.string is not None else script.get_text()
            if body:
                bodies.append(str(body))
        return bodies


def parse_document(markup: Union[str, bytes, None], url: Optional[str] = None) -> ProfileDocument:
    """
    Parse raw HTML into a ProfileDocument.

    Args:
        markup: Raw page content as returned by the fetch layer
        url: Where the page came from, kept for error context only

    Returns:
        ProfileDocument: Parsed document

    Raises:
        DocumentParseError: If there is nothing to parse or the parser
            produced no element tree at all
    """
    if markup is None:
        raise DocumentParseError("No document content to parse", url=url)
    if not isinstance(markup, (str, bytes)):
        raise DocumentParseError(f"Unsupported document type: {type(markup).__name__}", url=url)
    if not markup.strip():
        raise DocumentParseError("Document is empty", url=url)

    try:
        soup = BeautifulSoup(markup, 'lxml')
    except Exception as e:
        raise DocumentParseError(f"Failed to parse document: {str(e)}", original_exception=e, url=url)

    if soup.find(True) is None:
        raise DocumentParseError("Parsed document contains no elements", url=url)

    logger.debug(f"Parsed document{' from ' + url if url else ''}")
    return ProfileDocument(soup, url=url)


def as_document(source: Union[ProfileDocument, BeautifulSoup, str, bytes, None]) -> ProfileDocument:
    """Accept a ready document, a soup or raw markup."""
    if isinstance(source, ProfileDocument):
        return source
    if isinstance(source, BeautifulSoup):
        if source.find(True) is None:
            raise DocumentParseError("Parsed document contains no elements")
        return ProfileDocument(source)
    return parse_document(source)

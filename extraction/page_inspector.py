"""
Page structure diagnostics

Summarises what a fetched profile page looks like so selector lists can be
re-tuned when the site changes its markup.
"""

import re
from typing import Any, Dict, List

from .document import ProfileDocument

CONTEST_KEYWORDS = ['start', 'cook', 'lunch', 'contest', 'rating', 'participated', 'rank']

MAX_CLASSES = 50
MAX_RATING_ELEMENTS = 10
SAMPLE_ROWS = 3
SAMPLE_TEXT_LENGTH = 100

_RATING_SIZED_NUMBER = re.compile(r'\b\d{3,4}\b')


def _table_summary(document: ProfileDocument, index: int, table) -> Dict[str, Any]:
    rows = document.select('tr', root=table)
    samples = [text for text in (document.text(row) for row in rows[:SAMPLE_ROWS]) if text]
    return {
        'index': index,
        'className': document.attr(table, 'class') or 'no-class',
        'rowCount': len(rows),
        'sampleRows': samples,
    }


def _distinct_classes(document: ProfileDocument) -> List[str]:
    classes: List[str] = []
    for element in document.select('[class]'):
        for cls in element.get('class', []):
            if cls and cls not in classes:
                classes.append(cls)
    return classes[:MAX_CLASSES]


def _rating_elements(document: ProfileDocument) -> List[Dict[str, str]]:
    found = []
    for element in document.iter_elements():
        text = document.text(element)
        class_name = document.attr(element, 'class') or ''
        if not _RATING_SIZED_NUMBER.search(text):
            continue
        if 'rating' in class_name or 'rating' in text:
            found.append({
                'text': text[:SAMPLE_TEXT_LENGTH],
                'className': class_name,
                'tagName': element.name,
            })
            if len(found) == MAX_RATING_ELEMENTS:
                break
    return found


def inspect_page_structure(document: ProfileDocument, username: str) -> Dict[str, Any]:
    """
    Describe the structure of a profile page.

    Args:
        document: Parsed profile page
        username: Account the page belongs to

    Returns:
        Dict[str, Any]: Title, table count and samples, up to 50 CSS classes,
            contest keywords present and up to 10 rating-looking elements
    """
    tables = document.select('table')
    page_text = document.page_text('').lower()

    return {
        'username': username,
        'pageTitle': document.title_text(),
        'allTables': len(tables),
        'tableData': [_table_summary(document, index, table) for index, table in enumerate(tables)],
        'allClasses': _distinct_classes(document),
        'contestKeywords': [word for word in CONTEST_KEYWORDS if word in page_text],
        'ratingKeywords': _rating_elements(document),
    }

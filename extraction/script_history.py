"""
Script-tag history miner

Some pages ship contest history as data for a rating chart instead of (or as
well as) a table. This stage scans inline scripts mentioning "rating" or
"contest" for JSON array literals and, if those are thin, for flat object
literals, and turns objects carrying contest-like keys into history entries.

Mining is best-effort: literals that are not valid JSON, or that turn out to
be unrelated data, are skipped without complaint.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from .context import ExtractionContext
from .document import ProfileDocument
from .models import ContestHistoryEntry
from . import selectors as rules

logger = logging.getLogger(__name__)

_ARRAY_LITERAL = re.compile(r'\[[\s\S]*?\]')
_OBJECT_LITERAL = re.compile(r'\{[^{}]*(?:rating|contest|name)[^{}]*\}', re.IGNORECASE)
_SIGNED_INT = re.compile(r'^[+-]?\d+$')

ARRAY_NAME_KEYS = ('contest', 'contestName', 'name')
OBJECT_NAME_KEYS = ('contestName', 'contest', 'name')
CHANGE_KEYS = ('change', 'ratingChange')
DATE_KEYS = ('date', 'end_date')


def coerce_int(value: Any) -> Optional[int]:
    """Integers and integer-looking strings; everything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _SIGNED_INT.match(value.strip()):
        return int(value.strip())
    return None


def _first_value(item: Dict[str, Any], keys) -> Any:
    for key in keys:
        value = item.get(key)
        if value:
            return value
    return None


def _looks_like_contest(item: Any, name_keys) -> bool:
    return isinstance(item, dict) and bool(item.get('rating') or _first_value(item, name_keys))


def entry_from_object(item: Dict[str, Any], index: int, name_keys) -> ContestHistoryEntry:
    name = _first_value(item, name_keys)
    if not isinstance(name, str) or not name.strip():
        name = f"Contest {index + 1}"

    date = _first_value(item, DATE_KEYS)
    return ContestHistoryEntry(
        contest_name=name.strip(),
        rating=coerce_int(item.get('rating')),
        rating_change=coerce_int(_first_value(item, CHANGE_KEYS)),
        rank=coerce_int(item.get('rank')),
        date=str(date) if date else None,
    )


class ScriptHistoryMiner:
    """Mine contest-like literals out of inline scripts."""

    def extract(self, document: ProfileDocument, context: ExtractionContext) -> int:
        """
        Add entries found in script literals to the running context.

        Returns:
            int: Number of entries added
        """
        added = 0
        for script in document.scripts():
            lower = script.lower()
            if not any(keyword in lower for keyword in rules.SCRIPT_KEYWORDS):
                continue

            added += self._mine_arrays(script, context)
            if len(context) < rules.OBJECT_MINING_THRESHOLD:
                added += self._mine_objects(script, context)

        if added:
            logger.debug(f"Extracted {added} contests from script tags")
        return added

    def _admit(self, entry: ContestHistoryEntry, context: ExtractionContext) -> bool:
        if context.has_name(entry.contest_name):
            logger.debug(f"Contest already known, skipping script entry: {entry.contest_name}")
            return False
        return context.admit(entry)

    def _mine_arrays(self, script: str, context: ExtractionContext) -> int:
        added = 0
        for literal in _ARRAY_LITERAL.findall(script):
            data = self._parse(literal)
            if not isinstance(data, list):
                continue
            for index, item in enumerate(data):
                if _looks_like_contest(item, ARRAY_NAME_KEYS):
                    if self._admit(entry_from_object(item, index, ARRAY_NAME_KEYS), context):
                        added += 1
        return added

    def _mine_objects(self, script: str, context: ExtractionContext) -> int:
        added = 0
        for index, literal in enumerate(_OBJECT_LITERAL.findall(script)):
            data = self._parse(literal)
            if _looks_like_contest(data, OBJECT_NAME_KEYS):
                if self._admit(entry_from_object(data, index, OBJECT_NAME_KEYS), context):
                    added += 1
        return added

    @staticmethod
    def _parse(literal: str) -> Any:
        try:
            return json.loads(literal)
        except ValueError:
            return None

"""
Per-call extraction state shared by the history stages
"""

import logging
import re
from typing import List, Set

from .models import ContestHistoryEntry

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r'\s+')


def name_key(contest_name: str) -> str:
    """Lower-cased name with whitespace runs collapsed, for dedup."""
    return _WHITESPACE.sub('_', contest_name.strip().lower())


class ExtractionContext:
    """
    Running candidate list and dedup state for a single extraction call.

    The table extractor and the script miner both admit entries through the
    same context, so whichever stage sees a contest first keeps it. Admission
    checks the given keys only; the contest name of every admitted entry is
    recorded as well, for stages that dedup by name.
    """

    def __init__(self, username: str):
        self.username = username
        self.entries: List[ContestHistoryEntry] = []
        self.seen_keys: Set[str] = set()
        self.seen_names: Set[str] = set()

    def __len__(self) -> int:
        return len(self.entries)

    def has_key(self, *keys: str) -> bool:
        return any(key in self.seen_keys for key in keys)

    def has_name(self, contest_name: str) -> bool:
        return name_key(contest_name) in self.seen_names

    def admit(self, entry: ContestHistoryEntry, *keys: str) -> bool:
        """
        Add an entry unless one of its keys was already registered.

        Args:
            entry: Candidate entry
            *keys: Dedup keys; defaults to the entry's identity key

        Returns:
            bool: True if the entry was added
        """
        keys = keys or (entry.identity_key(),)
        if self.has_key(*keys):
            logger.debug(f"Duplicate contest skipped: {entry.contest_name}")
            return False
        self.seen_keys.update(keys)
        self.seen_names.add(name_key(entry.contest_name))
        self.entries.append(entry)
        return True

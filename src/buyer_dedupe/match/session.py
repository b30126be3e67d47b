"""
Duplicate detection session with caller-side ignore bookkeeping.

Holds one owner's buyer collection and the ids the user has dismissed as
"not a duplicate" for the lifetime of the session. Nothing is persisted.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import List, Optional

from .duplicate_matcher import DuplicateMatcher, _require_records
from .schemas import Confidence, DeduplicationResult

logger = logging.getLogger(__name__)


class DuplicateDetectionSession:
    """
    Checks candidate buyers against a collection, honouring ignored ids.
    """

    def __init__(self, existing_records: Iterable, matcher: Optional[DuplicateMatcher] = None):
        self.matcher = matcher or DuplicateMatcher()
        self.existing_records = _require_records(existing_records)
        self._ignored = {}
        self.last_result: Optional[DeduplicationResult] = None

    def update_existing(self, existing_records: Iterable):
        """Replace the collection, e.g. after a merge or a new buyer is saved."""
        self.existing_records = _require_records(existing_records)
        self.last_result = None

    def check(self, candidate: Optional[Mapping]) -> Optional[DeduplicationResult]:
        """
        Compare a candidate against the collection.

        Args:
            candidate: New or partial buyer record

        Returns:
            DeduplicationResult, or None if the candidate is None or there
            is no existing buyer to compare with. An empty candidate gets
            an empty result.
        """
        if candidate is None or not self.existing_records:
            self.last_result = None
            return None

        self.last_result = self.matcher.find_duplicates(
            candidate, self.existing_records, ignored_ids=self._ignored)
        return self.last_result

    def ignore(self, buyer_id: str):
        """Dismiss a buyer as a duplicate for the rest of the session."""
        self._ignored[buyer_id] = None
        logger.debug(f"Ignoring buyer {buyer_id} as duplicate")

    def reset_ignored(self):
        self._ignored.clear()

    @property
    def ignored_duplicates(self) -> List[str]:
        return list(self._ignored)

    @property
    def has_high_confidence_duplicates(self) -> bool:
        if self.last_result is None:
            return False
        return any(match.confidence == Confidence.HIGH for match in self.last_result.matches)

    @property
    def should_warn(self) -> bool:
        return self.last_result is not None and len(self.last_result.matches) > 0

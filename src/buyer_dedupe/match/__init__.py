"""
Matching engine for buyer deduplication.

Implements Levenshtein-based name similarity and weighted multi-field
scoring to detect, rank and group duplicate buyer records.
"""

from .clustering import count_duplicates, find_duplicate_groups, order_records
from .duplicate_matcher import (
    FIELD_WEIGHTS,
    DuplicateMatcher,
    check_duplicate,
    find_duplicates,
    get_match_statistics,
)
from .schemas import (
    Confidence,
    DeduplicationResult,
    DuplicateGroup,
    DuplicateMatch,
    classify_confidence,
)
from .session import DuplicateDetectionSession
from .similarity import calculate_string_similarity

__all__ = [
    "FIELD_WEIGHTS",
    "Confidence",
    "DeduplicationResult",
    "DuplicateDetectionSession",
    "DuplicateGroup",
    "DuplicateMatch",
    "DuplicateMatcher",
    "calculate_string_similarity",
    "check_duplicate",
    "classify_confidence",
    "count_duplicates",
    "find_duplicate_groups",
    "find_duplicates",
    "get_match_statistics",
    "order_records",
]

"""
buyer-dedupe - Buyer Deduplication and Merge Engine

Detects duplicate real-estate buyer records with weighted fuzzy matching
over contact fields and consolidates them under per-field merge choices.
"""

from .match import (
    Confidence,
    DeduplicationResult,
    DuplicateDetectionSession,
    DuplicateGroup,
    DuplicateMatch,
    calculate_string_similarity,
    check_duplicate,
    find_duplicate_groups,
    find_duplicates,
)
from .merge import MergeChoice, MergeConflictError, merge_buyer_data
from .normalize import normalize_email, normalize_name, normalize_phone

__version__ = "1.0.0"
__author__ = "buyer-dedupe Team"

__all__ = [
    "Confidence",
    "DeduplicationResult",
    "DuplicateDetectionSession",
    "DuplicateGroup",
    "DuplicateMatch",
    "MergeChoice",
    "MergeConflictError",
    "calculate_string_similarity",
    "check_duplicate",
    "find_duplicate_groups",
    "find_duplicates",
    "merge_buyer_data",
    "normalize_email",
    "normalize_name",
    "normalize_phone",
]

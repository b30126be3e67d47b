"""
Record merging for buyer deduplication.

Consolidates duplicate buyer records under per-field merge choices.
"""

from .merger import (
    MERGEABLE_FIELDS,
    PRIORITY_ORDER,
    BuyerMerger,
    MergeChoice,
    MergeConflictError,
    merge_buyer_data,
)

__all__ = [
    "MERGEABLE_FIELDS",
    "PRIORITY_ORDER",
    "BuyerMerger",
    "MergeChoice",
    "MergeConflictError",
    "merge_buyer_data",
]

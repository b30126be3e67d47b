"""
Batch duplicate grouping across a whole buyer collection.

Groups are formed pairwise against the first unclaimed record, so a
record only ever lands in one group. Similarity is not closed
transitively: A~B and B~C do not put A and C together unless the
record processed first matches both.
"""

import logging
from collections.abc import Iterable
from typing import Any, List, Optional
import pandas as pd

from .duplicate_matcher import DuplicateMatcher, _require_records
from .schemas import HIGH_CONFIDENCE_SCORE, Confidence, DuplicateGroup

logger = logging.getLogger(__name__)

RECORD_ORDERS = ("newest_first", "oldest_first", "input")


def _created_at(record) -> Any:
    """Parse created_at as a UTC timestamp, NaT when missing or unparseable."""
    return pd.to_datetime(record.get("created_at"), utc=True, errors="coerce")


def order_records(records: List[dict], order: str = "newest_first") -> List[dict]:
    """
    Order buyer records by creation time for batch processing.

    Records without a parseable created_at keep their input order and
    follow the dated ones.

    Args:
        records: Buyer records
        order: "newest_first", "oldest_first" or "input"

    Returns:
        New list in processing order
    """
    if order not in RECORD_ORDERS:
        raise ValueError(f"Unsupported record order: {order}")

    if order == "input":
        return list(records)

    dated = []
    undated = []
    for record in records:
        timestamp = _created_at(record)
        if pd.isna(timestamp):
            undated.append(record)
        else:
            dated.append((timestamp, record))

    dated.sort(key=lambda item: item[0], reverse=(order == "newest_first"))
    return [record for _, record in dated] + undated


def find_duplicate_groups(records: Iterable, order: str = "newest_first",
                          matcher: Optional[DuplicateMatcher] = None) -> List[DuplicateGroup]:
    """
    Partition likely duplicates in a buyer collection into groups.

    Each unclaimed record is compared with the remaining unclaimed records;
    high-confidence matches (score of 70 or more) form a group with it as
    primary, and every member is then claimed.

    Args:
        records: Buyer records, each with a unique "id"
        order: Processing order, see order_records
        matcher: Matcher to use (a default DuplicateMatcher if omitted)

    Returns:
        List of DuplicateGroup, in processing order of their primaries
    """
    records = _require_records(records, "records")
    matcher = matcher or DuplicateMatcher()

    seen_ids = set()
    for index, record in enumerate(records):
        buyer_id = record.get("id")
        if buyer_id is None:
            raise ValueError(f"records[{index}] has no id")
        if buyer_id in seen_ids:
            raise ValueError(f"Duplicate buyer id in collection: {buyer_id}")
        seen_ids.add(buyer_id)

    ordered = order_records(records, order)
    claimed = set()
    groups = []

    for buyer in ordered:
        if buyer["id"] in claimed:
            continue

        others = [other for other in ordered
                  if other["id"] != buyer["id"] and other["id"] not in claimed]
        result = matcher.find_duplicates(buyer, others)

        high_confidence_matches = [
            match for match in result.matches
            if match.confidence == Confidence.HIGH or match.match_score >= HIGH_CONFIDENCE_SCORE
        ]

        if high_confidence_matches:
            groups.append(DuplicateGroup(
                primary=buyer,
                duplicates=[match.buyer for match in high_confidence_matches],
                matches=high_confidence_matches,
            ))
            claimed.add(buyer["id"])
            claimed.update(match.buyer["id"] for match in high_confidence_matches)

    logger.info(f"Found {len(groups)} duplicate groups across {len(records)} buyers")
    return groups


def count_duplicates(groups: List[DuplicateGroup]) -> int:
    """Total number of duplicate (non-primary) records across groups."""
    return sum(len(group.duplicates) for group in groups)

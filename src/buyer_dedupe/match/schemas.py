"""
Result types produced by the duplicate matcher.

All of these are created fresh per matching call and are never persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

HIGH_CONFIDENCE_SCORE = 70
MEDIUM_CONFIDENCE_SCORE = 40


class Confidence(str, Enum):
    """Confidence bucket derived from a match score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def classify_confidence(match_score: int) -> Confidence:
    """Map a 0-100 match score to its confidence bucket."""
    if match_score >= HIGH_CONFIDENCE_SCORE:
        return Confidence.HIGH
    if match_score >= MEDIUM_CONFIDENCE_SCORE:
        return Confidence.MEDIUM
    return Confidence.LOW


@dataclass
class DuplicateMatch:
    """An existing buyer that scored as a likely duplicate of a candidate."""

    buyer: Dict[str, Any]
    match_score: int
    match_reasons: List[str]
    confidence: Confidence

    def to_dict(self) -> Dict[str, Any]:
        return {
            "buyer_id": self.buyer.get("id"),
            "match_score": self.match_score,
            "match_reasons": list(self.match_reasons),
            "confidence": self.confidence.value,
        }


@dataclass
class DeduplicationResult:
    """Outcome of comparing one candidate against a buyer collection."""

    is_duplicate: bool
    matches: List[DuplicateMatch] = field(default_factory=list)
    best_match: Optional[DuplicateMatch] = None


@dataclass
class DuplicateGroup:
    """A primary buyer and the records claimed as its duplicates."""

    primary: Dict[str, Any]
    duplicates: List[Dict[str, Any]]
    matches: List[DuplicateMatch] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.duplicates) + 1

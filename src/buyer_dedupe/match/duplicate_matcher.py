"""
Weighted duplicate matching for buyer records.

Implements the field-by-field scoring model used to decide whether a
new or edited buyer already exists in the owner's collection: exact
email/phone/location matches and fuzzy name/company matches, aggregated
into a 0-100 score over the fields both records actually carry.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from typing import Any, Dict, List, NamedTuple, Optional
import pandas as pd

from ..normalize.field_normalizer import normalize_record
from .schemas import (
    HIGH_CONFIDENCE_SCORE,
    Confidence,
    DeduplicationResult,
    DuplicateMatch,
    classify_confidence,
)
from .similarity import calculate_string_similarity

logger = logging.getLogger(__name__)

# Relative weights; only fields present on both sides enter the denominator
FIELD_WEIGHTS = {
    "email": 40,
    "phone": 35,
    "name": 20,
    "company_name": 15,
    "location": 10,
}

FUZZY_MATCH_THRESHOLD = 0.8
MIN_MATCH_SCORE = 30
MAX_MATCHES = 5


class FieldScore(NamedTuple):
    """Contribution of one participating field to a pair's score."""

    weight: float
    contribution: float
    reason: Optional[str]


def _round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (69.5 -> 70)."""
    return int(math.floor(value + 0.5))


def _require_mapping(value: Any, label: str) -> Mapping:
    """Raise TypeError unless value is a buyer record mapping."""
    if not isinstance(value, Mapping):
        raise TypeError(f"{label} must be a mapping of buyer fields, got {type(value).__name__}")
    return value


def _require_records(records: Any, label: str = "existing_records") -> List[Mapping]:
    """
    Materialize a collection of buyer records, checking each is a mapping.

    Args:
        records: Iterable of buyer records (a string or single mapping is rejected)
        label: Name used in error messages

    Returns:
        List of the records
    """
    if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
        raise TypeError(f"{label} must be an iterable of buyer records, got {type(records).__name__}")

    records = list(records)
    for index, record in enumerate(records):
        _require_mapping(record, f"{label}[{index}]")
    return records


class DuplicateMatcher:
    """
    Scores buyer records against each other with fixed field weights.

    Email and phone must match exactly after normalization, names and
    company names are compared with a Levenshtein similarity ratio and
    only count at 0.8 or above, and location requires the same city and
    state. Fields missing on either side do not participate.
    """

    def __init__(self):
        self.weights = dict(FIELD_WEIGHTS)
        self.fuzzy_threshold = FUZZY_MATCH_THRESHOLD

        logger.debug("Initialized DuplicateMatcher")

    def calculate_exact_match(self, field_name: str, value1: str, value2: str,
                              reason: str) -> Optional[FieldScore]:
        """
        Score a field that only counts on an exact match.

        Args:
            field_name: Key into the weight table
            value1: Normalized candidate value
            value2: Normalized existing value
            reason: Reason recorded when the values match

        Returns:
            FieldScore, or None if either value is empty
        """
        if not value1 or not value2:
            return None

        weight = self.weights[field_name]
        if value1 == value2:
            return FieldScore(weight, weight, reason)
        return FieldScore(weight, 0.0, None)

    def calculate_fuzzy_match(self, field_name: str, value1: str, value2: str,
                              label: str) -> Optional[FieldScore]:
        """
        Score a field by string similarity.

        A similarity at or above the threshold contributes
        weight * similarity; anything below contributes nothing.

        Args:
            field_name: Key into the weight table
            value1: Normalized candidate value
            value2: Normalized existing value
            label: Human-readable field label for the match reason

        Returns:
            FieldScore, or None if either value is empty
        """
        if not value1 or not value2:
            return None

        weight = self.weights[field_name]
        similarity = calculate_string_similarity(value1, value2)
        if similarity >= self.fuzzy_threshold:
            reason = f"{label} similarity: {_round_half_up(similarity * 100)}%"
            return FieldScore(weight, weight * similarity, reason)
        return FieldScore(weight, 0.0, None)

    def calculate_field_scores(self, norm1: Dict[str, str],
                               norm2: Dict[str, str]) -> Dict[str, FieldScore]:
        """
        Score every comparable field between two normalized records.

        Args:
            norm1: Normalized candidate fields (see normalize_record)
            norm2: Normalized existing fields

        Returns:
            Field scores keyed by field, in weight-table order, for the
            fields present on both sides
        """
        scores = {
            "email": self.calculate_exact_match(
                "email", norm1["email"], norm2["email"], "Exact email match"),
            "phone": self.calculate_exact_match(
                "phone", norm1["phone"], norm2["phone"], "Exact phone match"),
            "name": self.calculate_fuzzy_match(
                "name", norm1["name"], norm2["name"], "Name"),
            "company_name": self.calculate_fuzzy_match(
                "company_name", norm1["company_name"], norm2["company_name"], "Company"),
            "location": self.calculate_exact_match(
                "location", norm1["location"], norm2["location"], "Same location"),
        }
        return {field: score for field, score in scores.items() if score is not None}

    def _match_normalized(self, candidate_norm: Dict[str, str],
                          existing: Mapping) -> Optional[DuplicateMatch]:
        """Score an existing record against an already normalized candidate."""
        scores = self.calculate_field_scores(candidate_norm, normalize_record(existing))

        max_possible_score = sum(score.weight for score in scores.values())
        total_score = sum(score.contribution for score in scores.values())
        match_reasons = [score.reason for score in scores.values() if score.reason]

        if max_possible_score > 0:
            match_score = _round_half_up(100 * total_score / max_possible_score)
        else:
            match_score = 0

        if match_score < MIN_MATCH_SCORE or not match_reasons:
            return None

        return DuplicateMatch(
            buyer=existing,
            match_score=match_score,
            match_reasons=match_reasons,
            confidence=classify_confidence(match_score),
        )

    def check_duplicate(self, candidate: Mapping, existing: Mapping) -> Optional[DuplicateMatch]:
        """
        Check whether an existing buyer is a likely duplicate of a candidate.

        Args:
            candidate: New or partial buyer record
            existing: Stored buyer record

        Returns:
            DuplicateMatch, or None when the score is below 30 or no field matched
        """
        _require_mapping(candidate, "candidate")
        _require_mapping(existing, "existing")
        return self._match_normalized(normalize_record(candidate), existing)

    def find_duplicates(self, candidate: Mapping, existing_records: Iterable,
                        ignored_ids: Optional[Iterable[str]] = None) -> DeduplicationResult:
        """
        Find and rank likely duplicates of a candidate in a buyer collection.

        Matches are sorted by score, highest first, keeping input order for
        equal scores. Ignored ids are dropped after scoring so they never
        become the best match.

        Args:
            candidate: New or partial buyer record
            existing_records: Buyer records to compare against
            ignored_ids: Buyer ids the caller has dismissed as not duplicates

        Returns:
            DeduplicationResult with up to five matches
        """
        _require_mapping(candidate, "candidate")
        records = _require_records(existing_records)

        candidate_norm = normalize_record(candidate)
        matches = []
        for existing in records:
            match = self._match_normalized(candidate_norm, existing)
            if match:
                matches.append(match)

        matches = sorted(matches, key=lambda match: match.match_score, reverse=True)

        if ignored_ids:
            ignored = set(ignored_ids)
            matches = [match for match in matches if match.buyer.get("id") not in ignored]

        matches = matches[:MAX_MATCHES]
        best_match = matches[0] if matches else None
        is_duplicate = best_match is not None and best_match.match_score >= HIGH_CONFIDENCE_SCORE

        logger.debug(f"Compared candidate against {len(records)} buyers: "
                     f"{len(matches)} matches, duplicate={is_duplicate}")

        return DeduplicationResult(
            is_duplicate=is_duplicate,
            matches=matches,
            best_match=best_match,
        )


def get_match_statistics(matches: List[DuplicateMatch]) -> Dict[str, Any]:
    """
    Calculate summary statistics for a list of duplicate matches.

    Args:
        matches: Matches produced by the matcher

    Returns:
        Dictionary with score statistics and confidence distribution
    """
    if not matches:
        return {}

    scores = pd.Series([match.match_score for match in matches])
    confidences = pd.Series([match.confidence.value for match in matches])

    return {
        "match_count": len(matches),
        "mean_score": float(scores.mean()),
        "median_score": float(scores.median()),
        "min_score": int(scores.min()),
        "max_score": int(scores.max()),
        "confidence_distribution": {
            confidence.value: int((confidences == confidence.value).sum())
            for confidence in Confidence
        },
    }


_default_matcher = DuplicateMatcher()


def check_duplicate(candidate: Mapping, existing: Mapping) -> Optional[DuplicateMatch]:
    """Convenience wrapper around DuplicateMatcher.check_duplicate."""
    return _default_matcher.check_duplicate(candidate, existing)


def find_duplicates(candidate: Mapping, existing_records: Iterable,
                    ignored_ids: Optional[Iterable[str]] = None) -> DeduplicationResult:
    """Convenience wrapper around DuplicateMatcher.find_duplicates."""
    return _default_matcher.find_duplicates(candidate, existing_records, ignored_ids)

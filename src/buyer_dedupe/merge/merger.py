"""
Buyer record merger for buyer deduplication.

Consolidates a primary and a secondary buyer record, presumed duplicates,
into one record under field-by-field merge choices, with fixed rules for
priority, tags and timestamps.
"""

import copy
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import pandas as pd

logger = logging.getLogger(__name__)

# id and created_at are never taken from the secondary record
MERGEABLE_FIELDS = (
    "name", "email", "phone", "company_name", "city", "state", "zip_code",
    "budget_min", "budget_max", "location_focus", "asset_types", "markets",
    "property_type_interest", "notes", "acquisition_timeline", "financing_type",
    "investment_criteria", "portfolio_summary", "criteria_notes",
)

PRIORITY_ORDER = {"VERY HIGH": 4, "HIGH": 3, "MEDIUM": 2, "LOW": 1}

UNSUPPORTED_BOTH_POLICIES = ("error", "primary")


class MergeChoice(str, Enum):
    """Which record a mergeable field is taken from."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    BOTH = "both"


class MergeConflictError(ValueError):
    """Raised when two values cannot be combined under the "both" choice."""


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return pd.api.types.is_scalar(value) and bool(pd.isna(value))


def _dedupe(values: List[Any]) -> List[Any]:
    """Drop repeated values, keeping the first occurrence."""
    result = []
    for value in values:
        if value not in result:
            result.append(value)
    return result


def _priority_rank(priority: Any) -> int:
    if not isinstance(priority, str):
        return 0
    return PRIORITY_ORDER.get(priority.strip().upper(), 0)


class BuyerMerger:
    """
    Merges a secondary buyer record into a primary one.

    The primary record is the base; mergeable fields are resolved from the
    caller's choices, empty primary fields are filled from the secondary,
    priority keeps the higher rank, and tags are always unioned.
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize buyer merger with configuration.

        Args:
            config: Configuration dictionary with a "merge" section
        """
        self.config = config or {}
        self.merge_config = self.config.get("merge", {})
        self.unsupported_both = self.merge_config.get("unsupported_both", "error")

        if self.unsupported_both not in UNSUPPORTED_BOTH_POLICIES:
            raise ValueError(f"Unsupported merge.unsupported_both policy: {self.unsupported_both}")

        logger.debug(f"Initialized BuyerMerger (unsupported_both={self.unsupported_both})")

    def _parse_choices(self, merge_choices: Optional[Mapping]) -> Dict[str, MergeChoice]:
        if merge_choices is None:
            return {}
        if not isinstance(merge_choices, Mapping):
            raise TypeError(f"merge_choices must be a mapping, got {type(merge_choices).__name__}")

        choices = {}
        for field_name, choice in merge_choices.items():
            if field_name not in MERGEABLE_FIELDS:
                logger.warning(f"Ignoring merge choice for non-mergeable field: {field_name}")
                continue
            choices[field_name] = MergeChoice(choice)
        return choices

    def combine_values(self, field_name: str, primary_value: Any, secondary_value: Any) -> Any:
        """
        Combine both values of a field for the "both" choice.

        Lists are concatenated without repeats, text is joined with a blank
        line (primary first), and an empty side yields the other side.

        Args:
            field_name: Name of the field
            primary_value: Value from the primary record
            secondary_value: Value from the secondary record

        Returns:
            Combined value
        """
        if _is_empty(secondary_value):
            return primary_value
        if _is_empty(primary_value):
            return secondary_value

        if isinstance(primary_value, (list, tuple)) and isinstance(secondary_value, (list, tuple)):
            return _dedupe(list(primary_value) + list(secondary_value))

        if isinstance(primary_value, str) and isinstance(secondary_value, str):
            return f"{primary_value}\n\n{secondary_value}"

        message = (f"Cannot combine {field_name}: "
                   f"{type(primary_value).__name__} and {type(secondary_value).__name__}")
        if self.unsupported_both == "error":
            raise MergeConflictError(message)

        logger.warning(f"{message}; keeping primary value")
        return primary_value

    def resolve_field(self, field_name: str, primary_value: Any, secondary_value: Any,
                      choice: Optional[MergeChoice]) -> Any:
        """
        Resolve one mergeable field.

        Args:
            field_name: Name of the field
            primary_value: Value from the primary record
            secondary_value: Value from the secondary record
            choice: Caller's choice for the field, if any

        Returns:
            Resolved value
        """
        if choice is MergeChoice.SECONDARY:
            return primary_value if _is_empty(secondary_value) else secondary_value

        if choice is MergeChoice.BOTH:
            return self.combine_values(field_name, primary_value, secondary_value)

        if choice is None and _is_empty(primary_value) and not _is_empty(secondary_value):
            return secondary_value

        return primary_value

    def merge(self, primary: Mapping, secondary: Mapping,
              merge_choices: Optional[Mapping] = None,
              merged_at: Optional[Union[str, datetime]] = None) -> Dict[str, Any]:
        """
        Merge two buyer records.

        Args:
            primary: Record that is kept
            secondary: Duplicate being merged into the primary
            merge_choices: Field name -> "primary" | "secondary" | "both"
            merged_at: Merge timestamp (defaults to now, UTC)

        Returns:
            Merged record based on a copy of the primary
        """
        if not isinstance(primary, Mapping) or not isinstance(secondary, Mapping):
            raise TypeError("primary and secondary must be buyer record mappings")

        choices = self._parse_choices(merge_choices)
        primary = copy.deepcopy(dict(primary))
        secondary = copy.deepcopy(dict(secondary))
        merged = dict(primary)

        for field_name in MERGEABLE_FIELDS:
            resolved = self.resolve_field(
                field_name,
                primary.get(field_name),
                secondary.get(field_name),
                choices.get(field_name),
            )
            if field_name in primary or not _is_empty(resolved):
                merged[field_name] = resolved

        if _priority_rank(secondary.get("priority")) > _priority_rank(primary.get("priority")):
            merged["priority"] = secondary.get("priority")

        tag_lists = [tags for tags in (primary.get("tags"), secondary.get("tags"))
                     if isinstance(tags, (list, tuple))]
        if tag_lists:
            merged["tags"] = _dedupe([tag for tags in tag_lists for tag in tags])

        if merged_at is None:
            merged_at = datetime.now(timezone.utc)
        merged["updated_at"] = merged_at.isoformat() if isinstance(merged_at, datetime) else merged_at

        logger.info(f"Merged buyer {secondary.get('id')} into {primary.get('id')}")
        return merged


def merge_buyer_data(primary: Mapping, secondary: Mapping,
                     merge_choices: Optional[Mapping] = None,
                     merged_at: Optional[Union[str, datetime]] = None,
                     config: Optional[Dict] = None) -> Dict[str, Any]:
    """
    Convenience function to merge two buyer records.

    Args:
        primary: Record that is kept
        secondary: Duplicate being merged into the primary
        merge_choices: Field name -> "primary" | "secondary" | "both"
        merged_at: Merge timestamp (defaults to now, UTC)
        config: Configuration dictionary with a "merge" section

    Returns:
        Merged buyer record
    """
    merger = BuyerMerger(config)
    return merger.merge(primary, secondary, merge_choices, merged_at)

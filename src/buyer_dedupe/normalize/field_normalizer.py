"""
Field normalization for buyer deduplication.

Canonicalizes raw contact values (phone, email, name, location) so that
formatting differences do not hide duplicate buyer records.
"""

import numbers
import re
import logging
from typing import Any, Dict, Optional
import pandas as pd

logger = logging.getLogger(__name__)

NON_DIGIT_PATTERN = re.compile(r'[^\d]')
PUNCTUATION_PATTERN = re.compile(r'[^\w\s]')
WHITESPACE_PATTERN = re.compile(r'\s+')

# Columns derived by normalize_dataframe, keyed by source column
NORMALIZED_COLUMNS = {
    "email": "email_norm",
    "phone": "phone_norm",
    "name": "name_norm",
    "company_name": "company_name_norm",
}


def normalize_phone(phone: Any) -> str:
    """
    Strip every non-digit character from a phone number.

    No length or country-code handling is applied, so "+1 555 123 4567"
    and "555-123-4567" normalize to different strings. Whole numbers, as
    read from JSON or numeric CSV columns, are treated as their digits.

    Args:
        phone: Raw phone number

    Returns:
        Digits only, or an empty string for missing input

    Raises:
        TypeError: If phone is neither text, a whole number nor missing
    """
    if phone is None or isinstance(phone, str):
        return NON_DIGIT_PATTERN.sub('', phone or '')

    if phone is pd.NA or phone is pd.NaT:
        return ""

    if isinstance(phone, bool):
        raise TypeError("phone must be text or a whole number, got bool")

    if isinstance(phone, numbers.Integral):
        return str(abs(int(phone)))

    if isinstance(phone, numbers.Real):
        if pd.isna(phone):
            return ""
        if float(phone).is_integer():
            return str(abs(int(phone)))
        raise TypeError(f"phone must be a whole number, got {phone!r}")

    raise TypeError(f"phone must be text or a whole number, got {type(phone).__name__}")


def normalize_email(email: Optional[str]) -> str:
    """
    Normalize email address for comparison.

    Args:
        email: Raw email address

    Returns:
        Lowercased, trimmed email or an empty string for missing input
    """
    if not isinstance(email, str):
        return ""

    return email.lower().strip()


def normalize_name(name: Optional[str]) -> str:
    """
    Normalize a person or company name for fuzzy comparison.

    Lowercases, trims, drops anything that is not a word character or
    whitespace, then collapses whitespace runs to a single space.

    Args:
        name: Raw name

    Returns:
        Normalized name or an empty string for missing input
    """
    if not isinstance(name, str):
        return ""

    name = name.lower().strip()
    name = PUNCTUATION_PATTERN.sub('', name)
    return WHITESPACE_PATTERN.sub(' ', name)


def normalize_location(city: Optional[str], state: Optional[str]) -> str:
    """
    Build the combined "city state" key used for location matching.

    Both parts must be present; a city without a state (or the reverse)
    is not comparable and yields an empty key.
    """
    city_norm = normalize_name(city)
    state_norm = normalize_name(state)

    if not city_norm or not state_norm:
        return ""

    return f"{city_norm} {state_norm}"


def normalize_record(record: Dict[str, Any]) -> Dict[str, str]:
    """
    Normalize the comparable contact fields of a single buyer record.

    Args:
        record: Buyer record mapping

    Returns:
        Dictionary with normalized email, phone, name, company and location
    """
    return {
        "email": normalize_email(record.get("email")),
        "phone": normalize_phone(record.get("phone")),
        "name": normalize_name(record.get("name")),
        "company_name": normalize_name(record.get("company_name")),
        "location": normalize_location(record.get("city"), record.get("state")),
    }


def normalize_dataframe(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add normalized contact columns to a buyer DataFrame.

    Source columns that are absent are skipped. The location key is only
    derived when both city and state columns exist.

    Args:
        df: Input DataFrame with raw buyer columns

    Returns:
        Copy of the DataFrame with *_norm columns added
    """
    result_df = df.copy()

    normalizers = {
        "email": normalize_email,
        "phone": normalize_phone,
        "name": normalize_name,
        "company_name": normalize_name,
    }

    for column, norm_column in NORMALIZED_COLUMNS.items():
        if column in df.columns:
            result_df[norm_column] = df[column].apply(normalizers[column])

    if "city" in df.columns and "state" in df.columns:
        result_df["location_norm"] = [
            normalize_location(city, state)
            for city, state in zip(df["city"], df["state"])
        ]

    logger.info(f"Normalized contact fields for {len(result_df)} records")
    return result_df

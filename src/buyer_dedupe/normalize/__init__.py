"""
Data normalization modules for buyer deduplication.

Handles canonicalization of buyer contact fields including phone numbers,
emails, names, company names and locations to enable accurate matching.
"""

from .field_normalizer import (
    normalize_dataframe,
    normalize_email,
    normalize_location,
    normalize_name,
    normalize_phone,
    normalize_record,
)

__all__ = [
    "normalize_dataframe",
    "normalize_email",
    "normalize_location",
    "normalize_name",
    "normalize_phone",
    "normalize_record",
]

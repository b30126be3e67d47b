"""
String similarity scoring for buyer deduplication.

Edit-distance based similarity ratio used for fuzzy comparison of
person and company names.
"""

from Levenshtein import distance as levenshtein_distance


def calculate_string_similarity(str1: str, str2: str) -> float:
    """
    Calculate similarity between two strings from their Levenshtein distance.

    The ratio is relative to the longer string:
    (len(longer) - distance) / len(longer). Substitution, insertion and
    deletion each cost 1, so the result does not depend on argument order.

    Args:
        str1: First normalized string
        str2: Second normalized string

    Returns:
        Similarity in [0, 1]; 0 if either string is empty, 1 if identical
    """
    if not str1 or not str2:
        return 0.0

    if str1 == str2:
        return 1.0

    longer_length = max(len(str1), len(str2))
    edit_distance = levenshtein_distance(str1, str2)

    return (longer_length - edit_distance) / longer_length

"""Supplier Name Normalization and Similarity.

Supplier names come from scanned-document metadata and are typed in many
ways. For comparison every name is reduced to a key:
1. Convert to uppercase
2. Remove dots, whitespace and hyphens

Nothing else is touched. Apostrophes stay (TOD'S, DELL'ACQUA) and so do
accented letters.

Examples:
    "MI.TI"               → "MITI"
    "M.I.T.I"             → "MITI"
    "Salvatore Ferragamo" → "SALVATOREFERRAGAMO"
    "Tod's"               → "TOD'S"

Keys are compared with a classic edit distance (Levenshtein) turned into a
0-1 similarity score.
"""

import re
from typing import Optional

from supplier_resolver.models import MatchRule, MatchingConfig, DEFAULT_MATCHING_CONFIG


# Whitespace as JavaScript regexes define it, for use inside a character class.
# Unlike Python's \s it excludes \x1c-\x1f and \x85.
WHITESPACE_CHARS = r"\t\n\x0b\x0c\r \u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"

# Characters dropped from a supplier name before comparison
_NOISE_RE = re.compile(f"[.{WHITESPACE_CHARS}\\-]")


def normalize_supplier_name(name: Optional[str]) -> str:
    """Reduce a supplier name to its comparison key.

    Args:
        name: Raw supplier name (None is treated as empty)

    Returns:
        Uppercase key without dots, whitespace or hyphens

    Examples:
        >>> normalize_supplier_name("MI.TI")
        'MITI'
        >>> normalize_supplier_name("salvatore ferragamo")
        'SALVATOREFERRAGAMO'
    """
    if not name:
        return ""
    return _NOISE_RE.sub("", name.upper())


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character insertions, deletions and substitutions.

    Standard dynamic programming over a (len(a)+1) x (len(b)+1) table.
    """
    m, n = len(a), len(b)
    dp = [[0] * (n + 1) for _ in range(m + 1)]

    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            if a[i - 1] == b[j - 1]:
                dp[i][j] = dp[i - 1][j - 1]
            else:
                dp[i][j] = 1 + min(
                    dp[i - 1][j],      # deletion
                    dp[i][j - 1],      # insertion
                    dp[i - 1][j - 1],  # substitution
                )

    return dp[m][n]


def similarity(a: str, b: str) -> float:
    """Edit-distance similarity between two keys.

    Returns:
        (L - distance) / L with L the longer length; 1.0 for two empty keys

    Examples:
        >>> round(similarity("TANCERIA", "TRANCERIA"), 3)
        0.889
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(a, b)) / longest


def match_rule(
    key_a: str,
    key_b: str,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
) -> Optional[MatchRule]:
    """Decide whether two normalized keys name the same supplier.

    Rules are tried cheapest first and the first hit wins:
    - EXACT_NORMALIZED: keys are equal ("MI.TI" / "MITI")
    - SUBSTRING: one key contains the other and the shorter has at least
      `substring_min_length` characters ("FERRAGAMO" / "SALVATORE FERRAGAMO")
    - FUZZY: similarity >= `fuzzy_threshold` and the lengths differ by at most
      `max_length_difference` ("TANCERIA" / "TRANCERIA")

    Args:
        key_a: First normalized key
        key_b: Second normalized key
        config: Matching thresholds

    Returns:
        The matching rule, or None if the keys are different suppliers
    """
    if key_a == key_b:
        return MatchRule.EXACT_NORMALIZED

    if min(len(key_a), len(key_b)) >= config.substring_min_length:
        if key_a in key_b or key_b in key_a:
            return MatchRule.SUBSTRING

    if abs(len(key_a) - len(key_b)) <= config.max_length_difference:
        if similarity(key_a, key_b) >= config.fuzzy_threshold:
            return MatchRule.FUZZY

    return None


def is_likely_same_supplier(
    name1: str,
    name2: str,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
) -> bool:
    """Quick check if two raw supplier names likely refer to the same supplier."""
    return match_rule(normalize_supplier_name(name1), normalize_supplier_name(name2), config) is not None

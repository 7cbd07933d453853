"""
Supplier name normalization and similarity tests.

Covers the comparison key (uppercase, no dots/whitespace/hyphens), the
edit distance, the 0-1 similarity score, and the three match rules.
"""

import pytest

from supplier_resolver.models import MatchingConfig, MatchRule
from supplier_resolver.normalize import (
    is_likely_same_supplier,
    levenshtein_distance,
    match_rule,
    normalize_supplier_name,
    similarity,
)


class TestNormalizeSupplierName:
    """Test the comparison key."""

    def test_punctuation_variants_share_a_key(self):
        assert normalize_supplier_name("MI.TI") == "MITI"
        assert normalize_supplier_name("MITI") == "MITI"
        assert normalize_supplier_name("M.I.T.I") == "MITI"

    def test_case_insensitive(self):
        assert normalize_supplier_name("Salvatore Ferragamo") == normalize_supplier_name("SALVATORE FERRAGAMO")

    def test_removes_whitespace_and_hyphens(self):
        assert normalize_supplier_name(" PELLE - TECH\tSRL\n") == "PELLETECHSRL"

    def test_unicode_spaces_removed_control_separators_kept(self):
        assert normalize_supplier_name("MI\u00a0TI") == "MITI"
        assert normalize_supplier_name("MI\u2009TI\ufeff") == "MITI"
        assert normalize_supplier_name("MI\x1fTI") == "MI\x1fTI"

    def test_keeps_apostrophes_and_accents(self):
        assert normalize_supplier_name("tod's") == "TOD'S"
        assert normalize_supplier_name("Città Pelle") == "CITTÀPELLE"

    def test_keeps_other_punctuation(self):
        assert normalize_supplier_name("A&B (ITALIA)") == "A&B(ITALIA)"

    def test_empty_and_none(self):
        assert normalize_supplier_name("") == ""
        assert normalize_supplier_name(None) == ""

    @pytest.mark.parametrize("name", ["MI.TI", "Salvatore Ferragamo", "tod's", "  -. ", "Città-Pelle"])
    def test_idempotent(self, name):
        once = normalize_supplier_name(name)
        assert normalize_supplier_name(once) == once


class TestSimilarity:
    """Test edit distance and similarity."""

    def test_levenshtein_ground_truth(self):
        assert levenshtein_distance("TANCERIA", "TRANCERIA") == 1
        assert levenshtein_distance("KITTEN", "SITTING") == 3
        assert levenshtein_distance("", "ABC") == 3
        assert levenshtein_distance("ABC", "") == 3
        assert levenshtein_distance("SAME", "SAME") == 0

    def test_one_insertion_in_nine_letters(self):
        score = similarity(normalize_supplier_name("TANCERIA"), normalize_supplier_name("TRANCERIA"))
        assert score >= 0.85
        assert score == pytest.approx(8 / 9)

    def test_reflexive(self):
        for key in ["MITI", "SALVATOREFERRAGAMO", "X", ""]:
            assert similarity(key, key) == 1.0

    def test_symmetric(self):
        pairs = [("TANCERIA", "TRANCERIA"), ("ABC", "XYZW"), ("", "A"), ("PELLETECH", "PELTECH")]
        for a, b in pairs:
            assert similarity(a, b) == similarity(b, a)

    def test_both_empty(self):
        assert similarity("", "") == 1.0

    def test_completely_different(self):
        assert similarity("ABC", "XYZ") == 0.0


class TestMatchRule:
    """Test the three grouping rules."""

    def test_exact_normalized(self):
        assert match_rule("MITI", "MITI") == MatchRule.EXACT_NORMALIZED

    def test_substring(self):
        assert match_rule("FERRAGAMO", "SALVATOREFERRAGAMO") == MatchRule.SUBSTRING
        assert match_rule("SALVATOREFERRAGAMO", "FERRAGAMO") == MatchRule.SUBSTRING

    def test_short_substring_is_not_a_match(self):
        assert match_rule("AB", "ABC") is None

    def test_fuzzy(self):
        assert match_rule("TANCERIA", "TRANCERIA") == MatchRule.FUZZY

    def test_fuzzy_requires_close_lengths(self):
        a = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
        b = "ABCDEFGHIJKLM123NOPQRSTUVWXYZ"
        assert similarity(a, b) >= 0.85
        assert match_rule(a, b) is None

    def test_unrelated(self):
        assert match_rule("GUCCI", "PRADA") is None

    def test_config_changes_thresholds(self):
        strict = MatchingConfig(substring_min_length=10, fuzzy_threshold=0.95)
        assert match_rule("FERRAGAMO", "SALVATOREFERRAGAMO", strict) is None
        assert match_rule("TANCERIA", "TRANCERIA", strict) is None

        loose = MatchingConfig(substring_min_length=2)
        assert match_rule("AB", "ABC", loose) == MatchRule.SUBSTRING

    def test_is_likely_same_supplier(self):
        assert is_likely_same_supplier("M.I.T.I", "mi-ti")
        assert not is_likely_same_supplier("GUCCI", "PRADA")

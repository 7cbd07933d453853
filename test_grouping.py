"""
Supplier grouping tests.

Validates:
1. Exact-normalized, substring and fuzzy grouping
2. Canonical name = most documents, first seen on ties
3. Processed names never seed or join a second group
4. Ignored pairs are never grouped together
5. Output ordering and per-group document lists
"""

from datetime import date

import pytest

from documents.models import Document
from supplier_resolver.db import pair_key
from supplier_resolver.grouping import group_documents, group_suppliers, index_documents, supplier_stats
from supplier_resolver.models import DocumentRef, MatchingConfig, MatchRule


def make_documents(counts):
    """Build documents from [(supplier, count), ...] in order."""
    documents = []
    n = 0
    for supplier, count in counts:
        for _ in range(count):
            n += 1
            documents.append(Document(
                id=f"doc-{n:03d}",
                filename=f"{n:03d}.pdf",
                supplier=supplier,
                doc_number=str(n),
                date=date(2024, 1, 1 + n % 28),
            ))
    return documents


class TestGroupingRules:
    """Test the three rules end to end."""

    def test_exact_normalized_group(self):
        groups = group_documents(make_documents([("MI.TI", 2), ("MITI", 5), ("M.I.T.I", 1)]))

        assert len(groups) == 1
        group = groups[0]
        assert group.canonical == "MITI"
        assert set(group.variants) == {"MI.TI", "MITI", "M.I.T.I"}
        assert group.variants[0] == "MITI"
        assert group.total_documents == 8
        assert len(group.documents) == 8
        assert group.variant_counts == {"MI.TI": 2, "MITI": 5, "M.I.T.I": 1}
        assert group.match_rules["MITI"] == MatchRule.EXACT_NORMALIZED

    def test_substring_group(self):
        groups = group_documents(make_documents([("FERRAGAMO", 3), ("SALVATORE FERRAGAMO", 7)]))

        assert len(groups) == 1
        assert groups[0].canonical == "SALVATORE FERRAGAMO"
        assert groups[0].total_documents == 10
        assert groups[0].match_rules["SALVATORE FERRAGAMO"] == MatchRule.SUBSTRING

    def test_short_substring_not_grouped(self):
        groups = group_documents(make_documents([("AB", 1), ("ABC", 1)]))
        assert groups == []

    def test_fuzzy_group(self):
        groups = group_documents(make_documents([("TANCERIA", 1), ("TRANCERIA", 4)]))

        assert len(groups) == 1
        assert groups[0].canonical == "TRANCERIA"
        assert groups[0].match_rules["TRANCERIA"] == MatchRule.FUZZY

    def test_unrelated_names_not_grouped(self):
        groups = group_documents(make_documents([("GUCCI", 3), ("PRADA", 2), ("TOD'S", 1)]))
        assert groups == []

    def test_config_can_disable_substring_rule(self):
        documents = make_documents([("FERRAGAMO", 3), ("SALVATORE FERRAGAMO", 7)])
        config = MatchingConfig(substring_min_length=10)
        assert group_documents(documents, config=config) == []


class TestCanonicalSelection:
    """Test canonical tie-breaking and variant ordering."""

    def test_tie_goes_to_first_seen(self):
        groups = group_documents(make_documents([("MI.TI", 3), ("MITI", 3)]))
        assert groups[0].canonical == "MI.TI"
        assert groups[0].variants == ["MI.TI", "MITI"]

    def test_tie_with_later_absorbed_variants(self):
        groups = group_documents(make_documents([("M I T I", 1), ("MI.TI", 4), ("MITI", 4)]))
        assert groups[0].canonical == "MI.TI"
        assert groups[0].variants == ["MI.TI", "MITI", "M I T I"]

    def test_canonical_is_always_a_variant(self):
        groups = group_documents(make_documents([("MI.TI", 2), ("MITI", 5), ("FERRAGAMO", 3), ("SALVATORE FERRAGAMO", 7)]))
        for group in groups:
            assert group.canonical in group.variants
            assert group.variants[0] == group.canonical
            assert len(set(group.variants)) == len(group.variants)


class TestGroupingPass:
    """Test the single-pass bookkeeping."""

    def test_absorbed_name_does_not_seed_or_rejoin(self):
        # "FERRAGAMO" is absorbed by the first seed, so "FERRAGAMO SPA" finds no partner left
        groups = group_documents(make_documents([
            ("SALVATORE FERRAGAMO", 5),
            ("FERRAGAMO", 2),
            ("FERRAGAMO SPA", 1),
        ]))

        assert len(groups) == 1
        assert groups[0].variants == ["SALVATORE FERRAGAMO", "FERRAGAMO"]
        assert groups[0].total_documents == 7

    def test_each_name_in_at_most_one_group(self):
        groups = group_documents(make_documents([
            ("MITI", 2), ("MI.TI", 1), ("TANCERIA", 1), ("TRANCERIA", 1), ("M.I.T.I", 1), ("GUCCI", 1),
        ]))
        all_variants = [v for g in groups for v in g.variants]
        assert len(all_variants) == len(set(all_variants))
        assert len(groups) == 2

    def test_sorted_by_total_documents(self):
        groups = group_documents(make_documents([
            ("TANCERIA", 1), ("TRANCERIA", 1),
            ("MI.TI", 2), ("MITI", 5),
            ("FERRAGAMO", 3), ("SALVATORE FERRAGAMO", 7),
        ]))
        totals = [g.total_documents for g in groups]
        assert totals == [10, 7, 2]

    def test_group_documents_in_variant_order(self):
        groups = group_documents(make_documents([("MI.TI", 1), ("MITI", 2)]))
        suppliers = [ref.supplier for ref in groups[0].documents]
        assert suppliers == ["MI.TI", "MITI", "MITI"]

    def test_null_and_empty_names_skipped(self):
        groups = group_suppliers(
            names=[None, "", "MITI", None, "MI.TI", ""],
            doc_counts={"MITI": 2, "MI.TI": 1},
        )
        assert len(groups) == 1
        assert groups[0].canonical == "MITI"

    def test_documents_without_supplier_skipped(self):
        documents = make_documents([("", 3), ("MITI", 1), ("MI.TI", 1)])
        groups = group_documents(documents)
        assert len(groups) == 1
        assert groups[0].total_documents == 2

    def test_counts_default_to_document_lists(self):
        ref = DocumentRef(id="d1", date=date(2024, 1, 1), supplier="MITI")
        groups = group_suppliers(
            names=["MI.TI", "MITI"],
            docs_by_name={"MITI": [ref]},
        )
        assert groups[0].canonical == "MITI"
        assert groups[0].total_documents == 1

    def test_multiset_input(self):
        groups = group_suppliers(names=["MITI", "MITI", "MI.TI"], doc_counts={"MITI": 2, "MI.TI": 1})
        assert groups[0].variants == ["MITI", "MI.TI"]


class TestIgnoredPairs:
    """Test that ignored pairs suppress grouping."""

    def test_ignored_pair_not_grouped(self):
        documents = make_documents([("MI.TI", 2), ("MITI", 5)])
        ignored = {pair_key("MI.TI", "MITI")}
        assert group_documents(documents, ignored=ignored) == []

    def test_ignored_pair_is_symmetric(self):
        documents = make_documents([("MI.TI", 2), ("MITI", 5)])
        ignored = {pair_key("MITI", "MI.TI")}
        assert group_documents(documents, ignored=ignored) == []

    def test_third_variant_unaffected(self):
        documents = make_documents([("MI.TI", 2), ("MITI", 5), ("M.I.T.I", 1)])
        ignored = {pair_key("MI.TI", "MITI")}

        groups = group_documents(documents, ignored=ignored)

        assert len(groups) == 1
        assert set(groups[0].variants) == {"MI.TI", "M.I.T.I"}
        assert not groups[0].contains("MI.TI", "MITI")

    def test_other_groups_unaffected(self):
        documents = make_documents([("MI.TI", 2), ("MITI", 5), ("TANCERIA", 1), ("TRANCERIA", 2)])
        ignored = {pair_key("MI.TI", "MITI")}

        groups = group_documents(documents, ignored=ignored)

        assert [g.canonical for g in groups] == ["TRANCERIA"]


class TestIndexAndStats:
    """Test document indexing and supplier statistics."""

    def test_index_preserves_first_appearance(self):
        documents = make_documents([("B", 1), ("A", 1), ("B", 1)])
        assert list(index_documents(documents).keys()) == ["B", "A"]

    def test_supplier_stats(self):
        documents = [
            Document(id="1", filename="1.pdf", supplier="MITI", doc_number="1", date=date(2024, 3, 1)),
            Document(id="2", filename="2.pdf", supplier="MITI", doc_number="2", date=date(2024, 3, 20)),
            Document(id="3", filename="3.pdf", supplier="MITI", doc_number="3", date=date(2024, 1, 5)),
            Document(id="4", filename="4.pdf", supplier="GUCCI", doc_number="4", date=date(2024, 2, 5)),
            Document(id="5", filename="5.pdf", supplier="", doc_number="5", date=date(2024, 3, 5)),
        ]

        stats = supplier_stats(documents, today=date(2024, 3, 25))

        assert [s.name for s in stats] == ["MITI", "GUCCI"]
        miti = stats[0]
        assert miti.total_documents == 3
        assert miti.monthly_count == 2
        assert miti.latest_date == date(2024, 3, 20)
        assert stats[1].monthly_count == 0

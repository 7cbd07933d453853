"""
Ignored supplier pairs (exception store) tests.

Validates:
1. Pair keys are order-independent
2. Ignoring a group records every pair of its variants
3. The set survives reopening the database
4. A failed save raises PersistenceError but keeps the decision in memory
5. JSON export/import of the set
"""

import json
import os
import sqlite3
import tempfile
from unittest.mock import patch

import pytest

from core.errors import PersistenceError
from supplier_resolver.db import (
    ExceptionStore,
    IGNORED_PAIR_SEPARATOR,
    deserialize_pairs,
    pair_key,
    serialize_pairs,
    split_pair_key,
)
from supplier_resolver.models import DuplicateGroup


@pytest.fixture
def temp_db():
    """Create a temporary database."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield db_path
    os.unlink(db_path)


def make_group(*variants):
    return DuplicateGroup(canonical=variants[0], variants=list(variants), total_documents=len(variants))


class TestPairKeys:
    """Test the order-independent pair key."""

    def test_symmetric(self):
        assert pair_key("MITI", "MI.TI") == pair_key("MI.TI", "MITI")

    def test_format(self):
        assert pair_key("MITI", "MI.TI") == f"MI.TI{IGNORED_PAIR_SEPARATOR}MITI"

    def test_ordered_by_utf16_code_units(self):
        # U+1F600 is a surrogate pair (0xD83D ...), which sorts before U+FF21
        assert pair_key("\uff21", "\U0001F600") == f"\U0001F600{IGNORED_PAIR_SEPARATOR}\uff21"
        assert pair_key("\U0001F600", "\uff21") == pair_key("\uff21", "\U0001F600")

    def test_split_round_trip(self):
        assert split_pair_key(pair_key("B", "A")) == ("A", "B")

    def test_split_rejects_malformed(self):
        with pytest.raises(ValueError):
            split_pair_key("NO SEPARATOR")
        with pytest.raises(ValueError):
            split_pair_key(f"A{IGNORED_PAIR_SEPARATOR}B{IGNORED_PAIR_SEPARATOR}C")


class TestSerialization:
    """Test the JSON array format."""

    def test_serialize_sorted_and_deduplicated(self):
        keys = [pair_key("B", "C"), pair_key("A", "B"), pair_key("C", "B")]
        assert json.loads(serialize_pairs(keys)) == ["A|||B", "B|||C"]

    def test_serialize_keeps_accents(self):
        text = serialize_pairs([pair_key("CITTÀ", "CITTA")])
        assert "CITTÀ" in text

    def test_deserialize(self):
        assert deserialize_pairs('["A|||B", "C|||D"]') == {"A|||B", "C|||D"}

    def test_deserialize_rejects_non_array(self):
        with pytest.raises(ValueError):
            deserialize_pairs('{"A": "B"}')

    def test_deserialize_rejects_bad_items(self):
        with pytest.raises(ValueError):
            deserialize_pairs("[1, 2]")
        with pytest.raises(ValueError):
            deserialize_pairs('["no separator"]')


class TestExceptionStore:
    """Test the durable ignored-pairs set."""

    def test_starts_empty(self, temp_db):
        store = ExceptionStore(temp_db)
        assert len(store) == 0
        assert not store.is_ignored("MITI", "MI.TI")

    def test_ignore_pair_symmetric(self, temp_db):
        store = ExceptionStore(temp_db)
        store.ignore_pair("MITI", "MI.TI")

        assert store.is_ignored("MITI", "MI.TI")
        assert store.is_ignored("MI.TI", "MITI")
        assert pair_key("MITI", "MI.TI") in store

    def test_ignore_group_records_every_pair(self, temp_db):
        store = ExceptionStore(temp_db)

        added = store.ignore_group(make_group("MITI", "MI.TI", "M.I.T.I"))

        assert added == 3
        assert store.is_ignored("MITI", "MI.TI")
        assert store.is_ignored("MITI", "M.I.T.I")
        assert store.is_ignored("MI.TI", "M.I.T.I")
        assert store.pairs() == [("M.I.T.I", "MI.TI"), ("M.I.T.I", "MITI"), ("MI.TI", "MITI")]

    def test_ignore_group_accepts_names(self, temp_db):
        store = ExceptionStore(temp_db)
        assert store.ignore_group(["FERRAGAMO", "SALVATORE FERRAGAMO"]) == 1

    def test_ignore_group_twice_adds_nothing(self, temp_db):
        store = ExceptionStore(temp_db)
        store.ignore_group(make_group("MITI", "MI.TI"))
        assert store.ignore_group(make_group("MI.TI", "MITI")) == 0
        assert len(store) == 1

    def test_separator_in_name_rejected(self, temp_db):
        store = ExceptionStore(temp_db)
        store.ignore_pair("MITI", "MI.TI")

        with pytest.raises(ValueError):
            store.ignore_pair("A|||B", "C")
        with pytest.raises(ValueError):
            store.ignore_group(make_group("GUCCI", "GUC|||CI", "GUCCI SPA"))

        assert len(store) == 1
        assert len(ExceptionStore(temp_db)) == 1

    def test_persists_across_reopen(self, temp_db):
        store = ExceptionStore(temp_db)
        store.ignore_group(make_group("MITI", "MI.TI", "M.I.T.I"))

        reopened = ExceptionStore(temp_db)

        assert reopened.keys == store.keys
        assert reopened.is_ignored("M.I.T.I", "MITI")

    def test_namespaces_are_separate(self, temp_db):
        alice = ExceptionStore(temp_db, namespace="alice")
        bob = ExceptionStore(temp_db, namespace="bob")

        alice.ignore_pair("MITI", "MI.TI")

        assert not bob.is_ignored("MITI", "MI.TI")
        assert ExceptionStore(temp_db, namespace="alice").is_ignored("MITI", "MI.TI")

    def test_clear(self, temp_db):
        store = ExceptionStore(temp_db)
        store.ignore_group(make_group("MITI", "MI.TI"))

        store.clear()

        assert len(store) == 0
        assert len(ExceptionStore(temp_db)) == 0

    def test_failed_save_keeps_decision_in_memory(self, temp_db):
        store = ExceptionStore(temp_db)

        with patch(
            "supplier_resolver.db.sqlite3.connect",
            side_effect=sqlite3.OperationalError("disk I/O error"),
        ):
            with pytest.raises(PersistenceError):
                store.ignore_group(make_group("MITI", "MI.TI"))

        # Still in effect for this session, but never written
        assert store.is_ignored("MITI", "MI.TI")
        assert len(ExceptionStore(temp_db)) == 0

    def test_failed_load_raises(self, temp_db):
        with patch(
            "supplier_resolver.db.sqlite3.connect",
            side_effect=sqlite3.OperationalError("unable to open database file"),
        ):
            with pytest.raises(PersistenceError):
                ExceptionStore(temp_db)

    def test_export_import(self, temp_db):
        store = ExceptionStore(temp_db, namespace="source")
        store.ignore_group(make_group("MITI", "MI.TI", "M.I.T.I"))

        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "ignored.json")
            assert store.export_json(path) == 3

            target = ExceptionStore(temp_db, namespace="target")
            target.ignore_pair("GUCCI", "GUCCI SPA")
            assert target.import_json(path) == 4

            assert target.import_json(path, replace=True) == 3
            assert not target.is_ignored("GUCCI", "GUCCI SPA")
            assert target.keys == store.keys

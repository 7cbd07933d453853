"""Ignored Supplier Pairs - the exception store.

When a user looks at a proposed duplicate group and says "these are
different suppliers", every pair of spellings in that group is recorded
here so the grouping engine never proposes them together again.

A pair is stored as a single key: the two raw names sorted by UTF-16 code
units (the order JavaScript sorts strings in) and joined with
IGNORED_PAIR_SEPARATOR, so ignoring (A, B) and (B, A) is the same thing.

The set is loaded once when an ExceptionStore is created and written back
synchronously after every change. Several sessions sharing one database
follow last-write-wins: each save replaces the stored set for the namespace.
"""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Set, Tuple, Union

from core.config import DEFAULT_DB_PATH
from core.errors import PersistenceError
from core.observability.logging import get_logger
from supplier_resolver.models import DuplicateGroup


logger = get_logger(__name__)

PathLike = Union[str, Path]

# Names containing the separator cannot be ignored (see ignore_pair)
IGNORED_PAIR_SEPARATOR = "|||"


# =============================================================================
# Pair Keys
# =============================================================================

def pair_key(name1: str, name2: str) -> str:
    """Build the order-independent key for two supplier names.

    Examples:
        >>> pair_key("MITI", "MI.TI")
        'MI.TI|||MITI'
    """
    first, second = sorted((name1, name2), key=_utf16_order)
    return f"{first}{IGNORED_PAIR_SEPARATOR}{second}"


def _utf16_order(name: str) -> bytes:
    return name.encode("utf-16-be", "surrogatepass")


def _check_pairable(*names: str) -> None:
    for name in names:
        if IGNORED_PAIR_SEPARATOR in name:
            raise ValueError(
                f"Supplier name cannot contain {IGNORED_PAIR_SEPARATOR!r}: {name!r}"
            )


def split_pair_key(key: str) -> Tuple[str, str]:
    """Split a pair key back into its two names.

    Raises:
        ValueError: If the key does not hold exactly two names
    """
    parts = key.split(IGNORED_PAIR_SEPARATOR)
    if len(parts) != 2:
        raise ValueError(f"Malformed ignored pair key: {key!r}")
    return parts[0], parts[1]


def serialize_pairs(keys: Iterable[str]) -> str:
    """Serialize pair keys to a JSON array (sorted, without duplicates)."""
    return json.dumps(sorted(set(keys)), ensure_ascii=False)


def deserialize_pairs(text: str) -> Set[str]:
    """Parse a JSON array of pair keys.

    Raises:
        ValueError: If the text is not a JSON array of valid pair keys
    """
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("Ignored pairs must be a JSON array")

    keys = set()
    for item in data:
        if not isinstance(item, str):
            raise ValueError(f"Ignored pair must be a string, got {type(item).__name__}")
        split_pair_key(item)
        keys.add(item)
    return keys


# =============================================================================
# Database
# =============================================================================

def init_exception_db(db_path: PathLike = DEFAULT_DB_PATH) -> None:
    """Initialize the ignored-pairs table.

    Creates:
    - ignored_supplier_pairs: One row per ignored pair key per namespace

    Args:
        db_path: Path to SQLite database file
    """
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS ignored_supplier_pairs (
                namespace TEXT NOT NULL,
                pair_key TEXT NOT NULL,
                created_at TEXT NOT NULL,
                PRIMARY KEY (namespace, pair_key)
            )
        """)
        conn.commit()
    finally:
        conn.close()


class ExceptionStore:
    """Durable set of supplier pairs the user declared "not duplicates".

    Example:
        store = ExceptionStore(db_path="coredocument.db")

        store.ignore_group(group)
        store.is_ignored("MI.TI", "MITI")  # True, also after a restart
    """

    def __init__(self, db_path: PathLike = DEFAULT_DB_PATH, namespace: str = "default"):
        """Open the store and load the current set.

        Args:
            db_path: Path to SQLite database
            namespace: Scope of the set (one per user or workspace)

        Raises:
            PersistenceError: If the stored set cannot be read
        """
        self.db_path = db_path
        self.namespace = namespace
        self._keys: Set[str] = self.load()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load(self) -> Set[str]:
        """Read the stored set of pair keys for this namespace."""
        try:
            init_exception_db(self.db_path)
            conn = sqlite3.connect(self.db_path)
            try:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT pair_key FROM ignored_supplier_pairs WHERE namespace = ?",
                    (self.namespace,),
                )
                keys = {row[0] for row in cursor.fetchall()}
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not load ignored supplier pairs: {e}") from e

        logger.debug(f"Loaded {len(keys)} ignored supplier pairs", extra_fields={"namespace": self.namespace})
        return keys

    def save(self, keys: Iterable[str]) -> None:
        """Replace the stored set with `keys`.

        The in-memory set is updated first, so it stays in effect for this
        session even when writing fails.

        Raises:
            PersistenceError: If the set cannot be written
        """
        self._keys = set(keys)
        now = datetime.utcnow().isoformat()

        try:
            init_exception_db(self.db_path)
            conn = sqlite3.connect(self.db_path)
            try:
                cursor = conn.cursor()
                cursor.execute(
                    "DELETE FROM ignored_supplier_pairs WHERE namespace = ?",
                    (self.namespace,),
                )
                cursor.executemany(
                    "INSERT INTO ignored_supplier_pairs (namespace, pair_key, created_at) VALUES (?, ?, ?)",
                    [(self.namespace, key, now) for key in sorted(self._keys)],
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(
                f"Could not save ignored supplier pairs: {e}",
                extra_fields={"namespace": self.namespace, "pairs": len(self._keys)},
            )
            raise PersistenceError(f"Could not save ignored supplier pairs: {e}") from e

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def keys(self) -> frozenset:
        return frozenset(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def is_ignored(self, name1: str, name2: str) -> bool:
        """Check whether two supplier names were declared different suppliers."""
        return pair_key(name1, name2) in self._keys

    def pairs(self) -> List[Tuple[str, str]]:
        """All ignored pairs as sorted (name1, name2) tuples."""
        return [split_pair_key(key) for key in sorted(self._keys)]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def ignore_pair(self, name1: str, name2: str) -> None:
        """Declare two supplier names different suppliers.

        Raises:
            ValueError: If a name contains IGNORED_PAIR_SEPARATOR
        """
        _check_pairable(name1, name2)
        self.save(self._keys | {pair_key(name1, name2)})

    def ignore_group(self, group: Union[DuplicateGroup, Iterable[str]]) -> int:
        """Declare every pair of variants in a group different suppliers.

        Args:
            group: A DuplicateGroup, or any iterable of supplier names

        Returns:
            Number of pairs newly ignored

        Raises:
            ValueError: If a variant contains IGNORED_PAIR_SEPARATOR (nothing is stored)
        """
        variants = list(group.variants if isinstance(group, DuplicateGroup) else group)
        _check_pairable(*variants)

        new_keys = set()
        for i in range(len(variants)):
            for j in range(i + 1, len(variants)):
                new_keys.add(pair_key(variants[i], variants[j]))

        added = len(new_keys - self._keys)
        self.save(self._keys | new_keys)

        logger.info(
            f"Ignored {added} supplier pairs",
            extra_fields={"variants": len(variants), "namespace": self.namespace},
        )
        return added

    def clear(self) -> None:
        """Forget every ignored pair."""
        self.save(set())
        logger.info("Cleared ignored supplier pairs", extra_fields={"namespace": self.namespace})

    # -------------------------------------------------------------------------
    # Import / Export
    # -------------------------------------------------------------------------

    def export_json(self, path: PathLike) -> int:
        """Write the ignored pairs to a JSON file.

        Returns:
            Number of pairs written
        """
        Path(path).write_text(serialize_pairs(self._keys), encoding="utf-8")
        return len(self._keys)

    def import_json(self, path: PathLike, replace: bool = False) -> int:
        """Load ignored pairs from a JSON file written by export_json.

        Args:
            path: JSON file
            replace: Replace the current set instead of adding to it

        Returns:
            Number of pairs in the store afterwards
        """
        keys = deserialize_pairs(Path(path).read_text(encoding="utf-8"))
        self.save(keys if replace else self._keys | keys)
        return len(self._keys)

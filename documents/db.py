"""Document Store Database Operations.

This module handles the SQLite-backed document store:
- Schema initialization
- CRUD helpers for document records
- Sample data seeding
- SQLiteDocumentRepository, the DocumentRepository over those helpers

The async repository methods run the blocking sqlite calls in a worker
thread so callers can bound each call with a timeout.
"""

import asyncio
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from core.config import DEFAULT_DB_PATH
from core.errors import DocumentNotFoundError, InvalidDocumentError, StorageFailureError
from core.observability.logging import get_logger
from documents.base import DocumentRepository
from documents.models import Document, DocumentFilter


logger = get_logger(__name__)

PathLike = Union[str, Path]

# How long a writer waits for the SQLite write lock
WRITE_LOCK_TIMEOUT_SECONDS = 5.0


def init_documents_db(db_path: PathLike = DEFAULT_DB_PATH) -> None:
    """Initialize document store tables.

    Creates:
    - documents: One row per scanned document

    Args:
        db_path: Path to SQLite database file
    """
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                id TEXT PRIMARY KEY,
                filename TEXT NOT NULL,
                supplier TEXT NOT NULL DEFAULT '',
                doc_number TEXT NOT NULL DEFAULT '',
                date TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_supplier
            ON documents(supplier)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_date
            ON documents(date)
        """)

        conn.commit()
        logger.debug("Document tables initialized", extra_fields={"db_path": str(db_path)})

    finally:
        conn.close()


# =============================================================================
# CRUD Operations
# =============================================================================

def add_document(document: Document, db_path: PathLike = DEFAULT_DB_PATH) -> Document:
    """Insert or replace a document row.

    Args:
        document: Document to store
        db_path: Path to database

    Returns:
        The stored Document
    """
    now = datetime.utcnow().isoformat()

    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT OR REPLACE INTO documents
            (id, filename, supplier, doc_number, date, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            document.id,
            document.filename,
            document.supplier,
            document.doc_number,
            document.date.isoformat(),
            now,
            now,
        ))
        conn.commit()
        return document
    finally:
        conn.close()


def get_document(document_id: str, db_path: PathLike = DEFAULT_DB_PATH) -> Optional[Document]:
    """Look up a single document by id.

    Returns:
        Document if found, None otherwise
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM documents WHERE id = ?", (document_id,))
        row = cursor.fetchone()
        if row:
            return _row_to_document(row)
        return None
    finally:
        conn.close()


def list_documents(
    filter: Optional[DocumentFilter] = None,
    db_path: PathLike = DEFAULT_DB_PATH,
) -> List[Document]:
    """List documents in insertion order.

    Rows that fail validation are logged and skipped.

    Args:
        filter: Optional listing filter
        db_path: Path to database

    Returns:
        List of Document objects
    """
    clauses = []
    params: list = []
    if filter is not None:
        if filter.supplier:
            clauses.append("LOWER(supplier) LIKE ?")
            params.append(f"%{filter.supplier.lower()}%")
        if filter.doc_number:
            clauses.append("LOWER(doc_number) LIKE ?")
            params.append(f"%{filter.doc_number.lower()}%")
        if filter.year is not None:
            clauses.append("substr(date, 1, 4) = ?")
            params.append(f"{filter.year:04d}")
        if filter.month is not None:
            clauses.append("substr(date, 6, 2) = ?")
            params.append(f"{filter.month:02d}")

    query = "SELECT * FROM documents"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += " ORDER BY rowid"

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        cursor = conn.cursor()
        cursor.execute(query, params)

        documents = []
        for row in cursor.fetchall():
            try:
                documents.append(_row_to_document(row))
            except InvalidDocumentError as e:
                logger.warning(f"Skipping malformed document row: {e}", extra_fields={"document_id": row["id"]})
        return documents
    finally:
        conn.close()


class WriteGuard:
    """Decides, exactly once, whether a write commits or is abandoned.

    The worker thread commits through `commit()`; the caller that stops
    waiting calls `abandon()`. Both take the same lock, so either the commit
    happened (abandon() returns False) or it never will (abandon() returns
    True and the worker rolls back).
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state = "open"

    @property
    def abandoned(self) -> bool:
        return self._state == "abandoned"

    def abandon(self) -> bool:
        """Stop the write from landing.

        Returns:
            True if the write will not be committed, False if it already was
        """
        with self._lock:
            if self._state == "committed":
                return False
            self._state = "abandoned"
            return True

    def commit(self, conn: sqlite3.Connection) -> None:
        """Commit `conn` unless the write was abandoned.

        Raises:
            sqlite3.OperationalError: If the write was abandoned (rolled back)
        """
        with self._lock:
            if self._state == "abandoned":
                conn.rollback()
                raise sqlite3.OperationalError("write abandoned after timeout")
            conn.commit()
            self._state = "committed"


def _connect_for_write(db_path: PathLike, guard: Optional[WriteGuard]) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, timeout=WRITE_LOCK_TIMEOUT_SECONDS)
    if guard is not None:
        # Interrupt long statements once the caller gave up
        conn.set_progress_handler(lambda: 1 if guard.abandoned else 0, 1000)
    return conn


def _commit(conn: sqlite3.Connection, guard: Optional[WriteGuard]) -> None:
    if guard is None:
        conn.commit()
    else:
        guard.commit(conn)


def update_document_field(
    document_id: str,
    field: str,
    value: str,
    db_path: PathLike = DEFAULT_DB_PATH,
    guard: Optional[WriteGuard] = None,
) -> Document:
    """Update one text field of a document.

    Args:
        document_id: Document to update
        field: Column name ("supplier" or "filename")
        value: New value
        db_path: Path to database
        guard: Commit only if the caller has not abandoned the write

    Returns:
        The updated Document

    Raises:
        DocumentNotFoundError: If no row has this id
        sqlite3.OperationalError: If the write was abandoned
    """
    if field not in ("supplier", "filename"):
        raise ValueError(f"Field cannot be updated: {field}")

    now = datetime.utcnow().isoformat()

    conn = _connect_for_write(db_path, guard)
    conn.row_factory = sqlite3.Row
    try:
        cursor = conn.cursor()
        cursor.execute(
            f"UPDATE documents SET {field} = ?, updated_at = ? WHERE id = ?",
            (value, now, document_id),
        )
        if cursor.rowcount == 0:
            conn.rollback()
            raise DocumentNotFoundError(f"Document not found: {document_id}", document_id=document_id)
        _commit(conn, guard)

        cursor.execute("SELECT * FROM documents WHERE id = ?", (document_id,))
        return _row_to_document(cursor.fetchone())
    finally:
        conn.close()


def delete_document(
    document_id: str,
    db_path: PathLike = DEFAULT_DB_PATH,
    guard: Optional[WriteGuard] = None,
) -> bool:
    """Delete a document by id.

    Returns:
        True if deleted, False if not found
    """
    conn = _connect_for_write(db_path, guard)
    try:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM documents WHERE id = ?", (document_id,))
        if cursor.rowcount == 0:
            conn.rollback()
            return False
        _commit(conn, guard)
        return True
    finally:
        conn.close()


def _row_to_document(row: sqlite3.Row) -> Document:
    """Convert a database row to Document."""
    return Document.from_record({
        "id": row["id"],
        "filename": row["filename"],
        "supplier": row["supplier"],
        "doc_number": row["doc_number"],
        "date": row["date"],
    })


# =============================================================================
# Repository
# =============================================================================

class SQLiteDocumentRepository(DocumentRepository):
    """DocumentRepository over the SQLite `documents` table.

    Example:
        repository = SQLiteDocumentRepository("coredocument.db")
        documents = await repository.list_all()
    """

    def __init__(self, db_path: PathLike = DEFAULT_DB_PATH, initialize: bool = True):
        """Initialize the repository.

        Args:
            db_path: Path to SQLite database
            initialize: Create tables if they do not exist
        """
        self.db_path = db_path
        if initialize:
            init_documents_db(db_path)

    async def list_all(self, filter: Optional[DocumentFilter] = None) -> List[Document]:
        try:
            return await asyncio.to_thread(list_documents, filter, self.db_path)
        except sqlite3.Error as e:
            raise StorageFailureError(f"Listing documents failed: {e}") from e

    async def update_supplier(self, document_id: str, supplier: str) -> Document:
        return await self._update(document_id, "supplier", supplier)

    async def update_filename(self, document_id: str, filename: str) -> Document:
        return await self._update(document_id, "filename", filename)

    async def delete(self, document_id: str) -> None:
        try:
            deleted = await self._write(delete_document, document_id, self.db_path)
        except sqlite3.Error as e:
            raise StorageFailureError(f"Delete failed: {e}", document_id=document_id) from e
        if not deleted:
            raise DocumentNotFoundError(f"Document not found: {document_id}", document_id=document_id)

    async def _update(self, document_id: str, field: str, value: str) -> Document:
        try:
            return await self._write(update_document_field, document_id, field, value, self.db_path)
        except sqlite3.Error as e:
            raise StorageFailureError(f"Update of {field} failed: {e}", document_id=document_id) from e

    async def _write(self, func, *args):
        """Run a write helper in a worker thread under a WriteGuard.

        If the caller is cancelled (e.g. by a timeout) before the write
        commits, the write is abandoned and rolled back. If it already
        committed, the cancellation is absorbed and the result returned,
        so the caller never reports a landed write as failed.
        """
        guard = WriteGuard()
        task = asyncio.ensure_future(asyncio.to_thread(func, *args, guard=guard))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if guard.abandon():
                task.add_done_callback(_discard_result)
                raise
            return await task


def _discard_result(task: "asyncio.Future") -> None:
    if not task.cancelled():
        task.exception()


# =============================================================================
# Sample Data Seeding
# =============================================================================

SAMPLE_DOCUMENTS = [
    # MITI written three ways
    ("doc-001", "2024-01-15_MITI_1001.pdf", "MITI", "1001", "2024-01-15"),
    ("doc-002", "2024-01-22_MITI_1002.pdf", "MITI", "1002", "2024-01-22"),
    ("doc-003", "2024-02-03_MITI_1003.pdf", "MITI", "1003", "2024-02-03"),
    ("doc-004", "2024-02-10_MI.TI_1004.pdf", "MI.TI", "1004", "2024-02-10"),
    ("doc-005", "2024-03-01_M.I.T.I_1005.pdf", "M.I.T.I", "1005", "2024-03-01"),
    # Brand with and without first name
    ("doc-006", "2024-01-09_SALVATORE FERRAGAMO_A12.pdf", "SALVATORE FERRAGAMO", "A12", "2024-01-09"),
    ("doc-007", "2024-02-14_SALVATORE FERRAGAMO_A13.pdf", "SALVATORE FERRAGAMO", "A13", "2024-02-14"),
    ("doc-008", "2024-03-18_FERRAGAMO_A14.pdf", "FERRAGAMO", "A14", "2024-03-18"),
    # Typo
    ("doc-009", "2024-01-30_TRANCERIA_77.pdf", "TRANCERIA", "77", "2024-01-30"),
    ("doc-010", "2024-02-28_TANCERIA_78.pdf", "TANCERIA", "78", "2024-02-28"),
    # Apostrophe is legitimate
    ("doc-011", "2024-03-05_TOD'S_9001.pdf", "TOD'S", "9001", "2024-03-05"),
    # Anomalies
    ("doc-012", "2024-03-07_ABC  SUPPLIER_55.pdf", "ABC  SUPPLIER", "55", "2024-03-07"),
    ("doc-013", "2024-03-08_LEADING SPACE_56.pdf", " LEADING SPACE", "56", "2024-03-08"),
    ("doc-014", "2024-03-09_PELLAMI#_57.pdf", "PELLAMI#", "57", "2024-03-09"),
]


def seed_sample_documents(db_path: PathLike = DEFAULT_DB_PATH) -> dict:
    """Seed the database with sample documents.

    Args:
        db_path: Path to database

    Returns:
        Dict with count of created documents
    """
    init_documents_db(db_path)

    now = datetime.utcnow().isoformat()
    conn = sqlite3.connect(db_path)

    created = {"documents": 0}

    try:
        cursor = conn.cursor()

        for doc_id, filename, supplier, doc_number, doc_date in SAMPLE_DOCUMENTS:
            try:
                cursor.execute("""
                    INSERT INTO documents
                    (id, filename, supplier, doc_number, date, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (doc_id, filename, supplier, doc_number, doc_date, now, now))
                created["documents"] += 1
            except sqlite3.IntegrityError:
                pass  # Already exists

        conn.commit()
        logger.info(f"Seeded {created['documents']} sample documents")

    finally:
        conn.close()

    return created


def clear_documents(db_path: PathLike = DEFAULT_DB_PATH) -> None:
    """Clear all documents (for testing).

    Args:
        db_path: Path to database
    """
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM documents WHERE 1=1")
        conn.commit()
    except sqlite3.OperationalError:
        # Table doesn't exist yet
        pass
    finally:
        conn.close()

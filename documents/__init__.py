"""Document Store - the record store the supplier tools read and rewrite.

Usage:
    from documents import SQLiteDocumentRepository, DocumentFilter

    repository = SQLiteDocumentRepository(db_path="coredocument.db")
    documents = await repository.list_all(DocumentFilter(year=2024))
"""

from documents.models import Document, DocumentFilter
from documents.base import DocumentRepository
from documents.memory import InMemoryDocumentRepository
from documents.db import (
    SQLiteDocumentRepository,
    init_documents_db,
    add_document,
    get_document,
    list_documents,
    delete_document,
    seed_sample_documents,
    clear_documents,
)

__all__ = [
    # Models
    "Document",
    "DocumentFilter",
    # Repositories
    "DocumentRepository",
    "InMemoryDocumentRepository",
    "SQLiteDocumentRepository",
    # Database
    "init_documents_db",
    "add_document",
    "get_document",
    "list_documents",
    "delete_document",
    "seed_sample_documents",
    "clear_documents",
]

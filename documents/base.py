"""Abstract Document Repository Interface.

The supplier resolution engine never talks to a concrete store. It depends
only on this interface, which any backend (SQL database, REST client, test
double) implements:

1. list_all: Snapshot of every document, optionally filtered
2. update_supplier: Rewrite one document's supplier field
3. update_filename: Rewrite one document's stored file name
4. delete: Remove one document

Each write touches exactly one document so batch callers can attribute
failures per document id. Implementations raise DocumentNotFoundError or
StorageFailureError (both RepositoryError) for per-document failures.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from documents.models import Document, DocumentFilter


class DocumentRepository(ABC):
    """Abstract base class for document stores."""

    @abstractmethod
    async def list_all(self, filter: Optional[DocumentFilter] = None) -> List[Document]:
        """Return every document matching the filter (all documents if None)."""
        ...

    @abstractmethod
    async def update_supplier(self, document_id: str, supplier: str) -> Document:
        """Set a document's supplier field.

        Raises:
            DocumentNotFoundError: If the document does not exist
            StorageFailureError: If the store fails the write
        """
        ...

    @abstractmethod
    async def update_filename(self, document_id: str, filename: str) -> Document:
        """Set a document's stored file name.

        Raises:
            DocumentNotFoundError: If the document does not exist
            StorageFailureError: If the store fails the write
        """
        ...

    @abstractmethod
    async def delete(self, document_id: str) -> None:
        """Delete a document.

        Raises:
            DocumentNotFoundError: If the document does not exist
            StorageFailureError: If the store fails the delete
        """
        ...

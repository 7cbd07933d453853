"""In-memory document repository.

Keeps documents in insertion order. Used for dry runs and tests.
"""

from typing import Dict, Iterable, List, Optional

from core.errors import DocumentNotFoundError
from documents.base import DocumentRepository
from documents.models import Document, DocumentFilter


class InMemoryDocumentRepository(DocumentRepository):
    """Document repository backed by a dict keyed by document id."""

    def __init__(self, documents: Optional[Iterable[Document]] = None):
        self._documents: Dict[str, Document] = {}
        for document in documents or []:
            self._documents[document.id] = document

    def add(self, document: Document) -> Document:
        self._documents[document.id] = document
        return document

    def get(self, document_id: str) -> Document:
        try:
            return self._documents[document_id]
        except KeyError:
            raise DocumentNotFoundError(f"Document not found: {document_id}", document_id=document_id)

    async def list_all(self, filter: Optional[DocumentFilter] = None) -> List[Document]:
        documents = list(self._documents.values())
        if filter is not None:
            documents = [d for d in documents if filter.matches(d)]
        return documents

    async def update_supplier(self, document_id: str, supplier: str) -> Document:
        updated = self.get(document_id).model_copy(update={"supplier": supplier})
        self._documents[document_id] = updated
        return updated

    async def update_filename(self, document_id: str, filename: str) -> Document:
        updated = self.get(document_id).model_copy(update={"filename": filename})
        self._documents[document_id] = updated
        return updated

    async def delete(self, document_id: str) -> None:
        self.get(document_id)
        del self._documents[document_id]

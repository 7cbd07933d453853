"""Document Store Data Models.

This module defines the Pydantic models exchanged with the document store:
- Document: A scanned document's metadata record
- DocumentFilter: Optional listing filter (supplier, number, year, month)
"""

import datetime as dt
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from core.errors import InvalidDocumentError


class Document(BaseModel):
    """A document record as held by the document store.

    Every field is required. Records coming from loosely-typed sources
    (JSON exports, legacy rows) go through `from_record`, which turns any
    missing or malformed field into an InvalidDocumentError.

    Attributes:
        id: Document identifier in the store
        filename: Stored file name (e.g. "2024-01-15_MITI_123.pdf")
        supplier: Supplier name as typed or extracted
        doc_number: Supplier's document number
        date: Document date
    """
    id: str = Field(..., min_length=1, description="Document identifier")
    filename: str = Field(..., description="Stored file name")
    supplier: str = Field(..., description="Supplier name of record")
    doc_number: str = Field(..., description="Supplier document number")
    date: dt.date = Field(..., description="Document date")

    class Config:
        frozen = True

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        if isinstance(value, dt.datetime):
            return value.date()
        if isinstance(value, str) and len(value) > 10:
            # ISO timestamps such as "2024-01-15T00:00:00.000Z"
            try:
                return dt.datetime.fromisoformat(value.replace("Z", "+00:00")).date()
            except ValueError:
                return value
        return value

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Document":
        """Build a Document from a dict using either snake_case or camelCase keys.

        Raises:
            InvalidDocumentError: If a field is missing or malformed
        """
        if not isinstance(record, dict):
            raise InvalidDocumentError(f"Document record must be a mapping, got {type(record).__name__}")

        doc_number = record.get("doc_number", record.get("docNumber"))
        doc_id = record.get("id")
        data = {
            "id": str(doc_id) if isinstance(doc_id, int) else doc_id,
            "filename": record.get("filename"),
            "supplier": record.get("supplier"),
            "doc_number": doc_number,
            "date": record.get("date"),
        }

        for name, value in data.items():
            if value is None:
                raise InvalidDocumentError(f"Document record is missing '{name}'", field=name)

        try:
            return cls(**data)
        except ValidationError as e:
            first = e.errors()[0]
            field = str(first["loc"][0]) if first.get("loc") else ""
            raise InvalidDocumentError(
                f"Invalid document {data['id']!r}: {field} - {first['msg']}",
                field=field,
            ) from e


class DocumentFilter(BaseModel):
    """Filter for listing documents.

    Mirrors the document listing query: supplier and doc_number match as
    case-insensitive substrings, year and month match exactly.
    """
    supplier: Optional[str] = None
    doc_number: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = Field(default=None, ge=1, le=12)

    def matches(self, document: Document) -> bool:
        """Check whether a document passes this filter."""
        if self.supplier and self.supplier.lower() not in document.supplier.lower():
            return False
        if self.doc_number and self.doc_number.lower() not in document.doc_number.lower():
            return False
        if self.year is not None and document.date.year != self.year:
            return False
        if self.month is not None and document.date.month != self.month:
            return False
        return True

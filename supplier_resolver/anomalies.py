"""Anomalous Document Detection.

Flags documents whose metadata looks irregular, typically the result of
OCR noise or copy-pasted names:
- a character outside letters, digits, whitespace, - _ . ( ), the Italian
  accented vowels à è é ì ò ù and the apostrophe (TOD'S, DELL'ACQUA)
- two or more whitespace characters in a row
- leading or trailing whitespace on the supplier or document number

Filename, supplier and document number are checked together. Flagged
documents are only reported; deleting or renaming them is a separate,
explicit step (BulkActionExecutor) on documents the user selected.
"""

import re
from typing import Iterable, List

from core.observability.logging import get_logger, with_correlation
from documents.base import DocumentRepository
from documents.models import Document
from supplier_resolver.batch import DEFAULT_CALL_TIMEOUT_SECONDS, run_batch
from supplier_resolver.models import AnomalousDocument, AnomalyReason, BatchResult
from supplier_resolver.normalize import WHITESPACE_CHARS


logger = get_logger(__name__)

_ALLOWED_CHARS = rf"A-Za-z0-9_{WHITESPACE_CHARS}\-.()àèéìòùÀÈÉÌÒÙ'"

_STRANGE_CHARS_RE = re.compile(f"[^{_ALLOWED_CHARS}]")
_MULTIPLE_SPACES_RE = re.compile(f"[{WHITESPACE_CHARS}]{{2,}}")
_EDGE_SPACE_RE = re.compile(f"^[{WHITESPACE_CHARS}]|[{WHITESPACE_CHARS}]\\Z")
_TRIM_SPACES_RE = re.compile(f"^[{WHITESPACE_CHARS}]+|[{WHITESPACE_CHARS}]+\\Z")
_SPACE_BEFORE_EXTENSION_RE = re.compile(f"[{WHITESPACE_CHARS}]+\\.([A-Za-z0-9_]+)\\Z")


def classify_document(document: Document) -> List[AnomalyReason]:
    """Return every anomaly found on a document (empty if it looks clean)."""
    combined = document.filename + document.supplier + document.doc_number
    reasons = []

    if _STRANGE_CHARS_RE.search(combined):
        reasons.append(AnomalyReason.STRANGE_CHARACTERS)
    if _MULTIPLE_SPACES_RE.search(combined):
        reasons.append(AnomalyReason.MULTIPLE_SPACES)
    if _EDGE_SPACE_RE.search(document.supplier) or _EDGE_SPACE_RE.search(document.doc_number):
        reasons.append(AnomalyReason.LEADING_TRAILING_SPACES)

    return reasons


def is_anomalous(document: Document) -> bool:
    return bool(classify_document(document))


def suggest_filename(filename: str) -> str:
    """Propose a cleaned-up filename: disallowed characters dropped, whitespace collapsed.

    Examples:
        >>> suggest_filename("ABC  SUPPLIER#_55 .pdf")
        'ABC SUPPLIER_55.pdf'
    """
    cleaned = _STRANGE_CHARS_RE.sub("", filename)
    cleaned = _MULTIPLE_SPACES_RE.sub(" ", cleaned)
    cleaned = _TRIM_SPACES_RE.sub("", cleaned)
    # No space right before the extension
    cleaned = _SPACE_BEFORE_EXTENSION_RE.sub(r".\1", cleaned)
    return cleaned


def detect_anomalies(documents: Iterable[Document]) -> List[AnomalousDocument]:
    """Scan documents and return the anomalous ones, in input order."""
    flagged = []
    for document in documents:
        reasons = classify_document(document)
        if reasons:
            flagged.append(AnomalousDocument(
                document=document,
                reasons=reasons,
                suggested_filename=suggest_filename(document.filename),
            ))

    logger.info(f"Found {len(flagged)} anomalous documents", extra_fields={"flagged": len(flagged)})
    return flagged


class BulkActionExecutor:
    """Deletes or renames documents the user selected from the anomaly list.

    Both actions follow the batch accounting of the merge executor: each
    document is attempted once and failures are reported per document id.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        call_timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS,
    ):
        self.repository = repository
        self.call_timeout = call_timeout

    async def delete_documents(self, document_ids: Iterable[str]) -> BatchResult:
        """Delete the selected documents.

        Duplicate ids are deleted once; an empty selection does nothing.
        """
        selected = list(dict.fromkeys(document_ids))
        with with_correlation(operation="delete"):
            return await run_batch(
                "delete",
                selected,
                self.repository.delete,
                call_timeout=self.call_timeout,
            )

    async def rename_document(self, document_id: str, filename: str) -> BatchResult:
        """Give one document a new filename.

        Raises:
            ValueError: If the new filename is blank
        """
        if not filename or not filename.strip():
            raise ValueError("New filename must not be blank")

        with with_correlation(operation="rename"):
            return await run_batch(
                "rename",
                [document_id],
                lambda doc_id: self.repository.update_filename(doc_id, filename),
                call_timeout=self.call_timeout,
            )

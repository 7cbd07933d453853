"""Error taxonomy for supplier resolution.

- InvalidDocumentError: a document record is missing or has malformed fields
- RepositoryError: a single document read/write failed in the document store
  (recovered per document inside batch operations)
- PersistenceError: the ignored-pairs store could not be written
"""


class SupplierResolutionError(Exception):
    """Base exception for supplier resolution errors."""
    pass


class InvalidDocumentError(SupplierResolutionError, ValueError):
    """A document record is missing a required field or holds a bad value."""
    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.field = field


class RepositoryError(SupplierResolutionError):
    """Base exception for document repository failures."""
    def __init__(self, message: str, document_id: str = ""):
        super().__init__(message)
        self.document_id = document_id


class DocumentNotFoundError(RepositoryError):
    """The document does not exist (anymore)."""
    pass


class StorageFailureError(RepositoryError):
    """The underlying store rejected or failed the operation."""
    pass


class PersistenceError(SupplierResolutionError):
    """The ignored-pairs list could not be saved."""
    pass

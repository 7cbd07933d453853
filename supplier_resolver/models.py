"""Supplier Resolver Data Models.

This module defines the Pydantic models for supplier resolution:
- DocumentRef: A document id and date carried inside a duplicate group
- DuplicateGroup: Distinct supplier spellings judged to be one supplier
- AnomalousDocument: A document whose metadata has irregular characters
- BatchResult / MergeResult: Per-document accounting of bulk writes
- SupplierStats: Document counts per supplier name
- MatchingConfig: Tuning knobs of the grouping heuristics
"""

import datetime as dt
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from documents.models import Document


class MatchRule(str, Enum):
    """Which heuristic put a variant into a group."""
    EXACT_NORMALIZED = "exact_normalized"  # Same key after normalization
    SUBSTRING = "substring"                # One key contains the other
    FUZZY = "fuzzy"                        # Small edit distance


class DocumentRef(BaseModel):
    """A document belonging to a duplicate group.

    `supplier` is the supplier the document carried when the group was
    computed; the merge executor updates it as documents are rewritten.
    """
    id: str = Field(..., description="Document identifier")
    date: dt.date = Field(..., description="Document date")
    supplier: str = Field(..., description="Supplier name on the document")

    @classmethod
    def from_document(cls, document: Document) -> "DocumentRef":
        return cls(id=document.id, date=document.date, supplier=document.supplier)


class DuplicateGroup(BaseModel):
    """Two or more distinct supplier spellings that refer to the same supplier.

    Attributes:
        canonical: Variant with the most documents (first seen wins ties)
        variants: Distinct raw spellings, most documents first
        total_documents: Sum of documents over all variants
        documents: Every document of every variant
        variant_counts: Documents per variant
        match_rules: For each absorbed variant, the rule that matched it
    """
    canonical: str
    variants: List[str] = Field(..., min_length=2)
    total_documents: int = Field(..., ge=0)
    documents: List[DocumentRef] = Field(default_factory=list)
    variant_counts: Dict[str, int] = Field(default_factory=dict)
    match_rules: Dict[str, MatchRule] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_variants(self) -> "DuplicateGroup":
        if len(set(self.variants)) != len(self.variants):
            raise ValueError("Group variants must be pairwise distinct")
        if self.canonical not in self.variants:
            raise ValueError(f"Canonical name {self.canonical!r} is not one of the variants")
        return self

    def contains(self, *names: str) -> bool:
        """Check whether every given name is a variant of this group."""
        return all(name in self.variants for name in names)


class AnomalyReason(str, Enum):
    """Why a document was flagged."""
    STRANGE_CHARACTERS = "strange_characters"
    MULTIPLE_SPACES = "multiple_spaces"
    LEADING_TRAILING_SPACES = "leading_trailing_spaces"


class AnomalousDocument(BaseModel):
    """A document whose filename/supplier/doc number looks irregular."""
    document: Document
    reasons: List[AnomalyReason] = Field(default_factory=list)
    suggested_filename: Optional[str] = None


# =============================================================================
# Batch Results
# =============================================================================

class BatchFailure(BaseModel):
    """One document a batch operation could not process."""
    document_id: str
    error: str


class BatchResult(BaseModel):
    """Outcome of a multi-document operation.

    Batches are best-effort: every document is attempted and failures are
    listed individually rather than rolling back the others.
    """
    operation: str
    succeeded: int = 0
    failed: List[BatchFailure] = Field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed_count

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return f"{self.operation}: {self.succeeded} succeeded, {self.failed_count} failed"


class MergeResult(BatchResult):
    """Outcome of rewriting a duplicate group to its canonical name."""
    operation: str = "merge"
    canonical_name: str = ""
    skipped: int = Field(default=0, description="Documents already carrying the canonical name")

    @property
    def updated(self) -> int:
        return self.succeeded


class SupplierStats(BaseModel):
    """Document counts for one supplier name."""
    name: str
    total_documents: int = 0
    monthly_count: int = Field(default=0, description="Documents dated in the current month")
    latest_date: Optional[dt.date] = None


# =============================================================================
# Matching Configuration
# =============================================================================

class MatchingConfig(BaseModel):
    """Configuration for the supplier grouping heuristics.

    The defaults were chosen empirically on real supplier lists.
    """
    substring_min_length: int = Field(
        default=5,
        ge=1,
        description="Min normalized length of the shorter name for a substring match",
    )
    fuzzy_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Min edit-distance similarity for a fuzzy match",
    )
    max_length_difference: int = Field(
        default=2,
        ge=0,
        description="Max normalized length difference for a fuzzy match",
    )

    @classmethod
    def from_settings(cls, settings) -> "MatchingConfig":
        """Build from core.config.Settings."""
        return cls(
            substring_min_length=settings.substring_min_length,
            fuzzy_threshold=settings.fuzzy_threshold,
            max_length_difference=settings.max_length_difference,
        )


# Default matching config
DEFAULT_MATCHING_CONFIG = MatchingConfig()

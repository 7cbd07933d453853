"""Supplier Resolution Service.

This module exposes the supplier tools as explicit operations any caller
(CLI, service endpoint, scheduled job) can drive:
1. resolve_duplicates: Snapshot documents and propose duplicate groups
2. ignore_group: Declare a proposed group "not duplicates" (persisted)
3. merge_group: Rewrite a confirmed group to its canonical name
4. find_anomalies / delete_documents / rename_document: Metadata clean-up

Grouping always runs against a fresh snapshot; after a merge or delete the
caller calls resolve_duplicates again to see what is left.
"""

import time
import uuid
from datetime import date
from typing import Iterable, List, Optional

from core.config import Settings
from core.observability.logging import get_logger, with_correlation
from documents.base import DocumentRepository
from documents.models import DocumentFilter
from supplier_resolver.anomalies import BulkActionExecutor, detect_anomalies
from supplier_resolver.batch import DEFAULT_CALL_TIMEOUT_SECONDS
from supplier_resolver.db import ExceptionStore
from supplier_resolver.grouping import group_documents, supplier_stats
from supplier_resolver.merge import MergeExecutor
from supplier_resolver.models import (
    AnomalousDocument,
    BatchResult,
    DuplicateGroup,
    MatchingConfig,
    MergeResult,
    SupplierStats,
    DEFAULT_MATCHING_CONFIG,
)


logger = get_logger(__name__)


class SupplierResolver:
    """Finds and fixes supplier-name duplicates across a document store.

    Example:
        resolver = SupplierResolver(
            repository=SQLiteDocumentRepository("coredocument.db"),
            exception_store=ExceptionStore("coredocument.db"),
        )

        groups = await resolver.resolve_duplicates()
        for group in groups:
            print(f"{group.canonical}: {group.variants}")

        result = await resolver.merge_group(groups[0])
        print(result.summary())
    """

    def __init__(
        self,
        repository: DocumentRepository,
        exception_store: ExceptionStore,
        config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
        call_timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS,
        session_id: Optional[str] = None,
    ):
        """Initialize the resolver.

        Args:
            repository: Document store to read and write
            exception_store: Ignored supplier pairs for this session
            config: Matching thresholds
            call_timeout: Seconds allowed per repository write
            session_id: Correlation id for logs (generated if omitted)
        """
        self.repository = repository
        self.exception_store = exception_store
        self.config = config
        self.session_id = session_id or uuid.uuid4().hex
        self.merge_executor = MergeExecutor(repository, call_timeout=call_timeout)
        self.bulk_executor = BulkActionExecutor(repository, call_timeout=call_timeout)

    @classmethod
    def from_settings(cls, repository: DocumentRepository, settings: Settings) -> "SupplierResolver":
        """Build a resolver from core.config.Settings."""
        return cls(
            repository=repository,
            exception_store=ExceptionStore(settings.ignore_db_path),
            config=MatchingConfig.from_settings(settings),
            call_timeout=settings.call_timeout_seconds,
        )

    # -------------------------------------------------------------------------
    # Duplicate suppliers
    # -------------------------------------------------------------------------

    async def resolve_duplicates(self, filter: Optional[DocumentFilter] = None) -> List[DuplicateGroup]:
        """Propose duplicate supplier groups for the current documents.

        Args:
            filter: Restrict the snapshot (all documents if None)

        Returns:
            Duplicate groups, largest total_documents first
        """
        with with_correlation(session_id=self.session_id, operation="resolve"):
            start_time = time.time()
            documents = await self.repository.list_all(filter)
            groups = group_documents(documents, ignored=self.exception_store, config=self.config)

            logger.info(
                f"Found {len(groups)} duplicate supplier groups",
                extra_fields={
                    "documents": len(documents),
                    "ignored_pairs": len(self.exception_store),
                    "duration_ms": round((time.time() - start_time) * 1000, 1),
                },
            )
            return groups

    def ignore_group(self, group: DuplicateGroup) -> int:
        """Declare a group "not duplicates" so it is never proposed again.

        Raises:
            PersistenceError: If the decision could not be saved; it still
                applies for the rest of this session
        """
        with with_correlation(session_id=self.session_id, operation="ignore", supplier=group.canonical):
            return self.exception_store.ignore_group(group)

    def clear_ignored(self) -> None:
        """Forget every "not duplicates" decision."""
        with with_correlation(session_id=self.session_id, operation="clear_ignored"):
            self.exception_store.clear()

    async def merge_group(self, group: DuplicateGroup, canonical_name: Optional[str] = None) -> MergeResult:
        """Rewrite every document of a group to one supplier name.

        Args:
            group: The confirmed duplicate group
            canonical_name: Name to write (defaults to group.canonical)

        Returns:
            MergeResult with per-document failures
        """
        with with_correlation(session_id=self.session_id):
            if canonical_name is None:
                canonical_name = group.canonical
            return await self.merge_executor.merge(group, canonical_name)

    # -------------------------------------------------------------------------
    # Anomalous documents
    # -------------------------------------------------------------------------

    async def find_anomalies(self, filter: Optional[DocumentFilter] = None) -> List[AnomalousDocument]:
        """List documents with irregular filename/supplier/doc number."""
        with with_correlation(session_id=self.session_id, operation="anomalies"):
            documents = await self.repository.list_all(filter)
            return detect_anomalies(documents)

    async def delete_documents(self, document_ids: Iterable[str]) -> BatchResult:
        """Delete the selected documents."""
        with with_correlation(session_id=self.session_id):
            return await self.bulk_executor.delete_documents(document_ids)

    async def rename_document(self, document_id: str, filename: str) -> BatchResult:
        """Rename one document's file."""
        with with_correlation(session_id=self.session_id):
            return await self.bulk_executor.rename_document(document_id, filename)

    # -------------------------------------------------------------------------
    # Overview
    # -------------------------------------------------------------------------

    async def supplier_stats(
        self,
        filter: Optional[DocumentFilter] = None,
        today: Optional[date] = None,
    ) -> List[SupplierStats]:
        """Document counts per supplier name."""
        documents = await self.repository.list_all(filter)
        return supplier_stats(documents, today=today)


def find_group(groups: Iterable[DuplicateGroup], *names: str) -> Optional[DuplicateGroup]:
    """Return the first group containing every given supplier name."""
    for group in groups:
        if group.contains(*names):
            return group
    return None


def explain_groups(groups: List[DuplicateGroup]) -> str:
    """Generate a human-readable report of duplicate groups.

    Args:
        groups: Groups from resolve_duplicates

    Returns:
        Formatted report string
    """
    lines = ["=" * 60, "Duplicate Suppliers", "=" * 60]

    if not groups:
        lines.append("No duplicate suppliers found.")
        lines.append("=" * 60)
        return "\n".join(lines)

    for i, group in enumerate(groups):
        lines.append(f"{i+1}. {group.canonical} ({group.total_documents} documents)")
        for variant in group.variants:
            count = group.variant_counts.get(variant, 0)
            if variant == group.canonical:
                lines.append(f"     ✓ {variant}: {count} (canonical)")
            else:
                rule = group.match_rules.get(variant)
                how = f", {rule.value}" if rule else ""
                lines.append(f"     • {variant}: {count}{how}")

    lines.append("")
    lines.append(f"{len(groups)} groups, {sum(g.total_documents for g in groups)} documents")
    lines.append("=" * 60)

    return "\n".join(lines)

"""Supplier Resolver - find and merge spellings of the same supplier.

This package groups the supplier names found on scanned documents by:
- Exact match after normalization ("MI.TI" / "MITI" / "M.I.T.I")
- Long substring containment ("FERRAGAMO" / "SALVATORE FERRAGAMO")
- Small edit distance ("TANCERIA" / "TRANCERIA")

Key Features:
- Canonical name = the spelling with the most documents
- Persistent "not duplicates" list that suppresses false positives
- Best-effort merge with per-document failure reporting
- Anomalous filename/metadata detection with bulk delete and rename

Usage:
    from supplier_resolver import SupplierResolver, ExceptionStore
    from documents import SQLiteDocumentRepository

    resolver = SupplierResolver(
        repository=SQLiteDocumentRepository("coredocument.db"),
        exception_store=ExceptionStore("coredocument.db"),
    )
    groups = await resolver.resolve_duplicates()

    if groups:
        result = await resolver.merge_group(groups[0])
        print(result.summary())
"""

from supplier_resolver.models import (
    AnomalousDocument,
    AnomalyReason,
    BatchFailure,
    BatchResult,
    DocumentRef,
    DuplicateGroup,
    MatchRule,
    MatchingConfig,
    MergeResult,
    SupplierStats,
    DEFAULT_MATCHING_CONFIG,
)
from supplier_resolver.normalize import (
    normalize_supplier_name,
    levenshtein_distance,
    similarity,
    match_rule,
)
from supplier_resolver.db import (
    ExceptionStore,
    IGNORED_PAIR_SEPARATOR,
    pair_key,
    split_pair_key,
    serialize_pairs,
    deserialize_pairs,
)
from supplier_resolver.grouping import group_suppliers, group_documents, supplier_stats
from supplier_resolver.merge import MergeExecutor
from supplier_resolver.anomalies import BulkActionExecutor, detect_anomalies, suggest_filename
from supplier_resolver.resolver import SupplierResolver, explain_groups, find_group

__all__ = [
    # Models
    "AnomalousDocument",
    "AnomalyReason",
    "BatchFailure",
    "BatchResult",
    "DocumentRef",
    "DuplicateGroup",
    "MatchRule",
    "MatchingConfig",
    "MergeResult",
    "SupplierStats",
    "DEFAULT_MATCHING_CONFIG",
    # Normalization
    "normalize_supplier_name",
    "levenshtein_distance",
    "similarity",
    "match_rule",
    # Exception store
    "ExceptionStore",
    "IGNORED_PAIR_SEPARATOR",
    "pair_key",
    "split_pair_key",
    "serialize_pairs",
    "deserialize_pairs",
    # Grouping
    "group_suppliers",
    "group_documents",
    "supplier_stats",
    # Bulk writes
    "MergeExecutor",
    "BulkActionExecutor",
    "detect_anomalies",
    "suggest_filename",
    # Service
    "SupplierResolver",
    "explain_groups",
    "find_group",
]

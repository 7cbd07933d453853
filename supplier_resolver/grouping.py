"""Supplier Grouping Algorithm.

Partitions the supplier names found on documents into duplicate groups:
1. Collect distinct names in order of first appearance
2. Take the first name not yet grouped as the seed
3. Absorb every other ungrouped name that matches the seed
   (exact key, long substring, or small edit distance) unless the pair
   was ignored by the user
4. Keep the group if it absorbed anything; pick the name with the most
   documents as canonical

A name absorbed into a group never seeds a group of its own and is never
matched again, so every name lands in at most one group.
"""

from collections import OrderedDict
from datetime import date
from typing import Container, Dict, Iterable, List, Optional, Sequence

from documents.models import Document
from supplier_resolver.db import pair_key
from supplier_resolver.models import (
    DocumentRef,
    DuplicateGroup,
    MatchRule,
    MatchingConfig,
    SupplierStats,
    DEFAULT_MATCHING_CONFIG,
)
from supplier_resolver.normalize import normalize_supplier_name, match_rule


def group_suppliers(
    names: Iterable[Optional[str]],
    doc_counts: Optional[Dict[str, int]] = None,
    docs_by_name: Optional[Dict[str, List[DocumentRef]]] = None,
    ignored: Optional[Container[str]] = None,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
) -> List[DuplicateGroup]:
    """Group supplier names that refer to the same supplier.

    Args:
        names: Supplier names, duplicates allowed; None and "" are skipped
        doc_counts: Documents per name (defaults to len(docs_by_name[name]))
        docs_by_name: Documents per name, carried into the groups
        ignored: Pair keys (see db.pair_key) never to be grouped; an
            ExceptionStore works as well as a plain set
        config: Matching thresholds

    Returns:
        Duplicate groups, largest total_documents first
    """
    docs_by_name = docs_by_name or {}
    doc_counts = doc_counts or {}
    ignored = ignored if ignored is not None else frozenset()

    distinct: List[str] = list(OrderedDict.fromkeys(
        name for name in names if isinstance(name, str) and name
    ))
    keys = {name: normalize_supplier_name(name) for name in distinct}

    def count(name: str) -> int:
        if name in doc_counts:
            return doc_counts[name]
        return len(docs_by_name.get(name, []))

    processed = set()
    groups: List[DuplicateGroup] = []

    for seed in distinct:
        if seed in processed:
            continue

        variants = [seed]
        rules: Dict[str, MatchRule] = {}

        for other in distinct:
            if other == seed or other in processed:
                continue
            if pair_key(seed, other) in ignored:
                continue

            rule = match_rule(keys[seed], keys[other], config)
            if rule is not None:
                variants.append(other)
                rules[other] = rule
                processed.add(other)

        processed.add(seed)

        if len(variants) > 1:
            groups.append(_build_group(variants, rules, count, docs_by_name))

    groups.sort(key=lambda g: g.total_documents, reverse=True)
    return groups


def _build_group(
    variants: Sequence[str],
    rules: Dict[str, MatchRule],
    count,
    docs_by_name: Dict[str, List[DocumentRef]],
) -> DuplicateGroup:
    counts = {name: count(name) for name in variants}

    # Strictly greater, so the first variant seen wins a tie
    canonical = variants[0]
    for name in variants[1:]:
        if counts[name] > counts[canonical]:
            canonical = name

    ordered = sorted(variants, key=lambda name: counts[name], reverse=True)

    documents: List[DocumentRef] = []
    for name in variants:
        documents.extend(docs_by_name.get(name, []))

    return DuplicateGroup(
        canonical=canonical,
        variants=ordered,
        total_documents=sum(counts.values()),
        documents=documents,
        variant_counts=counts,
        match_rules=rules,
    )


def index_documents(documents: Iterable[Document]) -> "OrderedDict[str, List[DocumentRef]]":
    """Bucket documents by raw supplier name, in order of first appearance.

    Documents without a supplier name are left out.
    """
    by_name: "OrderedDict[str, List[DocumentRef]]" = OrderedDict()
    for document in documents:
        if not document.supplier:
            continue
        by_name.setdefault(document.supplier, []).append(DocumentRef.from_document(document))
    return by_name


def group_documents(
    documents: Iterable[Document],
    ignored: Optional[Container[str]] = None,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
) -> List[DuplicateGroup]:
    """Group the suppliers of a document snapshot.

    Args:
        documents: Every document to consider
        ignored: Ignored pair keys or an ExceptionStore
        config: Matching thresholds

    Returns:
        Duplicate groups, largest total_documents first
    """
    by_name = index_documents(documents)
    return group_suppliers(
        names=list(by_name.keys()),
        doc_counts={name: len(docs) for name, docs in by_name.items()},
        docs_by_name=by_name,
        ignored=ignored,
        config=config,
    )


def supplier_stats(
    documents: Iterable[Document],
    today: Optional[date] = None,
) -> List[SupplierStats]:
    """Per-supplier document counts for the supplier overview.

    Args:
        documents: Every document to consider
        today: Reference date for monthly_count (defaults to today)

    Returns:
        One SupplierStats per supplier name, most documents first
    """
    today = today or date.today()
    stats: Dict[str, SupplierStats] = {}

    for document in documents:
        if not document.supplier:
            continue
        entry = stats.setdefault(document.supplier, SupplierStats(name=document.supplier))
        entry.total_documents += 1
        if document.date.year == today.year and document.date.month == today.month:
            entry.monthly_count += 1
        if entry.latest_date is None or document.date > entry.latest_date:
            entry.latest_date = document.date

    return sorted(stats.values(), key=lambda s: (-s.total_documents, s.name))

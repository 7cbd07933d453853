"""Supplier clean-up tool.

Finds supplier names that are spellings of the same supplier, merges or
ignores them, and handles documents with irregular metadata.

Usage:
    python scripts/resolve_suppliers.py duplicates [--json]
    python scripts/resolve_suppliers.py merge --canonical "MITI" "MI.TI" "MITI"
    python scripts/resolve_suppliers.py ignore "FERRAGAMO" "SALVATORE FERRAGAMO"
    python scripts/resolve_suppliers.py clear-ignored
    python scripts/resolve_suppliers.py anomalies [--json]
    python scripts/resolve_suppliers.py delete-anomalies doc-012 doc-014
    python scripts/resolve_suppliers.py rename doc-012 "2024-03-07_ABC SUPPLIER_55.pdf"
    python scripts/resolve_suppliers.py suppliers
    python scripts/resolve_suppliers.py seed

Configuration comes from the environment (see core/config.py); --db
overrides SUPPLIER_DB_PATH.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from core.config import get_settings
from core.errors import PersistenceError
from core.observability.logging import configure_logging, get_logger
from documents import SQLiteDocumentRepository, seed_sample_documents
from supplier_resolver import (
    BatchResult,
    SupplierResolver,
    explain_groups,
    find_group,
)


logger = get_logger("scripts.resolve_suppliers")


def print_batch_result(result: BatchResult) -> None:
    """Print succeeded/failed counts and every failure."""
    print(result.summary())
    for failure in result.failed:
        print(f"  ✗ {failure.document_id}: {failure.error}")


async def cmd_duplicates(resolver: SupplierResolver, args) -> int:
    groups = await resolver.resolve_duplicates()
    if args.json:
        print(json.dumps([g.model_dump(mode="json") for g in groups], indent=2, ensure_ascii=False))
    else:
        print(explain_groups(groups))
        if len(resolver.exception_store):
            print(f"{len(resolver.exception_store)} supplier pairs are marked as not duplicates.")
    return 0


async def cmd_merge(resolver: SupplierResolver, args) -> int:
    groups = await resolver.resolve_duplicates()
    group = find_group(groups, *args.variants)
    if group is None:
        print(f"No duplicate group contains all of: {', '.join(args.variants)}")
        return 2

    result = await resolver.merge_group(group, args.canonical)
    print_batch_result(result)
    print(f"  {result.skipped} documents already named '{result.canonical_name}'")

    remaining = await resolver.resolve_duplicates()
    print(f"{len(remaining)} duplicate groups left")
    return 0 if result.ok else 1


async def cmd_ignore(resolver: SupplierResolver, args) -> int:
    groups = await resolver.resolve_duplicates()
    group = find_group(groups, *args.variants)
    if group is None:
        print(f"No duplicate group contains all of: {', '.join(args.variants)}")
        return 2

    try:
        added = resolver.ignore_group(group)
    except PersistenceError as e:
        print(f"✗ Group ignored for this run only, could not be saved: {e}")
        return 1
    except ValueError as e:
        print(f"✗ {e}")
        return 2

    print(f"Ignored {added} supplier pairs; '{group.canonical}' will not be proposed again")
    return 0


async def cmd_clear_ignored(resolver: SupplierResolver, args) -> int:
    count = len(resolver.exception_store)
    try:
        resolver.clear_ignored()
    except PersistenceError as e:
        print(f"✗ Could not save: {e}")
        return 1
    print(f"Cleared {count} ignored supplier pairs")
    return 0


async def cmd_anomalies(resolver: SupplierResolver, args) -> int:
    flagged = await resolver.find_anomalies()
    if args.json:
        print(json.dumps([a.model_dump(mode="json") for a in flagged], indent=2, ensure_ascii=False))
        return 0

    if not flagged:
        print("No anomalies found.")
        return 0

    for item in flagged:
        doc = item.document
        reasons = ", ".join(r.value for r in item.reasons)
        print(f"{doc.id}  {doc.filename!r}  supplier={doc.supplier!r}  number={doc.doc_number!r}")
        print(f"    {reasons}")
        if item.suggested_filename and item.suggested_filename != doc.filename:
            print(f"    suggested filename: {item.suggested_filename!r}")
    print(f"\n{len(flagged)} anomalous documents")
    return 0


async def cmd_delete_anomalies(resolver: SupplierResolver, args) -> int:
    result = await resolver.delete_documents(args.ids)
    print_batch_result(result)
    return 0 if result.ok else 1


async def cmd_rename(resolver: SupplierResolver, args) -> int:
    result = await resolver.rename_document(args.id, args.filename)
    print_batch_result(result)
    return 0 if result.ok else 1


async def cmd_suppliers(resolver: SupplierResolver, args) -> int:
    stats = await resolver.supplier_stats()
    for entry in stats:
        latest = entry.latest_date.isoformat() if entry.latest_date else "-"
        print(f"{entry.name:40} {entry.total_documents:6} docs  {entry.monthly_count:4} this month  latest {latest}")
    print(f"\n{len(stats)} suppliers")
    return 0


COMMANDS = {
    "duplicates": cmd_duplicates,
    "merge": cmd_merge,
    "ignore": cmd_ignore,
    "clear-ignored": cmd_clear_ignored,
    "anomalies": cmd_anomalies,
    "delete-anomalies": cmd_delete_anomalies,
    "rename": cmd_rename,
    "suppliers": cmd_suppliers,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Find and merge duplicate supplier names")
    parser.add_argument("--db", type=Path, help="Document database (overrides SUPPLIER_DB_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("duplicates", help="List duplicate supplier groups")
    p.add_argument("--json", action="store_true", help="Print groups as JSON")

    p = sub.add_parser("merge", help="Merge the group containing the given names")
    p.add_argument("--canonical", help="Name to write (defaults to the group's canonical name)")
    p.add_argument("variants", nargs="+", help="Supplier names identifying the group")

    p = sub.add_parser("ignore", help="Mark the group containing the given names as not duplicates")
    p.add_argument("variants", nargs="+", help="Supplier names identifying the group")

    sub.add_parser("clear-ignored", help="Forget every not-duplicates decision")

    p = sub.add_parser("anomalies", help="List documents with irregular metadata")
    p.add_argument("--json", action="store_true", help="Print flagged documents as JSON")

    p = sub.add_parser("delete-anomalies", help="Delete the selected documents")
    p.add_argument("ids", nargs="+", help="Document ids")

    p = sub.add_parser("rename", help="Rename one document's file")
    p.add_argument("id", help="Document id")
    p.add_argument("filename", help="New filename")

    sub.add_parser("suppliers", help="Document counts per supplier")
    sub.add_parser("seed", help="Load sample documents")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    if args.db:
        settings = settings.model_copy(update={"db_path": args.db, "ignore_db_path": args.db})

    configure_logging(level=settings.log_level, json_format=settings.log_json)

    if args.command == "seed":
        created = seed_sample_documents(settings.db_path)
        print(f"Seeded {created['documents']} documents into {settings.db_path}")
        return 0

    repository = SQLiteDocumentRepository(settings.db_path)
    try:
        resolver = SupplierResolver.from_settings(repository, settings)
    except PersistenceError as e:
        print(f"✗ {e}")
        return 1

    return asyncio.run(COMMANDS[args.command](resolver, args))


if __name__ == "__main__":
    sys.exit(main())

"""Merge Executor - rewrite a duplicate group to one canonical name.

Every document of the group whose supplier differs from the canonical name
gets one `update_supplier` call. Failures are collected per document and
never stop the rest of the group; re-running the merge only touches the
documents still left over.
"""

from core.observability.logging import get_logger, with_correlation
from documents.base import DocumentRepository
from supplier_resolver.batch import DEFAULT_CALL_TIMEOUT_SECONDS, run_batch
from supplier_resolver.models import DuplicateGroup, MergeResult


logger = get_logger(__name__)


class MergeExecutor:
    """Applies a canonical supplier name across a duplicate group.

    Example:
        executor = MergeExecutor(repository)
        result = await executor.merge(group, group.canonical)

        if result.failed:
            for failure in result.failed:
                print(f"{failure.document_id}: {failure.error}")
    """

    def __init__(
        self,
        repository: DocumentRepository,
        call_timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS,
    ):
        """Initialize the executor.

        Args:
            repository: Document store to write to
            call_timeout: Seconds allowed per update call
        """
        self.repository = repository
        self.call_timeout = call_timeout

    async def merge(self, group: DuplicateGroup, canonical_name: str) -> MergeResult:
        """Rename every document of the group to `canonical_name`.

        Args:
            group: The confirmed duplicate group
            canonical_name: Supplier name to write (usually group.canonical,
                but the user may type a corrected spelling)

        Returns:
            MergeResult with updated/skipped counts and per-document failures

        Raises:
            ValueError: If canonical_name is blank
        """
        if not canonical_name or not canonical_name.strip():
            raise ValueError("Canonical supplier name must not be blank")

        result = MergeResult(canonical_name=canonical_name)
        refs = {}
        pending = []
        for ref in group.documents:
            if ref.supplier == canonical_name:
                result.skipped += 1
                continue
            refs[ref.id] = ref
            pending.append(ref.id)

        def mark_renamed(document_id: str, _document) -> None:
            refs[document_id].supplier = canonical_name

        with with_correlation(operation="merge", supplier=canonical_name):
            logger.info(
                f"Merging {len(group.variants)} variants into '{canonical_name}'",
                extra_fields={"variants": group.variants, "pending": len(pending), "skipped": result.skipped},
            )
            await run_batch(
                "merge",
                pending,
                lambda document_id: self.repository.update_supplier(document_id, canonical_name),
                call_timeout=self.call_timeout,
                result=result,
                on_success=mark_renamed,
            )

        return result

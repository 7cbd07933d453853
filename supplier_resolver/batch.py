"""Best-effort batch execution over single-document repository calls.

Documents are processed one at a time, in list order. Each call is bounded
by a timeout; a failure or timeout is recorded against that document id and
the loop moves on. Nothing is retried and nothing is rolled back.

A timed-out call is cancelled and then awaited. If the call absorbs the
cancellation because its write already landed, its result counts as a
success, so the result never reports a landed write as timed out.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Iterable, Optional

from core.errors import RepositoryError
from core.observability.logging import (
    log_batch_complete,
    log_batch_start,
    log_document_failure,
    with_correlation,
)
from supplier_resolver.models import BatchFailure, BatchResult


DEFAULT_CALL_TIMEOUT_SECONDS = 10.0


async def run_batch(
    operation: str,
    document_ids: Iterable[str],
    action: Callable[[str], Awaitable[Any]],
    call_timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS,
    result: Optional[BatchResult] = None,
    on_success: Optional[Callable[[str, Any], None]] = None,
) -> BatchResult:
    """Run `action` for every document id and account for each outcome.

    Args:
        operation: Name used in logs and in the result
        document_ids: Documents to process, in order
        action: Coroutine function performing the write for one document
        call_timeout: Seconds allowed per call
        result: Result to fill in (a new BatchResult if None)
        on_success: Called with (document_id, action return value)

    Returns:
        The filled-in result
    """
    if result is None:
        result = BatchResult(operation=operation)

    document_ids = list(document_ids)
    start_time = time.time()
    log_batch_start(operation, total=len(document_ids))

    for document_id in document_ids:
        with with_correlation(document_id=document_id):
            try:
                value = await _call_with_timeout(action(document_id), call_timeout)
            except asyncio.TimeoutError:
                error = f"Timed out after {call_timeout:g}s"
            except RepositoryError as e:
                error = f"{type(e).__name__}: {e}"
            except Exception as e:
                error = f"Unexpected {type(e).__name__}: {e}"
            else:
                result.succeeded += 1
                if on_success is not None:
                    on_success(document_id, value)
                continue

            result.failed.append(BatchFailure(document_id=document_id, error=error))
            log_document_failure(operation, document_id, error)

    log_batch_complete(
        operation,
        succeeded=result.succeeded,
        failed=result.failed_count,
        duration_ms=(time.time() - start_time) * 1000,
    )
    return result


async def _call_with_timeout(coro: Awaitable[Any], timeout: float) -> Any:
    """Await `coro`, cancelling it after `timeout` seconds.

    Raises:
        asyncio.TimeoutError: If the call was cancelled before finishing
    """
    task = asyncio.ensure_future(coro)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout)
    except asyncio.CancelledError:
        task.cancel()
        raise
    if task in done:
        return task.result()

    task.cancel()
    try:
        return await task
    except asyncio.CancelledError:
        raise asyncio.TimeoutError() from None

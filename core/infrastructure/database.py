"""
Database utilities for async callers.

Every ORM call made from async code goes through ``run_in_db`` so it is
bounded by the storage timeout and reports transient failures uniformly.

Reads are abandoned when the timeout elapses. Writes cannot be: the worker
thread keeps running and may still commit, so writes are run with
``settle=True`` and their real outcome is awaited once the timeout has
passed. On PostgreSQL ``bound_transaction`` makes the server itself abort
the transaction at the same deadline, so a settled write either committed
or raised.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Optional

from asgiref.sync import sync_to_async
from django.db import InterfaceError, OperationalError, connection

from core.domain.exceptions import TransientStorageError
from core.metrics import db_query_duration_seconds

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_TIMEOUT = 5.0


def bound_transaction(timeout: Optional[float] = None) -> None:
    """
    Limit lock waits and statements of the current transaction.

    Must be called inside ``transaction.atomic()``. A no-op on backends
    without per-transaction timeouts.

    Args:
        timeout: Seconds (defaults to DEFAULT_STORAGE_TIMEOUT)
    """
    if connection.vendor != "postgresql":
        return
    milliseconds = max(1, int((timeout or DEFAULT_STORAGE_TIMEOUT) * 1000))
    with connection.cursor() as cursor:
        cursor.execute(f"SET LOCAL lock_timeout = {milliseconds}")
        cursor.execute(f"SET LOCAL statement_timeout = {milliseconds}")


async def _settle(task: "asyncio.Future", timeout: float, operation: str, table: str) -> Any:
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(
            "Storage write outlived its timeout, waiting for its outcome",
            extra={"operation": operation, "table": table, "timeout": timeout},
        )
        return await task


async def run_in_db(
    func: Callable[..., Any],
    *args: Any,
    operation: str,
    table: str,
    timeout: Optional[float] = None,
    settle: bool = False,
    **kwargs: Any,
) -> Any:
    """
    Run a synchronous ORM function from async code.

    Args:
        func: Synchronous function performing ORM work
        *args: Positional arguments for func
        operation: Operation name for metrics and logs
        table: Table name for metrics and logs
        timeout: Seconds before giving up (defaults to DEFAULT_STORAGE_TIMEOUT)
        settle: Wait for the real outcome of func instead of abandoning it on
            timeout. Use for every call that writes.
        **kwargs: Keyword arguments for func

    Returns:
        Whatever func returns

    Raises:
        TransientStorageError: On timeout of a read or connection-level database errors
    """
    timeout = timeout or DEFAULT_STORAGE_TIMEOUT
    start_time = time.perf_counter()
    try:
        call = sync_to_async(func)(*args, **kwargs)
        if settle:
            return await _settle(asyncio.ensure_future(call), timeout, operation, table)
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(
            "Storage call timed out",
            extra={"operation": operation, "table": table, "timeout": timeout},
        )
        raise TransientStorageError() from e
    except (OperationalError, InterfaceError) as e:
        logger.error(
            "Storage unavailable: %s",
            e,
            extra={"operation": operation, "table": table},
        )
        raise TransientStorageError() from e
    finally:
        db_query_duration_seconds.labels(operation=operation, table=table).observe(
            time.perf_counter() - start_time
        )

"""Bounded-concurrency batch of asynchronous operations."""

import asyncio
from collections import deque
from typing import Any, Awaitable, Callable, Deque, List, Optional

from datalake_sdk.common.error_codes import OperationCancelledError, ValidationError
from datalake_sdk.constants import DEFAULT_HIGH_LEVEL_CONCURRENCY
from datalake_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)

Operation = Callable[[], Awaitable[Any]]


class Batch:
    """Runs a finite set of independent async operations, at most N at a time.

    Operations are queued with :meth:`add_operation` and started by
    :meth:`do` in FIFO order. Completion order is unspecified. The first
    failing operation stops the batch: operations that have not started yet
    never start, operations already running are allowed to finish and their
    results are discarded, then the first error is raised.

    Example:
        ```python
        batch = Batch(concurrency=3)
        for offset in range(0, size, chunk_size):
            batch.add_operation(lambda offset=offset: upload_chunk(offset))
        await batch.do()
        ```

    Args:
        concurrency: Maximum number of operations in flight at once.
        cancel_event: When set, no further operation is started and the
            batch fails with :class:`OperationCancelledError`.
    """

    def __init__(
        self,
        concurrency: int = DEFAULT_HIGH_LEVEL_CONCURRENCY,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        if concurrency < 1:
            raise ValidationError(
                ValidationError.CONCURRENCY_ERROR,
                f"concurrency must be > 0, got {concurrency}",
            )
        self.concurrency = concurrency
        self.cancel_event = cancel_event
        self._operations: Deque[Operation] = deque()
        self._started = False
        self._error: Optional[BaseException] = None
        self._in_flight = 0
        self._completed = 0

    @property
    def in_flight(self) -> int:
        """Number of operations currently running."""
        return self._in_flight

    @property
    def completed(self) -> int:
        """Number of operations that finished successfully."""
        return self._completed

    def add_operation(self, operation: Operation) -> None:
        """Queue an operation. Must be called before :meth:`do`."""
        if self._started:
            raise ValidationError(
                ValidationError.BATCH_STATE_ERROR,
                "operations cannot be added once the batch has started",
            )
        self._operations.append(operation)

    async def do(self) -> None:
        """Run every queued operation and wait for the batch to settle.

        Raises:
            ValidationError: If the batch was already started.
            OperationCancelledError: If the cancel event was observed before
                every operation had started.
            Exception: The first error raised by an operation.
        """
        if self._started:
            raise ValidationError(
                ValidationError.BATCH_STATE_ERROR, "batch can only be run once"
            )
        self._started = True

        total = len(self._operations)
        if total == 0:
            return

        worker_count = min(self.concurrency, total)
        logger.debug(f"Starting batch of {total} operations with {worker_count} workers")
        workers: List["asyncio.Task[None]"] = [
            asyncio.create_task(self._worker()) for _ in range(worker_count)
        ]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise

        if self._error is not None:
            raise self._error

    async def _worker(self) -> None:
        while self._operations and self._error is None:
            if self.cancel_event is not None and self.cancel_event.is_set():
                self._error = OperationCancelledError(
                    f"{len(self._operations)} operations were not started"
                )
                return

            operation = self._operations.popleft()
            self._in_flight += 1
            try:
                await operation()
                self._completed += 1
            except Exception as e:
                if self._error is None:
                    logger.debug(f"Batch operation failed, stopping batch: {e}")
                    self._error = e
            finally:
                self._in_flight -= 1

"""
Chunked, bounded-concurrency transfers for Data Lake files.

Uploads are staged with one append per chunk through a :class:`Batch` and
committed with a single flush once every chunk has been appended. Downloads
issue one ranged read per chunk through the same pool.

A failed upload leaves the remote file created and partially appended; no
cleanup is attempted.
"""

import asyncio
from typing import (
    Any,
    AsyncIterable,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Set,
    Union,
)

import aiofiles
import aiofiles.os

from datalake_sdk.clients.datalake.models import (
    ChunkTask,
    FileUploadResult,
    PathHttpHeaders,
    PathResourceType,
    TransferPlan,
    TransferProgress,
    TransferProgressCallback,
)
from datalake_sdk.clients.datalake.operations import PathOperations
from datalake_sdk.common.batch import Batch
from datalake_sdk.common.error_codes import OperationCancelledError, ValidationError
from datalake_sdk.common.utils import ceil_div, maybe_await
from datalake_sdk.constants import (
    BLOCK_BLOB_MAX_BLOCKS,
    DEFAULT_HIGH_LEVEL_CONCURRENCY,
    FILE_DOWNLOAD_DEFAULT_CHUNK_SIZE,
    FILE_MAX_SINGLE_UPLOAD_THRESHOLD,
    FILE_MAX_SIZE_BYTES,
    FILE_UPLOAD_DEFAULT_CHUNK_SIZE,
    FILE_UPLOAD_MAX_CHUNK_SIZE,
)
from datalake_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)

DataProducer = Callable[[int, int], Union[bytes, Awaitable[bytes]]]


class ProgressCounter:
    """Lock-guarded cumulative byte counter shared by concurrent chunks.

    The callback runs under the lock, so successive invocations always see a
    non-decreasing total.
    """

    def __init__(self, on_progress: Optional[TransferProgressCallback] = None):
        self.on_progress = on_progress
        self.loaded_bytes = 0
        self._lock = asyncio.Lock()

    async def add(self, length: int) -> int:
        async with self._lock:
            self.loaded_bytes += length
            loaded = self.loaded_bytes
            if self.on_progress is not None:
                await maybe_await(self.on_progress(TransferProgress(loaded_bytes=loaded)))
        return loaded


def _check_cancelled(cancel_event: Optional[asyncio.Event], stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(f"cancelled before {stage}")


def validate_concurrency(max_concurrency: Optional[int]) -> int:
    if max_concurrency is None:
        return DEFAULT_HIGH_LEVEL_CONCURRENCY
    if max_concurrency <= 0:
        raise ValidationError(
            ValidationError.CONCURRENCY_ERROR,
            f"max_concurrency must be > 0, got {max_concurrency}",
        )
    return max_concurrency


def resolve_single_upload_threshold(threshold: Optional[int]) -> int:
    if threshold is None:
        return FILE_MAX_SINGLE_UPLOAD_THRESHOLD
    if threshold < 1 or threshold > FILE_MAX_SINGLE_UPLOAD_THRESHOLD:
        raise ValidationError(
            ValidationError.THRESHOLD_ERROR,
            f"single_upload_threshold must be >= 1 and <= {FILE_MAX_SINGLE_UPLOAD_THRESHOLD}, "
            f"got {threshold}",
        )
    return threshold


def plan_upload(
    size: int,
    chunk_size: Optional[int] = None,
    max_concurrency: Optional[int] = None,
    enforce_block_limit: bool = True,
) -> TransferPlan:
    """Derive and validate the chunk layout of an upload.

    When ``chunk_size`` is not given it is
    ``max(FILE_UPLOAD_DEFAULT_CHUNK_SIZE, ceil(size / BLOCK_BLOB_MAX_BLOCKS))``.

    Raises:
        ValidationError: If the size exceeds the service maximum, the chunk
            size is outside ``[1, FILE_UPLOAD_MAX_CHUNK_SIZE]``, the
            concurrency is not positive, or the chunk count exceeds
            ``BLOCK_BLOB_MAX_BLOCKS``.
    """
    if size < 0:
        raise ValidationError(ValidationError.RANGE_ERROR, f"size must be >= 0, got {size}")
    if size > FILE_MAX_SIZE_BYTES:
        raise ValidationError(
            ValidationError.SIZE_LIMIT_ERROR,
            f"size must be <= {FILE_MAX_SIZE_BYTES}, got {size}",
        )

    if not chunk_size:
        chunk_size = max(
            FILE_UPLOAD_DEFAULT_CHUNK_SIZE, ceil_div(size, BLOCK_BLOB_MAX_BLOCKS)
        )
    if chunk_size < 1 or chunk_size > FILE_UPLOAD_MAX_CHUNK_SIZE:
        raise ValidationError(
            ValidationError.CHUNK_SIZE_ERROR,
            f"chunk_size must be >= 1 and <= {FILE_UPLOAD_MAX_CHUNK_SIZE}, got {chunk_size}",
        )

    concurrency = validate_concurrency(max_concurrency)

    chunk_count = ceil_div(size, chunk_size)
    if enforce_block_limit and chunk_count > BLOCK_BLOB_MAX_BLOCKS:
        raise ValidationError(
            ValidationError.CHUNK_COUNT_ERROR,
            "The data's size is too big or the chunk_size is too small; "
            f"the number of chunks must be <= {BLOCK_BLOB_MAX_BLOCKS}, got {chunk_count}",
        )

    return TransferPlan(
        total_size=size,
        chunk_size=chunk_size,
        chunk_count=chunk_count,
        concurrency=concurrency,
    )


async def _produce(producer: DataProducer, chunk: ChunkTask) -> bytes:
    body = await maybe_await(producer(chunk.offset, chunk.length))
    if len(body) != chunk.length:
        raise ValidationError(
            ValidationError.RANGE_ERROR,
            f"data producer returned {len(body)} bytes for "
            f"[{chunk.offset}, {chunk.end}), expected {chunk.length}",
        )
    return body


async def upload_data(
    operations: PathOperations,
    size: int,
    producer: DataProducer,
    chunk_size: Optional[int] = None,
    max_concurrency: Optional[int] = None,
    single_upload_threshold: Optional[int] = None,
    close: bool = False,
    on_progress: Optional[TransferProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    metadata: Optional[Dict[str, str]] = None,
    permissions: Optional[str] = None,
    umask: Optional[str] = None,
    conditions: Optional[Dict[str, Any]] = None,
    http_headers: Optional[PathHttpHeaders] = None,
) -> FileUploadResult:
    """Upload ``size`` bytes produced by ``producer`` to a new file.

    Args:
        operations: Remote operations bound to the target file.
        size: Total payload size in bytes.
        producer: Returns the bytes of ``[offset, offset + length)``; it may
            be called for any range, in any order, concurrently.
        chunk_size: Bytes per append. Derived from ``size`` when omitted.
        max_concurrency: Maximum appends in flight.
        single_upload_threshold: Payloads up to this size use one append.
        close: Passed to the final flush.
        on_progress: Receives the cumulative bytes appended after each chunk.
        cancel_event: When set, no further chunk is started.
        metadata: Metadata of the created file.
        permissions: Symbolic or octal permissions of the created file.
        umask: Umask applied to the created file.
        conditions: Access conditions for create; only ``lease_id`` is kept
            for append and flush.
        http_headers: HTTP headers stored with the file on create and on the
            final flush.

    Returns:
        FileUploadResult: The create (size 0) or flush response with the plan.
    """
    plan = plan_upload(size, chunk_size, max_concurrency, enforce_block_limit=False)
    threshold = resolve_single_upload_threshold(single_upload_threshold)
    chunked = size > threshold
    if chunked:
        plan = plan_upload(size, plan.chunk_size, plan.concurrency)

    _check_cancelled(cancel_event, "create")
    create_response = await operations.create(
        PathResourceType.FILE,
        metadata=metadata,
        permissions=permissions,
        umask=umask,
        conditions=conditions,
        http_headers=http_headers,
    )

    # append() with an empty body is rejected by the service
    if size == 0:
        return FileUploadResult(response=create_response, transfer_plan=plan)

    # After the file is created the lease id is the only valid condition
    lease_conditions = (
        {"lease_id": conditions["lease_id"]}
        if conditions and conditions.get("lease_id")
        else None
    )
    progress = ProgressCounter(on_progress)

    if not chunked:
        _check_cancelled(cancel_event, "append")
        body = await _produce(producer, ChunkTask(index=0, offset=0, length=size))
        await operations.append_data(body, 0, size, conditions=lease_conditions)
        await progress.add(size)
        _check_cancelled(cancel_event, "flush")
        flush_response = await operations.flush_data(
            size,
            close=close,
            conditions=lease_conditions,
            http_headers=http_headers,
        )
        return FileUploadResult(
            response=flush_response,
            transfer_plan=plan,
            bytes_transferred=progress.loaded_bytes,
            chunks_appended=1,
        )

    logger.debug(
        f"Uploading {size} bytes in {plan.chunk_count} chunks of {plan.chunk_size} "
        f"with concurrency {plan.concurrency}"
    )
    batch = Batch(plan.concurrency, cancel_event=cancel_event)
    for chunk in plan.chunks():

        async def append_chunk(chunk: ChunkTask = chunk) -> None:
            body = await _produce(producer, chunk)
            await operations.append_data(
                body, chunk.offset, chunk.length, conditions=lease_conditions
            )
            await progress.add(chunk.length)

        batch.add_operation(append_chunk)
    await batch.do()

    _check_cancelled(cancel_event, "flush")
    flush_response = await operations.flush_data(
        size,
        close=close,
        conditions=lease_conditions,
        http_headers=http_headers,
    )
    return FileUploadResult(
        response=flush_response,
        transfer_plan=plan,
        bytes_transferred=progress.loaded_bytes,
        chunks_appended=batch.completed,
    )


async def upload_local_file(
    operations: PathOperations, file_path: str, **kwargs: Any
) -> FileUploadResult:
    """Upload a local file, re-reading each chunk from disk on demand."""
    size = (await aiofiles.os.stat(file_path)).st_size

    async def read_range(offset: int, length: int) -> bytes:
        async with aiofiles.open(file_path, mode="rb") as f:
            await f.seek(offset)
            return await f.read(length)

    return await upload_data(operations, size, read_range, **kwargs)


async def _iterate_chunks(
    stream: Union[AsyncIterable[bytes], Iterable[bytes]], chunk_size: int
) -> AsyncIterable[bytes]:
    """Re-slice an arbitrary byte stream into ``chunk_size`` buffers."""
    buffer = bytearray()
    if hasattr(stream, "__aiter__"):
        async for piece in stream:  # type: ignore[union-attr]
            buffer.extend(piece)
            while len(buffer) >= chunk_size:
                yield bytes(buffer[:chunk_size])
                del buffer[:chunk_size]
    else:
        for piece in stream:  # type: ignore[union-attr]
            buffer.extend(piece)
            while len(buffer) >= chunk_size:
                yield bytes(buffer[:chunk_size])
                del buffer[:chunk_size]
    if buffer:
        yield bytes(buffer)


async def upload_stream(
    operations: PathOperations,
    stream: Union[AsyncIterable[bytes], Iterable[bytes]],
    chunk_size: Optional[int] = None,
    max_concurrency: Optional[int] = None,
    close: bool = False,
    on_progress: Optional[TransferProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    metadata: Optional[Dict[str, str]] = None,
    permissions: Optional[str] = None,
    umask: Optional[str] = None,
    conditions: Optional[Dict[str, Any]] = None,
    http_headers: Optional[PathHttpHeaders] = None,
) -> FileUploadResult:
    """Upload a stream of unknown length.

    The stream is read sequentially into ``chunk_size`` buffers. At most
    ``max_concurrency`` appends are in flight; reading pauses until a slot
    frees up, so at most that many buffers are held in memory.
    """
    chunk_size = chunk_size or FILE_UPLOAD_DEFAULT_CHUNK_SIZE
    if chunk_size < 1 or chunk_size > FILE_UPLOAD_MAX_CHUNK_SIZE:
        raise ValidationError(
            ValidationError.CHUNK_SIZE_ERROR,
            f"chunk_size must be >= 1 and <= {FILE_UPLOAD_MAX_CHUNK_SIZE}, got {chunk_size}",
        )
    concurrency = validate_concurrency(max_concurrency)

    _check_cancelled(cancel_event, "create")
    await operations.create(
        PathResourceType.FILE,
        metadata=metadata,
        permissions=permissions,
        umask=umask,
        conditions=conditions,
        http_headers=http_headers,
    )
    lease_conditions = (
        {"lease_id": conditions["lease_id"]}
        if conditions and conditions.get("lease_id")
        else None
    )

    progress = ProgressCounter(on_progress)
    slots = asyncio.Semaphore(concurrency)
    pending: Set["asyncio.Task[None]"] = set()
    errors: List[BaseException] = []
    offset = 0
    chunks_appended = 0

    async def append_chunk(body: bytes, position: int) -> None:
        nonlocal chunks_appended
        try:
            await operations.append_data(
                body, position, len(body), conditions=lease_conditions
            )
            await progress.add(len(body))
            chunks_appended += 1
        except Exception as e:
            errors.append(e)
        finally:
            slots.release()

    try:
        async for body in _iterate_chunks(stream, chunk_size):
            await slots.acquire()
            if errors:
                slots.release()
                break
            if cancel_event is not None and cancel_event.is_set():
                slots.release()
                errors.append(OperationCancelledError("cancelled before append"))
                break
            task = asyncio.create_task(append_chunk(body, offset))
            pending.add(task)
            task.add_done_callback(pending.discard)
            offset += len(body)
        if pending:
            await asyncio.gather(*pending)
    except BaseException:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        raise

    if errors:
        raise errors[0]

    _check_cancelled(cancel_event, "flush")
    flush_response = await operations.flush_data(
        progress.loaded_bytes,
        close=close,
        conditions=lease_conditions,
        http_headers=http_headers,
    )
    return FileUploadResult(
        response=flush_response,
        bytes_transferred=progress.loaded_bytes,
        chunks_appended=chunks_appended,
    )


async def _resolve_read_range(
    operations: PathOperations, offset: int, count: Optional[int]
) -> int:
    if offset < 0:
        raise ValidationError(ValidationError.RANGE_ERROR, f"offset must be >= 0, got {offset}")
    if count is not None and count < 0:
        raise ValidationError(ValidationError.RANGE_ERROR, f"count must be >= 0, got {count}")

    size = int((await operations.get_properties())["size"])
    if offset > size:
        raise ValidationError(
            ValidationError.RANGE_ERROR,
            f"offset {offset} is beyond the end of the file ({size} bytes)",
        )
    available = size - offset
    return available if count is None else min(count, available)


def plan_download(
    count: int, chunk_size: Optional[int] = None, max_concurrency: Optional[int] = None
) -> TransferPlan:
    chunk_size = chunk_size or FILE_DOWNLOAD_DEFAULT_CHUNK_SIZE
    if chunk_size < 1:
        raise ValidationError(
            ValidationError.CHUNK_SIZE_ERROR, f"chunk_size must be >= 1, got {chunk_size}"
        )
    return TransferPlan(
        total_size=count,
        chunk_size=chunk_size,
        chunk_count=ceil_div(count, chunk_size),
        concurrency=validate_concurrency(max_concurrency),
    )


async def _download(
    operations: PathOperations,
    offset: int,
    count: Optional[int],
    sink: Callable[[ChunkTask, bytes], Awaitable[None]],
    chunk_size: Optional[int],
    max_concurrency: Optional[int],
    on_progress: Optional[TransferProgressCallback],
    cancel_event: Optional[asyncio.Event],
    prepare: Optional[Callable[[int], Awaitable[None]]] = None,
) -> TransferPlan:
    if chunk_size is not None and chunk_size < 1:
        raise ValidationError(
            ValidationError.CHUNK_SIZE_ERROR, f"chunk_size must be >= 1, got {chunk_size}"
        )
    validate_concurrency(max_concurrency)

    _check_cancelled(cancel_event, "read")
    length = await _resolve_read_range(operations, offset, count)
    plan = plan_download(length, chunk_size, max_concurrency)
    if prepare is not None:
        await prepare(length)
    if length == 0:
        return plan

    progress = ProgressCounter(on_progress)
    batch = Batch(plan.concurrency, cancel_event=cancel_event)
    for chunk in plan.chunks(start=offset):

        async def read_chunk(chunk: ChunkTask = chunk) -> None:
            data = await operations.read(chunk.offset, chunk.length)
            if len(data) != chunk.length:
                raise ValidationError(
                    ValidationError.RANGE_ERROR,
                    f"read returned {len(data)} bytes for "
                    f"[{chunk.offset}, {chunk.end}), expected {chunk.length}",
                )
            await sink(chunk, data)
            await progress.add(chunk.length)

        batch.add_operation(read_chunk)
    await batch.do()
    return plan


async def download_to_buffer(
    operations: PathOperations,
    offset: int = 0,
    count: Optional[int] = None,
    chunk_size: Optional[int] = None,
    max_concurrency: Optional[int] = None,
    on_progress: Optional[TransferProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> bytearray:
    """Read ``[offset, offset + count)`` with parallel ranged reads.

    ``count=None`` reads to the end of the file.
    """
    buffer = bytearray()

    async def allocate(length: int) -> None:
        buffer.extend(bytes(length))

    async def write(chunk: ChunkTask, data: bytes) -> None:
        start = chunk.offset - offset
        buffer[start : start + chunk.length] = data

    await _download(
        operations,
        offset,
        count,
        write,
        chunk_size,
        max_concurrency,
        on_progress,
        cancel_event,
        prepare=allocate,
    )
    return buffer


async def download_to_file(
    operations: PathOperations,
    file_path: str,
    offset: int = 0,
    count: Optional[int] = None,
    chunk_size: Optional[int] = None,
    max_concurrency: Optional[int] = None,
    on_progress: Optional[TransferProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> TransferPlan:
    """Read ``[offset, offset + count)`` into a local file, one handle per chunk."""

    async def allocate(length: int) -> None:
        async with aiofiles.open(file_path, mode="wb") as f:
            await f.truncate(length)

    async def write(chunk: ChunkTask, data: bytes) -> None:
        async with aiofiles.open(file_path, mode="r+b") as f:
            await f.seek(chunk.offset - offset)
            await f.write(data)

    return await _download(
        operations,
        offset,
        count,
        write,
        chunk_size,
        max_concurrency,
        on_progress,
        cancel_event,
        prepare=allocate,
    )

"""File view of a Data Lake path: low-level append/flush/read and the chunked transfers."""

import asyncio
from typing import Any, AsyncIterable, Dict, Iterable, Optional, Union

from datalake_sdk.clients.datalake import transfer
from datalake_sdk.clients.datalake.models import (
    FileUploadResult,
    PathHttpHeaders,
    PathResourceType,
    TransferPlan,
    TransferProgressCallback,
)
from datalake_sdk.clients.datalake.path import DataLakePathClient
from datalake_sdk.common.error_codes import ValidationError
from datalake_sdk.observability.traces_adaptor import traced


class DataLakeFileClient:
    """
    Client for a single Data Lake file.

    Creation always uses the ``file`` resource type; the remaining path
    operations are forwarded to the wrapped :class:`DataLakePathClient`.

    Example:
        >>> file_client = directory_client.get_file_client("events.parquet")
        >>> await file_client.upload_file("/tmp/events.parquet", max_concurrency=4)
        >>> data = await file_client.read_to_bytes()
    """

    def __init__(self, path_client: DataLakePathClient):
        self.path_client = path_client

    def __getattr__(self, name: str) -> Any:
        if name == "path_client":
            raise AttributeError(name)
        return getattr(self.path_client, name)

    @property
    def path(self) -> str:
        return self.path_client.path

    @property
    def operations(self):
        return self.path_client.operations

    async def create(
        self,
        metadata: Optional[Dict[str, str]] = None,
        permissions: Optional[str] = None,
        umask: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
        http_headers: Optional[PathHttpHeaders] = None,
    ) -> Dict[str, Any]:
        return await self.path_client.create(
            PathResourceType.FILE,
            metadata=metadata,
            permissions=permissions,
            umask=umask,
            conditions=conditions,
            http_headers=http_headers,
        )

    async def create_if_not_exists(
        self,
        metadata: Optional[Dict[str, str]] = None,
        permissions: Optional[str] = None,
        umask: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self.path_client.create_if_not_exists(
            PathResourceType.FILE,
            metadata=metadata,
            permissions=permissions,
            umask=umask,
        )

    @traced("DataLakeFileClient-append")
    async def append(
        self,
        body: bytes,
        offset: int,
        length: Optional[int] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Stage ``body`` at ``offset``; nothing is visible until :meth:`flush`."""
        length = len(body) if length is None else length
        if offset < 0 or length < 1 or length > len(body):
            raise ValidationError(
                ValidationError.RANGE_ERROR,
                f"invalid append range offset={offset} length={length} "
                f"for a body of {len(body)} bytes",
            )
        return await self.operations.append_data(
            body[:length], offset, length, conditions=conditions
        )

    @traced("DataLakeFileClient-flush")
    async def flush(
        self,
        position: int,
        close: bool = False,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Commit everything appended up to ``position``."""
        if position < 0:
            raise ValidationError(
                ValidationError.RANGE_ERROR, f"position must be >= 0, got {position}"
            )
        return await self.operations.flush_data(
            position, close=close, conditions=conditions
        )

    @traced("DataLakeFileClient-read")
    async def read(self, offset: int = 0, count: Optional[int] = None) -> bytes:
        """Read a range with a single request."""
        if offset < 0 or (count is not None and count < 0):
            raise ValidationError(
                ValidationError.RANGE_ERROR,
                f"invalid read range offset={offset} count={count}",
            )
        return await self.operations.read(offset, count)

    @traced("DataLakeFileClient-upload")
    async def upload(
        self,
        data: Union[bytes, bytearray, memoryview],
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
        """Create the file and upload an in-memory buffer, overwriting any content."""
        view = memoryview(data)

        def read_range(offset: int, length: int) -> bytes:
            return bytes(view[offset : offset + length])

        return await transfer.upload_data(
            self.operations,
            len(view),
            read_range,
            chunk_size=chunk_size,
            max_concurrency=max_concurrency,
            single_upload_threshold=single_upload_threshold,
            close=close,
            on_progress=on_progress,
            cancel_event=cancel_event,
            metadata=metadata,
            permissions=permissions,
            umask=umask,
            conditions=conditions,
            http_headers=http_headers,
        )

    @traced("DataLakeFileClient-uploadFile")
    async def upload_file(self, file_path: str, **kwargs: Any) -> FileUploadResult:
        """Create the file and upload a local file. Accepts the options of :meth:`upload`."""
        return await transfer.upload_local_file(self.operations, file_path, **kwargs)

    @traced("DataLakeFileClient-uploadStream")
    async def upload_stream(
        self,
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
        return await transfer.upload_stream(
            self.operations,
            stream,
            chunk_size=chunk_size,
            max_concurrency=max_concurrency,
            close=close,
            on_progress=on_progress,
            cancel_event=cancel_event,
            metadata=metadata,
            permissions=permissions,
            umask=umask,
            conditions=conditions,
            http_headers=http_headers,
        )

    @traced("DataLakeFileClient-readToBytes")
    async def read_to_bytes(
        self,
        offset: int = 0,
        count: Optional[int] = None,
        chunk_size: Optional[int] = None,
        max_concurrency: Optional[int] = None,
        on_progress: Optional[TransferProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> bytes:
        """Download a range with parallel ranged reads."""
        buffer = await transfer.download_to_buffer(
            self.operations,
            offset=offset,
            count=count,
            chunk_size=chunk_size,
            max_concurrency=max_concurrency,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )
        return bytes(buffer)

    @traced("DataLakeFileClient-readToFile")
    async def read_to_file(
        self,
        file_path: str,
        offset: int = 0,
        count: Optional[int] = None,
        chunk_size: Optional[int] = None,
        max_concurrency: Optional[int] = None,
        on_progress: Optional[TransferProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TransferPlan:
        return await transfer.download_to_file(
            self.operations,
            file_path,
            offset=offset,
            count=count,
            chunk_size=chunk_size,
            max_concurrency=max_concurrency,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )

"""
Azure Data Lake Storage Gen2 implementation of :class:`PathOperations`.

Delegates to the async clients of ``azure-storage-file-datalake``. The
recursive access control and paginated delete calls go straight to the
generated operation layer so the continuation token stays under the caller's
control. The public clients drop that token, which is why the private
``_client``, ``_serialize`` and ``_shared`` modules are imported here; the
``storage`` extra pins the SDK major version for that reason.

Example:
    >>> from azure.storage.filedatalake.aio import FileSystemClient
    >>> from datalake_sdk.clients.datalake.azure_operations import AzurePathOperations
    >>>
    >>> file_system = FileSystemClient(account_url, "my-fs", credential=credential)
    >>> operations = AzurePathOperations(file_system, "raw/2024")
    >>> await operations.create(PathResourceType.DIRECTORY)
"""

from typing import Any, Dict, Optional

from azure.core import MatchConditions
from azure.storage.filedatalake import ContentSettings
from azure.storage.filedatalake._serialize import (
    get_access_conditions,
    get_mod_conditions,
)
from azure.storage.filedatalake._shared.response_handlers import (
    return_headers_and_deserialized,
    return_response_headers,
)
from azure.storage.filedatalake.aio import FileSystemClient

from datalake_sdk.clients.datalake.models import (
    AccessControlChangeMode,
    AccessControlRecursiveBatch,
    PathHttpHeaders,
    PathResourceType,
)
from datalake_sdk.clients.datalake.operations import PathOperations
from datalake_sdk.clients.datalake.serialization import to_change_failures
from datalake_sdk.common.error_codes import ValidationError
from datalake_sdk.constants import ETAG_ANY
from datalake_sdk.observability.logger_adaptor import get_logger
from datalake_sdk.observability.traces_adaptor import traced

logger = get_logger(__name__)


def to_azure_conditions(conditions: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Translate generic access conditions into azure-storage keyword arguments.

    Supported keys: ``if_match``, ``if_none_match``, ``if_modified_since``,
    ``if_unmodified_since`` and ``lease_id``.
    """
    if not conditions:
        return {}

    kwargs: Dict[str, Any] = {}
    if conditions.get("if_none_match") == ETAG_ANY:
        kwargs["etag"] = ETAG_ANY
        kwargs["match_condition"] = MatchConditions.IfMissing
    elif conditions.get("if_none_match"):
        kwargs["etag"] = conditions["if_none_match"]
        kwargs["match_condition"] = MatchConditions.IfModified
    elif conditions.get("if_match"):
        kwargs["etag"] = conditions["if_match"]
        kwargs["match_condition"] = MatchConditions.IfNotModified
    if conditions.get("if_modified_since"):
        kwargs["if_modified_since"] = conditions["if_modified_since"]
    if conditions.get("if_unmodified_since"):
        kwargs["if_unmodified_since"] = conditions["if_unmodified_since"]
    if conditions.get("lease_id"):
        kwargs["lease"] = conditions["lease_id"]
    return kwargs


def to_content_settings(http_headers: Optional[PathHttpHeaders]) -> Dict[str, Any]:
    """Return ``content_settings`` keyword arguments for ``http_headers``, if any."""
    if http_headers is None:
        return {}
    return {"content_settings": ContentSettings(**http_headers.model_dump(exclude_none=True))}


class AzurePathOperations(PathOperations):
    """
    Path operations backed by ``azure.storage.filedatalake.aio``.

    Attributes:
        file_system_client (FileSystemClient): Client of the containing file system.
        path (str): Path of the directory or file inside the file system.
    """

    def __init__(self, file_system_client: FileSystemClient, path: str):
        self.file_system_client = file_system_client
        self.path = path.strip("/")
        self._directory_client = file_system_client.get_directory_client(self.path)
        self._file_client = file_system_client.get_file_client(self.path)

    @traced("DataLakePathOperations-setAccessControlRecursive")
    async def change_access_control_recursive(
        self,
        mode: AccessControlChangeMode,
        acl: str,
        max_records: Optional[int] = None,
        continuation: Optional[str] = None,
        force_flag: Optional[bool] = None,
    ) -> AccessControlRecursiveBatch:
        headers, response = await self._directory_client._client.path.set_access_control_recursive(
            mode=AccessControlChangeMode(mode).value,
            acl=acl,
            max_records=max_records,
            continuation=continuation,
            force_flag=force_flag,
            cls=return_headers_and_deserialized,
        )
        return AccessControlRecursiveBatch(
            continuation=headers.get("continuation"),
            failure_count=response.failure_count or 0,
            directories_successful=response.directories_successful or 0,
            files_successful=response.files_successful or 0,
            failed_entries=to_change_failures(response.failed_entries),
        )

    @traced("DataLakePathOperations-create")
    async def create(
        self,
        resource_type: PathResourceType,
        metadata: Optional[Dict[str, str]] = None,
        permissions: Optional[str] = None,
        umask: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
        http_headers: Optional[PathHttpHeaders] = None,
    ) -> Dict[str, Any]:
        kwargs = {**to_azure_conditions(conditions), **to_content_settings(http_headers)}
        resource_type = PathResourceType(resource_type)
        if resource_type == PathResourceType.DIRECTORY:
            await self._directory_client.create_directory(
                metadata=metadata, permissions=permissions, umask=umask, **kwargs
            )
        else:
            await self._file_client.create_file(
                metadata=metadata, permissions=permissions, umask=umask, **kwargs
            )
        return {"path": self.path, "resource_type": resource_type.value}

    @traced("DataLakePathOperations-delete")
    async def delete(
        self,
        recursive: Optional[bool] = None,
        continuation: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        kwargs = to_azure_conditions(conditions)
        return await self._directory_client._client.path.delete(
            recursive=recursive,
            continuation=continuation,
            lease_access_conditions=get_access_conditions(kwargs.pop("lease", None)),
            modified_access_conditions=get_mod_conditions(kwargs),
            cls=return_response_headers,
        )

    @traced("DataLakePathOperations-exists")
    async def exists(self) -> bool:
        return await self._file_client.exists()

    @traced("DataLakePathOperations-getAccessControl")
    async def get_access_control(self, upn: Optional[bool] = None) -> Dict[str, Any]:
        return await self._file_client.get_access_control(upn=upn)

    @traced("DataLakePathOperations-setAccessControl")
    async def set_access_control(
        self,
        acl: Optional[str] = None,
        permissions: Optional[str] = None,
        owner: Optional[str] = None,
        group: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self._file_client.set_access_control(
            owner=owner,
            group=group,
            permissions=permissions,
            acl=acl,
            **to_azure_conditions(conditions),
        )

    @traced("DataLakePathOperations-rename")
    async def rename(
        self,
        destination_file_system: str,
        destination_path: str,
        destination_query: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not destination_file_system or not destination_path:
            raise ValidationError(
                ValidationError.DESTINATION_PATH_ERROR,
                "destination file system and path are required",
            )
        new_name = f"{destination_file_system}/{destination_path.lstrip('/')}"
        if destination_query:
            new_name = f"{new_name}?{destination_query}"
        await self._file_client.rename_file(new_name, **to_azure_conditions(conditions))
        return {"file_system": destination_file_system, "path": destination_path}

    @traced("DataLakePathOperations-appendData")
    async def append_data(
        self,
        body: bytes,
        position: int,
        content_length: int,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self._file_client.append_data(
            body, offset=position, length=content_length, **to_azure_conditions(conditions)
        )

    @traced("DataLakePathOperations-flushData")
    async def flush_data(
        self,
        position: int,
        close: bool = False,
        conditions: Optional[Dict[str, Any]] = None,
        http_headers: Optional[PathHttpHeaders] = None,
    ) -> Dict[str, Any]:
        return await self._file_client.flush_data(
            position,
            close=close,
            **to_azure_conditions(conditions),
            **to_content_settings(http_headers),
        )

    @traced("DataLakePathOperations-read")
    async def read(self, offset: int = 0, count: Optional[int] = None) -> bytes:
        downloader = await self._file_client.download_file(offset=offset, length=count)
        return await downloader.readall()

    @traced("DataLakePathOperations-getProperties")
    async def get_properties(self) -> Dict[str, Any]:
        properties = await self._file_client.get_file_properties()
        content_settings = getattr(properties, "content_settings", None)
        return {
            "size": properties.size,
            "etag": properties.etag,
            "last_modified": properties.last_modified,
            "metadata": dict(properties.metadata or {}),
            "http_headers": PathHttpHeaders(
                cache_control=getattr(content_settings, "cache_control", None),
                content_type=getattr(content_settings, "content_type", None),
                content_encoding=getattr(content_settings, "content_encoding", None),
                content_language=getattr(content_settings, "content_language", None),
                content_disposition=getattr(content_settings, "content_disposition", None),
                content_md5=getattr(content_settings, "content_md5", None),
            ),
        }

    @traced("DataLakePathOperations-setMetadata")
    async def set_metadata(
        self,
        metadata: Dict[str, str],
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self._file_client.set_metadata(
            metadata, **to_azure_conditions(conditions)
        )

    @traced("DataLakePathOperations-setHttpHeaders")
    async def set_http_headers(
        self,
        http_headers: PathHttpHeaders,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self._file_client.set_http_headers(
            **to_content_settings(http_headers), **to_azure_conditions(conditions)
        )

    def child(self, name: str) -> "AzurePathOperations":
        return AzurePathOperations(self.file_system_client, f"{self.path}/{name}")

    async def close(self) -> None:
        for client in (self._directory_client, self._file_client):
            try:
                await client.close()
            except Exception as e:
                logger.warning(f"Error closing client for {self.path}: {str(e)}")

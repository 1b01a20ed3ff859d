"""
Path client shared by directories and files.

:class:`DataLakePathClient` exposes the operations that apply to any path.
:class:`~datalake_sdk.clients.datalake.directory.DataLakeDirectoryClient`
and :class:`~datalake_sdk.clients.datalake.file.DataLakeFileClient` wrap one
and fix the resource type instead of subclassing it.
"""

import asyncio
from typing import Any, Dict, Optional, Sequence

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError

from datalake_sdk.clients.datalake.acl import change_access_control_recursive
from datalake_sdk.clients.datalake.models import (
    AccessControlChangeMode,
    AccessControlChangeResult,
    AccessControlEntry,
    AccessControlProgressCallback,
    PathAccessControl,
    PathHttpHeaders,
    PathPermissions,
    PathResourceType,
    RemoveAccessControlEntry,
)
from datalake_sdk.clients.datalake.operations import PathOperations
from datalake_sdk.clients.datalake.serialization import (
    parse_acl,
    parse_permissions,
    to_acl_string,
    to_permissions_string,
)
from datalake_sdk.common.error_codes import ValidationError
from datalake_sdk.common.utils import normalize_continuation
from datalake_sdk.constants import ETAG_ANY
from datalake_sdk.observability.logger_adaptor import get_logger
from datalake_sdk.observability.traces_adaptor import traced

logger = get_logger(__name__)


class DataLakePathClient:
    """
    Client for a single Data Lake path (directory or file).

    Attributes:
        operations (PathOperations): Remote operations bound to this path.
        file_system_name (str): Name of the containing file system.
        path (str): Path inside the file system.
    """

    def __init__(self, operations: PathOperations, file_system_name: str, path: str):
        self.operations = operations
        self.file_system_name = file_system_name
        self.path = path.strip("/")

    @property
    def name(self) -> str:
        return self.path

    def child(self, name: str) -> "DataLakePathClient":
        """Return a path client for ``name`` below this path."""
        return DataLakePathClient(
            self.operations.child(name), self.file_system_name, f"{self.path}/{name}"
        )

    @traced("DataLakePathClient-create")
    async def create(
        self,
        resource_type: PathResourceType,
        metadata: Optional[Dict[str, str]] = None,
        permissions: Optional[str] = None,
        umask: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
        http_headers: Optional[PathHttpHeaders] = None,
    ) -> Dict[str, Any]:
        """Create this path as a directory or a file."""
        return await self.operations.create(
            PathResourceType(resource_type),
            metadata=metadata,
            permissions=permissions,
            umask=umask,
            conditions=conditions or {},
            http_headers=http_headers,
        )

    @traced("DataLakePathClient-createIfNotExists")
    async def create_if_not_exists(
        self,
        resource_type: PathResourceType,
        metadata: Optional[Dict[str, str]] = None,
        permissions: Optional[str] = None,
        umask: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create this path unless it already exists.

        Returns:
            Dict[str, Any]: The create response with ``succeeded`` set to
            False when the path already existed.
        """
        try:
            response = await self.create(
                resource_type,
                metadata=metadata,
                permissions=permissions,
                umask=umask,
                conditions={"if_none_match": ETAG_ANY},
            )
            return {"succeeded": True, **response}
        except ResourceExistsError as e:
            logger.debug(f"Path {self.path} already exists: {str(e)}")
            return {"succeeded": False}

    @traced("DataLakePathClient-exists")
    async def exists(self) -> bool:
        return await self.operations.exists()

    @traced("DataLakePathClient-delete")
    async def delete(
        self,
        recursive: Optional[bool] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Delete this path, following continuation tokens until the service is done."""
        continuation: Optional[str] = None
        rounds = 0
        while True:
            response = await self.operations.delete(
                recursive=recursive,
                continuation=continuation,
                conditions=conditions or {},
            )
            rounds += 1
            continuation = normalize_continuation((response or {}).get("continuation"))
            if not continuation:
                break
        logger.debug(f"Deleted {self.path} in {rounds} calls")
        return response

    @traced("DataLakePathClient-deleteIfExists")
    async def delete_if_exists(
        self,
        recursive: Optional[bool] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            response = await self.delete(recursive=recursive, conditions=conditions)
            return {"succeeded": True, **(response or {})}
        except ResourceNotFoundError as e:
            logger.debug(f"Path {self.path} does not exist: {str(e)}")
            return {"succeeded": False}

    @traced("DataLakePathClient-getProperties")
    async def get_properties(self) -> Dict[str, Any]:
        """Return ``size``, ``metadata`` and ``http_headers`` of this path, plus
        whatever else the service reports."""
        return await self.operations.get_properties()

    @traced("DataLakePathClient-setMetadata")
    async def set_metadata(
        self,
        metadata: Optional[Dict[str, str]] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Replace all user-defined metadata; ``None`` or ``{}`` clears it."""
        return await self.operations.set_metadata(
            dict(metadata or {}), conditions=conditions or {}
        )

    @traced("DataLakePathClient-setHttpHeaders")
    async def set_http_headers(
        self,
        http_headers: Optional[PathHttpHeaders] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        # Headers that are left out are cleared on the service
        return await self.operations.set_http_headers(
            http_headers or PathHttpHeaders(), conditions=conditions or {}
        )

    @traced("DataLakePathClient-getAccessControl")
    async def get_access_control(
        self, user_principal_name: Optional[bool] = None
    ) -> PathAccessControl:
        response = await self.operations.get_access_control(upn=user_principal_name)
        return PathAccessControl(
            owner=response.get("owner"),
            group=response.get("group"),
            permissions=parse_permissions(response.get("permissions")),
            acl=parse_acl(response.get("acl")),
        )

    @traced("DataLakePathClient-setAccessControl")
    async def set_access_control(
        self,
        acl: Sequence[AccessControlEntry],
        owner: Optional[str] = None,
        group: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Replace the ACL of this path only (not its children)."""
        return await self.operations.set_access_control(
            acl=to_acl_string(acl),
            owner=owner,
            group=group,
            conditions=conditions or {},
        )

    @traced("DataLakePathClient-setPermissions")
    async def set_permissions(
        self,
        permissions: PathPermissions,
        owner: Optional[str] = None,
        group: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self.operations.set_access_control(
            permissions=to_permissions_string(permissions),
            owner=owner,
            group=group,
            conditions=conditions or {},
        )

    @traced("DataLakePathClient-setAccessControlRecursive")
    async def set_access_control_recursive(
        self,
        acl: Sequence[AccessControlEntry],
        batch_size: Optional[int] = None,
        max_batches: Optional[int] = None,
        continuation_token: Optional[str] = None,
        continue_on_failure: Optional[bool] = None,
        on_progress: Optional[AccessControlProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AccessControlChangeResult:
        """Replace the ACL of this path and every path below it."""
        return await change_access_control_recursive(
            self.operations,
            AccessControlChangeMode.SET,
            acl,
            batch_size=batch_size,
            max_batches=max_batches,
            continuation_token=continuation_token,
            continue_on_failure=continue_on_failure,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )

    @traced("DataLakePathClient-updateAccessControlRecursive")
    async def update_access_control_recursive(
        self,
        acl: Sequence[AccessControlEntry],
        batch_size: Optional[int] = None,
        max_batches: Optional[int] = None,
        continuation_token: Optional[str] = None,
        continue_on_failure: Optional[bool] = None,
        on_progress: Optional[AccessControlProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AccessControlChangeResult:
        """Merge ``acl`` into the ACL of this path and every path below it."""
        return await change_access_control_recursive(
            self.operations,
            AccessControlChangeMode.MODIFY,
            acl,
            batch_size=batch_size,
            max_batches=max_batches,
            continuation_token=continuation_token,
            continue_on_failure=continue_on_failure,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )

    @traced("DataLakePathClient-removeAccessControlRecursive")
    async def remove_access_control_recursive(
        self,
        acl: Sequence[RemoveAccessControlEntry],
        batch_size: Optional[int] = None,
        max_batches: Optional[int] = None,
        continuation_token: Optional[str] = None,
        continue_on_failure: Optional[bool] = None,
        on_progress: Optional[AccessControlProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AccessControlChangeResult:
        """Remove ``acl`` entries from this path and every path below it."""
        return await change_access_control_recursive(
            self.operations,
            AccessControlChangeMode.REMOVE,
            acl,
            batch_size=batch_size,
            max_batches=max_batches,
            continuation_token=continuation_token,
            continue_on_failure=continue_on_failure,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )

    @traced("DataLakePathClient-move")
    async def move(
        self,
        destination_path: str,
        destination_file_system: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Move this path, optionally into another file system.

        ``destination_path`` may carry a single query string, e.g. a SAS for
        the destination.

        Raises:
            ValidationError: If ``destination_path`` holds more than one ``?``.
        """
        parts = destination_path.split("?")
        if len(parts) > 2:
            raise ValidationError(
                ValidationError.DESTINATION_PATH_ERROR,
                "Destination path should not contain more than one query string",
            )
        query = parts[1] if len(parts) == 2 else None
        return await self.operations.rename(
            destination_file_system or self.file_system_name,
            parts[0],
            destination_query=query,
            conditions=conditions or {},
        )

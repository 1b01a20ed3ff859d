"""Interface to the remote path REST operations.

The propagator, the transfer engine and the path clients only sequence calls
to this interface. Wire serialization, retries and authentication belong to
the implementation (see :mod:`datalake_sdk.clients.datalake.azure_operations`).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from datalake_sdk.clients.datalake.models import (
    AccessControlChangeMode,
    AccessControlRecursiveBatch,
    PathHttpHeaders,
    PathResourceType,
)


class PathOperations(ABC):
    """Remote operations on a single Data Lake path (directory or file)."""

    @abstractmethod
    async def change_access_control_recursive(
        self,
        mode: AccessControlChangeMode,
        acl: str,
        max_records: Optional[int] = None,
        continuation: Optional[str] = None,
        force_flag: Optional[bool] = None,
    ) -> AccessControlRecursiveBatch:
        """Change the ACL of one batch of paths below this path.

        Args:
            mode: ``set``, ``modify`` or ``remove``.
            acl: Serialized ACL.
            max_records: Maximum number of paths changed by this call.
            continuation: Token returned by the previous call, if any.
            force_flag: Keep going when individual entries fail.
        """

    @abstractmethod
    async def create(
        self,
        resource_type: PathResourceType,
        metadata: Optional[Dict[str, str]] = None,
        permissions: Optional[str] = None,
        umask: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
        http_headers: Optional[PathHttpHeaders] = None,
    ) -> Dict[str, Any]:
        """Create the path as a directory or file."""

    @abstractmethod
    async def delete(
        self,
        recursive: Optional[bool] = None,
        continuation: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Delete the path; the response carries ``continuation`` when more work remains."""

    @abstractmethod
    async def exists(self) -> bool:
        """Return whether the path exists."""

    @abstractmethod
    async def get_access_control(self, upn: Optional[bool] = None) -> Dict[str, Any]:
        """Return ``owner``, ``group``, ``permissions`` and ``acl`` of the path."""

    @abstractmethod
    async def set_access_control(
        self,
        acl: Optional[str] = None,
        permissions: Optional[str] = None,
        owner: Optional[str] = None,
        group: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Set the ACL or the permissions of the path itself."""

    @abstractmethod
    async def rename(
        self,
        destination_file_system: str,
        destination_path: str,
        destination_query: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Move the path to ``destination_file_system/destination_path``."""

    @abstractmethod
    async def append_data(
        self,
        body: bytes,
        position: int,
        content_length: int,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Stage ``body`` at ``position`` without committing it."""

    @abstractmethod
    async def flush_data(
        self,
        position: int,
        close: bool = False,
        conditions: Optional[Dict[str, Any]] = None,
        http_headers: Optional[PathHttpHeaders] = None,
    ) -> Dict[str, Any]:
        """Commit all appended data up to ``position``; ``http_headers`` replace the stored ones."""

    @abstractmethod
    async def read(self, offset: int = 0, count: Optional[int] = None) -> bytes:
        """Read ``count`` bytes starting at ``offset``; the rest of the file if ``count`` is None."""

    @abstractmethod
    async def get_properties(self) -> Dict[str, Any]:
        """Return the path properties; ``size`` holds the content length."""

    @abstractmethod
    async def set_metadata(
        self,
        metadata: Dict[str, str],
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Replace all user-defined metadata of the path."""

    @abstractmethod
    async def set_http_headers(
        self,
        http_headers: PathHttpHeaders,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Replace the HTTP headers stored with the path."""

    @abstractmethod
    def child(self, name: str) -> "PathOperations":
        """Return operations bound to ``name`` below this path."""

    async def close(self) -> None:
        """Release any transport resources held by this instance."""

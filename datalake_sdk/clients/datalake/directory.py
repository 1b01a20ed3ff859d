from typing import Any, Dict, Optional

from datalake_sdk.clients.datalake.file import DataLakeFileClient
from datalake_sdk.clients.datalake.models import PathHttpHeaders, PathResourceType
from datalake_sdk.clients.datalake.path import DataLakePathClient


class DataLakeDirectoryClient:
    """Directory view of a :class:`DataLakePathClient`.

    Creation always uses the ``directory`` resource type; every other path
    operation (access control, delete, move, ...) is forwarded unchanged.
    """

    def __init__(self, path_client: DataLakePathClient):
        self.path_client = path_client

    def __getattr__(self, name: str) -> Any:
        # only reached for attributes not defined on the directory client
        if name == "path_client":
            raise AttributeError(name)
        return getattr(self.path_client, name)

    @property
    def path(self) -> str:
        return self.path_client.path

    async def create(
        self,
        metadata: Optional[Dict[str, str]] = None,
        permissions: Optional[str] = None,
        umask: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
        http_headers: Optional[PathHttpHeaders] = None,
    ) -> Dict[str, Any]:
        return await self.path_client.create(
            PathResourceType.DIRECTORY,
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
            PathResourceType.DIRECTORY,
            metadata=metadata,
            permissions=permissions,
            umask=umask,
        )

    def get_subdirectory_client(self, name: str) -> "DataLakeDirectoryClient":
        return DataLakeDirectoryClient(self.path_client.child(name))

    def get_file_client(self, name: str) -> DataLakeFileClient:
        return DataLakeFileClient(self.path_client.child(name))

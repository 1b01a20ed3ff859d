"""
Azure Data Lake Storage Gen2 clients.

The module includes:
- DataLakePathClient, DataLakeDirectoryClient, DataLakeFileClient: Path clients
- PathOperations: Interface to the remote path operations
- AzureAuthProvider: Credential creation

The ``azure-storage-file-datalake`` backed pieces live in
:mod:`datalake_sdk.clients.datalake.client` (``DataLakeClient``) and
:mod:`datalake_sdk.clients.datalake.azure_operations` (``AzurePathOperations``)
and need the ``storage`` extra.
"""

from .auth import AzureAuthProvider
from .directory import DataLakeDirectoryClient
from .file import DataLakeFileClient
from .operations import PathOperations
from .path import DataLakePathClient

__all__ = [
    "AzureAuthProvider",
    "DataLakeDirectoryClient",
    "DataLakeFileClient",
    "DataLakePathClient",
    "PathOperations",
]

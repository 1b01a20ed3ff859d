"""
Top-level Data Lake client.

Example:
    >>> from datalake_sdk.clients.datalake.client import DataLakeClient
    >>>
    >>> credentials = {
    ...     "tenant_id": "your-tenant-id",
    ...     "client_id": "your-client-id",
    ...     "client_secret": "your-client-secret",
    ... }
    >>> async with DataLakeClient(
    ...     file_system_name="raw", account_name="mystorage", credentials=credentials
    ... ) as client:
    ...     await client.load()
    ...     directory = client.get_directory_client("events/2024")
    ...     result = await directory.update_access_control_recursive(acl, batch_size=2000)
"""

from typing import Any, Dict, Optional

from azure.core.exceptions import AzureError, ClientAuthenticationError
from azure.storage.filedatalake.aio import FileSystemClient

from datalake_sdk.clients import ClientInterface
from datalake_sdk.clients.datalake.auth import AzureAuthProvider, DataLakeCredential
from datalake_sdk.clients.datalake.azure_operations import AzurePathOperations
from datalake_sdk.clients.datalake.directory import DataLakeDirectoryClient
from datalake_sdk.clients.datalake.file import DataLakeFileClient
from datalake_sdk.clients.datalake.path import DataLakePathClient
from datalake_sdk.common.error_codes import ClientError
from datalake_sdk.constants import DATALAKE_URL_TEMPLATE
from datalake_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)


class DataLakeClient(ClientInterface):
    """
    Entry point for one Data Lake file system.

    Attributes:
        account_url (str): Endpoint of the storage account's ``dfs`` service.
        file_system_name (str): Name of the file system (container).
        credentials (Dict[str, Any]): Raw credential fields.
        auth_type (str): ``service_principal`` or ``account_key``.
        credential (Optional[DataLakeCredential]): Credential created by :meth:`load`.
    """

    def __init__(
        self,
        file_system_name: str,
        account_url: Optional[str] = None,
        account_name: Optional[str] = None,
        credentials: Optional[Dict[str, Any]] = None,
        auth_type: str = "service_principal",
        **kwargs: Any,
    ):
        """
        Args:
            file_system_name (str): Name of the file system.
            account_url (Optional[str]): Account endpoint. Derived from
                ``account_name`` when omitted.
            account_name (Optional[str]): Storage account name.
            credentials (Optional[Dict[str, Any]]): Credential fields for ``auth_type``.
            auth_type (str): Authentication method.
            **kwargs: Passed through to the azure-storage ``FileSystemClient``.
        """
        if not account_url:
            if not account_name:
                raise ClientError(
                    ClientError.CREDENTIALS_PARSE_ERROR,
                    "Either account_url or account_name is required",
                )
            account_url = DATALAKE_URL_TEMPLATE.format(account_name=account_name)
        self.account_url = account_url
        self.file_system_name = file_system_name
        self.credentials = credentials or {}
        self.auth_type = auth_type
        self.credential: Optional[DataLakeCredential] = None
        self.auth_provider = AzureAuthProvider()
        self._file_system_client: Optional[FileSystemClient] = None
        self._kwargs = kwargs

    async def load(self, credentials: Optional[Dict[str, Any]] = None) -> None:
        """
        Create the credential and the file system client.

        Args:
            credentials (Optional[Dict[str, Any]]): Overrides the credentials
                passed to ``__init__``.

        Raises:
            ClientError: If the credential cannot be created.
        """
        if credentials:
            self.credentials = credentials

        try:
            logger.info(f"Loading Data Lake client for file system {self.file_system_name}")
            self.credential = await self.auth_provider.create_credential(
                auth_type=self.auth_type, credentials=self.credentials
            )
            self._file_system_client = FileSystemClient(
                self.account_url,
                self.file_system_name,
                credential=self.credential,
                **self._kwargs,
            )
            logger.info("Data Lake client loaded successfully")
        except ClientError:
            raise
        except ClientAuthenticationError as e:
            logger.error(f"Data Lake authentication failed: {str(e)}")
            raise ClientError(ClientError.CLIENT_AUTH_ERROR, str(e)) from e
        except AzureError as e:
            logger.error(f"Data Lake connection error: {str(e)}")
            raise ClientError(ClientError.CLIENT_AUTH_ERROR, str(e)) from e
        except ValueError as e:
            logger.error(f"Invalid Data Lake client parameters: {str(e)}")
            raise ClientError(ClientError.CREDENTIALS_PARSE_ERROR, str(e)) from e

    async def close(self) -> None:
        """Close the file system client and the credential."""
        logger.info("Closing Data Lake client...")
        if self._file_system_client is not None:
            try:
                await self._file_system_client.close()
            except Exception as e:
                logger.warning(f"Error closing file system client: {str(e)}")
            self._file_system_client = None
        close_credential = getattr(self.credential, "close", None)
        if close_credential is not None:
            try:
                await close_credential()
            except Exception as e:
                logger.warning(f"Error closing credential: {str(e)}")
        self.credential = None

    @property
    def file_system_client(self) -> FileSystemClient:
        if self._file_system_client is None:
            raise ClientError(
                ClientError.CLIENT_NOT_LOADED_ERROR,
                "Call load() before requesting path clients",
            )
        return self._file_system_client

    def get_path_client(self, path: str) -> DataLakePathClient:
        return DataLakePathClient(
            AzurePathOperations(self.file_system_client, path),
            self.file_system_name,
            path,
        )

    def get_directory_client(self, path: str) -> DataLakeDirectoryClient:
        return DataLakeDirectoryClient(self.get_path_client(path))

    def get_file_client(self, path: str) -> DataLakeFileClient:
        return DataLakeFileClient(self.get_path_client(path))

    async def __aenter__(self) -> "DataLakeClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

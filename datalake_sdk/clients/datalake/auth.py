"""
Credential creation for Data Lake clients.

Supports Service Principal authentication through ``azure-identity`` and
shared account keys.

Example:
    >>> from datalake_sdk.clients.datalake.auth import AzureAuthProvider
    >>>
    >>> auth_provider = AzureAuthProvider()
    >>> credential = await auth_provider.create_credential(
    ...     auth_type="service_principal",
    ...     credentials={
    ...         "tenant_id": "your-tenant-id",
    ...         "client_id": "your-client-id",
    ...         "client_secret": "your-client-secret",
    ...     },
    ... )
    >>>
    >>> # camelCase keys are accepted as well
    >>> credential = await auth_provider.create_credential(
    ...     auth_type="account_key",
    ...     credentials={"accountName": "mystorage", "accountKey": "..."},
    ... )
"""

from typing import Any, Dict, List, Optional, Union

from azure.core.credentials import AzureNamedKeyCredential
from azure.core.exceptions import ClientAuthenticationError
from azure.identity.aio import ClientSecretCredential

from datalake_sdk.common.error_codes import ClientError
from datalake_sdk.constants import AZURE_STORAGE_SCOPE
from datalake_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)

SUPPORTED_AUTH_TYPES = ("service_principal", "account_key")

DataLakeCredential = Union[ClientSecretCredential, AzureNamedKeyCredential]


def _first(credentials: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        if credentials.get(key):
            return str(credentials[key])
    return None


class AzureAuthProvider:
    """
    Creates the credential passed to the ``azure-storage-file-datalake`` clients.

    Supported authentication methods:
    - service_principal: tenant ID, client ID and client secret
    - account_key: storage account name and shared key
    """

    async def create_credential(
        self,
        auth_type: str = "service_principal",
        credentials: Optional[Dict[str, Any]] = None,
    ) -> DataLakeCredential:
        """
        Create a storage credential.

        Args:
            auth_type (str): ``service_principal`` or ``account_key``.
            credentials (Optional[Dict[str, Any]]): Credential fields in
                snake_case or camelCase.

        Returns:
            DataLakeCredential: Credential instance.

        Raises:
            ClientError: If the authentication type is not supported or the
                credentials are incomplete.
            ClientAuthenticationError: If credential creation fails.
        """
        try:
            logger.debug(f"Creating Data Lake credential with auth type: {auth_type}")

            auth_type = auth_type.lower()
            if auth_type not in SUPPORTED_AUTH_TYPES:
                raise ClientError(
                    ClientError.CREDENTIALS_PARSE_ERROR,
                    f"Supported authentication types are {', '.join(SUPPORTED_AUTH_TYPES)}. "
                    f"Received: {auth_type}",
                )
            if not credentials:
                raise ClientError(
                    ClientError.CREDENTIALS_PARSE_ERROR,
                    f"Credentials required for {auth_type} authentication",
                )

            if auth_type == "account_key":
                return self._create_account_key_credential(credentials)
            return self._create_service_principal_credential(credentials)

        except (ClientAuthenticationError, ClientError):
            raise
        except Exception as e:
            logger.error(f"Failed to create Data Lake credential: {str(e)}")
            raise ClientError(ClientError.CREDENTIALS_PARSE_ERROR, str(e)) from e

    def _create_service_principal_credential(
        self, credentials: Dict[str, Any]
    ) -> ClientSecretCredential:
        tenant_id = _first(credentials, "tenant_id", "tenantId")
        client_id = _first(credentials, "client_id", "clientId")
        client_secret = _first(credentials, "client_secret", "clientSecret")

        missing_keys: List[str] = []
        if not tenant_id:
            missing_keys.append("tenant_id")
        if not client_id:
            missing_keys.append("client_id")
        if not client_secret:
            missing_keys.append("client_secret")
        if missing_keys:
            raise ClientError(
                ClientError.CREDENTIALS_PARSE_ERROR,
                f"Missing required credential keys: {', '.join(missing_keys)}. "
                "All of tenant_id, client_id, and client_secret are required for "
                "service principal authentication",
            )

        logger.debug(f"Creating service principal credential for tenant: {tenant_id}")
        return ClientSecretCredential(tenant_id, client_id, client_secret)

    def _create_account_key_credential(
        self, credentials: Dict[str, Any]
    ) -> AzureNamedKeyCredential:
        account_name = _first(credentials, "account_name", "accountName")
        account_key = _first(credentials, "account_key", "accountKey")
        if not account_name or not account_key:
            raise ClientError(
                ClientError.CREDENTIALS_PARSE_ERROR,
                "account_name and account_key are required for account key authentication",
            )
        return AzureNamedKeyCredential(account_name, account_key)

    async def validate_credential(self, credential: DataLakeCredential) -> bool:
        """Check a credential by requesting a storage token.

        Shared keys are not validated locally and always pass.
        """
        if isinstance(credential, AzureNamedKeyCredential):
            return True
        try:
            logger.debug("Validating Data Lake credential")
            token = await credential.get_token(AZURE_STORAGE_SCOPE)
            return bool(token.token)
        except ClientAuthenticationError as e:
            logger.error(f"Credential validation failed: {str(e)}")
            return False

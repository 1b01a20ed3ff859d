"""
Error codes for the datalake-sdk.

This module defines standardized error codes used throughout the datalake-sdk.
Error codes follow the format: Datalake-{Component}-{HTTP_Code}-{Unique_ID}

Components:
- Client: Client construction and credential errors
- Validation: Parameter validation errors raised before any remote call
- Acl: Recursive access control errors
- Transfer: Chunked upload/download errors
"""

from enum import Enum
from typing import Dict, Optional


class ErrorComponent(Enum):
    """Components that can generate errors in the system."""

    CLIENT = "Client"
    VALIDATION = "Validation"
    ACL = "Acl"
    TRANSFER = "Transfer"


class ErrorCode:
    """Error code with component, HTTP code, and description."""

    def __init__(
        self, component: str, http_code: str, unique_id: str, description: str
    ):
        self.code = f"Datalake-{component}-{http_code}-{unique_id}"
        self.description = description

    def __str__(self) -> str:
        return f"{self.code}: {self.description}"


# Client Errors
CLIENT_ERRORS = {
    "CLIENT_AUTH_ERROR": ErrorCode(
        "Client", "401", "00", "Client authentication failed"
    ),
    "CREDENTIALS_PARSE_ERROR": ErrorCode(
        "Client", "400", "00", "Credentials parse error"
    ),
    "CLIENT_NOT_LOADED_ERROR": ErrorCode(
        "Client", "400", "01", "Client used before load()"
    ),
}

# Validation Errors
VALIDATION_ERRORS = {
    "BATCH_SIZE_ERROR": ErrorCode("Validation", "400", "00", "Invalid batch size"),
    "MAX_BATCHES_ERROR": ErrorCode("Validation", "400", "01", "Invalid max batches"),
    "CHUNK_SIZE_ERROR": ErrorCode("Validation", "400", "02", "Invalid chunk size"),
    "CONCURRENCY_ERROR": ErrorCode("Validation", "400", "03", "Invalid concurrency"),
    "SIZE_LIMIT_ERROR": ErrorCode(
        "Validation", "413", "00", "Payload exceeds the service maximum"
    ),
    "CHUNK_COUNT_ERROR": ErrorCode(
        "Validation", "413", "01", "Chunk count exceeds the service maximum"
    ),
    "THRESHOLD_ERROR": ErrorCode(
        "Validation", "400", "04", "Invalid single upload threshold"
    ),
    "DESTINATION_PATH_ERROR": ErrorCode(
        "Validation", "400", "05", "Invalid destination path"
    ),
    "RESOURCE_TYPE_ERROR": ErrorCode("Validation", "400", "06", "Invalid resource type"),
    "ACL_PARSE_ERROR": ErrorCode("Validation", "400", "07", "Invalid access control entry"),
    "RANGE_ERROR": ErrorCode("Validation", "416", "00", "Invalid byte range"),
    "BATCH_STATE_ERROR": ErrorCode("Validation", "409", "00", "Batch already started"),
}

# Recursive access control errors
ACL_ERRORS = {
    "ACL_CHANGE_FAILED_ERROR": ErrorCode(
        "Acl", "500", "00", "Recursive access control change failed"
    ),
}

# Transfer errors
TRANSFER_ERRORS = {
    "OPERATION_CANCELLED_ERROR": ErrorCode(
        "Transfer", "499", "00", "Operation cancelled"
    ),
}

# Combined dictionary of all error codes
ERROR_CODES: Dict[str, ErrorCode] = {
    **CLIENT_ERRORS,
    **VALIDATION_ERRORS,
    **ACL_ERRORS,
    **TRANSFER_ERRORS,
}


class DataLakeError(Exception):
    """Base exception for the datalake-sdk.

    Args:
        error_code: The registered error code for this failure.
        message: Optional detail appended to the error code description.
    """

    def __init__(self, error_code: ErrorCode, message: Optional[str] = None):
        self.error_code = error_code
        self.message = message
        super().__init__(f"{error_code}: {message}" if message else str(error_code))


class ClientError(DataLakeError):
    """Raised for client construction and credential failures."""

    CLIENT_AUTH_ERROR = CLIENT_ERRORS["CLIENT_AUTH_ERROR"]
    CREDENTIALS_PARSE_ERROR = CLIENT_ERRORS["CREDENTIALS_PARSE_ERROR"]
    CLIENT_NOT_LOADED_ERROR = CLIENT_ERRORS["CLIENT_NOT_LOADED_ERROR"]


class ValidationError(DataLakeError, ValueError):
    """Raised synchronously for malformed parameters, before any remote call.

    Validation errors are never retried.
    """

    BATCH_SIZE_ERROR = VALIDATION_ERRORS["BATCH_SIZE_ERROR"]
    MAX_BATCHES_ERROR = VALIDATION_ERRORS["MAX_BATCHES_ERROR"]
    CHUNK_SIZE_ERROR = VALIDATION_ERRORS["CHUNK_SIZE_ERROR"]
    CONCURRENCY_ERROR = VALIDATION_ERRORS["CONCURRENCY_ERROR"]
    SIZE_LIMIT_ERROR = VALIDATION_ERRORS["SIZE_LIMIT_ERROR"]
    CHUNK_COUNT_ERROR = VALIDATION_ERRORS["CHUNK_COUNT_ERROR"]
    THRESHOLD_ERROR = VALIDATION_ERRORS["THRESHOLD_ERROR"]
    DESTINATION_PATH_ERROR = VALIDATION_ERRORS["DESTINATION_PATH_ERROR"]
    RESOURCE_TYPE_ERROR = VALIDATION_ERRORS["RESOURCE_TYPE_ERROR"]
    ACL_PARSE_ERROR = VALIDATION_ERRORS["ACL_PARSE_ERROR"]
    RANGE_ERROR = VALIDATION_ERRORS["RANGE_ERROR"]
    BATCH_STATE_ERROR = VALIDATION_ERRORS["BATCH_STATE_ERROR"]


class AclChangeFailedError(DataLakeError):
    """Raised when a batch of a recursive access control change fails.

    Changes applied by earlier batches are not rolled back. Pass
    ``continuation_token`` back into the same operation to resume from the
    batch that failed.

    Attributes:
        continuation_token: Token as of the last successful batch, or the
            caller's starting token if no batch succeeded.
        cause: The underlying transport or service exception.
    """

    ACL_CHANGE_FAILED_ERROR = ACL_ERRORS["ACL_CHANGE_FAILED_ERROR"]

    def __init__(self, cause: BaseException, continuation_token: Optional[str] = None):
        self.cause = cause
        self.continuation_token = continuation_token
        super().__init__(
            self.ACL_CHANGE_FAILED_ERROR,
            f"{cause} (continuation token: {continuation_token!r})",
        )


class OperationCancelledError(DataLakeError):
    """Raised when a cancellation signal is observed before new work starts."""

    OPERATION_CANCELLED_ERROR = TRANSFER_ERRORS["OPERATION_CANCELLED_ERROR"]

    def __init__(self, message: Optional[str] = None):
        super().__init__(self.OPERATION_CANCELLED_ERROR, message)

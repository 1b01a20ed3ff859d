import os

from dotenv import load_dotenv

load_dotenv(dotenv_path=".env")

MB = 1024 * 1024

# Service limits for Data Lake Storage Gen2 files
FILE_MAX_SIZE_BYTES = int(os.getenv("DATALAKE_FILE_MAX_SIZE_BYTES", 4000 * MB * 50000))
BLOCK_BLOB_MAX_BLOCKS = int(os.getenv("DATALAKE_BLOCK_BLOB_MAX_BLOCKS", "50000"))
FILE_UPLOAD_MAX_CHUNK_SIZE = int(
    os.getenv("DATALAKE_FILE_UPLOAD_MAX_CHUNK_SIZE", 4000 * MB)
)
FILE_UPLOAD_DEFAULT_CHUNK_SIZE = int(
    os.getenv("DATALAKE_FILE_UPLOAD_DEFAULT_CHUNK_SIZE", 8 * MB)
)
FILE_MAX_SINGLE_UPLOAD_THRESHOLD = int(
    os.getenv("DATALAKE_FILE_MAX_SINGLE_UPLOAD_THRESHOLD", 100 * MB)
)
DEFAULT_HIGH_LEVEL_CONCURRENCY = int(
    os.getenv("DATALAKE_DEFAULT_HIGH_LEVEL_CONCURRENCY", "5")
)
FILE_DOWNLOAD_DEFAULT_CHUNK_SIZE = int(
    os.getenv("DATALAKE_FILE_DOWNLOAD_DEFAULT_CHUNK_SIZE", 4 * MB)
)

# Endpoint Constants
DATALAKE_URL_TEMPLATE = os.getenv(
    "DATALAKE_URL_TEMPLATE", "https://{account_name}.dfs.core.windows.net"
)
AZURE_STORAGE_SCOPE = "https://storage.azure.com/.default"

# ETag matching any existing resource, used for create-if-not-exists
ETAG_ANY = "*"

# Logger Constants
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SERVICE_NAME: str = os.getenv("OTEL_SERVICE_NAME", "datalake-sdk")
SERVICE_VERSION: str = os.getenv("OTEL_SERVICE_VERSION", "0.1.0")

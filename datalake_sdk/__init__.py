"""Client-side orchestration for Azure Data Lake Storage Gen2 paths."""

"""Logging and tracing for the datalake-sdk."""

from datalake_sdk.observability.logger_adaptor import get_logger
from datalake_sdk.observability.traces_adaptor import get_tracer, traced

__all__ = ["get_logger", "get_tracer", "traced"]

"""OpenTelemetry span decorator for remote and high-level operations.

Every remote call and every public high-level operation runs inside one span.
The span's status is set to ``ERROR`` and the exception recorded when the call
raises; the span is ended on every path.
"""

import functools
import inspect
from typing import Any, Callable, Optional, TypeVar, cast

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode, Tracer

from datalake_sdk.constants import SERVICE_NAME, SERVICE_VERSION

T = TypeVar("T")


def get_tracer() -> Tracer:
    """Return the tracer for this library from the global tracer provider."""
    return trace.get_tracer(SERVICE_NAME, SERVICE_VERSION)


def _mark_error(span: trace.Span, error: BaseException) -> None:
    span.set_status(Status(StatusCode.ERROR, str(error)))
    span.record_exception(error)


def traced(
    span_name: Optional[str] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for running a function inside an OpenTelemetry span.

    Handles both synchronous and asynchronous functions.

    Args:
        span_name: Name of the span. Defaults to the function's qualified name.

    Returns:
        Callable: Decorated function.

    Example:
        ```python
        class AzurePathOperations(PathOperations):
            @traced("DataLakePathOperations-appendData")
            async def append_data(self, body, position, content_length):
                ...
        ```
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = span_name or func.__qualname__

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with get_tracer().start_as_current_span(
                name, record_exception=False, set_status_on_exception=False
            ) as span:
                try:
                    return await func(*args, **kwargs)
                except BaseException as e:
                    _mark_error(span, e)
                    raise

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with get_tracer().start_as_current_span(
                name, record_exception=False, set_status_on_exception=False
            ) as span:
                try:
                    return func(*args, **kwargs)
                except BaseException as e:
                    _mark_error(span, e)
                    raise

        if inspect.iscoroutinefunction(func):
            return cast(Callable[..., T], async_wrapper)
        return cast(Callable[..., T], sync_wrapper)

    return decorator

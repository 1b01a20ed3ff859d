import inspect
from typing import Awaitable, Optional, TypeVar, Union

T = TypeVar("T")


async def maybe_await(value: Union[T, Awaitable[T]]) -> T:
    """Await ``value`` if it is awaitable, otherwise return it unchanged.

    Lets callbacks be plain functions or coroutine functions.
    """
    if inspect.isawaitable(value):
        return await value
    return value


def ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def normalize_continuation(token: Optional[str]) -> Optional[str]:
    """Treat an empty continuation token the same as a missing one."""
    return token or None

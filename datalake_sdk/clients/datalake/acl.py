"""Recursive access control propagation.

The service changes the ACL of a directory tree in bounded batches and hands
back a continuation token while work remains. :func:`change_access_control_recursive`
drives that loop, aggregates the per-batch counters and reports progress
after every batch.
"""

import asyncio
from typing import Optional, Sequence, Union

from datalake_sdk.clients.datalake.models import (
    AccessControlChangeCounters,
    AccessControlChangeMode,
    AccessControlChangeResult,
    AccessControlChanges,
    AccessControlEntry,
    AccessControlProgressCallback,
    RemoveAccessControlEntry,
)
from datalake_sdk.clients.datalake.operations import PathOperations
from datalake_sdk.clients.datalake.serialization import (
    to_acl_string,
    to_remove_acl_string,
)
from datalake_sdk.common.error_codes import (
    AclChangeFailedError,
    OperationCancelledError,
    ValidationError,
)
from datalake_sdk.common.utils import maybe_await, normalize_continuation
from datalake_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)

AclEntries = Union[Sequence[AccessControlEntry], Sequence[RemoveAccessControlEntry]]


def validate_batch_options(
    batch_size: Optional[int] = None, max_batches: Optional[int] = None
) -> None:
    """Reject non-positive batch options before any remote call."""
    if max_batches is not None and max_batches < 1:
        logger.error(f"Invalid max_batches: {max_batches}")
        raise ValidationError(
            ValidationError.MAX_BATCHES_ERROR,
            f"max_batches must be larger than 0, got {max_batches}",
        )
    if batch_size is not None and batch_size < 1:
        logger.error(f"Invalid batch_size: {batch_size}")
        raise ValidationError(
            ValidationError.BATCH_SIZE_ERROR,
            f"batch_size must be larger than 0, got {batch_size}",
        )


def serialize_entries(mode: AccessControlChangeMode, acl: AclEntries) -> str:
    if AccessControlChangeMode(mode) == AccessControlChangeMode.REMOVE:
        return to_remove_acl_string(acl)  # type: ignore[arg-type]
    for entry in acl:
        if isinstance(entry, RemoveAccessControlEntry):
            raise ValidationError(
                ValidationError.ACL_PARSE_ERROR,
                f"removal entries are only valid in remove mode, got mode {mode}",
            )
    return to_acl_string(acl)  # type: ignore[arg-type]


async def change_access_control_recursive(
    operations: PathOperations,
    mode: AccessControlChangeMode,
    acl: AclEntries,
    batch_size: Optional[int] = None,
    max_batches: Optional[int] = None,
    continuation_token: Optional[str] = None,
    continue_on_failure: Optional[bool] = None,
    on_progress: Optional[AccessControlProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> AccessControlChangeResult:
    """Apply an ACL change to a directory and everything below it.

    Args:
        operations: Remote operations bound to the root directory.
        mode: ``set``, ``modify`` or ``remove``.
        acl: Entries to apply; removal entries for ``remove``.
        batch_size: Maximum number of paths changed per remote call.
        max_batches: Stop after this many batches even if work remains.
        continuation_token: Resume a previous change from this token.
        continue_on_failure: Ask the service to keep going past entries
            that fail; failures are then counted instead of aborting the batch.
        on_progress: Called once per completed batch, in batch order.
        cancel_event: When set, no further batch is started.

    Returns:
        AccessControlChangeResult: Aggregate counters. The continuation token
        is set only if the change stopped at ``max_batches`` with work remaining.

    Raises:
        ValidationError: If ``batch_size`` or ``max_batches`` is below 1.
        AclChangeFailedError: If a batch fails; carries the token to resume from.
        OperationCancelledError: If ``cancel_event`` was set before a batch.
    """
    validate_batch_options(batch_size, max_batches)
    acl_string = serialize_entries(mode, acl)

    aggregate = AccessControlChangeCounters()
    token = normalize_continuation(continuation_token)
    batch_counter = 0

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError(
                f"access control change cancelled after {batch_counter} batches "
                f"(continuation token: {token!r})"
            )

        try:
            response = await operations.change_access_control_recursive(
                mode,
                acl_string,
                max_records=batch_size,
                continuation=token,
                force_flag=continue_on_failure,
            )
        except Exception as e:
            logger.error(
                f"Access control change failed on batch {batch_counter + 1}: {str(e)}"
            )
            raise AclChangeFailedError(e, token) from e

        batch_counter += 1
        token = normalize_continuation(response.continuation)
        batch_counters = response.counters()
        aggregate = aggregate.add(batch_counters)

        logger.debug(
            f"Access control batch {batch_counter} done: "
            f"{batch_counters.changed_directories_count} directories, "
            f"{batch_counters.changed_files_count} files, "
            f"{batch_counters.failed_changes_count} failures"
        )

        if on_progress is not None:
            await maybe_await(
                on_progress(
                    AccessControlChanges(
                        batch_failures=response.failed_entries,
                        batch_counters=batch_counters,
                        aggregate_counters=aggregate,
                        continuation_token=token,
                    )
                )
            )

        if not token:
            break
        if max_batches is not None and batch_counter >= max_batches:
            logger.info(
                f"Stopped access control change after {batch_counter} batches with work remaining"
            )
            break

    return AccessControlChangeResult(counters=aggregate, continuation_token=token)

import asyncio
from typing import List
from unittest.mock import AsyncMock

import pytest
from azure.core.exceptions import HttpResponseError
from hypothesis import given, settings
from pydantic import ValidationError as PydanticValidationError

from datalake_sdk.clients.datalake.acl import (
    change_access_control_recursive,
    serialize_entries,
    validate_batch_options,
)
from datalake_sdk.clients.datalake.models import (
    AccessControlChangeMode,
    AccessControlChanges,
    AccessControlEntry,
    AccessControlType,
    RemoveAccessControlEntry,
    RolePermissions,
)
from datalake_sdk.common.error_codes import (
    AclChangeFailedError,
    OperationCancelledError,
    ValidationError,
)
from datalake_sdk.test_utils.fake_operations import FakePathOperations, acl_batch
from datalake_sdk.test_utils.hypothesis.strategies.clients.datalake import (
    batch_counters_list_strategy,
)

READ_EXECUTE = RolePermissions(read=True, execute=True)
ACL = [
    AccessControlEntry(
        scope=AccessControlType.USER,
        permissions=RolePermissions(read=True, write=True, execute=True),
    ),
    AccessControlEntry(
        scope=AccessControlType.USER, entity_id="alice", permissions=READ_EXECUTE
    ),
]


class TestValidation:
    @pytest.mark.parametrize(
        "batch_size,max_batches,error_code",
        [
            (0, None, ValidationError.BATCH_SIZE_ERROR),
            (-5, None, ValidationError.BATCH_SIZE_ERROR),
            (None, 0, ValidationError.MAX_BATCHES_ERROR),
            (10, -1, ValidationError.MAX_BATCHES_ERROR),
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_options_make_no_remote_call(
        self, operations: FakePathOperations, batch_size, max_batches, error_code
    ):
        with pytest.raises(ValidationError) as exc_info:
            await change_access_control_recursive(
                operations,
                AccessControlChangeMode.SET,
                ACL,
                batch_size=batch_size,
                max_batches=max_batches,
            )

        assert exc_info.value.error_code is error_code
        assert operations.calls == []

    def test_valid_options(self):
        validate_batch_options(1, 1)
        validate_batch_options(None, None)

    def test_removal_entries_rejected_outside_remove_mode(self):
        with pytest.raises(ValidationError):
            serialize_entries(
                AccessControlChangeMode.MODIFY,
                [RemoveAccessControlEntry(scope=AccessControlType.USER, entity_id="alice")],
            )

    def test_remove_mode_serializes_without_permissions(self):
        assert (
            serialize_entries(
                AccessControlChangeMode.REMOVE,
                [
                    RemoveAccessControlEntry(scope=AccessControlType.USER, entity_id="alice"),
                    RemoveAccessControlEntry(scope=AccessControlType.MASK, default_scope=True),
                ],
            )
            == "user:alice,default:mask"
        )


class TestChangeAccessControlRecursive:
    @pytest.mark.asyncio
    async def test_two_batches_until_empty_token(self):
        operations = FakePathOperations(
            acl_responses=[
                acl_batch("A", directories=1, files=1),
                acl_batch("", files=2),
            ]
        )

        result = await change_access_control_recursive(
            operations, AccessControlChangeMode.SET, ACL, batch_size=2
        )

        calls = operations.calls_to("change_access_control_recursive")
        assert [call["continuation"] for call in calls] == [None, "A"]
        assert all(call["max_records"] == 2 for call in calls)
        assert calls[0]["acl"] == "user::rwx,user:alice:r-x"
        assert result.continuation_token is None
        assert result.counters.changed_directories_count == 1
        assert result.counters.changed_files_count == 3
        assert result.counters.failed_changes_count == 0

    @pytest.mark.asyncio
    async def test_result_counters_cannot_be_modified(self):
        operations = FakePathOperations(acl_responses=[acl_batch(None, files=2)])

        result = await change_access_control_recursive(
            operations, AccessControlChangeMode.SET, ACL
        )

        with pytest.raises(PydanticValidationError):
            result.counters.changed_files_count = 999
        assert result.counters.changed_files_count == 2

    @pytest.mark.asyncio
    async def test_stops_at_max_batches_with_token(self):
        operations = FakePathOperations(
            acl_responses=[acl_batch("A", files=1), acl_batch("B", files=1), acl_batch(None)]
        )

        result = await change_access_control_recursive(
            operations, AccessControlChangeMode.MODIFY, ACL, max_batches=2
        )

        assert len(operations.calls_to("change_access_control_recursive")) == 2
        assert result.continuation_token == "B"
        assert result.counters.changed_files_count == 2

    @pytest.mark.asyncio
    async def test_resumes_from_given_token(self):
        operations = FakePathOperations(acl_responses=[acl_batch(None, directories=3)])

        result = await change_access_control_recursive(
            operations, AccessControlChangeMode.SET, ACL, continuation_token="resume-here"
        )

        call = operations.calls_to("change_access_control_recursive")[0]
        assert call["continuation"] == "resume-here"
        assert result.counters.changed_directories_count == 3

    @pytest.mark.asyncio
    async def test_continue_on_failure_is_forwarded_and_failures_counted(self):
        operations = FakePathOperations(
            acl_responses=[
                acl_batch(
                    None,
                    files=4,
                    failures=1,
                    failed_entries=[
                        {"name": "dir/locked.csv", "is_directory": False, "error_message": "denied"}
                    ],
                )
            ]
        )
        events: List[AccessControlChanges] = []

        result = await change_access_control_recursive(
            operations,
            AccessControlChangeMode.SET,
            ACL,
            continue_on_failure=True,
            on_progress=events.append,
        )

        call = operations.calls_to("change_access_control_recursive")[0]
        assert call["force_flag"] is True
        assert result.counters.failed_changes_count == 1
        assert events[0].batch_failures[0].name == "dir/locked.csv"

    @pytest.mark.asyncio
    async def test_progress_reports_each_batch_in_order(self):
        operations = FakePathOperations(
            acl_responses=[
                acl_batch("A", directories=1),
                acl_batch("B", files=5),
                acl_batch(None, files=1, failures=2),
            ]
        )
        events: List[AccessControlChanges] = []

        await change_access_control_recursive(
            operations, AccessControlChangeMode.SET, ACL, on_progress=events.append
        )

        assert [event.continuation_token for event in events] == ["A", "B", None]
        assert [event.aggregate_counters.changed_files_count for event in events] == [0, 5, 6]
        assert events[2].batch_counters.failed_changes_count == 2
        # earlier events hold snapshots, not the live aggregate
        assert events[0].aggregate_counters.changed_directories_count == 1
        assert events[0].aggregate_counters.changed_files_count == 0

    @pytest.mark.asyncio
    async def test_async_progress_callback_is_awaited(self):
        operations = FakePathOperations(acl_responses=[acl_batch(None, files=1)])
        on_progress = AsyncMock()

        await change_access_control_recursive(
            operations, AccessControlChangeMode.SET, ACL, on_progress=on_progress
        )

        on_progress.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_batch_carries_previous_token_and_adds_no_counters(self):
        cause = HttpResponseError(message="batch aborted")
        operations = FakePathOperations(
            acl_responses=[acl_batch("A", directories=2, files=2), cause]
        )
        events: List[AccessControlChanges] = []

        with pytest.raises(AclChangeFailedError) as exc_info:
            await change_access_control_recursive(
                operations,
                AccessControlChangeMode.SET,
                ACL,
                continue_on_failure=False,
                on_progress=events.append,
            )

        error = exc_info.value
        assert error.continuation_token == "A"
        assert error.cause is cause
        assert error.__cause__ is cause
        assert len(events) == 1
        assert events[0].aggregate_counters.changed_files_count == 2

    @pytest.mark.asyncio
    async def test_first_batch_failure_carries_caller_token(self):
        operations = FakePathOperations(acl_responses=[RuntimeError("boom")])

        with pytest.raises(AclChangeFailedError) as exc_info:
            await change_access_control_recursive(
                operations, AccessControlChangeMode.REMOVE, [], continuation_token="T0"
            )

        assert exc_info.value.continuation_token == "T0"

    @pytest.mark.asyncio
    async def test_cancel_before_next_batch(self):
        cancel_event = asyncio.Event()
        operations = FakePathOperations(
            acl_responses=[acl_batch("A", files=1), acl_batch(None, files=1)]
        )

        with pytest.raises(OperationCancelledError):
            await change_access_control_recursive(
                operations,
                AccessControlChangeMode.SET,
                ACL,
                on_progress=lambda _: cancel_event.set(),
                cancel_event=cancel_event,
            )

        assert len(operations.calls_to("change_access_control_recursive")) == 1

    @pytest.mark.asyncio
    async def test_remove_mode_passes_mode_through(self):
        operations = FakePathOperations(acl_responses=[acl_batch(None)])

        await change_access_control_recursive(
            operations,
            AccessControlChangeMode.REMOVE,
            [RemoveAccessControlEntry(scope=AccessControlType.GROUP, entity_id="eng")],
        )

        call = operations.calls_to("change_access_control_recursive")[0]
        assert call["mode"] == AccessControlChangeMode.REMOVE
        assert call["acl"] == "group:eng"

    @pytest.mark.asyncio
    @given(batches=batch_counters_list_strategy)
    @settings(max_examples=25)
    async def test_aggregate_equals_sum_of_batches(self, batches):
        tokens = [f"T{i}" for i in range(1, len(batches))] + [None]
        operations = FakePathOperations(
            acl_responses=[
                acl_batch(token, **counters) for token, counters in zip(tokens, batches)
            ]
        )

        result = await change_access_control_recursive(
            operations, AccessControlChangeMode.SET, ACL
        )

        assert len(operations.calls) == len(batches)
        assert result.counters.changed_directories_count == sum(b["directories"] for b in batches)
        assert result.counters.changed_files_count == sum(b["files"] for b in batches)
        assert result.counters.failed_changes_count == sum(b["failures"] for b in batches)
        assert result.continuation_token is None

from typing import List

import pytest
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError

from datalake_sdk.clients.datalake.directory import DataLakeDirectoryClient
from datalake_sdk.clients.datalake.file import DataLakeFileClient
from datalake_sdk.clients.datalake.models import (
    AccessControlChangeMode,
    AccessControlEntry,
    AccessControlType,
    PathHttpHeaders,
    PathPermissions,
    PathResourceType,
    RemoveAccessControlEntry,
    RolePermissions,
)
from datalake_sdk.clients.datalake.path import DataLakePathClient
from datalake_sdk.common.error_codes import ValidationError
from datalake_sdk.test_utils.fake_operations import FakePathOperations, acl_batch

FULL = RolePermissions(read=True, write=True, execute=True)


@pytest.fixture
def path_client(operations: FakePathOperations) -> DataLakePathClient:
    return DataLakePathClient(operations, "raw", "/events/2024/")


class TestDataLakePathClient:
    def test_path_is_normalized(self, path_client: DataLakePathClient):
        assert path_client.path == "events/2024"
        assert path_client.name == "events/2024"

    @pytest.mark.asyncio
    async def test_create_if_not_exists_created(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        response = await path_client.create_if_not_exists(PathResourceType.DIRECTORY)

        assert response["succeeded"] is True
        create = operations.calls_to("create")[0]
        assert create["conditions"] == {"if_none_match": "*"}
        assert create["resource_type"] == PathResourceType.DIRECTORY

    @pytest.mark.asyncio
    async def test_create_if_not_exists_existing(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        operations.create_error = ResourceExistsError(message="PathAlreadyExists")

        response = await path_client.create_if_not_exists(PathResourceType.FILE)

        assert response == {"succeeded": False}

    @pytest.mark.asyncio
    async def test_create_propagates_other_errors(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        operations.create_error = ResourceNotFoundError(message="FilesystemNotFound")

        with pytest.raises(ResourceNotFoundError):
            await path_client.create_if_not_exists(PathResourceType.FILE)

    @pytest.mark.asyncio
    async def test_delete_follows_continuation(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        operations.delete_responses = [
            {"continuation": "page-2"},
            {"continuation": "page-3"},
            {"continuation": ""},
        ]

        await path_client.delete(recursive=True)

        deletes = operations.calls_to("delete")
        assert [call["continuation"] for call in deletes] == [None, "page-2", "page-3"]
        assert all(call["recursive"] is True for call in deletes)

    @pytest.mark.asyncio
    async def test_delete_if_exists(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        assert (await path_client.delete_if_exists())["succeeded"] is True

        operations.delete_error = ResourceNotFoundError(message="PathNotFound")
        assert await path_client.delete_if_exists() == {"succeeded": False}

    @pytest.mark.asyncio
    async def test_get_access_control_parses_acl(self, path_client: DataLakePathClient):
        access_control = await path_client.get_access_control()

        assert access_control.owner == "$superuser"
        assert access_control.permissions.extended_acls is True
        assert access_control.permissions.owner == FULL
        assert len(access_control.acl) == 6
        alice = access_control.acl[1]
        assert (alice.scope, alice.entity_id) == (AccessControlType.USER, "alice")
        assert access_control.acl[-1].default_scope is True

    @pytest.mark.asyncio
    async def test_set_access_control_serializes_entries(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        await path_client.set_access_control(
            [
                AccessControlEntry(scope=AccessControlType.USER, permissions=FULL),
                AccessControlEntry(
                    scope=AccessControlType.GROUP,
                    entity_id="eng",
                    permissions=RolePermissions(read=True),
                    default_scope=True,
                ),
            ]
        )

        call = operations.calls_to("set_access_control")[0]
        assert call["acl"] == "user::rwx,default:group:eng:r--"
        assert call["permissions"] is None

    @pytest.mark.asyncio
    async def test_set_permissions(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        await path_client.set_permissions(
            PathPermissions(
                owner=FULL,
                group=RolePermissions(read=True, execute=True),
                other=RolePermissions(),
                sticky_bit=True,
            )
        )

        call = operations.calls_to("set_access_control")[0]
        assert call["permissions"] == "rwxr-x--T"
        assert call["acl"] is None

    @pytest.mark.parametrize(
        "method,mode",
        [
            ("set_access_control_recursive", AccessControlChangeMode.SET),
            ("update_access_control_recursive", AccessControlChangeMode.MODIFY),
        ],
    )
    @pytest.mark.asyncio
    async def test_recursive_modes(self, method, mode):
        operations = FakePathOperations(acl_responses=[acl_batch(None, files=2)])
        client = DataLakePathClient(operations, "raw", "events")

        result = await getattr(client, method)(
            [AccessControlEntry(scope=AccessControlType.OTHER)], batch_size=10
        )

        call = operations.calls_to("change_access_control_recursive")[0]
        assert call["mode"] == mode
        assert call["acl"] == "other::---"
        assert result.counters.changed_files_count == 2

    @pytest.mark.asyncio
    async def test_remove_access_control_recursive(self):
        operations = FakePathOperations(acl_responses=[acl_batch(None, directories=1)])
        client = DataLakePathClient(operations, "raw", "events")

        await client.remove_access_control_recursive(
            [RemoveAccessControlEntry(scope=AccessControlType.USER, entity_id="alice")]
        )

        call = operations.calls_to("change_access_control_recursive")[0]
        assert call["mode"] == AccessControlChangeMode.REMOVE
        assert call["acl"] == "user:alice"

    @pytest.mark.asyncio
    async def test_move_within_file_system(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        await path_client.move("archive/2024")

        call = operations.calls_to("rename")[0]
        assert call["destination_file_system"] == "raw"
        assert call["destination_path"] == "archive/2024"
        assert call["destination_query"] is None

    @pytest.mark.asyncio
    async def test_move_with_query_and_file_system(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        await path_client.move("archive/2024?sv=2020&sig=abc", destination_file_system="cold")

        call = operations.calls_to("rename")[0]
        assert call["destination_file_system"] == "cold"
        assert call["destination_path"] == "archive/2024"
        assert call["destination_query"] == "sv=2020&sig=abc"

    @pytest.mark.asyncio
    async def test_move_rejects_multiple_query_strings(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        with pytest.raises(ValidationError) as exc_info:
            await path_client.move("archive?a=1?b=2")

        assert exc_info.value.error_code is ValidationError.DESTINATION_PATH_ERROR
        assert operations.calls == []

    @pytest.mark.asyncio
    async def test_create_with_http_headers(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        headers = PathHttpHeaders(content_type="text/csv")

        await path_client.create(PathResourceType.FILE, http_headers=headers)

        assert operations.calls_to("create")[0]["http_headers"] == headers

    @pytest.mark.asyncio
    async def test_set_metadata_and_get_properties(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        await path_client.set_metadata({"owner": "ingest"}, conditions={"if_match": "0x1"})

        call = operations.calls_to("set_metadata")[0]
        assert call["metadata"] == {"owner": "ingest"}
        assert call["conditions"] == {"if_match": "0x1"}
        properties = await path_client.get_properties()
        assert properties["metadata"] == {"owner": "ingest"}
        assert properties["size"] == 0

    @pytest.mark.asyncio
    async def test_set_metadata_none_clears(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        await path_client.set_metadata()

        assert operations.calls_to("set_metadata")[0]["metadata"] == {}

    @pytest.mark.asyncio
    async def test_set_http_headers(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        headers = PathHttpHeaders(content_type="application/json", content_encoding="gzip")

        await path_client.set_http_headers(headers, conditions={"lease_id": "lease-1"})

        call = operations.calls_to("set_http_headers")[0]
        assert call["http_headers"] == headers
        assert call["conditions"] == {"lease_id": "lease-1"}
        assert (await path_client.get_properties())["http_headers"] == headers

    @pytest.mark.asyncio
    async def test_set_http_headers_none_clears(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        await path_client.set_http_headers()

        assert operations.calls_to("set_http_headers")[0]["http_headers"] == PathHttpHeaders()


class TestDataLakeDirectoryClient:
    @pytest.mark.asyncio
    async def test_create_uses_directory_type(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        directory = DataLakeDirectoryClient(path_client)

        await directory.create(permissions="0750")

        create = operations.calls_to("create")[0]
        assert create["resource_type"] == PathResourceType.DIRECTORY
        assert create["permissions"] == "0750"

    @pytest.mark.asyncio
    async def test_forwards_path_operations(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        directory = DataLakeDirectoryClient(path_client)

        assert await directory.exists() is True
        await directory.delete(recursive=True)

        assert operations.call_names == ["exists", "delete"]

    def test_child_clients(
        self, path_client: DataLakePathClient, operations: FakePathOperations
    ):
        directory = DataLakeDirectoryClient(path_client)

        subdirectory = directory.get_subdirectory_client("day=01")
        file_client = subdirectory.get_file_client("part-0.csv")

        assert isinstance(subdirectory, DataLakeDirectoryClient)
        assert isinstance(file_client, DataLakeFileClient)
        assert subdirectory.path == "events/2024/day=01"
        assert file_client.path == "events/2024/day=01/part-0.csv"
        assert operations.children["day=01"].children["part-0.csv"].path == (
            "dir/day=01/part-0.csv"
        )


class TestDataLakeFileClient:
    @pytest.fixture
    def file_client(self, operations: FakePathOperations) -> DataLakeFileClient:
        return DataLakeFileClient(DataLakePathClient(operations, "raw", "events/a.bin"))

    @pytest.mark.asyncio
    async def test_create_uses_file_type(
        self, file_client: DataLakeFileClient, operations: FakePathOperations
    ):
        await file_client.create()

        assert operations.calls_to("create")[0]["resource_type"] == PathResourceType.FILE

    @pytest.mark.asyncio
    async def test_append_flush_read(
        self, file_client: DataLakeFileClient, operations: FakePathOperations
    ):
        await file_client.create()
        await file_client.append(b"hello ", 0)
        await file_client.append(b"world!!", 6, length=5)
        await file_client.flush(11, close=True)

        assert await file_client.read() == b"hello world"
        assert await file_client.read(6, 5) == b"world"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body,offset,length",
        [(b"", 0, None), (b"abc", -1, None), (b"abc", 0, 4), (b"abc", 0, 0)],
    )
    async def test_append_rejects_invalid_ranges(
        self,
        file_client: DataLakeFileClient,
        operations: FakePathOperations,
        body,
        offset,
        length,
    ):
        with pytest.raises(ValidationError):
            await file_client.append(body, offset, length=length)

        assert operations.calls == []

    @pytest.mark.asyncio
    async def test_upload_and_read_to_bytes(self, file_client: DataLakeFileClient):
        data = bytes(range(256)) * 4
        progress: List[int] = []

        result = await file_client.upload(
            data,
            chunk_size=100,
            max_concurrency=3,
            single_upload_threshold=50,
            on_progress=lambda event: progress.append(event.loaded_bytes),
        )

        assert result.chunks_appended == 11
        assert progress[-1] == len(data)
        assert await file_client.read_to_bytes(chunk_size=128) == data
        assert await file_client.read_to_bytes(offset=10, count=20) == data[10:30]

    @pytest.mark.asyncio
    async def test_upload_file_and_read_to_file(
        self, tmp_path, file_client: DataLakeFileClient
    ):
        source = tmp_path / "in.bin"
        target = tmp_path / "out.bin"
        source.write_bytes(b"0123456789" * 30)

        await file_client.upload_file(str(source), chunk_size=64, single_upload_threshold=64)
        plan = await file_client.read_to_file(str(target), chunk_size=100)

        assert target.read_bytes() == source.read_bytes()
        assert plan.chunk_count == 3

    @pytest.mark.asyncio
    async def test_upload_stream(self, file_client: DataLakeFileClient):
        await file_client.upload_stream([b"ab", b"cd", b"e"], chunk_size=2)

        assert await file_client.read() == b"abcde"

    @pytest.mark.asyncio
    async def test_upload_stores_http_headers(self, file_client: DataLakeFileClient):
        headers = PathHttpHeaders(content_type="application/octet-stream")

        await file_client.upload(b"payload", http_headers=headers, metadata={"k": "v"})

        properties = await file_client.get_properties()
        assert properties["http_headers"] == headers
        assert properties["metadata"] == {"k": "v"}
        assert properties["size"] == 7

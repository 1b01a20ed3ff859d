"""In-memory :class:`PathOperations` for exercising the engines without a service."""

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from datalake_sdk.clients.datalake.models import (
    AccessControlChangeMode,
    AccessControlRecursiveBatch,
    PathHttpHeaders,
    PathResourceType,
)
from datalake_sdk.clients.datalake.operations import PathOperations

AclResponse = Union[AccessControlRecursiveBatch, BaseException]


class FakePathOperations(PathOperations):
    """Records every call and serves scripted responses.

    Appended bytes are staged by position and only become readable after a
    flush, like the service.
    """

    def __init__(
        self,
        path: str = "dir",
        acl_responses: Optional[Sequence[AclResponse]] = None,
        content: bytes = b"",
        yields_per_call: int = 3,
    ):
        self.path = path
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.acl_responses: List[AclResponse] = list(acl_responses or [])
        self.delete_responses: List[Dict[str, Any]] = []
        self.content = bytearray(content)
        self.staged: Dict[int, bytes] = {}
        self.yields_per_call = yields_per_call
        self.create_error: Optional[BaseException] = None
        self.delete_error: Optional[BaseException] = None
        self.append_errors: Dict[int, BaseException] = {}
        self.read_errors: Dict[int, BaseException] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.children: Dict[str, "FakePathOperations"] = {}
        self.metadata: Dict[str, str] = {}
        self.http_headers: Optional[PathHttpHeaders] = None
        self.closed = False

    def calls_to(self, name: str) -> List[Dict[str, Any]]:
        return [kwargs for call, kwargs in self.calls if call == name]

    @property
    def call_names(self) -> List[str]:
        return [call for call, _ in self.calls]

    async def _concurrent_section(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            for _ in range(self.yields_per_call):
                await asyncio.sleep(0)
        finally:
            self.in_flight -= 1

    async def change_access_control_recursive(
        self,
        mode: AccessControlChangeMode,
        acl: str,
        max_records: Optional[int] = None,
        continuation: Optional[str] = None,
        force_flag: Optional[bool] = None,
    ) -> AccessControlRecursiveBatch:
        self.calls.append(
            (
                "change_access_control_recursive",
                {
                    "mode": mode,
                    "acl": acl,
                    "max_records": max_records,
                    "continuation": continuation,
                    "force_flag": force_flag,
                },
            )
        )
        response = self.acl_responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def create(
        self,
        resource_type: PathResourceType,
        metadata: Optional[Dict[str, str]] = None,
        permissions: Optional[str] = None,
        umask: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
        http_headers: Optional[PathHttpHeaders] = None,
    ) -> Dict[str, Any]:
        self.calls.append(
            (
                "create",
                {
                    "resource_type": resource_type,
                    "metadata": metadata,
                    "permissions": permissions,
                    "umask": umask,
                    "conditions": conditions,
                    "http_headers": http_headers,
                },
            )
        )
        if self.create_error is not None:
            raise self.create_error
        self.content = bytearray()
        self.staged = {}
        self.metadata = dict(metadata or {})
        self.http_headers = http_headers
        return {"path": self.path, "resource_type": PathResourceType(resource_type).value}

    async def delete(
        self,
        recursive: Optional[bool] = None,
        continuation: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        self.calls.append(
            (
                "delete",
                {
                    "recursive": recursive,
                    "continuation": continuation,
                    "conditions": conditions,
                },
            )
        )
        if self.delete_error is not None:
            raise self.delete_error
        if self.delete_responses:
            return self.delete_responses.pop(0)
        return {"continuation": None}

    async def exists(self) -> bool:
        self.calls.append(("exists", {}))
        return True

    async def get_access_control(self, upn: Optional[bool] = None) -> Dict[str, Any]:
        self.calls.append(("get_access_control", {"upn": upn}))
        return {
            "owner": "$superuser",
            "group": "$superuser",
            "permissions": "rwxr-x---+",
            "acl": "user::rwx,user:alice:r-x,group::r-x,mask::r-x,other::---,default:user:bob:rw-",
        }

    async def set_access_control(
        self,
        acl: Optional[str] = None,
        permissions: Optional[str] = None,
        owner: Optional[str] = None,
        group: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        self.calls.append(
            (
                "set_access_control",
                {
                    "acl": acl,
                    "permissions": permissions,
                    "owner": owner,
                    "group": group,
                    "conditions": conditions,
                },
            )
        )
        return {}

    async def rename(
        self,
        destination_file_system: str,
        destination_path: str,
        destination_query: Optional[str] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        self.calls.append(
            (
                "rename",
                {
                    "destination_file_system": destination_file_system,
                    "destination_path": destination_path,
                    "destination_query": destination_query,
                    "conditions": conditions,
                },
            )
        )
        return {"file_system": destination_file_system, "path": destination_path}

    async def append_data(
        self,
        body: bytes,
        position: int,
        content_length: int,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        self.calls.append(
            (
                "append_data",
                {
                    "position": position,
                    "content_length": content_length,
                    "conditions": conditions,
                },
            )
        )
        await self._concurrent_section()
        if position in self.append_errors:
            raise self.append_errors[position]
        self.staged[position] = bytes(body)
        return {}

    async def flush_data(
        self,
        position: int,
        close: bool = False,
        conditions: Optional[Dict[str, Any]] = None,
        http_headers: Optional[PathHttpHeaders] = None,
    ) -> Dict[str, Any]:
        self.calls.append(
            (
                "flush_data",
                {
                    "position": position,
                    "close": close,
                    "conditions": conditions,
                    "http_headers": http_headers,
                },
            )
        )
        committed = bytearray()
        for offset in sorted(self.staged):
            assert offset == len(committed), "appended ranges must be contiguous"
            committed.extend(self.staged[offset])
        assert len(committed) == position
        self.content = committed
        self.staged = {}
        if http_headers is not None:
            self.http_headers = http_headers
        return {"etag": "0x1", "position": position}

    async def read(self, offset: int = 0, count: Optional[int] = None) -> bytes:
        self.calls.append(("read", {"offset": offset, "count": count}))
        await self._concurrent_section()
        if offset in self.read_errors:
            raise self.read_errors[offset]
        end = len(self.content) if count is None else offset + count
        return bytes(self.content[offset:end])

    async def get_properties(self) -> Dict[str, Any]:
        self.calls.append(("get_properties", {}))
        return {
            "size": len(self.content),
            "metadata": dict(self.metadata),
            "http_headers": self.http_headers,
        }

    async def set_metadata(
        self,
        metadata: Dict[str, str],
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        self.calls.append(("set_metadata", {"metadata": metadata, "conditions": conditions}))
        self.metadata = dict(metadata)
        return {"etag": "0x2"}

    async def set_http_headers(
        self,
        http_headers: PathHttpHeaders,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        self.calls.append(
            ("set_http_headers", {"http_headers": http_headers, "conditions": conditions})
        )
        self.http_headers = http_headers
        return {"etag": "0x3"}

    def child(self, name: str) -> "FakePathOperations":
        child = FakePathOperations(f"{self.path}/{name}")
        self.children[name] = child
        return child

    async def close(self) -> None:
        self.closed = True


def acl_batch(
    continuation: Optional[str] = None,
    directories: int = 0,
    files: int = 0,
    failures: int = 0,
    failed_entries: Optional[List[Dict[str, Any]]] = None,
) -> AccessControlRecursiveBatch:
    return AccessControlRecursiveBatch(
        continuation=continuation,
        directories_successful=directories,
        files_successful=files,
        failure_count=failures,
        failed_entries=failed_entries or [],
    )

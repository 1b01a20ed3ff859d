"""Models for Data Lake access control and chunked transfers."""

from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from datalake_sdk.common.utils import ceil_div


class AccessControlType(str, Enum):
    """Scope of a POSIX access control entry."""

    USER = "user"
    GROUP = "group"
    MASK = "mask"
    OTHER = "other"


class AccessControlChangeMode(str, Enum):
    """Mode of a recursive access control change."""

    SET = "set"
    MODIFY = "modify"
    REMOVE = "remove"


class PathResourceType(str, Enum):
    DIRECTORY = "directory"
    FILE = "file"


class RolePermissions(BaseModel):
    """Read, write and execute bits for one role."""

    read: bool = False
    write: bool = False
    execute: bool = False


class PathPermissions(BaseModel):
    """Symbolic POSIX permissions of a path.

    Attributes:
        owner: Permissions of the owning user.
        group: Permissions of the owning group.
        other: Permissions of everyone else.
        sticky_bit: Whether the sticky bit is set.
        extended_acls: Whether the path carries an extended ACL.
    """

    owner: RolePermissions
    group: RolePermissions
    other: RolePermissions
    sticky_bit: bool = False
    extended_acls: bool = False


class AccessControlEntry(BaseModel):
    """One POSIX access control entry.

    Attributes:
        scope: Whether the entry applies to a user, group, the mask or others.
        entity_id: Object id or principal name; empty for the owning user,
            owning group, mask and other.
        permissions: Granted permissions.
        default_scope: Whether the entry belongs to the default ACL of a
            directory.
    """

    scope: AccessControlType
    entity_id: Optional[str] = None
    permissions: RolePermissions = Field(default_factory=RolePermissions)
    default_scope: bool = False


class RemoveAccessControlEntry(BaseModel):
    """An entry to remove; removal entries carry no permission bits."""

    scope: AccessControlType
    entity_id: Optional[str] = None
    default_scope: bool = False


class PathAccessControl(BaseModel):
    """Owner, group, permissions and ACL of a single path."""

    owner: Optional[str] = None
    group: Optional[str] = None
    permissions: Optional[PathPermissions] = None
    acl: List[AccessControlEntry] = Field(default_factory=list)


class PathHttpHeaders(BaseModel):
    """HTTP headers stored with a path and returned when it is read."""

    model_config = ConfigDict(frozen=True)

    cache_control: Optional[str] = None
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None
    content_disposition: Optional[str] = None
    content_md5: Optional[bytes] = None


class AccessControlChangeCounters(BaseModel):
    """Counters of a recursive access control change."""

    model_config = ConfigDict(frozen=True)

    failed_changes_count: int = Field(default=0, ge=0)
    changed_directories_count: int = Field(default=0, ge=0)
    changed_files_count: int = Field(default=0, ge=0)

    def add(self, other: "AccessControlChangeCounters") -> "AccessControlChangeCounters":
        """Return the sum of these counters and ``other``."""
        return AccessControlChangeCounters(
            failed_changes_count=self.failed_changes_count + other.failed_changes_count,
            changed_directories_count=self.changed_directories_count
            + other.changed_directories_count,
            changed_files_count=self.changed_files_count + other.changed_files_count,
        )


class AccessControlChangeFailure(BaseModel):
    """A single path whose access control could not be changed."""

    name: str
    is_directory: bool = False
    error_message: str = ""


class AccessControlRecursiveBatch(BaseModel):
    """Response of one remote change-access-control-recursive call."""

    continuation: Optional[str] = None
    failure_count: int = 0
    directories_successful: int = 0
    files_successful: int = 0
    failed_entries: List[AccessControlChangeFailure] = Field(default_factory=list)

    def counters(self) -> AccessControlChangeCounters:
        return AccessControlChangeCounters(
            failed_changes_count=self.failure_count or 0,
            changed_directories_count=self.directories_successful or 0,
            changed_files_count=self.files_successful or 0,
        )


class AccessControlChanges(BaseModel):
    """Progress event delivered after every completed batch.

    Attributes:
        batch_failures: Entries that failed within this batch.
        batch_counters: Counters of this batch only.
        aggregate_counters: Counters of every batch so far.
        continuation_token: Token to resume after this batch, if any work remains.
    """

    batch_failures: List[AccessControlChangeFailure] = Field(default_factory=list)
    batch_counters: AccessControlChangeCounters
    aggregate_counters: AccessControlChangeCounters
    continuation_token: Optional[str] = None


class AccessControlChangeResult(BaseModel):
    """Outcome of a recursive access control change.

    ``continuation_token`` is only set when the change stopped because the
    batch limit was reached while work remained.
    """

    model_config = ConfigDict(frozen=True)

    counters: AccessControlChangeCounters
    continuation_token: Optional[str] = None


class TransferProgress(BaseModel):
    """Cumulative bytes transferred, delivered to transfer progress callbacks."""

    loaded_bytes: int = Field(ge=0)


class ChunkTask(BaseModel):
    """A contiguous byte range ``[offset, offset + length)`` of a transfer."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    offset: int = Field(ge=0)
    length: int = Field(gt=0)

    @property
    def end(self) -> int:
        return self.offset + self.length


class TransferPlan(BaseModel):
    """Chunk layout of one transfer, derived once and immutable afterwards."""

    model_config = ConfigDict(frozen=True)

    total_size: int = Field(ge=0)
    chunk_size: int = Field(gt=0)
    chunk_count: int = Field(ge=0)
    concurrency: int = Field(gt=0)

    @model_validator(mode="after")
    def _check_chunk_count(self) -> "TransferPlan":
        expected = ceil_div(self.total_size, self.chunk_size)
        if self.chunk_count != expected:
            raise ValueError(
                f"chunk_count {self.chunk_count} does not match "
                f"ceil({self.total_size} / {self.chunk_size}) = {expected}"
            )
        return self

    def chunks(self, start: int = 0) -> Iterator[ChunkTask]:
        """Yield the chunks of this plan; the last one absorbs any remainder.

        Args:
            start: Absolute offset of the first byte of the transfer.
        """
        for index in range(self.chunk_count):
            offset = index * self.chunk_size
            end = (
                self.total_size
                if index == self.chunk_count - 1
                else offset + self.chunk_size
            )
            yield ChunkTask(index=index, offset=start + offset, length=end - offset)


class FileUploadResult(BaseModel):
    """The create or flush response of an upload, with transfer metadata."""

    response: Dict[str, Any] = Field(default_factory=dict)
    transfer_plan: Optional[TransferPlan] = None
    bytes_transferred: int = 0
    chunks_appended: int = 0


AccessControlProgressCallback = Callable[[AccessControlChanges], Any]
TransferProgressCallback = Callable[[TransferProgress], Any]

"""Conversions between access control models and their wire strings."""

from typing import Any, Iterable, List, Optional, Sequence, Union

from datalake_sdk.clients.datalake.models import (
    AccessControlChangeFailure,
    AccessControlEntry,
    AccessControlType,
    PathPermissions,
    RemoveAccessControlEntry,
    RolePermissions,
)
from datalake_sdk.common.error_codes import ValidationError

DEFAULT_SCOPE_PREFIX = "default"


def to_role_permissions_string(
    permissions: RolePermissions, sticky_bit: bool = False
) -> str:
    if sticky_bit:
        execute = "t" if permissions.execute else "T"
    else:
        execute = "x" if permissions.execute else "-"
    return (
        f"{'r' if permissions.read else '-'}"
        f"{'w' if permissions.write else '-'}"
        f"{execute}"
    )


def parse_role_permissions(value: str, allow_sticky_bit: bool = False) -> RolePermissions:
    if len(value) != 3:
        raise ValidationError(
            ValidationError.ACL_PARSE_ERROR,
            f"role permissions must be 3 characters, got {value!r}",
        )
    read, write, execute = value
    valid_execute = "x-tT" if allow_sticky_bit else "x-"
    if read not in "r-" or write not in "w-" or execute not in valid_execute:
        raise ValidationError(
            ValidationError.ACL_PARSE_ERROR, f"invalid role permissions {value!r}"
        )
    return RolePermissions(
        read=read == "r", write=write == "w", execute=execute in ("x", "t")
    )


def to_permissions_string(permissions: PathPermissions) -> str:
    """Serialize permissions to the symbolic form, e.g. ``rwxr-x--T+``."""
    return (
        to_role_permissions_string(permissions.owner)
        + to_role_permissions_string(permissions.group)
        + to_role_permissions_string(permissions.other, permissions.sticky_bit)
        + ("+" if permissions.extended_acls else "")
    )


def parse_permissions(value: Optional[str]) -> Optional[PathPermissions]:
    """Parse the symbolic permissions returned by the service.

    Octal strings are not parsed and yield ``None``.
    """
    if not value or value[0].isdigit():
        return None
    if len(value) not in (9, 10):
        raise ValidationError(
            ValidationError.ACL_PARSE_ERROR, f"invalid permissions {value!r}"
        )
    return PathPermissions(
        owner=parse_role_permissions(value[0:3]),
        group=parse_role_permissions(value[3:6]),
        other=parse_role_permissions(value[6:9], allow_sticky_bit=True),
        sticky_bit=value[8] in ("t", "T"),
        extended_acls=len(value) == 10 and value[9] == "+",
    )


def _entry_prefix(
    entry: Union[AccessControlEntry, RemoveAccessControlEntry],
) -> str:
    scope = AccessControlType(entry.scope).value
    if entry.default_scope:
        return f"{DEFAULT_SCOPE_PREFIX}:{scope}"
    return scope


def to_acl_string(entries: Sequence[AccessControlEntry]) -> str:
    """Serialize ACL entries to ``[default:]scope:entity_id:rwx`` joined by commas."""
    return ",".join(
        f"{_entry_prefix(entry)}:{entry.entity_id or ''}:"
        f"{to_role_permissions_string(entry.permissions)}"
        for entry in entries
    )


def to_remove_acl_string(entries: Sequence[RemoveAccessControlEntry]) -> str:
    """Serialize removal entries to ``[default:]scope[:entity_id]`` joined by commas."""
    parts: List[str] = []
    for entry in entries:
        prefix = _entry_prefix(entry)
        parts.append(f"{prefix}:{entry.entity_id}" if entry.entity_id else prefix)
    return ",".join(parts)


def parse_acl_entry(value: str) -> AccessControlEntry:
    parts = value.strip().split(":")
    default_scope = False
    if len(parts) == 4 and parts[0] == DEFAULT_SCOPE_PREFIX:
        default_scope = True
        parts = parts[1:]
    if len(parts) != 3:
        raise ValidationError(
            ValidationError.ACL_PARSE_ERROR, f"invalid access control entry {value!r}"
        )
    scope, entity_id, permissions = parts
    try:
        access_control_type = AccessControlType(scope)
    except ValueError as e:
        raise ValidationError(
            ValidationError.ACL_PARSE_ERROR, f"invalid scope {scope!r} in {value!r}"
        ) from e
    return AccessControlEntry(
        scope=access_control_type,
        entity_id=entity_id or None,
        permissions=parse_role_permissions(permissions),
        default_scope=default_scope,
    )


def parse_acl(value: Optional[str]) -> List[AccessControlEntry]:
    """Parse a comma-separated ACL string into entries."""
    if not value:
        return []
    return [parse_acl_entry(item) for item in value.split(",") if item.strip()]


def to_change_failures(
    failed_entries: Optional[Iterable[Any]],
) -> List[AccessControlChangeFailure]:
    """Normalize failed entries from the operations layer.

    Accepts dictionaries or objects exposing ``name``, ``type`` and
    ``error_message`` as returned by the generated service models.
    """
    failures: List[AccessControlChangeFailure] = []
    for entry in failed_entries or []:
        if isinstance(entry, AccessControlChangeFailure):
            failures.append(entry)
            continue
        if isinstance(entry, dict):
            name = entry.get("name")
            entry_type = entry.get("type")
            error_message = entry.get("error_message") or entry.get("errorMessage")
        else:
            name = getattr(entry, "name", None)
            entry_type = getattr(entry, "type", None)
            error_message = getattr(entry, "error_message", None)
        failures.append(
            AccessControlChangeFailure(
                name=name or "",
                is_directory=entry_type == "DIRECTORY",
                error_message=error_message or "",
            )
        )
    return failures

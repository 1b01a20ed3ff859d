from hypothesis import strategies as st

from datalake_sdk.clients.datalake.models import (
    AccessControlEntry,
    AccessControlType,
    PathPermissions,
    RemoveAccessControlEntry,
    RolePermissions,
)

# Strategy for object ids and principal names; no separators
entity_id_strategy = st.text(
    min_size=1,
    max_size=36,
    alphabet=st.characters(
        whitelist_categories=("Lu", "Ll", "Nd"),
        blacklist_characters=[":", ",", " "],
    ),
)

role_permissions_strategy = st.builds(
    RolePermissions,
    read=st.booleans(),
    write=st.booleans(),
    execute=st.booleans(),
)

path_permissions_strategy = st.builds(
    PathPermissions,
    owner=role_permissions_strategy,
    group=role_permissions_strategy,
    other=role_permissions_strategy,
    sticky_bit=st.booleans(),
    extended_acls=st.booleans(),
)

# Entries for the owning user/group, the mask and other carry no entity id
access_control_entry_strategy = st.one_of(
    st.builds(
        AccessControlEntry,
        scope=st.sampled_from([AccessControlType.USER, AccessControlType.GROUP]),
        entity_id=st.one_of(st.none(), entity_id_strategy),
        permissions=role_permissions_strategy,
        default_scope=st.booleans(),
    ),
    st.builds(
        AccessControlEntry,
        scope=st.sampled_from([AccessControlType.MASK, AccessControlType.OTHER]),
        entity_id=st.none(),
        permissions=role_permissions_strategy,
        default_scope=st.booleans(),
    ),
)

acl_strategy = st.lists(access_control_entry_strategy, min_size=1, max_size=8)

remove_access_control_entry_strategy = st.builds(
    RemoveAccessControlEntry,
    scope=st.sampled_from(list(AccessControlType)),
    entity_id=st.one_of(st.none(), entity_id_strategy),
    default_scope=st.booleans(),
)

# Per-batch counters reported by the service
batch_counters_strategy = st.fixed_dictionaries(
    {
        "directories": st.integers(min_value=0, max_value=500),
        "files": st.integers(min_value=0, max_value=5000),
        "failures": st.integers(min_value=0, max_value=50),
    }
)

batch_counters_list_strategy = st.lists(batch_counters_strategy, min_size=1, max_size=8)

# Upload shapes small enough to run in memory
upload_shape_strategy = st.fixed_dictionaries(
    {
        "size": st.integers(min_value=1, max_value=4096),
        "chunk_size": st.integers(min_value=1, max_value=512),
        "max_concurrency": st.integers(min_value=1, max_value=6),
    }
)

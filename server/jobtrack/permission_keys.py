from enum import Enum


class PermissionKey(str, Enum):
    MANAGE_PROJECTS = "MANAGE_PROJECTS"
    MANAGE_INVENTORY = "MANAGE_INVENTORY"
    MANAGE_USERS = "MANAGE_USERS"


# Position column backing each permission.
PERMISSION_COLUMNS: dict[PermissionKey, str] = {
    PermissionKey.MANAGE_PROJECTS: "can_manage_projects",
    PermissionKey.MANAGE_INVENTORY: "can_manage_inventory",
    PermissionKey.MANAGE_USERS: "can_manage_users",
}

PERMISSION_DEFINITIONS: list[tuple[PermissionKey, str]] = [
    (PermissionKey.MANAGE_PROJECTS, "Manage projects"),
    (PermissionKey.MANAGE_INVENTORY, "Manage inventory"),
    (PermissionKey.MANAGE_USERS, "Manage users"),
]

PERMISSION_KEYS: list[str] = [key.value for key, _ in PERMISSION_DEFINITIONS]

# Seeded positions: name -> granted permissions.
DEFAULT_POSITIONS: list[tuple[str, list[PermissionKey], bool]] = [
    ("Administrator", list(PERMISSION_COLUMNS), True),
    ("Project Manager", [PermissionKey.MANAGE_PROJECTS], False),
    ("Warehouse Staff", [PermissionKey.MANAGE_INVENTORY], False),
    ("Viewer", [], False),
]

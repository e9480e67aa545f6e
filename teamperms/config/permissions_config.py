"""
Permissions and Roles Configuration
This config defines the permission identifiers, the built-in roles and their
default permission sets, and the roles a scheme creates for each scope.
Used by the migrations, scheme creation and the permissions reset.
"""

# Built-in role names
SYSTEM_ADMIN_ROLE = "system_admin"
SYSTEM_USER_ROLE = "system_user"
SYSTEM_GUEST_ROLE = "system_guest"
TEAM_ADMIN_ROLE = "team_admin"
TEAM_USER_ROLE = "team_user"
TEAM_GUEST_ROLE = "team_guest"
CHANNEL_ADMIN_ROLE = "channel_admin"
CHANNEL_USER_ROLE = "channel_user"
CHANNEL_GUEST_ROLE = "channel_guest"

# Scheme scopes
SCHEME_SCOPE_TEAM = "team"
SCHEME_SCOPE_CHANNEL = "channel"

# Permission identifiers grouped by the level they apply to
PERMISSIONS = {
    "system": {
        "manage_system": "Manage the system",
        "manage_roles": "Manage roles",
        "create_team": "Create teams",
        "list_users_without_team": "List users without a team",
        "create_direct_channel": "Create direct message channels",
        "create_group_channel": "Create group message channels",
        "create_emojis": "Create custom emojis",
        "delete_emojis": "Delete own custom emojis",
        "delete_others_emojis": "Delete custom emojis created by others",
        "view_members": "View members",
    },
    "team": {
        "view_team": "View team",
        "list_team_channels": "List team channels",
        "join_public_channels": "Join public channels",
        "read_public_channel": "Read public channels",
        "create_public_channel": "Create public channels",
        "create_private_channel": "Create private channels",
        "invite_user": "Invite users to the team",
        "add_user_to_team": "Add users to the team",
        "remove_user_from_team": "Remove users from the team",
        "manage_team": "Manage the team",
        "manage_team_roles": "Manage team roles",
        "manage_slash_commands": "Manage own slash commands",
        "manage_others_slash_commands": "Manage slash commands created by others",
        "manage_incoming_webhooks": "Manage incoming webhooks",
        "manage_outgoing_webhooks": "Manage outgoing webhooks",
    },
    "channel": {
        "read_channel": "Read channel",
        "add_reaction": "Add reactions",
        "remove_reaction": "Remove reactions",
        "create_post": "Create posts",
        "edit_post": "Edit own posts",
        "delete_post": "Delete own posts",
        "edit_others_posts": "Edit posts created by others",
        "delete_others_posts": "Delete posts created by others",
        "upload_file": "Upload files",
        "use_channel_mentions": "Use channel mentions",
        "use_group_mentions": "Use group mentions",
        "manage_public_channel_members": "Manage public channel members",
        "manage_private_channel_members": "Manage private channel members",
        "manage_public_channel_properties": "Manage public channel properties",
        "manage_private_channel_properties": "Manage private channel properties",
        "delete_public_channel": "Delete public channels",
        "delete_private_channel": "Delete private channels",
        "manage_channel_roles": "Manage channel roles",
    },
}

# Built-in role definitions. "inherits" pulls in the permissions of another role.
ROLE_DEFINITIONS = {
    CHANNEL_GUEST_ROLE: {
        "display_name": "Channel Guest",
        "description": "Default permissions for guests in a channel",
        "permissions": ["read_channel", "add_reaction", "remove_reaction", "create_post", "edit_post", "upload_file"],
    },
    CHANNEL_USER_ROLE: {
        "display_name": "Channel User",
        "description": "Default permissions for members of a channel",
        "inherits": CHANNEL_GUEST_ROLE,
        "permissions": [
            "delete_post",
            "use_channel_mentions",
            "manage_public_channel_members",
            "manage_private_channel_members",
            "manage_public_channel_properties",
            "manage_private_channel_properties",
            "delete_public_channel",
            "delete_private_channel",
        ],
    },
    CHANNEL_ADMIN_ROLE: {
        "display_name": "Channel Admin",
        "description": "Default permissions for channel administrators",
        "inherits": CHANNEL_USER_ROLE,
        "permissions": ["manage_channel_roles", "use_group_mentions"],
    },
    TEAM_GUEST_ROLE: {
        "display_name": "Team Guest",
        "description": "Default permissions for guests in a team",
        "permissions": ["view_team"],
    },
    TEAM_USER_ROLE: {
        "display_name": "Team User",
        "description": "Default permissions for members of a team",
        "inherits": TEAM_GUEST_ROLE,
        "permissions": [
            "list_team_channels",
            "join_public_channels",
            "read_public_channel",
            "create_public_channel",
            "create_private_channel",
            "invite_user",
            "add_user_to_team",
        ],
    },
    TEAM_ADMIN_ROLE: {
        "display_name": "Team Admin",
        "description": "Default permissions for team administrators",
        "inherits": TEAM_USER_ROLE,
        "permissions": [
            "edit_others_posts",
            "delete_others_posts",
            "remove_user_from_team",
            "manage_team",
            "manage_team_roles",
            "manage_channel_roles",
            "manage_slash_commands",
            "manage_others_slash_commands",
            "manage_incoming_webhooks",
            "manage_outgoing_webhooks",
            "use_group_mentions",
        ],
    },
    SYSTEM_GUEST_ROLE: {
        "display_name": "System Guest",
        "description": "Default permissions for guest accounts",
        "permissions": ["create_direct_channel", "create_group_channel"],
    },
    SYSTEM_USER_ROLE: {
        "display_name": "System User",
        "description": "Default permissions for every user account",
        "inherits": SYSTEM_GUEST_ROLE,
        "permissions": ["create_team", "list_users_without_team", "view_members", "create_emojis", "delete_emojis"],
    },
}

# Permissions the system admin must always hold
SYSTEM_ADMIN_REQUIRED_PERMISSIONS = [
    "create_emojis",
    "delete_emojis",
    "delete_others_emojis",
    "use_group_mentions",
]

# Scheme role fields and the built-in role each one is seeded from, per scope
SCHEME_ROLE_TEMPLATES = {
    SCHEME_SCOPE_TEAM: {
        "default_team_admin_role": TEAM_ADMIN_ROLE,
        "default_team_user_role": TEAM_USER_ROLE,
        "default_team_guest_role": TEAM_GUEST_ROLE,
        "default_channel_admin_role": CHANNEL_ADMIN_ROLE,
        "default_channel_user_role": CHANNEL_USER_ROLE,
        "default_channel_guest_role": CHANNEL_GUEST_ROLE,
    },
    SCHEME_SCOPE_CHANNEL: {
        "default_channel_admin_role": CHANNEL_ADMIN_ROLE,
        "default_channel_user_role": CHANNEL_USER_ROLE,
        "default_channel_guest_role": CHANNEL_GUEST_ROLE,
    },
}

SCHEME_ROLE_FIELDS = [
    "default_team_admin_role",
    "default_team_user_role",
    "default_team_guest_role",
    "default_channel_admin_role",
    "default_channel_user_role",
    "default_channel_guest_role",
]


def all_permission_ids():
    """Every known permission identifier, sorted"""
    return sorted(pid for group in PERMISSIONS.values() for pid in group)


def _resolve_permissions(role_name, seen=None):
    seen = seen or set()
    if role_name in seen:
        raise ValueError(f"Role inheritance cycle at {role_name}")
    seen.add(role_name)

    definition = ROLE_DEFINITIONS[role_name]
    permissions = set(definition["permissions"])
    if definition.get("inherits"):
        permissions |= _resolve_permissions(definition["inherits"], seen)
    return permissions


def get_default_roles():
    """
    Returns the built-in roles with their resolved default permissions
    Format: {
        "system_admin": {
            "display_name": "System Admin",
            "description": "...",
            "permissions": ["add_reaction", "create_emojis", ...]
        },
        ...
    }
    """
    roles = {}

    for role_name, definition in ROLE_DEFINITIONS.items():
        roles[role_name] = {
            "display_name": definition["display_name"],
            "description": definition["description"],
            "permissions": sorted(_resolve_permissions(role_name)),
        }

    # System admin holds every permission
    roles[SYSTEM_ADMIN_ROLE] = {
        "display_name": "System Admin",
        "description": "Full administrative access to the system",
        "permissions": all_permission_ids(),
    }

    return roles


# Export the defaults for use in migrations
DEFAULT_ROLES = get_default_roles()

"""
One-time permission migrations.

Each migration is keyed by a flag in the systems table. A migration runs only
while its flag is absent and the flag is written only after it succeeds, so a
failed run can simply be retried.
"""

import logging
from typing import Callable, List, NamedTuple

from supabase import Client

from teamperms.config.permissions_config import (
    CHANNEL_ADMIN_ROLE,
    DEFAULT_ROLES,
    SCHEME_ROLE_TEMPLATES,
    SCHEME_SCOPE_CHANNEL,
    SCHEME_SCOPE_TEAM,
    SYSTEM_ADMIN_ROLE,
    TEAM_ADMIN_ROLE,
)
from teamperms.core.errors import ConflictError, NotFoundError, StoreError, is_unique_violation
from teamperms.modules.permissions.schemas import MigrationStatus
from teamperms.modules.roles.schemas import RoleCreate, RolePatch
from teamperms.modules.roles.service import RoleService
from teamperms.modules.schemes.schemas import SchemeCreate, SchemeScope
from teamperms.modules.schemes.service import SchemeService
from teamperms.modules.systems.schemas import (
    MIGRATION_KEY_ADD_USE_GROUP_MENTIONS_PERMISSION,
    MIGRATION_KEY_ADVANCED_PERMISSIONS,
    MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2,
    MIGRATION_KEY_EMOJI_PERMISSIONS_SPLIT,
    MigrationState,
)
from teamperms.modules.systems.service import SystemService

logger = logging.getLogger(__name__)

DEFAULT_SCHEMES = {
    SCHEME_SCOPE_TEAM: {
        "name": "default_team_scheme",
        "display_name": "Default Team Scheme",
        "description": "Default permissions for teams",
    },
    SCHEME_SCOPE_CHANNEL: {
        "name": "default_channel_scheme",
        "display_name": "Default Channel Scheme",
        "description": "Default permissions for channels",
    },
}

# Flags cleared by a permissions reset; the default schemes survive a reset
ROLE_MIGRATION_KEYS = [
    MIGRATION_KEY_ADVANCED_PERMISSIONS,
    MIGRATION_KEY_EMOJI_PERMISSIONS_SPLIT,
    MIGRATION_KEY_ADD_USE_GROUP_MENTIONS_PERMISSION,
]


class Migration(NamedTuple):
    key: str
    apply: Callable[[], None]


class MigrationRunner:
    def __init__(self, supabase: Client):
        self.systems = SystemService(supabase)
        self.roles = RoleService(supabase)
        self.schemes = SchemeService(supabase)
        self.migrations = [
            Migration(MIGRATION_KEY_ADVANCED_PERMISSIONS, self.create_built_in_roles),
            Migration(MIGRATION_KEY_EMOJI_PERMISSIONS_SPLIT, self.split_emoji_permissions),
            Migration(MIGRATION_KEY_ADD_USE_GROUP_MENTIONS_PERMISSION, self.add_use_group_mentions_permission),
            Migration(MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2, self.create_default_schemes),
        ]

    def run_migrations(self) -> List[str]:
        """Run every pending migration in order. Returns the keys that ran."""
        applied = []
        for migration in self.migrations:
            if self.systems.get_migration_state(migration.key) == MigrationState.COMPLETED:
                continue

            logger.info(f"Running migration {migration.key}")
            try:
                migration.apply()
            except StoreError as e:
                logger.error(f"Migration {migration.key} failed: {e.detail}")
                raise
            self.systems.mark_migration_completed(migration.key)
            applied.append(migration.key)

        return applied

    def migration_status(self) -> List[MigrationStatus]:
        return [
            MigrationStatus(key=m.key, state=self.systems.get_migration_state(m.key))
            for m in self.migrations
        ]

    def reset_permissions_system(self) -> List[str]:
        """
        Put the built-in roles and the default schemes' roles back to their
        default permissions, then re-run the role migrations. Other schemes and
        their roles are left alone.
        """
        logger.info("Resetting permissions system")

        for role_name, defaults in DEFAULT_ROLES.items():
            self._reset_role(role_name, defaults, built_in=True)

        for scope, definition in DEFAULT_SCHEMES.items():
            scheme = self.schemes.get_scheme_by_name(definition["name"])
            if scheme is None:
                continue
            for field, base_role in SCHEME_ROLE_TEMPLATES[scope].items():
                role_name = getattr(scheme, field)
                if role_name:
                    self._reset_role(role_name, DEFAULT_ROLES[base_role], scheme_managed=True)

        for key in ROLE_MIGRATION_KEYS:
            self.systems.permanent_delete_by_name(key)

        return self.run_migrations()

    def create_built_in_roles(self):
        for role_name, defaults in DEFAULT_ROLES.items():
            try:
                self.roles.get_role_by_name(role_name)
                continue
            except NotFoundError:
                pass
            self._create_role(role_name, defaults, built_in=True)

    def split_emoji_permissions(self):
        self._grant(SYSTEM_ADMIN_ROLE, ["create_emojis", "delete_emojis", "delete_others_emojis"])

    def add_use_group_mentions_permission(self):
        for role_name in (SYSTEM_ADMIN_ROLE, TEAM_ADMIN_ROLE, CHANNEL_ADMIN_ROLE):
            self._grant(role_name, ["use_group_mentions"])

    def create_default_schemes(self):
        for scope, definition in DEFAULT_SCHEMES.items():
            if self.schemes.get_scheme_by_name(definition["name"]) is not None:
                continue
            try:
                self.schemes.save_scheme(SchemeCreate(scope=SchemeScope(scope), **definition))
            except ConflictError:
                logger.info(f"Default scheme {definition['name']} was created concurrently")

    def _grant(self, role_name: str, permissions: List[str]):
        role = self.roles.get_role_by_name(role_name)
        missing = set(permissions) - set(role.permissions)
        if not missing:
            return
        self.roles.patch_role(role.id, RolePatch(permissions=role.permissions + sorted(missing)))
        logger.info(f"Granted {', '.join(sorted(missing))} to {role_name}")

    def _reset_role(self, role_name: str, defaults: dict, built_in: bool = False, scheme_managed: bool = False):
        roles = self.roles.get_roles_by_names([role_name])
        if not roles:
            self._create_role(role_name, defaults, built_in=built_in, scheme_managed=scheme_managed)
            return
        self.roles.patch_role(roles[0].id, RolePatch(permissions=defaults["permissions"]))

    def _create_role(self, role_name: str, defaults: dict, built_in: bool = False, scheme_managed: bool = False):
        try:
            self.roles.create_role(RoleCreate(
                name=role_name,
                display_name=defaults["display_name"],
                description=defaults["description"],
                permissions=defaults["permissions"],
                built_in=built_in,
                scheme_managed=scheme_managed
            ))
        except StoreError as e:
            if not is_unique_violation(e.cause):
                raise
            logger.info(f"Role {role_name} was created concurrently")

"""Tests for the one-time permission migrations and the permissions reset."""

import pytest

from teamperms.config.permissions_config import (
    DEFAULT_ROLES,
    SYSTEM_ADMIN_REQUIRED_PERMISSIONS,
    SYSTEM_ADMIN_ROLE,
    TEAM_USER_ROLE,
)
from teamperms.core.errors import PartialFailureError
from teamperms.modules.permissions.migrations import MigrationRunner
from teamperms.modules.roles.schemas import RoleCreate, RolePatch
from teamperms.modules.roles.service import RoleService
from teamperms.modules.schemes.schemas import SchemeCreate, SchemeScope
from teamperms.modules.schemes.service import SchemeService
from teamperms.modules.systems.schemas import (
    MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2,
    MIGRATION_KEY_EMOJI_PERMISSIONS_SPLIT,
    MigrationState,
)
from teamperms.modules.systems.service import SystemService


def test_first_run_applies_every_migration(fake_supabase):
    runner = MigrationRunner(fake_supabase)

    applied = runner.run_migrations()

    assert applied == [m.key for m in runner.migrations]
    assert all(s.state == MigrationState.COMPLETED for s in runner.migration_status())
    assert {r["name"] for r in fake_supabase.rows("roles")} >= set(DEFAULT_ROLES)
    assert len(SchemeService(fake_supabase).get_schemes(SchemeScope.TEAM)) == 1
    assert len(SchemeService(fake_supabase).get_schemes(SchemeScope.CHANNEL)) == 1


def test_second_run_creates_nothing(migrated_supabase):
    schemes_before = len(migrated_supabase.rows("schemes"))
    roles_before = len(migrated_supabase.rows("roles"))

    assert MigrationRunner(migrated_supabase).run_migrations() == []
    assert len(migrated_supabase.rows("schemes")) == schemes_before
    assert len(migrated_supabase.rows("roles")) == roles_before


def test_pending_flag_runs_phase_2_again(migrated_supabase):
    schemes = SchemeService(migrated_supabase)
    before = len(schemes.get_schemes(SchemeScope.CHANNEL))
    SystemService(migrated_supabase).permanent_delete_by_name(MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2)

    applied = MigrationRunner(migrated_supabase).run_migrations()

    # Default schemes already exist under their fixed names
    assert applied == [MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2]
    assert len(schemes.get_schemes(SchemeScope.CHANNEL)) == before


def test_failed_migration_stays_pending(fake_supabase):
    # First role of the default team scheme fails
    fake_supabase.fail("roles", "insert", after=len(DEFAULT_ROLES))
    runner = MigrationRunner(fake_supabase)
    systems = SystemService(fake_supabase)

    with pytest.raises(PartialFailureError):
        runner.run_migrations()

    assert systems.get_migration_state(MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2) == MigrationState.PENDING
    assert fake_supabase.rows("schemes") == []

    assert runner.run_migrations() == [MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2]
    assert systems.get_migration_state(MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2) == MigrationState.COMPLETED
    assert len(fake_supabase.rows("schemes")) == 2


def test_emoji_split_grants_legacy_system_admin(fake_supabase):
    roles = RoleService(fake_supabase)
    roles.create_role(RoleCreate(
        name=SYSTEM_ADMIN_ROLE, display_name="System Admin", permissions=["manage_system"], built_in=True
    ))

    MigrationRunner(fake_supabase).run_migrations()

    permissions = roles.get_role_by_name(SYSTEM_ADMIN_ROLE).permissions
    assert "manage_system" in permissions
    for permission in SYSTEM_ADMIN_REQUIRED_PERMISSIONS:
        assert permission in permissions


def test_system_admin_permissions_survive_reset(migrated_supabase):
    roles = RoleService(migrated_supabase)
    runner = MigrationRunner(migrated_supabase)

    role = roles.get_role_by_name(SYSTEM_ADMIN_ROLE)
    for permission in SYSTEM_ADMIN_REQUIRED_PERMISSIONS:
        assert permission in role.permissions

    runner.reset_permissions_system()

    role = roles.get_role_by_name(SYSTEM_ADMIN_ROLE)
    for permission in SYSTEM_ADMIN_REQUIRED_PERMISSIONS:
        assert permission in role.permissions
    assert SystemService(migrated_supabase).is_migration_completed(MIGRATION_KEY_EMOJI_PERMISSIONS_SPLIT)


def test_reset_restores_defaults_and_keeps_custom_schemes(migrated_supabase):
    roles = RoleService(migrated_supabase)
    schemes = SchemeService(migrated_supabase)
    custom = schemes.create_scheme(SchemeCreate(display_name="Custom", scope=SchemeScope.CHANNEL))
    custom_guest = roles.get_role_by_name(custom.default_channel_guest_role)
    roles.patch_role(custom_guest.id, RolePatch(permissions=["read_channel"]))

    team_user = roles.get_role_by_name(TEAM_USER_ROLE)
    roles.patch_role(team_user.id, RolePatch(permissions=["view_team"]))
    default_channel = schemes.get_scheme_by_name("default_channel_scheme")
    default_guest = roles.get_role_by_name(default_channel.default_channel_guest_role)
    roles.patch_role(default_guest.id, RolePatch(permissions=[]))
    system_admin = roles.get_role_by_name(SYSTEM_ADMIN_ROLE)
    roles.patch_role(system_admin.id, RolePatch(permissions=["manage_system"]))

    MigrationRunner(migrated_supabase).reset_permissions_system()

    assert roles.get_role_by_name(TEAM_USER_ROLE).permissions == DEFAULT_ROLES[TEAM_USER_ROLE]["permissions"]
    assert roles.get_role_by_name(default_guest.name).permissions != []
    assert roles.get_role_by_name(SYSTEM_ADMIN_ROLE).permissions == DEFAULT_ROLES[SYSTEM_ADMIN_ROLE]["permissions"]
    assert schemes.get_scheme(custom.id).name == custom.name
    assert roles.get_role_by_name(custom_guest.name).permissions == ["read_channel"]


def test_reset_recreates_deleted_built_in_role(migrated_supabase):
    roles = RoleService(migrated_supabase)
    roles.delete_roles_by_names([TEAM_USER_ROLE])

    MigrationRunner(migrated_supabase).reset_permissions_system()

    assert roles.get_role_by_name(TEAM_USER_ROLE).built_in

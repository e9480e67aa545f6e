"""Tests for the permissions export."""

import io
import json

import pytest

from teamperms.config.permissions_config import SCHEME_ROLE_FIELDS
from teamperms.core.errors import StoreError
from teamperms.modules.permissions.exporter import SchemeExporter
from teamperms.modules.roles.service import RoleService
from teamperms.modules.schemes.schemas import SchemeCreate, SchemeScope
from teamperms.modules.schemes.service import SchemeService


class RecordingWriter:
    def __init__(self):
        self.writes = []

    def write(self, data):
        self.writes.append(data)
        return len(data)


def test_export_permissions(migrated_supabase):
    scheme = SchemeService(migrated_supabase).create_scheme(SchemeCreate(
        display_name="Engineering", description="Team scheme for engineering", scope=SchemeScope.TEAM
    ))
    roles = RoleService(migrated_supabase).get_roles_by_names(scheme.role_names())
    role_names = {role.name for role in roles}

    sink = RecordingWriter()
    count = SchemeExporter(migrated_supabase).export_permissions(sink)

    assert count == 3
    assert len(sink.writes) == 3
    assert all(w.endswith(b"\n") for w in sink.writes)

    row = json.loads(sink.writes[0])
    assert row["display_name"] == scheme.display_name
    assert row["name"] == scheme.name
    assert row["description"] == scheme.description
    assert row["scope"] == "team"
    for field in SCHEME_ROLE_FIELDS:
        assert row[field] == getattr(scheme, field)
        assert row[field] in role_names
    assert {r["name"] for r in row["roles"]} == role_names


def test_export_channel_scheme_leaves_team_roles_empty(migrated_supabase):
    sink = io.BytesIO()
    SchemeExporter(migrated_supabase).export_permissions(sink)

    rows = [json.loads(line) for line in sink.getvalue().splitlines()]
    channel = next(r for r in rows if r["scope"] == "channel")
    assert channel["default_team_admin_role"] == ""
    assert channel["default_team_user_role"] == ""
    assert channel["default_team_guest_role"] == ""
    assert len(channel["roles"]) == 3


def test_export_pages_through_schemes(migrated_supabase):
    sink = io.BytesIO()
    count = SchemeExporter(migrated_supabase, page_size=1).export_permissions(sink)
    assert count == 2
    assert len(sink.getvalue().splitlines()) == 2


def test_export_missing_role_exports_empty_name(migrated_supabase):
    scheme = SchemeService(migrated_supabase).get_scheme_by_name("default_channel_scheme")
    RoleService(migrated_supabase).delete_roles_by_names([scheme.default_channel_guest_role])

    record = SchemeExporter(migrated_supabase).build_record(scheme)

    assert record.default_channel_guest_role == ""
    assert record.default_channel_admin_role == scheme.default_channel_admin_role


def test_export_stops_on_store_error(migrated_supabase):
    migrated_supabase.fail("roles", "select", after=1)
    sink = RecordingWriter()

    with pytest.raises(StoreError):
        SchemeExporter(migrated_supabase).export_permissions(sink)

    # Output written before the failure is kept
    assert len(sink.writes) == 1

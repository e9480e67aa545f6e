"""Shared fixtures: an in-memory stand-in for the Supabase client and an API client."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from teamperms.config import settings
from teamperms.database.supabase_client import get_supabase, get_service_supabase
from teamperms.main import app
from teamperms.modules.permissions.migrations import MigrationRunner
from teamperms.modules.systems.schemas import MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2
from teamperms.modules.systems.service import SystemService

ADMIN_TOKEN = "test-admin-token"

UNIQUE_COLUMNS = {
    "roles": "name",
    "schemes": "name",
    "systems": "name",
}

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Records a PostgREST query builder chain and runs it against FakeSupabase."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.order_by = None
        self.row_limit = None
        self.row_offset = 0

    def select(self, *columns):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.op = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def offset(self, count):
        self.row_offset = count
        return self

    def execute(self):
        return self.db.execute(self)


class FakeSupabase:
    """Just enough of supabase.Client for the services: tables, unique names, injectable failures."""

    def __init__(self):
        self.tables = {"roles": [], "schemes": [], "systems": []}
        self.failures = []
        self._clock = 0

    def table(self, name):
        return FakeQuery(self, name)

    def fail(self, table, op, after=0, times=1, code="XX000"):
        """Make the (after+1)-th matching call fail `times` times with an APIError."""
        self.failures.append({"table": table, "op": op, "after": after, "times": times, "code": code})

    def rows(self, table):
        return [dict(row) for row in self.tables[table]]

    def execute(self, query: FakeQuery):
        self._maybe_fail(query)
        rows = self.tables.setdefault(query.table, [])
        matched = [row for row in rows if all(f(row) for f in query.filters)]

        if query.op == "select":
            if query.order_by:
                column, desc = query.order_by
                matched.sort(key=lambda row: row.get(column) or "", reverse=desc)
            matched = matched[query.row_offset:]
            if query.row_limit is not None:
                matched = matched[:query.row_limit]
            return FakeResult([dict(row) for row in matched])

        if query.op == "insert":
            payloads = query.payload if isinstance(query.payload, list) else [query.payload]
            return FakeResult([self._insert(query.table, payload) for payload in payloads])

        if query.op == "upsert":
            key = query.on_conflict
            existing = [row for row in rows if row.get(key) == query.payload.get(key)]
            if existing:
                existing[0].update(query.payload)
                return FakeResult([dict(existing[0])])
            return FakeResult([self._insert(query.table, query.payload)])

        if query.op == "update":
            for row in matched:
                row.update(query.payload)
            return FakeResult([dict(row) for row in matched])

        if query.op == "delete":
            self.tables[query.table] = [row for row in rows if row not in matched]
            return FakeResult([dict(row) for row in matched])

        raise AssertionError(f"unsupported operation {query.op}")

    def _insert(self, table, payload):
        unique = UNIQUE_COLUMNS.get(table)
        if unique and any(row.get(unique) == payload.get(unique) for row in self.tables[table]):
            raise APIError({
                "message": f'duplicate key value violates unique constraint "{table}_{unique}_key"',
                "code": "23505",
            })
        self._clock += 1
        row = {
            "id": str(uuid.uuid4()),
            "created_at": (_EPOCH + timedelta(seconds=self._clock)).isoformat(),
            "updated_at": None,
        }
        row.update(payload)
        self.tables[table].append(row)
        return dict(row)

    def _maybe_fail(self, query):
        for rule in self.failures:
            if rule["table"] != query.table or rule["op"] != query.op or rule["times"] <= 0:
                continue
            if rule["after"] > 0:
                rule["after"] -= 1
                continue
            rule["times"] -= 1
            raise APIError({"message": f"injected {query.op} failure on {query.table}", "code": rule["code"]})


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def migrated_supabase(fake_supabase):
    """Store with every permission migration applied."""
    MigrationRunner(fake_supabase).run_migrations()
    return fake_supabase


@pytest.fixture
def with_migration_marked_complete():
    """Run a block with the phase 2 migration flag set, removing the flag afterwards."""

    def run(supabase, block):
        systems = SystemService(supabase)
        systems.permanent_delete_by_name(MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2)
        systems.save(MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2, "true")
        try:
            return block()
        finally:
            systems.permanent_delete_by_name(MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2)

    return run


@pytest.fixture
def client(migrated_supabase, monkeypatch):
    monkeypatch.setattr(settings, "admin_api_token", ADMIN_TOKEN)
    app.dependency_overrides[get_supabase] = lambda: migrated_supabase
    app.dependency_overrides[get_service_supabase] = lambda: migrated_supabase
    test_client = TestClient(app)
    test_client.headers.update({"Authorization": f"Bearer {ADMIN_TOKEN}"})
    yield test_client
    app.dependency_overrides.clear()

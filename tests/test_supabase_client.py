"""Tests for the cached Supabase clients."""

import pytest

from teamperms.config import settings
from teamperms.database import supabase_client
from teamperms.database.supabase_client import SupabaseClient, get_service_supabase, get_supabase


@pytest.fixture
def created(monkeypatch):
    calls = []

    def fake_create_client(url, key):
        calls.append((url, key))
        return object()

    monkeypatch.setattr(supabase_client, "create_client", fake_create_client)
    monkeypatch.setattr(settings, "supabase_url", "https://example.supabase.co")
    monkeypatch.setattr(settings, "supabase_key", "anon-key")
    SupabaseClient.reset_client()
    yield calls
    SupabaseClient.reset_client()


def test_clients_are_cached(created):
    assert get_supabase() is get_supabase()
    assert created == [("https://example.supabase.co", "anon-key")]


def test_service_client_uses_service_role_key(created, monkeypatch):
    monkeypatch.setattr(settings, "supabase_service_role_key", "service-key")

    service = get_service_supabase()

    assert service is not get_supabase()
    assert service is get_service_supabase()
    assert created == [
        ("https://example.supabase.co", "service-key"),
        ("https://example.supabase.co", "anon-key"),
    ]


def test_service_client_falls_back_to_anon_client(created, monkeypatch):
    monkeypatch.setattr(settings, "supabase_service_role_key", None)
    assert get_service_supabase() is get_supabase()
    assert created == [("https://example.supabase.co", "anon-key")]

"""
Supabase clients.

The anon-key client serves the regular API routes. The service-role client
bypasses row level security and is used for migrations, the permissions reset,
startup and the admin CLI.
"""

import logging
from typing import Dict, Optional

from supabase import create_client, Client
from teamperms.config import settings

logger = logging.getLogger(__name__)

ANON = "anon"
SERVICE_ROLE = "service_role"


class SupabaseClient:
    _clients: Dict[str, Client] = {}

    @classmethod
    def _client_for(cls, role: str, key: Optional[str]) -> Client:
        if role not in cls._clients:
            logger.debug(f"Creating Supabase {role} client")
            cls._clients[role] = create_client(settings.supabase_url, key)
        return cls._clients[role]

    @classmethod
    def get_client(cls) -> Client:
        return cls._client_for(ANON, settings.supabase_key)

    @classmethod
    def get_service_client(cls) -> Client:
        """Falls back to the anon client when no service role key is configured."""
        if not settings.supabase_service_role_key:
            return cls.get_client()
        return cls._client_for(SERVICE_ROLE, settings.supabase_service_role_key)

    @classmethod
    def reset_client(cls):
        cls._clients.clear()


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_service_supabase() -> Client:
    return SupabaseClient.get_service_client()

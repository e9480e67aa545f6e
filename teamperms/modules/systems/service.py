import logging
from typing import Optional

from postgrest.exceptions import APIError
from supabase import Client

from teamperms.core.errors import StoreError
from teamperms.modules.systems.schemas import System, MigrationState

logger = logging.getLogger(__name__)

COMPLETED_VALUE = "true"


class SystemService:
    """Durable key/value flags, used to gate one-time migrations"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_by_name(self, name: str) -> Optional[System]:
        try:
            result = self.supabase.table("systems")\
                .select("*")\
                .eq("name", name)\
                .limit(1)\
                .execute()
        except APIError as e:
            raise StoreError(f"Failed to read system flag {name}", e)

        if not result.data:
            return None
        return System(**result.data[0])

    def save(self, name: str, value: str) -> System:
        """Insert or overwrite a flag"""
        try:
            result = self.supabase.table("systems")\
                .upsert({"name": name, "value": value}, on_conflict="name")\
                .execute()
        except APIError as e:
            raise StoreError(f"Failed to save system flag {name}", e)

        if not result.data:
            raise StoreError(f"Failed to save system flag {name}")
        return System(**result.data[0])

    def permanent_delete_by_name(self, name: str) -> bool:
        try:
            result = self.supabase.table("systems")\
                .delete()\
                .eq("name", name)\
                .execute()
        except APIError as e:
            raise StoreError(f"Failed to delete system flag {name}", e)
        return len(result.data) > 0

    def get_migration_state(self, key: str) -> MigrationState:
        system = self.get_by_name(key)
        if system is not None and system.value == COMPLETED_VALUE:
            return MigrationState.COMPLETED
        return MigrationState.PENDING

    def mark_migration_completed(self, key: str) -> None:
        self.save(key, COMPLETED_VALUE)
        logger.info(f"Migration {key} marked completed")

    def is_migration_completed(self, key: str) -> bool:
        return self.get_migration_state(key) == MigrationState.COMPLETED

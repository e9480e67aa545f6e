from enum import Enum
from pydantic import BaseModel


class System(BaseModel):
    name: str
    value: str

    class Config:
        from_attributes = True


class MigrationState(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


# Well-known migration keys, in the order they run
MIGRATION_KEY_ADVANCED_PERMISSIONS = "advanced_permissions_migration_complete"
MIGRATION_KEY_EMOJI_PERMISSIONS_SPLIT = "emoji_permissions_split"
MIGRATION_KEY_ADD_USE_GROUP_MENTIONS_PERMISSION = "add_use_group_mentions_permission"
MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2 = "migration_advanced_permissions_phase_2"

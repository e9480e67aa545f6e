from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from teamperms.config.permissions_config import SCHEME_SCOPE_TEAM, SCHEME_SCOPE_CHANNEL

SCHEME_NAME_PATTERN = r"^[a-z0-9_-]+$"


class SchemeScope(str, Enum):
    TEAM = SCHEME_SCOPE_TEAM
    CHANNEL = SCHEME_SCOPE_CHANNEL


class SchemeCreate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=64, pattern=SCHEME_NAME_PATTERN)
    display_name: str = Field(min_length=1, max_length=128)
    description: str = Field(default="", max_length=1024)
    scope: SchemeScope


class SchemePatch(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = Field(default=None, max_length=1024)


class SchemeResponse(BaseModel):
    id: str
    name: str
    display_name: str
    description: str = ""
    scope: SchemeScope
    default_team_admin_role: str = ""
    default_team_user_role: str = ""
    default_team_guest_role: str = ""
    default_channel_admin_role: str = ""
    default_channel_user_role: str = ""
    default_channel_guest_role: str = ""
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def role_names(self):
        """Non-empty default role names of this scheme"""
        return [
            name for name in (
                self.default_team_admin_role,
                self.default_team_user_role,
                self.default_team_guest_role,
                self.default_channel_admin_role,
                self.default_channel_user_role,
                self.default_channel_guest_role,
            ) if name
        ]

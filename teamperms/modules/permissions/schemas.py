from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List

from teamperms.config.permissions_config import all_permission_ids
from teamperms.modules.schemes.schemas import SCHEME_NAME_PATTERN, SchemeScope
from teamperms.modules.systems.schemas import MigrationState


class RoleExport(BaseModel):
    name: str
    display_name: str = ""
    description: str = ""
    permissions: List[str] = []

    @field_validator("permissions")
    @classmethod
    def check_known_permissions(cls, value: List[str]) -> List[str]:
        unknown = set(value) - set(all_permission_ids())
        if unknown:
            raise ValueError(f"Unknown permissions: {', '.join(sorted(unknown))}")
        return value


class SchemeExport(BaseModel):
    """One line of a permissions export"""
    name: str = Field(min_length=1, max_length=64, pattern=SCHEME_NAME_PATTERN)
    display_name: str = Field(min_length=1, max_length=128)
    description: str = Field(default="", max_length=1024)
    scope: SchemeScope
    default_team_admin_role: str = ""
    default_team_user_role: str = ""
    default_team_guest_role: str = ""
    default_channel_admin_role: str = ""
    default_channel_user_role: str = ""
    default_channel_guest_role: str = ""
    roles: List[RoleExport] = []

    @model_validator(mode="after")
    def check_scope_roles(self):
        if self.scope == SchemeScope.CHANNEL and any((
            self.default_team_admin_role,
            self.default_team_user_role,
            self.default_team_guest_role,
        )):
            raise ValueError("channel scheme cannot reference team roles")
        return self


class ImportSummary(BaseModel):
    created: int = 0
    skipped: int = 0
    created_names: List[str] = []
    skipped_names: List[str] = []


class MigrationStatus(BaseModel):
    key: str
    state: MigrationState

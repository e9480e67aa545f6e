from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime


def _normalize_permissions(value: List[str]) -> List[str]:
    return sorted({p.strip() for p in value if p and p.strip()})


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    display_name: str = Field(min_length=1, max_length=128)
    description: Optional[str] = Field(default=None, max_length=1024)
    permissions: List[str] = []
    scheme_managed: bool = False
    built_in: bool = False

    @field_validator("permissions")
    @classmethod
    def normalize_permissions(cls, value: List[str]) -> List[str]:
        return _normalize_permissions(value)


class RolePatch(BaseModel):
    permissions: Optional[List[str]] = None

    @field_validator("permissions")
    @classmethod
    def normalize_permissions(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        return _normalize_permissions(value)


class RoleResponse(BaseModel):
    id: str
    name: str
    display_name: str
    description: Optional[str] = None
    permissions: List[str] = []
    scheme_managed: bool = False
    built_in: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

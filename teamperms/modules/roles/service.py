import logging
from datetime import datetime, timezone
from typing import List

from postgrest.exceptions import APIError
from supabase import Client

from teamperms.config.permissions_config import all_permission_ids
from teamperms.core.errors import NotFoundError, StoreError, ValidationError
from teamperms.modules.roles.schemas import RoleCreate, RolePatch, RoleResponse

logger = logging.getLogger(__name__)


class RoleService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_role(self, role_data: RoleCreate) -> RoleResponse:
        """Create a new role"""
        self._check_permissions(role_data.permissions)
        try:
            result = self.supabase.table("roles").insert({
                "name": role_data.name,
                "display_name": role_data.display_name,
                "description": role_data.description,
                "permissions": role_data.permissions,
                "scheme_managed": role_data.scheme_managed,
                "built_in": role_data.built_in
            }).execute()
        except APIError as e:
            raise StoreError(f"Failed to create role {role_data.name}: {e.message}", e)

        if not result.data:
            raise StoreError(f"Failed to create role {role_data.name}")

        return RoleResponse(**result.data[0])

    def get_role_by_id(self, role_id: str) -> RoleResponse:
        """Get role by ID"""
        return self._get_one("id", role_id)

    def get_role_by_name(self, name: str) -> RoleResponse:
        """Get role by its unique name"""
        return self._get_one("name", name)

    def get_roles_by_names(self, names: List[str]) -> List[RoleResponse]:
        """Get the roles matching names; unknown names are left out"""
        names = [n for n in names if n]
        if not names:
            return []
        try:
            result = self.supabase.table("roles")\
                .select("*")\
                .in_("name", names)\
                .execute()
        except APIError as e:
            raise StoreError("Failed to read roles", e)
        return [RoleResponse(**role) for role in result.data]

    def list_roles(self, limit: int = 100, offset: int = 0) -> List[RoleResponse]:
        try:
            result = self.supabase.table("roles")\
                .select("*")\
                .order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
        except APIError as e:
            raise StoreError("Failed to list roles", e)
        return [RoleResponse(**role) for role in result.data]

    def patch_role(self, role_id: str, patch: RolePatch) -> RoleResponse:
        """Replace the permission set of a role"""
        if patch.permissions is None:
            return self.get_role_by_id(role_id)

        self._check_permissions(patch.permissions)
        try:
            result = self.supabase.table("roles")\
                .update({
                    "permissions": patch.permissions,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                })\
                .eq("id", role_id)\
                .execute()
        except APIError as e:
            raise StoreError(f"Failed to update role {role_id}", e)

        if not result.data:
            raise NotFoundError("Role not found")

        return RoleResponse(**result.data[0])

    def delete_role(self, role_id: str) -> bool:
        """Delete role"""
        try:
            result = self.supabase.table("roles")\
                .delete()\
                .eq("id", role_id)\
                .execute()
        except APIError as e:
            raise StoreError(f"Failed to delete role {role_id}", e)
        return len(result.data) > 0

    def delete_roles_by_names(self, names: List[str]) -> int:
        names = [n for n in names if n]
        if not names:
            return 0
        try:
            result = self.supabase.table("roles")\
                .delete()\
                .in_("name", names)\
                .execute()
        except APIError as e:
            raise StoreError("Failed to delete roles", e)
        return len(result.data)

    def _get_one(self, column: str, value: str) -> RoleResponse:
        try:
            result = self.supabase.table("roles")\
                .select("*")\
                .eq(column, value)\
                .limit(1)\
                .execute()
        except APIError as e:
            raise StoreError(f"Failed to read role {value}", e)

        if not result.data:
            raise NotFoundError("Role not found")

        return RoleResponse(**result.data[0])

    @staticmethod
    def _check_permissions(permissions: List[str]):
        unknown = set(permissions) - set(all_permission_ids())
        if unknown:
            raise ValidationError(f"Unknown permissions: {', '.join(sorted(unknown))}")

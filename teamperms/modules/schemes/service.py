import logging
from contextlib import ExitStack
from datetime import datetime, timezone
from typing import List, Optional

from postgrest.exceptions import APIError
from supabase import Client

from teamperms.config.permissions_config import (
    DEFAULT_ROLES,
    SCHEME_ROLE_FIELDS,
    SCHEME_ROLE_TEMPLATES,
)
from teamperms.core.errors import (
    ConflictError,
    MigrationNotCompletedError,
    NotFoundError,
    PartialFailureError,
    StoreError,
    is_unique_violation,
)
from teamperms.core.ids import new_id
from teamperms.modules.roles.schemas import RoleCreate, RoleResponse
from teamperms.modules.roles.service import RoleService
from teamperms.modules.schemes.schemas import SchemeCreate, SchemePatch, SchemeResponse, SchemeScope
from teamperms.modules.systems.schemas import MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2
from teamperms.modules.systems.service import SystemService

logger = logging.getLogger(__name__)


class SchemeService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.roles = RoleService(supabase)
        self.systems = SystemService(supabase)

    def create_scheme(self, scheme_data: SchemeCreate) -> SchemeResponse:
        """Create a scheme and its default roles. Needs the phase 2 migration to have run."""
        if not self.systems.is_migration_completed(MIGRATION_KEY_ADVANCED_PERMISSIONS_PHASE_2):
            raise MigrationNotCompletedError()
        return self.save_scheme(scheme_data)

    def save_scheme(self, scheme_data: SchemeCreate) -> SchemeResponse:
        """
        Write the scheme row, then one role per default role field of its scope.

        If a role cannot be created, the roles created so far and the scheme row
        are deleted and PartialFailureError is raised.
        """
        name = scheme_data.name or new_id()
        template = SCHEME_ROLE_TEMPLATES[scheme_data.scope.value]
        role_names = {field: new_id() for field in template}

        row = {
            "name": name,
            "display_name": scheme_data.display_name,
            "description": scheme_data.description,
            "scope": scheme_data.scope.value,
        }
        for field in SCHEME_ROLE_FIELDS:
            row[field] = role_names.get(field, "")

        try:
            result = self.supabase.table("schemes").insert(row).execute()
        except APIError as e:
            if is_unique_violation(e):
                raise ConflictError(f"Scheme {name} already exists")
            raise StoreError(f"Failed to create scheme {name}: {e.message}", e)

        if not result.data:
            raise StoreError(f"Failed to create scheme {name}")
        scheme = SchemeResponse(**result.data[0])

        created_role_ids = []
        leftovers = []
        try:
            with ExitStack() as rollback:
                rollback.callback(self._discard_partial_scheme, scheme.id, created_role_ids, leftovers)
                for field, base_role in template.items():
                    defaults = DEFAULT_ROLES[base_role]
                    role = self.roles.create_role(RoleCreate(
                        name=role_names[field],
                        display_name=f"{defaults['display_name']} Role for Scheme {name}",
                        description=defaults["description"],
                        permissions=defaults["permissions"],
                        scheme_managed=True
                    ))
                    created_role_ids.append(role.id)
                rollback.pop_all()
        except StoreError as e:
            if leftovers:
                logger.error(f"Role creation failed for scheme {name}; cleanup left behind {', '.join(leftovers)}")
                raise PartialFailureError(
                    f"Failed to create roles for scheme {name}; cleanup incomplete, left {', '.join(leftovers)}: {e.detail}", e
                )
            logger.warning(f"Role creation failed for scheme {name}; scheme and its roles deleted")
            raise PartialFailureError(f"Failed to create roles for scheme {name}: {e.detail}", e)

        logger.info(f"Created {scheme.scope.value} scheme {name} with {len(template)} roles")
        return scheme

    def get_scheme(self, scheme_id: str) -> SchemeResponse:
        scheme = self._find_one("id", scheme_id)
        if scheme is None:
            raise NotFoundError("Scheme not found")
        return scheme

    def get_scheme_by_name(self, name: str) -> Optional[SchemeResponse]:
        return self._find_one("name", name)

    def get_schemes(
        self,
        scope: Optional[SchemeScope] = None,
        offset: int = 0,
        limit: int = 100
    ) -> List[SchemeResponse]:
        """List schemes newest first, optionally only those of one scope"""
        try:
            query = self.supabase.table("schemes").select("*")
            if scope:
                query = query.eq("scope", SchemeScope(scope).value)
            result = query.order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
        except APIError as e:
            raise StoreError("Failed to list schemes", e)
        return [SchemeResponse(**scheme) for scheme in result.data]

    def get_scheme_roles(self, scheme_id: str) -> List[RoleResponse]:
        scheme = self.get_scheme(scheme_id)
        return self.roles.get_roles_by_names(scheme.role_names())

    def patch_scheme(self, scheme_id: str, patch: SchemePatch) -> SchemeResponse:
        update_data = {}
        if patch.display_name:
            update_data["display_name"] = patch.display_name
        if patch.description is not None:
            update_data["description"] = patch.description
        if not update_data:
            return self.get_scheme(scheme_id)

        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            result = self.supabase.table("schemes")\
                .update(update_data)\
                .eq("id", scheme_id)\
                .execute()
        except APIError as e:
            raise StoreError(f"Failed to update scheme {scheme_id}", e)

        if not result.data:
            raise NotFoundError("Scheme not found")
        return SchemeResponse(**result.data[0])

    def delete_scheme(self, scheme_id: str) -> SchemeResponse:
        """Delete a scheme and the roles it references"""
        scheme = self.get_scheme(scheme_id)
        self._delete_scheme_row(scheme.id)
        deleted = self.roles.delete_roles_by_names(scheme.role_names())
        logger.info(f"Deleted scheme {scheme.name} and {deleted} roles")
        return scheme

    def _delete_scheme_row(self, scheme_id: str):
        try:
            self.supabase.table("schemes")\
                .delete()\
                .eq("id", scheme_id)\
                .execute()
        except APIError as e:
            raise StoreError(f"Failed to delete scheme {scheme_id}", e)

    def _discard_partial_scheme(self, scheme_id: str, role_ids: List[str], leftovers: List[str]):
        """Delete a half-created scheme, recording in leftovers whatever could not be deleted"""
        # Scheme first, so no scheme ever points at a deleted role
        try:
            self._delete_scheme_row(scheme_id)
        except StoreError as e:
            logger.error(f"Could not delete partial scheme {scheme_id}: {e.detail}")
            leftovers.append(f"scheme {scheme_id}")
            leftovers.extend(f"role {role_id}" for role_id in role_ids)
            return

        for role_id in role_ids:
            try:
                self.roles.delete_role(role_id)
            except StoreError as e:
                logger.error(f"Could not delete role {role_id} of partial scheme {scheme_id}: {e.detail}")
                leftovers.append(f"role {role_id}")

    def _find_one(self, column: str, value: str) -> Optional[SchemeResponse]:
        try:
            result = self.supabase.table("schemes")\
                .select("*")\
                .eq(column, value)\
                .limit(1)\
                .execute()
        except APIError as e:
            raise StoreError(f"Failed to read scheme {value}", e)

        if not result.data:
            return None
        return SchemeResponse(**result.data[0])

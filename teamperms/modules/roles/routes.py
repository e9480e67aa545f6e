from fastapi import APIRouter, Depends
from teamperms.database.supabase_client import get_supabase
from teamperms.modules.roles.schemas import RolePatch, RoleResponse
from teamperms.modules.roles.service import RoleService
from teamperms.core.dependencies import require_admin
from supabase import Client
from typing import List

router = APIRouter(prefix="/roles", tags=["roles"], dependencies=[Depends(require_admin)])


def get_role_service(supabase: Client = Depends(get_supabase)) -> RoleService:
    return RoleService(supabase)


@router.get("", response_model=List[RoleResponse])
async def list_roles(
    limit: int = 100,
    offset: int = 0,
    service: RoleService = Depends(get_role_service)
):
    return service.list_roles(limit=limit, offset=offset)


@router.get("/name/{role_name}", response_model=RoleResponse)
async def get_role_by_name(
    role_name: str,
    service: RoleService = Depends(get_role_service)
):
    """Get role by its unique name"""
    return service.get_role_by_name(role_name)


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: str,
    service: RoleService = Depends(get_role_service)
):
    return service.get_role_by_id(role_id)


@router.patch("/{role_id}", response_model=RoleResponse)
async def patch_role(
    role_id: str,
    patch: RolePatch,
    service: RoleService = Depends(get_role_service)
):
    """Replace the permissions of a role"""
    return service.patch_role(role_id, patch)

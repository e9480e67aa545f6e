from fastapi import APIRouter, Depends
from teamperms.database.supabase_client import get_supabase
from teamperms.modules.roles.schemas import RoleResponse
from teamperms.modules.schemes.schemas import SchemeCreate, SchemePatch, SchemeResponse, SchemeScope
from teamperms.modules.schemes.service import SchemeService
from teamperms.core.dependencies import require_admin
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/schemes", tags=["schemes"], dependencies=[Depends(require_admin)])


def get_scheme_service(supabase: Client = Depends(get_supabase)) -> SchemeService:
    return SchemeService(supabase)


@router.post("", response_model=SchemeResponse, status_code=201)
async def create_scheme(
    scheme_data: SchemeCreate,
    service: SchemeService = Depends(get_scheme_service)
):
    """Create a scheme together with its default roles"""
    return service.create_scheme(scheme_data)


@router.get("", response_model=List[SchemeResponse])
async def list_schemes(
    scope: Optional[SchemeScope] = None,
    offset: int = 0,
    limit: int = 100,
    service: SchemeService = Depends(get_scheme_service)
):
    return service.get_schemes(scope=scope, offset=offset, limit=limit)


@router.get("/{scheme_id}", response_model=SchemeResponse)
async def get_scheme(
    scheme_id: str,
    service: SchemeService = Depends(get_scheme_service)
):
    return service.get_scheme(scheme_id)


@router.get("/{scheme_id}/roles", response_model=List[RoleResponse])
async def get_scheme_roles(
    scheme_id: str,
    service: SchemeService = Depends(get_scheme_service)
):
    """Roles referenced by the scheme's default role fields"""
    return service.get_scheme_roles(scheme_id)


@router.patch("/{scheme_id}", response_model=SchemeResponse)
async def patch_scheme(
    scheme_id: str,
    patch: SchemePatch,
    service: SchemeService = Depends(get_scheme_service)
):
    return service.patch_scheme(scheme_id, patch)


@router.delete("/{scheme_id}", status_code=204)
async def delete_scheme(
    scheme_id: str,
    service: SchemeService = Depends(get_scheme_service)
):
    """Delete a scheme and its roles"""
    service.delete_scheme(scheme_id)
    return None

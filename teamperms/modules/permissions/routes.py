import io
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from teamperms.database.supabase_client import get_supabase, get_service_supabase
from teamperms.modules.permissions.exporter import SchemeExporter
from teamperms.modules.permissions.importer import SchemeImporter
from teamperms.modules.permissions.migrations import MigrationRunner
from teamperms.modules.permissions.schemas import ImportSummary, MigrationStatus
from teamperms.core.dependencies import require_admin
from supabase import Client
from typing import List

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/permissions", tags=["permissions"], dependencies=[Depends(require_admin)])

NDJSON = "application/x-ndjson"


def get_exporter(supabase: Client = Depends(get_supabase)) -> SchemeExporter:
    return SchemeExporter(supabase)


def get_importer(supabase: Client = Depends(get_supabase)) -> SchemeImporter:
    return SchemeImporter(supabase)


def get_migration_runner(supabase: Client = Depends(get_service_supabase)) -> MigrationRunner:
    return MigrationRunner(supabase)


@router.get("/export")
async def export_permissions(exporter: SchemeExporter = Depends(get_exporter)):
    """Every scheme and its roles, one JSON record per line"""
    buffer = io.BytesIO()
    exporter.export_permissions(buffer)
    return Response(content=buffer.getvalue(), media_type=NDJSON)


@router.post("/import", response_model=ImportSummary)
async def import_permissions(
    request: Request,
    importer: SchemeImporter = Depends(get_importer)
):
    """Import a permissions export sent as the request body"""
    body = await request.body()
    return importer.import_permissions(body.splitlines())


@router.post("/reset", response_model=List[MigrationStatus])
async def reset_permissions(runner: MigrationRunner = Depends(get_migration_runner)):
    """Reset built-in roles to their default permissions"""
    runner.reset_permissions_system()
    return runner.migration_status()


@router.get("/migrations", response_model=List[MigrationStatus])
async def migration_status(runner: MigrationRunner = Depends(get_migration_runner)):
    return runner.migration_status()


@router.post("/migrations/run", response_model=List[MigrationStatus])
async def run_migrations(runner: MigrationRunner = Depends(get_migration_runner)):
    applied = runner.run_migrations()
    logger.info(f"Applied migrations: {applied}")
    return runner.migration_status()

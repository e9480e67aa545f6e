"""
Permissions export: every scheme, one JSON object per line.
"""

import logging
from typing import BinaryIO, Optional

from supabase import Client

from teamperms.config import settings
from teamperms.config.permissions_config import SCHEME_ROLE_FIELDS
from teamperms.modules.permissions.schemas import RoleExport, SchemeExport
from teamperms.modules.roles.service import RoleService
from teamperms.modules.schemes.schemas import SchemeResponse
from teamperms.modules.schemes.service import SchemeService

logger = logging.getLogger(__name__)


class SchemeExporter:
    def __init__(self, supabase: Client, page_size: Optional[int] = None):
        self.schemes = SchemeService(supabase)
        self.roles = RoleService(supabase)
        self.page_size = page_size or settings.export_page_size

    def export_permissions(self, sink: BinaryIO) -> int:
        """
        Write one record per scheme to sink and return how many were written.

        A store error stops the export; records already written stay written.
        """
        count = 0
        offset = 0
        while True:
            page = self.schemes.get_schemes(offset=offset, limit=self.page_size)
            for scheme in page:
                record = self.build_record(scheme)
                sink.write(record.model_dump_json().encode("utf-8") + b"\n")
                count += 1
            if len(page) < self.page_size:
                break
            offset += self.page_size

        logger.info(f"Exported {count} schemes")
        return count

    def build_record(self, scheme: SchemeResponse) -> SchemeExport:
        roles = {role.name: role for role in self.roles.get_roles_by_names(scheme.role_names())}

        fields = {}
        for field in SCHEME_ROLE_FIELDS:
            role = roles.get(getattr(scheme, field))
            if role is None and getattr(scheme, field):
                logger.warning(f"Scheme {scheme.name} references missing role {getattr(scheme, field)}")
            fields[field] = role.name if role else ""

        return SchemeExport(
            name=scheme.name,
            display_name=scheme.display_name,
            description=scheme.description,
            scope=scheme.scope,
            roles=[
                RoleExport(
                    name=role.name,
                    display_name=role.display_name,
                    description=role.description or "",
                    permissions=role.permissions
                )
                for role in roles.values()
            ],
            **fields
        )

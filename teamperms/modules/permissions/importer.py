"""
Permissions import: recreate schemes from a permissions export.
"""

import logging
from typing import Iterable, Union

from pydantic import ValidationError as PydanticValidationError
from supabase import Client

from teamperms.config.permissions_config import SCHEME_ROLE_FIELDS
from teamperms.core.errors import ConflictError, NotFoundError, PartialFailureError, StoreError, ValidationError
from teamperms.modules.permissions.schemas import ImportSummary, SchemeExport
from teamperms.modules.roles.schemas import RolePatch
from teamperms.modules.roles.service import RoleService
from teamperms.modules.schemes.schemas import SchemeCreate, SchemeResponse
from teamperms.modules.schemes.service import SchemeService

logger = logging.getLogger(__name__)


class SchemeImporter:
    def __init__(self, supabase: Client):
        self.schemes = SchemeService(supabase)
        self.roles = RoleService(supabase)

    def import_permissions(self, lines: Iterable[Union[str, bytes]]) -> ImportSummary:
        """
        Import each record of an export. Schemes whose name already exists are
        skipped, so importing the same export twice creates nothing new.

        Records before a failing one stay imported.
        """
        summary = ImportSummary()

        for line_number, line in enumerate(lines, start=1):
            if isinstance(line, bytes):
                try:
                    line = line.decode("utf-8")
                except UnicodeDecodeError:
                    raise ValidationError(f"Invalid scheme record on line {line_number}: not valid UTF-8")
            if not line.strip():
                continue

            record = self.parse_record(line, line_number)
            if self.schemes.get_scheme_by_name(record.name) is not None:
                self._skip(summary, record.name)
                continue

            try:
                self.import_scheme(record)
            except ConflictError:
                # Same name created by a concurrent import
                self._skip(summary, record.name)
                continue
            summary.created += 1
            summary.created_names.append(record.name)

        logger.info(f"Permissions import done: {summary.created} created, {summary.skipped} skipped")
        return summary

    @staticmethod
    def _skip(summary: ImportSummary, name: str):
        logger.info(f"Scheme {name} already exists, skipping")
        summary.skipped += 1
        summary.skipped_names.append(name)

    @staticmethod
    def parse_record(line: str, line_number: int = 1) -> SchemeExport:
        try:
            return SchemeExport.model_validate_json(line)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid scheme record on line {line_number}: {e.errors()[0]['msg']}")

    def import_scheme(self, record: SchemeExport) -> SchemeResponse:
        """Create the scheme, then give each of its roles the exported permissions"""
        scheme = self.schemes.create_scheme(SchemeCreate(
            name=record.name,
            display_name=record.display_name,
            description=record.description,
            scope=record.scope
        ))

        exported_roles = {role.name: role for role in record.roles}
        try:
            for field in SCHEME_ROLE_FIELDS:
                exported = exported_roles.get(getattr(record, field))
                new_role_name = getattr(scheme, field)
                if exported is None or not new_role_name:
                    continue
                role = self.roles.get_role_by_name(new_role_name)
                self.roles.patch_role(role.id, RolePatch(permissions=exported.permissions))
        except (StoreError, NotFoundError) as e:
            logger.warning(f"Updating roles of imported scheme {record.name} failed, deleting it")
            try:
                self.schemes.delete_scheme(scheme.id)
            except StoreError as cleanup_error:
                logger.error(f"Could not delete partially imported scheme {record.name}: {cleanup_error.detail}")
                raise PartialFailureError(
                    f"Failed to import roles for scheme {record.name}; cleanup incomplete: {e.detail}", e
                )
            raise PartialFailureError(f"Failed to import roles for scheme {record.name}: {e.detail}", e)

        return scheme

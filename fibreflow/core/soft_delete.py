"""
Soft delete (archive) support.

Rows in soft-deletable tables are never removed. Archiving stamps archived_at
with the current time and unarchiving clears it; each call is recorded in the
audit trail. The query helpers at the bottom keep archived rows out of reads
unless a caller asks for them.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from django.apps import apps
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from .audit import create_audit_log
from .exceptions import FibreflowError, NotFound, StorageError, ValidationError
from .models import ARCHIVE_MODES, AuditAction, AuditResourceType, SoftDeleteModel, SoftDeleteTable
from .signals import records_archived, records_restored

logger = logging.getLogger(__name__)

BULK_OPERATION_ID = 'bulk-operation'

TABLE_TO_RESOURCE_TYPE = {
    SoftDeleteTable.PROJECTS: AuditResourceType.PROJECT,
    SoftDeleteTable.CUSTOMERS: AuditResourceType.CUSTOMER,
    SoftDeleteTable.PHASES: AuditResourceType.PHASE,
    SoftDeleteTable.PROJECT_PHASES: AuditResourceType.PROJECT_PHASE,
    SoftDeleteTable.PROJECT_TASKS: AuditResourceType.PROJECT_TASK,
    SoftDeleteTable.STEPS: AuditResourceType.STEP,
    SoftDeleteTable.TASKS: AuditResourceType.TASK,
    SoftDeleteTable.LOCATIONS: AuditResourceType.LOCATION,
    SoftDeleteTable.STAFF: AuditResourceType.USER,
}


@dataclass
class ArchiveResult:
    success: bool
    data: list = field(default_factory=list)
    error: Optional[FibreflowError] = None


def get_model_for_table(table):
    """Return the soft-deletable model stored in ``table``"""
    for model in apps.get_models():
        if model._meta.db_table == table and issubclass(model, SoftDeleteModel):
            return model
    raise LookupError(f"No soft-deletable model uses table '{table}'")


def resolve_table(table):
    if table not in SoftDeleteTable.values:
        raise ValidationError(f"Table '{table}' does not support archiving")
    return get_model_for_table(table)


def _set_archived_at(model, ids, value):
    """Write archived_at for ``ids``; returns the updated rows"""
    model.objects.filter(pk__in=ids).update(archived_at=value)
    return list(model.objects.filter(pk__in=ids).values())


def _change_archive_state(table, ids, archived_at, action, resource_id, details, signal, user=None, request=None):
    """
    Stamp or clear archived_at on ``ids`` and write one audit entry.

    ``details`` is a callable building the audit details from the ids of the
    matched rows.
    """
    verb = 'archiving' if archived_at is not None else 'unarchiving'
    try:
        model = resolve_table(table)
        pk_name = model._meta.pk.attname
        with transaction.atomic():
            rows = _set_archived_at(model, ids, archived_at)
            if not rows:
                raise NotFound(f"No {table} record matches id {resource_id}")
            create_audit_log(
                action,
                TABLE_TO_RESOURCE_TYPE[table],
                resource_id,
                details(sorted(str(row[pk_name]) for row in rows)),
                request=request,
                user=user,
            )
    except FibreflowError as e:
        logger.warning(f"Error {verb} {resource_id} in {table}: {e.detail}")
        return ArchiveResult(success=False, error=e)
    except DjangoValidationError as e:
        logger.warning(f"Error {verb} {resource_id} in {table}: invalid id ({e.messages})")
        return ArchiveResult(success=False, error=ValidationError('Invalid record id', details=e.messages))
    except DatabaseError as e:
        logger.error(f"Error {verb} records in {table}: {str(e)}", exc_info=True)
        return ArchiveResult(success=False, error=StorageError(f'Failed to update {table}', details=str(e)))

    signal.send(sender=model, table=table, ids=[str(row[pk_name]) for row in rows])
    return ArchiveResult(success=True, data=rows)


def archive_record(table, record_id, details=None, user=None, request=None):
    """
    Archive a record by setting its archived_at timestamp.

    Archiving an already archived record re-stamps the timestamp.
    Returns an ArchiveResult; failures are reported in ``error`` rather than raised.
    """
    return _change_archive_state(
        table,
        [record_id],
        timezone.now(),
        AuditAction.DELETE,
        str(record_id),
        lambda matched: {**(details or {}), 'action': 'archive'},
        records_archived,
        user=user,
        request=request,
    )


def unarchive_record(table, record_id, details=None, user=None, request=None):
    """Restore an archived record by clearing archived_at"""
    return _change_archive_state(
        table,
        [record_id],
        None,
        AuditAction.UPDATE,
        str(record_id),
        lambda matched: {**(details or {}), 'action': 'unarchive'},
        records_restored,
        user=user,
        request=request,
    )


def bulk_archive_records(table, ids, details=None, user=None, request=None):
    """
    Archive several records in one update.

    At most BULK_ARCHIVE_LIMIT ids are accepted per call; larger requests are
    rejected before the database is touched. Duplicate ids are collapsed and
    unknown ids skipped; the single audit entry lists the ids actually archived.
    """
    limit = settings.BULK_ARCHIVE_LIMIT
    ids = list(ids or [])
    if len(ids) > limit:
        return ArchiveResult(
            success=False,
            error=ValidationError(f'Bulk archive operations are limited to {limit} records at a time'),
        )
    if not ids:
        return ArchiveResult(success=False, error=ValidationError('At least one id is required'))
    ids = list(dict.fromkeys(str(i) for i in ids))

    return _change_archive_state(
        table,
        ids,
        timezone.now(),
        AuditAction.DELETE,
        BULK_OPERATION_ID,
        lambda matched: {
            **(details or {}),
            'action': 'bulk-archive',
            'count': len(matched),
            'ids': matched,
        },
        records_archived,
        user=user,
        request=request,
    )


# Query helpers

def without_archived(queryset):
    return queryset.filter(archived_at__isnull=True)


def only_archived(queryset):
    return queryset.filter(archived_at__isnull=False)


def include_archived(queryset):
    return queryset


def archive_filter(queryset, mode='exclude'):
    """Apply the ?archived= mode (exclude, only, include) to a queryset"""
    if mode not in ARCHIVE_MODES:
        raise ValidationError(f"archived must be one of: {', '.join(ARCHIVE_MODES)}")
    if mode == 'only':
        return only_archived(queryset)
    if mode == 'include':
        return include_archived(queryset)
    return without_archived(queryset)


def select_from(table, columns=None, include_archived=False):
    """
    Standard read over a soft-deletable table.

    Returns a values() queryset projected onto ``columns`` (all fields when
    omitted) with archived rows excluded unless ``include_archived`` is set.
    """
    model = resolve_table(table)
    queryset = model.objects.values(*(columns or ()))
    if include_archived:
        return queryset
    return without_archived(queryset)

"""Utility functions for audit logging"""
import logging
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from django.conf import settings
from django.db import transaction

from .exceptions import StorageError
from .models import AuditLog, AuditAction, AuditResourceType

logger = logging.getLogger(__name__)

__all__ = ['AuditAction', 'AuditResourceType', 'create_audit_log', 'get_client_ip', 'normalize_details']


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def normalize_details(value):
    """Convert detail values into something the JSON column accepts"""
    if isinstance(value, dict):
        return {str(k): normalize_details(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [normalize_details(v) for v in value]
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def create_audit_log(action, resource_type, resource_id, details=None, request=None, user=None):
    """
    Append an audit log entry.

    Args:
        action: AuditAction value (create, update, delete, read)
        resource_type: AuditResourceType value
        resource_id: ID of the affected record, or a marker such as 'bulk-operation'
        details: Free-form mapping stored as JSON
        request: Request the action came from (for user and IP) - optional
        user: Optional user override (defaults to request.user)

    Writing the entry is best-effort: a failure is logged and the caller carries
    on, unless AUDIT_LOG_STRICT is set, in which case StorageError is raised.
    """
    if not action or not resource_type or not resource_id:
        logger.warning(
            f"Audit log creation skipped: missing required fields "
            f"(action={action}, resource_type={resource_type}, resource_id={resource_id})"
        )
        return None

    audit_user = user
    if audit_user is None and request is not None:
        audit_user = getattr(request, 'user', None)
    if audit_user is not None and not audit_user.is_authenticated:
        audit_user = None

    try:
        # Savepoint, so a failed insert does not abort the caller's transaction
        with transaction.atomic():
            return AuditLog.objects.create(
                user=audit_user,
                action=action,
                resource_type=resource_type,
                resource_id=str(resource_id),
                details=normalize_details(details or {}),
                ip_address=get_client_ip(request),
            )
    except Exception as e:
        logger.error(f"Failed to create audit log ({action} {resource_type} {resource_id}): {str(e)}", exc_info=True)
        if settings.AUDIT_LOG_STRICT:
            raise StorageError('Failed to write audit log', details=str(e)) from e
        return None

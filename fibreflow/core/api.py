"""Shared list / create / update / archive handling for soft-deletable resources"""
import logging

from rest_framework import status
from rest_framework.response import Response

from .audit import AuditAction, create_audit_log
from .model_cache import get_cached_table_list, cache_table_list
from .soft_delete import TABLE_TO_RESOURCE_TYPE, archive_filter, archive_record

logger = logging.getLogger(__name__)

LIST_CACHE_CONTROL = 'private, max-age=300, stale-while-revalidate=600'


def archive_mode(request):
    return request.query_params.get('archived', 'exclude')


def list_response(request, table, queryset, serializer_class, cacheable=True):
    """
    Serialize a table listing honouring ?archived=.

    Unfiltered listings are cached per table and archive mode; pass
    cacheable=False when the queryset carries request-specific filters.
    """
    mode = archive_mode(request)
    queryset = archive_filter(queryset, mode)

    if cacheable:
        cached_data = get_cached_table_list(table, mode)
        if cached_data is not None:
            response = Response(cached_data)
            response['Cache-Control'] = LIST_CACHE_CONTROL
            return response

    data = serializer_class(queryset, many=True).data
    if cacheable:
        cache_table_list(table, mode, data)
    response = Response(data)
    response['Cache-Control'] = LIST_CACHE_CONTROL
    return response


def invalid_data_response(errors):
    return Response({'error': 'Invalid data', 'details': errors}, status=status.HTTP_400_BAD_REQUEST)


def create_response(request, table, serializer_class, describe=None, **save_kwargs):
    """Validate and save a new row, then record a create audit entry"""
    serializer = serializer_class(data=request.data)
    if not serializer.is_valid():
        return invalid_data_response(serializer.errors)
    instance = serializer.save(**save_kwargs)
    create_audit_log(
        AuditAction.CREATE,
        TABLE_TO_RESOURCE_TYPE[table],
        instance.pk,
        describe(instance) if describe else {},
        request=request,
    )
    return Response(serializer.data, status=status.HTTP_201_CREATED)


def update_response(request, table, instance, serializer_class, partial=False):
    """Validate and save changes to a row, then record an update audit entry"""
    serializer = serializer_class(instance, data=request.data, partial=partial)
    if not serializer.is_valid():
        return invalid_data_response(serializer.errors)
    serializer.save()
    create_audit_log(
        AuditAction.UPDATE,
        TABLE_TO_RESOURCE_TYPE[table],
        instance.pk,
        {'changes': sorted(serializer.validated_data)},
        request=request,
    )
    return Response(serializer.data)


def archive_response(result):
    """Turn an ArchiveResult into a response, raising its error on failure"""
    if not result.success:
        raise result.error
    return Response({'success': True, 'data': result.data})


def archive_instance_response(request, table, instance):
    """DELETE on a detail endpoint archives the row instead of removing it"""
    logger.info(f"User {request.user.username} archiving {table} {instance.pk}")
    result = archive_record(table, instance.pk, {'source': 'delete'}, request=request)
    return archive_response(result)

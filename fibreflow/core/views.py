import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from django.shortcuts import get_object_or_404

from .api import archive_response
from .exceptions import ValidationError
from .filters import AuditLogFilter
from .model_cache import get_cached_archived_items, cache_archived_items
from .models import AuditLog
from .serializers import UserSerializer, AuditLogSerializer
from .soft_delete import archive_record, unarchive_record, bulk_archive_records, select_from, only_archived

logger = logging.getLogger('fibreflow.core')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user"""
    return Response(UserSerializer(request.user).data)


def request_details(request):
    details = request.data.get('details') or {}
    if not isinstance(details, dict):
        raise ValidationError('details must be an object')
    return details


# Archive endpoints
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def archive(request, table, pk):
    """Archive (soft delete) a record"""
    logger.info(f"User {request.user.username} archiving {table} {pk}")
    result = archive_record(table, pk, request_details(request), request=request)
    return archive_response(result)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def unarchive(request, table, pk):
    """Restore an archived record"""
    logger.info(f"User {request.user.username} restoring {table} {pk}")
    result = unarchive_record(table, pk, request_details(request), request=request)
    return archive_response(result)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def bulk_archive(request, table):
    """Archive up to BULK_ARCHIVE_LIMIT records in one call"""
    ids = request.data.get('ids')
    if not isinstance(ids, list):
        raise ValidationError('ids must be a list')
    logger.info(f"User {request.user.username} bulk archiving {len(ids)} {table} records")
    result = bulk_archive_records(table, ids, request_details(request), request=request)
    return archive_response(result)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def archived_items(request, table):
    """List the archived rows of a table, most recently archived first"""
    cached_data = get_cached_archived_items(table)
    if cached_data is not None:
        return Response(cached_data)

    queryset = only_archived(select_from(table, include_archived=True)).order_by('-archived_at')
    data = list(queryset)
    cache_archived_items(table, data)
    return Response(data)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')

    # Filter by user if not admin
    if not request.user.is_staff:
        queryset = queryset.filter(user=request.user)

    filterset = AuditLogFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response({'error': 'Invalid filters', 'details': filterset.errors}, status=status.HTTP_400_BAD_REQUEST)

    serializer = AuditLogSerializer(filterset.qs.order_by('-created_at'), many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)

    # Check permission if not admin
    if not request.user.is_staff and audit_log.user != request.user:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)

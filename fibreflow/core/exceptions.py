"""
Error taxonomy and the REST framework exception handler.

Every error leaves the API as {"error": ..., "details"?: ..., "setupRequired"?: true}.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class FibreflowError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Internal server error'
    default_code = 'error'

    def __init__(self, detail=None, details=None):
        super().__init__(detail)
        self.details = details


class ValidationError(FibreflowError):
    """Bad input: missing fields, bulk limit exceeded, unknown table"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid request'
    default_code = 'invalid'


class NotFound(FibreflowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found'
    default_code = 'not_found'


class Conflict(FibreflowError):
    """The row still has active children"""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflict'
    default_code = 'conflict'


class StorageError(FibreflowError):
    """The underlying database call failed"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Database error'
    default_code = 'storage_error'


class ConfigurationError(FibreflowError):
    """A required table is missing; the database needs setting up"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Database not fully configured'
    default_code = 'setup_required'


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.error(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}", exc_info=exc)
        return Response({'error': 'Internal server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, FibreflowError):
        body = {'error': str(exc.detail)}
        if exc.details is not None:
            body['details'] = exc.details
        if isinstance(exc, ConfigurationError):
            body['setupRequired'] = True
        response.data = body
    elif isinstance(response.data, dict) and set(response.data) == {'detail'}:
        # Authentication, permission and 404 errors raised by the framework itself
        response.data = {'error': str(response.data['detail'])}

    return response

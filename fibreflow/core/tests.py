"""
Test suite for the core module
Tests: archive service, audit logger, query helpers, system checks, archive and audit log APIs
"""
import uuid
from datetime import date
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.test import TestCase, RequestFactory, override_settings
from rest_framework import status

from fibreflow.core.audit import create_audit_log, get_client_ip, normalize_details
from fibreflow.core.checks import check_soft_delete_tables
from fibreflow.core.exceptions import (
    ConfigurationError, NotFound, StorageError, ValidationError, api_exception_handler,
)
from fibreflow.core.model_cache import get_table_list_cache_key
from fibreflow.core.models import AuditLog, AuditAction, AuditResourceType, SoftDeleteTable
from fibreflow.core.soft_delete import (
    BULK_OPERATION_ID, TABLE_TO_RESOURCE_TYPE,
    archive_record, unarchive_record, bulk_archive_records,
    without_archived, only_archived, include_archived, archive_filter, select_from,
)
from fibreflow.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from fibreflow.parties.models import Customer


class ArchiveServiceTests(TestCase):
    """Test archive / unarchive / bulk archive"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.customer = TestDataFactory.create_customer()

    def test_archive_record_sets_timestamp(self):
        """Test archiving stamps archived_at and returns the updated row"""
        result = archive_record('new_customers', self.customer.pk, user=self.user)

        self.assertTrue(result.success)
        self.assertIsNone(result.error)
        self.assertEqual(len(result.data), 1)
        self.assertEqual(result.data[0]['id'], self.customer.pk)
        self.assertIsNotNone(result.data[0]['archived_at'])
        self.customer.refresh_from_db()
        self.assertTrue(self.customer.is_archived)

    def test_archive_record_writes_audit_entry(self):
        """Test archive is logged as a delete with merged details"""
        archive_record('new_customers', self.customer.pk, {'reason': 'duplicate'}, user=self.user)

        log = AuditLog.objects.get(resource_id=str(self.customer.pk))
        self.assertEqual(log.action, AuditAction.DELETE)
        self.assertEqual(log.resource_type, AuditResourceType.CUSTOMER)
        self.assertEqual(log.details, {'action': 'archive', 'reason': 'duplicate'})
        self.assertEqual(log.user, self.user)

    def test_unarchive_record_restores(self):
        """Test unarchive clears archived_at and is logged as an update"""
        archive_record('new_customers', self.customer.pk)
        result = unarchive_record('new_customers', self.customer.pk)

        self.assertTrue(result.success)
        self.assertIsNone(result.data[0]['archived_at'])
        self.customer.refresh_from_db()
        self.assertIsNone(self.customer.archived_at)
        log = AuditLog.objects.filter(resource_id=str(self.customer.pk)).order_by('-id').first()
        self.assertEqual(log.action, AuditAction.UPDATE)
        self.assertEqual(log.details, {'action': 'unarchive'})

    def test_archive_twice_restamps(self):
        """Test archiving an archived record succeeds again"""
        first = archive_record('new_customers', self.customer.pk)
        second = archive_record('new_customers', self.customer.pk)

        self.assertTrue(first.success)
        self.assertTrue(second.success)
        self.assertGreaterEqual(second.data[0]['archived_at'], first.data[0]['archived_at'])
        self.assertEqual(AuditLog.objects.filter(resource_id=str(self.customer.pk)).count(), 2)

    def test_archive_missing_record(self):
        """Test archiving an unknown id fails with NotFound and writes no audit entry"""
        result = archive_record('new_customers', uuid.uuid4())

        self.assertFalse(result.success)
        self.assertIsInstance(result.error, NotFound)
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_archive_malformed_id(self):
        """Test a malformed id is reported as a validation error"""
        result = archive_record('new_customers', 'not-a-uuid')

        self.assertFalse(result.success)
        self.assertIsInstance(result.error, ValidationError)

    def test_archive_unknown_table(self):
        """Test tables outside the soft delete set are rejected"""
        result = archive_record('audit_logs', 1)

        self.assertFalse(result.success)
        self.assertIsInstance(result.error, ValidationError)

    def test_archive_storage_failure(self):
        """Test a database error becomes a StorageError result"""
        with patch('fibreflow.core.soft_delete._set_archived_at', side_effect=DatabaseError('connection lost')):
            result = archive_record('new_customers', self.customer.pk)

        self.assertFalse(result.success)
        self.assertIsInstance(result.error, StorageError)
        self.assertEqual(result.error.details, 'connection lost')

    def test_bulk_archive(self):
        """Test bulk archive updates every row and writes one audit entry"""
        customers = [TestDataFactory.create_customer() for _ in range(3)]
        ids = [c.pk for c in customers]

        result = bulk_archive_records('new_customers', ids, {'reason': 'cleanup'})

        self.assertTrue(result.success)
        self.assertEqual(len(result.data), 3)
        self.assertEqual(Customer.objects.only_archived().count(), 3)
        log = AuditLog.objects.get()
        self.assertEqual(log.resource_id, BULK_OPERATION_ID)
        self.assertEqual(log.details['action'], 'bulk-archive')
        self.assertEqual(log.details['count'], 3)
        self.assertEqual(log.details['ids'], sorted(str(i) for i in ids))
        self.assertEqual(log.details['reason'], 'cleanup')

    def test_bulk_archive_audits_matched_ids(self):
        """Test duplicate and unknown ids are left out of the bulk audit entry"""
        ghost = uuid.uuid4()
        ids = [self.customer.pk, ghost, ghost, str(self.customer.pk)]

        result = bulk_archive_records('new_customers', ids)

        self.assertTrue(result.success)
        self.assertEqual(len(result.data), 1)
        log = AuditLog.objects.get()
        self.assertEqual(log.details['count'], 1)
        self.assertEqual(log.details['ids'], [str(self.customer.pk)])

    def test_caller_details_do_not_override_audit_keys(self):
        """Test caller details cannot rewrite action, count or ids"""
        other = TestDataFactory.create_customer()
        forged = {'action': 'noop', 'count': 0, 'ids': [], 'reason': 'cleanup'}

        bulk_archive_records('new_customers', [self.customer.pk, other.pk], forged)
        archive_record('new_customers', self.customer.pk, {'action': 'noop'})

        bulk_log = AuditLog.objects.get(resource_id=BULK_OPERATION_ID)
        self.assertEqual(bulk_log.details['action'], 'bulk-archive')
        self.assertEqual(bulk_log.details['count'], 2)
        self.assertEqual(bulk_log.details['ids'], sorted([str(self.customer.pk), str(other.pk)]))
        self.assertEqual(bulk_log.details['reason'], 'cleanup')
        log = AuditLog.objects.get(resource_id=str(self.customer.pk))
        self.assertEqual(log.details, {'action': 'archive'})

    def test_archive_invalidates_cache_again_on_commit(self):
        """Test listings re-cached before commit are dropped once the transaction commits"""
        key = get_table_list_cache_key('new_customers')
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            archive_record('new_customers', self.customer.pk)
            cache.set(key, [{'id': str(self.customer.pk)}])

        self.assertTrue(callbacks)
        self.assertIsNone(cache.get(key))

    def test_bulk_archive_at_limit(self):
        """Test exactly 100 ids are accepted"""
        ids = [TestDataFactory.create_customer().pk for _ in range(100)]

        result = bulk_archive_records('new_customers', ids)

        self.assertTrue(result.success)
        self.assertEqual(len(result.data), 100)

    def test_bulk_archive_over_limit(self):
        """Test 101 ids are rejected before storage is touched"""
        ids = [uuid.uuid4() for _ in range(101)]

        with patch('fibreflow.core.soft_delete._set_archived_at') as set_archived_at:
            result = bulk_archive_records('new_customers', ids)

        self.assertFalse(result.success)
        self.assertIsInstance(result.error, ValidationError)
        self.assertEqual(str(result.error.detail), 'Bulk archive operations are limited to 100 records at a time')
        set_archived_at.assert_not_called()
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_bulk_archive_empty(self):
        result = bulk_archive_records('new_customers', [])
        self.assertFalse(result.success)
        self.assertIsInstance(result.error, ValidationError)

    def test_audit_failure_does_not_block_archive(self):
        """Test a failed audit write is logged and the archive still succeeds"""
        with patch.object(AuditLog.objects, 'create', side_effect=DatabaseError('audit table locked')):
            with self.assertLogs('fibreflow.core.audit', level='ERROR'):
                result = archive_record('new_customers', self.customer.pk)

        self.assertTrue(result.success)
        self.customer.refresh_from_db()
        self.assertTrue(self.customer.is_archived)
        self.assertEqual(AuditLog.objects.count(), 0)

    @override_settings(AUDIT_LOG_STRICT=True)
    def test_strict_audit_failure_rolls_back(self):
        """Test strict mode turns an audit failure into a rolled back archive"""
        with patch.object(AuditLog.objects, 'create', side_effect=DatabaseError('audit table locked')):
            with self.assertLogs('fibreflow.core.audit', level='ERROR'):
                result = archive_record('new_customers', self.customer.pk)

        self.assertFalse(result.success)
        self.assertIsInstance(result.error, StorageError)
        self.customer.refresh_from_db()
        self.assertIsNone(self.customer.archived_at)


class QueryHelperTests(TestCase):
    """Test archive-aware query helpers"""

    def setUp(self):
        self.active = TestDataFactory.create_customer(name='Active Customer')
        self.archived = TestDataFactory.create_customer(name='Archived Customer')
        archive_record('new_customers', self.archived.pk)

    def test_filters_partition_rows(self):
        """Test exclude and only partition what include returns"""
        active_ids = set(without_archived(Customer.objects.all()).values_list('id', flat=True))
        archived_ids = set(only_archived(Customer.objects.all()).values_list('id', flat=True))
        all_ids = set(include_archived(Customer.objects.all()).values_list('id', flat=True))

        self.assertEqual(active_ids, {self.active.pk})
        self.assertEqual(archived_ids, {self.archived.pk})
        self.assertEqual(active_ids | archived_ids, all_ids)
        self.assertFalse(active_ids & archived_ids)

    def test_queryset_methods(self):
        self.assertEqual(list(Customer.objects.without_archived()), [self.active])
        self.assertEqual(list(Customer.objects.only_archived()), [self.archived])
        self.assertEqual(Customer.objects.include_archived().count(), 2)

    def test_archive_filter_modes(self):
        """Test ?archived= modes map onto the helpers"""
        self.assertEqual(archive_filter(Customer.objects.all()).count(), 1)
        self.assertEqual(archive_filter(Customer.objects.all(), 'only').get(), self.archived)
        self.assertEqual(archive_filter(Customer.objects.all(), 'include').count(), 2)
        with self.assertRaises(ValidationError):
            archive_filter(Customer.objects.all(), 'everything')

    def test_select_from_projects_columns(self):
        """Test select_from returns only the requested columns of active rows"""
        rows = list(select_from('new_customers', ['id', 'name']))

        self.assertEqual(rows, [{'id': self.active.pk, 'name': 'Active Customer'}])

    def test_select_from_include_archived(self):
        rows = list(select_from('new_customers', ['id'], include_archived=True))
        self.assertEqual(len(rows), 2)

    def test_select_from_unknown_table(self):
        with self.assertRaises(ValidationError):
            select_from('users')


class AuditLoggerTests(TestCase):
    """Test audit log creation and immutability"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.factory = RequestFactory()

    def test_create_audit_log_from_request(self):
        """Test the actor and client IP are taken from the request"""
        request = self.factory.post('/api/v1/projects/', HTTP_X_FORWARDED_FOR='10.0.0.7, 172.16.0.1')
        request.user = self.user

        log = create_audit_log(AuditAction.CREATE, AuditResourceType.PROJECT, 'abc', {'name': 'Fibre Rollout'}, request=request)

        self.assertEqual(log.user, self.user)
        self.assertEqual(log.ip_address, '10.0.0.7')
        self.assertEqual(log.details, {'name': 'Fibre Rollout'})

    def test_create_audit_log_without_user(self):
        """Test system actions are stored with no user"""
        log = create_audit_log(AuditAction.UPDATE, AuditResourceType.SYSTEM, 'nightly-sync')
        self.assertIsNone(log.user)
        self.assertIsNone(log.ip_address)

    def test_missing_fields_are_skipped(self):
        self.assertIsNone(create_audit_log(AuditAction.CREATE, AuditResourceType.PROJECT, ''))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_get_client_ip_remote_addr(self):
        request = self.factory.get('/', REMOTE_ADDR='192.168.1.20')
        self.assertEqual(get_client_ip(request), '192.168.1.20')

    def test_normalize_details(self):
        """Test non-JSON values are converted to strings"""
        record_id = uuid.uuid4()
        details = normalize_details({
            'id': record_id,
            'when': date(2024, 3, 1),
            'budget': Decimal('1500.50'),
            'ids': (record_id,),
        })
        self.assertEqual(details, {
            'id': str(record_id),
            'when': '2024-03-01',
            'budget': '1500.50',
            'ids': [str(record_id)],
        })

    def test_audit_log_is_immutable(self):
        """Test saved entries cannot be changed or deleted"""
        log = create_audit_log(AuditAction.READ, AuditResourceType.SYSTEM, 'report')
        log.action = AuditAction.DELETE
        with self.assertRaises(ValueError):
            log.save()
        with self.assertRaises(ValueError):
            log.delete()


class SystemCheckTests(TestCase):
    """Test the soft delete registry check"""

    def test_registry_is_complete(self):
        self.assertEqual(check_soft_delete_tables(None), [])

    def test_missing_resource_type_is_reported(self):
        with patch.dict(TABLE_TO_RESOURCE_TYPE):
            del TABLE_TO_RESOURCE_TYPE[SoftDeleteTable.STEPS]
            errors = check_soft_delete_tables(None)

        self.assertEqual([e.id for e in errors], ['fibreflow.E001'])

    def test_every_table_maps_to_a_resource_type(self):
        for table in SoftDeleteTable:
            self.assertIn(TABLE_TO_RESOURCE_TYPE[table], AuditResourceType.values)


class ExceptionHandlerTests(TestCase):
    """Test the error envelope"""

    def test_configuration_error_envelope(self):
        response = api_exception_handler(ConfigurationError('Database not fully configured', details='steps missing'), {})

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data, {
            'error': 'Database not fully configured',
            'details': 'steps missing',
            'setupRequired': True,
        })

    def test_not_found_envelope(self):
        response = api_exception_handler(NotFound('Project not found'), {})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Project not found'})

    def test_unhandled_exception_becomes_500(self):
        with self.assertLogs('fibreflow.core.exceptions', level='ERROR'):
            response = api_exception_handler(RuntimeError('boom'), {'view': None})

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'error': 'Internal server error'})


class AuthAPITests(TestCase):
    """Test login and current user endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(username='fieldlead', password='s3cret-pass')

    def test_login_returns_tokens(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'fieldlead', 'password': 's3cret-pass'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_me(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'fieldlead')

    def test_unauthenticated_request_uses_error_envelope(self):
        response = self.client.get('/api/v1/auth/me/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)


class ArchiveAPITests(TestCase):
    """Test archive endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer()

    def test_archive_endpoint(self):
        response = self.client.post(
            f'/api/v1/archive/new_customers/{self.customer.pk}/',
            {'details': {'reason': 'closed account'}},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data'][0]['id'], self.customer.pk)
        log = AuditLog.objects.get()
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.details['reason'], 'closed account')

    def test_unarchive_endpoint(self):
        archive_record('new_customers', self.customer.pk)
        response = self.client.post(f'/api/v1/unarchive/new_customers/{self.customer.pk}/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.customer.refresh_from_db()
        self.assertIsNone(self.customer.archived_at)

    def test_archive_missing_record(self):
        response = self.client.post(f'/api/v1/archive/new_customers/{uuid.uuid4()}/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('error', response.data)

    def test_archive_unknown_table(self):
        response = self.client.post(f'/api/v1/archive/invoices/{self.customer.pk}/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_archive_over_limit(self):
        ids = [str(uuid.uuid4()) for _ in range(101)]
        response = self.client.post('/api/v1/bulk-archive/new_customers/', {'ids': ids}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Bulk archive operations are limited to 100 records at a time')

    def test_bulk_archive_details_cannot_forge_audit_entry(self):
        other = TestDataFactory.create_customer()
        response = self.client.post(
            '/api/v1/bulk-archive/new_customers/',
            {'ids': [str(self.customer.pk), str(other.pk)], 'details': {'ids': [], 'count': 0, 'action': 'noop'}},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get()
        self.assertEqual(log.details['action'], 'bulk-archive')
        self.assertEqual(log.details['count'], 2)
        self.assertEqual(len(log.details['ids']), 2)

    def test_bulk_archive_requires_list(self):
        response = self.client.post('/api/v1/bulk-archive/new_customers/', {'ids': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_archived_items_refresh_after_archive(self):
        """Test the cached archived listing is invalidated by an archive"""
        response = self.client.get('/api/v1/archived/new_customers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])

        self.client.post(f'/api/v1/archive/new_customers/{self.customer.pk}/', {}, format='json')

        response = self.client.get('/api/v1/archived/new_customers/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['id'], self.customer.pk)


class AuditLogAPITests(TestCase):
    """Test the read-only audit log API"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.user = TestDataFactory.create_user()
        self.own_log = create_audit_log(AuditAction.CREATE, AuditResourceType.PROJECT, 'p-1', user=self.user)
        self.other_log = create_audit_log(AuditAction.DELETE, AuditResourceType.TASK, 't-1', user=self.admin)

    def test_staff_sees_all_logs(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/audit-logs/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_user_sees_own_logs(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/audit-logs/')

        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['resource_id'], 'p-1')

    def test_filter_by_action(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/audit-logs/', {'action': 'delete'})

        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['resource_type'], 'task')

    def test_invalid_filter(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/audit-logs/', {'date_from': 'yesterday-ish'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid filters')

    def test_detail_permission(self):
        self.client.authenticate_user(self.user)
        response = self.client.get(f'/api/v1/audit-logs/{self.other_log.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.get(f'/api/v1/audit-logs/{self.own_log.pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_no_write_methods(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/audit-logs/{self.own_log.pk}/')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)


class CheckSchemaCommandTests(TestCase):
    """Test the check_schema management command"""

    def test_all_tables_present(self):
        out = StringIO()
        call_command('check_schema', stdout=out)
        self.assertIn('All', out.getvalue())

    def test_single_table(self):
        out = StringIO()
        call_command('check_schema', '--table', 'steps', stdout=out)
        self.assertIn('All 1 tables present', out.getvalue())

    def test_missing_table_fails(self):
        with patch('fibreflow.core.management.commands.check_schema.missing_tables', return_value=['steps']):
            with self.assertRaises(CommandError):
                call_command('check_schema', stdout=StringIO())

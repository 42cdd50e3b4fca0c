"""
Test suite for Parties module
Tests: customer and staff CRUD, archive on delete, ?archived= listing, list caching
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from fibreflow.core.models import AuditLog, AuditAction
from fibreflow.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from fibreflow.parties.models import Customer, Staff


class CustomerAPITests(TestCase):
    """Test customer endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Metro Fibre')

    def test_create_customer(self):
        """Test creating a customer writes a create audit entry"""
        data = {'name': 'Vumatel', 'email': 'ops@vumatel.test', 'phone': '0115550000'}
        response = self.client.post('/api/v1/customers/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        customer = Customer.objects.get(name='Vumatel')
        log = AuditLog.objects.get(resource_id=str(customer.pk))
        self.assertEqual(log.action, AuditAction.CREATE)
        self.assertEqual(log.details, {'name': 'Vumatel'})

    def test_create_customer_invalid(self):
        response = self.client.post('/api/v1/customers/', {'email': 'not-an-email'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid data')
        self.assertIn('name', response.data['details'])

    def test_update_customer(self):
        response = self.client.patch(f'/api/v1/customers/{self.customer.pk}/', {'phone': '0820001111'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.phone, '0820001111')
        log = AuditLog.objects.get(action=AuditAction.UPDATE)
        self.assertEqual(log.details, {'changes': ['phone']})

    def test_delete_archives_customer(self):
        """Test DELETE soft deletes the customer"""
        response = self.client.delete(f'/api/v1/customers/{self.customer.pk}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Customer.objects.filter(pk=self.customer.pk).exists())
        self.customer.refresh_from_db()
        self.assertTrue(self.customer.is_archived)

    def test_list_hides_archived_and_refreshes_cache(self):
        """Test the cached list drops a customer once it is archived"""
        response = self.client.get('/api/v1/customers/')
        self.assertEqual(len(response.data), 1)

        self.client.delete(f'/api/v1/customers/{self.customer.pk}/')

        response = self.client.get('/api/v1/customers/')
        self.assertEqual(response.data, [])
        response = self.client.get('/api/v1/customers/', {'archived': 'only'})
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/customers/', {'archived': 'include'})
        self.assertEqual(len(response.data), 1)

    def test_list_picks_up_new_customer(self):
        self.client.get('/api/v1/customers/')
        TestDataFactory.create_customer(name='Openserve')

        response = self.client.get('/api/v1/customers/')
        self.assertEqual(len(response.data), 2)

    def test_list_invalid_archived_mode(self):
        response = self.client.get('/api/v1/customers/', {'archived': 'sometimes'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search(self):
        TestDataFactory.create_customer(name='Octotel')
        response = self.client.get('/api/v1/customers/', {'search': 'octo'})

        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['name'], 'Octotel')


class StaffAPITests(TestCase):
    """Test staff endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)

    def test_create_and_list_staff(self):
        response = self.client.post('/api/v1/staff/', {'name': 'Thandi Nkosi', 'role': 'Project Manager'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.get('/api/v1/staff/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['role'], 'Project Manager')

    def test_filter_inactive(self):
        TestDataFactory.create_staff(name='Active Tech')
        Staff.objects.create(name='Former Tech', is_active=False)

        response = self.client.get('/api/v1/staff/', {'is_active': 'false'})
        self.assertEqual([s['name'] for s in response.data], ['Former Tech'])

    def test_archive_staff_is_audited_as_user(self):
        staff = TestDataFactory.create_staff()
        response = self.client.delete(f'/api/v1/staff/{staff.pk}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(resource_id=str(staff.pk))
        self.assertEqual(log.resource_type, 'user')
        self.assertEqual(log.action, AuditAction.DELETE)

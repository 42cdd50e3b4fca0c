"""
Test suite for Locations module
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from fibreflow.core.models import AuditLog
from fibreflow.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from fibreflow.locations.models import Location


class LocationAPITests(TestCase):
    """Test location endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        self.location = TestDataFactory.create_location(location_name='Soweto North', province='Gauteng')

    def test_list_locations(self):
        response = self.client.get('/api/v1/locations/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['location_name'], 'Soweto North')

    def test_filter_by_province(self):
        TestDataFactory.create_location(location_name='Umlazi', province='KwaZulu-Natal')
        response = self.client.get('/api/v1/locations/', {'province': 'kwazulu-natal'})

        self.assertEqual([l['location_name'] for l in response.data], ['Umlazi'])

    def test_create_location(self):
        data = {'location_name': 'Khayelitsha', 'province': 'Western Cape', 'region': 'Metro'}
        response = self.client.post('/api/v1/locations/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        location = Location.objects.get(location_name='Khayelitsha')
        self.assertTrue(AuditLog.objects.filter(resource_type='location', resource_id=str(location.pk)).exists())

    def test_update_location(self):
        data = {'location_name': 'Soweto South', 'province': 'Gauteng', 'region': 'South', 'address': ''}
        response = self.client.put(f'/api/v1/locations/{self.location.pk}/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.location.refresh_from_db()
        self.assertEqual(self.location.location_name, 'Soweto South')

    def test_archive_and_restore(self):
        """Test a location can be archived and restored through the API"""
        response = self.client.delete(f'/api/v1/locations/{self.location.pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/v1/locations/').data, [])

        response = self.client.post(f'/api/v1/unarchive/locations/{self.location.pk}/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(self.client.get('/api/v1/locations/').data), 1)

    def test_unknown_location(self):
        response = self.client.get('/api/v1/locations/00000000-0000-0000-0000-000000000000/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('error', response.data)

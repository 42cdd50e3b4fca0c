"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from fibreflow.locations.models import Location
from fibreflow.parties.models import Customer, Staff
from fibreflow.projects.models import Project, Phase, ProjectPhase, Step, Task
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_customer(name=None, email=None):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        return Customer.objects.create(
            name=name,
            email=email or f'{name.lower()}@test.com',
            phone=f'0{random.randint(100000000, 999999999)}'
        )

    @staticmethod
    def create_staff(name=None, role='Technician'):
        """Create a test staff member"""
        if not name:
            name = f'Staff_{TestDataFactory.random_string(6)}'
        return Staff.objects.create(name=name, role=role, email=f'{name.lower()}@test.com')

    @staticmethod
    def create_location(location_name=None, province='Gauteng'):
        """Create a test location"""
        if not location_name:
            location_name = f'Location_{TestDataFactory.random_string(6)}'
        return Location.objects.create(location_name=location_name, province=province, region='North')

    @staticmethod
    def create_project(project_name=None, customer=None, status='active', **kwargs):
        """Create a test project"""
        if not project_name:
            project_name = f'Project_{TestDataFactory.random_string(6)}'
        return Project.objects.create(
            project_name=project_name,
            customer=customer,
            status=status,
            description=kwargs.pop('description', f'Test project {project_name}'),
            **kwargs
        )

    @staticmethod
    def create_phase(name=None, order_no=None, order_index=None):
        """Create a test phase"""
        if not name:
            name = f'Phase_{TestDataFactory.random_string(6)}'
        return Phase.objects.create(name=name, order_no=order_no, order_index=order_index)

    @staticmethod
    def create_project_phase(project, phase, status='pending'):
        """Link a phase to a project"""
        return ProjectPhase.objects.create(project=project, phase=phase, status=status)

    @staticmethod
    def create_step(phase, name=None, order_index=0, is_active=True):
        """Create a test step"""
        if not name:
            name = f'Step_{TestDataFactory.random_string(6)}'
        return Step.objects.create(phase=phase, name=name, order_index=order_index, is_active=is_active)

    @staticmethod
    def create_task(step, title=None, order_index=0, status='pending'):
        """Create a test task"""
        if not title:
            title = f'Task_{TestDataFactory.random_string(6)}'
        return Task.objects.create(step=step, title=title, order_index=order_index, status=status)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()

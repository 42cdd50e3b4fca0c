"""
Comprehensive test suite for Projects module
Tests: project hierarchy, steps resource and reorder, project / phase / task CRUD, first phase automation
"""
import uuid
from unittest.mock import patch

from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from fibreflow.core.model_cache import get_table_list_cache_key
from fibreflow.core.models import AuditLog, AuditAction
from fibreflow.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from fibreflow.projects.hierarchy import fetch_rows
from fibreflow.projects.models import Phase, Project, ProjectPhase, ProjectTask, Step


class HierarchyAPITests(TestCase):
    """Test GET / PUT /api/v1/hierarchy/<project_id>/"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)

        self.project = TestDataFactory.create_project(project_name='Soweto FTTH', status='active')
        # Sort keys: build 2, design 1 (order_no fallback), survey 0 (default)
        self.build = TestDataFactory.create_phase(name='Build', order_no=0, order_index=2)
        self.design = TestDataFactory.create_phase(name='Design', order_no=1)
        self.survey = TestDataFactory.create_phase(name='Survey')
        for phase in (self.build, self.design, self.survey):
            TestDataFactory.create_project_phase(self.project, phase)

        self.trenching = TestDataFactory.create_step(self.build, name='Trenching', order_index=2)
        self.permits = TestDataFactory.create_step(self.build, name='Permits', order_index=1)
        TestDataFactory.create_step(self.build, name='Retired step', order_index=0, is_active=False)

        self.apply = TestDataFactory.create_task(self.permits, title='Apply for wayleave', order_index=2)
        self.draft = TestDataFactory.create_task(self.permits, title='Draft route plan', order_index=1)
        archived_task = TestDataFactory.create_task(self.permits, title='Old task', order_index=0)
        archived_task.archived_at = timezone.now()
        archived_task.save()

    def get_hierarchy(self, project_id=None):
        return self.client.get(f'/api/v1/hierarchy/{project_id or self.project.pk}/')

    def test_project_fields(self):
        response = self.get_hierarchy()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        project = response.data['project']
        self.assertEqual(project['id'], self.project.pk)
        self.assertEqual(project['name'], 'Soweto FTTH')
        self.assertEqual(project['status'], 'active')

    def test_phases_sorted_with_fallback(self):
        """Test phases sort by order_index, then order_no, then 0"""
        response = self.get_hierarchy()

        phases = response.data['phases']
        self.assertEqual([p['name'] for p in phases], ['Survey', 'Design', 'Build'])
        self.assertEqual([p['order_index'] for p in phases], [0, 1, 2])
        self.assertTrue(all(p['project_phase_id'] for p in phases))

    def test_only_active_steps_in_order(self):
        response = self.get_hierarchy()

        build = response.data['phases'][2]
        self.assertEqual([s['name'] for s in build['steps']], ['Permits', 'Trenching'])
        self.assertEqual(build['steps'][0]['phase_id'], self.build.pk)

    def test_tasks_ordered_and_archived_excluded(self):
        response = self.get_hierarchy()

        permits = response.data['phases'][2]['steps'][0]
        self.assertEqual([t['title'] for t in permits['tasks']], ['Draft route plan', 'Apply for wayleave'])
        self.assertEqual(permits['tasks'][0]['status'], 'pending')
        self.assertEqual(permits['tasks'][0]['step_id'], self.permits.pk)

    def test_project_without_phases(self):
        project = TestDataFactory.create_project()
        response = self.get_hierarchy(project.pk)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['phases'], [])

    def test_unnamed_project_fallbacks(self):
        project = Project.objects.create(project_name='')
        response = self.get_hierarchy(project.pk)

        self.assertEqual(response.data['project']['name'], 'Unnamed Project')
        self.assertEqual(response.data['project']['description'], '')

    def test_links_without_phase_are_skipped(self):
        """Test links to a removed or archived phase are left out"""
        ProjectPhase.objects.create(project=self.project, phase=None)
        archived_phase = TestDataFactory.create_phase(name='Cancelled phase', order_no=5)
        TestDataFactory.create_project_phase(self.project, archived_phase)
        archived_phase.archived_at = timezone.now()
        archived_phase.save()

        response = self.get_hierarchy()

        self.assertEqual(len(response.data['phases']), 3)

    def test_archived_link_excluded(self):
        link = ProjectPhase.objects.get(project=self.project, phase=self.survey)
        link.archived_at = timezone.now()
        link.save()

        response = self.get_hierarchy()

        self.assertEqual([p['name'] for p in response.data['phases']], ['Design', 'Build'])

    def test_unknown_project(self):
        response = self.get_hierarchy(uuid.uuid4())

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Project not found'})

    def test_missing_steps_table(self):
        with patch('fibreflow.projects.hierarchy.table_exists', return_value=False):
            response = self.get_hierarchy()

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['error'], 'Database not fully configured')
        self.assertTrue(response.data['setupRequired'])
        self.assertIn('details', response.data)

    def test_project_fetch_failure(self):
        with patch.object(Project.objects, 'filter', side_effect=DatabaseError('connection reset')):
            with self.assertLogs('fibreflow.projects.hierarchy', level='ERROR'):
                response = self.get_hierarchy()

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'Failed to fetch project')

    def test_inner_fetch_failure_yields_empty_list(self):
        class FailingQuery:
            def __iter__(self):
                raise DatabaseError('statement timeout')

        with self.assertLogs('fibreflow.projects.hierarchy', level='ERROR'):
            self.assertEqual(fetch_rows(FailingQuery(), 'steps'), [])

    def test_update_project_details(self):
        """Test PUT renames the project and records an update"""
        data = {'name': 'Soweto FTTH Phase 2', 'status': 'on_hold', 'end_date': '2025-06-30'}
        response = self.client.put(f'/api/v1/hierarchy/{self.project.pk}/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['project_name'], 'Soweto FTTH Phase 2')
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, 'on_hold')
        self.assertEqual(str(self.project.end_date), '2025-06-30')
        log = AuditLog.objects.get(resource_id=str(self.project.pk))
        self.assertEqual(log.action, AuditAction.UPDATE)
        self.assertEqual(log.details['changes'], ['end_date', 'project_name', 'status'])

    def test_update_unknown_project(self):
        response = self.client.put(f'/api/v1/hierarchy/{uuid.uuid4()}/', {'name': 'Ghost'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_update_invalid_status(self):
        response = self.client.put(f'/api/v1/hierarchy/{self.project.pk}/', {'status': 'exploded'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_refreshes_project_list(self):
        self.client.get('/api/v1/projects/')
        self.client.put(f'/api/v1/hierarchy/{self.project.pk}/', {'name': 'Renamed'}, format='json')

        response = self.client.get('/api/v1/projects/')
        self.assertEqual(response.data[0]['project_name'], 'Renamed')


class StepsAPITests(TestCase):
    """Test the steps resource"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        self.phase = TestDataFactory.create_phase(name='Build', order_no=1)
        self.other_phase = TestDataFactory.create_phase(name='Handover', order_no=2)

    def test_list_steps_for_phase(self):
        step = TestDataFactory.create_step(self.phase, name='Trenching', order_index=1)
        TestDataFactory.create_task(step, title='Dig', order_index=1)
        TestDataFactory.create_step(self.phase, name='Inactive', is_active=False)
        TestDataFactory.create_step(self.other_phase, name='Sign off')

        response = self.client.get('/api/v1/steps/', {'phase_id': str(self.phase.pk)})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['phase'], {'id': str(self.phase.pk), 'name': 'Build'})
        self.assertEqual([t['title'] for t in response.data[0]['tasks']], ['Dig'])

    def test_create_requires_phase_and_name(self):
        response = self.client.post('/api/v1/steps/', {'name': 'Orphan'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'phase_id and name are required')

    def test_create_assigns_next_order_index(self):
        """Test the first step gets 1 and later steps follow the maximum"""
        response = self.client.post('/api/v1/steps/', {'phase_id': str(self.phase.pk), 'name': 'Survey'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['order_index'], 1)
        self.assertTrue(response.data['is_active'])

        response = self.client.post('/api/v1/steps/', {'phase_id': str(self.phase.pk), 'name': 'Trenching'}, format='json')
        self.assertEqual(response.data['order_index'], 2)

    def test_create_rejects_archived_phase(self):
        Phase.objects.filter(pk=self.phase.pk).update(archived_at=timezone.now())

        response = self.client.post('/api/v1/steps/', {'phase_id': str(self.phase.pk), 'name': 'Survey'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phase_id', response.data['details'])

    def test_create_with_explicit_order_index(self):
        data = {'phase_id': str(self.phase.pk), 'name': 'Splicing', 'order_index': 7}
        response = self.client.post('/api/v1/steps/', data, format='json')

        self.assertEqual(response.data['order_index'], 7)
        self.assertTrue(AuditLog.objects.filter(resource_type='step', action=AuditAction.CREATE).exists())

    def test_update_step(self):
        step = TestDataFactory.create_step(self.phase, name='Trenching')
        response = self.client.put('/api/v1/steps/', {'id': str(step.pk), 'name': 'Micro-trenching'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Micro-trenching')

    def test_update_requires_id(self):
        response = self.client.put('/api/v1/steps/', {'name': 'No id'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Step ID is required')

    def test_update_unknown_step(self):
        response = self.client.put('/api/v1/steps/', {'id': str(uuid.uuid4()), 'name': 'Ghost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_requires_id(self):
        response = self.client.delete('/api/v1/steps/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_step_invalidates_cache_on_commit(self):
        step = TestDataFactory.create_step(self.phase)
        key = get_table_list_cache_key('steps')

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            response = self.client.delete(f'/api/v1/steps/?id={step.pk}')
            cache.set(key, [{'id': str(step.pk)}])

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(callbacks)
        self.assertIsNone(cache.get(key))

    def test_delete_step_with_active_tasks(self):
        """Test a step with open tasks is left untouched"""
        step = TestDataFactory.create_step(self.phase)
        TestDataFactory.create_task(step, status='in_progress')

        response = self.client.delete(f'/api/v1/steps/?id={step.pk}')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Cannot delete step with active tasks. Archive or reassign tasks first.')
        step.refresh_from_db()
        self.assertTrue(step.is_active)
        self.assertIsNone(step.archived_at)

    def test_delete_step_with_cancelled_tasks(self):
        step = TestDataFactory.create_step(self.phase)
        TestDataFactory.create_task(step, status='cancelled')

        response = self.client.delete(f'/api/v1/steps/?id={step.pk}')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Step archived successfully')
        self.assertFalse(response.data['data']['is_active'])
        step.refresh_from_db()
        self.assertFalse(step.is_active)
        self.assertIsNotNone(step.archived_at)
        log = AuditLog.objects.get(resource_id=str(step.pk))
        self.assertEqual(log.resource_type, 'step')
        self.assertEqual(log.action, AuditAction.DELETE)

    def test_delete_step_with_archived_tasks(self):
        step = TestDataFactory.create_step(self.phase)
        task = TestDataFactory.create_task(step, status='in_progress')
        task.archived_at = timezone.now()
        task.save()

        response = self.client.delete(f'/api/v1/steps/?id={step.pk}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_reorder_steps(self):
        """Test swapped order indexes are reflected in later reads"""
        step_a = TestDataFactory.create_step(self.phase, name='a', order_index=1)
        step_b = TestDataFactory.create_step(self.phase, name='b', order_index=2)
        data = {
            'phase_id': str(self.phase.pk),
            'step_orders': [
                {'id': str(step_a.pk), 'order_index': 2},
                {'id': str(step_b.pk), 'order_index': 1},
            ],
        }

        response = self.client.put('/api/v1/steps/reorder/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Steps reordered successfully')
        self.assertEqual([s['name'] for s in response.data['steps']], ['b', 'a'])

        response = self.client.get('/api/v1/steps/', {'phase_id': str(self.phase.pk)})
        self.assertEqual([s['name'] for s in response.data], ['b', 'a'])

    def test_reorder_is_scoped_to_phase(self):
        foreign = TestDataFactory.create_step(self.other_phase, order_index=3)
        data = {'phase_id': str(self.phase.pk), 'step_orders': [{'id': str(foreign.pk), 'order_index': 9}]}

        response = self.client.put('/api/v1/steps/reorder/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        foreign.refresh_from_db()
        self.assertEqual(foreign.order_index, 3)

    def test_reorder_validation(self):
        step = TestDataFactory.create_step(self.phase)
        bad_payloads = [
            {'step_orders': []},
            {'phase_id': str(self.phase.pk), 'step_orders': 'a,b'},
            {'phase_id': str(self.phase.pk), 'step_orders': [{'order_index': 1}]},
            {'phase_id': str(self.phase.pk), 'step_orders': [{'id': str(step.pk), 'order_index': '1'}]},
        ]
        for payload in bad_payloads:
            response = self.client.put('/api/v1/steps/reorder/', payload, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, payload)


class ProjectAPITests(TestCase):
    """Test project, project phase, phase and task endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer()
        self.manager = TestDataFactory.create_staff(name='Sipho Dlamini', role='Project Manager')

    def test_create_project(self):
        data = {'project_name': 'Umlazi FTTH', 'customer': str(self.customer.pk), 'status': 'planning'}
        response = self.client.post('/api/v1/projects/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['customer_name'], self.customer.name)
        self.assertNotIn('project_phase', response.data)
        project = Project.objects.get(project_name='Umlazi FTTH')
        self.assertEqual(AuditLog.objects.get(resource_id=str(project.pk)).action, AuditAction.CREATE)

    def test_create_project_end_before_start(self):
        data = {'project_name': 'Backwards', 'start_date': '2025-05-01', 'end_date': '2025-04-01'}
        response = self.client.post('/api/v1/projects/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end_date', response.data['details'])

    def test_create_project_auto_assigns_first_phase(self):
        """Test the first phase and its tasks are attached to a new project"""
        planning = TestDataFactory.create_phase(name='Planning', order_no=1)
        TestDataFactory.create_phase(name='Build', order_no=2)
        step = TestDataFactory.create_step(planning, order_index=1)
        first = TestDataFactory.create_task(step, title='Kick-off meeting', order_index=1)
        second = TestDataFactory.create_task(step, title='Site survey', order_index=2)
        retired = TestDataFactory.create_step(planning, order_index=2, is_active=False)
        TestDataFactory.create_task(retired, title='Legacy task')

        data = {
            'project_name': 'Mamelodi FTTH',
            'project_manager': str(self.manager.pk),
            'auto_assign_phase': True,
        }
        response = self.client.post('/api/v1/projects/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['project_phase']['phase']['name'], 'Planning')
        self.assertEqual(response.data['project_phase']['status'], 'in_progress')

        project_tasks = ProjectTask.objects.order_by('task__order_index')
        self.assertEqual([pt.task for pt in project_tasks], [first, second])
        self.assertEqual([pt.status for pt in project_tasks], ['in_progress', 'not_started'])
        self.assertEqual(project_tasks[0].assigned_to, self.manager)
        self.assertIsNone(project_tasks[1].assigned_to)

        automated = AuditLog.objects.filter(details__automated=True)
        self.assertEqual(automated.count(), 3)

    def test_auto_assign_without_phases(self):
        data = {'project_name': 'No phases yet', 'auto_assign_phase': 'true'}
        response = self.client.post('/api/v1/projects/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Project.objects.filter(project_name='No phases yet').exists())

    def test_project_list_filters(self):
        TestDataFactory.create_project(project_name='Live', status='active')
        TestDataFactory.create_project(project_name='Done', status='completed')

        response = self.client.get('/api/v1/projects/', {'status': 'completed'})

        self.assertEqual([p['project_name'] for p in response.data], ['Done'])

    def test_project_list_invalid_customer(self):
        response = self.client.get('/api/v1/projects/', {'customer': 'not-a-uuid'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid customer id')

    def test_delete_archives_project(self):
        project = TestDataFactory.create_project()
        response = self.client.delete(f'/api/v1/projects/{project.pk}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        project.refresh_from_db()
        self.assertTrue(project.is_archived)
        self.assertEqual(self.client.get('/api/v1/projects/').data, [])

    def test_project_phases(self):
        project = TestDataFactory.create_project()
        phase = TestDataFactory.create_phase(name='Design', order_no=1)

        response = self.client.post(
            f'/api/v1/projects/{project.pk}/phases/',
            {'phase_id': str(phase.pk), 'assigned_to': str(self.manager.pk)},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')

        response = self.client.get(f'/api/v1/projects/{project.pk}/phases/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['phase']['name'], 'Design')
        self.assertEqual(response.data[0]['assigned_to_name'], 'Sipho Dlamini')

    def test_phase_list_ordered(self):
        TestDataFactory.create_phase(name='Handover', order_no=3)
        TestDataFactory.create_phase(name='Planning', order_no=1)

        response = self.client.get('/api/v1/phases/')

        self.assertEqual([p['name'] for p in response.data], ['Planning', 'Handover'])

    def test_task_crud(self):
        phase = TestDataFactory.create_phase()
        step = TestDataFactory.create_step(phase)
        data = {'step_id': str(step.pk), 'title': 'Pull fibre', 'assignee_id': str(self.manager.pk), 'estimated_hours': '6.50'}

        response = self.client.post('/api/v1/tasks/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        task_id = response.data['id']

        response = self.client.patch(f'/api/v1/tasks/{task_id}/', {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')

        response = self.client.get('/api/v1/tasks/', {'step_id': str(step.pk)})
        self.assertEqual([t['title'] for t in response.data], ['Pull fibre'])

        response = self.client.delete(f'/api/v1/tasks/{task_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/v1/tasks/', {'step_id': str(step.pk)}).data, [])

    def test_task_rejects_archived_step(self):
        step = TestDataFactory.create_step(TestDataFactory.create_phase())
        Step.objects.filter(pk=step.pk).update(archived_at=timezone.now())

        response = self.client.post('/api/v1/tasks/', {'step_id': str(step.pk), 'title': 'Pull fibre'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('step_id', response.data['details'])

    def test_deleted_step_leaves_active_set(self):
        phase = TestDataFactory.create_phase()
        step = TestDataFactory.create_step(phase)
        self.client.delete(f'/api/v1/steps/?id={step.pk}')

        self.assertFalse(Step.objects.without_archived().filter(pk=step.pk).exists())

"""
Project hierarchy: project -> phases -> steps -> tasks.

The tree is assembled from the live tables on every read. Steps for all of a
project's phases are fetched in one query and tasks for all of those steps in
a second; rows are then grouped by parent in memory.
"""
import logging
from collections import defaultdict

from django.db import DatabaseError, transaction
from django.utils import timezone

from fibreflow.core.audit import AuditAction, AuditResourceType, create_audit_log
from fibreflow.core.exceptions import ConfigurationError, NotFound, StorageError, ValidationError
from fibreflow.core.model_cache import invalidate_table_cache
from fibreflow.core.schema import table_exists
from .models import Project, ProjectPhase, Step, Task
from .serializers import ProjectDetailsSerializer

logger = logging.getLogger(__name__)


def ensure_hierarchy_tables():
    if not table_exists('steps'):
        raise ConfigurationError(
            'Database not fully configured',
            details="The steps table does not exist. Run 'python manage.py migrate' to create it.",
        )


def fetch_rows(queryset, label):
    """Evaluate ``queryset``; a failed fetch is logged and yields no rows"""
    try:
        with transaction.atomic():
            return list(queryset)
    except DatabaseError as e:
        logger.error(f"Error fetching {label}: {str(e)}", exc_info=True)
        return []


def group_by(rows, attr):
    grouped = defaultdict(list)
    for row in rows:
        grouped[getattr(row, attr)].append(row)
    return grouped


def get_project(project_id):
    try:
        project = Project.objects.filter(pk=project_id).first()
    except DatabaseError as e:
        logger.error(f"Error fetching project {project_id}: {str(e)}", exc_info=True)
        raise StorageError('Failed to fetch project', details=str(e))
    if project is None:
        raise NotFound('Project not found')
    return project


def serialize_project(project):
    return {
        'id': project.id,
        'name': project.project_name or 'Unnamed Project',
        'description': project.description or '',
        'status': project.status or 'active',
        'start_date': project.start_date,
        'end_date': project.end_date,
        'created_at': project.created_at,
        'updated_at': project.updated_at,
    }


def serialize_task(task):
    return {
        'id': task.id,
        'title': task.title,
        'description': task.description,
        'status': task.status or 'pending',
        'order_index': task.order_index or 0,
        'assignee_id': task.assignee_id,
        'estimated_hours': task.estimated_hours,
        'actual_hours': task.actual_hours,
        'step_id': task.step_id,
        'created_at': task.created_at,
        'updated_at': task.updated_at,
        'completed_at': task.completed_at,
    }


def serialize_step(step, tasks):
    return {
        'id': step.id,
        'name': step.name,
        'description': step.description,
        'order_index': step.order_index,
        'phase_id': step.phase_id,
        'tasks': [serialize_task(task) for task in tasks],
    }


def serialize_phase(project_phase, steps, tasks_by_step):
    phase = project_phase.phase
    return {
        'id': phase.id,
        'name': phase.name,
        'description': phase.description,
        'order_index': phase.sort_order,
        'is_standard': phase.is_standard,
        'project_phase_id': project_phase.id,
        'steps': [serialize_step(step, tasks_by_step[step.id]) for step in steps],
    }


def build_project_hierarchy(project_id):
    """
    Return ``{project, phases}`` for a project.

    Raises ConfigurationError when the steps table is missing, NotFound for an
    unknown project and StorageError when the project itself cannot be read.
    """
    ensure_hierarchy_tables()
    project = get_project(project_id)

    project_phases = fetch_rows(
        ProjectPhase.objects.without_archived()
        .filter(project_id=project.id)
        .select_related('phase')
        .order_by('created_at'),
        f"phases for project {project.id}",
    )
    # Links whose phase definition is gone or archived are skipped
    project_phases = [pp for pp in project_phases if pp.phase is not None and not pp.phase.is_archived]

    phase_ids = {pp.phase_id for pp in project_phases}
    steps_by_phase = group_by(
        fetch_rows(
            Step.objects.without_archived()
            .filter(phase_id__in=phase_ids, is_active=True)
            .order_by('order_index', 'created_at'),
            f"steps for {len(phase_ids)} phase(s)",
        ),
        'phase_id',
    )

    step_ids = [step.id for steps in steps_by_phase.values() for step in steps]
    tasks_by_step = group_by(
        fetch_rows(
            Task.objects.without_archived()
            .filter(step_id__in=step_ids)
            .order_by('order_index', 'created_at'),
            f"tasks for {len(step_ids)} step(s)",
        ),
        'step_id',
    )

    phases = [serialize_phase(pp, steps_by_phase[pp.phase_id], tasks_by_step) for pp in project_phases]
    phases.sort(key=lambda phase: phase['order_index'])

    return {'project': serialize_project(project), 'phases': phases}


def update_project_details(project_id, data, request=None):
    """Apply name / description / status / dates to a project and return it"""
    serializer = ProjectDetailsSerializer(data=data)
    if not serializer.is_valid():
        raise ValidationError('Invalid data', details=serializer.errors)

    updates = dict(serializer.validated_data)
    updates['updated_at'] = timezone.now()
    try:
        matched = Project.objects.filter(pk=project_id).update(**updates)
    except DatabaseError as e:
        logger.error(f"Error updating project {project_id}: {str(e)}", exc_info=True)
        raise StorageError('Failed to update project', details=str(e))
    if not matched:
        raise NotFound('Project not found')

    # queryset.update() skips post_save, so listings are dropped here
    invalidate_table_cache('projects')
    create_audit_log(
        AuditAction.UPDATE,
        AuditResourceType.PROJECT,
        project_id,
        {'changes': sorted(serializer.validated_data), 'source': 'hierarchy'},
        request=request,
    )
    return Project.objects.get(pk=project_id)

"""Project setup automation"""
import logging

from django.db.models import F

from fibreflow.core.audit import AuditAction, AuditResourceType, create_audit_log
from fibreflow.core.exceptions import ValidationError
from fibreflow.core.model_cache import invalidate_table_cache
from .models import Phase, ProjectPhase, ProjectTask, Task

logger = logging.getLogger(__name__)


def get_first_phase():
    return (
        Phase.objects.without_archived()
        .order_by(F('order_no').asc(nulls_last=True), 'created_at')
        .first()
    )


def auto_assign_first_phase(project, assignee=None, request=None):
    """
    Start a new project on the first phase.

    Links the lowest-ordered phase to the project as in_progress and creates a
    project task for every task under the phase's active steps. The first
    project task starts in_progress (assigned to ``assignee``), the rest are
    not_started. Returns (project_phase, project_tasks).
    """
    phase = get_first_phase()
    if phase is None:
        raise ValidationError('No phases found; create a phase before auto-assigning')

    logger.info(f"Auto-assigning phase {phase.name} to project {project.pk}")
    project_phase = ProjectPhase.objects.create(
        project=project,
        phase=phase,
        status='in_progress',
        assigned_to=assignee,
    )
    create_audit_log(
        AuditAction.CREATE,
        AuditResourceType.PROJECT_PHASE,
        project_phase.pk,
        {
            'projectId': project.pk,
            'phaseId': phase.pk,
            'assignedTo': assignee.pk if assignee else None,
            'status': project_phase.status,
            'automated': True,
        },
        request=request,
    )

    tasks = (
        Task.objects.without_archived()
        .filter(step__phase=phase, step__is_active=True, step__archived_at__isnull=True)
        .order_by('step__order_index', 'order_index', 'created_at')
    )
    project_tasks = ProjectTask.objects.bulk_create([
        ProjectTask(
            project_phase=project_phase,
            task=task,
            status='in_progress' if index == 0 else 'not_started',
            assigned_to=assignee if index == 0 else None,
        )
        for index, task in enumerate(tasks)
    ])
    # bulk_create sends no post_save
    invalidate_table_cache('project_tasks')

    for project_task in project_tasks:
        create_audit_log(
            AuditAction.CREATE,
            AuditResourceType.PROJECT_TASK,
            project_task.pk,
            {
                'projectPhaseId': project_phase.pk,
                'taskId': project_task.task_id,
                'assignedTo': project_task.assigned_to_id,
                'status': project_task.status,
                'automated': True,
                'isFirstTask': project_task.status == 'in_progress',
            },
            request=request,
        )

    return project_phase, project_tasks

import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Max, Prefetch
from django.shortcuts import get_object_or_404
from django.utils import timezone

from fibreflow.core.api import (
    list_response, create_response, update_response, archive_instance_response, invalid_data_response,
)
from fibreflow.core.audit import AuditAction, AuditResourceType, create_audit_log
from fibreflow.core.exceptions import Conflict, NotFound, ValidationError
from fibreflow.core.model_cache import invalidate_table_cache
from fibreflow.core.soft_delete import BULK_OPERATION_ID, archive_record
from fibreflow.parties.models import Staff
from .hierarchy import build_project_hierarchy, update_project_details
from .models import Project, Phase, ProjectPhase, Step, Task
from .serializers import (
    ProjectSerializer, PhaseSerializer, ProjectPhaseSerializer, StepSerializer, TaskSerializer,
    ProjectTaskSerializer,
)
from .services import auto_assign_first_phase

logger = logging.getLogger('fibreflow.projects')


def parse_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).lower() in ('true', '1', 'yes')


def lookup(model, pk, label):
    """Fetch a row by id, mapping malformed ids to 400 and unknown ids to 404"""
    try:
        instance = model.objects.filter(pk=pk).first()
    except DjangoValidationError:
        raise ValidationError(f'Invalid {label} id')
    if instance is None:
        raise NotFound(f'{label.capitalize()} not found')
    return instance


# Hierarchy
@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def project_hierarchy(request, project_id):
    """Project with its phases, steps and tasks; PUT updates the project details"""
    if request.method == 'GET':
        return Response(build_project_hierarchy(project_id))
    project = update_project_details(project_id, request.data, request=request)
    return Response(ProjectSerializer(project).data)


# Project views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def project_list_create(request):
    """List projects (?archived=, ?status=, ?customer=) or create a project"""
    if request.method == 'GET':
        project_status = request.query_params.get('status')
        customer = request.query_params.get('customer')
        queryset = Project.objects.select_related('customer', 'location', 'project_manager').order_by('-created_at')
        if project_status:
            queryset = queryset.filter(status=project_status)
        if customer:
            try:
                queryset = queryset.filter(customer_id=customer)
            except DjangoValidationError:
                raise ValidationError('Invalid customer id')
        cacheable = not project_status and not customer
        return list_response(request, 'projects', queryset, ProjectSerializer, cacheable=cacheable)

    serializer = ProjectSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_data_response(serializer.errors)

    with transaction.atomic():
        project = serializer.save()
        create_audit_log(
            AuditAction.CREATE,
            AuditResourceType.PROJECT,
            project.pk,
            {'project_name': project.project_name},
            request=request,
        )

        response_data = dict(serializer.data)
        if parse_bool(request.data.get('auto_assign_phase', False)):
            assignee_id = request.data.get('phase_assignee_id')
            assignee = lookup(Staff, assignee_id, 'staff') if assignee_id else project.project_manager
            project_phase, project_tasks = auto_assign_first_phase(project, assignee=assignee, request=request)
            response_data['project_phase'] = ProjectPhaseSerializer(project_phase).data
            response_data['project_tasks'] = ProjectTaskSerializer(project_tasks, many=True).data

    return Response(response_data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def project_detail(request, pk):
    """Retrieve, update or archive a project"""
    project = get_object_or_404(Project.objects.select_related('customer', 'location', 'project_manager'), pk=pk)

    if request.method == 'GET':
        return Response(ProjectSerializer(project).data)
    elif request.method in ('PUT', 'PATCH'):
        return update_response(request, 'projects', project, ProjectSerializer, partial=request.method == 'PATCH')
    else:  # DELETE
        return archive_instance_response(request, 'projects', project)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def project_phase_list_create(request, pk):
    """List a project's phases or add a phase to it"""
    project = get_object_or_404(Project, pk=pk)

    if request.method == 'GET':
        queryset = ProjectPhase.objects.filter(project=project).select_related('phase', 'assigned_to').order_by('created_at')
        return list_response(request, 'project_phases', queryset, ProjectPhaseSerializer, cacheable=False)
    return create_response(
        request,
        'project_phases',
        ProjectPhaseSerializer,
        lambda pp: {'projectId': project.pk, 'phaseId': pp.phase_id},
        project=project,
    )


# Phase views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def phase_list_create(request):
    """List the master phases in order or create a phase"""
    if request.method == 'GET':
        queryset = Phase.objects.all().order_by('order_no', 'name')
        return list_response(request, 'phases', queryset, PhaseSerializer)
    return create_response(request, 'phases', PhaseSerializer, lambda p: {'name': p.name, 'order_no': p.order_no})


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def phase_detail(request, pk):
    """Retrieve, update or archive a phase"""
    phase = get_object_or_404(Phase, pk=pk)

    if request.method == 'GET':
        return Response(PhaseSerializer(phase).data)
    elif request.method in ('PUT', 'PATCH'):
        return update_response(request, 'phases', phase, PhaseSerializer, partial=request.method == 'PATCH')
    else:  # DELETE
        return archive_instance_response(request, 'phases', phase)


# Step views
def active_steps():
    return (
        Step.objects.without_archived()
        .filter(is_active=True)
        .select_related('phase')
        .prefetch_related(Prefetch(
            'tasks',
            queryset=Task.objects.without_archived().order_by('order_index', 'created_at'),
            to_attr='active_tasks',
        ))
        .order_by('order_index', 'created_at')
    )


def next_step_order_index(phase):
    current = Step.objects.filter(phase=phase).aggregate(highest=Max('order_index'))['highest']
    return 1 if current is None else current + 1


@api_view(['GET', 'POST', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def steps(request):
    """
    Steps of the work breakdown.

    GET ?phase_id= lists active steps, POST creates, PUT updates the step named
    by ``id`` in the body and DELETE ?id= archives a step with no open tasks.
    """
    if request.method == 'GET':
        queryset = active_steps()
        phase_id = request.query_params.get('phase_id')
        if phase_id:
            try:
                queryset = queryset.filter(phase_id=phase_id)
            except DjangoValidationError:
                raise ValidationError('Invalid phase id')
        return Response(StepSerializer(queryset, many=True).data)

    elif request.method == 'POST':
        if not request.data.get('phase_id') or not request.data.get('name'):
            raise ValidationError('phase_id and name are required')
        serializer = StepSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_data_response(serializer.errors)
        phase = serializer.validated_data['phase']
        order_index = serializer.validated_data.get('order_index') or next_step_order_index(phase)
        step = serializer.save(order_index=order_index, is_active=True)
        create_audit_log(
            AuditAction.CREATE,
            AuditResourceType.STEP,
            step.pk,
            {'phaseId': phase.pk, 'name': step.name, 'order_index': order_index},
            request=request,
        )
        return Response(StepSerializer(step).data, status=status.HTTP_201_CREATED)

    elif request.method == 'PUT':
        step_id = request.data.get('id')
        if not step_id:
            raise ValidationError('Step ID is required')
        step = lookup(Step, step_id, 'step')
        return update_response(request, 'steps', step, StepSerializer, partial=True)

    else:  # DELETE
        step_id = request.query_params.get('id')
        if not step_id:
            raise ValidationError('Step ID is required')
        step = lookup(Step, step_id, 'step')

        if step.tasks.without_archived().exclude(status='cancelled').exists():
            raise Conflict('Cannot delete step with active tasks. Archive or reassign tasks first.')

        with transaction.atomic():
            Step.objects.filter(pk=step.pk).update(is_active=False)
            result = archive_record('steps', step.pk, {'source': 'steps'}, request=request)
            if not result.success:
                raise result.error
        logger.info(f"User {request.user.username} archived step {step.pk}")
        return Response({'message': 'Step archived successfully', 'data': result.data[0]})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def reorder_steps(request):
    """Set order_index on several steps of one phase in a single transaction"""
    phase_id = request.data.get('phase_id')
    step_orders = request.data.get('step_orders')
    if not phase_id or not isinstance(step_orders, list):
        raise ValidationError('phase_id and step_orders array are required')

    for item in step_orders:
        order_index = item.get('order_index') if isinstance(item, dict) else None
        if not isinstance(item, dict) or not item.get('id') or not isinstance(order_index, int) or isinstance(order_index, bool):
            raise ValidationError('Each step_order must have id and order_index')

    phase = lookup(Phase, phase_id, 'phase')

    now = timezone.now()
    try:
        with transaction.atomic():
            for item in step_orders:
                # Scoped to the phase so steps of other phases are never touched
                Step.objects.filter(pk=item['id'], phase=phase).update(
                    order_index=item['order_index'],
                    updated_at=now,
                )
    except DjangoValidationError:
        raise ValidationError('Invalid step id')

    invalidate_table_cache('steps')
    create_audit_log(
        AuditAction.UPDATE,
        AuditResourceType.STEP,
        BULK_OPERATION_ID,
        {'action': 'reorder', 'phaseId': phase.pk, 'count': len(step_orders)},
        request=request,
    )

    updated_steps = active_steps().filter(phase=phase)
    return Response({
        'message': 'Steps reordered successfully',
        'steps': StepSerializer(updated_steps, many=True).data,
    })


# Task views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def task_list_create(request):
    """List tasks (?archived=, ?step_id=, ?status=) or create a task"""
    if request.method == 'GET':
        step_id = request.query_params.get('step_id')
        task_status = request.query_params.get('status')
        queryset = Task.objects.select_related('assignee').order_by('order_index', 'created_at')
        try:
            if step_id:
                queryset = queryset.filter(step_id=step_id)
        except DjangoValidationError:
            raise ValidationError('Invalid step id')
        if task_status:
            queryset = queryset.filter(status=task_status)
        cacheable = not step_id and not task_status
        return list_response(request, 'tasks', queryset, TaskSerializer, cacheable=cacheable)
    return create_response(request, 'tasks', TaskSerializer, lambda t: {'title': t.title, 'stepId': t.step_id})


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def task_detail(request, pk):
    """Retrieve, update or archive a task"""
    task = get_object_or_404(Task.objects.select_related('assignee'), pk=pk)

    if request.method == 'GET':
        return Response(TaskSerializer(task).data)
    elif request.method in ('PUT', 'PATCH'):
        return update_response(request, 'tasks', task, TaskSerializer, partial=request.method == 'PATCH')
    else:  # DELETE
        return archive_instance_response(request, 'tasks', task)

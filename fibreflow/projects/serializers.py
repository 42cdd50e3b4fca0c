from rest_framework import serializers

from fibreflow.parties.models import Staff
from .models import Project, Phase, ProjectPhase, Step, Task, ProjectTask


class ProjectSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source='customer.name', read_only=True)
    location_name = serializers.CharField(source='location.location_name', read_only=True)
    project_manager_name = serializers.CharField(source='project_manager.name', read_only=True)

    class Meta:
        model = Project
        fields = [
            'id', 'project_name', 'description', 'status',
            'customer', 'customer_name', 'location', 'location_name',
            'project_manager', 'project_manager_name',
            'province', 'region', 'start_date', 'end_date', 'budget', 'progress_percentage',
            'created_at', 'updated_at', 'archived_at',
        ]
        read_only_fields = ['created_at', 'updated_at', 'archived_at']

    def validate_progress_percentage(self, value):
        if value > 100:
            raise serializers.ValidationError("Progress cannot exceed 100%")
        return value

    def validate(self, data):
        start_date = data.get('start_date', getattr(self.instance, 'start_date', None))
        end_date = data.get('end_date', getattr(self.instance, 'end_date', None))
        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({'end_date': 'End date cannot be before start date'})
        return data


class ProjectDetailsSerializer(serializers.Serializer):
    """Fields the hierarchy endpoint may change on a project"""
    name = serializers.CharField(source='project_name', max_length=200, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=Project.STATUS_CHOICES, required=False)
    start_date = serializers.DateField(required=False, allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True)


class PhaseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Phase
        fields = ['id', 'name', 'description', 'order_no', 'order_index', 'is_standard', 'created_at', 'updated_at', 'archived_at']
        read_only_fields = ['created_at', 'updated_at', 'archived_at']


class PhaseSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Phase
        fields = ['id', 'name']


class ProjectPhaseSerializer(serializers.ModelSerializer):
    # For reading: return the phase definition
    phase = PhaseSerializer(read_only=True)

    # For writing: accept ids
    phase_id = serializers.PrimaryKeyRelatedField(
        queryset=Phase.objects.without_archived(),
        source='phase',
        write_only=True
    )
    assigned_to = serializers.PrimaryKeyRelatedField(
        queryset=Staff.objects.without_archived(),
        required=False,
        allow_null=True
    )
    assigned_to_name = serializers.CharField(source='assigned_to.name', read_only=True)

    class Meta:
        model = ProjectPhase
        fields = ['id', 'project', 'phase', 'phase_id', 'status', 'assigned_to', 'assigned_to_name', 'created_at', 'updated_at', 'archived_at']
        read_only_fields = ['project', 'created_at', 'updated_at', 'archived_at']


class StepTaskSerializer(serializers.ModelSerializer):
    class Meta:
        model = Task
        fields = ['id', 'title', 'status', 'order_index']


class StepSerializer(serializers.ModelSerializer):
    phase_id = serializers.PrimaryKeyRelatedField(queryset=Phase.objects.without_archived(), source='phase')
    phase = PhaseSummarySerializer(read_only=True)
    tasks = serializers.SerializerMethodField()

    class Meta:
        model = Step
        fields = ['id', 'phase_id', 'phase', 'name', 'description', 'order_index', 'is_active', 'created_at', 'updated_at', 'archived_at', 'tasks']
        read_only_fields = ['is_active', 'created_at', 'updated_at', 'archived_at']

    def get_tasks(self, obj):
        """Non-archived tasks of the step; uses the active_tasks prefetch when present"""
        tasks = getattr(obj, 'active_tasks', None)
        if tasks is None:
            tasks = obj.tasks.without_archived().order_by('order_index', 'created_at')
        return StepTaskSerializer(tasks, many=True).data


class TaskSerializer(serializers.ModelSerializer):
    step_id = serializers.PrimaryKeyRelatedField(
        queryset=Step.objects.without_archived(),
        source='step',
        required=False,
        allow_null=True
    )
    assignee_id = serializers.PrimaryKeyRelatedField(
        queryset=Staff.objects.without_archived(),
        source='assignee',
        required=False,
        allow_null=True
    )
    assignee_name = serializers.CharField(source='assignee.name', read_only=True)

    class Meta:
        model = Task
        fields = [
            'id', 'step_id', 'title', 'description', 'status', 'order_index',
            'assignee_id', 'assignee_name', 'estimated_hours', 'actual_hours',
            'completed_at', 'created_at', 'updated_at', 'archived_at',
        ]
        read_only_fields = ['created_at', 'updated_at', 'archived_at']


class ProjectTaskSerializer(serializers.ModelSerializer):
    task_title = serializers.CharField(source='task.title', read_only=True)

    class Meta:
        model = ProjectTask
        fields = ['id', 'project_phase', 'task', 'task_title', 'status', 'assigned_to', 'created_at', 'updated_at', 'archived_at']
        read_only_fields = fields

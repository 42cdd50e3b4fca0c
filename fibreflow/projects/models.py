import uuid

from django.db import models

from fibreflow.core.models import SoftDeleteModel
from fibreflow.locations.models import Location
from fibreflow.parties.models import Customer, Staff

# Shared by project phases, tasks and project tasks
WORK_STATUS_CHOICES = [
    ('pending', 'Pending'),
    ('not_started', 'Not Started'),
    ('in_progress', 'In Progress'),
    ('completed', 'Completed'),
    ('cancelled', 'Cancelled'),
]


class Project(SoftDeleteModel):
    """A fibre deployment project"""
    STATUS_CHOICES = [
        ('planning', 'Planning'),
        ('active', 'Active'),
        ('on_hold', 'On Hold'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project_name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='planning')
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='projects')
    location = models.ForeignKey(Location, on_delete=models.SET_NULL, null=True, blank=True, related_name='projects')
    project_manager = models.ForeignKey(Staff, on_delete=models.SET_NULL, null=True, blank=True, related_name='managed_projects')
    province = models.CharField(max_length=100, blank=True)
    region = models.CharField(max_length=100, blank=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    budget = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    progress_percentage = models.PositiveSmallIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'projects'
        ordering = ['-created_at']

    def __str__(self):
        return self.project_name


class Phase(SoftDeleteModel):
    """Master list of phases a project moves through"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    order_no = models.IntegerField(null=True, blank=True)
    order_index = models.IntegerField(null=True, blank=True)
    is_standard = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'phases'
        ordering = ['order_no', 'name']

    def __str__(self):
        return self.name

    @property
    def sort_order(self):
        """order_index, falling back to order_no, then 0"""
        if self.order_index is not None:
            return self.order_index
        if self.order_no is not None:
            return self.order_no
        return 0


class ProjectPhase(SoftDeleteModel):
    """A phase as it applies to one project"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='project_phases')
    phase = models.ForeignKey(Phase, on_delete=models.SET_NULL, null=True, blank=True, related_name='project_phases')
    status = models.CharField(max_length=20, choices=WORK_STATUS_CHOICES, default='pending')
    assigned_to = models.ForeignKey(Staff, on_delete=models.SET_NULL, null=True, blank=True, related_name='project_phases')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'project_phases'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.project} - {self.phase or 'No phase'}"


class Step(SoftDeleteModel):
    """Ordered unit of work within a phase"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    phase = models.ForeignKey(Phase, on_delete=models.CASCADE, related_name='steps')
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    order_index = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'steps'
        ordering = ['order_index', 'created_at']
        indexes = [
            models.Index(fields=['phase', 'order_index'], name='steps_phase_order_idx'),
        ]

    def __str__(self):
        return self.name


class Task(SoftDeleteModel):
    """Ordered unit of work within a step"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    step = models.ForeignKey(Step, on_delete=models.CASCADE, null=True, blank=True, related_name='tasks')
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=WORK_STATUS_CHOICES, default='pending')
    order_index = models.IntegerField(default=0)
    assignee = models.ForeignKey(Staff, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_tasks')
    estimated_hours = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    actual_hours = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tasks'
        ordering = ['order_index', 'created_at']
        indexes = [
            models.Index(fields=['step', 'order_index'], name='tasks_step_order_idx'),
        ]

    def __str__(self):
        return self.title


class ProjectTask(SoftDeleteModel):
    """A task as it is being worked on within a project phase"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project_phase = models.ForeignKey(ProjectPhase, on_delete=models.CASCADE, related_name='project_tasks')
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='project_tasks')
    status = models.CharField(max_length=20, choices=WORK_STATUS_CHOICES, default='pending')
    assigned_to = models.ForeignKey(Staff, on_delete=models.SET_NULL, null=True, blank=True, related_name='project_tasks')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'project_tasks'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.project_phase} - {self.task}"

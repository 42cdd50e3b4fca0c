from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with additional fields"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


# Values accepted by the ?archived= query parameter
ARCHIVE_MODES = ('exclude', 'only', 'include')


class SoftDeleteQuerySet(models.QuerySet):
    """Queryset with archive-aware filters for models carrying archived_at"""

    def without_archived(self):
        return self.filter(archived_at__isnull=True)

    def only_archived(self):
        return self.filter(archived_at__isnull=False)

    def include_archived(self):
        return self.all()


class SoftDeleteModel(models.Model):
    """
    Base for tables whose rows are archived instead of deleted.

    A null archived_at means the row is active. Only the archive service
    writes this field.
    """
    archived_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def is_archived(self):
        return self.archived_at is not None


class SoftDeleteTable(models.TextChoices):
    """Tables that support archive / unarchive"""
    PROJECTS = 'projects', 'Projects'
    CUSTOMERS = 'new_customers', 'Customers'
    PHASES = 'phases', 'Phases'
    PROJECT_PHASES = 'project_phases', 'Project phases'
    PROJECT_TASKS = 'project_tasks', 'Project tasks'
    STEPS = 'steps', 'Steps'
    TASKS = 'tasks', 'Tasks'
    LOCATIONS = 'locations', 'Locations'
    STAFF = 'staff', 'Staff'


class AuditAction(models.TextChoices):
    CREATE = 'create', 'Create'
    UPDATE = 'update', 'Update'
    DELETE = 'delete', 'Delete'
    READ = 'read', 'Read'


class AuditResourceType(models.TextChoices):
    PROJECT = 'project', 'Project'
    CUSTOMER = 'customer', 'Customer'
    PHASE = 'phase', 'Phase'
    PROJECT_PHASE = 'project_phase', 'Project phase'
    PROJECT_TASK = 'project_task', 'Project task'
    STEP = 'step', 'Step'
    TASK = 'task', 'Task'
    LOCATION = 'location', 'Location'
    USER = 'user', 'User / staff'
    SYSTEM = 'system', 'System'


class AuditLog(models.Model):
    """Append-only trail of mutating actions"""
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=20, choices=AuditAction.choices)
    resource_type = models.CharField(max_length=50, choices=AuditResourceType.choices)
    resource_id = models.CharField(max_length=100)
    details = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_idx'),
            models.Index(fields=['action'], name='audit_logs_action_idx'),
            models.Index(fields=['resource_type', 'resource_id'], name='audit_logs_resource_idx'),
        ]

    def __str__(self):
        return f"{self.action} {self.resource_type} {self.resource_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Audit log entries are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit log entries cannot be deleted")

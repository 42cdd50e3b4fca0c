from django.contrib import admin
from .models import Project, Phase, ProjectPhase, Step, Task, ProjectTask


class ProjectPhaseInline(admin.TabularInline):
    model = ProjectPhase
    extra = 0
    fields = ['phase', 'status', 'assigned_to', 'archived_at']
    readonly_fields = ['archived_at']


class StepInline(admin.TabularInline):
    model = Step
    extra = 0
    fields = ['name', 'order_index', 'is_active', 'archived_at']
    readonly_fields = ['archived_at']


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['project_name', 'status', 'customer', 'location', 'project_manager', 'progress_percentage', 'archived_at']
    list_filter = ['status', 'province', 'archived_at']
    search_fields = ['project_name', 'description', 'customer__name']
    readonly_fields = ['archived_at', 'created_at', 'updated_at']
    inlines = [ProjectPhaseInline]


@admin.register(Phase)
class PhaseAdmin(admin.ModelAdmin):
    list_display = ['name', 'order_no', 'order_index', 'is_standard', 'archived_at']
    list_filter = ['is_standard', 'archived_at']
    search_fields = ['name']
    ordering = ['order_no']
    readonly_fields = ['archived_at', 'created_at', 'updated_at']
    inlines = [StepInline]


@admin.register(Step)
class StepAdmin(admin.ModelAdmin):
    list_display = ['name', 'phase', 'order_index', 'is_active', 'archived_at']
    list_filter = ['is_active', 'phase']
    search_fields = ['name']
    readonly_fields = ['archived_at', 'created_at', 'updated_at']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['title', 'step', 'status', 'order_index', 'assignee', 'archived_at']
    list_filter = ['status', 'archived_at']
    search_fields = ['title', 'description']
    readonly_fields = ['archived_at', 'created_at', 'updated_at']


@admin.register(ProjectTask)
class ProjectTaskAdmin(admin.ModelAdmin):
    list_display = ['task', 'project_phase', 'status', 'assigned_to', 'created_at']
    list_filter = ['status']
    readonly_fields = ['archived_at', 'created_at', 'updated_at']

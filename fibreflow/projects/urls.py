from django.urls import path
from .views import (
    project_hierarchy,
    project_list_create, project_detail, project_phase_list_create,
    phase_list_create, phase_detail,
    steps, reorder_steps,
    task_list_create, task_detail,
)

urlpatterns = [
    # Hierarchy endpoints
    path('hierarchy/<uuid:project_id>/', project_hierarchy, name='project-hierarchy'),

    # Project endpoints
    path('projects/', project_list_create, name='project-list-create'),
    path('projects/<uuid:pk>/', project_detail, name='project-detail'),
    path('projects/<uuid:pk>/phases/', project_phase_list_create, name='project-phase-list-create'),

    # Phase endpoints
    path('phases/', phase_list_create, name='phase-list-create'),
    path('phases/<uuid:pk>/', phase_detail, name='phase-detail'),

    # Step endpoints
    path('steps/', steps, name='steps'),
    path('steps/reorder/', reorder_steps, name='steps-reorder'),

    # Task endpoints
    path('tasks/', task_list_create, name='task-list-create'),
    path('tasks/<uuid:pk>/', task_detail, name='task-detail'),
]

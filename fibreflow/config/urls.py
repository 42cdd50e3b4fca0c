"""
URL configuration for the fibreflow project.

Every app mounts its API under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "FibreFlow Administration"
admin.site.site_title = "FibreFlow Admin Portal"
admin.site.index_title = "Project tracking administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('fibreflow.core.urls')),
    path('api/v1/', include('fibreflow.parties.urls')),
    path('api/v1/', include('fibreflow.locations.urls')),
    path('api/v1/', include('fibreflow.projects.urls')),
]

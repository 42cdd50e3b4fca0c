from django.contrib import admin
from .models import Location


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ['location_name', 'province', 'region', 'archived_at', 'created_at']
    list_filter = ['province', 'region', 'archived_at']
    search_fields = ['location_name', 'address']
    readonly_fields = ['archived_at', 'created_at', 'updated_at']

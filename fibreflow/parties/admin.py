from django.contrib import admin
from .models import Customer, Staff


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'phone', 'archived_at', 'created_at']
    list_filter = ['created_at', 'archived_at']
    search_fields = ['name', 'email', 'phone']
    readonly_fields = ['archived_at', 'created_at', 'updated_at']


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ['name', 'role', 'email', 'phone', 'is_active', 'archived_at']
    list_filter = ['is_active', 'role', 'archived_at']
    search_fields = ['name', 'email', 'role']
    readonly_fields = ['archived_at', 'created_at', 'updated_at']

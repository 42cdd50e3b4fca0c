from rest_framework import serializers
from .models import Customer, Staff


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ['id', 'name', 'email', 'phone', 'address', 'created_at', 'updated_at', 'archived_at']
        read_only_fields = ['created_at', 'updated_at', 'archived_at']


class StaffSerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = ['id', 'name', 'email', 'phone', 'role', 'is_active', 'created_at', 'updated_at', 'archived_at']
        read_only_fields = ['created_at', 'updated_at', 'archived_at']

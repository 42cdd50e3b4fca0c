from rest_framework import serializers
from .models import Location


class LocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Location
        fields = ['id', 'location_name', 'province', 'region', 'address', 'created_at', 'updated_at', 'archived_at']
        read_only_fields = ['created_at', 'updated_at', 'archived_at']

import uuid

from django.db import models

from fibreflow.core.models import SoftDeleteModel


class Location(SoftDeleteModel):
    """Sites where fibre is deployed"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    location_name = models.CharField(max_length=200)
    province = models.CharField(max_length=100, blank=True)
    region = models.CharField(max_length=100, blank=True)
    address = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.location_name

    class Meta:
        db_table = 'locations'
        ordering = ['location_name']

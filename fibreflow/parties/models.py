import uuid

from django.db import models

from fibreflow.core.models import SoftDeleteModel


class Customer(SoftDeleteModel):
    """Customers that fibre projects are delivered for"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'new_customers'
        ordering = ['name']

    def __str__(self):
        return self.name


class Staff(SoftDeleteModel):
    """Field and office staff; project managers and task assignees"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    role = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'staff'
        ordering = ['name']
        verbose_name_plural = 'staff'

    def __str__(self):
        return f"{self.name} ({self.role})" if self.role else self.name

import django_filters

from .models import AuditLog, AuditAction, AuditResourceType


class AuditLogFilter(django_filters.FilterSet):
    """
    Filters for the audit trail.

    date_from / date_to accept dates or datetimes and bound created_at.
    """
    action = django_filters.ChoiceFilter(choices=AuditAction.choices)
    resource_type = django_filters.ChoiceFilter(choices=AuditResourceType.choices)
    resource_id = django_filters.CharFilter(field_name='resource_id')
    date_from = django_filters.DateTimeFilter(field_name='created_at', lookup_expr='gte')
    date_to = django_filters.DateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = AuditLog
        fields = ['action', 'resource_type', 'resource_id']

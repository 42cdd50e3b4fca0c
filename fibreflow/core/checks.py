"""System checks keeping the archive registry in step with the models"""
from django.core.checks import Error, Tags, register

from .models import SoftDeleteTable
from .soft_delete import TABLE_TO_RESOURCE_TYPE, get_model_for_table


@register(Tags.models)
def check_soft_delete_tables(app_configs, **kwargs):
    errors = []
    for table in SoftDeleteTable:
        if table not in TABLE_TO_RESOURCE_TYPE:
            errors.append(Error(
                f"Soft delete table '{table.value}' has no audit resource type",
                hint="Add it to TABLE_TO_RESOURCE_TYPE in fibreflow.core.soft_delete.",
                id='fibreflow.E001',
            ))
        try:
            get_model_for_table(table.value)
        except LookupError:
            errors.append(Error(
                f"Soft delete table '{table.value}' is not backed by a SoftDeleteModel",
                id='fibreflow.E002',
            ))
    return errors

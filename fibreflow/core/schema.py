"""Schema probes used by the hierarchy view and the check_schema command"""
from django.db import connection

REQUIRED_TABLES = (
    'users',
    'audit_logs',
    'new_customers',
    'locations',
    'staff',
    'projects',
    'phases',
    'project_phases',
    'steps',
    'tasks',
    'project_tasks',
)


def missing_tables(tables=REQUIRED_TABLES):
    existing = set(connection.introspection.table_names())
    return [table for table in tables if table not in existing]


def table_exists(table):
    return not missing_tables((table,))

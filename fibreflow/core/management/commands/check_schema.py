"""
Django management command to check that the database holds every table
the API reads and writes

Usage:
    python manage.py check_schema
    python manage.py check_schema --table steps --table tasks
"""
from django.core.management.base import BaseCommand, CommandError
from django.db import connection

from fibreflow.core.schema import REQUIRED_TABLES, missing_tables


class Command(BaseCommand):
    help = 'Check that the required tables exist in the configured database'

    def add_arguments(self, parser):
        parser.add_argument(
            '--table',
            action='append',
            dest='tables',
            help='Check only this table (may be repeated)',
        )

    def handle(self, *args, **options):
        tables = tuple(options.get('tables') or REQUIRED_TABLES)

        self.stdout.write("=" * 60)
        self.stdout.write(self.style.SUCCESS("DATABASE SCHEMA CHECK"))
        self.stdout.write("=" * 60)
        self.stdout.write(f"Backend: {connection.vendor} ({connection.settings_dict.get('NAME')})")
        self.stdout.write("")

        missing = missing_tables(tables)
        for table in tables:
            if table in missing:
                self.stdout.write(self.style.ERROR(f"  ✗ {table}"))
            else:
                self.stdout.write(self.style.SUCCESS(f"  ✓ {table}"))
        self.stdout.write("")

        if missing:
            raise CommandError(
                f"{len(missing)} table(s) missing: {', '.join(missing)}. Run 'python manage.py migrate'."
            )
        self.stdout.write(self.style.SUCCESS(f"All {len(tables)} tables present"))

"""
Signals sent by the archive service after a successful archive / unarchive.

Both carry ``table`` (db table name) and ``ids`` (list of str) as keyword args.
Archive updates go through QuerySet.update(), so post_save never fires for them.
"""
from django.dispatch import Signal

records_archived = Signal()
records_restored = Signal()

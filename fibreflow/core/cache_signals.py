"""
Cache invalidation signals
Automatically invalidate cached listings when soft-deletable rows change
"""
from django.db.models.signals import post_save, post_delete
from django.db import transaction
from django.dispatch import receiver
import logging

from .model_cache import invalidate_table_cache
from .models import SoftDeleteModel
from .signals import records_archived, records_restored

logger = logging.getLogger(__name__)


@receiver([post_save, post_delete])
def invalidate_table_cache_on_save(sender, instance, **kwargs):
    """Invalidate the table's listings when one of its rows is saved"""
    if not isinstance(instance, SoftDeleteModel):
        return
    try:
        invalidate_table_cache(sender._meta.db_table)
    except Exception as e:
        logger.warning(f"Error in invalidate_table_cache_on_save signal: {e}")


@receiver([records_archived, records_restored])
def invalidate_table_cache_on_archive(sender, table, ids, **kwargs):
    """Invalidate listings after archive / unarchive, which bypass post_save"""
    try:
        invalidate_table_cache(table)
        # Listings cached before the enclosing transaction commits are stale
        transaction.on_commit(lambda: invalidate_table_cache(table))
        logger.info(f"Invalidated {table} cache after archive change of {len(ids)} record(s)")
    except Exception as e:
        logger.warning(f"Error in invalidate_table_cache_on_archive signal: {e}")

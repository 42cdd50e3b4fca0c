"""
Caching for list reads of the soft-deletable tables.

List endpoints cache their serialized output per table and ?archived= mode.
Entries are dropped whenever a row in the table is saved, archived or restored.
"""
from django.core.cache import cache
import logging

from .models import ARCHIVE_MODES

logger = logging.getLogger(__name__)

# Cache key prefixes
TABLE_LIST_KEY_PREFIX = 'table_list:'
ARCHIVED_ITEMS_KEY_PREFIX = 'archived_items:'

# Cache TTL (Time To Live) in seconds
TABLE_LIST_CACHE_TTL = 300  # 5 minutes
ARCHIVED_ITEMS_CACHE_TTL = 600  # 10 minutes (archived rows change rarely)


def get_table_list_cache_key(table: str, mode: str = 'exclude') -> str:
    """Get cache key for a table listing in the given archive mode"""
    return f"{TABLE_LIST_KEY_PREFIX}{table}:{mode}"


def get_archived_items_cache_key(table: str) -> str:
    """Get cache key for the archived items listing of a table"""
    return f"{ARCHIVED_ITEMS_KEY_PREFIX}{table}"


def get_cached_table_list(table: str, mode: str = 'exclude'):
    cached_data = cache.get(get_table_list_cache_key(table, mode))
    if cached_data is not None:
        logger.debug(f"Cache hit for {table} list ({mode})")
    return cached_data


def cache_table_list(table: str, mode: str, data, ttl: int = None):
    cache.set(get_table_list_cache_key(table, mode), data, ttl or TABLE_LIST_CACHE_TTL)
    logger.debug(f"Cached {table} list ({mode}), {len(data)} rows")


def get_cached_archived_items(table: str):
    return cache.get(get_archived_items_cache_key(table))


def cache_archived_items(table: str, data, ttl: int = None):
    cache.set(get_archived_items_cache_key(table), data, ttl or ARCHIVED_ITEMS_CACHE_TTL)
    logger.debug(f"Cached archived {table}, {len(data)} rows")


def invalidate_table_cache(table: str):
    """Drop every cached listing of ``table``"""
    keys = [get_table_list_cache_key(table, mode) for mode in ARCHIVE_MODES]
    keys.append(get_archived_items_cache_key(table))
    cache.delete_many(keys)
    logger.debug(f"Invalidated cached listings for {table}")

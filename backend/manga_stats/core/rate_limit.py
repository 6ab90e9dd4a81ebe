"""Shared slowapi limiter.

Counters live in the storage named by ``rate_limit_storage_uri``: ``memory://``
for a single process, ``redis://...`` when several API instances run side by side.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from manga_stats.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)

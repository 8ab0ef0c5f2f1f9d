"""SQLAlchemy ORM models for the local page cache."""

from eventpages.models.base import Base
from eventpages.models.cache import CacheEntry

__all__ = [
    "Base",
    "CacheEntry",
]

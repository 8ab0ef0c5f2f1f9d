"""Durable local page cache backed by SQLite."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import TYPE_CHECKING

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from eventpages.models.base import Base
from eventpages.models.cache import CacheEntry
from eventpages.schemas.page import Page, PageDocument
from eventpages.services.datetime_service import format_iso, now_utc, parse_datetime
from eventpages.services.template_service import TemplateContext

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

DOCUMENT_KEY_PREFIX = "cache:"
BACKUP_DOCUMENT_KEY = "backup:last-saved-document"
BACKUP_TIMESTAMP_KEY = "backup:last-saved-timestamp"
REGISTRY_KEY = "registry:pages"
EVENT_CONTEXT_KEY = "event:context"

_PAGE_LIST = TypeAdapter(list[Page])


def document_key(page_id: str) -> str:
    return f"{DOCUMENT_KEY_PREFIX}{page_id}"


async def ensure_tables(engine: AsyncEngine) -> None:
    """Create cache tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


class LocalCache:
    """Per-page key/value store that survives restarts.

    Every failure is logged and reported through the return value; nothing
    here raises for storage problems, so a full disk never blocks editing.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _read(self, key: str) -> str | None:
        try:
            async with self._session_factory() as session:
                entry = await session.get(CacheEntry, key)
                return entry.value if entry is not None else None
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None

    async def _write(self, values: dict[str, str]) -> bool:
        updated_at = now_utc()
        try:
            async with self._session_factory() as session:
                for key, value in values.items():
                    await session.merge(CacheEntry(key=key, value=value, updated_at=updated_at))
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Cache write failed for %s: %s", ", ".join(values), exc)
            return False
        return True

    async def get_document(self, page_id: str) -> PageDocument | None:
        """Cached document for a page, or None when absent or unreadable."""
        raw = await self._read(document_key(page_id))
        if raw is None:
            return None
        try:
            return PageDocument.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable cache entry for %s: %s", page_id, exc)
            return None

    async def put_document(self, page_id: str, document: PageDocument) -> bool:
        return await self._write({document_key(page_id): document.model_dump_json()})

    async def move_document(self, old_page_id: str, new_page_id: str) -> bool:
        """Re-key a cached document after a page id changed."""
        if old_page_id == new_page_id:
            return True
        document = await self.get_document(old_page_id)
        if document is None:
            return True
        if not await self.put_document(new_page_id, document):
            return False
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(CacheEntry).where(CacheEntry.key == document_key(old_page_id))
                )
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Failed to remove stale cache entry for %s: %s", old_page_id, exc)
        return True

    async def write_backup(self, document: PageDocument, saved_at: datetime | None = None) -> bool:
        """Record the last saved document for crash recovery."""
        if saved_at is None:
            saved_at = now_utc()
        return await self._write(
            {
                BACKUP_DOCUMENT_KEY: document.model_dump_json(),
                BACKUP_TIMESTAMP_KEY: format_iso(saved_at),
            }
        )

    async def read_backup(self) -> tuple[PageDocument, datetime] | None:
        raw_document = await self._read(BACKUP_DOCUMENT_KEY)
        raw_timestamp = await self._read(BACKUP_TIMESTAMP_KEY)
        if raw_document is None or raw_timestamp is None:
            return None
        try:
            return PageDocument.model_validate_json(raw_document), parse_datetime(raw_timestamp)
        except (ValidationError, ValueError) as exc:
            logger.warning("Discarding unreadable backup record: %s", exc)
            return None

    async def load_registry(self) -> list[Page]:
        raw = await self._read(REGISTRY_KEY)
        if raw is None:
            return []
        try:
            return _PAGE_LIST.validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable page registry snapshot: %s", exc)
            return []

    async def store_registry(self, pages: list[Page]) -> bool:
        return await self._write({REGISTRY_KEY: _PAGE_LIST.dump_json(pages).decode("utf-8")})

    async def get_event_context(self) -> TemplateContext:
        raw = await self._read(EVENT_CONTEXT_KEY)
        if raw is None:
            return TemplateContext()
        try:
            data = json.loads(raw)
            return TemplateContext(**data)
        except (ValueError, TypeError) as exc:
            logger.warning("Discarding unreadable event context: %s", exc)
            return TemplateContext()

    async def put_event_context(self, context: TemplateContext) -> bool:
        return await self._write({EVENT_CONTEXT_KEY: json.dumps(asdict(context))})

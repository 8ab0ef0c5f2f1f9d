"""Page persistence controller: the only entry point the editor UI calls.

Loading is "local first, network second": ``load_page`` answers from the
local cache (or a template) without touching the network, then races a
time-boxed remote fetch in the background. A refresh result is applied only
if no newer ``load_page`` for the same page has started since; every load
bumps a per-page generation counter and stale results are dropped by
comparing generations.

Saving writes the local cache first, then tries the remote store, then falls
back to writing a downloadable file. None of the expected failure modes
raise; callers receive a usable document or a ``SaveResult``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from eventpages.database import create_engine
from eventpages.exceptions import PageNotFoundError, PageReferenceError
from eventpages.schemas.page import Page, PageDocument, RemotePageSummary, RootData, SaveResult
from eventpages.services import template_service
from eventpages.services.banner_service import BannerWatcher
from eventpages.services.cache_service import LocalCache, ensure_tables
from eventpages.services.datetime_service import now_utc
from eventpages.services.dedupe_service import dedupe
from eventpages.services.download_service import download_document
from eventpages.services.event_bus import (
    DocumentPublished,
    EventBus,
    RegistryChanged,
    SaveCompleted,
    Subscriber,
)
from eventpages.services.reconcile_service import (
    DocumentSource,
    ReconcileResult,
    apply_title,
    reconcile,
)
from eventpages.services.registry_service import (
    DEFAULT_PAGE_BASE_NAME,
    PageRegistry,
    unique_page_name,
)
from eventpages.services.remote_store import RemoteStore
from eventpages.services.slug_service import (
    ensure_page_suffix,
    generate_page_slug,
    is_server_id,
    local_page_id,
    name_from_filename,
    page_filename,
    strip_page_suffix,
)
from eventpages.services.structure_service import StructureRules, has_expected_structure
from eventpages.services.template_service import TEMPLATE_NAMES, TemplateContext

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from typing import Any

    import httpx
    from sqlalchemy.ext.asyncio import AsyncEngine

    from eventpages.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class OpenPage:
    """Document currently held in memory for one page.

    ``authored`` is False while the document is an unsaved template, so its
    title does not outrank the remote copy during reconciliation.
    """

    document: PageDocument
    authored: bool


@dataclass
class LoadResult:
    """Immediate answer of ``load_page``.

    ``refresh`` is the background remote fetch, if one was started; awaiting
    it is optional and yields the reconciliation it applied, if any.
    """

    page: Page
    document: PageDocument
    title: str
    generation: int
    source: DocumentSource
    refresh: asyncio.Task[ReconcileResult | None] | None = None


def empty_document(title: str) -> PageDocument:
    return PageDocument(content=[], root=RootData(props={"title": title, "pageTitle": title}))


class PagePersistenceController:
    """Keeps the editor document, the local cache and the remote store consistent."""

    def __init__(
        self,
        settings: Settings,
        cache: LocalCache,
        remote: RemoteStore,
        *,
        bus: EventBus | None = None,
        engine: AsyncEngine | None = None,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self.remote = remote
        self.bus = bus or EventBus()
        self.registry = PageRegistry()
        self.rules = StructureRules.from_settings(settings)
        self.singleton_types = frozenset(settings.singleton_node_types)
        self.event_context = TemplateContext()
        self._engine = engine
        self._generations: dict[str, int] = {}
        self._open: dict[str, OpenPage] = {}
        self._background: set[asyncio.Task[Any]] = set()
        self._pending_creates: dict[str, asyncio.Task[bool]] = {}
        self._watcher: BannerWatcher | None = None

    @classmethod
    async def from_settings(
        cls, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> PagePersistenceController:
        """Build a controller with its own cache database and HTTP client."""
        engine, session_factory = create_engine(settings)
        await ensure_tables(engine)
        controller = cls(
            settings,
            LocalCache(session_factory),
            RemoteStore.from_settings(settings, transport=transport),
            engine=engine,
        )
        await controller.restore()
        return controller

    async def restore(self) -> None:
        """Reload the registry snapshot and event context from the local cache."""
        for page in await self.cache.load_registry():
            self.registry.put(page)
        self.event_context = await self.cache.get_event_context()

    async def aclose(self) -> None:
        """Stop watchers, cancel background work and release resources."""
        await self.stop_watching_event_context()
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.remote.aclose()
        if self._engine is not None:
            await self._engine.dispose()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        return self.bus.subscribe(callback)

    # Generations

    def _next_generation(self, page_id: str) -> int:
        generation = self._generations.get(page_id, 0) + 1
        self._generations[page_id] = generation
        return generation

    def current_generation(self, page_id: str) -> int:
        return self._generations.get(page_id, 0)

    def is_current(self, page_id: str, generation: int) -> bool:
        return self._generations.get(page_id, 0) == generation

    # Helpers

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _template(self, name: str, kind: str = template_service.DEFAULT_KIND) -> PageDocument:
        return template_service.generate(
            name, self.event_context, kind, banner_url=self.settings.default_banner_url
        )

    def _in_memory(self, page_id: str) -> PageDocument | None:
        entry = self._open.get(page_id)
        if entry is None or not entry.authored:
            return None
        return entry.document

    async def _registry_changed(self) -> list[Page]:
        pages = self.registry.pages
        await self.cache.store_registry(pages)
        self.bus.publish(RegistryChanged(pages=pages))
        return pages

    def _resolve(self, reference: str) -> Page | None:
        return (
            self.registry.find(reference)
            or self.registry.find(ensure_page_suffix(reference))
            or self.registry.find(strip_page_suffix(reference))
        )

    @staticmethod
    def _foreign_page(reference: str, name: str | None = None) -> Page:
        page_id = strip_page_suffix(reference)
        return Page(
            id=page_id,
            name=name or name_from_filename(reference),
            storage_key=ensure_page_suffix(generate_page_slug(page_id)),
            last_modified=now_utc(),
        )

    # Listing

    async def _page_from_summary(self, summary: RemotePageSummary) -> Page:
        known = self.registry.find(summary.filename)
        page_id = known.id if known is not None else strip_page_suffix(summary.filename)

        remote_document = await self.remote.get_page(summary.filename)
        cached_document = await self.cache.get_document(page_id)
        if remote_document is not None and remote_document.title:
            name = remote_document.title
        elif cached_document is not None and cached_document.title:
            name = cached_document.title
        else:
            name = name_from_filename(summary.filename)

        return Page(
            id=page_id,
            name=name,
            storage_key=summary.filename,
            last_modified=summary.modified or now_utc(),
        )

    async def list_pages(self) -> list[Page]:
        """Known pages, enriched with whatever the remote store lists.

        With the remote store disabled or unreachable this returns the
        registry as it is.
        """
        summaries = await self.remote.list_pages()
        if summaries is None:
            return self.registry.pages

        discovered = await asyncio.gather(
            *(self._page_from_summary(summary) for summary in summaries)
        )
        self.registry.merge(discovered)
        logger.info("Listed %d remote page(s); registry has %d", len(discovered), len(self.registry))
        return await self._registry_changed()

    # Loading

    async def load_page(self, page_ref: str) -> LoadResult:
        """Return the best local document immediately; refresh from the remote store later.

        Observers must tolerate the document being replaced by a
        ``DocumentPublished`` event with ``initial=False`` after this returns.
        """
        reference = page_ref.strip()
        if not reference:
            raise PageReferenceError("Cannot load a page without a reference")

        page = self._resolve(reference)
        if page is None:
            page = self._foreign_page(reference)
            logger.info("Loading unknown page reference %r as %s", page_ref, page.id)
        generation = self._next_generation(page.id)

        cached = await self.cache.get_document(page.id)
        in_memory = self._in_memory(page.id)
        if cached is not None:
            base, source = cached, DocumentSource.LOCAL
        elif in_memory is not None:
            base, source = in_memory, DocumentSource.IN_MEMORY
        else:
            base, source = self._template(page.name), DocumentSource.TEMPLATE

        deduped = dedupe(base, self.singleton_types)
        title = deduped.document.title or page.name
        document = apply_title(deduped.document, title)
        authored = source is not DocumentSource.TEMPLATE

        if not self.is_current(page.id, generation):
            # A newer load started while the cache was read; it will publish
            logger.debug("Superseded load of %s (generation %d)", page.id, generation)
            return LoadResult(
                page=page, document=document, title=title, generation=generation, source=source
            )
        self._open[page.id] = OpenPage(document=document, authored=authored)
        self.bus.publish(
            DocumentPublished(
                page_id=page.id,
                document=document,
                title=title,
                generation=generation,
                initial=True,
                source=source,
            )
        )
        if deduped.removed_count and source is DocumentSource.LOCAL:
            await self.cache.put_document(page.id, document)

        refresh = None
        if self.remote.enabled:
            refresh = self._spawn(self._refresh(page, generation), name=f"refresh:{page.id}")
        return LoadResult(
            page=page,
            document=document,
            title=title,
            generation=generation,
            source=source,
            refresh=refresh,
        )

    async def _refresh(self, page: Page, generation: int) -> ReconcileResult | None:
        timeout = self.settings.remote_timeout_seconds
        try:
            remote = await asyncio.wait_for(self.remote.get_page(page.storage_key), timeout=timeout)
        except TimeoutError:
            logger.info("Remote fetch of %s exceeded %.1fs; keeping local copy", page.id, timeout)
            return None
        if remote is None:
            return None
        if not self.is_current(page.id, generation):
            logger.debug("Dropping stale refresh of %s (generation %d)", page.id, generation)
            return None
        if not has_expected_structure(remote, self.rules):
            logger.warning("Remote copy of %s has an unexpected structure; ignoring it", page.id)
            return None

        local = await self.cache.get_document(page.id)
        if not self.is_current(page.id, generation):
            logger.debug("Dropping stale refresh of %s (generation %d)", page.id, generation)
            return None

        result = reconcile(
            local,
            remote,
            self._in_memory(page.id),
            page.name,
            rules=self.rules,
            singleton_types=self.singleton_types,
            template=self._template,
        )
        self._open[page.id] = OpenPage(document=result.document, authored=True)
        self.bus.publish(
            DocumentPublished(
                page_id=page.id,
                document=result.document,
                title=result.title,
                generation=generation,
                initial=False,
                source=result.base,
            )
        )
        await self.cache.put_document(page.id, result.document)
        return result

    # Creating and renaming

    async def _create(self, name: str, document: PageDocument) -> Page:
        page = Page(
            id=local_page_id(name),
            name=name,
            storage_key=page_filename(name),
            last_modified=now_utc(),
        )
        self._open[page.id] = OpenPage(document=document, authored=True)
        await self.cache.put_document(page.id, document)
        self.registry.put(page)
        await self._registry_changed()
        if self.remote.enabled:
            self._pending_creates[page.id] = self._spawn(
                self._save_remote_quietly(page, document), name=f"create:{page.id}"
            )
        logger.info("Created page %s (%s)", page.id, name)
        return page

    async def _save_remote_quietly(self, page: Page, document: PageDocument) -> bool:
        response = await self.remote.save_page(page.storage_key, document)
        return response is not None

    async def create_page(self, base_name: str | None = None) -> Page:
        """Create an empty ``Page N`` page; the network save never delays the return."""
        name = self.registry.next_name(base_name or DEFAULT_PAGE_BASE_NAME)
        return await self._create(name, empty_document(name))

    async def create_from_template(self, template_kind: str) -> Page:
        """Create a page seeded from a named template, tagged with its ``pageType``."""
        kind = template_kind.strip() or template_service.BLANK_KIND
        base_name = TEMPLATE_NAMES.get(kind) or kind.replace("-", " ").title()
        name = unique_page_name(self.registry.pages, base_name)
        document = self._template(name, kind)
        props = {**document.root.props, "pageType": kind}
        document = document.model_copy(update={"root": RootData(props=props)})
        return await self._create(name, document)

    async def rename_page(self, page_id: str, new_name: str) -> Page:
        """Rename a page and persist it through the save path.

        Locally created pages get an id and filename derived from the new
        name; pages with server-issued ids keep both.
        """
        page = self.registry.get(page_id)
        if page is None:
            raise PageNotFoundError(f"Unknown page id: {page_id}")
        name = new_name.strip()
        if not name:
            raise PageReferenceError("Page name must not be empty")

        if is_server_id(page.id):
            renamed = page.model_copy(update={"name": name, "last_modified": now_utc()})
        else:
            renamed = Page(
                id=local_page_id(name),
                name=name,
                storage_key=page_filename(name),
                last_modified=now_utc(),
            )

        current = self._open.get(page.id)
        document = (
            current.document
            if current is not None
            else await self.cache.get_document(page.id) or empty_document(page.name)
        )
        document = apply_title(document, name, superseded_title=page.name)

        if renamed.id != page.id:
            await self.cache.move_document(page.id, renamed.id)
            self._open.pop(page.id, None)
            self._generations[renamed.id] = self._generations.pop(page.id, 0)
            pending = self._pending_creates.pop(page.id, None)
            if pending is not None:
                self._pending_creates[renamed.id] = pending
        self.registry.rename(page.id, renamed)
        await self._registry_changed()
        await self.save_page(renamed.id, document)
        logger.info("Renamed page %s to %r (%s)", page.id, name, renamed.id)
        return renamed

    # Saving

    async def update_document(self, page_id: str, document: PageDocument) -> PageDocument:
        """Record an in-memory edit; writes the cache but never the network."""
        deduped = dedupe(document, self.singleton_types).document
        self._open[page_id] = OpenPage(document=deduped, authored=True)
        await self.cache.put_document(page_id, deduped)
        return deduped

    async def save_page(self, page_id: str, document: PageDocument) -> SaveResult:
        """Save locally, then remotely, then as a downloaded file.

        Raises PageReferenceError only when ``page_id`` is blank.
        """
        reference = page_id.strip() if page_id else ""
        if not reference:
            raise PageReferenceError("Cannot save a page without a page id")

        page = self._resolve(reference)
        if page is None:
            page = self._foreign_page(reference, document.title or None)

        deduped = dedupe(document, self.singleton_types).document
        document = apply_title(deduped, deduped.title or page.name)
        self._open[page.id] = OpenPage(document=document, authored=True)

        cached = await self.cache.put_document(page.id, document)
        await self.cache.write_backup(document)

        pending = self._pending_creates.pop(page.id, None)
        if pending is not None:
            # The initial empty save must not land after this one
            await asyncio.gather(pending, return_exceptions=True)
        response = await self.remote.save_page(page.storage_key, document)
        remote_saved = response is not None
        downloaded = False
        path: str | None = None
        message = ""
        if response is not None:
            path = response.path or None
            message = f"Saved {response.filename or page.storage_key} ({response.components} components)"
        else:
            try:
                download = download_document(
                    document, page.storage_key, self.settings.download_dir, self.settings.pages_dir
                )
            except ValueError as exc:
                logger.error("Cannot offer %s as a download: %s", page.id, exc)
                download = None
            if download is not None:
                downloaded = True
                path = str(download.path)
                message = download.guidance
            elif cached:
                message = "Saved locally only"

        self.registry.put(page.model_copy(update={"last_modified": now_utc()}))
        await self._registry_changed()

        result = SaveResult(
            cached=cached,
            remote_saved=remote_saved,
            downloaded=downloaded,
            filename=page.storage_key,
            path=path,
            message=message,
        )
        logger.info("Saved page %s: %s", page.id, result.status)
        self.bus.publish(SaveCompleted(page_id=page.id, result=result))
        return result

    # Shared event context

    async def refresh_event_context(self, context: TemplateContext) -> list[str]:
        """Apply new banner/event data to every open page; returns the ids that changed."""
        self.event_context = context
        changed: list[str] = []
        for page_id, entry in list(self._open.items()):
            document, was_changed = template_service.apply_event_context(entry.document, context)
            if not was_changed:
                continue
            self._open[page_id] = OpenPage(document=document, authored=entry.authored)
            self.bus.publish(
                DocumentPublished(
                    page_id=page_id,
                    document=document,
                    title=document.title,
                    generation=self.current_generation(page_id),
                    initial=False,
                    source="event_context",
                )
            )
            if entry.authored:
                await self.cache.put_document(page_id, document)
            changed.append(page_id)
        return changed

    async def set_event_context(self, context: TemplateContext) -> None:
        """Store new event data and notify the watcher, if one is running."""
        await self.cache.put_event_context(context)
        if self._watcher is not None:
            self._watcher.notify_changed()
        else:
            await self.refresh_event_context(context)

    async def watch_event_context(self, *, poll: bool = True) -> BannerWatcher:
        """Start watching the stored event context for changes made elsewhere."""
        if self._watcher is None:
            self._watcher = BannerWatcher(
                self.cache.get_event_context,
                self.refresh_event_context,
                interval=self.settings.banner_poll_interval_seconds,
                poll=poll,
            )
        await self._watcher.start()
        return self._watcher

    async def stop_watching_event_context(self) -> None:
        if self._watcher is not None:
            await self._watcher.stop()
            self._watcher = None

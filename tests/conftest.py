"""Shared test fixtures for event pages."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient

from eventpages.config import Settings
from eventpages.database import create_engine
from eventpages.main import create_app
from eventpages.schemas.page import ComponentNode, PageDocument, RootData
from eventpages.services.cache_service import LocalCache, ensure_tables
from eventpages.services.page_controller import PagePersistenceController

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from fastapi import FastAPI

REMOTE_BASE_URL = "http://pages.test/api"


def node(node_type: str, node_id: str | None = None, **props: Any) -> ComponentNode:
    """Component node; ``node_id`` goes into ``props.id`` like the editor does."""
    if node_id is not None:
        props = {"id": node_id, **props}
    return ComponentNode(type=node_type, props=props)


def make_document(
    *nodes: ComponentNode,
    title: str | None = None,
    zones: dict[str, list[ComponentNode]] | None = None,
) -> PageDocument:
    props: dict[str, Any] = {}
    if title is not None:
        props = {"title": title, "pageTitle": title}
    return PageDocument(content=list(nodes), root=RootData(props=props), zones=zones or {})


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "cache_database_url": f"sqlite+aiosqlite:///{tmp_path / 'db' / 'cache.db'}",
        "download_dir": tmp_path / "downloads",
        "pages_dir": tmp_path / "pages",
        "remote_base_url": None,
    }
    values.update(overrides)
    return Settings(**values)


@asynccontextmanager
async def create_test_client(settings: Settings) -> AsyncGenerator[AsyncClient]:
    """HTTP test client for the page server.

    ASGITransport does not run the lifespan, so the pages directory is
    created here.
    """
    app = create_app(settings)
    app.state.page_store.ensure_dir()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


def page_server_transport(settings: Settings) -> tuple[FastAPI, ASGITransport]:
    """In-process page server reachable at ``REMOTE_BASE_URL``."""
    app = create_app(settings)
    app.state.page_store.ensure_dir()
    return app, ASGITransport(app=app)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Offline settings isolated in tmp_path."""
    return make_settings(tmp_path)


@pytest.fixture
async def cache(settings: Settings) -> AsyncGenerator[LocalCache]:
    engine, session_factory = create_engine(settings)
    await ensure_tables(engine)
    yield LocalCache(session_factory)
    await engine.dispose()


@pytest.fixture
async def controller(settings: Settings) -> AsyncGenerator[PagePersistenceController]:
    """Offline controller with its own cache database."""
    ctrl = await PagePersistenceController.from_settings(settings)
    yield ctrl
    await ctrl.aclose()

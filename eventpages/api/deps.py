"""Shared API dependencies: settings and page file store."""

from __future__ import annotations

from fastapi import Request

from eventpages.config import Settings
from eventpages.filesystem.page_files import PageFileStore


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_page_store(request: Request) -> PageFileStore:
    """Get page file store from app state."""
    store: PageFileStore = request.app.state.page_store
    return store

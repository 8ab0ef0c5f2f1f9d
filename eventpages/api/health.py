"""Health check endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from eventpages.api.deps import get_page_store
from eventpages.filesystem.page_files import PageFileStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    storage: str


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    store: Annotated[PageFileStore, Depends(get_page_store)],
) -> HealthResponse:
    """Health check endpoint for monitoring and the editor's connectivity probe."""
    storage_status = "ok" if store.pages_dir.is_dir() else "missing"
    if storage_status != "ok":
        logger.warning("Health check: pages directory %s is missing", store.pages_dir)

    return HealthResponse(
        status="ok" if storage_status == "ok" else "degraded",
        version="0.1.0",
        storage=storage_status,
    )

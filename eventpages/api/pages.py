"""Page store API endpoints consumed by the remote store adapter."""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from eventpages.api.deps import get_page_store
from eventpages.exceptions import InternalServerError
from eventpages.filesystem.page_files import PageFileStore, default_filename
from eventpages.schemas.page import PageDocument, SavePageRequest, SavePageResponse
from eventpages.services.slug_service import ensure_page_suffix

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["pages"])


@router.get("/pages")
async def list_pages(
    store: Annotated[PageFileStore, Depends(get_page_store)],
) -> dict[str, Any]:
    """List stored pages, most recently modified first."""
    return {"success": True, "pages": [page.to_dict() for page in store.list_pages()]}


@router.get("/pages/{filename}", response_model=None)
async def get_page(
    filename: str,
    store: Annotated[PageFileStore, Depends(get_page_store)],
) -> dict[str, Any] | JSONResponse:
    """Load one stored page document."""
    try:
        data = store.read_page(filename)
    except json.JSONDecodeError as exc:
        raise InternalServerError(f"Stored page {filename} is not valid JSON") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid page filename") from exc
    if data is None:
        return JSONResponse(status_code=404, content={"success": False, "error": "Page not found"})
    try:
        PageDocument.model_validate(data)
    except ValidationError:
        logger.warning("Stored page %s does not look like a page document", filename)
    return {"success": True, "data": data}


@router.post("/save-page", response_model=SavePageResponse)
async def save_page(
    body: SavePageRequest,
    store: Annotated[PageFileStore, Depends(get_page_store)],
) -> SavePageResponse:
    """Write a page document, naming it ``page-data-<date>.json`` when no filename is given."""
    filename = ensure_page_suffix(body.filename.strip()) if body.filename else default_filename()
    try:
        path = store.write_page(filename, body.data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid page filename") from exc
    return SavePageResponse(
        success=True,
        filename=filename,
        components=len(body.data.content),
        path=str(path),
        message="Page data saved successfully",
    )

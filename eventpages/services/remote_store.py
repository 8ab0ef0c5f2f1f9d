"""HTTP adapter for the remote page store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from eventpages.exceptions import MalformedResponseError, RemoteStoreError, RemoteUnavailableError
from eventpages.schemas.page import (
    PageDataResponse,
    PageDocument,
    PageListResponse,
    RemotePageSummary,
    SavePageRequest,
    SavePageResponse,
)

if TYPE_CHECKING:
    from eventpages.config import Settings

logger = logging.getLogger(__name__)


class RemoteStore:
    """Thin client over ``GET /pages``, ``GET /pages/{filename}`` and ``POST /save-page``.

    The store is never assumed to be reachable: every public method returns
    None when it is disabled, unreachable, slow past its timeout, or answers
    with something unexpected. Calls are made exactly once; retrying is the
    caller's decision.
    """

    def __init__(
        self,
        base_url: str | None,
        *,
        timeout: float = 1.0,
        save_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.strip().rstrip("/") if base_url else None
        self.timeout = timeout
        self.save_timeout = save_timeout
        self._client: httpx.AsyncClient | None = None
        if self.base_url:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=timeout,
                transport=transport,
                headers={"Accept": "application/json"},
            )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> RemoteStore:
        return cls(
            settings.remote_base_url if settings.remote_enabled else None,
            timeout=settings.remote_timeout_seconds,
            save_timeout=settings.save_timeout_seconds,
            transport=transport,
        )

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()

    async def __aenter__(self) -> RemoteStore:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def _request(
        self, method: str, path: str, *, json: Any = None, timeout: float | None = None
    ) -> Any:
        """Issue one request and return the decoded JSON body.

        Raises RemoteUnavailableError or MalformedResponseError.
        """
        if self._client is None:
            raise RemoteUnavailableError("Remote page store is not configured")
        try:
            resp = await self._client.request(
                method, path, json=json, timeout=timeout if timeout is not None else self.timeout
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise RemoteUnavailableError(f"{method} {path} failed: {exc}") from exc
        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedResponseError(f"{method} {path} returned invalid JSON") from exc

    async def list_pages(self) -> list[RemotePageSummary] | None:
        """Remote page list, or None when unavailable."""
        if not self.enabled:
            return None
        try:
            body = await self._request("GET", "/pages")
            result = PageListResponse.model_validate(body)
        except ValidationError as exc:
            logger.warning("Malformed page list from remote store: %s", exc)
            return None
        except RemoteStoreError as exc:
            logger.warning("Remote page list unavailable: %s", exc)
            return None
        if not result.success:
            logger.warning("Remote store reported failure listing pages")
            return None
        return result.pages

    async def get_page(self, filename: str) -> PageDocument | None:
        """Remote document for a filename, or None when unavailable."""
        if not self.enabled:
            return None
        path = f"/pages/{quote(filename, safe='')}"
        try:
            body = await self._request("GET", path)
            result = PageDataResponse.model_validate(body)
        except ValidationError as exc:
            logger.warning("Malformed page %s from remote store: %s", filename, exc)
            return None
        except RemoteStoreError as exc:
            logger.info("Remote page %s unavailable: %s", filename, exc)
            return None
        if not result.success or result.data is None:
            logger.info("Remote store has no page %s", filename)
            return None
        return result.data

    async def save_page(self, filename: str, document: PageDocument) -> SavePageResponse | None:
        """Save a document remotely; None when the save did not happen."""
        if not self.enabled:
            return None
        payload = SavePageRequest(data=document, filename=filename).model_dump(mode="json")
        try:
            body = await self._request("POST", "/save-page", json=payload, timeout=self.save_timeout)
            result = SavePageResponse.model_validate(body)
        except ValidationError as exc:
            logger.warning("Malformed save response for %s: %s", filename, exc)
            return None
        except RemoteStoreError as exc:
            logger.warning("Remote save of %s failed: %s", filename, exc)
            return None
        if not result.success:
            logger.warning("Remote store rejected %s: %s", filename, result.message or "no reason")
            return None
        return result

"""Page document and page registry schemas."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eventpages.services.datetime_service import parse_datetime


class ComponentNode(BaseModel):
    """One component placed on a page."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(min_length=1)
    props: dict[str, Any] = Field(default_factory=dict)
    id: str | None = None

    @property
    def node_id(self) -> str | None:
        """Identity of the node: ``props.id``, falling back to the node-level id."""
        explicit = self.props.get("id")
        if isinstance(explicit, str) and explicit:
            return explicit
        return self.id or None


class RootData(BaseModel):
    """Page-level metadata."""

    model_config = ConfigDict(extra="allow")

    props: dict[str, Any] = Field(default_factory=dict)


class PageDocument(BaseModel):
    """Editable content tree of one page."""

    model_config = ConfigDict(extra="allow")

    content: list[ComponentNode] = Field(default_factory=list)
    root: RootData = Field(default_factory=RootData)
    zones: dict[str, list[ComponentNode]] = Field(default_factory=dict)

    @field_validator("root", mode="before")
    @classmethod
    def _root_may_be_null(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("zones", mode="before")
    @classmethod
    def _zones_may_be_null(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def title(self) -> str:
        """Display title: ``pageTitle``, falling back to ``title``; empty if neither is set."""
        for key in ("pageTitle", "title"):
            value = self.root.props.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return ""

    @property
    def page_type(self) -> str | None:
        value = self.root.props.get("pageType")
        return value if isinstance(value, str) and value else None

    def iter_nodes(self) -> Iterator[ComponentNode]:
        """Yield content nodes, then zone nodes in zone-name order."""
        yield from self.content
        for zone_name in sorted(self.zones):
            yield from self.zones[zone_name]

    def node_types(self) -> set[str]:
        return {node.type for node in self.iter_nodes()}


class Page(BaseModel):
    """Registry entry identifying one editable document."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    storage_key: str
    last_modified: datetime

    @field_validator("last_modified", mode="before")
    @classmethod
    def _parse_last_modified(cls, value: Any) -> Any:
        if isinstance(value, (str, datetime)):
            return parse_datetime(value)
        return value


class RemotePageSummary(BaseModel):
    """Entry of the remote store's page list."""

    model_config = ConfigDict(extra="allow")

    filename: str = Field(min_length=1)
    modified: datetime | None = None

    @field_validator("modified", mode="before")
    @classmethod
    def _parse_modified(cls, value: Any) -> Any:
        if isinstance(value, (str, datetime)):
            return parse_datetime(value)
        return value


class PageListResponse(BaseModel):
    """``GET /pages`` response body."""

    success: bool
    pages: list[RemotePageSummary] = Field(default_factory=list)


class PageDataResponse(BaseModel):
    """``GET /pages/{filename}`` response body."""

    success: bool
    data: PageDocument | None = None


class SavePageRequest(BaseModel):
    """``POST /save-page`` request body."""

    data: PageDocument
    filename: str | None = None


class SavePageResponse(BaseModel):
    """``POST /save-page`` response body."""

    success: bool
    filename: str = ""
    components: int = 0
    path: str = ""
    message: str = ""


class SaveStatus(StrEnum):
    """User-facing outcome of a save."""

    SAVED_TO_SERVER = "saved_to_server"
    SAVED_LOCALLY = "saved_locally"
    DOWNLOADED = "downloaded"
    NOT_SAVED = "not_saved"


class SaveResult(BaseModel):
    """Outcome of ``save_page``; returned instead of raising."""

    cached: bool
    remote_saved: bool
    downloaded: bool
    filename: str
    path: str | None = None
    message: str = ""

    @property
    def status(self) -> SaveStatus:
        if self.remote_saved:
            return SaveStatus.SAVED_TO_SERVER
        if self.downloaded:
            return SaveStatus.DOWNLOADED
        if self.cached:
            return SaveStatus.SAVED_LOCALLY
        return SaveStatus.NOT_SAVED

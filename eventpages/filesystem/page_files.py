"""Page document files stored as JSON under the pages directory."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from eventpages.services.datetime_service import format_iso, now_utc
from eventpages.services.download_service import serialize_document
from eventpages.services.slug_service import LEGACY_FILENAME_PREFIX, PAGE_FILE_SUFFIX

if TYPE_CHECKING:
    from pathlib import Path

    from eventpages.schemas.page import PageDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredPage:
    """Metadata of one stored page file."""

    filename: str
    path: Path
    size: int
    modified: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "path": str(self.path),
            "size": self.size,
            "modified": format_iso(self.modified),
        }


def default_filename(now: datetime | None = None) -> str:
    """Filename used when a save request names none: ``page-data-YYYY-MM-DD.json``."""
    if now is None:
        now = now_utc()
    return f"{LEGACY_FILENAME_PREFIX}{now.date().isoformat()}{PAGE_FILE_SUFFIX}"


@dataclass
class PageFileStore:
    """Reads and writes page documents in ``pages_dir``."""

    pages_dir: Path

    def ensure_dir(self) -> None:
        if not self.pages_dir.exists():
            self.pages_dir.mkdir(parents=True)
            logger.info("Created pages directory at %s", self.pages_dir)

    def _validate_filename(self, filename: str) -> Path:
        """Resolve a filename inside pages_dir.

        Raises ValueError for non-JSON names or paths escaping pages_dir.
        """
        if not filename or "/" in filename or "\\" in filename:
            msg = f"Invalid page filename: {filename!r}"
            raise ValueError(msg)
        if not filename.endswith(PAGE_FILE_SUFFIX) or filename == PAGE_FILE_SUFFIX:
            msg = f"Page filename must end with {PAGE_FILE_SUFFIX}: {filename!r}"
            raise ValueError(msg)
        full_path = (self.pages_dir / filename).resolve()
        if not full_path.is_relative_to(self.pages_dir.resolve()):
            msg = f"Path traversal detected: {filename}"
            raise ValueError(msg)
        return full_path

    def list_pages(self) -> list[StoredPage]:
        """Stored pages, most recently modified first."""
        if not self.pages_dir.exists():
            return []
        pages = []
        for path in self.pages_dir.glob(f"*{PAGE_FILE_SUFFIX}"):
            if not path.is_file():
                continue
            stat = path.stat()
            pages.append(
                StoredPage(
                    filename=path.name,
                    path=path,
                    size=stat.st_size,
                    modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                )
            )
        return sorted(pages, key=lambda page: page.modified, reverse=True)

    def read_page(self, filename: str) -> Any | None:
        """Decoded JSON of a stored page, or None if it does not exist."""
        full_path = self._validate_filename(filename)
        if not full_path.is_file():
            return None
        return json.loads(full_path.read_text(encoding="utf-8"))

    def write_page(self, filename: str, document: PageDocument) -> Path:
        full_path = self._validate_filename(filename)
        self.ensure_dir()
        full_path.write_text(serialize_document(document), encoding="utf-8")
        logger.info("Saved page %s (%d components)", filename, len(document.content))
        return full_path

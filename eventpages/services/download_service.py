"""Offline fallback: offer a page document as a downloadable file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from eventpages.schemas.page import PageDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadedFile:
    """A page document written to the download directory."""

    filename: str
    path: Path
    guidance: str


def serialize_document(document: PageDocument) -> str:
    """Pretty-printed JSON exactly as the page server stores it."""
    return document.model_dump_json(indent=2) + "\n"


def download_document(
    document: PageDocument, filename: str, download_dir: Path, pages_dir: Path
) -> DownloadedFile | None:
    """Write the document to ``download_dir/filename``.

    Returns None only if the filesystem refuses the write.
    """
    if "/" in filename or "\\" in filename or filename in {"", ".", ".."}:
        msg = f"Invalid download filename: {filename!r}"
        raise ValueError(msg)
    path = download_dir / filename
    try:
        download_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(serialize_document(document), encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to write download fallback %s: %s", path, exc)
        return None
    guidance = (
        f"Remote page store unavailable - file downloaded instead. "
        f"Move {filename} to {pages_dir / filename} or start the page server."
    )
    logger.info("Downloaded %s to %s", filename, path)
    return DownloadedFile(filename=filename, path=path, guidance=guidance)

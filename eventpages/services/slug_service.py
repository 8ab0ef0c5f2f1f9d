"""Page names, filenames and ids."""

from __future__ import annotations

import re
import unicodedata
from datetime import datetime

from eventpages.services.datetime_service import timestamp_millis

MAX_SLUG_LENGTH = 80
PAGE_FILE_SUFFIX = ".json"
LEGACY_FILENAME_PREFIX = "page-data-"

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
_NATURAL_CHUNK = re.compile(r"(\d+)")


def generate_page_slug(name: str) -> str:
    """Generate a filesystem-safe slug from a page name.

    - Normalize unicode to ASCII (NFKD)
    - Lowercase, strip
    - Replace runs of non-alphanumeric chars with one hyphen
    - Strip leading/trailing hyphens
    - Truncate to 80 chars (don't cut mid-word if possible)
    - Return "untitled" for empty/whitespace-only input
    """
    text = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    text = text.lower().strip()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    text = text.strip("-")

    if not text:
        return "untitled"

    if len(text) > MAX_SLUG_LENGTH:
        truncated = text[:MAX_SLUG_LENGTH]
        last_hyphen = truncated.rfind("-")
        if last_hyphen > 0:
            truncated = truncated[:last_hyphen]
        text = truncated.rstrip("-")

    return text


def page_filename(name: str) -> str:
    """Remote/download filename for a page name: ``Page 2`` -> ``page-2.json``."""
    return f"{generate_page_slug(name)}{PAGE_FILE_SUFFIX}"


def local_page_id(name: str, when: datetime | None = None) -> str:
    """Id for a page created locally, before the remote store has confirmed it."""
    return f"page-{generate_page_slug(name)}-{timestamp_millis(when)}"


def is_server_id(page_id: str) -> bool:
    """Server-issued ids are UUID-shaped; locally generated ones are not."""
    return bool(_UUID_PATTERN.match(page_id))


def strip_page_suffix(reference: str) -> str:
    return reference.removesuffix(PAGE_FILE_SUFFIX)


def ensure_page_suffix(reference: str) -> str:
    return reference if reference.endswith(PAGE_FILE_SUFFIX) else f"{reference}{PAGE_FILE_SUFFIX}"


def name_from_filename(filename: str) -> str:
    """Best-effort display name for a remote file nobody has titled.

    ``page-data-2024-05-01.json`` -> ``2024 05 01``; ``welcome.json`` -> ``welcome``.
    """
    stem = strip_page_suffix(filename)
    if stem.startswith(LEGACY_FILENAME_PREFIX):
        stem = stem.removeprefix(LEGACY_FILENAME_PREFIX).replace("-", " ")
    return stem.strip() or "Untitled"


def natural_sort_key(name: str) -> tuple[tuple[int, int | str], ...]:
    """Sort key ordering ``Page 2`` before ``Page 10``, ignoring case."""
    parts: list[tuple[int, int | str]] = []
    for chunk in _NATURAL_CHUNK.split(unicodedata.normalize("NFKC", name).casefold()):
        if not chunk:
            continue
        if chunk.isdecimal():
            parts.append((0, int(chunk)))
        else:
            parts.append((1, chunk))
    return tuple(parts)

"""Reconciliation of cached, in-memory and remote page documents."""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection
from dataclasses import dataclass
from enum import StrEnum

from eventpages.schemas.page import PageDocument
from eventpages.services import template_service
from eventpages.services.dedupe_service import DEFAULT_SINGLETON_TYPES, dedupe
from eventpages.services.structure_service import StructureRules, has_expected_structure

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"


class DocumentSource(StrEnum):
    """Where the structural base of a resolved document came from."""

    REMOTE = "remote"
    LOCAL = "local"
    IN_MEMORY = "in_memory"
    TEMPLATE = "template"


@dataclass
class ReconcileResult:
    """Resolved document and title."""

    document: PageDocument
    title: str
    base: DocumentSource
    removed_count: int = 0
    structure_mismatch: bool = False


def resolve_title(
    local: PageDocument | None,
    in_memory: PageDocument | None,
    remote: PageDocument | None,
    fallback_name: str,
) -> str:
    """First non-empty of: cached title, in-memory title, remote title, fallback name.

    A stale remote copy therefore never overrides a title the user has
    already changed locally.
    """
    for candidate in (local, in_memory, remote):
        if candidate is not None and candidate.title:
            return candidate.title
    return fallback_name.strip() or UNTITLED


def apply_title(
    document: PageDocument, title: str, superseded_title: str | None = None
) -> PageDocument:
    """Write the resolved title into ``root.props``.

    ``pageTitle`` always receives it; ``title`` only when it was empty or
    still carries ``superseded_title``.
    """
    props = dict(document.root.props)
    props["pageTitle"] = title
    current = props.get("title")
    current_text = current.strip() if isinstance(current, str) else ""
    if not current_text or (superseded_title and current_text == superseded_title):
        props["title"] = title
    root = document.root.model_copy(update={"props": props})
    return document.model_copy(update={"root": root})


def _default_template(title: str) -> PageDocument:
    return template_service.generate(title)


def reconcile(
    local: PageDocument | None,
    remote: PageDocument | None,
    in_memory: PageDocument | None,
    fallback_name: str,
    *,
    rules: StructureRules,
    singleton_types: Collection[str] = DEFAULT_SINGLETON_TYPES,
    template: Callable[[str], PageDocument] = _default_template,
) -> ReconcileResult:
    """Merge the three sources of a page into one document and title.

    The remote document is the structural base when present and accepted by
    ``has_expected_structure``; a rejected remote document is replaced by a
    template. Without a remote document the base is the cached document, then
    the in-memory one, then a template. The base is deduplicated and the
    resolved title is merged into it last.
    """
    title = resolve_title(local, in_memory, remote, fallback_name)
    remote_title = remote.title if remote is not None else ""
    structure_mismatch = False

    if remote is not None:
        if has_expected_structure(remote, rules):
            base_document, base = remote, DocumentSource.REMOTE
        else:
            logger.warning(
                "Remote document for %r has an unexpected structure; using a template", title
            )
            base_document, base = template(title), DocumentSource.TEMPLATE
            structure_mismatch = True
    elif local is not None:
        base_document, base = local, DocumentSource.LOCAL
    elif in_memory is not None:
        base_document, base = in_memory, DocumentSource.IN_MEMORY
    else:
        base_document, base = template(title), DocumentSource.TEMPLATE

    deduped = dedupe(base_document, singleton_types)
    superseded = remote_title if remote_title and remote_title != title else None
    document = apply_title(deduped.document, title, superseded)

    return ReconcileResult(
        document=document,
        title=title,
        base=base,
        removed_count=deduped.removed_count,
        structure_mismatch=structure_mismatch,
    )

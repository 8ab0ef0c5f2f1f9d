"""Detection of page documents not authored by this template system."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from eventpages.config import Settings
    from eventpages.schemas.page import PageDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StructureRules:
    """Allow/deny node-type lists supplied by configuration.

    ``expected_types`` is the full canonical set a template-authored page
    contains; ``legacy_types`` are node types that only occur in legacy or
    foreign formats.
    """

    expected_types: frozenset[str]
    legacy_types: frozenset[str]

    @classmethod
    def from_lists(cls, expected: Iterable[str], legacy: Iterable[str]) -> StructureRules:
        return cls(expected_types=frozenset(expected), legacy_types=frozenset(legacy))

    @classmethod
    def from_settings(cls, settings: Settings) -> StructureRules:
        return cls.from_lists(settings.expected_node_types, settings.legacy_node_types)


def has_expected_structure(document: PageDocument, rules: StructureRules) -> bool:
    """Decide whether a document may be used as a reconciliation base.

    - node types include every expected type: accept;
    - any legacy type is present: reject;
    - otherwise accept, so custom pages are never discarded.
    """
    node_types = document.node_types()
    if rules.expected_types <= node_types:
        return True
    legacy_found = node_types & rules.legacy_types
    if legacy_found:
        logger.debug("Document contains legacy node types: %s", ", ".join(sorted(legacy_found)))
        return False
    return True

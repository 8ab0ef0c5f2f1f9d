"""Duplicate component removal for page documents."""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection

    from eventpages.schemas.page import ComponentNode, PageDocument

logger = logging.getLogger(__name__)

DEFAULT_SINGLETON_TYPES: frozenset[str] = frozenset({"PricingPlans"})


@dataclass
class DedupeResult:
    """Deduplicated document and what was removed to get there."""

    document: PageDocument
    removed_count: int = 0
    singleton_dropped: dict[str, int] = field(default_factory=dict)


def structural_key(node: ComponentNode) -> tuple[str, str]:
    """Identity of a node without an id: its type plus canonical JSON of its props."""
    return node.type, json.dumps(node.props, sort_keys=True, default=str, separators=(",", ":"))


class _Pass:
    """State shared across the content list and every zone of one document."""

    def __init__(self, singleton_types: Collection[str]) -> None:
        self.singleton_types = singleton_types
        self.seen_ids: set[str] = set()
        self.singletons_kept: Counter[str] = Counter()
        self.singleton_dropped: Counter[str] = Counter()
        self.removed = 0

    def filter(self, nodes: list[ComponentNode]) -> list[ComponentNode]:
        seen_keys: set[tuple[str, str]] = set()
        kept: list[ComponentNode] = []
        for node in nodes:
            node_id = node.node_id
            if node_id is not None:
                if node_id in self.seen_ids:
                    self.removed += 1
                    continue
            else:
                key = structural_key(node)
                if key in seen_keys:
                    self.removed += 1
                    continue

            if node.type in self.singleton_types and self.singletons_kept[node.type] >= 1:
                self.singleton_dropped[node.type] += 1
                self.removed += 1
                continue

            if node_id is not None:
                self.seen_ids.add(node_id)
            else:
                seen_keys.add(structural_key(node))
            if node.type in self.singleton_types:
                self.singletons_kept[node.type] += 1
            kept.append(node)
        return kept


def dedupe(
    document: PageDocument,
    singleton_types: Collection[str] = DEFAULT_SINGLETON_TYPES,
) -> DedupeResult:
    """Remove duplicate components, preserving the order of survivors.

    Rules, applied in document order (content first, then zones by name):
    - a node with an id is dropped if an earlier node had the same id;
    - a node without an id is dropped if an earlier node in the same list
      had the same type and props;
    - only the first node of each singleton type survives.

    The operation is idempotent. The input document is not modified.
    """
    state = _Pass(singleton_types)
    content = state.filter(document.content)
    zones = {name: state.filter(document.zones[name]) for name in sorted(document.zones)}

    if state.removed == 0:
        return DedupeResult(document=document)

    for node_type, count in state.singleton_dropped.items():
        logger.warning("Dropped %d extra %s block(s); only one is allowed per page", count, node_type)
    logger.warning("Removed %d duplicate component(s)", state.removed)

    deduped = document.model_copy(update={"content": content, "zones": zones})
    return DedupeResult(
        document=deduped,
        removed_count=state.removed,
        singleton_dropped=dict(state.singleton_dropped),
    )

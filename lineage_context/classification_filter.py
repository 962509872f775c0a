# -*- coding: utf-8 -*-
"""
Classification filter.

Decides whether an entity carries at least one lineage-relevant
classification, using the configured allow-list (or an explicit one).
Lookups are set membership on an immutable ``frozenset``; the filter holds
no mutable state and can be shared between concurrent builds.
"""

from __future__ import annotations

from typing import FrozenSet, Iterable, List, Optional

from lineage_context.config import get_config
from lineage_context.models import Classification, EntityDetail


class ClassificationFilter:
    """Allow-list based filter over an entity's classifications.

    Args:
        allow_list: Classification type names to accept. Defaults to the
            ``lineage_classifications`` of the active configuration,
            resolved on every call so ``set_config`` takes effect.
    """

    def __init__(self, allow_list: Optional[Iterable[str]] = None) -> None:
        self._allow_list: Optional[FrozenSet[str]] = (
            frozenset(allow_list) if allow_list is not None else None
        )

    @property
    def allow_list(self) -> FrozenSet[str]:
        if self._allow_list is not None:
            return self._allow_list
        return get_config().lineage_classifications

    def is_allowed(self, classification: Classification) -> bool:
        return classification.name in self.allow_list

    def has_lineage_classification(self, entity: EntityDetail) -> bool:
        """Return True when any classification of ``entity`` is allow-listed.

        An entity with no classifications never qualifies.
        """
        if not entity.classifications:
            return False
        allowed = self.allow_list
        return any(c.name in allowed for c in entity.classifications)

    def qualifying_classifications(self, entity: EntityDetail) -> List[Classification]:
        """Return the allow-listed classifications of ``entity`` in input order."""
        allowed = self.allow_list
        return [c for c in entity.classifications if c.name in allowed]


def has_lineage_classification(entity: EntityDetail) -> bool:
    """Check ``entity`` against the configured allow-list."""
    return ClassificationFilter().has_lineage_classification(entity)


__all__ = ["ClassificationFilter", "has_lineage_classification"]

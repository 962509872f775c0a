# -*- coding: utf-8 -*-
"""
Lineage Context Service Setup

Provides the ``LineageContextService`` facade over the graph assembler and
``get_lineage_context_service()`` for programmatic singleton access.

The facade adds service-level bookkeeping around each build: aggregate
statistics, a service-wide provenance chain of completed builds and a
health check. Builds themselves stay independent; each one still owns its
own converter, context graph and per-graph provenance chain.

Usage:
    >>> from lineage_context.setup import get_lineage_context_service
    >>> from lineage_context.models import Classification, EntityDetail
    >>> service = get_lineage_context_service()
    >>> result = service.build_classification_context(
    ...     "user-1",
    ...     EntityDetail(
    ...         guid="guid-1",
    ...         type_def_name="RelationalTable",
    ...         classifications=[Classification(name="Confidentiality")],
    ...     ),
    ... )
    >>> result.status.value
    'built'

Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence, Set

from pydantic import BaseModel, Field

from lineage_context.config import LineageContextConfig, get_config
from lineage_context.exceptions import InvalidInputError
from lineage_context.graph_assembler import GraphAssembler
from lineage_context.models import (
    ContextBuildResult,
    EntityDetail,
    GraphContext,
    Relationship,
)
from lineage_context.provenance import ProvenanceTracker

logger = logging.getLogger(__name__)


# ===================================================================
# Response models
# ===================================================================


class LineageContextStatisticsResponse(BaseModel):
    """Aggregate statistics for the lineage context service.

    Attributes:
        total_builds: Builds that returned a result.
        classification_builds: Classification context builds.
        relationship_builds: Relationship context builds.
        contexts_built: Builds that produced a lineage context.
        no_context_results: Builds that produced no lineage context.
        invalid_inputs: Builds rejected for invalid input.
        total_vertices: Vertices across all built graphs.
        total_edges: Edges across all built graphs.
        total_warnings: Conversion warnings across all builds.
        no_context_by_reason: No-context results by reason.
    """

    model_config = {"extra": "forbid"}

    total_builds: int = Field(default=0)
    classification_builds: int = Field(default=0)
    relationship_builds: int = Field(default=0)
    contexts_built: int = Field(default=0)
    no_context_results: int = Field(default=0)
    invalid_inputs: int = Field(default=0)
    total_vertices: int = Field(default=0)
    total_edges: int = Field(default=0)
    total_warnings: int = Field(default=0)
    no_context_by_reason: Dict[str, int] = Field(default_factory=dict)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


# ===================================================================
# LineageContextService facade
# ===================================================================

_singleton_lock = threading.Lock()
_singleton_instance: Optional["LineageContextService"] = None


class LineageContextService:
    """Facade over :class:`GraphAssembler` with service bookkeeping.

    Attributes:
        config: LineageContextConfig instance.
        assembler: GraphAssembler used for every build.
        provenance: Service-wide ProvenanceTracker recording completed
            builds, bounded by ``max_provenance_entries``.
    """

    def __init__(
        self,
        config: Optional[LineageContextConfig] = None,
        assembler: Optional[GraphAssembler] = None,
    ) -> None:
        """Initialize the facade.

        Args:
            config: Optional configuration. Uses the global config if None.
            assembler: Optional assembler. If None, one bound to the
                facade configuration is created.
        """
        self.config = config or get_config()
        self.assembler = assembler or GraphAssembler(config=self.config)
        self.provenance = ProvenanceTracker(
            self.config.genesis_hash,
            max_entries=self.config.max_provenance_entries,
        )

        self._stats = LineageContextStatisticsResponse()
        self._stats_lock = threading.Lock()
        self._started = False

        logger.info("LineageContextService facade created")

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _record(self, kind: str, user_id: str, result: ContextBuildResult) -> None:
        with self._stats_lock:
            self._stats.total_builds += 1
            if kind == "classification":
                self._stats.classification_builds += 1
            else:
                self._stats.relationship_builds += 1
            if result.has_context:
                self._stats.contexts_built += 1
                self._stats.total_vertices += result.vertex_count
                self._stats.total_edges += result.edge_count
            else:
                self._stats.no_context_results += 1
                reason = result.no_context_reason.value if result.no_context_reason else "unknown"
                self._stats.no_context_by_reason[reason] = (
                    self._stats.no_context_by_reason.get(reason, 0) + 1
                )
            self._stats.total_warnings += len(result.warnings)

        self.provenance.record(
            f"{kind}_context",
            result.entity_guid,
            result.status.value,
            result.graph_hash or self.provenance.compute_hash(result.to_dict()),
            user_id=user_id,
        )

    def _count_invalid(self) -> None:
        with self._stats_lock:
            self._stats.invalid_inputs += 1

    # ------------------------------------------------------------------
    # Builds
    # ------------------------------------------------------------------

    def build_classification_context(
        self,
        user_id: str,
        entity: EntityDetail,
    ) -> ContextBuildResult:
        """Build the classification context of ``entity``.

        Raises:
            InvalidInputError: If ``user_id`` or the entity guid is empty.
        """
        try:
            result = self.assembler.build_classification_context(user_id, entity)
        except InvalidInputError:
            self._count_invalid()
            raise
        self._record("classification", user_id, result)
        return result

    def get_asset_context_by_classification(
        self,
        user_id: str,
        entity: EntityDetail,
    ) -> Optional[Dict[str, Set[GraphContext]]]:
        """Plain-mapping form of :meth:`build_classification_context`.

        Returns ``None`` when the entity has no lineage context.
        """
        return self.build_classification_context(user_id, entity).neighbors

    def build_relationship_context(
        self,
        user_id: str,
        entity: EntityDetail,
        relationships: Sequence[Relationship],
        lineage_only: bool = False,
    ) -> ContextBuildResult:
        """Build the relationship context of ``entity``.

        Raises:
            InvalidInputError: If ``user_id`` or the entity guid is empty.
        """
        try:
            result = self.assembler.build_relationship_context(
                user_id, entity, relationships, lineage_only=lineage_only
            )
        except InvalidInputError:
            self._count_invalid()
            raise
        self._record("relationship", user_id, result)
        return result

    # ------------------------------------------------------------------
    # Health, statistics, config
    # ------------------------------------------------------------------

    def get_health(self) -> Dict[str, Any]:
        """Perform a health check on the lineage context service.

        Returns:
            Dictionary with ``status`` (healthy or unhealthy), ``started``,
            ``statistics``, ``provenance_chain_valid``,
            ``provenance_entries`` and ``timestamp``.
        """
        t0 = time.perf_counter()
        chain_valid, _ = self.provenance.verify_chain()
        stats = self.get_statistics()

        result = {
            "status": "healthy" if chain_valid else "unhealthy",
            "started": self._started,
            "statistics": {
                "total_builds": stats.total_builds,
                "contexts_built": stats.contexts_built,
                "no_context_results": stats.no_context_results,
                "invalid_inputs": stats.invalid_inputs,
            },
            "provenance_chain_valid": chain_valid,
            "provenance_entries": self.provenance.entry_count,
            "timestamp": _utcnow_iso(),
        }

        logger.info(
            "Health check: status=%s builds=%d chain_valid=%s duration_ms=%.2f",
            result["status"],
            stats.total_builds,
            chain_valid,
            (time.perf_counter() - t0) * 1000.0,
        )
        return result

    def get_statistics(self) -> LineageContextStatisticsResponse:
        """Return a snapshot of the aggregate statistics."""
        with self._stats_lock:
            return self._stats.model_copy(deep=True)

    def get_config(self) -> Dict[str, Any]:
        """Return the active configuration as a dictionary."""
        return self.config.to_dict()

    def get_provenance(self) -> ProvenanceTracker:
        return self.provenance

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def startup(self) -> None:
        """Start the service. Safe to call multiple times."""
        if self._started:
            logger.debug("LineageContextService already started; skipping")
            return
        self._started = True
        logger.info("LineageContextService startup complete")

    def shutdown(self) -> None:
        if not self._started:
            return
        self._started = False
        logger.info("LineageContextService shut down")


# ===================================================================
# Singleton access
# ===================================================================


def get_lineage_context_service() -> LineageContextService:
    """Get the singleton LineageContextService instance.

    The service is created and started on first call.
    """
    global _singleton_instance
    if _singleton_instance is None:
        with _singleton_lock:
            if _singleton_instance is None:
                service = LineageContextService()
                service.startup()
                _singleton_instance = service
    return _singleton_instance


def reset_lineage_context_service() -> None:
    """Drop the singleton; the next access creates a fresh service."""
    global _singleton_instance
    with _singleton_lock:
        if _singleton_instance is not None:
            _singleton_instance.shutdown()
        _singleton_instance = None


__all__ = [
    "LineageContextStatisticsResponse",
    "LineageContextService",
    "get_lineage_context_service",
    "reset_lineage_context_service",
]

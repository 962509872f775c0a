# -*- coding: utf-8 -*-
"""
Prometheus Metrics - Lineage Context Graph Builder

Metrics:
    1. lcg_builds_total (Counter, labels: kind, result)
    2. lcg_vertices_created_total (Counter, labels: vertex_kind)
    3. lcg_edges_created_total (Counter, labels: relationship_type)
    4. lcg_conversion_warnings_total (Counter, labels: item_type, action)
    5. lcg_invalid_inputs_total (Counter, labels: kind)
    6. lcg_build_duration_seconds (Histogram, labels: kind)
    7. lcg_graph_size (Histogram, labels: dimension)

Helper functions are no-ops when ``enable_metrics`` is switched off. Each
helper takes an optional ``enabled`` flag; callers holding their own
:class:`~lineage_context.config.LineageContextConfig` pass its
``enable_metrics`` value, otherwise the global configuration decides.

Status: Production Ready
"""

from __future__ import annotations

import logging
from typing import Optional

from prometheus_client import Counter, Histogram

from lineage_context.config import get_config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Builds by kind (classification, relationship) and result
lcg_builds_total = Counter(
    "lcg_builds_total",
    "Total lineage context builds",
    labelnames=["kind", "result"],
)

# 2. Vertices created by kind (entity, classification, endpoint)
lcg_vertices_created_total = Counter(
    "lcg_vertices_created_total",
    "Total context graph vertices created",
    labelnames=["vertex_kind"],
)

# 3. Edges created by relationship type
lcg_edges_created_total = Counter(
    "lcg_edges_created_total",
    "Total context graph edges created",
    labelnames=["relationship_type"],
)

# 4. Conversion warnings by item type and action
lcg_conversion_warnings_total = Counter(
    "lcg_conversion_warnings_total",
    "Total non-fatal conversion warnings",
    labelnames=["item_type", "action"],
)

# 5. Builds rejected for invalid input
lcg_invalid_inputs_total = Counter(
    "lcg_invalid_inputs_total",
    "Total builds rejected because of invalid input",
    labelnames=["kind"],
)

# 6. Build duration by kind
lcg_build_duration_seconds = Histogram(
    "lcg_build_duration_seconds",
    "Lineage context build duration in seconds",
    labelnames=["kind"],
    buckets=(
        0.0005, 0.001, 0.0025, 0.005, 0.01,
        0.025, 0.05, 0.1, 0.5, 1.0,
    ),
)

# 7. Vertices and edges per built graph
lcg_graph_size = Histogram(
    "lcg_graph_size",
    "Number of vertices or edges in a built context graph",
    labelnames=["dimension"],
    buckets=(1, 2, 5, 10, 25, 50, 100, 250, 1000),
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def _enabled(enabled: Optional[bool] = None) -> bool:
    if enabled is not None:
        return enabled
    return get_config().enable_metrics


def record_build(kind: str, result: str, enabled: Optional[bool] = None) -> None:
    """Record a completed build.

    Args:
        kind: Build kind (classification, relationship).
        result: Build result (built, no_context).
    """
    if not _enabled(enabled):
        return
    lcg_builds_total.labels(kind=kind, result=result).inc()


def record_vertex_created(vertex_kind: str, enabled: Optional[bool] = None) -> None:
    """Record a vertex inserted into a context graph.

    Args:
        vertex_kind: Kind of vertex (entity, classification, endpoint).
    """
    if not _enabled(enabled):
        return
    lcg_vertices_created_total.labels(vertex_kind=vertex_kind).inc()


def record_edge_created(relationship_type: str, enabled: Optional[bool] = None) -> None:
    """Record an edge inserted into a context graph.

    Args:
        relationship_type: Relationship type name of the edge.
    """
    if not _enabled(enabled):
        return
    lcg_edges_created_total.labels(relationship_type=relationship_type).inc()


def record_conversion_warning(
    item_type: str, action: str, enabled: Optional[bool] = None
) -> None:
    """Record a non-fatal conversion warning.

    Args:
        item_type: Kind of item (property, classification, relationship).
        action: What happened to the item (coerced, skipped).
    """
    if not _enabled(enabled):
        return
    lcg_conversion_warnings_total.labels(item_type=item_type, action=action).inc()


def record_invalid_input(kind: str, enabled: Optional[bool] = None) -> None:
    """Record a build rejected for invalid input."""
    if not _enabled(enabled):
        return
    lcg_invalid_inputs_total.labels(kind=kind).inc()


def observe_build_duration(
    kind: str, duration: float, enabled: Optional[bool] = None
) -> None:
    """Record the duration of one build in seconds."""
    if not _enabled(enabled):
        return
    lcg_build_duration_seconds.labels(kind=kind).observe(duration)


def observe_graph_size(
    vertex_count: int, edge_count: int, enabled: Optional[bool] = None
) -> None:
    """Record the size of a built context graph."""
    if not _enabled(enabled):
        return
    lcg_graph_size.labels(dimension="vertices").observe(vertex_count)
    lcg_graph_size.labels(dimension="edges").observe(edge_count)


__all__ = [
    # Metric objects
    "lcg_builds_total",
    "lcg_vertices_created_total",
    "lcg_edges_created_total",
    "lcg_conversion_warnings_total",
    "lcg_invalid_inputs_total",
    "lcg_build_duration_seconds",
    "lcg_graph_size",
    # Helper functions
    "record_build",
    "record_vertex_created",
    "record_edge_created",
    "record_conversion_warning",
    "record_invalid_input",
    "observe_build_duration",
    "observe_graph_size",
]

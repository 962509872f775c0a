# -*- coding: utf-8 -*-
"""
ContextGraph - directed multigraph of one lineage context build

Holds the vertices (:class:`LineageEntity`) and directed edges
(:class:`GraphContext`) produced for one entity. A graph is created empty
at the start of a build, populated synchronously and handed back to the
caller through :meth:`ContextGraph.neighbors`.

Graph data structures:
    - _vertices      : Dict[str, LineageEntity]  - guid to vertex
    - _edges         : Dict[str, GraphContext]   - relationship guid to edge
    - _type_index    : Dict[str, Set[str]]       - relationship type to edge guids
    - _adjacency_out : Dict[str, Set[str]]       - source guid to edge guids
    - _adjacency_in  : Dict[str, Set[str]]       - target guid to edge guids

Vertices and edges live in arenas keyed by identifier and edges hold
immutable vertex values, so cyclic relationship chains between entities
need no special handling.

Insertion semantics:
    - add_vertex is a no-op for a guid already present; the first vertex
      is retained.
    - add_edge is a no-op for a relationship guid already present.
    - In strict mode add_edge raises MissingVertexError when an endpoint
      vertex has not been added.

Example:
    >>> from lineage_context.context_graph import ContextGraph
    >>> from lineage_context.models import GraphContext, LineageEntity
    >>> graph = ContextGraph()
    >>> table = LineageEntity(guid="t1", type_def_name="RelationalTable")
    >>> conf = LineageEntity(guid="c1", type_def_name="Confidentiality")
    >>> graph.add_vertex(table)
    True
    >>> graph.add_vertex(conf)
    True
    >>> graph.add_edge(GraphContext(
    ...     relationship_guid="e1", relationship_type="Confidentiality",
    ...     from_vertex=table, to_vertex=conf, label="classified-entity"))
    True
    >>> list(graph.neighbors())
    ['Confidentiality']

Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Set

from lineage_context.config import LineageContextConfig, get_config
from lineage_context.exceptions import MissingVertexError
from lineage_context.models import GraphContext, LineageEntity
from lineage_context.provenance import ProvenanceTracker, compute_hash

logger = logging.getLogger(__name__)


class ContextGraph:
    """Deduplicated directed multigraph grouped by relationship type.

    Attributes:
        strict: Whether edges require both endpoint vertices up front.
        _provenance: Per-graph ProvenanceTracker, or ``None`` when
            provenance is disabled.
    """

    def __init__(
        self,
        strict: Optional[bool] = None,
        provenance: Optional[ProvenanceTracker] = None,
        config: Optional[LineageContextConfig] = None,
    ) -> None:
        """Initialize an empty ContextGraph.

        Args:
            strict: Override for the configured ``strict_edges`` setting.
            provenance: Optional ProvenanceTracker. If ``None`` and
                provenance is enabled in config, a fresh tracker is created
                for this graph.
            config: Configuration to read; defaults to the global one.
        """
        cfg = config or get_config()
        self._config = config
        self.strict = cfg.strict_edges if strict is None else strict
        if provenance is None and cfg.enable_provenance:
            provenance = ProvenanceTracker(cfg.genesis_hash)
        self._provenance = provenance

        self._vertices: Dict[str, LineageEntity] = {}
        self._edges: Dict[str, GraphContext] = {}
        self._type_index: Dict[str, Set[str]] = defaultdict(set)
        self._adjacency_out: Dict[str, Set[str]] = defaultdict(set)
        self._adjacency_in: Dict[str, Set[str]] = defaultdict(set)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_vertex(self, vertex: LineageEntity) -> bool:
        """Insert a vertex by guid unless one with that guid exists.

        Args:
            vertex: Vertex to insert.

        Returns:
            ``True`` if the vertex was inserted, ``False`` if a vertex with
            the same guid was already present (it is left untouched).
        """
        with self._lock:
            if vertex.guid in self._vertices:
                return False
            self._vertices[vertex.guid] = vertex

        logger.debug("Adding vertex %s (%s)", vertex.guid, vertex.type_def_name)
        if self._provenance is not None:
            self._provenance.record(
                "vertex",
                vertex.guid,
                "vertex_added",
                compute_hash(vertex.to_dict()),
            )
        return True

    def add_edge(self, edge: GraphContext) -> bool:
        """Insert an edge by relationship guid unless it already exists.

        Args:
            edge: Edge to insert.

        Returns:
            ``True`` if the edge was inserted, ``False`` if an edge with the
            same relationship guid was already present.

        Raises:
            MissingVertexError: In strict mode, when either endpoint vertex
                has not been added to the graph.
        """
        with self._lock:
            if edge.relationship_guid in self._edges:
                return False
            if self.strict:
                missing = [
                    guid for guid in (edge.from_guid, edge.to_guid)
                    if guid not in self._vertices
                ]
                if missing:
                    raise MissingVertexError(
                        f"Edge '{edge.relationship_guid}' references vertices "
                        f"not in the graph: {missing}",
                        relationship_guid=edge.relationship_guid,
                        missing_guids=missing,
                    )
            self._edges[edge.relationship_guid] = edge
            self._type_index[edge.relationship_type].add(edge.relationship_guid)
            self._adjacency_out[edge.from_guid].add(edge.relationship_guid)
            self._adjacency_in[edge.to_guid].add(edge.relationship_guid)

        logger.debug(
            "Edge added: %s -> %s (id=%s, type=%s)",
            edge.from_guid,
            edge.to_guid,
            edge.relationship_guid,
            edge.relationship_type,
        )
        if self._provenance is not None:
            self._provenance.record(
                "edge",
                edge.relationship_guid,
                "edge_added",
                compute_hash(edge.to_dict()),
            )
        return True

    # ------------------------------------------------------------------
    # Adjacency view
    # ------------------------------------------------------------------

    def neighbors(self) -> Dict[str, Set[GraphContext]]:
        """Group every edge added so far by relationship type.

        Returns:
            Fresh mapping of relationship type name to a fresh set of
            edges. Mutating it does not affect the graph.
        """
        with self._lock:
            return {
                rel_type: {self._edges[eid] for eid in edge_ids}
                for rel_type, edge_ids in self._type_index.items()
                if edge_ids
            }

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_vertex(self, guid: str) -> Optional[LineageEntity]:
        with self._lock:
            return self._vertices.get(guid)

    def get_edge(self, relationship_guid: str) -> Optional[GraphContext]:
        with self._lock:
            return self._edges.get(relationship_guid)

    def has_vertex(self, guid: str) -> bool:
        with self._lock:
            return guid in self._vertices

    def has_edge(self, relationship_guid: str) -> bool:
        with self._lock:
            return relationship_guid in self._edges

    def vertices(self) -> List[LineageEntity]:
        """Return all vertices in insertion order."""
        with self._lock:
            return list(self._vertices.values())

    def edges(self) -> List[GraphContext]:
        """Return all edges in insertion order."""
        with self._lock:
            return list(self._edges.values())

    def outgoing(self, guid: str) -> List[GraphContext]:
        """Return edges whose source (end 1) is ``guid``."""
        with self._lock:
            ids = self._adjacency_out.get(guid, set())
            return sorted(
                (self._edges[eid] for eid in ids),
                key=lambda e: e.relationship_guid,
            )

    def incoming(self, guid: str) -> List[GraphContext]:
        """Return edges whose target (end 2) is ``guid``."""
        with self._lock:
            ids = self._adjacency_in.get(guid, set())
            return sorted(
                (self._edges[eid] for eid in ids),
                key=lambda e: e.relationship_guid,
            )

    @property
    def vertex_count(self) -> int:
        with self._lock:
            return len(self._vertices)

    @property
    def edge_count(self) -> int:
        with self._lock:
            return len(self._edges)

    @property
    def provenance(self) -> Optional[ProvenanceTracker]:
        return self._provenance

    # ------------------------------------------------------------------
    # Union
    # ------------------------------------------------------------------

    def union(self, other: ContextGraph) -> ContextGraph:
        """Merge this graph and ``other`` into a new graph.

        Neither input is modified. Vertices and edges are taken from this
        graph first, so on an identifier clash the value held here wins.

        Args:
            other: Graph to merge with.

        Returns:
            A new ContextGraph holding the union of both graphs.
        """
        merged = ContextGraph(strict=self.strict and other.strict, config=self._config)
        for vertex in self.vertices() + other.vertices():
            merged.add_vertex(vertex)
        for edge in self.edges() + other.edges():
            merged.add_edge(edge)
        logger.info(
            "Merged context graphs: %d vertices, %d edges",
            merged.vertex_count,
            merged.edge_count,
        )
        return merged

    @classmethod
    def union_all(cls, graphs: Iterable[ContextGraph]) -> ContextGraph:
        """Union any number of graphs into a new graph."""
        merged = cls()
        for graph in graphs:
            merged = merged.union(graph)
        return merged

    # ------------------------------------------------------------------
    # Export / statistics
    # ------------------------------------------------------------------

    def graph_hash(self) -> str:
        """Deterministic SHA-256 of the graph content.

        Independent of insertion order, so two builds producing the same
        vertices and edges hash identically.
        """
        with self._lock:
            vertices = sorted(
                (v.to_dict() for v in self._vertices.values()),
                key=lambda d: d["guid"],
            )
            edges = sorted(
                (e.to_dict() for e in self._edges.values()),
                key=lambda d: d["relationship_guid"],
            )
        return compute_hash({"vertices": vertices, "edges": edges})

    def export_graph(self) -> Dict[str, Any]:
        """Export the graph as a JSON-serialisable dictionary.

        Returns:
            Dictionary with ``"vertices"``, ``"edges"`` and ``"metadata"``
            (counts, relationship types and ``graph_hash``).
        """
        with self._lock:
            vertices = [v.to_dict() for v in self._vertices.values()]
            edges = [e.to_dict() for e in self._edges.values()]
            types = sorted(t for t, ids in self._type_index.items() if ids)
        return {
            "vertices": vertices,
            "edges": edges,
            "metadata": {
                "vertex_count": len(vertices),
                "edge_count": len(edges),
                "relationship_types": types,
                "graph_hash": self.graph_hash(),
            },
        }

    def get_statistics(self) -> Dict[str, Any]:
        """Return vertex/edge counts and simple connectivity figures."""
        with self._lock:
            edges_by_type = {
                t: len(ids) for t, ids in sorted(self._type_index.items()) if ids
            }
            roots = [
                guid for guid in self._vertices
                if not self._adjacency_in.get(guid) and self._adjacency_out.get(guid)
            ]
            leaves = [
                guid for guid in self._vertices
                if self._adjacency_in.get(guid) and not self._adjacency_out.get(guid)
            ]
            orphans = [
                guid for guid in self._vertices
                if not self._adjacency_in.get(guid) and not self._adjacency_out.get(guid)
            ]
            vertex_count = len(self._vertices)
            edge_count = len(self._edges)

        return {
            "total_vertices": vertex_count,
            "total_edges": edge_count,
            "edges_by_type": edges_by_type,
            "root_count": len(roots),
            "leaf_count": len(leaves),
            "orphan_count": len(orphans),
        }

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return self.vertex_count

    def __contains__(self, guid: object) -> bool:
        return isinstance(guid, str) and self.has_vertex(guid)

    def __repr__(self) -> str:
        return (
            f"ContextGraph(vertices={self.vertex_count}, "
            f"edges={self.edge_count}, strict={self.strict})"
        )


__all__ = ["ContextGraph"]

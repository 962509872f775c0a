# -*- coding: utf-8 -*-
"""
Lineage Context Graph Builder
=============================

Builds the lineage context of a single metadata entity: a small directed
graph connecting the entity to its lineage-relevant classifications (or
to the entities at the other end of its relationships), returned as a
mapping of relationship type name to the set of edges of that type.
It supports:

- Allow-list filtering of lineage-relevant classifications
- Canonical vertex and edge conversion with per-property coercion
  warnings instead of failures
- Deterministic (UUID5) or random (UUID4) identifiers for synthetic
  classification vertices and edges
- Per-classification outcomes so one bad record never fails a build
- Relationship handler table deciding edge labels and direction
- SHA-256 provenance chain per context graph
- Prometheus metrics with the lcg_ prefix
- Thread-safe configuration with the LCG_ env prefix

Key Components:
    - config: LineageContextConfig with LCG_ env prefix
    - models: Repository records, canonical vertices/edges, build results
    - classification_filter: Allow-list classification filter
    - record_converter: Canonical vertex and edge conversion
    - relationship_handlers: Relationship type -> handler table
    - context_graph: Deduplicated per-build directed graph
    - graph_assembler: Classification and relationship context builds
    - provenance: SHA-256 chain-hashed audit trails
    - metrics: Prometheus metrics with lcg_ prefix
    - setup: LineageContextService facade

Example:
    >>> from lineage_context import GraphAssembler, EntityDetail, Classification
    >>> entity = EntityDetail(
    ...     guid="guid-1",
    ...     type_def_name="RelationalTable",
    ...     classifications=[Classification(name="Confidentiality")],
    ... )
    >>> result = GraphAssembler().build_classification_context("user-1", entity)
    >>> sorted(result.neighbors)
    ['Confidentiality']
"""

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from lineage_context.config import (
    DEFAULT_LINEAGE_CLASSIFICATIONS,
    LineageContextConfig,
    get_config,
    reset_config,
    set_config,
)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------
from lineage_context.exceptions import (
    ConfigurationError,
    ConversionError,
    InvalidInputError,
    LineageContextError,
    MissingVertexError,
)

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
from lineage_context.models import (
    CLASSIFIED_ENTITY_LABEL,
    Classification,
    ClassificationOutcome,
    ContextBuildResult,
    ContextStatus,
    ConversionWarning,
    EntityDetail,
    GraphContext,
    InstanceStatus,
    LineageEntity,
    NoContextReason,
    Relationship,
    WarningAction,
)

# ---------------------------------------------------------------------------
# Provenance
# ---------------------------------------------------------------------------
from lineage_context.provenance import ProvenanceTracker, compute_hash

# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------
from lineage_context.classification_filter import (
    ClassificationFilter,
    has_lineage_classification,
)
from lineage_context.context_graph import ContextGraph
from lineage_context.graph_assembler import GraphAssembler
from lineage_context.record_converter import RecordConverter
from lineage_context.relationship_handlers import (
    RELATIONSHIP_HANDLERS,
    RelationshipHandler,
    handler_for,
)

# ---------------------------------------------------------------------------
# Service facade
# ---------------------------------------------------------------------------
from lineage_context.setup import (
    LineageContextService,
    get_lineage_context_service,
    reset_lineage_context_service,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "DEFAULT_LINEAGE_CLASSIFICATIONS",
    "LineageContextConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Exceptions
    "LineageContextError",
    "InvalidInputError",
    "ConversionError",
    "MissingVertexError",
    "ConfigurationError",
    # Models
    "CLASSIFIED_ENTITY_LABEL",
    "InstanceStatus",
    "WarningAction",
    "ContextStatus",
    "NoContextReason",
    "Classification",
    "EntityDetail",
    "Relationship",
    "LineageEntity",
    "GraphContext",
    "ConversionWarning",
    "ClassificationOutcome",
    "ContextBuildResult",
    # Provenance
    "ProvenanceTracker",
    "compute_hash",
    # Engines
    "ClassificationFilter",
    "has_lineage_classification",
    "RecordConverter",
    "RelationshipHandler",
    "RELATIONSHIP_HANDLERS",
    "handler_for",
    "ContextGraph",
    "GraphAssembler",
    # Service facade
    "LineageContextService",
    "get_lineage_context_service",
    "reset_lineage_context_service",
]

# -*- coding: utf-8 -*-
"""
Lineage Context Data Models

Pydantic v2 data models for the lineage context graph builder.

Repository records (supplied already fetched by the repository access
layer):
    - InstanceStatus, Classification, EntityDetail, Relationship

Canonical graph shapes:
    - LineageEntity (vertex), GraphContext (edge)

Build reporting:
    - WarningAction, ConversionWarning, ClassificationOutcome,
      ContextStatus, NoContextReason, ContextBuildResult

Vertices and edges are frozen. Equality and hashing are by identifier
(``guid`` for vertices, ``relationship_guid`` for edges) so they can be
held in sets and deduplicated by the context graph.

Status: Production Ready
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Semantic label carried by every entity -> classification edge.
CLASSIFIED_ENTITY_LABEL: str = "classified-entity"


# =============================================================================
# Enumerations
# =============================================================================


class InstanceStatus(str, Enum):
    """Lifecycle status of a repository instance.

    Only ACTIVE entities (and relationships) take part in lineage context
    graphs; classifications on proposed, deprecated or deleted entities
    are not surfaced.
    """

    UNKNOWN = "UNKNOWN"
    PROPOSED = "PROPOSED"
    DRAFT = "DRAFT"
    PREPARED = "PREPARED"
    ACTIVE = "ACTIVE"
    DEPRECATED = "DEPRECATED"
    DELETED = "DELETED"


class WarningAction(str, Enum):
    """What the builder did with an item it could not convert verbatim."""

    COERCED = "coerced"
    SKIPPED = "skipped"


class ContextStatus(str, Enum):
    """Outcome of a context build."""

    BUILT = "built"
    NO_CONTEXT = "no_context"


class NoContextReason(str, Enum):
    """Why a build produced no lineage context."""

    NO_QUALIFYING_CLASSIFICATION = "no_qualifying_classification"
    INACTIVE_ENTITY = "inactive_entity"
    NO_RELATIONSHIPS = "no_relationships"


# =============================================================================
# Repository records
# =============================================================================


class _RepositoryRecord(BaseModel):
    """Scalar and audit fields shared by every repository record."""

    model_config = ConfigDict(extra="ignore")

    type_def_name: str = Field(default="", description="Type definition name")
    version: int = Field(default=0, description="Instance version")
    created_by: Optional[str] = Field(default=None, description="Creating user")
    updated_by: Optional[str] = Field(default=None, description="Last updating user")
    create_time: Optional[datetime] = Field(default=None, description="Creation time")
    update_time: Optional[datetime] = Field(default=None, description="Last update time")
    status: InstanceStatus = Field(
        default=InstanceStatus.ACTIVE, description="Instance lifecycle status"
    )
    properties: Dict[str, Any] = Field(
        default_factory=dict, description="Property name to value"
    )


class Classification(_RepositoryRecord):
    """A typed annotation attached to an entity.

    Classifications have no stable identifier of their own. When
    ``type_def_name`` is not supplied it defaults to ``name``.
    """

    name: str = Field(..., description="Classification type name")

    @model_validator(mode="after")
    def _default_type_def_name(self) -> "Classification":
        if not self.type_def_name:
            self.type_def_name = self.name
        return self


class EntityDetail(_RepositoryRecord):
    """A metadata entity with its classifications."""

    guid: Optional[str] = Field(default=None, description="Entity identifier")
    classifications: List[Classification] = Field(
        default_factory=list, description="Classifications attached to the entity"
    )


class Relationship(_RepositoryRecord):
    """A typed, identified link between two entities."""

    guid: Optional[str] = Field(default=None, description="Relationship identifier")
    end1_guid: Optional[str] = Field(default=None, description="End 1 entity guid")
    end1_type_name: str = Field(default="", description="End 1 entity type name")
    end2_guid: Optional[str] = Field(default=None, description="End 2 entity guid")
    end2_type_name: str = Field(default="", description="End 2 entity type name")

    def touches(self, guid: Optional[str]) -> bool:
        """Return True when either end of the relationship is ``guid``."""
        return bool(guid) and guid in (self.end1_guid, self.end2_guid)


# =============================================================================
# Canonical graph shapes
# =============================================================================


class LineageEntity(BaseModel):
    """Canonical vertex of a lineage context graph.

    Attributes:
        guid: Identifier, unique within one graph build.
        type_def_name: Type name of the entity or classification.
        version: Instance version.
        created_by: Creating user.
        updated_by: Last updating user.
        create_time: Creation time.
        update_time: Last update time.
        properties: Property name to canonical (primitive or string) value.
        status: Lifecycle status.
    """

    model_config = ConfigDict(frozen=True)

    guid: str
    type_def_name: str
    version: int = 0
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None
    properties: Dict[str, Any] = Field(default_factory=dict)
    status: InstanceStatus = InstanceStatus.ACTIVE

    def __eq__(self, other: object) -> bool:
        if isinstance(other, LineageEntity):
            return self.guid == other.guid
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.guid)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "guid": self.guid,
            "type_def_name": self.type_def_name,
            "version": self.version,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "create_time": self.create_time.isoformat() if self.create_time else None,
            "update_time": self.update_time.isoformat() if self.update_time else None,
            "properties": dict(self.properties),
            "status": self.status.value,
        }


class GraphContext(BaseModel):
    """Canonical directed edge of a lineage context graph.

    ``from_vertex`` (end 1) is the relationship source and ``to_vertex``
    (end 2) the target.
    """

    model_config = ConfigDict(frozen=True)

    relationship_guid: str
    relationship_type: str
    from_vertex: LineageEntity
    to_vertex: LineageEntity
    label: str
    properties: Dict[str, Any] = Field(default_factory=dict)

    @property
    def from_guid(self) -> str:
        return self.from_vertex.guid

    @property
    def to_guid(self) -> str:
        return self.to_vertex.guid

    def __eq__(self, other: object) -> bool:
        if isinstance(other, GraphContext):
            return self.relationship_guid == other.relationship_guid
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.relationship_guid)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relationship_guid": self.relationship_guid,
            "relationship_type": self.relationship_type,
            "from_guid": self.from_guid,
            "to_guid": self.to_guid,
            "label": self.label,
            "properties": dict(self.properties),
        }


# =============================================================================
# Build reporting
# =============================================================================


class ConversionWarning(BaseModel):
    """A non-fatal conversion problem observed during a build.

    Attributes:
        item_type: Kind of item (property, classification, relationship).
        item_name: Property name, classification type or relationship guid.
        owner_guid: Guid of the record that owned the item, if known.
        action: Whether the item was coerced or skipped.
        reason: Human-readable description of the problem.
    """

    model_config = ConfigDict(frozen=True)

    item_type: str
    item_name: str
    owner_guid: Optional[str] = None
    action: WarningAction
    reason: str


class ClassificationOutcome(BaseModel):
    """Per-classification result: a vertex, or the reason it was skipped."""

    model_config = ConfigDict(frozen=True)

    classification_name: str
    vertex: Optional[LineageEntity] = None
    skip_reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.vertex is not None


@dataclass
class ContextBuildResult:
    """Result of one lineage context build.

    ``neighbors`` is ``None`` exactly when ``status`` is
    ``ContextStatus.NO_CONTEXT``; a built context with no edges has an
    empty mapping.

    Attributes:
        entity_guid: Guid of the source entity.
        status: Built or no context.
        neighbors: Relationship type to set of edges.
        no_context_reason: Why no context was produced.
        warnings: Conversion warnings raised during the build.
        outcomes: Per-classification outcomes, in input order.
        vertex_count: Number of vertices in the built graph.
        edge_count: Number of edges in the built graph.
        graph_hash: Deterministic SHA-256 hash of the graph content.
        provenance_hash: Head of the graph's provenance chain.
    """

    entity_guid: str
    status: ContextStatus
    neighbors: Optional[Dict[str, Set[GraphContext]]] = None
    no_context_reason: Optional[NoContextReason] = None
    warnings: List[ConversionWarning] = field(default_factory=list)
    outcomes: List[ClassificationOutcome] = field(default_factory=list)
    vertex_count: int = 0
    edge_count: int = 0
    graph_hash: str = ""
    provenance_hash: str = ""

    @property
    def has_context(self) -> bool:
        return self.status is ContextStatus.BUILT

    @classmethod
    def no_context(
        cls,
        entity_guid: str,
        reason: NoContextReason,
    ) -> "ContextBuildResult":
        return cls(
            entity_guid=entity_guid,
            status=ContextStatus.NO_CONTEXT,
            no_context_reason=reason,
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready form; edge sets become lists sorted by guid."""
        neighbors = None
        if self.neighbors is not None:
            neighbors = {
                rel_type: [
                    e.to_dict()
                    for e in sorted(edges, key=lambda e: e.relationship_guid)
                ]
                for rel_type, edges in sorted(self.neighbors.items())
            }
        return {
            "entity_guid": self.entity_guid,
            "status": self.status.value,
            "no_context_reason": (
                self.no_context_reason.value if self.no_context_reason else None
            ),
            "neighbors": neighbors,
            "warnings": [w.model_dump(mode="json") for w in self.warnings],
            "vertex_count": self.vertex_count,
            "edge_count": self.edge_count,
            "graph_hash": self.graph_hash,
            "provenance_hash": self.provenance_hash,
        }


__all__ = [
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
]

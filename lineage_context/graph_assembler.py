# -*- coding: utf-8 -*-
"""
GraphAssembler - lineage context builds for one entity

Turns an already-fetched entity (and optionally its relationship records)
into the neighbourhood view of a lineage context graph: relationship type
name to the set of edges of that type.

Classification context build:
    1. Validate the caller id and entity guid (InvalidInputError).
    2. No allow-listed classification -> no context.
    3. Entity not ACTIVE -> no context.
    4. Each allow-listed classification becomes a vertex with an
       allocated guid; one classification failing conversion is skipped
       with a ConversionWarning and the loop continues.
    5. The entity becomes the source vertex.
    6. One ``classified-entity`` edge per classification vertex, typed by
       the classification type name.
    7. Return the adjacency view with warnings, per-classification
       outcomes, the graph hash and the provenance chain head.

Relationship context build:
    Each ACTIVE relationship touching the entity becomes one edge running
    from end 1 to end 2, labelled by the relationship handler table.

Identifier allocation:
    With ``deterministic_ids`` enabled (default) classification vertex and
    edge guids are UUID5 values derived from the entity guid and the
    classification type name, so repeated builds of the same entity agree
    and duplicate classification types collapse into one vertex. When
    disabled every build allocates fresh UUID4 values.

Every build uses its own RecordConverter and ContextGraph; no mutable
state is shared between builds, so one assembler can serve concurrent
callers.

Example:
    >>> from lineage_context.graph_assembler import GraphAssembler
    >>> from lineage_context.models import Classification, EntityDetail
    >>> entity = EntityDetail(
    ...     guid="guid-1",
    ...     type_def_name="RelationalTable",
    ...     classifications=[Classification(name="Confidentiality")],
    ... )
    >>> neighbors = GraphAssembler().get_asset_context_by_classification("u1", entity)
    >>> list(neighbors)
    ['Confidentiality']

Status: Production Ready
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from lineage_context.classification_filter import ClassificationFilter
from lineage_context.config import LineageContextConfig, get_config
from lineage_context.context_graph import ContextGraph
from lineage_context.exceptions import ConversionError, InvalidInputError
from lineage_context.metrics import (
    observe_build_duration,
    observe_graph_size,
    record_build,
    record_edge_created,
    record_invalid_input,
    record_vertex_created,
)
from lineage_context.models import (
    CLASSIFIED_ENTITY_LABEL,
    ClassificationOutcome,
    ContextBuildResult,
    ContextStatus,
    EntityDetail,
    GraphContext,
    InstanceStatus,
    LineageEntity,
    NoContextReason,
    Relationship,
    WarningAction,
)
from lineage_context.record_converter import RecordConverter
from lineage_context.relationship_handlers import RELATIONSHIP_HANDLERS, handler_for

logger = logging.getLogger(__name__)

_KIND_CLASSIFICATION = "classification"
_KIND_RELATIONSHIP = "relationship"

# Edge metric label for relationship types outside the handler table
_OTHER_EDGE_TYPE = "other"


def _elapsed_ms(start: float) -> float:
    """Elapsed milliseconds since a ``time.monotonic()`` start."""
    return (time.monotonic() - start) * 1000.0


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _failure_reason(exc: Exception) -> str:
    if isinstance(exc, ConversionError):
        return exc.message
    return f"{type(exc).__name__}: {exc}"


class GraphAssembler:
    """Builds lineage context graphs for single entities.

    Attributes:
        classification_filter: Allow-list filter applied to classifications.
    """

    def __init__(
        self,
        classification_filter: Optional[ClassificationFilter] = None,
        converter_factory: Optional[Callable[[], RecordConverter]] = None,
        graph_factory: Optional[Callable[[], ContextGraph]] = None,
        config: Optional[LineageContextConfig] = None,
    ) -> None:
        """Initialize GraphAssembler.

        Args:
            classification_filter: Filter to use; defaults to one backed
                by the allow-list of ``config``.
            converter_factory: Creates the per-build RecordConverter.
            graph_factory: Creates the per-build ContextGraph.
            config: Configuration for this assembler. When ``None`` every
                build reads the global configuration.
        """
        self._config = config
        if classification_filter is None:
            classification_filter = ClassificationFilter(
                config.lineage_classifications if config is not None else None
            )
        self.classification_filter = classification_filter
        self._converter_factory = converter_factory or (lambda: RecordConverter(config))
        self._graph_factory = graph_factory or (lambda: ContextGraph(config=config))
        self._metrics_enabled = config.enable_metrics if config is not None else None

    @property
    def config(self) -> LineageContextConfig:
        return self._config or get_config()

    # ------------------------------------------------------------------
    # Validation and identifiers
    # ------------------------------------------------------------------

    def _validate(
        self,
        user_id: Optional[str],
        entity: Optional[EntityDetail],
        method_name: str,
        kind: str,
    ) -> str:
        """Check the caller id and entity guid; return the entity guid."""
        invalid: Dict[str, str] = {}
        if _is_blank(user_id):
            invalid["user_id"] = "must be a non-empty string"
        if entity is None:
            invalid["entity"] = "must not be None"
        elif _is_blank(entity.guid):
            invalid["guid"] = "must be a non-empty string"

        if invalid:
            record_invalid_input(kind, self._metrics_enabled)
            raise InvalidInputError(
                f"Invalid input for {method_name}: "
                + ", ".join(f"{k} {v}" for k, v in invalid.items()),
                invalid_fields=invalid,
                method_name=method_name,
            )
        return str(entity.guid)

    @staticmethod
    def allocate_ids(
        entity_guid: str,
        classification_name: str,
        config: Optional[LineageContextConfig] = None,
    ) -> Tuple[str, str]:
        """Allocate ``(vertex_guid, edge_guid)`` for one classification."""
        cfg = config or get_config()
        if not cfg.deterministic_ids:
            return str(uuid.uuid4()), str(uuid.uuid4())
        seed = f"{entity_guid}:{classification_name}"
        namespace = cfg.namespace_uuid
        return (
            str(uuid.uuid5(namespace, seed)),
            str(uuid.uuid5(namespace, f"{seed}:{CLASSIFIED_ENTITY_LABEL}")),
        )

    def _source_vertex(
        self,
        converter: RecordConverter,
        entity: EntityDetail,
        entity_guid: str,
    ) -> LineageEntity:
        """Convert the source entity, falling back to a stub vertex."""
        try:
            return converter.to_vertex(entity)
        except Exception as exc:
            if not isinstance(exc, ConversionError):
                logger.error(
                    "Unexpected failure converting entity %s", entity_guid, exc_info=True
                )
            converter.warn(
                "entity",
                entity_guid,
                WarningAction.COERCED,
                f"replaced by a stub vertex: {_failure_reason(exc)}",
                entity_guid,
            )
            return converter.endpoint_vertex(entity_guid, entity.type_def_name)

    # ------------------------------------------------------------------
    # Result helpers
    # ------------------------------------------------------------------

    def _no_context(
        self,
        kind: str,
        entity_guid: str,
        reason: NoContextReason,
        start: float,
    ) -> ContextBuildResult:
        result = ContextBuildResult.no_context(entity_guid, reason)
        record_build(kind, result.status.value, self._metrics_enabled)
        observe_build_duration(kind, _elapsed_ms(start) / 1000.0, self._metrics_enabled)
        return result

    def _finish(
        self,
        kind: str,
        user_id: str,
        entity_guid: str,
        graph: ContextGraph,
        converter: RecordConverter,
        outcomes: List[ClassificationOutcome],
        start: float,
    ) -> ContextBuildResult:
        graph_hash = graph.graph_hash()
        provenance_hash = ""
        if graph.provenance is not None:
            provenance_hash = graph.provenance.record(
                "build", entity_guid, f"{kind}_context_built", graph_hash, user_id=user_id
            )

        result = ContextBuildResult(
            entity_guid=entity_guid,
            status=ContextStatus.BUILT,
            neighbors=graph.neighbors(),
            warnings=list(converter.warnings),
            outcomes=outcomes,
            vertex_count=graph.vertex_count,
            edge_count=graph.edge_count,
            graph_hash=graph_hash,
            provenance_hash=provenance_hash,
        )

        elapsed = _elapsed_ms(start)
        record_build(kind, result.status.value, self._metrics_enabled)
        observe_build_duration(kind, elapsed / 1000.0, self._metrics_enabled)
        observe_graph_size(result.vertex_count, result.edge_count, self._metrics_enabled)

        logger.info(
            "Built %s context for entity %s: vertices=%d edges=%d "
            "warnings=%d duration_ms=%.2f",
            kind,
            entity_guid,
            result.vertex_count,
            result.edge_count,
            len(result.warnings),
            elapsed,
        )
        return result

    def _add_vertex(self, graph: ContextGraph, vertex: LineageEntity, vertex_kind: str) -> None:
        if graph.add_vertex(vertex):
            record_vertex_created(vertex_kind, self._metrics_enabled)

    def _add_edge(self, graph: ContextGraph, edge: GraphContext, metric_type: str) -> None:
        """Insert ``edge``; ``metric_type`` is its bounded metric label."""
        if graph.add_edge(edge):
            record_edge_created(metric_type, self._metrics_enabled)

    # ------------------------------------------------------------------
    # Classification context
    # ------------------------------------------------------------------

    def build_classification_context(
        self,
        user_id: str,
        entity: EntityDetail,
    ) -> ContextBuildResult:
        """Build the classification context of ``entity``.

        Args:
            user_id: Identifier of the calling user.
            entity: The entity, already fetched, with its classifications.

        Returns:
            ContextBuildResult. ``status`` is ``NO_CONTEXT`` (and
            ``neighbors`` is ``None``) when the entity has no allow-listed
            classification or is not ACTIVE.

        Raises:
            InvalidInputError: If ``user_id`` or the entity guid is empty.
        """
        start = time.monotonic()
        entity_guid = self._validate(
            user_id, entity, "build_classification_context", _KIND_CLASSIFICATION
        )

        if not self.classification_filter.has_lineage_classification(entity):
            logger.info("No valid lineage classification found from entity %s", entity_guid)
            return self._no_context(
                _KIND_CLASSIFICATION,
                entity_guid,
                NoContextReason.NO_QUALIFYING_CLASSIFICATION,
                start,
            )

        if entity.status != InstanceStatus.ACTIVE:
            logger.info(
                "Entity %s is %s; no lineage context built",
                entity_guid,
                entity.status.value,
            )
            return self._no_context(
                _KIND_CLASSIFICATION, entity_guid, NoContextReason.INACTIVE_ENTITY, start
            )

        cfg = self.config
        converter = self._converter_factory()
        graph = self._graph_factory()
        limit = cfg.max_classifications_per_entity

        outcomes: List[ClassificationOutcome] = []
        for index, classification in enumerate(
            self.classification_filter.qualifying_classifications(entity)
        ):
            name = classification.name
            if index >= limit:
                reason = f"exceeds max_classifications_per_entity ({limit})"
                converter.warn("classification", name, WarningAction.SKIPPED, reason, entity_guid)
                outcomes.append(ClassificationOutcome(classification_name=name, skip_reason=reason))
                continue

            vertex_guid, _ = self.allocate_ids(entity_guid, name, cfg)
            try:
                vertex = converter.classification_to_vertex(
                    classification, vertex_guid, entity_guid
                )
            except Exception as exc:
                if not isinstance(exc, ConversionError):
                    logger.error(
                        "Unexpected failure converting classification %s of entity %s",
                        name,
                        entity_guid,
                        exc_info=True,
                    )
                reason = _failure_reason(exc)
                converter.warn("classification", name, WarningAction.SKIPPED, reason, entity_guid)
                outcomes.append(ClassificationOutcome(classification_name=name, skip_reason=reason))
                continue
            outcomes.append(ClassificationOutcome(classification_name=name, vertex=vertex))

        vertices = [o.vertex for o in outcomes if o.vertex is not None]
        if vertices:
            source = self._source_vertex(converter, entity, entity_guid)
            self._add_vertex(graph, source, "entity")
            for outcome in outcomes:
                if outcome.vertex is None:
                    continue
                _, edge_guid = self.allocate_ids(entity_guid, outcome.classification_name, cfg)
                self._add_vertex(graph, outcome.vertex, "classification")
                self._add_edge(
                    graph,
                    GraphContext(
                        relationship_guid=edge_guid,
                        relationship_type=outcome.vertex.type_def_name,
                        from_vertex=source,
                        to_vertex=outcome.vertex,
                        label=CLASSIFIED_ENTITY_LABEL,
                    ),
                    outcome.classification_name,
                )

        return self._finish(
            _KIND_CLASSIFICATION, user_id, entity_guid, graph, converter, outcomes, start
        )

    def get_asset_context_by_classification(
        self,
        user_id: str,
        entity: EntityDetail,
    ) -> Optional[Dict[str, Set[GraphContext]]]:
        """Return the classification neighbourhood of ``entity``.

        Returns:
            Mapping of relationship type name to edges, or ``None`` when
            the entity has no lineage context.

        Raises:
            InvalidInputError: If ``user_id`` or the entity guid is empty.
        """
        return self.build_classification_context(user_id, entity).neighbors

    # ------------------------------------------------------------------
    # Relationship context
    # ------------------------------------------------------------------

    def build_relationship_context(
        self,
        user_id: str,
        entity: EntityDetail,
        relationships: Sequence[Relationship],
        lineage_only: bool = False,
    ) -> ContextBuildResult:
        """Build the relationship context of ``entity``.

        Args:
            user_id: Identifier of the calling user.
            entity: The entity, already fetched.
            relationships: Relationship records, already fetched.
            lineage_only: Keep only relationship types the handler table
                marks as lineage relevant.

        Returns:
            ContextBuildResult. ``status`` is ``NO_CONTEXT`` when the
            entity is not ACTIVE or ``relationships`` is empty.

        Raises:
            InvalidInputError: If ``user_id`` or the entity guid is empty.
        """
        start = time.monotonic()
        entity_guid = self._validate(
            user_id, entity, "build_relationship_context", _KIND_RELATIONSHIP
        )

        if entity.status != InstanceStatus.ACTIVE:
            logger.info(
                "Entity %s is %s; no relationship context built",
                entity_guid,
                entity.status.value,
            )
            return self._no_context(
                _KIND_RELATIONSHIP, entity_guid, NoContextReason.INACTIVE_ENTITY, start
            )
        if not relationships:
            logger.info("No relationships supplied for entity %s", entity_guid)
            return self._no_context(
                _KIND_RELATIONSHIP, entity_guid, NoContextReason.NO_RELATIONSHIPS, start
            )

        converter = self._converter_factory()
        graph = self._graph_factory()
        source: Optional[LineageEntity] = None

        for relationship in relationships:
            name = str(relationship.guid or relationship.type_def_name or "<unknown>")
            if (
                _is_blank(relationship.guid)
                or _is_blank(relationship.end1_guid)
                or _is_blank(relationship.end2_guid)
            ):
                converter.warn(
                    "relationship", name, WarningAction.SKIPPED,
                    "missing relationship guid or endpoint", entity_guid,
                )
                continue
            if relationship.status != InstanceStatus.ACTIVE:
                converter.warn(
                    "relationship", name, WarningAction.SKIPPED,
                    f"relationship is {relationship.status.value}", entity_guid,
                )
                continue
            if not relationship.touches(entity_guid):
                converter.warn(
                    "relationship", name, WarningAction.SKIPPED,
                    "relationship does not touch the entity", entity_guid,
                )
                continue

            handler = handler_for(relationship.type_def_name)
            if lineage_only and not handler.lineage_relevant:
                logger.debug(
                    "Ignoring non-lineage relationship %s (%s)", name, handler.type_name
                )
                continue

            if source is None:
                source = self._source_vertex(converter, entity, entity_guid)
            try:
                edge = converter.relationship_to_edge(
                    relationship,
                    handler,
                    end1=source if relationship.end1_guid == entity_guid else None,
                    end2=source if relationship.end2_guid == entity_guid else None,
                )
            except Exception as exc:
                if not isinstance(exc, ConversionError):
                    logger.error(
                        "Unexpected failure converting relationship %s", name, exc_info=True
                    )
                converter.warn(
                    "relationship", name, WarningAction.SKIPPED, _failure_reason(exc), entity_guid
                )
                continue

            for vertex in (edge.from_vertex, edge.to_vertex):
                self._add_vertex(
                    graph, vertex, "entity" if vertex.guid == entity_guid else "endpoint"
                )
            metric_type = handler.type_name
            if metric_type not in RELATIONSHIP_HANDLERS:
                metric_type = _OTHER_EDGE_TYPE
            self._add_edge(graph, edge, metric_type)

        return self._finish(
            _KIND_RELATIONSHIP, user_id, entity_guid, graph, converter, [], start
        )


__all__ = ["GraphAssembler"]

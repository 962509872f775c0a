# -*- coding: utf-8 -*-
"""
RecordConverter - canonical vertex and edge conversion

Maps repository records (entities, classifications, relationships) into
the canonical :class:`LineageEntity` vertex and :class:`GraphContext`
edge shapes used by the context graph.

Property bags are flattened into a mapping of property name to a
canonical value:

    ============================  ==========================================
    Source value                  Canonical value
    ============================  ==========================================
    str, int, bool, None          unchanged
    float                         unchanged; NaN/Inf become strings
    Enum                          its value, canonicalised again
    datetime, date, time          ISO-8601 string
    Decimal, UUID                 ``str(value)``
    bytes, bytearray              hex string
    list, tuple, set, mapping     canonical JSON string (sorted keys)
    anything else                 ``str(value)``
    ============================  ==========================================

Every non-verbatim mapping records a ``coerced`` :class:`ConversionWarning`.
A value (or key) that cannot even be turned into a string is dropped
with a ``skipped`` warning, whatever exception it raises. Property
problems never fail the record; record-level problems (no type name,
unusable version, property bag that is not a readable mapping) raise
:class:`ConversionError` for the caller to contain.

A converter accumulates warnings, so use one instance per build.

Example:
    >>> from lineage_context.models import EntityDetail
    >>> from lineage_context.record_converter import RecordConverter
    >>> converter = RecordConverter()
    >>> vertex = converter.to_vertex(
    ...     EntityDetail(guid="guid-1", type_def_name="RelationalTable")
    ... )
    >>> vertex.guid
    'guid-1'

Status: Production Ready
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import ValidationError

from lineage_context.config import LineageContextConfig
from lineage_context.exceptions import ConversionError
from lineage_context.metrics import record_conversion_warning
from lineage_context.models import (
    Classification,
    ConversionWarning,
    GraphContext,
    InstanceStatus,
    LineageEntity,
    Relationship,
    WarningAction,
)
from lineage_context.relationship_handlers import RelationshipHandler

logger = logging.getLogger(__name__)

_VERBATIM_TYPES = (str, int, bool, type(None))


class _Uncoercible(Exception):
    """Raised internally when a value has no string representation."""


def _json_default(value: Any) -> Any:
    canonical, _ = _canonical_value(value)
    return canonical


def _canonical_value(value: Any) -> Tuple[Any, bool]:
    """Return ``(canonical_value, coerced)`` for one property value.

    Raises:
        _Uncoercible: If the value cannot be represented at all.
    """
    if isinstance(value, Enum):
        canonical, _ = _canonical_value(value.value)
        return canonical, True
    if isinstance(value, _VERBATIM_TYPES):
        return value, False
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN", True
        if math.isinf(value):
            return ("Infinity" if value > 0 else "-Infinity"), True
        return value, False
    if isinstance(value, (datetime, date, time)):
        return value.isoformat(), True
    if isinstance(value, (Decimal, UUID)):
        return str(value), True
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex(), True
    try:
        if isinstance(value, Mapping):
            return json.dumps(
                {str(k): v for k, v in value.items()},
                sort_keys=True,
                default=_json_default,
            ), True
        if isinstance(value, (list, tuple)):
            return json.dumps(list(value), sort_keys=True, default=_json_default), True
        if isinstance(value, (set, frozenset)):
            items = sorted((_canonical_value(v)[0] for v in value), key=repr)
            return json.dumps(items, sort_keys=True, default=_json_default), True
    except Exception:
        # Nested content refused to serialise; fall back to str() below.
        pass
    try:
        return str(value), True
    except Exception as exc:
        raise _Uncoercible(f"{type(value).__name__}: {exc}") from exc


def _field(record: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a model, mapping or plain object record."""
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


class RecordConverter:
    """Converts repository records into canonical vertices and edges.

    Attributes:
        warnings: Conversion warnings accumulated by this converter.
    """

    def __init__(self, config: Optional[LineageContextConfig] = None) -> None:
        self.warnings: List[ConversionWarning] = []
        self._metrics_enabled = config.enable_metrics if config is not None else None

    # ------------------------------------------------------------------
    # Warning bookkeeping
    # ------------------------------------------------------------------

    def warn(
        self,
        item_type: str,
        item_name: str,
        action: WarningAction,
        reason: str,
        owner_guid: Optional[str] = None,
    ) -> ConversionWarning:
        """Record a conversion warning, log it and count it."""
        warning = ConversionWarning(
            item_type=item_type,
            item_name=item_name,
            owner_guid=owner_guid,
            action=action,
            reason=reason,
        )
        self.warnings.append(warning)
        logger.warning(
            "Conversion warning: %s '%s' of %s %s: %s",
            item_type,
            item_name,
            owner_guid or "<unknown>",
            action.value,
            reason,
        )
        record_conversion_warning(item_type, action.value, self._metrics_enabled)
        return warning

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def map_properties(
        self,
        properties: Any,
        owner_guid: Optional[str] = None,
        owner_name: str = "record",
    ) -> Dict[str, Any]:
        """Flatten a property bag into the canonical property mapping.

        Args:
            properties: Mapping of property name to value, or ``None``.
            owner_guid: Guid of the owning record, for warnings.
            owner_name: Type name of the owning record, for errors.

        Returns:
            Mapping of property name to canonical value.

        Raises:
            ConversionError: If ``properties`` is not a mapping or its
                entries cannot be read.
        """
        if properties is None:
            return {}
        if not isinstance(properties, Mapping):
            raise ConversionError(
                f"Properties of {owner_name} must be a mapping, "
                f"got {type(properties).__name__}",
                item_type="properties",
                item_name=owner_name,
            )

        try:
            items = list(properties.items())
        except Exception as exc:
            raise ConversionError(
                f"Properties of {owner_name} cannot be read: {type(exc).__name__}: {exc}",
                item_type="properties",
                item_name=owner_name,
                cause=exc,
            ) from exc

        mapped: Dict[str, Any] = {}
        for index, (key, value) in enumerate(items):
            try:
                name = str(key)
            except Exception as exc:
                self.warn(
                    "property",
                    f"<key {index}>",
                    WarningAction.SKIPPED,
                    f"{type(key).__name__} key has no string form ({exc})",
                    owner_guid,
                )
                continue
            try:
                canonical, coerced = _canonical_value(value)
            except Exception as exc:
                self.warn(
                    "property",
                    name,
                    WarningAction.SKIPPED,
                    f"value has no usable representation ({exc})",
                    owner_guid,
                )
                continue
            if coerced:
                self.warn(
                    "property",
                    name,
                    WarningAction.COERCED,
                    f"{type(value).__name__} value converted to "
                    f"{type(canonical).__name__}",
                    owner_guid,
                )
            mapped[name] = canonical
        return mapped

    # ------------------------------------------------------------------
    # Vertices
    # ------------------------------------------------------------------

    def _scalar_fields(self, record: Any, item_type: str, item_name: str) -> Dict[str, Any]:
        type_def_name = _field(record, "type_def_name") or ""
        if not str(type_def_name).strip():
            raise ConversionError(
                f"{item_type} '{item_name}' has no type name",
                item_type=item_type,
                item_name=item_name,
            )
        version = _field(record, "version", 0)
        try:
            version = int(version or 0)
        except (TypeError, ValueError) as exc:
            raise ConversionError(
                f"{item_type} '{item_name}' has an unusable version {version!r}",
                item_type=item_type,
                item_name=item_name,
                cause=exc,
            ) from exc
        status = _field(record, "status", InstanceStatus.ACTIVE)
        try:
            status = InstanceStatus(status) if status is not None else InstanceStatus.UNKNOWN
        except ValueError as exc:
            raise ConversionError(
                f"{item_type} '{item_name}' has an unknown status {status!r}",
                item_type=item_type,
                item_name=item_name,
                cause=exc,
            ) from exc
        return {
            "type_def_name": str(type_def_name),
            "version": version,
            "created_by": _field(record, "created_by"),
            "updated_by": _field(record, "updated_by"),
            "create_time": _field(record, "create_time"),
            "update_time": _field(record, "update_time"),
            "status": status,
        }

    @staticmethod
    def _build_vertex(
        guid: str,
        scalars: Dict[str, Any],
        properties: Dict[str, Any],
        item_type: str,
        item_name: str,
    ) -> LineageEntity:
        try:
            return LineageEntity(guid=guid, properties=properties, **scalars)
        except ValidationError as exc:
            raise ConversionError(
                f"{item_type} '{item_name}' has invalid audit fields",
                item_type=item_type,
                item_name=item_name,
                cause=exc,
            ) from exc

    def to_vertex(self, record: Any) -> LineageEntity:
        """Convert an entity record into a canonical vertex.

        Args:
            record: An :class:`EntityDetail` (or any record exposing the
                same fields as attributes or mapping keys).

        Returns:
            The canonical vertex.

        Raises:
            ConversionError: If the record has no guid, no type name, an
                unusable version or status, or a non-mapping property bag.
        """
        guid = _field(record, "guid")
        if not guid:
            raise ConversionError(
                "Entity record has no guid",
                item_type="entity",
                item_name=str(_field(record, "type_def_name") or "<unknown>"),
            )
        guid = str(guid)
        scalars = self._scalar_fields(record, "entity", guid)
        properties = self.map_properties(
            _field(record, "properties"), guid, scalars["type_def_name"]
        )
        return self._build_vertex(guid, scalars, properties, "entity", guid)

    def classification_to_vertex(
        self,
        classification: Classification,
        guid: str,
        owner_guid: Optional[str] = None,
    ) -> LineageEntity:
        """Convert a classification into a vertex with a synthetic guid.

        Args:
            classification: The classification record.
            guid: Identifier allocated for the classification vertex.
            owner_guid: Guid of the classified entity, for warnings.

        Returns:
            The canonical classification vertex.

        Raises:
            ConversionError: If the classification cannot be converted.
        """
        name = str(_field(classification, "name") or "<unnamed>")
        scalars = self._scalar_fields(classification, "classification", name)
        properties = self.map_properties(
            _field(classification, "properties"),
            owner_guid,
            scalars["type_def_name"],
        )
        vertex = self._build_vertex(guid, scalars, properties, "classification", name)
        logger.debug("Classification mapped for lineage entity %s: %s", owner_guid, vertex.guid)
        return vertex

    @staticmethod
    def endpoint_vertex(guid: str, type_name: str) -> LineageEntity:
        """Build a stub vertex for a relationship endpoint.

        Relationship records only carry the identifier and type name of
        their ends, so the stub has no audit fields or properties.
        """
        return LineageEntity(guid=guid, type_def_name=type_name or "Unknown")

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def relationship_to_edge(
        self,
        relationship: Relationship,
        handler: RelationshipHandler,
        end1: Optional[LineageEntity] = None,
        end2: Optional[LineageEntity] = None,
    ) -> GraphContext:
        """Convert a relationship record into a directed edge.

        Args:
            relationship: The relationship record.
            handler: Handler for the relationship type; decides the label.
                The edge always runs from end 1 to end 2.
            end1: Vertex to use for end 1 instead of an endpoint stub.
            end2: Vertex to use for end 2 instead of an endpoint stub.

        Returns:
            The canonical edge.

        Raises:
            ConversionError: If the relationship has no guid, no type name
                or is missing an endpoint.
        """
        guid = _field(relationship, "guid")
        type_name = _field(relationship, "type_def_name") or ""
        end1_guid = _field(relationship, "end1_guid")
        end2_guid = _field(relationship, "end2_guid")
        if not guid:
            raise ConversionError(
                "Relationship record has no guid",
                item_type="relationship",
                item_name=str(type_name or "<unknown>"),
            )
        if not type_name:
            raise ConversionError(
                f"Relationship '{guid}' has no type name",
                item_type="relationship",
                item_name=guid,
            )
        if not end1_guid or not end2_guid:
            raise ConversionError(
                f"Relationship '{guid}' is missing an endpoint",
                item_type="relationship",
                item_name=guid,
            )

        guid, type_name = str(guid), str(type_name)
        end1 = end1 or self.endpoint_vertex(
            str(end1_guid), str(_field(relationship, "end1_type_name") or "")
        )
        end2 = end2 or self.endpoint_vertex(
            str(end2_guid), str(_field(relationship, "end2_type_name") or "")
        )
        properties = self.map_properties(_field(relationship, "properties"), guid, type_name)
        return GraphContext(
            relationship_guid=guid,
            relationship_type=type_name,
            from_vertex=end1,
            to_vertex=end2,
            label=handler.label,
            properties=properties,
        )


__all__ = ["RecordConverter"]

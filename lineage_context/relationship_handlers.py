# -*- coding: utf-8 -*-
"""
Relationship handler table.

Static mapping from relationship type name to a typed
:class:`RelationshipHandler` that decides the semantic label of the edge.
Edges always run from end 1 to end 2 of the relationship record, so each
label reads in that direction. Types missing from the table get a generic
handler whose label is derived from the type name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class RelationshipHandler:
    """How one relationship type becomes a lineage edge.

    Attributes:
        type_name: Relationship type name the handler applies to.
        label: Semantic label of the edge, read from end 1 to end 2.
        lineage_relevant: Whether the type carries data lineage (as
            opposed to descriptive or governance context).
    """

    type_name: str
    label: str
    lineage_relevant: bool = False


def _kebab(type_name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "-", type_name).lower()


def _handler(type_name: str, label: str,
             lineage_relevant: bool = False) -> RelationshipHandler:
    return RelationshipHandler(type_name, label, lineage_relevant)


_HANDLERS = {
    # Data lineage
    "DataFlow": _handler("DataFlow", "data-flows-to", lineage_relevant=True),
    "ControlFlow": _handler("ControlFlow", "control-flows-to", lineage_relevant=True),
    "ProcessPort": _handler("ProcessPort", "process-has-port", lineage_relevant=True),
    "PortDelegation": _handler("PortDelegation", "port-delegates-to", lineage_relevant=True),
    "LineageMapping": _handler("LineageMapping", "maps-to", lineage_relevant=True),
    "PortSchema": _handler("PortSchema", "port-uses-schema", lineage_relevant=True),
    # Schema structure
    "AssetSchemaType": _handler("AssetSchemaType", "asset-described-by-schema"),
    "AttributeForSchema": _handler("AttributeForSchema", "schema-has-attribute"),
    "SchemaAttributeType": _handler("SchemaAttributeType", "attribute-has-type"),
    "SchemaTypeDefinition": _handler("SchemaTypeDefinition", "schema-type-defined-by"),
    "SchemaTypeImplementation": _handler("SchemaTypeImplementation", "schema-type-implemented-by"),
    "MapFromElementType": _handler("MapFromElementType", "map-from-element-type"),
    "MapToElementType": _handler("MapToElementType", "map-to-element-type"),
    "LinkedType": _handler("LinkedType", "linked-type"),
    "APIRequest": _handler("APIRequest", "api-request-schema"),
    "APIResponse": _handler("APIResponse", "api-response-schema"),
    "APIHeader": _handler("APIHeader", "api-header-schema"),
    # Governance and descriptive context; the described element is end 1
    "SemanticAssignment": _handler("SemanticAssignment", "has-meaning"),
    "DataClassAssignment": _handler("DataClassAssignment", "assigned-data-class"),
    "Certification": _handler("Certification", "certified-by"),
    "License": _handler("License", "licensed-by"),
    "GovernanceRoleAssignment": _handler("GovernanceRoleAssignment", "governed-by-role"),
    "AttachedTag": _handler("AttachedTag", "tagged-with"),
    "MediaReference": _handler("MediaReference", "related-media"),
}

#: Read-only relationship type name -> handler table.
RELATIONSHIP_HANDLERS: Mapping[str, RelationshipHandler] = MappingProxyType(_HANDLERS)


def handler_for(type_name: str) -> RelationshipHandler:
    """Return the handler for ``type_name``, or a generic one."""
    handler = RELATIONSHIP_HANDLERS.get(type_name)
    if handler is not None:
        return handler
    return RelationshipHandler(type_name=type_name, label=_kebab(type_name))


__all__ = [
    "RelationshipHandler",
    "RELATIONSHIP_HANDLERS",
    "handler_for",
]

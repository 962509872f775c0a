# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from lineage_context.config import LineageContextConfig, reset_config, set_config
from lineage_context.models import (
    Classification,
    EntityDetail,
    InstanceStatus,
    Relationship,
)
from lineage_context.setup import reset_lineage_context_service


@pytest.fixture(autouse=True)
def default_config():
    """Install a default configuration for every test, ignoring LCG_* env vars."""
    config = LineageContextConfig()
    set_config(config)
    yield config
    reset_lineage_context_service()
    reset_config()


@pytest.fixture
def configure():
    """Install a configuration built from keyword overrides."""

    def _configure(**overrides: Any) -> LineageContextConfig:
        config = LineageContextConfig(**overrides)
        set_config(config)
        return config

    return _configure


@pytest.fixture
def audit_time():
    return datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_classification(audit_time):
    """Factory for classification records."""

    def _make(
        name: str,
        properties: Optional[Dict[str, Any]] = None,
        **fields: Any,
    ) -> Classification:
        fields.setdefault("created_by", "steward")
        fields.setdefault("create_time", audit_time)
        fields.setdefault("version", 1)
        return Classification(name=name, properties=properties or {}, **fields)

    return _make


@pytest.fixture
def make_entity(audit_time):
    """Factory for entity records."""

    def _make(
        guid: Optional[str] = "guid-1",
        classifications: Optional[List[Classification]] = None,
        status: InstanceStatus = InstanceStatus.ACTIVE,
        **fields: Any,
    ) -> EntityDetail:
        fields.setdefault("type_def_name", "RelationalTable")
        fields.setdefault("created_by", "loader")
        fields.setdefault("create_time", audit_time)
        fields.setdefault("version", 3)
        return EntityDetail(
            guid=guid,
            status=status,
            classifications=classifications or [],
            **fields,
        )

    return _make


@pytest.fixture
def make_relationship():
    """Factory for relationship records."""

    def _make(
        guid: Optional[str],
        type_def_name: str,
        end1_guid: Optional[str],
        end2_guid: Optional[str],
        **fields: Any,
    ) -> Relationship:
        fields.setdefault("end1_type_name", "RelationalTable")
        fields.setdefault("end2_type_name", "RelationalTable")
        return Relationship(
            guid=guid,
            type_def_name=type_def_name,
            end1_guid=end1_guid,
            end2_guid=end2_guid,
            **fields,
        )

    return _make

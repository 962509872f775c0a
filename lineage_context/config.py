# -*- coding: utf-8 -*-
"""
Lineage Context Graph Builder Configuration

Centralized configuration for the lineage context builder covering:
- The lineage classification allow-list
- Identifier allocation for synthetic classification vertices and edges
- Context graph edge strictness
- Per-entity classification limits
- Provenance tracking (genesis hash, SHA-256 chain anchoring)
- Prometheus metrics export toggle
- Logging level

All settings can be overridden via environment variables with the
``LCG_`` prefix (e.g. ``LCG_LINEAGE_CLASSIFICATIONS``).

Environment Variable Reference (LCG_ prefix):
    LCG_LOG_LEVEL                       - Logging level (DEBUG/INFO/WARNING/ERROR)
    LCG_LINEAGE_CLASSIFICATIONS         - Comma-separated classification type names
    LCG_DETERMINISTIC_IDS               - Derive stable vertex/edge ids (true/false)
    LCG_ID_NAMESPACE                    - UUID namespace for deterministic ids
    LCG_STRICT_EDGES                    - Reject edges whose endpoints are unknown
    LCG_MAX_CLASSIFICATIONS_PER_ENTITY  - Cap on qualifying classifications per build
    LCG_ENABLE_PROVENANCE               - Enable SHA-256 provenance chain tracking
    LCG_GENESIS_HASH                    - Genesis anchor string for provenance chain
    LCG_MAX_PROVENANCE_ENTRIES          - Entries kept in the service-wide provenance chain
    LCG_ENABLE_METRICS                  - Enable Prometheus metrics export (true/false)

Example:
    >>> from lineage_context.config import get_config
    >>> cfg = get_config()
    >>> "Confidentiality" in cfg.lineage_classifications
    True

    >>> # Override for testing
    >>> from lineage_context.config import set_config, reset_config
    >>> from lineage_context.config import LineageContextConfig
    >>> set_config(LineageContextConfig(lineage_classifications={"Retention"}))
    >>> reset_config()  # teardown

Status: Production Ready
"""

from __future__ import annotations

import logging
import os
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

from lineage_context.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "LCG_"

# ---------------------------------------------------------------------------
# Valid log levels
# ---------------------------------------------------------------------------

_VALID_LOG_LEVELS = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
)

# ---------------------------------------------------------------------------
# Default lineage classification allow-list
# ---------------------------------------------------------------------------

DEFAULT_LINEAGE_CLASSIFICATIONS: FrozenSet[str] = frozenset(
    {
        "Confidentiality",
        "AssetZoneMembership",
        "SubjectArea",
        "AssetOwnership",
        "PrimaryKey",
        "Memento",
    }
)

#: Namespace used to derive deterministic vertex and edge identifiers.
DEFAULT_ID_NAMESPACE = "6f1c1d3e-8a43-5c2b-9a8e-2f7f0c6b4d10"


def parse_classification_list(raw: Optional[str]) -> FrozenSet[str]:
    """Parse a comma-separated classification list into a frozenset.

    Blank entries are ignored and surrounding whitespace is stripped.

    Args:
        raw: Comma-separated classification type names.

    Returns:
        Frozenset of classification type names (possibly empty).
    """
    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


# ---------------------------------------------------------------------------
# LineageContextConfig
# ---------------------------------------------------------------------------


@dataclass
class LineageContextConfig:
    """Complete configuration for the lineage context graph builder.

    The allow-list is normalised to a ``frozenset`` during validation so it
    can be shared read-only across concurrent builds.

    Attributes:
        log_level: Logging verbosity level for the builder.
        lineage_classifications: Classification type names considered
            lineage-relevant. Any iterable of strings is accepted and
            stored as a ``frozenset``.
        deterministic_ids: When True, classification vertex and edge
            identifiers are derived from the source entity guid and the
            classification type name so repeated builds agree. When False
            a random UUID4 is allocated on every build.
        id_namespace: UUID namespace string for deterministic identifiers.
        strict_edges: When True, the context graph rejects an edge whose
            endpoint vertices have not been added first.
        max_classifications_per_entity: Upper bound on qualifying
            classifications processed for one entity; the excess is
            skipped with a conversion warning.
        enable_provenance: Whether each context graph keeps a SHA-256
            provenance chain of its insertions.
        genesis_hash: Anchor string used as the root of every provenance
            chain.
        max_provenance_entries: Number of most recent entries the
            service-wide provenance chain keeps; older entries are dropped.
        enable_metrics: When True, Prometheus metrics are recorded under
            the ``lcg_`` prefix.
    """

    # -- Logging -------------------------------------------------------------
    log_level: str = "INFO"

    # -- Classification allow-list -------------------------------------------
    lineage_classifications: Iterable[str] = field(
        default_factory=lambda: DEFAULT_LINEAGE_CLASSIFICATIONS
    )

    # -- Identifier allocation -----------------------------------------------
    deterministic_ids: bool = True
    id_namespace: str = DEFAULT_ID_NAMESPACE

    # -- Graph behaviour -----------------------------------------------------
    strict_edges: bool = True
    max_classifications_per_entity: int = 1000

    # -- Provenance tracking -------------------------------------------------
    enable_provenance: bool = True
    genesis_hash: str = "lineage-context-genesis"
    max_provenance_entries: int = 10000

    # -- Metrics export ------------------------------------------------------
    enable_metrics: bool = True

    # ------------------------------------------------------------------
    # Post-init validation
    # ------------------------------------------------------------------

    def __post_init__(self) -> None:
        """Validate configuration constraints after initialisation.

        Raises:
            ConfigurationError: If any configuration value is outside its
                valid range or uses an unsupported enumerated value.
        """
        errors: list[str] = []

        # -- Logging ---------------------------------------------------------
        normalised_log = str(self.log_level).upper()
        if normalised_log not in _VALID_LOG_LEVELS:
            errors.append(
                f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}, "
                f"got '{self.log_level}'"
            )
        else:
            self.log_level = normalised_log

        # -- Classification allow-list ---------------------------------------
        if isinstance(self.lineage_classifications, str):
            names = parse_classification_list(self.lineage_classifications)
        else:
            names = frozenset(
                str(name).strip()
                for name in (self.lineage_classifications or ())
                if str(name).strip()
            )
        if not names:
            errors.append("lineage_classifications must not be empty")
        self.lineage_classifications = names

        # -- Identifier allocation -------------------------------------------
        try:
            uuid.UUID(str(self.id_namespace))
        except ValueError:
            errors.append(
                f"id_namespace must be a UUID string, got '{self.id_namespace}'"
            )

        # -- Graph behaviour -------------------------------------------------
        if self.max_classifications_per_entity <= 0:
            errors.append(
                f"max_classifications_per_entity must be > 0, "
                f"got {self.max_classifications_per_entity}"
            )

        # -- Provenance ------------------------------------------------------
        if not self.genesis_hash:
            errors.append("genesis_hash must not be empty")
        if self.max_provenance_entries <= 0:
            errors.append(
                f"max_provenance_entries must be > 0, "
                f"got {self.max_provenance_entries}"
            )

        if errors:
            raise ConfigurationError(
                "LineageContextConfig validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors),
                invalid_settings=errors,
            )

        logger.debug(
            "LineageContextConfig validated successfully: "
            "classifications=%d, deterministic_ids=%s, strict_edges=%s, "
            "provenance=%s, metrics=%s",
            len(self.lineage_classifications),
            self.deterministic_ids,
            self.strict_edges,
            self.enable_provenance,
            self.enable_metrics,
        )

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    @property
    def namespace_uuid(self) -> uuid.UUID:
        """Return ``id_namespace`` as a :class:`uuid.UUID`."""
        return uuid.UUID(str(self.id_namespace))

    def is_lineage_classification(self, name: Optional[str]) -> bool:
        """Return True when ``name`` is in the lineage allow-list."""
        return name in self.lineage_classifications

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> LineageContextConfig:
        """Build a LineageContextConfig from environment variables.

        Every field can be overridden via ``LCG_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).
        Integer values are parsed via ``int()``.
        Malformed integers fall back to the class-level default and emit a
        WARNING log so the issue is visible in deployment logs.

        Returns:
            Populated LineageContextConfig instance, validated via
            ``__post_init__``.

        Example:
            >>> import os
            >>> os.environ["LCG_LINEAGE_CLASSIFICATIONS"] = "Confidentiality,Retention"
            >>> cfg = LineageContextConfig.from_env()
            >>> sorted(cfg.lineage_classifications)
            ['Confidentiality', 'Retention']
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.strip().lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val.strip())
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%r, using default %d",
                    prefix,
                    name,
                    val,
                    default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val.strip()

        raw_classifications = _env("LINEAGE_CLASSIFICATIONS")
        classifications = (
            parse_classification_list(raw_classifications)
            if raw_classifications is not None
            else DEFAULT_LINEAGE_CLASSIFICATIONS
        )

        config = cls(
            log_level=_str("LOG_LEVEL", cls.log_level),
            lineage_classifications=classifications,
            deterministic_ids=_bool("DETERMINISTIC_IDS", cls.deterministic_ids),
            id_namespace=_str("ID_NAMESPACE", cls.id_namespace),
            strict_edges=_bool("STRICT_EDGES", cls.strict_edges),
            max_classifications_per_entity=_int(
                "MAX_CLASSIFICATIONS_PER_ENTITY",
                cls.max_classifications_per_entity,
            ),
            enable_provenance=_bool("ENABLE_PROVENANCE", cls.enable_provenance),
            genesis_hash=_str("GENESIS_HASH", cls.genesis_hash),
            max_provenance_entries=_int(
                "MAX_PROVENANCE_ENTRIES", cls.max_provenance_entries
            ),
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
        )

        logger.info(
            "LineageContextConfig loaded: classifications=%s, "
            "deterministic_ids=%s, strict_edges=%s, "
            "max_classifications_per_entity=%d, provenance=%s, metrics=%s",
            sorted(config.lineage_classifications),
            config.deterministic_ids,
            config.strict_edges,
            config.max_classifications_per_entity,
            config.enable_provenance,
            config.enable_metrics,
        )
        return config

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the configuration to a plain Python dictionary.

        The allow-list is emitted as a sorted list so the output is
        JSON-serialisable and stable.

        Returns:
            Dictionary representation of the configuration.
        """
        return {
            "log_level": self.log_level,
            "lineage_classifications": sorted(self.lineage_classifications),
            "deterministic_ids": self.deterministic_ids,
            "id_namespace": self.id_namespace,
            "strict_edges": self.strict_edges,
            "max_classifications_per_entity": self.max_classifications_per_entity,
            "enable_provenance": self.enable_provenance,
            "genesis_hash": self.genesis_hash,
            "max_provenance_entries": self.max_provenance_entries,
            "enable_metrics": self.enable_metrics,
        }

    def __repr__(self) -> str:
        d = self.to_dict()
        pairs = ", ".join(f"{k}={v!r}" for k, v in d.items())
        return f"LineageContextConfig({pairs})"


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[LineageContextConfig] = None
_config_lock = threading.Lock()


def get_config() -> LineageContextConfig:
    """Return the singleton LineageContextConfig, creating from env if needed.

    Uses double-checked locking for thread safety with minimal
    contention on the hot path. The instance is created on first call
    by reading all ``LCG_*`` environment variables via
    :meth:`LineageContextConfig.from_env`.

    Returns:
        LineageContextConfig singleton instance.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = LineageContextConfig.from_env()
    return _config_instance


def set_config(config: LineageContextConfig) -> None:
    """Replace the singleton LineageContextConfig.

    Intended for startup wiring and tests where a custom configuration
    must be supplied without relying on environment variables.

    Args:
        config: New :class:`LineageContextConfig` to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info(
        "LineageContextConfig replaced programmatically: classifications=%s",
        sorted(config.lineage_classifications),
    )


def reset_config() -> None:
    """Reset the singleton so the next :func:`get_config` re-reads env vars."""
    global _config_instance
    with _config_lock:
        _config_instance = None
    logger.debug("LineageContextConfig singleton reset")


__all__ = [
    "DEFAULT_LINEAGE_CLASSIFICATIONS",
    "DEFAULT_ID_NAMESPACE",
    "LineageContextConfig",
    "parse_classification_list",
    "get_config",
    "set_config",
    "reset_config",
]

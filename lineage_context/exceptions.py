"""Lineage Context Exception Hierarchy.

Exception Hierarchy:
    LineageContextError (base)
    ├── InvalidInputError
    ├── ConversionError
    ├── MissingVertexError
    └── ConfigurationError

All exceptions include rich context:
- error_code: Unique error identifier
- context: Dictionary with error-specific details
- timestamp: When the error occurred

``InvalidInputError`` and ``MissingVertexError`` propagate to the caller.
``ConversionError`` never leaves the graph assembler: it is contained per
item and surfaced as a :class:`~lineage_context.models.ConversionWarning`.

Example:
    >>> from lineage_context.exceptions import InvalidInputError
    >>> raise InvalidInputError(
    ...     message="Entity guid must not be empty",
    ...     invalid_fields={"guid": "empty"},
    ... )
"""

import json
import re
import traceback as tb
from datetime import datetime
from typing import Any, Dict, List, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class LineageContextError(Exception):
    """Base exception for all lineage context errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "LCG_INVALID_INPUT_ERROR")
        context: Dictionary with error-specific details
        timestamp: When the error occurred
        traceback_str: Stack at the point the error was created
    """

    ERROR_PREFIX = "LCG"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.timestamp = datetime.now()
        self.traceback_str = "".join(tb.format_stack()[:-1])

    def _generate_error_code(self) -> str:
        """Generate an error code from the class name.

        Returns:
            Error code like "LCG_INVALID_INPUT_ERROR"
        """
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback_str,
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        return f"[{self.error_code}] - {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}')"
        )


# ==============================================================================
# Build Exceptions
# ==============================================================================

class InvalidInputError(LineageContextError):
    """Caller identity or entity identifier is missing or invalid.

    Fails the whole build immediately; nothing partial is returned.

    Example:
        >>> raise InvalidInputError(
        ...     message="User id must not be empty",
        ...     invalid_fields={"user_id": "empty"},
        ... )
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        invalid_fields: Optional[Dict[str, str]] = None,
        method_name: Optional[str] = None,
    ):
        """Initialize invalid input error.

        Args:
            message: Error message
            context: Error context
            invalid_fields: Dictionary of field_name -> reason
            method_name: Operation that rejected the input
        """
        context = context or {}
        if invalid_fields:
            context["invalid_fields"] = invalid_fields
        if method_name:
            context["method_name"] = method_name
        super().__init__(message, context=context)

    @property
    def invalid_fields(self) -> Dict[str, str]:
        return self.context.get("invalid_fields", {})


class ConversionError(LineageContextError):
    """A single repository item could not be converted.

    Raised by the record converter for one classification or relationship
    and always caught by the graph assembler, which skips the item and
    records a conversion warning.
    """

    def __init__(
        self,
        message: str,
        item_type: str,
        item_name: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        """Initialize conversion error.

        Args:
            message: Error message
            item_type: Kind of item (classification, relationship, entity)
            item_name: Type name or identifier of the item
            context: Error context
            cause: Original exception that caused this error
        """
        context = context or {}
        context["item_type"] = item_type
        context["item_name"] = item_name
        if cause:
            context["cause"] = str(cause)
            context["cause_type"] = type(cause).__name__
        self.item_type = item_type
        self.item_name = item_name
        super().__init__(message, context=context)


class MissingVertexError(LineageContextError):
    """An edge was added before one of its endpoint vertices."""

    def __init__(
        self,
        message: str,
        relationship_guid: str,
        missing_guids: List[str],
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        context["relationship_guid"] = relationship_guid
        context["missing_guids"] = list(missing_guids)
        self.relationship_guid = relationship_guid
        self.missing_guids = list(missing_guids)
        super().__init__(message, context=context)


class ConfigurationError(LineageContextError):
    """Configuration values are invalid."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        invalid_settings: Optional[List[str]] = None,
    ):
        context = context or {}
        if invalid_settings:
            context["invalid_settings"] = list(invalid_settings)
        super().__init__(message, context=context)


# ==============================================================================
# Utilities
# ==============================================================================

def format_exception_chain(exc: BaseException) -> str:
    """Format the chain of causes of an exception as one line per link.

    Args:
        exc: Exception to format

    Returns:
        String such as "ConversionError: ... <- ValueError: ..."
    """
    parts = []
    current: Optional[BaseException] = exc
    while current is not None:
        if isinstance(current, LineageContextError):
            parts.append(f"{type(current).__name__}: {current.message}")
        else:
            parts.append(f"{type(current).__name__}: {current}")
        current = current.__cause__ or current.__context__
    return " <- ".join(parts)


__all__ = [
    "LineageContextError",
    "InvalidInputError",
    "ConversionError",
    "MissingVertexError",
    "ConfigurationError",
    "format_exception_chain",
]

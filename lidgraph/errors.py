"""
Error types for lidgraph.

This module defines all exception types raised by the store:
- LidGraphError: Base exception
- SchemaError: Malformed schema configuration (construction time)
- ValidationError: A single field write was rejected (write time)
- UniqueConstraintViolation: A unique value is already held by another entity
- ConfigurationError: Caller misuse of the public API
- InvalidEntityError: put() called with something that is not an entity tree

Invariants:
    - All errors inherit from LidGraphError
    - ValidationError and UniqueConstraintViolation are reported, never raised
      out of Database.put()
    - SchemaError and ConfigurationError always propagate to the caller
"""

from __future__ import annotations

from typing import Any


class LidGraphError(Exception):
    """Base exception for all lidgraph errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "LIDGRAPH_ERROR"
        self.details = details or {}


class SchemaError(LidGraphError):
    """Schema configuration is malformed.

    Raised when:
    - A reference field has no reverse, or the reverse is not symmetric
    - A capability is used on a field kind that does not support it
    - A field spec contains unknown keys
    """

    def __init__(
        self,
        message: str,
        field_name: str | None = None,
        suggestions: list[str] | None = None,
    ) -> None:
        suggestions = suggestions or []
        if suggestions:
            message += f". Did you mean: {', '.join(suggestions)}?"
        super().__init__(
            message,
            code="SCHEMA_ERROR",
            details={"field_name": field_name, "suggestions": suggestions},
        )
        self.field_name = field_name
        self.suggestions = suggestions


class ValidationError(LidGraphError):
    """A field write inside put() was rejected.

    The write is discarded and the rest of the put() proceeds.

    Attributes:
        lid: Entity the write targeted
        field_name: Field the write targeted
    """

    def __init__(
        self,
        message: str,
        lid: str | None = None,
        field_name: str | None = None,
        code: str = "VALIDATION_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            details={"lid": lid, "field": field_name, **(details or {})},
        )
        self.lid = lid
        self.field_name = field_name


class UniqueConstraintViolation(ValidationError):
    """A unique field value is already held by a different entity.

    Attributes:
        value: The conflicting value
        holder: lid of the entity that already holds the value
    """

    def __init__(
        self,
        lid: str,
        field_name: str,
        value: str,
        holder: str,
    ) -> None:
        super().__init__(
            f"Value {value!r} for unique field '{field_name}' is already held by '{holder}'",
            lid=lid,
            field_name=field_name,
            code="UNIQUE_VIOLATION",
            details={"value": value, "holder": holder},
        )
        self.value = value
        self.holder = holder


class ConfigurationError(LidGraphError):
    """The store was called in a way the schema does not allow.

    Raised when:
    - lookup() is called on a field not declared unique
    """

    def __init__(self, message: str, field_name: str | None = None) -> None:
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details={"field_name": field_name},
        )
        self.field_name = field_name


class InvalidEntityError(ConfigurationError):
    """put() was given a root that is not a mapping with a string lid."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.code = "INVALID_ENTITY"

"""Failure causes raised by the persistence layer.

Repositories convert driver exceptions into one of these tagged types so the
error translator can match on the type alone instead of inspecting arbitrary
exception attributes.
"""

from __future__ import annotations

from typing import Any


class StorageFault(Exception):
    """Base class for persistence failures that carry structured context."""


class CastFault(StorageFault):
    """A value could not be coerced to the column/field type."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(f"Cannot cast {field}={value!r}")
        self.field = field
        self.value = value


class DuplicateKeyFault(StorageFault):
    """A uniqueness constraint rejected the write."""

    def __init__(self, key_value: dict[str, Any]) -> None:
        super().__init__(f"Duplicate key {key_value!r}")
        self.key_value = dict(key_value)

    @property
    def value(self) -> Any:
        if not self.key_value:
            return None
        return next(iter(self.key_value.values()))


class SchemaFault(StorageFault):
    """Model-level validation rejected one or more fields."""

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("Schema validation failed")
        self.errors = dict(errors)

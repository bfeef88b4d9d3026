"""Named values shared between the steps of one scenario."""

from __future__ import annotations

import re
from typing import Any, TypeVar

from smoker.exceptions import ValidationError

T = TypeVar("T")

PROPERTY_PREFIX = "property:"
PROPERTY_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9_$]+$")
PROPERTY_REFERENCE_PATTERN = re.compile(r"^property:([a-zA-Z0-9_$]+)(?::(.*))?$", re.DOTALL)

_MISSING = object()


class WorldProperties:
    """Key/value store whose values steps can reference as ``property:key``.

    Keys must match ``[a-zA-Z0-9_$]+``. A reference may carry a default,
    ``property:key:default``, used when the key is not set.
    """

    def __init__(self) -> None:
        self._properties: dict[str, Any] = {}

    def __len__(self) -> int:
        return len(self._properties)

    def set(self, key: str, value: Any) -> None:
        self._validate_key(key)
        self._properties[key] = value

    def get(self, key: str, default: T | None = None) -> Any | T | None:
        self._validate_key(key)
        return self._properties.get(key, default)

    def has(self, key: str) -> bool:
        self._validate_key(key)
        return key in self._properties

    def delete(self, key: str) -> bool:
        """Remove ``key`` and return whether it was present."""
        self._validate_key(key)
        return self._properties.pop(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        self._properties.clear()

    def keys(self) -> list[str]:
        return list(self._properties)

    @staticmethod
    def is_property_reference(value: Any) -> bool:
        return isinstance(value, str) and PROPERTY_REFERENCE_PATTERN.match(value) is not None

    def resolve(self, value: str) -> str:
        """Resolve a ``property:key[:default]`` reference.

        Strings without the ``property:`` prefix are returned unchanged.

        Raises
        ------
        ValidationError
            If the reference is malformed, or names an unset key and carries
            no default
        """
        if not isinstance(value, str) or not value.startswith(PROPERTY_PREFIX):
            return value

        match = PROPERTY_REFERENCE_PATTERN.match(value)
        if match is None:
            raise ValidationError(
                f"Invalid property reference format: {value}",
                details={"component": "world", "input": value},
            )

        key, default = match.group(1), match.group(2)
        if key in self._properties:
            return str(self._properties[key])
        if default is not None:
            return default

        raise ValidationError(
            f"Property not found: {key}", details={"component": "world", "key": key}
        )

    @staticmethod
    def _validate_key(key: str) -> None:
        if not key or not isinstance(key, str):
            raise ValidationError(
                "Property key must be a non-empty string", details={"component": "world"}
            )
        if not PROPERTY_KEY_PATTERN.match(key):
            raise ValidationError(
                f"Invalid property key: {key}. Property keys must match pattern [a-zA-Z0-9_$]+",
                details={"component": "world", "key": key},
            )


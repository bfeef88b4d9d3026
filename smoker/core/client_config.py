"""Read-only per-client configuration store."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, TypeVar

from smoker.exceptions import ERR_CONFIG_MISSING, ConfigurationError

T = TypeVar("T")


def _type_name(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " | ".join(t.__name__ for t in expected)
    return expected.__name__


def _matches(value: Any, expected: type | tuple[type, ...]) -> bool:
    """Check a configuration value against the type a caller expects.

    ``bool`` is a subclass of ``int`` in Python, but a flag is never a valid
    port or timeout, so booleans only match when ``bool`` is expected. An
    ``int`` is accepted wherever a ``float`` is.
    """
    types = expected if isinstance(expected, tuple) else (expected,)

    if isinstance(value, bool):
        return bool in types or object in types

    if isinstance(value, int) and float in types:
        return True

    return isinstance(value, types)


class ClientConfig(Mapping[str, Any]):
    """Immutable key/value bag bound to a client at construction.

    The store keeps a shallow copy of the mapping it is built from: adding,
    removing or rebinding keys in the caller's dictionary never reaches a live
    client, while stored objects such as sessions or locks are held by
    reference and returned as they were passed in.

    Parameters
    ----------
    values : Mapping[str, Any] | None
        Configuration values; None means an empty configuration
    """

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ClientConfig({sorted(self._values)!r})"

    def get_config(self, key: str, default: T) -> T:
        """Return the stored value for ``key`` or ``default`` when absent.

        No coercion or validation is performed; a stored value of an
        unexpected type surfaces wherever the caller uses it.
        """
        if key in self._values:
            return self._values[key]
        return default

    def get_typed(
        self, key: str, default: T, expected_type: type | tuple[type, ...]
    ) -> T:
        """Return the stored value for ``key`` after checking its type.

        Parameters
        ----------
        key : str
            Configuration key
        default : T
            Value returned when ``key`` is absent; it is not type checked
        expected_type : type | tuple[type, ...]
            Type(s) the stored value must have

        Returns
        -------
        T
            Stored value or ``default``

        Raises
        ------
        ConfigurationError
            If the stored value does not match ``expected_type``
        """
        if key not in self._values:
            return default

        value = self._values[key]
        if not _matches(value, expected_type):
            raise ConfigurationError(
                f"Configuration key '{key}' must be {_type_name(expected_type)}, "
                f"got {type(value).__name__}",
                key=key,
                details={
                    "expected": _type_name(expected_type),
                    "actual": type(value).__name__,
                },
            )
        return value

    def require(self, key: str, expected_type: type | tuple[type, ...]) -> Any:
        """Return a mandatory value, rejecting absent, None and empty values."""
        value = self._values.get(key)
        if value is None or value == "" or value == [] or value == {}:
            raise ConfigurationError(
                f"Configuration key '{key}' is required",
                key=key,
                code=ERR_CONFIG_MISSING,
            )
        return self.get_typed(key, value, expected_type)

    def merged(self, overrides: Mapping[str, Any] | None) -> ClientConfig:
        """Return a new store with ``overrides`` applied on top of this one."""
        values = dict(self._values)
        values.update(overrides or {})
        return ClientConfig(values)

    def to_dict(self) -> dict[str, Any]:
        """Return a shallow copy of the stored values."""
        return dict(self._values)

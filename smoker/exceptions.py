"""Exception hierarchy for smoker.

Every error raised by smoker derives from :class:`SmokerError`, which carries a
stable machine-readable ``code``, a logical ``domain`` and serialisable
``details``. Lifecycle failures additionally carry a :class:`FailureKind` so
callers can branch on the kind of failure without inspecting message text.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

ERR_VALIDATION = "ERR_VALIDATION"
ERR_CONFIG_MISSING = "ERR_CONFIG_MISSING"
ERR_CONFIG_TYPE = "ERR_CONFIG_TYPE"
ERR_CONFIG_PARSE = "ERR_CONFIG_PARSE"
ERR_CLIENT_INIT = "ERR_CLIENT_INIT"
ERR_CLIENT_DESTROY = "ERR_CLIENT_DESTROY"
ERR_CLIENT_RESET = "ERR_CLIENT_RESET"
ERR_CLIENT_NOT_INITIALIZED = "ERR_CLIENT_NOT_INITIALIZED"
ERR_CLIENT_NOT_FOUND = "ERR_CLIENT_NOT_FOUND"
ERR_CLIENT_TEARDOWN = "ERR_CLIENT_TEARDOWN"
ERR_CLIENT_OPERATION = "ERR_CLIENT_OPERATION"
ERR_MQTT_CONNECT = "ERR_MQTT_CONNECT"
ERR_KAFKA_CONNECT = "ERR_KAFKA_CONNECT"


class FailureKind(str, Enum):
    """Kind tag attached to lifecycle and configuration failures."""

    INITIALIZATION = "initialization"
    DESTROY = "destroy"
    RESET = "reset"
    NOT_INITIALIZED = "not_initialized"
    CONFIGURATION = "configuration"


class SmokerError(Exception):
    """Root error for smoker.

    Parameters
    ----------
    message : str
        Human-readable message
    code : str
        Stable machine-readable error code
    domain : str
        Logical area the error belongs to (e.g. "client", "config", "aws")
    details : dict[str, Any] | None
        Serialisable diagnostic details; must not contain secrets
    retryable : bool
        Whether retrying the failed operation may succeed
    severity : str
        One of "info", "warn", "error", "fatal"
    """

    def __init__(
        self,
        message: str,
        code: str = ERR_VALIDATION,
        domain: str = "smoker",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
        severity: str = "error",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.domain = domain
        self.details = details or {}
        self.retryable = retryable
        self.severity = severity
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-safe representation without the traceback."""
        cause = self.__cause__
        return {
            "name": type(self).__name__,
            "code": self.code,
            "domain": self.domain,
            "message": self.message,
            "severity": self.severity,
            "retryable": self.retryable,
            "details": dict(self.details),
            "cause": (
                {"name": type(cause).__name__, "message": str(cause)}
                if cause is not None
                else None
            ),
            "timestamp": self.timestamp,
        }


def describe_error(error: BaseException) -> str:
    """Return the message of an exception, falling back to its type name."""
    return str(error) or type(error).__name__


class ClientLifecycleError(SmokerError):
    """Base class for failures of the client lifecycle state machine."""

    kind: FailureKind = FailureKind.INITIALIZATION
    code: str = ERR_CLIENT_INIT

    def __init__(
        self,
        message: str,
        client_name: str = "",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        merged_details = {"client": client_name, "kind": self.kind.value}
        merged_details.update(details or {})
        super().__init__(
            message,
            code=type(self).code,
            domain="client",
            details=merged_details,
            retryable=retryable,
        )
        self.client_name = client_name


class InitializationError(ClientLifecycleError):
    """Raised by a setup hook when a client cannot be initialized.

    The state machine never wraps setup failures, so this class only appears
    when a concrete client raises it itself (for example on missing
    configuration).
    """

    kind = FailureKind.INITIALIZATION
    code = ERR_CLIENT_INIT


class DestroyError(ClientLifecycleError):
    """Raised when a client's cleanup hook fails during destroy."""

    kind = FailureKind.DESTROY
    code = ERR_CLIENT_DESTROY
    PREFIX = "Failed to destroy client"

    def __init__(self, client_name: str, error: BaseException) -> None:
        super().__init__(
            f"{self.PREFIX}: {describe_error(error)}",
            client_name=client_name,
            details={"reason": describe_error(error)},
        )


class ResetError(ClientLifecycleError):
    """Raised when either phase of a reset fails.

    Attributes
    ----------
    phase : str
        "destroy" when cleanup failed, "init" when re-initialization failed
    """

    kind = FailureKind.RESET
    code = ERR_CLIENT_RESET
    PREFIX = "Failed to reset client"

    def __init__(self, client_name: str, error: BaseException, phase: str) -> None:
        super().__init__(
            f"{self.PREFIX}: {describe_error(error)}",
            client_name=client_name,
            details={"reason": describe_error(error), "phase": phase},
        )
        self.phase = phase


class NotInitializedError(ClientLifecycleError):
    """Raised when a client is used before init() completed."""

    kind = FailureKind.NOT_INITIALIZED
    code = ERR_CLIENT_NOT_INITIALIZED

    def __init__(self, client_name: str, message: str | None = None) -> None:
        super().__init__(
            message or f"{client_name} is not initialized. Call init() first.",
            client_name=client_name,
        )


class ConfigurationError(SmokerError):
    """Raised when a configuration value is missing or has the wrong type."""

    kind = FailureKind.CONFIGURATION

    def __init__(
        self,
        message: str,
        key: str = "",
        code: str = ERR_CONFIG_TYPE,
        details: dict[str, Any] | None = None,
    ) -> None:
        merged_details = {"key": key}
        merged_details.update(details or {})
        super().__init__(message, code=code, domain="config", details=merged_details)
        self.key = key


class ValidationError(SmokerError):
    """Raised when an operation receives invalid arguments."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message, code=ERR_VALIDATION, domain="validation", details=details
        )


class ClientNotFoundError(SmokerError, KeyError):
    """Raised when a client name is not present in a registry."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Client not found: {name}",
            code=ERR_CLIENT_NOT_FOUND,
            domain="registry",
            details={"client": name},
        )
        self.name = name

    def __str__(self) -> str:
        return self.message


class TeardownError(SmokerError):
    """Raised after a registry teardown in which one or more clients failed.

    Attributes
    ----------
    failures : dict[str, Exception]
        Mapping of client name to the error raised by its destroy()
    """

    def __init__(self, failures: dict[str, Exception]) -> None:
        summary = "; ".join(
            f"{name}: {describe_error(error)}" for name, error in failures.items()
        )
        super().__init__(
            f"Failed to destroy {len(failures)} client(s): {summary}",
            code=ERR_CLIENT_TEARDOWN,
            domain="registry",
            details={"clients": list(failures)},
        )
        self.failures = failures


class ClientOperationError(SmokerError):
    """Raised when a domain operation of a concrete client fails."""

    def __init__(
        self,
        message: str,
        component: str,
        operation: str,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
        code: str = ERR_CLIENT_OPERATION,
        domain: str = "client",
    ) -> None:
        merged_details = {"component": component, "operation": operation}
        merged_details.update(details or {})
        super().__init__(
            message,
            code=code,
            domain=domain,
            details=merged_details,
            retryable=retryable,
            severity="warn" if retryable else "error",
        )
        self.component = component
        self.operation = operation


class MqttConnectionError(ClientOperationError):
    """Raised when the MQTT client cannot reach or stay connected to the broker."""

    def __init__(self, message: str, url: str, client_id: str = "") -> None:
        super().__init__(
            message,
            component="mqtt",
            operation="connect",
            details={"url": url, "client_id": client_id},
            retryable=True,
            code=ERR_MQTT_CONNECT,
            domain="messaging",
        )


class KafkaConnectionError(ClientOperationError):
    """Raised when the Kafka client cannot reach any broker."""

    def __init__(self, message: str, brokers: list[str]) -> None:
        super().__init__(
            message,
            component="kafka",
            operation="connect",
            details={"brokers": list(brokers)},
            retryable=True,
            code=ERR_KAFKA_CONNECT,
            domain="messaging",
        )

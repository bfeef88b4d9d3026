import json

import pytest

from smoker.exceptions import (
    ERR_CLIENT_DESTROY,
    ERR_CLIENT_NOT_FOUND,
    ERR_KAFKA_CONNECT,
    ClientLifecycleError,
    ClientNotFoundError,
    ClientOperationError,
    DestroyError,
    FailureKind,
    InitializationError,
    KafkaConnectionError,
    MqttConnectionError,
    NotInitializedError,
    ResetError,
    SmokerError,
    TeardownError,
    describe_error,
)


class TestLifecycleErrors:
    def test_destroy_error_message_and_kind(self) -> None:
        error = DestroyError("S3Client", RuntimeError("Cleanup failed"))

        assert str(error) == "Failed to destroy client: Cleanup failed"
        assert error.kind is FailureKind.DESTROY
        assert error.code == ERR_CLIENT_DESTROY
        assert error.client_name == "S3Client"
        assert isinstance(error, ClientLifecycleError)

    def test_reset_error_carries_phase(self) -> None:
        error = ResetError("S3Client", RuntimeError("boom"), phase="init")

        assert str(error) == "Failed to reset client: boom"
        assert error.phase == "init"
        assert error.details["phase"] == "init"
        assert error.kind is FailureKind.RESET

    def test_not_initialized_default_message(self) -> None:
        error = NotInitializedError("SqsClient")

        assert str(error) == "SqsClient is not initialized. Call init() first."
        assert error.kind is FailureKind.NOT_INITIALIZED

    def test_initialization_error_kind(self) -> None:
        error = InitializationError("missing bucket", client_name="S3Client")

        assert error.kind is FailureKind.INITIALIZATION
        assert error.details["client"] == "S3Client"

    def test_empty_cause_message_uses_type_name(self) -> None:
        error = DestroyError("S3Client", TimeoutError())

        assert str(error) == "Failed to destroy client: TimeoutError"


class TestSmokerError:
    def test_to_dict_is_json_safe(self) -> None:
        try:
            raise DestroyError("S3Client", ValueError("bad"))
        except DestroyError as error:
            try:
                raise SmokerError("outer", details={"k": "v"}) from error
            except SmokerError as outer:
                data = outer.to_dict()

        json.dumps(data)
        assert data["name"] == "SmokerError"
        assert data["details"] == {"k": "v"}
        assert data["cause"] == {
            "name": "DestroyError",
            "message": "Failed to destroy client: bad",
        }

    def test_client_not_found_is_key_error(self) -> None:
        error = ClientNotFoundError("s3:backup")

        assert isinstance(error, KeyError)
        assert str(error) == "Client not found: s3:backup"
        assert error.code == ERR_CLIENT_NOT_FOUND

        with pytest.raises(KeyError):
            raise error

    def test_teardown_error_lists_failures(self) -> None:
        failures = {"s3": RuntimeError("a"), "sqs": RuntimeError("b")}

        error = TeardownError(failures)

        assert error.failures is failures
        assert "s3: a" in str(error)
        assert "sqs: b" in str(error)
        assert error.details["clients"] == ["s3", "sqs"]

    def test_operation_error_severity_follows_retryable(self) -> None:
        retryable = ClientOperationError("x", component="sqs", operation="send", retryable=True)
        fatal = ClientOperationError("x", component="sqs", operation="send")

        assert retryable.severity == "warn"
        assert fatal.severity == "error"
        assert fatal.details == {"component": "sqs", "operation": "send"}

    def test_messaging_connection_errors(self) -> None:
        mqtt_error = MqttConnectionError("refused", "mqtt://localhost:1883", "c1")
        kafka_error = KafkaConnectionError("no brokers", ["localhost:9092"])

        assert mqtt_error.retryable
        assert mqtt_error.details["url"] == "mqtt://localhost:1883"
        assert kafka_error.code == ERR_KAFKA_CONNECT
        assert kafka_error.details["brokers"] == ["localhost:9092"]
        assert isinstance(kafka_error, ClientOperationError)

    def test_describe_error(self) -> None:
        assert describe_error(RuntimeError("x")) == "x"
        assert describe_error(RuntimeError()) == "RuntimeError"

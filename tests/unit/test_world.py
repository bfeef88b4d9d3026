from unittest.mock import AsyncMock

import boto3
import pytest
from conftest import RecordingClient

from smoker.clients.http import RestClient
from smoker.constants import ClientType
from smoker.exceptions import (
    ClientNotFoundError,
    ClientOperationError,
    ConfigurationError,
    ValidationError,
)
from smoker.world import SmokeWorld, WorldProperties


class TestWorldProperties:
    def test_set_get_has_delete(self) -> None:
        properties = WorldProperties()

        properties.set("order_id", 42)

        assert properties.has("order_id")
        assert properties.get("order_id") == 42
        assert properties.keys() == ["order_id"]
        assert properties.delete("order_id") is True
        assert properties.delete("order_id") is False
        assert properties.get("order_id", "none") == "none"

    @pytest.mark.parametrize("key", ["", "with space", "dash-key", "dot.key"])
    def test_invalid_keys(self, key: str) -> None:
        with pytest.raises(ValidationError):
            WorldProperties().set(key, 1)

    def test_dollar_and_underscore_allowed(self) -> None:
        properties = WorldProperties()
        properties.set("$last_id_1", "x")

        assert properties.get("$last_id_1") == "x"

    def test_is_property_reference(self) -> None:
        assert WorldProperties.is_property_reference("property:id")
        assert WorldProperties.is_property_reference("property:id:default")
        assert not WorldProperties.is_property_reference("id")
        assert not WorldProperties.is_property_reference(42)

    def test_resolve(self) -> None:
        properties = WorldProperties()
        properties.set("count", 3)

        assert properties.resolve("property:count") == "3"
        assert properties.resolve("property:missing:fallback") == "fallback"
        assert properties.resolve("property:missing:a:b") == "a:b"
        assert properties.resolve("plain text") == "plain text"

    def test_resolve_missing_without_default(self) -> None:
        with pytest.raises(ValidationError, match="Property not found: missing"):
            WorldProperties().resolve("property:missing")

    def test_resolve_malformed_reference(self) -> None:
        with pytest.raises(ValidationError, match="Invalid property reference format"):
            WorldProperties().resolve("property:bad key")


class TestSmokeWorldClients:
    def test_client_configs_create_clients(self) -> None:
        world = SmokeWorld(
            {"rest": {"base_url": "https://example.com"}, "s3:backup": {"bucket": "b"}}
        )

        assert world.has_client("rest")
        assert world.has_client("s3:backup")
        assert world.get_client("s3:backup").name == "backup"
        assert not world.get_client("rest").is_initialized()

    def test_get_missing_client(self) -> None:
        with pytest.raises(ClientNotFoundError):
            SmokeWorld().get_client("rest")

    def test_register_client(self) -> None:
        world = SmokeWorld()
        client = RecordingClient("custom")

        world.register_client("custom", client)

        assert world.get_client("custom") is client

    def test_register_client_with_config_explicit_id(self) -> None:
        world = SmokeWorld()

        client = world.register_client_with_config(
            ClientType.REST, {"base_url": "https://a.example.com"}, "orders"
        )

        assert isinstance(client, RestClient)
        assert client.name == "orders"
        assert world.get_client("rest:orders") is client
        assert world.config_registry.has_config("rest", "orders")

    def test_register_client_with_config_id_from_config(self) -> None:
        world = SmokeWorld()

        client = world.register_client_with_config("rest", {"id": "billing"})

        assert client.name == "billing"
        assert world.has_client("rest:billing")

    def test_register_client_with_config_default_name(self) -> None:
        world = SmokeWorld()

        client = world.register_client_with_config("rest", {})

        assert client.name == "rest"
        assert world.has_client("rest")

    def test_create_client_is_untracked(self) -> None:
        world = SmokeWorld()

        client = world.create_client(ClientType.REST)

        assert client.name == "rest"
        assert not world.has_client("rest")

    @pytest.mark.asyncio
    async def test_initialize_reset_destroy(self) -> None:
        world = SmokeWorld()
        client = RecordingClient("custom")
        world.register_client("custom", client)

        await world.initialize_clients()
        await world.reset_clients()
        await world.destroy_clients()

        assert client.calls == ["setup", "cleanup", "setup", "cleanup"]
        assert not world.has_client("custom")

    @pytest.mark.asyncio
    async def test_initialize_clients_with_configs(self) -> None:
        world = SmokeWorld()

        await world.initialize_clients({"rest": {"base_url": "https://example.com"}})

        assert world.get_client("rest").is_initialized()
        await world.destroy_clients()

    @pytest.mark.asyncio
    async def test_initialize_failure_propagates(self) -> None:
        world = SmokeWorld()
        client = RecordingClient("custom")
        client.initialize_client = AsyncMock(side_effect=RuntimeError("boom"))
        world.register_client("custom", client)

        with pytest.raises(RuntimeError, match="boom"):
            await world.initialize_clients()


class TestSmokeWorldProperties:
    def test_property_accessors(self) -> None:
        world = SmokeWorld()

        world.set_property("token", "abc")

        assert world.has_property("token")
        assert world.get_property("token") == "abc"
        assert world.get_property("other", "default") == "default"

    def test_delete_missing_property(self) -> None:
        with pytest.raises(ValidationError, match="Property not found: token"):
            SmokeWorld().delete_property("token")

    @pytest.mark.asyncio
    async def test_resolve_param_nested(self) -> None:
        world = SmokeWorld(settings={"api": {"host": "api.example.com"}})
        world.set_property("order_id", "A-1")

        resolved = await world.resolve_param(
            {
                "url": "https://config:api.host/orders",
                "ids": ["property:order_id", "property:x:none"],
                "count": 3,
                "missing": None,
            }
        )

        assert resolved == {
            "url": "https://api.example.com/orders",
            "ids": ["A-1", "none"],
            "count": 3,
            "missing": None,
        }

    @pytest.mark.asyncio
    async def test_resolve_config_reference_to_property(self) -> None:
        world = SmokeWorld(settings={"refs": {"order": "property:order_id"}})
        world.set_property("order_id", "A-2")

        assert await world.resolve_param("config:refs.order") == "A-2"

    @pytest.mark.asyncio
    async def test_resolve_missing_setting(self) -> None:
        with pytest.raises(ConfigurationError, match="Configuration value not found: api.port"):
            await SmokeWorld().resolve_param("config:api.port")

    def test_attachments(self) -> None:
        world = SmokeWorld()
        error = RuntimeError("failed")

        world.attach_response({"status": 200})
        world.attach_content("body")
        world.attach_error(error)

        assert world.get_last_response() == {"status": 200}
        assert world.get_last_content() == "body"
        assert world.get_last_error() is error


class TestSmokeWorldParameters:
    @pytest.mark.asyncio
    async def test_resolve_param_reads_ssm(self, mocked_aws: None) -> None:
        boto3.client("ssm", region_name="us-east-1").put_parameter(
            Name="/smoke/api-key", Value="secret-key", Type="SecureString"
        )
        world = SmokeWorld(settings={"api": {"key": "ssm:///smoke/api-key"}})

        assert await world.resolve_param("ssm:///smoke/api-key") == "secret-key"
        assert await world.resolve_param("key=config:api.key") == "key=secret-key"

        await world.destroy_clients()

    @pytest.mark.asyncio
    async def test_property_holding_reference_is_resolved(self, mocked_aws: None) -> None:
        boto3.client("ssm", region_name="us-east-1").put_parameter(
            Name="/smoke/host", Value="api.internal", Type="String"
        )
        world = SmokeWorld()
        world.set_property("host_ref", "ssm:///smoke/host")

        assert await world.resolve_param("property:host_ref") == "api.internal"

        await world.destroy_clients()

    @pytest.mark.asyncio
    async def test_initialize_clients_resolves_references(self, mocked_aws: None) -> None:
        boto3.client("ssm", region_name="us-east-1").put_parameter(
            Name="/smoke/base-url", Value="https://api.example.com", Type="String"
        )
        world = SmokeWorld()

        await world.initialize_clients({"rest": {"base_url": "ssm:///smoke/base-url"}})

        client = world.get_client("rest")
        assert client.is_initialized()
        assert client.base_url == "https://api.example.com"

        await world.destroy_clients()

    @pytest.mark.asyncio
    async def test_missing_parameter_fails_initialization(self, mocked_aws: None) -> None:
        world = SmokeWorld()

        with pytest.raises(ClientOperationError, match="/smoke/missing"):
            await world.initialize_clients({"rest": {"base_url": "ssm:///smoke/missing"}})

        assert not world.has_client("rest")
        await world.destroy_clients()

from unittest.mock import AsyncMock

import pytest
from conftest import RecordingClient

from smoker.clients.aws import S3Client, SqsClient
from smoker.clients.http import RestClient
from smoker.constants import ClientDescriptor, ClientType
from smoker.exceptions import ClientNotFoundError, DestroyError, TeardownError
from smoker.registry import (
    ClientConfigRegistry,
    ClientFactory,
    ClientRegistry,
    config_key,
    get_client_class,
    list_client_types,
    register_client_type,
)


@pytest.fixture
def config_registry() -> ClientConfigRegistry:
    return ClientConfigRegistry()


@pytest.fixture
def factory(config_registry: ClientConfigRegistry) -> ClientFactory:
    return ClientFactory(
        config_registry,
        client_classes={ClientType.REST: RecordingClient, ClientType.S3: RecordingClient},
    )


@pytest.fixture
def registry(factory: ClientFactory) -> ClientRegistry:
    return ClientRegistry(factory)


class TestClientConfigRegistry:
    def test_config_key(self) -> None:
        assert config_key(ClientType.S3) == "s3"
        assert config_key(ClientType.S3, "backup") == "s3:backup"
        assert config_key("sqs", None) == "sqs"

    def test_exact_key_wins(self, config_registry: ClientConfigRegistry) -> None:
        config_registry.register_config(ClientType.S3, {"bucket": "default"})
        config_registry.register_config(ClientType.S3, {"bucket": "backup"}, "backup")

        assert config_registry.get_config(ClientType.S3)["bucket"] == "default"
        assert config_registry.get_config(ClientType.S3, "backup")["bucket"] == "backup"

    def test_falls_back_to_type_default(self, config_registry: ClientConfigRegistry) -> None:
        config_registry.register_config("s3", {"bucket": "default"})

        assert config_registry.get_config("s3", "other")["bucket"] == "default"
        assert config_registry.has_config("s3", "other")

    def test_missing_config(self, config_registry: ClientConfigRegistry) -> None:
        assert config_registry.get_config(ClientType.SQS) is None
        assert not config_registry.has_config(ClientType.SQS, "x")

    def test_register_configs_skips_non_mappings(
        self, config_registry: ClientConfigRegistry
    ) -> None:
        config_registry.register_configs(
            {"s3": {"bucket": "a"}, "sqs:orders": {"queue_url": "q"}, "rest": "nope"}
        )

        assert sorted(config_registry.all_configs()) == ["s3", "sqs:orders"]
        assert config_registry.get_config("sqs", "orders")["queue_url"] == "q"

    def test_registered_config_is_a_copy(self, config_registry: ClientConfigRegistry) -> None:
        values = {"bucket": "a"}
        config_registry.register_config("s3", values)
        values["bucket"] = "b"

        assert config_registry.get_config("s3")["bucket"] == "a"

    def test_clear(self, config_registry: ClientConfigRegistry) -> None:
        config_registry.register_config("s3", {"bucket": "a"})
        config_registry.clear()

        assert len(config_registry) == 0


class TestClientFactory:
    def test_builtin_types_registered(self) -> None:
        assert set(list_client_types()) == set(ClientType)
        assert get_client_class(ClientType.S3) is S3Client
        assert get_client_class("sqs") is SqsClient
        assert get_client_class("REST") is RestClient

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown client type: ftp"):
            get_client_class("ftp")

    def test_register_client_type_replaces_class(self) -> None:
        original = get_client_class(ClientType.REST)
        try:
            register_client_type("rest", RecordingClient)
            assert get_client_class(ClientType.REST) is RecordingClient
        finally:
            register_client_type(ClientType.REST, original)

    def test_name_defaults_to_type(self, factory: ClientFactory) -> None:
        client = factory.create_client(ClientType.REST)

        assert isinstance(client, RecordingClient)
        assert client.name == "rest"
        assert not client.is_initialized()

    def test_name_from_explicit_id(
        self, factory: ClientFactory, config_registry: ClientConfigRegistry
    ) -> None:
        config_registry.register_config("s3", {"bucket": "a", "id": "configured"})

        client = factory.create_client("s3", "explicit")

        assert client.name == "explicit"
        assert client.get_config("bucket", "") == "a"

    def test_name_from_config_id(
        self, factory: ClientFactory, config_registry: ClientConfigRegistry
    ) -> None:
        config_registry.register_config("s3", {"bucket": "a", "id": "configured"})

        assert factory.create_client("s3").name == "configured"

    def test_default_factory_uses_type_table(self) -> None:
        client = ClientFactory().create_client(ClientType.S3)

        assert isinstance(client, S3Client)

    @pytest.mark.asyncio
    async def test_create_and_initialize(self, factory: ClientFactory) -> None:
        client = await factory.create_and_initialize(ClientType.REST)

        assert client.is_initialized()


class TestClientRegistry:
    def test_get_client_creates_once(self, registry: ClientRegistry) -> None:
        first = registry.get_client(ClientType.REST)
        second = registry.get_client("rest")

        assert first is second
        assert registry.names() == ["rest"]
        assert registry.descriptors() == [
            ClientDescriptor(name="rest", client_type=ClientType.REST)
        ]

    def test_clients_keyed_by_type_and_id(self, registry: ClientRegistry) -> None:
        default = registry.get_client(ClientType.S3)
        backup = registry.get_client(ClientType.S3, "backup")

        assert default is not backup
        assert backup.name == "backup"
        assert registry.get("s3:backup") is backup
        assert "s3:backup" in registry

    def test_get_unknown_type(self, registry: ClientRegistry) -> None:
        with pytest.raises(ValueError):
            registry.get_client("ftp")

    def test_get_missing_client(self, registry: ClientRegistry) -> None:
        with pytest.raises(ClientNotFoundError, match="Client not found: sqs"):
            registry.get("sqs")

    def test_register_client_conflict(self, registry: ClientRegistry) -> None:
        client = RecordingClient("a")
        registry.register_client("custom", client)
        registry.register_client("custom", client)

        with pytest.raises(ValueError, match="already registered"):
            registry.register_client("custom", RecordingClient("b"))

    @pytest.mark.asyncio
    async def test_get_initialized_client(self, registry: ClientRegistry) -> None:
        client = await registry.get_initialized_client(ClientType.REST)

        assert client.is_initialized()

    def test_create_configured_clients(
        self, registry: ClientRegistry, config_registry: ClientConfigRegistry
    ) -> None:
        config_registry.register_configs({"rest": {}, "s3:backup": {"bucket": "b"}})

        created = registry.create_configured_clients()

        assert [client.name for client in created] == ["rest", "backup"]
        assert registry.names() == ["rest", "s3:backup"]

    @pytest.mark.asyncio
    async def test_initialize_and_reset_all(self, registry: ClientRegistry) -> None:
        rest = registry.get_client(ClientType.REST)
        s3 = registry.get_client(ClientType.S3)

        await registry.initialize_all()
        await registry.reset_all()

        assert rest.calls == ["setup", "cleanup", "setup"]
        assert s3.is_initialized()

    @pytest.mark.asyncio
    async def test_initialize_all_stops_at_first_failure(self, registry: ClientRegistry) -> None:
        rest = registry.get_client(ClientType.REST)
        s3 = registry.get_client(ClientType.S3)
        rest.setup_error = RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await registry.initialize_all()

        assert not s3.is_initialized()

    @pytest.mark.asyncio
    async def test_destroy_all_reverse_order(self, registry: ClientRegistry) -> None:
        order: list[str] = []
        for name in ("first", "second", "third"):
            client = RecordingClient(name)
            client.cleanup_client = AsyncMock(side_effect=lambda n=name: order.append(n))
            registry.register_client(name, client)

        await registry.initialize_all()
        await registry.destroy_all()

        assert order == ["third", "second", "first"]
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_destroy_all_continues_past_failures(
        self, registry: ClientRegistry, caplog: pytest.LogCaptureFixture
    ) -> None:
        broken = RecordingClient("broken")
        broken.cleanup_error = RuntimeError("Cleanup failed")
        healthy = RecordingClient("healthy")
        registry.register_client("broken", broken)
        registry.register_client("healthy", healthy)
        await registry.initialize_all()

        with pytest.raises(TeardownError) as exc_info:
            await registry.destroy_all()

        assert list(exc_info.value.failures) == ["broken"]
        assert isinstance(exc_info.value.failures["broken"], DestroyError)
        assert not healthy.is_initialized()
        assert len(registry) == 0
        assert "Failed to destroy client broken" in caplog.text

    @pytest.mark.asyncio
    async def test_async_context_manager_destroys(self, factory: ClientFactory) -> None:
        async with ClientRegistry(factory) as registry:
            client = await registry.get_initialized_client(ClientType.REST)

        assert not client.is_initialized()
        assert len(registry) == 0

    def test_registries_are_independent(self, factory: ClientFactory) -> None:
        one = ClientRegistry(factory)
        two = ClientRegistry(factory)

        assert one.get_client(ClientType.REST) is not two.get_client(ClientType.REST)

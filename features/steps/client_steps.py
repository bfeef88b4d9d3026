"""Step definitions for the generic client lifecycle."""

import json
import logging

from behave import given, then, when
from behave.runner import Context

from smoker.exceptions import SmokerError

logger = logging.getLogger(__name__)


def _client_config(context: Context) -> dict:
    if context.text:
        return json.loads(context.text)
    if context.table:
        return {row["key"]: row["value"] for row in context.table}
    return {}


@given('a "{client_type}" client configured with')
def step_client_configured_with(context: Context, client_type: str) -> None:
    context.client = context.world.register_client_with_config(
        client_type, _client_config(context)
    )


@given('a "{client_type}" client named "{client_id}" configured with')
def step_named_client_configured_with(context: Context, client_type: str, client_id: str) -> None:
    context.client = context.world.register_client_with_config(
        client_type, _client_config(context), client_id
    )


@given("the client is initialized")
@when("I initialize the client")
def step_initialize_client(context: Context) -> None:
    context.loop.run_until_complete(context.client.init())


@when("I try to initialize the client")
def step_try_initialize_client(context: Context) -> None:
    try:
        context.loop.run_until_complete(context.client.init())
    except SmokerError as e:
        context.error = e
        context.world.attach_error(e)


@when("I destroy the client")
def step_destroy_client(context: Context) -> None:
    context.loop.run_until_complete(context.client.destroy())


@when("I reset the client")
def step_reset_client(context: Context) -> None:
    context.loop.run_until_complete(context.client.reset())


@when("I initialize all clients")
def step_initialize_all_clients(context: Context) -> None:
    context.loop.run_until_complete(context.world.initialize_clients())


@when("I destroy all clients")
def step_destroy_all_clients(context: Context) -> None:
    context.loop.run_until_complete(context.world.destroy_clients())


@then("the client should be initialized")
def step_client_initialized(context: Context) -> None:
    assert context.client.is_initialized(), f"{context.client.name} is not initialized"


@then("the client should not be initialized")
def step_client_not_initialized(context: Context) -> None:
    assert not context.client.is_initialized(), f"{context.client.name} is still initialized"


@then('the client should be named "{name}"')
def step_client_named(context: Context, name: str) -> None:
    assert context.client.name == name, f"Expected {name}, got {context.client.name}"


@then('the world should have a client "{name}"')
def step_world_has_client(context: Context, name: str) -> None:
    assert context.world.has_client(name), f"No client registered as {name}"


@then('the world should have no client "{name}"')
def step_world_has_no_client(context: Context, name: str) -> None:
    assert not context.world.has_client(name), f"Client {name} is still registered"


@then('initialization should fail with "{message}"')
def step_initialization_failed(context: Context, message: str) -> None:
    assert context.error is not None, "Expected initialization to fail"
    assert message in str(context.error), f"Unexpected error: {context.error}"

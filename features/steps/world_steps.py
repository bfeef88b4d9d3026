"""Step definitions for world properties and parameter resolution."""

import boto3
from behave import given, then, when
from behave.runner import Context

from smoker.exceptions import SmokerError

TEST_REGION = "us-east-1"


@given('property "{key}" is set to "{value}"')
def step_set_property(context: Context, key: str, value: str) -> None:
    context.world.set_property(key, value)


@given('SSM parameter "{name}" is set to "{value}"')
def step_ssm_parameter_set(context: Context, name: str, value: str) -> None:
    boto3.client("ssm", region_name=TEST_REGION).put_parameter(
        Name=name, Value=value, Type="String", Overwrite=True
    )


@given('S3 object "{key}" in bucket "{bucket}" contains')
def step_s3_object_contains(context: Context, key: str, bucket: str) -> None:
    boto3.client("s3", region_name=TEST_REGION).put_object(
        Bucket=bucket, Key=key, Body=context.text.encode("utf-8")
    )


@when('I delete property "{key}"')
def step_delete_property(context: Context, key: str) -> None:
    context.world.delete_property(key)


@when('I resolve the parameter "{param}"')
def step_resolve_parameter(context: Context, param: str) -> None:
    try:
        context.resolved = context.loop.run_until_complete(context.world.resolve_param(param))
    except SmokerError as e:
        context.error = e


@then('the resolved value should be "{expected}"')
def step_resolved_value(context: Context, expected: str) -> None:
    assert context.error is None, f"Resolution failed: {context.error}"
    assert context.resolved == expected, f"Expected {expected!r}, got {context.resolved!r}"


@then('the resolved field "{field}" should be "{expected}"')
def step_resolved_field(context: Context, field: str, expected: str) -> None:
    assert context.error is None, f"Resolution failed: {context.error}"
    actual = context.resolved.get(field)
    assert actual == expected, f"Expected {field}={expected!r}, got {actual!r}"


@then('resolution should fail with "{message}"')
def step_resolution_failed(context: Context, message: str) -> None:
    assert context.error is not None, "Expected resolution to fail"
    assert message in str(context.error), f"Unexpected error: {context.error}"


@then('property "{key}" should not exist')
def step_property_missing(context: Context, key: str) -> None:
    assert not context.world.has_property(key), f"Property {key} still exists"

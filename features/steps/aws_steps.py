"""Step definitions for the AWS clients, backed by moto."""

import boto3
from behave import given, then, when
from behave.runner import Context

from smoker.constants import ClientType

TEST_REGION = "us-east-1"


@given('an S3 bucket "{bucket}" exists')
def step_s3_bucket_exists(context: Context, bucket: str) -> None:
    boto3.client("s3", region_name=TEST_REGION).create_bucket(Bucket=bucket)


@given('an SQS queue "{queue_name}" exists')
def step_sqs_queue_exists(context: Context, queue_name: str) -> None:
    response = boto3.client("sqs", region_name=TEST_REGION).create_queue(QueueName=queue_name)
    context.queue_url = response["QueueUrl"]


@given('an S3 client for bucket "{bucket}"')
def step_s3_client_for_bucket(context: Context, bucket: str) -> None:
    context.client = context.world.register_client_with_config(
        ClientType.S3, {"bucket": bucket, "region": TEST_REGION}
    )
    context.loop.run_until_complete(context.client.init())


@given("an SSM client")
def step_ssm_client(context: Context) -> None:
    context.client = context.world.register_client_with_config(
        ClientType.SSM, {"region": TEST_REGION}
    )
    context.loop.run_until_complete(context.client.init())


@given("an SQS client for that queue")
def step_sqs_client(context: Context) -> None:
    context.client = context.world.register_client_with_config(
        ClientType.SQS, {"queue_url": context.queue_url, "region": TEST_REGION}
    )
    context.loop.run_until_complete(context.client.init())


@when('I write "{content}" to object "{key}"')
def step_write_object(context: Context, content: str, key: str) -> None:
    context.loop.run_until_complete(context.client.write(key, content))


@when('I delete object "{key}"')
def step_delete_object(context: Context, key: str) -> None:
    context.loop.run_until_complete(context.client.delete(key))


@then('object "{key}" should contain "{content}"')
def step_object_contains(context: Context, key: str, content: str) -> None:
    actual = context.loop.run_until_complete(context.client.read(key))
    assert actual == content, f"Expected {content!r}, got {actual!r}"


@then('object "{key}" should not exist')
def step_object_missing(context: Context, key: str) -> None:
    response = boto3.client("s3", region_name=TEST_REGION).list_objects_v2(
        Bucket=context.client.bucket, Prefix=key
    )
    assert response.get("KeyCount", 0) == 0, f"Object {key} still exists"


@when('I write parameter "{name}" with value "{value}"')
def step_write_parameter(context: Context, name: str, value: str) -> None:
    context.loop.run_until_complete(context.client.write(name, value))


@when('I write secure parameter "{name}" with value "{value}"')
def step_write_secure_parameter(context: Context, name: str, value: str) -> None:
    context.loop.run_until_complete(context.client.write(name, value, "SecureString"))


@then('parameter "{name}" should have value "{value}"')
def step_parameter_value(context: Context, name: str, value: str) -> None:
    actual = context.loop.run_until_complete(context.client.read(name, with_decryption=True))
    assert actual == value, f"Expected {value!r}, got {actual!r}"


@when('I send message "{body}"')
def step_send_message(context: Context, body: str) -> None:
    context.message_id = context.loop.run_until_complete(context.client.send_message(body))


@then('I should receive message "{body}"')
def step_receive_message(context: Context, body: str) -> None:
    messages = context.loop.run_until_complete(context.client.receive_messages(max_messages=10))
    bodies = [message.body for message in messages]
    assert body in bodies, f"Message {body!r} not in {bodies}"

    for message in messages:
        context.loop.run_until_complete(context.client.delete_message(message.receipt_handle))


@then("the queue should be empty")
def step_queue_empty(context: Context) -> None:
    messages = context.loop.run_until_complete(context.client.receive_messages(max_messages=10))
    assert messages == [], f"Queue still holds {len(messages)} message(s)"

"""Behave environment configuration for smoker tests."""

import asyncio
import logging
import os
import sys

from behave.model import Scenario
from behave.runner import Context
from moto import mock_aws

from smoker.exceptions import TeardownError
from smoker.logging import ClientFormatter
from smoker.world import SmokeWorld

logger = logging.getLogger(__name__)

TEST_REGION = "us-east-1"


def run_async(context: Context, coro):
    """Run a coroutine on the scenario's event loop and return its result."""
    return context.loop.run_until_complete(coro)


def before_all(context: Context) -> None:
    """Setup executed before all tests."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ClientFormatter("%(levelname)s %(name)s %(message)s"))
    logging.basicConfig(level=logging.INFO, handlers=[handler])

    for noisy_module in ["botocore", "boto3", "urllib3"]:
        logging.getLogger(noisy_module).setLevel(logging.WARNING)

    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = TEST_REGION


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Setup executed before each scenario."""
    context.mock_aws_env = mock_aws()
    context.mock_aws_env.start()

    context.loop = asyncio.new_event_loop()
    context.world = SmokeWorld()
    context.error = None

    logger.debug("Prepared world for scenario: %s", scenario.name)


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Cleanup executed after each scenario."""
    try:
        run_async(context, context.world.destroy_clients())
    except TeardownError as e:
        logger.warning("Client teardown failed for %s: %s", scenario.name, e)
    finally:
        context.loop.close()
        context.mock_aws_env.stop()

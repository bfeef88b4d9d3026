"""AWS service clients built on boto3."""

from smoker.clients.aws.base import AwsServiceClient
from smoker.clients.aws.cloudwatch import CloudWatchClient, LogEvent
from smoker.clients.aws.kinesis import KinesisClient, KinesisRecord
from smoker.clients.aws.s3 import S3Client
from smoker.clients.aws.sqs import SqsClient, SqsMessage
from smoker.clients.aws.ssm import SsmClient

__all__ = [
    "AwsServiceClient",
    "CloudWatchClient",
    "KinesisClient",
    "KinesisRecord",
    "LogEvent",
    "S3Client",
    "SqsClient",
    "SqsMessage",
    "SsmClient",
]

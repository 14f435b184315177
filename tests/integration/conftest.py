"""Pytest configuration and fixtures for integration tests against real AWS."""

import os
import subprocess
import time
import uuid
from pathlib import Path
from typing import Generator

import boto3
import pytest
from botocore.exceptions import BotoCoreError, ClientError

from deployer.config import Settings


def check_aws_credentials():
    """Check if AWS credentials are configured."""
    try:
        sts = boto3.client("sts")
        identity = sts.get_caller_identity()
        return True, identity
    except (BotoCoreError, ClientError):
        return False, None


@pytest.fixture(scope="session", autouse=True)
def require_integration_opt_in():
    """Skip unless integration runs were requested and credentials work."""
    if os.environ.get("OMS_RUN_INTEGRATION") != "1":
        pytest.skip("Set OMS_RUN_INTEGRATION=1 to provision real AWS resources")

    has_creds, identity = check_aws_credentials()
    if not has_creds:
        pytest.skip("AWS credentials not configured (run: aws configure)")
    print(f"\nAWS Account: {identity['Account']}")
    print(f"AWS User/Role: {identity['Arn']}\n")


@pytest.fixture(scope="session")
def aws_region() -> str:
    """Get AWS region from environment or AWS config."""
    region = os.environ.get("AWS_REGION")
    if region:
        return region

    try:
        result = subprocess.run(
            ["aws", "configure", "get", "region"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except (OSError, subprocess.TimeoutExpired):
        pass

    return "us-east-1"


@pytest.fixture(scope="session")
def unique_suffix() -> str:
    """Generate a unique suffix to avoid clashing with real resources."""
    return f"it-{int(time.time())}-{str(uuid.uuid4())[:8]}"


@pytest.fixture(scope="session")
def integration_settings(
    tmp_path_factory, aws_region: str, unique_suffix: str
) -> Generator[Settings, None, None]:
    """Settings with uniquely named resources, torn down after the session.

    Yields:
        Settings pointing at a temporary project root.
    """
    root: Path = tmp_path_factory.mktemp("oms-root")
    settings = Settings.from_env(
        {
            "AWS_REGION": aws_region,
            "DYNAMODB_TABLE": f"orders-{unique_suffix}",
            "S3_BUCKET_PREFIX": f"oms-invoices-{unique_suffix}",
            "SNS_TOPIC_NAME": f"order-notifications-{unique_suffix}",
        },
        root=root,
    )

    yield settings

    print(f"\nDeleting integration test resources: {unique_suffix}")
    dynamodb = boto3.client("dynamodb", region_name=aws_region)
    s3 = boto3.resource("s3", region_name=aws_region)
    sns = boto3.client("sns", region_name=aws_region)

    try:
        dynamodb.delete_table(TableName=settings.table_name)
    except ClientError as e:
        print(f"WARNING: could not delete table: {e}")

    for bucket in s3.buckets.all():
        if bucket.name.startswith(settings.bucket_prefix):
            try:
                bucket.objects.all().delete()
                bucket.delete()
            except ClientError as e:
                print(f"WARNING: could not delete bucket {bucket.name}: {e}")

    for topic in sns.list_topics().get("Topics", []):
        if topic["TopicArn"].endswith(f":{settings.topic_name}"):
            sns.delete_topic(TopicArn=topic["TopicArn"])


@pytest.fixture(scope="session")
def dynamodb_client(aws_region: str):
    """Create DynamoDB client."""
    return boto3.client("dynamodb", region_name=aws_region)


@pytest.fixture(scope="session")
def s3_client(aws_region: str):
    """Create S3 client."""
    return boto3.client("s3", region_name=aws_region)


@pytest.fixture(scope="session")
def sns_client(aws_region: str):
    """Create SNS client."""
    return boto3.client("sns", region_name=aws_region)

"""Provision the AWS resources the order service depends on."""

import time
from typing import Any, Callable, NamedTuple, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from deployer import console
from deployer.config import Settings
from deployer.env_file import BUCKET_NAME_KEY, TOPIC_ARN_KEY, write_env_file
from deployer.errors import ProvisioningError


# Error codes that mean the resource is already there
ALREADY_EXISTS_CODES = frozenset(
    {
        "ResourceInUseException",
        "BucketAlreadyOwnedByYou",
        "BucketAlreadyExists",
    }
)

CORS_CONFIGURATION = {
    "CORSRules": [
        {
            "AllowedHeaders": ["*"],
            "AllowedMethods": ["GET", "PUT", "POST", "DELETE"],
            "AllowedOrigins": ["*"],
            "ExposeHeaders": [],
        }
    ]
}


def client_config(region: str) -> Config:
    """botocore config shared by every client the tool creates."""
    return Config(region_name=region, retries={"max_attempts": 3, "mode": "standard"})


def error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class ProvisionedResources(NamedTuple):
    bucket_name: str
    topic_arn: str


class Provisioner:
    """Creates the orders table, invoices bucket and notifications topic."""

    def __init__(
        self,
        settings: Settings,
        session: Optional[Any] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.clock = clock
        config = client_config(settings.region)
        try:
            self.session = session or boto3.Session(region_name=settings.region)
            self.dynamodb = self.session.client("dynamodb", config=config)
            self.s3 = self.session.client("s3", config=config)
            self.sns = self.session.client("sns", config=config)
        except BotoCoreError as e:
            raise ProvisioningError(f"Could not create AWS clients: {e}") from e

    def _tolerate_existing(self, error: ClientError, message: str) -> None:
        """Downgrade an already-exists error to a warning; anything else is fatal."""
        code = error_code(error)
        if code in ALREADY_EXISTS_CODES:
            console.warning(message)
            return
        raise ProvisioningError(
            f"{message} ({code or 'unknown error'}): {error}"
        ) from error

    def create_table(self) -> None:
        console.info("Creating DynamoDB table...")
        key = self.settings.table_key
        try:
            self.dynamodb.create_table(
                TableName=self.settings.table_name,
                AttributeDefinitions=[{"AttributeName": key, "AttributeType": "S"}],
                KeySchema=[{"AttributeName": key, "KeyType": "HASH"}],
                BillingMode="PAY_PER_REQUEST",
            )
        except ClientError as e:
            self._tolerate_existing(e, "DynamoDB table might already exist")
        except BotoCoreError as e:
            raise ProvisioningError(
                f"Could not create DynamoDB table {self.settings.table_name}: {e}"
            ) from e

    def bucket_name(self) -> str:
        return f"{self.settings.bucket_prefix}-{int(self.clock())}"

    def create_bucket(self, bucket_name: str) -> None:
        console.info(f"Creating S3 bucket: {bucket_name}")
        kwargs = {"Bucket": bucket_name}
        # us-east-1 rejects an explicit location constraint
        if self.settings.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {
                "LocationConstraint": self.settings.region
            }
        try:
            self.s3.create_bucket(**kwargs)
        except ClientError as e:
            self._tolerate_existing(e, f"S3 bucket {bucket_name} might already exist")
        except BotoCoreError as e:
            raise ProvisioningError(
                f"Could not create S3 bucket {bucket_name}: {e}"
            ) from e

    def configure_cors(self, bucket_name: str) -> None:
        try:
            self.s3.put_bucket_cors(
                Bucket=bucket_name, CORSConfiguration=CORS_CONFIGURATION
            )
        except (BotoCoreError, ClientError) as e:
            raise ProvisioningError(
                f"Could not configure CORS on {bucket_name}: {e}"
            ) from e

    def create_topic(self) -> str:
        console.info("Creating SNS topic...")
        try:
            response = self.sns.create_topic(Name=self.settings.topic_name)
        except (BotoCoreError, ClientError) as e:
            raise ProvisioningError(
                f"Could not create SNS topic {self.settings.topic_name}: {e}"
            ) from e
        return response["TopicArn"]

    def setup(self) -> ProvisionedResources:
        """Run the provisioning sequence and record the generated identifiers.

        Returns:
            The bucket name and topic ARN, also written to the env file.
        """
        console.info("Setting up AWS resources...")

        self.create_table()

        bucket_name = self.bucket_name()
        self.create_bucket(bucket_name)
        self.configure_cors(bucket_name)

        topic_arn = self.create_topic()

        console.success("AWS resources created successfully")
        write_env_file(
            self.settings.env_file,
            {BUCKET_NAME_KEY: bucket_name, TOPIC_ARN_KEY: topic_arn},
        )
        return ProvisionedResources(bucket_name=bucket_name, topic_arn=topic_arn)

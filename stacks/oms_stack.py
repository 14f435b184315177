"""CDK stack declaring the Order Management System's AWS resources."""

import aws_cdk as cdk
from constructs import Construct
from aws_cdk import (
    aws_dynamodb as dynamodb,
    aws_s3 as s3,
    aws_sns as sns,
    RemovalPolicy,
    CfnOutput,
)

from deployer.config import (
    DEFAULT_TABLE_NAME,
    DEFAULT_TOPIC_NAME,
    TABLE_KEY,
)


class OrderManagementStack(cdk.Stack):
    """Orders table, invoices bucket and notifications topic."""

    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        """Initialise the order management stack.

        Args:
            scope: The scope in which this stack is defined.
            construct_id: The scoped construct ID.
            **kwargs: Additional stack properties.
        """
        super().__init__(scope, construct_id, **kwargs)

        # Optional suffix keeps names unique when several copies are deployed
        resource_suffix = self.node.try_get_context("resource_suffix") or ""
        name_suffix = f"-{resource_suffix}" if resource_suffix else ""

        self.orders_table = dynamodb.Table(
            self,
            "OrdersTable",
            table_name=f"{DEFAULT_TABLE_NAME}{name_suffix}",
            partition_key=dynamodb.Attribute(
                name=TABLE_KEY,
                type=dynamodb.AttributeType.STRING,
            ),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            removal_policy=RemovalPolicy.DESTROY,
        )

        # Bucket name is generated by CloudFormation
        self.invoices_bucket = s3.Bucket(
            self,
            "InvoicesBucket",
            cors=[
                s3.CorsRule(
                    allowed_headers=["*"],
                    allowed_methods=[
                        s3.HttpMethods.GET,
                        s3.HttpMethods.PUT,
                        s3.HttpMethods.POST,
                        s3.HttpMethods.DELETE,
                    ],
                    allowed_origins=["*"],
                    exposed_headers=[],
                )
            ],
            removal_policy=RemovalPolicy.DESTROY,
        )

        self.order_notifications_topic = sns.Topic(
            self,
            "OrderNotificationsTopic",
            topic_name=f"{DEFAULT_TOPIC_NAME}{name_suffix}",
            display_name="Order Notifications",
        )

        # Stack outputs
        CfnOutput(
            self,
            "OrdersTableName",
            value=self.orders_table.table_name,
            description="Name of the Orders DynamoDB table",
        )

        CfnOutput(
            self,
            "InvoicesBucketName",
            value=self.invoices_bucket.bucket_name,
            description="Name of the invoices S3 bucket",
        )

        CfnOutput(
            self,
            "OrderNotificationsTopicArn",
            value=self.order_notifications_topic.topic_arn,
            description="ARN of the Order Notifications SNS topic",
        )

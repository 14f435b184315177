#!/usr/bin/env python3
"""CDK app entry point for the Order Management System resources."""

import os
import aws_cdk as cdk
from stacks.oms_stack import OrderManagementStack


app = cdk.App()

OrderManagementStack(
    app,
    "OrderManagementStack",
    env=cdk.Environment(
        account=os.getenv("CDK_DEFAULT_ACCOUNT"),
        region=os.getenv("CDK_DEFAULT_REGION", os.getenv("AWS_REGION", "us-east-1")),
    ),
    description="Order Management System - orders table, invoices bucket, notifications topic",
)

app.synth()

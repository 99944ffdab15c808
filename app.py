#!/usr/bin/env python3
"""
CDK Python Application for Automated EC2 Monitoring

Deploys a Lambda function that reacts to EC2 state changes: when an instance
starts running it installs the CloudWatch agent through SSM Run Command and
creates CPU and memory alarms for it; when the instance terminates the alarms
are deleted.

Usage:
    cdk deploy -c email=your-email@example.com
"""

import os

import aws_cdk as cdk

from stacks.ec2_monitoring_stack import Ec2MonitoringStack


class Ec2MonitoringApp(cdk.App):
    """CDK Application for automated EC2 monitoring."""

    def __init__(self) -> None:
        super().__init__()

        notification_email = (
            self.node.try_get_context("email")
            or os.environ.get("NOTIFICATION_EMAIL")
        )
        if not notification_email:
            raise ValueError(
                "Please provide an email address using: cdk deploy -c email=your-email@example.com"
            )

        Ec2MonitoringStack(
            self,
            "Ec2MonitoringStack",
            notification_email=notification_email,
            log_level=self.node.try_get_context("log_level") or "INFO",
            description="Automated CloudWatch agent installation and alarms for EC2 instances",
            env=cdk.Environment(
                account=os.environ.get("CDK_DEFAULT_ACCOUNT"),
                region=os.environ.get("CDK_DEFAULT_REGION"),
            ),
        )


def main() -> None:
    """Create and synthesize the CDK application."""
    app = Ec2MonitoringApp()
    app.synth()


if __name__ == "__main__":
    main()

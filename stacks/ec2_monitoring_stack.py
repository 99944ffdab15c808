"""
CDK stack for automated EC2 monitoring.

Creates everything the monitoring Lambda function needs to react to EC2
state changes:
- SNS topic (with an email subscription) used as the alarm action
- Lambda function packaged from the ``lambda/`` directory
- IAM permissions for CloudWatch alarms, SSM Run Command / Parameter Store
  and EC2 describe calls
- EventBridge rule for running/terminated state-change notifications
- IAM role and instance profile for monitored EC2 instances
"""

import os
from typing import Dict, Optional

import aws_cdk as cdk
from aws_cdk import (
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
    Tags,
    aws_events as events,
    aws_events_targets as events_targets,
    aws_iam as iam,
    aws_lambda as lambda_,
    aws_logs as logs,
    aws_sns as sns,
    aws_sns_subscriptions as subscriptions,
)
from constructs import Construct

LAMBDA_ASSET_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), os.pardir, "lambda")
LAMBDA_HANDLER = "ec2_monitor.handler.lambda_handler"


class Ec2MonitoringStack(Stack):
    """
    CDK Stack that keeps CloudWatch alarms in step with EC2 instances.

    Attributes:
        alarm_topic: SNS topic notified by every instance alarm
        monitoring_function: Lambda function handling state-change events
        state_change_rule: EventBridge rule routing events to the function
        instance_profile: Instance profile to attach to monitored instances
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        notification_email: str,
        waiter_settings: Optional[Dict[str, int]] = None,
        log_level: str = "INFO",
        **kwargs
    ) -> None:
        """
        Initialize the EC2 Monitoring Stack.

        Args:
            scope: The scope in which to define this construct
            construct_id: The scoped construct ID
            notification_email: Email address subscribed to alarm notifications
            waiter_settings: Optional overrides for COMMAND_MAX_ATTEMPTS,
                COMMAND_POLL_INTERVAL_MS and COMMAND_INITIAL_DELAY_MS
            log_level: LOG_LEVEL passed to the function
            **kwargs: Additional keyword arguments
        """
        super().__init__(scope, construct_id, **kwargs)

        self.alarm_topic = self._create_alarm_topic(notification_email)
        self.monitoring_function = self._create_monitoring_function(waiter_settings or {}, log_level)
        self._grant_function_permissions()
        self.state_change_rule = self._create_state_change_rule()
        self.instance_profile = self._create_instance_profile()

        Tags.of(self).add("Project", "EC2Monitoring")
        Tags.of(self).add("ManagedBy", "cdk")

        self._create_outputs()

    def _create_alarm_topic(self, notification_email: str) -> sns.Topic:
        topic = sns.Topic(
            self,
            "EC2MonitoringTopic",
            display_name="EC2 Monitoring Alerts",
        )
        topic.add_subscription(subscriptions.EmailSubscription(notification_email))
        return topic

    def _create_monitoring_function(self, waiter_settings: Dict[str, int], log_level: str) -> lambda_.Function:
        """
        Create the state-change handler.

        Each running event waits on two Run Commands of up to ~5 minutes
        each with the default polling budget, hence the 15 minute timeout.
        """
        log_group = logs.LogGroup(
            self,
            "EC2MonitoringFunctionLogGroup",
            retention=logs.RetentionDays.ONE_MONTH,
            removal_policy=RemovalPolicy.DESTROY,
        )

        environment = {
            "SNS_TOPIC_ARN": self.alarm_topic.topic_arn,
            "LOG_LEVEL": log_level,
        }
        for name, value in waiter_settings.items():
            environment[name] = str(value)

        return lambda_.Function(
            self,
            "EC2MonitoringFunction",
            runtime=lambda_.Runtime.PYTHON_3_12,
            handler=LAMBDA_HANDLER,
            code=lambda_.Code.from_asset(
                LAMBDA_ASSET_PATH,
                exclude=["**/__pycache__", "**/*.pyc"],
            ),
            timeout=Duration.minutes(15),
            memory_size=256,
            environment=environment,
            log_group=log_group,
            description="Installs the CloudWatch agent and manages alarms on EC2 state changes",
        )

    def _grant_function_permissions(self) -> None:
        self.monitoring_function.add_to_role_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=[
                    "cloudwatch:PutMetricAlarm",
                    "cloudwatch:DeleteAlarms",
                    "cloudwatch:DescribeAlarms",
                ],
                resources=["*"],
            )
        )

        self.monitoring_function.add_to_role_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=[
                    "ssm:SendCommand",
                    "ssm:GetCommandInvocation",
                    "ssm:PutParameter",
                    "ssm:GetParameter",
                    "ssm:DeleteParameter",
                ],
                resources=["*"],
            )
        )

        self.monitoring_function.add_to_role_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["ec2:DescribeInstances"],
                resources=["*"],
            )
        )

        self.alarm_topic.grant_publish(self.monitoring_function)

    def _create_state_change_rule(self) -> events.Rule:
        rule = events.Rule(
            self,
            "EC2StateChangeRule",
            description="Routes EC2 running/terminated notifications to the monitoring function",
            event_pattern=events.EventPattern(
                source=["aws.ec2"],
                detail_type=["EC2 Instance State-change Notification"],
                detail={
                    "state": ["running", "terminated"],
                },
            ),
        )
        rule.add_target(events_targets.LambdaFunction(self.monitoring_function))
        return rule

    def _create_instance_profile(self) -> iam.CfnInstanceProfile:
        """Role monitored instances need for Run Command and the agent."""
        self.instance_role = iam.Role(
            self,
            "EC2SSMRole",
            assumed_by=iam.ServicePrincipal("ec2.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name("AmazonSSMManagedInstanceCore"),
                iam.ManagedPolicy.from_aws_managed_policy_name("CloudWatchAgentServerPolicy"),
            ],
        )

        return iam.CfnInstanceProfile(
            self,
            "EC2InstanceProfile",
            roles=[self.instance_role.role_name],
        )

    def _create_outputs(self) -> None:
        CfnOutput(
            self,
            "EC2InstanceProfileARN",
            value=self.instance_profile.attr_arn,
            description="ARN of the instance profile to attach to EC2 instances",
        )

        CfnOutput(
            self,
            "SNSTopicARN",
            value=self.alarm_topic.topic_arn,
            description="ARN of the SNS topic for monitoring alerts",
        )

        CfnOutput(
            self,
            "Region",
            value=cdk.Aws.REGION,
            description="Region where the stack is deployed",
        )

"""
EC2 Monitoring Lambda Function

Triggered by EventBridge "EC2 Instance State-change Notification" events.

- running:    install and configure the CloudWatch agent, then create the
              CPU and memory alarms for the instance
- terminated: delete the instance's alarms
- any other state is acknowledged and ignored

Environment Variables:
    SNS_TOPIC_ARN: Topic notified when an alarm fires (required)
    COMMAND_MAX_ATTEMPTS, COMMAND_POLL_INTERVAL_MS, COMMAND_INITIAL_DELAY_MS:
        Run Command polling budget
    LOG_LEVEL: Logging level (default INFO)
"""

import json
import logging
import os
from typing import Any, Dict, Optional

import boto3

from ec2_monitor.agent_provisioner import AgentProvisioner
from ec2_monitor.alarm_reconciler import AlarmReconciler
from ec2_monitor.command_waiter import CommandWaiter
from ec2_monitor.config import MonitorConfig
from ec2_monitor.events import InstanceState, parse_event
from ec2_monitor.exceptions import MonitoringError
from ec2_monitor.instance_metadata import InstanceMetadataResolver

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

ACTION_PROVISIONED = "provisioned"
ACTION_DELETED = "deleted"
ACTION_IGNORED = "ignored"


class EventDispatcher:
    """Routes one lifecycle event to provisioning or alarm cleanup."""

    def __init__(
        self,
        provisioner: AgentProvisioner,
        reconciler: AlarmReconciler,
        notification_target: str,
    ) -> None:
        self.provisioner = provisioner
        self.reconciler = reconciler
        self.notification_target = notification_target

    def dispatch(self, event: Any) -> Dict[str, Any]:
        """
        Process one EventBridge event to completion.

        Returns:
            Summary with the instance id, its state and the action taken

        Raises:
            ValidationError: If the event is malformed (nothing was changed)
            MonitoringError: If any provisioning or alarm step failed
        """
        lifecycle_event = parse_event(event)
        instance_id = lifecycle_event.instance_id
        logger.info(f"Processing EC2 instance {instance_id} in state {lifecycle_event.raw_state}")

        if lifecycle_event.state is InstanceState.RUNNING:
            self._run_step("install CloudWatch agent", instance_id, self.provisioner.provision, instance_id)
            alarms = self._run_step(
                "create alarms",
                instance_id,
                self.reconciler.create_alarms,
                instance_id,
                self.notification_target,
            )
            action = ACTION_PROVISIONED
        elif lifecycle_event.state is InstanceState.TERMINATED:
            alarms = self._run_step("delete alarms", instance_id, self.reconciler.delete_alarms, instance_id)
            action = ACTION_DELETED
        else:
            logger.info(f"Ignoring state {lifecycle_event.raw_state} for instance {instance_id}")
            alarms = []
            action = ACTION_IGNORED

        return {
            "instanceId": instance_id,
            "state": lifecycle_event.raw_state,
            "action": action,
            "alarms": alarms,
        }

    @staticmethod
    def _run_step(step: str, instance_id: str, func, *args):
        logger.info(f"Starting step '{step}' for instance {instance_id}")
        try:
            return func(*args)
        except Exception as e:
            logger.error(f"Error in step '{step}' for instance {instance_id}: {e}")
            raise


def build_dispatcher(config: MonitorConfig, session: Optional[boto3.session.Session] = None) -> EventDispatcher:
    """Wire the components to real boto3 clients."""
    session = session or boto3.session.Session(region_name=config.region)
    ssm = session.client("ssm")
    cloudwatch = session.client("cloudwatch")
    ec2 = session.client("ec2")

    waiter = CommandWaiter(ssm, config.waiter)
    return EventDispatcher(
        provisioner=AgentProvisioner(ssm, waiter),
        reconciler=AlarmReconciler(cloudwatch, InstanceMetadataResolver(ec2)),
        notification_target=config.notification_target,
    )


_dispatcher: Optional[EventDispatcher] = None


def get_dispatcher() -> EventDispatcher:
    """
    Return the dispatcher of this execution environment, creating it on
    first use. Fails with ConfigurationError before any event is looked at
    when the environment is incomplete.
    """
    global _dispatcher
    if _dispatcher is None:
        config = MonitorConfig.from_env()
        logger.setLevel(config.log_level)
        _dispatcher = build_dispatcher(config)
    return _dispatcher


def reset_dispatcher() -> None:
    """Drop the cached dispatcher so the next invocation re-reads the environment."""
    global _dispatcher
    _dispatcher = None


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    AWS Lambda handler for EC2 state-change events.

    Args:
        event: EventBridge event with the instance id and state in its detail
        context: Lambda runtime context (unused)

    Returns:
        Dict containing status code and a JSON body describing the action

    Raises:
        MonitoringError: Re-raised so EventBridge retries or dead-letters the event
    """
    logger.info(f"Event: {json.dumps(event, default=str)}")

    try:
        dispatcher = get_dispatcher()
        result = dispatcher.dispatch(event)
    except MonitoringError as e:
        logger.error(f"Error processing EC2 state change: {e}", exc_info=True)
        raise

    return {
        "statusCode": 200,
        "body": json.dumps(result),
    }

"""
CloudWatch agent installation through SSM Run Command.

The workflow is strictly ordered and each step is gated on the previous one:

1. Install the AmazonCloudWatchAgent package (AWS-ConfigureAWSPackage).
2. Store the default agent configuration in Parameter Store under
   /cloudwatch-agent/config/<instance-id>, overwriting any earlier value.
3. Configure and restart the agent from that parameter
   (AmazonCloudWatch-ManageAgent).
"""

import json
import logging
from typing import Any, Dict, List

from botocore.exceptions import BotoCoreError, ClientError

from ec2_monitor.command_waiter import CommandWaiter, RemoteCommandHandle
from ec2_monitor.exceptions import RemoteServiceError

logger = logging.getLogger(__name__)

AGENT_PACKAGE_NAME = "AmazonCloudWatchAgent"
INSTALL_PACKAGE_DOCUMENT = "AWS-ConfigureAWSPackage"
MANAGE_AGENT_DOCUMENT = "AmazonCloudWatch-ManageAgent"
CONFIG_PARAMETER_PREFIX = "/cloudwatch-agent/config"
METRICS_COLLECTION_INTERVAL = 60


def config_parameter_name(instance_id: str) -> str:
    return f"{CONFIG_PARAMETER_PREFIX}/{instance_id}"


def build_agent_config() -> Dict[str, Any]:
    """
    Default agent configuration shared by every instance.

    The ${aws:...} placeholders are resolved by the agent on the instance
    itself, so the memory metric is dimensioned exactly the way the memory
    alarm expects.
    """
    return {
        "agent": {
            "metrics_collection_interval": METRICS_COLLECTION_INTERVAL,
            "run_as_user": "root",
        },
        "metrics": {
            "metrics_collected": {
                "mem": {
                    "measurement": ["mem_used_percent"],
                    "metrics_collection_interval": METRICS_COLLECTION_INTERVAL,
                },
                "swap": {
                    "measurement": ["swap_used_percent"],
                },
            },
            "append_dimensions": {
                "ImageId": "${aws:ImageId}",
                "InstanceId": "${aws:InstanceId}",
                "InstanceType": "${aws:InstanceType}",
            },
        },
    }


class AgentProvisioner:
    """Installs, configures and starts the CloudWatch agent on one instance."""

    def __init__(self, ssm_client: Any, waiter: CommandWaiter) -> None:
        self.ssm = ssm_client
        self.waiter = waiter

    def provision(self, instance_id: str) -> None:
        """
        Run the full install -> configure -> start sequence.

        Retries happen only inside the waiter's polling; a failed step is
        not repeated here.

        Raises:
            CommandFailed: A Run Command step ended in a failure status
            CommandTimeout: A Run Command step never finished
            RemoteServiceError: send_command or put_parameter failed
        """
        self.install_agent(instance_id)
        parameter_name = self.store_agent_config(instance_id)
        self.configure_agent(instance_id, parameter_name)
        logger.info(f"CloudWatch agent provisioned on instance {instance_id}")

    def install_agent(self, instance_id: str) -> None:
        logger.info(f"Installing CloudWatch agent on instance {instance_id}")
        handle = self._send_command(
            INSTALL_PACKAGE_DOCUMENT,
            instance_id,
            {
                "action": ["Install"],
                "name": [AGENT_PACKAGE_NAME],
            },
        )
        self.waiter.wait(handle)

    def store_agent_config(self, instance_id: str) -> str:
        """Write the agent configuration parameter and return its name."""
        parameter_name = config_parameter_name(instance_id)
        try:
            self.ssm.put_parameter(
                Name=parameter_name,
                Type="String",
                Value=json.dumps(build_agent_config()),
                Overwrite=True,
            )
        except (ClientError, BotoCoreError) as e:
            raise RemoteServiceError("put_parameter", f"{parameter_name}: {e}") from e

        logger.info(f"Stored CloudWatch agent configuration in {parameter_name}")
        return parameter_name

    def configure_agent(self, instance_id: str, parameter_name: str) -> None:
        logger.info(f"Configuring CloudWatch agent on instance {instance_id} from {parameter_name}")
        handle = self._send_command(
            MANAGE_AGENT_DOCUMENT,
            instance_id,
            {
                "action": ["configure"],
                "mode": ["ec2"],
                "optionalConfigurationSource": ["ssm"],
                "optionalConfigurationLocation": [parameter_name],
                "optionalRestart": ["yes"],
            },
        )
        self.waiter.wait(handle)

    def _send_command(
        self, document_name: str, instance_id: str, parameters: Dict[str, List[str]]
    ) -> RemoteCommandHandle:
        logger.debug(f"Sending {document_name} to {instance_id} with parameters {json.dumps(parameters)}")
        try:
            response = self.ssm.send_command(
                DocumentName=document_name,
                InstanceIds=[instance_id],
                Parameters=parameters,
            )
        except (ClientError, BotoCoreError) as e:
            raise RemoteServiceError("send_command", f"{document_name} on {instance_id}: {e}") from e

        command_id = (response.get("Command") or {}).get("CommandId")
        if not command_id:
            raise RemoteServiceError("send_command", f"{document_name} on {instance_id} returned no command id")

        logger.info(f"Sent {document_name} to {instance_id} as command {command_id}")
        return RemoteCommandHandle(
            command_id=command_id,
            instance_id=instance_id,
            document_name=document_name,
        )

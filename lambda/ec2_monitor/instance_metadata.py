"""Instance attribute lookups used to dimension the memory alarm."""

import logging
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ec2_monitor.exceptions import InstanceLookupError, RemoteServiceError

logger = logging.getLogger(__name__)

NOT_FOUND_ERROR_CODES = frozenset({"InvalidInstanceID.NotFound", "InvalidInstanceID.Malformed"})


@dataclass(frozen=True)
class InstanceInfo:
    instance_type: str
    image_id: str


class InstanceMetadataResolver:
    """Reads instance type and AMI id straight from EC2 on every call."""

    def __init__(self, ec2_client: Any) -> None:
        self.ec2 = ec2_client

    def resolve(self, instance_id: str) -> InstanceInfo:
        """
        Describe one instance.

        Raises:
            InstanceLookupError: If EC2 has no record of the instance or the
                record lacks its type or image id
            RemoteServiceError: On any other EC2 API failure
        """
        try:
            response = self.ec2.describe_instances(InstanceIds=[instance_id])
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code in NOT_FOUND_ERROR_CODES:
                raise InstanceLookupError(instance_id, error_code) from e
            raise RemoteServiceError("describe_instances", f"{instance_id}: {e}") from e
        except BotoCoreError as e:
            raise RemoteServiceError("describe_instances", f"{instance_id}: {e}") from e

        reservations = response.get("Reservations") or [{}]
        instances = reservations[0].get("Instances") or [{}]
        instance = instances[0]

        instance_type = instance.get("InstanceType")
        image_id = instance.get("ImageId")
        if not instance_type or not image_id:
            raise InstanceLookupError(instance_id, "instance type or image id missing")

        logger.info(f"Instance {instance_id} is {instance_type} running {image_id}")
        return InstanceInfo(instance_type=instance_type, image_id=image_id)

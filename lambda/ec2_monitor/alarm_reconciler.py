"""
CPU and memory alarms for a single EC2 instance.

Alarm names are derived only from the instance id, so termination cleanup
needs nothing but the id carried by the termination event:

    CPU-High-<instance-id>
    Memory-High-<instance-id>

put_metric_alarm replaces an existing alarm of the same name and
delete_alarms ignores names that do not exist, which makes both
create_alarms and delete_alarms safe to repeat for the same instance.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from ec2_monitor.exceptions import AlarmError
from ec2_monitor.instance_metadata import InstanceInfo, InstanceMetadataResolver

logger = logging.getLogger(__name__)

CPU_THRESHOLD = 80.0
MEMORY_THRESHOLD = 75.0
PERIOD_SECONDS = 60


class AlarmKind(str, Enum):
    CPU = "CPU"
    MEMORY = "Memory"


def alarm_name(kind: AlarmKind, instance_id: str) -> str:
    return f"{kind.value}-High-{instance_id}"


def alarm_names(instance_id: str) -> List[str]:
    return [alarm_name(kind, instance_id) for kind in AlarmKind]


@dataclass(frozen=True)
class AlarmSpec:
    """Definition of one metric alarm, independent of its action target."""

    name: str
    metric_name: str
    namespace: str
    threshold: float
    dimensions: Tuple[Tuple[str, str], ...]
    description: str
    period: int = PERIOD_SECONDS
    evaluation_periods: int = 1
    datapoints_to_alarm: int = 1
    comparison_operator: str = "GreaterThanThreshold"
    statistic: str = "Average"
    treat_missing_data: str = "missing"

    def to_request(self, notification_target: str) -> Dict[str, Any]:
        """Keyword arguments for CloudWatch put_metric_alarm."""
        return {
            "AlarmName": self.name,
            "AlarmDescription": self.description,
            "MetricName": self.metric_name,
            "Namespace": self.namespace,
            "Period": self.period,
            "EvaluationPeriods": self.evaluation_periods,
            "DatapointsToAlarm": self.datapoints_to_alarm,
            "Threshold": self.threshold,
            "ComparisonOperator": self.comparison_operator,
            "Statistic": self.statistic,
            "TreatMissingData": self.treat_missing_data,
            "ActionsEnabled": True,
            "AlarmActions": [notification_target],
            "Dimensions": [{"Name": name, "Value": value} for name, value in self.dimensions],
        }


def cpu_alarm_spec(instance_id: str) -> AlarmSpec:
    # AWS/EC2 metrics carry the InstanceId dimension only
    return AlarmSpec(
        name=alarm_name(AlarmKind.CPU, instance_id),
        metric_name="CPUUtilization",
        namespace="AWS/EC2",
        threshold=CPU_THRESHOLD,
        dimensions=(("InstanceId", instance_id),),
        description=f"CPU utilization is high for instance {instance_id} (>80% for 1 minute)",
    )


def memory_alarm_spec(instance_id: str, info: InstanceInfo) -> AlarmSpec:
    # Must match the append_dimensions the agent publishes mem_used_percent with
    return AlarmSpec(
        name=alarm_name(AlarmKind.MEMORY, instance_id),
        metric_name="mem_used_percent",
        namespace="CWAgent",
        threshold=MEMORY_THRESHOLD,
        dimensions=(
            ("InstanceId", instance_id),
            ("InstanceType", info.instance_type),
            ("ImageId", info.image_id),
        ),
        description=f"Memory utilization is high for instance {instance_id} (>75% for 1 minute)",
    )


class AlarmReconciler:
    """Creates or removes the CPU/memory alarm pair of an instance."""

    def __init__(self, cloudwatch_client: Any, metadata_resolver: InstanceMetadataResolver) -> None:
        self.cloudwatch = cloudwatch_client
        self.metadata_resolver = metadata_resolver

    def create_alarms(self, instance_id: str, notification_target: str) -> List[str]:
        """
        Upsert both alarms, each notifying ``notification_target``.

        Args:
            instance_id: EC2 instance to watch
            notification_target: SNS topic ARN used as the alarm action

        Returns:
            Names of the alarms written

        Raises:
            InstanceLookupError: If the instance cannot be described
            AlarmError: If CloudWatch rejects an alarm
        """
        info = self.metadata_resolver.resolve(instance_id)
        specs = [cpu_alarm_spec(instance_id), memory_alarm_spec(instance_id, info)]

        for spec in specs:
            try:
                self.cloudwatch.put_metric_alarm(**spec.to_request(notification_target))
            except (ClientError, BotoCoreError) as e:
                raise AlarmError("put_metric_alarm", f"{spec.name}: {e}") from e
            logger.info(f"Put alarm {spec.name} (threshold {spec.threshold})")

        return [spec.name for spec in specs]

    def delete_alarms(self, instance_id: str) -> List[str]:
        """
        Delete both alarms of an instance; alarms that are already gone are
        not an error.

        Raises:
            AlarmError: If CloudWatch rejects the request
        """
        names = alarm_names(instance_id)
        try:
            self.cloudwatch.delete_alarms(AlarmNames=names)
        except (ClientError, BotoCoreError) as e:
            raise AlarmError("delete_alarms", f"{', '.join(names)}: {e}") from e

        logger.info(f"Deleted alarms {', '.join(names)}")
        return names

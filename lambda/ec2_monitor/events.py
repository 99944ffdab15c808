"""Parsing of EC2 Instance State-change Notification events."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from ec2_monitor.exceptions import ValidationError


class InstanceState(str, Enum):
    """Instance states the dispatcher distinguishes."""

    RUNNING = "running"
    TERMINATED = "terminated"
    OTHER = "other"

    @classmethod
    def from_detail(cls, value: str) -> "InstanceState":
        # Exact text match only: "Running" or " running" is not a start event
        if value == cls.RUNNING.value:
            return cls.RUNNING
        if value == cls.TERMINATED.value:
            return cls.TERMINATED
        return cls.OTHER


@dataclass(frozen=True)
class LifecycleEvent:
    """Instance id and state carried by one EventBridge notification."""

    instance_id: str
    state: InstanceState
    raw_state: str


def parse_event(event: Any) -> LifecycleEvent:
    """
    Validate an inbound EventBridge event and extract the instance transition.

    Args:
        event: Event as delivered to the Lambda handler

    Returns:
        LifecycleEvent for the instance named in the event detail

    Raises:
        ValidationError: If the detail object, the instance id or the
            state is missing
    """
    if not isinstance(event, Mapping):
        raise ValidationError("Invalid event structure: event is not an object")

    detail = event.get("detail")
    if not isinstance(detail, Mapping):
        raise ValidationError("Invalid event structure: missing or invalid detail object")

    instance_id = detail.get("instance-id")
    if not isinstance(instance_id, str) or not instance_id:
        raise ValidationError("Invalid event structure: missing instance-id")

    state = detail.get("state")
    if not isinstance(state, str) or not state:
        raise ValidationError("Invalid event structure: missing state")

    return LifecycleEvent(
        instance_id=instance_id,
        state=InstanceState.from_detail(state),
        raw_state=state,
    )

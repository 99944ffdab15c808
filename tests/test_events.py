"""Unit tests for state-change event parsing."""

import pytest

from ec2_monitor.events import InstanceState, LifecycleEvent, parse_event
from ec2_monitor.exceptions import ValidationError


def make_event(instance_id="i-123", state="running"):
    return {
        "version": "0",
        "source": "aws.ec2",
        "detail-type": "EC2 Instance State-change Notification",
        "region": "us-east-1",
        "detail": {"instance-id": instance_id, "state": state},
    }


@pytest.mark.parametrize(
    "state, expected",
    [
        ("running", InstanceState.RUNNING),
        ("terminated", InstanceState.TERMINATED),
        ("pending", InstanceState.OTHER),
        ("stopped", InstanceState.OTHER),
        ("Running", InstanceState.OTHER),
    ],
)
def test_state_mapping(state, expected):
    event = parse_event(make_event(state=state))

    assert event == LifecycleEvent(instance_id="i-123", state=expected, raw_state=state)


@pytest.mark.parametrize(
    "event",
    [
        None,
        "not-an-event",
        {},
        {"detail": None},
        {"detail": "running"},
        {"detail": {"state": "running"}},
        {"detail": {"instance-id": "", "state": "running"}},
        {"detail": {"instance-id": "i-123"}},
        {"detail": {"instance-id": "i-123", "state": ""}},
    ],
)
def test_malformed_events_are_rejected(event):
    with pytest.raises(ValidationError):
        parse_event(event)

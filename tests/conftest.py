"""Shared fixtures for the EC2 monitoring tests."""

from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

from helpers import REGION


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS credentials so no test can reach a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)

@pytest.fixture
def aws(aws_credentials):
    with mock_aws():
        yield

@pytest.fixture
def cloudwatch(aws):
    return boto3.client("cloudwatch", region_name=REGION)

@pytest.fixture
def ec2(aws):
    return boto3.client("ec2", region_name=REGION)

@pytest.fixture
def ssm(aws):
    return boto3.client("ssm", region_name=REGION)

@pytest.fixture
def running_instance(ec2):
    """Launch one instance in the mocked account and return its id."""
    response = ec2.run_instances(
        ImageId="ami-12c6146b",
        InstanceType="t3.micro",
        MinCount=1,
        MaxCount=1,
    )
    return response["Instances"][0]["InstanceId"]

@pytest.fixture
def run_command_client():
    """
    Stand-in for the SSM client's Run Command calls.

    send_command hands out sequential command ids and every invocation
    reports Success unless a test overrides get_command_invocation.
    """
    client = MagicMock()
    client.send_command.side_effect = [
        {"Command": {"CommandId": f"cmd-{n}"}} for n in range(1, 11)
    ]
    client.get_command_invocation.return_value = {"Status": "Success"}
    return client

@pytest.fixture
def no_sleep():
    """Sleep recorder used instead of time.sleep."""
    delays = []
    return delays.append, delays

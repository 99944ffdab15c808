"""Unit tests for the Run Command waiter."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import EndpointConnectionError

from helpers import client_error
from ec2_monitor.command_waiter import CommandWaiter, RemoteCommandHandle
from ec2_monitor.config import WaiterConfig
from ec2_monitor.exceptions import CommandFailed, CommandTimeout, ProvisionError

HANDLE = RemoteCommandHandle(command_id="cmd-1", instance_id="i-123", document_name="AWS-ConfigureAWSPackage")


def make_waiter(responses, no_sleep, max_attempts=5):
    sleep, delays = no_sleep
    ssm = MagicMock()
    ssm.get_command_invocation.side_effect = responses
    config = WaiterConfig(max_attempts=max_attempts, poll_interval_ms=10000, initial_delay_ms=5000)
    return CommandWaiter(ssm, config, sleep=sleep), ssm, delays


class TestCommandWaiter:
    """Status handling of CommandWaiter.wait."""

    @pytest.mark.parametrize("status", ["Success", "Complete"])
    def test_success_statuses_return_immediately(self, status, no_sleep):
        waiter, ssm, delays = make_waiter([{"Status": status}], no_sleep)

        assert waiter.wait(HANDLE) == status
        ssm.get_command_invocation.assert_called_once_with(CommandId="cmd-1", InstanceId="i-123")
        assert delays == [5.0]

    @pytest.mark.parametrize("status", ["Failed", "Cancelled", "TimedOut"])
    def test_failure_statuses_raise_command_failed(self, status, no_sleep):
        waiter, ssm, _ = make_waiter(
            [{"Status": status, "StandardErrorContent": "package not found"}], no_sleep
        )

        with pytest.raises(CommandFailed) as exc_info:
            waiter.wait(HANDLE)

        assert exc_info.value.status == status
        assert exc_info.value.detail == "package not found"
        assert exc_info.value.handle == HANDLE
        assert isinstance(exc_info.value, ProvisionError)
        assert ssm.get_command_invocation.call_count == 1

    def test_failure_detail_falls_back_to_status_details(self, no_sleep):
        waiter, _, _ = make_waiter([{"Status": "TimedOut", "StatusDetails": "DeliveryTimedOut"}], no_sleep)

        with pytest.raises(CommandFailed) as exc_info:
            waiter.wait(HANDLE)

        assert exc_info.value.detail == "DeliveryTimedOut"

    def test_pending_statuses_are_polled_until_success(self, no_sleep):
        waiter, ssm, delays = make_waiter(
            [{"Status": "Pending"}, {"Status": "InProgress"}, {"Status": "Success"}], no_sleep
        )

        assert waiter.wait(HANDLE) == "Success"
        assert ssm.get_command_invocation.call_count == 3
        assert delays == [5.0, 10.0, 10.0]

    def test_missing_invocation_is_retried(self, no_sleep):
        waiter, ssm, _ = make_waiter(
            [client_error("InvocationDoesNotExist"), client_error("InvocationDoesNotExist"), {"Status": "Success"}],
            no_sleep,
        )

        assert waiter.wait(HANDLE) == "Success"
        assert ssm.get_command_invocation.call_count == 3

    def test_missing_invocation_uses_up_attempts(self, no_sleep):
        waiter, ssm, _ = make_waiter([client_error("InvocationDoesNotExist")] * 3, no_sleep, max_attempts=3)

        with pytest.raises(CommandTimeout) as exc_info:
            waiter.wait(HANDLE)

        assert exc_info.value.attempts == 3
        assert exc_info.value.last_status == "InvocationDoesNotExist"
        assert ssm.get_command_invocation.call_count == 3

    def test_other_errors_are_retried(self, no_sleep):
        waiter, ssm, _ = make_waiter(
            [
                client_error("ThrottlingException"),
                EndpointConnectionError(endpoint_url="https://ssm.us-east-1.amazonaws.com"),
                {"Status": "Complete"},
            ],
            no_sleep,
        )

        assert waiter.wait(HANDLE) == "Complete"
        assert ssm.get_command_invocation.call_count == 3

    def test_never_polls_past_max_attempts(self, no_sleep):
        waiter, ssm, delays = make_waiter([{"Status": "InProgress"}] * 10, no_sleep, max_attempts=4)

        with pytest.raises(CommandTimeout) as exc_info:
            waiter.wait(HANDLE)

        assert ssm.get_command_invocation.call_count == 4
        assert exc_info.value.last_status == "InProgress"
        # initial delay plus one interval between each pair of polls
        assert delays == [5.0, 10.0, 10.0, 10.0]

    def test_timeout_is_not_a_command_failure(self, no_sleep):
        waiter, _, _ = make_waiter([{"Status": "Delayed"}], no_sleep, max_attempts=1)

        with pytest.raises(CommandTimeout) as exc_info:
            waiter.wait(HANDLE)

        assert not isinstance(exc_info.value, CommandFailed)

    def test_default_config(self):
        waiter = CommandWaiter(MagicMock())

        assert waiter.config.max_attempts == 30
        assert waiter.config.poll_interval_ms == 10000
        assert waiter.config.initial_delay_ms == 5000

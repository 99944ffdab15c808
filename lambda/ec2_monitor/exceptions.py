"""
Error types raised while reconciling EC2 monitoring state.

Every error is logged by the dispatcher with the instance id and the step
that failed, then re-raised to the Lambda runtime so the EventBridge retry
policy decides whether the event is redelivered.
"""

from typing import Optional


class MonitoringError(Exception):
    """Base class for all EC2 monitoring errors."""


class ValidationError(MonitoringError):
    """Malformed inbound event. Never retried; nothing was changed."""


class ConfigurationError(ValidationError):
    """Missing or invalid environment configuration."""


class ProvisionError(MonitoringError):
    """CloudWatch agent provisioning did not complete."""


class CommandFailed(ProvisionError):
    """A Run Command invocation reached a terminal failure status."""

    def __init__(self, handle, status: str, detail: Optional[str] = None) -> None:
        self.handle = handle
        self.status = status
        self.detail = detail or ""
        super().__init__(
            f"Command {handle.command_id} ({handle.document_name}) on "
            f"{handle.instance_id} failed with status {status}: {self.detail}"
        )


class CommandTimeout(ProvisionError):
    """A Run Command invocation never reached a terminal status."""

    def __init__(self, handle, attempts: int, last_status: Optional[str] = None) -> None:
        self.handle = handle
        self.attempts = attempts
        self.last_status = last_status
        super().__init__(
            f"Command {handle.command_id} ({handle.document_name}) on "
            f"{handle.instance_id} did not finish after {attempts} attempts "
            f"(last status: {last_status})"
        )


class InstanceLookupError(MonitoringError, LookupError):
    """EC2 has no usable record for the instance."""

    def __init__(self, instance_id: str, reason: str) -> None:
        self.instance_id = instance_id
        super().__init__(f"Could not find instance information for instance {instance_id}: {reason}")


class RemoteServiceError(MonitoringError):
    """An AWS API call failed outside of command polling."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class AlarmError(RemoteServiceError):
    """A CloudWatch alarm could not be written or removed."""

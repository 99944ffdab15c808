"""
Polling of asynchronous SSM Run Command invocations.

Run Command is eventually consistent: right after send_command returns, the
per-instance invocation record may not exist yet, and an invocation keeps
reporting Pending/InProgress until the agent on the instance finishes. The
waiter blocks until the invocation reaches a terminal status so the next
provisioning step never starts on a false positive.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ec2_monitor.config import WaiterConfig
from ec2_monitor.exceptions import CommandFailed, CommandTimeout

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = frozenset({"Success", "Complete"})
FAILURE_STATUSES = frozenset({"Failed", "Cancelled", "TimedOut"})
INVOCATION_NOT_FOUND = "InvocationDoesNotExist"


@dataclass(frozen=True)
class RemoteCommandHandle:
    """Identifies one Run Command invocation on one instance."""

    command_id: str
    instance_id: str
    document_name: str = ""


class CommandWaiter:
    """
    Waits for a Run Command invocation to reach a terminal status.

    The initial delay is spent once, then the invocation is polled at most
    ``max_attempts`` times with ``poll_interval_ms`` between polls. An
    InvocationDoesNotExist response uses up an attempt like any other
    non-terminal outcome, so a command whose invocation never appears still
    ends in CommandTimeout.
    """

    def __init__(
        self,
        ssm_client: Any,
        config: Optional[WaiterConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.ssm = ssm_client
        self.config = config or WaiterConfig()
        self._sleep = sleep

    def wait(self, handle: RemoteCommandHandle) -> str:
        """
        Block until the invocation succeeds, fails or the budget runs out.

        Args:
            handle: Command id and target instance to poll

        Returns:
            The terminal success status ("Success" or "Complete")

        Raises:
            CommandFailed: On Failed, Cancelled or TimedOut
            CommandTimeout: If no terminal status was seen within the budget
        """
        max_attempts = self.config.max_attempts
        last_status: Optional[str] = None

        self._sleep(self.config.initial_delay_seconds)

        for attempt in range(1, max_attempts + 1):
            try:
                invocation = self.ssm.get_command_invocation(
                    CommandId=handle.command_id,
                    InstanceId=handle.instance_id,
                )
            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "")
                if error_code == INVOCATION_NOT_FOUND:
                    logger.info(
                        f"Waiting for command invocation {handle.command_id} to be available "
                        f"(attempt {attempt}/{max_attempts})"
                    )
                else:
                    logger.warning(
                        f"Error polling command {handle.command_id} on {handle.instance_id} "
                        f"(attempt {attempt}/{max_attempts}): {e}"
                    )
                last_status = error_code or last_status
            except BotoCoreError as e:
                logger.warning(
                    f"Error polling command {handle.command_id} on {handle.instance_id} "
                    f"(attempt {attempt}/{max_attempts}): {e}"
                )
            else:
                status = invocation.get("Status", "")
                logger.info(f"Command status: {status} for command {handle.command_id}")

                if status in SUCCESS_STATUSES:
                    return status
                if status in FAILURE_STATUSES:
                    detail = invocation.get("StandardErrorContent") or invocation.get("StatusDetails")
                    raise CommandFailed(handle, status, detail)
                last_status = status

            if attempt < max_attempts:
                self._sleep(self.config.poll_interval_seconds)

        raise CommandTimeout(handle, max_attempts, last_status)

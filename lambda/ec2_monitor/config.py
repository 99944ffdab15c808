"""
Runtime configuration for the EC2 monitoring Lambda function.

All settings come from environment variables set by the CDK stack:

    SNS_TOPIC_ARN             Notification target for alarm actions (required)
    COMMAND_MAX_ATTEMPTS      Run Command poll budget (default 30)
    COMMAND_POLL_INTERVAL_MS  Delay between polls (default 10000)
    COMMAND_INITIAL_DELAY_MS  Delay before the first poll (default 5000)
    LOG_LEVEL                 Root logger level (default INFO)
    AWS_REGION                Region for the boto3 clients
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from ec2_monitor.exceptions import ConfigurationError

DEFAULT_MAX_ATTEMPTS = 30
DEFAULT_POLL_INTERVAL_MS = 10000
DEFAULT_INITIAL_DELAY_MS = 5000


@dataclass(frozen=True)
class WaiterConfig:
    """Polling budget for Run Command invocations."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.poll_interval_ms < 0:
            raise ConfigurationError(f"poll_interval_ms must not be negative, got {self.poll_interval_ms}")
        if self.initial_delay_ms < 0:
            raise ConfigurationError(f"initial_delay_ms must not be negative, got {self.initial_delay_ms}")

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000.0

    @property
    def initial_delay_seconds(self) -> float:
        return self.initial_delay_ms / 1000.0


@dataclass(frozen=True)
class MonitorConfig:
    """Settings for one Lambda execution environment."""

    notification_target: str
    waiter: WaiterConfig = field(default_factory=WaiterConfig)
    region: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MonitorConfig":
        """
        Build the configuration from environment variables.

        Raises:
            ConfigurationError: If SNS_TOPIC_ARN is unset or a numeric
                setting is malformed.
        """
        environ = os.environ if environ is None else environ

        notification_target = environ.get("SNS_TOPIC_ARN", "").strip()
        if not notification_target:
            raise ConfigurationError("SNS_TOPIC_ARN environment variable is not set")

        waiter = WaiterConfig(
            max_attempts=_int_setting(environ, "COMMAND_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
            poll_interval_ms=_int_setting(environ, "COMMAND_POLL_INTERVAL_MS", DEFAULT_POLL_INTERVAL_MS),
            initial_delay_ms=_int_setting(environ, "COMMAND_INITIAL_DELAY_MS", DEFAULT_INITIAL_DELAY_MS),
        )

        return cls(
            notification_target=notification_target,
            waiter=waiter,
            region=environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION"),
            log_level=_log_level_setting(environ),
        )


def _log_level_setting(environ: Mapping[str, str]) -> str:
    level = environ.get("LOG_LEVEL", "").strip().upper() or "INFO"
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(f"LOG_LEVEL must be a logging level name, got {level!r}")
    return level


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None

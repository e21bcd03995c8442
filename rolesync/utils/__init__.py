"""Utility modules for AWS client management, configuration and logging."""

from rolesync.utils.aws_client import AWSClientManager, RetryStrategy, retry_for_duration
from rolesync.utils.config import RolesyncConfig, configure_logging
from rolesync.utils.logging import ActionType, LifecycleLogger, LogEntry, LogLevel

__all__ = [
    "AWSClientManager",
    "RetryStrategy",
    "retry_for_duration",
    "RolesyncConfig",
    "configure_logging",
    "ActionType",
    "LifecycleLogger",
    "LogEntry",
    "LogLevel",
]

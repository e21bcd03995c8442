"""Structured logging for role lifecycle operations.

Every lifecycle step (create, read, update, delete, import), every IAM API
call and every retry or failure is recorded as a ``LogEntry`` and written
through the standard ``logging`` module. Entries are sanitized with
``LogSanitizer`` before they are stored or emitted.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from rolesync.utils.security import LogSanitizer

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "aws_iam_role"


class LogLevel(Enum):
    """Log levels for lifecycle operations."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class ActionType(Enum):
    """Types of actions that can be logged."""

    PLAN = "PLAN"
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    IMPORT = "IMPORT"
    ATTACH = "ATTACH"
    DETACH = "DETACH"
    RETRY = "RETRY"
    SKIP = "SKIP"
    ERROR = "ERROR"


@dataclass
class LogEntry:
    """Structured log entry."""

    timestamp: datetime
    level: LogLevel
    action: ActionType
    resource_id: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    error_info: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert log entry to dictionary for structured logging."""
        entry = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "action": self.action.value,
            "resource_type": RESOURCE_TYPE,
            "resource_id": self.resource_id,
            "message": self.message,
        }
        if self.details:
            entry["details"] = self.details
        if self.error_info:
            entry["error"] = self.error_info
        return entry


class LifecycleLogger:
    """Records and emits structured log entries for one role.

    Entries are kept in memory so callers (the handler and the CLI) can
    report what happened during an invocation.
    """

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run
        self._log_entries: List[LogEntry] = []

    def _create_entry(
        self,
        level: LogLevel,
        action: ActionType,
        resource_id: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_info: Optional[Dict[str, Any]] = None,
    ) -> LogEntry:
        """Create a sanitized log entry."""
        return LogEntry(
            timestamp=datetime.now(timezone.utc),
            level=level,
            action=action,
            resource_id=LogSanitizer.sanitize(resource_id or "*"),
            message=LogSanitizer.sanitize(message),
            details=LogSanitizer.sanitize_dict(details) if details else {},
            error_info=LogSanitizer.sanitize_dict(error_info) if error_info else None,
        )

    def _log(self, entry: LogEntry) -> None:
        """Emit entry and store it for reporting."""
        self._log_entries.append(entry)

        prefix = "[DRY RUN] " if self.dry_run else ""
        log_message = (
            f"{prefix}[{entry.action.value}] {RESOURCE_TYPE} "
            f"{entry.resource_id}: {entry.message}"
        )

        if entry.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in entry.details.items())
            log_message += f" ({detail_str})"

        if entry.level == LogLevel.DEBUG:
            logger.debug(log_message)
        elif entry.level == LogLevel.INFO:
            logger.info(log_message)
        elif entry.level == LogLevel.WARNING:
            logger.warning(log_message)
        else:
            if entry.error_info:
                log_message += f" - Error: {entry.error_info}"
            logger.error(log_message)

    def log_action_start(
        self,
        action: ActionType,
        resource_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log start of a lifecycle action."""
        self._log(
            self._create_entry(
                LogLevel.INFO,
                action,
                resource_id,
                f"Starting {action.value.lower()}",
                details,
            )
        )

    def log_action_complete(
        self,
        action: ActionType,
        resource_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log successful completion of a lifecycle action."""
        self._log(
            self._create_entry(
                LogLevel.INFO,
                action,
                resource_id,
                f"Completed {action.value.lower()}",
                details,
            )
        )

    def log_api_call(
        self,
        api_name: str,
        resource_id: str,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log an IAM API call at DEBUG level."""
        details: Dict[str, Any] = {"api": api_name}
        if parameters:
            details["parameters"] = parameters
        self._log(
            self._create_entry(
                LogLevel.DEBUG,
                ActionType.READ if api_name.startswith(("Get", "List")) else ActionType.UPDATE,
                resource_id,
                f"API call: iam.{api_name}",
                details,
            )
        )

    def log_skipped(self, resource_id: str, reason: str) -> None:
        """Log a step that was skipped."""
        self._log(
            self._create_entry(
                LogLevel.INFO, ActionType.SKIP, resource_id, f"Skipped: {reason}"
            )
        )

    def log_not_found(self, resource_id: str) -> None:
        """Log that the role no longer exists and is dropped from state."""
        self._log(
            self._create_entry(
                LogLevel.WARNING,
                ActionType.READ,
                resource_id,
                f"IAM Role {resource_id!r} not found, removing from state",
            )
        )

    def log_retry(self, resource_id: str, api_name: str, reason: str) -> None:
        """Log an eventual-consistency retry."""
        self._log(
            self._create_entry(
                LogLevel.WARNING,
                ActionType.RETRY,
                resource_id,
                f"Retrying {api_name}: {reason}",
            )
        )

    def log_error(
        self,
        resource_id: str,
        error: Exception,
        action: Optional[ActionType] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log error with detailed information."""
        error_info = {
            "error_type": type(error).__name__,
            "error_message": str(error),
        }

        response = getattr(error, "response", None)
        if isinstance(response, dict):
            error_info["aws_error_code"] = response.get("Error", {}).get("Code", "Unknown")

        self._log(
            self._create_entry(
                LogLevel.ERROR,
                action or ActionType.ERROR,
                resource_id,
                f"Error occurred: {type(error).__name__}",
                details,
                error_info,
            )
        )

    def get_log_entries(self) -> List[LogEntry]:
        """Get all log entries for reporting."""
        return self._log_entries.copy()

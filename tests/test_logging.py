"""Tests for structured lifecycle logging."""

import logging

from conftest import client_error
from rolesync.utils.logging import ActionType, LifecycleLogger, LogLevel


class TestLifecycleLogger:
    """Tests for LifecycleLogger."""

    def test_action_start_and_complete(self):
        lifecycle_logger = LifecycleLogger()
        lifecycle_logger.log_action_start(ActionType.CREATE, "role")
        lifecycle_logger.log_action_complete(ActionType.CREATE, "role", {"arn": "x"})

        entries = lifecycle_logger.get_log_entries()
        assert [e.message for e in entries] == ["Starting create", "Completed create"]
        assert entries[1].details == {"arn": "x"}

    def test_entry_to_dict(self):
        lifecycle_logger = LifecycleLogger()
        lifecycle_logger.log_skipped("role", "nothing to do")

        data = lifecycle_logger.get_log_entries()[0].to_dict()

        assert data["resource_type"] == "aws_iam_role"
        assert data["action"] == "SKIP"
        assert data["message"] == "Skipped: nothing to do"

    def test_api_calls_logged_at_debug(self):
        lifecycle_logger = LifecycleLogger()
        lifecycle_logger.log_api_call("GetRole", "role", {"RoleName": "role"})
        lifecycle_logger.log_api_call("DeleteRole", "role")

        entries = lifecycle_logger.get_log_entries()
        assert all(e.level == LogLevel.DEBUG for e in entries)
        assert entries[0].action == ActionType.READ
        assert entries[1].action == ActionType.UPDATE

    def test_error_includes_aws_code(self):
        lifecycle_logger = LifecycleLogger()
        lifecycle_logger.log_error("role", client_error("AccessDenied"), ActionType.DELETE)

        entry = lifecycle_logger.get_log_entries()[0]
        assert entry.level == LogLevel.ERROR
        assert entry.error_info["aws_error_code"] == "AccessDenied"

    def test_sensitive_details_redacted(self):
        lifecycle_logger = LifecycleLogger()
        lifecycle_logger.log_action_start(ActionType.CREATE, "role", {"SessionToken": "abc"})
        assert lifecycle_logger.get_log_entries()[0].details == {"SessionToken": "[REDACTED]"}

    def test_dry_run_prefix(self, caplog):
        with caplog.at_level(logging.INFO, logger="rolesync.utils.logging"):
            LifecycleLogger(dry_run=True).log_action_start(ActionType.PLAN, "role")
        assert "[DRY RUN] [PLAN] aws_iam_role role: Starting plan" in caplog.text

    def test_retry_and_not_found_are_warnings(self):
        lifecycle_logger = LifecycleLogger()
        lifecycle_logger.log_retry("role", "DeleteRole", "DeleteConflict")
        lifecycle_logger.log_not_found("role")

        entries = lifecycle_logger.get_log_entries()
        assert [e.level for e in entries] == [LogLevel.WARNING, LogLevel.WARNING]
        assert entries[0].message == "Retrying DeleteRole: DeleteConflict"

    def test_entries_are_copied(self):
        lifecycle_logger = LifecycleLogger()
        lifecycle_logger.get_log_entries().append("x")
        assert lifecycle_logger.get_log_entries() == []

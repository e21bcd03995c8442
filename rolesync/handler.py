"""Lambda handler for rolesync.

Each invocation carries the desired role configuration and the state
returned by the previous invocation, and returns the new state. The
handler keeps nothing between invocations.

Event format:
    {
        "action": "plan" | "apply" | "destroy" | "import" | "refresh",
        "config": {...},        # RoleConfig, for plan and apply
        "state": {...} | null,  # RoleState from the previous invocation
        "role_name": "..."      # for import
    }

Status codes:
- 200: the action completed
- 400: runtime configuration, role configuration or event is invalid
- 500: an IAM call failed; ``body.state`` holds the role if it exists
"""

import logging
from typing import Any, Callable, Dict

from botocore.exceptions import ClientError

from rolesync.exceptions import (
    AggregateError,
    ConfigurationError,
    RoleOperationError,
    ValidationError,
)
from rolesync.lifecycle.role_manager import RoleManager
from rolesync.models import LifecycleAction, LifecycleResult, RoleConfig, RoleState
from rolesync.utils.aws_client import AWSClientManager
from rolesync.utils.config import RolesyncConfig, configure_logging
from rolesync.utils.logging import LogLevel
from rolesync.utils.security import InputValidator, LogSanitizer

# Configure logging - will be reconfigured with proper level in handler
logger = logging.getLogger()
logger.setLevel(logging.INFO)

ACTIONS = ("plan", "apply", "destroy", "import", "refresh")


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Lambda entry point for rolesync.

    Args:
        event: Action, role configuration and previous state
        context: Lambda context object

    Returns:
        Result with status code, the action taken and the new state
    """
    config = RolesyncConfig.from_environment(validate=False)
    configure_logging(config)

    action = str(event.get("action", "")).lower()
    logger.info(f"Starting rolesync {action or '(no action)'}")
    logger.debug(
        f"Configuration: region={config.region}, dry_run={config.dry_run}, "
        f"log_level={config.log_level}"
    )

    errors = config.validate() + validate_config_security(config)
    if errors:
        logger.error(f"Configuration errors: {LogSanitizer.sanitize(str(errors))}")
        return {"statusCode": 400, "body": {"errors": errors}}

    if action not in ACTIONS:
        message = f"Unknown action {action!r}, expected one of {', '.join(ACTIONS)}"
        logger.error(message)
        return {"statusCode": 400, "body": {"errors": [message]}}

    try:
        client_manager = AWSClientManager(region=config.region, role_arn=config.role_arn or None)
        manager = RoleManager.from_config(config, client_manager)
        body = execute_action(action, event, manager)
    except (ConfigurationError, ValidationError) as e:
        logger.error(f"Invalid request: {LogSanitizer.sanitize(str(e))}")
        return {"statusCode": 400, "body": {"errors": e.errors or [str(e)]}}
    except RoleOperationError as e:
        logger.error(f"Role operation failed: {LogSanitizer.sanitize(str(e))}")
        state = e.state.to_dict() if isinstance(e.state, RoleState) else None
        return {"statusCode": 500, "body": {"errors": [str(e)], "state": state}}
    except AggregateError as e:
        logger.error(f"Role operation failed: {LogSanitizer.sanitize(str(e))}")
        return {"statusCode": 500, "body": {"errors": e.errors}}
    except ClientError as e:
        logger.error(f"AWS error: {LogSanitizer.sanitize(str(e))}")
        return {"statusCode": 500, "body": {"errors": [str(e)]}}

    body["log"] = [
        entry.to_dict()
        for entry in manager.lifecycle_logger.get_log_entries()
        if entry.level != LogLevel.DEBUG
    ]
    return {"statusCode": 200, "body": body}


def validate_config_security(config: RolesyncConfig) -> list[str]:
    """
    Validate runtime configuration for security concerns.

    Args:
        config: Runtime configuration

    Returns:
        List of security validation errors
    """
    errors = []

    region_result = InputValidator.validate_region(config.region)
    if not region_result.is_valid:
        errors.extend(region_result.errors)

    if config.role_arn:
        arn_result = InputValidator.validate_arn(config.role_arn)
        if not arn_result.is_valid:
            errors.extend(arn_result.errors)

    return errors


def _role_config(event: dict[str, Any]) -> RoleConfig:
    data = event.get("config")
    if not isinstance(data, dict):
        raise ValidationError("Missing role configuration", ["config: required"])
    if not data.get("assume_role_policy"):
        raise ValidationError(
            "Missing assume_role_policy", ["assume_role_policy: required"]
        )
    try:
        return RoleConfig.from_dict(data)
    except (TypeError, ValueError, AttributeError) as e:
        raise ValidationError(f"Malformed role configuration: {e}", [f"config: {e}"]) from e


def _role_state(event: dict[str, Any]) -> RoleState | None:
    data = event.get("state")
    if not data:
        return None
    if not isinstance(data, dict) or not data.get("id"):
        raise ValidationError("Malformed state", ["state: must be an object with an id"])
    try:
        return RoleState.from_dict(data)
    except (TypeError, ValueError, AttributeError) as e:
        raise ValidationError(f"Malformed state: {e}", [f"state: {e}"]) from e


def _plan(event: dict[str, Any], manager: RoleManager) -> Dict[str, Any]:
    role_plan = manager.plan(_role_config(event), _role_state(event))
    return {
        "action": role_plan.action.value,
        "plan": role_plan.to_dict(),
        "changes": role_plan.describe(),
    }


def _apply(event: dict[str, Any], manager: RoleManager) -> Dict[str, Any]:
    return manager.apply(_role_config(event), _role_state(event)).to_dict()


def _destroy(event: dict[str, Any], manager: RoleManager) -> Dict[str, Any]:
    return manager.destroy(_role_state(event)).to_dict()


def _import(event: dict[str, Any], manager: RoleManager) -> Dict[str, Any]:
    role_name = event.get("role_name") or ""
    if not role_name:
        raise ValidationError("Missing role_name", ["role_name: required for import"])
    state = manager.import_role(role_name)
    return LifecycleResult(LifecycleAction.IMPORT, state).to_dict()


def _refresh(event: dict[str, Any], manager: RoleManager) -> Dict[str, Any]:
    state = manager.refresh(_role_state(event))
    return LifecycleResult(LifecycleAction.READ, state).to_dict()


_DISPATCH: Dict[str, Callable[[dict[str, Any], RoleManager], Dict[str, Any]]] = {
    "plan": _plan,
    "apply": _apply,
    "destroy": _destroy,
    "import": _import,
    "refresh": _refresh,
}


def execute_action(action: str, event: dict[str, Any], manager: RoleManager) -> Dict[str, Any]:
    """
    Run one lifecycle action.

    Args:
        action: One of ACTIONS
        event: Lambda event
        manager: Role manager bound to the IAM client

    Returns:
        Response body
    """
    logger.info(f"Executing {action}")
    return _DISPATCH[action](event, manager)

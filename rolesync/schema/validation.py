"""Attribute rules for the role resource.

Every rule is checked and all violations are reported together so a
configuration can be fixed in one pass.
"""

import json
import re
from typing import List

from rolesync.exceptions import ValidationError
from rolesync.models import InlinePolicy, RoleConfig
from rolesync.schema.policy import is_json_object
from rolesync.utils.security import InputValidator

NAME_PATTERN = re.compile(r"^[\w+=,.@-]*$")
POLICY_NAME_PATTERN = re.compile(r"^[\w+=,.@-]+$")
DESCRIPTION_FORBIDDEN = re.compile("[“‘]")

NAME_MAX_LENGTH = 64
NAME_PREFIX_MAX_LENGTH = 32
POLICY_NAME_MAX_LENGTH = 128
POLICY_NAME_PREFIX_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000
PERMISSIONS_BOUNDARY_MAX_LENGTH = 2048
MIN_SESSION_DURATION = 3600
MAX_SESSION_DURATION = 43200

# Attributes whose change cannot be applied in place
FORCE_NEW_ATTRIBUTES = ("name", "name_prefix", "path")


def _validate_name(value: str, attribute: str, max_length: int) -> List[str]:
    errors = []
    if not 1 <= len(value) <= max_length:
        errors.append(f"{attribute}: length must be between 1 and {max_length}, got {len(value)}")
    if not NAME_PATTERN.match(value):
        errors.append(f"{attribute}: must match [\\w+=,.@-]")
    return errors


def validate_inline_policy(policy: InlinePolicy, index: int) -> List[str]:
    """Validate one inline policy block."""
    errors = []
    attribute = f"inline_policy.{index}"

    if policy.name:
        if len(policy.name) > POLICY_NAME_MAX_LENGTH:
            errors.append(
                f"{attribute}.name: cannot be longer than {POLICY_NAME_MAX_LENGTH} characters"
            )
        if not POLICY_NAME_PATTERN.match(policy.name):
            errors.append(f"{attribute}.name: must match [\\w+=,.@-]")
        if policy.name_prefix:
            errors.append(f"{attribute}: name conflicts with name_prefix")

    if policy.name_prefix:
        if len(policy.name_prefix) > POLICY_NAME_PREFIX_MAX_LENGTH:
            errors.append(
                f"{attribute}.name_prefix: cannot be longer than "
                f"{POLICY_NAME_PREFIX_MAX_LENGTH} characters"
            )
        if not POLICY_NAME_PATTERN.match(policy.name_prefix):
            errors.append(f"{attribute}.name_prefix: must match [\\w+=,.@-]")

    if not policy.policy:
        errors.append(f"{attribute}.policy: required field is not set")
    elif not is_json_object(policy.policy):
        errors.append(f"{attribute}.policy: contains an invalid JSON policy")

    return errors


def validate_role_config(config: RoleConfig) -> List[str]:
    """Validate a role configuration and return every error found."""
    errors: List[str] = []

    if config.name and config.name_prefix:
        errors.append('"name": conflicts with name_prefix')
    if config.name:
        errors.extend(_validate_name(config.name, "name", NAME_MAX_LENGTH))
    if config.name_prefix:
        errors.extend(_validate_name(config.name_prefix, "name_prefix", NAME_PREFIX_MAX_LENGTH))

    if not config.path.startswith("/") or not config.path.endswith("/"):
        errors.append("path: must begin and end with /")

    if not config.assume_role_policy:
        errors.append("assume_role_policy: required field is not set")
    else:
        try:
            json.loads(config.assume_role_policy)
        except ValueError as e:
            errors.append(f"assume_role_policy: contains an invalid JSON: {e}")

    if len(config.description) > DESCRIPTION_MAX_LENGTH:
        errors.append(
            f"description: length must be between 0 and {DESCRIPTION_MAX_LENGTH}, "
            f"got {len(config.description)}"
        )
    if DESCRIPTION_FORBIDDEN.search(config.description):
        errors.append("description: cannot contain specially formatted single or double quotes: [“‘]")

    if len(config.permissions_boundary) > PERMISSIONS_BOUNDARY_MAX_LENGTH:
        errors.append(
            f"permissions_boundary: length must be between 0 and "
            f"{PERMISSIONS_BOUNDARY_MAX_LENGTH}, got {len(config.permissions_boundary)}"
        )

    if not MIN_SESSION_DURATION <= config.max_session_duration <= MAX_SESSION_DURATION:
        errors.append(
            f"max_session_duration: expected to be in the range ({MIN_SESSION_DURATION} - "
            f"{MAX_SESSION_DURATION}), got {config.max_session_duration}"
        )

    tag_result = InputValidator.validate_tags(config.tags)
    if not tag_result.is_valid:
        errors.extend(f"tags: {e}" for e in tag_result.errors)

    for index, policy in enumerate(config.inline_policies or []):
        # A single all-empty block is how an explicitly empty set is written
        if policy.is_empty() and len(config.inline_policies or []) == 1:
            continue
        errors.extend(validate_inline_policy(policy, index))

    for arn in config.managed_policy_arns or []:
        arn_result = InputValidator.validate_arn(arn)
        if not arn_result.is_valid:
            errors.extend(f"managed_policy_arns: {e}" for e in arn_result.errors)

    return errors


def ensure_valid(config: RoleConfig) -> RoleConfig:
    """Return config unchanged, or raise ValidationError listing every problem."""
    errors = validate_role_config(config)
    if errors:
        raise ValidationError(f"Invalid role configuration: {len(errors)} error(s)", errors=errors)
    return config

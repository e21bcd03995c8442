"""Attribute rules and policy document handling for the role resource."""

from rolesync.schema.policy import normalize_policy_document, policies_equivalent
from rolesync.schema.validation import (
    FORCE_NEW_ATTRIBUTES,
    ensure_valid,
    validate_role_config,
)

__all__ = [
    "FORCE_NEW_ATTRIBUTES",
    "ensure_valid",
    "normalize_policy_document",
    "policies_equivalent",
    "validate_role_config",
]

"""Lifecycle modules for the IAM role and its child objects."""

from rolesync.lifecycle.batch import (
    BatchProcessor,
    BatchResult,
)
from rolesync.lifecycle.inline_policies import InlinePolicyManager
from rolesync.lifecycle.instance_profiles import InstanceProfileManager
from rolesync.lifecycle.managed_policies import ManagedPolicyManager
from rolesync.lifecycle.reconcile import (
    RolePlan,
    diff_inline_policies,
    diff_managed_policy_arns,
    plan,
)
from rolesync.lifecycle.role_manager import RoleManager
from rolesync.lifecycle.tags import TagFilter

__all__ = [
    "RoleManager",
    "InlinePolicyManager",
    "ManagedPolicyManager",
    "InstanceProfileManager",
    "RolePlan",
    "plan",
    "diff_inline_policies",
    "diff_managed_policy_arns",
    "TagFilter",
    "BatchProcessor",
    "BatchResult",
]

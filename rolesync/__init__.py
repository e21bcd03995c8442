"""rolesync - configuration-driven lifecycle management for an AWS IAM role."""

__version__ = "1.0.0"

from rolesync.models import (
    InlinePolicy,
    LifecycleAction,
    LifecycleResult,
    RoleConfig,
    RoleState,
)

__all__ = [
    "InlinePolicy",
    "LifecycleAction",
    "LifecycleResult",
    "RoleConfig",
    "RoleState",
]

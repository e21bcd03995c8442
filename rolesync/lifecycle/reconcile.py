"""Desired-state reconciliation for the role resource.

This module compares a role configuration with the last known state and
decides which lifecycle action is needed and, for an in-place update,
exactly which fields and child objects change. Nothing here calls AWS, so
a plan can always be computed safely, including in dry-run mode.

Child collections (inline policies and managed policy attachments) are
reconciled by set difference: elements only in state are removed,
elements only in configuration are added, elements in both are left
alone.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

from rolesync.lifecycle.tags import TagFilter, diff_tags
from rolesync.models import InlinePolicy, LifecycleAction, RoleConfig, RoleState
from rolesync.schema.policy import policies_equivalent
from rolesync.schema.validation import FORCE_NEW_ATTRIBUTES

logger = logging.getLogger(__name__)


@dataclass
class RolePlan:
    """Changes needed to bring a role from its state to its configuration."""

    action: LifecycleAction
    role_name: str = ""
    changed_fields: List[str] = field(default_factory=list)
    force_new_fields: List[str] = field(default_factory=list)
    tags_to_remove: List[str] = field(default_factory=list)
    tags_to_set: dict = field(default_factory=dict)
    inline_policies_to_remove: List[InlinePolicy] = field(default_factory=list)
    inline_policies_to_add: List[InlinePolicy] = field(default_factory=list)
    managed_policy_arns_to_remove: List[str] = field(default_factory=list)
    managed_policy_arns_to_add: List[str] = field(default_factory=list)

    def has_changes(self) -> bool:
        return self.action != LifecycleAction.NOOP

    def requires_api_calls(self) -> bool:
        """False when only local attributes (force_detach_policies) change."""
        if self.action != LifecycleAction.UPDATE:
            return self.action != LifecycleAction.NOOP
        return any(f != "force_detach_policies" for f in self.changed_fields)

    def describe(self) -> List[str]:
        """Human-readable list of planned changes."""
        lines = []
        if self.action == LifecycleAction.CREATE:
            lines.append(f"+ create role {self.role_name or '(generated name)'}")
        elif self.action == LifecycleAction.REPLACE:
            lines.append(
                f"-/+ replace role {self.role_name} "
                f"(forced by {', '.join(self.force_new_fields)})"
            )
        elif self.action == LifecycleAction.DELETE:
            lines.append(f"- delete role {self.role_name}")
        for name in self.changed_fields:
            if name not in ("tags", "inline_policy", "managed_policy_arns"):
                lines.append(f"~ {name}")
        for key in self.tags_to_remove:
            lines.append(f"- tag {key}")
        for key, value in sorted(self.tags_to_set.items()):
            lines.append(f"~ tag {key}={value}")
        for policy in self.inline_policies_to_remove:
            lines.append(f"- inline policy {policy.name}")
        for policy in self.inline_policies_to_add:
            label = policy.name or (f"{policy.name_prefix}*" if policy.name_prefix else "(generated)")
            lines.append(f"+ inline policy {label}")
        for arn in self.managed_policy_arns_to_remove:
            lines.append(f"- managed policy {arn}")
        for arn in self.managed_policy_arns_to_add:
            lines.append(f"+ managed policy {arn}")
        return lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "role_name": self.role_name,
            "changed_fields": list(self.changed_fields),
            "force_new_fields": list(self.force_new_fields),
            "tags_to_remove": list(self.tags_to_remove),
            "tags_to_set": dict(self.tags_to_set),
            "inline_policies_to_remove": [p.name for p in self.inline_policies_to_remove],
            "inline_policies_to_add": [p.to_dict() for p in self.inline_policies_to_add],
            "managed_policy_arns_to_remove": list(self.managed_policy_arns_to_remove),
            "managed_policy_arns_to_add": list(self.managed_policy_arns_to_add),
        }


def diff_managed_policy_arns(
    old: Iterable[str], new: Iterable[str]
) -> Tuple[List[str], List[str]]:
    """Return (arns to detach, arns to attach)."""
    old_set = set(old)
    new_set = set(new)
    return sorted(old_set - new_set), sorted(new_set - old_set)


def _matches(existing: InlinePolicy, wanted: InlinePolicy) -> bool:
    if not policies_equivalent(existing.policy, wanted.policy):
        return False
    if wanted.name:
        return existing.name == wanted.name
    if wanted.name_prefix:
        return existing.name.startswith(wanted.name_prefix)
    return True


def diff_inline_policies(
    old: Iterable[InlinePolicy], new: Iterable[InlinePolicy]
) -> Tuple[List[InlinePolicy], List[InlinePolicy]]:
    """Return (state policies to delete, config policies to put).

    Configured policies without an explicit name are matched against state
    policies carrying an equivalent document (and the configured prefix,
    if any), so generated names do not show up as changes. Each state
    policy satisfies at most one configured policy.
    """
    remaining = list(old)
    wanted = [p for p in new if not p.is_empty()]

    # Explicit names first, then prefixes, then fully generated names, so a
    # loose match never takes a state policy an exact match needs.
    def specificity(indexed: Tuple[int, InlinePolicy]) -> int:
        policy = indexed[1]
        return 0 if policy.name else 1 if policy.name_prefix else 2

    unmatched: List[Tuple[int, InlinePolicy]] = []
    for index, policy in sorted(enumerate(wanted), key=specificity):
        match = next((s for s in remaining if _matches(s, policy)), None)
        if match is None:
            unmatched.append((index, policy))
        else:
            remaining.remove(match)

    add = [policy for _, policy in sorted(unmatched, key=lambda item: item[0])]
    return remaining, add


def _force_new_fields(config: RoleConfig, state: RoleState) -> List[str]:
    changed = []
    for attribute in FORCE_NEW_ATTRIBUTES:
        wanted = getattr(config, attribute)
        current = getattr(state, attribute)
        # An unset name is computed, so it never forces replacement
        if attribute == "name" and not wanted:
            continue
        if wanted != current:
            changed.append(attribute)
    return changed


def plan(
    config: Optional[RoleConfig],
    state: Optional[RoleState],
    tag_filter: Optional[TagFilter] = None,
) -> RolePlan:
    """Compute the action and changes that bring state in line with config.

    A None config means the role should not exist.
    """
    tag_filter = tag_filter or TagFilter()

    if config is None:
        if state is None:
            return RolePlan(action=LifecycleAction.NOOP)
        return RolePlan(action=LifecycleAction.DELETE, role_name=state.id)

    desired_tags = tag_filter.apply(config.tags)

    if state is None:
        return RolePlan(
            action=LifecycleAction.CREATE,
            role_name=config.name,
            tags_to_set=desired_tags,
            inline_policies_to_add=[p for p in config.inline_policies or [] if not p.is_empty()],
            managed_policy_arns_to_add=sorted(set(config.managed_policy_arns or [])),
        )

    force_new = _force_new_fields(config, state)
    if force_new:
        logger.info(f"Role {state.id} must be replaced, changed: {force_new}")
        return RolePlan(
            action=LifecycleAction.REPLACE,
            role_name=state.id,
            force_new_fields=force_new,
        )

    result = RolePlan(action=LifecycleAction.UPDATE, role_name=state.id)

    if not policies_equivalent(state.assume_role_policy, config.assume_role_policy):
        result.changed_fields.append("assume_role_policy")
    if state.description != config.description:
        result.changed_fields.append("description")
    if state.max_session_duration != config.max_session_duration:
        result.changed_fields.append("max_session_duration")
    if state.permissions_boundary != config.permissions_boundary:
        result.changed_fields.append("permissions_boundary")

    tags_to_remove, tags_to_set = diff_tags(tag_filter.apply(state.tags), desired_tags)
    if tags_to_remove or tags_to_set:
        result.changed_fields.append("tags")
        result.tags_to_remove = tags_to_remove
        result.tags_to_set = tags_to_set

    if config.inline_policies is not None:
        remove, add = diff_inline_policies(state.inline_policies, config.inline_policies)
        if remove or add:
            result.changed_fields.append("inline_policy")
            result.inline_policies_to_remove = remove
            result.inline_policies_to_add = add

    if config.managed_policy_arns is not None:
        detach, attach = diff_managed_policy_arns(
            state.managed_policy_arns, config.managed_policy_arns
        )
        if detach or attach:
            result.changed_fields.append("managed_policy_arns")
            result.managed_policy_arns_to_remove = detach
            result.managed_policy_arns_to_add = attach

    if state.force_detach_policies != config.force_detach_policies:
        result.changed_fields.append("force_detach_policies")

    if not result.changed_fields:
        result.action = LifecycleAction.NOOP

    return result

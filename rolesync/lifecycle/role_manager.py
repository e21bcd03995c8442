"""Create, read, update, delete and import lifecycle for an IAM role.

This module translates a ``RoleConfig`` into IAM API calls and reads the
result back into a ``RoleState``. It follows the lifecycle of a
declarative resource:

- Create: CreateRole (retrying while a principal in the trust policy is
  not yet visible), then put inline policies and attach managed policies.
- Read: GetRole plus the role's inline policies and managed attachments.
  A role that no longer exists yields None.
- Update: only the calls needed for the fields that changed.
- Delete: remove the role from instance profiles, optionally detach and
  delete its policies, then DeleteRole (retrying while IAM still reports
  a dependency conflict).
- Import: read an existing role into a fresh state.

Error handling:
- NoSuchEntity means the role is gone: Read returns None, Delete succeeds
- DeleteConflict and principal propagation errors are retried for a
  bounded window, then one final attempt is made
- Throttling is absorbed by the client retry strategy
- Everything else is raised as RoleOperationError with context
"""

import logging
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from botocore.exceptions import ClientError

from rolesync.exceptions import AggregateError, RoleOperationError
from rolesync.lifecycle.base import IAMComponent
from rolesync.lifecycle.inline_policies import InlinePolicyManager
from rolesync.lifecycle.instance_profiles import InstanceProfileManager
from rolesync.lifecycle.managed_policies import ManagedPolicyManager
from rolesync.lifecycle.reconcile import RolePlan, plan
from rolesync.lifecycle.tags import TagFilter, tags_from_api, tags_to_api
from rolesync.models import LifecycleAction, LifecycleResult, RoleConfig, RoleState
from rolesync.naming import prefixed_unique_id, unique_id
from rolesync.schema.policy import normalize_policy_document
from rolesync.schema.validation import ensure_valid
from rolesync.utils.aws_client import (
    AWSClientManager,
    RetryStrategy,
    error_code,
    is_aws_error,
    retry_for_duration,
)
from rolesync.utils.config import (
    DEFAULT_CREATE_RETRY_TIMEOUT,
    DEFAULT_PROPAGATION_TIMEOUT,
    RolesyncConfig,
)
from rolesync.utils.logging import ActionType, LifecycleLogger

logger = logging.getLogger(__name__)

INVALID_PRINCIPAL_MESSAGE = "Invalid principal in policy"


def _format_create_date(value: Any) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return str(value or "")


def _is_invalid_principal(error: Exception) -> bool:
    return is_aws_error(error, "MalformedPolicyDocument", INVALID_PRINCIPAL_MESSAGE)


def _is_delete_conflict(error: Exception) -> bool:
    return is_aws_error(error, "DeleteConflict")


def _require_tracked(state: Optional[RoleState], role_plan: RolePlan) -> RoleState:
    if state is None:
        raise RoleOperationError(
            f"Cannot {role_plan.action.value} IAM Role {role_plan.role_name}: role is not tracked"
        )
    return state


class RoleManager(IAMComponent):
    """Manages the full lifecycle of one IAM role."""

    def __init__(
        self,
        iam_client: Any,
        dry_run: bool = False,
        retry_strategy: Optional[RetryStrategy] = None,
        lifecycle_logger: Optional[LifecycleLogger] = None,
        tag_filter: Optional[TagFilter] = None,
        create_retry_timeout: float = DEFAULT_CREATE_RETRY_TIMEOUT,
        propagation_timeout: float = DEFAULT_PROPAGATION_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize role manager.

        Args:
            iam_client: Boto3 IAM client
            dry_run: If True, apply and destroy only plan, never mutate
            retry_strategy: Throttling retry strategy shared by all calls
            lifecycle_logger: Structured logger for this invocation
            tag_filter: Tags excluded from state and diffs
            create_retry_timeout: Seconds to retry CreateRole on principal propagation
            propagation_timeout: Seconds to retry DeleteRole on DeleteConflict
            sleep: Sleep function used between eventual-consistency retries
        """
        super().__init__(
            iam_client,
            retry_strategy,
            lifecycle_logger or LifecycleLogger(dry_run=dry_run),
        )
        self.dry_run = dry_run
        self.tag_filter = tag_filter or TagFilter()
        self.create_retry_timeout = create_retry_timeout
        self.propagation_timeout = propagation_timeout
        self._sleep = sleep

        self.inline_policies = InlinePolicyManager(
            iam_client, self.retry_strategy, self.lifecycle_logger
        )
        self.managed_policies = ManagedPolicyManager(
            iam_client, self.retry_strategy, self.lifecycle_logger
        )
        self.instance_profiles = InstanceProfileManager(
            iam_client, self.retry_strategy, self.lifecycle_logger
        )

    @classmethod
    def from_config(
        cls, config: RolesyncConfig, client_manager: AWSClientManager
    ) -> "RoleManager":
        """Build a manager from runtime configuration."""
        return cls(
            client_manager.iam,
            dry_run=config.is_dry_run(),
            retry_strategy=client_manager.retry_strategy,
            tag_filter=TagFilter(
                keys=list(config.ignore_tag_keys),
                key_prefixes=list(config.ignore_tag_key_prefixes),
            ),
            create_retry_timeout=config.create_retry_timeout,
            propagation_timeout=config.propagation_timeout,
        )

    # Create

    @staticmethod
    def resolve_name(config: RoleConfig) -> str:
        """Return the configured name, or generate one."""
        if config.name:
            return config.name
        if config.name_prefix:
            return prefixed_unique_id(config.name_prefix)
        return unique_id()

    @staticmethod
    def build_create_request(config: RoleConfig, role_name: str) -> Dict[str, Any]:
        """Build the CreateRole request; optional fields only when set."""
        request: Dict[str, Any] = {
            "Path": config.path,
            "RoleName": role_name,
            "AssumeRolePolicyDocument": config.assume_role_policy,
        }
        if config.description:
            request["Description"] = config.description
        if config.max_session_duration:
            request["MaxSessionDuration"] = config.max_session_duration
        if config.permissions_boundary:
            request["PermissionsBoundary"] = config.permissions_boundary
        tags = TagFilter().apply(config.tags)
        if tags:
            request["Tags"] = tags_to_api(tags)
        return request

    def create(self, config: RoleConfig) -> RoleState:
        """Create the role and its child objects, then read it back."""
        ensure_valid(config)
        role_name = self.resolve_name(config)
        request = self.build_create_request(config, role_name)
        self.lifecycle_logger.log_action_start(ActionType.CREATE, role_name)

        def create_role() -> Dict[str, Any]:
            try:
                return self._call("CreateRole", "create_role", role_name, **request)
            except ClientError as e:
                if _is_invalid_principal(e):
                    self.lifecycle_logger.log_retry(role_name, "CreateRole", str(e))
                raise

        try:
            response = retry_for_duration(
                create_role,
                _is_invalid_principal,
                self.create_retry_timeout,
                sleep=self._sleep,
            )
        except ClientError as e:
            self.lifecycle_logger.log_error(role_name, e, ActionType.CREATE)
            raise RoleOperationError(f"Error creating IAM Role {role_name}: {e}") from e

        role_name = response["Role"]["RoleName"]
        seed = RoleState(
            id=role_name,
            name=role_name,
            name_prefix=config.name_prefix,
            force_detach_policies=config.force_detach_policies,
        )

        try:
            if config.inline_policies:
                self.inline_policies.put_inline_policies(role_name, config.inline_policies)
            if config.managed_policy_arns:
                self.managed_policies.attach_policies(role_name, config.managed_policy_arns)
        except AggregateError as e:
            self.lifecycle_logger.log_error(role_name, e, ActionType.CREATE)
            raise RoleOperationError(
                f"IAM Role {role_name} created with errors: {e}",
                state=self.read(role_name, seed),
            ) from e

        state = self.read(role_name, seed)
        if state is None:
            raise RoleOperationError(f"IAM Role {role_name} not found after creation")
        self.lifecycle_logger.log_action_complete(ActionType.CREATE, role_name)
        return state

    # Read

    def read(self, role_name: str, previous: Optional[RoleState] = None) -> Optional[RoleState]:
        """Read the role from IAM.

        Attributes IAM does not know about (name_prefix and
        force_detach_policies) are carried over from previous.

        Returns:
            The role state, or None if the role does not exist
        """
        try:
            response = self._call("GetRole", "get_role", role_name, RoleName=role_name)
        except ClientError as e:
            if error_code(e) == "NoSuchEntity":
                self.lifecycle_logger.log_not_found(role_name)
                return None
            raise RoleOperationError(f"Error reading IAM Role {role_name}: {e}") from e

        role = (response or {}).get("Role")
        if not role:
            self.lifecycle_logger.log_not_found(role_name)
            return None

        name = role["RoleName"]
        boundary = role.get("PermissionsBoundary") or {}

        try:
            inline_policies = self.inline_policies.list_inline_policies(name)
        except ClientError as e:
            raise RoleOperationError(
                f"reading inline policies for IAM role {role_name}, error: {e}"
            ) from e

        try:
            managed_policy_arns = self.managed_policies.list_attached_policy_arns(name)
        except ClientError as e:
            raise RoleOperationError(
                f"reading managed policies for IAM role {role_name}, error: {e}"
            ) from e

        state = RoleState(
            id=name,
            name=name,
            arn=role.get("Arn", ""),
            unique_id=role.get("RoleId", ""),
            create_date=_format_create_date(role.get("CreateDate")),
            name_prefix=previous.name_prefix if previous else "",
            path=role.get("Path", "/"),
            assume_role_policy=normalize_policy_document(role.get("AssumeRolePolicyDocument")),
            description=role.get("Description", ""),
            max_session_duration=role.get("MaxSessionDuration", 3600),
            permissions_boundary=boundary.get("PermissionsBoundaryArn", ""),
            tags=self.tag_filter.apply(tags_from_api(role.get("Tags", []))),
            force_detach_policies=previous.force_detach_policies if previous else False,
            inline_policies=inline_policies,
            managed_policy_arns=managed_policy_arns,
        )
        self.lifecycle_logger.log_action_complete(
            ActionType.READ,
            name,
            {
                "inline_policies": len(inline_policies),
                "managed_policies": len(managed_policy_arns),
            },
        )
        return state

    # Update

    def _update_role_field(self, api_name: str, method_name: str, role_name: str, **kwargs: Any) -> bool:
        """Issue one field update; False means the role no longer exists."""
        try:
            self._call(api_name, method_name, role_name, RoleName=role_name, **kwargs)
        except ClientError as e:
            if error_code(e) == "NoSuchEntity":
                self.lifecycle_logger.log_not_found(role_name)
                return False
            raise RoleOperationError(f"Error Updating IAM Role ({role_name}) {api_name}: {e}") from e
        return True

    def update(
        self,
        config: RoleConfig,
        state: RoleState,
        role_plan: Optional[RolePlan] = None,
    ) -> Optional[RoleState]:
        """Apply the changed fields of config to the role in place.

        Returns:
            The refreshed state, or None if the role disappeared
        """
        ensure_valid(config)
        role_plan = role_plan or plan(config, state, self.tag_filter)
        role_name = state.id
        changed = set(role_plan.changed_fields)
        self.lifecycle_logger.log_action_start(
            ActionType.UPDATE, role_name, {"fields": sorted(changed)}
        )

        if "assume_role_policy" in changed and not self._update_role_field(
            "UpdateAssumeRolePolicy",
            "update_assume_role_policy",
            role_name,
            PolicyDocument=config.assume_role_policy,
        ):
            return None

        if "description" in changed and not self._update_role_field(
            "UpdateRoleDescription",
            "update_role_description",
            role_name,
            Description=config.description,
        ):
            return None

        if "max_session_duration" in changed and not self._update_role_field(
            "UpdateRole",
            "update_role",
            role_name,
            MaxSessionDuration=config.max_session_duration,
        ):
            return None

        if "permissions_boundary" in changed:
            self._update_permissions_boundary(role_name, config.permissions_boundary)

        if "tags" in changed:
            self._update_tags(role_name, role_plan)

        if "inline_policy" in changed:
            try:
                self.inline_policies.delete_inline_policies(
                    state.name, [p.name for p in role_plan.inline_policies_to_remove]
                )
            except AggregateError as e:
                raise RoleOperationError(f"unable to delete inline policies: {e}") from e
            try:
                self.inline_policies.put_inline_policies(
                    state.name, role_plan.inline_policies_to_add
                )
            except AggregateError as e:
                raise RoleOperationError(f"unable to create inline policies: {e}") from e

        if "managed_policy_arns" in changed:
            try:
                self.managed_policies.detach_policies(
                    state.name, role_plan.managed_policy_arns_to_remove
                )
            except AggregateError as e:
                raise RoleOperationError(f"unable to detach policies: {e}") from e
            try:
                self.managed_policies.attach_policies(
                    state.name, role_plan.managed_policy_arns_to_add
                )
            except AggregateError as e:
                raise RoleOperationError(f"unable to attach policies: {e}") from e

        previous = replace(
            state,
            name_prefix=config.name_prefix,
            force_detach_policies=config.force_detach_policies,
        )
        if not role_plan.requires_api_calls():
            self.lifecycle_logger.log_skipped(role_name, "no IAM changes needed")
            return previous

        refreshed = self.read(role_name, previous)
        self.lifecycle_logger.log_action_complete(ActionType.UPDATE, role_name)
        return refreshed

    def _update_permissions_boundary(self, role_name: str, boundary: str) -> None:
        try:
            if boundary:
                self._call(
                    "PutRolePermissionsBoundary",
                    "put_role_permissions_boundary",
                    role_name,
                    RoleName=role_name,
                    PermissionsBoundary=boundary,
                )
            else:
                self._call(
                    "DeleteRolePermissionsBoundary",
                    "delete_role_permissions_boundary",
                    role_name,
                    RoleName=role_name,
                )
        except ClientError as e:
            verb = "updating" if boundary else "deleting"
            raise RoleOperationError(f"error {verb} IAM Role permissions boundary: {e}") from e

    def _update_tags(self, role_name: str, role_plan: RolePlan) -> None:
        try:
            if role_plan.tags_to_remove:
                self._call(
                    "UntagRole",
                    "untag_role",
                    role_name,
                    RoleName=role_name,
                    TagKeys=role_plan.tags_to_remove,
                )
            if role_plan.tags_to_set:
                self._call(
                    "TagRole",
                    "tag_role",
                    role_name,
                    RoleName=role_name,
                    Tags=tags_to_api(role_plan.tags_to_set),
                )
        except ClientError as e:
            raise RoleOperationError(f"error updating IAM Role ({role_name}) tags: {e}") from e

    # Delete

    def delete(self, role_name: str, force_detach_policies: bool = False) -> None:
        """Delete the role. A role that is already gone counts as deleted."""
        self.lifecycle_logger.log_action_start(
            ActionType.DELETE, role_name, {"force_detach_policies": force_detach_policies}
        )
        try:
            self._delete_role(role_name, force_detach_policies)
        except ClientError as e:
            if error_code(e) == "NoSuchEntity":
                self.lifecycle_logger.log_skipped(role_name, "role already deleted")
                return
            self.lifecycle_logger.log_error(role_name, e, ActionType.DELETE)
            raise RoleOperationError(f"error deleting IAM Role ({role_name}): {e}") from e
        self.lifecycle_logger.log_action_complete(ActionType.DELETE, role_name)

    def _delete_role(self, role_name: str, force_detach_policies: bool) -> None:
        try:
            self.instance_profiles.remove_role_from_instance_profiles(role_name)
        except ClientError as e:
            raise RoleOperationError(f"unable to detach instance profiles: {e}") from e

        if force_detach_policies:
            policy_arns = self.managed_policies.list_attached_policy_arns(role_name)
            try:
                self.managed_policies.detach_policies(role_name, policy_arns)
            except AggregateError as e:
                raise RoleOperationError(f"unable to detach policies: {e}") from e

            policy_names = self.inline_policies.list_policy_names(role_name)
            try:
                self.inline_policies.delete_inline_policies(role_name, policy_names)
            except AggregateError as e:
                raise RoleOperationError(f"unable to delete inline policies: {e}") from e

        def delete_role() -> None:
            try:
                self._call("DeleteRole", "delete_role", role_name, RoleName=role_name)
            except ClientError as e:
                if _is_delete_conflict(e):
                    self.lifecycle_logger.log_retry(role_name, "DeleteRole", str(e))
                raise

        retry_for_duration(
            delete_role,
            _is_delete_conflict,
            self.propagation_timeout,
            sleep=self._sleep,
        )

    # Import

    def import_role(self, role_name: str) -> RoleState:
        """Read an existing role into a fresh state."""
        self.lifecycle_logger.log_action_start(ActionType.IMPORT, role_name)
        state = self.read(role_name)
        if state is None:
            raise RoleOperationError(
                f"Cannot import non-existent remote object: IAM Role {role_name}"
            )
        state.force_detach_policies = False
        self.lifecycle_logger.log_action_complete(ActionType.IMPORT, role_name)
        return state

    # Plan / apply / destroy

    def refresh(self, state: Optional[RoleState]) -> Optional[RoleState]:
        """Re-read a tracked role; None if untracked or gone."""
        if state is None:
            return None
        return self.read(state.id, state)

    def plan(self, config: Optional[RoleConfig], state: Optional[RoleState]) -> RolePlan:
        """Refresh state, then compute the changes config requires."""
        if config is not None:
            ensure_valid(config)
        current = self.refresh(state)
        role_plan = plan(config, current, self.tag_filter)
        self.lifecycle_logger.log_action_complete(
            ActionType.PLAN, role_plan.role_name, {"action": role_plan.action.value}
        )
        return role_plan

    def apply(self, config: RoleConfig, state: Optional[RoleState]) -> LifecycleResult:
        """Bring the role in line with config."""
        ensure_valid(config)
        current = self.refresh(state)
        role_plan = plan(config, current, self.tag_filter)
        changes = role_plan.describe()

        if self.dry_run:
            return LifecycleResult(role_plan.action, current, changes, dry_run=True)

        if role_plan.action == LifecycleAction.CREATE:
            new_state = self.create(config)
        elif role_plan.action == LifecycleAction.REPLACE:
            current = _require_tracked(current, role_plan)
            self.delete(current.id, current.force_detach_policies)
            new_state = self.create(config)
        elif role_plan.action == LifecycleAction.UPDATE:
            new_state = self.update(config, _require_tracked(current, role_plan), role_plan)
        else:
            new_state = current

        return LifecycleResult(role_plan.action, new_state, changes)

    def destroy(self, state: Optional[RoleState]) -> LifecycleResult:
        """Delete the tracked role, if any."""
        if state is None:
            return LifecycleResult(LifecycleAction.NOOP, None, [], dry_run=self.dry_run)

        changes = plan(None, state).describe()
        if self.dry_run:
            return LifecycleResult(LifecycleAction.DELETE, state, changes, dry_run=True)

        self.delete(state.id, state.force_detach_policies)
        return LifecycleResult(LifecycleAction.DELETE, None, changes)

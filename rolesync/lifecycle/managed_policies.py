"""Managed policy attachments of a role."""

import logging
from typing import List, Sequence

from botocore.exceptions import ClientError

from rolesync.lifecycle.base import IAMComponent
from rolesync.lifecycle.batch import BatchProcessor
from rolesync.utils.aws_client import error_code

logger = logging.getLogger(__name__)


class ManagedPolicyManager(IAMComponent):
    """Lists, attaches and detaches managed policies on a role."""

    def list_attached_policy_arns(self, role_name: str) -> List[str]:
        """Return the ARNs of the managed policies attached to the role."""
        try:
            policies = self._paginate(
                "ListAttachedRolePolicies",
                "list_attached_role_policies",
                "AttachedPolicies",
                role_name,
                RoleName=role_name,
            )
        except ClientError as e:
            if error_code(e) == "NoSuchEntity":
                return []
            raise
        return [policy["PolicyArn"] for policy in policies]

    def attach_policies(self, role_name: str, policy_arns: Sequence[str]) -> None:
        """Attach every policy, then raise AggregateError if any failed."""

        def attach(policy_arn: str) -> None:
            self._call(
                "AttachRolePolicy",
                "attach_role_policy",
                role_name,
                RoleName=role_name,
                PolicyArn=policy_arn,
            )

        BatchProcessor("attaching managed policy").run(list(policy_arns), attach)

    def detach_policies(self, role_name: str, policy_arns: Sequence[str]) -> None:
        """Detach every policy; attachments already gone are skipped."""

        def detach(policy_arn: str) -> None:
            try:
                self._call(
                    "DetachRolePolicy",
                    "detach_role_policy",
                    role_name,
                    RoleName=role_name,
                    PolicyArn=policy_arn,
                )
            except ClientError as e:
                if error_code(e) != "NoSuchEntity":
                    raise
                logger.debug(f"Policy {policy_arn} already detached from {role_name}")

        BatchProcessor("detaching managed policy").run(list(policy_arns), detach)

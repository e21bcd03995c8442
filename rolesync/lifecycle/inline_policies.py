"""Inline policies embedded in a role."""

import logging
from typing import Any, Dict, List, Sequence

from botocore.exceptions import ClientError

from rolesync.lifecycle.base import IAMComponent
from rolesync.lifecycle.batch import BatchProcessor
from rolesync.models import InlinePolicy
from rolesync.naming import prefixed_unique_id, unique_id
from rolesync.schema.policy import normalize_policy_document
from rolesync.utils.aws_client import error_code

logger = logging.getLogger(__name__)


def expand_inline_policy(role_name: str, policy: InlinePolicy) -> Dict[str, str]:
    """Build the PutRolePolicy request for one configured policy.

    Policies configured without a name get one generated from their
    name_prefix, or from the default prefix.
    """
    if policy.name:
        policy_name = policy.name
    elif policy.name_prefix:
        policy_name = prefixed_unique_id(policy.name_prefix)
    else:
        policy_name = unique_id()

    return {
        "RoleName": role_name,
        "PolicyName": policy_name,
        "PolicyDocument": policy.policy,
    }


def expand_inline_policies(
    role_name: str, policies: Sequence[InlinePolicy]
) -> List[Dict[str, str]]:
    return [expand_inline_policy(role_name, p) for p in policies if not p.is_empty()]


def flatten_inline_policy(request: Dict[str, Any]) -> InlinePolicy:
    return InlinePolicy(name=request["PolicyName"], policy=request["PolicyDocument"])


class InlinePolicyManager(IAMComponent):
    """Reads, puts and deletes a role's inline policies."""

    def list_policy_names(self, role_name: str) -> List[str]:
        """Return the names of the role's inline policies."""
        try:
            return self._paginate(
                "ListRolePolicies", "list_role_policies", "PolicyNames", role_name, RoleName=role_name
            )
        except ClientError as e:
            if error_code(e) == "NoSuchEntity":
                return []
            raise

    def list_inline_policies(self, role_name: str) -> List[InlinePolicy]:
        """Return the role's inline policies with decoded documents."""
        policies = []
        for policy_name in self.list_policy_names(role_name):
            response = self._call(
                "GetRolePolicy",
                "get_role_policy",
                role_name,
                RoleName=role_name,
                PolicyName=policy_name,
            )
            policies.append(
                InlinePolicy(
                    name=response.get("PolicyName", policy_name),
                    policy=normalize_policy_document(response.get("PolicyDocument")),
                )
            )
        return policies

    def put_inline_policies(
        self, role_name: str, policies: Sequence[InlinePolicy]
    ) -> List[InlinePolicy]:
        """Put every policy, then raise AggregateError if any failed.

        Returns:
            The policies as stored, with their final names
        """
        requests = expand_inline_policies(role_name, policies)

        def put(request: Dict[str, str]) -> None:
            self._call("PutRolePolicy", "put_role_policy", role_name, **request)

        BatchProcessor("creating inline policy").run(
            requests, put, label=lambda r: r["PolicyName"]
        )
        return [flatten_inline_policy(r) for r in requests]

    def delete_inline_policies(self, role_name: str, policy_names: Sequence[str]) -> None:
        """Delete the named policies; ones already gone are skipped."""

        def delete(policy_name: str) -> None:
            try:
                self._call(
                    "DeleteRolePolicy",
                    "delete_role_policy",
                    role_name,
                    RoleName=role_name,
                    PolicyName=policy_name,
                )
            except ClientError as e:
                if error_code(e) != "NoSuchEntity":
                    raise
                logger.debug(f"Inline policy {policy_name} of role {role_name} already deleted")

        BatchProcessor("deleting inline policy").run(list(policy_names), delete)

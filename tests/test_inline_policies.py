"""Tests for inline policy management."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from conftest import READ_POLICY, WRITE_POLICY, client_error, make_iam_client
from rolesync.exceptions import AggregateError
from rolesync.lifecycle.inline_policies import (
    InlinePolicyManager,
    expand_inline_policies,
    expand_inline_policy,
    flatten_inline_policy,
)
from rolesync.models import InlinePolicy
from rolesync.utils.aws_client import RetryStrategy


class TestExpandInlinePolicy:
    """Tests for building PutRolePolicy requests."""

    def test_named_policy(self):
        request = expand_inline_policy("role", InlinePolicy(name="read", policy=READ_POLICY))
        assert request == {"RoleName": "role", "PolicyName": "read", "PolicyDocument": READ_POLICY}

    def test_prefixed_policy(self):
        request = expand_inline_policy("role", InlinePolicy(name_prefix="app-", policy=READ_POLICY))
        assert request["PolicyName"].startswith("app-")
        assert len(request["PolicyName"]) == len("app-") + 26

    def test_generated_name(self):
        request = expand_inline_policy("role", InlinePolicy(policy=READ_POLICY))
        assert request["PolicyName"].startswith("terraform-")

    def test_empty_entries_skipped(self):
        requests = expand_inline_policies(
            "role", [InlinePolicy(policy=""), InlinePolicy(name="read", policy=READ_POLICY)]
        )
        assert [r["PolicyName"] for r in requests] == ["read"]

    def test_flatten(self):
        request = {"RoleName": "role", "PolicyName": "read", "PolicyDocument": READ_POLICY}
        assert flatten_inline_policy(request) == InlinePolicy(name="read", policy=READ_POLICY)


class TestListInlinePolicies:
    """Tests for reading a role's inline policies."""

    def test_lists_names_and_documents(self):
        mock_iam = make_iam_client(inline_policies={"read": READ_POLICY, "write": WRITE_POLICY})
        manager = InlinePolicyManager(mock_iam)

        policies = manager.list_inline_policies("role")

        assert policies == [
            InlinePolicy(name="read", policy=READ_POLICY),
            InlinePolicy(name="write", policy=WRITE_POLICY),
        ]
        mock_iam.get_role_policy.assert_any_call(RoleName="role", PolicyName="read")

    def test_missing_role_has_no_policies(self):
        mock_iam = MagicMock()
        mock_iam.get_paginator.return_value.paginate.side_effect = client_error("NoSuchEntity")

        assert InlinePolicyManager(mock_iam).list_inline_policies("role") == []

    def test_other_errors_propagate(self):
        mock_iam = MagicMock()
        mock_iam.get_paginator.return_value.paginate.side_effect = client_error("AccessDenied")

        with pytest.raises(ClientError):
            InlinePolicyManager(mock_iam).list_policy_names("role")

    def test_throttled_listing_is_retried(self):
        mock_iam = MagicMock()
        mock_iam.get_paginator.return_value.paginate.side_effect = [
            client_error("Throttling", "Rate exceeded"),
            [{"PolicyNames": ["read"]}, {"PolicyNames": ["write"]}],
        ]
        manager = InlinePolicyManager(mock_iam, RetryStrategy(base_delay=0, jitter=False))

        assert manager.list_policy_names("role") == ["read", "write"]


class TestPutInlinePolicies:
    """Tests for putting inline policies."""

    def test_puts_every_policy(self):
        mock_iam = MagicMock()
        manager = InlinePolicyManager(mock_iam)

        stored = manager.put_inline_policies(
            "role",
            [InlinePolicy(name="read", policy=READ_POLICY), InlinePolicy(policy=WRITE_POLICY)],
        )

        assert mock_iam.put_role_policy.call_count == 2
        assert stored[0] == InlinePolicy(name="read", policy=READ_POLICY)
        assert stored[1].name.startswith("terraform-")

    def test_failures_aggregated(self):
        mock_iam = MagicMock()
        mock_iam.put_role_policy.side_effect = [
            client_error("MalformedPolicyDocument", "bad"),
            None,
        ]
        manager = InlinePolicyManager(mock_iam, retry_strategy=RetryStrategy(max_retries=0))

        with pytest.raises(AggregateError) as exc_info:
            manager.put_inline_policies(
                "role",
                [
                    InlinePolicy(name="bad", policy=READ_POLICY),
                    InlinePolicy(name="good", policy=WRITE_POLICY),
                ],
            )

        assert mock_iam.put_role_policy.call_count == 2
        assert len(exc_info.value.errors) == 1
        assert exc_info.value.errors[0].startswith("creating inline policy (bad):")


class TestDeleteInlinePolicies:
    """Tests for deleting inline policies."""

    def test_deletes_each_policy(self):
        mock_iam = MagicMock()
        InlinePolicyManager(mock_iam).delete_inline_policies("role", ["a", "b"])

        mock_iam.delete_role_policy.assert_any_call(RoleName="role", PolicyName="a")
        mock_iam.delete_role_policy.assert_any_call(RoleName="role", PolicyName="b")

    def test_missing_policy_skipped_and_loop_continues(self):
        mock_iam = MagicMock()
        mock_iam.delete_role_policy.side_effect = [client_error("NoSuchEntity"), None]

        InlinePolicyManager(mock_iam).delete_inline_policies("role", ["gone", "b"])

        assert mock_iam.delete_role_policy.call_count == 2

    def test_other_errors_aggregated(self):
        mock_iam = MagicMock()
        mock_iam.delete_role_policy.side_effect = client_error("AccessDenied", "no")

        with pytest.raises(AggregateError) as exc_info:
            InlinePolicyManager(mock_iam).delete_inline_policies("role", ["a", "b"])

        assert len(exc_info.value.errors) == 2

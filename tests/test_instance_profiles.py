"""Tests for instance profile handling.

Tests for listing the profiles that contain a role and removing the role
from them before deletion.
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from conftest import client_error, make_iam_client
from rolesync.lifecycle.instance_profiles import InstanceProfileManager
from rolesync.utils.aws_client import RetryStrategy


class TestListInstanceProfiles:
    def test_lists_profile_names(self):
        mock_iam = make_iam_client(instance_profiles=["web", "worker"])
        assert InstanceProfileManager(mock_iam).list_instance_profiles("role") == ["web", "worker"]
        mock_iam.get_paginator.assert_called_with("list_instance_profiles_for_role")

    def test_missing_role_has_no_profiles(self):
        mock_iam = MagicMock()
        mock_iam.get_paginator.return_value.paginate.side_effect = client_error("NoSuchEntity")
        assert InstanceProfileManager(mock_iam).list_instance_profiles("role") == []

    def test_throttled_listing_is_retried(self):
        mock_iam = MagicMock()
        mock_iam.get_paginator.return_value.paginate.side_effect = [
            client_error("Throttling", "Rate exceeded"),
            [{"InstanceProfiles": [{"InstanceProfileName": "web"}]}],
        ]
        manager = InstanceProfileManager(mock_iam, RetryStrategy(base_delay=0, jitter=False))

        assert manager.list_instance_profiles("role") == ["web"]


class TestRemoveRoleFromInstanceProfiles:
    def test_removes_role_from_each_profile(self):
        mock_iam = make_iam_client(instance_profiles=["web", "worker"])

        removed = InstanceProfileManager(mock_iam).remove_role_from_instance_profiles("role")

        assert removed == ["web", "worker"]
        mock_iam.remove_role_from_instance_profile.assert_any_call(
            InstanceProfileName="web", RoleName="role"
        )
        mock_iam.remove_role_from_instance_profile.assert_any_call(
            InstanceProfileName="worker", RoleName="role"
        )

    def test_vanished_profile_skipped(self):
        mock_iam = make_iam_client(instance_profiles=["gone", "web"])
        mock_iam.remove_role_from_instance_profile.side_effect = [
            client_error("NoSuchEntity"),
            None,
        ]

        removed = InstanceProfileManager(mock_iam).remove_role_from_instance_profiles("role")

        assert removed == ["web"]

    def test_other_errors_stop_removal(self):
        mock_iam = make_iam_client(instance_profiles=["web", "worker"])
        mock_iam.remove_role_from_instance_profile.side_effect = client_error("AccessDenied")

        with pytest.raises(ClientError):
            InstanceProfileManager(mock_iam).remove_role_from_instance_profiles("role")

        mock_iam.remove_role_from_instance_profile.assert_called_once()

    def test_no_profiles(self):
        mock_iam = make_iam_client()
        assert InstanceProfileManager(mock_iam).remove_role_from_instance_profiles("role") == []
        mock_iam.remove_role_from_instance_profile.assert_not_called()

"""Pytest configuration and shared fixtures."""

import json
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional
from unittest.mock import MagicMock
from urllib.parse import quote

import pytest
from botocore.exceptions import ClientError

from rolesync.lifecycle.role_manager import RoleManager
from rolesync.models import InlinePolicy, RoleConfig, RoleState

# Set AWS region for tests
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_REGION", "us-east-1")

ACCOUNT_ID = "123456789012"

TRUST_POLICY = json.dumps(
    {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": "ec2.amazonaws.com"},
                "Action": "sts:AssumeRole",
            }
        ],
    }
)

READ_POLICY = json.dumps(
    {
        "Version": "2012-10-17",
        "Statement": [{"Effect": "Allow", "Action": "s3:GetObject", "Resource": "*"}],
    }
)

WRITE_POLICY = json.dumps(
    {
        "Version": "2012-10-17",
        "Statement": [{"Effect": "Allow", "Action": "s3:PutObject", "Resource": "*"}],
    }
)


def client_error(code: str, message: str = "error", operation: str = "Operation") -> ClientError:
    """Create a ClientError carrying the given AWS error code."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def policy_arn(name: str) -> str:
    return f"arn:aws:iam::{ACCOUNT_ID}:policy/{name}"


def role_response(
    name: str = "test-role",
    path: str = "/",
    description: str = "",
    max_session_duration: int = 3600,
    tags: Optional[Dict[str, str]] = None,
    permissions_boundary: str = "",
    assume_role_policy: str = TRUST_POLICY,
) -> Dict:
    """Create a GetRole / CreateRole response."""
    role = {
        "RoleName": name,
        "RoleId": "AROA1234567890EXAMPLE",
        "Arn": f"arn:aws:iam::{ACCOUNT_ID}:role{path}{name}",
        "Path": path,
        "CreateDate": datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        "AssumeRolePolicyDocument": quote(assume_role_policy),
        "MaxSessionDuration": max_session_duration,
        "Tags": [{"Key": k, "Value": v} for k, v in (tags or {}).items()],
    }
    if description:
        role["Description"] = description
    if permissions_boundary:
        role["PermissionsBoundary"] = {
            "PermissionsBoundaryType": "Policy",
            "PermissionsBoundaryArn": permissions_boundary,
        }
    return {"Role": role}


def make_iam_client(
    inline_policies: Optional[Dict[str, str]] = None,
    managed_policy_arns: Optional[List[str]] = None,
    instance_profiles: Optional[List[str]] = None,
) -> MagicMock:
    """Create a mock IAM client whose paginators return the given children."""
    inline_policies = inline_policies or {}
    pages = {
        "list_role_policies": [{"PolicyNames": list(inline_policies)}],
        "list_attached_role_policies": [
            {
                "AttachedPolicies": [
                    {"PolicyName": arn.rsplit("/", 1)[-1], "PolicyArn": arn}
                    for arn in managed_policy_arns or []
                ]
            }
        ],
        "list_instance_profiles_for_role": [
            {"InstanceProfiles": [{"InstanceProfileName": p} for p in instance_profiles or []]}
        ],
    }

    def get_paginator(operation_name):
        paginator = MagicMock()
        paginator.paginate.return_value = pages[operation_name]
        return paginator

    def get_role_policy(RoleName, PolicyName):
        return {
            "RoleName": RoleName,
            "PolicyName": PolicyName,
            "PolicyDocument": quote(inline_policies[PolicyName]),
        }

    mock_iam = MagicMock()
    mock_iam.get_paginator.side_effect = get_paginator
    mock_iam.get_role_policy.side_effect = get_role_policy
    mock_iam.get_role.side_effect = lambda RoleName: role_response(name=RoleName)
    mock_iam.create_role.side_effect = lambda **request: role_response(
        name=request["RoleName"], path=request.get("Path", "/")
    )
    return mock_iam


@pytest.fixture
def mock_iam() -> MagicMock:
    """IAM client for a role without children."""
    return make_iam_client()


@pytest.fixture
def no_sleep() -> MagicMock:
    return MagicMock()


@pytest.fixture
def role_manager(mock_iam, no_sleep) -> RoleManager:
    """Role manager with short retry windows and no real sleeping."""
    return RoleManager(
        mock_iam,
        create_retry_timeout=0,
        propagation_timeout=0,
        sleep=no_sleep,
    )


@pytest.fixture
def role_config() -> RoleConfig:
    """Minimal valid role configuration."""
    return RoleConfig(assume_role_policy=TRUST_POLICY, name="test-role")


@pytest.fixture
def role_state() -> RoleState:
    """State matching role_config."""
    return RoleState(
        id="test-role",
        name="test-role",
        arn=f"arn:aws:iam::{ACCOUNT_ID}:role/test-role",
        unique_id="AROA1234567890EXAMPLE",
        create_date="2024-01-02T03:04:05Z",
        assume_role_policy=TRUST_POLICY,
    )


@pytest.fixture
def read_policy() -> InlinePolicy:
    return InlinePolicy(name="read", policy=READ_POLICY)

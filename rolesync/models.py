"""Data models for rolesync."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_PATH = "/"
DEFAULT_MAX_SESSION_DURATION = 3600


class LifecycleAction(Enum):
    """Lifecycle actions that can be planned or performed on a role."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    IMPORT = "import"
    NOOP = "noop"


@dataclass(frozen=True)
class InlinePolicy:
    """Inline policy embedded in a role.

    In configuration ``name`` may be empty, in which case a name is
    generated from ``name_prefix`` (or from the default prefix). In state
    ``name`` is always the name IAM knows the policy by.
    """

    policy: str
    name: str = ""
    name_prefix: str = ""

    def is_empty(self) -> bool:
        return not (self.name or self.name_prefix or self.policy)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InlinePolicy":
        return cls(
            policy=data.get("policy") or "",
            name=data.get("name") or "",
            name_prefix=data.get("name_prefix") or "",
        )

    def to_dict(self) -> dict[str, str]:
        result = {"name": self.name, "policy": self.policy}
        if self.name_prefix:
            result["name_prefix"] = self.name_prefix
        return result


@dataclass
class RoleConfig:
    """Desired attributes of a role.

    ``inline_policies`` and ``managed_policy_arns`` set to None mean the
    collection is not managed: whatever exists in AWS is left alone.
    An empty list means the role must have none.
    """

    assume_role_policy: str
    name: str = ""
    name_prefix: str = ""
    path: str = DEFAULT_PATH
    description: str = ""
    max_session_duration: int = DEFAULT_MAX_SESSION_DURATION
    permissions_boundary: str = ""
    tags: dict[str, str] = field(default_factory=dict)
    force_detach_policies: bool = False
    inline_policies: list[InlinePolicy] | None = None
    managed_policy_arns: list[str] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RoleConfig":
        """Build a config from its JSON form.

        ``assume_role_policy`` and inline ``policy`` values may be given as
        JSON strings or as already-parsed objects.
        """
        inline = data.get("inline_policy")
        managed = data.get("managed_policy_arns")
        return cls(
            assume_role_policy=_document(data.get("assume_role_policy")),
            name=data.get("name") or "",
            name_prefix=data.get("name_prefix") or "",
            path=data.get("path") or DEFAULT_PATH,
            description=data.get("description") or "",
            max_session_duration=int(
                data.get("max_session_duration") or DEFAULT_MAX_SESSION_DURATION
            ),
            permissions_boundary=data.get("permissions_boundary") or "",
            tags=dict(data.get("tags") or {}),
            force_detach_policies=bool(data.get("force_detach_policies", False)),
            inline_policies=(
                None
                if inline is None
                else [
                    InlinePolicy.from_dict({**p, "policy": _document(p.get("policy"))})
                    for p in inline
                ]
            ),
            managed_policy_arns=None if managed is None else list(managed),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "name_prefix": self.name_prefix,
            "path": self.path,
            "assume_role_policy": self.assume_role_policy,
            "description": self.description,
            "max_session_duration": self.max_session_duration,
            "permissions_boundary": self.permissions_boundary,
            "tags": dict(self.tags),
            "force_detach_policies": self.force_detach_policies,
        }
        if self.inline_policies is not None:
            result["inline_policy"] = [p.to_dict() for p in self.inline_policies]
        if self.managed_policy_arns is not None:
            result["managed_policy_arns"] = sorted(self.managed_policy_arns)
        return result


@dataclass
class RoleState:
    """Attributes of a role as last read from IAM."""

    id: str
    name: str
    arn: str = ""
    unique_id: str = ""
    create_date: str = ""
    name_prefix: str = ""
    path: str = DEFAULT_PATH
    assume_role_policy: str = ""
    description: str = ""
    max_session_duration: int = DEFAULT_MAX_SESSION_DURATION
    permissions_boundary: str = ""
    tags: dict[str, str] = field(default_factory=dict)
    force_detach_policies: bool = False
    inline_policies: list[InlinePolicy] = field(default_factory=list)
    managed_policy_arns: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RoleState":
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            arn=data.get("arn") or "",
            unique_id=data.get("unique_id") or "",
            create_date=data.get("create_date") or "",
            name_prefix=data.get("name_prefix") or "",
            path=data.get("path") or DEFAULT_PATH,
            assume_role_policy=data.get("assume_role_policy") or "",
            description=data.get("description") or "",
            max_session_duration=int(
                data.get("max_session_duration") or DEFAULT_MAX_SESSION_DURATION
            ),
            permissions_boundary=data.get("permissions_boundary") or "",
            tags=dict(data.get("tags") or {}),
            force_detach_policies=bool(data.get("force_detach_policies", False)),
            inline_policies=[InlinePolicy.from_dict(p) for p in data.get("inline_policy") or []],
            managed_policy_arns=list(data.get("managed_policy_arns") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "arn": self.arn,
            "unique_id": self.unique_id,
            "create_date": self.create_date,
            "name": self.name,
            "name_prefix": self.name_prefix,
            "path": self.path,
            "assume_role_policy": self.assume_role_policy,
            "description": self.description,
            "max_session_duration": self.max_session_duration,
            "permissions_boundary": self.permissions_boundary,
            "tags": dict(self.tags),
            "force_detach_policies": self.force_detach_policies,
            "inline_policy": [
                {"name": p.name, "policy": p.policy}
                for p in sorted(self.inline_policies, key=lambda p: p.name)
            ],
            "managed_policy_arns": sorted(self.managed_policy_arns),
        }


@dataclass
class LifecycleResult:
    """Result of a lifecycle operation.

    ``state`` is None when the role no longer exists after the operation.
    """

    action: LifecycleAction
    state: RoleState | None = None
    changes: list[str] = field(default_factory=list)
    dry_run: bool = False
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "dry_run": self.dry_run,
            "changes": list(self.changes),
            "errors": list(self.errors),
            "state": self.state.to_dict() if self.state else None,
        }


def _document(value: Any) -> str:
    """Return a policy document as a JSON string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)

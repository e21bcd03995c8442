"""IAM policy document helpers.

IAM returns policy documents URL-encoded (or, through boto3, already
decoded into dicts) and reformatted, so a document read back from AWS is
rarely byte-identical to the one that was sent. These helpers decode API
documents and compare documents by meaning rather than by text.
"""

import json
from typing import Any
from urllib.parse import unquote


def normalize_policy_document(document: Any) -> str:
    """Return a policy document from an IAM response as a JSON string."""
    if document is None:
        return ""
    if isinstance(document, (dict, list)):
        return json.dumps(document)
    return unquote(str(document))


def is_json_object(document: str) -> bool:
    try:
        return isinstance(json.loads(document), dict)
    except (TypeError, ValueError):
        return False


def _as_sorted_list(value: Any) -> Any:
    if isinstance(value, list):
        items = [_canonical(v) for v in value]
        return sorted(items, key=lambda v: json.dumps(v, sort_keys=True))
    return [_canonical(value)]


def _canonical(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _canonical(v) for k, v in value.items()}
    return value


def _canonical_principal(principal: Any) -> Any:
    # "*" and {"AWS": "*"} grant the same thing
    if principal == "*":
        return {"AWS": ["*"]}
    if isinstance(principal, dict):
        return {k: _as_sorted_list(v) for k, v in principal.items()}
    return principal


def _canonical_condition(condition: Any) -> Any:
    if not isinstance(condition, dict):
        return condition
    return {
        operator: (
            {key: _as_sorted_list(v) for key, v in block.items()}
            if isinstance(block, dict)
            else block
        )
        for operator, block in condition.items()
    }


def _canonical_statement(statement: Any) -> Any:
    if not isinstance(statement, dict):
        return statement
    result = {}
    for key, value in statement.items():
        if key == "Sid" and not value:
            continue
        if key in ("Action", "NotAction", "Resource", "NotResource"):
            result[key] = _as_sorted_list(value)
        elif key in ("Principal", "NotPrincipal"):
            result[key] = _canonical_principal(value)
        elif key == "Condition":
            result[key] = _canonical_condition(value)
        else:
            result[key] = value
    return result


def canonical_policy(document: dict[str, Any]) -> dict[str, Any]:
    """Return a canonical form of a parsed policy document."""
    result = {k: v for k, v in document.items() if k != "Statement"}
    if "Id" in result and not result["Id"]:
        del result["Id"]
    statements = document.get("Statement", [])
    if not isinstance(statements, list):
        statements = [statements]
    result["Statement"] = sorted(
        (_canonical_statement(s) for s in statements),
        key=lambda s: json.dumps(s, sort_keys=True),
    )
    return result


def policies_equivalent(first: str, second: str) -> bool:
    """Check whether two policy documents grant the same permissions.

    Documents that are not JSON objects are compared as plain strings.
    """
    if first == second:
        return True
    try:
        parsed_first = json.loads(first)
        parsed_second = json.loads(second)
    except (TypeError, ValueError):
        return False
    if not isinstance(parsed_first, dict) or not isinstance(parsed_second, dict):
        return parsed_first == parsed_second
    return canonical_policy(parsed_first) == canonical_policy(parsed_second)

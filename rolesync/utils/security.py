"""Input validation and log sanitization for rolesync.

This module provides the low-level checks shared by the role attribute
rules (tags, ARNs, regions) and the sanitizer applied to every structured
log entry so that credentials never reach the logs.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

AWS_PATTERNS = {
    "region": re.compile(r"^[a-z]{2}(-gov)?-[a-z]+-[0-9]$"),
    "arn": re.compile(r"^arn:aws[a-z-]*:[a-z0-9-]+:[a-z0-9-]*:([0-9]{12}|aws)?:.+$"),
}

MAX_LENGTHS = {
    "tag_key": 128,
    "tag_value": 256,
    "region": 20,
    "arn": 2048,
}


@dataclass
class ValidationResult:
    """Result of input validation."""

    is_valid: bool
    errors: List[str]
    sanitized_value: Optional[Any] = None

    @classmethod
    def valid(cls, sanitized_value: Any = None) -> "ValidationResult":
        """Create a valid result."""
        return cls(is_valid=True, errors=[], sanitized_value=sanitized_value)

    @classmethod
    def invalid(cls, errors: List[str]) -> "ValidationResult":
        """Create an invalid result."""
        return cls(is_valid=False, errors=errors)


class InputValidator:
    """Validates input parameters before they are sent to IAM."""

    @staticmethod
    def validate_region(region: str) -> ValidationResult:
        """Validate an AWS region name."""
        if not region:
            return ValidationResult.invalid(["Region cannot be empty"])

        errors = []

        if len(region) > MAX_LENGTHS["region"]:
            errors.append(f"Region exceeds maximum length of {MAX_LENGTHS['region']}")

        if not AWS_PATTERNS["region"].match(region):
            errors.append("Region does not match expected pattern (e.g., us-east-1)")

        if errors:
            return ValidationResult.invalid(errors)

        return ValidationResult.valid(region)

    @staticmethod
    def validate_tag_key(key: str) -> ValidationResult:
        """Validate a tag key."""
        if not key:
            return ValidationResult.invalid(["Tag key cannot be empty"])

        errors = []

        if len(key) > MAX_LENGTHS["tag_key"]:
            errors.append(f"Tag key exceeds maximum length of {MAX_LENGTHS['tag_key']}")

        if errors:
            return ValidationResult.invalid(errors)

        return ValidationResult.valid(key)

    @staticmethod
    def validate_tag_value(value: str) -> ValidationResult:
        """Validate a tag value."""
        # Empty tag values are allowed
        if not value:
            return ValidationResult.valid(value)

        if len(value) > MAX_LENGTHS["tag_value"]:
            return ValidationResult.invalid(
                [f"Tag value exceeds maximum length of {MAX_LENGTHS['tag_value']}"]
            )

        return ValidationResult.valid(value)

    @staticmethod
    def validate_tags(tags: Dict[str, str]) -> ValidationResult:
        """Validate a dictionary of tags."""
        if not isinstance(tags, dict):
            return ValidationResult.invalid(["Tags must be a dictionary"])

        errors = []
        sanitized_tags = {}

        for key, value in tags.items():
            key_result = InputValidator.validate_tag_key(key)
            if not key_result.is_valid:
                errors.extend([f"Tag key '{key}': {e}" for e in key_result.errors])
                continue

            if not isinstance(value, str):
                errors.append(f"Tag value for '{key}': must be a string")
                continue

            value_result = InputValidator.validate_tag_value(value)
            if not value_result.is_valid:
                errors.extend([f"Tag value for '{key}': {e}" for e in value_result.errors])
                continue

            sanitized_tags[key] = value

        if errors:
            return ValidationResult.invalid(errors)

        return ValidationResult.valid(sanitized_tags)

    @staticmethod
    def validate_arn(arn: str) -> ValidationResult:
        """Validate an AWS ARN."""
        if not arn:
            return ValidationResult.invalid(["ARN cannot be empty"])

        errors = []

        if len(arn) > MAX_LENGTHS["arn"]:
            errors.append(f"ARN exceeds maximum length of {MAX_LENGTHS['arn']}")

        if not AWS_PATTERNS["arn"].match(arn):
            errors.append(f"'{arn}' is not a valid ARN")

        if errors:
            return ValidationResult.invalid(errors)

        return ValidationResult.valid(arn)


class LogSanitizer:
    """Sanitizes log output to prevent sensitive data exposure."""

    SENSITIVE_PATTERNS = [
        (re.compile(r"(A3T[A-Z0-9]|AKIA|ASIA)[0-9A-Z]{16}"), "[REDACTED_ACCESS_KEY]"),
        (re.compile(r"(?i)password\s*[=:]\s*\S+"), "password=[REDACTED]"),
        (re.compile(r"(?i)secret\s*[=:]\s*\S+"), "secret=[REDACTED]"),
        (re.compile(r"(?i)token\s*[=:]\s*\S+"), "token=[REDACTED]"),
    ]

    SENSITIVE_KEYS = {"password", "secret", "token", "credential", "accesskey"}

    @classmethod
    def sanitize(cls, message: str) -> str:
        """Sanitize a log message to remove sensitive data."""
        sanitized = message
        for pattern, replacement in cls.SENSITIVE_PATTERNS:
            sanitized = pattern.sub(replacement, sanitized)
        return sanitized

    @classmethod
    def sanitize_dict(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """Sanitize a dictionary for logging."""
        sanitized: Dict[str, Any] = {}

        for key, value in data.items():
            key_lower = key.lower().replace("_", "")
            if any(s in key_lower for s in cls.SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, str):
                sanitized[key] = cls.sanitize(value)
            elif isinstance(value, dict):
                sanitized[key] = cls.sanitize_dict(value)
            elif isinstance(value, list):
                sanitized[key] = [cls.sanitize(v) if isinstance(v, str) else v for v in value]
            else:
                sanitized[key] = value

        return sanitized

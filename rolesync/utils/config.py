"""Configuration management for rolesync.

Runtime settings are read from environment variables. Role attributes are
not configuration in this sense; they live in the role configuration file
handled by ``rolesync.models.RoleConfig``.

Key configuration options:
- AWS_REGION: Region the IAM client is created in
- ROLE_ARN: Optional role to assume before calling IAM
- LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
- STATE_FILE: Path of the JSON state file used by the CLI
- DRY_RUN: Plan only, never call mutating IAM APIs
- CREATE_RETRY_TIMEOUT_SECONDS: Window for retrying principal propagation errors
- PROPAGATION_TIMEOUT_SECONDS: Window for retrying DeleteConflict on role deletion
- IGNORE_TAG_KEYS / IGNORE_TAG_KEY_PREFIXES: Tags excluded from state
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from rolesync.exceptions import ConfigurationError

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

DEFAULT_CREATE_RETRY_TIMEOUT = 30
DEFAULT_PROPAGATION_TIMEOUT = 120

_config_logger = logging.getLogger(__name__)


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_timeout(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid {name}: '{raw}' is not a valid integer")


@dataclass
class RolesyncConfig:
    """Runtime configuration for rolesync.

    Attributes:
        region: AWS region the IAM client is bound to.
        role_arn: Optional IAM role ARN to assume for all calls.
        log_level: Log level for output.
        state_file: Path of the JSON state file.
        dry_run: When True, plans are computed but never applied.
        create_retry_timeout: Seconds to retry CreateRole while a principal
            in the trust policy is not yet visible.
        propagation_timeout: Seconds to retry DeleteRole on DeleteConflict.
        ignore_tag_keys: Tag keys never read into state.
        ignore_tag_key_prefixes: Tag key prefixes never read into state.
    """

    region: str = "us-east-1"
    role_arn: str = ""
    log_level: str = "INFO"
    state_file: str = "rolesync.tfstate.json"
    dry_run: bool = False
    create_retry_timeout: int = DEFAULT_CREATE_RETRY_TIMEOUT
    propagation_timeout: int = DEFAULT_PROPAGATION_TIMEOUT
    ignore_tag_keys: List[str] = field(default_factory=list)
    ignore_tag_key_prefixes: List[str] = field(default_factory=list)

    @classmethod
    def from_environment(cls, validate: bool = True) -> "RolesyncConfig":
        """Create configuration from environment variables.

        Args:
            validate: If True, validates the configuration and raises
                ConfigurationError if invalid.

        Returns:
            RolesyncConfig instance populated from environment variables.

        Raises:
            ConfigurationError: If a value cannot be parsed, or validation is
                enabled and the configuration is invalid.
        """
        config = cls()

        config.region = os.environ.get("AWS_REGION", "us-east-1")
        config.role_arn = os.environ.get("ROLE_ARN", "").strip()
        config.state_file = os.environ.get("STATE_FILE", config.state_file).strip()

        dry_run_value = os.environ.get("DRY_RUN", "false").lower().strip()
        config.dry_run = dry_run_value in ("true", "1", "yes")

        log_level_value = os.environ.get("LOG_LEVEL", "INFO").upper().strip()
        if log_level_value in VALID_LOG_LEVELS:
            config.log_level = log_level_value
        else:
            _config_logger.warning(
                f"Invalid LOG_LEVEL '{log_level_value}', defaulting to INFO"
            )
            config.log_level = "INFO"

        config.create_retry_timeout = _parse_timeout(
            "CREATE_RETRY_TIMEOUT_SECONDS", DEFAULT_CREATE_RETRY_TIMEOUT
        )
        config.propagation_timeout = _parse_timeout(
            "PROPAGATION_TIMEOUT_SECONDS", DEFAULT_PROPAGATION_TIMEOUT
        )

        config.ignore_tag_keys = _split_list(os.environ.get("IGNORE_TAG_KEYS", ""))
        config.ignore_tag_key_prefixes = _split_list(
            os.environ.get("IGNORE_TAG_KEY_PREFIXES", "")
        )

        if validate:
            errors = config.validate()
            if errors:
                raise ConfigurationError(
                    f"Configuration validation failed: {errors}", errors=errors
                )

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors.

        Returns:
            List of error messages. Empty list if configuration is valid.
        """
        errors = []

        if self.create_retry_timeout < 0:
            errors.append("CREATE_RETRY_TIMEOUT_SECONDS must not be negative")

        if self.propagation_timeout < 0:
            errors.append("PROPAGATION_TIMEOUT_SECONDS must not be negative")

        if self.role_arn and not self.role_arn.startswith("arn:aws"):
            errors.append(f"Invalid role ARN: {self.role_arn}")

        if not self.state_file:
            errors.append("STATE_FILE cannot be empty")

        return errors

    def is_dry_run(self) -> bool:
        """Check if dry-run (plan only) mode is enabled."""
        return self.dry_run

    def get_numeric_log_level(self) -> int:
        """Get the numeric log level for use with logging module."""
        return getattr(logging, self.log_level, logging.INFO)


def configure_logging(config: Optional["RolesyncConfig"] = None) -> logging.Logger:
    """Configure logging based on LOG_LEVEL environment variable or config.

    Args:
        config: Optional RolesyncConfig instance. If not provided, reads from environment.

    Returns:
        Configured logger instance for rolesync.
    """
    if config is None:
        log_level_str = os.environ.get("LOG_LEVEL", "INFO").upper().strip()
        if log_level_str not in VALID_LOG_LEVELS:
            logging.warning(f"Invalid LOG_LEVEL '{log_level_str}', defaulting to INFO")
            log_level_str = "INFO"
    else:
        log_level_str = config.log_level

    log_level = getattr(logging, log_level_str, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )

    rolesync_logger = logging.getLogger("rolesync")
    rolesync_logger.setLevel(log_level)

    return rolesync_logger

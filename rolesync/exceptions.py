"""Exception hierarchy for rolesync."""

from typing import Any, List, Optional


class RolesyncError(Exception):
    """Base class for all rolesync errors."""


class ConfigurationError(RolesyncError):
    """Exception raised for runtime configuration errors."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(RolesyncError):
    """Role configuration does not satisfy the attribute rules."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(self.message)


class RoleOperationError(RolesyncError):
    """An IAM call failed while managing the role.

    When the role exists despite the failure (for example a policy could
    not be attached right after the role was created) ``state`` holds what
    is known about it so it can still be tracked.
    """

    def __init__(self, message: str, state: Optional[Any] = None):
        self.state = state
        super().__init__(message)


class AggregateError(RolesyncError):
    """Several independent operations failed.

    Raised after every item of a bulk operation has been attempted.
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        if len(self.errors) == 1:
            message = f"1 error occurred:\n\t* {self.errors[0]}"
        else:
            details = "\n".join(f"\t* {e}" for e in self.errors)
            message = f"{len(self.errors)} errors occurred:\n{details}"
        super().__init__(message)


class StateError(RolesyncError):
    """The persisted state could not be read or written."""

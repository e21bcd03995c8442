"""Persistence of the role's last known state."""

from rolesync.state.store import StateStore

__all__ = ["StateStore"]

"""JSON file holding the state of the managed role.

The CLI keeps the last state read from IAM between invocations so that
plan can tell an update from a create, and destroy knows which role to
delete. The Lambda handler receives the state in its event instead and
never touches this file.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from rolesync.exceptions import StateError
from rolesync.models import RoleState

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = 1


class StateStore:
    """Loads and saves one RoleState as JSON."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Optional[RoleState]:
        """Return the stored state, or None if nothing is tracked.

        Raises:
            StateError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            logger.debug(f"No state file at {self.path}")
            return None

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StateError(f"Unable to read state file {self.path}: {e}") from e

        if not raw.strip():
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StateError(f"State file {self.path} is not valid JSON: {e}") from e

        resource = data.get("resource") if isinstance(data, dict) else None
        if resource is None:
            return None

        try:
            return RoleState.from_dict(resource)
        except (KeyError, TypeError, ValueError) as e:
            raise StateError(f"State file {self.path} is malformed: {e}") from e

    def save(self, state: Optional[RoleState]) -> None:
        """Write state atomically; None clears the tracked role."""
        document = {
            "version": STATE_FORMAT_VERSION,
            "resource": state.to_dict() if state else None,
        }
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, sort_keys=True)
                    f.write("\n")
                os.replace(tmp_path, self.path)
            except BaseException:
                os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StateError(f"Unable to write state file {self.path}: {e}") from e
        logger.debug(f"Saved state to {self.path}")

    def clear(self) -> None:
        """Forget the tracked role by removing the state file."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StateError(f"Unable to remove state file {self.path}: {e}") from e
        logger.debug(f"Removed state file {self.path}")

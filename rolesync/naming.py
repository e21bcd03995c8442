"""Generated names for roles and inline policies.

Names have the form ``<prefix><timestamp><counter>`` where the timestamp is
the UTC time to a ten-thousandth of a second and the counter is an 8 digit
hexadecimal number that increases with every call in this process. Names
generated within one process therefore sort in creation order.
"""

import itertools
import threading
from datetime import datetime, timezone

UNIQUE_ID_PREFIX = "terraform-"

# Length of the generated suffix: 18 timestamp digits plus 8 counter digits
UNIQUE_ID_SUFFIX_LENGTH = 26

_counter = itertools.count(1)
_lock = threading.Lock()


def prefixed_unique_id(prefix: str) -> str:
    """Return a unique name starting with prefix."""
    with _lock:
        now = datetime.now(timezone.utc)
        timestamp = now.strftime("%Y%m%d%H%M%S") + f"{now.microsecond // 100:04d}"
        return f"{prefix}{timestamp}{next(_counter):08x}"


def unique_id() -> str:
    """Return a unique name with the default prefix."""
    return prefixed_unique_id(UNIQUE_ID_PREFIX)

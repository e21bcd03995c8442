"""Tag handling for the role resource."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

# Keys with this prefix are reserved by AWS and never managed
AWS_RESERVED_TAG_PREFIX = "aws:"


@dataclass
class TagFilter:
    """Tags that are left out of state and out of every diff.

    Reserved ``aws:`` tags are always ignored; ``keys`` and ``key_prefixes``
    come from the IGNORE_TAG_KEYS / IGNORE_TAG_KEY_PREFIXES settings.
    """

    keys: List[str] = field(default_factory=list)
    key_prefixes: List[str] = field(default_factory=list)

    def is_ignored(self, key: str) -> bool:
        if key.startswith(AWS_RESERVED_TAG_PREFIX):
            return True
        if key in self.keys:
            return True
        return any(key.startswith(prefix) for prefix in self.key_prefixes)

    def apply(self, tags: Dict[str, str]) -> Dict[str, str]:
        return {k: v for k, v in tags.items() if not self.is_ignored(k)}


def tags_from_api(tag_list: List[Dict[str, Any]]) -> Dict[str, str]:
    """Convert IAM's [{"Key": ..., "Value": ...}] form into a dict."""
    return {t["Key"]: t.get("Value", "") for t in tag_list or []}


def tags_to_api(tags: Dict[str, str]) -> List[Dict[str, str]]:
    """Convert a dict into IAM's [{"Key": ..., "Value": ...}] form."""
    return [{"Key": k, "Value": v} for k, v in sorted(tags.items())]


def diff_tags(
    old: Dict[str, str], new: Dict[str, str]
) -> Tuple[List[str], Dict[str, str]]:
    """Return (keys to untag, tags to set) turning old into new."""
    remove = sorted(k for k in old if k not in new)
    upsert = {k: v for k, v in new.items() if old.get(k) != v}
    return remove, upsert

"""
firepush/utils/collection.py

Validation of Firestore collection names before any request is made.
"""

import re
from typing import Optional

MAX_COLLECTION_NAME_LENGTH = 1500

_RESERVED_RE = re.compile(r"__.*__")


def validate_collection_name(name: str) -> Optional[str]:
    """
    Check a collection name against Firestore's naming rules.

    Args:
        name (str): Candidate collection name.

    Returns:
        Optional[str]: A human-readable error message, or None if the name is valid.
    """
    if not name.strip():
        return "Collection name is required"
    if len(name) > MAX_COLLECTION_NAME_LENGTH:
        return f"Collection name must be at most {MAX_COLLECTION_NAME_LENGTH} characters"
    if "/" in name or "\\" in name:
        return "Collection name cannot contain forward slashes (/) or backslashes (\\)"
    if name.startswith(".") or name.endswith("."):
        return "Collection name cannot start or end with a period"
    if _RESERVED_RE.fullmatch(name):
        return "Collection name cannot match the regular expression __.*__"
    return None

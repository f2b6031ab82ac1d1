"""Client-side name rules.

These run before any create/rename request goes out. The backend checks
again; this layer only saves a round trip. Each function returns an error
message, or None when the name is acceptable.
"""

import re

CONTAINER_NAME_RE = re.compile(r"^[A-Za-z0-9 _.\-]{1,64}$")
FORBIDDEN_FILENAME_CHARS = set('/\\:*?"<>|')


def validate_container_name(name):
    """Rule for Space and Vault names."""
    if not name:
        return "Name cannot be empty"
    if len(name) > 64:
        return "Name must be 64 characters or fewer"
    if not CONTAINER_NAME_RE.fullmatch(name):
        return "Use letters, numbers, spaces, dots, dashes or underscores"
    return None


def validate_log_name(name):
    """Rule for Log filenames: needs an extension, no path characters."""
    if not name:
        return "Name cannot be empty"
    bad = sorted(FORBIDDEN_FILENAME_CHARS.intersection(name))
    if bad:
        return f"Filename cannot contain {' '.join(bad)}"
    stem, dot, ext = name.rpartition(".")
    if not dot or not ext:
        return "Filename needs an extension, e.g. main.py"
    return None


def validator_for(node_type):
    """Pick the rule that applies to a tree node type."""
    if node_type == "log":
        return validate_log_name
    return validate_container_name

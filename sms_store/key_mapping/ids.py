"""Entity key generation."""

from __future__ import annotations

import secrets
import string
import time


_BASE36 = string.digits + string.ascii_lowercase
SUFFIX_LENGTH = 9


def generate_key() -> str:
    """Return a new ``<epoch millis>-<9 base36 chars>`` key.

    Keys are approximately time-ordered: two keys generated within the same
    millisecond are ordered only by their random suffix.
    """
    millis = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_BASE36) for _ in range(SUFFIX_LENGTH))
    return f"{millis}-{suffix}"

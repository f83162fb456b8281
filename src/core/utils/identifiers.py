"""Content identifier generation.

Identifiers double as public URL tokens and storage keys, so they are
fixed-length, URL-safe and carry 128 bits of OS randomness.
"""

import os
import re
import secrets

from core.utils.constants import IMAGE_ID_BYTES, IMAGE_ID_PATTERN

_IMAGE_ID_RE = re.compile(IMAGE_ID_PATTERN)


def generate_image_id() -> str:
    """Generate a unique image identifier."""
    return secrets.token_urlsafe(IMAGE_ID_BYTES)


def is_valid_image_id(value: str) -> bool:
    """Return True if ``value`` has the shape of a generated identifier."""
    return isinstance(value, str) and _IMAGE_ID_RE.fullmatch(value) is not None


def ensure_entropy_source() -> None:
    """Fail fast when the OS random source is unusable.

    Raises:
        RuntimeError: If ``os.urandom`` cannot supply bytes
    """
    try:
        sample = os.urandom(IMAGE_ID_BYTES)
    except NotImplementedError as exc:
        raise RuntimeError("No usable entropy source for identifier generation") from exc

    if len(sample) != IMAGE_ID_BYTES:
        raise RuntimeError("Entropy source returned a short read")

from collections.abc import Mapping

from core.utils.constants import (
    GENERIC_MIME_TYPE,
    MIME_TYPE_ALIASES,
    MIME_TYPE_EXTENSION_MAP,
)

MAGIC_BYTES: Mapping[bytes, str] = {
    b"\xff\xd8\xff": "image/jpeg",
    b"\x89PNG\r\n\x1a\n": "image/png",
    b"GIF87a": "image/gif",
    b"GIF89a": "image/gif",
}


def detect_mime_type(file_data: bytes) -> str:
    for signature, mime in MAGIC_BYTES.items():
        if file_data.startswith(signature):
            return mime

    if file_data[:4] == b"RIFF" and file_data[8:12] == b"WEBP":
        return "image/webp"

    head = file_data[:512].lstrip().lower()
    if head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head):
        return "image/svg+xml"

    raise ValueError("Unsupported or unknown file type")


def normalize_mime_type(declared: str | None, file_data: bytes) -> str:
    """Resolve the MIME type an upload will be validated and stored under.

    The declared type wins; aliases such as ``image/jpg`` collapse to their
    canonical form. A missing or generic declaration falls back to sniffing
    the payload's magic bytes.
    """
    mime = (declared or "").split(";", 1)[0].strip().lower()
    mime = MIME_TYPE_ALIASES.get(mime, mime)

    if not mime or mime == GENERIC_MIME_TYPE:
        try:
            return detect_mime_type(file_data)
        except ValueError:
            return GENERIC_MIME_TYPE

    return mime


def extension_for(mime_type: str) -> str:
    """Return the on-disk extension (with leading dot) for a validated MIME type."""
    extensions = MIME_TYPE_EXTENSION_MAP.get(mime_type)
    if not extensions:
        return ".bin"
    return f".{extensions[0]}"

"""Global constants used throughout the application.

This module centralizes all magic numbers, string literals, and configuration
values that are used across multiple modules. Using constants prevents hardcoding
values and makes it easy to change them globally.
"""

from typing import Final

# ============================================================================
# Error Codes
# ============================================================================


# Validation Errors
ERROR_CODE_VALIDATION_FAILED = "VALIDATION_FAILED"
ERROR_CODE_INVALID_FILTER = "INVALID_FILTER"
ERROR_CODE_INVALID_TYPE = "INVALID_TYPE"
ERROR_CODE_FILE_TOO_LARGE = "FILE_TOO_LARGE"
ERROR_CODE_EMPTY_FILE = "EMPTY_FILE"
ERROR_CODE_TOO_MANY_FILES = "TOO_MANY_FILES"
ERROR_CODE_NO_UPDATE_DATA = "NO_UPDATE_DATA"

# Not Found Errors
ERROR_CODE_RESOURCE_NOT_FOUND = "NOT_FOUND"

# Authorization Errors
ERROR_CODE_FORBIDDEN = "FORBIDDEN"
ERROR_CODE_GUEST_UPLOAD_DISABLED = "GUEST_UPLOAD_DISABLED"

# Storage Errors
ERROR_CODE_STORAGE = "STORAGE_ERROR"
ERROR_CODE_IMAGE_UPLOAD_FAILED = "IMAGE_UPLOAD_FAILED"
ERROR_CODE_IMAGE_DOWNLOAD_FAILED = "IMAGE_DOWNLOAD_FAILED"
ERROR_CODE_IMAGE_DELETE_FAILED = "IMAGE_DELETE_FAILED"
ERROR_CODE_IMAGE_DUPLICATE_IMAGE = "DUPLICATE_IMAGE_ERROR"

# Metadata / DynamoDB Errors
ERROR_CODE_DYNAMODB = "DYNAMODB_ERROR"
ERROR_CODE_METADATA_OPERATION_FAILED = "METADATA_OPERATION_FAILED"
ERROR_CODE_METADATA_CREATE_FAILED = "METADATA_CREATE_FAILED"
ERROR_CODE_METADATA_FETCH_FAILED = "METADATA_FETCH_FAILED"
ERROR_CODE_METADATA_UPDATE_FAILED = "METADATA_UPDATE_FAILED"
ERROR_CODE_METADATA_DELETE_FAILED = "METADATA_DELETE_FAILED"
ERROR_CODE_METADATA_LIST_FAILED = "METADATA_LIST_FAILED"
ERROR_CODE_METADATA_SCAN_FAILED = "METADATA_SCAN_FAILED"
ERROR_CODE_COUNTER_UPDATE_FAILED = "COUNTER_UPDATE_FAILED"
ERROR_CODE_METADATA_INVALID_FORMAT = "METADATA_INVALID_FORMAT"

# Processing Errors
ERROR_CODE_TRANSFORM_FAILED = "TRANSFORM_FAILED"

# Internal / Unexpected
ERROR_CODE_INTERNAL_ERROR = "INTERNAL_ERROR"


# ============================================================================
# Upload Profiles
# ============================================================================

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB in bytes
GUEST_MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB in bytes
MAX_BATCH_FILES = 10

PROFILE_AUTHENTICATED = "authenticated"
PROFILE_GUEST = "guest"

# First extension is the one used on disk.
MIME_TYPE_EXTENSION_MAP: Final[dict[str, tuple[str, ...]]] = {
    "image/jpeg": ("jpg", "jpeg"),
    "image/png": ("png",),
    "image/gif": ("gif",),
    "image/webp": ("webp",),
    "image/svg+xml": ("svg",),
}

MIME_TYPE_ALIASES: Final[dict[str, str]] = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "image/x-png": "image/png",
}

ALLOWED_MIME_TYPES: Final[frozenset[str]] = frozenset(MIME_TYPE_EXTENSION_MAP.keys())

GUEST_ALLOWED_MIME_TYPES: Final[frozenset[str]] = frozenset(
    {"image/jpeg", "image/png", "image/webp"}
)

GENERIC_MIME_TYPE = "application/octet-stream"

# ============================================================================
# Identifiers
# ============================================================================

IMAGE_ID_BYTES = 16  # 128 bits of randomness
IMAGE_ID_LENGTH = 22  # len(token_urlsafe(16))
IMAGE_ID_PATTERN = r"^[A-Za-z0-9_-]{22}$"
MAX_ID_ATTEMPTS = 5

# ============================================================================
# Principals
# ============================================================================

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SYSTEM = "system"
DEFAULT_GUEST_USER_ID = "system_guest"

# ============================================================================
# Image Metadata Constraints
# ============================================================================

USER_ID_PATTERN = r"^[A-Za-z0-9_.@+-]+$"  # covers email-style authorizer ids
MAX_TAGS = 10
TAG_MAX_LENGTH = 50
IMAGE_NAME_MAX_LENGTH = 255

COUNTER_VIEW = "view_count"
COUNTER_DOWNLOAD = "download_count"

# ============================================================================
# Delivery / Transformation
# ============================================================================

DEFAULT_IMAGE_QUALITY = 85
MIN_IMAGE_QUALITY = 1
MAX_IMAGE_QUALITY = 100
MAX_TRANSFORM_DIMENSION = 8192

CACHE_CONTROL_IMMUTABLE = "public, max-age=31536000"

# ============================================================================
# Pagination Constraints
# ============================================================================

DEFAULT_LIMIT = 20
MIN_LIMIT = 1
MAX_LIMIT = 100
DEFAULT_OFFSET = 0

# ============================================================================
# In-process Cache
# ============================================================================

DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_CACHE_MAX_ENTRIES = 1024

# ============================================================================
# API Gateway Configuration
# ============================================================================

CORS_ORIGIN = "*"
CORS_METHODS = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
CORS_HEADERS = "Content-Type,Authorization,X-Api-Key"
EXPOSE_HEADERS = "Content-Type,Content-Length,Content-Disposition,ETag,Cache-Control"
DEFAULT_CONTENT_TYPE = "application/json"

# ============================================================================
# Environment Variable Names
# ============================================================================

ENV_AWS_ENDPOINT_URL = "AWS_ENDPOINT_URL"
ENV_AWS_REGION = "AWS_REGION"
ENV_IMAGE_METADATA_TABLE_NAME = "IMAGE_METADATA_TABLE_NAME"
ENV_AUDIT_LOG_TABLE_NAME = "AUDIT_LOG_TABLE_NAME"
ENV_METADATA_BACKEND = "METADATA_BACKEND"
ENV_UPLOAD_ROOT = "UPLOAD_ROOT"
ENV_MAX_FILE_SIZE = "MAX_FILE_SIZE"
ENV_GUEST_MAX_FILE_SIZE = "GUEST_MAX_FILE_SIZE"
ENV_ENABLE_GUEST_UPLOAD = "ENABLE_GUEST_UPLOAD"
ENV_GUEST_USER_ID = "GUEST_USER_ID"
ENV_DEFAULT_IMAGE_QUALITY = "DEFAULT_IMAGE_QUALITY"
ENV_CACHE_TTL_SECONDS = "CACHE_TTL_SECONDS"
ENV_CACHE_MAX_ENTRIES = "CACHE_MAX_ENTRIES"
ENV_EVENT_DISPATCH = "EVENT_DISPATCH"

DEFAULT_UPLOAD_ROOT = "./uploads"
METADATA_BACKEND_DYNAMODB = "dynamodb"
METADATA_BACKEND_MEMORY = "memory"
# Lambda freezes the process after returning, so side effects run inline there.
EVENT_DISPATCH_INLINE = "inline"
EVENT_DISPATCH_BACKGROUND = "background"

# ============================================================================
# Helper Functions
# ============================================================================


def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted file size string
    """
    size: float = float(size_bytes)

    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0

    return f"{size:.1f} TB"

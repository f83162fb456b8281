"""Service configuration resolved once at startup.

Upload profiles are explicit value objects handed to the upload service;
nothing below the handler layer reads environment variables after
``load_config`` has run.
"""

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.models.principal import Principal
from core.utils.constants import (
    ALLOWED_MIME_TYPES,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_GUEST_USER_ID,
    DEFAULT_IMAGE_QUALITY,
    DEFAULT_UPLOAD_ROOT,
    EVENT_DISPATCH_BACKGROUND,
    EVENT_DISPATCH_INLINE,
    ENV_AUDIT_LOG_TABLE_NAME,
    ENV_CACHE_MAX_ENTRIES,
    ENV_CACHE_TTL_SECONDS,
    ENV_DEFAULT_IMAGE_QUALITY,
    ENV_ENABLE_GUEST_UPLOAD,
    ENV_EVENT_DISPATCH,
    ENV_GUEST_MAX_FILE_SIZE,
    ENV_GUEST_USER_ID,
    ENV_IMAGE_METADATA_TABLE_NAME,
    ENV_MAX_FILE_SIZE,
    ENV_METADATA_BACKEND,
    ENV_UPLOAD_ROOT,
    GUEST_ALLOWED_MIME_TYPES,
    GUEST_MAX_FILE_SIZE,
    MAX_FILE_SIZE,
    MAX_IMAGE_QUALITY,
    METADATA_BACKEND_DYNAMODB,
    METADATA_BACKEND_MEMORY,
    MIN_IMAGE_QUALITY,
    PROFILE_AUTHENTICATED,
    PROFILE_GUEST,
)


class UploadProfile(BaseModel):
    """Validation limits applied to one upload route."""

    model_config = ConfigDict(frozen=True)

    name: str
    allowed_mime_types: frozenset[str] = Field(..., min_length=1)
    max_bytes: int = Field(..., gt=0)

    def allows(self, mime_type: str) -> bool:
        return mime_type in self.allowed_mime_types

    @property
    def max_megabytes(self) -> float:
        return self.max_bytes / (1024 * 1024)


AUTHENTICATED_PROFILE = UploadProfile(
    name=PROFILE_AUTHENTICATED,
    allowed_mime_types=ALLOWED_MIME_TYPES,
    max_bytes=MAX_FILE_SIZE,
)

GUEST_PROFILE = UploadProfile(
    name=PROFILE_GUEST,
    allowed_mime_types=GUEST_ALLOWED_MIME_TYPES,
    max_bytes=GUEST_MAX_FILE_SIZE,
)


class ServiceConfig(BaseModel):
    """Immutable runtime configuration for the image services."""

    model_config = ConfigDict(frozen=True)

    upload_root: Path = Field(default=Path(DEFAULT_UPLOAD_ROOT))
    metadata_backend: str = Field(default=METADATA_BACKEND_DYNAMODB)
    metadata_table_name: str | None = None
    audit_table_name: str | None = None

    authenticated_profile: UploadProfile = AUTHENTICATED_PROFILE
    guest_profile: UploadProfile = GUEST_PROFILE
    enable_guest_upload: bool = False
    guest_user_id: str = DEFAULT_GUEST_USER_ID

    default_quality: int = Field(
        default=DEFAULT_IMAGE_QUALITY,
        ge=MIN_IMAGE_QUALITY,
        le=MAX_IMAGE_QUALITY,
    )
    cache_ttl_seconds: float = Field(default=DEFAULT_CACHE_TTL_SECONDS, ge=0)
    cache_max_entries: int = Field(default=DEFAULT_CACHE_MAX_ENTRIES, ge=0)
    event_dispatch: str = EVENT_DISPATCH_INLINE

    @field_validator("metadata_backend")
    @classmethod
    def validate_backend(cls, value: str) -> str:
        backend = value.strip().lower()
        if backend not in {METADATA_BACKEND_DYNAMODB, METADATA_BACKEND_MEMORY}:
            raise ValueError(f"Unknown metadata backend '{value}'")
        return backend

    @field_validator("event_dispatch")
    @classmethod
    def validate_dispatch(cls, value: str) -> str:
        mode = value.strip().lower()
        if mode not in {EVENT_DISPATCH_INLINE, EVENT_DISPATCH_BACKGROUND}:
            raise ValueError(f"Unknown event dispatch mode '{value}'")
        return mode

    @property
    def guest_principal(self) -> Principal:
        """Owner of every anonymous upload, fixed for the process lifetime."""
        return Principal.guest(self.guest_user_id)


def _env_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def load_config(environ: Mapping[str, str] | None = None) -> ServiceConfig:
    """Build the service configuration from environment variables.

    Args:
        environ: Mapping to read from; defaults to ``os.environ``

    Returns:
        Validated, frozen ServiceConfig

    Raises:
        pydantic.ValidationError: If any value is malformed
    """
    env = os.environ if environ is None else environ

    max_bytes = int(env.get(ENV_MAX_FILE_SIZE) or MAX_FILE_SIZE)
    guest_max_bytes = int(env.get(ENV_GUEST_MAX_FILE_SIZE) or GUEST_MAX_FILE_SIZE)

    return ServiceConfig(
        upload_root=Path(env.get(ENV_UPLOAD_ROOT) or DEFAULT_UPLOAD_ROOT).resolve(),
        metadata_backend=env.get(ENV_METADATA_BACKEND) or METADATA_BACKEND_DYNAMODB,
        metadata_table_name=env.get(ENV_IMAGE_METADATA_TABLE_NAME) or None,
        audit_table_name=env.get(ENV_AUDIT_LOG_TABLE_NAME) or None,
        authenticated_profile=UploadProfile(
            name=PROFILE_AUTHENTICATED,
            allowed_mime_types=ALLOWED_MIME_TYPES,
            max_bytes=max_bytes,
        ),
        guest_profile=UploadProfile(
            name=PROFILE_GUEST,
            allowed_mime_types=GUEST_ALLOWED_MIME_TYPES,
            max_bytes=guest_max_bytes,
        ),
        enable_guest_upload=_env_flag(env.get(ENV_ENABLE_GUEST_UPLOAD)),
        guest_user_id=env.get(ENV_GUEST_USER_ID) or DEFAULT_GUEST_USER_ID,
        default_quality=int(env.get(ENV_DEFAULT_IMAGE_QUALITY) or DEFAULT_IMAGE_QUALITY),
        cache_ttl_seconds=float(env.get(ENV_CACHE_TTL_SECONDS) or DEFAULT_CACHE_TTL_SECONDS),
        cache_max_entries=int(env.get(ENV_CACHE_MAX_ENTRIES) or DEFAULT_CACHE_MAX_ENTRIES),
        event_dispatch=env.get(ENV_EVENT_DISPATCH) or EVENT_DISPATCH_INLINE,
    )

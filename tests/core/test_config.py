from pathlib import Path

import pytest
from pydantic import ValidationError

from core.config import ServiceConfig, load_config
from core.utils.constants import (
    DEFAULT_GUEST_USER_ID,
    DEFAULT_IMAGE_QUALITY,
    GUEST_MAX_FILE_SIZE,
    MAX_FILE_SIZE,
    ROLE_SYSTEM,
)


class TestLoadConfig:
    def test_defaults(self) -> None:
        config = load_config({})

        assert config.metadata_backend == "dynamodb"
        assert config.metadata_table_name is None
        assert config.enable_guest_upload is False
        assert config.guest_user_id == DEFAULT_GUEST_USER_ID
        assert config.default_quality == DEFAULT_IMAGE_QUALITY
        assert config.authenticated_profile.max_bytes == MAX_FILE_SIZE
        assert config.guest_profile.max_bytes == GUEST_MAX_FILE_SIZE
        assert config.event_dispatch == "inline"
        assert config.upload_root.is_absolute()

    def test_reads_environment(self, tmp_path: Path) -> None:
        config = load_config(
            {
                "UPLOAD_ROOT": str(tmp_path),
                "METADATA_BACKEND": "MEMORY",
                "IMAGE_METADATA_TABLE_NAME": "images",
                "AUDIT_LOG_TABLE_NAME": "audit",
                "ENABLE_GUEST_UPLOAD": "true",
                "GUEST_USER_ID": "anon",
                "MAX_FILE_SIZE": "2048",
                "GUEST_MAX_FILE_SIZE": "1024",
                "DEFAULT_IMAGE_QUALITY": "70",
                "CACHE_TTL_SECONDS": "0",
                "CACHE_MAX_ENTRIES": "10",
                "EVENT_DISPATCH": "background",
            }
        )

        assert config.upload_root == tmp_path.resolve()
        assert config.metadata_backend == "memory"
        assert config.metadata_table_name == "images"
        assert config.audit_table_name == "audit"
        assert config.enable_guest_upload is True
        assert config.guest_principal.user_id == "anon"
        assert config.guest_principal.role == ROLE_SYSTEM
        assert config.authenticated_profile.max_bytes == 2048
        assert config.guest_profile.max_bytes == 1024
        assert config.default_quality == 70
        assert config.cache_ttl_seconds == 0
        assert config.cache_max_entries == 10
        assert config.event_dispatch == "background"

    @pytest.mark.parametrize(
        "env",
        [
            {"METADATA_BACKEND": "postgres"},
            {"EVENT_DISPATCH": "kafka"},
            {"DEFAULT_IMAGE_QUALITY": "0"},
            {"MAX_FILE_SIZE": "0"},
        ],
    )
    def test_rejects_invalid_values(self, env: dict[str, str]) -> None:
        with pytest.raises(ValidationError):
            load_config(env)


class TestUploadProfiles:
    def test_guest_profile_is_stricter(self) -> None:
        config = ServiceConfig()

        assert config.guest_profile.max_bytes < config.authenticated_profile.max_bytes
        assert config.guest_profile.allowed_mime_types < config.authenticated_profile.allowed_mime_types
        assert config.guest_profile.allows("image/jpeg")
        assert not config.guest_profile.allows("image/svg+xml")
        assert config.authenticated_profile.allows("image/svg+xml")

    def test_config_is_frozen(self) -> None:
        config = ServiceConfig()

        with pytest.raises(ValidationError):
            config.enable_guest_upload = True  # type: ignore[misc]

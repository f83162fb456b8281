"""
Wiring of infrastructure collaborators shared by the handler services.

Built once per process from ``ServiceConfig``. Services take a
``ServiceDependencies`` so tests can hand in in-memory stores and a tmp
upload root instead of patching module globals.
"""

from dataclasses import dataclass
from functools import lru_cache

from aws_lambda_powertools import Logger

from core.audit import AuditTrail
from core.config import ServiceConfig, load_config
from core.events import BackgroundDispatcher, EventDispatcher, InlineDispatcher
from core.infrastructure.adapters.dynamodb_adapter import DynamoDBAdapter
from core.infrastructure.aws.dynamodb_audit_log import DynamoDBAuditLog
from core.infrastructure.aws.dynamodb_metadata import DynamoDBMetadata
from core.infrastructure.local.audit_log import LoggerAuditLog
from core.infrastructure.local.file_storage import LocalImageStorage
from core.infrastructure.local.memory_metadata import InMemoryMetadata
from core.repositories.audit_repository import AuditLogRepository
from core.repositories.metadata_repository import ImageMetadataRepository
from core.repositories.storage_repository import ImageStorageRepository
from core.usage import UsageCounter
from core.utils.cache import TTLCache
from core.utils.constants import EVENT_DISPATCH_BACKGROUND, METADATA_BACKEND_MEMORY
from core.utils.identifiers import ensure_entropy_source
from core.utils.storage_paths import StoragePathResolver

logger = Logger(UTC=True)


@dataclass(frozen=True)
class ServiceDependencies:
    """Everything a handler service needs, resolved once."""

    config: ServiceConfig
    paths: StoragePathResolver
    storage: ImageStorageRepository
    metadata: ImageMetadataRepository
    dispatcher: EventDispatcher
    audit: AuditTrail
    usage: UsageCounter
    cache: TTLCache


def _build_metadata(config: ServiceConfig) -> ImageMetadataRepository:
    if config.metadata_backend == METADATA_BACKEND_MEMORY:
        return InMemoryMetadata()
    return DynamoDBMetadata(DynamoDBAdapter(config.metadata_table_name))


def _build_audit_log(config: ServiceConfig) -> AuditLogRepository:
    if config.audit_table_name:
        return DynamoDBAuditLog(DynamoDBAdapter(config.audit_table_name))
    return LoggerAuditLog()


def _build_dispatcher(config: ServiceConfig) -> EventDispatcher:
    if config.event_dispatch == EVENT_DISPATCH_BACKGROUND:
        return BackgroundDispatcher()
    return InlineDispatcher()


def build_dependencies(
    config: ServiceConfig,
    *,
    metadata: ImageMetadataRepository | None = None,
    audit_log: AuditLogRepository | None = None,
    dispatcher: EventDispatcher | None = None,
) -> ServiceDependencies:
    """Assemble collaborators for ``config``; explicit arguments take precedence.

    Raises:
        RuntimeError: If the entropy source is unusable or a required
            DynamoDB table name is missing
    """
    ensure_entropy_source()

    paths = StoragePathResolver(config.upload_root)
    metadata = metadata or _build_metadata(config)
    dispatcher = dispatcher or _build_dispatcher(config)

    deps = ServiceDependencies(
        config=config,
        paths=paths,
        storage=LocalImageStorage(paths),
        metadata=metadata,
        dispatcher=dispatcher,
        audit=AuditTrail(audit_log or _build_audit_log(config), dispatcher),
        usage=UsageCounter(metadata, dispatcher),
        cache=TTLCache(
            max_entries=config.cache_max_entries,
            ttl_seconds=config.cache_ttl_seconds,
        ),
    )

    logger.info(
        "Service dependencies initialised",
        extra={
            "upload_root": str(paths.root),
            "metadata_backend": config.metadata_backend,
            "event_dispatch": config.event_dispatch,
            "guest_upload_enabled": config.enable_guest_upload,
        },
    )
    return deps


@lru_cache(maxsize=1)
def get_dependencies() -> ServiceDependencies:
    """Process-wide dependencies built from environment variables."""
    return build_dependencies(load_config())

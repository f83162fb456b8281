"""
Reconciliation between the metadata store and file storage.

A record whose backing file has gone missing is an orphan: delivery already
answers NotFound for it, but it still shows up in listings and statistics.
The sweep finds such records and, when asked, removes them.
"""

from dataclasses import dataclass, field

from aws_lambda_powertools import Logger

from core.models.errors import ValidationError
from core.repositories.metadata_repository import ImageMetadataRepository
from core.repositories.storage_repository import ImageStorageRepository

logger = Logger(UTC=True)


@dataclass
class SweepReport:
    scanned: int = 0
    orphans: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class OrphanSweeper:
    """Scan every record and check its file exists."""

    def __init__(self, metadata: ImageMetadataRepository, storage: ImageStorageRepository) -> None:
        self.metadata = metadata
        self.storage = storage

    def sweep(self, *, remove: bool = False) -> SweepReport:
        """Report orphaned records; delete them too when ``remove`` is set.

        Records without a usable ``storage_path`` are reported as skipped
        rather than treated as orphans.
        """
        report = SweepReport()

        for item in self.metadata.scan_metadata():
            report.scanned += 1
            image_id = item.get("image_id")
            storage_path = item.get("storage_path")

            if not isinstance(image_id, str) or not isinstance(storage_path, str):
                report.skipped.append(str(image_id))
                continue

            try:
                present = self.storage.exists(storage_path=storage_path)
            except ValidationError:
                logger.warning(
                    "Record has an invalid storage path",
                    extra={"image_id": image_id, "integrity_warning": True},
                )
                report.skipped.append(image_id)
                continue

            if present:
                continue

            report.orphans.append(image_id)
            logger.warning(
                "Orphaned metadata record",
                extra={"image_id": image_id, "storage_path": storage_path, "integrity_warning": True},
            )

            if remove and self.metadata.remove_metadata(image_id=image_id) is not None:
                report.removed.append(image_id)

        logger.info(
            "Orphan sweep finished",
            extra={
                "scanned": report.scanned,
                "orphans": len(report.orphans),
                "removed": len(report.removed),
                "skipped": len(report.skipped),
            },
        )
        return report

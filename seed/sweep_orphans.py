#!/usr/bin/env python3
"""
Report (and optionally remove) metadata records whose image file is missing.

Run:
    python seed/sweep_orphans.py            # report only
    python seed/sweep_orphans.py --remove   # delete orphaned records

Configuration comes from the same environment variables the handlers use
(UPLOAD_ROOT, METADATA_BACKEND, IMAGE_METADATA_TABLE_NAME, ...).
"""

import argparse
import json
import sys

from aws_lambda_powertools import Logger

from core.config import load_config
from core.dependencies import build_dependencies
from core.maintenance import OrphanSweeper
from core.models.errors import ImageServiceError

logger = Logger(service="sweep")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find metadata records without a backing file")

    parser.add_argument(
        "--remove",
        action="store_true",
        help="Delete orphaned records instead of only reporting them",
    )

    return parser.parse_args()


def sweep_orphans() -> None:
    args = parse_args()

    try:
        deps = build_dependencies(load_config())
        report = OrphanSweeper(deps.metadata, deps.storage).sweep(remove=args.remove)
    except ImageServiceError as exc:
        logger.error(
            "Orphan sweep failed",
            extra={"error_code": exc.error_code, "error": exc.message, "details": exc.details},
        )
        sys.exit(1)

    print(
        json.dumps(
            {
                "scanned": report.scanned,
                "orphans": report.orphans,
                "removed": report.removed,
                "skipped": report.skipped,
            },
            indent=2,
        )
    )

    if report.orphans and not args.remove:
        sys.exit(2)


if __name__ == "__main__":
    sweep_orphans()

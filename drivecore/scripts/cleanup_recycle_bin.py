#!/usr/bin/env python3
"""
Recycle bin expiry sweep.

One-shot entry point for an external scheduler (cron, Kubernetes CronJob):
permanently deletes every recycle bin entry whose retention window has
elapsed, then prints the purge report.

Usage:
    python -m drivecore.scripts.cleanup_recycle_bin
"""
import sys

from drivecore.core.config import settings
from drivecore.core.logging import setup_json_logging
from drivecore.db.session import SessionLocal
from drivecore.storage.gateway import BlobStoreGateway
from drivecore.storage.recycle import RecycleBinService


def run_cleanup() -> bool:
    """Run one sweep; returns False when any entry failed to purge."""
    logger = setup_json_logging(settings.LOG_LEVEL)
    db = SessionLocal()
    try:
        service = RecycleBinService(db, BlobStoreGateway.from_settings())
        result = service.cleanup_expired_items()
        print(service.get_cleanup_report(result))
        logger.info("Recycle bin sweep finished", extra=result.to_dict())
        return not result.errors
    except Exception:
        logger.exception("Recycle bin sweep aborted")
        return False
    finally:
        db.close()


def main():
    success = run_cleanup()
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()

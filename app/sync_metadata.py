"""
Replay pending MongoDB mirror writes from the metadata outbox.

    python -m app.sync_metadata
"""
import logging

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.session import session_scope
from app.services.metadata_mirror import ProjectMetadataMirror
from app.services.outbox_service import MetadataOutboxService

logger = logging.getLogger(__name__)


def sync(batch_size: int = 100) -> int:
    settings = get_settings()
    configure_logging(settings)

    mirror = ProjectMetadataMirror.from_settings(settings)
    if mirror is None:
        logger.warning("[sync] MONGODB_URI not set; nothing to do")
        return 0

    try:
        with session_scope() as db:
            total, failed = MetadataOutboxService().replay(db, mirror, batch_size=batch_size)
    finally:
        mirror.close()

    logger.info("[sync] delivered %d outbox entries, %d failed", total, failed)
    return total


if __name__ == "__main__":
    sync()

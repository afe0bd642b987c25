"""
Configuration backup
"""
from datetime import datetime
from pathlib import Path
from typing import Optional

from ...core.constants import BACKUP_PREFIX, BACKUP_TIMESTAMP_FORMAT
from ...core.exceptions import DocumentIOError
from ...core.interfaces import DocumentStore
from ...core.logging import get_logger
from .models import BackupRecord

logger = get_logger(__name__)


def backup_directory(root: Path, now: datetime) -> Path:
    """`<root>/nixos-bootstrap-backup-<YYYYmmdd-HHMMSS>`"""
    return root / f"{BACKUP_PREFIX}-{now.strftime(BACKUP_TIMESTAMP_FORMAT)}"


def create_backup(
    store: DocumentStore,
    document: Path,
    root: Path,
    now: Optional[datetime] = None,
) -> BackupRecord:
    """
    Create the backup directory and copy the document into it if it exists.

    The directory is created even when there is nothing to copy, so every
    run reports a backup location.

    Raises:
        DocumentIOError: If the directory cannot be created or the copy fails
    """
    now = now or datetime.now()
    directory = backup_directory(root, now)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DocumentIOError(f"Cannot create backup directory {directory}: {e}") from e

    if not store.exists(document):
        logger.info(f"No {document} to back up")
        return BackupRecord(directory=directory, created_at=now)

    snapshot = store.copy_into(document, directory)
    logger.info(f"Backed up {document} to {snapshot}")
    return BackupRecord(directory=directory, created_at=now, snapshot=snapshot)

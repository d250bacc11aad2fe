"""Retention sweep for backup directories."""

import logging
import time
from pathlib import Path

logger = logging.getLogger(__name__)

BACKUP_RETENTION_DAYS = 30


def clean_old_backups(backups_path: Path, retention_days: int = BACKUP_RETENTION_DAYS, now: float | None = None) -> int:
    """Delete backup files older than the retention window.

    Age is taken from the file modification time. Subdirectories are
    skipped. A file that cannot be inspected or deleted is skipped so that
    one bad entry does not abort the sweep.

    Args:
        backups_path: Backup directory to sweep
        retention_days: Files older than this many days are deleted
        now: Reference time as a POSIX timestamp (default: current time)

    Returns:
        Number of files deleted
    """
    backups_path = Path(backups_path)
    if not backups_path.is_dir():
        return 0

    cutoff = (now if now is not None else time.time()) - retention_days * 24 * 60 * 60
    deleted = 0

    try:
        entries = list(backups_path.iterdir())
    except OSError as e:
        logger.warning(f"Failed to list backups in {backups_path}: {e}")
        return 0

    for entry in entries:
        try:
            if entry.is_dir() or entry.stat().st_mtime >= cutoff:
                continue
            entry.unlink()
            deleted += 1
        except OSError as e:
            logger.debug(f"Skipping backup {entry}: {e}")

    if deleted:
        logger.info(f"Removed {deleted} backup(s) older than {retention_days} days from {backups_path}")
    return deleted

# ABOUTME: Timestamped backups of the target config taken before each write.
# ABOUTME: Keeps only the newest few backups per prefix.
import logging
import re
import shutil
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

# ABOUTME: Number of backups retained per prefix
MAX_BACKUPS = 5

# Pattern matches: {prefix}_{YYYYMMDD}_{HHMMSS}[_{n}].{ext}
# e.g., claude_desktop_config_20260108_143022.json
BACKUP_PATTERN = re.compile(r"^(.+?)_(\d{8}_\d{6}(?:_\d+)?)\.(.+)$")


def create_backup(source_path: Path, backup_dir: Path, max_backups: int = MAX_BACKUPS) -> Path:
    """Copy `source_path` into `backup_dir` under a timestamped name.

    ABOUTME: Backup format: {stem}_{YYYYMMDD}_{HHMMSS}.{ext}
    ABOUTME: Uses shutil.copy2() to preserve file metadata

    Args:
        source_path: File to back up
        backup_dir: Directory for backups (created if missing)
        max_backups: Backups kept for this file after cleanup

    Returns:
        Path to created backup file

    Raises:
        FileNotFoundError: If source_path doesn't exist
    """
    if not source_path.exists():
        raise FileNotFoundError(f"Source file not found: {source_path}")

    backup_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    prefix = source_path.stem.replace(".", "_") or "config"
    backup_path = backup_dir / f"{prefix}_{timestamp}{source_path.suffix}"

    # Two backups within the same second get a counter above any existing one
    counters = []
    for existing in backup_dir.glob(f"{prefix}_{timestamp}*"):
        match = BACKUP_PATTERN.match(existing.name)
        if match and match.group(1) == prefix:
            counters.append(_sort_key(match.group(2))[1])
    if counters:
        backup_path = backup_dir / f"{prefix}_{timestamp}_{max(counters) + 1}{source_path.suffix}"

    shutil.copy2(source_path, backup_path)
    logger.debug(f"Backed up {source_path} to {backup_path}")

    cleanup_old_backups(backup_dir, max_backups)
    return backup_path


def _sort_key(stamp: str) -> tuple[str, int]:
    # "20260108_143022" or "20260108_143022_2"
    parts = stamp.split("_")
    counter = int(parts[2]) if len(parts) > 2 else 0
    return "_".join(parts[:2]), counter


def cleanup_old_backups(backup_dir: Path, max_backups: int = MAX_BACKUPS) -> list[Path]:
    """Remove old backup files, keeping only the most recent per prefix.

    ABOUTME: Logs warnings on errors but does not raise exceptions

    Returns:
        List of paths that were deleted
    """
    deleted: list[Path] = []
    if not backup_dir.exists():
        return deleted

    by_prefix: dict[str, list[tuple[tuple[str, int], Path]]] = {}
    for file_path in backup_dir.iterdir():
        if not file_path.is_file():
            continue
        match = BACKUP_PATTERN.match(file_path.name)
        if not match:
            continue
        by_prefix.setdefault(match.group(1), []).append((_sort_key(match.group(2)), file_path))

    for backups in by_prefix.values():
        # Newest first
        backups.sort(key=lambda item: item[0], reverse=True)
        for _, file_path in backups[max_backups:]:
            try:
                file_path.unlink()
                deleted.append(file_path)
                logger.debug(f"Deleted old backup: {file_path}")
            except OSError as e:
                logger.warning(f"Failed to delete old backup {file_path}: {e}")

    return deleted

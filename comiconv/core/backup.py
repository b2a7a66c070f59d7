"""Preservation of original archives before they are replaced."""

import logging
import shutil
from pathlib import Path
from typing import Union

from comiconv.core.errors import BackupError

# Set up logging
logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"


def backup_path_for(path: Union[str, Path]) -> Path:
    """
    Return the first free backup path: ``<name>.bak``, then ``<name>.bak.1``, ...
    """
    path = Path(path)
    candidate = path.with_name(path.name + BACKUP_SUFFIX)
    counter = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.name}{BACKUP_SUFFIX}.{counter}")
        counter += 1
    return candidate


def create_backup(path: Union[str, Path]) -> Path:
    """
    Copy the original archive to its backup path.

    The original stays in place, so it remains intact if the new archive
    later fails to write.

    Raises:
        BackupError: If the copy cannot be made
    """
    path = Path(path)
    backup = backup_path_for(path)
    try:
        shutil.copy2(path, backup)
    except OSError as e:
        # A partial copy is not a usable backup
        if backup.exists():
            backup.unlink()
        raise BackupError(f"Failed to create backup {backup.name}: {e}", path=str(path)) from e

    logger.info(f"Backed up {path.name} to {backup.name}")
    return backup

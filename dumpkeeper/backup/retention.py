"""
Retention enforcement for dump artifacts and log files.

Removes compressed dumps older than the retention window and trims each log
file to its most recent lines.
"""

import os
import time
import shutil
import logging
import tempfile
from typing import List, Dict, Any

from .compression import is_archive

logger = logging.getLogger(__name__)


def prune_archives(dumps_dir: str, retention_minutes: int, now: float = None) -> List[str]:
    """
    Delete compressed dumps older than the retention window.

    A file is deleted when its age is strictly greater than the window; a
    file exactly at the threshold is kept.

    Args:
        dumps_dir: Root of the local dump tree
        retention_minutes: Retention window in minutes
        now: Reference time as a Unix timestamp (defaults to time.time())

    Returns:
        List of deleted file paths
    """
    if now is None:
        now = time.time()

    threshold = retention_minutes * 60
    deleted = []

    for root, dirs, files in os.walk(dumps_dir):
        for name in files:
            if not is_archive(name):
                continue
            path = os.path.join(root, name)
            if not os.path.isfile(path):
                continue
            if now - os.path.getmtime(path) > threshold:
                os.remove(path)
                deleted.append(path)
                logger.debug(f"Deleted old dump: {path}")

    return deleted


def trim_log(path: str, max_lines: int) -> bool:
    """
    Keep only the last ``max_lines`` lines of a log file.

    The whole file is read first, the suffix is written to a temporary file
    in the same directory, and that file replaces the original atomically.

    Args:
        path: Log file path
        max_lines: Number of most recent lines to keep

    Returns:
        True if the file was rewritten
    """
    if not os.path.isfile(path):
        return False

    with open(path, 'rb') as f:
        lines = f.readlines()

    if len(lines) <= max_lines:
        return False

    kept = lines[len(lines) - max_lines:] if max_lines > 0 else []

    fd, temp_path = tempfile.mkstemp(prefix='.trim-', dir=os.path.dirname(path) or '.')
    try:
        with os.fdopen(fd, 'wb') as f:
            f.writelines(kept)
        shutil.copymode(path, temp_path)
        os.replace(temp_path, path)
    except Exception:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise

    return True


class RetentionSweeper:
    """
    Runs both retention steps after a successful transfer.
    """

    def __init__(self, dumps_dir: str, retention_minutes: int, log_files: List[str], preserve_lines: int = 100):
        """
        Initialize retention sweeper.

        Args:
            dumps_dir: Root of the local dump tree
            retention_minutes: Age threshold for artifacts, in minutes
            log_files: Log files to trim
            preserve_lines: Number of lines to keep per log file
        """
        self.dumps_dir = dumps_dir
        self.retention_minutes = retention_minutes
        self.log_files = log_files
        self.preserve_lines = preserve_lines

    def sweep(self, now: float = None) -> Dict[str, Any]:
        """
        Prune old artifacts, then trim logs.

        Filesystem errors are not caught.

        Returns:
            Dict with 'deleted' (artifact paths) and 'trimmed' (log paths)
        """
        deleted = prune_archives(self.dumps_dir, self.retention_minutes, now=now)
        logger.debug(
            f"Retention sweep: {len(deleted)} dumps older than "
            f"{self.retention_minutes} minutes removed"
        )

        trimmed = [
            log_file for log_file in self.log_files
            if trim_log(log_file, self.preserve_lines)
        ]

        return {
            'deleted': deleted,
            'trimmed': trimmed
        }
